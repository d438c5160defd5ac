import textwrap

import pytest

SAMPLE_DICTIONARY = """\
---
# Each range is defined like so
11.11.11.11     : "example.io"
10.10.10.0/24   : "example.local"
"""


@pytest.fixture
def write_yaml(tmp_path):
    """Write YAML text to a file under tmp_path and return its path as str."""

    def _write(text, name="ip2name.yaml"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return str(path)

    return _write


@pytest.fixture
def sample_path(write_yaml):
    return write_yaml(SAMPLE_DICTIONARY)
