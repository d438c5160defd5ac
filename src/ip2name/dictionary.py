from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from threading import Lock
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .errors import LoadError

# Range scanning only considers prefixes in this inclusive window.
MIN_PREFIX = 1
MAX_PREFIX = 30


def _is_digits(part: str) -> bool:
    return bool(part) and part.isascii() and part.isdigit()


def cidr_prefix(key: str) -> Optional[int]:
    """Return N for a key shaped like 'a.b.c.d/N', otherwise None.

    Only the shape is checked here; octet values are not range-checked.
    """
    address, sep, prefix = key.partition("/")
    if not sep or not _is_digits(prefix):
        return None
    quads = address.split(".")
    if len(quads) != 4 or not all(_is_digits(q) for q in quads):
        return None
    return int(prefix)


def candidate_prefixes(keys: Iterable[str]) -> Tuple[int, ...]:
    """Distinct CIDR prefix lengths, most frequently used first.

    Ties keep the reverse of first-seen order. Prefixes outside
    [MIN_PREFIX, MAX_PREFIX] are dropped.
    """
    counts: Counter[int] = Counter()
    for key in keys:
        prefix = cidr_prefix(key)
        if prefix is not None:
            counts[prefix] += 1

    ordered = sorted(counts, key=counts.__getitem__)
    ordered.reverse()
    return tuple(p for p in ordered if MIN_PREFIX <= p <= MAX_PREFIX)


class _TextScalarLoader(yaml.SafeLoader):
    """SafeLoader that keeps numeric scalars as written (1.10, 0x1F, 010)."""


def _construct_text(loader: yaml.SafeLoader, node: yaml.ScalarNode) -> str:
    return loader.construct_scalar(node)


for _tag in ("tag:yaml.org,2002:int", "tag:yaml.org,2002:float"):
    _TextScalarLoader.add_constructor(_tag, _construct_text)


def _coerce_entries(data: object, path: str) -> Dict[str, str]:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise LoadError(
            path, f"expected a mapping of address to name, got {type(data).__name__}"
        )

    entries: Dict[str, str] = {}
    for key, value in data.items():
        if not isinstance(key, str):
            raise LoadError(path, f"key {key!r} is not a string")
        # yes/no/on/off still load as bool, dates as date
        if not isinstance(value, str):
            raise LoadError(
                path, f"value for {key!r} must be a name, got {type(value).__name__}"
            )
        entries[key] = value
    return entries


def parse_dictionary(path: str) -> Dict[str, str]:
    """Read a YAML dictionary file into a flat address -> name mapping."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.load(f, Loader=_TextScalarLoader)
    except OSError as e:
        raise LoadError(path, str(e)) from e
    except yaml.YAMLError as e:
        raise LoadError(path, f"bad YAML syntax: {e}") from e
    return _coerce_entries(data, path)


@dataclass(frozen=True)
class DictionarySnapshot:
    """Immutable view of the dictionary and its derived prefix order."""

    entries: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    prefixes: Tuple[int, ...] = ()

    @classmethod
    def build(cls, entries: Dict[str, str]) -> "DictionarySnapshot":
        return cls(
            entries=MappingProxyType(dict(entries)),
            prefixes=candidate_prefixes(entries),
        )


@dataclass
class DictionaryStore:
    """Address/CIDR -> name dictionary that can be reloaded while in use.

    Each successful load publishes a fresh DictionarySnapshot with a
    single attribute assignment, so readers always see either the old or
    the new dictionary in full and never need the lock. The lock only
    serializes concurrent loads.
    """

    _snapshot: DictionarySnapshot = field(default_factory=DictionarySnapshot)
    _lock: Lock = field(default_factory=Lock, init=False, repr=False)

    def snapshot(self) -> DictionarySnapshot:
        return self._snapshot

    @property
    def candidate_prefixes(self) -> Tuple[int, ...]:
        return self._snapshot.prefixes

    def get(self, key: str) -> Optional[str]:
        return self._snapshot.entries.get(key)

    def keys(self) -> List[str]:
        return list(self._snapshot.entries)

    def __contains__(self, key: object) -> bool:
        return key in self._snapshot.entries

    def __len__(self) -> int:
        return len(self._snapshot.entries)

    def load(self, path: Optional[str]) -> bool:
        """Merge the dictionary file at path into the store.

        Returns False without touching anything if path is unset or the
        file does not exist. Raises LoadError on unreadable or malformed
        files, in which case the current snapshot stays published.
        """
        if not path or not os.path.exists(path):
            return False

        loaded = parse_dictionary(path)

        with self._lock:
            merged = dict(self._snapshot.entries)
            merged.update(loaded)
            self._snapshot = DictionarySnapshot.build(merged)
        return True
