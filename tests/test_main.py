"""Tests for the command line front end."""

import io
import json

import pytest

from ip2name import main as cli
from ip2name.config import FilterConfig
from ip2name.filter import IP2NameFilter


class TestResolveCommand:
    def test_prints_table(self, sample_path, capsys):
        cli.main(["resolve", "-d", sample_path, "11.11.11.11", "10.10.10.10", "11.10.10.11"])

        lines = capsys.readouterr().out.splitlines()
        rows = [line.split() for line in lines[2:]]

        assert lines[0].split() == ["Address", "Name"]
        assert rows == [
            ["11.11.11.11", "example.io"],
            ["10.10.10.10", "example.local.10"],
            ["11.10.10.11", "-"],
        ]

    def test_fallback(self, sample_path, capsys):
        cli.main(["resolve", "-d", sample_path, "--fallback", "ext-%{address}", "11.10.10.11"])

        out = capsys.readouterr().out
        assert "ext-11.10.10.11" in out

    def test_requires_dictionary(self):
        with pytest.raises(SystemExit):
            cli.main(["resolve", "1.2.3.4"])

    def test_fallback_help_names_address_field(self, capsys):
        with pytest.raises(SystemExit):
            cli.main(["resolve", "--help"])
        assert "%{address}" in capsys.readouterr().out


class TestRunEvents:
    @pytest.fixture
    def ip_filter(self, sample_path):
        return IP2NameFilter(
            FilterConfig(
                address_field="ip",
                dictionary_path=sample_path,
                name_field="host",
                fallback="%{ip}",
            )
        )

    def test_filters_json_lines(self, ip_filter):
        source = io.StringIO(
            '{"ip": "11.11.11.11"}\n'
            "\n"
            '{"ip": "10.10.10.10", "bytes": 10}\n'
            '{"other": 1}\n'
        )
        sink = io.StringIO()

        assert cli.run_events(ip_filter, source, sink) == 3

        events = [json.loads(line) for line in sink.getvalue().splitlines()]
        assert events == [
            {"ip": "11.11.11.11", "host": "example.io"},
            {"ip": "10.10.10.10", "bytes": 10, "host": "example.local.10"},
            {"other": 1},
        ]

    def test_skips_bad_lines(self, ip_filter, caplog):
        source = io.StringIO('not json\n[1, 2]\n{"ip": "11.10.10.11"}\n')
        sink = io.StringIO()

        assert cli.run_events(ip_filter, source, sink) == 1

        assert json.loads(sink.getvalue()) == {"ip": "11.10.10.11", "host": "11.10.10.11"}
        assert "line 1" in caplog.text
        assert "line 2" in caplog.text

    def test_events_command_reads_file(self, sample_path, tmp_path, capsys):
        events_file = tmp_path / "events.jsonl"
        events_file.write_text('{"src": "10.10.10.7"}\n', encoding="utf-8")

        cli.main(
            [
                "events",
                "-d",
                sample_path,
                "--address-field",
                "src",
                "--name-field",
                "src_name",
                str(events_file),
            ]
        )

        assert json.loads(capsys.readouterr().out) == {
            "src": "10.10.10.7",
            "src_name": "example.local.7",
        }

    @pytest.mark.parametrize("interval", ["0", "-5", "soon"])
    def test_rejects_bad_refresh_interval(self, sample_path, tmp_path, capsys, interval):
        events_file = tmp_path / "events.jsonl"
        events_file.write_text("", encoding="utf-8")

        with pytest.raises(SystemExit) as excinfo:
            cli.main(
                [
                    "events",
                    "-d",
                    sample_path,
                    "--address-field",
                    "ip",
                    "--refresh-interval",
                    interval,
                    str(events_file),
                ]
            )

        assert excinfo.value.code == 2
        assert "--refresh-interval" in capsys.readouterr().err


class TestHostCommand:
    def test_prints_connections(self, sample_path, monkeypatch, capsys):
        from ip2name.host_insight import ConnectionInfo

        conns = [
            ConnectionInfo(42, "curl", "192.168.1.2", 50000, "11.11.11.11", 443, "ESTABLISHED", "example.io"),
        ]
        monkeypatch.setattr(cli.HostInsight, "get_connections", lambda self: conns)

        cli.main(["host", "-d", sample_path])

        out = capsys.readouterr().out
        assert "example.io" in out
        assert "11.11.11.11:443" in out
        assert "1 connections, 1 remote IPs, 1 named" in out

    def test_no_connections(self, capsys):
        cli.print_connections([])
        assert "No active connections" in capsys.readouterr().out


def test_no_command_prints_help(capsys):
    cli.main([])
    assert "usage: ip2name" in capsys.readouterr().out
