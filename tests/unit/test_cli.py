# =============================================================================
# gdfmt - GDScript Formatter
# SPDX-License-Identifier: BSD-3-Clause
# Copyright (c) 2025 Michael Gardner, A Bit of Help, Inc.
# See LICENSE file in the project root.
# =============================================================================

"""Unit tests for the command-line interface.

The Topiary engine is replaced with a fake engine; everything else (config
resolution, file discovery, the worker pool, exit codes) runs for real.
"""

import json

import pytest
from returns.result import Failure, Success
from typer.testing import CliRunner

from gdfmt import __version__, cli
from gdfmt.errors import TransportError

from tests.conftest import FailingEngine, IdentityEngine

UNFORMATTED = "func foo():\n\tpass;\n"
FORMATTED = "func foo():\n\tpass\n"

runner = CliRunner()


@pytest.fixture(autouse=True)
def fake_engine(monkeypatch, tmp_path):
    """Use the identity engine and an empty working directory."""
    monkeypatch.setattr(cli, "create_engine", lambda settings: IdentityEngine())
    monkeypatch.chdir(tmp_path)


class TestStdin:
    """Test formatting standard input."""

    def test_formats_to_stdout(self):
        result = runner.invoke(cli.app, ["format"], input=UNFORMATTED)

        assert result.exit_code == 0
        assert result.stdout == FORMATTED

    def test_check_unformatted(self):
        result = runner.invoke(cli.app, ["format", "--check"], input=UNFORMATTED)

        assert result.exit_code == 1
        assert "not formatted" in result.output

    def test_check_formatted(self):
        result = runner.invoke(cli.app, ["format", "--check"], input=FORMATTED)

        assert result.exit_code == 0
        assert "already formatted" in result.output

    def test_diff(self):
        result = runner.invoke(cli.app, ["format", "--diff"], input=UNFORMATTED)

        assert result.exit_code == 0
        assert "-\tpass;" in result.output
        assert "+\tpass" in result.output

    def test_engine_failure_exits_1(self, monkeypatch):
        monkeypatch.setattr(cli, "create_engine", lambda settings: FailingEngine())

        result = runner.invoke(cli.app, ["format"], input="func (\n")

        assert result.exit_code == 1
        assert "Topiary formatting failed" in result.output

    def test_client_mode(self, monkeypatch):
        calls = []

        def fake_request(content, host, port):
            calls.append((content, host, port))
            return Success(FORMATTED)

        monkeypatch.setattr(cli, "request_format", fake_request)

        result = runner.invoke(cli.app, ["format", "--client", "--port", "4000"], input=UNFORMATTED)

        assert result.exit_code == 0
        assert result.stdout == FORMATTED
        assert calls == [(UNFORMATTED, "localhost", 4000)]

    def test_client_without_daemon(self, monkeypatch):
        monkeypatch.setattr(
            cli, "request_format",
            lambda content, host, port: Failure(TransportError(message="Could not connect", operation="connect"))
        )

        result = runner.invoke(cli.app, ["format", "--client"], input=UNFORMATTED)

        assert result.exit_code == 1
        assert "Could not connect" in result.output


class TestFiles:
    """Test formatting files."""

    def test_formats_in_place(self, gd_file):
        path = gd_file("a.gd", UNFORMATTED)

        result = runner.invoke(cli.app, ["format", str(path)])

        assert result.exit_code == 0
        assert path.read_text() == FORMATTED
        assert "Formatted 1 file" in result.output

    def test_check_exits_1_when_a_file_would_change(self, gd_file):
        changed = gd_file("a.gd", UNFORMATTED)
        clean = gd_file("b.gd", FORMATTED)

        result = runner.invoke(cli.app, ["format", "--check", str(changed), str(clean)])

        assert result.exit_code == 1
        assert f"Would reformat {changed}" in result.output
        assert "Some files are not formatted" in result.output
        assert changed.read_text() == UNFORMATTED

    def test_check_all_formatted(self, gd_file):
        path = gd_file("a.gd", FORMATTED)

        result = runner.invoke(cli.app, ["format", "--check", str(path)])

        assert result.exit_code == 0
        assert "All 1 file(s) are formatted" in result.output

    def test_stdout_with_several_files(self, gd_file):
        first = gd_file("a.gd", UNFORMATTED)
        second = gd_file("b.gd", "var a = 1;\n")

        result = runner.invoke(cli.app, ["format", "--stdout", str(first), str(second)])

        assert result.exit_code == 0
        assert f"#--file:{first}\n{FORMATTED}#--file:{second}\nvar a = 1\n" in result.stdout
        assert first.read_text() == UNFORMATTED

    def test_directory_is_searched(self, gd_file, tmp_path):
        nested = gd_file("scripts/player/player.gd", UNFORMATTED)
        gd_file("scripts/readme.txt", "not code;\n")

        result = runner.invoke(cli.app, ["format", "--workers", "2", str(tmp_path / "scripts")])

        assert result.exit_code == 0
        assert nested.read_text() == FORMATTED

    def test_no_gdscript_files(self, tmp_path):
        (tmp_path / "notes.txt").write_text("x")

        result = runner.invoke(cli.app, ["format", str(tmp_path / "notes.txt")])

        assert result.exit_code == 1
        assert "No GDScript files found" in result.output

    def test_missing_file(self, tmp_path):
        result = runner.invoke(cli.app, ["format", str(tmp_path / "missing.gd")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_unreadable_file_does_not_stop_the_others(self, gd_file, tmp_path):
        missing = tmp_path / "missing.gd"
        path = gd_file("a.gd", UNFORMATTED)

        result = runner.invoke(cli.app, ["format", str(missing), str(path)])

        assert result.exit_code == 1
        assert "File not found" in result.output
        assert path.read_text() == FORMATTED

    def test_failure_exits_1(self, gd_file, monkeypatch):
        monkeypatch.setattr(cli, "create_engine", lambda settings: FailingEngine())
        path = gd_file("a.gd", UNFORMATTED)

        result = runner.invoke(cli.app, ["format", str(path)])

        assert result.exit_code == 1
        assert path.read_text() == UNFORMATTED

    def test_log_path(self, gd_file, tmp_path):
        path = gd_file("a.gd", UNFORMATTED)
        log_path = tmp_path / "logs" / "run.jsonl"

        result = runner.invoke(cli.app, ["format", "--log-path", str(log_path), str(path)])

        assert result.exit_code == 0
        events = [json.loads(line)["ev"] for line in log_path.read_text().splitlines()]
        assert "file_processed" in events
        assert events[-1] == "run_summary"


class TestConfiguration:
    """Test option validation and the configuration file."""

    def test_safe_conflicts_with_reorder(self):
        result = runner.invoke(cli.app, ["format", "--safe", "--reorder-code"], input=UNFORMATTED)

        assert result.exit_code == 2
        assert "Configuration error" in result.output

    def test_missing_config_file(self, tmp_path):
        result = runner.invoke(cli.app, ["format", "--config", str(tmp_path / "nope.json")], input="")

        assert result.exit_code == 2

    def test_client_with_files(self, gd_file):
        path = gd_file("a.gd", UNFORMATTED)

        result = runner.invoke(cli.app, ["format", "--client", str(path)])

        assert result.exit_code == 2

    def test_config_file_indent(self, tmp_path, monkeypatch):
        engine = IdentityEngine()
        monkeypatch.setattr(cli, "create_engine", lambda settings: engine)
        (tmp_path / "gdfmt.json").write_text(json.dumps({
            "formatter": {"use_spaces": True, "indent_size": 2}
        }))

        result = runner.invoke(cli.app, ["format"], input=FORMATTED)

        assert result.exit_code == 0
        assert engine.indents == ["  "]

    def test_command_line_overrides_file(self, tmp_path, monkeypatch):
        engine = IdentityEngine()
        monkeypatch.setattr(cli, "create_engine", lambda settings: engine)
        (tmp_path / "gdfmt.json").write_text(json.dumps({
            "formatter": {"use_spaces": True, "indent_size": 2}
        }))

        runner.invoke(cli.app, ["format", "--indent-size", "3"], input=FORMATTED)

        assert engine.indents == ["   "]

    def test_engine_settings_from_options(self, monkeypatch):
        seen = []

        def capture(settings):
            seen.append(settings)
            return IdentityEngine()

        monkeypatch.setattr(cli, "create_engine", capture)

        runner.invoke(cli.app, ["format", "--topiary", "/opt/topiary", "--query", "gd.scm"], input=FORMATTED)

        assert seen[0].executable == "/opt/topiary"
        assert str(seen[0].query_path) == "gd.scm"


def test_version():
    result = runner.invoke(cli.app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output
