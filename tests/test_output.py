"""Tests for the diagnostic output manager.

Covers:
- NO_COLOR / TERM=dumb color disabling
- Quiet mode suppression rules
- Verbose mode debug output
- Plain tab-separated tables
- Global instance management
"""

from __future__ import annotations

import pytest

from peento import output as output_module
from peento.output import (
    OutputManager,
    _should_disable_color,
    get_output,
    reset_output,
    set_output,
)


class TestColorDisabling:
    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NO_COLOR", "")
        assert _should_disable_color() is True

    def test_term_dumb(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "dumb")
        assert _should_disable_color() is True

    def test_enabled(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.setenv("TERM", "xterm-256color")
        assert _should_disable_color() is False


class TestMessages:
    def test_warning_and_error_prefixes(self, capsys: pytest.CaptureFixture[str]) -> None:
        out = OutputManager(no_color=True)
        out.warning("no plugin was loaded.")
        out.error("boom")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Warning: no plugin was loaded." in captured.err
        assert "Error: boom" in captured.err

    def test_quiet_suppresses_info_only(self, capsys: pytest.CaptureFixture[str]) -> None:
        out = OutputManager(no_color=True, quiet=True)
        out.info("listening")
        out.success("done")
        out.warning("careful")
        err = capsys.readouterr().err
        assert "listening" not in err
        assert "done" not in err
        assert "careful" in err

    def test_debug_requires_verbose(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(no_color=True).debug("hidden")
        OutputManager(no_color=True, verbose=True).debug("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "[debug] shown" in err

    def test_rich_warning(self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager().warning("rich path")
        assert "Warning: rich path" in capsys.readouterr().err


class TestTable:
    def test_plain_table(self, capsys: pytest.CaptureFixture[str]) -> None:
        OutputManager(no_color=True).print_table(["Name", "State"], [["blog", "initialized"]])
        assert capsys.readouterr().err.splitlines() == ["Name\tState", "blog\tinitialized"]

    def test_rich_table(self, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NO_COLOR", raising=False)
        monkeypatch.delenv("TERM", raising=False)
        OutputManager().print_table(["Name"], [["blog"]], title="Plugins")
        err = capsys.readouterr().err
        assert "Plugins" in err
        assert "blog" in err


class TestGlobalInstance:
    def test_get_creates_default(self) -> None:
        reset_output()
        first = get_output()
        assert isinstance(first, OutputManager)
        assert get_output() is first

    def test_set_and_module_helpers(self, capsys: pytest.CaptureFixture[str]) -> None:
        set_output(OutputManager(no_color=True))
        output_module.warning("via module")
        output_module.info("info line")
        err = capsys.readouterr().err
        assert "Warning: via module" in err
        assert "info line" in err
