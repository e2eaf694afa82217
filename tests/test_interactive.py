"""Tests for the interactive prompt loop (``cyphersh.cli.interactive``)."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Any
from unittest.mock import MagicMock

import pytest

from cyphersh.cli import exit_codes
from cyphersh.cli.interactive import CONTINUATION_PROMPT, PROMPT, _history, run_interactive
from cyphersh.cli.render import render_results_csv
from cyphersh.shell.state import ShellState


class FakeSession:
    """Replays scripted input; exceptions in the script are raised."""

    def __init__(self, *script: Any) -> None:
        self._script = list(script)
        self.prompts: list[str] = []

    def prompt(self, message: str) -> str:
        self.prompts.append(message)
        if not self._script:
            raise EOFError
        item = self._script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def state(fake_connection) -> ShellState:  # type: ignore[no-untyped-def]
    shell = ShellState(
        prog_name="cyphersh",
        stdin=io.StringIO(""),
        stdout=io.StringIO(),
        stderr=io.StringIO(),
    )
    shell.connection = fake_connection
    shell.render = render_results_csv
    shell.infile = "<interactive>"
    shell.source_depth = 1
    return shell


# ---------------------------------------------------------------------------
# Prompt loop
# ---------------------------------------------------------------------------

class TestRunInteractive:
    def test_evaluates_until_eof(self, state: ShellState, fake_connection) -> None:  # type: ignore[no-untyped-def]
        code = run_interactive(state, session=FakeSession("RETURN 1;", "RETURN 2;"))
        assert code == exit_codes.SUCCESS
        assert fake_connection.statements == ["RETURN 1", "RETURN 2"]
        assert "Type :help" in state.stdout.getvalue()  # type: ignore[attr-defined]

    def test_continuation_prompt(self, state: ShellState, fake_connection) -> None:  # type: ignore[no-untyped-def]
        session = FakeSession("MATCH (n)", "RETURN n;")
        run_interactive(state, session=session)
        assert session.prompts[:3] == [PROMPT, CONTINUATION_PROMPT, PROMPT]
        assert fake_connection.statements == ["MATCH (n)\nRETURN n"]

    def test_ctrl_c_discards_pending_statement(self, state: ShellState, fake_connection) -> None:  # type: ignore[no-untyped-def]
        session = FakeSession("MATCH (n)", KeyboardInterrupt(), "RETURN 1;")
        run_interactive(state, session=session)
        assert fake_connection.statements == ["RETURN 1"]
        assert session.prompts[2] == PROMPT

    def test_exit_directive_stops_loop(self, state: ShellState, fake_connection) -> None:  # type: ignore[no-untyped-def]
        session = FakeSession("RETURN 1;", ":exit", "RETURN 2;")
        run_interactive(state, session=session)
        assert fake_connection.statements == ["RETURN 1"]
        assert len(session.prompts) == 2

    def test_errors_do_not_end_session(self, state: ShellState, fake_connection) -> None:  # type: ignore[no-untyped-def]
        session = FakeSession("RETURN FAIL;", "RETURN 2;")
        assert run_interactive(state, session=session) == exit_codes.SUCCESS
        assert fake_connection.statements == ["RETURN FAIL", "RETURN 2"]
        assert "<interactive>:1: Invalid input 'RETURN FAIL'" in state.err.getvalue()  # type: ignore[attr-defined]

    def test_missing_source_is_reported_not_fatal(self, state: ShellState, fake_connection, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
        session = FakeSession(f':source "{tmp_path / "nope.cyp"}"', "RETURN 1;")
        assert run_interactive(state, session=session) == exit_codes.SUCCESS
        assert "Unable to open source file" in state.err.getvalue()  # type: ignore[attr-defined]
        assert fake_connection.statements == ["RETURN 1"]


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class TestHistory:
    def test_in_memory_when_disabled(self, state: ShellState) -> None:
        toolkit = MagicMock()
        state.histfile = None
        assert _history(toolkit, state) is toolkit.history.InMemoryHistory.return_value

    def test_file_history_creates_directory(self, state: ShellState, tmp_path: Path) -> None:
        toolkit = MagicMock()
        state.histfile = tmp_path / ".neo4j" / "client-history"
        assert _history(toolkit, state) is toolkit.history.FileHistory.return_value
        toolkit.history.FileHistory.assert_called_once_with(str(state.histfile))
        assert state.histfile.parent.is_dir()

    def test_unwritable_directory_falls_back(self, state: ShellState, tmp_path: Path) -> None:
        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")
        toolkit = MagicMock()
        state.histfile = blocker / "sub" / "history"
        assert _history(toolkit, state) is toolkit.history.InMemoryHistory.return_value
