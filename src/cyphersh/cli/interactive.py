"""Interactive read-eval-print loop.

The prompt is driven by prompt_toolkit with persistent history.  Input
lines are accumulated until the statement reader reports a complete
command; each command then goes through the same
:class:`~cyphersh.shell.pipeline.SourcePipeline` evaluation as batch
input, rendered with the table renderer chosen for interactive mode.

Keys
----
* Ctrl-C discards the statement being typed.
* Ctrl-D (end of input) leaves the shell, as do ``:exit`` and ``:quit``.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from cyphersh.cli import exit_codes
from cyphersh.core.statements import StatementReader
from cyphersh.exceptions import CypherShellError, EnvironmentError
from cyphersh.shell.pipeline import SourcePipeline
from cyphersh.shell.state import ShellState

PROMPT: str = "neo4j> "
CONTINUATION_PROMPT: str = "  ...> "


def _import_prompt_toolkit() -> Any:
    """Import prompt_toolkit lazily for the interactive prompt."""
    try:
        import prompt_toolkit
        import prompt_toolkit.history
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "prompt_toolkit is not installed. Install with: pip install prompt_toolkit",
        ) from exc
    return prompt_toolkit


def _history(prompt_toolkit: Any, state: ShellState) -> Any:
    """File-backed history when enabled and writable, else in-memory."""
    history_module = prompt_toolkit.history
    if state.histfile is None:
        return history_module.InMemoryHistory()
    try:
        state.histfile.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning("History disabled, cannot create {}: {}", state.histfile.parent, exc.strerror)
        return history_module.InMemoryHistory()
    return history_module.FileHistory(str(state.histfile))


def run_interactive(state: ShellState, *, session: Any = None) -> int:
    """Run the prompt loop until ``:exit`` or end of input.

    Parameters
    ----------
    state:
        Fully configured shell state; its renderer and depth are set by
        the caller.
    session:
        Optional object with a prompt_toolkit-like ``prompt(message)``
        method.  Built from ``state.histfile`` when omitted.

    Returns
    -------
    int
        :data:`exit_codes.SUCCESS`; statement errors are reported, not fatal.
    """
    if session is None:
        prompt_toolkit = _import_prompt_toolkit()
        session = prompt_toolkit.PromptSession(history=_history(prompt_toolkit, state))

    pipeline = SourcePipeline(state)
    reader = StatementReader()
    state.out.write("Type :help for a list of available commands or :exit to leave the shell.\n")
    state.out.flush()

    while not state.exit_requested:
        try:
            line = session.prompt(PROMPT if reader.idle else CONTINUATION_PROMPT)
        except KeyboardInterrupt:
            reader.reset()
            continue
        except EOFError:
            break

        for command in reader.feed(line + "\n"):
            try:
                pipeline.evaluate(command)
            except CypherShellError as exc:
                state.report_error(str(exc))
            if state.exit_requested:
                break

    return exit_codes.SUCCESS
