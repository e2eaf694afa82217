"""Source pipeline — replays ``-i``/``-o`` requests and evaluates input.

Error policy
------------
* A source or output file that cannot be opened (or a source that is
  not valid UTF-8) raises
  :class:`~cyphersh.exceptions.FileOpenError`, which aborts the whole
  pipeline.  Output already written to earlier redirects is kept.
* A failing statement or directive (:class:`EvalError`) and a tripped
  nesting guard (:class:`DepthExceededError`) are reported as
  ``<file>:<line>: <message>`` and evaluation continues with the next
  command.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path
from typing import TextIO

from loguru import logger

from cyphersh.core.models import FileIoKind, FileIoQueue
from cyphersh.core.statements import Command, Directive, Statement, StatementReader
from cyphersh.exceptions import DepthExceededError, EvalError, FileOpenError
from cyphersh.shell.state import ShellState

STDOUT_TARGET: str = "-"

DIRECTIVE_HELP: tuple[tuple[str, str], ...] = (
    (":source FILE", "Read and evaluate statements from FILE."),
    (":output FILE", "Write results to FILE ('-' for standard output)."),
    (":help", "Show this list of commands."),
    (":exit, :quit", "Stop reading input and exit."),
)


class SourcePipeline:
    """Evaluates commands against the shell state's connection.

    Parameters
    ----------
    state:
        The shell context; the pipeline reads and mutates its current
        input, output and nesting depth.
    """

    def __init__(self, state: ShellState) -> None:
        self._state: ShellState = state
        self._directives: dict[str, Callable[[Directive], None]] = {
            "source": self._source_directive,
            "output": self._output_directive,
            "help": self._help_directive,
            "exit": self._exit_directive,
            "quit": self._exit_directive,
        }

    # ------------------------------------------------------------------
    # File IO queue
    # ------------------------------------------------------------------

    def run(self, queue: FileIoQueue) -> None:
        """Replay *queue* front to back.

        Raises
        ------
        FileOpenError
            On the first source or redirect that cannot be opened; the
            remaining requests are skipped.
        """
        for request in queue:
            if self._state.exit_requested:
                break
            if request.kind is FileIoKind.REDIRECT:
                self.redirect_output(request.path)
            else:
                self.source(request.path)

    def redirect_output(self, path: Path) -> None:
        """Send all further results to *path* (truncated)."""
        try:
            handle = open(path, "w", encoding="utf-8", newline="")  # noqa: SIM115
        except OSError as exc:
            raise FileOpenError(
                f"Unable to open output file '{path}': {exc.strerror}",
            ) from exc
        logger.debug("Redirecting output to {}", path)
        self._state.redirect_output(handle)

    def source(self, path: Path) -> None:
        """Evaluate the commands in *path* one nesting level deeper.

        Raises
        ------
        DepthExceededError
            When entering *path* would exceed ``source_max_depth``; the
            file is not opened.
        FileOpenError
            When *path* cannot be opened for reading or is not valid UTF-8.
        """
        state = self._state
        if state.source_depth >= state.source_max_depth:
            raise DepthExceededError(
                f"Too many nested calls to `:source` (maximum depth {state.source_max_depth})",
            )
        try:
            stream = open(path, encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            raise FileOpenError(
                f"Unable to open source file '{path}': {exc.strerror}",
            ) from exc
        with stream, state.sourcing(stream, str(path)):
            try:
                self.batch(stream)
            except UnicodeDecodeError as exc:
                raise FileOpenError(f"Unable to read source file '{path}': {exc}") from exc

    # ------------------------------------------------------------------
    # Evaluation
    # ------------------------------------------------------------------

    def batch(self, lines: Iterable[str]) -> None:
        """Evaluate every command read from *lines*, in order."""
        reader = StatementReader()
        for line in lines:
            for command in reader.feed(line):
                self.evaluate(command)
                if self._state.exit_requested:
                    return
        for command in reader.finish():
            self.evaluate(command)

    def evaluate(self, command: Command) -> None:
        """Evaluate a single command, reporting recoverable failures."""
        try:
            if isinstance(command, Directive):
                self._run_directive(command)
            else:
                self._run_statement(command)
        except (EvalError, DepthExceededError) as exc:
            self._state.report_error(f"{self._state.infile}:{command.line}: {exc}")

    def _run_statement(self, statement: Statement) -> None:
        state = self._state
        if state.connection is None:
            raise EvalError("Not connected")
        result = state.connection.evaluate(statement.text)
        if state.render is not None:
            state.render(result, state.out, state.render_flags)

    def _run_directive(self, directive: Directive) -> None:
        handler = self._directives.get(directive.name)
        if handler is None:
            raise EvalError(f"Unknown command ':{directive.name}'")
        handler(directive)

    # ------------------------------------------------------------------
    # Directives
    # ------------------------------------------------------------------

    @staticmethod
    def _single_argument(directive: Directive) -> str:
        args = directive.args
        if len(args) != 1:
            raise EvalError(f":{directive.name} requires a single file argument")
        return args[0]

    def _source_directive(self, directive: Directive) -> None:
        self.source(Path(self._single_argument(directive)))

    def _output_directive(self, directive: Directive) -> None:
        target = self._single_argument(directive)
        if target == STDOUT_TARGET:
            self._state.reset_output()
        else:
            self.redirect_output(Path(target))

    def _help_directive(self, directive: Directive) -> None:
        out: TextIO = self._state.out
        width = max(len(usage) for usage, _ in DIRECTIVE_HELP)
        for usage, description in DIRECTIVE_HELP:
            out.write(f"{usage:<{width}}  {description}\n")
        out.flush()

    def _exit_directive(self, directive: Directive) -> None:
        self._state.exit_requested = True
