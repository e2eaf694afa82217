"""Process-wide shell context.

A single :class:`ShellState` is created by the CLI orchestrator, passed
explicitly to every component that needs it and closed exactly once at
the end of the run, whatever the exit path.  No ambient globals: tests
build a fresh state per case.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import TextIO

from loguru import logger

from cyphersh.core.models import (
    DEFAULT_SOURCE_MAX_DEPTH,
    ConnectionConfig,
    RenderFlags,
)
from cyphersh.core.protocols import Connection, Renderer


class ShellState:
    """Mutable context shared by the parser, connector, modes and pipeline.

    Resource ownership
    ------------------
    The state owns the connection, the current output redirect, the
    controlling terminal handle and any cleanup callbacks registered via
    :meth:`callback`.  :meth:`close` releases them all and is idempotent.
    The process streams (stdin/stdout/stderr) are borrowed, never closed.
    """

    def __init__(
        self,
        *,
        prog_name: str,
        stdin: TextIO,
        stdout: TextIO,
        stderr: TextIO,
        tty: TextIO | None = None,
        config: ConnectionConfig | None = None,
    ) -> None:
        self.prog_name: str = prog_name
        self.input: TextIO = stdin
        self.infile: str = "<stdin>"
        self.stdout: TextIO = stdout
        self.out: TextIO = stdout
        self.err: TextIO = stderr
        self.tty: TextIO | None = tty
        self.config: ConnectionConfig = config if config is not None else ConnectionConfig()
        self.connection: Connection | None = None

        self.render: Renderer | None = None
        self.render_flags: RenderFlags = RenderFlags.NONE

        self.source_depth: int = 0
        self.source_max_depth: int = DEFAULT_SOURCE_MAX_DEPTH

        self.interactive: bool = False
        self.password_prompt: bool = False
        self.colorize: bool = False
        self.histfile: Path | None = None
        self.exit_requested: bool = False

        self.reporter: Callable[[str], None] = self._write_error
        """Sink for diagnostics; the CLI swaps in a colour-aware console."""

        self._redirect: TextIO | None = None
        self._cleanup: ExitStack = ExitStack()
        self._closed: bool = False

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _write_error(self, message: str) -> None:
        self.err.write(f"{message}\n")
        self.err.flush()

    def report_error(self, message: str) -> None:
        """Emit a diagnostic on the error stream."""
        self.reporter(message)

    # ------------------------------------------------------------------
    # Output redirection
    # ------------------------------------------------------------------

    def redirect_output(self, handle: TextIO) -> None:
        """Make *handle* the current output, closing any previous redirect."""
        self._close_redirect()
        self._redirect = handle
        self.out = handle

    def reset_output(self) -> None:
        """Send output back to the process stdout."""
        self._close_redirect()
        self.out = self.stdout

    def _close_redirect(self) -> None:
        if self._redirect is None:
            return
        handle, self._redirect = self._redirect, None
        handle.close()

    # ------------------------------------------------------------------
    # Input sources
    # ------------------------------------------------------------------

    @contextmanager
    def sourcing(self, stream: TextIO, name: str) -> Iterator[None]:
        """Evaluate from *stream* one nesting level deeper, then restore."""
        saved_input, saved_infile = self.input, self.infile
        self.input, self.infile = stream, name
        self.source_depth += 1
        logger.debug("Entering {} (depth {})", name, self.source_depth)
        try:
            yield
        finally:
            self.source_depth -= 1
            self.input, self.infile = saved_input, saved_infile
            logger.debug("Leaving {} (depth {})", name, self.source_depth)

    # ------------------------------------------------------------------
    # Terminal
    # ------------------------------------------------------------------

    def release_tty(self) -> None:
        """Close the controlling terminal; prompts become unavailable."""
        if self.tty is None:
            return
        tty, self.tty = self.tty, None
        tty.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def callback(self, func: Callable[[], object]) -> None:
        """Register *func* to run when the state is closed."""
        self._cleanup.callback(func)

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        """Release every owned resource.  Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        try:
            self._close_redirect()
            self.out = self.stdout
            if self.connection is not None:
                connection, self.connection = self.connection, None
                connection.close()
            self.release_tty()
        finally:
            self._cleanup.close()

    def __enter__(self) -> ShellState:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
