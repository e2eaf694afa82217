"""CLI application entry point and mode orchestration for cyphersh.

:func:`main` drives one shell run through its lifecycle::

    Unconfigured → Configured → Connected? → Running(mode) → Terminated

* **Configured** — options parsed, logging, colour, TLS, trust bridge and
  pipeline-max applied to the shell state.
* **Connected** — only when a ``URL | host[:port]`` was given; a failure
  ends the run.
* **Running** — exactly one of interactive, file-IO pipeline or stdin
  batch executes; its outcome sets the exit status.
* **Terminated** — :meth:`ShellState.close` runs on every path,
  including ``--help``, ``--version`` and usage errors.

:func:`cli` is the process-level error boundary that turns anything
escaping :func:`main` into a clean message and exit code.
"""

from __future__ import annotations

import platform
import sys
from collections.abc import Callable, Sequence
from functools import partial
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import TextIO

from loguru import logger

from cyphersh.cli import exit_codes
from cyphersh.cli.console import ErrorReporter, console, resolve_colorize
from cyphersh.cli.log import configure_logging, shutdown_logging
from cyphersh.cli.options import (
    PROG_NAME,
    HelpRequested,
    ParsedArguments,
    VersionRequested,
    format_help,
    format_usage,
    parse_options,
)
from cyphersh.cli.render import renderer_for
from cyphersh.core.models import ConnectionConfig, FileIoQueue, Options
from cyphersh.core.modes import Mode, initial_source_depth, render_flags_for, select_mode
from cyphersh.core.protocols import Connector, TrustBridge
from cyphersh.exceptions import ConnectError, CypherShellError, FileOpenError, UsageError
from cyphersh.infra.terminal import is_tty, open_tty
from cyphersh.shell.pipeline import SourcePipeline
from cyphersh.shell.state import ShellState
from cyphersh.version import __version__

TrustBridgeFactory = Callable[[TextIO, ConnectionConfig], TrustBridge]
InteractiveRunner = Callable[[ShellState], int]


# ---------------------------------------------------------------------------
# Informational output
# ---------------------------------------------------------------------------

def _dependency_version(distribution: str) -> str:
    try:
        return version(distribution)
    except PackageNotFoundError:
        return "not installed"


def _print_version(out: TextIO, prog: str) -> None:
    out.write(f"{prog}: {__version__}\n")
    out.write(f"neo4j-driver: {_dependency_version('neo4j')}\n")
    out.write(f"python: {platform.python_version()}\n")
    out.flush()


# ---------------------------------------------------------------------------
# Lifecycle steps
# ---------------------------------------------------------------------------

def _default_trust_bridge(tty: TextIO, config: ConnectionConfig) -> TrustBridge:
    from cyphersh.cli.verification import TerminalTrustBridge

    return TerminalTrustBridge(tty, config)


def _apply_connection_options(config: ConnectionConfig, options: Options) -> None:
    config.username = options.username
    config.password = options.password
    config.tls_ca_file = options.ca_file
    config.tls_ca_dir = options.ca_directory
    config.insecure = options.insecure
    config.known_hosts_file = Path(options.known_hosts_file) if options.known_hosts_file else None
    config.trust_known_hosts = options.trust_known_hosts
    config.set_pipeline_max(options.pipeline_max)


def _configure(
    state: ShellState,
    parsed: ParsedArguments,
    bridge_factory: TrustBridgeFactory,
) -> tuple[Mode, TrustBridge | None]:
    """Apply parsed options to *state*; return the mode and trust bridge."""
    options = parsed.options

    state.colorize = resolve_colorize(options.colorize, state.err)
    state.reporter = ErrorReporter(state.err, colorize=state.colorize)
    handler_id = configure_logging(options.verbosity, state.err, colorize=state.colorize)
    state.callback(partial(shutdown_logging, handler_id))

    state.histfile = options.history_file
    state.source_max_depth = options.source_max_depth
    _apply_connection_options(state.config, options)

    if options.non_interactive:
        state.release_tty()

    mode = select_mode(
        stdin_is_tty=is_tty(state.input),
        has_file_io=bool(parsed.queue),
        non_interactive=options.non_interactive,
    )
    state.interactive = mode is Mode.INTERACTIVE
    state.password_prompt = options.password_prompt or state.interactive
    logger.debug("Selected {} mode", mode.value)

    bridge: TrustBridge | None = None
    if state.tty is not None:
        bridge = bridge_factory(state.tty, state.config)
        state.config.unverified_host_callback = bridge.resolve_unknown_host
        if state.password_prompt:
            state.config.auth_reattempt_callback = bridge.reattempt_auth
    return mode, bridge


def _connect(
    state: ShellState,
    target: str,
    options: Options,
    connector: Connector,
    bridge: TrustBridge | None,
) -> None:
    config = state.config
    if options.password_prompt and config.password is None and bridge is not None:
        if not bridge.prompt_password():
            raise ConnectError("No password entered")
    state.connection = connector.connect(target, config)


def _run_mode(
    state: ShellState,
    mode: Mode,
    queue: FileIoQueue,
    interactive_runner: InteractiveRunner,
) -> int:
    state.render = renderer_for(mode)
    state.render_flags = render_flags_for(mode)
    state.source_depth = initial_source_depth(mode)

    if mode is Mode.INTERACTIVE:
        state.infile = "<interactive>"
        return interactive_runner(state)

    pipeline = SourcePipeline(state)
    if mode is Mode.FILE_IO_PIPELINE:
        pipeline.run(queue)
    else:
        state.infile = "<stdin>"
        try:
            pipeline.batch(state.input)
        except UnicodeDecodeError as exc:
            raise FileOpenError(f"Unable to read standard input: {exc}") from exc
    return exit_codes.SUCCESS


def _report(state: ShellState, exc: CypherShellError) -> None:
    state.report_error(str(exc))
    if exc.hint:
        state.report_error(exc.hint)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------

def main(
    argv: Sequence[str] | None = None,
    *,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    stderr: TextIO | None = None,
    tty_opener: Callable[[], TextIO | None] = open_tty,
    connector: Connector | None = None,
    bridge_factory: TrustBridgeFactory = _default_trust_bridge,
    interactive_runner: InteractiveRunner | None = None,
    prog: str = PROG_NAME,
) -> int:
    """Run the cyphersh CLI.

    Parameters
    ----------
    argv:
        Explicit argument list.  When ``None`` (default), ``sys.argv[1:]``
        is used.
    stdin, stdout, stderr:
        Process streams; default to the ``sys`` streams.
    tty_opener:
        Returns the controlling terminal or ``None``.
    connector, bridge_factory, interactive_runner:
        Collaborators, replaceable for deterministic testing.

    Returns
    -------
    int
        OS process exit code.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    tty = tty_opener()

    with ShellState(
        prog_name=prog,
        stdin=stdin if stdin is not None else sys.stdin,
        stdout=stdout if stdout is not None else sys.stdout,
        stderr=stderr if stderr is not None else sys.stderr,
        tty=tty,
    ) as state:
        try:
            parsed = parse_options(args, tty_available=state.tty is not None, prog=prog)
        except HelpRequested:
            state.out.write(format_help(prog))
            state.out.flush()
            return exit_codes.SUCCESS
        except VersionRequested:
            _print_version(state.out, prog)
            return exit_codes.SUCCESS
        except UsageError as exc:
            state.report_error(f"{prog}: {exc}")
            state.err.write(format_usage(prog))
            state.err.flush()
            return exit_codes.GENERAL_ERROR

        try:
            mode, bridge = _configure(state, parsed, bridge_factory)
            if parsed.options.target is not None:
                from cyphersh.infra.neo4j_connector import Neo4jConnector

                _connect(
                    state,
                    parsed.options.target,
                    parsed.options,
                    connector or Neo4jConnector(),
                    bridge,
                )
            state.config.password = None

            if interactive_runner is None:
                from cyphersh.cli.interactive import run_interactive

                interactive_runner = run_interactive
            return _run_mode(state, mode, parsed.queue, interactive_runner)
        except CypherShellError as exc:
            _report(state, exc)
            return exit_codes.GENERAL_ERROR


# ---------------------------------------------------------------------------
# Script-level error boundary
# ---------------------------------------------------------------------------

def cli() -> None:
    """Top-level error boundary invoked by the console-script entry point.

    This function wraps :func:`main` and guarantees the process never
    exits with a raw stack trace during normal usage.
    """
    try:
        code = main()
        sys.exit(code)
    except CypherShellError as exc:
        console.print(f"[bold red]Error:[/bold red] {exc}")
        if exc.hint:
            console.print(f"[yellow]Hint:[/yellow] {exc.hint}")
        sys.exit(exit_codes.GENERAL_ERROR)
    except KeyboardInterrupt:
        console.print("\n[yellow]Aborted by user.[/yellow]")
        sys.exit(exit_codes.KEYBOARD_INTERRUPT)
    except Exception as exc:  # noqa: BLE001
        console.print(
            "[bold red]Unexpected error.[/bold red] "
            "Please report this issue.\n"
            f"  {type(exc).__name__}: {exc}"
        )
        sys.exit(exit_codes.UNEXPECTED_ERROR)
