"""Command-line parsing into :class:`Options` and a :class:`FileIoQueue`.

argparse invokes actions in command-line order, so the checks that
depend on what came before live in custom actions and fire as each flag
is seen:

* ``-h`` and ``--version`` stop parsing on the spot.
* ``-P`` fails unless a terminal is still available; ``--non-interactive``
  gives the terminal up, so it must come *after* ``-P``.
* ``-i``/``-o`` are appended to the queue in order, up to
  :data:`~cyphersh.core.models.MAX_FILE_IO_ARGS`.
* Numeric options must be integers ≥ 1.

Repeated flags are last-write-wins.  A trailing ``-o`` with no ``-i``
after it is rejected once, after all arguments have been consumed.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

from cyphersh.core.models import (
    DEFAULT_PIPELINE_MAX,
    DEFAULT_SOURCE_MAX_DEPTH,
    FileIoKind,
    FileIoQueue,
    FileIoRequest,
    Options,
)
from cyphersh.exceptions import UsageError
from cyphersh.utils.paths import default_history_file

PROG_NAME: str = "cyphersh"

USAGE: str = "%(prog)s [OPTIONS] [URL | host[:port]]"

EPILOG: str = """\
If URL is supplied then a connection is first made to the specified Neo4j
graph database.

If the shell is run connected to a TTY, then an interactive command prompt
is shown. Use `:exit` to quit. If the shell is not connected to a TTY, then
directives are read from stdin.
"""


class HelpRequested(Exception):
    """``-h``/``--help`` was seen; parsing stopped."""


class VersionRequested(Exception):
    """``--version`` was seen; parsing stopped."""


@dataclass(slots=True)
class ParseContext:
    """State shared by the order-sensitive actions during one parse."""

    tty_available: bool
    queue: FileIoQueue


@dataclass(frozen=True, slots=True)
class ParsedArguments:
    options: Options
    queue: FileIoQueue


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

class _ShellArgumentParser(argparse.ArgumentParser):
    """Parser that raises :class:`UsageError` instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


class _HelpAction(argparse.Action):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        raise HelpRequested


class _VersionAction(argparse.Action):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        raise VersionRequested


class _PositiveIntAction(argparse.Action):
    """Store an integer ≥ 1, rejecting anything else immediately."""

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        label = self.dest.replace("_", "-")
        try:
            number = int(values)
        except ValueError:
            number = 0
        if number < 1:
            raise UsageError(f"Invalid {label} '{values}'")
        setattr(namespace, self.dest, number)


class _ContextAction(argparse.Action):
    def __init__(
        self,
        option_strings: Sequence[str],
        dest: str,
        *,
        context: ParseContext,
        **kwargs: Any,
    ) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self.context: ParseContext = context


class _FileIoAction(_ContextAction):
    """Append a source or redirect request, preserving argument order."""

    def __init__(self, option_strings: Sequence[str], dest: str, *, kind: FileIoKind, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, **kwargs)
        self.kind: FileIoKind = kind

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        self.context.queue.append(FileIoRequest(self.kind, Path(values)))


class _PasswordPromptAction(_ContextAction):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        if not self.context.tty_available:
            raise UsageError("Cannot prompt for a password without a tty")
        setattr(namespace, self.dest, True)


class _NonInteractiveAction(_ContextAction):
    def __init__(self, option_strings: Sequence[str], dest: str, **kwargs: Any) -> None:
        super().__init__(option_strings, dest, nargs=0, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None) -> None:  # type: ignore[no-untyped-def]
        self.context.tty_available = False
        setattr(namespace, self.dest, True)


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def build_parser(context: ParseContext, prog: str = PROG_NAME) -> argparse.ArgumentParser:
    """Construct the argument parser bound to *context*."""
    parser = _ShellArgumentParser(
        prog=prog,
        usage=USAGE,
        description="Interactive and batch shell for Neo4j graph databases.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        add_help=False,
    )
    parser.add_argument("-h", "--help", action=_HelpAction, help="Output this usage information.")
    parser.add_argument(
        "--history-file",
        dest="history_file",
        metavar="FILE",
        help="Use the specified file for saving history.",
    )
    parser.add_argument(
        "--no-history",
        dest="history_file",
        action="store_const",
        const="",
        help="Do not save history.",
    )
    parser.add_argument(
        "--colorize",
        "--colourise",
        dest="colorize",
        action="store_const",
        const=True,
        help="Colorize output using ANSI escape sequences.",
    )
    parser.add_argument(
        "--no-colorize",
        "--no-colourise",
        dest="colorize",
        action="store_const",
        const=False,
        help="Disable colorization even when outputting to a TTY.",
    )
    parser.add_argument(
        "--ca-file",
        metavar="FILE",
        help="Specify a file containing trusted certificates.",
    )
    parser.add_argument(
        "--ca-directory",
        metavar="DIR",
        help="Specify a directory containing trusted certificates.",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Do not attempt to establish a secure connection.",
    )
    parser.add_argument(
        "--non-interactive",
        action=_NonInteractiveAction,
        context=context,
        default=False,
        help="Use non-interactive mode and do not prompt for credentials when connecting.",
    )
    parser.add_argument("-u", "--username", metavar="NAME", help="Connect using the specified username.")
    parser.add_argument("-p", "--password", metavar="PASS", help="Connect using the specified password.")
    parser.add_argument(
        "-P",
        dest="password_prompt",
        action=_PasswordPromptAction,
        context=context,
        default=False,
        help="Prompt for a password, even in non-interactive mode.",
    )
    parser.add_argument(
        "--known-hosts",
        dest="known_hosts_file",
        metavar="FILE",
        help="Set the path to the known-hosts file.",
    )
    parser.add_argument(
        "--no-known-hosts",
        dest="trust_known_hosts",
        action="store_false",
        help="Do not do host checking via known-hosts (use only TLS certificate verification).",
    )
    parser.add_argument(
        "--pipeline-max",
        action=_PositiveIntAction,
        metavar="N",
        default=DEFAULT_PIPELINE_MAX,
        help="Maximum number of statements to send to the server before awaiting results.",
    )
    parser.add_argument(
        "-i",
        "--source",
        action=_FileIoAction,
        kind=FileIoKind.SOURCE,
        context=context,
        metavar="FILE",
        help="Read input from the specified file. May be specified multiple times.",
    )
    parser.add_argument(
        "--source-max-depth",
        action=_PositiveIntAction,
        metavar="N",
        default=DEFAULT_SOURCE_MAX_DEPTH,
        help="Maximum nesting depth of :source directives.",
    )
    parser.add_argument(
        "-o",
        "--output",
        action=_FileIoAction,
        kind=FileIoKind.REDIRECT,
        context=context,
        metavar="FILE",
        help=(
            "Redirect output to the specified file. Must be specified in "
            "conjunction with --source/-i, and may be specified multiple times."
        ),
    )
    parser.add_argument("-v", "--verbose", dest="verbosity", action="count", default=0, help="Increase logging verbosity.")
    parser.add_argument(
        "--version",
        action=_VersionAction,
        help="Output the version of cyphersh and dependencies.",
    )
    parser.add_argument("target", nargs="*", metavar="URL | host[:port]", help=argparse.SUPPRESS)
    return parser


def format_usage(prog: str = PROG_NAME) -> str:
    return build_parser(ParseContext(False, FileIoQueue()), prog).format_usage()


def format_help(prog: str = PROG_NAME) -> str:
    return build_parser(ParseContext(False, FileIoQueue()), prog).format_help()


def _resolve_history_file(value: str | None) -> Path | None:
    if value is None:
        return default_history_file()
    if value == "":
        return None
    return Path(value)


def parse_options(
    argv: Sequence[str],
    *,
    tty_available: bool,
    prog: str = PROG_NAME,
) -> ParsedArguments:
    """Parse *argv* into options and the ordered file-IO queue.

    Raises
    ------
    HelpRequested
        ``-h``/``--help`` was given.
    VersionRequested
        ``--version`` was given.
    UsageError
        For any invalid, conflicting or excess argument.
    """
    context = ParseContext(tty_available=tty_available, queue=FileIoQueue())
    parser = build_parser(context, prog)
    namespace = parser.parse_args(list(argv))

    context.queue.validate()

    targets: list[str] = namespace.target
    if len(targets) > 1:
        raise UsageError(f"unexpected argument '{targets[1]}'")

    options = Options(
        verbosity=namespace.verbosity,
        history_file=_resolve_history_file(namespace.history_file),
        colorize=namespace.colorize,
        ca_file=namespace.ca_file,
        ca_directory=namespace.ca_directory,
        insecure=namespace.insecure,
        known_hosts_file=namespace.known_hosts_file,
        trust_known_hosts=namespace.trust_known_hosts,
        username=namespace.username,
        password=namespace.password,
        password_prompt=namespace.password_prompt,
        pipeline_max=namespace.pipeline_max,
        source_max_depth=namespace.source_max_depth,
        non_interactive=namespace.non_interactive,
        target=targets[0] if targets else None,
    )
    return ParsedArguments(options=options, queue=context.queue)
