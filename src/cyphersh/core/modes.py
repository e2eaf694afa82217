"""Execution-mode selection.

Exactly one mode runs per invocation.  The decision is a pure function
of terminal detection, the file-IO queue and ``--non-interactive``:

1. stdin is a TTY, no ``-i``/``-o`` and no ``--non-interactive``
   → :attr:`Mode.INTERACTIVE`
2. otherwise, a non-empty file-IO queue → :attr:`Mode.FILE_IO_PIPELINE`
3. otherwise → :attr:`Mode.STDIN_BATCH`
"""

from __future__ import annotations

from enum import Enum

from cyphersh.core.models import RenderFlags


class Mode(Enum):
    INTERACTIVE = "interactive"
    FILE_IO_PIPELINE = "file-io"
    STDIN_BATCH = "stdin"


def select_mode(
    *,
    stdin_is_tty: bool,
    has_file_io: bool,
    non_interactive: bool,
) -> Mode:
    """Choose the execution mode for this run."""
    if stdin_is_tty and not has_file_io and not non_interactive:
        return Mode.INTERACTIVE
    if has_file_io:
        return Mode.FILE_IO_PIPELINE
    return Mode.STDIN_BATCH


def render_flags_for(mode: Mode) -> RenderFlags:
    """Interactive output visualises nulls; machine-readable output does not."""
    if mode is Mode.INTERACTIVE:
        return RenderFlags.SHOW_NULLS
    return RenderFlags.NONE


def initial_source_depth(mode: Mode) -> int:
    """Nesting depth a mode starts at before any ``:source`` is entered.

    Queue sources count as the first level themselves, whereas stdin and
    the interactive prompt already occupy it.
    """
    if mode is Mode.FILE_IO_PIPELINE:
        return 0
    return 1
