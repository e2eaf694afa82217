"""Infrastructure: controlling-terminal access and TTY detection.

Prompts for passwords and host trust read from the controlling terminal
rather than stdin, so they keep working while stdin is consumed as a
batch source.

Rules
-----
* No ``print()`` — callers handle user-facing output.
* A missing terminal is a normal condition and yields ``None``.
"""

from __future__ import annotations

import errno
from typing import TextIO

from cyphersh.exceptions import ConfigError

TTY_PATH: str = "/dev/tty"

# errno values meaning "there is no controlling terminal", as opposed to
# a terminal that exists but cannot be opened.
_NO_TERMINAL_ERRNOS: frozenset[int] = frozenset(
    {errno.ENOENT, errno.ENXIO, errno.ENODEV, errno.ENOTTY}
)


def open_tty(path: str = TTY_PATH) -> TextIO | None:
    """Open the controlling terminal for reading and writing.

    Returns ``None`` when the process has no controlling terminal.

    Raises
    ------
    ConfigError
        When a terminal exists but cannot be opened (e.g. permissions).
    """
    try:
        return open(path, "r+", encoding="utf-8")  # noqa: SIM115
    except OSError as exc:
        if exc.errno in _NO_TERMINAL_ERRNOS:
            return None
        raise ConfigError(f"can't open {path}: {exc.strerror}") from exc


def is_tty(stream: object) -> bool:
    """Return whether *stream* is attached to a terminal.

    Streams without a usable ``isatty`` (e.g. closed or detached) count
    as non-terminals.
    """
    isatty = getattr(stream, "isatty", None)
    if isatty is None:
        return False
    try:
        return bool(isatty())
    except ValueError:
        return False

