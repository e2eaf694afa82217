"""Line-fed splitter turning shell input into statements and directives.

Every function in this module is a **pure** transformation — the reader
keeps only the state of a pending, not yet terminated statement.

Rules
-----
* ``;`` terminates a statement unless it appears inside ``'…'``,
  ``"…"``, ``\\`…\\``` or a ``//`` / ``/* */`` comment.
* Backslash escapes the next character inside string quotes.
* A line whose first non-blank character is ``:`` is a directive when
  no statement is pending.  Directive arguments are ``shlex``-split.
* Lines holding only a ``//`` comment between commands are skipped, and
  pending text made only of comments is dropped.
* Statement text is returned verbatim, comments included, without the
  terminating ``;``.
"""

from __future__ import annotations

import shlex
from dataclasses import dataclass

from cyphersh.exceptions import EvalError


@dataclass(frozen=True, slots=True)
class Statement:
    text: str
    line: int
    """1-based line on which the statement starts."""


@dataclass(frozen=True, slots=True)
class Directive:
    """A ``:name args…`` shell command."""

    name: str
    argument_text: str
    line: int

    @property
    def args(self) -> tuple[str, ...]:
        try:
            return tuple(shlex.split(self.argument_text))
        except ValueError as exc:
            raise EvalError(f"Invalid arguments to :{self.name}: {exc}") from exc


Command = Statement | Directive


def parse_directive(text: str, line: int) -> Directive:
    """Parse ``:name args`` (leading colon included) into a :class:`Directive`."""
    body = text.strip()[1:].strip()
    if body.endswith(";"):
        body = body[:-1].rstrip()
    name, _, rest = body.partition(" ")
    return Directive(name=name.strip().lower(), argument_text=rest.strip(), line=line)


class StatementReader:
    """Incrementally split input lines into :data:`Command` objects.

    Usage::

        reader = StatementReader()
        for line in stream:
            for command in reader.feed(line):
                ...
        for command in reader.finish():
            ...
    """

    def __init__(self) -> None:
        self._line = 0
        self.reset()

    def reset(self) -> None:
        """Discard any pending, unterminated statement."""
        self._pending = False
        self._buf: list[str] = []
        self._start = 0
        self._quote: str | None = None
        self._escape = False
        self._block_comment = False
        self._has_code = False

    @property
    def idle(self) -> bool:
        """``True`` when no statement is waiting for its terminator."""
        return not self._pending

    @property
    def line(self) -> int:
        return self._line

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def feed(self, line: str) -> list[Command]:
        """Consume one input line and return the commands it completed."""
        self._line += 1
        commands: list[Command] = []
        if self._pending and self._comment_only() and line.lstrip().startswith(":"):
            self.reset()

        pos = 0
        length = len(line)
        while pos < length:
            if not self._pending:
                while pos < length and line[pos].isspace():
                    pos += 1
                if pos >= length or line.startswith("//", pos):
                    break
                if line[pos] == ":":
                    commands.append(parse_directive(line[pos:], self._line))
                    break
                if line[pos] == ";":
                    pos += 1
                    continue
                self._pending = True
                self._start = self._line
            pos = self._scan(line, pos, commands)
        return commands

    def finish(self) -> list[Command]:
        """Flush an unterminated final statement at end of input."""
        commands: list[Command] = []
        if self._pending:
            self._emit(commands)
        return commands

    # ------------------------------------------------------------------
    # Scanner
    # ------------------------------------------------------------------

    def _comment_only(self) -> bool:
        return not self._has_code and self._quote is None and not self._block_comment

    def _scan(self, line: str, pos: int, commands: list[Command]) -> int:
        start = pos
        length = len(line)
        line_comment = False
        while pos < length:
            ch = line[pos]
            if line_comment:
                pos += 1
                continue
            if self._block_comment:
                if line.startswith("*/", pos):
                    self._block_comment = False
                    pos += 2
                else:
                    pos += 1
                continue
            if self._quote is not None:
                if self._escape:
                    self._escape = False
                elif ch == "\\" and self._quote != "`":
                    self._escape = True
                elif ch == self._quote:
                    self._quote = None
                pos += 1
                continue
            if line.startswith("//", pos):
                line_comment = True
                pos += 2
                continue
            if line.startswith("/*", pos):
                self._block_comment = True
                pos += 2
                continue
            if ch == ";":
                self._buf.append(line[start:pos])
                self._emit(commands)
                return pos + 1
            if ch in "'\"`":
                self._quote = ch
            if not ch.isspace():
                self._has_code = True
            pos += 1
        self._buf.append(line[start:pos])
        return pos

    def _emit(self, commands: list[Command]) -> None:
        text = "".join(self._buf).strip()
        if self._has_code and text:
            commands.append(Statement(text=text, line=self._start))
        self.reset()

