"""CLI console helpers built on Rich.

Rich is imported lazily so bootstrap paths (``--help``, ``--version``)
never pay for it.  Diagnostics are colourised according to the resolved
colour policy: an explicit ``--colorize``/``--no-colorize`` wins,
otherwise colour is used only when the error stream is a terminal.
"""

from __future__ import annotations

import sys
from typing import Any, TextIO

from cyphersh.exceptions import EnvironmentError
from cyphersh.infra.terminal import is_tty


def _load_rich_console_class() -> type[Any]:
	"""Return ``rich.console.Console`` class or raise ``EnvironmentError``."""
	try:
		from rich.console import Console
	except ModuleNotFoundError as exc:
		raise EnvironmentError(
			"rich is not installed. Install with: pip install rich",
		) from exc
	return Console


def resolve_colorize(policy: bool | None, stream: TextIO) -> bool:
	"""Apply the tri-state colour policy to *stream*."""
	if policy is not None:
		return policy
	return is_tty(stream)


def get_rich_console(stream: TextIO | None = None, *, colorize: bool | None = None) -> Any:
	"""Create a Rich console writing to *stream* (stderr by default)."""
	console_class = _load_rich_console_class()
	target = stream if stream is not None else sys.stderr
	enabled = resolve_colorize(colorize, target)
	return console_class(
		file=target,
		force_terminal=enabled,
		no_color=not enabled,
		highlight=False,
	)


class ErrorReporter:
	"""Callable diagnostic sink installed on the shell state."""

	def __init__(self, stream: TextIO, *, colorize: bool) -> None:
		self._console: Any = get_rich_console(stream, colorize=colorize)

	def __call__(self, message: str) -> None:
		from rich.text import Text

		self._console.print(Text(message, style="red"), soft_wrap=True)


class _ConsoleProxy:
	"""``print``-compatible proxy resolving a stderr console per call."""

	def print(self, *objects: object) -> None:
		get_rich_console().print(*objects)


console = _ConsoleProxy()
