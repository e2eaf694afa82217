"""Shell layer — the mutable run context and the source pipeline.

Rules
-----
* May import from ``core`` and ``utils``; never from ``cli`` or ``infra``.
* Talks to the database and the renderers only through the protocols
  in :mod:`cyphersh.core.protocols`.
* No ``print()``; diagnostics go through :meth:`ShellState.report_error`.
"""

from cyphersh.shell.pipeline import SourcePipeline
from cyphersh.shell.state import ShellState

__all__: list[str] = ["ShellState", "SourcePipeline"]
