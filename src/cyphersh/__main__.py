"""Allow ``python -m cyphersh`` invocation.

This module simply delegates to the CLI error-boundary entry point so
that ``python -m cyphersh`` behaves identically to the ``cyphersh``
console script.
"""

from __future__ import annotations

from cyphersh.cli.app import cli

if __name__ == "__main__":
    cli()
