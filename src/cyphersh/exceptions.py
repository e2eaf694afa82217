"""Custom exception hierarchy for cyphersh.

All exceptions that cross layer boundaries must inherit from
:class:`CypherShellError`.  Raw driver exceptions (e.g. from the neo4j
driver) must NEVER propagate beyond the infrastructure layer — they must
be caught and re-raised as a typed subclass defined here.

Hierarchy
---------
CypherShellError
├── UsageError
├── ConfigError
├── ConnectError
├── FileOpenError
├── EvalError
├── DepthExceededError
└── EnvironmentError

Propagation
-----------
* ``UsageError``, ``ConfigError`` and ``ConnectError`` end the run.
* ``FileOpenError`` ends the source pipeline (clean shutdown, failure exit).
* ``EvalError`` and ``DepthExceededError`` are reported per command and
  execution continues.
"""

from __future__ import annotations


class CypherShellError(Exception):
    """Base exception for all cyphersh errors.

    Every user-visible error condition must map to a subclass of this
    exception so that the CLI error boundary can render a clean message
    without leaking internal stack traces.
    """

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint: str | None = hint
        """Optional actionable guidance shown below the error message."""


# --- Invocation --------------------------------------------------------------

class UsageError(CypherShellError):
    """Raised for bad, missing or conflicting command-line arguments."""


class ConfigError(CypherShellError):
    """Raised when a TLS, credential or trust setting is rejected."""


# --- Connection --------------------------------------------------------------

class ConnectError(CypherShellError):
    """Raised when the endpoint is unreachable or the handshake/auth fails."""


# --- Source pipeline ---------------------------------------------------------

class FileOpenError(CypherShellError):
    """Raised when a source or output file cannot be opened."""


class EvalError(CypherShellError):
    """Raised when a single statement or directive fails."""


class DepthExceededError(CypherShellError):
    """Raised when nested ``:source`` directives exceed the configured depth."""


# --- Environment / tooling ---------------------------------------------------

class EnvironmentError(CypherShellError):
    """Raised when a required runtime dependency is not available."""
