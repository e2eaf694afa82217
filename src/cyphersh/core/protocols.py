"""Protocols (interfaces) consumed by the core and shell layers.

These define the contracts that infrastructure adapters and CLI
components must satisfy.  The shell layer depends ONLY on these
protocols — never on concrete implementations — so tests can swap in
deterministic fakes for the database and the terminal.
"""

from __future__ import annotations

from typing import Protocol, TextIO

from cyphersh.core.models import (
    AuthChallenge,
    ConnectionConfig,
    RenderFlags,
    ResultSet,
    TrustDecision,
    UnverifiedHost,
)


class Connection(Protocol):
    """An established database connection."""

    def evaluate(self, statement: str) -> ResultSet:
        """Run *statement* and return its fully materialised results.

        Raises
        ------
        EvalError
            When the statement fails to parse or execute.
        """
        ...  # pragma: no cover

    def close(self) -> None:
        """Release the connection.  Calling it twice is harmless."""
        ...  # pragma: no cover


class Connector(Protocol):
    """Contract for connection backends.

    Implementations must honour every field of *config*, including the
    unverified-host and auth-reattempt callbacks, and map all
    backend-specific exceptions to
    :class:`~cyphersh.exceptions.CypherShellError` subclasses.
    """

    def connect(self, endpoint: str, config: ConnectionConfig) -> Connection:
        """Connect to *endpoint* (``URL`` or ``host[:port]``).

        Raises
        ------
        ConnectError
            When the endpoint is unreachable, the host is not trusted or
            authentication ultimately fails.
        ConfigError
            When a TLS setting cannot be applied.
        """
        ...  # pragma: no cover


class TrustBridge(Protocol):
    """Resolves unknown-host and re-authentication events."""

    def resolve_unknown_host(self, host: UnverifiedHost) -> TrustDecision:
        ...  # pragma: no cover

    def reattempt_auth(self, challenge: AuthChallenge) -> bool:
        """Return ``True`` when fresh credentials were stored for a retry."""
        ...  # pragma: no cover

    def prompt_password(self) -> bool:
        """Ask for a password before the first attempt; ``False`` aborts."""
        ...  # pragma: no cover


class Renderer(Protocol):
    def __call__(self, result: ResultSet, out: TextIO, flags: RenderFlags) -> None:
        ...  # pragma: no cover
