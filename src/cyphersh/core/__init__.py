"""Core layer — pure domain models, mode selection and input splitting.

Rules
-----
* No ``print()`` calls.
* No filesystem or network I/O.
* No imports from ``cli``, ``shell`` or ``infra``.
* All functions must be fully typed and deterministic.
"""

from cyphersh.core.models import (
    AuthChallenge,
    ConnectionConfig,
    FileIoKind,
    FileIoQueue,
    FileIoRequest,
    Options,
    RenderFlags,
    ResultSet,
    TrustDecision,
    UnverifiedHost,
)
from cyphersh.core.modes import Mode, select_mode
from cyphersh.core.protocols import Connection, Connector, Renderer, TrustBridge
from cyphersh.core.statements import Directive, Statement, StatementReader

__all__: list[str] = [
    "AuthChallenge",
    "Connection",
    "ConnectionConfig",
    "Connector",
    "Directive",
    "FileIoKind",
    "FileIoQueue",
    "FileIoRequest",
    "Mode",
    "Options",
    "RenderFlags",
    "Renderer",
    "ResultSet",
    "Statement",
    "StatementReader",
    "TrustBridge",
    "TrustDecision",
    "UnverifiedHost",
    "select_mode",
]
