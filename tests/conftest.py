"""Shared pytest fixtures and configuration for the cyphersh test suite.

Guidelines
----------
* No network access and no real terminal in any test.
* The database is faked at the ``Connector`` protocol boundary; the neo4j
  driver is faked at the infra boundary.
* Terminal prompts are faked through the trust-bridge factory.
"""

from __future__ import annotations

import io
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, TextIO

import pytest

from cyphersh.cli.app import main
from cyphersh.core.models import (
    AuthChallenge,
    ConnectionConfig,
    ResultSet,
    TrustDecision,
    UnverifiedHost,
)
from cyphersh.exceptions import ConnectError, EvalError


# ---------------------------------------------------------------------------
# Streams
# ---------------------------------------------------------------------------

class TtyStringIO(io.StringIO):
    """In-memory stream that claims to be a terminal."""

    def isatty(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Connection fakes
# ---------------------------------------------------------------------------

class FakeConnection:
    """Echoes every statement back as a one-column result.

    Statements containing ``FAIL`` raise :class:`EvalError`.
    """

    def __init__(self) -> None:
        self.statements: list[str] = []
        self.close_calls: int = 0

    def evaluate(self, statement: str) -> ResultSet:
        self.statements.append(statement)
        if "FAIL" in statement:
            raise EvalError(f"Invalid input '{statement}'")
        return ResultSet(fields=("value",), records=((statement,),))

    def close(self) -> None:
        self.close_calls += 1


@dataclass
class ConnectCall:
    endpoint: str
    username: str | None
    password: str | None
    max_pipelined_requests: int
    has_host_callback: bool
    has_auth_callback: bool


class FakeConnector:
    def __init__(self, connection: FakeConnection | None = None, *, error: Exception | None = None) -> None:
        self.connection: FakeConnection = connection or FakeConnection()
        self.error: Exception | None = error
        self.calls: list[ConnectCall] = []
        self.config: ConnectionConfig | None = None

    def connect(self, endpoint: str, config: ConnectionConfig) -> FakeConnection:
        self.config = config
        self.calls.append(
            ConnectCall(
                endpoint=endpoint,
                username=config.username,
                password=config.password,
                max_pipelined_requests=config.max_pipelined_requests,
                has_host_callback=config.unverified_host_callback is not None,
                has_auth_callback=config.auth_reattempt_callback is not None,
            )
        )
        if self.error is not None:
            raise self.error
        return self.connection


@dataclass
class FakeTrustBridge:
    tty: TextIO
    config: ConnectionConfig
    decision: TrustDecision = TrustDecision.REJECT
    password: str | None = "secret"
    hosts: list[UnverifiedHost] = field(default_factory=list)
    challenges: list[AuthChallenge] = field(default_factory=list)

    def resolve_unknown_host(self, host: UnverifiedHost) -> TrustDecision:
        self.hosts.append(host)
        return self.decision

    def reattempt_auth(self, challenge: AuthChallenge) -> bool:
        self.challenges.append(challenge)
        return False

    def prompt_password(self) -> bool:
        if self.password is None:
            return False
        self.config.password = self.password
        return True


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------

@dataclass
class ShellRun:
    code: int
    stdout: str
    stderr: str
    tty: TextIO | None
    bridges: list[FakeTrustBridge]


@pytest.fixture
def fake_connector() -> FakeConnector:
    return FakeConnector()


@pytest.fixture
def fake_connection(fake_connector: FakeConnector) -> FakeConnection:
    return fake_connector.connection


@pytest.fixture
def run_shell(fake_connector: FakeConnector) -> Callable[..., ShellRun]:
    """Run :func:`main` with in-memory streams and fake collaborators."""

    def _run(
        argv: list[str],
        *,
        stdin: TextIO | None = None,
        tty: TextIO | None = None,
        connector: Any = None,
        interactive_runner: Any = None,
        bridge_password: str | None = "secret",
    ) -> ShellRun:
        stdout = io.StringIO()
        stderr = io.StringIO()
        bridges: list[FakeTrustBridge] = []

        def bridge_factory(handle: TextIO, config: ConnectionConfig) -> FakeTrustBridge:
            bridge = FakeTrustBridge(handle, config, password=bridge_password)
            bridges.append(bridge)
            return bridge

        code = main(
            ["--no-history", *argv],
            stdin=stdin if stdin is not None else io.StringIO(""),
            stdout=stdout,
            stderr=stderr,
            tty_opener=lambda: tty,
            connector=connector if connector is not None else fake_connector,
            bridge_factory=bridge_factory,
            interactive_runner=interactive_runner,
        )
        return ShellRun(code, stdout.getvalue(), stderr.getvalue(), tty, bridges)

    return _run


@pytest.fixture
def failing_connector() -> FakeConnector:
    return FakeConnector(error=ConnectError("Unable to connect to localhost:7687: refused"))
