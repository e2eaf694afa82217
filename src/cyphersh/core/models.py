"""Domain models for cyphersh.

Value objects are **frozen** dataclasses with no behaviour beyond data
access and validation.  The two exceptions are :class:`FileIoQueue`,
which is filled during argument parsing, and :class:`ConnectionConfig`,
which the argument layer and the trust bridge update in place before and
during connection.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from dataclasses import dataclass, field
from enum import Enum, Flag, auto
from pathlib import Path
from typing import Any

from cyphersh.exceptions import UsageError


DEFAULT_PIPELINE_MAX: int = 5
"""Default ``--pipeline-max``; the connection layer receives twice this."""

DEFAULT_SOURCE_MAX_DEPTH: int = 10
"""Default ``--source-max-depth``."""

MAX_FILE_IO_ARGS: int = 128
"""Upper bound on the total number of ``-i``/``-o`` arguments."""


# ---------------------------------------------------------------------------
# Parsed options
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Options:
    """Normalised command-line options.  Immutable after parsing."""

    verbosity: int = 0
    """Number of ``-v`` flags seen."""

    history_file: Path | None = None
    """Interactive history file, or ``None`` when history is disabled."""

    colorize: bool | None = None
    """Forced colour on/off, or ``None`` to auto-detect from the TTY."""

    ca_file: str | None = None
    ca_directory: str | None = None
    insecure: bool = False
    known_hosts_file: str | None = None
    trust_known_hosts: bool = True

    username: str | None = None
    password: str | None = None
    password_prompt: bool = False
    """``-P`` was given: prompt for a password on the terminal."""

    pipeline_max: int = DEFAULT_PIPELINE_MAX
    source_max_depth: int = DEFAULT_SOURCE_MAX_DEPTH
    non_interactive: bool = False

    target: str | None = None
    """The single ``URL | host[:port]`` positional, if any."""


# ---------------------------------------------------------------------------
# File IO requests
# ---------------------------------------------------------------------------

class FileIoKind(Enum):
    SOURCE = "source"
    REDIRECT = "redirect"


@dataclass(frozen=True, slots=True)
class FileIoRequest:
    """A single ``-i`` (source) or ``-o`` (redirect) request."""

    kind: FileIoKind
    path: Path

    @property
    def is_input(self) -> bool:
        return self.kind is FileIoKind.SOURCE


@dataclass(slots=True)
class FileIoQueue:
    """Insertion-ordered ``-i``/``-o`` requests, replayed verbatim.

    The queue is bounded by *limit*; :meth:`append` raises
    :class:`~cyphersh.exceptions.UsageError` once the bound is reached.
    """

    requests: list[FileIoRequest] = field(default_factory=list)
    limit: int = MAX_FILE_IO_ARGS

    def append(self, request: FileIoRequest) -> None:
        if len(self.requests) >= self.limit:
            raise UsageError("Too many --source and/or --output args")
        self.requests.append(request)

    def validate(self) -> None:
        """Reject a queue that ends on a redirect with nothing to redirect."""
        if self.requests and not self.requests[-1].is_input:
            raise UsageError("--output/-o must be followed by --source/-i")

    def __iter__(self) -> Iterator[FileIoRequest]:
        return iter(self.requests)

    def __len__(self) -> int:
        return len(self.requests)

    def __bool__(self) -> bool:
        return len(self.requests) > 0


# ---------------------------------------------------------------------------
# Trust bridge values
# ---------------------------------------------------------------------------

class TrustDecision(Enum):
    """Answer to an unverified-host event."""

    REJECT = "reject"
    ACCEPT_ONCE = "once"
    TRUST = "trust"
    """Accept and persist the fingerprint to the known-hosts file."""


class HostVerificationReason(Enum):
    UNRECOGNIZED = "unrecognized"
    MISMATCH = "mismatch"


@dataclass(frozen=True, slots=True)
class UnverifiedHost:
    """A host whose certificate fingerprint is not in the known-hosts store."""

    host: str
    """``host:port`` identity as stored in the known-hosts file."""

    fingerprint: str
    """Hex SHA-512 digest of the server's DER certificate."""

    reason: HostVerificationReason


@dataclass(frozen=True, slots=True)
class AuthChallenge:
    """Server rejected the credentials; the bridge may supply new ones."""

    host: str
    username: str | None
    attempt: int
    message: str


UnverifiedHostCallback = Callable[[UnverifiedHost], TrustDecision]
AuthReattemptCallback = Callable[[AuthChallenge], bool]


# ---------------------------------------------------------------------------
# Connection configuration
# ---------------------------------------------------------------------------

@dataclass(slots=True)
class ConnectionConfig:
    """Mutable settings handed to the connection layer.

    Repeated flags overwrite earlier values (last write wins).
    """

    username: str | None = None
    password: str | None = None
    tls_ca_file: str | None = None
    tls_ca_dir: str | None = None
    insecure: bool = False
    known_hosts_file: Path | None = None
    trust_known_hosts: bool = True
    max_pipelined_requests: int = DEFAULT_PIPELINE_MAX * 2
    unverified_host_callback: UnverifiedHostCallback | None = None
    auth_reattempt_callback: AuthReattemptCallback | None = None

    def set_pipeline_max(self, pipeline_max: int) -> None:
        """Translate the user-facing pipeline-max into the wire hint."""
        self.max_pipelined_requests = pipeline_max * 2


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class NodeValue:
    id: str
    labels: tuple[str, ...]
    properties: dict[str, Any]


@dataclass(frozen=True, slots=True)
class RelationshipValue:
    id: str
    type: str
    start_id: str
    end_id: str
    properties: dict[str, Any]


@dataclass(frozen=True, slots=True)
class PathValue:
    nodes: tuple[NodeValue, ...]
    relationships: tuple[RelationshipValue, ...]


@dataclass(frozen=True, slots=True)
class ResultSet:
    """Fields and fully materialised records of one evaluated statement."""

    fields: tuple[str, ...]
    records: tuple[tuple[Any, ...], ...] = ()

    def __len__(self) -> int:
        return len(self.records)


class RenderFlags(Flag):
    NONE = 0
    SHOW_NULLS = auto()
