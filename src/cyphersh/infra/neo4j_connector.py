"""neo4j-driver backed implementation of :class:`~cyphersh.core.protocols.Connector`.

This module is the **only** place in the codebase that imports ``neo4j``.
All driver exceptions are caught here and re-raised as typed
:class:`~cyphersh.exceptions.CypherShellError` subclasses — nothing raw
escapes the infrastructure boundary.

Trust model
-----------
* ``bolt+s://`` / ``neo4j+s://`` style URLs are handed to the driver
  untouched; it performs its own TLS verification.
* ``--insecure`` disables encryption for plain schemes.
* Otherwise the connection is encrypted.  With known-hosts checking on,
  the server certificate fingerprint is pinned against the known-hosts
  store and unknown hosts are resolved through the configured
  unverified-host callback (rejected when there is none).  The driver
  then trusts only that pinned certificate, so its own handshake cannot
  be answered by a different one.  CA files or directories, when
  given, replace the pin for the driver's handshake; the fingerprint is
  still checked first.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit

from loguru import logger

from cyphersh.core.models import (
    AuthChallenge,
    ConnectionConfig,
    HostVerificationReason,
    NodeValue,
    PathValue,
    RelationshipValue,
    ResultSet,
    TrustDecision,
    UnverifiedHost,
)
from cyphersh.exceptions import (
    ConfigError,
    ConnectError,
    EnvironmentError,
    EvalError,
)
from cyphersh.infra.known_hosts import (
    KnownHostsStore,
    fetch_peer_certificate,
    fingerprint_der,
    pinned_ssl_context,
)
from cyphersh.utils.paths import default_known_hosts_file

DEFAULT_PORT: int = 7687
DEFAULT_SCHEME: str = "bolt"
DEFAULT_USERNAME: str = "neo4j"

MAX_AUTH_ATTEMPTS: int = 3
"""Connection attempts allowed before an auth failure becomes final."""

_CA_SUFFIXES: tuple[str, ...] = (".pem", ".crt", ".cer")


def _import_neo4j() -> Any:
    """Import the neo4j driver lazily."""
    try:
        import neo4j
        import neo4j.exceptions
        import neo4j.graph
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "neo4j is not installed. Install with: pip install neo4j",
        ) from exc
    return neo4j


# ---------------------------------------------------------------------------
# Endpoint parsing
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Endpoint:
    scheme: str
    host: str
    port: int

    @property
    def uri(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    @property
    def identity(self) -> str:
        """``host:port`` key used in the known-hosts store."""
        return f"{self.host}:{self.port}"

    @property
    def driver_managed_tls(self) -> bool:
        """The scheme itself selects TLS (``+s`` / ``+ssc``)."""
        return "+" in self.scheme


def parse_endpoint(endpoint: str) -> Endpoint:
    """Parse ``URL | host[:port]`` into an :class:`Endpoint`.

    Raises
    ------
    ConnectError
        When the endpoint is empty or carries an invalid port.
    """
    text = endpoint.strip()
    if not text:
        raise ConnectError("No endpoint given")
    if "://" not in text:
        text = f"{DEFAULT_SCHEME}://{text}"
    parts = urlsplit(text)
    try:
        port = parts.port
    except ValueError as exc:
        raise ConnectError(f"Invalid port in '{endpoint}'") from exc
    if not parts.hostname:
        raise ConnectError(f"Invalid URL '{endpoint}'")
    return Endpoint(
        scheme=parts.scheme.lower(),
        host=parts.hostname,
        port=port if port is not None else DEFAULT_PORT,
    )


# ---------------------------------------------------------------------------
# Result conversion
# ---------------------------------------------------------------------------

def _convert_node(node: Any) -> NodeValue:
    return NodeValue(
        id=str(node.element_id),
        labels=tuple(sorted(node.labels)),
        properties={key: _convert_value(value) for key, value in node.items()},
    )


def _convert_relationship(rel: Any) -> RelationshipValue:
    return RelationshipValue(
        id=str(rel.element_id),
        type=str(rel.type),
        start_id=str(rel.start_node.element_id),
        end_id=str(rel.end_node.element_id),
        properties={key: _convert_value(value) for key, value in rel.items()},
    )


def _convert_value(value: Any, graph: Any = None) -> Any:
    if graph is not None:
        if isinstance(value, graph.Node):
            return _convert_node(value)
        if isinstance(value, graph.Relationship):
            return _convert_relationship(value)
        if isinstance(value, graph.Path):
            return PathValue(
                nodes=tuple(_convert_node(node) for node in value.nodes),
                relationships=tuple(_convert_relationship(rel) for rel in value.relationships),
            )
    if isinstance(value, dict):
        return {key: _convert_value(item, graph) for key, item in value.items()}
    if isinstance(value, list):
        return [_convert_value(item, graph) for item in value]
    return value


# ---------------------------------------------------------------------------
# Connection
# ---------------------------------------------------------------------------

class Neo4jConnection:
    """Concrete :class:`~cyphersh.core.protocols.Connection` over a driver session."""

    def __init__(
        self,
        driver: Any,
        endpoint: Endpoint,
        *,
        max_pipelined_requests: int,
        neo4j_module: Any,
    ) -> None:
        self._driver: Any = driver
        self._neo4j: Any = neo4j_module
        self._session: Any = None
        self.endpoint: Endpoint = endpoint
        self.max_pipelined_requests: int = max_pipelined_requests

    def _ensure_session(self) -> Any:
        if self._driver is None:
            raise EvalError("Not connected")
        if self._session is None:
            self._session = self._driver.session()
        return self._session

    def evaluate(self, statement: str) -> ResultSet:
        exceptions = self._neo4j.exceptions
        session = self._ensure_session()
        logger.trace("Evaluating: {}", statement)
        try:
            result = session.run(statement)
            fields = tuple(result.keys())
            records = tuple(
                tuple(_convert_value(value, self._neo4j.graph) for value in record.values())
                for record in result
            )
            result.consume()
        except exceptions.Neo4jError as exc:
            raise EvalError(exc.message or str(exc)) from exc
        except exceptions.DriverError as exc:
            raise EvalError(str(exc)) from exc
        return ResultSet(fields=fields, records=records)

    def close(self) -> None:
        if self._session is not None:
            session, self._session = self._session, None
            session.close()
        if self._driver is not None:
            driver, self._driver = self._driver, None
            driver.close()
            logger.debug("Disconnected from {}", self.endpoint.uri)


# ---------------------------------------------------------------------------
# Connector
# ---------------------------------------------------------------------------

class Neo4jConnector:
    """Concrete :class:`~cyphersh.core.protocols.Connector` backed by the neo4j driver.

    This class satisfies the :class:`~cyphersh.core.protocols.Connector`
    protocol structurally — no explicit inheritance required.
    """

    def __init__(self, *, max_auth_attempts: int = MAX_AUTH_ATTEMPTS) -> None:
        self._max_auth_attempts: int = max_auth_attempts

    # ------------------------------------------------------------------
    # Protocol method
    # ------------------------------------------------------------------

    def connect(self, endpoint: str, config: ConnectionConfig) -> Neo4jConnection:
        neo4j = _import_neo4j()
        target = parse_endpoint(endpoint)
        driver_kwargs = self._tls_options(neo4j, target, config)
        logger.info("Connecting to {}", target.uri)
        logger.debug(
            "Flow control: at most {} pipelined requests",
            config.max_pipelined_requests,
        )

        exceptions = neo4j.exceptions
        attempt = 0
        while True:
            attempt += 1
            driver = self._open_driver(neo4j, target, config, driver_kwargs)
            try:
                driver.verify_connectivity()
            except exceptions.AuthError as exc:
                driver.close()
                if not self._should_reattempt(target, config, attempt, exc):
                    raise ConnectError(
                        f"Authentication failed for {target.identity}: "
                        f"{exc.message or exc}",
                    ) from exc
                continue
            except exceptions.ServiceUnavailable as exc:
                driver.close()
                raise ConnectError(
                    f"Unable to connect to {target.identity}: {exc}",
                    hint=None if config.insecure else "Use --insecure if the server does not use TLS.",
                ) from exc
            except (exceptions.Neo4jError, exceptions.DriverError) as exc:
                driver.close()
                raise ConnectError(f"Unable to connect to {target.identity}: {exc}") from exc

            logger.info("Connected to {}", target.uri)
            return Neo4jConnection(
                driver,
                target,
                max_pipelined_requests=config.max_pipelined_requests,
                neo4j_module=neo4j,
            )

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    @staticmethod
    def _auth(neo4j: Any, config: ConnectionConfig) -> Any:
        username = config.username
        if username is None and config.password is not None:
            username = DEFAULT_USERNAME
        if username is None:
            return None
        return neo4j.basic_auth(username, config.password or "")

    def _should_reattempt(
        self,
        target: Endpoint,
        config: ConnectionConfig,
        attempt: int,
        exc: Any,
    ) -> bool:
        callback = config.auth_reattempt_callback
        if callback is None or attempt >= self._max_auth_attempts:
            return False
        challenge = AuthChallenge(
            host=target.identity,
            username=config.username,
            attempt=attempt,
            message=str(getattr(exc, "message", None) or exc),
        )
        logger.debug("Authentication attempt {} rejected, asking for new credentials", attempt)
        return bool(callback(challenge))

    def _open_driver(
        self,
        neo4j: Any,
        target: Endpoint,
        config: ConnectionConfig,
        driver_kwargs: dict[str, Any],
    ) -> Any:
        try:
            return neo4j.GraphDatabase.driver(
                target.uri,
                auth=self._auth(neo4j, config),
                **driver_kwargs,
            )
        except neo4j.exceptions.ConfigurationError as exc:
            raise ConfigError(str(exc)) from exc
        except ValueError as exc:
            raise ConnectError(f"Invalid URL '{target.uri}': {exc}") from exc

    # ------------------------------------------------------------------
    # TLS and host trust
    # ------------------------------------------------------------------

    def _tls_options(
        self,
        neo4j: Any,
        target: Endpoint,
        config: ConnectionConfig,
    ) -> dict[str, Any]:
        if target.driver_managed_tls:
            return {}
        if config.insecure:
            return {"encrypted": False}

        ca_files = self._ca_files(config)
        certificate: bytes | None = None
        if config.trust_known_hosts:
            certificate = self._verify_known_host(target, config)
        if ca_files:
            trust = neo4j.TrustCustomCAs(*ca_files)
        elif certificate is not None:
            return {"ssl_context": pinned_ssl_context(certificate)}
        else:
            trust = neo4j.TrustSystemCAs()
        return {"encrypted": True, "trusted_certificates": trust}

    @staticmethod
    def _ca_files(config: ConnectionConfig) -> list[str]:
        files: list[str] = []
        if config.tls_ca_file:
            if not Path(config.tls_ca_file).is_file():
                raise ConfigError(f"CA file '{config.tls_ca_file}' does not exist")
            files.append(config.tls_ca_file)
        if config.tls_ca_dir:
            directory = Path(config.tls_ca_dir)
            if not directory.is_dir():
                raise ConfigError(f"CA directory '{config.tls_ca_dir}' does not exist")
            files.extend(
                str(path)
                for path in sorted(directory.iterdir())
                if path.is_file() and path.suffix.lower() in _CA_SUFFIXES
            )
        return files

    def _verify_known_host(self, target: Endpoint, config: ConnectionConfig) -> bytes:
        store = KnownHostsStore(config.known_hosts_file or default_known_hosts_file())
        certificate = fetch_peer_certificate(target.host, target.port)
        fingerprint = fingerprint_der(certificate)
        expected = store.lookup(target.identity)
        if expected == fingerprint:
            logger.debug("Host {} matches known-hosts entry", target.identity)
            return certificate

        reason = (
            HostVerificationReason.UNRECOGNIZED
            if expected is None
            else HostVerificationReason.MISMATCH
        )
        callback = config.unverified_host_callback
        if callback is None:
            raise ConnectError(
                f"Host {target.identity} is not trusted ({reason.value} certificate)",
                hint=f"Add it to {store.path} or use --no-known-hosts.",
            )

        decision = callback(
            UnverifiedHost(host=target.identity, fingerprint=fingerprint, reason=reason),
        )
        if decision is TrustDecision.REJECT:
            raise ConnectError(f"Host {target.identity} was not trusted")
        if decision is TrustDecision.TRUST:
            store.add(target.identity, fingerprint)
        return certificate
