"""Infrastructure layer — external system integration.

This layer wraps all interaction with the neo4j driver, the TLS stack,
the known-hosts file and the controlling terminal.  Every raw
third-party exception must be caught here and re-raised as a
:class:`~cyphersh.exceptions.CypherShellError` subclass.

Rules
-----
* No imports from ``cli`` or ``shell``.
* No user-facing output (no ``print()``, no Rich rendering).
* Must expose clean, typed interfaces consumed by the other layers.
"""

from cyphersh.infra.known_hosts import KnownHostsStore, fetch_peer_certificate, pinned_ssl_context
from cyphersh.infra.neo4j_connector import Neo4jConnection, Neo4jConnector, parse_endpoint
from cyphersh.infra.terminal import is_tty, open_tty

__all__: list[str] = [
    "KnownHostsStore",
    "Neo4jConnection",
    "Neo4jConnector",
    "fetch_peer_certificate",
    "is_tty",
    "open_tty",
    "parse_endpoint",
    "pinned_ssl_context",
]
