"""Infrastructure: known-hosts store and certificate fingerprinting.

The known-hosts file holds one ``host:port fingerprint`` entry per line,
where the fingerprint is the hex SHA-512 digest of the server's DER
encoded certificate.  Blank lines and ``#`` comments are ignored.
"""

from __future__ import annotations

import hashlib
import socket
import ssl
from pathlib import Path

from loguru import logger

from cyphersh.exceptions import ConfigError, ConnectError

DEFAULT_FINGERPRINT_TIMEOUT: float = 10.0


def fingerprint_der(der: bytes) -> str:
    """Return the hex SHA-512 digest of a DER certificate."""
    return hashlib.sha512(der).hexdigest()


def fetch_peer_certificate(
    host: str,
    port: int,
    *,
    timeout: float = DEFAULT_FINGERPRINT_TIMEOUT,
) -> bytes:
    """Perform a TLS handshake with *host* and return its DER certificate.

    Certificate validity is not checked here: the fingerprint is what
    gets compared against the known-hosts store.

    Raises
    ------
    ConnectError
        When the handshake fails or the server presents no certificate.
    """
    context = ssl.create_default_context()
    context.check_hostname = False
    context.verify_mode = ssl.CERT_NONE
    try:
        with socket.create_connection((host, port), timeout=timeout) as sock:
            with context.wrap_socket(sock, server_hostname=host) as tls:
                der = tls.getpeercert(binary_form=True)
    except (OSError, ssl.SSLError) as exc:
        raise ConnectError(
            f"Could not establish a TLS session with {host}:{port}: {exc}",
            hint="Use --insecure to connect without TLS.",
        ) from exc
    if not der:
        raise ConnectError(f"{host}:{port} did not present a TLS certificate")
    return der


def pinned_ssl_context(der: bytes) -> ssl.SSLContext:
    """Return a client context that accepts only the certificate *der*.

    The certificate is loaded as the sole trust anchor, which ties the
    driver's own handshake to the certificate that was fingerprinted.

    Raises
    ------
    ConnectError
        When *der* is not a usable certificate.
    """
    context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
    context.check_hostname = False
    context.verify_flags |= ssl.VERIFY_X509_PARTIAL_CHAIN
    try:
        context.load_verify_locations(cadata=der)
    except ssl.SSLError as exc:
        raise ConnectError(f"Unable to pin the server certificate: {exc}") from exc
    return context


class KnownHostsStore:
    """File-backed mapping of ``host:port`` to certificate fingerprint."""

    def __init__(self, path: Path) -> None:
        self._path: Path = path

    @property
    def path(self) -> Path:
        return self._path

    def _entries(self) -> list[tuple[str, str]]:
        try:
            text = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            raise ConfigError(
                f"Unable to read known-hosts file {self._path}: {exc.strerror}",
            ) from exc
        entries: list[tuple[str, str]] = []
        for raw in text.splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            parts = line.split()
            if len(parts) != 2:
                logger.warning("Ignoring malformed known-hosts line: {}", line)
                continue
            entries.append((parts[0], parts[1].lower()))
        return entries

    def lookup(self, host: str) -> str | None:
        """Return the stored fingerprint for *host*, if any."""
        found: str | None = None
        for entry_host, fingerprint in self._entries():
            if entry_host == host:
                found = fingerprint
        return found

    def add(self, host: str, fingerprint: str) -> None:
        """Store *fingerprint* for *host*, replacing any previous entry."""
        lines = [
            f"{entry_host} {entry_fp}"
            for entry_host, entry_fp in self._entries()
            if entry_host != host
        ]
        lines.append(f"{host} {fingerprint.lower()}")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as exc:
            raise ConfigError(
                f"Unable to update known-hosts file {self._path}: {exc.strerror}",
            ) from exc
        logger.info("Added {} to known hosts ({})", host, self._path)
