"""Per-user file locations under the ``~/.neo4j`` dot directory.

Only paths are computed here; nothing is created or read.
"""

from __future__ import annotations

from pathlib import Path

DOT_DIR_NAME: str = ".neo4j"
HISTORY_FILE_NAME: str = "client-history"
KNOWN_HOSTS_FILE_NAME: str = "known_hosts"


def dot_dir(*parts: str, home: Path | None = None) -> Path:
    """Return ``~/.neo4j`` joined with *parts*."""
    base = home if home is not None else Path.home()
    return base.joinpath(DOT_DIR_NAME, *parts)


def default_history_file(home: Path | None = None) -> Path:
    return dot_dir(HISTORY_FILE_NAME, home=home)


def default_known_hosts_file(home: Path | None = None) -> Path:
    return dot_dir(KNOWN_HOSTS_FILE_NAME, home=home)
