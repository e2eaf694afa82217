"""cyphersh — interactive and batch shell for Neo4j graph databases.

Built on the official neo4j Python driver with a strict layered
architecture.
"""

from cyphersh.version import __version__

__all__: list[str] = ["__version__"]
