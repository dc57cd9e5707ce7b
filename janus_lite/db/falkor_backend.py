"""FalkorDB backend implementation for Janus Lite.

FalkorDB is a Redis-based graph database that requires a running server
(typically via Docker). It speaks standard Cypher, so queries pass through
unchanged.
"""

from typing import Any

from janus_lite.db.graph_protocol import BaseGraphBackend, QueryResult
from janus_lite.log_config import get_logger

log = get_logger("graph.falkor")


class FalkorDBBackend(BaseGraphBackend):
    """FalkorDB-based graph backend (requires Docker/Redis)."""

    def __init__(self, host: str = "localhost", port: int = 6379, password: str | None = None):
        """Initialize FalkorDB connection.

        Args:
            host: FalkorDB host address
            port: FalkorDB port (default: 6379)
            password: Optional Redis password
        """
        from falkordb import FalkorDB

        self.host = host
        self.port = port

        log.info(f"Connecting to FalkorDB at {host}:{port} (auth={'yes' if password else 'no'})")
        self._db = FalkorDB(host=host, port=port, password=password)
        self._graph = self._db.select_graph(self.GRAPH_NAME)

        log.info(f"FalkorDB connected: graph={self.GRAPH_NAME}")

    @property
    def backend_name(self) -> str:
        return "falkordb"

    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a Cypher query.

        Args:
            cypher: Cypher query string
            params: Optional query parameters

        Returns:
            QueryResult with result_set, header, and stats
        """
        log.trace(f"FalkorDB query: {cypher[:100]}...")

        try:
            if params:
                result = self._graph.query(cypher, params)
            else:
                result = self._graph.query(cypher)

            result_set = [list(row) for row in result.result_set] if result.result_set else []

            # FalkorDB header is a list of (type, name) pairs
            header = None
            if getattr(result, "header", None):
                header = [
                    col[1] if isinstance(col, (tuple, list)) else str(col)
                    for col in result.header
                ]

            return QueryResult(
                result_set=result_set,
                header=header,
                stats={"backend": "falkordb"},
            )

        except Exception as e:
            log.error(f"FalkorDB query failed: {e}")
            log.debug(f"Query was: {cypher}")
            raise

    def health_check(self) -> bool:
        try:
            self._graph.query("RETURN 1")
            return True
        except Exception as e:
            log.warning(f"FalkorDB health check failed: {e}")
            return False

    def close(self) -> None:
        # Redis connection pool handles cleanup
        log.info("Closing FalkorDB connection")

    def init_schema(self) -> None:
        """Create lookup indexes. FalkorDB is schema-less, so no tables are needed."""
        log.info("Creating FalkorDB indexes")

        indexes = [
            f"CREATE INDEX FOR (n:{self.LABEL_NODE}) ON (n.id)",
            f"CREATE INDEX FOR (n:{self.LABEL_NODE}) ON (n.name)",
            f"CREATE INDEX FOR (v:{self.LABEL_VERSION}) ON (v.id)",
            f"CREATE INDEX FOR (t:{self.LABEL_TAG}) ON (t.id)",
            f"CREATE INDEX FOR (t:{self.LABEL_TAG}) ON (t.name)",
        ]
        for index_query in indexes:
            try:
                self._graph.query(index_query)
            except Exception as e:
                # Index may already exist
                log.trace(f"Index creation (may already exist): {e}")

        log.debug("FalkorDB indexes created")


def create_falkor_backend(
    host: str = "localhost",
    port: int = 6379,
    password: str | None = None,
) -> FalkorDBBackend:
    """Create a FalkorDB backend and initialize its indexes."""
    backend = FalkorDBBackend(host, port, password)
    backend.init_schema()
    return backend


def is_falkordb_available(host: str = "localhost", port: int = 6379, password: str | None = None) -> bool:
    """Check if FalkorDB is available at the given address."""
    try:
        from falkordb import FalkorDB

        db = FalkorDB(host=host, port=port, password=password)
        graph = db.select_graph("janus_health_check")
        graph.query("RETURN 1")
        return True
    except Exception as e:
        log.debug(f"FalkorDB not available at {host}:{port}: {e}")
        return False
