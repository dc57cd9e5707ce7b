"""Bolt backends for Janus Lite: Memgraph and Neo4j.

Both speak the Bolt protocol and are driven by the neo4j Python driver; they
differ only in index DDL:
- Memgraph: CREATE INDEX ON :Label(prop)
- Neo4j 5: CREATE INDEX name IF NOT EXISTS FOR (n:Label) ON (n.prop)
"""

from typing import Any

from janus_lite.db.graph_protocol import BaseGraphBackend, QueryResult
from janus_lite.log_config import get_logger

log = get_logger("graph.bolt")

# (label, property) pairs looked up by GraphPersistence
INDEXED_PROPERTIES = [
    (BaseGraphBackend.LABEL_NODE, "id"),
    (BaseGraphBackend.LABEL_NODE, "name"),
    (BaseGraphBackend.LABEL_VERSION, "id"),
    (BaseGraphBackend.LABEL_TAG, "id"),
    (BaseGraphBackend.LABEL_TAG, "name"),
]


class MemgraphBackend(BaseGraphBackend):
    """Memgraph-based graph backend using Bolt protocol.

    Wraps the neo4j Python driver to implement the GraphBackend protocol.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 7687,
        username: str = "",
        password: str = "",
        connection_timeout: float = 30.0,
    ):
        """Initialize the Bolt connection.

        Args:
            host: Server host address
            port: Bolt port (default: 7687)
            username: Optional username for authentication
            password: Optional password for authentication
            connection_timeout: Connection timeout in seconds (default: 30.0)
        """
        from neo4j import GraphDatabase

        self.host = host
        self.port = port
        self.username = username
        self.password = password

        self._uri = f"bolt://{host}:{port}"

        log.info(f"Connecting to {self.backend_name} at {self._uri} (auth={'yes' if password else 'no'})")

        if username or password:
            self._driver = GraphDatabase.driver(
                self._uri,
                auth=(username, password),
                connection_timeout=connection_timeout,
            )
        else:
            self._driver = GraphDatabase.driver(
                self._uri,
                connection_timeout=connection_timeout,
            )

        self._driver.verify_connectivity()
        log.info(f"{self.backend_name} connected: {self._uri}")

    @property
    def backend_name(self) -> str:
        return "memgraph"

    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a Cypher query.

        Args:
            cypher: Cypher query string
            params: Optional query parameters

        Returns:
            QueryResult with result_set, header, and stats
        """
        log.trace(f"{self.backend_name} query: {cypher[:100]}...")

        try:
            with self._driver.session() as session:
                if params:
                    result = session.run(cypher, params)
                else:
                    result = session.run(cypher)

                records = list(result)
                keys = list(result.keys())

                result_set = [list(record.values()) for record in records]

                return QueryResult(
                    result_set=result_set,
                    header=keys or None,
                    stats={"backend": self.backend_name},
                )

        except Exception as e:
            log.error(f"{self.backend_name} query failed: {e}")
            log.debug(f"Query was: {cypher}")
            raise

    def health_check(self) -> bool:
        try:
            with self._driver.session() as session:
                session.run("RETURN 1").consume()
            return True
        except Exception as e:
            log.warning(f"{self.backend_name} health check failed: {e}")
            return False

    def close(self) -> None:
        log.info(f"Closing {self.backend_name} connection")
        if self._driver:
            self._driver.close()

    def _index_statements(self) -> list[str]:
        return [f"CREATE INDEX ON :{label}({prop})" for label, prop in INDEXED_PROPERTIES]

    def init_schema(self) -> None:
        """Create lookup indexes; duplicates are reported by the server and ignored."""
        log.info(f"Creating {self.backend_name} indexes")

        for index_query in self._index_statements():
            try:
                self.query(index_query)
            except Exception as e:
                error_msg = str(e).lower()
                if "already exists" in error_msg or "index already" in error_msg:
                    log.trace(f"Index already exists: {index_query}")
                else:
                    log.warning(f"Index creation issue: {e}")

        log.debug(f"{self.backend_name} indexes created")


class Neo4jBackend(MemgraphBackend):
    """Neo4j server over Bolt; same driver, Neo4j 5 index syntax."""

    @property
    def backend_name(self) -> str:
        return "neo4j"

    def _index_statements(self) -> list[str]:
        return [
            f"CREATE INDEX janus_{label.lower()}_{prop} IF NOT EXISTS FOR (n:{label}) ON (n.{prop})"
            for label, prop in INDEXED_PROPERTIES
        ]


def create_memgraph_backend(
    host: str = "localhost",
    port: int = 7687,
    username: str = "",
    password: str = "",
) -> MemgraphBackend:
    """Create a Memgraph backend and initialize its indexes.

    Raises:
        neo4j.exceptions.ServiceUnavailable: If the server is not reachable
    """
    backend = MemgraphBackend(host, port, username, password)
    backend.init_schema()
    return backend


def create_neo4j_backend(
    host: str = "localhost",
    port: int = 7687,
    username: str = "",
    password: str = "",
) -> Neo4jBackend:
    """Create a Neo4j backend and initialize its indexes."""
    backend = Neo4jBackend(host, port, username, password)
    backend.init_schema()
    return backend


def is_bolt_available(
    host: str = "localhost",
    port: int = 7687,
    username: str = "",
    password: str = "",
    timeout: float = 2.0,
) -> bool:
    """Check if a Bolt server is reachable and answers queries.

    Uses socket-level pre-check before the neo4j driver to avoid long hangs.
    """
    import socket

    try:
        sock = socket.create_connection((host, port), timeout=timeout)
        sock.close()
    except OSError as e:
        log.debug(f"Bolt socket check failed at {host}:{port}: {e}")
        return False

    try:
        from neo4j import GraphDatabase

        uri = f"bolt://{host}:{port}"
        if username or password:
            driver = GraphDatabase.driver(uri, auth=(username, password), connection_timeout=timeout)
        else:
            driver = GraphDatabase.driver(uri, connection_timeout=timeout)

        try:
            driver.verify_connectivity()
            with driver.session() as session:
                session.run("RETURN 1").consume()
        finally:
            driver.close()
        return True

    except Exception as e:
        log.debug(f"Bolt server not available at {host}:{port}: {e}")
        return False
