"""KuzuDB backend implementation for Janus Lite.

KuzuDB is an embedded graph database that works on systems without Docker.
It supports the Cypher subset GraphPersistence issues but requires the schema
upfront (unlike FalkorDB or Memgraph):
- Node tables: ContentNode, ContentNodeVersion, Tag (primary key: id)
- Rel tables: VERSION_OF, PREVIOUS_VERSION, INCLUDES(operation, key, createdAt), HAS_TAG
"""

from pathlib import Path
from typing import Any

from janus_lite.db.graph_protocol import BaseGraphBackend, QueryResult
from janus_lite.log_config import get_logger

log = get_logger("graph.kuzu")


class KuzuDBBackend(BaseGraphBackend):
    """KuzuDB-based graph backend for environments without a graph server."""

    def __init__(self, db_path: str | Path):
        """Initialize KuzuDB connection.

        Args:
            db_path: Path to the database directory (will be created by KuzuDB)
        """
        import kuzu

        self.db_path = Path(db_path)
        # KuzuDB creates the database path itself; only the parent must exist
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        log.info(f"Initializing KuzuDB at {self.db_path}")
        self._db = kuzu.Database(str(self.db_path))
        self._conn = kuzu.Connection(self._db)

        self._schema_initialized = False

    @property
    def backend_name(self) -> str:
        return "kuzu"

    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a Cypher query.

        Args:
            cypher: Cypher query string
            params: Optional query parameters

        Returns:
            QueryResult with result_set, header, and stats
        """
        translated = self._translate_cypher(cypher)
        log.trace(f"KuzuDB query: {translated[:100]}...")

        try:
            if params:
                result = self._conn.execute(translated, params)
            else:
                result = self._conn.execute(translated)

            result_set = []
            while result.has_next():
                result_set.append(list(result.get_next()))

            header = result.get_column_names() or None

            return QueryResult(
                result_set=result_set,
                header=header,
                stats={"backend": "kuzu"},
            )

        except Exception as e:
            log.error(f"KuzuDB query failed: {e}")
            log.debug(f"Query was: {translated}")
            raise

    def health_check(self) -> bool:
        try:
            result = self._conn.execute("RETURN 1")
            return result.has_next()
        except Exception as e:
            log.warning(f"KuzuDB health check failed: {e}")
            return False

    def close(self) -> None:
        # Database files are released when the objects are garbage collected
        log.info("Closing KuzuDB connection")

    def init_schema(self) -> None:
        """Create the node and relationship tables.

        KuzuDB requires schema before data can be inserted.
        """
        if self._schema_initialized:
            log.debug("Schema already initialized, skipping")
            return

        log.info("Initializing KuzuDB schema")

        self._create_table_if_not_exists(
            f"""
            CREATE NODE TABLE {self.LABEL_NODE}(
                id STRING,
                name STRING,
                description STRING,
                PRIMARY KEY (id)
            )
            """
        )
        self._create_table_if_not_exists(
            f"""
            CREATE NODE TABLE {self.LABEL_VERSION}(
                id STRING,
                content STRING,
                createdAt STRING,
                commitMessage STRING,
                PRIMARY KEY (id)
            )
            """
        )
        self._create_table_if_not_exists(
            f"""
            CREATE NODE TABLE {self.LABEL_TAG}(
                id STRING,
                name STRING,
                description STRING,
                PRIMARY KEY (id)
            )
            """
        )

        self._create_rel_table_if_not_exists(self.REL_VERSION_OF, self.LABEL_VERSION, self.LABEL_NODE, "")
        # `key` is a keyword in Kuzu's grammar
        self._create_rel_table_if_not_exists(
            self.REL_INCLUDES,
            self.LABEL_VERSION,
            self.LABEL_VERSION,
            "operation STRING, `key` STRING, createdAt STRING",
        )
        self._create_rel_table_if_not_exists(self.REL_HAS_TAG, self.LABEL_NODE, self.LABEL_TAG, "")
        self._create_rel_table_if_not_exists(self.REL_PREVIOUS_VERSION, self.LABEL_VERSION, self.LABEL_VERSION, "")

        self._schema_initialized = True
        log.info("KuzuDB schema initialization complete")

    def _create_table_if_not_exists(self, create_statement: str) -> None:
        try:
            self._conn.execute(create_statement)
            log.debug(f"Created table: {' '.join(create_statement.split())[:50]}...")
        except Exception as e:
            if "already exists" in str(e).lower():
                log.trace("Table already exists")
            else:
                log.warning(f"Table creation error: {e}")

    def _create_rel_table_if_not_exists(
        self,
        name: str,
        from_table: str,
        to_table: str,
        properties: str,
    ) -> None:
        """Create a relationship table if it doesn't exist.

        Args:
            name: Relationship type name
            from_table: Source node table
            to_table: Target node table
            properties: Property definitions (comma-separated)
        """
        if properties:
            stmt = f"CREATE REL TABLE {name}(FROM {from_table} TO {to_table}, {properties})"
        else:
            stmt = f"CREATE REL TABLE {name}(FROM {from_table} TO {to_table})"

        try:
            self._conn.execute(stmt)
            log.debug(f"Created rel table: {name}")
        except Exception as e:
            if "already exists" in str(e).lower():
                log.trace(f"Rel table already exists: {name}")
            else:
                log.warning(f"Rel table creation error ({name}): {e}")


def create_kuzu_backend(db_path: str | Path) -> KuzuDBBackend:
    """Create a KuzuDB backend and initialize its schema."""
    backend = KuzuDBBackend(db_path)
    backend.init_schema()
    return backend
