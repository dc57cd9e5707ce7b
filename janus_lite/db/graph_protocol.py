"""Graph database protocol for Janus Lite.

Defines the interface every graph backend (Memgraph/Neo4j, FalkorDB, KuzuDB)
exposes to GraphPersistence, so the engine can be switched at runtime.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


@dataclass
class QueryResult:
    """Unified query result from any graph backend.

    Attributes:
        result_set: List of result rows (each row is a list of values)
        header: Column names if available
        stats: Query statistics (backend name, counters where provided)
    """
    result_set: list[list[Any]]
    header: list[str] | None = None
    stats: dict[str, Any] | None = None

    def __iter__(self):
        return iter(self.result_set)

    def __len__(self):
        return len(self.result_set)

    def __bool__(self):
        return len(self.result_set) > 0


@runtime_checkable
class GraphBackend(Protocol):
    """Protocol for graph database backends."""

    @property
    def backend_name(self) -> str:
        """Return the backend name (e.g., 'memgraph', 'kuzu')."""
        ...

    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a parameterized Cypher query.

        Args:
            cypher: Cypher query string
            params: Optional query parameters (use $param syntax)

        Returns:
            QueryResult with result_set, header, and stats
        """
        ...

    def health_check(self) -> bool:
        """Check if the backend is healthy and connected."""
        ...

    def close(self) -> None:
        """Close the database connection and release resources."""
        ...

    def init_schema(self) -> None:
        """Initialize the graph schema (tables, indexes). Must be idempotent."""
        ...


class BaseGraphBackend(ABC):
    """Abstract base class for graph backends with common functionality."""

    GRAPH_NAME = "janus"

    # Node labels
    LABEL_NODE = "ContentNode"
    LABEL_VERSION = "ContentNodeVersion"
    LABEL_TAG = "Tag"

    # Relationship types
    REL_VERSION_OF = "VERSION_OF"
    REL_INCLUDES = "INCLUDES"
    REL_HAS_TAG = "HAS_TAG"
    REL_PREVIOUS_VERSION = "PREVIOUS_VERSION"

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Return the backend name."""
        pass

    @abstractmethod
    def query(self, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Execute a Cypher query."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check backend health."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close connection."""
        pass

    @abstractmethod
    def init_schema(self) -> None:
        """Initialize schema."""
        pass

    def _translate_cypher(self, cypher: str) -> str:
        """Translate Cypher dialect differences if needed.

        Override in subclasses for dialect-specific translations.
        """
        return cypher
