"""Graph database layer for Janus Lite.

Graph Backend Selection:
- Memgraph / Neo4j: Bolt servers, driven by the neo4j driver
- FalkorDB: Redis-based server
- KuzuDB: Embedded fallback when no server is reachable
- Auto-detection: Bolt first, then FalkorDB, else KuzuDB

Module Structure:
- graph_protocol.py: Protocol and base class for graph backends
- graph_factory.py: Backend selection and auto-detection
- memgraph_backend.py / falkor_backend.py / kuzu_backend.py: Implementations
- graph_persistence.py: ContentStore over any backend

Example:
    from janus_lite.db import GraphPersistence, create_graph_backend

    store = GraphPersistence(create_graph_backend("kuzu", kuzu_path="/tmp/janus"))
    node = store.create_node("greeting", "Says hello")
"""

from janus_lite.db.graph_factory import create_graph_backend, get_backend_info
from janus_lite.db.graph_persistence import GraphPersistence
from janus_lite.db.graph_protocol import BaseGraphBackend, GraphBackend, QueryResult

__all__ = [
    "BaseGraphBackend",
    "GraphBackend",
    "GraphPersistence",
    "QueryResult",
    "create_graph_backend",
    "get_backend_info",
]
