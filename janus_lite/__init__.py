"""Janus Lite - versioned, composable prompt content.

A small content graph for LLM prompts with:
- Content nodes, immutable versions and typed INCLUDES edges (insert / concatenate)
- A composition resolver that renders a version into final text
- Interchangeable storage: a graph database (Memgraph, Neo4j, FalkorDB, KuzuDB)
  or a plain markdown tree with a self-healing index
"""

__version__ = "0.1.0"

from janus_lite.config import Config
from janus_lite.errors import (
    ConflictError,
    CycleDetectedError,
    JanusError,
    NotFoundError,
    PersistenceError,
    ResolutionTimeoutError,
    ValidationError,
)
from janus_lite.factory import create_store
from janus_lite.models import ContentNode, ContentNodeVersion, IncludesEdge, ResolveOptions, Tag
from janus_lite.persistence import ContentStore
from janus_lite.resolver import resolve
from janus_lite.service import ContentService

__all__ = [
    "Config",
    "ConflictError",
    "ContentNode",
    "ContentNodeVersion",
    "ContentService",
    "ContentStore",
    "CycleDetectedError",
    "IncludesEdge",
    "JanusError",
    "NotFoundError",
    "PersistenceError",
    "ResolutionTimeoutError",
    "ResolveOptions",
    "Tag",
    "ValidationError",
    "create_store",
    "resolve",
]
