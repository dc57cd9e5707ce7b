"""Graph-backed implementation of the ContentStore contract.

Data model in the graph:

    (:ContentNode {id, name, description})
    (:ContentNodeVersion {id, content, createdAt, commitMessage})-[:VERSION_OF]->(:ContentNode)
    (:ContentNodeVersion)-[:PREVIOUS_VERSION]->(:ContentNodeVersion)
    (:ContentNodeVersion)-[:INCLUDES {operation, key, createdAt}]->(:ContentNodeVersion)
    (:ContentNode)-[:HAS_TAG]->(:Tag {id, name, description})

Every query is parameterized and returns scalar columns only, so rows decode
the same way on Memgraph/Neo4j, FalkorDB and KuzuDB. ``createdAt`` is an ISO
string with microseconds; ordering by it orders by time. INCLUDES edges carry
their own ``createdAt`` so children come back in the order they were linked.
Each new version points at the version it superseded, so a node's history
is read by walking PREVIOUS_VERSION back from the latest one.
"""

from typing import Any

from janus_lite.db.graph_protocol import GraphBackend, QueryResult
from janus_lite.errors import (
    PASSTHROUGH_ERRORS,
    ConflictError,
    NotFoundError,
    Operation,
    PersistenceError,
    ValidationError,
)
from janus_lite.log_config import get_logger
from janus_lite.models import (
    ChildEdge,
    ContentNode,
    ContentNodeVersion,
    IncludesEdge,
    Tag,
    format_timestamp,
    new_id,
    parse_timestamp,
    utc_now,
    validate_slug,
)

log = get_logger("graph.persistence")

_VERSION_COLUMNS = "v.id AS id, v.content AS content, v.createdAt AS createdAt, v.commitMessage AS commitMessage"


class GraphPersistence:
    """ContentStore over any GraphBackend."""

    def __init__(self, backend: GraphBackend):
        self.backend = backend

    @property
    def store_name(self) -> str:
        return f"graph:{self.backend.backend_name}"

    # ------------------------------------------------------------------
    # Query plumbing
    # ------------------------------------------------------------------

    def _run(self, operation: Operation, cypher: str, params: dict[str, Any] | None = None) -> QueryResult:
        """Run a query, wrapping driver failures in PersistenceError."""
        try:
            return self.backend.query(cypher, params)
        except PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            log.error(f"Graph {operation} failed: {e}")
            raise PersistenceError(operation, str(e), query=" ".join(cypher.split())) from e

    @staticmethod
    def _to_node(row: list[Any]) -> ContentNode:
        node_id, name, description = row[0], row[1], row[2]
        if not isinstance(node_id, str) or not isinstance(name, str):
            log.warning(f"Malformed ContentNode row: {row!r}")
            raise ValidationError(f"Malformed ContentNode row: {row!r}")
        return ContentNode(id=node_id, name=name, description=description or "")

    @staticmethod
    def _to_version(row: list[Any]) -> ContentNodeVersion:
        version_id, content, created_at, commit_message = row[0], row[1], row[2], row[3]
        if not isinstance(version_id, str):
            log.warning(f"Malformed ContentNodeVersion row: {row!r}")
            raise ValidationError(f"Malformed ContentNodeVersion row: {row!r}")
        return ContentNodeVersion(
            id=version_id,
            content=content,
            created_at=parse_timestamp(created_at),
            commit_message=commit_message or "",
        )

    @staticmethod
    def _to_tag(row: list[Any]) -> Tag:
        tag_id, name, description = row[0], row[1], row[2]
        if not isinstance(tag_id, str) or not isinstance(name, str):
            log.warning(f"Malformed Tag row: {row!r}")
            raise ValidationError(f"Malformed Tag row: {row!r}")
        return Tag(id=tag_id, name=name, description=description or "")

    def _require_node(self, node_id: str) -> None:
        result = self._run(
            "read",
            "MATCH (n:ContentNode {id: $node_id}) RETURN n.id AS id",
            {"node_id": node_id},
        )
        if not result:
            raise NotFoundError("content node", node_id)

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def find_node_by_name(self, name: str) -> ContentNode:
        result = self._run(
            "read",
            "MATCH (n:ContentNode {name: $name}) "
            "RETURN n.id AS id, n.name AS name, n.description AS description LIMIT 1",
            {"name": name},
        )
        if not result:
            raise NotFoundError("content node", name)
        return self._to_node(result.result_set[0])

    def create_node(self, name: str, description: str = "") -> ContentNode:
        validate_slug(name)
        existing = self._run(
            "read",
            "MATCH (n:ContentNode {name: $name}) RETURN n.id AS id",
            {"name": name},
        )
        if existing:
            raise ConflictError("content node", name)

        node = ContentNode(id=new_id(), name=name, description=description or "")
        self._run(
            "create",
            "CREATE (n:ContentNode {id: $id, name: $name, description: $description})",
            node.to_dict(),
        )
        log.info(f"Created node {name} ({node.id})")
        return node

    def list_nodes(self) -> list[ContentNode]:
        result = self._run(
            "read",
            "MATCH (n:ContentNode) RETURN n.id AS id, n.name AS name, n.description AS description ORDER BY n.name",
        )
        return [self._to_node(row) for row in result]

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def add_version(self, node_id: str, content: str | None, commit_message: str) -> ContentNodeVersion:
        """Append a version and chain it to the node's previous latest version."""
        self._require_node(node_id)
        previous = self.get_latest_version(node_id)
        version = ContentNodeVersion(
            id=new_id(),
            content=content,
            created_at=utc_now(),
            commit_message=commit_message or "",
        )
        self._run(
            "create",
            "CREATE (v:ContentNodeVersion {id: $id, content: $content, createdAt: $created_at, commitMessage: $commit_message})",
            {
                "id": version.id,
                "content": version.content,
                "created_at": format_timestamp(version.created_at),
                "commit_message": version.commit_message,
            },
        )
        self._run(
            "create",
            "MATCH (v:ContentNodeVersion {id: $version_id}), (n:ContentNode {id: $node_id}) "
            "CREATE (v)-[:VERSION_OF]->(n)",
            {"version_id": version.id, "node_id": node_id},
        )
        if previous is not None:
            self._run(
                "create",
                "MATCH (v:ContentNodeVersion {id: $version_id}), (prev:ContentNodeVersion {id: $previous_id}) "
                "CREATE (v)-[:PREVIOUS_VERSION]->(prev)",
                {"version_id": version.id, "previous_id": previous.id},
            )
        log.debug(f"Added version {version.id} to node {node_id} (previous: {previous.id if previous else 'none'})")
        return version

    def list_versions(self, node_id: str) -> list[ContentNodeVersion]:
        """Walk the PREVIOUS_VERSION chain back from the latest version."""
        self._require_node(node_id)
        history = []
        version = self.get_latest_version(node_id)
        while version is not None:
            history.append(version)
            version = self._previous_version(version.id)
        return history

    def _previous_version(self, version_id: str) -> ContentNodeVersion | None:
        result = self._run(
            "read",
            "MATCH (:ContentNodeVersion {id: $version_id})-[:PREVIOUS_VERSION]->(v:ContentNodeVersion) "
            f"RETURN {_VERSION_COLUMNS}",
            {"version_id": version_id},
        )
        if not result:
            return None
        return self._to_version(result.result_set[0])

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def get_children(self, version_id: str) -> list[ChildEdge]:
        result = self._run(
            "read",
            "MATCH (p:ContentNodeVersion {id: $version_id})-[r:INCLUDES]->(v:ContentNodeVersion)"
            "-[:VERSION_OF]->(n:ContentNode) "
            f"RETURN {_VERSION_COLUMNS}, r.operation AS operation, r.`key` AS edgeKey, n.name AS nodeName "
            "ORDER BY r.createdAt, v.id",
            {"version_id": version_id},
        )
        children = []
        for row in result:
            children.append(
                ChildEdge(
                    version=self._to_version(row[:4]),
                    edge=IncludesEdge.from_properties(row[4], row[5]),
                    node_name=row[6] or "",
                )
            )
        return children

    def link_versions(self, parent_version_id: str, child_version_id: str, edge: IncludesEdge) -> None:
        edge.validate()
        if parent_version_id == child_version_id:
            raise ValidationError(f"Version {parent_version_id} cannot include itself", field="child")
        self.get_version(parent_version_id)
        self.get_version(child_version_id)

        self._run(
            "create",
            "MATCH (p:ContentNodeVersion {id: $parent_id}), (c:ContentNodeVersion {id: $child_id}) "
            "CREATE (p)-[:INCLUDES {operation: $operation, `key`: $key, createdAt: $created_at}]->(c)",
            {
                "parent_id": parent_version_id,
                "child_id": child_version_id,
                "operation": edge.operation.value,
                "key": edge.key,
                "created_at": format_timestamp(utc_now()),
            },
        )
        log.debug(f"Linked {parent_version_id} -[{edge.operation.value}:{edge.key or ''}]-> {child_version_id}")

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def create_tag(self, name: str, description: str = "") -> Tag:
        validate_slug(name)
        existing = self._run(
            "read",
            "MATCH (t:Tag {name: $name}) RETURN t.id AS id",
            {"name": name},
        )
        if existing:
            raise ConflictError("tag", name)

        tag = Tag(id=new_id(), name=name, description=description or "")
        self._run(
            "create",
            "CREATE (t:Tag {id: $id, name: $name, description: $description})",
            {"id": tag.id, "name": tag.name, "description": tag.description},
        )
        log.info(f"Created tag {name} ({tag.id})")
        return tag

    def find_tag_by_name(self, name: str) -> Tag:
        result = self._run(
            "read",
            "MATCH (t:Tag {name: $name}) RETURN t.id AS id, t.name AS name, t.description AS description LIMIT 1",
            {"name": name},
        )
        if not result:
            raise NotFoundError("tag", name)
        return self._to_tag(result.result_set[0])

    def list_tags(self) -> list[Tag]:
        result = self._run(
            "read",
            "MATCH (t:Tag) RETURN t.id AS id, t.name AS name, t.description AS description ORDER BY t.name",
        )
        return [self._to_tag(row) for row in result]

    def tag_node(self, node_id: str, tag_id: str) -> None:
        self._require_node(node_id)
        tag = self._run("read", "MATCH (t:Tag {id: $tag_id}) RETURN t.id AS id", {"tag_id": tag_id})
        if not tag:
            raise NotFoundError("tag", tag_id)

        params = {"node_id": node_id, "tag_id": tag_id}
        existing = self._run(
            "read",
            "MATCH (n:ContentNode {id: $node_id})-[:HAS_TAG]->(t:Tag {id: $tag_id}) RETURN t.id AS id",
            params,
        )
        if existing:
            return
        self._run(
            "create",
            "MATCH (n:ContentNode {id: $node_id}), (t:Tag {id: $tag_id}) CREATE (n)-[:HAS_TAG]->(t)",
            params,
        )

    def get_node_tags(self, node_id: str) -> list[str]:
        self._require_node(node_id)
        result = self._run(
            "read",
            "MATCH (n:ContentNode {id: $node_id})-[:HAS_TAG]->(t:Tag) RETURN t.name AS name ORDER BY t.name",
            {"node_id": node_id},
        )
        return [row[0] for row in result]

    def close(self) -> None:
        self.backend.close()
