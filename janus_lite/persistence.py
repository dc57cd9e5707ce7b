"""Persistence contract shared by the graph and file backends.

The resolution engine and ContentService depend only on ContentStore; the
graph-backed (janus_lite.db.graph_persistence.GraphPersistence) and
file-backed (janus_lite.store.file_persistence.FilePersistence)
implementations are interchangeable behind it.

Every method may block on I/O (a Bolt round trip, a file read).
"""

from typing import Protocol, runtime_checkable

from janus_lite.models import ChildEdge, ContentNode, ContentNodeVersion, IncludesEdge, Tag


@runtime_checkable
class ContentStore(Protocol):
    """Capability set any persistence backend must provide."""

    @property
    def store_name(self) -> str:
        """Return the backend name (e.g., 'file', 'graph:memgraph')."""
        ...

    # Nodes ---------------------------------------------------------------

    def find_node_by_name(self, name: str) -> ContentNode:
        """Return the node with this slug name.

        Raises:
            NotFoundError: No node has this name
        """
        ...

    def create_node(self, name: str, description: str = "") -> ContentNode:
        """Create a node with a fresh id.

        Raises:
            ConflictError: A node with this name already exists
            ValidationError: name is not a slug
        """
        ...

    def list_nodes(self) -> list[ContentNode]:
        """Return all nodes ordered by name."""
        ...

    # Versions ------------------------------------------------------------

    def add_version(self, node_id: str, content: str | None, commit_message: str) -> ContentNodeVersion:
        """Append a version to a node.

        Raises:
            NotFoundError: The node does not exist
        """
        ...

    def get_latest_version(self, node_id: str) -> ContentNodeVersion | None:
        """Return the version with the greatest created_at, or None."""
        ...

    def list_versions(self, node_id: str) -> list[ContentNodeVersion]:
        """Return a node's version history, newest first.

        Raises:
            NotFoundError: The node does not exist
        """
        ...

    def get_version(self, version_id: str) -> ContentNodeVersion:
        """Return one version.

        Raises:
            NotFoundError: No version has this id
        """
        ...

    # Edges ---------------------------------------------------------------

    def get_children(self, version_id: str) -> list[ChildEdge]:
        """Return outgoing INCLUDES edges with child versions and owning node names."""
        ...

    def link_versions(self, parent_version_id: str, child_version_id: str, edge: IncludesEdge) -> None:
        """Create an INCLUDES edge.

        Raises:
            NotFoundError: Either version does not exist
            ValidationError: The edge violates the insert-key rule
        """
        ...

    # Tags ----------------------------------------------------------------

    def create_tag(self, name: str, description: str = "") -> Tag:
        """Create a tag with a fresh id.

        Raises:
            ConflictError: A tag with this name already exists
        """
        ...

    def find_tag_by_name(self, name: str) -> Tag:
        """Return the tag with this name.

        Raises:
            NotFoundError: No tag has this name
        """
        ...

    def list_tags(self) -> list[Tag]:
        """Return all tags ordered by name."""
        ...

    def tag_node(self, node_id: str, tag_id: str) -> None:
        """Attach a tag to a node (idempotent).

        Raises:
            NotFoundError: The node or the tag does not exist
        """
        ...

    def get_node_tags(self, node_id: str) -> list[str]:
        """Return the names of the tags attached to a node, sorted."""
        ...

    def close(self) -> None:
        """Release backend resources."""
        ...
