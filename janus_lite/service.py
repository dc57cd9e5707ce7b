"""Name-based operations over a ContentStore.

The store contract speaks in ids; ContentService is the layer the CLI (and
any embedding application) uses to work with node and tag names instead.
Edges are always created between the latest versions of the named nodes.
"""

import time
from collections.abc import Mapping
from dataclasses import dataclass, replace

from janus_lite.errors import NotFoundError, ValidationError
from janus_lite.log_config import get_logger
from janus_lite.models import ContentNode, ContentNodeVersion, EdgeOperation, IncludesEdge, ResolveOptions, Tag
from janus_lite.persistence import ContentStore
from janus_lite.resolver import resolve
from janus_lite.store.file_index import default_tag_description

log = get_logger("service")


@dataclass(frozen=True)
class NodeDetails:
    node: ContentNode
    latest: ContentNodeVersion | None
    tags: list[str]


class ContentService:
    """Facade combining a store with the resolution engine."""

    def __init__(self, store: ContentStore, resolve_timeout: float | None = None):
        """Initialize the service.

        Args:
            store: Persistence backend
            resolve_timeout: Default seconds allowed per render (None = unbounded)
        """
        self.store = store
        self.resolve_timeout = resolve_timeout

    def _latest(self, node: ContentNode) -> ContentNodeVersion:
        latest = self.store.get_latest_version(node.id)
        if latest is None:
            raise NotFoundError("content node version", node.name)
        return latest

    def create_node(self, name: str, description: str = "") -> ContentNode:
        return self.store.create_node(name, description)

    def add_version(self, name: str, content: str | None, commit_message: str = "") -> ContentNodeVersion:
        node = self.store.find_node_by_name(name)
        return self.store.add_version(node.id, content, commit_message)

    def link(self, parent: str, child: str, operation: str, key: str | None = None) -> IncludesEdge:
        """Include the latest version of child in the latest version of parent."""
        try:
            op = EdgeOperation(operation)
        except ValueError as e:
            raise ValidationError(f"Unknown operation {operation!r}", field="operation") from e
        edge = IncludesEdge(op, key if op is EdgeOperation.INSERT else None).validate()

        parent_version = self._latest(self.store.find_node_by_name(parent))
        child_version = self._latest(self.store.find_node_by_name(child))
        self.store.link_versions(parent_version.id, child_version.id, edge)
        log.info(f"Linked {parent} -> {child} ({op.value}{':' + key if key and op is EdgeOperation.INSERT else ''})")
        return edge

    def tag(self, node_name: str, tag_name: str) -> Tag:
        """Tag a node, creating the tag on first use."""
        node = self.store.find_node_by_name(node_name)
        try:
            tag = self.store.find_tag_by_name(tag_name)
        except NotFoundError:
            tag = self.store.create_tag(tag_name, default_tag_description(tag_name))
        self.store.tag_node(node.id, tag.id)
        return tag

    def history(self, name: str) -> list[ContentNodeVersion]:
        """Return a node's versions, newest first."""
        node = self.store.find_node_by_name(name)
        return self.store.list_versions(node.id)

    def details(self, name: str) -> NodeDetails:
        node = self.store.find_node_by_name(name)
        return NodeDetails(
            node=node,
            latest=self.store.get_latest_version(node.id),
            tags=self.store.get_node_tags(node.id),
        )

    def render(
        self,
        name: str,
        context: Mapping[str, str] | None = None,
        options: ResolveOptions | None = None,
    ) -> str:
        """Resolve the latest version of a node into final text.

        Raises:
            NotFoundError: The node does not exist or has no versions
            ResolutionTimeoutError: resolve_timeout elapsed
        """
        latest = self._latest(self.store.find_node_by_name(name))
        options = options or ResolveOptions()
        if options.deadline is None and self.resolve_timeout is not None:
            options = replace(options, deadline=time.monotonic() + self.resolve_timeout)
        return resolve(self.store, latest.id, context, options)
