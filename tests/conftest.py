"""Shared pytest fixtures for Janus Lite tests."""

from __future__ import annotations

import os
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

# Keep test runs out of the user's log directory
os.environ.setdefault("JANUS_LITE_LOG_DIR", tempfile.mkdtemp(prefix="janus-test-logs-"))

from janus_lite.errors import ConflictError, NotFoundError  # noqa: E402
from janus_lite.models import (  # noqa: E402
    ChildEdge,
    ContentNode,
    ContentNodeVersion,
    IncludesEdge,
    Tag,
    new_id,
    validate_slug,
)

_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class InMemoryStore:
    """ContentStore held in dicts that records every version fetch."""

    store_name = "memory"

    def __init__(self):
        self.nodes: dict[str, ContentNode] = {}
        self.versions: dict[str, tuple[ContentNodeVersion, str]] = {}
        self.edges: dict[str, list[tuple[str, IncludesEdge]]] = {}
        self.tags: dict[str, Tag] = {}
        self.memberships: set[tuple[str, str]] = set()
        self.fetched: list[str] = []
        self._clock = 0

    def _now(self) -> datetime:
        self._clock += 1
        return _EPOCH + timedelta(seconds=self._clock)

    # Test helpers

    def add(self, name: str, content: str | None) -> str:
        """Create (or reuse) a node and append a version; returns the version id."""
        try:
            node = self.find_node_by_name(name)
        except NotFoundError:
            node = self.create_node(name)
        return self.add_version(node.id, content, f"add {name}").id

    def connect(self, parent_id: str, child_id: str, edge: IncludesEdge) -> None:
        """Add an edge without validation, e.g. to build a cycle."""
        self.edges.setdefault(parent_id, []).append((child_id, edge))

    # ContentStore

    def find_node_by_name(self, name):
        for node in self.nodes.values():
            if node.name == name:
                return node
        raise NotFoundError("content node", name)

    def create_node(self, name, description=""):
        validate_slug(name)
        if any(node.name == name for node in self.nodes.values()):
            raise ConflictError("content node", name)
        node = ContentNode(id=new_id(), name=name, description=description)
        self.nodes[node.id] = node
        return node

    def list_nodes(self):
        return sorted(self.nodes.values(), key=lambda n: n.name)

    def add_version(self, node_id, content, commit_message):
        if node_id not in self.nodes:
            raise NotFoundError("content node", node_id)
        version = ContentNodeVersion(id=new_id(), content=content, created_at=self._now(), commit_message=commit_message)
        self.versions[version.id] = (version, node_id)
        return version

    def get_latest_version(self, node_id):
        owned = [v for v, owner in self.versions.values() if owner == node_id]
        return max(owned, key=lambda v: v.created_at) if owned else None

    def list_versions(self, node_id):
        if node_id not in self.nodes:
            raise NotFoundError("content node", node_id)
        owned = [v for v, owner in self.versions.values() if owner == node_id]
        return sorted(owned, key=lambda v: v.created_at, reverse=True)

    def get_version(self, version_id):
        self.fetched.append(version_id)
        if version_id not in self.versions:
            raise NotFoundError("content node version", version_id)
        return self.versions[version_id][0]

    def get_children(self, version_id):
        children = []
        for child_id, edge in self.edges.get(version_id, []):
            version, owner = self.versions[child_id]
            children.append(ChildEdge(version=version, edge=edge, node_name=self.nodes[owner].name))
        return children

    def link_versions(self, parent_version_id, child_version_id, edge):
        edge.validate()
        for version_id in (parent_version_id, child_version_id):
            if version_id not in self.versions:
                raise NotFoundError("content node version", version_id)
        self.connect(parent_version_id, child_version_id, edge)

    def create_tag(self, name, description=""):
        validate_slug(name)
        if any(tag.name == name for tag in self.tags.values()):
            raise ConflictError("tag", name)
        tag = Tag(id=new_id(), name=name, description=description)
        self.tags[tag.id] = tag
        return tag

    def find_tag_by_name(self, name):
        for tag in self.tags.values():
            if tag.name == name:
                return tag
        raise NotFoundError("tag", name)

    def list_tags(self):
        return sorted(self.tags.values(), key=lambda t: t.name)

    def tag_node(self, node_id, tag_id):
        if node_id not in self.nodes:
            raise NotFoundError("content node", node_id)
        if tag_id not in self.tags:
            raise NotFoundError("tag", tag_id)
        self.memberships.add((node_id, tag_id))

    def get_node_tags(self, node_id):
        return sorted(self.tags[tag_id].name for owner, tag_id in self.memberships if owner == node_id)

    def close(self):
        pass


@pytest.fixture
def memory_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def write_tree(tmp_path):
    """Write {relative path: text} into tmp_path and return the root."""

    def _write(files: dict[str, str]) -> Path:
        for rel, text in files.items():
            target = tmp_path / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return tmp_path

    return _write


@pytest.fixture
def storage(tmp_path):
    from janus_lite.store import FileSystemStorage

    return FileSystemStorage(tmp_path)


@pytest.fixture
def file_store(storage):
    from janus_lite.store import FilePersistence

    return FilePersistence(storage)
