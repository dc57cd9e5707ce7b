"""File/git-backed implementation of the ContentStore contract.

Nodes are markdown files (or directories of them) under content/nodes; the
derived index in .janus/indexes.json maps names to ids, paths and types and
records tag membership. The index is reconciled once when the store opens and
again on a lookup miss, so hand-edited files become visible without an
explicit reindex.

The file layout keeps only the current text of a node. Its single version is
synthesized from disk on each read: the id is derived from the node id and a
hash of the text, so it stays stable until the file changes. INCLUDES edges
have no representation here; composition is expressed with directory nodes
and {{insert:KEY}} definitions.
"""

import hashlib
import uuid

from janus_lite.errors import ConflictError, NotFoundError, PersistenceError
from janus_lite.log_config import get_logger
from janus_lite.models import (
    ChildEdge,
    ContentNode,
    ContentNodeVersion,
    IncludesEdge,
    NodeType,
    Tag,
    new_id,
    validate_slug,
)
from janus_lite.parsers import (
    Frontmatter,
    apply_insert_definitions,
    parse_frontmatter,
    parse_insert_definitions,
    render_document,
    strip_frontmatter,
)
from janus_lite.store.file_index import (
    INSERTS_PATH,
    NODES_DIR,
    FileIndex,
    IndexDocument,
    IndexedNode,
    IndexedTag,
    markdown_files,
)
from janus_lite.store.storage import FileSystemStorage

log = get_logger("file_store")

# Namespace for deriving version ids from node id + content hash
VERSION_NAMESPACE = uuid.UUID("6f1c9a52-3b8e-4d0a-9c57-2e4f8b1d7a90")

CURRENT_VERSION_MESSAGE = "Current version"


def _single_line(text: str) -> str:
    return " ".join(text.split())


class FilePersistence:
    """ContentStore over a directory tree of markdown files."""

    def __init__(self, storage: FileSystemStorage, reconcile_on_start: bool = True):
        """Open the store.

        Args:
            storage: File primitives bound to the store root
            reconcile_on_start: Repair the index from disk before first use
        """
        self.storage = storage
        self.index = FileIndex(storage)
        if reconcile_on_start:
            self.index.reconcile()

    @property
    def store_name(self) -> str:
        return "file"

    def reconcile(self):
        return self.index.reconcile()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lookup_node(self, name: str) -> tuple[IndexDocument, IndexedNode | None]:
        doc = self.index.load()
        entry = doc.nodes.get(name)
        if entry is None:
            log.debug(f"Node {name} not indexed, reconciling")
            self.index.reconcile()
            doc = self.index.load()
            entry = doc.nodes.get(name)
        return doc, entry

    def _require_node_by_id(self, doc: IndexDocument, node_id: str) -> tuple[str, IndexedNode]:
        found = doc.node_by_id(node_id)
        if found is None:
            raise NotFoundError("content node", node_id)
        return found

    def _describe(self, entry: IndexedNode) -> str:
        if entry.type is NodeType.CONCATENATE:
            return f"Concatenated content from {entry.path}"
        meta, _ = parse_frontmatter(self.storage.read_text(entry.path))
        return meta.description or ""

    def _to_node(self, name: str, entry: IndexedNode) -> ContentNode:
        return ContentNode(id=entry.id, name=name, description=self._describe(entry))

    def _insert_definitions(self):
        if not self.storage.exists(INSERTS_PATH):
            return []
        return parse_insert_definitions(self.storage.read_text(INSERTS_PATH))

    def _render_content(self, name: str, entry: IndexedNode) -> str:
        if entry.type is NodeType.CONCATENATE:
            listing = self.storage.list_dir(entry.path) if self.storage.is_dir(entry.path) else []
            bodies = [strip_frontmatter(self.storage.read_text(f"{entry.path}/{f}")) for f in markdown_files(listing)]
            content = "\n\n".join(body for body in bodies if body)
        else:
            content = strip_frontmatter(self.storage.read_text(entry.path))
        return apply_insert_definitions(content, name, self._insert_definitions())

    def _current_version(self, name: str, entry: IndexedNode) -> ContentNodeVersion:
        content = self._render_content(name, entry)
        digest = hashlib.sha256(content.encode("utf-8")).hexdigest()
        created_at = self.storage.modified_at(entry.path)
        return ContentNodeVersion(
            id=str(uuid.uuid5(VERSION_NAMESPACE, f"{entry.id}:{digest}")),
            content=content,
            created_at=created_at,
            commit_message=CURRENT_VERSION_MESSAGE,
        )

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def find_node_by_name(self, name: str) -> ContentNode:
        _, entry = self._lookup_node(name)
        if entry is None:
            raise NotFoundError("content node", name)
        return self._to_node(name, entry)

    def create_node(self, name: str, description: str = "") -> ContentNode:
        validate_slug(name)
        doc = self.index.load()
        file_path = f"{NODES_DIR}/{name}.md"
        if name in doc.nodes or self.storage.exists(file_path) or self.storage.exists(f"{NODES_DIR}/{name}"):
            raise ConflictError("content node", name)

        description = _single_line(description)
        self.storage.write_text(file_path, render_document(Frontmatter(description=description), ""))
        entry = IndexedNode(id=new_id(), path=file_path, type=NodeType.CONTENT)
        doc.nodes[name] = entry
        self.index.save(doc)
        self.storage.commit(f"Created node: {name}")
        log.info(f"Created node {name} ({entry.id})")
        return ContentNode(id=entry.id, name=name, description=description)

    def list_nodes(self) -> list[ContentNode]:
        doc = self.index.load()
        return [self._to_node(name, doc.nodes[name]) for name in sorted(doc.nodes)]

    # ------------------------------------------------------------------
    # Versions
    # ------------------------------------------------------------------

    def add_version(self, node_id: str, content: str | None, commit_message: str) -> ContentNodeVersion:
        doc = self.index.load()
        name, entry = self._require_node_by_id(doc, node_id)
        if entry.type is NodeType.CONCATENATE:
            raise PersistenceError(
                "update",
                f"Directory node {name} is composed from its files; edit them instead",
                path=entry.path,
            )

        if self.storage.exists(entry.path):
            meta, _ = parse_frontmatter(self.storage.read_text(entry.path))
        else:
            meta = Frontmatter()
        self.storage.write_text(entry.path, render_document(meta, content or ""))
        self.storage.commit(commit_message or f"Added version to node: {name}")
        log.info(f"Added version to node {name}")
        # Same id and message a later get_latest_version reports for this text
        return self._current_version(name, entry)

    def get_latest_version(self, node_id: str) -> ContentNodeVersion | None:
        doc = self.index.load()
        found = doc.node_by_id(node_id)
        if found is None:
            return None
        name, entry = found
        if not self.storage.exists(entry.path):
            return None
        return self._current_version(name, entry)

    def list_versions(self, node_id: str) -> list[ContentNodeVersion]:
        """Return the current version only; earlier text lives in git history."""
        doc = self.index.load()
        name, entry = self._require_node_by_id(doc, node_id)
        if not self.storage.exists(entry.path):
            return []
        return [self._current_version(name, entry)]

    def get_version(self, version_id: str) -> ContentNodeVersion:
        doc = self.index.load()
        for name, entry in doc.nodes.items():
            if not self.storage.exists(entry.path):
                continue
            version = self._current_version(name, entry)
            if version.id == version_id:
                return version
        raise NotFoundError("content node version", version_id)

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def get_children(self, version_id: str) -> list[ChildEdge]:
        return []

    def link_versions(self, parent_version_id: str, child_version_id: str, edge: IncludesEdge) -> None:
        edge.validate()
        raise PersistenceError(
            "create",
            "The file store does not record INCLUDES edges; compose with directory nodes or insert definitions",
        )

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def create_tag(self, name: str, description: str = "") -> Tag:
        validate_slug(name)
        doc = self.index.load()
        if name in doc.tags:
            raise ConflictError("tag", name)
        tag = IndexedTag(id=new_id(), description=description)
        doc.tags[name] = tag
        self.index.save(doc)
        self.storage.commit(f"Created tag: {name}")
        return Tag(id=tag.id, name=name, description=tag.description)

    def find_tag_by_name(self, name: str) -> Tag:
        doc = self.index.load()
        tag = doc.tags.get(name)
        if tag is None:
            # Tags declared only in frontmatter appear after reconciliation
            self.index.reconcile()
            tag = self.index.load().tags.get(name)
        if tag is None:
            raise NotFoundError("tag", name)
        return Tag(id=tag.id, name=name, description=tag.description)

    def list_tags(self) -> list[Tag]:
        doc = self.index.load()
        return [Tag(id=doc.tags[name].id, name=name, description=doc.tags[name].description) for name in sorted(doc.tags)]

    def tag_node(self, node_id: str, tag_id: str) -> None:
        doc = self.index.load()
        node_name, entry = self._require_node_by_id(doc, node_id)
        found = doc.tag_by_id(tag_id)
        if found is None:
            raise NotFoundError("tag", tag_id)
        tag_name, tag = found

        if entry.type is NodeType.CONTENT:
            # Frontmatter is the source of truth reconciliation reads back
            meta, body = parse_frontmatter(self.storage.read_text(entry.path))
            if tag_name not in meta.tags:
                meta.tags.append(tag_name)
                self.storage.write_text(entry.path, render_document(meta, body))

        if node_name not in tag.nodes:
            tag.nodes.append(node_name)
            self.index.save(doc)
        self.storage.commit(f"Tagged {node_name} with {tag_name}")

    def get_node_tags(self, node_id: str) -> list[str]:
        doc = self.index.load()
        name, _ = self._require_node_by_id(doc, node_id)
        return doc.tags_of(name)

    def close(self) -> None:
        pass
