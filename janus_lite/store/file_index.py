"""Derived index for the file-backed store and its self-healing reconciliation.

The index lives in ``.janus/indexes.json``:

    {
      "nodes": {"<name>": {"id": ..., "path": ..., "type": "content" | "concatenate"}},
      "tags":  {"<name>": {"id": ..., "description": ..., "nodes": ["<name>", ...]}}
    }

It is the only shared mutable state of the file store. Callers read the whole
document, change it in memory and write it back with an atomic rename. There is
no locking: two processes writing at once can clobber each other's changes
(single-writer assumption).

Reconciliation derives and repairs the index from the markdown files under
``content/nodes`` without destroying operator edits:

- Top-level ``*.md`` files that are not indexed become ``content`` nodes.
- Tag membership of every content node is re-derived from its frontmatter on
  every run: missing memberships are added (creating the tag if needed) and
  memberships the file no longer lists are removed.
- Top-level directories with at least one direct ``*.md`` file become
  ``concatenate`` nodes.
- Assigned node ids and existing tag ids/descriptions are never rewritten.
- The file is only written when something changed, so an unchanged tree leaves
  it byte-for-byte identical.
"""

import json
from dataclasses import dataclass, field
from pathlib import PurePosixPath

from janus_lite.errors import PersistenceError, ValidationError
from janus_lite.log_config import get_logger, log_timing
from janus_lite.models import NodeType, is_slug, new_id
from janus_lite.parsers import parse_frontmatter
from janus_lite.store.storage import FileSystemStorage

log = get_logger("index")

INDEX_PATH = ".janus/indexes.json"
CONTENT_ROOT = "content"
NODES_DIR = f"{CONTENT_ROOT}/nodes"
INSERTS_PATH = f"{CONTENT_ROOT}/inserts/inserts.yaml"
MARKDOWN_SUFFIX = ".md"


def default_tag_description(name: str) -> str:
    return f"Tag: {name}"


@dataclass
class IndexedNode:
    id: str
    path: str
    type: NodeType

    def to_dict(self) -> dict:
        return {"id": self.id, "path": self.path, "type": self.type.value}


@dataclass
class IndexedTag:
    id: str
    description: str
    nodes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "description": self.description, "nodes": list(self.nodes)}


@dataclass
class IndexDocument:
    """In-memory form of indexes.json (insertion order is preserved on save)."""

    nodes: dict[str, IndexedNode] = field(default_factory=dict)
    tags: dict[str, IndexedTag] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "nodes": {name: node.to_dict() for name, node in self.nodes.items()},
            "tags": {name: tag.to_dict() for name, tag in self.tags.items()},
        }

    def serialize(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False) + "\n"

    @classmethod
    def from_dict(cls, data) -> "IndexDocument":
        """Decode a parsed index, raising ValidationError on a bad shape."""
        if not isinstance(data, dict):
            raise ValidationError("Index document must be an object")
        nodes_raw = data.get("nodes", {})
        tags_raw = data.get("tags", {})
        if not isinstance(nodes_raw, dict) or not isinstance(tags_raw, dict):
            raise ValidationError("Index 'nodes' and 'tags' must be objects")

        doc = cls()
        for name, entry in nodes_raw.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str) or not isinstance(entry.get("path"), str):
                raise ValidationError(f"Malformed index entry for node {name!r}", field="nodes")
            try:
                node_type = NodeType(entry.get("type", NodeType.CONTENT.value))
            except ValueError as e:
                raise ValidationError(f"Unknown node type for {name!r}: {entry.get('type')!r}", field="type") from e
            doc.nodes[name] = IndexedNode(id=entry["id"], path=entry["path"], type=node_type)

        for name, entry in tags_raw.items():
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                raise ValidationError(f"Malformed index entry for tag {name!r}", field="tags")
            members = entry.get("nodes", [])
            if not isinstance(members, list) or not all(isinstance(m, str) for m in members):
                raise ValidationError(f"Tag {name!r} membership must be a list of names", field="nodes")
            doc.tags[name] = IndexedTag(
                id=entry["id"],
                description=str(entry.get("description", "")),
                nodes=list(members),
            )
        return doc

    def node_by_id(self, node_id: str) -> tuple[str, IndexedNode] | None:
        for name, node in self.nodes.items():
            if node.id == node_id:
                return name, node
        return None

    def tag_by_id(self, tag_id: str) -> tuple[str, IndexedTag] | None:
        for name, tag in self.tags.items():
            if tag.id == tag_id:
                return name, tag
        return None

    def tags_of(self, node_name: str) -> list[str]:
        return sorted(name for name, tag in self.tags.items() if node_name in tag.nodes)


@dataclass
class ReconcileReport:
    """What one reconciliation pass changed."""

    nodes_added: list[str] = field(default_factory=list)
    tags_created: list[str] = field(default_factory=list)
    memberships_added: int = 0
    memberships_removed: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.nodes_added or self.tags_created or self.memberships_added or self.memberships_removed)


class FileIndex:
    """Handle on the index document with an injected storage boundary."""

    def __init__(self, storage: FileSystemStorage):
        self.storage = storage

    # ------------------------------------------------------------------
    # Load / save
    # ------------------------------------------------------------------

    def load(self) -> IndexDocument:
        """Read the index; a missing or corrupt file reads as an empty index."""
        if not self.storage.exists(INDEX_PATH):
            return IndexDocument()
        try:
            return IndexDocument.from_dict(json.loads(self.storage.read_text(INDEX_PATH)))
        except (PersistenceError, json.JSONDecodeError, ValidationError) as e:
            log.warning(f"Index unreadable, starting from an empty index: {e}")
            return IndexDocument()

    def save(self, doc: IndexDocument) -> None:
        """Replace the index document atomically."""
        self.storage.write_atomic(INDEX_PATH, doc.serialize())
        log.debug(f"Saved index: {len(doc.nodes)} nodes, {len(doc.tags)} tags")

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    def reconcile(self) -> ReconcileReport:
        """Bring the index in line with the files on disk (idempotent)."""
        report = ReconcileReport()
        with log_timing("reconcile index", log):
            doc = self.load()
            entries = self._top_level_entries()

            self._discover_files(doc, entries, report)
            self._sync_tag_memberships(doc, report)
            self._discover_directories(doc, entries, report)

            if report.changed:
                self.save(doc)
                log.info(
                    f"Index reconciled: +{len(report.nodes_added)} nodes, +{len(report.tags_created)} tags, "
                    f"+{report.memberships_added}/-{report.memberships_removed} memberships"
                )
            else:
                log.debug("Index already up to date")
        return report

    def _list(self, rel: str) -> list[tuple[str, bool]]:
        """List a directory, treating unreadable or missing ones as empty."""
        if not self.storage.is_dir(rel):
            return []
        try:
            return self.storage.list_dir(rel)
        except PersistenceError as e:
            log.warning(f"Skipping unreadable directory {rel}: {e}")
            return []

    def _top_level_entries(self) -> list[tuple[str, bool]]:
        return [(name, is_dir) for name, is_dir in self._list(NODES_DIR) if not name.startswith(".")]

    def _discover_files(self, doc: IndexDocument, entries: list[tuple[str, bool]], report: ReconcileReport) -> None:
        for filename, is_dir in entries:
            if is_dir or not filename.endswith(MARKDOWN_SUFFIX):
                continue
            name = filename[: -len(MARKDOWN_SUFFIX)]
            if name in doc.nodes:
                continue
            if not is_slug(name):
                log.warning(f"Skipping {NODES_DIR}/{filename}: {name!r} is not a valid node name")
                continue
            doc.nodes[name] = IndexedNode(id=new_id(), path=f"{NODES_DIR}/{filename}", type=NodeType.CONTENT)
            report.nodes_added.append(name)
            log.debug(f"Discovered content node {name}")

    def _sync_tag_memberships(self, doc: IndexDocument, report: ReconcileReport) -> None:
        for tag in doc.tags.values():
            kept = []
            for member in tag.nodes:
                if member in kept:
                    log.debug(f"Dropped duplicate {member} from a tag membership list")
                elif member not in doc.nodes:
                    log.debug(f"Dropped unindexed node {member} from a tag membership list")
                else:
                    kept.append(member)
                    continue
                report.memberships_removed += 1
            tag.nodes = kept

        for name, node in doc.nodes.items():
            if node.type is not NodeType.CONTENT:
                continue
            try:
                text = self.storage.read_text(node.path)
            except PersistenceError as e:
                log.warning(f"Skipping tag sync for {name}: {e}")
                continue

            meta, _ = parse_frontmatter(text)
            wanted = []
            for tag_name in meta.tags:
                if not is_slug(tag_name):
                    log.warning(f"Ignoring invalid tag {tag_name!r} in {node.path}")
                    continue
                if tag_name not in wanted:
                    wanted.append(tag_name)

            for tag_name in wanted:
                tag = doc.tags.get(tag_name)
                if tag is None:
                    tag = IndexedTag(id=new_id(), description=default_tag_description(tag_name))
                    doc.tags[tag_name] = tag
                    report.tags_created.append(tag_name)
                if name not in tag.nodes:
                    tag.nodes.append(name)
                    report.memberships_added += 1

            for tag_name, tag in doc.tags.items():
                if name in tag.nodes and tag_name not in wanted:
                    tag.nodes = [member for member in tag.nodes if member != name]
                    report.memberships_removed += 1
                    log.debug(f"Removed {name} from tag {tag_name}")

    def _discover_directories(self, doc: IndexDocument, entries: list[tuple[str, bool]], report: ReconcileReport) -> None:
        for dirname, is_dir in entries:
            if not is_dir or PurePosixPath(dirname).suffix:
                continue
            if dirname in doc.nodes:
                continue
            if not is_slug(dirname):
                log.warning(f"Skipping {NODES_DIR}/{dirname}/: not a valid node name")
                continue
            rel = f"{NODES_DIR}/{dirname}"
            if not markdown_files(self._list(rel)):
                continue
            doc.nodes[dirname] = IndexedNode(id=new_id(), path=rel, type=NodeType.CONCATENATE)
            report.nodes_added.append(dirname)
            log.debug(f"Discovered directory node {dirname}")


def markdown_files(entries: list[tuple[str, bool]]) -> list[str]:
    """Direct *.md file names from a listing, sorted lexicographically."""
    return sorted(name for name, is_dir in entries if not is_dir and name.endswith(MARKDOWN_SUFFIX))
