"""Content model for Janus Lite.

Entities:
- ContentNode: a named, versioned prompt fragment (identity + slug name)
- ContentNodeVersion: an immutable snapshot of a node's content
- IncludesEdge: typed parent-version -> child-version composition edge
- Tag: a slug label with many-to-many membership over nodes

Names are slugs (lowercase, hyphen-delimited, 1-100 chars). Insert keys name
the {{key}} placeholders substituted by insert edges.
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum

from janus_lite.errors import ValidationError

SLUG_MAX_LENGTH = 100

_SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
_INSERT_KEY_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*$")


class EdgeOperation(str, Enum):
    """How a child version is composed into its parent."""

    INSERT = "insert"
    CONCATENATE = "concatenate"


class NodeType(str, Enum):
    """File-backed node kinds recorded in the index."""

    CONTENT = "content"
    CONCATENATE = "concatenate"


def is_slug(name: str) -> bool:
    """Check whether name is a valid slug."""
    return isinstance(name, str) and 0 < len(name) <= SLUG_MAX_LENGTH and bool(_SLUG_RE.match(name))


def validate_slug(name: str, field_name: str = "name") -> str:
    """Return name unchanged or raise ValidationError."""
    if not is_slug(name):
        raise ValidationError(
            f"Invalid slug {name!r}: expected lowercase letters, digits and single hyphens "
            f"(1-{SLUG_MAX_LENGTH} chars, no leading/trailing hyphen)",
            field=field_name,
        )
    return name


def is_insert_key(key: str | None) -> bool:
    """Check whether key can name an insert placeholder."""
    return isinstance(key, str) and bool(_INSERT_KEY_RE.match(key))


def new_id() -> str:
    """Generate a UUIDv4 string identifier."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 UTC with fixed microsecond precision (sorts lexically by time)."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


def parse_timestamp(value) -> datetime:
    """Decode a stored createdAt (ISO string or datetime-like) into an aware datetime."""
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if hasattr(value, "to_native"):
        # neo4j.time.DateTime
        return parse_timestamp(value.to_native())
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError as e:
            raise ValidationError(f"Invalid createdAt timestamp: {value!r}", field="createdAt") from e
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise ValidationError(f"Invalid createdAt timestamp: {value!r}", field="createdAt")


@dataclass(frozen=True)
class ContentNode:
    """A named, versioned prompt fragment."""

    id: str
    name: str
    description: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class ContentNodeVersion:
    """Immutable snapshot of a node's content.

    Attributes:
        id: Version identifier
        content: Text content (None for pure composition versions)
        created_at: Creation instant (UTC); latest version = max created_at
        commit_message: Message recorded with the version
    """

    id: str
    content: str | None
    created_at: datetime
    commit_message: str = ""


@dataclass(frozen=True)
class IncludesEdge:
    """Properties of an INCLUDES relationship."""

    operation: EdgeOperation
    key: str | None = None

    @classmethod
    def insert(cls, key: str) -> "IncludesEdge":
        return cls(EdgeOperation.INSERT, key)

    @classmethod
    def concatenate(cls) -> "IncludesEdge":
        return cls(EdgeOperation.CONCATENATE, None)

    @classmethod
    def from_properties(cls, operation: str, key: str | None = None) -> "IncludesEdge":
        """Build an edge from stored properties, rejecting unknown operations."""
        try:
            op = EdgeOperation(operation)
        except ValueError as e:
            raise ValidationError(f"Unknown INCLUDES operation: {operation!r}", field="operation") from e
        return cls(op, key if op is EdgeOperation.INSERT else None)

    def validate(self) -> "IncludesEdge":
        """Enforce the insert-key rule before an edge is written."""
        if self.operation is EdgeOperation.INSERT and not is_insert_key(self.key):
            raise ValidationError(
                f"Insert edge key {self.key!r} must match ^[a-zA-Z][a-zA-Z0-9_]*$",
                field="key",
            )
        return self


@dataclass(frozen=True)
class ChildEdge:
    """An outgoing INCLUDES edge paired with its child version and owning node name."""

    version: ContentNodeVersion
    edge: IncludesEdge
    node_name: str


@dataclass(frozen=True)
class Tag:
    """A slug label attached to content nodes."""

    id: str
    name: str
    description: str = ""


@dataclass(frozen=True)
class ResolveOptions:
    """Options threaded unchanged through a resolution.

    Attributes:
        exclude_version_ids: Versions that resolve to "" without being fetched
        include_tags: Accepted and carried through; does not filter
        deadline: time.monotonic() instant after which fetching stops
    """

    exclude_version_ids: frozenset[str] = field(default_factory=frozenset)
    include_tags: tuple[str, ...] = ()
    deadline: float | None = None

    def __post_init__(self):
        # Accept any iterable from callers
        object.__setattr__(self, "exclude_version_ids", frozenset(self.exclude_version_ids))
        object.__setattr__(self, "include_tags", tuple(self.include_tags))
