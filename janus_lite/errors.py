"""Error taxonomy for Janus Lite.

Every error raised by the content model, the persistence backends and the
resolution engine derives from JanusError so callers (the CLI, services) can
catch one base class and still branch on the concrete kind.
"""

from typing import Literal

Operation = Literal["create", "read", "update", "delete", "connect"]


class JanusError(Exception):
    """Base class for all Janus Lite errors."""


class NotFoundError(JanusError):
    """An entity, version or tag is absent."""

    def __init__(self, entity_type: str, identifier: str | None = None):
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(f"{entity_type} not found: {identifier or 'unknown'}")


class PersistenceError(JanusError):
    """An I/O or query failure in a storage backend.

    Attributes:
        operation: Kind of operation that failed
        original_message: Message from the underlying driver or OS
        query: Failing Cypher query, when the graph backend raised
        path: Failing file path, when the file backend raised
    """

    def __init__(
        self,
        operation: Operation,
        original_message: str,
        query: str | None = None,
        path: str | None = None,
    ):
        self.operation = operation
        self.original_message = original_message
        self.query = query
        self.path = path
        where = f" ({path})" if path else ""
        super().__init__(f"Database {operation} failed{where}: {original_message}")


class ValidationError(JanusError):
    """Stored or supplied data violates the content model."""

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ConflictError(JanusError):
    """A create call collided with an existing name."""

    def __init__(self, entity_type: str, name: str):
        self.entity_type = entity_type
        self.name = name
        super().__init__(f"{entity_type} already exists: {name}")


class CycleDetectedError(JanusError):
    """Resolution re-entered a version already on the current path."""

    def __init__(self, version_id: str, path: tuple[str, ...] = ()):
        self.version_id = version_id
        self.path = path
        chain = " -> ".join((*path, version_id))
        super().__init__(f"INCLUDES cycle at version {version_id}: {chain}")


class ResolutionTimeoutError(JanusError):
    """The caller-supplied resolution deadline passed."""

    def __init__(self, version_id: str):
        self.version_id = version_id
        super().__init__(f"Resolution deadline exceeded before fetching version {version_id}")


# Errors that persistence wrappers must let through unchanged
PASSTHROUGH_ERRORS = (NotFoundError, ValidationError, ConflictError, CycleDetectedError, PersistenceError)

__all__ = [
    "JanusError",
    "NotFoundError",
    "PersistenceError",
    "ValidationError",
    "ConflictError",
    "CycleDetectedError",
    "ResolutionTimeoutError",
    "PASSTHROUGH_ERRORS",
]
