"""Composition resolution: turn a content node version into final prompt text.

A version's text is its own content with {{key}} placeholders filled from
insert children, followed by its concatenate children:

1. Excluded version ids resolve to "" before anything is fetched.
2. Insert children resolve left to right in store order. Each sees the context
   as it stands at that point, so a later insert can use an earlier one but
   not the other way round.
3. Every {{key}} literally present in the version's own content is replaced
   from the final context. Unknown placeholders are left alone.
4. Concatenate children resolve in order of their owning node's name (ties by
   version id) and are joined with single newlines, empty results dropped.
5. Own text and concatenated text are joined with one newline when both are
   non-empty.

The context is never mutated in place: each level works on its own copy and
hands read-only snapshots downward, so sibling branches stay independent.
There is no memoization; a version reachable through two paths is fetched
twice. Re-entering a version already on the current path raises
CycleDetectedError.
"""

import re
import time
from collections.abc import Mapping
from types import MappingProxyType

from janus_lite.errors import CycleDetectedError, ResolutionTimeoutError, ValidationError
from janus_lite.log_config import get_logger, log_timing
from janus_lite.models import ChildEdge, EdgeOperation, ResolveOptions, is_insert_key
from janus_lite.persistence import ContentStore

log = get_logger("resolver")

_PLACEHOLDER = re.compile(r"\{\{([^{}]+)\}\}")


def resolve(
    store: ContentStore,
    version_id: str,
    context: Mapping[str, str] | None = None,
    options: ResolveOptions | None = None,
) -> str:
    """Render a version id into final text.

    Args:
        store: Persistence backend to fetch versions and edges from
        version_id: Root version to render
        context: Initial insert values ({key: text}); not modified
        options: Exclusions, tag hints and deadline

    Returns:
        Resolved text ("" when the root is excluded or everything is empty)

    Raises:
        NotFoundError: A version on the path does not exist
        PersistenceError: The store failed
        CycleDetectedError: INCLUDES edges form a cycle on the path
        ResolutionTimeoutError: options.deadline passed
        ValidationError: An insert edge carries an invalid key
    """
    options = options or ResolveOptions()
    snapshot = MappingProxyType(dict(context or {}))
    with log_timing(f"resolve {version_id}", log):
        return _resolve_version(store, version_id, snapshot, options, ())


def substitute_placeholders(content: str, context: Mapping[str, str]) -> str:
    """Replace each {{key}} in content with context[key].

    One pass over the original text; substituted values are never rescanned.
    """
    return _PLACEHOLDER.sub(lambda m: context.get(m.group(1), m.group(0)), content)


def _check_deadline(options: ResolveOptions, version_id: str) -> None:
    if options.deadline is not None and time.monotonic() > options.deadline:
        raise ResolutionTimeoutError(version_id)


def _resolve_version(
    store: ContentStore,
    version_id: str,
    context: Mapping[str, str],
    options: ResolveOptions,
    path: tuple[str, ...],
) -> str:
    if version_id in options.exclude_version_ids:
        log.trace(f"Version {version_id} excluded")
        return ""
    if version_id in path:
        raise CycleDetectedError(version_id, path)

    _check_deadline(options, version_id)
    version = store.get_version(version_id)
    _check_deadline(options, version_id)
    children = store.get_children(version_id)
    path = (*path, version_id)

    log.trace(f"Resolving {version_id}: {len(children)} children, depth={len(path)}")

    inserts = [c for c in children if c.edge.operation is EdgeOperation.INSERT]
    concatenates = [c for c in children if c.edge.operation is EdgeOperation.CONCATENATE]

    updated = _apply_inserts(store, inserts, context, options, path)
    own_text = substitute_placeholders(version.content or "", updated)

    frozen = MappingProxyType(updated)
    ordered = sorted(concatenates, key=lambda c: (c.node_name, c.version.id))
    parts = [_resolve_version(store, c.version.id, frozen, options, path) for c in ordered]
    concatenated = "\n".join(part for part in parts if part)

    if own_text and concatenated:
        return own_text + "\n" + concatenated
    return own_text or concatenated


def _apply_inserts(
    store: ContentStore,
    inserts: list[ChildEdge],
    context: Mapping[str, str],
    options: ResolveOptions,
    path: tuple[str, ...],
) -> dict[str, str]:
    """Fold insert children into a new context, left to right."""
    updated = dict(context)
    for child in inserts:
        key = child.edge.key
        if not key:
            log.warning(f"Skipping insert edge without key: {path[-1]} -> {child.version.id}")
            continue
        if not is_insert_key(key):
            raise ValidationError(f"Invalid insert key {key!r} on edge to {child.version.id}", field="key")
        updated[key] = _resolve_version(store, child.version.id, MappingProxyType(dict(updated)), options, path)
    return updated
