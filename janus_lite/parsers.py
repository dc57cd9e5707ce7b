"""Text-format decoders for file-backed content.

Frontmatter
    A leading ``---`` line opens a flat ``key: value`` block closed by the next
    ``---`` line. ``description`` is kept as the raw trimmed string and ``tags``
    as a ``[a, b, c]`` list. Text without a leading ``---`` has no metadata and
    is all body.

Insert definitions
    ``content/inserts/inserts.yaml`` lists ``{node, inserts: [{key, values}]}``
    records. ``{{insert:KEY}}`` placeholders in that node's content become the
    values joined with newlines; undefined placeholders stay as written.

Both decoders are best effort: malformed input degrades to "no metadata" or
"no definitions", never an exception.
"""

import re
from dataclasses import dataclass, field

import yaml

from janus_lite.log_config import get_logger

log = get_logger("parsers")

FRONTMATTER_DELIMITER = "---"

_INSERT_PLACEHOLDER_RE = re.compile(r"\{\{insert:([a-zA-Z][a-zA-Z0-9_]*)\}\}")


@dataclass
class Frontmatter:
    """Decoded frontmatter block.

    Attributes:
        description: Raw trimmed description, None when the key is absent
        tags: Tag names in file order, empty items dropped
        extra: Other keys, preserved verbatim so rewrites keep operator edits
    """

    description: str | None = None
    tags: list[str] = field(default_factory=list)
    extra: dict[str, str] = field(default_factory=dict)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        return value[1:-1].strip()
    return value


def parse_tag_list(raw: str) -> list[str]:
    """Decode ``[a, b, c]`` into ``["a", "b", "c"]``."""
    value = raw.strip()
    if value.startswith("[") and value.endswith("]"):
        value = value[1:-1]
    tags = []
    for item in value.split(","):
        item = _strip_quotes(item.strip())
        if item:
            tags.append(item)
    return tags


def split_frontmatter(text: str) -> tuple[list[str] | None, str]:
    """Split text into (frontmatter lines, body).

    Returns (None, text) when there is no complete frontmatter block.
    """
    lines = text.splitlines()
    if not lines or lines[0].strip().lstrip("\ufeff") != FRONTMATTER_DELIMITER:
        return None, text
    for idx in range(1, len(lines)):
        if lines[idx].strip() == FRONTMATTER_DELIMITER:
            return lines[1:idx], "\n".join(lines[idx + 1 :])
    # Unterminated block: treat the whole text as content
    return None, text


def parse_frontmatter(text: str) -> tuple[Frontmatter, str]:
    """Decode a markdown document into (Frontmatter, trimmed body)."""
    block, body = split_frontmatter(text)
    if block is None:
        return Frontmatter(), text.strip()

    meta = Frontmatter()
    for line in block:
        if ":" not in line:
            continue
        key, _, value = line.partition(":")
        key = key.strip()
        if not key:
            continue
        if key == "description":
            meta.description = value.strip()
        elif key == "tags":
            meta.tags = parse_tag_list(value)
        else:
            meta.extra[key] = value.strip()
    return meta, body.strip()


def strip_frontmatter(text: str) -> str:
    """Return the trimmed body of a markdown document."""
    return parse_frontmatter(text)[1]


def render_document(meta: Frontmatter, body: str) -> str:
    """Encode frontmatter and body back into a markdown document."""
    lines = [FRONTMATTER_DELIMITER, f"description: {meta.description or ''}"]
    if meta.tags:
        lines.append(f"tags: [{', '.join(meta.tags)}]")
    for key, value in meta.extra.items():
        lines.append(f"{key}: {value}")
    lines.append(FRONTMATTER_DELIMITER)
    text = "\n".join(lines) + "\n\n"
    body = body.strip()
    if body:
        text += body + "\n"
    return text


# ---------------------------------------------------------------------------
# Insert definitions
# ---------------------------------------------------------------------------


@dataclass
class InsertValues:
    key: str
    values: list[str] = field(default_factory=list)


@dataclass
class InsertDefinition:
    """Insert values declared for one node."""

    node: str
    inserts: list[InsertValues] = field(default_factory=list)


def parse_insert_definitions(text: str) -> list[InsertDefinition]:
    """Decode inserts.yaml content; malformed records are skipped."""
    if not text or not text.strip():
        return []
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        log.warning(f"Ignoring malformed insert definitions: {e}")
        return []

    records = data.get("inserts") if isinstance(data, dict) else data
    if not isinstance(records, list):
        return []

    definitions: list[InsertDefinition] = []
    for record in records:
        if not isinstance(record, dict) or not isinstance(record.get("node"), str):
            log.debug(f"Skipping insert record without node: {record!r}")
            continue
        definition = InsertDefinition(node=record["node"])
        for entry in record.get("inserts") or []:
            if not isinstance(entry, dict) or not isinstance(entry.get("key"), str):
                continue
            values = entry.get("values") or []
            if not isinstance(values, list):
                values = [values]
            definition.inserts.append(
                InsertValues(key=entry["key"], values=[str(v) for v in values if v is not None])
            )
        definitions.append(definition)
    return definitions


def insert_values_for(node_name: str, definitions: list[InsertDefinition]) -> dict[str, str]:
    """Collect {key: joined values} for one node (later records win)."""
    values: dict[str, str] = {}
    for definition in definitions:
        if definition.node != node_name:
            continue
        for entry in definition.inserts:
            values[entry.key] = "\n".join(entry.values)
    return values


def apply_insert_definitions(content: str, node_name: str, definitions: list[InsertDefinition]) -> str:
    """Replace ``{{insert:KEY}}`` placeholders defined for node_name."""
    values = insert_values_for(node_name, definitions)
    if not values:
        return content

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        return values[key] if key in values else match.group(0)

    return _INSERT_PLACEHOLDER_RE.sub(_replace, content)
