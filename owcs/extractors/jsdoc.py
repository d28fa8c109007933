import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from owcs.extractors.literals import UNKNOWN, primitive_default
from owcs.models import NO_DEFAULT
from owcs.utils.ast_utils import jsdoc_comment

_TAG_LINE = re.compile(r"^@(\w[\w-]*)\s*(.*)$")
_TYPE_PREFIX = re.compile(r"^\{[^}]*\}\s*")


@dataclass
class JSDocMetadata:
    description: Optional[str] = None
    default: Any = NO_DEFAULT
    deprecated: Optional[bool] = None
    attribute: Optional[str] = None
    event: Optional[str] = None
    fires: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT


def _comment_lines(comment: str) -> List[str]:
    body = comment.strip()
    if body.startswith("/**"):
        body = body[3:]
    if body.endswith("*/"):
        body = body[:-2]
    lines = []
    for line in body.splitlines():
        line = line.strip()
        if line.startswith("*"):
            line = line[1:]
            if line.startswith(" "):
                line = line[1:]
        lines.append(line.rstrip())
    return lines


def parse_jsdoc(comment: Optional[str]) -> JSDocMetadata:
    """Parses a ``/** ... */`` block into its description and known tags."""
    metadata = JSDocMetadata()
    if not comment:
        return metadata

    description: List[str] = []
    tags: List[List[str]] = []
    for line in _comment_lines(comment):
        m = _TAG_LINE.match(line)
        if m:
            tags.append([m.group(1), m.group(2)])
        elif tags:
            if line:
                tags[-1][1] = (tags[-1][1] + " " + line.strip()).strip()
        else:
            description.append(line)

    text = "\n".join(description).strip()
    if text:
        metadata.description = text

    for name, value in tags:
        value = value.strip()
        metadata.tags[name] = value
        if name == "default":
            metadata.default = parse_default_value(value)
        elif name == "deprecated":
            metadata.deprecated = True
        elif name == "attribute" and value:
            metadata.attribute = value.split()[0]
        elif name == "event" and value:
            metadata.event = _TYPE_PREFIX.sub("", value).split()[0]
        elif name in ("fires", "emits") and value:
            entry = _parse_fires(value)
            if entry is not None:
                metadata.fires.append(entry)
    return metadata


def _parse_fires(value: str) -> Optional[Tuple[str, Optional[str]]]:
    value = _TYPE_PREFIX.sub("", value).strip()
    if not value:
        return None
    name, sep, desc = value.partition(" - ")
    if not sep:
        parts = value.split(None, 1)
        return parts[0], None
    desc = desc.strip()
    return name.strip(), desc or None


def parse_default_value(value: str) -> Any:
    """Interprets a ``@default`` tag as JSON, falling back to a bare string."""
    trimmed = value.strip()
    try:
        return json.loads(trimmed)
    except ValueError:
        pass
    if trimmed == "undefined":
        return None
    if trimmed.startswith("'") and trimmed.endswith("'") and len(trimmed) > 1:
        return trimmed[1:-1]
    try:
        return float(trimmed)
    except ValueError:
        return trimmed


def extract_jsdoc(node, code: bytes) -> JSDocMetadata:
    if node is None:
        return JSDocMetadata()
    return parse_jsdoc(jsdoc_comment(node, code))


def extract_default_value(metadata: JSDocMetadata, initializer, code: bytes) -> Any:
    """``@default`` wins over a primitive literal initialiser."""
    if metadata.has_default:
        return metadata.default
    if initializer is None:
        return NO_DEFAULT
    value = primitive_default(initializer, code)
    return NO_DEFAULT if value is UNKNOWN else value
