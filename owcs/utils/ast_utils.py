import re
from typing import Iterator, List, Optional

NON_CODE_TYPES = {"comment", "html_comment"}

FUNCTION_NODE_TYPES = {
    "arrow_function",
    "function_expression",
    "function",
    "function_declaration",
    "generator_function",
    "generator_function_declaration",
}


def node_text(node, code: bytes) -> str:
    if node is None:
        return ""
    return code[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def named_children(node) -> List:
    if node is None:
        return []
    return [c for c in node.children if c.is_named and c.type not in NON_CODE_TYPES]


def child_of_type(node, *types):
    if node is None:
        return None
    for c in node.children:
        if c.type in types:
            return c
    return None


def children_of_type(node, *types) -> List:
    if node is None:
        return []
    return [c for c in node.children if c.type in types]


def has_token(node, token: str) -> bool:
    return any(not c.is_named and c.type == token for c in node.children)


def walk(node, types=None) -> Iterator:
    stack = [node]
    while stack:
        current = stack.pop()
        if types is None or current.type in types:
            yield current
        stack.extend(reversed(current.children))


def unwrap_expression(node):
    """Strips parentheses, ``as``/``satisfies`` casts and non-null assertions."""
    while node is not None and node.type in (
        "parenthesized_expression",
        "as_expression",
        "satisfies_expression",
        "non_null_expression",
    ):
        inner = named_children(node)
        if not inner:
            return None
        node = inner[0]
    return node


def type_of_annotation(node):
    """Returns the type node held by a ``type_annotation`` (or the node itself)."""
    if node is None:
        return None
    if node.type in ("type_annotation", "opting_type_annotation", "omitting_type_annotation"):
        inner = named_children(node)
        return inner[-1] if inner else None
    return node


def string_literal_value(node, code: bytes) -> Optional[str]:
    """Value of a string literal or a substitution-free template string."""
    if node is None:
        return None
    if node.type == "string":
        parts = []
        for c in node.children:
            if c.type == "string_fragment":
                parts.append(node_text(c, code))
            elif c.type == "escape_sequence":
                parts.append(_unescape(node_text(c, code)))
        return "".join(parts)
    if node.type == "template_string":
        if child_of_type(node, "template_substitution") is not None:
            return None
        return node_text(node, code)[1:-1]
    return None


_SIMPLE_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "b": "\b", "f": "\f", "v": "\v"}


def _unescape(seq: str) -> str:
    body = seq[1:]
    if body in _SIMPLE_ESCAPES:
        return _SIMPLE_ESCAPES[body]
    if body.startswith("u{") and body.endswith("}"):
        return chr(int(body[2:-1], 16))
    if body.startswith("u") and len(body) == 5:
        return chr(int(body[1:], 16))
    if body.startswith("x") and len(body) == 3:
        return chr(int(body[1:], 16))
    return body


def parse_number(text: str):
    cleaned = text.replace("_", "").rstrip("n")
    lowered = cleaned.lower()
    try:
        if lowered.startswith("0x"):
            return int(cleaned, 16)
        if lowered.startswith("0o"):
            return int(cleaned, 8)
        if lowered.startswith("0b"):
            return int(cleaned, 2)
        if re.fullmatch(r"\d+", cleaned):
            return int(cleaned)
        return float(cleaned)
    except ValueError:
        return None


def property_name(node, code: bytes) -> Optional[str]:
    """Name of an object key / class member name node."""
    if node is None:
        return None
    if node.type in ("property_identifier", "identifier", "private_property_identifier",
                     "shorthand_property_identifier", "type_identifier"):
        return node_text(node, code)
    if node.type == "string":
        return string_literal_value(node, code)
    if node.type == "number":
        return node_text(node, code)
    return None


def callee_name(call_node, code: bytes) -> Optional[str]:
    """Dotted callee text for ``foo(...)``, ``a.b(...)``, or ``new X(...)``."""
    fn = call_node.child_by_field_name("function") or call_node.child_by_field_name("constructor")
    if fn is None:
        return None
    if fn.type in ("identifier", "member_expression", "nested_identifier"):
        return re.sub(r"\s+", "", node_text(fn, code))
    return None


def call_arguments(call_node) -> List:
    args = call_node.child_by_field_name("arguments")
    return named_children(args)


def type_arguments(node) -> List:
    args = node.child_by_field_name("type_arguments")
    if args is None:
        args = child_of_type(node, "type_arguments")
    return named_children(args)


def object_entries(node, code: bytes):
    """Yields ``(key, value_node, pair_node)`` for an object literal."""
    for member in named_children(node):
        if member.type == "pair":
            key = property_name(member.child_by_field_name("key"), code)
            if key is not None:
                yield key, member.child_by_field_name("value"), member
        elif member.type == "shorthand_property_identifier":
            yield node_text(member, code), member, member


def object_entry(node, key: str, code: bytes):
    node = unwrap_expression(node)
    if node is None or node.type != "object":
        return None
    for name, value, _ in object_entries(node, code):
        if name == key:
            return value
    return None


def jsdoc_comment(node, code: bytes) -> Optional[str]:
    """The ``/** ... */`` block immediately preceding a declaration.

    Export statements own their declaration's comment, so the lookup
    climbs out of ``export`` wrappers first.
    """
    target = node
    while target.parent is not None and target.parent.type in ("export_statement", "lexical_declaration",
                                                                 "variable_declaration"):
        target = target.parent
    sibling = target.prev_sibling
    while sibling is not None:
        if sibling.type == "comment":
            text = node_text(sibling, code)
            if text.startswith("/**"):
                return text
            sibling = sibling.prev_sibling
            continue
        if sibling.type == "decorator":
            sibling = sibling.prev_sibling
            continue
        break
    return None


def kebab_case(name: str) -> str:
    return re.sub(r"([a-z])([A-Z])", r"\1-\2", name).lower()
