"""Static evaluation of literal expressions.

Used for defaults, decorator/factory options, dispatch ``detail`` payloads
and for reading JS config files without executing them.
"""

from typing import Any, Dict

from owcs.utils.ast_utils import (
    named_children,
    node_text,
    object_entries,
    parse_number,
    string_literal_value,
    unwrap_expression,
)

# Returned for expressions that have no static value.
UNKNOWN = object()


def literal_value(node, code: bytes) -> Any:
    """Python value of a literal expression, or ``UNKNOWN``.

    Objects and arrays are evaluated recursively; entries without a static
    value are dropped from objects and turn whole arrays ``UNKNOWN``.
    """
    node = unwrap_expression(node)
    if node is None:
        return UNKNOWN
    kind = node.type
    if kind in ("string", "template_string"):
        value = string_literal_value(node, code)
        return UNKNOWN if value is None else value
    if kind == "number":
        value = parse_number(node_text(node, code))
        return UNKNOWN if value is None else value
    if kind == "true":
        return True
    if kind == "false":
        return False
    if kind == "null":
        return None
    if kind in ("undefined", "identifier") and node_text(node, code) == "undefined":
        return None
    if kind == "unary_expression":
        operand = node.child_by_field_name("argument")
        op = node.child_by_field_name("operator")
        value = literal_value(operand, code)
        if isinstance(value, (int, float)) and not isinstance(value, bool) and op is not None:
            sign = node_text(op, code)
            if sign == "-":
                return -value
            if sign == "+":
                return value
        return UNKNOWN
    if kind == "object":
        result: Dict[str, Any] = {}
        for key, value_node, pair in object_entries(node, code):
            if pair.type != "pair":
                continue
            value = literal_value(value_node, code)
            if value is not UNKNOWN:
                result[key] = value
        return result
    if kind == "array":
        items = []
        for element in named_children(node):
            value = literal_value(element, code)
            if value is UNKNOWN:
                return UNKNOWN
            items.append(value)
        return items
    return UNKNOWN


def primitive_default(node, code: bytes) -> Any:
    """Default value carried by a field initialiser.

    Only strings, numbers, booleans, ``null`` and empty array/object literals
    count; everything else yields ``UNKNOWN``.
    """
    node = unwrap_expression(node)
    if node is None:
        return UNKNOWN
    if node.type in ("array", "object"):
        if named_children(node):
            return UNKNOWN
        return [] if node.type == "array" else {}
    if node.type == "template_string":
        return UNKNOWN
    value = literal_value(node, code)
    if isinstance(value, (dict, list)):
        return UNKNOWN
    return value


def schema_of_value(value: Any) -> Dict[str, Any]:
    if isinstance(value, bool):
        return {"type": "boolean"}
    if isinstance(value, (int, float)):
        return {"type": "number"}
    if isinstance(value, str):
        return {"type": "string"}
    return {}


def infer_schema(node, code: bytes) -> Dict[str, Any]:
    """Structural schema of an expression, used for dispatched payloads.

    Object literal properties are inferred one by one (never required),
    arrays take their item schema from the first element; anything that is
    not a literal is unconstrained.
    """
    node = unwrap_expression(node)
    if node is None:
        return {}
    if node.type == "object":
        properties = {}
        for key, value_node, pair in object_entries(node, code):
            if pair.type == "pair":
                properties[key] = infer_schema(value_node, code)
            else:
                properties[key] = {}
        return {"type": "object", "properties": properties}
    if node.type == "array":
        elements = named_children(node)
        return {"type": "array", "items": infer_schema(elements[0], code) if elements else {}}
    if node.type in ("string", "number", "true", "false", "unary_expression"):
        value = literal_value(node, code)
        if value is UNKNOWN:
            return {}
        return schema_of_value(value)
    if node.type == "template_string":
        return {"type": "string"}
    return {}
