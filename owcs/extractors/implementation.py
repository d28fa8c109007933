"""Helpers that look at a resolved implementation declaration.

An implementation is either a class (decorated, element-derived or
framework-component-derived) or a function component, possibly declared
as a variable and wrapped in ``memo``-style calls.
"""

from typing import List, Optional

from owcs.utils.ast_utils import (
    FUNCTION_NODE_TYPES,
    call_arguments,
    callee_name,
    child_of_type,
    children_of_type,
    named_children,
    type_arguments,
    type_of_annotation,
    unwrap_expression,
)

CLASS_NODE_TYPES = {"class_declaration", "abstract_class_declaration", "class"}

_MAX_ALIAS_DEPTH = 5


def class_node(declaration):
    node = declaration.node
    if node.type in CLASS_NODE_TYPES:
        return node
    if node.type == "variable_declarator":
        value = unwrap_expression(node.child_by_field_name("value"))
        if value is not None and value.type in CLASS_NODE_TYPES:
            return value
    return None


def function_node(declaration, context, _depth: int = 0):
    """The function implementing a function component, unwrapping wrappers."""
    node = declaration.node
    if node.type in FUNCTION_NODE_TYPES:
        return node
    if node.type == "variable_declarator":
        node = node.child_by_field_name("value")
    return _unwrap_component(node, declaration, context, _depth)


def _unwrap_component(node, declaration, context, depth):
    node = unwrap_expression(node)
    if node is None or depth > _MAX_ALIAS_DEPTH:
        return None
    if node.type in FUNCTION_NODE_TYPES:
        return node
    if node.type == "call_expression":
        name = callee_name(node, declaration.source_file.code)
        args = call_arguments(node)
        if name in context.conventions.component_wrappers and args:
            return _unwrap_component(args[0], declaration, context, depth + 1)
        return None
    if node.type == "identifier":
        target = context.resolve_declaration(declaration.source_file.text(node), declaration.source_file)
        if target is not None and target is not declaration:
            return function_node(target, context, depth + 1)
    return None


def declared_type(declaration):
    """Type annotation of a variable-declared component, e.g. ``FC<Props>``."""
    if declaration.node.type != "variable_declarator":
        return None
    return type_of_annotation(declaration.node.child_by_field_name("type"))


def first_parameter(function):
    params = function.child_by_field_name("parameters")
    if params is None:
        single = function.child_by_field_name("parameter")
        return single
    for param in named_children(params):
        if param.type in ("required_parameter", "optional_parameter"):
            return param
    return None


def parameter_type(param):
    if param is None or param.type not in ("required_parameter", "optional_parameter"):
        return None
    return type_of_annotation(param.child_by_field_name("type"))


def heritage(node):
    """``(extends_value, extends_type_arguments, implemented_types)`` of a class."""
    clause = child_of_type(node, "class_heritage")
    extends_value, extends_args, implemented = None, [], []
    if clause is None:
        return extends_value, extends_args, implemented
    extends = child_of_type(clause, "extends_clause")
    if extends is not None:
        extends_value = extends.child_by_field_name("value")
        extends_args = type_arguments(extends)
    for impl in children_of_type(clause, "implements_clause"):
        implemented.extend(named_children(impl))
    return extends_value, extends_args, implemented


def class_members(node) -> List:
    body = node.child_by_field_name("body")
    return named_children(body)


def decorators_of(member) -> List:
    """Decorators of a class member; fields own theirs, methods are preceded by them."""
    found = children_of_type(member, "decorator")
    sibling = member.prev_sibling
    while sibling is not None and sibling.type in ("decorator", "comment"):
        if sibling.type == "decorator":
            found.insert(0, sibling)
        sibling = sibling.prev_sibling
    return found


def decorator_call(decorator, code: bytes):
    """``(name, arguments)`` of ``@Name(...)`` / ``@Name`` / ``@ns.Name(...)``."""
    inner = named_children(decorator)
    if not inner:
        return None, []
    expr = inner[0]
    if expr.type == "call_expression":
        name = callee_name(expr, code)
        args = call_arguments(expr)
    elif expr.type in ("identifier", "member_expression"):
        name, args = code[expr.start_byte:expr.end_byte].decode("utf-8"), []
    else:
        return None, []
    if name is None:
        return None, []
    return name.rsplit(".", 1)[-1], args


def static_assignments(declaration, member: str):
    """Right-hand sides of top-level ``Impl.member = ...`` statements."""
    source_file = declaration.source_file
    found = []
    for stmt in named_children(source_file.root_node):
        if stmt.type != "expression_statement":
            continue
        expr = named_children(stmt)
        if not expr or expr[0].type != "assignment_expression":
            continue
        left = expr[0].child_by_field_name("left")
        if left is None or left.type != "member_expression":
            continue
        obj, prop = left.child_by_field_name("object"), left.child_by_field_name("property")
        if (obj is not None and prop is not None and source_file.text(obj) == declaration.name
                and source_file.text(prop) == member):
            found.append(expr[0].child_by_field_name("right"))
    return found
