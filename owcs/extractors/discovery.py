"""Finds ``customElements.define('tag', Impl)`` registrations and resolves ``Impl``."""

from dataclasses import dataclass
from typing import Dict, List

from owcs.exceptions import MalformedRegistration, UnresolvedSymbol
from owcs.logging import get_logger
from owcs.utils.ast_utils import (
    call_arguments,
    callee_name,
    string_literal_value,
    unwrap_expression,
    walk,
)

logger = get_logger("extractors.discovery")

IMPLEMENTATION_KINDS = {"class", "function", "variable", "default"}


@dataclass(frozen=True)
class Registration:
    tag_name: str
    implementation_name: str
    source_file: object
    node: object


@dataclass(frozen=True)
class DiscoveredComponent:
    tag_name: str
    declaration: object
    registration: Registration


def _is_wrapping_call(node, source_file, conventions) -> bool:
    if node is None or node.type != "call_expression":
        return False
    name = callee_name(node, source_file.code)
    return name is not None and name.rsplit(".", 1)[-1] in conventions.wrapping_factories


def _wrapped_name(call, source_file):
    args = call_arguments(call)
    first = unwrap_expression(args[0]) if args else None
    if first is not None and first.type == "identifier":
        return source_file.text(first)
    return None


def wrapper_bindings(source_file, conventions) -> Dict[str, str]:
    """``const El = createCustomElement(Impl, ...)`` bindings of one file: ``{'El': 'Impl'}``."""
    bindings = {}
    for declarator in walk(source_file.root_node, {"variable_declarator"}):
        value = unwrap_expression(declarator.child_by_field_name("value"))
        if not _is_wrapping_call(value, source_file, conventions):
            continue
        name_node = declarator.child_by_field_name("name")
        wrapped = _wrapped_name(value, source_file)
        if name_node is not None and wrapped is not None:
            bindings[source_file.text(name_node)] = wrapped
    return bindings


def _registration(call, source_file, conventions, bindings) -> Registration:
    args = call_arguments(call)
    if len(args) < 2:
        raise MalformedRegistration(
            "Registration needs a tag name and an implementation",
            {"file": source_file.path, "line": call.start_point[0] + 1},
        )
    tag_name = string_literal_value(unwrap_expression(args[0]), source_file.code)
    if not tag_name:
        raise MalformedRegistration(
            "Registration tag name is not a string literal",
            {"file": source_file.path, "line": call.start_point[0] + 1, "argument": source_file.text(args[0])},
        )

    target = unwrap_expression(args[1])
    implementation = None
    if target is not None and target.type == "identifier":
        name = source_file.text(target)
        implementation = bindings.get(name, name)
    elif _is_wrapping_call(target, source_file, conventions):
        implementation = _wrapped_name(target, source_file)
    if implementation is None:
        raise MalformedRegistration(
            "Registration implementation is not an identifier",
            {"file": source_file.path, "tag": tag_name},
        )
    return Registration(tag_name, implementation, source_file, call)


def find_registrations(source_file, context) -> List[Registration]:
    """Registrations in one file; malformed ones are logged and skipped."""
    conventions = context.conventions
    bindings = wrapper_bindings(source_file, conventions)
    registrations = []
    for call in walk(source_file.root_node, {"call_expression"}):
        name = callee_name(call, source_file.code)
        if name is None or not conventions.is_registration(name):
            continue
        try:
            registrations.append(_registration(call, source_file, conventions, bindings))
        except MalformedRegistration as e:
            logger.warning("Skipping registration: %s", e)
    return registrations


def resolve_registration(registration: Registration, context) -> DiscoveredComponent:
    declaration = context.resolve_declaration(registration.implementation_name, registration.source_file)
    if declaration is not None and declaration.kind == "variable":
        # an imported wrapper variable: follow it to the wrapped implementation
        value = unwrap_expression(declaration.node.child_by_field_name("value"))
        if _is_wrapping_call(value, declaration.source_file, context.conventions):
            wrapped = _wrapped_name(value, declaration.source_file)
            declaration = context.resolve_declaration(wrapped, declaration.source_file) if wrapped else None
    if declaration is None or declaration.kind not in IMPLEMENTATION_KINDS:
        raise UnresolvedSymbol(
            f"Cannot resolve implementation {registration.implementation_name!r}",
            {"tag": registration.tag_name, "file": registration.source_file.path},
        )
    return DiscoveredComponent(registration.tag_name, declaration, registration)

