"""Conversion of TypeScript type expressions into schema dicts.

The resolver works on tree-sitter type nodes. Named types are followed to
their declarations through the ``ResolutionContext``; generic parameters
are substituted through an explicit scope of bindings. A stack of the
type nodes currently being expanded, each keyed with the argument nodes
its type parameters are bound to, guards against self-referential types:
a revisit resolves to the unconstrained ``{}``. Nested instantiations of
one generic (``Box<Box<string>>``) bind different arguments and expand.
"""

from collections import namedtuple
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from owcs.extractors.literals import UNKNOWN, literal_value
from owcs.logging import get_logger
from owcs.utils.ast_utils import (
    child_of_type,
    has_token,
    named_children,
    property_name,
    type_arguments,
    type_of_annotation,
)

logger = get_logger("extractors.type_resolver")

Binding = namedtuple("Binding", ["node", "source_file", "scope"])

PRIMITIVES = {"string", "number", "boolean"}
NULL_KEYWORDS = {"null", "undefined", "void"}
ARRAY_TYPES = {"Array", "ReadonlyArray", "Set", "ReadonlySet"}
OBJECT_TYPES = {"Record", "Object", "Map", "ReadonlyMap", "WeakMap"}
BOXED_PRIMITIVES = {"String": "string", "Number": "number", "Boolean": "boolean", "BigInt": "number",
                    "bigint": "number"}
DATE_TYPES = {"Date"}
UTILITY_TYPES = {"Partial", "Required", "Readonly", "Pick", "Omit", "NonNullable"}
OPAQUE_TYPES = {"Function", "Promise", "Symbol", "RegExp", "Error", "symbol", "never"}

WRAPPER_NODE_TYPES = ("parenthesized_type", "readonly_type", "optional_type", "type_annotation",
                      "opting_type_annotation", "omitting_type_annotation")


@dataclass
class MemberInfo:
    """One member of an object-like type: a property or method signature."""

    name: str
    node: object
    source_file: object
    optional: bool
    kind: str = "property"
    type_node: object = None
    scope: Dict[str, Binding] = field(default_factory=dict)


def resolve_type_schema(type_node, source_file, context, scope=None) -> Dict[str, Any]:
    """Resolves a type expression to its schema. Never raises on odd input."""
    return TypeResolver(context).resolve(type_node, source_file, scope or {})


def enumerate_members(type_node, source_file, context, scope=None) -> Optional[List[MemberInfo]]:
    """Members of an object-like type, or None when the type is not one."""
    return TypeResolver(context).members(type_node, source_file, scope or {})


def type_parameter_scope(declaration_node, source_file, arguments, argument_file, argument_scope,
                         outer_scope=None) -> Dict[str, Binding]:
    """Binds a declaration's type parameters to arguments, defaults or constraints."""
    scope = dict(outer_scope or {})
    params = declaration_node.child_by_field_name("type_parameters")
    for index, param in enumerate(p for p in named_children(params) if p.type == "type_parameter"):
        name_node = param.child_by_field_name("name")
        if name_node is None:
            continue
        name = source_file.text(name_node)
        if index < len(arguments):
            scope[name] = Binding(arguments[index], argument_file, argument_scope)
            continue
        fallback = param.child_by_field_name("value") or param.child_by_field_name("constraint")
        inner = named_children(fallback)
        scope[name] = Binding(inner[-1] if inner else None, source_file, dict(scope))
    return scope


class TypeResolver:
    def __init__(self, context):
        self.context = context
        self._visiting = set()

    @staticmethod
    def _position(node, source_file):
        return None if node is None else (source_file.path, node.start_byte, node.end_byte)

    def _key(self, node, source_file, scope=None):
        bound = tuple((name, self._position(scope[name].node, scope[name].source_file))
                      for name in sorted(scope or {}))
        return self._position(node, source_file), bound

    def _declaration_key(self, declaration, args, source_file):
        return ("declaration", self._position(declaration.node, declaration.source_file),
                tuple(self._position(a, source_file) for a in args))

    @staticmethod
    def _bound(node, source_file, scope):
        if node.type == "type_identifier" and scope:
            return scope.get(source_file.text(node))
        return None

    def resolve(self, node, source_file, scope) -> Dict[str, Any]:
        node = self._unwrap(node)
        if node is None:
            return {}
        bound = self._bound(node, source_file, scope)
        if bound is not None:
            return self.resolve(bound.node, bound.source_file, bound.scope)
        key = self._key(node, source_file, scope)
        if key in self._visiting:
            return {}
        self._visiting.add(key)
        try:
            return self._resolve(node, source_file, scope)
        finally:
            self._visiting.discard(key)

    @staticmethod
    def _unwrap(node):
        while node is not None and node.type in WRAPPER_NODE_TYPES:
            if node.type in ("type_annotation", "opting_type_annotation", "omitting_type_annotation"):
                node = type_of_annotation(node)
                continue
            inner = named_children(node)
            node = inner[-1] if inner else None
        return node

    def _resolve(self, node, source_file, scope) -> Dict[str, Any]:
        kind = node.type
        if kind == "predefined_type":
            return self._predefined(source_file.text(node))
        if kind in ("type_identifier", "nested_type_identifier", "identifier"):
            return self._reference(source_file.text(node), [], source_file, scope)
        if kind == "generic_type":
            name_node = node.child_by_field_name("name") or named_children(node)[0]
            return self._reference(source_file.text(name_node), type_arguments(node), source_file, scope)
        if kind == "array_type":
            inner = named_children(node)
            return {"type": "array", "items": self.resolve(inner[0] if inner else None, source_file, scope)}
        if kind == "union_type":
            return self._union([self.resolve(m, source_file, scope) for m in self._flatten(node, kind)])
        if kind == "intersection_type":
            return self._intersection([self.resolve(m, source_file, scope) for m in self._flatten(node, kind)])
        if kind == "literal_type":
            return self._literal(node, source_file)
        if kind in ("string", "number", "true", "false", "null", "undefined"):
            return self._literal_value_schema(node, source_file)
        if kind == "template_literal_type":
            return {"type": "string"}
        if kind == "object_type":
            return self.object_from_members(self._signature_members(node, source_file, scope))
        if kind == "tuple_type":
            return self._tuple(node, source_file, scope)
        if kind == "index_type_query":
            return self._keyof(node, source_file, scope)
        if kind == "lookup_type":
            return self._lookup(node, source_file, scope)
        # function/constructor types, conditional and mapped types, typeof queries
        return {}

    @staticmethod
    def _predefined(text: str) -> Dict[str, Any]:
        if text in PRIMITIVES:
            return {"type": text}
        if text in BOXED_PRIMITIVES:
            return {"type": BOXED_PRIMITIVES[text]}
        if text in NULL_KEYWORDS:
            return {"type": "null"}
        if text == "object":
            return {"type": "object"}
        return {}

    @staticmethod
    def _flatten(node, kind) -> List:
        members = []
        for child in named_children(node):
            if child.type == kind:
                members.extend(TypeResolver._flatten(child, kind))
            else:
                members.append(child)
        return members

    def _literal(self, node, source_file) -> Dict[str, Any]:
        inner = named_children(node)
        if not inner:
            text = source_file.text(node)
            if text in ("null", "undefined"):
                return {"type": "null"}
            return {}
        return self._literal_value_schema(inner[0], source_file)

    @staticmethod
    def _literal_value_schema(node, source_file) -> Dict[str, Any]:
        if node.type in ("null", "undefined"):
            return {"type": "null"}
        value = literal_value(node, source_file.code)
        if value is UNKNOWN or value is None:
            return {}
        if isinstance(value, bool):
            return {"type": "boolean", "enum": [value]}
        if isinstance(value, (int, float)):
            return {"type": "number", "enum": [value]}
        if isinstance(value, str):
            return {"type": "string", "enum": [value]}
        return {}

    @staticmethod
    def _union(schemas: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not schemas:
            return {}
        kinds = {s.get("type") for s in schemas if isinstance(s.get("type"), str)}
        if all("enum" in s for s in schemas) and len(kinds) == 1:
            values = []
            for s in schemas:
                for v in s["enum"]:
                    if v not in values:
                        values.append(v)
            return {"type": kinds.pop(), "enum": values}
        if all(list(s) == ["type"] and isinstance(s["type"], str) for s in schemas):
            types = []
            for s in schemas:
                if s["type"] not in types:
                    types.append(s["type"])
            return {"type": types[0]} if len(types) == 1 else {"type": types}
        return {"oneOf": schemas}

    @staticmethod
    def _intersection(schemas: List[Dict[str, Any]]) -> Dict[str, Any]:
        if not schemas:
            return {}
        if len(schemas) == 1:
            return schemas[0]
        if all(s.get("type") == "object" for s in schemas):
            properties, required = {}, []
            for s in schemas:
                properties.update(s.get("properties", {}))
                for name in s.get("required", []):
                    if name not in required:
                        required.append(name)
            merged: Dict[str, Any] = {"type": "object"}
            if properties:
                merged["properties"] = properties
            if required:
                merged["required"] = required
            return merged
        return {"allOf": schemas}

    def _tuple(self, node, source_file, scope) -> Dict[str, Any]:
        prefix, rest = [], None
        for element in named_children(node):
            if element.type == "rest_type":
                inner = self.resolve(named_children(element)[-1], source_file, scope)
                rest = inner.get("items", {}) if inner.get("type") == "array" else inner
                continue
            if element.type in ("required_parameter", "optional_parameter", "tuple_parameter",
                                "optional_tuple_parameter"):
                element = element.child_by_field_name("type") or named_children(element)[-1]
            prefix.append(self.resolve(element, source_file, scope))
        schema: Dict[str, Any] = {"type": "array", "prefixItems": prefix}
        if rest is not None:
            schema["items"] = rest
        return schema

    def _keyof(self, node, source_file, scope) -> Dict[str, Any]:
        inner = named_children(node)
        members = self.members(inner[-1], source_file, scope) if inner else None
        if not members:
            return {"type": "string"}
        return {"type": "string", "enum": [m.name for m in members]}

    def _lookup(self, node, source_file, scope) -> Dict[str, Any]:
        inner = named_children(node)
        if len(inner) < 2:
            return {}
        keys = self._literal_keys(inner[1], source_file, scope)
        members = self.members(inner[0], source_file, scope)
        if not keys or not members:
            return {}
        by_name = {m.name: m for m in members}
        schemas = [self.member_schema(by_name[k]) for k in keys if k in by_name]
        if not schemas:
            return {}
        return schemas[0] if len(schemas) == 1 else self._union(schemas)

    def _literal_keys(self, node, source_file, scope) -> List[str]:
        schema = self.resolve(node, source_file, scope)
        if schema.get("type") == "string" and "enum" in schema:
            return list(schema["enum"])
        return []

    # -- named references -------------------------------------------------

    def _reference(self, name: str, args: List, source_file, scope) -> Dict[str, Any]:
        if name in scope:
            bound = scope[name]
            return self.resolve(bound.node, bound.source_file, bound.scope)
        if name in ARRAY_TYPES:
            return {"type": "array", "items": self.resolve(args[0], source_file, scope) if args else {}}
        if name in DATE_TYPES:
            return {"type": "string", "format": "date-time"}
        if name in OBJECT_TYPES:
            return {"type": "object"}
        if name in BOXED_PRIMITIVES:
            return {"type": BOXED_PRIMITIVES[name]}
        if name in OPAQUE_TYPES:
            return {}
        if name in UTILITY_TYPES:
            return self._utility(name, args, source_file, scope)

        declaration = self.context.resolve_type_declaration(name, source_file)
        if declaration is None:
            logger.debug("Type %s is not resolvable from %s", name, source_file.path)
            return {}
        key = self._declaration_key(declaration, args, source_file)
        if key in self._visiting:
            return {}
        self._visiting.add(key)
        try:
            return self._declaration_schema(declaration, args, source_file, scope)
        finally:
            self._visiting.discard(key)

    def _declaration_schema(self, declaration, args, source_file, scope) -> Dict[str, Any]:
        decl_node, decl_file = declaration.node, declaration.source_file
        if declaration.kind == "enum":
            return self._enum(decl_node, decl_file)
        if declaration.kind == "type":
            inner_scope = type_parameter_scope(decl_node, decl_file, args, source_file, scope)
            return self.resolve(decl_node.child_by_field_name("value"), decl_file, inner_scope)
        if declaration.kind in ("interface", "class"):
            inner_scope = type_parameter_scope(decl_node, decl_file, args, source_file, scope)
            return self.object_from_members(self._declared_members(declaration, inner_scope))
        return {}

    def _utility(self, name: str, args: List, source_file, scope) -> Dict[str, Any]:
        if not args:
            return {}
        if name == "NonNullable":
            return self._drop_null(self.resolve(args[0], source_file, scope))
        members = self._utility_members(name, args, source_file, scope)
        if members is None:
            return {}
        return self.object_from_members(members)

    @staticmethod
    def _drop_null(schema: Dict[str, Any]) -> Dict[str, Any]:
        kinds = schema.get("type")
        if isinstance(kinds, list):
            kept = [t for t in kinds if t != "null"]
            return {**schema, "type": kept[0] if len(kept) == 1 else kept}
        if "oneOf" in schema:
            kept = [s for s in schema["oneOf"] if s != {"type": "null"}]
            return kept[0] if len(kept) == 1 else {"oneOf": kept}
        if schema == {"type": "null"}:
            return {}
        return schema

    def _enum(self, node, source_file) -> Dict[str, Any]:
        body = node.child_by_field_name("body")
        values, counter = [], 0
        for member in named_children(body):
            if member.type == "enum_assignment":
                value = literal_value(member.child_by_field_name("value"), source_file.code)
                if value is UNKNOWN:
                    continue
                values.append(value)
                if isinstance(value, (int, float)) and not isinstance(value, bool):
                    counter = value + 1
            elif member.type in ("property_identifier", "string"):
                values.append(counter)
                counter += 1
        if values and all(isinstance(v, str) for v in values):
            return {"type": "string", "enum": values}
        if values and all(isinstance(v, (int, float)) for v in values):
            return {"type": "number", "enum": values}
        return {"enum": values} if values else {}

    # -- members ----------------------------------------------------------

    def members(self, node, source_file, scope) -> Optional[List[MemberInfo]]:
        node = self._unwrap(node)
        if node is None:
            return None
        bound = self._bound(node, source_file, scope)
        if bound is not None:
            return self.members(bound.node, bound.source_file, bound.scope)
        key = self._key(node, source_file, scope)
        if key in self._visiting:
            return None
        self._visiting.add(key)
        try:
            return self._members(node, source_file, scope)
        finally:
            self._visiting.discard(key)

    def _members(self, node, source_file, scope) -> Optional[List[MemberInfo]]:
        kind = node.type
        if kind == "object_type":
            return self._signature_members(node, source_file, scope)
        if kind == "intersection_type":
            merged: Dict[str, MemberInfo] = {}
            for part in self._flatten(node, kind):
                for member in self.members(part, source_file, scope) or []:
                    merged[member.name] = member
            return list(merged.values())
        if kind in ("type_identifier", "nested_type_identifier", "generic_type"):
            if kind == "generic_type":
                name_node = node.child_by_field_name("name") or named_children(node)[0]
                name, args = source_file.text(name_node), type_arguments(node)
            else:
                name, args = source_file.text(node), []
            return self._reference_members(name, args, source_file, scope)
        return None

    def _reference_members(self, name, args, source_file, scope) -> Optional[List[MemberInfo]]:
        if name in scope:
            bound = scope[name]
            return self.members(bound.node, bound.source_file, bound.scope)
        if name in UTILITY_TYPES:
            return self._utility_members(name, args, source_file, scope)
        declaration = self.context.resolve_type_declaration(name, source_file)
        if declaration is None or declaration.kind not in ("interface", "type", "class"):
            return None
        key = self._declaration_key(declaration, args, source_file)
        if key in self._visiting:
            return None
        self._visiting.add(key)
        try:
            inner_scope = type_parameter_scope(declaration.node, declaration.source_file, args,
                                               source_file, scope)
            if declaration.kind == "type":
                return self.members(declaration.node.child_by_field_name("value"),
                                    declaration.source_file, inner_scope)
            return self._declared_members(declaration, inner_scope)
        finally:
            self._visiting.discard(key)

    def _utility_members(self, name, args, source_file, scope) -> Optional[List[MemberInfo]]:
        if not args:
            return None
        base = self.members(args[0], source_file, scope)
        if base is None:
            return None
        if name == "Partial":
            return [self._with_optional(m, True) for m in base]
        if name == "Required":
            return [self._with_optional(m, False) for m in base]
        if name in ("Pick", "Omit"):
            keys = self._literal_keys(args[1], source_file, scope) if len(args) > 1 else []
            if name == "Pick":
                return [m for m in base if m.name in keys]
            return [m for m in base if m.name not in keys]
        return base

    @staticmethod
    def _with_optional(member: MemberInfo, optional: bool) -> MemberInfo:
        return MemberInfo(member.name, member.node, member.source_file, optional, member.kind,
                          member.type_node, member.scope)

    def _declared_members(self, declaration, scope) -> List[MemberInfo]:
        node, source_file = declaration.node, declaration.source_file
        merged: Dict[str, MemberInfo] = {}
        if declaration.kind == "interface":
            for clause in (c for c in named_children(node) if c.type == "extends_type_clause"):
                for parent in named_children(clause):
                    for member in self.members(parent, source_file, scope) or []:
                        merged[member.name] = member
            body = node.child_by_field_name("body")
            for member in self._signature_members(body, source_file, scope):
                merged[member.name] = member
        else:
            body = node.child_by_field_name("body")
            for member in class_field_members(body, source_file, scope):
                merged[member.name] = member
        return list(merged.values())

    @staticmethod
    def _signature_members(body, source_file, scope) -> List[MemberInfo]:
        members = []
        for sig in named_children(body):
            if sig.type not in ("property_signature", "method_signature"):
                continue
            name = property_name(sig.child_by_field_name("name"), source_file.code)
            if name is None:
                continue
            optional = has_token(sig, "?")
            if sig.type == "method_signature":
                members.append(MemberInfo(name, sig, source_file, optional, "method", None, scope))
            else:
                type_node = type_of_annotation(sig.child_by_field_name("type"))
                members.append(MemberInfo(name, sig, source_file, optional, "property", type_node, scope))
        return members

    def member_schema(self, member: MemberInfo) -> Dict[str, Any]:
        if member.kind == "method":
            return {}
        return self.resolve(member.type_node, member.source_file, member.scope)

    def object_from_members(self, members: Optional[List[MemberInfo]]) -> Dict[str, Any]:
        properties, required = {}, []
        for member in members or []:
            if member.kind == "method":
                continue
            properties[member.name] = self.member_schema(member)
            if not member.optional and member.name not in required:
                required.append(member.name)
        schema: Dict[str, Any] = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema


def class_field_members(body, source_file, scope=None) -> List[MemberInfo]:
    """Public instance fields of a class body as members."""
    members = []
    for member in named_children(body):
        if member.type != "public_field_definition":
            continue
        if has_token(member, "static") or _is_private(member, source_file):
            continue
        name_node = member.child_by_field_name("name")
        if name_node is None or name_node.type == "private_property_identifier":
            continue
        name = property_name(name_node, source_file.code)
        if name is None:
            continue
        type_node = type_of_annotation(member.child_by_field_name("type"))
        members.append(MemberInfo(name, member, source_file, has_token(member, "?"), "property",
                                  type_node, dict(scope or {})))
    return members


def _is_private(member, source_file) -> bool:
    modifier = child_of_type(member, "accessibility_modifier")
    return modifier is not None and source_file.text(modifier) in ("private", "protected")


def type_name_of(type_node, source_file) -> Optional[str]:
    """Bare name of a (possibly generic) type reference."""
    node = TypeResolver._unwrap(type_node)
    if node is None:
        return None
    if node.type == "generic_type":
        name_node = node.child_by_field_name("name") or named_children(node)[0]
        return source_file.text(name_node)
    if node.type in ("type_identifier", "nested_type_identifier", "identifier"):
        return source_file.text(node)
    return None


def union_schema(schemas: List[Dict[str, Any]]) -> Dict[str, Any]:
    return TypeResolver._union(schemas)
