"""Property extraction.

Class fields are matched against a closed list of strategies, first match
wins: a property decorator, then a property factory initialiser. Shapes
(a function component's props parameter, ``FC<Props>`` annotations,
``extends Component<Props>`` or ``extends HTMLElement implements Props``)
contribute every member except the reserved ones. A legacy ``propTypes``
block only adds properties nobody else declared and backfills
description/default for those that were.
"""

from typing import Any, Dict, List, Optional

from owcs.extractors import implementation as impl
from owcs.extractors.jsdoc import JSDocMetadata, extract_default_value, extract_jsdoc
from owcs.extractors.literals import UNKNOWN, literal_value, primitive_default, schema_of_value
from owcs.extractors.type_resolver import (
    MemberInfo,
    TypeResolver,
    enumerate_members,
    resolve_type_schema,
    union_schema,
)
from owcs.logging import get_logger
from owcs.models import NO_DEFAULT, PropertyDescriptor
from owcs.utils.ast_utils import (
    call_arguments,
    callee_name,
    has_token,
    kebab_case,
    named_children,
    object_entries,
    object_entry,
    property_name,
    type_arguments,
    type_of_annotation,
    unwrap_expression,
)

logger = get_logger("extractors.props")

SOURCE_DECORATOR = "decorator"
SOURCE_FACTORY = "factory"
SOURCE_SHAPE = "shape"
SOURCE_LEGACY = "legacy"


def extract_properties(declaration, context) -> List[PropertyDescriptor]:
    found: Dict[str, PropertyDescriptor] = {}
    for prop in _primary_properties(declaration, context):
        found[prop.name] = prop

    for prop in legacy_properties(declaration, context):
        existing = found.get(prop.name)
        if existing is None:
            found[prop.name] = prop
        else:
            found[prop.name] = _backfill(existing, prop)
    return list(found.values())


def _primary_properties(declaration, context) -> List[PropertyDescriptor]:
    props: List[PropertyDescriptor] = []
    node = impl.class_node(declaration)
    if node is not None:
        props.extend(class_field_properties(node, declaration.source_file, context))
        shape = class_shape(node, declaration.source_file, context)
        if shape is not None:
            props.extend(shape_properties(shape, declaration.source_file, context))
        return props

    shape = function_shape(declaration, context)
    if shape is not None:
        props.extend(shape_properties(shape, declaration.source_file, context))
    return props


def _backfill(primary: PropertyDescriptor, legacy: PropertyDescriptor) -> PropertyDescriptor:
    description = primary.description if primary.description is not None else legacy.description
    default = primary.default if primary.has_default else legacy.default
    return PropertyDescriptor(
        name=primary.name,
        external_name=primary.external_name,
        schema=primary.schema,
        required=primary.required,
        source_kind=primary.source_kind,
        description=description,
        default=default,
        deprecated=primary.deprecated,
    )


# -- class fields ---------------------------------------------------------

def class_field_properties(node, source_file, context) -> List[PropertyDescriptor]:
    props = []
    for member in impl.class_members(node):
        if member.type not in ("public_field_definition", "method_definition"):
            continue
        if has_token(member, "static"):
            continue
        for strategy in FIELD_STRATEGIES:
            prop = strategy(member, source_file, context)
            if prop is not None:
                props.append(prop)
                break
    return props


def _descriptor(name, external_name, schema, required, source_kind, meta: JSDocMetadata, default=NO_DEFAULT):
    return PropertyDescriptor(
        name=name,
        external_name=external_name,
        schema=schema,
        required=required,
        source_kind=source_kind,
        description=meta.description,
        default=default,
        deprecated=meta.deprecated,
    )


def _member_name(member, source_file) -> Optional[str]:
    name_node = member.child_by_field_name("name")
    if name_node is None or name_node.type == "private_property_identifier":
        return None
    return property_name(name_node, source_file.code)


def _override_from_options(options, source_file) -> Optional[str]:
    for key in ("alias", "attribute"):
        value = literal_value(object_entry(options, key, source_file.code), source_file.code)
        if isinstance(value, str) and value:
            return value
    return None


def _is_optional(member) -> bool:
    return has_token(member, "?") or has_token(member, "!")


def match_decorated_field(member, source_file, context) -> Optional[PropertyDescriptor]:
    """``@Input('alias') name: T`` / ``@property({attribute: 'x'}) name = 1``."""
    conventions = context.conventions
    args = None
    for decorator in impl.decorators_of(member):
        name, decorator_args = impl.decorator_call(decorator, source_file.code)
        if name in conventions.property_decorators:
            args = decorator_args
            break
    if args is None:
        return None
    name = _member_name(member, source_file)
    if name is None:
        return None

    override = None
    if args:
        first = unwrap_expression(args[0])
        if first is not None and first.type in ("string", "template_string"):
            override = literal_value(first, source_file.code)
            override = override if isinstance(override, str) and override else None
        elif first is not None and first.type == "object":
            override = _override_from_options(first, source_file)

    meta = extract_jsdoc(member, source_file.code)
    if member.type == "method_definition":
        param = impl.first_parameter(member)
        type_node = impl.parameter_type(param)
        initializer = None
    else:
        type_node = type_of_annotation(member.child_by_field_name("type"))
        initializer = member.child_by_field_name("value")

    if type_node is not None:
        schema = resolve_type_schema(type_node, source_file, context)
    else:
        schema = _schema_from_initializer(initializer, source_file)

    return _descriptor(
        name,
        override or meta.attribute or kebab_case(name),
        schema,
        not _is_optional(member),
        SOURCE_DECORATOR,
        meta,
        extract_default_value(meta, initializer, source_file.code),
    )


def _schema_from_initializer(initializer, source_file) -> Dict[str, Any]:
    if initializer is None:
        return {}
    value = primitive_default(initializer, source_file.code)
    if value is UNKNOWN:
        return {}
    return schema_of_value(value)


def _factory_call(member, source_file, context):
    """``(call, required)`` when a field is initialised by a property factory."""
    if member.type != "public_field_definition":
        return None, False
    value = unwrap_expression(member.child_by_field_name("value"))
    if value is None or value.type != "call_expression":
        return None, False
    name = callee_name(value, source_file.code)
    if name is None:
        return None, False
    conventions = context.conventions
    if name in conventions.property_factories:
        return value, False
    base, _, suffix = name.rpartition(".")
    if suffix == conventions.required_factory_member and base in conventions.property_factories:
        return value, True
    return None, False


def match_factory_field(member, source_file, context) -> Optional[PropertyDescriptor]:
    """``name = input<T>(default, {alias})`` / ``name = input.required<T>({alias})``."""
    call, required = _factory_call(member, source_file, context)
    if call is None:
        return None
    name = _member_name(member, source_file)
    if name is None:
        return None

    args = call_arguments(call)
    if required:
        default_node, options = None, args[0] if args else None
    else:
        default_node = args[0] if args else None
        options = args[1] if len(args) > 1 else None

    meta = extract_jsdoc(member, source_file.code)
    type_args = type_arguments(call)
    if type_args:
        schema = resolve_type_schema(type_args[0], source_file, context)
    else:
        schema = _schema_from_initializer(default_node, source_file)

    override = _override_from_options(options, source_file) if options is not None else None
    return _descriptor(
        name,
        override or meta.attribute or kebab_case(name),
        schema,
        required,
        SOURCE_FACTORY,
        meta,
        extract_default_value(meta, default_node, source_file.code),
    )


FIELD_STRATEGIES = (match_decorated_field, match_factory_field)


# -- shapes -----------------------------------------------------------------

def class_shape(node, source_file, context):
    """Type node describing a class component's props, if it declares one."""
    extends_value, extends_args, implemented = impl.heritage(node)
    if extends_value is None:
        return None
    base = source_file.text(extends_value).rsplit(".", 1)[-1]
    if base in context.conventions.element_base_classes:
        return implemented[0] if implemented else None
    if base in context.conventions.component_base_classes:
        return extends_args[0] if extends_args else None
    return None


def function_shape(declaration, context):
    """Props type of a function component: the annotation ``FC<Props>`` or its first parameter."""
    annotation = impl.declared_type(declaration)
    if annotation is not None and annotation.type == "generic_type":
        args = type_arguments(annotation)
        if args:
            return args[0]
    function = impl.function_node(declaration, context)
    if function is None:
        return None
    return impl.parameter_type(impl.first_parameter(function))


def shape_members(type_node, source_file, context) -> List[MemberInfo]:
    members = enumerate_members(type_node, source_file, context) or []
    reserved = context.conventions.reserved_members
    return [m for m in members if m.name not in reserved]


def shape_properties(type_node, source_file, context) -> List[PropertyDescriptor]:
    resolver = TypeResolver(context)
    props = []
    for member in shape_members(type_node, source_file, context):
        meta = extract_jsdoc(member.node, member.source_file.code)
        props.append(_descriptor(
            member.name,
            meta.attribute or kebab_case(member.name),
            resolver.member_schema(member),
            not member.optional,
            SOURCE_SHAPE,
            meta,
            meta.default,
        ))
    return props


# -- legacy propTypes -------------------------------------------------------

def _legacy_block(declaration, block: str):
    node = impl.class_node(declaration)
    if node is not None:
        for member in impl.class_members(node):
            if member.type == "public_field_definition" and has_token(member, "static"):
                if _member_name(member, declaration.source_file) == block:
                    return member.child_by_field_name("value")
    found = impl.static_assignments(declaration, block)
    return found[-1] if found else None


def legacy_properties(declaration, context) -> List[PropertyDescriptor]:
    conventions = context.conventions
    source_file = declaration.source_file
    types_block = unwrap_expression(_legacy_block(declaration, conventions.legacy_type_block))
    defaults_block = unwrap_expression(_legacy_block(declaration, conventions.legacy_default_block))

    defaults = {}
    if defaults_block is not None and defaults_block.type == "object":
        for key, value_node, pair in object_entries(defaults_block, source_file.code):
            if pair.type == "pair":
                value = primitive_default(value_node, source_file.code)
                if value is UNKNOWN:
                    value = literal_value(value_node, source_file.code)
                if value is not UNKNOWN:
                    defaults[key] = value

    props = []
    if types_block is None or types_block.type != "object":
        return props
    for key, value_node, pair in object_entries(types_block, source_file.code):
        if pair.type != "pair":
            continue
        schema, required = validator_schema(value_node, source_file)
        meta = extract_jsdoc(pair, source_file.code)
        default = meta.default if meta.has_default else defaults.get(key, NO_DEFAULT)
        props.append(_descriptor(key, meta.attribute or kebab_case(key), schema, required, SOURCE_LEGACY,
                                 meta, default))
    return props


_SIMPLE_VALIDATORS = {
    "string": {"type": "string"},
    "number": {"type": "number"},
    "bool": {"type": "boolean"},
    "array": {"type": "array", "items": {}},
    "object": {"type": "object"},
    "symbol": {},
    "func": {},
    "node": {},
    "element": {},
    "elementType": {},
    "any": {},
}


def validator_schema(node, source_file):
    """Schema and requiredness of a ``PropTypes.*`` validator expression."""
    node = unwrap_expression(node)
    required = False
    if node is not None and node.type == "member_expression":
        prop = node.child_by_field_name("property")
        if prop is not None and source_file.text(prop) == "isRequired":
            required = True
            node = unwrap_expression(node.child_by_field_name("object"))
    return _validator(node, source_file), required


def _validator(node, source_file) -> Dict[str, Any]:
    if node is None:
        return {}
    if node.type == "member_expression":
        prop = node.child_by_field_name("property")
        name = source_file.text(prop) if prop is not None else ""
        return dict(_SIMPLE_VALIDATORS.get(name, {}))
    if node.type != "call_expression":
        return {}
    name = (callee_name(node, source_file.code) or "").rsplit(".", 1)[-1]
    args = call_arguments(node)
    arg = unwrap_expression(args[0]) if args else None
    if name == "arrayOf":
        return {"type": "array", "items": validator_schema(arg, source_file)[0]}
    if name == "objectOf":
        return {"type": "object", "additionalProperties": validator_schema(arg, source_file)[0]}
    if name == "oneOf":
        values = literal_value(arg, source_file.code)
        if not isinstance(values, list) or not values:
            return {}
        kinds = {schema_of_value(v).get("type") for v in values}
        schema: Dict[str, Any] = {"enum": values}
        if len(kinds) == 1 and None not in kinds:
            schema = {"type": kinds.pop(), "enum": values}
        return schema
    if name == "oneOfType":
        if arg is None or arg.type != "array":
            return {}
        options = [validator_schema(el, source_file)[0] for el in named_children(arg)]
        return union_schema(options)
    if name in ("shape", "exact"):
        properties, required = {}, []
        if arg is not None and arg.type == "object":
            for key, value_node, pair in object_entries(arg, source_file.code):
                if pair.type != "pair":
                    continue
                schema, is_required = validator_schema(value_node, source_file)
                properties[key] = schema
                if is_required:
                    required.append(key)
        schema = {"type": "object", "properties": properties}
        if required:
            schema["required"] = required
        return schema
    if name == "instanceOf" and arg is not None and source_file.text(arg) == "Date":
        return {"type": "string", "format": "date-time"}
    return {}
