"""Event extraction.

Three strategies feed one name-keyed map, lowest precedence first so that
later writes win:

1. ``@fires`` tags on the component's own documentation;
2. callback members of the props shape (``onSave`` -> ``save``) and
   declared outputs (``@Output() x = new EventEmitter<T>()``,
   ``x = output<T>()``);
3. ``this.dispatchEvent(new CustomEvent('name', {...}))`` calls.
"""

from typing import Any, Dict, List, Optional

from owcs.extractors import implementation as impl
from owcs.extractors.jsdoc import JSDocMetadata, extract_jsdoc, parse_jsdoc
from owcs.extractors.literals import infer_schema, literal_value
from owcs.extractors.props_extractor import class_shape, function_shape, shape_members
from owcs.extractors.type_resolver import resolve_type_schema, type_name_of
from owcs.logging import get_logger
from owcs.models import EventDescriptor
from owcs.utils.ast_utils import (
    FUNCTION_NODE_TYPES,
    call_arguments,
    callee_name,
    jsdoc_comment,
    named_children,
    object_entry,
    type_arguments,
    type_of_annotation,
    unwrap_expression,
    walk,
)

logger = get_logger("extractors.events")

SOURCE_JSDOC = "jsdoc"
SOURCE_CALLBACK = "callback"
SOURCE_OUTPUT = "output"
SOURCE_DISPATCH = "dispatch"

KIND_CUSTOM_EVENT = "CustomEvent"
KIND_EVENT_EMITTER = "EventEmitter"
KIND_OUTPUT_SIGNAL = "OutputSignal"

DOCUMENTABLE_TYPES = {
    "method_definition",
    "public_field_definition",
    "variable_declarator",
    "function_declaration",
    "pair",
}


def extract_events(declaration, context) -> List[EventDescriptor]:
    events: Dict[str, EventDescriptor] = {}
    for strategy in EVENT_STRATEGIES:
        for event in strategy(declaration, context):
            events[event.name] = event
    return list(events.values())


def _event(name, kind, source_kind, meta: Optional[JSDocMetadata] = None, payload=None,
           bubbles=None, composed=None, description=None):
    meta = meta or JSDocMetadata()
    return EventDescriptor(
        name=name,
        kind=kind,
        source_kind=source_kind,
        payload_schema=payload,
        bubbles=bubbles,
        composed=composed,
        description=description if description is not None else meta.description,
        deprecated=meta.deprecated,
    )


# -- documentation -----------------------------------------------------------

def documented_events(declaration, context) -> List[EventDescriptor]:
    node = impl.class_node(declaration) or declaration.node
    meta = parse_jsdoc(jsdoc_comment(node, declaration.source_file.code))
    return [_event(name, KIND_CUSTOM_EVENT, SOURCE_JSDOC, description=desc) for name, desc in meta.fires]


# -- callbacks and outputs -----------------------------------------------------

def _function_type(type_node, source_file, context, depth=0):
    """The function type behind a member's type annotation, if any."""
    node = type_node
    while node is not None and node.type == "parenthesized_type":
        inner = named_children(node)
        node = inner[0] if inner else None
    if node is None:
        return None, source_file
    if node.type == "function_type":
        return node, source_file
    if node.type == "union_type":
        parts = [p for p in named_children(node) if source_file.text(p) not in ("undefined", "null")]
        if len(parts) == 1:
            return _function_type(parts[0], source_file, context, depth)
        return None, source_file
    if node.type in ("type_identifier", "generic_type") and depth < 3:
        name = type_name_of(node, source_file)
        target = context.resolve_type_declaration(name, source_file) if name else None
        if target is not None and target.kind == "type":
            value = target.node.child_by_field_name("value")
            return _function_type(value, target.source_file, context, depth + 1)
    return None, source_file


def _first_parameter_payload(function, source_file, context, scope) -> Optional[Dict[str, Any]]:
    params = [p for p in named_children(function.child_by_field_name("parameters"))
              if p.type in ("required_parameter", "optional_parameter")]
    if not params:
        return None
    type_node = type_of_annotation(params[0].child_by_field_name("type"))
    return resolve_type_schema(type_node, source_file, context, scope)


def callback_events(declaration, context) -> List[EventDescriptor]:
    node = impl.class_node(declaration)
    if node is not None:
        shape = class_shape(node, declaration.source_file, context)
    else:
        shape = function_shape(declaration, context)
    if shape is None:
        return []

    events = []
    for member in shape_members(shape, declaration.source_file, context):
        derived = context.conventions.callback_event_name(member.name)
        if derived is None:
            continue
        if member.kind == "method":
            function, function_file = member.node, member.source_file
        else:
            function, function_file = _function_type(member.type_node, member.source_file, context)
            if function is None:
                continue
        meta = extract_jsdoc(member.node, member.source_file.code)
        payload = _first_parameter_payload(function, function_file, context, member.scope)
        events.append(_event(meta.event or derived, KIND_CUSTOM_EVENT, SOURCE_CALLBACK, meta, payload))
    return events


def _payload_type(type_node, source_file, context) -> Optional[Dict[str, Any]]:
    if type_node is None:
        return None
    inner = unwrap_expression(type_node)
    if inner is not None and inner.type == "predefined_type" and source_file.text(inner) == "void":
        return None
    return resolve_type_schema(type_node, source_file, context)


def _alias_of(args, source_file) -> Optional[str]:
    if not args:
        return None
    first = unwrap_expression(args[0])
    if first is None:
        return None
    if first.type in ("string", "template_string"):
        value = literal_value(first, source_file.code)
    elif first.type == "object":
        value = None
        for key in ("alias", "eventName"):
            value = literal_value(object_entry(first, key, source_file.code), source_file.code)
            if isinstance(value, str) and value:
                break
    else:
        return None
    return value if isinstance(value, str) and value else None


def _decorated_output(member, source_file, context):
    conventions = context.conventions
    for decorator in impl.decorators_of(member):
        name, args = impl.decorator_call(decorator, source_file.code)
        if name not in conventions.output_decorators:
            continue
        type_arg = None
        value = unwrap_expression(member.child_by_field_name("value"))
        if value is not None and value.type == "new_expression":
            if (callee_name(value, source_file.code) or "").rsplit(".", 1)[-1] in conventions.emitter_types:
                args_ = type_arguments(value)
                type_arg = args_[0] if args_ else None
        if type_arg is None:
            annotation = type_of_annotation(member.child_by_field_name("type"))
            if annotation is not None and type_name_of(annotation, source_file) in conventions.emitter_types:
                args_ = type_arguments(annotation)
                type_arg = args_[0] if args_ else None
        return _alias_of(args, source_file), type_arg, KIND_EVENT_EMITTER
    return None


def _factory_output(member, source_file, context):
    value = unwrap_expression(member.child_by_field_name("value"))
    if value is None or value.type != "call_expression":
        return None
    if callee_name(value, source_file.code) not in context.conventions.output_factories:
        return None
    args = type_arguments(value)
    return _alias_of(call_arguments(value), source_file), args[0] if args else None, KIND_OUTPUT_SIGNAL


def output_events(declaration, context) -> List[EventDescriptor]:
    node = impl.class_node(declaration)
    if node is None:
        return []
    source_file = declaration.source_file
    events = []
    for member in impl.class_members(node):
        if member.type != "public_field_definition":
            continue
        found = _decorated_output(member, source_file, context) or _factory_output(member, source_file, context)
        if found is None:
            continue
        alias, type_arg, kind = found
        name_node = member.child_by_field_name("name")
        meta = extract_jsdoc(member, source_file.code)
        name = alias or meta.event or source_file.text(name_node)
        events.append(_event(name, kind, SOURCE_OUTPUT, meta, _payload_type(type_arg, source_file, context)))
    return events


def callbacks_and_outputs(declaration, context) -> List[EventDescriptor]:
    return callback_events(declaration, context) + output_events(declaration, context)


# -- dispatch ------------------------------------------------------------------

def _dispatch_scopes(declaration, context) -> List:
    """Bodies whose calls count as dispatch sites."""
    node = impl.class_node(declaration)
    if node is None:
        function = impl.function_node(declaration, context)
        return [function] if function is not None else []
    scopes = []
    for member in impl.class_members(node):
        if member.type == "method_definition":
            scopes.append(member)
        elif member.type == "public_field_definition":
            value = unwrap_expression(member.child_by_field_name("value"))
            if value is not None and value.type in FUNCTION_NODE_TYPES:
                scopes.append(member)
    return scopes


def _is_dispatch(call, source_file, conventions) -> bool:
    fn = call.child_by_field_name("function")
    if fn is None:
        return False
    if fn.type == "member_expression":
        prop = fn.child_by_field_name("property")
        name = source_file.text(prop) if prop is not None else None
    elif fn.type == "identifier":
        name = source_file.text(fn)
    else:
        return False
    return name in conventions.dispatch_methods and len(call_arguments(call)) == 1


def _event_construction(arg, call, scope, source_file, conventions):
    arg = unwrap_expression(arg)
    if arg is not None and arg.type == "identifier":
        arg = _local_binding(source_file.text(arg), call, scope, source_file)
    if arg is None or arg.type != "new_expression":
        return None
    constructor = (callee_name(arg, source_file.code) or "").rsplit(".", 1)[-1]
    if constructor not in conventions.event_constructors:
        return None
    return arg, constructor


def _local_binding(name, call, scope, source_file):
    """Last ``const name = new ...`` before ``call`` inside ``scope``."""
    found = None
    for declarator in walk(scope, {"variable_declarator"}):
        if declarator.start_byte >= call.start_byte:
            break
        name_node = declarator.child_by_field_name("name")
        if name_node is not None and source_file.text(name_node) == name:
            found = unwrap_expression(declarator.child_by_field_name("value"))
    return found


def _nearest_metadata(call, scope, source_file) -> JSDocMetadata:
    current = call.parent
    while current is not None:
        if current.type in DOCUMENTABLE_TYPES:
            comment = jsdoc_comment(current, source_file.code)
            if comment:
                return parse_jsdoc(comment)
        if current.start_byte == scope.start_byte and current.end_byte == scope.end_byte:
            break
        current = current.parent
    return JSDocMetadata()


def _flag(options, key, source_file) -> Optional[bool]:
    value = unwrap_expression(object_entry(options, key, source_file.code))
    if value is None or value.type not in ("true", "false"):
        return None
    return value.type == "true"


def _literal_detail(options, source_file):
    detail = unwrap_expression(object_entry(options, "detail", source_file.code))
    if detail is None:
        return False, None
    if detail.type == "shorthand_property_identifier":
        return True, {}
    if detail.type in ("object", "array", "string", "number", "true", "false", "template_string",
                       "unary_expression"):
        return True, infer_schema(detail, source_file.code)
    return True, None


def dispatched_events(declaration, context) -> List[EventDescriptor]:
    source_file = declaration.source_file
    conventions = context.conventions
    events = []
    for scope in _dispatch_scopes(declaration, context):
        for call in walk(scope, {"call_expression"}):
            if not _is_dispatch(call, source_file, conventions):
                continue
            found = _event_construction(call_arguments(call)[0], call, scope, source_file, conventions)
            if found is None:
                continue
            construction, kind = found
            args = call_arguments(construction)
            name = literal_value(args[0], source_file.code) if args else None
            if not isinstance(name, str) or not name:
                logger.debug("Skipping dispatch without a literal event name in %s", source_file.path)
                continue

            options = unwrap_expression(args[1]) if len(args) > 1 else None
            has_detail, payload = False, None
            bubbles = composed = None
            if options is not None and options.type == "object":
                has_detail, payload = _literal_detail(options, source_file)
                bubbles = _flag(options, "bubbles", source_file)
                composed = _flag(options, "composed", source_file)
            if payload is None:
                type_args = type_arguments(construction)
                if type_args:
                    payload = resolve_type_schema(type_args[0], source_file, context)
                elif has_detail:
                    payload = {}

            meta = _nearest_metadata(call, scope, source_file)
            events.append(_event(name, kind, SOURCE_DISPATCH, meta, payload, bubbles, composed))
    return events


EVENT_STRATEGIES = (documented_events, callbacks_and_outputs, dispatched_events)
