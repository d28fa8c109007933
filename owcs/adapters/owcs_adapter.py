"""Projection of the intermediate model onto the versioned OWCS document."""

from typing import Any, Dict, Optional

from owcs.exceptions import ConfigError
from owcs.models import ComponentDefinition, IntermediateModel

OWCS_VERSION = "1.0.0"
DEFAULT_SPEC_VERSION = "1.0.0"
RUNTIME_EXTENSION = "x-owcs-runtime"


def validate_extensions(extensions: Dict[str, Any]):
    invalid = [key for key in extensions if not str(key).startswith("x-")]
    if invalid:
        raise ConfigError(
            f"Invalid extension keys: {', '.join(invalid)}. All extension keys must start with 'x-'",
            {"keys": invalid},
        )


def infer_title(model: IntermediateModel) -> str:
    federation = model.runtime.federation
    if federation is not None and federation.remote_name:
        return federation.remote_name
    if model.components:
        return f"{model.components[0].implementation_ref} Components"
    return "Web Components"


def props_schema(component: ComponentDefinition) -> Dict[str, Any]:
    properties, required = {}, []
    for prop in component.properties:
        schema = dict(prop.schema)
        if prop.description is not None:
            schema["description"] = prop.description
        if prop.has_default:
            schema["default"] = prop.default
        properties[prop.name] = schema
        if prop.required:
            required.append(prop.name)
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


def adapt_component(component: ComponentDefinition) -> Dict[str, Any]:
    adapted: Dict[str, Any] = {"tagName": component.tag_name}
    if component.module_path:
        adapted["module"] = component.module_path
    if component.properties:
        adapted["props"] = {"schema": props_schema(component)}
    if component.events:
        events = {}
        for event in component.events:
            entry: Dict[str, Any] = {"type": event.kind}
            if event.payload_schema is not None:
                entry["payload"] = event.payload_schema
            events[event.name] = entry
        adapted["events"] = events
    return adapted


def runtime_extension(model: IntermediateModel) -> Dict[str, Any]:
    bundler: Dict[str, Any] = {"name": model.runtime.bundler}
    federation = model.runtime.federation
    if federation is not None:
        module_federation: Dict[str, Any] = {"remoteName": federation.remote_name}
        if federation.library_type is not None:
            module_federation["libraryType"] = federation.library_type
        if federation.exposes:
            module_federation["exposes"] = dict(federation.exposes)
        bundler["moduleFederation"] = module_federation
    return {"bundler": bundler}


def adapt_owcs_model(model: IntermediateModel, title: Optional[str] = None, version: Optional[str] = None,
                     description: Optional[str] = None, include_runtime_extension: bool = False,
                     extensions: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    info: Dict[str, Any] = {
        "title": title or infer_title(model),
        "version": version or DEFAULT_SPEC_VERSION,
    }
    if description:
        info["description"] = description

    spec: Dict[str, Any] = {"owcs": OWCS_VERSION, "info": info}

    if extensions:
        validate_extensions(extensions)
        spec.update(extensions)

    # applied after custom extensions so it cannot be overridden by them
    if include_runtime_extension and model.runtime.bundler:
        spec[RUNTIME_EXTENSION] = runtime_extension(model)

    spec["components"] = {
        "webComponents": {c.tag_name: adapt_component(c) for c in model.components},
    }
    return spec
