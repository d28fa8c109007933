"""Intermediate model produced by one analysis pass.

Schemas are plain JSON-compatible dicts (see ``owcs.extractors.type_resolver``).
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Sentinel so that an explicit ``None``/``null`` default stays distinguishable
# from "no default recorded".
NO_DEFAULT = object()


def _drop_unset(data: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in data.items() if v is not None and v is not NO_DEFAULT}


@dataclass(frozen=True)
class PropertyDescriptor:
    name: str
    external_name: str
    schema: Dict[str, Any]
    required: bool
    source_kind: str
    description: Optional[str] = None
    default: Any = NO_DEFAULT
    deprecated: Optional[bool] = None

    @property
    def has_default(self) -> bool:
        return self.default is not NO_DEFAULT

    def to_dict(self) -> Dict[str, Any]:
        data = _drop_unset({
            "name": self.name,
            "externalName": self.external_name,
            "schema": self.schema,
            "required": self.required,
            "sourceKind": self.source_kind,
            "description": self.description,
            "deprecated": self.deprecated,
        })
        if self.has_default:
            data["default"] = self.default
        return data


@dataclass(frozen=True)
class EventDescriptor:
    name: str
    kind: str
    source_kind: str
    payload_schema: Optional[Dict[str, Any]] = None
    bubbles: Optional[bool] = None
    composed: Optional[bool] = None
    description: Optional[str] = None
    deprecated: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_unset({
            "name": self.name,
            "kind": self.kind,
            "payloadSchema": self.payload_schema,
            "sourceKind": self.source_kind,
            "bubbles": self.bubbles,
            "composed": self.composed,
            "description": self.description,
            "deprecated": self.deprecated,
        })


@dataclass(frozen=True)
class ComponentDefinition:
    tag_name: str
    implementation_ref: str
    module_path: str
    properties: List[PropertyDescriptor] = field(default_factory=list)
    events: List[EventDescriptor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tagName": self.tag_name,
            "implementationRef": self.implementation_ref,
            "modulePath": self.module_path,
            "properties": [p.to_dict() for p in self.properties],
            "events": [e.to_dict() for e in self.events],
        }


@dataclass(frozen=True)
class FederationConfig:
    remote_name: str
    library_type: Optional[str] = None
    exposes: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_unset({
            "remoteName": self.remote_name,
            "libraryType": self.library_type,
            "exposes": dict(self.exposes) if self.exposes else None,
        })


@dataclass(frozen=True)
class RuntimeConfig:
    bundler: str
    federation: Optional[FederationConfig] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"bundler": self.bundler}
        if self.federation is not None:
            data["federation"] = self.federation.to_dict()
        return data


@dataclass(frozen=True)
class IntermediateModel:
    runtime: RuntimeConfig
    components: List[ComponentDefinition] = field(default_factory=list)

    def component(self, tag_name: str) -> Optional[ComponentDefinition]:
        for comp in self.components:
            if comp.tag_name == tag_name:
                return comp
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "runtime": self.runtime.to_dict(),
            "components": [c.to_dict() for c in self.components],
        }
