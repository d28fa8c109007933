from dataclasses import dataclass
from typing import FrozenSet


@dataclass(frozen=True)
class Conventions:
    """Identifiers recognised while scanning component sources."""

    registration_callees: FrozenSet[str]
    wrapping_factories: FrozenSet[str]
    property_decorators: FrozenSet[str]
    property_factories: FrozenSet[str]
    required_factory_member: str
    output_decorators: FrozenSet[str]
    output_factories: FrozenSet[str]
    emitter_types: FrozenSet[str]
    callback_prefixes: tuple
    reserved_members: FrozenSet[str]
    dispatch_methods: FrozenSet[str]
    event_constructors: FrozenSet[str]
    element_base_classes: FrozenSet[str]
    component_base_classes: FrozenSet[str]
    legacy_type_block: str
    legacy_default_block: str
    component_wrappers: FrozenSet[str]

    def is_registration(self, callee: str) -> bool:
        for prefix in ("window.", "globalThis.", "self."):
            if callee.startswith(prefix):
                callee = callee[len(prefix):]
                break
        return callee in self.registration_callees

    def callback_event_name(self, member_name: str):
        """Event name for ``onFooBar``-style members, else None."""
        for prefix in self.callback_prefixes:
            rest = member_name[len(prefix):]
            if member_name.startswith(prefix) and rest[:1].isupper():
                return rest[0].lower() + rest[1:]
        return None


_SHARED = dict(
    registration_callees=frozenset({"customElements.define"}),
    required_factory_member="required",
    dispatch_methods=frozenset({"dispatchEvent"}),
    event_constructors=frozenset({"CustomEvent", "Event"}),
    element_base_classes=frozenset({"HTMLElement"}),
    legacy_type_block="propTypes",
    legacy_default_block="defaultProps",
)

ANGULAR = Conventions(
    wrapping_factories=frozenset({"createCustomElement"}),
    property_decorators=frozenset({"Input"}),
    property_factories=frozenset({"input", "model"}),
    output_decorators=frozenset({"Output"}),
    output_factories=frozenset({"output"}),
    emitter_types=frozenset({"EventEmitter"}),
    callback_prefixes=(),
    reserved_members=frozenset(),
    component_wrappers=frozenset(),
    component_base_classes=frozenset(),
    **_SHARED,
)

REACT = Conventions(
    wrapping_factories=frozenset({"r2wc", "reactToWebComponent"}),
    property_decorators=frozenset(),
    property_factories=frozenset(),
    output_decorators=frozenset(),
    output_factories=frozenset(),
    emitter_types=frozenset(),
    callback_prefixes=("on",),
    reserved_members=frozenset({"children", "key", "ref"}),
    component_wrappers=frozenset({"memo", "React.memo", "forwardRef", "React.forwardRef"}),
    component_base_classes=frozenset({"Component", "PureComponent"}),
    **_SHARED,
)

AUTO = Conventions(
    wrapping_factories=ANGULAR.wrapping_factories | REACT.wrapping_factories,
    property_decorators=ANGULAR.property_decorators | {"property", "Prop"},
    property_factories=ANGULAR.property_factories,
    output_decorators=ANGULAR.output_decorators | {"Event"},
    output_factories=ANGULAR.output_factories,
    emitter_types=ANGULAR.emitter_types,
    callback_prefixes=REACT.callback_prefixes,
    reserved_members=REACT.reserved_members,
    component_wrappers=REACT.component_wrappers,
    component_base_classes=REACT.component_base_classes,
    **_SHARED,
)

CONVENTIONS = {
    "angular": ANGULAR,
    "react": REACT,
    "auto": AUTO,
}


def get_conventions(name: str) -> Conventions:
    """
    Return the convention profile registered under `name`.
    Raises ValueError for unknown profiles.
    """
    name = (name or "auto").lower()
    if name not in CONVENTIONS:
        raise ValueError(f"Unknown convention profile: {name}")
    return CONVENTIONS[name]
