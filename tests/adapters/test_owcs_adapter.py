import pytest

from owcs.adapters.owcs_adapter import adapt_component, adapt_owcs_model, infer_title
from owcs.exceptions import ConfigError
from owcs.models import (
    ComponentDefinition,
    EventDescriptor,
    FederationConfig,
    IntermediateModel,
    PropertyDescriptor,
    RuntimeConfig,
)


@pytest.fixture
def profile():
    return ComponentDefinition(
        tag_name="x-profile",
        implementation_ref="Profile",
        module_path="src/main.ts",
        properties=[
            PropertyDescriptor("name", "name", {"type": "string"}, True, "shape", description="Full name"),
            PropertyDescriptor("age", "age", {"type": "number"}, False, "shape", default=None),
        ],
        events=[
            EventDescriptor("select", "CustomEvent", "callback",
                            payload_schema={"type": "object", "properties": {"id": {"type": "number"}}}),
            EventDescriptor("close", "CustomEvent", "callback"),
        ],
    )


@pytest.fixture
def federated_model(profile):
    federation = FederationConfig(remote_name="profiles", library_type="module",
                                  exposes={"./Profile": "./src/Profile.tsx"})
    return IntermediateModel(runtime=RuntimeConfig("webpack", federation), components=[profile])


def test_component_layout(profile):
    adapted = adapt_component(profile)
    assert adapted == {
        "tagName": "x-profile",
        "module": "src/main.ts",
        "props": {
            "schema": {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "Full name"},
                    "age": {"type": "number", "default": None},
                },
                "required": ["name"],
            }
        },
        "events": {
            "select": {
                "type": "CustomEvent",
                "payload": {"type": "object", "properties": {"id": {"type": "number"}}},
            },
            "close": {"type": "CustomEvent"},
        },
    }


def test_component_without_props_or_events():
    bare = ComponentDefinition("x-bare", "Bare", "src/bare.ts")
    assert adapt_component(bare) == {"tagName": "x-bare", "module": "src/bare.ts"}


def test_required_is_omitted_when_nothing_is_required():
    component = ComponentDefinition("x-opt", "Opt", "src/opt.ts", properties=[
        PropertyDescriptor("size", "size", {"type": "string"}, False, "decorator"),
    ])
    assert "required" not in adapt_component(component)["props"]["schema"]


def test_title_inference(profile, federated_model):
    assert infer_title(federated_model) == "profiles"
    assert infer_title(IntermediateModel(RuntimeConfig("webpack"), [profile])) == "Profile Components"
    assert infer_title(IntermediateModel(RuntimeConfig("webpack"), [])) == "Web Components"


def test_document_envelope(federated_model):
    spec = adapt_owcs_model(federated_model, description="Profile widgets")
    assert spec["owcs"] == "1.0.0"
    assert spec["info"] == {"title": "profiles", "version": "1.0.0", "description": "Profile widgets"}
    assert list(spec["components"]["webComponents"]) == ["x-profile"]
    assert "x-owcs-runtime" not in spec


def test_runtime_extension(federated_model):
    spec = adapt_owcs_model(federated_model, title="T", version="3.1.0", include_runtime_extension=True)
    assert spec["info"] == {"title": "T", "version": "3.1.0"}
    assert spec["x-owcs-runtime"] == {
        "bundler": {
            "name": "webpack",
            "moduleFederation": {
                "remoteName": "profiles",
                "libraryType": "module",
                "exposes": {"./Profile": "./src/Profile.tsx"},
            },
        }
    }


def test_runtime_extension_without_federation(profile):
    model = IntermediateModel(RuntimeConfig("vite"), [profile])
    spec = adapt_owcs_model(model, include_runtime_extension=True)
    assert spec["x-owcs-runtime"] == {"bundler": {"name": "vite"}}


def test_custom_extensions_cannot_override_runtime(federated_model):
    spec = adapt_owcs_model(federated_model, include_runtime_extension=True,
                            extensions={"x-team": "core", "x-owcs-runtime": "custom"})
    assert spec["x-team"] == "core"
    assert spec["x-owcs-runtime"]["bundler"]["name"] == "webpack"


def test_invalid_extension_key(federated_model):
    with pytest.raises(ConfigError):
        adapt_owcs_model(federated_model, extensions={"team": "core"})
