import pytest

from owcs.extractors.web_component_extractor import WebComponentExtractor
from owcs.program.program import Program
from owcs.registry.convention_registry import ANGULAR, AUTO, REACT, get_conventions
from owcs.registry.extractor_registry import get_extractor


def test_profiles_by_name():
    assert get_conventions("angular") is ANGULAR
    assert get_conventions("React") is REACT
    assert get_conventions(None) is AUTO


def test_unknown_profile():
    with pytest.raises(ValueError):
        get_conventions("vue")


def test_auto_profile_covers_both_frameworks():
    assert ANGULAR.property_decorators <= AUTO.property_decorators
    assert {"property", "Prop"} <= AUTO.property_decorators
    assert ANGULAR.wrapping_factories | REACT.wrapping_factories == AUTO.wrapping_factories
    assert AUTO.callback_prefixes == ("on",)
    assert AUTO.component_base_classes == REACT.component_base_classes == {"Component", "PureComponent"}
    assert not ANGULAR.component_base_classes


def test_registration_callee_prefixes():
    assert AUTO.is_registration("customElements.define")
    assert AUTO.is_registration("window.customElements.define")
    assert AUTO.is_registration("globalThis.customElements.define")
    assert not AUTO.is_registration("registry.define")


@pytest.mark.parametrize("member, expected", [
    ("onSelect", "select"),
    ("onValueChange", "valueChange"),
    ("online", None),
    ("on", None),
    ("handleClick", None),
])
def test_callback_event_name(member, expected):
    assert REACT.callback_event_name(member) == expected


def test_angular_profile_has_no_callback_events():
    assert ANGULAR.callback_event_name("onSelect") is None


def test_get_extractor(tmp_path):
    extractor = get_extractor("react", Program(str(tmp_path)))
    assert isinstance(extractor, WebComponentExtractor)
    assert extractor.context.conventions is REACT

    with pytest.raises(ValueError):
        get_extractor("svelte", Program(str(tmp_path)))
