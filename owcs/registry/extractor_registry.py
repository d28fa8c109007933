from owcs.extractors.web_component_extractor import WebComponentExtractor
from owcs.program.context import ResolutionContext
from owcs.registry.convention_registry import CONVENTIONS, get_conventions


def get_extractor(adapter: str, program):
    adapter_name = (adapter or "auto").lower()
    if adapter_name not in CONVENTIONS:
        raise ValueError(f"No extractor for adapter: {adapter}")
    return WebComponentExtractor(ResolutionContext(program, get_conventions(adapter_name)))
