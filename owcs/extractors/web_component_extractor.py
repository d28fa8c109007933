import json
from typing import Dict, List, Optional

from owcs.base.component_extractor import ComponentExtractor
from owcs.exceptions import UnresolvedSymbol
from owcs.extractors.discovery import find_registrations, resolve_registration
from owcs.extractors.events_extractor import extract_events
from owcs.extractors.federation_extractor import extract_runtime_config
from owcs.extractors.props_extractor import extract_properties
from owcs.logging import get_logger
from owcs.models import ComponentDefinition, IntermediateModel, RuntimeConfig

logger = get_logger("extractors.web_component")


def build_component(component, context) -> ComponentDefinition:
    declaration = component.declaration
    return ComponentDefinition(
        tag_name=component.tag_name,
        implementation_ref=declaration.name,
        module_path=context.program.module_path(component.registration.source_file),
        properties=extract_properties(declaration, context),
        events=extract_events(declaration, context),
    )


class WebComponentExtractor(ComponentExtractor):
    """Assembles component definitions file by file.

    A component whose extraction fails is logged and left out; the rest of
    the pass carries on. A tag registered again later replaces the earlier
    definition.
    """

    def __init__(self, context):
        self.context = context
        self.components: Dict[str, ComponentDefinition] = {}
        self.runtime: Optional[RuntimeConfig] = None

    def process_file(self, source_file):
        try:
            registrations = find_registrations(source_file, self.context)
        except Exception as e:
            logger.warning("Failed to scan %s for registrations: %s", source_file.path, e)
            logger.debug("Registration scan failure", exc_info=True)
            return
        for registration in registrations:
            try:
                definition = build_component(resolve_registration(registration, self.context), self.context)
            except UnresolvedSymbol as e:
                logger.warning("Skipping component: %s", e)
                continue
            except Exception as e:
                logger.warning("Failed to extract <%s> from %s: %s", registration.tag_name,
                               source_file.path, e)
                logger.debug("Extraction failure", exc_info=True)
                continue
            if definition.tag_name in self.components:
                logger.warning("Tag %r is registered more than once; using %s from %s",
                               definition.tag_name, definition.implementation_ref, definition.module_path)
            self.components[definition.tag_name] = definition

    def process_program(self, progress=None):
        source_files = self.context.program.source_files
        for source_file in progress(source_files) if progress else source_files:
            self.process_file(source_file)

    def extract_all_components(self) -> List[ComponentDefinition]:
        return list(self.components.values())

    def extract_runtime(self) -> RuntimeConfig:
        if self.runtime is None:
            self.runtime = extract_runtime_config(self.context.program.project_root)
        return self.runtime

    def build_model(self) -> IntermediateModel:
        return IntermediateModel(runtime=self.extract_runtime(), components=self.extract_all_components())

    def write_to_file(self, output_path: str):
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.build_model().to_dict(), f, indent=2, ensure_ascii=False)
