"""Configuration loading for owcs (owcs.config.*)."""

import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from owcs.exceptions import ConfigError
from owcs.extractors.literals import UNKNOWN, literal_value
from owcs.logging import get_logger
from owcs.program.parser import parse_source, read_source
from owcs.utils.ast_utils import call_arguments, named_children, node_text, unwrap_expression, walk

logger = get_logger("config")

CONFIG_FILE_NAMES = ("owcs.config.js", "owcs.config.mjs", "owcs.config.cjs", "owcs.config.json")
OUTPUT_FORMATS = ("json", "yaml")
ADAPTERS = ("angular", "react", "auto")


@dataclass
class OwcsConfig:
    """Settings read from an owcs.config.* file; CLI flags override them."""

    title: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    include_runtime_extension: bool = False
    format: str = "json"
    adapter: str = "auto"
    output_path: Optional[str] = None
    project_root: Optional[str] = None
    extensions: Dict[str, Any] = field(default_factory=dict)
    source_path: Optional[str] = None


def find_config_file(project_root: str) -> Optional[str]:
    for name in CONFIG_FILE_NAMES:
        path = os.path.join(project_root, name)
        if os.path.isfile(path):
            return path
    return None


def load_config(project_root: str) -> Optional[OwcsConfig]:
    """Load the first config file found in ``project_root``, or None."""
    config_path = find_config_file(project_root)
    if config_path is None:
        return None
    logger.debug("Loading config from %s", config_path)
    if config_path.endswith(".json"):
        try:
            data = json.loads(read_source(config_path))
        except ValueError as e:
            raise ConfigError(f"Invalid JSON in {os.path.basename(config_path)}", {"error": str(e)})
    else:
        data = _read_js_config(config_path)
    return config_from_dict(data, config_path)


def _read_js_config(config_path: str) -> Dict[str, Any]:
    code, tree = parse_source(read_source(config_path), config_path)
    exported = _exported_expression(tree.root_node, code)
    if exported is None:
        raise ConfigError("Config file must export an object", {"file": config_path})
    value = literal_value(exported, code)
    if value is UNKNOWN or not isinstance(value, dict):
        raise ConfigError("Config file must export a literal object", {"file": config_path})
    return value


def _exported_expression(root, code: bytes):
    exported = None
    for stmt in named_children(root):
        if stmt.type == "export_statement" and any(c.type == "default" for c in stmt.children):
            exported = stmt.child_by_field_name("value")
        elif stmt.type == "expression_statement":
            for assignment in walk(stmt, {"assignment_expression"}):
                left = assignment.child_by_field_name("left")
                if left is not None and node_text(left, code).replace(" ", "") == "module.exports":
                    exported = assignment.child_by_field_name("right")
    return _unwrap_config_call(exported, root, code)


def _unwrap_config_call(node, root, code: bytes):
    node = unwrap_expression(node)
    if node is None:
        return None
    if node.type == "call_expression":
        # defineConfig({...})
        args = call_arguments(node)
        return unwrap_expression(args[0]) if args else None
    if node.type == "identifier":
        name = node_text(node, code)
        for declarator in walk(root, {"variable_declarator"}):
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and node_text(name_node, code) == name:
                return unwrap_expression(declarator.child_by_field_name("value"))
        return None
    return node


def _as_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"'{key}' must be a string")
    return value


def config_from_dict(data: Any, source_path: Optional[str] = None) -> OwcsConfig:
    if not isinstance(data, dict):
        raise ConfigError("Config file must export an object", {"file": source_path})

    fmt = data.get("format", "json")
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError("'format' must be either 'yaml' or 'json'")
    adapter = data.get("adapter", "auto")
    if adapter not in ADAPTERS:
        raise ConfigError("'adapter' must be one of 'angular', 'react' or 'auto'")

    include_runtime = data.get("includeRuntimeExtension", False)
    if not isinstance(include_runtime, bool):
        raise ConfigError("'includeRuntimeExtension' must be a boolean")

    extensions = data.get("extensions") or {}
    if not isinstance(extensions, dict):
        raise ConfigError("'extensions' must be an object")
    invalid = [key for key in extensions if not key.startswith("x-")]
    if invalid:
        raise ConfigError(
            f"Invalid extension keys: {', '.join(invalid)}. All extension keys must start with 'x-'",
            {"keys": invalid},
        )
    for key, value in extensions.items():
        if not isinstance(value, (str, int, float, bool)):
            raise ConfigError(f"Extension '{key}' must be a string, number or boolean")

    return OwcsConfig(
        title=_as_str(data, "title"),
        description=_as_str(data, "description"),
        version=_as_str(data, "version"),
        include_runtime_extension=include_runtime,
        format=fmt,
        adapter=adapter,
        output_path=_as_str(data, "outputPath"),
        project_root=_as_str(data, "projectRoot"),
        extensions=dict(extensions),
        source_path=source_path,
    )
