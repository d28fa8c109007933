"""Static read of module-federation settings from vite/webpack configs."""

import os
from typing import Optional

from owcs.exceptions import UnparsableConfig
from owcs.extractors.literals import literal_value
from owcs.logging import get_logger
from owcs.models import FederationConfig, RuntimeConfig
from owcs.program.parser import parse_source, read_source
from owcs.utils.ast_utils import call_arguments, callee_name, object_entries, unwrap_expression, walk

logger = get_logger("extractors.federation")

VITE_CONFIGS = ("vite.config.js", "vite.config.ts", "vite.config.mjs")
WEBPACK_CONFIGS = (
    "webpack.config.js",
    "webpack.config.ts",
    "webpack.config.mjs",
    os.path.join("config", "webpack.config.js"),
    os.path.join("webpack", "webpack.config.js"),
)

VITE_PLUGIN_CALLS = {"federation", "moduleFederation"}
WEBPACK_PLUGIN_CLASS = "ModuleFederationPlugin"
WEBPACK_PLUGIN_CALLS = {"withModuleFederationPlugin"}


def _find(project_root: str, candidates) -> Optional[str]:
    for name in candidates:
        path = os.path.join(project_root, name)
        if os.path.isfile(path):
            return path
    return None


def federation_from_object(node, code: bytes) -> Optional[FederationConfig]:
    """Reads ``name``, ``library.type``/``libraryType`` and ``exposes`` from a plugin options object."""
    node = unwrap_expression(node)
    if node is None or node.type != "object":
        return None
    remote_name = library_type = None
    exposes = {}
    for key, value_node, pair in object_entries(node, code):
        if pair.type != "pair":
            continue
        value = literal_value(value_node, code)
        if key == "name" and isinstance(value, str):
            remote_name = value
        elif key == "library" and isinstance(value, dict) and isinstance(value.get("type"), str):
            library_type = value["type"]
        elif key == "libraryType" and isinstance(value, str):
            library_type = value
        elif key == "exposes" and isinstance(value, dict):
            exposes = {k: v for k, v in value.items() if isinstance(v, str)}
    if not remote_name:
        return None
    return FederationConfig(remote_name=remote_name, library_type=library_type, exposes=exposes or None)


def _plugin_options(root, code: bytes, bundler: str):
    for node in walk(root, {"call_expression", "new_expression"}):
        name = callee_name(node, code)
        if name is None:
            continue
        args = call_arguments(node)
        if not args:
            continue
        if bundler == "vite":
            if node.type == "call_expression" and name in VITE_PLUGIN_CALLS:
                return args[0]
        elif node.type == "new_expression" and name.rsplit(".", 1)[-1] == WEBPACK_PLUGIN_CLASS:
            return args[0]
        elif node.type == "call_expression" and name in WEBPACK_PLUGIN_CALLS:
            return args[0]
    return None


def parse_federation_config(config_path: str, bundler: str) -> Optional[FederationConfig]:
    try:
        text = read_source(config_path)
    except OSError as e:
        raise UnparsableConfig("Cannot read build config", {"file": config_path, "error": str(e)})
    code, tree = parse_source(text, config_path)
    options = _plugin_options(tree.root_node, code, bundler)
    if options is None:
        if tree.root_node.has_error:
            raise UnparsableConfig("Build config has syntax errors", {"file": config_path})
        logger.info("No module federation plugin in %s", config_path)
        return None
    return federation_from_object(options, code)


def extract_runtime_config(project_root: str) -> RuntimeConfig:
    """Vite configs win over webpack configs; no config at all means plain webpack."""
    config_path = _find(project_root, VITE_CONFIGS)
    bundler = "vite"
    if config_path is None:
        config_path = _find(project_root, WEBPACK_CONFIGS)
        bundler = "webpack"
    if config_path is None:
        return RuntimeConfig(bundler="webpack")
    try:
        federation = parse_federation_config(config_path, bundler)
    except UnparsableConfig as e:
        logger.warning("Ignoring build config: %s", e)
        federation = None
    return RuntimeConfig(bundler=bundler, federation=federation)
