import pytest

from owcs.config import config_from_dict, find_config_file, load_config
from owcs.exceptions import ConfigError


def test_missing_config_returns_none(tmp_path):
    assert load_config(str(tmp_path)) is None


def test_json_config(write_files):
    root = write_files({
        "owcs.config.json": """
            {
              "title": "User Components",
              "version": "2.0.0",
              "adapter": "angular",
              "includeRuntimeExtension": true,
              "extensions": {"x-team": "platform", "x-tier": 2}
            }
        """,
    })
    config = load_config(str(root))
    assert config.title == "User Components"
    assert config.version == "2.0.0"
    assert config.adapter == "angular"
    assert config.include_runtime_extension is True
    assert config.extensions == {"x-team": "platform", "x-tier": 2}
    assert config.format == "json"
    assert config.source_path.endswith("owcs.config.json")


def test_esm_config_with_define_config(write_files):
    root = write_files({
        "owcs.config.mjs": """
            import { defineConfig } from 'owcs';
            export default defineConfig({
              title: 'From ESM',
              outputPath: 'dist/owcs.json',
              description: `Shared widgets`,
            });
        """,
    })
    config = load_config(str(root))
    assert config.title == "From ESM"
    assert config.output_path == "dist/owcs.json"
    assert config.description == "Shared widgets"


def test_commonjs_config_through_identifier(write_files):
    root = write_files({
        "owcs.config.cjs": """
            const config = { adapter: 'react', format: 'yaml' };
            module.exports = config;
        """,
    })
    config = load_config(str(root))
    assert config.adapter == "react"
    assert config.format == "yaml"


def test_js_config_is_preferred_over_json(write_files):
    root = write_files({
        "owcs.config.js": "export default { title: 'js' };\n",
        "owcs.config.json": '{"title": "json"}\n',
    })
    assert find_config_file(str(root)).endswith("owcs.config.js")
    assert load_config(str(root)).title == "js"


def test_invalid_extension_keys_are_rejected():
    with pytest.raises(ConfigError) as excinfo:
        config_from_dict({"extensions": {"team": "platform", "x-ok": 1}})
    assert "team" in str(excinfo.value)


@pytest.mark.parametrize("data", [
    {"format": "xml"},
    {"adapter": "vue"},
    {"includeRuntimeExtension": "yes"},
    {"title": 3},
    {"extensions": {"x-nested": {"a": 1}}},
    ["not", "an", "object"],
])
def test_invalid_values_are_rejected(data):
    with pytest.raises(ConfigError):
        config_from_dict(data)


def test_malformed_json_config(write_files):
    root = write_files({"owcs.config.json": "{ title: }\n"})
    with pytest.raises(ConfigError):
        load_config(str(root))


def test_js_config_without_export(write_files):
    root = write_files({"owcs.config.js": "const title = 'nothing exported';\n"})
    with pytest.raises(ConfigError):
        load_config(str(root))
