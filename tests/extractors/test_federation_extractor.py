import logging

import pytest

from owcs.exceptions import UnparsableConfig
from owcs.extractors.federation_extractor import extract_runtime_config, parse_federation_config


def test_webpack_module_federation_plugin(write_files):
    root = write_files({
        "webpack.config.js": """
            const { ModuleFederationPlugin } = require('webpack').container;

            module.exports = {
              plugins: [
                new ModuleFederationPlugin({
                  name: 'userComponents',
                  library: { type: 'var', name: 'userComponents' },
                  exposes: {
                    './UserCard': './src/user-card.component.ts',
                  },
                  shared: ['@angular/core'],
                }),
              ],
            };
        """,
    })
    runtime = extract_runtime_config(str(root))
    assert runtime.bundler == "webpack"
    assert runtime.federation.remote_name == "userComponents"
    assert runtime.federation.library_type == "var"
    assert runtime.federation.exposes == {"./UserCard": "./src/user-card.component.ts"}


def test_angular_helper_without_exposes(write_files):
    root = write_files({
        "webpack.config.js": """
            const { withModuleFederationPlugin } = require('@angular-architects/module-federation/webpack');
            module.exports = withModuleFederationPlugin({ name: 'shell' });
        """,
    })
    federation = extract_runtime_config(str(root)).federation
    assert federation.remote_name == "shell"
    assert federation.library_type is None
    assert federation.exposes is None


def test_vite_config_wins_over_webpack(write_files):
    root = write_files({
        "vite.config.ts": """
            import federation from '@originjs/vite-plugin-federation';
            export default defineConfig({
              plugins: [
                federation({
                  name: 'reactRemote',
                  exposes: { './Button': './src/Button.tsx' },
                }),
              ],
            });
        """,
        "webpack.config.js": """
            module.exports = {};
        """,
    })
    runtime = extract_runtime_config(str(root))
    assert runtime.bundler == "vite"
    assert runtime.federation.remote_name == "reactRemote"
    assert runtime.federation.exposes == {"./Button": "./src/Button.tsx"}


def test_no_config_defaults_to_webpack(tmp_path):
    runtime = extract_runtime_config(str(tmp_path))
    assert runtime.bundler == "webpack"
    assert runtime.federation is None


def test_config_without_plugin(write_files):
    root = write_files({
        "vite.config.js": """
            export default { server: { port: 3000 } };
        """,
    })
    runtime = extract_runtime_config(str(root))
    assert runtime.bundler == "vite"
    assert runtime.federation is None


def test_broken_config_is_reported_and_ignored(write_files, caplog):
    root = write_files({
        "webpack.config.js": """
            module.exports = {{{ plugins: [
        """,
    })
    with pytest.raises(UnparsableConfig):
        parse_federation_config(str(root / "webpack.config.js"), "webpack")

    with caplog.at_level(logging.WARNING, logger="owcs"):
        runtime = extract_runtime_config(str(root))
    assert runtime.bundler == "webpack"
    assert runtime.federation is None
    assert "syntax errors" in caplog.text
