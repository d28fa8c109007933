import json

import pytest
import yaml

from owcs.main import main

PROJECT = {
    "src/alert-box.ts": """
        export class AlertBox extends HTMLElement implements AlertProps {
          /** Close the alert */
          dismiss() {
            this.dispatchEvent(new CustomEvent('dismissed', { detail: { reason: 'user' } }));
          }
        }

        interface AlertProps {
          /** @default "info" */
          level?: 'info' | 'error';
        }

        customElements.define('alert-box', AlertBox);
    """,
}


def read_json(path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def test_generate_writes_document(write_files):
    root = write_files(PROJECT)
    output = root / "out" / "owcs.json"
    main(["generate", str(root), "--output", str(output), "--title", "Alerts", "--version", "0.2.0"])

    spec = read_json(output)
    assert spec["owcs"] == "1.0.0"
    assert spec["info"] == {"title": "Alerts", "version": "0.2.0"}
    alert = spec["components"]["webComponents"]["alert-box"]
    assert alert["module"] == "src/alert-box.ts"
    assert alert["props"]["schema"]["properties"]["level"] == {
        "type": "string",
        "enum": ["info", "error"],
        "default": "info",
    }
    assert alert["events"]["dismissed"] == {
        "type": "CustomEvent",
        "payload": {"type": "object", "properties": {"reason": {"type": "string"}}},
    }


def test_cli_flags_override_config(write_files):
    root = write_files(dict(PROJECT, **{
        "owcs.config.json": '{"title": "From config", "description": "Alert widgets"}\n',
    }))
    output = root / "owcs.json"
    main(["generate", str(root), "-o", str(output), "--title", "From flag", "--include-runtime"])

    spec = read_json(output)
    assert spec["info"]["title"] == "From flag"
    assert spec["info"]["description"] == "Alert widgets"
    assert spec["x-owcs-runtime"] == {"bundler": {"name": "webpack"}}


def test_intermediate_output(write_files):
    root = write_files(PROJECT)
    output = root / "model.json"
    main(["generate", str(root), "-o", str(output), "--intermediate"])

    model = read_json(output)
    assert model["runtime"] == {"bundler": "webpack"}
    component = model["components"][0]
    assert component["tagName"] == "alert-box"
    assert component["implementationRef"] == "AlertBox"
    assert component["properties"][0]["sourceKind"] == "shape"
    assert component["events"][0]["sourceKind"] == "dispatch"


def test_yaml_output(write_files):
    root = write_files(PROJECT)
    output = root / "owcs.yaml"
    main(["generate", str(root), "-o", str(output), "--format", "yaml"])

    with open(output, encoding="utf-8") as f:
        spec = yaml.safe_load(f)
    assert spec["owcs"] == "1.0.0"
    assert list(spec)[:2] == ["owcs", "info"]
    assert spec["components"]["webComponents"]["alert-box"]["props"]["schema"]["properties"]["level"]["enum"] == [
        "info", "error"]


def test_yaml_format_from_config_uses_yaml_default_name(write_files, monkeypatch):
    root = write_files(dict(PROJECT, **{"owcs.config.json": '{"format": "yaml"}\n'}))
    monkeypatch.chdir(root)
    main(["generate", str(root)])

    with open(root / "owcs.yaml", encoding="utf-8") as f:
        spec = yaml.safe_load(f)
    assert "alert-box" in spec["components"]["webComponents"]
    assert not (root / "owcs.json").exists()


def test_invalid_config_exits_with_error(write_files):
    root = write_files(dict(PROJECT, **{
        "owcs.config.json": '{"extensions": {"team": "alerts"}}\n',
    }))
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", str(root), "-o", str(root / "owcs.json")])
    assert excinfo.value.code == 1
    assert not (root / "owcs.json").exists()


def test_missing_root_exits_with_error(tmp_path):
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", str(tmp_path / "missing"), "-o", str(tmp_path / "owcs.json")])
    assert excinfo.value.code == 1


def test_no_subcommand_prints_help(capsys):
    main([])
    assert "generate" in capsys.readouterr().out
