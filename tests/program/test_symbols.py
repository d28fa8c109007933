import pytest

from owcs.program.symbols import collect_symbols


@pytest.fixture
def library(make_context):
    return make_context({
        "src/button.ts": """
            export class Button extends HTMLElement {}
            export interface ButtonProps { label: string }
            const helper = () => null;
            export { helper as buttonHelper };
            export default Button;
        """,
        "src/icons/icon.ts": """
            export function Icon() { return null; }
        """,
        "src/icons/index.ts": """
            export * from './icon';
        """,
        "src/index.ts": """
            export * from './icons';
            export { Button as PrimaryButton, ButtonProps } from './button';
        """,
        "src/cycle-a.ts": """
            export * from './cycle-b';
        """,
        "src/cycle-b.ts": """
            export * from './cycle-a';
        """,
        "src/app.ts": """
            import DefaultButton, { buttonHelper } from './button';
            import * as lib from './index';
            import { Icon as Glyph, PrimaryButton } from './index';
            const local = 1;
        """,
    })


def path_of(context, rel_path):
    return f"{context.program.project_root}/{rel_path}"


def test_collect_symbols(library):
    button = library.program.get_source_file(path_of(library, "src/button.ts"))
    symbols = collect_symbols(button)
    assert set(symbols.declarations) == {"Button", "ButtonProps", "helper"}
    assert symbols.declarations["ButtonProps"].kind == "interface"
    assert symbols.declarations["helper"].kind == "variable"
    assert symbols.exports == {
        "Button": "Button",
        "ButtonProps": "ButtonProps",
        "buttonHelper": "helper",
        "default": "Button",
    }


def test_import_bindings(library):
    app = library.program.get_source_file(path_of(library, "src/app.ts"))
    imports = library.file_symbols(app).imports
    assert imports["DefaultButton"].imported_name == "default"
    assert imports["lib"].imported_name == "*"
    assert imports["Glyph"].imported_name == "Icon"
    assert imports["Glyph"].specifier == "./index"


def test_graph_edges(library):
    graph = library.symbols.graph
    app, index = path_of(library, "src/app.ts"), path_of(library, "src/index.ts")
    icons = path_of(library, "src/icons/index.ts")
    assert graph[app][index].get("import") is True
    assert graph[index][icons].get("star") is True
    assert graph[index][path_of(library, "src/button.ts")].get("reexport") is True


def test_resolve_through_reexports(library):
    table = library.symbols
    app = path_of(library, "src/app.ts")
    assert table.resolve_symbol("Glyph", app).path.endswith("icons/icon.ts")
    assert table.resolve_symbol("PrimaryButton", app).name == "Button"
    assert table.resolve_symbol("DefaultButton", app).name == "Button"
    assert table.resolve_symbol("buttonHelper", app).name == "helper"
    assert table.resolve_symbol("local", app).kind == "variable"


def test_star_cycle_terminates(library):
    assert library.symbols.resolve_export(path_of(library, "src/cycle-a.ts"), "Nothing") is None


def test_namespace_member_resolution(library):
    app = library.program.get_source_file(path_of(library, "src/app.ts"))
    found = library.resolve_declaration("lib.PrimaryButton", app)
    assert found is not None and found.name == "Button"
    assert library.resolve_declaration("lib.Icon", app).name == "Icon"
    assert library.resolve_declaration("lib.Missing", app) is None
