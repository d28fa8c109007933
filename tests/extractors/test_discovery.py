import logging

import pytest

from owcs.exceptions import UnresolvedSymbol
from owcs.extractors.discovery import find_registrations, resolve_registration, wrapper_bindings


def discovered(context):
    return {
        r.tag_name: resolve_registration(r, context)
        for source_file in context.program.source_files
        for r in find_registrations(source_file, context)
    }


def test_local_class_registration(make_context):
    context = make_context({
        "src/main.ts": """
            class AlertBox extends HTMLElement {}
            customElements.define('alert-box', AlertBox);
            window.customElements.define('alert-box-legacy', AlertBox);
        """,
    })
    components = discovered(context)
    assert set(components) == {"alert-box", "alert-box-legacy"}
    assert components["alert-box"].declaration.name == "AlertBox"
    assert components["alert-box"].declaration.kind == "class"


def test_non_literal_tag_is_skipped(make_context, caplog):
    context = make_context({
        "src/main.ts": """
            class Widget extends HTMLElement {}
            const tag = 'x-widget';
            customElements.define(tag, Widget);
            customElements.define('ok-widget', Widget);
        """,
    })
    with caplog.at_level(logging.WARNING, logger="owcs"):
        components = discovered(context)
    assert list(components) == ["ok-widget"]
    assert "not a string literal" in caplog.text


def test_wrapper_binding_is_followed(make_context):
    context = make_context({
        "src/user-card.component.ts": """
            export class UserCard {}
        """,
        "src/main.ts": """
            import { createCustomElement } from '@angular/elements';
            import { UserCard } from './user-card.component';

            const UserCardElement = createCustomElement(UserCard, { injector });
            customElements.define('user-card', UserCardElement);
        """,
    }, adapter="angular")
    main = context.program.get_source_file(f"{context.program.project_root}/src/main.ts")
    assert wrapper_bindings(main, context.conventions) == {"UserCardElement": "UserCard"}

    component = discovered(context)["user-card"]
    assert component.declaration.name == "UserCard"
    assert component.declaration.path.endswith("user-card.component.ts")
    assert component.registration.source_file is main


def test_inline_wrapper_and_aliased_import(make_context):
    context = make_context({
        "src/Button.tsx": """
            export function Button(props: { label: string }) { return null; }
        """,
        "src/main.ts": """
            import r2wc from '@r2wc/react-to-web-component';
            import { Button as B } from './Button';
            customElements.define('r-button', r2wc(B));
        """,
    }, adapter="react")
    assert discovered(context)["r-button"].declaration.name == "Button"


def test_imported_wrapper_variable(make_context):
    context = make_context({
        "src/Card.tsx": """
            export default function Card() { return null; }
        """,
        "src/elements.ts": """
            import Card from './Card';
            export const CardElement = r2wc(Card);
        """,
        "src/main.ts": """
            import { CardElement } from './elements';
            customElements.define('x-card', CardElement);
        """,
    }, adapter="react")
    component = discovered(context)["x-card"]
    assert component.declaration.name == "Card"
    assert component.declaration.kind == "function"


def test_star_reexport_chain(make_context):
    context = make_context({
        "src/components/toggle.ts": """
            export class Toggle extends HTMLElement {}
        """,
        "src/components/index.ts": """
            export * from './toggle';
        """,
        "src/index.ts": """
            export * from './components';
        """,
        "src/main.ts": """
            import { Toggle } from './index';
            customElements.define('x-toggle', Toggle);
        """,
    })
    assert discovered(context)["x-toggle"].declaration.path.endswith("toggle.ts")


def test_import_outside_program_resolved_from_disk(make_context):
    context = make_context({
        "tsconfig.json": """
            { "include": ["src/main.ts"] }
        """,
        "src/lib/widget.ts": """
            export class Widget extends HTMLElement {}
        """,
        "src/main.ts": """
            import { Widget } from './lib/widget';
            customElements.define('x-widget', Widget);
        """,
    })
    assert len(context.program.source_files) == 1
    assert discovered(context)["x-widget"].declaration.name == "Widget"


def test_unresolvable_implementation_raises(make_context):
    context = make_context({
        "src/main.ts": """
            import { Missing } from 'some-package';
            class Present extends HTMLElement {}
            customElements.define('x-missing', Missing);
            customElements.define('x-present', Present);
        """,
    })
    missing, present = find_registrations(context.program.source_files[0], context)
    with pytest.raises(UnresolvedSymbol) as excinfo:
        resolve_registration(missing, context)
    assert "Missing" in str(excinfo.value)
    assert excinfo.value.details["tag"] == "x-missing"
    assert resolve_registration(present, context).declaration.name == "Present"


def test_find_registrations_reports_implementation_names(make_context):
    context = make_context({
        "main.ts": """
            customElements.define('a-el', A);
            customElements.define('b-el');
        """,
    })
    registrations = find_registrations(context.program.source_files[0], context)
    assert [(r.tag_name, r.implementation_name) for r in registrations] == [("a-el", "A")]
