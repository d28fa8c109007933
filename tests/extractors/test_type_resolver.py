import pytest

from owcs.extractors.type_resolver import resolve_type_schema

TYPES = """
export interface User {
  name: string;
  age?: number;
}

export interface Base { id: string }
export interface Admin extends Base { role: 'owner' | 'editor' }

interface TreeNode {
  value: string;
  children: TreeNode[];
}

interface Box<T> { value: T }
type Pair<T = string> = { first: T; second?: T };

enum Color { Red = 'red', Green = 'green' }
enum Level { Low, Mid, High }
"""


@pytest.fixture
def resolve(make_context):
    """Resolves ``type Subject = <expr>`` written next to the shared declarations."""
    def _resolve(expression, extra=""):
        context = make_context({
            "types.ts": TYPES + extra + f"\ntype Subject = {expression};\n",
        })
        source_file = context.program.source_files[0]
        declaration = context.resolve_type_declaration("Subject", source_file)
        value = declaration.node.child_by_field_name("value")
        return resolve_type_schema(value, source_file, context)
    return _resolve


def test_primitives(resolve):
    assert resolve("string") == {"type": "string"}
    assert resolve("number") == {"type": "number"}
    assert resolve("boolean") == {"type": "boolean"}
    assert resolve("bigint") == {"type": "number"}
    assert resolve("BigInt") == {"type": "number"}
    assert resolve("symbol") == {}
    assert resolve("never") == {}
    assert resolve("any") == {}
    assert resolve("unknown") == {}


def test_string_literal_union_is_deduplicated_enum(resolve):
    assert resolve("'a' | 'b' | 'a'") == {"type": "string", "enum": ["a", "b"]}


def test_number_literal_union(resolve):
    assert resolve("1 | 2") == {"type": "number", "enum": [1, 2]}


def test_primitive_union_collapses_to_type_list(resolve):
    assert resolve("string | number | null") == {"type": ["string", "number", "null"]}
    assert resolve("string | string") == {"type": "string"}


def test_mixed_union_uses_one_of(resolve):
    schema = resolve("string | { a: number }")
    assert schema == {
        "oneOf": [
            {"type": "string"},
            {"type": "object", "properties": {"a": {"type": "number"}}, "required": ["a"]},
        ]
    }


def test_nested_arrays(resolve):
    assert resolve("number[][]") == {
        "type": "array",
        "items": {"type": "array", "items": {"type": "number"}},
    }
    assert resolve("Array<string>") == {"type": "array", "items": {"type": "string"}}


def test_builtin_types(resolve):
    assert resolve("Date") == {"type": "string", "format": "date-time"}
    assert resolve("Record<string, number>") == {"type": "object"}
    assert resolve("Promise<string>") == {}


def test_interface_reference(resolve):
    assert resolve("User") == {
        "type": "object",
        "properties": {"name": {"type": "string"}, "age": {"type": "number"}},
        "required": ["name"],
    }


def test_interface_extends_merges_parent_members(resolve):
    schema = resolve("Admin")
    assert list(schema["properties"]) == ["id", "role"]
    assert schema["properties"]["role"] == {"type": "string", "enum": ["owner", "editor"]}
    assert schema["required"] == ["id", "role"]


def test_self_referential_type_terminates(resolve):
    schema = resolve("TreeNode")
    assert schema["properties"]["value"] == {"type": "string"}
    assert schema["properties"]["children"] == {"type": "array", "items": {}}


def test_generic_arguments_are_substituted(resolve):
    assert resolve("Box<number>") == {
        "type": "object",
        "properties": {"value": {"type": "number"}},
        "required": ["value"],
    }


def test_nested_generic_instantiations_expand(resolve):
    schema = resolve("Box<Box<string>>")
    assert schema["properties"]["value"] == {
        "type": "object",
        "properties": {"value": {"type": "string"}},
        "required": ["value"],
    }

    page = resolve("Page<Page<User>>", extra="interface Page<T> { items: T[]; total: number }\n")
    inner = page["properties"]["items"]["items"]
    assert inner["properties"]["total"] == {"type": "number"}
    assert inner["properties"]["items"]["items"]["properties"]["name"] == {"type": "string"}


def test_self_referential_generic_terminates(resolve):
    schema = resolve("Chain<string>", extra="interface Chain<T> { value: T; next?: Chain<T> }\n")
    assert schema["properties"]["value"] == {"type": "string"}
    assert schema["properties"]["next"]["type"] == "object"


def test_generic_parameter_default(resolve):
    assert resolve("Pair") == {
        "type": "object",
        "properties": {"first": {"type": "string"}, "second": {"type": "string"}},
        "required": ["first"],
    }


def test_utility_types(resolve):
    partial = resolve("Partial<User>")
    assert "required" not in partial
    assert set(partial["properties"]) == {"name", "age"}

    assert resolve("Required<User>")["required"] == ["name", "age"]
    assert resolve("Pick<User, 'name'>") == {
        "type": "object",
        "properties": {"name": {"type": "string"}},
        "required": ["name"],
    }
    assert list(resolve("Omit<User, 'name'>")["properties"]) == ["age"]
    assert resolve("NonNullable<string | null>") == {"type": "string"}


def test_enums(resolve):
    assert resolve("Color") == {"type": "string", "enum": ["red", "green"]}
    assert resolve("Level") == {"type": "number", "enum": [0, 1, 2]}


def test_tuple(resolve):
    assert resolve("[string, number]") == {
        "type": "array",
        "prefixItems": [{"type": "string"}, {"type": "number"}],
    }


def test_intersection_of_objects_is_merged(resolve):
    assert resolve("{ a: string } & { b?: number }") == {
        "type": "object",
        "properties": {"a": {"type": "string"}, "b": {"type": "number"}},
        "required": ["a"],
    }


def test_intersection_of_non_objects_uses_all_of(resolve):
    assert resolve("string & { brand: 'id' }") == {
        "allOf": [
            {"type": "string"},
            {"type": "object", "properties": {"brand": {"type": "string", "enum": ["id"]}},
             "required": ["brand"]},
        ]
    }


def test_keyof_and_lookup(resolve):
    assert resolve("keyof User") == {"type": "string", "enum": ["name", "age"]}
    assert resolve("User['name']") == {"type": "string"}


def test_template_literal_type(resolve):
    assert resolve("`on${string}`") == {"type": "string"}


def test_function_type_is_unconstrained(resolve):
    assert resolve("(value: string) => void") == {}


def test_unknown_reference_is_unconstrained(resolve):
    assert resolve("SomethingElse") == {}


def test_resolution_is_deterministic(resolve):
    assert resolve("Admin | TreeNode") == resolve("Admin | TreeNode")


def test_imported_types_resolve_across_files(make_context):
    context = make_context({
        "src/models.ts": """
            export type Size = 'sm' | 'lg';
        """,
        "src/button.ts": """
            import { Size } from './models';
            type Subject = { size: Size };
        """,
    })
    source_file = context.program.get_source_file(f"{context.program.project_root}/src/button.ts")
    declaration = context.resolve_type_declaration("Subject", source_file)
    schema = resolve_type_schema(declaration.node.child_by_field_name("value"), source_file, context)
    assert schema["properties"]["size"] == {"type": "string", "enum": ["sm", "lg"]}
