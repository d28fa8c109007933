from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

import networkx as nx

from owcs.logging import get_logger
from owcs.utils.ast_utils import child_of_type, named_children, string_literal_value

logger = get_logger("program.symbols")

DECLARATION_TYPES = {
    "class_declaration": "class",
    "abstract_class_declaration": "class",
    "function_declaration": "function",
    "generator_function_declaration": "function",
    "interface_declaration": "interface",
    "type_alias_declaration": "type",
    "enum_declaration": "enum",
}

DEFAULT_EXPORT = "default"
NAMESPACE_IMPORT = "*"


@dataclass(eq=False)
class Declaration:
    name: str
    kind: str
    node: object
    source_file: object

    @property
    def path(self) -> str:
        return self.source_file.path


@dataclass(frozen=True)
class ImportBinding:
    local_name: str
    imported_name: str
    specifier: str


@dataclass(frozen=True)
class ReExport:
    exported_name: str
    imported_name: str
    specifier: str


@dataclass
class FileSymbols:
    source_file: object
    declarations: Dict[str, Declaration] = field(default_factory=dict)
    imports: Dict[str, ImportBinding] = field(default_factory=dict)
    # exported name -> local name
    exports: Dict[str, str] = field(default_factory=dict)
    reexports: Dict[str, ReExport] = field(default_factory=dict)
    star_exports: List[str] = field(default_factory=list)

    def exported_declaration(self, name: str) -> Optional[Declaration]:
        local = self.exports.get(name)
        if local is None:
            return None
        return self.declarations.get(local)


def collect_symbols(source_file) -> FileSymbols:
    """Indexes the top-level declarations, imports and exports of one file."""
    symbols = FileSymbols(source_file=source_file)
    for stmt in named_children(source_file.root_node):
        if stmt.type == "import_statement":
            _collect_import(stmt, source_file, symbols)
        elif stmt.type == "export_statement":
            _collect_export(stmt, source_file, symbols)
        else:
            _collect_declaration(stmt, source_file, symbols)
    return symbols


def _collect_declaration(node, source_file, symbols: FileSymbols) -> List[str]:
    names = []
    if node.type in DECLARATION_TYPES:
        name_node = node.child_by_field_name("name")
        if name_node is not None:
            name = source_file.text(name_node)
            symbols.declarations[name] = Declaration(name, DECLARATION_TYPES[node.type], node, source_file)
            names.append(name)
    elif node.type in ("lexical_declaration", "variable_declaration"):
        for declarator in named_children(node):
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            if name_node is not None and name_node.type == "identifier":
                name = source_file.text(name_node)
                symbols.declarations[name] = Declaration(name, "variable", declarator, source_file)
                names.append(name)
    elif node.type == "ambient_declaration":
        for inner in named_children(node):
            names.extend(_collect_declaration(inner, source_file, symbols))
    return names


def _collect_import(stmt, source_file, symbols: FileSymbols):
    source = stmt.child_by_field_name("source")
    specifier = string_literal_value(source, source_file.code)
    if specifier is None:
        return
    clause = child_of_type(stmt, "import_clause")
    if clause is None:
        return
    for part in named_children(clause):
        if part.type == "identifier":
            local = source_file.text(part)
            symbols.imports[local] = ImportBinding(local, DEFAULT_EXPORT, specifier)
        elif part.type == "namespace_import":
            ident = child_of_type(part, "identifier")
            if ident is not None:
                local = source_file.text(ident)
                symbols.imports[local] = ImportBinding(local, NAMESPACE_IMPORT, specifier)
        elif part.type == "named_imports":
            for spec in _specifiers(part, "import_specifier"):
                name = source_file.text(spec.child_by_field_name("name"))
                alias = spec.child_by_field_name("alias")
                local = source_file.text(alias) if alias is not None else name
                symbols.imports[local] = ImportBinding(local, name, specifier)


def _specifiers(node, spec_type):
    return [c for c in named_children(node) if c.type == spec_type]


def _collect_export(stmt, source_file, symbols: FileSymbols):
    source = stmt.child_by_field_name("source")
    specifier = string_literal_value(source, source_file.code) if source is not None else None
    is_default = any(not c.is_named and c.type == "default" for c in stmt.children)

    declaration = stmt.child_by_field_name("declaration")
    if declaration is not None:
        names = _collect_declaration(declaration, source_file, symbols)
        for name in names:
            symbols.exports[name] = name
        if is_default and names:
            symbols.exports[DEFAULT_EXPORT] = names[0]
        return

    value = stmt.child_by_field_name("value")
    if is_default and value is not None:
        if value.type == "identifier":
            symbols.exports[DEFAULT_EXPORT] = source_file.text(value)
        elif value.type in ("class", "function_expression", "arrow_function", "call_expression"):
            name_node = value.child_by_field_name("name")
            name = source_file.text(name_node) if name_node is not None else DEFAULT_EXPORT
            symbols.declarations.setdefault(name, Declaration(name, "default", value, source_file))
            symbols.exports[DEFAULT_EXPORT] = name
        return

    clause = child_of_type(stmt, "export_clause")
    if clause is not None:
        for spec in _specifiers(clause, "export_specifier"):
            name = source_file.text(spec.child_by_field_name("name"))
            alias = spec.child_by_field_name("alias")
            exported = source_file.text(alias) if alias is not None else name
            if specifier is not None:
                symbols.reexports[exported] = ReExport(exported, name, specifier)
            else:
                symbols.exports[exported] = name
        return

    if specifier is None:
        return
    ns = child_of_type(stmt, "namespace_export")
    if ns is not None:
        ident = named_children(ns)
        if ident:
            exported = source_file.text(ident[0])
            symbols.reexports[exported] = ReExport(exported, NAMESPACE_IMPORT, specifier)
    elif any(not c.is_named and c.type == "*" for c in stmt.children):
        symbols.star_exports.append(specifier)


class SymbolTable:
    """Import/export index over the program's files.

    Edges of ``graph`` point from an importing file to the file it imports
    from; re-export edges carry ``reexport=True`` and ``export *`` edges
    ``star=True``.
    """

    def __init__(self, program):
        self.program = program
        self.graph = nx.DiGraph()
        self._symbols: Dict[str, FileSymbols] = {}
        for source_file in program.source_files:
            self._symbols[source_file.path] = collect_symbols(source_file)
            self.graph.add_node(source_file.path)
        for path, symbols in self._symbols.items():
            self._link(path, symbols)
        self._star_graph = nx.subgraph_view(
            self.graph, filter_edge=lambda u, v: self.graph[u][v].get("star", False))

    def _link(self, path: str, symbols: FileSymbols):
        for binding in symbols.imports.values():
            self._add_edge(path, binding.specifier, "import")
        for reexport in symbols.reexports.values():
            self._add_edge(path, reexport.specifier, "reexport")
        for specifier in symbols.star_exports:
            self._add_edge(path, specifier, "star")

    def _add_edge(self, path: str, specifier: str, kind: str):
        target = self.program.resolve_module(specifier, path)
        if target is None or target not in self._symbols:
            logger.debug("No program module for %r imported from %s", specifier, path)
            return
        if not self.graph.has_edge(path, target):
            self.graph.add_edge(path, target)
        self.graph[path][target][kind] = True

    def symbols_for(self, path: str) -> Optional[FileSymbols]:
        return self._symbols.get(path)

    def resolve_export(self, path: str, name: str, _seen: Optional[Set] = None) -> Optional[Declaration]:
        """Declaration a program module exports under ``name``."""
        seen = _seen if _seen is not None else set()
        if (path, name) in seen:
            return None
        seen.add((path, name))

        symbols = self._symbols.get(path)
        if symbols is None:
            return None

        found = self._resolve_named_export(symbols, name, seen)
        if found is not None or name == DEFAULT_EXPORT:
            return found

        for target in nx.dfs_preorder_nodes(self._star_graph, path):
            if target == path:
                continue
            target_symbols = self._symbols[target]
            found = self._resolve_named_export(target_symbols, name, seen)
            if found is not None:
                return found
        return None

    def _resolve_named_export(self, symbols: FileSymbols, name: str, seen: Set) -> Optional[Declaration]:
        path = symbols.source_file.path
        local = symbols.exports.get(name)
        if local is not None:
            if local in symbols.declarations:
                return symbols.declarations[local]
            if local in symbols.imports:
                return self.resolve_import(path, local, seen)
        reexport = symbols.reexports.get(name)
        if reexport is not None and reexport.imported_name != NAMESPACE_IMPORT:
            target = self.program.resolve_module(reexport.specifier, path)
            if target is not None:
                return self.resolve_export(target, reexport.imported_name, seen)
        return None

    def resolve_import(self, path: str, local_name: str, _seen: Optional[Set] = None) -> Optional[Declaration]:
        symbols = self._symbols.get(path)
        if symbols is None:
            return None
        binding = symbols.imports.get(local_name)
        if binding is None or binding.imported_name == NAMESPACE_IMPORT:
            return None
        target = self.program.resolve_module(binding.specifier, path)
        if target is None or target not in self._symbols:
            return None
        return self.resolve_export(target, binding.imported_name, _seen)

    def resolve_symbol(self, name: str, path: str) -> Optional[Declaration]:
        """Follows a name used in ``path`` to its defining declaration."""
        symbols = self._symbols.get(path)
        if symbols is None:
            return None
        if name in symbols.declarations:
            return symbols.declarations[name]
        return self.resolve_import(path, name)
