import os
from typing import Dict, Optional

from owcs.logging import get_logger
from owcs.program.program import Program, candidate_paths
from owcs.program.symbols import (
    DEFAULT_EXPORT,
    NAMESPACE_IMPORT,
    Declaration,
    FileSymbols,
    SymbolTable,
    collect_symbols,
)
from owcs.registry.convention_registry import Conventions, get_conventions

logger = get_logger("program.context")


class ResolutionContext:
    """Program, symbol table and conventions shared by every extractor.

    Only parse and symbol caches are held here; extractors stay pure
    functions over the context they are handed.
    """

    def __init__(self, program: Program, conventions: Optional[Conventions] = None):
        self.program = program
        self.conventions = conventions or get_conventions("auto")
        self.symbols = SymbolTable(program)
        self._external_symbols: Dict[str, FileSymbols] = {}

    def file_symbols(self, source_file) -> FileSymbols:
        symbols = self.symbols.symbols_for(source_file.path)
        if symbols is None:
            symbols = self._external_symbols.get(source_file.path)
            if symbols is None:
                symbols = collect_symbols(source_file)
                self._external_symbols[source_file.path] = symbols
        return symbols

    def resolve_declaration(self, name: str, from_file) -> Optional[Declaration]:
        """Resolves ``name`` as used in ``from_file`` to its declaration.

        Tried in order: a declaration in the same file, the symbol table's
        import/re-export chain, and finally reading the imported module
        from disk.
        """
        if "." in name:
            return self._resolve_qualified(name, from_file)

        symbols = self.file_symbols(from_file)
        if name in symbols.declarations:
            return symbols.declarations[name]

        binding = symbols.imports.get(name)
        if binding is None:
            return None

        found = self.symbols.resolve_import(from_file.path, name)
        if found is not None:
            logger.debug("Resolved %s via import of %r", name, binding.specifier)
            return found

        return self._resolve_from_disk(binding.specifier, binding.imported_name, from_file)

    resolve_type_declaration = resolve_declaration

    def _resolve_qualified(self, name: str, from_file) -> Optional[Declaration]:
        head, _, member = name.partition(".")
        if "." in member:
            return None
        binding = self.file_symbols(from_file).imports.get(head)
        if binding is None or binding.imported_name != NAMESPACE_IMPORT:
            return None
        target = self.program.resolve_module(binding.specifier, from_file.path)
        if target is None:
            return None
        if self.program.get_source_file(target) is not None:
            found = self.symbols.resolve_export(target, member)
            if found is not None:
                return found
        return self._export_from_file(target, member)

    def _resolve_from_disk(self, specifier: str, imported_name: str, from_file) -> Optional[Declaration]:
        if not specifier.startswith("."):
            return None
        base = os.path.normpath(os.path.join(os.path.dirname(from_file.path), specifier))
        for candidate in candidate_paths(base):
            if not os.path.isfile(candidate):
                continue
            found = self._export_from_file(candidate, imported_name)
            if found is not None:
                logger.debug("Resolved %s from %s by path fallback", imported_name, candidate)
                return found
        return None

    def _export_from_file(self, path: str, name: str) -> Optional[Declaration]:
        source_file = self.program.load_file(path)
        if source_file is None:
            return None
        symbols = self.file_symbols(source_file)
        found = symbols.exported_declaration(name)
        if found is None and name != DEFAULT_EXPORT:
            found = symbols.declarations.get(name)
        return found
