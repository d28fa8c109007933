import json
import os
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pathspec

from owcs.logging import get_logger
from owcs.program.parser import detect_language, parse_source, read_source
from owcs.utils.ast_utils import node_text

logger = get_logger("program")

TSCONFIG_CANDIDATES = ("tsconfig.json", os.path.join("src", "tsconfig.json"), "tsconfig.app.json")
DEFAULT_SOURCE_DIR = "src"
EXCLUDED_DIRS = {"node_modules", "dist", "build", ".git"}
RESOLVE_EXTENSIONS = (".ts", ".tsx", ".mts", ".cts", ".js", ".jsx", ".mjs", ".cjs")
INDEX_FILES = ("index.ts", "index.tsx", "index.js", "index.jsx")


@dataclass(eq=False)
class SourceFile:
    path: str
    code: bytes
    tree: object

    @property
    def root_node(self):
        return self.tree.root_node

    def text(self, node) -> str:
        return node_text(node, self.code)


@dataclass
class CompilerOptions:
    config_dir: Optional[str] = None
    base_url: Optional[str] = None
    paths: Dict[str, List[str]] = field(default_factory=dict)


_JSON_COMMENTS = re.compile(r'("(?:\\.|[^"\\])*")|/\*[\s\S]*?\*/|//[^\n]*')
_JSON_TRAILING_COMMAS = re.compile(r'("(?:\\.|[^"\\])*")|,(\s*[}\]])')


def _strip_json_comments(text: str) -> str:
    text = _JSON_COMMENTS.sub(lambda m: m.group(1) or "", text)
    return _JSON_TRAILING_COMMAS.sub(lambda m: m.group(1) or m.group(2), text)


def find_tsconfig(project_root: str) -> Optional[str]:
    for candidate in TSCONFIG_CANDIDATES:
        path = os.path.join(project_root, candidate)
        if os.path.isfile(path):
            return path
    return None


def load_tsconfig(config_path: str, _seen=None) -> dict:
    """Reads a tsconfig, merging ``compilerOptions`` along its ``extends`` chain."""
    seen = _seen if _seen is not None else set()
    config_path = os.path.abspath(config_path)
    if config_path in seen or not os.path.isfile(config_path):
        return {}
    seen.add(config_path)

    try:
        raw = read_source(config_path)
    except OSError as e:
        logger.warning("Cannot read %s: %s", config_path, e)
        return {}

    clean = _strip_json_comments(raw).strip()
    if not clean:
        return {}
    try:
        cfg = json.loads(clean)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring malformed tsconfig %s: %s", config_path, e)
        return {}
    if not isinstance(cfg, dict):
        return {}

    parent_ref = cfg.get("extends")
    if isinstance(parent_ref, str) and parent_ref.startswith("."):
        parent_path = os.path.join(os.path.dirname(config_path), parent_ref)
        if not parent_path.endswith(".json"):
            parent_path += ".json"
        parent = load_tsconfig(parent_path, seen)
        options = dict(parent.get("compilerOptions", {}))
        parent_dir = os.path.dirname(os.path.abspath(parent_path))
        if "baseUrl" in options:
            options["baseUrl"] = os.path.normpath(os.path.join(parent_dir, options["baseUrl"]))
        options.update(cfg.get("compilerOptions", {}))
        cfg["compilerOptions"] = options
    return cfg


def compiler_options_from(cfg: dict, config_dir: Optional[str]) -> CompilerOptions:
    options = cfg.get("compilerOptions", {}) if isinstance(cfg, dict) else {}
    base_url = options.get("baseUrl")
    if base_url and config_dir:
        base_url = os.path.normpath(os.path.join(config_dir, base_url))
    paths = options.get("paths", {})
    if not isinstance(paths, dict):
        paths = {}
    return CompilerOptions(config_dir=config_dir, base_url=base_url, paths=paths)


def _is_excluded(rel_path: str) -> bool:
    parts = rel_path.split("/")
    return any(part in EXCLUDED_DIRS for part in parts[:-1])


def _walk_source_files(directory: str) -> Iterable[str]:
    for current, dirs, files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if d not in EXCLUDED_DIRS)
        for name in sorted(files):
            path = os.path.join(current, name)
            if detect_language(path):
                yield path


class Program:
    """Parsed snapshot of a project's non-generated source files."""

    def __init__(self, project_root: str, tsconfig_path: Optional[str] = None,
                 root_names: Optional[Iterable[str]] = None, source_dir: str = DEFAULT_SOURCE_DIR):
        self.project_root = os.path.abspath(project_root)
        self.tsconfig_path = os.path.abspath(tsconfig_path) if tsconfig_path else find_tsconfig(self.project_root)
        self.source_dir = source_dir

        cfg = load_tsconfig(self.tsconfig_path) if self.tsconfig_path else {}
        config_dir = os.path.dirname(self.tsconfig_path) if self.tsconfig_path else None
        self.compiler_options = compiler_options_from(cfg, config_dir)

        self._files: Dict[str, SourceFile] = {}
        self._external: Dict[str, SourceFile] = {}

        names = root_names if root_names is not None else self._collect_file_names(cfg)
        for path in sorted(os.path.abspath(p) for p in names):
            source_file = self._parse(path)
            if source_file is not None:
                self._files[path] = source_file
        logger.debug("Program loaded %d source files from %s", len(self._files), self.project_root)

    def _collect_file_names(self, cfg: dict) -> List[str]:
        if self.tsconfig_path:
            return self._files_from_tsconfig(cfg, os.path.dirname(self.tsconfig_path))

        src_dir = os.path.join(self.project_root, self.source_dir)
        scan_dir = src_dir if os.path.isdir(src_dir) else self.project_root
        gitignore_pth = os.path.join(self.project_root, ".gitignore")
        gitign_pattern = read_source(gitignore_pth).splitlines() if os.path.isfile(gitignore_pth) else []
        spec = pathspec.PathSpec.from_lines("gitwildmatch", gitign_pattern)

        names = []
        for path in _walk_source_files(scan_dir):
            rel = os.path.relpath(path, self.project_root).replace("\\", "/")
            if not spec.match_file(rel):
                names.append(path)
        return names

    def _files_from_tsconfig(self, cfg: dict, config_dir: str) -> List[str]:
        files = [os.path.join(config_dir, f) for f in cfg.get("files", []) if isinstance(f, str)]
        include = cfg.get("include")
        if include is None:
            include = [] if files else ["**/*"]
        exclude = cfg.get("exclude", [])
        include_spec = pathspec.PathSpec.from_lines("gitwildmatch", include)
        exclude_spec = pathspec.PathSpec.from_lines("gitwildmatch", exclude)

        names = [f for f in files if os.path.isfile(f) and detect_language(f)]
        if include:
            for path in _walk_source_files(config_dir):
                rel = os.path.relpath(path, config_dir).replace("\\", "/")
                if include_spec.match_file(rel) and not exclude_spec.match_file(rel):
                    names.append(path)
        return list(dict.fromkeys(names))

    def _parse(self, path: str) -> Optional[SourceFile]:
        rel = os.path.relpath(path, self.project_root).replace("\\", "/")
        if _is_excluded(rel) or not detect_language(path):
            return None
        try:
            text = read_source(path)
        except OSError as e:
            logger.warning("Unable to read %s: %s", path, e)
            return None
        code, tree = parse_source(text, path)
        return SourceFile(path=path, code=code, tree=tree)

    @property
    def source_files(self) -> List[SourceFile]:
        return list(self._files.values())

    def get_source_file(self, path: str) -> Optional[SourceFile]:
        return self._files.get(os.path.abspath(path))

    def load_file(self, path: str) -> Optional[SourceFile]:
        """Returns a program file, parsing files outside the program on demand."""
        path = os.path.abspath(path)
        if path in self._files:
            return self._files[path]
        if path not in self._external:
            if not os.path.isfile(path) or not detect_language(path):
                return None
            try:
                text = read_source(path)
            except OSError as e:
                logger.warning("Unable to read %s: %s", path, e)
                return None
            code, tree = parse_source(text, path)
            self._external[path] = SourceFile(path=path, code=code, tree=tree)
        return self._external[path]

    def module_path(self, source_file: SourceFile) -> str:
        return os.path.relpath(source_file.path, self.project_root).replace("\\", "/")

    def resolve_module(self, specifier: str, from_path: str) -> Optional[str]:
        """Maps an import specifier to a source path, or None for packages."""
        if specifier.startswith("./") or specifier.startswith("../") or specifier in (".", ".."):
            base = os.path.normpath(os.path.join(os.path.dirname(from_path), specifier))
            return self._first_existing(candidate_paths(base))

        for base in self._alias_bases(specifier):
            found = self._first_existing(candidate_paths(base))
            if found:
                return found

        if self.compiler_options.base_url:
            base = os.path.normpath(os.path.join(self.compiler_options.base_url, specifier))
            return self._first_existing(candidate_paths(base))
        return None

    def _alias_bases(self, specifier: str) -> List[str]:
        options = self.compiler_options
        base_dir = options.base_url or options.config_dir or self.project_root

        def sort_key(item):
            pat = item[0]
            return (pat.count("*"), -len(pat))

        bases = []
        for alias_pattern, targets in sorted(options.paths.items(), key=sort_key):
            if "*" in alias_pattern:
                regex = "^" + re.escape(alias_pattern).replace(r"\*", "(.+)") + "$"
                m = re.match(regex, specifier)
                if not m:
                    continue
                wildcards = m.groups()
            else:
                if specifier != alias_pattern:
                    continue
                wildcards = ()

            for tpl in targets if isinstance(targets, list) else [targets]:
                rel = tpl
                for w in wildcards:
                    rel = rel.replace("*", w, 1)
                bases.append(os.path.normpath(os.path.join(base_dir, rel)))
        return bases

    def _first_existing(self, candidates: Iterable[str]) -> Optional[str]:
        for path in candidates:
            if path in self._files or (os.path.isfile(path) and detect_language(path)):
                return path
        return None


def candidate_paths(base: str) -> List[str]:
    """Conventional file candidates for an extension-less module path."""
    candidates = []
    stem, ext = os.path.splitext(base)
    if ext in (".js", ".jsx", ".mjs", ".cjs"):
        candidates.extend([stem + ".ts", stem + ".tsx"])
    if ext in RESOLVE_EXTENSIONS:
        candidates.append(base)
    candidates.extend(base + e for e in RESOLVE_EXTENSIONS)
    candidates.extend(os.path.join(base, index) for index in INDEX_FILES)
    return candidates
