import os
from typing import Dict, Optional

import chardet
import tree_sitter_typescript
from tree_sitter import Language, Parser

from owcs.logging import get_logger

logger = get_logger("program.parser")

EXT_MAP = {
    "typescript": [".ts", ".mts", ".cts", ".js", ".mjs", ".cjs"],
    "tsx": [".tsx", ".jsx"],
}

INVERSE_EXTS = {ext: lang for lang, exts in EXT_MAP.items() for ext in exts}

_LANGUAGE_LOADERS = {
    "typescript": tree_sitter_typescript.language_typescript,
    "tsx": tree_sitter_typescript.language_tsx,
}

_parsers: Dict[str, Parser] = {}


def detect_language(file_path: str) -> Optional[str]:
    if file_path.endswith(".d.ts"):
        return None
    return INVERSE_EXTS.get(os.path.splitext(file_path)[1].lower())


def get_parser(language: str) -> Parser:
    parser = _parsers.get(language)
    if parser is None:
        parser = Parser(Language(_LANGUAGE_LOADERS[language]()))
        _parsers[language] = parser
    return parser


def read_source(file_path: str) -> str:
    with open(file_path, "rb") as f:
        raw = f.read()
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError:
        guess = chardet.detect(raw)
        encoding = guess["encoding"] or "utf-8"
        logger.debug("Decoding %s as %s", file_path, encoding)
        return raw.decode(encoding, errors="replace")


def parse_source(text: str, file_path: str, language: Optional[str] = None):
    """Parses ``text`` with the grammar matching ``file_path``'s extension."""
    language = language or detect_language(file_path) or "typescript"
    code = text.encode("utf-8")
    return code, get_parser(language).parse(code)
