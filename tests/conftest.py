import logging
import textwrap

import pytest

from owcs.program.context import ResolutionContext
from owcs.program.program import Program
from owcs.registry.convention_registry import get_conventions


@pytest.fixture(autouse=True)
def reset_owcs_logger():
    yield
    logger = logging.getLogger("owcs")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def write_files(tmp_path):
    def _write(files):
        for rel_path, content in files.items():
            path = tmp_path / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(textwrap.dedent(content).lstrip("\n"), encoding="utf-8")
        return tmp_path
    return _write


@pytest.fixture
def make_context(write_files):
    def _make(files, adapter="auto", tsconfig=None):
        root = write_files(files)
        tsconfig_path = str(root / tsconfig) if tsconfig else None
        return ResolutionContext(Program(str(root), tsconfig_path), get_conventions(adapter))
    return _make


@pytest.fixture
def declaration_in():
    """Looks up a top-level declaration by name in one of the program's files."""
    def _find(context, rel_path, name):
        root = context.program.project_root
        source_file = context.program.get_source_file(f"{root}/{rel_path}")
        assert source_file is not None, f"{rel_path} is not part of the program"
        declaration = context.resolve_declaration(name, source_file)
        assert declaration is not None, f"{name} not found in {rel_path}"
        return declaration
    return _find
