import argparse
import json
import os
import sys

import yaml
from tqdm import tqdm

from owcs.adapters.owcs_adapter import adapt_owcs_model
from owcs.config import OwcsConfig, load_config
from owcs.exceptions import OwcsError
from owcs.logging import configure_logging, get_logger
from owcs.models import IntermediateModel
from owcs.program.program import Program
from owcs.registry.extractor_registry import get_extractor

logger = get_logger("main")

DEFAULT_OUTPUT = "owcs.json"
DEFAULT_OUTPUTS = {"json": DEFAULT_OUTPUT, "yaml": "owcs.yaml"}


def analyze_project(project_root: str, tsconfig_path: str = None, adapter: str = "auto",
                    show_progress: bool = False) -> IntermediateModel:
    if not os.path.isdir(project_root):
        raise OwcsError(f"Project root does not exist: {project_root}")
    program = Program(project_root, tsconfig_path)
    extractor = get_extractor(adapter, program)
    progress = (lambda files: tqdm(files, desc="Analyzing", unit="file")) if show_progress else None
    extractor.process_program(progress)
    model = extractor.build_model()
    logger.info("Found %d component(s) in %s", len(model.components), project_root)
    return model


def generate_spec(project_root: str, config: OwcsConfig = None, tsconfig_path: str = None,
                  show_progress: bool = False) -> dict:
    config = config or load_config(project_root) or OwcsConfig()
    model = analyze_project(project_root, tsconfig_path, config.adapter, show_progress)
    return adapt_owcs_model(
        model,
        title=config.title,
        version=config.version,
        description=config.description,
        include_runtime_extension=config.include_runtime_extension,
        extensions=config.extensions,
    )


def _merged_config(args) -> OwcsConfig:
    config = load_config(args.root_dir) or OwcsConfig()
    if args.adapter:
        config.adapter = args.adapter
    if args.title:
        config.title = args.title
    if args.spec_version:
        config.version = args.spec_version
    if args.description:
        config.description = args.description
    if args.include_runtime:
        config.include_runtime_extension = True
    if args.output:
        config.output_path = args.output
    if args.format:
        config.format = args.format
    return config


def write_document(document: dict, output_path: str, fmt: str = "json"):
    with open(output_path, "w", encoding="utf-8") as f:
        if fmt == "yaml":
            yaml.safe_dump(document, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(document, f, indent=2, ensure_ascii=False)
            f.write("\n")


def run_generate(args):
    config = _merged_config(args)
    project_root = args.root_dir
    if config.project_root and not args.root_dir_given:
        project_root = os.path.join(args.root_dir, config.project_root)

    if args.intermediate:
        document = analyze_project(project_root, args.tsconfig, config.adapter, show_progress=True).to_dict()
    else:
        document = generate_spec(project_root, config, args.tsconfig, show_progress=True)

    output_path = config.output_path or DEFAULT_OUTPUTS[config.format]
    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
    write_document(document, output_path, config.format)
    logger.info("Wrote %s", output_path)


def main(argv=None):
    parser = argparse.ArgumentParser(description='Open Web Components Specification generator')
    subparsers = parser.add_subparsers(dest='function', help='Available functions')

    parser_generate = subparsers.add_parser('generate', help='Generate an OWCS document from component sources')
    parser_generate.add_argument('root_dir', nargs='?', default=None,
                                 help='Project root to analyze (default: current directory)')
    parser_generate.add_argument('--tsconfig', default=None, help='Explicit tsconfig.json path')
    parser_generate.add_argument('--adapter', choices=['angular', 'react', 'auto'], default=None,
                                 help='Component conventions to recognise (default: auto)')
    parser_generate.add_argument('--output', '-o', default=None,
                                 help=f'Output file (default: ./{DEFAULT_OUTPUT})')
    parser_generate.add_argument('--format', choices=['json', 'yaml'], default=None,
                                 help='Output format (default: json)')
    parser_generate.add_argument('--title', default=None, help='Document title')
    parser_generate.add_argument('--version', dest='spec_version', default=None, help='Document version')
    parser_generate.add_argument('--description', default=None, help='Document description')
    parser_generate.add_argument('--include-runtime', action='store_true',
                                 help='Add the x-owcs-runtime extension')
    parser_generate.add_argument('--intermediate', action='store_true',
                                 help='Write the intermediate model instead of the OWCS document')
    parser_generate.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')

    args = parser.parse_args(argv)

    if not args.function:
        parser.print_help()
        return

    configure_logging(verbose=getattr(args, "verbose", False))

    try:
        if args.function == 'generate':
            args.root_dir_given = args.root_dir is not None
            args.root_dir = os.path.abspath(args.root_dir or os.getcwd())
            run_generate(args)
    except OwcsError as e:
        logger.error("%s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
