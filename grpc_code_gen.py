#!/usr/bin/env python3
"""
grpc-code-gen

Generates client-side Python code from protobuf schemas kept in one or more
repositories: TypedDict/IntEnum declarations for every message and enum, a raw
RPC object built from the compiled descriptors, and one client module per
service whose methods retry transient transport errors and log every call.

Usage:
    python grpc_code_gen.py --source <dir or git url> [--source ...] [--output <dir>] [--branch <branch>]
                            [--access-token <token>] [--target python|typescript] [--json-semantic-types]
                            [--no-service-code] [--config <file>] [--verbose]

Arguments:
    --source, -s          : Directory or git repository holding .proto files (repeatable)
    --output, -o          : Directory to generate into; removed and recreated (default: code_gen)
    --branch, -b          : Branch to clone for git sources
    --access-token        : Token injected into https git URLs
    --target, -t          : python (default) or typescript (declarations only)
    --json-semantic-types : Also generate declarations that accept semantic schemas
    --no-service-code     : Only generate declarations
    --config, -c          : Code-gen config file (default: grpc-code-gen.config.json)
    --verbose, -v         : Enable debug logging

Environment variables GRPC_CODE_GEN_SOURCES, GRPC_CODE_GEN_OUTPUT_DIR, GRPC_CODE_GEN_BRANCH,
GRPC_CODE_GEN_ACCESS_TOKEN, GRPC_CODE_GEN_TARGET, GRPC_CODE_GEN_JSON_SEMANTIC_TYPES,
GRPC_CODE_GEN_SERVICE_CODE and GRPC_CODE_GEN_VERBOSE override the arguments.

Example:
    python grpc_code_gen.py --source ./user-proto --output ./code_gen
    python grpc_code_gen.py --source https://git.example.com/team/user-proto.git --branch main
"""

import argparse
import logging
import os
import shutil
import sys
from typing import Callable, Dict, List, Optional, Union

from codegen_errors import CodeGenError
from descriptor_builder import build_file_descriptor_set
from generators.client_generator import CACHE_DIR, CLIENT_MODULE, CODE_GEN_CONFIG_FILE, generate_get_grpc_client
from generators.generator_utils import FILE_TIP_PY, package_dirs, write_files
from generators.grpc_object_generator import generate_grpc_object
from generators.python_types_generator import generate_python_semantic_types, generate_python_types
from generators.service_generator import generate_service_module
from generators.typescript_types_generator import generate_typescript_semantic_types, generate_typescript_types
from grpc_runtime.client_config import CodeGenConfig, load_code_gen_config
from namespace_tree import build_namespace_tree
from proto_loader import load_schema
from schema_model import SchemaRoot
from symbol_tables import build_symbol_tables
from type_resolver import TypeResolver

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = 'code_gen'
TARGETS = ('python', 'typescript')


class GrpcCodeGenerator:
    """
    Runs one generation: load the schema, render every output file in memory, then
    replace the output directory. Any CodeGenError is raised before the output
    directory is touched.
    """

    def __init__(self, sources: List[str], output_dir: str = DEFAULT_OUTPUT_DIR, branch: Optional[str] = None,
                 access_token: Optional[str] = None, target: str = 'python', json_semantic_types: bool = False,
                 service_code: bool = True, config_path: Optional[str] = None, project_dir: Optional[str] = None,
                 resolve_path: Optional[Callable[[str], str]] = None):
        if target not in TARGETS:
            raise ValueError(f"Unknown target: {target}")
        self.sources = list(sources)
        self.project_dir = os.path.abspath(project_dir or os.getcwd())
        self.output_dir = os.path.abspath(os.path.join(self.project_dir, output_dir))
        self.branch = branch
        self.access_token = access_token
        self.target = target
        self.json_semantic_types = json_semantic_types
        self.service_code = service_code
        self.config_path = config_path or os.path.join(self.project_dir, CODE_GEN_CONFIG_FILE)
        self.resolve_path = resolve_path

    def load(self) -> SchemaRoot:
        return load_schema(
            self.sources,
            branch=self.branch,
            access_token=self.access_token,
            cache_dir=os.path.join(self.project_dir, CACHE_DIR),
            resolve_path=self.resolve_path,
        )

    def render(self, root: SchemaRoot) -> Dict[str, Union[str, bytes]]:
        """Every output file keyed by its path relative to the output directory."""
        inspection = root.inspect_namespace()
        tables = build_symbol_tables(inspection.messages, inspection.enums)
        tree = build_namespace_tree(inspection.messages, inspection.enums)
        resolver = TypeResolver(tables, root)
        files: Dict[str, Union[str, bytes]] = {}

        if self.target == 'typescript':
            files['types.ts'] = generate_typescript_types(tree, resolver)
            if self.json_semantic_types:
                files['jsonSemanticTypes.ts'] = generate_typescript_semantic_types(tree, resolver)
            if self.service_code:
                logger.warning("Service code is only generated for the python target")
            return files

        files['types.py'] = generate_python_types(tree, resolver)
        if self.json_semantic_types:
            files['json_semantic_types.py'] = generate_python_semantic_types(tree, resolver)
        if self.service_code:
            files.update(generate_grpc_object(build_file_descriptor_set(root, tables)))
            files[CLIENT_MODULE] = generate_get_grpc_client(self.output_dir, self.project_dir, self.config_path)
            for service in inspection.services:
                path, text = generate_service_module(service, resolver)
                files[path] = text
        for directory in package_dirs([path for path in files if path.endswith('.py')]):
            init_path = f"{directory}/__init__.py" if directory else '__init__.py'
            files.setdefault(init_path, FILE_TIP_PY + '\n')
        return files

    def generate(self) -> str:
        root = self.load()
        files = self.render(root)
        if os.path.exists(self.output_dir):
            shutil.rmtree(self.output_dir)
        print(f"Clean dir: {self.output_dir}")
        os.makedirs(self.output_dir)
        write_files(self.output_dir, files)
        logger.debug("Wrote %d files", len(files))
        print(f"Generate success in {self.output_dir}")
        return self.output_dir


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _split_sources(value: str) -> List[str]:
    return [s.strip() for s in value.replace(',', ' ').split() if s.strip()]


def parse_arguments(argv: Optional[List[str]] = None):
    """
    Parse command line arguments.

    Returns:
        argparse.Namespace: Parsed command line arguments
    """
    parser = argparse.ArgumentParser(
        description="Generate Python gRPC client code from protobuf schemas",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument('--source', '-s', action='append', default=[],
                        help='Directory or git repository holding .proto files (repeatable)')
    parser.add_argument('--output', '-o', help=f'Directory to generate into (default: {DEFAULT_OUTPUT_DIR})')
    parser.add_argument('--branch', '-b', help='Branch to clone for git sources')
    parser.add_argument('--access-token', help='Token injected into https git URLs')
    parser.add_argument('--target', '-t', choices=TARGETS, help='Output language (default: python)')
    parser.add_argument('--json-semantic-types', action='store_true', default=None,
                        help='Also generate declarations that accept semantic schemas')
    parser.add_argument('--no-service-code', dest='service_code', action='store_false', default=None,
                        help='Only generate declarations')
    parser.add_argument('--config', '-c', help=f'Code-gen config file (default: {CODE_GEN_CONFIG_FILE})')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    return parser.parse_args(argv)


def _first(*values):
    for value in values:
        if value is not None:
            return value
    return None


def main(argv: Optional[List[str]] = None):
    """
    Main entry point of the script.
    """
    args = parse_arguments(argv)

    verbose = _env_flag('GRPC_CODE_GEN_VERBOSE', args.verbose)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, format='%(levelname)s %(name)s: %(message)s')

    config_path = os.environ.get('GRPC_CODE_GEN_CONFIG', args.config) or CODE_GEN_CONFIG_FILE
    config: CodeGenConfig = load_code_gen_config(config_path)

    # Environment overrides arguments, arguments override the config file.
    sources = args.source or config.sources
    if 'GRPC_CODE_GEN_SOURCES' in os.environ:
        sources = _split_sources(os.environ['GRPC_CODE_GEN_SOURCES'])
    output_dir = os.environ.get('GRPC_CODE_GEN_OUTPUT_DIR', _first(args.output, config.base_dir, DEFAULT_OUTPUT_DIR))
    branch = os.environ.get('GRPC_CODE_GEN_BRANCH', _first(args.branch, config.branch))
    access_token = os.environ.get('GRPC_CODE_GEN_ACCESS_TOKEN', args.access_token)
    target = os.environ.get('GRPC_CODE_GEN_TARGET', _first(args.target, config.target, 'python'))
    json_semantic_types = _env_flag('GRPC_CODE_GEN_JSON_SEMANTIC_TYPES',
                                    bool(_first(args.json_semantic_types, config.json_semantic_types, False)))
    service_code = _env_flag('GRPC_CODE_GEN_SERVICE_CODE',
                             bool(_first(args.service_code, config.service_code, True)))

    if target not in TARGETS:
        print(f"Error: unknown target '{target}' (choose from {', '.join(TARGETS)})")
        sys.exit(1)

    generator = GrpcCodeGenerator(
        sources,
        output_dir=output_dir,
        branch=branch,
        access_token=access_token,
        target=target,
        json_semantic_types=json_semantic_types,
        service_code=service_code,
        config_path=os.path.abspath(config_path),
    )
    try:
        generator.generate()
    except CodeGenError as exc:
        print(f"Error: {exc}")
        sys.exit(1)


if __name__ == '__main__':
    main()
