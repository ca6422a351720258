
import sys
import os
from tempfile import TemporaryDirectory
import pytest
# Ensure the project root is on sys.path for all tests
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from proto_parser import parse_proto
from schema_model import SchemaRoot


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with TemporaryDirectory() as dir_path:
        yield dir_path


@pytest.fixture
def write_protos(temp_dir):
    """Write {relative path: source} below <temp_dir>/<source_name> and return that directory."""
    def write(files, source_name='demo-proto'):
        root = os.path.join(temp_dir, source_name)
        for rel_path, text in files.items():
            path = os.path.join(root, *rel_path.split('/'))
            os.makedirs(os.path.dirname(path), exist_ok=True)
            with open(path, 'w', encoding='utf-8') as f:
                f.write(text)
        return root
    return write


@pytest.fixture
def schema_from_text():
    """Build a SchemaRoot straight from {file name: source}, files in the given order."""
    def build(files):
        parsed = []
        for name, text in files.items():
            proto_file = parse_proto(text, name)
            proto_file.assign_full_names()
            parsed.append(proto_file)
        return SchemaRoot(parsed)
    return build


@pytest.fixture
def declarations_from_text(schema_from_text):
    """(namespace tree, resolver, schema root) for the declaration generators."""
    from namespace_tree import build_namespace_tree
    from symbol_tables import build_symbol_tables
    from type_resolver import TypeResolver

    def build(files, reverse=False):
        root = schema_from_text(files)
        inspection = root.inspect_namespace()
        messages, enums = list(inspection.messages), list(inspection.enums)
        if reverse:
            messages.reverse()
            enums.reverse()
        tree = build_namespace_tree(messages, enums)
        resolver = TypeResolver(build_symbol_tables(messages, enums), root)
        return tree, resolver, root
    return build
