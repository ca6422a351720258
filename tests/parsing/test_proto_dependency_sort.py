import pytest
from codegen_errors import DependencyCycleError
from proto_dependency_sort import topological_sort_proto_files
from schema_model import ProtoFile

def make_file(name, imports):
    return ProtoFile(name, imports=imports)

def test_topological_sort_simple():
    a = make_file('a.proto', [('b.proto', None)])
    b = make_file('b.proto', [])
    files = {'a.proto': a, 'b.proto': b}
    sorted_files = topological_sort_proto_files(files)
    # b must come before a
    assert sorted_files.index(b) < sorted_files.index(a)

def test_topological_sort_chain():
    a = make_file('a.proto', [('c.proto', 'public')])
    b = make_file('b.proto', [('a.proto', None)])
    c = make_file('c.proto', [])
    sorted_files = topological_sort_proto_files({'b.proto': b, 'a.proto': a, 'c.proto': c})
    assert sorted_files == [c, a, b]

def test_unknown_imports_are_ignored():
    a = make_file('a.proto', [('elsewhere.proto', None)])
    assert topological_sort_proto_files({'a.proto': a}) == [a]

def test_topological_sort_cycle():
    a = make_file('a.proto', [('b.proto', None)])
    b = make_file('b.proto', [('a.proto', None)])
    files = {'a.proto': a, 'b.proto': b}
    with pytest.raises(DependencyCycleError):
        topological_sort_proto_files(files)
