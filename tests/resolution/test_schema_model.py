import pytest

from schema_model import ProtoFile, SchemaRoot, get_package_name, join_name

A_PROTO = '''
syntax = "proto3";
package a.b;
message Foo {
  message Inner { int32 x = 1; }
  enum Mode { MODE_UNKNOWN = 0; }
}
enum Bar { BAR_UNKNOWN = 0; }
service Svc { rpc Get (Foo) returns (Foo); }
'''

TOP_PROTO = '''
syntax = "proto3";
message Top { string v = 1; }
'''


def test_package_name_helpers():
    assert get_package_name('a.b.Foo') == 'a.b'
    assert get_package_name('Foo') == ''
    assert join_name('a.b', 'Foo') == 'a.b.Foo'
    assert join_name('', 'Foo') == 'Foo'


def test_inspect_namespace_lists_everything_in_load_order(schema_from_text):
    root = schema_from_text({'top.proto': TOP_PROTO, 'a.proto': A_PROTO})
    inspection = root.inspect_namespace()
    assert [s.full_name for s in inspection.services] == ['a.b.Svc']
    assert [m.full_name for m in inspection.methods] == ['a.b.Svc.Get']
    assert [m.full_name for m in inspection.messages] == ['Top', 'a.b.Foo', 'a.b.Foo.Inner']
    assert [e.full_name for e in inspection.enums] == ['a.b.Bar', 'a.b.Foo.Mode']


def test_lookup_absolute_name(schema_from_text):
    root = schema_from_text({'a.proto': A_PROTO})
    assert root.lookup_type_or_enum('.a.b.Foo.Inner').full_name == 'a.b.Foo.Inner'
    assert root.lookup_type_or_enum('.b.Foo') is None


def test_lookup_searches_nested_namespaces(schema_from_text):
    root = schema_from_text({'top.proto': TOP_PROTO, 'a.proto': A_PROTO})
    assert root.lookup_type_or_enum('Top').full_name == 'Top'
    assert root.lookup_type_or_enum('Bar').full_name == 'a.b.Bar'
    assert root.lookup_type_or_enum('b.Foo.Mode').full_name == 'a.b.Foo.Mode'
    assert root.lookup_full_name('Inner') == '.a.b.Foo.Inner'
    assert root.lookup_full_name('Missing') is None


def test_packages_are_not_symbols(schema_from_text):
    root = schema_from_text({'a.proto': A_PROTO})
    assert root.lookup_type_or_enum('a.b') is None


def test_get_file():
    proto_file = ProtoFile('x.proto', package='x')
    root = SchemaRoot([proto_file])
    assert root.get_file('x.proto') is proto_file
    assert root.get_file('y.proto') is None


if __name__ == "__main__":
    pytest.main([__file__])
