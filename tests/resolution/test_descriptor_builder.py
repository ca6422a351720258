import pytest
from google.protobuf import descriptor_pb2

from codegen_errors import TypeResolutionError
from descriptor_builder import build_file_descriptor_set, map_entry_name, scalar_field_type
from grpc_runtime.grpc_object import grpc_object_from_descriptor_set
from symbol_tables import build_symbol_tables

FDP = descriptor_pb2.FieldDescriptorProto

COMMON = '''
syntax = "proto3";
package a.common;
enum Color {
  COLOR_UNKNOWN = 0;
  COLOR_RED = 1;
}
'''

FOO = '''
syntax = "proto3";
package a.b;
import "common.proto";

message Foo {
  int32 id = 1;
  repeated string tags = 2;
  map<string, common.Color> colors = 3;
  oneof choice {
    string name = 4;
    int64 num = 5;
  }
  optional string nick = 6;
  Inner inner = 7;
  message Inner { bool ok = 1; }
}

service Svc {
  rpc Get (Foo) returns (Foo.Inner);
}
'''


def build(schema_from_text, files):
    root = schema_from_text(files)
    inspection = root.inspect_namespace()
    return build_file_descriptor_set(root, build_symbol_tables(inspection.messages, inspection.enums))


def field_by_name(message_proto, name):
    return next(f for f in message_proto.field if f.name == name)


def test_helpers():
    assert map_entry_name('colors') == 'ColorsEntry'
    assert map_entry_name('foo_bar') == 'FooBarEntry'
    assert scalar_field_type('sfixed64') == FDP.TYPE_SFIXED64


def test_file_descriptors(schema_from_text):
    fds = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO})
    assert [f.name for f in fds.file] == ['common.proto', 'foo.proto']
    foo_file = fds.file[1]
    assert foo_file.syntax == 'proto3'
    assert foo_file.package == 'a.b'
    assert list(foo_file.dependency) == ['common.proto']


def test_message_fields(schema_from_text):
    foo = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO}).file[1].message_type[0]
    tags = field_by_name(foo, 'tags')
    assert tags.label == FDP.LABEL_REPEATED
    assert tags.type == FDP.TYPE_STRING
    inner = field_by_name(foo, 'inner')
    assert inner.type == FDP.TYPE_MESSAGE
    assert inner.type_name == '.a.b.Foo.Inner'


def test_map_fields_get_entry_types(schema_from_text):
    foo = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO}).file[1].message_type[0]
    colors = field_by_name(foo, 'colors')
    assert colors.label == FDP.LABEL_REPEATED
    assert colors.type_name == '.a.b.Foo.ColorsEntry'
    entry = next(t for t in foo.nested_type if t.name == 'ColorsEntry')
    assert entry.options.map_entry
    assert [(f.name, f.number) for f in entry.field] == [('key', 1), ('value', 2)]
    assert entry.field[1].type == FDP.TYPE_ENUM
    assert entry.field[1].type_name == '.a.common.Color'


def test_oneofs_and_proto3_optional(schema_from_text):
    foo = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO}).file[1].message_type[0]
    assert [o.name for o in foo.oneof_decl] == ['choice', '_nick']
    assert field_by_name(foo, 'name').oneof_index == 0
    nick = field_by_name(foo, 'nick')
    assert nick.proto3_optional
    assert nick.oneof_index == 1
    assert not field_by_name(foo, 'id').HasField('oneof_index')


def test_service_methods_are_qualified(schema_from_text):
    svc = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO}).file[1].service[0]
    method = svc.method[0]
    assert method.input_type == '.a.b.Foo'
    assert method.output_type == '.a.b.Foo.Inner'
    assert not method.client_streaming and not method.server_streaming


def test_proto2_defaults_and_required(schema_from_text):
    text = 'syntax = "proto2"; message L { required int32 id = 1 [default = 3]; optional bool on = 2 [default = true]; }'
    legacy = build(schema_from_text, {'l.proto': text}).file[0]
    assert legacy.syntax == 'proto2'
    id_field = field_by_name(legacy.message_type[0], 'id')
    assert id_field.label == FDP.LABEL_REQUIRED
    assert id_field.default_value == '3'
    assert field_by_name(legacy.message_type[0], 'on').default_value == 'true'


def test_unknown_reference_fails(schema_from_text):
    with pytest.raises(TypeResolutionError):
        build(schema_from_text, {'x.proto': 'syntax = "proto3"; message X { Nope n = 1; }'})


def test_descriptor_set_loads_into_a_pool(schema_from_text):
    fds = build(schema_from_text, {'common.proto': COMMON, 'foo.proto': FOO})
    grpc_object = grpc_object_from_descriptor_set(fds)
    foo_cls = grpc_object.message_class('a.b.Foo')
    message = foo_cls(id=3, tags=['x', 'y'], name='n')
    message.colors['k'] = 1
    parsed = foo_cls.FromString(message.SerializeToString())
    assert parsed.id == 3
    assert list(parsed.tags) == ['x', 'y']
    assert parsed.colors['k'] == 1
    assert parsed.WhichOneof('choice') == 'name'
    assert not parsed.HasField('nick')


if __name__ == "__main__":
    pytest.main([__file__])
