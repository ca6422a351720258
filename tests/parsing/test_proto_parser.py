import pytest

from codegen_errors import ProtoSyntaxError
from proto_parser import parse_int, parse_proto

SAMPLE = '''
// leading comment
syntax = "proto3";
package a.b;

import "google/protobuf/empty.proto";
import public "other.proto";

option java_package = "com.example";

/* block
   comment */
message Foo {
  int32 id = 1;
  repeated string tags = 2;
  map<string, Bar> bars = 3;
  oneof choice {
    string name = 4;
    int64 num = 5;
  }
  message Inner { bool ok = 1; }
  enum Kind {
    KIND_UNKNOWN = 0;
    KIND_A = 1;
  }
  reserved 10, 12 to 15;
  reserved "old";
  optional string nick = 6 [deprecated = true];
}

enum Bar {
  BAR_ZERO = 0;
  BAR_HEX = 0x10;
  BAR_NEG = -1;
}

service Svc {
  rpc Get (Foo) returns (.a.b.Foo);
  rpc Watch (stream Foo) returns (stream Foo) {
    option deprecated = true;
  }
}
'''


def test_file_level_statements():
    proto_file = parse_proto(SAMPLE, 'a/b/sample.proto')
    assert proto_file.name == 'a/b/sample.proto'
    assert proto_file.syntax == 'proto3'
    assert proto_file.package == 'a.b'
    assert proto_file.imports == [('google/protobuf/empty.proto', None), ('other.proto', 'public')]
    assert proto_file.options == {'java_package': 'com.example'}


def test_message_fields_keep_declared_order():
    foo = parse_proto(SAMPLE).messages[0]
    assert foo.name == 'Foo'
    assert [f.name for f in foo.fields] == ['id', 'tags', 'bars', 'name', 'num', 'nick']
    tags = foo.fields[1]
    assert tags.repeated and tags.type == 'string' and tags.number == 2
    bars = foo.fields[2]
    assert bars.is_map
    assert bars.map_key_type == 'string'
    assert bars.type == 'Bar'
    assert foo.fields[3].oneof == 'choice'
    assert foo.oneofs == ['choice']
    nick = foo.fields[5]
    assert nick.label == 'optional'
    assert nick.options == {'deprecated': True}


def test_nested_declarations():
    foo = parse_proto(SAMPLE).messages[0]
    assert [m.name for m in foo.messages] == ['Inner']
    assert [e.name for e in foo.enums] == ['Kind']
    assert list(foo.enums[0].values.items()) == [('KIND_UNKNOWN', 0), ('KIND_A', 1)]


def test_enum_values_keep_declared_order():
    bar = parse_proto(SAMPLE).enums[0]
    assert list(bar.values) == ['BAR_ZERO', 'BAR_HEX', 'BAR_NEG']
    assert bar.values['BAR_HEX'] == 16
    assert bar.values['BAR_NEG'] == -1


def test_service_methods():
    svc = parse_proto(SAMPLE).services[0]
    get, watch = svc.methods
    assert get.request_type == 'Foo'
    assert get.response_type == '.a.b.Foo'
    assert get.is_unary
    assert watch.request_stream and watch.response_stream
    assert not watch.is_unary
    assert watch.options == {'deprecated': True}


def test_full_names_are_assigned_on_demand():
    proto_file = parse_proto(SAMPLE, 'sample.proto')
    proto_file.assign_full_names()
    assert [m.full_name for m in proto_file.iter_messages()] == ['a.b.Foo', 'a.b.Foo.Inner']
    assert [e.full_name for e in proto_file.iter_enums()] == ['a.b.Bar', 'a.b.Foo.Kind']
    assert proto_file.services[0].full_name == 'a.b.Svc'
    assert proto_file.services[0].methods[0].full_name == 'a.b.Svc.Get'


def test_proto2_labels_and_defaults():
    text = '''
    syntax = "proto2";
    message Legacy {
      required int32 id = 1 [default = 7];
      optional string name = 2;
    }
    '''
    legacy = parse_proto(text).messages[0]
    assert legacy.fields[0].required
    assert legacy.fields[0].options == {'default': 7}
    assert legacy.fields[1].label == 'optional'
    assert not legacy.fields[1].required


def test_missing_syntax_defaults_to_proto2():
    assert parse_proto('message A {}').syntax == 'proto2'


def test_editions_file():
    proto_file = parse_proto('edition = "2023"; package x; message A { int32 a = 1; }')
    assert proto_file.syntax == 'editions'
    assert proto_file.package == 'x'


AGGREGATE_OPTIONS = '''
syntax = "proto3";
package agg;
option (my.opt) = { a: 1 };
option (my.list) = { tags: ["x", "y"] nested { flag: true } };

message Rule {
  option (m) = { a: 1 };
  string v = 1 [(validate.rules).string = {min_len: 1}, deprecated = true];
  int32 n = 2;
}

service Api {
  rpc Get (Rule) returns (Rule) {
    option (google.api.http) = {
      get: "/v1/rules/{v}"
      additional_bindings { post: "/v1/rules" body: "*" }
    };
  }
  rpc Put (Rule) returns (Rule);
}

enum Kind { KIND_UNSET = 0; }
'''


def test_aggregate_options_keep_their_text():
    proto_file = parse_proto(AGGREGATE_OPTIONS)
    assert proto_file.options['(my.opt)'] == '{a: 1}'
    assert proto_file.options['(my.list)'] == '{tags: ["x", "y"] nested: {flag: true}}'
    rule = proto_file.messages[0]
    assert rule.options == {'(m)': '{a: 1}'}
    assert rule.fields[0].options == {'(validate.rules).string': '{min_len: 1}', 'deprecated': True}
    assert [f.name for f in rule.fields] == ['v', 'n']
    get, put = proto_file.services[0].methods
    assert get.options['(google.api.http)'] == (
        '{get: "/v1/rules/{v}" additional_bindings: {post: "/v1/rules" body: "*"}}')
    assert put.name == 'Put'
    assert proto_file.enums[0].name == 'Kind'


@pytest.mark.parametrize('text', [
    'option (my.opt) = { a: 1 }; message A {}',
    'option (my.opt) = {\n  a: 1\n};\nmessage A {}\n',
    'message A { option (m) = { a: 1; b: -inf, c: [1, 2] }; int32 x = 1; }',
    'message A {} service S { rpc Get(A) returns (A) { option (google.api.http) = { get: "/v1/x" }; } }',
    'message A { string v = 1 [(v).string = {min_len: 1}]; int32 w = 2; }',
    'option (ext) = < [my.ext] { k: E_ONE } >; message A {}',
])
def test_aggregate_followed_by_declarations(text):
    assert parse_proto('syntax = "proto3";\n' + text).messages[0].name == 'A'


def test_field_options_with_extension_names():
    text = 'syntax = "proto3"; message A { string v = 1 [(validate.rules).string.min_len = 1]; }'
    assert parse_proto(text).messages[0].fields[0].options == {'(validate.rules).string.min_len': 1}


def test_adjacent_strings_are_concatenated():
    proto_file = parse_proto('syntax = "proto3"; option go_package = "example.com/" "pkg";')
    assert proto_file.options['go_package'] == 'example.com/pkg'


def test_common_field_names_are_not_keywords():
    text = 'syntax = "proto3"; message Reply { string message = 1; int32 option = 2; bool map = 3; }'
    reply = parse_proto(text).messages[0]
    assert [f.name for f in reply.fields] == ['message', 'option', 'map']


def test_syntax_error_reports_file_and_line():
    with pytest.raises(ProtoSyntaxError) as excinfo:
        parse_proto('syntax = "proto3";\nmessage Foo {\n  int32 = 1;\n}\n', 'bad.proto')
    assert excinfo.value.path == 'bad.proto'
    assert excinfo.value.line == 3
    assert str(excinfo.value).startswith('bad.proto:3')


def test_groups_are_rejected():
    with pytest.raises(ProtoSyntaxError):
        parse_proto('syntax = "proto2"; message A { optional group G = 1 { optional int32 x = 2; } }')


def test_parse_int():
    assert parse_int('42') == 42
    assert parse_int('0x1F') == 31
    assert parse_int('017') == 15
    assert parse_int('-5') == -5
    assert parse_int('0') == 0


if __name__ == "__main__":
    pytest.main([__file__])
