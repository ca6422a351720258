"""
descriptor_builder.py
Compiles the loaded schema into a google.protobuf FileDescriptorSet. The set is
written next to the generated code and loaded at runtime to obtain message classes
and method paths, so no protoc run is needed.
"""
import logging
from typing import Dict

from google.protobuf import descriptor_pb2

from schema_model import ProtoEnum, ProtoFile, ProtoMessage, ProtoService, SchemaRoot
from symbol_tables import SymbolTables
from type_resolver import SCALAR_TYPES, TypeResolver

logger = logging.getLogger(__name__)

FieldDescriptorProto = descriptor_pb2.FieldDescriptorProto

_LABELS = {
    'repeated': FieldDescriptorProto.LABEL_REPEATED,
    'required': FieldDescriptorProto.LABEL_REQUIRED,
}


def scalar_field_type(proto_type: str) -> int:
    return getattr(FieldDescriptorProto, f"TYPE_{proto_type.upper()}")


def map_entry_name(field_name: str) -> str:
    """protoc naming of the synthesized map entry type: 'foo_bar' -> 'FooBarEntry'."""
    result = []
    upper_next = True
    for ch in field_name:
        if ch == '_':
            upper_next = True
            continue
        result.append(ch.upper() if upper_next else ch)
        upper_next = False
    return ''.join(result) + 'Entry'


def _format_default(value) -> str:
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def _descriptor_syntax(proto_file: ProtoFile) -> str:
    # Edition files are compiled with proto2 rules: explicit presence, no implicit defaults.
    return 'proto3' if proto_file.syntax == 'proto3' else 'proto2'


def build_enum(enum: ProtoEnum) -> descriptor_pb2.EnumDescriptorProto:
    enum_proto = descriptor_pb2.EnumDescriptorProto(name=enum.name)
    for name, number in enum.values.items():
        enum_proto.value.add(name=name, number=number)
    if enum.options.get('allow_alias'):
        enum_proto.options.allow_alias = True
    return enum_proto


def _apply_field_options(field_proto: FieldDescriptorProto, options: Dict, syntax: str):
    if 'json_name' in options:
        field_proto.json_name = str(options['json_name'])
    if 'packed' in options:
        field_proto.options.packed = bool(options['packed'])
    if options.get('deprecated'):
        field_proto.options.deprecated = True
    if 'default' in options and syntax == 'proto2':
        field_proto.default_value = _format_default(options['default'])


def build_message(msg: ProtoMessage, resolver: TypeResolver, syntax: str) -> descriptor_pb2.DescriptorProto:
    message_proto = descriptor_pb2.DescriptorProto(name=msg.name)
    oneof_index = {}
    for oneof in msg.oneofs:
        oneof_index[oneof] = len(message_proto.oneof_decl)
        message_proto.oneof_decl.add(name=oneof)

    synthetic_oneofs = []
    for field in msg.fields:
        field_proto = message_proto.field.add(name=field.name, number=field.number)
        field_proto.label = _LABELS.get(field.label, FieldDescriptorProto.LABEL_OPTIONAL)
        if field.is_map:
            entry = message_proto.nested_type.add(name=map_entry_name(field.name))
            entry.options.map_entry = True
            key = entry.field.add(name='key', number=1, label=FieldDescriptorProto.LABEL_OPTIONAL)
            key.type = scalar_field_type(field.map_key_type)
            value = entry.field.add(name='value', number=2, label=FieldDescriptorProto.LABEL_OPTIONAL)
            _set_field_type(value, field.type, msg.full_name, resolver)
            field_proto.type = FieldDescriptorProto.TYPE_MESSAGE
            field_proto.type_name = f".{msg.full_name}.{entry.name}"
            field_proto.label = FieldDescriptorProto.LABEL_REPEATED
        else:
            _set_field_type(field_proto, field.type, msg.full_name, resolver)
        if field.oneof is not None:
            field_proto.oneof_index = oneof_index[field.oneof]
        elif syntax == 'proto3' and field.label == 'optional':
            field_proto.proto3_optional = True
            synthetic_oneofs.append(field_proto)
        _apply_field_options(field_proto, field.options, syntax)

    # Synthetic oneofs of proto3 optional fields must follow the declared ones.
    for field_proto in synthetic_oneofs:
        field_proto.oneof_index = len(message_proto.oneof_decl)
        message_proto.oneof_decl.add(name=f"_{field_proto.name}")

    for nested in msg.messages:
        message_proto.nested_type.append(build_message(nested, resolver, syntax))
    for enum in msg.enums:
        message_proto.enum_type.append(build_enum(enum))
    return message_proto


def _set_field_type(field_proto: FieldDescriptorProto, proto_type: str, scope: str, resolver: TypeResolver):
    if proto_type in SCALAR_TYPES:
        field_proto.type = scalar_field_type(proto_type)
        return
    kind, full_name = resolver.qualify(proto_type, scope)
    field_proto.type = FieldDescriptorProto.TYPE_MESSAGE if kind == 'message' else FieldDescriptorProto.TYPE_ENUM
    field_proto.type_name = f".{full_name}"


def build_service(service: ProtoService, resolver: TypeResolver) -> descriptor_pb2.ServiceDescriptorProto:
    service_proto = descriptor_pb2.ServiceDescriptorProto(name=service.name)
    for method in service.methods:
        _, input_type = resolver.qualify(method.request_type, service.full_name)
        _, output_type = resolver.qualify(method.response_type, service.full_name)
        service_proto.method.add(
            name=method.name,
            input_type=f".{input_type}",
            output_type=f".{output_type}",
            client_streaming=method.request_stream,
            server_streaming=method.response_stream,
        )
    return service_proto


def build_file_descriptor(proto_file: ProtoFile, resolver: TypeResolver) -> descriptor_pb2.FileDescriptorProto:
    syntax = _descriptor_syntax(proto_file)
    file_proto = descriptor_pb2.FileDescriptorProto(name=proto_file.name, syntax=syntax)
    if proto_file.package:
        file_proto.package = proto_file.package
    for index, (import_name, kind) in enumerate(proto_file.imports):
        file_proto.dependency.append(import_name)
        if kind == 'public':
            file_proto.public_dependency.append(index)
        elif kind == 'weak':
            file_proto.weak_dependency.append(index)
    for msg in proto_file.messages:
        file_proto.message_type.append(build_message(msg, resolver, syntax))
    for enum in proto_file.enums:
        file_proto.enum_type.append(build_enum(enum))
    for service in proto_file.services:
        file_proto.service.append(build_service(service, resolver))
    return file_proto


def build_file_descriptor_set(root: SchemaRoot, tables: SymbolTables) -> descriptor_pb2.FileDescriptorSet:
    """
    One FileDescriptorProto per loaded file, dependencies first. Every message or
    enum reference must name a known symbol, otherwise TypeResolutionError.
    """
    resolver = TypeResolver(tables, root)
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    for proto_file in root.files:
        descriptor_set.file.append(build_file_descriptor(proto_file, resolver))
    logger.debug("Built descriptors for %d files", len(descriptor_set.file))
    return descriptor_set
