"""
Raw RPC object: message classes and unary method bindings built from the
FileDescriptorSet written by the generator (schema.binpb).
"""
import logging
from typing import Any, Dict

from google.protobuf import descriptor_pb2, descriptor_pool, json_format, message_factory
from google.protobuf.message import Message

from grpc_runtime.transport import unary_transport

logger = logging.getLogger(__name__)


class MethodDefinition:
    def __init__(self, name: str, service_full_name: str, input_class, output_class,
                 client_streaming: bool = False, server_streaming: bool = False):
        self.name = name
        self.path = f"/{service_full_name}/{name}"
        self.method_id = f"{service_full_name}.{name}"
        self.input_class = input_class
        self.output_class = output_class
        self.client_streaming = client_streaming
        self.server_streaming = server_streaming

    @property
    def is_unary(self) -> bool:
        return not (self.client_streaming or self.server_streaming)

    def serialize_request(self, request: Any) -> bytes:
        """Requests are plain dicts in the JSON mapping, or message instances."""
        if isinstance(request, Message):
            message = request
        else:
            message = json_format.ParseDict(request or {}, self.input_class())
        return message.SerializeToString()

    def deserialize_response(self, data: bytes) -> Dict[str, Any]:
        message = self.output_class.FromString(data)
        return json_format.MessageToDict(message, preserving_proto_field_name=True, use_integers_for_enums=True)

    def __repr__(self):
        return f"MethodDefinition({self.path!r})"


class ServiceDefinition:
    def __init__(self, full_name: str, methods: Dict[str, MethodDefinition]):
        self.full_name = full_name
        self.methods = methods

    def bind(self, channel) -> Dict[str, Any]:
        """One transport origin per unary method of this service on the given grpc.aio channel."""
        origins = {}
        for name, method in self.methods.items():
            if not method.is_unary:
                logger.debug("Skipping streaming method %s", method.method_id)
                continue
            multicallable = channel.unary_unary(
                method.path,
                request_serializer=method.serialize_request,
                response_deserializer=method.deserialize_response,
            )
            origins[name] = unary_transport(multicallable)
        return origins


class GrpcObject:
    def __init__(self, pool: descriptor_pool.DescriptorPool):
        self.pool = pool

    def message_class(self, full_name: str):
        return message_factory.GetMessageClass(self.pool.FindMessageTypeByName(full_name))

    def service(self, full_name: str) -> ServiceDefinition:
        service = self.pool.FindServiceByName(full_name)
        methods = {}
        for method in service.methods:
            methods[method.name] = MethodDefinition(
                method.name,
                service.full_name,
                message_factory.GetMessageClass(method.input_type),
                message_factory.GetMessageClass(method.output_type),
                client_streaming=method.client_streaming,
                server_streaming=method.server_streaming,
            )
        return ServiceDefinition(service.full_name, methods)


def grpc_object_from_descriptor_set(descriptor_set: descriptor_pb2.FileDescriptorSet) -> GrpcObject:
    pool = descriptor_pool.DescriptorPool()
    for file_proto in descriptor_set.file:
        pool.AddSerializedFile(file_proto.SerializeToString())
    return GrpcObject(pool)


def load_grpc_object(path: str) -> GrpcObject:
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    with open(path, 'rb') as f:
        descriptor_set.ParseFromString(f.read())
    return grpc_object_from_descriptor_set(descriptor_set)
