"""
Raw RPC object: schema.binpb (the serialized FileDescriptorSet) and grpc_obj.py,
which loads it once at import time.
"""
from typing import Dict, Union

from google.protobuf import descriptor_pb2

from generators.generator_utils import FILE_TIP_PY

SCHEMA_FILE = 'schema.binpb'
GRPC_OBJECT_MODULE = 'grpc_obj.py'


def generate_grpc_object_module() -> str:
    lines = [
        FILE_TIP_PY,
        'import os',
        '',
        'from grpc_runtime.grpc_object import load_grpc_object',
        '',
        f"SCHEMA_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), {SCHEMA_FILE!r})",
        '',
        'grpc_object = load_grpc_object(SCHEMA_PATH)',
    ]
    return '\n'.join(lines) + '\n'


def generate_grpc_object(descriptor_set: descriptor_pb2.FileDescriptorSet) -> Dict[str, Union[str, bytes]]:
    return {
        SCHEMA_FILE: descriptor_set.SerializeToString(deterministic=True),
        GRPC_OBJECT_MODULE: generate_grpc_object_module(),
    }
