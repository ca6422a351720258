"""
codegen_errors.py
Generation-time error taxonomy for grpc-code-gen. Every error here aborts the
generation run before any output is written.
"""
from typing import Optional


class CodeGenError(Exception):
    """Base class for errors that abort a generation run."""


class SchemaConfigError(CodeGenError):
    """The schema sources are unusable: none supplied, or an import is missing."""


class DependencyCycleError(SchemaConfigError):
    pass


class ProtoSyntaxError(CodeGenError):
    def __init__(self, path: str, message: str, line: Optional[int] = None):
        self.path = path
        self.line = line
        location = f"{path}:{line}" if line is not None else path
        super().__init__(f"{location}: {message}")


class TypeResolutionError(CodeGenError):
    """
    A field, argument or return type could not be resolved from the scope of
    the symbol that references it.
    """

    def __init__(self, proto_type: str, scope: str):
        self.proto_type = proto_type
        self.scope = scope
        super().__init__(f"Type '{proto_type}' not found in scope of '{scope}'")
