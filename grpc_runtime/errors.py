"""Errors raised by generated service clients."""
from typing import Any, Optional

from grpc_runtime.metadata import Metadata


class GrpcRuntimeError(Exception):
    """Base class for grpc_runtime errors."""


class TransportError(GrpcRuntimeError):
    """
    A failed call. Carries the status details, the status code and the trailing
    metadata the server returned with the status.
    """

    def __init__(self, details: str, code: Any = None, metadata: Optional[Metadata] = None):
        super().__init__(details)
        self.details = details
        self.code = code
        self.metadata = metadata if metadata is not None else Metadata()

    @classmethod
    def from_rpc_error(cls, rpc_error) -> 'TransportError':
        """Wrap a grpc.aio.AioRpcError; the original stays reachable as __cause__."""
        details = rpc_error.details() or str(rpc_error)
        metadata = Metadata.from_pairs(rpc_error.trailing_metadata() or ())
        error = cls(details, rpc_error.code(), metadata)
        error.__cause__ = rpc_error
        return error


class ConfigurationMissingError(GrpcRuntimeError):
    def __init__(self, file_name: str, reason: Optional[str] = None):
        self.file_name = file_name
        super().__init__(reason or f"{file_name} config not exists!")
