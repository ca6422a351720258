"""
Adapts grpc.aio unary-unary multicallables to the origin signature the call
wrapper expects: origin(request, metadata, options, callback).
"""
import asyncio
import logging
import time
from typing import Any, Callable, Mapping, Optional

import grpc
import grpc.aio

from grpc_runtime.call_options import CallOptions
from grpc_runtime.errors import TransportError
from grpc_runtime.metadata import Metadata

logger = logging.getLogger(__name__)


def create_channel(address: str, credentials: Optional[grpc.ChannelCredentials] = None,
                   options: Optional[Mapping[str, Any]] = None) -> grpc.aio.Channel:
    channel_options = list((options or {}).items())
    if credentials is not None:
        return grpc.aio.secure_channel(address, credentials, options=channel_options)
    return grpc.aio.insecure_channel(address, options=channel_options)


async def _invoke(multicallable, request: Any, metadata: Metadata, options: CallOptions, callback,
                  clock: Callable[[], float]):
    if options.host is not None:
        logger.debug("Call option host=%s is not supported by grpc.aio and is ignored", options.host)
    try:
        call = multicallable(
            request,
            timeout=options.remaining(clock()),
            metadata=metadata.to_tuple() or None,
            wait_for_ready=options.wait_for_ready,
        )
        response = await call
        trailing = await call.trailing_metadata()
    except grpc.aio.AioRpcError as exc:
        error = TransportError.from_rpc_error(exc)
        callback(error, None, error.metadata)
        return
    except Exception as exc:
        callback(exc, None, None)
        return
    callback(None, response, Metadata.from_pairs(trailing or ()))


def unary_transport(multicallable, clock: Callable[[], float] = time.time):
    """Origin over a grpc.aio UnaryUnaryMultiCallable. Each call runs as a task on the running loop."""
    def origin(request, metadata: Metadata, options: CallOptions, callback):
        return asyncio.ensure_future(_invoke(multicallable, request, metadata, options, callback, clock))
    return origin
