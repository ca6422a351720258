"""
Retrying call wrapper shared by every generated service method.

An invocation runs Attempting -> (Retrying -> Attempting)* -> Done. Each attempt
gets a fresh deadline from the configured timeout. Errors whose details start
with TRANSIENT_ERROR_PREFIX are retried up to MAX_RETRIES times after a fixed
RETRY_DELAY_S; anything else settles the call immediately.
"""
import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, NamedTuple, Optional, Set, Union

from grpc_runtime.call_options import CallOptions, CallOptionsLike
from grpc_runtime.metadata import Metadata, MetadataMap, to_metadata
from grpc_runtime.transport import create_channel

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
RETRY_DELAY_S = 0.025
TRANSIENT_ERROR_PREFIX = 'Internal HTTP2 error'

# callback(err, response, response_metadata)
Callback = Callable[[Optional[BaseException], Any, Optional[Metadata]], None]
# origin(request, metadata, options, callback)
Origin = Callable[[Any, Metadata, CallOptions, Callback], Any]
# schedule(delay_seconds, fn)
Scheduler = Callable[[float, Callable[[], None]], Any]


def error_text(err: BaseException) -> str:
    """The first non-empty of details, message and data, else str(err)."""
    for attr in ('details', 'message', 'data'):
        value = getattr(err, attr, None)
        if callable(value):
            value = value()
        if value:
            return str(value)
    return str(err)


def is_transient_transport_error(err: Optional[BaseException]) -> bool:
    return err is not None and error_text(err).startswith(TRANSIENT_ERROR_PREFIX)


def _call_later(delay: float, fn: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, fn)


def _to_json(value: Any) -> str:
    if isinstance(value, Metadata):
        value = value.get_map()
    return json.dumps(value, default=str, ensure_ascii=False)


@dataclass
class LogOptions:
    disable: bool = False
    # which of 'request' and 'metadata' are serialized into the log record
    attributes: List[str] = field(default_factory=lambda: ['request', 'metadata'])

    @classmethod
    def from_mapping(cls, options: Union['LogOptions', Mapping[str, Any], None]) -> 'LogOptions':
        if options is None:
            return cls()
        if isinstance(options, LogOptions):
            return options
        log_options = cls(disable=bool(options.get('disable', False)))
        if 'attributes' in options:
            log_options.attributes = list(options['attributes'])
        return log_options


class CallResult(NamedTuple):
    response: Any
    metadata: Metadata


class Invocation:
    """State of one call through the retry loop."""

    def __init__(self, origin: Origin, method_id: str, request: Any, metadata: Metadata, options: CallOptions,
                 callback: Callback, log_options: LogOptions, schedule: Scheduler,
                 clock: Callable[[], float] = time.time):
        self.origin = origin
        self.method_id = method_id
        self.request = request
        self.metadata = metadata
        self.options = options
        self.callback = callback
        self.log_options = log_options
        self.schedule = schedule
        self.clock = clock
        self.attempt_count = 0
        self.start: Optional[float] = None
        self.done = False
        # running attempt, when the origin returned a future
        self.pending: Optional[asyncio.Future] = None

    def attempt(self):
        self.start = self.clock()
        options = self.options.with_deadline(self.start)
        try:
            pending = self.origin(self.request, self.metadata, options, self._on_complete)
        except Exception as exc:
            if self.done:
                raise
            self._on_complete(exc)
            return
        if isinstance(pending, asyncio.Future) and not pending.done():
            self.pending = pending
            pending.add_done_callback(self._clear_pending)

    def _clear_pending(self, future: asyncio.Future):
        if self.pending is future:
            self.pending = None

    def _on_complete(self, err: Optional[BaseException], response: Any = None,
                     response_metadata: Optional[Metadata] = None):
        if self.done:
            return
        self._log(err, self.clock() - self.start)
        if err is not None and self.attempt_count < MAX_RETRIES and is_transient_transport_error(err):
            self.attempt_count += 1
            self.schedule(RETRY_DELAY_S, self.attempt)
            return
        self.done = True
        self.callback(err, response, response_metadata)

    def _log(self, err: Optional[BaseException], duration: float):
        if self.log_options.disable:
            return
        attributes = self.log_options.attributes
        metadata = _to_json(self.metadata) if 'metadata' in attributes else '-'
        request = _to_json(self.request) if 'request' in attributes else '-'
        logger.info("grpc invoke: %s duration: %ss metadata: %s request: %s",
                    self.method_id, duration, metadata, request)
        if err is not None:
            logger.error("grpc invoke: %s duration: %ss metadata: %s request: %s err: %s",
                         self.method_id, duration, metadata, request, err)


class MethodHandler:
    """
    The client-side entry points of one RPC method, all backed by the same origin.

    invoke() is the callback form and accepts (request, callback),
    (request, options, callback) or (request, metadata, options, callback).
    Awaiting the handler itself yields the response; v2() yields a CallResult.
    """

    def __init__(self, origin: Origin, method_id: str, call_options: Optional[CallOptionsLike] = None,
                 log_options: Union[LogOptions, Mapping[str, Any], None] = None,
                 schedule: Optional[Scheduler] = None, clock: Callable[[], float] = time.time):
        self.origin = origin
        self.method_id = method_id
        self.call_options = CallOptions.from_mapping(call_options)
        self.log_options = LogOptions.from_mapping(log_options)
        self.schedule = schedule or _call_later
        self.clock = clock
        self.in_flight: Set[Invocation] = set()

    def _start(self, request: Any, metadata: Union[Metadata, MetadataMap, None],
               options: Optional[CallOptionsLike], callback: Callback) -> Invocation:
        merged = self.call_options.merged(CallOptions.from_mapping(options))

        def settle(err, response, response_metadata):
            self.in_flight.discard(invocation)
            callback(err, response, response_metadata)

        invocation = Invocation(self.origin, self.method_id, request, to_metadata(metadata), merged, settle,
                                self.log_options, self.schedule, self.clock)
        self.in_flight.add(invocation)
        invocation.attempt()
        return invocation

    def invoke(self, request: Any, *args) -> Invocation:
        if len(args) == 1:
            metadata, options, callback = None, None, args[0]
        elif len(args) == 2:
            metadata, (options, callback) = None, args
        elif len(args) == 3:
            metadata, options, callback = args
        else:
            raise TypeError(f"{self.method_id} takes 2 to 4 positional arguments but {len(args) + 1} were given")
        if not callable(callback):
            raise TypeError(f"{self.method_id}: the last argument must be a callback")
        return self._start(request, metadata, options, callback)

    async def v2(self, request: Any, metadata: Union[Metadata, MetadataMap, None] = None,
                 options: Optional[CallOptionsLike] = None) -> CallResult:
        future = asyncio.get_running_loop().create_future()

        def callback(err, response, response_metadata):
            if future.done():
                return
            if err is not None:
                future.set_exception(err)
            else:
                future.set_result(CallResult(response, response_metadata if response_metadata is not None
                                             else Metadata()))

        self._start(request, metadata, options, callback)
        return await future

    async def __call__(self, request: Any, metadata: Union[Metadata, MetadataMap, None] = None,
                       options: Optional[CallOptionsLike] = None) -> Any:
        result = await self.v2(request, metadata, options)
        return result.response

    def __repr__(self):
        return f"MethodHandler({self.method_id!r})"


def build_handlers(origins: Mapping[str, Origin], method_ids: Mapping[str, str],
                   call_options: Optional[CallOptionsLike] = None,
                   log_options: Union[LogOptions, Mapping[str, Any], None] = None,
                   schedule: Optional[Scheduler] = None) -> Dict[str, MethodHandler]:
    """One MethodHandler per origin, keyed by method name."""
    return {
        name: MethodHandler(origin, method_ids[name], call_options, log_options, schedule)
        for name, origin in origins.items()
    }


class ServiceClient:
    """
    Base class of generated service clients. Subclasses set SERVICE_NAME,
    FILE_NAME and definition (a grpc_object.ServiceDefinition); the raw
    transport methods are wrapped into MethodHandlers at construction.
    """
    SERVICE_NAME = ''
    FILE_NAME = ''
    definition = None
    log_options: Union[LogOptions, Mapping[str, Any], None] = None
    call_options: Optional[CallOptionsLike] = None

    def __init__(self, address: str, credentials=None, options: Optional[Mapping[str, Any]] = None, *,
                 channel=None, schedule: Optional[Scheduler] = None):
        if self.definition is None:
            raise TypeError(f"{type(self).__name__} has no service definition")
        if channel is None:
            channel = create_channel(address, credentials, options)
        self.address = address
        self.channel = channel
        origins = self.definition.bind(channel)
        method_ids = {name: method.method_id for name, method in self.definition.methods.items()}
        self._handlers = MappingProxyType(
            build_handlers(origins, method_ids, self.call_options, self.log_options, schedule)
        )

    @property
    def handlers(self) -> Mapping[str, MethodHandler]:
        return self._handlers

    async def close(self):
        await self.channel.close()

    def __repr__(self):
        return f"{type(self).__name__}({self.address!r})"
