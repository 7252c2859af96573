"""XML-RPC server: method handlers, request dispatch and an HTTP server."""

from __future__ import annotations

import abc
import asyncio
import inspect
import socket
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from aiohttp import web

from .values import (
    Fault,
    FaultResponse,
    MethodCall,
    MethodResponse,
    Value,
    ValueType,
    XmlRpcError,
)
from .xmlcodec import deserialize_xml, serialize_xml

__all__ = [
    "DEFAULT_SERVER_ROUTE",
    "Handler",
    "handle_request",
    "RouteBuilder",
    "Server",
]

DEFAULT_SERVER_ROUTE = "/"
"""Default route / path of XML-RPC endpoints."""

_INVALID_DATA_CODE = 400
_UNKNOWN_METHOD_CODE = 404
_MISSING_LENGTH_CODE = 411
_UNKNOWN_METHOD = "Unknown method."
_MULTICALL = "system.multicall"

ResponseTuple = tuple[int, dict[str, str], str]


class Handler(abc.ABC):
    """A server method that can be called via XML-RPC.

    Subclass this for handlers that keep state; plain functions (sync or
    async) taking ``(params, headers)`` can be registered directly.
    """

    @abc.abstractmethod
    async def handle(self, params: Sequence[Value], headers: Mapping[str, str]) -> Value:
        """Handle a call with the given parameters; raise Fault to report failure."""


class _FunctionHandler(Handler):
    """Adapts a plain function, sync or async, to the Handler interface."""

    def __init__(self, func: Callable[..., Any]) -> None:
        self._func = func

    def __repr__(self) -> str:
        return f"_FunctionHandler({getattr(self._func, '__name__', self._func)!r})"

    async def handle(self, params: Sequence[Value], headers: Mapping[str, str]) -> Value:
        result = self._func(params, headers)
        if inspect.isawaitable(result):
            result = await result
        return result


def _as_handler(handler: Handler | Callable[..., Any]) -> Handler:
    if isinstance(handler, Handler):
        return handler
    if callable(handler):
        return _FunctionHandler(handler)
    raise TypeError(f"method handler must be a Handler or a callable, not {type(handler).__name__}")


def _has_header(headers: Mapping[str, str], name: str) -> bool:
    wanted = name.lower()
    return any(key.lower() == wanted for key in headers)


def _response_headers() -> dict[str, str]:
    return {"Content-Type": "text/xml"}


def _success_to_response(value: Any) -> ResponseTuple:
    if not isinstance(value, Value):
        return (
            500,
            _response_headers(),
            f"method handler returned {type(value).__name__}, not a Value",
        )
    return 200, _response_headers(), serialize_xml(MethodResponse(value))


def _fault_to_response(code: int, string: str) -> ResponseTuple:
    return 200, _response_headers(), serialize_xml(FaultResponse.from_fault(Fault(code, string)))


def _error_to_fault(error: XmlRpcError) -> Fault:
    return Fault(_INVALID_DATA_CODE, str(error))


async def _invoke(
    handler: Handler | Callable[..., Any],
    params: Sequence[Value],
    headers: Mapping[str, str],
) -> Any:
    """Run a handler, returning its value or the Fault it reported."""
    try:
        return await _as_handler(handler).handle(params, headers)
    except Fault as fault:
        return fault
    except XmlRpcError as error:
        return _error_to_fault(error)


def _parse_multicall_entry(entry: Value) -> tuple[str, tuple[Value, ...]] | XmlRpcError:
    if entry.kind is not ValueType.STRUCT:
        return XmlRpcError(
            f"Type mismatch for multicall entry: got {entry.type_name()}, expected struct"
        )
    members: dict[str, Value] = entry.data
    name = members.get("methodName")
    if name is None:
        return XmlRpcError("Missing field: system.multicall.methodName")
    if name.kind is not ValueType.STRING:
        return XmlRpcError(
            f"Type mismatch for system.multicall.methodName: got {name.type_name()}, "
            "expected string"
        )
    params = members.get("params")
    if params is None:
        return XmlRpcError("Missing field: system.multicall.params")
    if params.kind is not ValueType.ARRAY:
        return XmlRpcError(
            f"Type mismatch for system.multicall.params: got {params.type_name()}, "
            "expected array"
        )
    return name.data, params.data


def _from_multicall_params(
    params: Sequence[Value],
) -> list[tuple[str, tuple[Value, ...]] | XmlRpcError]:
    if len(params) != 1:
        raise XmlRpcError(f"Parameter number mismatch: got {len(params)}, expected 1")
    (calls,) = params
    if calls.kind is not ValueType.ARRAY:
        raise XmlRpcError(
            f"Type mismatch for system.multicall: got {calls.type_name()}, expected array"
        )
    return [_parse_multicall_entry(entry) for entry in calls.data]


def _into_multicall_response(results: Iterable[Any]) -> Value:
    def encode(result: Any) -> Value:
        if isinstance(result, Fault):
            return Value.structure(
                {
                    "faultCode": Value.i4(result.code),
                    "faultString": Value.string(result.string),
                }
            )
        return Value.array((result,))

    return Value.array(encode(result) for result in results)


async def _handle_multicall(
    handlers: Mapping[str, Handler | Callable[..., Any]],
    params: Sequence[Value],
    headers: Mapping[str, str],
) -> ResponseTuple:
    try:
        calls = _from_multicall_params(params)
    except XmlRpcError as error:
        fault = _error_to_fault(error)
        return _fault_to_response(fault.code, fault.string)

    results: list[Any] = []
    for entry in calls:
        if isinstance(entry, XmlRpcError):
            results.append(_error_to_fault(entry))
            continue
        name, call_params = entry
        handler = handlers.get(name)
        if handler is None:
            results.append(Fault(_UNKNOWN_METHOD_CODE, _UNKNOWN_METHOD))
            continue
        results.append(await _invoke(handler, call_params, headers))

    for result in results:
        if not isinstance(result, (Value, Fault)):
            return _success_to_response(result)
    return _success_to_response(_into_multicall_response(results))


async def handle_request(
    handlers: Mapping[str, Handler | Callable[..., Any]],
    body: str,
    headers: Mapping[str, str],
) -> ResponseTuple:
    """Dispatch one XML-RPC request body to the registered handlers.

    Returns the HTTP status code, the response headers and the response body.
    Invalid requests, unknown methods and failed methods become fault
    responses; ``system.multicall`` is handled here.
    """
    if not _has_header(headers, "Content-Length"):
        return _fault_to_response(_MISSING_LENGTH_CODE, "Content-Length header missing.")

    try:
        call = deserialize_xml(body, MethodCall)
    except XmlRpcError as error:
        fault = _error_to_fault(error)
        return _fault_to_response(fault.code, fault.string)

    if call.name == _MULTICALL:
        return await _handle_multicall(handlers, call.params, headers)

    handler = handlers.get(call.name)
    if handler is None:
        return _fault_to_response(_UNKNOWN_METHOD_CODE, _UNKNOWN_METHOD)

    outcome = await _invoke(handler, call.params, headers)
    if isinstance(outcome, Fault):
        return _fault_to_response(outcome.code, outcome.string)
    return _success_to_response(outcome)


class RouteBuilder:
    """Collects the endpoint path and method handlers for an XML-RPC route."""

    def __init__(self) -> None:
        self._path = DEFAULT_SERVER_ROUTE
        self._handlers: dict[str, Handler] = {}

    def __repr__(self) -> str:
        return f"RouteBuilder(path={self._path!r}, handlers={sorted(self._handlers)!r})"

    def set_path(self, route: str) -> RouteBuilder:
        """Override the default path of the endpoint (for example ``/RPC2``)."""
        if not isinstance(route, str) or not route.startswith("/"):
            raise ValueError(f"route must be a path starting with '/': {route!r}")
        self._path = route
        return self

    def add_method(self, name: str, handler: Handler | Callable[..., Any]) -> RouteBuilder:
        """Register a handler under a method name, replacing any earlier one."""
        self._handlers[name] = _as_handler(handler)
        return self

    def build(self) -> web.Application:
        """An application answering POST requests at the configured path."""
        handlers = dict(self._handlers)

        async def endpoint(request: web.Request) -> web.Response:
            body = await request.text()
            status, headers, text = await handle_request(handlers, body, request.headers)
            return web.Response(status=status, headers=headers, body=text.encode("utf-8"))

        app = web.Application()
        app.router.add_post(self._path, endpoint)
        return app


class Server:
    """A simple XML-RPC HTTP server around one route."""

    def __init__(self, route: web.Application) -> None:
        self._route = route
        self._barrier: asyncio.Event | None = None

    @classmethod
    def from_route(cls, route: web.Application) -> Server:
        """Server that only handles requests at the route's endpoint."""
        return cls(route)

    def shutdown_trigger(self) -> asyncio.Event:
        """An event that, once set, shuts the running server down gracefully."""
        self._barrier = asyncio.Event()
        return self._barrier

    async def serve(self, host: str, port: int) -> None:
        """Listen on host and port until the shutdown trigger is set."""
        await self._run(lambda runner: web.TCPSite(runner, host, port))

    async def serve_socket(self, sock: socket.socket) -> None:
        """Serve on an already bound socket until the shutdown trigger is set."""
        await self._run(lambda runner: web.SockSite(runner, sock))

    async def _run(self, make_site: Callable[[web.AppRunner], web.BaseSite]) -> None:
        runner = web.AppRunner(self._route)
        await runner.setup()
        try:
            await make_site(runner).start()
            barrier = self._barrier if self._barrier is not None else asyncio.Event()
            await barrier.wait()
        finally:
            await runner.cleanup()