"""Example XML-RPC server and client: greeting, counting and adding."""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
import threading
from collections.abc import Mapping, Sequence
from typing import Any

from .client import Call, ClientBuilder, ClientError
from .server import Handler, RouteBuilder, Server
from .values import Fault, Value, ValueType, XmlRpcError

__all__ = [
    "CounterHandler",
    "hello_handler",
    "adder_handler",
    "build_route",
    "run_client",
    "main",
]

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_URL = "http://0.0.0.0:3000/"
CLIENT_USER_AGENT = "dxr-client-example"


def _unpack(params: Sequence[Value], *kinds: ValueType) -> list[Any]:
    """Check the number and types of parameters and return their data."""
    if len(params) != len(kinds):
        raise XmlRpcError(f"Parameter number mismatch: got {len(params)}, expected {len(kinds)}")
    result = []
    for param, kind in zip(params, kinds):
        if param.kind is not kind:
            raise XmlRpcError(f"Type mismatch: got {param.type_name()}, expected {kind.value}")
        result.append(param.data)
    return result


def _expect(value: Value, kind: ValueType) -> Any:
    if value.kind is not kind:
        raise XmlRpcError(f"Type mismatch: got {value.type_name()}, expected {kind.value}")
    return value.data


class CounterHandler(Handler):
    """Returns a counter that goes up by one with every call."""

    def __init__(self, init: int = 0) -> None:
        self._counter = init
        self._lock = threading.Lock()

    def __repr__(self) -> str:
        return f"CounterHandler(counter={self._counter})"

    async def handle(self, params: Sequence[Value], headers: Mapping[str, str]) -> Value:
        with self._lock:
            result = Value.i4(self._counter)
            self._counter += 1
        return result


def hello_handler(params: Sequence[Value], headers: Mapping[str, str]) -> Value:
    """Greet the one string parameter by name."""
    (name,) = _unpack(params, ValueType.STRING)
    return Value.string(f"Handler function says: Hello, {name}!")


def adder_handler(params: Sequence[Value], headers: Mapping[str, str]) -> Value:
    """Add two 32-bit integer parameters."""
    a, b = _unpack(params, ValueType.I4, ValueType.I4)
    try:
        return Value.i4(a + b)
    except OverflowError as error:
        raise XmlRpcError(str(error)) from None


def build_route():
    """The example route at ``/`` with the hello, countme and add methods."""
    return (
        RouteBuilder()
        .set_path("/")
        .add_method("hello", hello_handler)
        .add_method("countme", CounterHandler(0))
        .add_method("add", adder_handler)
        .build()
    )


async def run_client(url: str) -> tuple[str, int, int]:
    """Call the example server's methods, print the results and return them."""
    client = ClientBuilder(url).user_agent(CLIENT_USER_AGENT).build()

    message = _expect(await client.call(Call("hello", Value.string("DXR"))), ValueType.STRING)
    print(f"Server message: {message}")

    counter = _expect(await client.call(Call("countme")), ValueType.I4)
    print(f"Server counter: {counter}")

    total = _expect(
        await client.call(Call("add", [Value.i4(1), Value.i4(2)])), ValueType.I4
    )
    print(f"1 + 2 = {total}")

    return message, counter, total


async def _serve(host: str, port: int) -> None:
    server = Server.from_route(build_route())
    trigger = server.shutdown_trigger()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, trigger.set)
    except (NotImplementedError, RuntimeError):
        pass
    await server.serve(host, port)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the example server or client."""
    parser = argparse.ArgumentParser(prog="dxrpc-demo", description=__doc__)
    commands = parser.add_subparsers(dest="command", required=True)

    serve = commands.add_parser("server", help="run the example XML-RPC server")
    serve.add_argument("--host", default=DEFAULT_HOST)
    serve.add_argument("--port", type=int, default=DEFAULT_PORT)

    call = commands.add_parser("client", help="call the example XML-RPC server")
    call.add_argument("--url", default=DEFAULT_URL)

    args = parser.parse_args(argv)

    if args.command == "server":
        try:
            asyncio.run(_serve(args.host, args.port))
        except KeyboardInterrupt:
            pass
        except OSError as error:
            print(f"Failed to run server: {error}", file=sys.stderr)
            return 1
        return 0

    try:
        asyncio.run(run_client(args.url))
    except (Fault, XmlRpcError, ClientError) as error:
        print(error, file=sys.stderr)
        return 1
    return 0