# dxrpc

dxrpc is an XML-RPC toolkit for asyncio. It has three parts:

- **Values**: `Value`, `MethodCall`, `MethodResponse`, `FaultResponse` and `Fault`.
  These model the XML-RPC data types. The supported types are `i4`, `i8`, `boolean`,
  `string`, `double`, `dateTime.iso8601`, `base64`, `struct`, `array` and `nil`.
- **Client**: `ClientBuilder` and `Client`, built on aiohttp. A client sends a `Call`
  and gets back the return value. If the server answers with a fault, the client
  raises `ClientError`.
- **Server**: `RouteBuilder` and `Server`. You register method handlers by name.
  `handle_request` is also available if you want to plug XML-RPC into an HTTP
  server of your own.

Empty elements are always written in expanded form, as in
`<value><string></string></value>`. Some XML-RPC peers reject self-closing tags.

## Installation

```
pip install dxrpc
```

For running the test suite:

```
pip install "dxrpc[test]"
```

## Values

```python
from dxrpc.values import Value

Value.i4(42)
Value.string("hello")
Value.array([Value.i4(1), Value.boolean(True)])
Value.nil()
```

`dxrpc.xmlcodec` turns these values into XML with `serialize_xml` and reads them
back with `deserialize_xml`.

When reading, a `<value>` with no type element is treated as a string. For example,
`<value>foo</value>` reads as the string `foo`.

## Client

```python
import asyncio

from dxrpc.client import Call, ClientBuilder


async def main():
    client = ClientBuilder("http://localhost:3000/").user_agent("my-client").build()
    result = await client.call(Call("add", (1, 2)))
    print(result)


asyncio.run(main())
```

Every request is sent with `Content-Type: text/xml` and a default `User-Agent`.
You can add more headers with `ClientBuilder.add_header`.

## Server

```python
from dxrpc.server import RouteBuilder, Server


def add(params, headers):
    ...


route = RouteBuilder().set_path("/").add_method("add", add).build()
server = Server.from_route(route)
```

`Server.serve` listens on a host and port, and `Server.serve_socket` uses a socket
that is already bound. `Server.shutdown_trigger` returns an object that stops the
server gracefully.

The server answers with a fault in these cases:

- the request has no `Content-Length` header;
- the body is malformed;
- the method is unknown;
- a handler fails.

Calls to `system.multicall` are answered one entry per call.

## Demo

The package comes with a small example server with the methods `hello`, `countme`
and `add`, and a client that calls them:

```
dxrpc-demo --help
```