"""XML-RPC client: method calls and an HTTP client."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from .values import (
    Fault,
    FaultResponse,
    MethodCall,
    MethodResponse,
    Value,
    XmlRpcError,
)
from .xmlcodec import deserialize_xml, serialize_xml

__all__ = [
    "DEFAULT_USER_AGENT",
    "Call",
    "ClientError",
    "ClientBuilder",
    "Client",
    "request_to_body",
    "response_to_result",
]

_log = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "dxrpc-client-v0.1.0"
"""Default value of the User-Agent header for XML-RPC requests."""

_XML_DECLARATION = '<?xml version="1.0"?>'


@dataclass(frozen=True)
class Call:
    """An XML-RPC method call: the method name and its parameters.

    ``params`` is either a single Value (a call with one parameter) or an
    iterable of Values.
    """

    method: str
    params: Any = ()

    def __post_init__(self) -> None:
        if not isinstance(self.method, str):
            raise TypeError("method name must be a str")
        params = self.params
        if isinstance(params, Value):
            params = (params,)
        elif isinstance(params, Iterable) and not isinstance(params, (str, bytes, Mapping)):
            params = tuple(params)
        else:
            raise TypeError(
                f"call parameters must be a Value or an iterable of Values, "
                f"not {type(params).__name__}"
            )
        for param in params:
            if not isinstance(param, Value):
                raise TypeError(f"call parameter {param!r} is not a Value")
        object.__setattr__(self, "params", params)

    def as_xml_rpc(self) -> MethodCall:
        """The XML-RPC method call for this call."""
        return MethodCall(self.method, self.params)


class ClientError(Exception):
    """Raised when the request could not be sent or the response not received."""


class ClientBuilder:
    """Collects the settings for a Client: server URL, headers and User-Agent."""

    def __init__(self, url: str) -> None:
        self._url = str(url)
        self._headers: dict[str, tuple[str, str]] = {}
        self._user_agent: str | None = None
        self.add_header("Content-Type", "text/xml")

    def user_agent(self, user_agent: str) -> ClientBuilder:
        """Override the default User-Agent header."""
        self._user_agent = user_agent
        return self

    def add_header(self, name: str, value: str) -> ClientBuilder:
        """Add a custom HTTP header, replacing any header of the same name."""
        if not name or any(ch in name for ch in " :\r\n\t"):
            raise ValueError(f"invalid header name: {name!r}")
        if any(ch in value for ch in "\r\n\x00"):
            raise ValueError(f"invalid header value for {name}")
        self._headers[name.lower()] = (name, value)
        return self

    def build(self) -> Client:
        """Build the client; the default User-Agent is used unless one was set."""
        self.add_header("User-Agent", self._user_agent or DEFAULT_USER_AGENT)
        return Client(self._url, {name: value for name, value in self._headers.values()})


class Client:
    """A simple asynchronous XML-RPC client over HTTP."""

    def __init__(self, url: str, headers: Mapping[str, str] | None = None) -> None:
        self.url = str(url)
        self.headers = dict(headers or {})

    def __repr__(self) -> str:
        return f"Client(url={self.url!r})"

    async def call(self, call: Call) -> Value:
        """Send the call and return the value the server returned.

        A server fault is raised as Fault, an invalid response as
        XmlRpcError, and a networking failure as ClientError.
        """
        body = request_to_body(call.as_xml_rpc())
        try:
            async with aiohttp.ClientSession(headers=self.headers) as session:
                async with session.post(self.url, data=body.encode("utf-8")) as response:
                    contents = await response.text()
        except aiohttp.ClientError as error:
            raise ClientError(str(error) or type(error).__name__) from error
        return response_to_result(contents).value


def request_to_body(call: MethodCall) -> str:
    """The HTTP request body for a method call, with an XML declaration."""
    return "\n".join([_XML_DECLARATION, serialize_xml(call), ""])


def response_to_result(contents: str) -> MethodResponse:
    """Parse a response body; a fault response is raised as Fault.

    A malformed fault raises XmlRpcError, as does a body that is neither a
    response nor a fault.
    """
    # A present <fault> element is unambiguous, so it is checked first.
    try:
        fault_response = deserialize_xml(contents, FaultResponse)
    except XmlRpcError as error:
        fault_error = str(error)
    else:
        raise fault_response.to_fault()

    try:
        return deserialize_xml(contents, MethodResponse)
    except XmlRpcError as error:
        response_error = str(error)

    _log.debug("Failed to deserialize response as either value or fault.")
    _log.debug("Response failed with: %s; Fault failed with: %s", response_error, fault_error)
    raise XmlRpcError(contents)