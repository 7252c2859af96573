"""XML encoding and decoding of XML-RPC values, calls and responses."""

from __future__ import annotations

import base64 as _b64
import binascii
import datetime as _dt
import math
import re
import xml.etree.ElementTree as ET
from collections.abc import Callable, Mapping
from decimal import Decimal
from typing import Any, TypeVar

from .values import (
    FaultResponse,
    MethodCall,
    MethodResponse,
    Value,
    ValueType,
    XmlRpcError,
)

__all__ = [
    "parse_boolean",
    "parse_datetime",
    "format_datetime",
    "parse_base64",
    "serialize_xml",
    "deserialize_xml",
]

T = TypeVar("T")

_DATETIME_RE = re.compile(r"([0-9]{4})([0-9]{2})([0-9]{2})T([0-9]{2}):([0-9]{2}):([0-9]{2})")
_INT_RE = re.compile(r"[+-]?[0-9]+")
_FLOAT_RE = re.compile(
    r"[+-]?(?:[0-9]+\.?[0-9]*(?:[eE][+-]?[0-9]+)?|\.[0-9]+(?:[eE][+-]?[0-9]+)?"
    r"|inf|infinity|nan)",
    re.IGNORECASE,
)
_ASCII_WHITESPACE = " \t\n\x0c\r"


# ---------------------------------------------------------------------------
# scalar helpers


def parse_boolean(text: str) -> bool:
    """Parse an XML-RPC boolean: exactly "1" or "0"."""
    if text == "1":
        return True
    if text == "0":
        return False
    raise XmlRpcError(f"Unsupported boolean value: {text}")


def parse_datetime(text: str) -> _dt.datetime:
    """Parse an XML-RPC date and time of the form YYYYMMDDTHH:MM:SS."""
    match = _DATETIME_RE.fullmatch(text)
    if match is None:
        raise XmlRpcError(f"Invalid date format: {text!r} does not match YYYYMMDDTHH:MM:SS")
    try:
        return _dt.datetime(*(int(part) for part in match.groups()))
    except ValueError as error:
        raise XmlRpcError(f"Invalid date format: {error}") from None


def format_datetime(value: _dt.datetime) -> str:
    """Format a date and time as YYYYMMDDTHH:MM:SS, dropping sub-second precision."""
    return (
        f"{value.year:04d}{value.month:02d}{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )


def parse_base64(text: str) -> bytes:
    """Decode base64 text, ignoring ASCII whitespace (line-wrapped input is common)."""
    stripped = "".join(ch for ch in text if ch not in _ASCII_WHITESPACE)
    try:
        return _b64.b64decode(stripped.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as error:
        raise XmlRpcError(f"Invalid base64 data: {error}") from None


def _format_double(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "inf" if value > 0 else "-inf"
    text = format(Decimal(repr(value)), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def _escape(text: str) -> str:
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace("'", "&apos;")
        .replace('"', "&quot;")
    )


# ---------------------------------------------------------------------------
# serialization


def _write_members(members: Mapping[str, Value], out: list[str]) -> None:
    out.append("<struct>")
    for name in sorted(members):
        out.append(f"<member><name>{_escape(name)}</name>")
        _write_value(members[name], out)
        out.append("</member>")
    out.append("</struct>")


def _write_value(value: Value, out: list[str]) -> None:
    out.append("<value>")
    kind = value.kind
    tag = kind.value
    if kind in (ValueType.I4, ValueType.I8):
        out.append(f"<{tag}>{value.data}</{tag}>")
    elif kind is ValueType.BOOLEAN:
        out.append(f"<{tag}>{'1' if value.data else '0'}</{tag}>")
    elif kind is ValueType.STRING:
        out.append(f"<{tag}>{_escape(value.data)}</{tag}>")
    elif kind is ValueType.DOUBLE:
        out.append(f"<{tag}>{_format_double(value.data)}</{tag}>")
    elif kind is ValueType.DATETIME:
        out.append(f"<{tag}>{format_datetime(value.data)}</{tag}>")
    elif kind is ValueType.BASE64:
        out.append(f"<{tag}>{_b64.b64encode(value.data).decode('ascii')}</{tag}>")
    elif kind is ValueType.STRUCT:
        _write_members(value.data, out)
    elif kind is ValueType.ARRAY:
        out.append("<array><data>")
        for item in value.data:
            _write_value(item, out)
        out.append("</data></array>")
    elif kind is ValueType.NIL:
        out.append("<nil></nil>")
    else:  # pragma: no cover - every ValueType is handled above
        raise XmlRpcError(f"cannot serialize value of type {tag}")
    out.append("</value>")


def _write_method_call(call: MethodCall, out: list[str]) -> None:
    out.append(f"<methodCall><methodName>{_escape(call.name)}</methodName>")
    if call.params:
        out.append("<params>")
        for param in call.params:
            out.append("<param>")
            _write_value(param, out)
            out.append("</param>")
        out.append("</params>")
    out.append("</methodCall>")


def _write_method_response(response: MethodResponse, out: list[str]) -> None:
    out.append("<methodResponse><params><param>")
    _write_value(response.value, out)
    out.append("</param></params></methodResponse>")


def _write_fault_response(response: FaultResponse, out: list[str]) -> None:
    out.append("<methodResponse><fault><value>")
    _write_members(response.members, out)
    out.append("</value></fault></methodResponse>")


_WRITERS: dict[type, Callable[[Any, list[str]], None]] = {
    Value: _write_value,
    MethodCall: _write_method_call,
    MethodResponse: _write_method_response,
    FaultResponse: _write_fault_response,
}


def serialize_xml(obj: Value | MethodCall | MethodResponse | FaultResponse) -> str:
    """Serialize to compact XML, writing empty elements out in full.

    Self-closing tags are never produced, since not every XML-RPC
    implementation accepts them.
    """
    for kind, writer in _WRITERS.items():
        if isinstance(obj, kind):
            out: list[str] = []
            writer(obj, out)
            return "".join(out)
    raise TypeError(f"cannot serialize {type(obj).__name__} as XML-RPC")


# ---------------------------------------------------------------------------
# deserialization


def _require(parent: ET.Element, tag: str, owner: str) -> ET.Element:
    child = parent.find(tag)
    if child is None:
        raise XmlRpcError(f"Missing field: {owner}.{tag}")
    return child


def _leaf_text(elem: ET.Element) -> str:
    if len(elem):
        raise XmlRpcError(f"Unexpected element inside <{elem.tag}>")
    return elem.text or ""


def _parse_int(elem: ET.Element, build: Callable[[int], Value]) -> Value:
    text = _leaf_text(elem).strip(_ASCII_WHITESPACE)
    if not _INT_RE.fullmatch(text):
        raise XmlRpcError(f"Invalid integer value: {text!r}")
    try:
        return build(int(text))
    except OverflowError as error:
        raise XmlRpcError(str(error)) from None


def _parse_double(elem: ET.Element) -> Value:
    text = _leaf_text(elem).strip(_ASCII_WHITESPACE)
    if not _FLOAT_RE.fullmatch(text):
        raise XmlRpcError(f"Invalid double value: {text!r}")
    return Value.double(float(text))


def _parse_members(elem: ET.Element) -> dict[str, Value]:
    members: dict[str, Value] = {}
    for member in elem.findall("member"):
        name = _leaf_text(_require(member, "name", "member"))
        members[name] = _parse_value(_require(member, "value", "member"))
    return members


def _parse_array(elem: ET.Element) -> Value:
    data = elem.find("data")
    if data is None:
        return Value.array(())
    return Value.array(_parse_value(item) for item in data.findall("value"))


_TYPE_PARSERS: dict[str, Callable[[ET.Element], Value]] = {
    "i4": lambda e: _parse_int(e, Value.i4),
    "int": lambda e: _parse_int(e, Value.i4),
    "i8": lambda e: _parse_int(e, Value.i8),
    "boolean": lambda e: Value.boolean(parse_boolean(_leaf_text(e))),
    "string": lambda e: Value.string(_leaf_text(e)),
    "double": _parse_double,
    "dateTime.iso8601": lambda e: Value.datetime(parse_datetime(_leaf_text(e))),
    "base64": lambda e: Value.base64(parse_base64(_leaf_text(e))),
    "struct": lambda e: Value.structure(_parse_members(e)),
    "array": _parse_array,
    "nil": lambda e: Value.nil(),
}


def _parse_value(elem: ET.Element) -> Value:
    children = list(elem)
    if not children:
        # a value without a type element is a string
        return Value.string(elem.text or "")
    if len(children) > 1:
        raise XmlRpcError("A <value> element must hold exactly one type element")
    child = children[0]
    parser = _TYPE_PARSERS.get(child.tag)
    if parser is None:
        expected = ", ".join(f"`{name}`" for name in _TYPE_PARSERS)
        raise XmlRpcError(f"unknown field `{child.tag}`, expected one of {expected}")
    return parser(child)


def _parse_method_call(root: ET.Element) -> MethodCall:
    name = _leaf_text(_require(root, "methodName", "methodCall"))
    params_elem = root.find("params")
    if params_elem is None:
        return MethodCall(name, ())
    params = [
        _parse_value(_require(param, "value", "param")) for param in params_elem.findall("param")
    ]
    return MethodCall(name, tuple(params))


def _parse_method_response(root: ET.Element) -> MethodResponse:
    params_elem = _require(root, "params", "methodResponse")
    params = params_elem.findall("param")
    if not params:
        raise XmlRpcError("Missing field: params.param")
    if len(params) > 1:
        raise XmlRpcError("duplicate field `param`")
    return MethodResponse(_parse_value(_require(params[0], "value", "param")))


def _parse_fault_response(root: ET.Element) -> FaultResponse:
    fault = _require(root, "fault", "methodResponse")
    value = _require(fault, "value", "fault")
    struct = _require(value, "struct", "value")
    return FaultResponse(_parse_members(struct))


_READERS: dict[type, tuple[str, Callable[[ET.Element], Any]]] = {
    Value: ("value", _parse_value),
    MethodCall: ("methodCall", _parse_method_call),
    MethodResponse: ("methodResponse", _parse_method_response),
    FaultResponse: ("methodResponse", _parse_fault_response),
}


def deserialize_xml(text: str, kind: type[T]) -> T:
    """Parse XML text into an instance of ``kind``.

    ``kind`` is one of Value, MethodCall, MethodResponse or FaultResponse.
    Malformed or mistyped input raises XmlRpcError.
    """
    try:
        root_tag, reader = _READERS[kind]
    except (KeyError, TypeError):
        raise TypeError(f"cannot deserialize XML-RPC data as {kind!r}") from None
    try:
        root = ET.fromstring(text)
    except ET.ParseError as error:
        raise XmlRpcError(f"Invalid XML: {error}") from None
    if root.tag != root_tag:
        raise XmlRpcError(f"Expected <{root_tag}> element, found <{root.tag}>")
    return reader(root)