"""XML-RPC value types, method calls, responses and faults."""

from __future__ import annotations

import datetime as _dt
import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

_I4_MIN, _I4_MAX = -(2**31), 2**31 - 1
_I8_MIN, _I8_MAX = -(2**63), 2**63 - 1


class XmlRpcError(Exception):
    """Raised for invalid, malformed or mistyped XML-RPC data."""


class ValueType(enum.Enum):
    """The kinds of XML-RPC values, named by their XML element."""

    I4 = "i4"
    I8 = "i8"
    BOOLEAN = "boolean"
    STRING = "string"
    DOUBLE = "double"
    DATETIME = "dateTime.iso8601"
    BASE64 = "base64"
    STRUCT = "struct"
    ARRAY = "array"
    NIL = "nil"


def _check_int(value: Any, low: int, high: int, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"<{name}> value must be an int, not {type(value).__name__}")
    if not low <= value <= high:
        raise OverflowError(f"{value} is out of range for <{name}>")
    return value


@dataclass(frozen=True)
class Value:
    """A dynamically typed XML-RPC value.

    Struct members are held in a dict, so the order of members does not
    affect equality. Arrays are held as tuples.
    """

    kind: ValueType
    data: Any = None

    @classmethod
    def i4(cls, value: int) -> Value:
        """Signed 32-bit integer value."""
        return cls(ValueType.I4, _check_int(value, _I4_MIN, _I4_MAX, "i4"))

    @classmethod
    def i8(cls, value: int) -> Value:
        """Signed 64-bit integer value (a common extension)."""
        return cls(ValueType.I8, _check_int(value, _I8_MIN, _I8_MAX, "i8"))

    @classmethod
    def boolean(cls, value: bool) -> Value:
        """Boolean value."""
        if not isinstance(value, bool):
            raise TypeError(f"<boolean> value must be a bool, not {type(value).__name__}")
        return cls(ValueType.BOOLEAN, value)

    @classmethod
    def string(cls, value: str) -> Value:
        """String value."""
        if not isinstance(value, str):
            raise TypeError(f"<string> value must be a str, not {type(value).__name__}")
        return cls(ValueType.STRING, value)

    @classmethod
    def double(cls, value: float) -> Value:
        """64-bit floating point value."""
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise TypeError(f"<double> value must be a float, not {type(value).__name__}")
        return cls(ValueType.DOUBLE, float(value))

    @classmethod
    def datetime(cls, value: _dt.datetime) -> Value:
        """Timezone-unaware date and time value."""
        if not isinstance(value, _dt.datetime):
            raise TypeError(
                f"<dateTime.iso8601> value must be a datetime, not {type(value).__name__}"
            )
        if value.tzinfo is not None:
            raise ValueError("<dateTime.iso8601> values carry no timezone information")
        return cls(ValueType.DATETIME, value)

    @classmethod
    def base64(cls, value: bytes | bytearray | memoryview) -> Value:
        """Arbitrary bytes, base64-encoded on the wire."""
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise TypeError(f"<base64> value must be bytes, not {type(value).__name__}")
        return cls(ValueType.BASE64, bytes(value))

    @classmethod
    def structure(cls, members: Mapping[str, Value] | Iterable[tuple[str, Value]]) -> Value:
        """Struct value from a mapping (or pairs) of member names to values."""
        items = members.items() if isinstance(members, Mapping) else members
        result: dict[str, Value] = {}
        for name, member in items:
            if not isinstance(name, str):
                raise TypeError("struct member names must be strings")
            if not isinstance(member, Value):
                raise TypeError(f"struct member {name!r} is not a Value")
            result[name] = member
        return cls(ValueType.STRUCT, result)

    @classmethod
    def array(cls, values: Iterable[Value]) -> Value:
        """Array value from a sequence of values."""
        items = tuple(values)
        if not all(isinstance(item, Value) for item in items):
            raise TypeError("array elements must be Values")
        return cls(ValueType.ARRAY, items)

    @classmethod
    def nil(cls) -> Value:
        """The empty / missing value (a common extension)."""
        return cls(ValueType.NIL, None)

    def type_name(self) -> str:
        """Name of the XML element for this value's type."""
        return self.kind.value


class Fault(Exception):
    """A fault reported by an XML-RPC server: a code and a message."""

    def __init__(self, code: int, string: str) -> None:
        super().__init__(code, string)
        self.code = _check_int(code, _I4_MIN, _I4_MAX, "i4")
        if not isinstance(string, str):
            raise TypeError("fault string must be a str")
        self.string = string

    def __str__(self) -> str:
        return f"Server Fault {self.code}: {self.string}"

    def __repr__(self) -> str:
        return f"Fault({self.code!r}, {self.string!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fault):
            return NotImplemented
        return (self.code, self.string) == (other.code, other.string)

    def __hash__(self) -> int:
        return hash((self.code, self.string))


@dataclass(frozen=True)
class MethodCall:
    """Contents of an XML-RPC method call: a method name and its parameters."""

    name: str
    params: tuple[Value, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "params", tuple(self.params))


@dataclass(frozen=True)
class MethodResponse:
    """Contents of a successful XML-RPC response: exactly one return value."""

    value: Value


@dataclass(frozen=True)
class FaultResponse:
    """Contents of an XML-RPC fault response: a struct of fault members."""

    members: dict[str, Value]

    @classmethod
    def from_fault(cls, fault: Fault) -> FaultResponse:
        """Build the fault response that reports the given fault."""
        return cls(
            {
                "faultCode": Value.i4(fault.code),
                "faultString": Value.string(fault.string),
            }
        )

    def to_fault(self) -> Fault:
        """Extract the fault; extra struct members are ignored."""
        code = self._member("faultCode", ValueType.I4)
        string = self._member("faultString", ValueType.STRING)
        return Fault(code, string)

    def _member(self, name: str, kind: ValueType) -> Any:
        try:
            member = self.members[name]
        except KeyError:
            raise XmlRpcError(f"Missing field: Fault.{name}") from None
        if member.kind is not kind:
            raise XmlRpcError(
                f"Type mismatch for Fault.{name}: got {member.type_name()}, "
                f"expected {kind.value}"
            )
        return member.data