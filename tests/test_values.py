import datetime as dt

import pytest

from dxrpc.values import (
    Fault,
    FaultResponse,
    MethodCall,
    MethodResponse,
    Value,
    ValueType,
    XmlRpcError,
)


@pytest.mark.parametrize(
    "value, name",
    [
        (Value.i4(1), "i4"),
        (Value.i8(1), "i8"),
        (Value.boolean(True), "boolean"),
        (Value.string("x"), "string"),
        (Value.double(1.5), "double"),
        (Value.datetime(dt.datetime(2020, 1, 2, 3, 4, 5)), "dateTime.iso8601"),
        (Value.base64(b"abc"), "base64"),
        (Value.structure({}), "struct"),
        (Value.array([]), "array"),
        (Value.nil(), "nil"),
    ],
)
def test_type_names(value, name):
    assert value.type_name() == name
    assert value.kind is ValueType(name)


def test_i4_limits():
    assert Value.i4(2**31 - 1).data == 2**31 - 1
    assert Value.i4(-(2**31)).data == -(2**31)
    with pytest.raises(OverflowError):
        Value.i4(2**31)
    with pytest.raises(OverflowError):
        Value.i4(-(2**31) - 1)


def test_i8_limits():
    assert Value.i8(2**63 - 1).data == 2**63 - 1
    with pytest.raises(OverflowError):
        Value.i8(2**63)


def test_integer_rejects_bool_and_float():
    with pytest.raises(TypeError):
        Value.i4(True)
    with pytest.raises(TypeError):
        Value.i4(1.0)


def test_boolean_requires_bool():
    assert Value.boolean(False).data is False
    with pytest.raises(TypeError):
        Value.boolean(1)


def test_string_requires_str():
    with pytest.raises(TypeError):
        Value.string(b"bytes")


def test_double_accepts_int_as_float():
    value = Value.double(2)
    assert value.data == 2.0
    assert isinstance(value.data, float)
    with pytest.raises(TypeError):
        Value.double("1.5")


def test_datetime_rejects_timezone():
    aware = dt.datetime(2020, 1, 1, tzinfo=dt.timezone.utc)
    with pytest.raises(ValueError):
        Value.datetime(aware)
    with pytest.raises(TypeError):
        Value.datetime(dt.date(2020, 1, 1))


def test_base64_copies_to_bytes():
    buffer = bytearray(b"HELLOWORLD")
    value = Value.base64(buffer)
    buffer[0] = 0
    assert value.data == b"HELLOWORLD"


def test_values_of_different_types_differ():
    assert Value.i4(42) != Value.i8(42)
    assert Value.i4(42) == Value.i4(42)


def test_struct_equality_ignores_member_order():
    a = Value.structure({"foo": Value.i4(21), "bar": Value.i8(42)})
    b = Value.structure([("bar", Value.i8(42)), ("foo", Value.i4(21))])
    assert a == b
    assert a != Value.structure({"foo": Value.i4(21)})


def test_struct_validation():
    with pytest.raises(TypeError):
        Value.structure({"foo": 21})
    with pytest.raises(TypeError):
        Value.structure({1: Value.i4(1)})


def test_array_keeps_order():
    values = [Value.i4(-12), Value.i4(42)]
    array = Value.array(values)
    assert array.data == tuple(values)
    assert array != Value.array(reversed(values))
    with pytest.raises(TypeError):
        Value.array([1, 2])


def test_method_call_params():
    call = MethodCall("add", [Value.i4(1), Value.i4(2)])
    assert call.name == "add"
    assert call.params == (Value.i4(1), Value.i4(2))
    assert MethodCall("countme").params == ()


def test_method_response_value():
    assert MethodResponse(Value.i4(3)).value == Value.i4(3)


def test_fault_response_round_trip():
    fault = Fault(404, "Unknown method.")
    response = FaultResponse.from_fault(fault)
    assert response.members == {
        "faultCode": Value.i4(404),
        "faultString": Value.string("Unknown method."),
    }
    assert response.to_fault() == fault


def test_fault_response_ignores_extra_members():
    response = FaultResponse(
        {
            "faultCode": Value.i4(1),
            "faultString": Value.string("oops"),
            "extra": Value.nil(),
        }
    )
    assert response.to_fault() == Fault(1, "oops")


def test_fault_response_missing_member():
    with pytest.raises(XmlRpcError, match="faultString"):
        FaultResponse({"faultCode": Value.i4(1)}).to_fault()
    with pytest.raises(XmlRpcError, match="faultCode"):
        FaultResponse({"faultString": Value.string("x")}).to_fault()


def test_fault_response_wrong_type():
    with pytest.raises(XmlRpcError):
        FaultResponse(
            {"faultCode": Value.string("1"), "faultString": Value.string("x")}
        ).to_fault()


def test_fault_is_exception_with_fields():
    fault = Fault(404, "Not Found")
    assert fault.code == 404
    assert fault.string == "Not Found"
    with pytest.raises(Fault) as info:
        raise fault
    assert info.value == Fault(404, "Not Found")
    assert info.value != Fault(500, "Not Found")