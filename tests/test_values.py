import pytest

from configtree.exceptions import ValueFormatError
from configtree.models import ValueType
from configtree.values import format_value, integer_range, parse_value


@pytest.mark.parametrize(
    "value_type, value, expected",
    [
        (ValueType.BOOL, True, "true"),
        (ValueType.BOOL, False, "false"),
        (ValueType.BYTE, -12, "-12"),
        (ValueType.SHORT, 300, "300"),
        (ValueType.INT, 4040, "4040"),
        (ValueType.LONG, 2**40, "1099511627776"),
        (ValueType.INT, 7.0, "7"),
        (ValueType.FLOAT, 1.5, "1.5"),
        (ValueType.DOUBLE, 0.1, "0.1"),
        (ValueType.DOUBLE, 3, "3.0"),
        (ValueType.STRING, "camera", "camera"),
        (ValueType.INT, "0x10", "0x10"),
    ],
)
def test_format_value(value_type, value, expected):
    assert format_value(value_type, value) == expected


@pytest.mark.parametrize(
    "value_type, value",
    [
        (ValueType.UNKNOWN, "1"),
        (None, 1),
        (ValueType.BOOL, 1),
        (ValueType.INT, True),
        (ValueType.INT, 1.5),
        (ValueType.DOUBLE, None),
    ],
)
def test_format_value_rejects(value_type, value):
    with pytest.raises(ValueFormatError):
        format_value(value_type, value)


def test_parse_bool():
    assert parse_value(ValueType.BOOL, "true") is True
    assert parse_value(ValueType.BOOL, "false") is False
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.BOOL, "yes")


@pytest.mark.parametrize("value_type", [ValueType.BYTE, ValueType.SHORT, ValueType.INT, ValueType.LONG])
def test_parse_integer_bounds(value_type):
    low, high = integer_range(value_type)

    assert parse_value(value_type, str(low)) == low
    assert parse_value(value_type, str(high)) == high
    with pytest.raises(ValueFormatError):
        parse_value(value_type, str(high + 1))
    with pytest.raises(ValueFormatError):
        parse_value(value_type, str(low - 1))


def test_byte_range():
    assert integer_range(ValueType.BYTE) == (-128, 127)


def test_parse_integer_rejects_garbage():
    with pytest.raises(ValueFormatError) as excinfo:
        parse_value(ValueType.INT, "12abc")

    assert isinstance(excinfo.value, ValueError)
    assert excinfo.value.text == "12abc"
    assert excinfo.value.value_type is ValueType.INT


@pytest.mark.parametrize("text", ["1_000", " 42", "42\n", "0x10", "1.0", "", "+", "\uff11\uff12"])
def test_parse_integer_rejects_non_decimal_text(text):
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.LONG, text)


def test_parse_integer_accepts_sign():
    assert parse_value(ValueType.SHORT, "+12") == 12
    assert parse_value(ValueType.SHORT, "-0012") == -12


def test_parse_floating_point():
    assert parse_value(ValueType.DOUBLE, "0.25") == 0.25
    assert parse_value(ValueType.FLOAT, "1e3") == 1000.0
    assert parse_value(ValueType.DOUBLE, "-.5") == -0.5
    assert parse_value(ValueType.DOUBLE, "2.") == 2.0
    assert parse_value(ValueType.DOUBLE, "1E-2") == 0.01
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.FLOAT, "1e39")
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.DOUBLE, "fast")


@pytest.mark.parametrize("text", ["1_0.5", "inf", "-infinity", "nan", " 0.5", "0.5 ", "1e", ".", "0x1p3", "1e400"])
def test_parse_floating_point_rejects_non_decimal_text(text):
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.DOUBLE, text)


def test_parse_string_and_unknown():
    assert parse_value(ValueType.STRING, "") == ""
    with pytest.raises(ValueFormatError):
        parse_value(ValueType.UNKNOWN, "x")
