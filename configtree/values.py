"""
Value text conversion

The server stores typed values but only ever exchanges their textual form:
"true"/"false" for booleans, decimal text for integers and floating point,
strings verbatim. These helpers convert between that text and Python values.
"""
import math
import re
from typing import Any, Dict, Tuple

from configtree.exceptions import ValueFormatError
from configtree.models import ValueType

# Signed integer ranges (bits) per type
INTEGER_BITS: Dict[ValueType, int] = {
    ValueType.BYTE: 8,
    ValueType.SHORT: 16,
    ValueType.INT: 32,
    ValueType.LONG: 64,
}

# Plain decimal text only: no underscores, whitespace, inf or nan
INTEGER_PATTERN = re.compile(r"[+-]?[0-9]+")
FLOAT_PATTERN = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")


def integer_range(value_type: ValueType) -> Tuple[int, int]:
    """Inclusive (min, max) for a signed integer type."""
    bits = INTEGER_BITS[value_type]
    return -(1 << (bits - 1)), (1 << (bits - 1)) - 1


def format_value(value_type: ValueType, value: Any) -> str:
    """
    Produce the wire text for a value of the given type.

    Text values are passed through unchanged: the server is authoritative
    on whether they parse. No range checks are made here.

    Raises:
        ValueFormatError: If the type is UNKNOWN or the value has no textual
            form for the type
    """
    if value_type is None or value_type is ValueType.UNKNOWN:
        raise ValueFormatError("Cannot format a value without a concrete type", value_type)

    if isinstance(value, str):
        return value

    if value_type is ValueType.BOOL:
        if not isinstance(value, bool):
            raise ValueFormatError(f"Expected bool, got {type(value).__name__}", value_type, repr(value))
        return "true" if value else "false"

    if value_type in INTEGER_BITS:
        if isinstance(value, bool) or not isinstance(value, int):
            if isinstance(value, float) and value.is_integer():
                return str(int(value))
            raise ValueFormatError(f"Expected integer, got {type(value).__name__}", value_type, repr(value))
        return str(value)

    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueFormatError(f"Expected number, got {type(value).__name__}", value_type, repr(value))
        return repr(float(value))

    # STRING
    return str(value)


def parse_value(value_type: ValueType, text: str) -> Any:
    """
    Parse wire text into a Python value.

    Returns:
        bool, int, float or str depending on value_type

    Raises:
        ValueFormatError: If text does not parse as value_type or an integer
            does not fit the type's width
    """
    if text is None:
        raise ValueFormatError("No text to parse", value_type)

    if value_type is ValueType.BOOL:
        if text == "true":
            return True
        if text == "false":
            return False
        raise ValueFormatError(f"Invalid boolean text {text!r}", value_type, text)

    if value_type in INTEGER_BITS:
        if not INTEGER_PATTERN.fullmatch(text):
            raise ValueFormatError(f"Invalid {value_type.type_name} text {text!r}", value_type, text)
        number = int(text, 10)
        low, high = integer_range(value_type)
        if not low <= number <= high:
            raise ValueFormatError(
                f"{number} out of range for {value_type.type_name} [{low}, {high}]",
                value_type,
                text,
            )
        return number

    if value_type in (ValueType.FLOAT, ValueType.DOUBLE):
        if not FLOAT_PATTERN.fullmatch(text):
            raise ValueFormatError(f"Invalid {value_type.type_name} text {text!r}", value_type, text)
        number = float(text)
        if not math.isfinite(number):
            raise ValueFormatError(f"{text!r} out of range for {value_type.type_name}", value_type, text)
        if value_type is ValueType.FLOAT and abs(number) > 3.4028234663852886e38:
            raise ValueFormatError(f"{text!r} out of range for float", value_type, text)
        return number

    if value_type is ValueType.STRING:
        return text

    raise ValueFormatError("Cannot parse a value without a concrete type", value_type, text)
