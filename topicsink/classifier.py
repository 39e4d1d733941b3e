"""
Payload type inference.

A payload is sorted into one of three kinds by independent predicates,
checked in a fixed priority order:

1. any ASCII letter        -> text (verbatim)
2. signed decimal fraction -> float
3. signed integer          -> integer
4. anything else           -> text (verbatim)

Letters win over everything, so tokens such as ``1e5`` or ``18abc`` stay
text. A float needs at least one fractional digit: ``3.`` is text.
"""
import math
import re
import sys
from typing import Literal
from .errors import PayloadOverflowError
from .models import INT32_MAX, INT32_MIN, FloatValue, IntegerValue, TextValue, TypedValue

OverflowPolicy = Literal["saturate", "error"]

_LETTERS = re.compile(r"[A-Za-z]")
_FLOAT = re.compile(r"[+-]?[0-9]*\.[0-9]+")
_INTEGER = re.compile(r"[+-]?[0-9]+")


def has_letters(payload: str) -> bool:
    return _LETTERS.search(payload) is not None


def is_float(payload: str) -> bool:
    return _FLOAT.fullmatch(payload) is not None


def is_integer(payload: str) -> bool:
    return _INTEGER.fullmatch(payload) is not None


def classify(payload: str, overflow: OverflowPolicy = "saturate") -> TypedValue:
    """
    Infer the scalar type of a raw payload.

    Args:
        payload: Message body decoded as text
        overflow: ``"saturate"`` clamps out-of-range numbers to the wire
            type's limits, ``"error"`` raises instead

    Returns:
        TextValue, FloatValue or IntegerValue

    Raises:
        PayloadOverflowError: Only with ``overflow="error"``
    """
    if has_letters(payload):
        return TextValue(value=payload)
    if is_float(payload):
        return FloatValue(value=_parse_float(payload, overflow))
    if is_integer(payload):
        return IntegerValue(value=_parse_int32(payload, overflow))
    return TextValue(value=payload)


def _parse_float(payload: str, overflow: OverflowPolicy) -> float:
    number = float(payload)
    if math.isinf(number):
        if overflow == "error":
            raise PayloadOverflowError(payload, "float")
        return math.copysign(sys.float_info.max, number)
    return number


def _parse_int32(payload: str, overflow: OverflowPolicy) -> int:
    negative = payload.startswith("-")
    digits = payload.lstrip("+-").lstrip("0") or "0"
    # int() refuses very long digit strings, and anything past 10 digits
    # is out of int32 range anyway
    if len(digits) <= 10:
        number = -int(digits) if negative else int(digits)
        if INT32_MIN <= number <= INT32_MAX:
            return number
    if overflow == "error":
        raise PayloadOverflowError(payload, "integer")
    return INT32_MIN if negative else INT32_MAX
