"""
IEEE 754-2008 decimal128 support.

BSON stores Decimal128 values as 16 little-endian bytes in the binary
integer decimal (BID) encoding. This module converts between that layout and
``decimal.Decimal`` so values never pass through a binary float.
"""

import decimal
import struct
from typing import Union

_UINT64_PAIR = struct.Struct("<QQ")

_SIGN = 0x8000000000000000
_SNAN = 0x7E00000000000000
_NAN = 0x7C00000000000000
_INF = 0x7800000000000000
_EXPONENT_MASK = 0x6000000000000000
_EXPONENT_BIAS = 6176
_SIGNIFICAND_HIGH_MASK = 0x1FFFFFFFFFFFF
_LOW_MASK = 0xFFFFFFFFFFFFFFFF
_MAX_SIGNIFICAND = 10**34 - 1

DECIMAL128_CONTEXT = decimal.Context(
    prec=34,
    rounding=decimal.ROUND_HALF_EVEN,
    Emin=-6143,
    Emax=6144,
    capitals=1,
    clamp=1,
    flags=[],
    traps=[decimal.InvalidOperation, decimal.Overflow, decimal.Inexact],
)


def decimal_to_bytes(value: Union[str, decimal.Decimal]) -> bytes:
    """Encode a decimal string or Decimal as 16 BID bytes.

    Raises:
        ValueError: If the value is not a decimal literal or cannot be
            represented exactly in 34 digits.
    """
    if isinstance(value, str) and (value != value.strip() or "_" in value):
        raise ValueError(f"{value!r} is not a valid decimal literal")

    # Each call gets its own context so signal flags never leak between calls
    context = DECIMAL128_CONTEXT.copy()
    try:
        dec = context.create_decimal(value)
    except (decimal.InvalidOperation, decimal.Overflow, decimal.Inexact) as exc:
        raise ValueError(f"{value!r} cannot be represented as a Decimal128") from exc

    sign, digits, exponent = dec.as_tuple()
    high = _SIGN if sign else 0

    if dec.is_nan():
        if digits:
            raise ValueError("NaN payloads are not supported in Decimal128")
        high |= _SNAN if dec.is_snan() else _NAN
        return _UINT64_PAIR.pack(0, high)

    if dec.is_infinite():
        return _UINT64_PAIR.pack(0, high | _INF)

    significand = int("".join(str(digit) for digit in digits))
    high |= (exponent + _EXPONENT_BIAS) << 49
    high |= significand >> 64
    return _UINT64_PAIR.pack(significand & _LOW_MASK, high)


def bytes_to_decimal(raw: bytes) -> decimal.Decimal:
    """Decode 16 BID bytes into an exact Decimal."""
    if len(raw) != 16:
        raise ValueError(f"Decimal128 requires 16 bytes, got {len(raw)}")

    low, high = _UINT64_PAIR.unpack(raw)
    sign = 1 if high & _SIGN else 0

    if high & _SNAN == _SNAN:
        return decimal.Decimal((sign, (), "N"))
    if high & _NAN == _NAN:
        return decimal.Decimal((sign, (), "n"))
    if high & _INF == _INF:
        return decimal.Decimal((sign, (), "F"))

    if high & _EXPONENT_MASK == _EXPONENT_MASK:
        # Implied significand exceeds 34 digits: a non-canonical zero
        exponent = ((high >> 47) & 0x3FFF) - _EXPONENT_BIAS
        significand = 0
    else:
        exponent = ((high >> 49) & 0x3FFF) - _EXPONENT_BIAS
        significand = ((high & _SIGNIFICAND_HIGH_MASK) << 64) | low
        if significand > _MAX_SIGNIFICAND:
            significand = 0

    digits = tuple(int(digit) for digit in str(significand))
    return decimal.Decimal((sign, digits, exponent))


def bytes_to_string(raw: bytes) -> str:
    """Scientific-notation string for 16 BID bytes (e.g. ``1.5E+3``)."""
    return str(bytes_to_decimal(raw))
