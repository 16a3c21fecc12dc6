"""Encoded polyline codec.

Each coordinate is scaled by 10**precision, rounded half away from zero and
stored as the signed delta from the previous point: the delta is left-shifted
one bit (inverted when negative), split into 5-bit chunks low-order first,
each chunk OR'd with 0x20 when more follow, then offset by 63 into printable
ASCII. Output is byte-compatible with the Google polyline codec.
"""

import math
from collections.abc import Iterable, Sequence

Coordinate = tuple[float, float]

DEFAULT_PRECISION = 5

_OFFSET = 63
_CHUNK_BITS = 5
_CHUNK_MASK = 0x1F
_CONTINUATION = 0x20


class PolylineDecodeError(ValueError):
    """Encoded string is truncated or contains characters outside the alphabet."""

    pass


def _round(value: float) -> int:
    """Round half away from zero."""
    return int(math.floor(abs(value) + 0.5)) * (1 if value >= 0 else -1)


def _encode_signed(value: int) -> str:
    shifted = ~(value << 1) if value < 0 else value << 1
    chars = []
    while shifted >= _CONTINUATION:
        chars.append(chr((_CONTINUATION | (shifted & _CHUNK_MASK)) + _OFFSET))
        shifted >>= _CHUNK_BITS
    chars.append(chr(shifted + _OFFSET))
    return "".join(chars)


def encode(coordinates: Iterable[Sequence[float]], precision: int = DEFAULT_PRECISION) -> str:
    """Encode (lat, lng) pairs into a polyline string.

    Args:
        coordinates: Ordered (lat, lng) pairs
        precision: Decimal digits kept per coordinate

    Returns:
        Encoded ASCII string ("" for no coordinates)
    """
    factor = 10**precision
    last_lat = last_lng = 0
    parts = []
    for point in coordinates:
        lat = _round(point[0] * factor)
        lng = _round(point[1] * factor)
        parts.append(_encode_signed(lat - last_lat))
        parts.append(_encode_signed(lng - last_lng))
        last_lat, last_lng = lat, lng
    return "".join(parts)


def _decode_values(encoded: str) -> list[int]:
    values = []
    result = shift = 0
    in_value = False
    for position, char in enumerate(encoded):
        byte = ord(char) - _OFFSET
        if not 0 <= byte <= 0x3F:
            raise PolylineDecodeError(f"Invalid character {char!r} at position {position}")
        result |= (byte & _CHUNK_MASK) << shift
        shift += _CHUNK_BITS
        in_value = True
        if byte < _CONTINUATION:
            values.append(~(result >> 1) if result & 1 else result >> 1)
            result = shift = 0
            in_value = False
    if in_value:
        raise PolylineDecodeError("Truncated polyline: last value is incomplete")
    return values


def decode(encoded: str, precision: int = DEFAULT_PRECISION) -> list[Coordinate]:
    """Decode a polyline string into (lat, lng) pairs.

    Raises:
        PolylineDecodeError: If the string is malformed
    """
    values = _decode_values(encoded)
    if len(values) % 2:
        raise PolylineDecodeError("Truncated polyline: latitude without longitude")

    factor = 10**precision
    coordinates: list[Coordinate] = []
    lat = lng = 0
    for i in range(0, len(values), 2):
        lat += values[i]
        lng += values[i + 1]
        coordinates.append((lat / factor, lng / factor))
    return coordinates
