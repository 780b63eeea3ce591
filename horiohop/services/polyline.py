# horiohop/services/polyline.py

from typing import Iterator, List, Tuple

# Encoded polyline algorithm constants
_CHAR_OFFSET = 63
_CHUNK_MASK = 0x1F
_CONTINUATION_BIT = 0x20
_PRECISION = 1e5
# Bits beyond this shift are dropped, so malformed input cannot grow without bound.
_MAX_SHIFT = 30


def _read_varint(encoded: str, index: int) -> Tuple[int, int]:
    """
    Read one zig-zag encoded integer starting at index.

    Returns (value, next_index). Characters missing past the end of the
    string count as a terminating zero chunk.
    """
    result = 0
    shift = 0

    while True:
        if index < len(encoded):
            chunk = ord(encoded[index]) - _CHAR_OFFSET
        else:
            chunk = 0
        index += 1

        if shift <= _MAX_SHIFT:
            result |= (chunk & _CHUNK_MASK) << shift
        shift += 5

        if chunk < _CONTINUATION_BIT:
            break

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str) -> Iterator[Tuple[float, float]]:
    """
    Decode an encoded polyline string into (lat, lng) pairs.

    Each point is a delta from the previous one, so one corrupted chunk
    shifts every following point. No validation is done here: the
    generator never raises, and callers decide whether the result is
    plausible.
    """
    index = 0
    lat = 0
    lng = 0

    while index < len(encoded):
        delta_lat, index = _read_varint(encoded, index)
        lat += delta_lat

        delta_lng, index = _read_varint(encoded, index)
        lng += delta_lng

        yield lat / _PRECISION, lng / _PRECISION


def decode_polyline_list(encoded: str) -> List[Tuple[float, float]]:
    return list(decode_polyline(encoded))
