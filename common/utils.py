"""
common.utils

Utility helper functions.
"""
from typing import Iterator, List, Sequence, TypeVar

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[List[T]]:
    """
    Yield consecutive slices of at most `size` items, preserving order.
    Only the last slice may be shorter. An empty input yields nothing.
    """
    if size < 1:
        raise ValueError("chunk size must be at least 1")
    cur = 0
    while cur < len(items):
        yield list(items[cur:cur + size])
        cur += size


def hex_to_int(v) -> int:
    """Accepts ints, 0x hex strings and decimal strings."""
    if isinstance(v, int):
        return v
    s = str(v).lower()
    return int(s, 16) if s.startswith("0x") else int(s)


def hex_to_bytes(v) -> bytes:
    if v is None:
        return b""
    if isinstance(v, (bytes, bytearray)):
        return bytes(v)
    h = v[2:] if v[:2].lower() == "0x" else v
    if len(h) % 2:
        h = "0" + h
    return bytes.fromhex(h)
