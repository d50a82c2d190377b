"""TAI64N timestamps used to guard against replayed initiations."""

from __future__ import annotations

import struct
import time

TAI64_EPOCH = 0x400000000000000A

SIZE = 12

ZERO = bytes(SIZE)

_LAYOUT = struct.Struct(">QI")


def now() -> bytes:
    """Return the current wall-clock time as a 12 byte TAI64N label."""
    total = time.time_ns()
    secs, nanos = divmod(total, 1_000_000_000)
    return _LAYOUT.pack(secs + TAI64_EPOCH, nanos)


def compare(old: bytes, new: bytes) -> bool:
    """Return True if any byte of ``new`` exceeds the byte of ``old`` at that position."""
    return any(n > o for o, n in zip(old[:SIZE], new[:SIZE]))