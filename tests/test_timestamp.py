import struct
import time

from wghandshake import timestamp


def test_now_has_tai64n_layout():
    stamp = timestamp.now()
    assert len(stamp) == 12
    secs, nanos = struct.unpack(">QI", stamp)
    assert secs >= timestamp.TAI64_EPOCH
    assert nanos < 1_000_000_000


def test_now_tracks_wall_clock():
    before = time.time()
    stamp = timestamp.now()
    secs = struct.unpack(">Q", stamp[:8])[0] - timestamp.TAI64_EPOCH
    assert abs(secs - before) <= 2


def test_zero_is_older_than_now():
    assert timestamp.compare(timestamp.ZERO, timestamp.now())
    assert not timestamp.compare(timestamp.now(), timestamp.ZERO)


def test_equal_timestamps_are_not_newer():
    stamp = timestamp.now()
    assert not timestamp.compare(stamp, stamp)


def test_later_timestamp_is_newer():
    first = timestamp.now()
    time.sleep(0.01)
    second = timestamp.now()
    assert timestamp.compare(first, second)


def test_compare_accepts_any_larger_byte():
    old = b"\x01" + bytes(11)
    new = bytes(11) + b"\x01"
    assert timestamp.compare(old, new)