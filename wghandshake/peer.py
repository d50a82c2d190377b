"""Per-peer handshake state kept by a device."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Generic, TypeVar

from . import timestamp as tai64n
from .macs import Generator
from .types import InitiationFlood, OldTimestamp

O = TypeVar("O")

TIME_BETWEEN_INITIATIONS = 0.020


@dataclass
class InitiationSent:
    """State held between sending an initiation and receiving the response."""

    local: int
    eph_sk: bytes
    hs: bytes
    ck: bytes


class Peer(Generic[O]):
    """Handshake state for one remote public key.

    ``state`` is None when reset, or an InitiationSent. ``lock`` guards the
    mutable state, ``macs_lock`` guards the mac generator.
    """

    def __init__(self, pk: bytes, ss: bytes, opaque: O) -> None:
        self.opaque = opaque
        self.state: InitiationSent | None = None
        self.timestamp: bytes | None = None
        self.last_initiation_consumption: float | None = None
        self.macs = Generator(pk)
        self.ss = bytes(ss)
        self.psk = bytes(32)
        self.lock = threading.RLock()
        self.macs_lock = threading.Lock()

    def reset_state(self) -> int | None:
        """Reset the state, returning the local id of an aborted initiation if any."""
        with self.lock:
            old, self.state = self.state, None
        return old.local if old is not None else None

    def check_replay_flood(self, device, timestamp: bytes) -> None:
        """Accept a new initiation timestamp, or raise on replay or flood."""
        with self.lock:
            if self.timestamp is not None and not tai64n.compare(self.timestamp, timestamp):
                raise OldTimestamp()
            now = time.monotonic()
            if (
                self.last_initiation_consumption is not None
                and now - self.last_initiation_consumption < TIME_BETWEEN_INITIATIONS
            ):
                raise InitiationFlood()
            if self.state is not None:
                device.release(self.state.local)
            self.state = None
            self.timestamp = bytes(timestamp)
            self.last_initiation_consumption = now