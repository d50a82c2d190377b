"""Token-bucket rate limiter keyed by source IP address."""

from __future__ import annotations

import ipaddress
import threading
import time
from dataclasses import dataclass

PACKETS_PER_SECOND = 20
PACKETS_BURSTABLE = 5
PACKET_COST = 1_000_000_000 // PACKETS_PER_SECOND
MAX_TOKENS = PACKET_COST * PACKETS_BURSTABLE

GC_INTERVAL = 1.0
_GC_INTERVAL_NS = 1_000_000_000


@dataclass
class _Entry:
    last_time: int
    tokens: int


def _clock() -> int:
    return time.perf_counter_ns()


class RateLimiter:
    """Limits handshake processing per source address.

    Idle entries are removed by a background thread that runs while the table
    is non-empty; ``close`` stops it.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._table: dict[ipaddress.IPv4Address | ipaddress.IPv6Address, _Entry] = {}
        self._gc_running = False
        self._cond = threading.Condition()
        self._dropped = False

    def __enter__(self) -> RateLimiter:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def allow(self, addr) -> bool:
        """Return whether a packet from ``addr`` may be processed now."""
        ip = ipaddress.ip_address(addr)
        with self._lock:
            now = _clock()
            entry = self._table.get(ip)
            if entry is not None:
                # only the sub-second part of the elapsed time earns tokens
                earned = (now - entry.last_time) % 1_000_000_000
                entry.tokens = min(MAX_TOKENS, entry.tokens + earned)
                entry.last_time = now
                if entry.tokens > PACKET_COST:
                    entry.tokens -= PACKET_COST
                    return True
                return False

            self._table[ip] = _Entry(last_time=now, tokens=MAX_TOKENS - PACKET_COST)
            if not self._gc_running:
                self._gc_running = True
                threading.Thread(target=self._collect, daemon=True).start()
        return True

    def close(self) -> None:
        """Stop the background collector."""
        with self._cond:
            self._dropped = True
            self._cond.notify_all()

    def __len__(self) -> int:
        with self._lock:
            return len(self._table)

    def _collect(self) -> None:
        with self._cond:
            while not self._dropped:
                with self._lock:
                    now = _clock()
                    self._table = {
                        ip: entry
                        for ip, entry in self._table.items()
                        if now - entry.last_time <= _GC_INTERVAL_NS
                    }
                    if not self._table:
                        self._gc_running = False
                        return
                self._cond.wait(GC_INTERVAL)