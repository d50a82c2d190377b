"""Computation and verification of the mac1/mac2 fields and cookie replies."""

from __future__ import annotations

import hashlib
import hmac
import ipaddress
import os
import threading
import time
from dataclasses import dataclass

from nacl.bindings import (
    crypto_aead_xchacha20poly1305_ietf_decrypt,
    crypto_aead_xchacha20poly1305_ietf_encrypt,
)
from nacl.exceptions import CryptoError

from .messages import SIZE_XNONCE, TYPE_COOKIE_REPLY, CookieReply, MacsFooter
from .types import DecryptionFailure, InvalidMac1, InvalidState

LABEL_MAC1 = b"mac1----"
LABEL_COOKIE = b"cookie--"

SIZE_COOKIE = 16
SIZE_SECRET = 32
SIZE_MAC = 16
SIZE_TAG = 16

COOKIE_UPDATE_INTERVAL = 120.0

_ZERO_MAC = bytes(SIZE_MAC)


def _hash(*parts: bytes) -> bytes:
    digest = hashlib.blake2s()
    for part in parts:
        digest.update(part)
    return digest.digest()


def _mac(key: bytes, *parts: bytes) -> bytes:
    digest = hashlib.blake2s(key=key, digest_size=SIZE_MAC)
    for part in parts:
        digest.update(part)
    return digest.digest()


def addr_to_mac_bytes(addr) -> bytes:
    """Encode a socket address ``(host, port, ...)`` as IP octets followed by the port (LE)."""
    host, port = addr[0], addr[1]
    ip = ipaddress.ip_address(host)
    return ip.packed + int(port).to_bytes(2, "little")


@dataclass
class _Cookie:
    value: bytes
    birth: float


class Generator:
    """Produces the mac fields for messages sent to one peer."""

    def __init__(self, pk: bytes) -> None:
        pk = bytes(pk)
        self._mac1_key = _hash(LABEL_MAC1, pk)
        self._cookie_key = _hash(LABEL_COOKIE, pk)
        self._last_mac1: bytes | None = None
        self._cookie: _Cookie | None = None

    def process(self, reply: CookieReply) -> None:
        """Accept a cookie reply; raises if it is stale or malformed."""
        if self._last_mac1 is None:
            raise InvalidState()
        try:
            tau = crypto_aead_xchacha20poly1305_ietf_decrypt(
                bytes(reply.cookie), self._last_mac1, bytes(reply.nonce), self._cookie_key
            )
        except CryptoError as exc:
            raise DecryptionFailure() from exc
        self._cookie = _Cookie(value=tau, birth=time.monotonic())

    def generate(self, inner: bytes) -> MacsFooter:
        """Return the mac footer covering ``inner``."""
        inner = bytes(inner)
        mac1 = _mac(self._mac1_key, inner)
        mac2 = _ZERO_MAC
        if self._cookie is not None:
            if time.monotonic() - self._cookie.birth > COOKIE_UPDATE_INTERVAL:
                self._cookie = None
            else:
                mac2 = _mac(self._cookie.value, inner, mac1)
        self._last_mac1 = mac1
        return MacsFooter(mac1=mac1, mac2=mac2)


class Validator:
    """Checks the mac fields of incoming messages and issues cookie replies."""

    def __init__(self, pk: bytes) -> None:
        pk = bytes(pk)
        self._mac1_key = _hash(LABEL_MAC1, pk)
        self._cookie_key = _hash(LABEL_COOKIE, pk)
        self._secret = bytes(SIZE_SECRET)
        self._birth: float | None = None
        self._lock = threading.Lock()

    def _secret_valid(self) -> bool:
        return self._birth is not None and time.monotonic() - self._birth < COOKIE_UPDATE_INTERVAL

    def _get_tau(self, src: bytes) -> bytes | None:
        with self._lock:
            if self._secret_valid():
                return _mac(self._secret, src)
            return None

    def _get_set_tau(self, src: bytes) -> bytes:
        with self._lock:
            if not self._secret_valid():
                self._secret = os.urandom(SIZE_SECRET)
                self._birth = time.monotonic()
            return _mac(self._secret, src)

    def create_cookie_reply(self, receiver: int, src, macs: MacsFooter) -> CookieReply:
        """Build a cookie reply to a message from ``src`` with sender id ``receiver``."""
        src_bytes = addr_to_mac_bytes(src)
        nonce = os.urandom(SIZE_XNONCE)
        tau = self._get_set_tau(src_bytes)
        cookie = crypto_aead_xchacha20poly1305_ietf_encrypt(
            tau, bytes(macs.mac1), nonce, self._cookie_key
        )
        return CookieReply(
            msg_type=TYPE_COOKIE_REPLY, receiver=receiver, nonce=nonce, cookie=cookie
        )

    def check_mac1(self, inner: bytes, macs: MacsFooter) -> None:
        """Raise InvalidMac1 unless the mac1 field covers ``inner``."""
        if not hmac.compare_digest(_mac(self._mac1_key, bytes(inner)), bytes(macs.mac1)):
            raise InvalidMac1()

    def check_mac2(self, inner: bytes, src, macs: MacsFooter) -> bool:
        """Return whether the mac2 field is valid for ``inner`` sent from ``src``."""
        tau = self._get_tau(addr_to_mac_bytes(src))
        if tau is None:
            return False
        expected = _mac(tau, bytes(inner), bytes(macs.mac1))
        return hmac.compare_digest(expected, bytes(macs.mac2))