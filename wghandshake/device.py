"""The handshake device: a map from peer public keys to handshake state."""

from __future__ import annotations

import secrets
import threading
from dataclasses import dataclass
from typing import Generic, Iterator, TypeVar

from nacl.bindings import crypto_scalarmult

from . import noise
from .macs import Validator
from .messages import (
    TYPE_COOKIE_REPLY,
    TYPE_INITIATION,
    TYPE_RESPONSE,
    CookieReply,
    Initiation,
    Response,
)
from .peer import Peer
from .ratelimiter import RateLimiter
from .types import (
    ConfigError,
    HandshakeError,
    InvalidMessageFormat,
    KeyPair,
    RateLimited,
    UnknownPublicKey,
    UnknownReceiverId,
)

O = TypeVar("O")

MAX_PEER_PER_DEVICE = 1 << 20

SIZE_PSK = 32

_ZERO_SS = bytes(32)

Output = tuple[object | None, bytes | None, KeyPair | None]


def _diffie_hellman(sk: bytes, pk: bytes) -> bytes:
    """X25519 without the zero check; a degenerate result becomes all zeros."""
    try:
        return crypto_scalarmult(bytes(sk), bytes(pk))
    except RuntimeError:
        return _ZERO_SS


@dataclass
class KeyState:
    """The static key pair of the device and the validator for incoming macs."""

    sk: bytes
    pk: bytes
    macs: Validator


class Device(Generic[O]):
    """Handshake state machine holding one opaque value per peer public key."""

    def __init__(self) -> None:
        self.keyst: KeyState | None = None
        self._id_map: dict[int, bytes] = {}
        self._id_lock = threading.Lock()
        self._pk_map: dict[bytes, Peer[O]] = {}
        self._limiter = RateLimiter()

    # map-like access

    def clear(self) -> None:
        """Remove every peer and every allocated id."""
        with self._id_lock:
            self._id_map.clear()
        self._pk_map.clear()

    def __len__(self) -> int:
        return len(self._pk_map)

    def __iter__(self) -> Iterator[tuple[bytes, O]]:
        """Yield ``(public key, opaque)`` pairs."""
        for pk, peer in list(self._pk_map.items()):
            yield pk, peer.opaque

    def get(self, pk: bytes) -> O | None:
        """Return the opaque value of the peer, or None if unknown."""
        peer = self._pk_map.get(bytes(pk))
        return peer.opaque if peer is not None else None

    def __contains__(self, pk: object) -> bool:
        if not isinstance(pk, (bytes, bytearray, memoryview)):
            return False
        return bytes(pk) in self._pk_map

    # configuration

    def _update_ss(self) -> tuple[list[int], bytes | None]:
        same = None
        ids: list[int] = []
        for pk, peer in self._pk_map.items():
            if self.keyst is not None:
                if self.keyst.pk == pk:
                    same = pk
                    peer.ss = _ZERO_SS
                else:
                    peer.ss = _diffie_hellman(self.keyst.sk, pk)
            else:
                peer.ss = _ZERO_SS
            local = peer.reset_state()
            if local is not None:
                ids.append(local)
        return ids, same

    def set_sk(self, sk: bytes | None) -> bytes | None:
        """Set (or unset) the static secret key.

        Returns the public key of a peer matching the new device public key;
        that peer is removed.
        """
        if sk is None:
            self.keyst = None
        else:
            sk = bytes(sk)
            pk = noise.public_key(sk)
            self.keyst = KeyState(sk=sk, pk=pk, macs=Validator(pk))

        ids, same = self._update_ss()
        for receiver_id in ids:
            self.release(receiver_id)

        if same is not None:
            self._pk_map.pop(same, None)
        return same

    def get_sk(self) -> bytes | None:
        """Return the static secret key, if one is set."""
        return self.keyst.sk if self.keyst is not None else None

    def add(self, pk: bytes, opaque: O) -> None:
        """Add a peer public key with an associated opaque value."""
        pk = bytes(pk)
        if len(self._pk_map) > MAX_PEER_PER_DEVICE:
            raise ConfigError("Too many peers for device")
        if self.keyst is not None and pk == self.keyst.pk:
            raise ConfigError("Public key of peer matches the device")
        ss = _diffie_hellman(self.keyst.sk, pk) if self.keyst is not None else _ZERO_SS
        self._pk_map[pk] = Peer(pk, ss, opaque)

    def remove(self, pk: bytes) -> None:
        """Remove a peer and every id allocated to it."""
        pk = bytes(pk)
        if self._pk_map.pop(pk, None) is None:
            raise ConfigError("Public key not in device")
        with self._id_lock:
            self._id_map = {i: v for i, v in self._id_map.items() if v != pk}

    def set_psk(self, pk: bytes, psk: bytes) -> None:
        """Set the pre-shared key of a peer."""
        psk = bytes(psk)
        if len(psk) != SIZE_PSK:
            raise ValueError(f"psk must be {SIZE_PSK} bytes")
        peer = self._pk_map.get(bytes(pk))
        if peer is None:
            raise ConfigError("No such public key")
        peer.psk = psk

    def get_psk(self, pk: bytes) -> bytes:
        """Return the pre-shared key of a peer."""
        peer = self._pk_map.get(bytes(pk))
        if peer is None:
            raise ConfigError("No such public key")
        return peer.psk

    def release(self, receiver_id: int) -> None:
        """Return a receiver id to the pool; raises KeyError if it was not allocated."""
        with self._id_lock:
            if self._id_map.pop(receiver_id, None) is None:
                raise KeyError("released id not allocated")

    # handshake

    def begin(self, pk: bytes) -> bytes:
        """Create an initiation message for the peer with public key ``pk``."""
        pk = bytes(pk)
        peer = self._pk_map.get(pk)
        keyst = self.keyst
        if peer is None or keyst is None:
            raise UnknownPublicKey()

        local = self._allocate(pk)
        try:
            body = noise.create_initiation(keyst, peer, pk, local)
        except HandshakeError:
            self.release(local)
            raise

        with peer.macs_lock:
            macs = peer.macs.generate(body.to_bytes())
        return Initiation(noise=body, macs=macs).to_bytes()

    def process(self, msg: bytes, src=None) -> Output:
        """Process a handshake message.

        ``src`` is the ``(host, port)`` the message came from and is given
        only when under load. Returns ``(opaque, reply, keypair)``.
        """
        msg = bytes(msg)
        if len(msg) < 4:
            raise InvalidMessageFormat()

        keyst = self.keyst
        if keyst is None:
            return None, None, None

        msg_type = int.from_bytes(msg[:4], "little")

        if msg_type == TYPE_INITIATION:
            init = Initiation.parse(msg)
            inner = init.noise.to_bytes()
            keyst.macs.check_mac1(inner, init.macs)
            if src is not None:
                reply = self._under_load(keyst, inner, init.noise.sender, src, init.macs)
                if reply is not None:
                    return None, reply, None

            peer, pk, state = noise.consume_initiation(self, keyst, init.noise)
            local = self._allocate(pk)
            try:
                body, keys = noise.create_response(peer, pk, local, state)
            except HandshakeError:
                self.release(local)
                raise

            with peer.macs_lock:
                macs = peer.macs.generate(body.to_bytes())
            return peer.opaque, Response(noise=body, macs=macs).to_bytes(), keys

        if msg_type == TYPE_RESPONSE:
            resp = Response.parse(msg)
            inner = resp.noise.to_bytes()
            keyst.macs.check_mac1(inner, resp.macs)
            if src is not None:
                reply = self._under_load(keyst, inner, resp.noise.sender, src, resp.macs)
                if reply is not None:
                    return None, reply, None
            return noise.consume_response(self, keyst, resp.noise)

        if msg_type == TYPE_COOKIE_REPLY:
            cookie = CookieReply.parse(msg)
            peer, _ = self.lookup_id(cookie.receiver)
            with peer.macs_lock:
                peer.macs.process(cookie)
            return None, None, None

        raise InvalidMessageFormat()

    def _under_load(self, keyst: KeyState, inner: bytes, sender: int, src, macs) -> bytes | None:
        if not keyst.macs.check_mac2(inner, src, macs):
            return keyst.macs.create_cookie_reply(sender, src, macs).to_bytes()
        if not self._limiter.allow(src[0]):
            raise RateLimited()
        return None

    def lookup_pk(self, pk: bytes) -> Peer[O]:
        """Return the peer with public key ``pk``."""
        peer = self._pk_map.get(bytes(pk))
        if peer is None:
            raise UnknownPublicKey()
        return peer

    def lookup_id(self, receiver_id: int) -> tuple[Peer[O], bytes]:
        """Return the peer currently holding ``receiver_id`` and its public key."""
        with self._id_lock:
            pk = self._id_map.get(receiver_id)
        if pk is None:
            raise UnknownReceiverId()
        peer = self._pk_map.get(pk)
        if peer is None:
            raise UnknownReceiverId()
        return peer, pk

    def _allocate(self, pk: bytes) -> int:
        while True:
            candidate = secrets.randbits(32)
            with self._id_lock:
                if candidate not in self._id_map:
                    self._id_map[candidate] = pk
                    return candidate