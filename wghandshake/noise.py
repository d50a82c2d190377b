"""The Noise_IKpsk2_25519_ChaChaPoly_BLAKE2s handshake pattern."""

from __future__ import annotations

import hashlib
import hmac
import os
import time

from nacl.bindings import (
    crypto_aead_chacha20poly1305_ietf_decrypt,
    crypto_aead_chacha20poly1305_ietf_encrypt,
    crypto_scalarmult,
    crypto_scalarmult_base,
)
from nacl.exceptions import CryptoError

from . import timestamp
from .messages import TYPE_INITIATION, TYPE_RESPONSE, NoiseInitiation, NoiseResponse
from .peer import InitiationSent
from .types import DecryptionFailure, InvalidSharedSecret, InvalidState, Key, KeyPair

SIZE_CK = 32
SIZE_HS = 32
SIZE_KEY = 32

# C := Hash(Construction)
INITIAL_CK = bytes(
    [
        0x60, 0xE2, 0x6D, 0xAE, 0xF3, 0x27, 0xEF, 0xC0, 0x2E, 0xC3, 0x35, 0xE2, 0xA0, 0x25, 0xD2, 0xD0,
        0x16, 0xEB, 0x42, 0x06, 0xF8, 0x72, 0x77, 0xF5, 0x2D, 0x38, 0xD1, 0x98, 0x8B, 0x78, 0xCD, 0x36,
    ]
)

# H := Hash(C || Identifier)
INITIAL_HS = bytes(
    [
        0x22, 0x11, 0xB3, 0x61, 0x08, 0x1A, 0xC5, 0x66, 0x69, 0x12, 0x43, 0xDB, 0x45, 0x8A, 0xD5, 0x32,
        0x2D, 0x9C, 0x6C, 0x66, 0x22, 0x93, 0xE8, 0xB7, 0x0E, 0xE1, 0x9C, 0x65, 0xBA, 0x07, 0x9E, 0xF3,
    ]
)

ZERO_NONCE = bytes(12)

_ZERO_KEY = bytes(32)


def blake2s(*args: bytes) -> bytes:
    """BLAKE2s-256 over the concatenation of ``args``."""
    digest = hashlib.blake2s()
    for part in args:
        digest.update(bytes(part))
    return digest.digest()


def hmac_blake2s(key: bytes, *args: bytes) -> bytes:
    """HMAC-BLAKE2s of the concatenation of ``args`` under ``key``."""
    mac = hmac.new(bytes(key), digestmod=hashlib.blake2s)
    for part in args:
        mac.update(bytes(part))
    return mac.digest()


def kdf1(key: bytes, data: bytes) -> bytes:
    """Derive one 32 byte output from the chaining key and input."""
    t0 = hmac_blake2s(key, data)
    return hmac_blake2s(t0, b"\x01")


def kdf2(key: bytes, data: bytes) -> tuple[bytes, bytes]:
    """Derive two 32 byte outputs from the chaining key and input."""
    t0 = hmac_blake2s(key, data)
    t1 = hmac_blake2s(t0, b"\x01")
    t2 = hmac_blake2s(t0, t1, b"\x02")
    return t1, t2


def kdf3(key: bytes, data: bytes) -> tuple[bytes, bytes, bytes]:
    """Derive three 32 byte outputs from the chaining key and input."""
    t0 = hmac_blake2s(key, data)
    t1 = hmac_blake2s(t0, b"\x01")
    t2 = hmac_blake2s(t0, t1, b"\x02")
    t3 = hmac_blake2s(t0, t2, b"\x03")
    return t1, t2, t3


def public_key(secret: bytes) -> bytes:
    """The X25519 public key belonging to ``secret``."""
    return crypto_scalarmult_base(bytes(secret))


def shared_secret(secret: bytes, public: bytes) -> bytes:
    """X25519 of ``secret`` and ``public``; raises InvalidSharedSecret when it is zero."""
    try:
        result = crypto_scalarmult(bytes(secret), bytes(public))
    except (RuntimeError, ValueError) as exc:
        raise InvalidSharedSecret() from exc
    if hmac.compare_digest(result, _ZERO_KEY):
        raise InvalidSharedSecret()
    return result


def _seal(key: bytes, ad: bytes, plaintext: bytes) -> bytes:
    return crypto_aead_chacha20poly1305_ietf_encrypt(plaintext, ad, ZERO_NONCE, key)


def _open(key: bytes, ad: bytes, ciphertext: bytes) -> bytes:
    try:
        return crypto_aead_chacha20poly1305_ietf_decrypt(bytes(ciphertext), ad, ZERO_NONCE, key)
    except CryptoError as exc:
        raise DecryptionFailure() from exc


def _is_zero(value: bytes) -> bool:
    return hmac.compare_digest(bytes(value), _ZERO_KEY)


def create_initiation(keyst, peer, pk: bytes, local: int) -> NoiseInitiation:
    """Build the noise part of an initiation to ``pk`` and record the sent state in ``peer``."""
    if _is_zero(peer.ss):
        raise InvalidSharedSecret()

    pk = bytes(pk)
    ck = INITIAL_CK
    hs = blake2s(INITIAL_HS, pk)

    eph_sk = os.urandom(32)
    eph_pk = public_key(eph_sk)

    ck = kdf1(ck, eph_pk)
    hs = blake2s(hs, eph_pk)

    ck, key = kdf2(ck, shared_secret(eph_sk, pk))
    f_static = _seal(key, hs, bytes(keyst.pk))
    hs = blake2s(hs, f_static)

    ck, key = kdf2(ck, peer.ss)
    f_timestamp = _seal(key, hs, timestamp.now())
    hs = blake2s(hs, f_timestamp)

    with peer.lock:
        peer.state = InitiationSent(local=local, eph_sk=eph_sk, hs=hs, ck=ck)

    return NoiseInitiation(
        msg_type=TYPE_INITIATION,
        sender=local,
        ephemeral=eph_pk,
        static=f_static,
        timestamp=f_timestamp,
    )


def consume_initiation(device, keyst, msg: NoiseInitiation):
    """Process an initiation.

    Returns ``(peer, peer_pk, state)`` where ``state`` is the tuple
    ``(receiver, remote_ephemeral, hs, ck)`` consumed by create_response.
    """
    ck = INITIAL_CK
    hs = blake2s(INITIAL_HS, bytes(keyst.pk))

    ephemeral = bytes(msg.ephemeral)
    ck = kdf1(ck, ephemeral)
    hs = blake2s(hs, ephemeral)

    ck, key = kdf2(ck, shared_secret(keyst.sk, ephemeral))
    pk = _open(key, hs, msg.static)

    peer = device.lookup_pk(pk)

    if _is_zero(peer.ss):
        raise InvalidSharedSecret()

    with peer.lock:
        peer.state = None

    hs = blake2s(hs, msg.static)

    ck, key = kdf2(ck, peer.ss)
    ts = _open(key, hs, msg.timestamp)

    peer.check_replay_flood(device, ts)

    hs = blake2s(hs, msg.timestamp)

    return peer, pk, (msg.sender, ephemeral, hs, ck)


def create_response(peer, pk: bytes, local: int, state) -> tuple[NoiseResponse, KeyPair]:
    """Build the noise part of a response and the unconfirmed responder key-pair."""
    receiver, eph_r_pk, hs, ck = state

    eph_sk = os.urandom(32)
    eph_pk = public_key(eph_sk)

    ck = kdf1(ck, eph_pk)
    hs = blake2s(hs, eph_pk)

    ck = kdf1(ck, shared_secret(eph_sk, eph_r_pk))
    ck = kdf1(ck, shared_secret(eph_sk, bytes(pk)))

    ck, tau, key = kdf3(ck, peer.psk)
    hs = blake2s(hs, tau)

    f_empty = _seal(key, hs, b"")

    key_recv, key_send = kdf2(ck, b"")

    msg = NoiseResponse(
        msg_type=TYPE_RESPONSE,
        sender=local,
        receiver=receiver,
        ephemeral=eph_pk,
        empty=f_empty,
    )
    keypair = KeyPair(
        birth=time.monotonic(),
        initiator=False,
        send=Key(id=receiver, key=key_send),
        recv=Key(id=local, key=key_recv),
    )
    return msg, keypair


def consume_response(device, keyst, msg: NoiseResponse):
    """Process a response, returning ``(opaque, None, keypair)`` with a confirmed key-pair."""
    peer, _ = device.lookup_id(msg.receiver)

    with peer.lock:
        state = peer.state
        if state is None:
            raise InvalidState()
        hs, ck, local, eph_sk = state.hs, state.ck, state.local, state.eph_sk

    ephemeral = bytes(msg.ephemeral)
    ck = kdf1(ck, ephemeral)
    hs = blake2s(hs, ephemeral)

    ck = kdf1(ck, shared_secret(eph_sk, ephemeral))
    ck = kdf1(ck, shared_secret(keyst.sk, ephemeral))

    ck, tau, key = kdf3(ck, peer.psk)
    hs = blake2s(hs, tau)

    _open(key, hs, msg.empty)

    birth = time.monotonic()
    key_send, key_recv = kdf2(ck, b"")

    with peer.lock:
        current = peer.state
        if current is None or not hmac.compare_digest(current.eph_sk, eph_sk):
            raise InvalidState()
        peer.state = None

    keypair = KeyPair(
        birth=birth,
        initiator=True,
        send=Key(id=msg.sender, key=key_send),
        recv=Key(id=local, key=key_recv),
    )
    return peer.opaque, None, keypair