import pytest

from wghandshake.types import (
    ConfigError,
    DecryptionFailure,
    HandshakeError,
    InitiationFlood,
    InvalidMac1,
    InvalidMessageFormat,
    InvalidSharedSecret,
    InvalidState,
    Key,
    KeyPair,
    OldTimestamp,
    RateLimited,
    UnknownPublicKey,
    UnknownReceiverId,
)


def test_config_error_display():
    err = ConfigError("No such public key")
    assert str(err) == "ConfigError(No such public key)"
    assert err.message == "No such public key"


@pytest.mark.parametrize(
    "cls, text",
    [
        (InvalidSharedSecret, "Zero shared secret"),
        (DecryptionFailure, "Failed to AEAD:OPEN"),
        (UnknownPublicKey, "Unknown public key"),
        (UnknownReceiverId, "Receiver id not allocated to any handshake"),
        (InvalidMessageFormat, "Invalid handshake message format"),
        (OldTimestamp, "Timestamp is less/equal to the newest"),
        (InvalidState, "Message does not apply to handshake state"),
        (InvalidMac1, "Message has invalid mac1 field"),
        (RateLimited, "Message was dropped by rate limiter"),
        (InitiationFlood, "Message was dropped because of initiation flood"),
    ],
)
def test_handshake_error_messages(cls, text):
    err = cls()
    assert str(err) == text
    assert isinstance(err, HandshakeError)


def test_handshake_error_kinds_are_distinct():
    err = OldTimestamp()
    assert isinstance(err, HandshakeError)
    assert not isinstance(err, InvalidState)
    assert not isinstance(err, InitiationFlood)
    assert str(err) == "Timestamp is less/equal to the newest"


def test_keypair_local_id_is_receive_id():
    kp = KeyPair(
        birth=0.0,
        initiator=True,
        send=Key(id=7, key=bytes(32)),
        recv=Key(id=9, key=bytes(32)),
    )
    assert kp.local_id() == 9
    assert kp.local_id() == kp.recv.id


def test_key_equality_depends_on_id_and_key():
    a = Key(id=1, key=b"\x01" * 32)
    assert a == Key(id=1, key=b"\x01" * 32)
    assert not a == Key(id=2, key=b"\x01" * 32)
    assert not a == Key(id=1, key=b"\x02" * 32)