"""Error types and key material shared by the handshake components."""

from __future__ import annotations

from dataclasses import dataclass


class ConfigError(Exception):
    """Raised when the device configuration cannot be applied."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"ConfigError({self.message})"


class HandshakeError(Exception):
    """Base class of every failure while processing a handshake."""

    default_message = "Generic Handshake Error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message if message is not None else self.default_message)


class DecryptionFailure(HandshakeError):
    default_message = "Failed to AEAD:OPEN"


class UnknownPublicKey(HandshakeError):
    default_message = "Unknown public key"


class UnknownReceiverId(HandshakeError):
    default_message = "Receiver id not allocated to any handshake"


class InvalidMessageFormat(HandshakeError):
    default_message = "Invalid handshake message format"


class InvalidSharedSecret(HandshakeError):
    default_message = "Zero shared secret"


class OldTimestamp(HandshakeError):
    default_message = "Timestamp is less/equal to the newest"


class InvalidState(HandshakeError):
    default_message = "Message does not apply to handshake state"


class InvalidMac1(HandshakeError):
    default_message = "Message has invalid mac1 field"


class RateLimited(HandshakeError):
    default_message = "Message was dropped by rate limiter"


class InitiationFlood(HandshakeError):
    default_message = "Message was dropped because of initiation flood"


@dataclass(frozen=True)
class Key:
    """A transport key together with the receiver id it is bound to."""

    id: int
    key: bytes


@dataclass(frozen=True)
class KeyPair:
    """The pair of transport keys produced by a completed handshake."""

    birth: float
    initiator: bool
    send: Key
    recv: Key

    def local_id(self) -> int:
        """The identifier allocated locally for this key-pair."""
        return self.recv.id