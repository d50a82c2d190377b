"""Wire formats of the three handshake messages."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

from .types import InvalidMessageFormat

SIZE_MAC = 16
SIZE_TAG = 16
SIZE_XNONCE = 24
SIZE_COOKIE = 16
SIZE_X25519_POINT = 32
SIZE_TIMESTAMP = 12

TYPE_INITIATION = 1
TYPE_RESPONSE = 2
TYPE_COOKIE_REPLY = 3


def _check(name: str, value: bytes, size: int) -> None:
    if len(value) != size:
        raise ValueError(f"{name} must be {size} bytes, got {len(value)}")


@dataclass
class MacsFooter:
    """The mac1 and mac2 fields trailing every handshake message."""

    mac1: bytes = bytes(SIZE_MAC)
    mac2: bytes = bytes(SIZE_MAC)

    SIZE: ClassVar[int] = 2 * SIZE_MAC

    def to_bytes(self) -> bytes:
        _check("mac1", self.mac1, SIZE_MAC)
        _check("mac2", self.mac2, SIZE_MAC)
        return bytes(self.mac1) + bytes(self.mac2)

    @classmethod
    def _unpack(cls, data: bytes) -> MacsFooter:
        return cls(mac1=bytes(data[:SIZE_MAC]), mac2=bytes(data[SIZE_MAC : 2 * SIZE_MAC]))


@dataclass
class NoiseInitiation:
    """The part of an initiation covered by the mac fields."""

    msg_type: int = TYPE_INITIATION
    sender: int = 0
    ephemeral: bytes = bytes(SIZE_X25519_POINT)
    static: bytes = bytes(SIZE_X25519_POINT + SIZE_TAG)
    timestamp: bytes = bytes(SIZE_TIMESTAMP + SIZE_TAG)

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct(
        f"<II{SIZE_X25519_POINT}s{SIZE_X25519_POINT + SIZE_TAG}s{SIZE_TIMESTAMP + SIZE_TAG}s"
    )
    SIZE: ClassVar[int] = _LAYOUT.size

    def to_bytes(self) -> bytes:
        _check("ephemeral", self.ephemeral, SIZE_X25519_POINT)
        _check("static", self.static, SIZE_X25519_POINT + SIZE_TAG)
        _check("timestamp", self.timestamp, SIZE_TIMESTAMP + SIZE_TAG)
        return self._LAYOUT.pack(
            self.msg_type, self.sender, self.ephemeral, self.static, self.timestamp
        )

    @classmethod
    def _unpack(cls, data: bytes) -> NoiseInitiation:
        return cls(*cls._LAYOUT.unpack(data))


@dataclass
class NoiseResponse:
    """The part of a response covered by the mac fields."""

    msg_type: int = TYPE_RESPONSE
    sender: int = 0
    receiver: int = 0
    ephemeral: bytes = bytes(SIZE_X25519_POINT)
    empty: bytes = bytes(SIZE_TAG)

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct(
        f"<III{SIZE_X25519_POINT}s{SIZE_TAG}s"
    )
    SIZE: ClassVar[int] = _LAYOUT.size

    def to_bytes(self) -> bytes:
        _check("ephemeral", self.ephemeral, SIZE_X25519_POINT)
        _check("empty", self.empty, SIZE_TAG)
        return self._LAYOUT.pack(
            self.msg_type, self.sender, self.receiver, self.ephemeral, self.empty
        )

    @classmethod
    def _unpack(cls, data: bytes) -> NoiseResponse:
        return cls(*cls._LAYOUT.unpack(data))


@dataclass
class Initiation:
    """A handshake initiation message."""

    noise: NoiseInitiation = field(default_factory=NoiseInitiation)
    macs: MacsFooter = field(default_factory=MacsFooter)

    SIZE: ClassVar[int] = NoiseInitiation.SIZE + MacsFooter.SIZE

    def to_bytes(self) -> bytes:
        return self.noise.to_bytes() + self.macs.to_bytes()

    @classmethod
    def parse(cls, data: bytes) -> Initiation:
        """Parse an initiation, raising InvalidMessageFormat on bad length or type."""
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise InvalidMessageFormat()
        noise = NoiseInitiation._unpack(data[: NoiseInitiation.SIZE])
        if noise.msg_type != TYPE_INITIATION:
            raise InvalidMessageFormat()
        return cls(noise=noise, macs=MacsFooter._unpack(data[NoiseInitiation.SIZE :]))


@dataclass
class Response:
    """A handshake response message."""

    noise: NoiseResponse = field(default_factory=NoiseResponse)
    macs: MacsFooter = field(default_factory=MacsFooter)

    SIZE: ClassVar[int] = NoiseResponse.SIZE + MacsFooter.SIZE

    def to_bytes(self) -> bytes:
        return self.noise.to_bytes() + self.macs.to_bytes()

    @classmethod
    def parse(cls, data: bytes) -> Response:
        """Parse a response, raising InvalidMessageFormat on bad length or type."""
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise InvalidMessageFormat()
        noise = NoiseResponse._unpack(data[: NoiseResponse.SIZE])
        if noise.msg_type != TYPE_RESPONSE:
            raise InvalidMessageFormat()
        return cls(noise=noise, macs=MacsFooter._unpack(data[NoiseResponse.SIZE :]))


@dataclass
class CookieReply:
    """A cookie reply message sent by a responder under load."""

    msg_type: int = TYPE_COOKIE_REPLY
    receiver: int = 0
    nonce: bytes = bytes(SIZE_XNONCE)
    cookie: bytes = bytes(SIZE_COOKIE + SIZE_TAG)

    _LAYOUT: ClassVar[struct.Struct] = struct.Struct(
        f"<II{SIZE_XNONCE}s{SIZE_COOKIE + SIZE_TAG}s"
    )
    SIZE: ClassVar[int] = _LAYOUT.size

    def to_bytes(self) -> bytes:
        _check("nonce", self.nonce, SIZE_XNONCE)
        _check("cookie", self.cookie, SIZE_COOKIE + SIZE_TAG)
        return self._LAYOUT.pack(self.msg_type, self.receiver, self.nonce, self.cookie)

    @classmethod
    def parse(cls, data: bytes) -> CookieReply:
        """Parse a cookie reply, raising InvalidMessageFormat on bad length or type."""
        data = bytes(data)
        if len(data) != cls.SIZE:
            raise InvalidMessageFormat()
        msg = cls(*cls._LAYOUT.unpack(data))
        if msg.msg_type != TYPE_COOKIE_REPLY:
            raise InvalidMessageFormat()
        return msg


MAX_HANDSHAKE_MSG_SIZE = max(Response.SIZE, Initiation.SIZE, CookieReply.SIZE)