import pytest

from wghandshake.messages import (
    MAX_HANDSHAKE_MSG_SIZE,
    TYPE_COOKIE_REPLY,
    TYPE_INITIATION,
    TYPE_RESPONSE,
    CookieReply,
    Initiation,
    MacsFooter,
    NoiseInitiation,
    NoiseResponse,
    Response,
)
from wghandshake.types import InvalidMessageFormat

EPHEMERAL = bytes([
    0xc1, 0x66, 0x0a, 0x0c, 0xdc, 0x0f, 0x6c, 0x51, 0x0f, 0xc2, 0xcc, 0x51, 0x52, 0x0c,
    0xde, 0x1e, 0xf7, 0xf1, 0xca, 0x90, 0x86, 0x72, 0xad, 0x67, 0xea, 0x89, 0x45, 0x44,
    0x13, 0x56, 0x52, 0x1f,
])
EMPTY = bytes([
    0x60, 0x0e, 0x1e, 0x95, 0x41, 0x6b, 0x52, 0x05, 0xa2, 0x09, 0xe1, 0xbf, 0x40, 0x05,
    0x2f, 0xde,
])
MAC1 = bytes([
    0xf2, 0xad, 0x40, 0xb5, 0xf7, 0xde, 0x77, 0x35, 0x89, 0x19, 0xb7, 0x5c, 0xf9, 0x54,
    0x69, 0x29,
])
MAC2 = bytes([
    0x4f, 0xd2, 0x1b, 0xfe, 0x77, 0xe6, 0x2e, 0xc9, 0x07, 0xe2, 0x87, 0x17, 0xbb, 0xe5,
    0xdf, 0xbb,
])
STATIC = bytes([
    0xdc, 0x33, 0x90, 0x15, 0x8f, 0x82, 0x3e, 0x06, 0x44, 0xa0, 0xde, 0x4c, 0x15, 0x6c,
    0x5d, 0xa4, 0x65, 0x99, 0xf6, 0x6c, 0xa1, 0x14, 0x77, 0xf9, 0xeb, 0x6a, 0xec, 0xc3,
    0x3c, 0xda, 0x47, 0xe1, 0x45, 0xac, 0x8d, 0x43, 0xea, 0x1b, 0x2f, 0x02, 0x45, 0x5d,
    0x86, 0x37, 0xee, 0x83, 0x6b, 0x42,
])
TIMESTAMP = bytes([
    0x4f, 0x1c, 0x60, 0xec, 0x0e, 0xf6, 0x36, 0xf0, 0x78, 0x28, 0x57, 0x42, 0x60, 0x0e,
    0x1e, 0x95, 0x41, 0x6b, 0x52, 0x05, 0xa2, 0x09, 0xe1, 0xbf, 0x40, 0x05, 0x2f, 0xde,
])


def make_response():
    msg = Response()
    msg.noise.sender = 146252
    msg.noise.receiver = 554442
    msg.noise.ephemeral = EPHEMERAL
    msg.noise.empty = EMPTY
    msg.macs.mac1 = MAC1
    msg.macs.mac2 = MAC2
    return msg


def make_initiation():
    msg = Initiation()
    msg.noise.sender = 575757
    msg.noise.ephemeral = EPHEMERAL
    msg.noise.static = STATIC
    msg.noise.timestamp = TIMESTAMP
    msg.macs.mac1 = MAC1
    msg.macs.mac2 = MAC2
    return msg


def test_message_response_identity():
    msg = make_response()
    buf = msg.to_bytes()
    assert Response.parse(buf) == msg


def test_message_initiate_identity():
    msg = make_initiation()
    buf = msg.to_bytes()
    assert Initiation.parse(buf) == msg


def test_sizes():
    assert len(Initiation().to_bytes()) == 148
    assert len(Response().to_bytes()) == 92
    assert len(CookieReply().to_bytes()) == 64
    assert MAX_HANDSHAKE_MSG_SIZE == 148


def test_type_fields_lead_in_little_endian():
    assert Initiation().to_bytes()[:4] == TYPE_INITIATION.to_bytes(4, "little")
    assert Response().to_bytes()[:4] == TYPE_RESPONSE.to_bytes(4, "little")
    assert CookieReply().to_bytes()[:4] == TYPE_COOKIE_REPLY.to_bytes(4, "little")


def test_sender_is_little_endian():
    buf = make_initiation().to_bytes()
    assert buf[4:8] == (575757).to_bytes(4, "little")
    assert buf[8:40] == EPHEMERAL


def test_cookie_reply_identity():
    msg = CookieReply(receiver=42, nonce=bytes(range(24)), cookie=bytes(range(32)))
    assert CookieReply.parse(msg.to_bytes()) == msg


@pytest.mark.parametrize("parser, good", [
    (Initiation.parse, Initiation().to_bytes()),
    (Response.parse, Response().to_bytes()),
    (CookieReply.parse, CookieReply().to_bytes()),
])
def test_wrong_length_rejected(parser, good):
    with pytest.raises(InvalidMessageFormat):
        parser(good[:-1])
    with pytest.raises(InvalidMessageFormat):
        parser(good + b"\x00")


def test_wrong_type_rejected():
    with pytest.raises(InvalidMessageFormat):
        Initiation.parse(Initiation(noise=NoiseInitiation(msg_type=TYPE_RESPONSE)).to_bytes())
    with pytest.raises(InvalidMessageFormat):
        Response.parse(Response(noise=NoiseResponse(msg_type=TYPE_INITIATION)).to_bytes())
    with pytest.raises(InvalidMessageFormat):
        CookieReply.parse(CookieReply(msg_type=TYPE_INITIATION).to_bytes())


def test_response_bytes_cannot_parse_as_initiation():
    with pytest.raises(InvalidMessageFormat):
        Initiation.parse(make_response().to_bytes())


def test_macs_footer_concatenates():
    assert MacsFooter(mac1=MAC1, mac2=MAC2).to_bytes() == MAC1 + MAC2


def test_bad_field_length_rejected_on_serialise():
    with pytest.raises(ValueError):
        MacsFooter(mac1=b"\x00" * 3).to_bytes()