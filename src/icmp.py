"""ICMP and ICMPv6 message encoding and decoding."""

import struct
from dataclasses import dataclass
from typing import Tuple

from .errors import ParseError, SerializationError

# ICMP types
ICMP_ECHO_REPLY = 0
ICMP_ECHO_REQUEST = 8
ICMP_TIME_EXCEEDED = 11

# ICMPv6 types
ICMPV6_TIME_EXCEEDED = 3
ICMPV6_ECHO_REQUEST = 128
ICMPV6_ECHO_REPLY = 129

HEADER_SIZE = 4
IPV4_MIN_HEADER_SIZE = 20


@dataclass(frozen=True)
class IcmpMessage:
    """A parsed ICMP message."""

    type: int
    code: int
    checksum: int
    body: bytes

    def echo(self) -> Tuple[int, int, bytes]:
        """Return (identifier, sequence, data) of an echo body."""
        if len(self.body) < 4:
            raise ParseError("message too short")
        ident, seq = struct.unpack("!HH", self.body[:4])
        return ident, seq, self.body[4:]

    def __str__(self) -> str:
        return (
            f"type={self.type} code={self.code} "
            f"checksum=0x{self.checksum:04x} body={self.body.hex()}"
        )


def checksum(data: bytes) -> int:
    """Calculate the Internet checksum (RFC 1071)."""
    if len(data) % 2:
        data += b"\x00"

    total = sum(int.from_bytes(data[i : i + 2], "big") for i in range(0, len(data), 2))
    total = (total >> 16) + (total & 0xFFFF)
    total += total >> 16
    return ~total & 0xFFFF


def build_echo_request(
    icmp_type: int, ident: int, seq: int, payload: bytes, with_checksum: bool = True
) -> bytes:
    """Serialize an echo request.

    ICMPv6 raw sockets have the kernel compute the checksum over the
    pseudo-header, so callers pass ``with_checksum=False`` there and the
    field is left zero.
    """
    # Echo / Echo Reply Message (RFC 792, RFC 4443)
    #
    #  0                            15                               31
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |     Type      |     Code      |           Checksum            |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |           Identifier          |        Sequence Number        |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |                         Payload Data                          |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    try:
        header = struct.pack("!BBHHH", icmp_type, 0, 0, ident, seq)
    except struct.error as e:
        raise SerializationError(f"cannot build echo request: {e}") from e

    if with_checksum:
        csum = checksum(header + payload)
        header = struct.pack("!BBHHH", icmp_type, 0, csum, ident, seq)

    return header + payload


def strip_ipv4_header(data: bytes) -> bytes:
    """Return the payload of an IPv4 datagram read from a raw socket."""

    # IP Header Structure
    # 0                              15                              31
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |Version|  IHL  |Type of Service|          Total Length         |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |         Identification        |Flags|      Fragment Offset    |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    # |  Time to Live |    Protocol   |         Header Checksum       |
    # +-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+-+
    if len(data) < IPV4_MIN_HEADER_SIZE:
        raise ParseError("header too short")

    version = data[0] >> 4
    if version != 4:
        raise ParseError(f"invalid IP version {version}")

    header_len = (data[0] & 0x0F) * 4
    if header_len < IPV4_MIN_HEADER_SIZE or header_len > len(data):
        raise ParseError(f"invalid header length {header_len}")

    return data[header_len:]


def ipv4_ttl(data: bytes):
    """TTL of a raw IPv4 datagram, or None if the header is truncated."""
    if len(data) < IPV4_MIN_HEADER_SIZE:
        return None
    return data[8]


def parse_message(
    data: bytes, echo_types: Tuple[int, ...] = (), verify_checksum: bool = False
) -> IcmpMessage:
    """Parse an ICMP message (without any IP header).

    Messages whose type is in ``echo_types`` must carry an identifier and
    sequence number.
    """
    if len(data) < HEADER_SIZE:
        raise ParseError("message too short")

    icmp_type, code, csum = struct.unpack("!BBH", data[:HEADER_SIZE])

    if verify_checksum and checksum(data) != 0:
        raise ParseError(f"invalid checksum 0x{csum:04x}")

    message = IcmpMessage(type=icmp_type, code=code, checksum=csum, body=data[HEADER_SIZE:])
    if icmp_type in echo_types:
        message.echo()
    return message
