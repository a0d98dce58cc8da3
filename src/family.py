"""Address family strategies for IPv4 (ICMP) and IPv6 (ICMPv6).

The probe engine is written once against :class:`Family`; each subclass
supplies the socket options, resolver family and ICMP type numbers of
its protocol.
"""

import logging
import socket
import struct
from dataclasses import dataclass
from typing import Optional, Tuple

from . import icmp
from .errors import ParseError, ReceiveError, ResolutionError, SetupError
from .result import Outcome

logger = logging.getLogger(__name__)


@dataclass
class Datagram:
    """A datagram read from a raw ICMP socket."""

    data: bytes
    address: str
    hop_limit: Optional[int] = None


class Family:
    """Operations that differ between IPv4 and IPv6 probes."""

    version = 0
    af = socket.AF_UNSPEC
    proto = 0
    unspecified = ""
    echo_request = 0
    echo_reply = 0
    time_exceeded = 0

    def open_socket(self) -> socket.socket:
        """Open a raw ICMP socket bound to the unspecified address."""
        try:
            sock = socket.socket(self.af, socket.SOCK_RAW, self.proto)
        except PermissionError as e:
            raise SetupError(
                f"Permission denied ({e.strerror}). "
                "Run with root/administrator privileges."
            ) from e
        except OSError as e:
            raise SetupError(f"cannot open raw socket: {e}") from e

        try:
            sock.bind((self.unspecified, 0))
            self._configure(sock)
        except OSError as e:
            sock.close()
            raise SetupError(f"cannot configure raw socket: {e}") from e

        logger.debug("opened raw ICMPv%d socket", self.version)
        return sock

    def _configure(self, sock: socket.socket):
        pass

    def set_hop_limit(self, sock: socket.socket, hop_limit: int):
        raise NotImplementedError

    def resolve(self, destination: str) -> Tuple:
        """Resolve destination to a sockaddr of this family."""
        try:
            # A port of 0 with SOCK_RAW is rejected by glibc; None is not.
            infos = socket.getaddrinfo(
                destination, None, family=self.af, type=socket.SOCK_RAW, proto=self.proto
            )
        except socket.gaierror as e:
            raise ResolutionError(
                f"Cannot resolve host {destination} for IPv{self.version}: {e.strerror}"
            ) from e
        except UnicodeError as e:
            # idna rejects empty labels and labels over 63 characters.
            raise ResolutionError(f"Cannot resolve host {destination}: {e}") from e
        if not infos:
            raise ResolutionError(f"Cannot resolve host {destination}: no addresses")
        return infos[0][4]

    def build_request(self, ident: int, seq: int, payload: bytes) -> bytes:
        return icmp.build_echo_request(self.echo_request, ident, seq, payload)

    def receive(self, sock: socket.socket, bufsize: int) -> Datagram:
        raise NotImplementedError

    def parse(self, data: bytes) -> icmp.IcmpMessage:
        return icmp.parse_message(data, echo_types=(self.echo_request, self.echo_reply))

    def is_own_request(self, data: bytes, ident: int) -> bool:
        """Whether data is a copy of an echo request sent with ident.

        Raw sockets see locally delivered requests, so probing a local
        address returns the outgoing packet before the reply.
        """
        try:
            message = self.parse(data)
        except ParseError:
            return False
        return message.type == self.echo_request and message.echo()[0] == ident

    def classify(self, message: icmp.IcmpMessage) -> Outcome:
        if message.type == self.echo_reply:
            return Outcome.SUCCESS
        if message.type == self.time_exceeded:
            return Outcome.TIME_EXCEEDED
        return Outcome.OTHER


class IPv4(Family):
    version = 4
    af = socket.AF_INET
    proto = socket.IPPROTO_ICMP
    unspecified = "0.0.0.0"
    echo_request = icmp.ICMP_ECHO_REQUEST
    echo_reply = icmp.ICMP_ECHO_REPLY
    time_exceeded = icmp.ICMP_TIME_EXCEEDED

    def set_hop_limit(self, sock: socket.socket, hop_limit: int):
        try:
            sock.setsockopt(socket.IPPROTO_IP, socket.IP_TTL, hop_limit)
        except OSError as e:
            raise SetupError(f"cannot set TTL {hop_limit}: {e}") from e

    def receive(self, sock: socket.socket, bufsize: int) -> Datagram:
        try:
            data, addr = sock.recvfrom(bufsize)
        except socket.timeout as e:
            raise ReceiveError("Request timed out waiting for reply") from e
        except OSError as e:
            raise ReceiveError(f"read failed: {e}") from e
        # The kernel hands IPv4 raw sockets the full datagram, header included.
        return Datagram(data=data, address=addr[0], hop_limit=icmp.ipv4_ttl(data))

    def parse(self, data: bytes) -> icmp.IcmpMessage:
        return icmp.parse_message(
            icmp.strip_ipv4_header(data),
            echo_types=(self.echo_request, self.echo_reply),
            verify_checksum=True,
        )


class IPv6(Family):
    version = 6
    af = socket.AF_INET6
    proto = socket.IPPROTO_ICMPV6
    unspecified = "::"
    echo_request = icmp.ICMPV6_ECHO_REQUEST
    echo_reply = icmp.ICMPV6_ECHO_REPLY
    time_exceeded = icmp.ICMPV6_TIME_EXCEEDED

    def _configure(self, sock: socket.socket):
        if hasattr(socket, "IPV6_RECVHOPLIMIT"):
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_RECVHOPLIMIT, 1)

    def set_hop_limit(self, sock: socket.socket, hop_limit: int):
        try:
            sock.setsockopt(socket.IPPROTO_IPV6, socket.IPV6_UNICAST_HOPS, hop_limit)
        except OSError as e:
            raise SetupError(f"cannot set hop limit {hop_limit}: {e}") from e

    def build_request(self, ident: int, seq: int, payload: bytes) -> bytes:
        return icmp.build_echo_request(
            self.echo_request, ident, seq, payload, with_checksum=False
        )

    def receive(self, sock: socket.socket, bufsize: int) -> Datagram:
        try:
            data, ancdata, _, addr = sock.recvmsg(
                bufsize, socket.CMSG_SPACE(struct.calcsize("i"))
            )
        except socket.timeout as e:
            raise ReceiveError("Request timed out waiting for reply") from e
        except OSError as e:
            raise ReceiveError(f"read failed: {e}") from e

        hop_limit = None
        for level, ctype, cdata in ancdata:
            if level == socket.IPPROTO_IPV6 and ctype == getattr(socket, "IPV6_HOPLIMIT", None):
                hop_limit = struct.unpack("i", cdata[: struct.calcsize("i")])[0]
        return Datagram(data=data, address=addr[0], hop_limit=hop_limit)


FAMILIES = {4: IPv4(), 6: IPv6()}


def for_version(ip_version: int) -> Family:
    return FAMILIES[ip_version]
