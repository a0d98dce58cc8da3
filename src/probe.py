"""Single-shot ICMP echo probe.

Sends one Echo Request with a given hop limit and waits for one reply:

    result = probe("127.0.0.1", hop_limit=64, timeout=1000)
    print(result.outcome, result.rtt)

Raw sockets need privileges. Run as root or grant CAP_NET_RAW.
"""

import logging
import os
import time
from typing import Optional

from .config import Settings
from .errors import (
    InvalidRequestError,
    ParseError,
    ProbeError,
    ReceiveError,
    TransmissionError,
)
from .family import Datagram, Family, for_version
from .result import Outcome, ProbeRequest, ProbeResult

logger = logging.getLogger(__name__)

ECHO_SEQUENCE = 1

_MESSAGES = {
    Outcome.SUCCESS: "echo reply",
    Outcome.TIME_EXCEEDED: "time exceeded",
}


class _Exchange:
    """What was observed on the wire before the probe finished or failed."""

    def __init__(self):
        self.datagram: Optional[Datagram] = None
        self.rtt: Optional[str] = None


def _format_rtt(start: float, end: float) -> str:
    micros = int((end - start) * 1_000_000)
    return f"{micros / 1000:.3f}"


def _validate(request: ProbeRequest):
    if request.ip_version not in (4, 6):
        raise InvalidRequestError(f"unsupported IP version {request.ip_version}")
    if not 0 <= request.hop_limit <= 255:
        raise InvalidRequestError(f"hop limit {request.hop_limit} out of range 0-255")
    if request.timeout <= 0:
        raise InvalidRequestError(f"timeout must be positive, got {request.timeout}")


def _receive(family: Family, sock, deadline: float, bufsize: int, ident: int) -> Datagram:
    """Read the next datagram that is not a copy of our own request."""
    while True:
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ReceiveError("Request timed out waiting for reply")
        sock.settimeout(remaining)

        datagram = family.receive(sock, bufsize)
        if family.is_own_request(datagram.data, ident):
            logger.debug("discarding own echo request looped back from %s", datagram.address)
            continue
        return datagram


def _exchange(request: ProbeRequest, settings: Settings, exchange: _Exchange):
    family = for_version(request.ip_version)
    payload = settings.payload_v4 if request.ip_version == 4 else settings.payload_v6

    sock = family.open_socket()
    try:
        family.set_hop_limit(sock, request.hop_limit)
        sockaddr = family.resolve(request.destination)

        ident = os.getpid() & 0xFFFF
        packet = family.build_request(ident, ECHO_SEQUENCE, payload)

        send_time = time.perf_counter()
        try:
            sock.sendto(packet, sockaddr)
        except OSError as e:
            raise TransmissionError(f"send to {sockaddr[0]} failed: {e}") from e
        logger.debug(
            "sent echo request id=%d seq=%d to %s hop_limit=%d",
            ident,
            ECHO_SEQUENCE,
            sockaddr[0],
            request.hop_limit,
        )

        deadline = time.monotonic() + request.timeout / 1000
        datagram = _receive(family, sock, deadline, settings.recv_buffer_size, ident)
        recv_time = time.perf_counter()

        exchange.datagram = datagram
        exchange.rtt = _format_rtt(send_time, recv_time)
        logger.debug("received %d bytes from %s", len(datagram.data), datagram.address)
    finally:
        sock.close()

    reply = family.parse(datagram.data)
    outcome = family.classify(reply)
    logger.debug("reply from %s classified as %s", datagram.address, outcome.value)
    return outcome, _MESSAGES.get(outcome, str(reply))


def run(request: ProbeRequest, settings: Optional[Settings] = None) -> ProbeResult:
    """Run one probe and return its result. Never raises for probe failures."""
    settings = settings or Settings()
    exchange = _Exchange()

    try:
        _validate(request)
        outcome, message = _exchange(request, settings, exchange)
        error = None
    except ProbeError as e:
        if isinstance(e, ParseError):
            logger.warning("unparseable reply from %s: %s", exchange.datagram.address, e)
        else:
            logger.debug("probe to %s failed at %s: %s", request.destination, e.stage, e)
        outcome, message, error = Outcome.ERROR, str(e), e.stage

    datagram = exchange.datagram
    return ProbeResult(
        target=request.destination,
        outcome=outcome,
        message=message,
        last_hop=datagram.address if datagram else None,
        hop_limit=datagram.hop_limit if datagram else None,
        rtt=exchange.rtt,
        error=error,
    )


def probe(
    destination: str,
    hop_limit: int = Settings.hop_limit,
    timeout: int = Settings.timeout,
    ip_version: int = 4,
) -> ProbeResult:
    """Probe destination over the given IP version. Timeout is in milliseconds."""
    return run(
        ProbeRequest(
            destination=destination,
            ip_version=ip_version,
            hop_limit=hop_limit,
            timeout=timeout,
        )
    )


def probe4(
    destination: str,
    hop_limit: int = Settings.hop_limit,
    timeout: int = Settings.timeout,
) -> ProbeResult:
    return probe(destination, hop_limit=hop_limit, timeout=timeout, ip_version=4)


def probe6(
    destination: str,
    hop_limit: int = Settings.hop_limit,
    timeout: int = Settings.timeout,
) -> ProbeResult:
    return probe(destination, hop_limit=hop_limit, timeout=timeout, ip_version=6)
