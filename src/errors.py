"""Exceptions raised while running a probe.

Each class maps to the stage of the probe that failed. They never escape
``oneping.probe.run``; the engine turns them into an error result.
"""


class ProbeError(Exception):
    """Base class for probe failures."""

    stage = "probe"


class InvalidRequestError(ProbeError):
    stage = "invalid_request"


class SetupError(ProbeError):
    """Raw socket could not be opened or configured."""

    stage = "setup"


class ResolutionError(ProbeError):
    stage = "resolution"


class SerializationError(ProbeError):
    stage = "serialization"


class TransmissionError(ProbeError):
    stage = "transmission"


class ReceiveError(ProbeError):
    """No reply before the deadline, or the read failed."""

    stage = "receive"


class ParseError(ProbeError):
    stage = "parse"
