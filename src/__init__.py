"""One-shot ICMP echo probe for IPv4 and IPv6."""

__version__ = "0.1.0"

from .config import Settings
from .errors import ProbeError
from .probe import probe, probe4, probe6, run
from .result import Outcome, ProbeRequest, ProbeResult

__all__ = [
    "probe",
    "probe4",
    "probe6",
    "run",
    "ProbeRequest",
    "ProbeResult",
    "Outcome",
    "ProbeError",
    "Settings",
]
