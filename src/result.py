"""Probe request and result records."""

import enum
from dataclasses import dataclass
from typing import Optional

from .config import Settings


class Outcome(enum.Enum):
    SUCCESS = "success"
    TIME_EXCEEDED = "time_exceeded"
    ERROR = "error"
    OTHER = "other"


@dataclass(frozen=True)
class ProbeRequest:
    """Input to a single probe."""

    destination: str
    ip_version: int = 4
    hop_limit: int = Settings.hop_limit
    timeout: int = Settings.timeout  # milliseconds


@dataclass(frozen=True)
class ProbeResult:
    """Result of a single probe."""

    target: str
    outcome: Outcome
    message: str = ""
    last_hop: Optional[str] = None
    hop_limit: Optional[int] = None
    rtt: Optional[str] = None  # milliseconds, three decimals
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict:
        """Key-value form of the result; unset optional fields are left out."""
        data = {
            "target": self.target,
            "outcome": self.outcome.value,
            "lasthop": self.last_hop or "",
        }
        if self.hop_limit is not None:
            data["ttl"] = self.hop_limit
        if self.rtt is not None:
            data["rtt"] = self.rtt
        if self.message:
            data["message"] = self.message
        if self.error is not None:
            data["error"] = self.error
        return data
