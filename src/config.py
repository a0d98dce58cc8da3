"""Default settings for a probe."""

from dataclasses import dataclass


@dataclass
class Settings:
    hop_limit: int = 64
    timeout: int = 1000  # milliseconds
    recv_buffer_size: int = 1280
    payload_v4: bytes = b"icmp"
    payload_v6: bytes = b"icmp6"
