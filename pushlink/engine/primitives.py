"""Pure types, constants, and unit helpers — stdlib only."""

from __future__ import annotations

import socket
from typing import Final

# Durations are carried in the same units the settings are expressed in.
Seconds = float
Micros = int

# Default pause after each write before polling for a peer close.
WRITE_INTERVAL: Final[Micros] = 10_000

# Default pause between two connect attempts.
CONNECT_RETRY_INTERVAL: Final[Micros] = 1_000_000

# Default time to wait for the read side to change state after a write.
SOCKET_SELECT_TIMEOUT: Final[Micros] = 1_000_000

# Number of retries after the initial attempt (so 4 attempts total).
CONNECT_RETRY_TIMES: Final = 3

# Used when the process has no global socket timeout configured.
FALLBACK_CONNECT_TIMEOUT: Final[Seconds] = 60.0

# Bytes pulled off the socket by a single liveness read.
PROBE_READ_SIZE: Final = 4096

MICROS_PER_SECOND: Final = 1_000_000


def micros_to_seconds(us: Micros) -> Seconds:
    return us / MICROS_PER_SECOND


def default_connect_timeout() -> Seconds:
    """Global socket timeout if one is set, else a fixed 60 seconds."""
    current = socket.getdefaulttimeout()
    return FALLBACK_CONNECT_TIMEOUT if current is None else float(current)
