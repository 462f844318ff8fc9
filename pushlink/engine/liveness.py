"""Post-write liveness probe.

The remote protocol never acknowledges a write. When the server rejects
something it writes an optional error frame and then closes its side of the
connection, so the only way to notice is to look at the read side shortly
after writing:

    handle.write(payload)
    result = probeAfterWrite(handle, writeInterval, socketSelectTimeout)
    if result.broken:
        manager.disconnect()
        manager.connect()

Nothing here loops or reconnects; the caller decides what to do with the
result.
"""
from __future__ import annotations

import select
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from pushlink.engine.primitives import PROBE_READ_SIZE, Micros, micros_to_seconds


class Probeable(Protocol):
    """What the probe needs from a handle."""

    @property
    def closed(self) -> bool: ...
    def fileno(self) -> int: ...
    def read(self, size: int) -> bytes | None: ...
    def pending(self) -> int: ...


@dataclass(frozen=True, slots=True)
class ProbeResult:
    """Outcome of one probe.

    ``broken`` means the peer closed the stream and the connection must be
    re-established before the next write. ``data`` holds whatever arrived
    before the close (typically the server's error frame).
    """

    broken: bool
    data: bytes = b""
    reason: str = ""

    def __bool__(self) -> bool:
        # truthy when the connection is still usable
        return not self.broken


ALIVE = ProbeResult(broken=False)


def probeAfterWrite(
    handle: Probeable | None,
    writeInterval: Micros,
    selectTimeout: Micros,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> ProbeResult:
    """Pause writeInterval, then watch the read side for up to selectTimeout.

    End-of-stream (or a reset) inside the window is reported as broken.
    Application bytes or TLS records carrying none (session tickets) don't
    end the window on their own; the server may still close right after
    sending its error frame.
    """
    if handle is None or handle.closed:
        return ProbeResult(broken=True, reason="no connection")

    if writeInterval > 0:
        sleep(micros_to_seconds(writeInterval))

    deadline = time.monotonic() + micros_to_seconds(selectTimeout)
    data = b""
    while True:
        # bytes already decrypted by the TLS layer won't wake up select()
        if not handle.pending():
            remaining = max(deadline - time.monotonic(), 0.0)
            readable, _, _ = select.select([handle], [], [], remaining)
            if not readable:
                return ProbeResult(broken=False, data=data) if data else ALIVE

        try:
            chunk = handle.read(PROBE_READ_SIZE)
        except OSError as e:
            logger.warning("Connection error during probe: {}", e)
            return ProbeResult(broken=True, data=data, reason=str(e) or "reset")

        if chunk is None:
            if time.monotonic() >= deadline:
                return ProbeResult(broken=False, data=data) if data else ALIVE

            continue

        if chunk == b"":
            logger.warning("Peer closed the connection ({:,} bytes before EOF)", len(data))
            return ProbeResult(broken=True, data=data, reason="end of stream")

        data += chunk
