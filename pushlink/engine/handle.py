"""The live transport handed out to collaborators after connect()."""
from __future__ import annotations

import select
import socket
import ssl
from dataclasses import dataclass, field

import whenever
from loguru import logger

from pushlink.engine.endpoints import Endpoint
from pushlink.engine.primitives import Seconds


@dataclass(slots=True)
class ConnectionHandle:
    """Non-blocking TLS stream bound to one endpoint.

    Owned by the ConnectionManager that created it. Collaborators may read
    and write through it but must drop it once the manager disconnects.
    """

    sock: ssl.SSLSocket
    endpoint: Endpoint
    connectedAt: whenever.Instant = field(default_factory=whenever.Instant.now)

    @classmethod
    def adopt(cls, sock: ssl.SSLSocket, endpoint: Endpoint) -> ConnectionHandle:
        """Take ownership of a freshly handshaken socket.

        Switches it to non-blocking mode and turns off Nagle coalescing so a
        write goes out immediately instead of waiting in a client-side buffer.
        """
        sock.setblocking(False)

        try:
            sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        except OSError as e:
            # not every transport is TCP (socketpairs in tests, for one)
            logger.debug("[{}] TCP_NODELAY not applied: {}", endpoint, e)

        return cls(sock, endpoint)

    @property
    def closed(self) -> bool:
        return self.sock.fileno() == -1

    def fileno(self) -> int:
        return self.sock.fileno()

    def write(self, data: bytes, timeout: Seconds | None = None) -> int:
        """Write all of data, waiting for writability when the socket is full.

        Returns the number of bytes written. Raises TimeoutError if the socket
        stays unwritable longer than timeout (None waits forever).
        """
        view = memoryview(data)
        sent = 0
        while sent < len(view):
            try:
                sent += self.sock.send(view[sent:])
            except ssl.SSLWantReadError:
                # renegotiation or a post-handshake message needs inbound data first
                readable, _, _ = select.select([self.sock], [], [], timeout)
                if not readable:
                    raise TimeoutError(
                        f"{self.endpoint}: socket not readable after {timeout}s"
                    ) from None
            except (ssl.SSLWantWriteError, BlockingIOError):
                _, writable, _ = select.select([], [self.sock], [], timeout)
                if not writable:
                    raise TimeoutError(
                        f"{self.endpoint}: socket not writable after {timeout}s"
                    ) from None

        return sent

    def read(self, size: int) -> bytes | None:
        """Read up to size bytes.

        Returns b"" at end-of-stream and None when nothing is available yet.
        """
        try:
            return self.sock.recv(size)
        except (ssl.SSLWantReadError, ssl.SSLWantWriteError, BlockingIOError):
            return None

    def pending(self) -> int:
        """Decrypted bytes already buffered inside the TLS layer."""
        return self.sock.pending()

    def close(self) -> None:
        if self.closed:
            return

        try:
            self.sock.close()
        finally:
            logger.debug("[{}] Socket closed", self.endpoint)
