"""Shared test fixtures for the pushlink test suite.

LocalTLSServer is a real mutual-TLS server on 127.0.0.1, so integration
tests exercise actual handshakes without any network access. The fakes
below let baseline tests drive the retry loop without sockets or sleeping.
"""

import socket
import ssl
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest
from loguru import logger

from pushlink.engine import Endpoint, EndpointResolver, Environment

FIXTURES = Path(__file__).parent / "fixtures"

PROVIDER_PEM = FIXTURES / "provider.pem"
PROVIDER_ENCRYPTED_PEM = FIXTURES / "provider-encrypted.pem"
PROVIDER_PASSPHRASE = "hunter2"
SERVER_PEM = FIXTURES / "server.pem"
CA_PEM = FIXTURES / "ca.pem"
GARBAGE_PEM = FIXTURES / "garbage.pem"

# APNs-style error response: command 8, status 8 (invalid token), identifier 1
ERROR_FRAME = b"\x08\x08\x00\x00\x00\x01"


# ── Fakes ──


@dataclass
class FakeSleep:
    """Records requested pauses instead of sleeping."""

    calls: list[float] = field(default_factory=list)

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


@dataclass
class RecordingObserver:
    """Observer that remembers every event in order."""

    events: list[tuple[str, Any]] = field(default_factory=list)

    def attemptStarted(self, endpoint, attempt, policy):
        self.events.append(("start", attempt))

    def attemptFailed(self, endpoint, attempt, policy, error):
        self.events.append(("fail", attempt))

    def retryScheduled(self, endpoint, attempt, policy):
        self.events.append(("retry", attempt))

    def connected(self, endpoint, attempt):
        self.events.append(("connected", attempt))

    def disconnected(self, endpoint):
        self.events.append(("disconnected", None))

    def kinds(self) -> list[str]:
        return [kind for kind, _ in self.events]


class FakeSocket:
    """Stands in for a connected ssl.SSLSocket."""

    def __init__(self):
        self._fd = 99
        self.blocking = True
        self.options: dict = {}

    def setblocking(self, flag):
        self.blocking = flag

    def setsockopt(self, level, opt, value):
        self.options[(level, opt)] = value

    def fileno(self):
        return self._fd

    def close(self):
        self._fd = -1


class FlakyOpener:
    """Opener failing the first `failures` attempts, then succeeding."""

    def __init__(self, failures: int, error: type[OSError] = ConnectionRefusedError):
        self.failures = failures
        self.error = error
        self.calls: list[tuple[Endpoint, Any, float]] = []
        self.sockets: list[FakeSocket] = []

    def __call__(self, endpoint, tls, timeout):
        self.calls.append((endpoint, tls, timeout))
        if len(self.calls) <= self.failures:
            raise self.error(f"refused (attempt {len(self.calls)})")

        sock = FakeSocket()
        self.sockets.append(sock)
        return sock


# ── Local TLS server ──


class LocalTLSServer:
    """Mutual-TLS server for a single test.

    behavior:
      "hold"   — complete the handshake and keep the connection open
      "reject" — read one write, answer with ERROR_FRAME, then close
    """

    def __init__(self, behavior: str = "hold"):
        self.behavior = behavior
        self.context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        self.context.load_cert_chain(SERVER_PEM)
        self.context.load_verify_locations(cafile=CA_PEM)
        self.context.verify_mode = ssl.CERT_REQUIRED

        self.listener = socket.create_server(("127.0.0.1", 0))
        self.listener.settimeout(0.1)
        self.port = self.listener.getsockname()[1]

        self.accepted = 0
        self.handshakeFailures = 0
        self.received: list[bytes] = []
        self.peerCerts: list[dict] = []
        self.clients: list[ssl.SSLSocket] = []

        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._serve, daemon=True)

    def endpoint(self, host: str = "127.0.0.1") -> Endpoint:
        return Endpoint("ssl", host, self.port)

    def resolver(self, host: str = "127.0.0.1") -> EndpointResolver:
        ep = self.endpoint(host)
        return EndpointResolver(endpoints={env: ep for env in Environment})

    def start(self) -> "LocalTLSServer":
        self._thread.start()
        return self

    def stop(self) -> None:
        self._stop.set()
        self._thread.join(timeout=5)
        for c in self.clients:
            c.close()

        self.listener.close()

    def _serve(self) -> None:
        while not self._stop.is_set():
            try:
                raw, _ = self.listener.accept()
            except TimeoutError:
                continue
            except OSError:
                break

            raw.settimeout(5)
            try:
                conn = self.context.wrap_socket(raw, server_side=True)
            except (ssl.SSLError, OSError) as e:
                logger.debug("[test server] handshake failed: {}", e)
                self.handshakeFailures += 1
                raw.close()
                continue

            self.accepted += 1
            self.peerCerts.append(conn.getpeercert() or {})

            if self.behavior == "reject":
                try:
                    if data := conn.recv(4096):
                        self.received.append(data)
                        conn.sendall(ERROR_FRAME)
                except OSError as e:
                    logger.debug("[test server] client went away: {}", e)
                finally:
                    conn.close()
            else:
                self.clients.append(conn)


def waitFor(predicate, timeout: float = 5.0) -> bool:
    """Poll predicate until true or timeout; server state lags the client."""
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() >= deadline:
            return False

        time.sleep(0.01)

    return True


@pytest.fixture
def tls_server():
    server = LocalTLSServer("hold").start()
    yield server
    server.stop()


@pytest.fixture
def rejecting_server():
    server = LocalTLSServer("reject").start()
    yield server
    server.stop()


@pytest.fixture
def closed_port() -> int:
    """A localhost port with nothing listening on it."""
    s = socket.socket()
    s.bind(("127.0.0.1", 0))
    port = s.getsockname()[1]
    s.close()
    return port


@pytest.fixture
def observer() -> RecordingObserver:
    return RecordingObserver()
