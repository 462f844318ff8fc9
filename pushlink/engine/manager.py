"""Connection lifecycle: the retry loop, the live handle, and the settings."""
from __future__ import annotations

import enum
import os
import time
from collections.abc import Callable
from typing import Any

from loguru import logger

from pushlink.engine.endpoints import Endpoint, EndpointResolver, Environment, Service
from pushlink.engine.errors import ConfigurationError, ConnectionError
from pushlink.engine.handle import ConnectionHandle
from pushlink.engine.liveness import ProbeResult, probeAfterWrite
from pushlink.engine.primitives import Micros, Seconds
from pushlink.engine.protocols import ConnectionObserver, NullObserver
from pushlink.engine.retry import RetryPolicy
from pushlink.engine.session import ConnectionConfig, ConnectionSettings, nonNegative, positive, readable
from pushlink.engine.tlscontext import TLSContextBuilder, openTLSStream

# (endpoint, tls context, timeout seconds) -> connected TLS socket
Opener = Callable[..., Any]


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ConnectionManager:
    """Owns one TLS connection to the endpoint selected by environment.

    connect() blocks: each attempt is bounded by the connect timeout and
    failed attempts are separated by the (constant) retry interval. A retry
    count of N allows N + 1 attempts before ConnectionError is raised.

    Dependencies injected at construction (all optional):
    - service / resolver: which endpoint table to use
    - observer: receives lifecycle events (NullObserver by default)
    - builder / opener: TLS context construction and the single-attempt connect
    - sleep: pause primitive between attempts (time.sleep by default)

    Not thread-safe; drive each instance from a single control flow.
    """

    def __init__(
        self,
        environment: Environment | int | str,
        providerCertificateFile: str | os.PathLike,
        *,
        service: Service | str = Service.GATEWAY,
        resolver: EndpointResolver | None = None,
        observer: ConnectionObserver | None = None,
        builder: TLSContextBuilder | None = None,
        opener: Opener | None = None,
        sleep: Callable[[float], None] = time.sleep,
        config: ConnectionConfig | None = None,
    ):
        self.environment = Environment.coerce(environment)

        providerCertificateFile = os.fspath(providerCertificateFile)
        if not readable(providerCertificateFile):
            raise ConfigurationError(
                f"Unable to read certificate file '{providerCertificateFile}'"
            )

        if config is None:
            config = ConnectionConfig(providerCertificateFile=providerCertificateFile)
        else:
            config.providerCertificateFile = providerCertificateFile

        self.config = config
        self.resolver = resolver or EndpointResolver(service)
        self.observer: ConnectionObserver = observer or NullObserver()
        self.builder = builder or TLSContextBuilder()
        self.opener = opener or openTLSStream
        self.sleep = sleep

        self.state = ConnectionState.DISCONNECTED
        self.handle: ConnectionHandle | None = None

        # fail now rather than on the first connect()
        self.endpoint: Endpoint = self.resolver.resolve(self.environment)

    @classmethod
    def fromConfig(cls, config: ConnectionConfig, **kwargs) -> ConnectionManager:
        """Build a manager from a (usually env-loaded) config."""
        if config.environment is None:
            raise ConfigurationError("No environment configured")

        if config.service is not None:
            kwargs.setdefault("service", config.service)

        if config.rootCertificationAuthorityFile is not None and not readable(
            config.rootCertificationAuthorityFile
        ):
            raise ConfigurationError(
                f"Unable to read Certificate Authority file '{config.rootCertificationAuthorityFile}'"
            )

        return cls(config.environment, config.providerCertificateFile, config=config, **kwargs)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.environment.name} {self.endpoint} {self.state.value}>"

    @property
    def connected(self) -> bool:
        return self.state == ConnectionState.CONNECTED and self.handle is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def connect(self) -> ConnectionHandle:
        """Connect, retrying on failure; return the live handle.

        Raises ConnectionError once the retry budget is spent and
        CertificateError (never retried) if the TLS material is unusable.
        """
        if self.handle is not None:
            # only ever one handle per manager
            self.disconnect()

        settings = self.config.freeze()
        policy = RetryPolicy.fromSettings(settings)
        endpoint = self.endpoint

        self.state = ConnectionState.CONNECTING
        try:
            sock, attempt = self._attempt(endpoint, settings, policy)
        except BaseException:
            # retries spent, bad certificate, observer failure or interrupt
            self.state = ConnectionState.DISCONNECTED
            raise

        self.handle = ConnectionHandle.adopt(sock, endpoint)
        self.state = ConnectionState.CONNECTED
        self.observer.connected(endpoint, attempt)
        return self.handle

    def _attempt(
        self, endpoint: Endpoint, settings: ConnectionSettings, policy: RetryPolicy
    ) -> tuple[Any, int]:
        """Run attempts until one succeeds; return (socket, attempt index)."""
        attempt = 0
        while True:
            self.observer.attemptStarted(endpoint, attempt, policy)

            try:
                tls = self.builder.build(settings)
                return self.opener(endpoint, tls, settings.connectTimeout), attempt
            except OSError as e:
                self.observer.attemptFailed(endpoint, attempt, policy, e)

                if not policy.shouldRetry(attempt + 1):
                    raise ConnectionError(
                        f"Unable to connect to '{endpoint}' after {attempt + 1} attempt(s): {e}",
                        endpoint=endpoint,
                        attempts=attempt + 1,
                    ) from e

            self.observer.retryScheduled(endpoint, attempt, policy)
            self.sleep(policy.intervalSeconds)
            attempt += 1

    def disconnect(self) -> bool:
        """Close the live handle.

        Returns True if a handle was closed, False if there was nothing to
        close. Never raises.
        """
        handle = self.handle
        self.handle = None
        self.state = ConnectionState.DISCONNECTED

        if handle is None:
            return False

        try:
            handle.close()
        except OSError as e:
            logger.warning("[{}] Error while closing socket: {}", handle.endpoint, e)

        self.observer.disconnected(handle.endpoint)
        return True

    def reconnect(self) -> ConnectionHandle:
        self.disconnect()
        return self.connect()

    def probe(self) -> ProbeResult:
        """Run the post-write liveness probe on the current handle."""
        return probeAfterWrite(
            self.handle,
            self.config.writeInterval,
            self.config.socketSelectTimeout,
            sleep=self.sleep,
        )

    # ------------------------------------------------------------------
    # Settings (picked up by the next connect())
    # ------------------------------------------------------------------

    def setProviderCertificatePassphrase(self, passphrase: str | None) -> None:
        self.config.providerCertificatePassphrase = passphrase or None

    def setRootCertificationAuthority(self, path: str | os.PathLike) -> None:
        """Set the root CA file; this also turns peer verification on.

        The previous value is kept if the new file can't be read."""
        path = os.fspath(path)
        if not readable(path):
            raise ConfigurationError(f"Unable to read Certificate Authority file '{path}'")

        self.config.rootCertificationAuthorityFile = path

    def getCertificateAuthority(self) -> str | None:
        return self.config.rootCertificationAuthorityFile

    def setConnectTimeout(self, timeout: Seconds) -> None:
        self.config.connectTimeout = positive("connect timeout", float(timeout))

    def getConnectTimeout(self) -> Seconds:
        return self.config.connectTimeout

    def setConnectRetryTimes(self, retryTimes: int) -> None:
        self.config.connectRetryTimes = nonNegative("connect retry times", int(retryTimes))

    def getConnectRetryTimes(self) -> int:
        return self.config.connectRetryTimes

    def setConnectRetryInterval(self, interval: Micros) -> None:
        self.config.connectRetryInterval = nonNegative("connect retry interval", int(interval))

    def getConnectRetryInterval(self) -> Micros:
        return self.config.connectRetryInterval

    def setWriteInterval(self, interval: Micros) -> None:
        """Pause after each write before probing.

        Zero speeds up sending but a rejected write may go unnoticed."""
        self.config.writeInterval = nonNegative("write interval", int(interval))

    def getWriteInterval(self) -> Micros:
        return self.config.writeInterval

    def setSocketSelectTimeout(self, timeout: Micros) -> None:
        self.config.socketSelectTimeout = nonNegative("socket select timeout", int(timeout))

    def getSocketSelectTimeout(self) -> Micros:
        return self.config.socketSelectTimeout
