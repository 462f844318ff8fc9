"""Connection configuration: the mutable settings and their frozen snapshot."""
from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from dotenv import dotenv_values

from pushlink.engine.errors import ConfigurationError
from pushlink.engine.primitives import (
    CONNECT_RETRY_INTERVAL,
    CONNECT_RETRY_TIMES,
    SOCKET_SELECT_TIMEOUT,
    WRITE_INTERVAL,
    Micros,
    Seconds,
    default_connect_timeout,
)

ENV_FILE = ".env.pushlink"


def readable(path: str | os.PathLike) -> bool:
    """True if path is an existing regular file we are allowed to read."""
    p = Path(path)
    return p.is_file() and os.access(p, os.R_OK)


@dataclasses.dataclass(frozen=True, slots=True)
class ConnectionSettings:
    """Immutable snapshot of ConnectionConfig taken right before connecting.

    Everything that runs during a connect attempt reads from this, so a setter
    called meanwhile can't change an attempt halfway through."""

    providerCertificateFile: str
    providerCertificatePassphrase: str | None
    rootCertificationAuthorityFile: str | None
    connectTimeout: Seconds
    connectRetryTimes: int
    connectRetryInterval: Micros
    writeInterval: Micros
    socketSelectTimeout: Micros

    @property
    def verifyPeer(self) -> bool:
        return self.rootCertificationAuthorityFile is not None


@dataclasses.dataclass(slots=True)
class ConnectionConfig:
    """Settings read by the connection manager and the TLS context builder.

    Values only change through the manager's setters and are picked up by the
    next connect(); a live connection is never touched."""

    providerCertificateFile: str
    providerCertificatePassphrase: str | None = None
    rootCertificationAuthorityFile: str | None = None

    connectTimeout: Seconds = dataclasses.field(default_factory=default_connect_timeout)
    connectRetryTimes: int = CONNECT_RETRY_TIMES
    connectRetryInterval: Micros = CONNECT_RETRY_INTERVAL
    writeInterval: Micros = WRITE_INTERVAL
    socketSelectTimeout: Micros = SOCKET_SELECT_TIMEOUT

    # not part of the connection itself, but carried so fromEnv() can
    # describe a complete manager
    environment: str | None = None
    service: str | None = None

    def freeze(self) -> ConnectionSettings:
        return ConnectionSettings(
            providerCertificateFile=self.providerCertificateFile,
            providerCertificatePassphrase=self.providerCertificatePassphrase,
            rootCertificationAuthorityFile=self.rootCertificationAuthorityFile,
            connectTimeout=self.connectTimeout,
            connectRetryTimes=self.connectRetryTimes,
            connectRetryInterval=self.connectRetryInterval,
            writeInterval=self.writeInterval,
            socketSelectTimeout=self.socketSelectTimeout,
        )

    @classmethod
    def fromEnv(cls, env: Mapping[str, Any] | None = None) -> ConnectionConfig:
        """Build a config from PUSHLINK_* keys.

        With no explicit mapping, reads ``.env.pushlink`` (if present)
        overlaid by the process environment.
        """
        if env is None:
            env = {**dotenv_values(ENV_FILE), **os.environ}

        def get(key: str) -> str | None:
            val = env.get(f"PUSHLINK_{key}")
            if val is None or str(val).strip() == "":
                return None

            return str(val).strip()

        cert = get("CERTIFICATE")
        if cert is None:
            raise ConfigurationError("PUSHLINK_CERTIFICATE is not set")

        config = cls(providerCertificateFile=cert)
        config.providerCertificatePassphrase = get("CERTIFICATE_PASSPHRASE")
        config.rootCertificationAuthorityFile = get("ROOT_CA")
        config.environment = get("ENVIRONMENT")
        config.service = get("SERVICE")

        numeric: dict[str, tuple[str, type]] = {
            "CONNECT_TIMEOUT": ("connectTimeout", float),
            "CONNECT_RETRY_TIMES": ("connectRetryTimes", int),
            "CONNECT_RETRY_INTERVAL": ("connectRetryInterval", int),
            "WRITE_INTERVAL": ("writeInterval", int),
            "SOCKET_SELECT_TIMEOUT": ("socketSelectTimeout", int),
        }

        for key, (attr, kind) in numeric.items():
            if (raw := get(key)) is None:
                continue

            try:
                value = kind(raw)
            except ValueError:
                raise ConfigurationError(f"PUSHLINK_{key} must be a number, got {raw!r}") from None

            check = positive if attr == "connectTimeout" else nonNegative
            setattr(config, attr, check(f"PUSHLINK_{key}", value))

        return config


def nonNegative(name: str, value):
    if value < 0:
        raise ConfigurationError(f"{name} must not be negative, got {value!r}")

    return value


def positive(name: str, value):
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value!r}")

    return value
