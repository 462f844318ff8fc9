"""Environment selection and the fixed remote endpoint tables."""

from __future__ import annotations

import enum
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Final

from pushlink.engine.errors import ConfigurationError


class Environment(enum.IntEnum):
    """Which remote deployment to talk to."""

    PRODUCTION = 0
    SANDBOX = 1

    @classmethod
    def coerce(cls, value) -> Environment:
        """Accept an Environment, its integer value, or its name.

        Anything else is a configuration error."""
        if isinstance(value, cls):
            return value

        # bool is an int subclass, but True/False are never valid selectors
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        elif isinstance(value, str):
            name = value.strip().upper()
            if name.isdigit():
                return cls.coerce(int(name))

            if name in cls.__members__:
                return cls[name]

        raise ConfigurationError(f"Invalid environment {value!r}")


class Service(enum.Enum):
    """Remote services sharing this connection core."""

    GATEWAY = "gateway"
    FEEDBACK = "feedback"

    @classmethod
    def coerce(cls, value) -> Service:
        if isinstance(value, cls):
            return value

        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ConfigurationError(f"Invalid service {value!r}") from None


@dataclass(frozen=True, slots=True)
class Endpoint:
    """A concrete remote address."""

    scheme: str
    host: str
    port: int

    @property
    def url(self) -> str:
        host = f"[{self.host}]" if ":" in self.host else self.host
        return f"{self.scheme}://{host}:{self.port}"

    @property
    def address(self) -> tuple[str, int]:
        """(host, port) as accepted by socket.create_connection()."""
        return (self.host, self.port)

    @classmethod
    def parse(cls, url: str) -> Endpoint:
        """Parse 'scheme://host:port' (IPv6 hosts in brackets)."""
        scheme, sep, rest = url.partition("://")
        host, colon, port = rest.rpartition(":")
        if not (sep and colon and scheme and host and port.isdigit()):
            raise ConfigurationError(f"Invalid endpoint URL {url!r}")

        return cls(scheme, host.strip("[]"), int(port))

    def __str__(self) -> str:
        return self.url


# ── Endpoint tables ─────────────────────────────────────────────────
ENDPOINTS: Final[Mapping[Service, Mapping[Environment, Endpoint]]] = {
    Service.GATEWAY: {
        Environment.PRODUCTION: Endpoint.parse("ssl://gateway.push.apple.com:2195"),
        Environment.SANDBOX: Endpoint.parse("ssl://gateway.sandbox.push.apple.com:2195"),
    },
    Service.FEEDBACK: {
        Environment.PRODUCTION: Endpoint.parse("ssl://feedback.push.apple.com:2196"),
        Environment.SANDBOX: Endpoint.parse("ssl://feedback.sandbox.push.apple.com:2196"),
    },
}


class EndpointResolver:
    """Map an Environment to its Endpoint for one service.

    A custom table may be passed in (tests, private deployments) but it must
    cover every Environment so resolve() stays total.
    """

    def __init__(
        self,
        service: Service = Service.GATEWAY,
        endpoints: Mapping[Environment, Endpoint | str] | None = None,
    ):
        self.service = Service.coerce(service)

        table = ENDPOINTS[self.service] if endpoints is None else endpoints
        self.endpoints: dict[Environment, Endpoint] = {
            Environment.coerce(env): ep if isinstance(ep, Endpoint) else Endpoint.parse(ep)
            for env, ep in table.items()
        }

        if missing := [env.name for env in Environment if env not in self.endpoints]:
            raise ConfigurationError(f"No endpoint configured for: {', '.join(missing)}")

    def resolve(self, environment: Environment) -> Endpoint:
        if not isinstance(environment, Environment):
            raise ConfigurationError(f"Invalid environment {environment!r}")

        return self.endpoints[environment]
