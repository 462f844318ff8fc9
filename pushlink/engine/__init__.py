"""pushlink engine layer — the connection core with no CLI dependency.

Modules
-------
primitives
    Stdlib-only constants and unit helpers.
    - Defaults: ``WRITE_INTERVAL``, ``CONNECT_RETRY_INTERVAL``, ``SOCKET_SELECT_TIMEOUT``,
      ``CONNECT_RETRY_TIMES``, ``FALLBACK_CONNECT_TIMEOUT``
    - Type aliases: ``Seconds``, ``Micros``

errors
    ``PushLinkError`` > ``ConfigurationError`` > ``CertificateError``, and ``ConnectionError``
    (also a builtin ``ConnectionError``) raised when the retry budget is spent.

endpoints
    - ``Environment``: PRODUCTION / SANDBOX (accepts 0/1 and names)
    - ``Service``: GATEWAY / FEEDBACK
    - ``Endpoint``: immutable scheme/host/port
    - ``EndpointResolver``: environment -> endpoint for one service

session
    - ``ConnectionConfig``: mutable settings, loadable from ``PUSHLINK_*`` env keys
    - ``ConnectionSettings``: frozen snapshot taken before each connect

retry
    - ``RetryPolicy``: fixed-interval retry budget (N retries = N + 1 attempts)

tlscontext
    - ``TLSContextBuilder``: provider certificate + optional CA -> ``TLSContext``
    - ``openTLSStream``: one TCP connect + TLS handshake

handle
    - ``ConnectionHandle``: the non-blocking TLS stream collaborators write to

liveness
    - ``probeAfterWrite``: detect a peer close after a write
    - ``ProbeResult``

protocols
    - ``ConnectionObserver``: lifecycle event sink; ``NullObserver``, ``LoguruObserver``

manager
    - ``ConnectionManager``: the state machine (connect / disconnect / reconnect / probe)
    - ``ConnectionState``
"""

from pushlink.engine.endpoints import Endpoint, EndpointResolver, Environment, Service
from pushlink.engine.errors import (
    CertificateError,
    ConfigurationError,
    ConnectionError,
    PushLinkError,
)
from pushlink.engine.handle import ConnectionHandle
from pushlink.engine.liveness import ProbeResult, probeAfterWrite
from pushlink.engine.manager import ConnectionManager, ConnectionState
from pushlink.engine.protocols import ConnectionObserver, LoguruObserver, NullObserver
from pushlink.engine.retry import RetryPolicy
from pushlink.engine.session import ConnectionConfig, ConnectionSettings
from pushlink.engine.tlscontext import TLSContext, TLSContextBuilder, openTLSStream

__all__ = [
    "CertificateError",
    "ConfigurationError",
    "ConnectionConfig",
    "ConnectionError",
    "ConnectionHandle",
    "ConnectionManager",
    "ConnectionObserver",
    "ConnectionSettings",
    "ConnectionState",
    "Endpoint",
    "EndpointResolver",
    "Environment",
    "LoguruObserver",
    "NullObserver",
    "ProbeResult",
    "PushLinkError",
    "RetryPolicy",
    "Service",
    "TLSContext",
    "TLSContextBuilder",
    "openTLSStream",
    "probeAfterWrite",
]
