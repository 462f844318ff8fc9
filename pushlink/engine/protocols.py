"""Observer interface for connection lifecycle events.

The manager never logs lifecycle events itself; it reports them to an
injected observer. NullObserver (the default) drops everything, and
LoguruObserver forwards to loguru.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

from loguru import logger

if TYPE_CHECKING:
    from pushlink.engine.endpoints import Endpoint
    from pushlink.engine.retry import RetryPolicy


@runtime_checkable
class ConnectionObserver(Protocol):
    """Receives one callback per connection lifecycle event."""

    def attemptStarted(self, endpoint: Endpoint, attempt: int, policy: RetryPolicy) -> None: ...
    def attemptFailed(
        self, endpoint: Endpoint, attempt: int, policy: RetryPolicy, error: BaseException
    ) -> None: ...
    def retryScheduled(self, endpoint: Endpoint, attempt: int, policy: RetryPolicy) -> None: ...
    def connected(self, endpoint: Endpoint, attempt: int) -> None: ...
    def disconnected(self, endpoint: Endpoint) -> None: ...


class NullObserver:
    def attemptStarted(self, endpoint, attempt, policy) -> None:
        pass

    def attemptFailed(self, endpoint, attempt, policy, error) -> None:
        pass

    def retryScheduled(self, endpoint, attempt, policy) -> None:
        pass

    def connected(self, endpoint, attempt) -> None:
        pass

    def disconnected(self, endpoint) -> None:
        pass


class LoguruObserver:
    """Write lifecycle events to the loguru logger."""

    def __init__(self, name: str = "pushlink"):
        self.log = logger.bind(name=name)

    def attemptStarted(self, endpoint, attempt, policy) -> None:
        self.log.info("Trying {}... (attempt {}/{})", endpoint, attempt + 1, policy.attempts)

    def attemptFailed(self, endpoint, attempt, policy, error) -> None:
        # Don't print full tracebacks for plain network errors
        self.log.error("[{}] Unable to connect to {}: {}", type(error).__name__, endpoint, error)

    def retryScheduled(self, endpoint, attempt, policy) -> None:
        self.log.warning(
            "Retry to connect ({}/{}) in {:.3f}s...",
            attempt + 1,
            policy.retryTimes,
            policy.intervalSeconds,
        )

    def connected(self, endpoint, attempt) -> None:
        self.log.info("Connected to {}.", endpoint)

    def disconnected(self, endpoint) -> None:
        self.log.info("Disconnected from {}.", endpoint)
