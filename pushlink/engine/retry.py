"""Fixed-interval retry budget for connection attempts."""
from __future__ import annotations

from dataclasses import dataclass

from pushlink.engine.primitives import Micros, Seconds, micros_to_seconds
from pushlink.engine.session import ConnectionSettings


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to retry and how long to wait in between.

    Attempts are counted from zero: attempt 0 is the initial connect and
    attempts 1..retryTimes are the retries, so a policy allows
    ``retryTimes + 1`` attempts in total. The interval never grows.
    """

    retryTimes: int
    retryInterval: Micros

    @classmethod
    def fromSettings(cls, settings: ConnectionSettings) -> RetryPolicy:
        return cls(settings.connectRetryTimes, settings.connectRetryInterval)

    def shouldRetry(self, attemptIndex: int) -> bool:
        """True if an attempt with this index is still inside the budget."""
        return 0 <= attemptIndex <= self.retryTimes

    @property
    def attempts(self) -> int:
        return self.retryTimes + 1

    @property
    def intervalSeconds(self) -> Seconds:
        return micros_to_seconds(self.retryInterval)
