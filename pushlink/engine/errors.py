"""Exception hierarchy for the connection core.

Configuration problems are raised synchronously at setup time and are never
retried. Network problems are only raised once the retry budget is spent.
"""
from __future__ import annotations

import builtins
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pushlink.engine.endpoints import Endpoint


class PushLinkError(Exception):
    """Base class for every error raised by pushlink."""


class ConfigurationError(PushLinkError, ValueError):
    """Invalid environment, unreadable certificate/CA file, or bad setting."""


class CertificateError(ConfigurationError):
    """Provider certificate could not be read, parsed, or decrypted."""


class ConnectionError(PushLinkError, builtins.ConnectionError):
    """All connection attempts failed.

    Also a builtin ``ConnectionError`` so callers catching the builtin still
    see it. The last per-attempt failure is chained as ``__cause__``.
    """

    def __init__(self, message: str, endpoint: Endpoint | None = None, attempts: int = 0):
        super().__init__(message)
        self.endpoint = endpoint
        self.attempts = attempts
