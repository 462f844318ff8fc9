"""Resilient TLS connection core for push-service providers."""

from pushlink.engine import *  # noqa: F401,F403
from pushlink.engine import __all__

__version__ = "0.1.0"
