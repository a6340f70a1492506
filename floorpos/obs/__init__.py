"""Observability helpers: structured logs and error reporting."""

from .errors import capture_exception, init_sentry
from .logging import configure_logging

__all__ = ["capture_exception", "configure_logging", "init_sentry"]
