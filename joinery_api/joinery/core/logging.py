"""
Process-wide logging setup.

Every record carries the request's correlation id and the authenticated user
id, taken from context variables set by the HTTP middleware and the auth
dependency.
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar
from typing import Optional, Union

correlation_id_var: ContextVar[Optional[str]] = ContextVar("correlation_id", default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar("user_id", default=None)

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | cid=%(correlation_id)s | user=%(user_id)s | %(message)s"

# Loggers that are too chatty at INFO.
_QUIET_LOGGERS = ("sqlalchemy.engine", "aiosqlite", "asyncio")


class RequestContextFilter(logging.Filter):
    """Copy correlation_id / user_id from context onto the record ("-" when unset)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        record.user_id = user_id_var.get() or "-"
        return True


# PUBLIC_INTERFACE
def bind_user(user_id: Optional[str]) -> None:
    """Attach the authenticated user to log records of the current request."""
    user_id_var.set(user_id)


# PUBLIC_INTERFACE
def configure_logging(level: Union[int, str, None] = None) -> None:
    """
    Install a single stdout handler on the root logger.

    `level` defaults to the LOG_LEVEL setting. Calling this again replaces the
    handler instead of stacking a second one.
    """
    if level is None:
        from joinery.core.settings import get_app_settings

        level = get_app_settings().LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
