"""Tenant and phone number of the message being handled, on every log line.

The engine sets the ``tenant:phone`` key before running the flow; the key
lives in a ContextVar, so it follows the message into the worker thread
and stays separate for customers handled concurrently.
``install_session_key_filter`` puts SessionKeyFilter on the root handlers,
which covers records from every module, and the configured log format
prints ``%(session_key)s``.
Outside a message the key reads ``-``.
"""

import logging
from contextvars import ContextVar
from typing import Optional

_session_key: ContextVar[str] = ContextVar("session_key", default="-")


def set_session_key(session_key: str) -> None:
    """Set the session key for the current async context."""
    _session_key.set(session_key)


def get_session_key() -> str:
    """Retrieve the current session key."""
    return _session_key.get()


class SessionKeyFilter(logging.Filter):
    """Injects session_key into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.session_key = _session_key.get()  # type: ignore[attr-defined]
        return True


def install_session_key_filter(logger: Optional[logging.Logger] = None) -> None:
    """Attach SessionKeyFilter to every handler of ``logger`` (root by default).

    Handler filters see records propagated from child loggers, so a format
    string using ``%(session_key)s`` works for all modules.
    """
    logger = logger or logging.getLogger()
    for handler in logger.handlers:
        if not any(isinstance(f, SessionKeyFilter) for f in handler.filters):
            handler.addFilter(SessionKeyFilter())


def get_session_logger(name: str) -> logging.Logger:
    """Return a logger with the SessionKeyFilter attached.

    Records from this logger carry ``session_key`` for any handler,
    including ones that were not set up by ``install_session_key_filter``.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionKeyFilter) for f in logger.filters):
        logger.addFilter(SessionKeyFilter())
    return logger
