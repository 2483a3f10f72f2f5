"""Conversation-key logging context.

Every command runs under the key of the device or user that sent it. The
key lives in a ContextVar so concurrent conversations never see each
other's value, and the root handler stamps it onto each record, including
records from third-party loggers (httpx, openai) emitted mid-command.

Usage:
    from src.logging_context import configure_logging, set_session_id

    configure_logging(logging.INFO)
    set_session_id("kitchen-speaker")
    logging.getLogger(__name__).info("Processing command")
    # 2025-01-01 09:00:00 [kitchen-speaker] [src.x] INFO: Processing command
"""

import logging
import sys
from contextvars import ContextVar
from typing import IO, Optional

NO_SESSION = "NO_SESSION"
LOG_FORMAT = "%(asctime)s [%(session_id)s] [%(name)s] %(levelname)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def set_session_id(session_id: Optional[str]) -> None:
    """Bind the conversation key for the current async context."""
    _session_id.set(session_id or NO_SESSION)


def get_session_id() -> str:
    return _session_id.get()


class SessionIdFilter(logging.Filter):
    """Stamps the current conversation key on a record as ``session_id``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = _session_id.get()  # type: ignore[attr-defined]
        return True


def build_log_handler(stream: Optional[IO[str]] = None) -> logging.Handler:
    """Stream handler whose format carries the conversation key."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    handler.addFilter(SessionIdFilter())
    return handler


def configure_logging(level: int = logging.INFO) -> None:
    """Install the session-aware handler on the root logger.

    Does nothing when the root logger already has handlers, like
    ``logging.basicConfig``.
    """
    logging.basicConfig(level=level, handlers=[build_log_handler()])


def get_session_logger(name: str) -> logging.Logger:
    """Module logger that stamps ``session_id`` on records it creates.

    Lets handlers other than the root one (test capture, file handlers
    added later) format ``%(session_id)s`` for this module's records.
    """
    logger = logging.getLogger(name)
    if not any(isinstance(f, SessionIdFilter) for f in logger.filters):
        logger.addFilter(SessionIdFilter())
    return logger
