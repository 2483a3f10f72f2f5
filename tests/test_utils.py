"""Tests for shared utility functions and the session logging context."""

import io
import logging
from datetime import datetime, timedelta, timezone

from src.logging_context import (
    LOG_FORMAT,
    NO_SESSION,
    SessionIdFilter,
    build_log_handler,
    get_session_id,
    get_session_logger,
    set_session_id,
)
from src.utils import ensure_utc, generate_id, utc_now


class TestTime:
    def test_utc_now_is_aware(self):
        assert utc_now().tzinfo is not None

    def test_naive_treated_as_utc(self):
        assert ensure_utc(datetime(2025, 1, 2, 9, 0)) == datetime(2025, 1, 2, 9, 0, tzinfo=timezone.utc)

    def test_aware_converted(self):
        cet = timezone(timedelta(hours=1))
        result = ensure_utc(datetime(2025, 1, 2, 10, 0, tzinfo=cet))
        assert result.hour == 9
        assert result.utcoffset() == timedelta(0)


class TestGenerateId:
    def test_prefix(self):
        assert generate_id("wf").startswith("wf_")

    def test_unique(self):
        assert len({generate_id("exec") for _ in range(100)}) == 100


class TestSessionLogging:
    def test_filter_injects_session_id(self):
        set_session_id("kitchen-speaker")
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert SessionIdFilter().filter(record) is True
        assert record.session_id == "kitchen-speaker"
        assert get_session_id() == "kitchen-speaker"

    def test_filter_attached_once(self):
        logger = get_session_logger("tests.session_logger")
        get_session_logger("tests.session_logger")
        assert sum(isinstance(f, SessionIdFilter) for f in logger.filters) == 1

    def test_handler_formats_session_id_for_plain_logger(self):
        stream = io.StringIO()
        logger = logging.getLogger("tests.plain_logger")
        logger.propagate = False
        logger.setLevel(logging.INFO)
        logger.addHandler(build_log_handler(stream))
        try:
            set_session_id("living-room")
            logger.info("Processing command")
        finally:
            logger.handlers.clear()
        line = stream.getvalue()
        assert "[living-room] [tests.plain_logger] INFO: Processing command" in line

    def test_missing_key_falls_back(self):
        set_session_id(None)
        assert get_session_id() == NO_SESSION
        assert "%(session_id)s" in LOG_FORMAT
