"""Tests for the structured logging system (restoration_kernel/logging_config.py)."""

import json
import logging
from io import StringIO
from uuid import uuid4

import pytest

from restoration_kernel.domain.workflow import ProjectStatus
from restoration_kernel.exceptions import InvalidTransitionError
from restoration_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
    reset_logging,
)


@pytest.fixture(autouse=True)
def _clean_logging():
    """Start from unconfigured logging; put the suite configuration back afterwards."""
    reset_logging()
    LogContext.clear()
    yield
    LogContext.clear()
    reset_logging()
    configure_logging(level=logging.DEBUG)


def _make_handler() -> tuple[logging.Handler, StringIO]:
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    return handler, stream


def _parse_all_logs(stream: StringIO) -> list[dict]:
    lines = stream.getvalue().strip().split("\n")
    return [json.loads(line) for line in lines if line]


def _parse_log(stream: StringIO) -> dict:
    return _parse_all_logs(stream)[0]


class TestStructuredFormatter:
    def test_basic_json_output(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info("hello")

        record = _parse_log(stream)
        assert record["level"] == "INFO"
        assert record["message"] == "hello"
        assert record["logger"] == "restoration.test"
        assert "ts" in record

    def test_extra_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        get_logger("test").info(
            "timeline_event_appended", extra={"seq": 3, "event_type": "STATUS_CHANGE"}
        )

        record = _parse_log(stream)
        assert record["seq"] == 3
        assert record["event_type"] == "STATUS_CHANGE"

    def test_context_fields_included(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        LogContext.set(correlation_id="abc-123", operation="estimate.approve")
        get_logger("test").info("test_msg")

        record = _parse_log(stream)
        assert record["correlation_id"] == "abc-123"
        assert record["operation"] == "estimate.approve"

    def test_context_wins_over_extra(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        with LogContext.bind(project_id="from-context"):
            get_logger("test").info("msg", extra={"project_id": "from-extra"})

        assert _parse_log(stream)["project_id"] == "from-context"

    def test_restoration_exception_fields_extracted(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        try:
            raise InvalidTransitionError("COMPLETED", "PENDING")
        except InvalidTransitionError:
            get_logger("test").error("transition_failed", exc_info=True)

        record = _parse_log(stream)
        assert record["exc_type"] == "InvalidTransitionError"
        assert record["exc_code"] == "INVALID_TRANSITION"
        assert record["exc_from_status"] == "COMPLETED"
        assert record["exc_to_status"] == "PENDING"
        assert "traceback" in record

    def test_uuid_and_enum_serialized(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        uid = uuid4()
        get_logger("test").info(
            "with_values", extra={"project_ref": uid, "status": ProjectStatus.APPROVED}
        )

        record = _parse_log(stream)
        assert record["project_ref"] == str(uid)
        assert record["status"] == "APPROVED"

    def test_debug_filtered_at_info(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler)
        logger = get_logger("test")
        logger.info("first")
        logger.warning("second", extra={"k": "v"})
        logger.debug("third")

        assert [r["message"] for r in _parse_all_logs(stream)] == ["first", "second"]


class TestLogContext:
    def test_set_and_get(self):
        LogContext.set(correlation_id="x", actor_id="y")
        assert LogContext.get_all() == {"correlation_id": "x", "actor_id": "y"}

    def test_clear(self):
        LogContext.set(correlation_id="x")
        LogContext.clear()
        assert LogContext.get_all() == {}

    def test_bind_restores_previous(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner", project_id="p-1"):
            assert LogContext.get_all() == {"correlation_id": "inner", "project_id": "p-1"}
        assert LogContext.get_all() == {"correlation_id": "outer"}

    def test_bind_skips_none(self):
        with LogContext.bind(correlation_id="c", project_id=None):
            assert "project_id" not in LogContext.get_all()


class TestConfigureLogging:
    def test_idempotent(self):
        h1, _ = _make_handler()
        configure_logging(handler=h1)
        h2, _ = _make_handler()
        configure_logging(handler=h2)
        handlers = logging.getLogger("restoration").handlers
        assert h1 in handlers
        assert h2 not in handlers

    def test_logger_hierarchy(self):
        handler, stream = _make_handler()
        configure_logging(handler=handler, level=logging.DEBUG)
        get_logger("services.workflow_engine").debug("hierarchy_test")

        record = _parse_log(stream)
        assert record["logger"] == "restoration.services.workflow_engine"
