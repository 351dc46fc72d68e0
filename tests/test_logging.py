"""
AuditReady Logging Tests

Test suite for structured JSON logging functionality including:
- JSON formatting with structured output and extras
- Request start/end logging through the middleware
- Context-aware logging helper
- Stream capture for testing log output

Example usage:
    pytest tests/test_logging.py -v
"""

import json
import logging
import sys
from datetime import datetime, timezone
from io import StringIO
from unittest.mock import Mock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from core.logging import (
    JSONFormatter,
    RequestLoggingMiddleware,
    get_logger,
    log_with_context,
    setup_logging,
)


def make_record(msg="Test message", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test.logger",
        level=logging.INFO,
        pathname="/test/path.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Test JSON log formatting functionality."""

    def test_basic_formatting(self):
        log_data = json.loads(JSONFormatter().format(make_record()))

        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test.logger"
        assert log_data["msg"] == "Test message"

        timestamp = datetime.fromisoformat(log_data["time"])
        assert timestamp.tzinfo == timezone.utc

    def test_request_context_fields(self):
        record = make_record(request_id="abc123", path="/api/verify", method="POST", status=200)

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["request_id"] == "abc123"
        assert log_data["path"] == "/api/verify"
        assert log_data["status"] == 200

    def test_extra_fields_included(self):
        record = make_record(pipeline_id="pipe_1", errors=["E1"])

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["pipeline_id"] == "pipe_1"
        assert log_data["errors"] == ["E1"]
        assert "lineno" not in log_data

    def test_engine_context_precedes_other_extras(self):
        record = make_record(errors=["E1"], file_id="f1", pipeline_id="pipe_1", request_id="abc123")

        keys = list(json.loads(JSONFormatter().format(record)))

        assert keys[:6] == ["time", "level", "logger", "msg", "request_id", "pipeline_id"]
        assert keys.index("file_id") < keys.index("errors")

    def test_non_serializable_extra_stringified(self):
        record = make_record(when=datetime(2026, 1, 1, tzinfo=timezone.utc))

        log_data = json.loads(JSONFormatter().format(record))

        assert log_data["when"].startswith("2026-01-01")

    def test_exception_included(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = logging.LogRecord("t", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())

        log_data = json.loads(JSONFormatter().format(record))

        assert "ValueError: boom" in log_data["exception"]


class TestSetupLogging:

    def test_named_logger_json(self):
        stream = StringIO()
        setup_logging(level="DEBUG", format_type="json", logger_name="auditready.test", stream=stream)

        get_logger("auditready.test").debug("hello", extra={"pipeline_id": "p1"})

        log_data = json.loads(stream.getvalue().strip())
        assert log_data["msg"] == "hello"
        assert log_data["pipeline_id"] == "p1"
        assert logging.getLogger("auditready.test").propagate is False

    def test_text_format(self):
        stream = StringIO()
        setup_logging(level="INFO", format_type="text", logger_name="auditready.text", stream=stream)

        get_logger("auditready.text").info("plain")

        assert " - auditready.text - INFO - plain" in stream.getvalue()

    def test_level_filters(self):
        stream = StringIO()
        setup_logging(level="WARNING", logger_name="auditready.level", stream=stream)

        logger = get_logger("auditready.level")
        logger.info("dropped")
        logger.warning("kept")

        assert "dropped" not in stream.getvalue()
        assert "kept" in stream.getvalue()

    def test_repeated_setup_does_not_duplicate_handlers(self):
        for _ in range(3):
            setup_logging(logger_name="auditready.dup", stream=StringIO())

        assert len(logging.getLogger("auditready.dup").handlers) == 1


class TestRequestLoggingMiddleware:

    def make_client(self, stream):
        setup_logging(logger_name="auditready.requests", stream=stream)
        app = FastAPI()
        app.add_middleware(RequestLoggingMiddleware)

        @app.get("/ping")
        async def ping():
            return {"ok": True}

        @app.get("/explode")
        async def explode():
            raise RuntimeError("kaboom")

        return TestClient(app, raise_server_exceptions=False)

    def test_start_and_completion_logged(self):
        stream = StringIO()
        response = self.make_client(stream).get("/ping")

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert response.status_code == 200
        assert lines[0]["msg"] == "Request started: GET /ping"
        assert lines[1]["status"] == 200
        assert lines[0]["request_id"] == lines[1]["request_id"] == response.headers["X-Request-ID"]

    def test_caller_request_id_reused(self):
        stream = StringIO()
        response = self.make_client(stream).get("/ping", headers={"X-Request-ID": "orch-42"})

        lines = [json.loads(line) for line in stream.getvalue().splitlines()]
        assert response.headers["X-Request-ID"] == "orch-42"
        assert {line["request_id"] for line in lines} == {"orch-42"}

    def test_forwarded_client_ip(self):
        stream = StringIO()
        self.make_client(stream).get("/ping", headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})

        first = json.loads(stream.getvalue().splitlines()[0])
        assert first["client_ip"] == "203.0.113.7"

    def test_failure_logged(self):
        stream = StringIO()
        response = self.make_client(stream).get("/explode")

        assert response.status_code == 500
        assert "Request failed: GET /explode" in stream.getvalue()


def test_log_with_context_adds_request_fields():
    logger = Mock()
    request = Mock()
    request.state.request_id = "req-1"
    request.url.path = "/api/repair"
    request.method = "POST"
    request.client.host = "127.0.0.1"

    log_with_context(logger, "warning", "Repair applied", request=request, version="1.1")

    logger.warning.assert_called_once()
    extra = logger.warning.call_args.kwargs["extra"]
    assert extra == {
        "request_id": "req-1",
        "path": "/api/repair",
        "method": "POST",
        "client_ip": "127.0.0.1",
        "version": "1.1",
    }
