"""
Structured JSON logging infrastructure for AuditReady.

This module provides standardized JSON logging with request tracking and
engine context (pipeline, blueprint and evidence file identifiers), so one
log query can follow a spec through verify, repair and approval.

Example usage:
    >>> from core.logging import get_logger, setup_logging
    >>> setup_logging()
    >>> logger = get_logger(__name__)
    >>> logger.info("Pipeline repaired", extra={"pipeline_id": "pipe_001"})
"""

import json
import logging
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware


REQUEST_ID_HEADER = "X-Request-ID"

# Emitted in this order ahead of any other extras
_REQUEST_FIELDS = ('request_id', 'path', 'method', 'status', 'duration_ms', 'client_ip')
_ENGINE_FIELDS = ('pipeline_id', 'blueprint_id', 'file_id')
_LEADING_FIELDS = _REQUEST_FIELDS + _ENGINE_FIELDS

# Attributes every LogRecord carries; anything else came in through ``extra``
_RESERVED_ATTRS = frozenset(logging.LogRecord(
    name="", level=0, pathname="", lineno=0, msg="", args=(), exc_info=None
).__dict__) | {'message', 'asctime', 'taskName'}


class JSONFormatter(logging.Formatter):
    """
    One JSON object per log record.

    Fixed keys are ``time``, ``level``, ``logger`` and ``msg``. Request
    context and engine identifiers follow, then any other ``extra`` fields.
    Values json cannot encode are rendered with ``str``.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        # Request and engine context first so it is easy to spot in raw output
        for field in _LEADING_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Remaining extras, e.g. errors, fix, actions
        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key in _LEADING_FIELDS:
                continue
            log_entry[key] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, ensure_ascii=False, default=str)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every API request with status and timing.

    A caller-supplied ``X-Request-ID`` is reused so a repair loop driven by
    an outside orchestrator can be correlated across calls; otherwise a
    short id is generated. The id is echoed on the response either way.
    """

    def __init__(self, app, logger_name: str = "auditready.requests"):
        super().__init__(app)
        self.logger = logging.getLogger(logger_name)

    async def dispatch(self, request: Request, call_next) -> Response:
        # Correlation id, visible to handlers through request.state
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        context = {
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "client_ip": self._get_client_ip(request),
        }
        start_time = time.time()

        self.logger.info(f"Request started: {request.method} {request.url.path}", extra=context)

        try:
            response = await call_next(request)
        except Exception as e:
            # Unhandled errors only; ProviderFailure and friends arrive as responses
            self.logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={**context, "status": 500, "duration_ms": self._elapsed_ms(start_time), "error": str(e)},
                exc_info=True
            )
            raise

        self.logger.info(
            f"Request completed: {request.method} {request.url.path}",
            extra={**context, "status": response.status_code, "duration_ms": self._elapsed_ms(start_time)}
        )

        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    @staticmethod
    def _elapsed_ms(start_time: float) -> int:
        return int((time.time() - start_time) * 1000)

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address, honouring proxy headers."""
        # First hop of a proxy chain is the original client
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

        if request.client:
            return request.client.host

        return "unknown"


def setup_logging(
    level: str = "INFO",
    format_type: str = "json",
    logger_name: Optional[str] = None,
    stream: Optional[TextIO] = None
) -> None:
    """
    Configure application-wide logging.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Log format type ("json" or "text")
        logger_name: Specific logger to configure (None for root)
        stream: Output stream; defaults to stdout. The CLI passes stderr so
            JSON results on stdout stay parseable.

    Example:
        >>> setup_logging(level="DEBUG", format_type="json")
        >>> get_logger(__name__).info("Engine started")
    """
    # Unknown level names fall back to INFO
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if format_type.lower() == "json":
        formatter = JSONFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.setLevel(numeric_level)

    logger = logging.getLogger(logger_name) if logger_name else logging.getLogger()

    # Repeated setup (tests, CLI callback per invocation) must not stack handlers
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(numeric_level)

    # A named logger owns its output; keep it out of the root handlers
    if logger_name:
        logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance for a specific module."""
    return logging.getLogger(name)


def log_with_context(
    logger: logging.Logger,
    level: str,
    message: str,
    request: Optional[Request] = None,
    **kwargs
) -> None:
    """
    Log a message with request context if available.

    Engine identifiers such as ``pipeline_id`` are passed as keyword
    arguments and land next to the request fields in JSON output.

    Example:
        >>> log_with_context(logger, "info", "Repair applied", request=request,
        ...                  pipeline_id="pipe_001", version="1.1")
    """
    extra_fields = dict(kwargs)

    if request:
        # Request id is only present once the middleware has run
        if hasattr(request.state, 'request_id'):
            extra_fields['request_id'] = request.state.request_id

        extra_fields['path'] = request.url.path
        extra_fields['method'] = request.method

        if request.client:
            extra_fields['client_ip'] = request.client.host

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(message, extra=extra_fields)
