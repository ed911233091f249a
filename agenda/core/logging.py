"""
structlog setup: every log line carries the request's correlation id and
acting user, long free-text values are clipped.
"""
import logging
import time
import uuid
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog
from fastapi import Request

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")
request_context_var: ContextVar[Dict[str, Any]] = ContextVar("request_context", default={})

# free-text fields that can grow without bound (titles, descriptions, db errors)
CLIPPED_KEYS = ("message", "error", "title", "description", "reason")


class TruncatingProcessor:
    def __init__(self, max_length: int = 200):
        self.max_length = max_length

    def __call__(self, logger, method_name, event_dict):
        for key in CLIPPED_KEYS:
            value = event_dict.get(key)
            if value is not None and len(str(value)) > self.max_length:
                event_dict[key] = str(value)[: self.max_length] + "…"
        return event_dict


def add_request_context(logger, method_name, event_dict):
    """Attach correlation id and request context unless the call already set them."""
    correlation_id = correlation_id_var.get()
    if correlation_id:
        event_dict.setdefault("correlation_id", correlation_id)
    for key, value in request_context_var.get().items():
        event_dict.setdefault(key, value)
    return event_dict


def setup_logging(debug: bool = False, max_log_length: int = 200, level: str = "INFO"):
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        add_request_context,
        TruncatingProcessor(max_length=max_log_length),
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
        structlog.dev.ConsoleRenderer() if debug else structlog.processors.JSONRenderer(),
    ]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(level=log_level, format="%(message)s")
    # sqlalchemy echoes every statement at INFO
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str = __name__):
    return structlog.get_logger(name)


def bind_request(correlation_id: str, *, actor_id: Optional[str], path: str, method: str):
    correlation_id_var.set(correlation_id)
    context = {"path": path, "method": method}
    if actor_id:
        context["actor_id"] = actor_id
    request_context_var.set(context)


def clear_request():
    correlation_id_var.set("")
    request_context_var.set({})


class LoggingMiddleware:
    """
    Tags each request with a short correlation id (echoed back in
    X-Correlation-Id). Completion is logged when it failed, was slow,
    or response logging is on.
    """

    def __init__(self, log_requests: bool = False, log_responses: bool = False,
                 slow_threshold: float = 2.0):
        self.log_requests = log_requests
        self.log_responses = log_responses
        self.slow_threshold = slow_threshold
        self.logger = get_logger("agenda.http")

    async def __call__(self, request: Request, call_next):
        correlation_id = request.headers.get("x-correlation-id") or uuid.uuid4().hex[:8]
        bind_request(
            correlation_id,
            actor_id=request.headers.get("x-user-id"),
            path=request.url.path,
            method=request.method,
        )
        request.state.correlation_id = correlation_id
        started = time.perf_counter()

        if self.log_requests:
            self.logger.info("request_start", query=dict(request.query_params))

        try:
            response = await call_next(request)
        except Exception as e:
            self.logger.error(
                "request_error",
                error=str(e),
                error_type=type(e).__name__,
                duration=round(time.perf_counter() - started, 3),
            )
            raise
        else:
            duration = time.perf_counter() - started
            slow = duration > self.slow_threshold
            if self.log_responses or slow or response.status_code >= 400:
                log = self.logger.warning if slow or response.status_code >= 500 else self.logger.info
                log("request_complete", status_code=response.status_code,
                    duration=round(duration, 3), slow=slow)
            response.headers["X-Correlation-Id"] = correlation_id
            return response
        finally:
            clear_request()
