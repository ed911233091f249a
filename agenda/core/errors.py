"""
Scheduling error taxonomy plus error aggregation to keep repeated
failures (e.g. a flapping change-feed) from flooding the logs.
"""
import hashlib
import time
from enum import Enum
from typing import Any, Dict, Optional

import structlog

from agenda.core.config import settings

logger = structlog.get_logger(__name__)


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""

    status_code = 400
    code = "scheduling_error"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationError(SchedulingError):
    """Rejected before any write: missing times, empty title/date, bad location fields."""

    status_code = 422
    code = "validation_error"


class WriteFailure(SchedulingError):
    """The store rejected an insert/update/delete."""

    status_code = 500
    code = "write_failure"


class PermissionDenied(WriteFailure):
    status_code = 403
    code = "permission_denied"


class NotFound(WriteFailure):
    status_code = 404
    code = "not_found"


class InvalidTransition(WriteFailure):
    """Attendee status change not allowed by the invitation state machine."""

    status_code = 409
    code = "invalid_transition"


class SyncFailure(SchedulingError):
    """Change-feed subscription dropped; recovered by a full reload."""

    status_code = 503
    code = "sync_failure"


class ErrorSeverity(Enum):
    """Error severity levels for smart alerting."""
    LOW = "low"           # validation errors, expected rejections
    MEDIUM = "medium"     # store write failures, feed drops
    HIGH = "high"         # permission failures, data corruption
    CRITICAL = "critical" # service down


class ErrorPattern:
    """Track error patterns to reduce duplicate logging."""

    def __init__(self, error_type: str, message: str, context: Dict[str, Any]):
        self.error_type = error_type
        self.message = message[:100]
        self.context = {k: v for k, v in context.items() if k in ['component', 'endpoint', 'user_id']}
        self.fingerprint = self._generate_fingerprint()
        self.first_seen = time.time()
        self.last_seen = self.first_seen
        self.count = 1

    def _generate_fingerprint(self) -> str:
        content = f"{self.error_type}:{self.message}:{self.context.get('component', '')}"
        return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()[:8]

    def update(self):
        self.last_seen = time.time()
        self.count += 1


class ErrorAggregator:
    """Aggregate and deduplicate errors, logging every Nth repeat."""

    def __init__(self, log_threshold: int = 10, time_window: int = 300):
        self.log_threshold = log_threshold
        self.time_window = time_window
        self.patterns: Dict[str, ErrorPattern] = {}
        self.severity_override = {
            "ValidationError": ErrorSeverity.LOW,
            "NotFound": ErrorSeverity.LOW,
            "InvalidTransition": ErrorSeverity.LOW,
            "SyncFailure": ErrorSeverity.MEDIUM,
            "WriteFailure": ErrorSeverity.MEDIUM,
            "TimeoutError": ErrorSeverity.MEDIUM,
            "ConnectionError": ErrorSeverity.MEDIUM,
            "PermissionDenied": ErrorSeverity.HIGH,
        }

    def _determine_severity(self, error: Exception) -> ErrorSeverity:
        error_type = type(error).__name__
        if error_type in self.severity_override:
            return self.severity_override[error_type]
        if isinstance(error, SchedulingError) and error.status_code < 500:
            return ErrorSeverity.LOW
        return ErrorSeverity.MEDIUM

    def _prune(self):
        cutoff = time.time() - self.time_window
        for fingerprint in [f for f, p in self.patterns.items() if p.last_seen < cutoff]:
            del self.patterns[fingerprint]

    def should_log(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity in (ErrorSeverity.HIGH, ErrorSeverity.CRITICAL):
            return True
        if pattern.count == 1:
            return True
        if severity == ErrorSeverity.MEDIUM:
            return pattern.count % self.log_threshold == 0
        return pattern.count % (self.log_threshold * 5) == 0

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        """Log error with deduplication; returns its fingerprint."""
        context = context or {}
        if severity is None:
            severity = self._determine_severity(error)

        self._prune()
        pattern = ErrorPattern(type(error).__name__, str(error), context)
        fingerprint = pattern.fingerprint

        if fingerprint in self.patterns:
            self.patterns[fingerprint].update()
            pattern = self.patterns[fingerprint]
        else:
            self.patterns[fingerprint] = pattern

        if self.should_log(pattern, severity):
            log = logger.warning if severity == ErrorSeverity.LOW else logger.error
            log(
                "aggregated_error",
                error_hash=fingerprint,
                error_type=pattern.error_type,
                error=str(error),
                count=pattern.count,
                severity=severity.value,
                **context
            )

        return fingerprint

    def get_error_summary(self) -> Dict[str, Any]:
        """Summary of errors seen within the time window."""
        now = time.time()
        recent = [p for p in self.patterns.values() if now - p.last_seen < self.time_window]
        return {
            "total_patterns": len(recent),
            "total_errors": sum(p.count for p in recent),
            "top_errors": [
                {"type": p.error_type, "message": p.message, "count": p.count}
                for p in sorted(recent, key=lambda p: p.count, reverse=True)[:5]
            ],
        }


error_aggregator = ErrorAggregator(log_threshold=settings.ERROR_AGGREGATION_THRESHOLD)


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    return error_aggregator.log_error(error, context, severity)
