"""Centralized error handling and response helpers.

Per-file validation errors and gate blocks are carried as data and never
raised. The exceptions below cover the only exceptional paths: a failing
external provider and a broken repair invariant.
"""

from typing import List, Optional, Dict, Any
from fastapi.responses import JSONResponse


class AuditReadyError(Exception):
    """Base class for AuditReady errors with structured details."""

    def __init__(self, message: str, error_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for JSON serialization."""
        return {
            'error_type': self.__class__.__name__,
            'error_code': self.error_code,
            'message': self.message,
            'details': self.details,
        }


class ProviderFailure(AuditReadyError):
    """
    Raised when an external extraction or repair provider fails.

    A failed repair attempt leaves the specification at its last valid
    version; callers may retry with a fresh attempt.
    """

    def __init__(self, message: str, provider: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.provider = provider
        merged = dict(details or {})
        if provider:
            merged.setdefault('provider', provider)
        super().__init__(message, "PROVIDER_FAILURE", merged)


class InvariantViolation(AuditReadyError):
    """
    Raised when a repaired specification breaks identity, version, history
    or approval invariants. Must be treated as fatal.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "INVARIANT_VIOLATION", details)


def validation_error_response(
    errors: List[str],
    code: int = 400,
    hints: Optional[List[str]] = None
) -> JSONResponse:
    """Create standardized validation error response."""

    # Generate actionable hints if not provided
    if not hints:
        hints = []
        error_text = " ".join(errors).lower()

        if "pipeline_id" in error_text or "version" in error_text:
            hints.append("Specifications need a non-empty 'pipeline_id'; 'version' defaults to 1.0.0")
        if "file_id" in error_text or "success" in error_text:
            hints.append("Each result needs 'file_id' and a boolean 'success' flag")
        if "metric" in error_text:
            hints.append("Blueprint metrics need 'metric_id' and 'unit'")
            hints.append("Result metric values must be numbers or strings")
        if "blueprint" in error_text:
            hints.append("Send the approved blueprint under the 'blueprint' key")

    # Take top 3 most relevant hints
    hints = hints[:3]

    return JSONResponse(
        status_code=code,
        content={
            "error": "Validation Error",
            "code": code,
            "messages": errors,
            "hints": hints,
        }
    )


def provider_failure_response(error: ProviderFailure) -> JSONResponse:
    """Create response for a failed repair provider call."""
    return JSONResponse(
        status_code=502,
        content={
            "error": "Provider Failure",
            "code": 502,
            "message": error.message,
            "details": error.details,
            "hints": [
                "The specification was left unchanged",
                "Retry the repair or unset REPAIR_PROVIDER_URL to use the local fallback",
            ],
        }
    )


def invariant_violation_response(error: InvariantViolation) -> JSONResponse:
    """Create response for a broken repair invariant."""
    return JSONResponse(
        status_code=500,
        content={
            "error": "Invariant Violation",
            "code": 500,
            "message": error.message,
            "details": error.details,
        }
    )
