"""
AuditReady FastAPI Application

HTTP entry point for AuditReady: pipeline guardrail verification, bounded
repair, and audit readiness scoring over extraction results.

Example usage:
    # Start the server
    uvicorn app:app --host 0.0.0.0 --port 8000 --reload

    # Health check
    curl http://localhost:8000/health
"""

from typing import Any, Dict

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from api.routes.engine import router as engine_router
from core import __version__
from core.errors import (
    InvariantViolation,
    ProviderFailure,
    invariant_violation_response,
    provider_failure_response,
    validation_error_response,
)
from core.logging import RequestLoggingMiddleware, get_logger, setup_logging
from core.policy import get_engine_settings, get_policy_summary

_settings = get_engine_settings()
setup_logging(level=_settings['log_level'], format_type=_settings['log_format'])
logger = get_logger(__name__)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    tags_metadata = [
        {
            "name": "engine",
            "description": "Pipeline verification, repair and batch scoring"
        },
        {
            "name": "health",
            "description": "System health and status endpoints"
        }
    ]

    app = FastAPI(
        title="AuditReady",
        description="Guardrail verification, repair and readiness scoring for audit evidence pipelines",
        version=__version__,
        docs_url="/api-docs",
        redoc_url="/redoc",
        openapi_tags=tags_metadata
    )

    app.add_middleware(RequestLoggingMiddleware)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        return validation_error_response(messages, code=422)

    @app.exception_handler(ProviderFailure)
    async def handle_provider_failure(request: Request, exc: ProviderFailure) -> JSONResponse:
        logger.error(f"Provider failure on {request.url.path}: {exc.message}", extra={"details": exc.details})
        return provider_failure_response(exc)

    @app.exception_handler(InvariantViolation)
    async def handle_invariant_violation(request: Request, exc: InvariantViolation) -> JSONResponse:
        logger.critical(f"Invariant violation on {request.url.path}: {exc.message}", extra={"details": exc.details})
        return invariant_violation_response(exc)

    app.include_router(engine_router)

    logger.info(f"AuditReady started ({get_policy_summary()})")
    return app


app = create_app()


@app.get("/health", tags=["health"])
async def health_check() -> JSONResponse:
    """
    Health check endpoint for monitoring and load balancer readiness.

    Example:
        >>> # GET /health
        >>> {"status": "healthy", "service": "auditready", "version": "0.1.0"}
    """
    health_data: Dict[str, Any] = {
        "status": "healthy",
        "service": "auditready",
        "version": __version__,
        "repair_provider": "http" if get_engine_settings()['repair_provider_url'] else "fallback",
    }
    return JSONResponse(content=health_data, status_code=200)


if __name__ == "__main__":
    """
    Development server entry point.
    Run with: python app.py
    """
    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
