"""Comprehensive error handling service."""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List

import requests
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException


def _correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", None) or str(uuid.uuid4())


class ErrorHandler:
    """Centralized error handling service."""

    @staticmethod
    def log_error(exc: Exception, context: Dict[str, Any]) -> str:
        """Log error with context and return correlation ID."""
        correlation_id = context.get("correlation_id")
        if correlation_id is None:
            correlation_id = str(uuid.uuid4())

        print(f"[ERROR] {correlation_id} - {type(exc).__name__}: {str(exc)} - Context: {context}", flush=True)

        return correlation_id

    @staticmethod
    def describe_upstream_error(exc: Exception) -> Any:
        """Return the most useful detail payload for an upstream failure."""
        response = getattr(exc, "response", None)
        if isinstance(exc, requests.exceptions.RequestException) and response is not None:
            try:
                return response.json()
            except ValueError:
                text = (response.text or "").strip()
                return text[:500] or f"HTTP {response.status_code}"
        return str(exc)

    @staticmethod
    def upstream_failure(exc: Exception, request: Request, message: str, operation: str) -> JSONResponse:
        """Build the 500 response for a fatal upstream failure."""
        correlation_id = _correlation_id(request)
        ErrorHandler.log_error(
            exc,
            {
                "correlation_id": correlation_id,
                "operation": operation,
                "method": request.method,
                "path": request.url.path,
            },
        )
        return JSONResponse(
            status_code=500,
            content={"error": message, "details": ErrorHandler.describe_upstream_error(exc)},
            headers={"X-Correlation-ID": correlation_id},
        )

    @staticmethod
    def format_validation_error(exc: RequestValidationError | ValidationError) -> List[Dict[str, str]]:
        """Flatten Pydantic validation errors into field/message pairs."""
        errors: List[Dict[str, str]] = []
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"] if loc != "body")
            errors.append({"field": field_path or "body", "message": error["msg"]})
        return errors

    @staticmethod
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Reject malformed request bodies with 400 before any upstream call."""
        correlation_id = _correlation_id(request)
        errors = ErrorHandler.format_validation_error(exc)
        print(f"[VALIDATION] {correlation_id} - {request.method} {request.url.path} - {errors}", flush=True)
        return JSONResponse(
            status_code=400,
            content={
                "error": "Validation error",
                "errors": errors,
                "correlation_id": correlation_id,
            },
            headers={"X-Correlation-ID": correlation_id},
        )

    @staticmethod
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Render HTTPException with the same ``error`` envelope as other failures."""
        correlation_id = _correlation_id(request)
        headers = dict(exc.headers or {})
        headers["X-Correlation-ID"] = correlation_id
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "error_code": f"HTTP_{exc.status_code}",
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "correlation_id": correlation_id,
            },
            headers=headers,
        )
