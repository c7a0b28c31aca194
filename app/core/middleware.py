"""Per-request correlation ids, access logging and the last-resort 500 envelope."""

import time
import uuid
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

CORRELATION_HEADER = "X-Correlation-ID"


def _internal_error(correlation_id: str) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={
            "error": "An unexpected error occurred",
            "error_code": "INTERNAL_SERVER_ERROR",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "correlation_id": correlation_id,
        },
    )


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Tag each request with a correlation id, log its outcome and catch stray exceptions.

    Handlers and the error envelope read the id from ``request.state.correlation_id``;
    every response echoes it in ``X-Correlation-ID``.
    """

    async def dispatch(self, request: Request, call_next):
        correlation_id = str(uuid.uuid4())
        request.state.correlation_id = correlation_id
        client = request.client.host if request.client else "unknown"
        start = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as exc:
            print(
                f"[ERROR] {correlation_id} - {request.method} {request.url.path} - "
                f"{type(exc).__name__}: {exc}",
                flush=True,
            )
            response = _internal_error(correlation_id)

        response.headers[CORRELATION_HEADER] = correlation_id
        duration_ms = (time.perf_counter() - start) * 1000.0
        print(
            f"[REQUEST] {correlation_id} - {client} {request.method} {request.url.path} -> "
            f"{response.status_code} ({duration_ms:.0f}ms)",
            flush=True,
        )
        return response
