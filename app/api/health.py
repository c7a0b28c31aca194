"""Health check API endpoints."""

import requests
from fastapi import APIRouter, Depends, HTTPException

from app.core.dependencies import enforce_rate_limit, get_rate_limiter, get_testrail_client
from testrail_client import DEFAULT_HTTP_BACKOFF, DEFAULT_HTTP_RETRIES, DEFAULT_HTTP_TIMEOUT

router = APIRouter(tags=["health"])


@router.get("/healthz")
def health_check(limiter=Depends(get_rate_limiter)):
    """Basic health check endpoint."""
    return {
        "ok": True,
        "rate_limit": limiter.stats(),
        "http": {
            "timeout_seconds": DEFAULT_HTTP_TIMEOUT,
            "retries": DEFAULT_HTTP_RETRIES,
            "backoff_seconds": DEFAULT_HTTP_BACKOFF,
        },
    }


@router.get("/health/testrail", dependencies=[Depends(enforce_rate_limit)])
def testrail_health_check(client=Depends(get_testrail_client)):
    """TestRail connectivity health check."""
    try:
        statuses = client.get_statuses()
        return {
            "ok": True,
            "testrail": {
                "status": "healthy",
                "base_url": client.base_url,
                "api_version": "v2",
                "status_count": len(statuses) if isinstance(statuses, list) else 0,
            },
        }
    except requests.exceptions.ConnectionError as e:
        raise HTTPException(
            status_code=503,
            detail={
                "status": "connection_error",
                "message": "Cannot connect to TestRail",
                "base_url": client.base_url,
                "details": str(e),
            },
        )
    except requests.exceptions.HTTPError as e:
        status_code = e.response.status_code if e.response is not None else 502
        raise HTTPException(
            status_code=502,
            detail={
                "status": "http_error",
                "message": f"TestRail API error: {status_code}",
                "base_url": client.base_url,
                "details": str(e),
            },
        )
    except (requests.exceptions.RequestException, RuntimeError, ValueError) as e:
        raise HTTPException(
            status_code=502,
            detail={
                "status": "error",
                "message": "TestRail check failed",
                "base_url": client.base_url,
                "details": str(e),
            },
        )
