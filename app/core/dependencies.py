"""FastAPI dependency injection setup."""

from functools import lru_cache

from fastapi import Depends, HTTPException, Request

from app.core.config import config, env_or_die
from app.services.rate_limiter import SlidingWindowRateLimiter
from testrail_client import (
    DEFAULT_HTTP_BACKOFF,
    DEFAULT_HTTP_RETRIES,
    DEFAULT_HTTP_TIMEOUT,
    TestRailClient,
)


@lru_cache()
def get_rate_limiter() -> SlidingWindowRateLimiter:
    """Get process-wide rate limiter instance."""
    return SlidingWindowRateLimiter(
        max_requests=config.RATE_LIMIT_MAX_REQUESTS,
        window_seconds=config.RATE_LIMIT_WINDOW_SECONDS,
    )


def enforce_rate_limit(request: Request, limiter=Depends(get_rate_limiter)):
    """Reject the request with 429 once its client exceeds the rolling window quota."""
    client = request.client.host if request.client else "unknown"
    if not limiter.allow(client):
        print(f"[RATE-LIMIT] client={client} path={request.url.path} rejected", flush=True)
        raise HTTPException(
            status_code=429,
            detail="Too many requests, please try again later.",
            headers={"Retry-After": str(limiter.retry_after(client))},
        )
    return True


def get_testrail_client() -> TestRailClient:
    """Get TestRail client instance."""
    try:
        base_url = env_or_die("TESTRAIL_URL").rstrip("/")
        user = env_or_die("TESTRAIL_USER_EMAIL")
        api_key = env_or_die("TESTRAIL_API_KEY")
    except SystemExit:
        raise HTTPException(status_code=500, detail="Server missing TestRail credentials")

    return TestRailClient(
        base_url=base_url,
        auth=(user, api_key),
        project_id=config.TESTRAIL_PROJECT_ID,
        suite_id=config.TESTRAIL_SUITE_ID,
        page_limit=config.TESTRAIL_PAGE_LIMIT,
        timeout=DEFAULT_HTTP_TIMEOUT,
        max_attempts=DEFAULT_HTTP_RETRIES,
        backoff=DEFAULT_HTTP_BACKOFF,
    )
