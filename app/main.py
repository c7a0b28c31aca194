from app.core import bootstrap  # noqa: F401  (loads .env before config is read)

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api import coverage, export, health, ui
from app.core.config import config
from app.core.middleware import RequestContextMiddleware
from app.services.error_handler import ErrorHandler
from testrail_client import DEFAULT_HTTP_BACKOFF, DEFAULT_HTTP_RETRIES, DEFAULT_HTTP_TIMEOUT

app = FastAPI(title="TestRail Coverage", version="0.1.0")

app.add_middleware(RequestContextMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[config.ALLOWED_ORIGIN],
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

app.add_exception_handler(RequestValidationError, ErrorHandler.handle_validation_error)
app.add_exception_handler(StarletteHTTPException, ErrorHandler.handle_http_exception)

app.include_router(health.router)
app.include_router(coverage.router)
app.include_router(export.router)
app.include_router(ui.router)


@app.on_event("startup")
def on_startup():
    print("--- Coverage Configuration ---")
    print(f"Project / Suite:      {config.TESTRAIL_PROJECT_ID} / {config.TESTRAIL_SUITE_ID}")
    print(f"Page Limit:           {config.TESTRAIL_PAGE_LIMIT}")
    print(f"Fetch Workers:        {config.COVERAGE_FETCH_WORKERS}")
    print(f"Include Ancestors:    {config.COVERAGE_INCLUDE_ANCESTORS}")
    print(
        f"Rate Limit:           {config.RATE_LIMIT_MAX_REQUESTS} req / "
        f"{config.RATE_LIMIT_WINDOW_SECONDS}s"
    )
    print(
        f"HTTP:                 timeout={DEFAULT_HTTP_TIMEOUT}s retries={DEFAULT_HTTP_RETRIES} "
        f"backoff={DEFAULT_HTTP_BACKOFF}s"
    )
    print("------------------------------", flush=True)
