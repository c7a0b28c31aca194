import contextlib
import contextvars
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone

import requests


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


DEFAULT_HTTP_TIMEOUT = _env_float("TESTRAIL_HTTP_TIMEOUT", 20.0)
try:
    DEFAULT_HTTP_RETRIES = max(1, int(os.getenv("TESTRAIL_HTTP_RETRIES", "3")))
except (TypeError, ValueError):
    DEFAULT_HTTP_RETRIES = 3
DEFAULT_HTTP_BACKOFF = max(0.5, _env_float("TESTRAIL_HTTP_BACKOFF", 1.6))

# TestRail caps bulk endpoints at 250 items per page.
MAX_PAGE_LIMIT = 250


# --- Telemetry helpers ---
_telemetry_ctx: contextvars.ContextVar[dict | None] = contextvars.ContextVar(
    "testrail_coverage_telemetry", default=None
)


@contextlib.contextmanager
def capture_telemetry():
    """Capture API call telemetry for the current context."""
    data = {"api_calls": []}
    token = _telemetry_ctx.set(data)
    try:
        yield data
    finally:
        _telemetry_ctx.reset(token)


def record_api_call(
    kind: str, endpoint: str, elapsed_ms: float, status: str, error: str | None = None
):
    telemetry = _telemetry_ctx.get()
    if not telemetry:
        return
    telemetry.setdefault("api_calls", []).append(
        {
            "kind": kind,
            "endpoint": endpoint,
            "elapsed_ms": round(elapsed_ms, 2),
            "status": status,
            "error": error,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
    )


class TestRailShapeError(Exception):
    """Raised when a TestRail payload holds no recoverable list of items."""

    def __init__(self, endpoint: str, payload):
        super().__init__(
            f"Unexpected payload for '{endpoint}': expected a list, got {type(payload).__name__}"
        )
        self.endpoint = endpoint
        self.payload_type = type(payload).__name__


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, requests.exceptions.HTTPError):
        status_code = exc.response.status_code if exc.response is not None else None
        return status_code == 429 or (
            status_code is not None and 500 <= status_code < 600
        )
    return isinstance(
        exc, (requests.exceptions.Timeout, requests.exceptions.ConnectionError)
    )


def api_get(
    session: requests.Session,
    base_url: str,
    endpoint: str,
    *,
    timeout: float | None = None,
    max_attempts: int | None = None,
    backoff: float | None = None,
):
    """GET with configurable timeout + retry for transient errors."""
    url = f"{base_url}/index.php?/api/v2/{endpoint}"
    attempts = max(1, max_attempts or DEFAULT_HTTP_RETRIES)
    delay = DEFAULT_HTTP_BACKOFF if backoff is None else backoff
    for attempt in range(1, attempts + 1):
        start = time.perf_counter()
        try:
            r = session.get(url, timeout=timeout or DEFAULT_HTTP_TIMEOUT)
            r.raise_for_status()
            data = r.json()
            # Surface TestRail API error payloads early
            if isinstance(data, dict) and "error" in data:
                raise RuntimeError(f"API error for '{endpoint}': {data.get('error')}")
        except (requests.exceptions.RequestException, ValueError) as exc:
            record_api_call(
                "GET",
                endpoint,
                (time.perf_counter() - start) * 1000.0,
                "error",
                str(exc),
            )
            if not _is_retryable(exc) or attempt == attempts:
                raise
            time.sleep(delay)
            delay *= 1.6
            continue
        except RuntimeError as exc:
            record_api_call(
                "GET",
                endpoint,
                (time.perf_counter() - start) * 1000.0,
                "error",
                str(exc),
            )
            raise
        record_api_call("GET", endpoint, (time.perf_counter() - start) * 1000.0, "ok")
        return data


def extract_items(data, key: str, endpoint: str) -> list:
    """Return the list carried by a TestRail page.

    Older TestRail versions answer bulk endpoints with a bare list, newer ones
    wrap it as ``{"offset": .., "limit": .., "<key>": [...]}``.
    """
    if data is None:
        return []
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return data[key]
    raise TestRailShapeError(endpoint, data)


def _get_paginated(
    session,
    base_url,
    resource: str,
    project_id: int,
    filters: list[str],
    *,
    key: str,
    limit: int = MAX_PAGE_LIMIT,
    timeout: float | None = None,
    max_attempts: int | None = None,
    backoff: float | None = None,
) -> list:
    items: list = []
    offset = 0
    limit = max(1, min(limit, MAX_PAGE_LIMIT))
    while True:
        qs = filters + [f"offset={offset}", f"limit={limit}"]
        endpoint = f"{resource}/{project_id}&" + "&".join(qs)
        data = api_get(
            session,
            base_url,
            endpoint,
            timeout=timeout,
            max_attempts=max_attempts,
            backoff=backoff,
        )
        batch = extract_items(data, key, endpoint)
        items.extend(batch)
        if len(batch) < limit:
            break
        offset += len(batch)
    return items


def get_sections(
    session,
    base_url,
    project_id: int,
    *,
    suite_id: int | None = None,
    limit: int = MAX_PAGE_LIMIT,
    timeout: float | None = None,
    max_attempts: int | None = None,
    backoff: float | None = None,
) -> list:
    """Return every section of a project (optionally a single suite)."""
    filters = [f"suite_id={suite_id}"] if suite_id is not None else []
    print(f"[SECTIONS] Fetching sections project={project_id} suite={suite_id}", flush=True)
    return _get_paginated(
        session,
        base_url,
        "get_sections",
        project_id,
        filters,
        key="sections",
        limit=limit,
        timeout=timeout,
        max_attempts=max_attempts,
        backoff=backoff,
    )


def get_cases(
    session,
    base_url,
    project_id: int,
    *,
    suite_id: int | None = None,
    section_id: int | None = None,
    limit: int = MAX_PAGE_LIMIT,
    timeout: float | None = None,
    max_attempts: int | None = None,
    backoff: float | None = None,
) -> list:
    """Return list of cases for a project (optionally filtered by suite/section)."""
    filters = []
    if suite_id is not None:
        filters.append(f"suite_id={suite_id}")
    if section_id is not None:
        filters.append(f"section_id={section_id}")
    cases = _get_paginated(
        session,
        base_url,
        "get_cases",
        project_id,
        filters,
        key="cases",
        limit=limit,
        timeout=timeout,
        max_attempts=max_attempts,
        backoff=backoff,
    )
    print(f"[CASES] Section {section_id} total test cases: {len(cases)}", flush=True)
    return cases


@dataclass(slots=True)
class TestRailClient:
    """Centralized TestRail client with shared timeout/retry config."""

    base_url: str
    auth: tuple[str, str]
    project_id: int = 1
    suite_id: int | None = None
    page_limit: int = MAX_PAGE_LIMIT
    timeout: float = DEFAULT_HTTP_TIMEOUT
    max_attempts: int = DEFAULT_HTTP_RETRIES
    backoff: float = DEFAULT_HTTP_BACKOFF

    def make_session(self) -> requests.Session:
        sess = requests.Session()
        sess.auth = self.auth
        return sess

    def get_sections(self):
        with self.make_session() as session:
            return get_sections(
                session,
                self.base_url,
                self.project_id,
                suite_id=self.suite_id,
                limit=self.page_limit,
                timeout=self.timeout,
                max_attempts=self.max_attempts,
                backoff=self.backoff,
            )

    def get_cases(self, section_id: int):
        with self.make_session() as session:
            return get_cases(
                session,
                self.base_url,
                self.project_id,
                suite_id=self.suite_id,
                section_id=section_id,
                limit=self.page_limit,
                timeout=self.timeout,
                max_attempts=self.max_attempts,
                backoff=self.backoff,
            )

    def get_statuses(self):
        with self.make_session() as session:
            return api_get(
                session,
                self.base_url,
                "get_statuses",
                timeout=self.timeout,
                max_attempts=self.max_attempts,
                backoff=self.backoff,
            )
