"""Section tree and automation coverage endpoints."""

import time

import requests
from fastapi import APIRouter, Body, Depends, Request

from app.core.config import config
from app.core.dependencies import enforce_rate_limit, get_testrail_client
from app.models.requests import CoverageRequest, SectionsRequest
from app.models.responses import CoverageResponse, ErrorResponse, SectionNodeResponse
from app.services.closure import expand_selection
from app.services.coverage import aggregate_coverage
from app.services.error_handler import ErrorHandler
from app.services.sections import SectionCycleError, build_section_tree, parse_sections
from testrail_client import TestRailShapeError, capture_telemetry

router = APIRouter(tags=["coverage"], dependencies=[Depends(enforce_rate_limit)])

# Failures that make a coherent section list impossible
UPSTREAM_ERRORS = (
    requests.exceptions.RequestException,
    RuntimeError,
    TestRailShapeError,
    ValueError,
)


def _log_api_usage(tag: str, telemetry: dict, start: float):
    api_calls = telemetry.get("api_calls", [])
    failed = sum(1 for call in api_calls if call.get("status") != "ok")
    duration_ms = (time.perf_counter() - start) * 1000.0
    print(
        f"[{tag}] TestRail API calls: {len(api_calls)} ({failed} failed) in {duration_ms:.0f}ms",
        flush=True,
    )


@router.post(
    "/sections",
    response_model=list[SectionNodeResponse],
    responses={500: {"model": ErrorResponse}},
)
@router.post("/api/testrail/folders", include_in_schema=False)
def get_section_tree(
    request: Request,
    payload: SectionsRequest | None = Body(default=None),
    client=Depends(get_testrail_client),
):
    """Return the TestRail section hierarchy as a forest of nested nodes."""
    path = payload.path if payload else None
    print(f"[FOLDERS] Request received. path={path}", flush=True)
    start = time.perf_counter()
    with capture_telemetry() as telemetry:
        try:
            sections = parse_sections(client.get_sections())
        except UPSTREAM_ERRORS as exc:
            return ErrorHandler.upstream_failure(
                exc, request, "Error fetching folder structure from TestRail", "get_sections"
            )
    _log_api_usage("FOLDERS", telemetry, start)
    print(f"[FOLDERS] Total sections fetched: {len(sections)}", flush=True)

    try:
        tree = build_section_tree(sections)
    except SectionCycleError as exc:
        return ErrorHandler.upstream_failure(
            exc, request, "TestRail section hierarchy is malformed", "build_section_tree"
        )
    print(f"[FOLDERS] Constructed folder tree with {len(tree)} root nodes", flush=True)
    return [node.to_dict() for node in tree]


@router.post(
    "/coverage",
    response_model=CoverageResponse,
    responses={500: {"model": ErrorResponse}},
)
@router.post("/api/testrail/data", include_in_schema=False)
def get_coverage(
    request: Request,
    payload: CoverageRequest,
    client=Depends(get_testrail_client),
):
    """
    Compute automation coverage for the selected folders.

    Cases are gathered from the selected sections, all of their descendants
    and (unless COVERAGE_INCLUDE_ANCESTORS is off) their ancestors. With
    ``mode="strict"`` only the selected sections themselves are used.
    """
    print(f"[DATA] Request received for folderIds: {payload.folder_ids} mode={payload.mode}", flush=True)
    if not payload.folder_ids:
        return aggregate_coverage(client, []).to_dict()

    start = time.perf_counter()
    with capture_telemetry() as telemetry:
        sections = []
        if payload.mode == "inclusive":
            try:
                sections = parse_sections(client.get_sections())
            except UPSTREAM_ERRORS as exc:
                return ErrorHandler.upstream_failure(
                    exc, request, "Error fetching test case statistics from TestRail", "get_sections"
                )
            print(f"[DATA] Total sections fetched: {len(sections)}", flush=True)

        try:
            section_ids = expand_selection(
                sections,
                payload.folder_ids,
                mode=payload.mode,
                include_ancestors=config.COVERAGE_INCLUDE_ANCESTORS,
            )
        except SectionCycleError as exc:
            return ErrorHandler.upstream_failure(
                exc, request, "TestRail section hierarchy is malformed", "expand_selection"
            )

        result = aggregate_coverage(
            client,
            section_ids,
            max_workers=config.COVERAGE_FETCH_WORKERS,
            automation_field=config.COVERAGE_AUTOMATION_FIELD,
        )
    _log_api_usage("DATA", telemetry, start)
    return result.to_dict()
