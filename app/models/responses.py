"""Response models for API endpoints."""

from typing import Any

from pydantic import BaseModel


class SectionNodeResponse(BaseModel):
    """A section with its nested child sections."""
    id: int
    name: str
    parent_id: int | None = None
    children: list["SectionNodeResponse"] = []


class CaseSummary(BaseModel):
    id: int | str | None = None
    title: str | None = None


class CoverageResponse(BaseModel):
    """Automation coverage for a folder selection."""
    totalCounts: dict[str, int]
    percentages: dict[str, str]
    overallCoverage: str
    candidateTests: list[CaseSummary]
    noTests: list[CaseSummary]


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: Any
    details: Any | None = None
