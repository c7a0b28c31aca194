"""Request models for API endpoints."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class SectionsRequest(BaseModel):
    # Accepted for compatibility with older dashboard clients; the tree does not depend on it.
    path: str | None = None


class CoverageRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    folder_ids: list[int] = Field(alias="folderIds")
    mode: Literal["inclusive", "strict"] = "inclusive"

    @field_validator("folder_ids", mode="before")
    @classmethod
    def _coerce_folder_ids(cls, value):
        if not isinstance(value, list):
            raise ValueError("folderIds must be an array")
        cleaned: list[int] = []
        for item in value:
            if isinstance(item, bool):
                raise ValueError("folderIds must contain integers")
            if isinstance(item, str):
                text = item.strip()
                if not text.lstrip("-").isdigit():
                    raise ValueError("folderIds must contain integers")
                item = int(text)
            cleaned.append(item)
        return cleaned


class ChartPercentages(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    Yes: float = Field(default=0.0, ge=0, le=100)
    Candidate: float = Field(
        default=0.0,
        ge=0,
        le=100,
        validation_alias=AliasChoices("Candidate", "Automation Candidate"),
    )
    No: float = Field(default=0.0, ge=0, le=100)


class ChartExportRequest(BaseModel):
    title: str | None = None
    percentages: ChartPercentages


class ReportExportRequest(BaseModel):
    charts: list[ChartExportRequest] = Field(min_length=1)
