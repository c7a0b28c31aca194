"""
Automation coverage aggregation.

This module fetches the test cases of a set of sections and reports how many
of them are automated.

Automation status codes (TestRail ``custom_automation`` dropdown):
- 1 = Yes (automated)
- 2 = No (explicitly not automated)
- 3 = Automation Candidate
- anything else, including a missing value, counts as No

Key Concepts:
- Percentages: each category's share of all fetched cases, formatted with one
  decimal place. Categories are rounded independently, so their sum may land
  anywhere between 99.9 and 100.1. With no cases every percentage is "0".
- Overall coverage: the Yes percentage alone; candidates are not automated.

Error Handling:
- A section whose cases cannot be fetched contributes no cases; the failure is
  logged and the remaining sections are still aggregated.
"""

import contextvars
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Iterable

YES = "Yes"
CANDIDATE = "Candidate"
NO = "No"
CATEGORIES = (YES, CANDIDATE, NO)

AUTOMATION_STATUS = {
    1: YES,
    2: NO,
    3: CANDIDATE,
}

DEFAULT_AUTOMATION_FIELD = "custom_automation"


def automation_category(value: Any) -> str:
    """Map a raw automation status value to its category.

    Accepts ints, integral floats and numeric strings (``"1"``, ``" 3 "``).
    Never raises: any value that is not a known code maps to ``"No"``.
    """
    if value is None or isinstance(value, bool):
        return NO
    code: int | None
    if isinstance(value, int):
        code = value
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return NO
        code = int(number) if number.is_integer() else None
    return AUTOMATION_STATUS.get(code, NO)


@dataclass
class CoverageResult:
    """Automation coverage for one selection of sections."""

    total_counts: dict[str, int]
    percentages: dict[str, str]
    overall_coverage: str
    candidate_tests: list[dict[str, Any]] = field(default_factory=list)
    no_tests: list[dict[str, Any]] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.total_counts.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCounts": dict(self.total_counts),
            "percentages": dict(self.percentages),
            "overallCoverage": self.overall_coverage,
            "candidateTests": list(self.candidate_tests),
            "noTests": list(self.no_tests),
        }


def calculate_percentages(total_counts: dict[str, int]) -> dict[str, str]:
    """Return each category's share of the total as a one-decimal string."""
    total = sum(total_counts.get(category, 0) for category in CATEGORIES)
    if total == 0:
        return {category: "0" for category in CATEGORIES}
    return {
        category: f"{total_counts.get(category, 0) / total * 100:.1f}"
        for category in CATEGORIES
    }


def _case_ref(case: dict[str, Any]) -> dict[str, Any]:
    title = case.get("title")
    return {"id": case.get("id"), "title": str(title) if title is not None else None}


def summarize_cases(
    cases: Iterable[dict[str, Any]], automation_field: str = DEFAULT_AUTOMATION_FIELD
) -> CoverageResult:
    """Classify ``cases`` and build the coverage result."""
    total_counts = {category: 0 for category in CATEGORIES}
    candidate_tests: list[dict[str, Any]] = []
    no_tests: list[dict[str, Any]] = []

    for case in cases:
        category = automation_category(case.get(automation_field))
        total_counts[category] += 1
        if category == CANDIDATE:
            candidate_tests.append(_case_ref(case))
        elif category == NO:
            no_tests.append(_case_ref(case))

    percentages = calculate_percentages(total_counts)
    return CoverageResult(
        total_counts=total_counts,
        percentages=percentages,
        overall_coverage=percentages[YES],
        candidate_tests=candidate_tests,
        no_tests=no_tests,
    )


def _fetch_section_cases(client, section_id: int) -> list[dict[str, Any]]:
    try:
        cases = client.get_cases(section_id)
    except Exception as exc:
        print(
            f"[COVERAGE] Error fetching test cases for section {section_id}: "
            f"{type(exc).__name__}: {exc}",
            flush=True,
        )
        return []
    usable = [case for case in cases or [] if isinstance(case, dict)]
    if len(usable) != len(cases or []):
        print(
            f"[COVERAGE] Section {section_id}: ignored {len(cases) - len(usable)} malformed case entries",
            flush=True,
        )
    return usable


def fetch_cases_for_sections(
    client, section_ids: Iterable[int], max_workers: int = 8
) -> list[dict[str, Any]]:
    """Fetch the cases of every section concurrently, concatenated in ``section_ids`` order."""
    section_ids = list(section_ids)
    if not section_ids:
        return []
    workers = max(1, min(max_workers, len(section_ids)))
    # One context copy per task so API telemetry from workers reaches the caller
    contexts = [contextvars.copy_context() for _ in section_ids]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        batches = list(
            executor.map(
                lambda ctx, sid: ctx.run(_fetch_section_cases, client, sid),
                contexts,
                section_ids,
            )
        )
    return [case for batch in batches for case in batch]


def aggregate_coverage(
    client,
    section_ids: Iterable[int],
    *,
    max_workers: int = 8,
    automation_field: str = DEFAULT_AUTOMATION_FIELD,
) -> CoverageResult:
    """Fetch, classify and summarize the cases of ``section_ids``."""
    section_ids = list(section_ids)
    print(f"[COVERAGE] All section IDs to process: {section_ids}", flush=True)
    cases = fetch_cases_for_sections(client, section_ids, max_workers=max_workers)
    result = summarize_cases(cases, automation_field=automation_field)
    print(
        f"[COVERAGE] Aggregated {result.total} test cases: percentages={result.percentages}",
        flush=True,
    )
    return result
