"""
emissions_ingest/schemas/ingest.py

Response schemas for preview, commit and import job endpoints.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from emissions_ingest.domain.canonical import CanonicalField, ImportJobRecord, Problem
from emissions_ingest.schemas.base import CamelModel
from emissions_ingest.services.commit_service import CommitResult
from emissions_ingest.services.preview_service import PreviewReport


class ProblemResponse(CamelModel):
    """
    API response model for one row-level problem.
    """

    row_index: int = Field(..., ge=0)
    reason: str
    field: str | None = None
    column: str | None = None
    raw_value: str | None = None

    @classmethod
    def from_problem(cls, problem: Problem) -> "ProblemResponse":
        return cls(
            row_index=problem.row_index,
            reason=problem.reason,
            field=problem.field,
            column=problem.column,
            raw_value=problem.raw_value,
        )


class HeaderMappingResponse(CamelModel):
    mapping: dict[str, CanonicalField | None]
    notes: str | None = None


class SampleRowResponse(CamelModel):
    facility_name: str
    year: int
    month: int | None = None
    co2e_tonnes: float
    scope: int | None = None
    source: str
    method: str | None = None
    dataset_version: str | None = None


class PreviewStatsResponse(CamelModel):
    checked: int = Field(..., ge=0)
    ok: int = Field(..., ge=0)
    problems: list[ProblemResponse] = Field(default_factory=list)
    problems_total: int = Field(..., ge=0)


class PreviewResponse(CamelModel):
    """
    API response model for a dry-run validation.
    """

    adapter: str
    dataset_name: str
    headers: list[str]
    mapping: HeaderMappingResponse
    preview_stats: PreviewStatsResponse
    sample_rows: list[SampleRowResponse] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report: PreviewReport) -> "PreviewResponse":
        return cls(
            adapter=report.adapter.key,
            dataset_name=report.adapter.default_dataset_name,
            headers=list(report.headers),
            mapping=HeaderMappingResponse(
                mapping=dict(report.mapping.mapping),
                notes=report.mapping.notes,
            ),
            preview_stats=PreviewStatsResponse(
                checked=report.stats.checked,
                ok=report.stats.ok,
                problems=[ProblemResponse.from_problem(problem) for problem in report.stats.problems],
                problems_total=report.stats.problems_total,
            ),
            sample_rows=[SampleRowResponse(**row) for row in report.sample_rows],
        )


class CommitResponse(CamelModel):
    """
    API response model for a finished commit.
    """

    import_job_id: uuid.UUID
    status: str
    adapter: str
    dataset_name: str
    dataset_version: str
    duplicate_policy: str
    rows_total: int = Field(..., ge=0)
    rows_imported: int = Field(..., ge=0)
    rows_skipped: int = Field(..., ge=0)
    duplicates: int = Field(..., ge=0)
    invalid: int = Field(..., ge=0)
    inserted: int = Field(..., ge=0)
    replaced: int = Field(..., ge=0)
    last_processed_row_index: int | None = None
    problems: list[ProblemResponse] = Field(default_factory=list)
    problems_total: int = Field(0, ge=0)

    @classmethod
    def from_result(cls, result: CommitResult) -> "CommitResponse":
        return cls(
            import_job_id=result.import_job_id,
            status=result.status,
            adapter=result.adapter,
            dataset_name=result.dataset_name,
            dataset_version=result.dataset_version,
            duplicate_policy=result.duplicate_policy,
            rows_total=result.rows_total,
            rows_imported=result.rows_imported,
            rows_skipped=result.rows_skipped,
            duplicates=result.duplicates,
            invalid=result.invalid,
            inserted=result.rows_inserted,
            replaced=result.rows_replaced,
            last_processed_row_index=result.last_processed_row_index,
            problems=[ProblemResponse.from_problem(problem) for problem in result.problems],
            problems_total=result.problems_total,
        )


class ImportJobResponse(CamelModel):
    """
    API response model for one import job audit record.
    """

    id: uuid.UUID
    adapter: str
    dataset_name: str
    dataset_version: str
    duplicate_policy: str
    status: str
    rows_total: int
    rows_imported: int
    rows_inserted: int
    rows_replaced: int
    rows_skipped: int
    duplicates: int
    invalid: int
    last_processed_row_index: int | None = None
    created_at: datetime
    file_name: str | None = None
    checksum_sha256: str | None = None
    header_mapping: dict[str, str | None] = Field(default_factory=dict)
    problems: list[ProblemResponse] = Field(default_factory=list)
    error_message: str | None = None

    @classmethod
    def from_record(cls, job: ImportJobRecord) -> "ImportJobResponse":
        return cls(
            id=job.id,
            adapter=job.adapter,
            dataset_name=job.dataset_name,
            dataset_version=job.dataset_version,
            duplicate_policy=job.duplicate_policy,
            status=job.status,
            rows_total=job.rows_total,
            rows_imported=job.rows_imported,
            rows_inserted=job.rows_inserted,
            rows_replaced=job.rows_replaced,
            rows_skipped=job.rows_skipped,
            duplicates=job.duplicates,
            invalid=job.invalid,
            last_processed_row_index=job.last_processed_row_index,
            created_at=job.created_at,
            file_name=job.file_name,
            checksum_sha256=job.checksum_sha256,
            header_mapping=dict(job.header_mapping),
            problems=[_problem_from_dict(problem) for problem in job.problems],
            error_message=job.error_message,
        )


def _problem_from_dict(raw: dict[str, Any]) -> ProblemResponse:
    return ProblemResponse(
        row_index=raw.get("row_index", 0),
        reason=raw.get("reason", ""),
        field=raw.get("field"),
        column=raw.get("column"),
        raw_value=raw.get("raw_value"),
    )
