"""
emissions_ingest/errors.py

Exception taxonomy for the ingestion pipeline.

Row-level problems are not exceptions; they are collected as `Problem`
values. Losing a duplicate-policy comparison is not an error either; it is
counted as a duplicate.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Sequence


class IngestError(Exception):
    """Base exception for ingestion failures."""


class ParseError(IngestError, ValueError):
    """Raised when the upload is not well-formed delimited text."""


class UploadTooLargeError(IngestError):
    """Raised when the upload exceeds the configured size limit."""

    def __init__(self, *, limit_bytes: int) -> None:
        super().__init__(f"Upload exceeds the {limit_bytes} byte limit.")
        self.limit_bytes = limit_bytes


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    canonical_field: str | None = None
    source_column: str | None = None
    context: dict[str, Any] | None = None


class SchemaMismatchError(IngestError, ValueError):
    """
    Raised before any row is processed when the header mapping is unusable.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    @property
    def missing_fields(self) -> list[str]:
        return sorted(
            {
                error.canonical_field
                for error in self.errors
                if error.code == "required_field_unmapped" and error.canonical_field
            }
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "missingFields": self.missing_fields,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "canonicalField": error.canonical_field,
                    "sourceColumn": error.source_column,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class StorageFault(IngestError, RuntimeError):
    """Raised by record stores when an infrastructure-level write fails."""


class PartialCommitError(IngestError, RuntimeError):
    """
    Raised when a commit stopped on a storage fault after writing some rows.

    Rows written before the fault stand. `last_processed_row_index` names the
    last data row whose outcome is final, so the caller can resume after it.
    """

    def __init__(
        self,
        *,
        message: str,
        import_job_id: uuid.UUID | None,
        last_processed_row_index: int | None,
        counts: dict[str, int],
    ) -> None:
        super().__init__(message)
        self.message = message
        self.import_job_id = import_job_id
        self.last_processed_row_index = last_processed_row_index
        self.counts = dict(counts)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "status": "incomplete",
            "importJobId": str(self.import_job_id) if self.import_job_id else None,
            "lastProcessedRowIndex": self.last_processed_row_index,
            **self.counts,
        }
