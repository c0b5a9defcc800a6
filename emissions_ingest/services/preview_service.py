"""
emissions_ingest/services/preview_service.py

Dry-run validation of an upload. Never writes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any

from emissions_ingest.adapters import SourceAdapter
from emissions_ingest.config import get_ingestion_settings
from emissions_ingest.domain.canonical import HeaderMapping, Problem
from emissions_ingest.logging_utils import log_event
from emissions_ingest.parsing.csv_reader import ParsedUpload
from emissions_ingest.services.upload_validation import UploadValidationPass
from emissions_ingest.validators.row_validator import RowValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreviewStats:
    checked: int
    ok: int
    problems: list[Problem]
    problems_total: int


@dataclass(frozen=True)
class PreviewReport:
    adapter: SourceAdapter
    headers: tuple[str, ...]
    mapping: HeaderMapping
    stats: PreviewStats
    sample_rows: list[dict[str, Any]] = field(default_factory=list)


class PreviewService:
    """
    Reports what a commit of the same file and mapping would do.
    """

    def __init__(
        self,
        *,
        validation: UploadValidationPass | None = None,
        max_rows: int = 1000,
        max_problems: int = 10,
        sample_rows: int = 5,
    ) -> None:
        self._validation = validation or UploadValidationPass()
        self._max_rows = max(1, max_rows)
        self._max_problems = max(1, max_problems)
        self._sample_rows = max(0, sample_rows)

    def preview(self, upload: ParsedUpload, *, mapping: HeaderMapping | None = None) -> PreviewReport:
        """
        Validate up to `max_rows` non-empty rows.

        Raises SchemaMismatchError when the mapping cannot be used.
        """

        prepared = self._validation.prepare(upload, mapping=mapping)

        checked = 0
        ok = 0
        problems: list[Problem] = []
        problems_total = 0
        samples: list[dict[str, Any]] = []

        for result in self._validation.validate_rows(prepared, dataset_version="", limit=self._max_rows):
            checked += 1
            if result.ok and result.row is not None:
                ok += 1
                if len(samples) < self._sample_rows:
                    sample = result.row.to_dict()
                    sample["dataset_version"] = sample["dataset_version"] or None
                    samples.append(sample)
                continue
            problems_total += len(result.problems)
            remaining = self._max_problems - len(problems)
            if remaining > 0:
                problems.extend(result.problems[:remaining])

        log_event(
            logger,
            logging.INFO,
            "ingest.preview",
            adapter=prepared.adapter.key,
            file_name=upload.file_name,
            checked=checked,
            ok=ok,
            problems_total=problems_total,
        )

        return PreviewReport(
            adapter=prepared.adapter,
            headers=upload.headers,
            mapping=prepared.mapping,
            stats=PreviewStats(
                checked=checked,
                ok=ok,
                problems=problems,
                problems_total=problems_total,
            ),
            sample_rows=samples,
        )


@lru_cache(maxsize=1)
def get_preview_service() -> PreviewService:
    """
    Build and cache the preview service with env-driven settings.
    """

    settings = get_ingestion_settings()
    return PreviewService(
        validation=UploadValidationPass(row_validator=RowValidator(min_year=settings.min_year)),
        max_rows=settings.preview_max_rows,
        max_problems=settings.preview_max_problems,
        sample_rows=settings.preview_sample_rows,
    )
