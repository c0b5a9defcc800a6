"""
tests/conftest.py

Shared fixtures. Everything runs in-process against the in-memory stores.
"""

from __future__ import annotations

from collections.abc import Callable

import pytest

from emissions_ingest.parsing.csv_reader import ParsedUpload, parse_csv
from emissions_ingest.repositories.memory import InMemoryEmissionRecordStore, InMemoryImportJobStore
from emissions_ingest.services.commit_service import CommitService
from emissions_ingest.services.preview_service import PreviewService
from emissions_ingest.services.upload_validation import UploadValidationPass
from emissions_ingest.validators.row_validator import RowValidator


def _make_upload(text: str, file_name: str = "upload.csv") -> ParsedUpload:
    return parse_csv(text.encode("utf-8"), file_name=file_name)


@pytest.fixture()
def upload_factory() -> Callable[..., ParsedUpload]:
    return _make_upload


@pytest.fixture()
def validation() -> UploadValidationPass:
    return UploadValidationPass(row_validator=RowValidator(min_year=1990, current_year=2025))


@pytest.fixture()
def preview_service(validation: UploadValidationPass) -> PreviewService:
    return PreviewService(validation=validation, max_rows=1000, max_problems=10, sample_rows=5)


@pytest.fixture()
def commit_service(validation: UploadValidationPass) -> CommitService:
    return CommitService(validation=validation, max_job_problems=500, log_row_problems=False)


@pytest.fixture()
def record_store() -> InMemoryEmissionRecordStore:
    return InMemoryEmissionRecordStore()


@pytest.fixture()
def job_store() -> InMemoryImportJobStore:
    return InMemoryImportJobStore()
