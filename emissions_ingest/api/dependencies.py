"""
emissions_ingest/api/dependencies.py

Shared FastAPI dependencies for upload validation and store wiring.
"""

from __future__ import annotations

import json

from fastapi import Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from emissions_ingest.config import IngestionSettings, get_ingestion_settings
from emissions_ingest.domain.canonical import HeaderMapping
from emissions_ingest.errors import ParseError, UploadTooLargeError
from emissions_ingest.parsing.csv_reader import ParsedUpload, parse_csv, read_upload_bytes
from emissions_ingest.repositories.base import EmissionRecordStore, ImportJobStore
from emissions_ingest.repositories.emission_record_repository import SQLAlchemyEmissionRecordStore
from emissions_ingest.repositories.import_job_repository import SQLAlchemyImportJobStore
from db.session import get_db

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "text/plain",
    "application/vnd.ms-excel",
}


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    if not filename.endswith(".csv") and content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def get_parsed_upload(
    file: UploadFile = Depends(get_csv_upload),
    settings: IngestionSettings = Depends(get_ingestion_settings),
) -> ParsedUpload:
    """
    Read and fully parse the upload within the configured size limit.
    """

    try:
        content = read_upload_bytes(file.file, max_bytes=settings.max_upload_bytes)
        return parse_csv(content, file_name=file.filename)
    except UploadTooLargeError as exc:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=str(exc),
        ) from exc
    except ParseError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    finally:
        file.file.close()


def get_header_mapping(mapping: str | None = Form(default=None)) -> HeaderMapping | None:
    """
    Parse the optional `mapping` form field.

    Accepts either `{"mapping": {...}, "notes": ...}` or a bare
    `{header: field}` object.
    """

    if mapping is None or not mapping.strip():
        return None
    try:
        raw = json.loads(mapping)
    except json.JSONDecodeError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"mapping must be JSON: {exc}",
        ) from exc
    if not isinstance(raw, dict):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="mapping must be a JSON object.",
        )

    notes = None
    if isinstance(raw.get("mapping"), dict):
        notes = raw.get("notes") if isinstance(raw.get("notes"), str) else None
        raw = raw["mapping"]
    try:
        return HeaderMapping.from_wire(raw, notes=notes)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc


def get_record_store(db: Session = Depends(get_db)) -> EmissionRecordStore:
    return SQLAlchemyEmissionRecordStore(db)


def get_job_store(db: Session = Depends(get_db)) -> ImportJobStore:
    return SQLAlchemyImportJobStore(db)
