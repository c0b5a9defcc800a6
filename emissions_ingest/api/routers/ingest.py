"""
emissions_ingest/api/routers/ingest.py

Preview, commit and import job HTTP endpoints.
"""

from __future__ import annotations

import asyncio
import threading
import uuid

from fastapi import APIRouter, Depends, Form, HTTPException, Query, Request, status
from fastapi.concurrency import run_in_threadpool

from emissions_ingest.api.dependencies import (
    get_header_mapping,
    get_job_store,
    get_parsed_upload,
    get_record_store,
)
from emissions_ingest.domain.canonical import DuplicatePolicy, HeaderMapping
from emissions_ingest.errors import PartialCommitError, SchemaMismatchError
from emissions_ingest.parsing.csv_reader import ParsedUpload
from emissions_ingest.repositories.base import EmissionRecordStore, ImportJobStore
from emissions_ingest.schemas.ingest import CommitResponse, ImportJobResponse, PreviewResponse
from emissions_ingest.services.commit_service import CommitService, get_commit_service
from emissions_ingest.services.preview_service import PreviewService, get_preview_service

router = APIRouter(prefix="/ingest", tags=["ingestion"])

_DISCONNECT_POLL_SECONDS = 0.25


@router.post("/preview", response_model=PreviewResponse)
def preview_upload(
    upload: ParsedUpload = Depends(get_parsed_upload),
    mapping: HeaderMapping | None = Depends(get_header_mapping),
    preview_service: PreviewService = Depends(get_preview_service),
) -> PreviewResponse:
    """
    Validate an upload and report what a commit would do. Writes nothing.
    """

    try:
        report = preview_service.preview(upload, mapping=mapping)
    except SchemaMismatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_dict(),
        ) from exc

    return PreviewResponse.from_report(report)


async def _cancel_on_disconnect(request: Request, cancel_event: threading.Event) -> None:
    while not cancel_event.is_set():
        if await request.is_disconnected():
            cancel_event.set()
            return
        await asyncio.sleep(_DISCONNECT_POLL_SECONDS)


@router.post("/commit", response_model=CommitResponse)
async def commit_upload(
    request: Request,
    upload: ParsedUpload = Depends(get_parsed_upload),
    dataset_version: str = Form(..., alias="datasetVersion"),
    dataset_name: str | None = Form(default=None, alias="datasetName"),
    duplicate_policy: DuplicatePolicy = Form(
        default=DuplicatePolicy.REPLACE_IF_NEWER,
        alias="duplicatePolicy",
    ),
    mapping: HeaderMapping | None = Depends(get_header_mapping),
    record_store: EmissionRecordStore = Depends(get_record_store),
    job_store: ImportJobStore = Depends(get_job_store),
    commit_service: CommitService = Depends(get_commit_service),
) -> CommitResponse:
    """
    Commit every valid row of an upload under the chosen duplicate policy.

    A client disconnect stops the commit between rows; the job is then
    recorded as cancelled.
    """

    cancel_event = threading.Event()
    watcher = asyncio.create_task(_cancel_on_disconnect(request, cancel_event))
    try:
        result = await run_in_threadpool(
            commit_service.commit,
            upload,
            record_store=record_store,
            job_store=job_store,
            dataset_version=dataset_version,
            dataset_name=dataset_name,
            duplicate_policy=duplicate_policy,
            mapping=mapping,
            cancel_event=cancel_event,
        )
    except SchemaMismatchError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=exc.to_dict(),
        ) from exc
    except PartialCommitError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=exc.to_dict(),
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=str(exc),
        ) from exc
    finally:
        cancel_event.set()
        watcher.cancel()

    return CommitResponse.from_result(result)


@router.get("/jobs", response_model=list[ImportJobResponse])
def list_import_jobs(
    dataset_name: str = Query(..., alias="datasetName", min_length=1),
    job_store: ImportJobStore = Depends(get_job_store),
) -> list[ImportJobResponse]:
    """
    Import jobs for one dataset, newest first.
    """

    return [ImportJobResponse.from_record(job) for job in job_store.list_by_dataset(dataset_name)]


@router.get("/jobs/{job_id}", response_model=ImportJobResponse)
def get_import_job(
    job_id: uuid.UUID,
    job_store: ImportJobStore = Depends(get_job_store),
) -> ImportJobResponse:
    job = job_store.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Import job not found: {job_id}",
        )
    return ImportJobResponse.from_record(job)
