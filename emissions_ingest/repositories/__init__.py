"""
emissions_ingest/repositories package marker.
"""

from emissions_ingest.repositories.base import (
    EmissionRecordStore,
    ImportJobStore,
    StoredRecord,
    WriteContext,
    resolve_write_action,
)
from emissions_ingest.repositories.emission_record_repository import SQLAlchemyEmissionRecordStore
from emissions_ingest.repositories.import_job_repository import SQLAlchemyImportJobStore
from emissions_ingest.repositories.memory import InMemoryEmissionRecordStore, InMemoryImportJobStore

__all__ = [
    "EmissionRecordStore",
    "ImportJobStore",
    "InMemoryEmissionRecordStore",
    "InMemoryImportJobStore",
    "SQLAlchemyEmissionRecordStore",
    "SQLAlchemyImportJobStore",
    "StoredRecord",
    "WriteContext",
    "resolve_write_action",
]
