"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.emission_record import EmissionRecord, EmissionRecordRevision
from db.models.import_job import ImportJob

__all__ = [
    "EmissionRecord",
    "EmissionRecordRevision",
    "ImportJob",
]
