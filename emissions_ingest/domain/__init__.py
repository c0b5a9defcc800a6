"""
emissions_ingest/domain package marker.
"""

from emissions_ingest.domain.canonical import (
    REQUIRED_FIELDS,
    CanonicalField,
    CanonicalRow,
    DuplicatePolicy,
    HeaderMapping,
    ImportJobRecord,
    ImportJobStatus,
    NaturalKey,
    Problem,
    WriteAction,
    WriteOutcome,
)
from emissions_ingest.domain.versioning import normalize_version_tag, version_sort_key

__all__ = [
    "REQUIRED_FIELDS",
    "CanonicalField",
    "CanonicalRow",
    "DuplicatePolicy",
    "HeaderMapping",
    "ImportJobRecord",
    "ImportJobStatus",
    "NaturalKey",
    "Problem",
    "WriteAction",
    "WriteOutcome",
    "normalize_version_tag",
    "version_sort_key",
]
