"""
emissions_ingest/services package marker.
"""

from emissions_ingest.services.commit_service import CommitResult, CommitService, get_commit_service
from emissions_ingest.services.mapping_service import get_header_mapper
from emissions_ingest.services.preview_service import (
    PreviewReport,
    PreviewService,
    PreviewStats,
    get_preview_service,
)
from emissions_ingest.services.upload_validation import PreparedUpload, RowResult, UploadValidationPass

__all__ = [
    "CommitResult",
    "CommitService",
    "PreparedUpload",
    "PreviewReport",
    "PreviewService",
    "PreviewStats",
    "RowResult",
    "UploadValidationPass",
    "get_commit_service",
    "get_header_mapper",
    "get_preview_service",
]
