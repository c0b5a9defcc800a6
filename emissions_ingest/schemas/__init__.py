"""
emissions_ingest/schemas package marker.
"""

from emissions_ingest.schemas.ai import MapColumnsRequest, MapColumnsResponse
from emissions_ingest.schemas.ingest import (
    CommitResponse,
    HeaderMappingResponse,
    ImportJobResponse,
    PreviewResponse,
    PreviewStatsResponse,
    ProblemResponse,
    SampleRowResponse,
)

__all__ = [
    "CommitResponse",
    "HeaderMappingResponse",
    "ImportJobResponse",
    "MapColumnsRequest",
    "MapColumnsResponse",
    "PreviewResponse",
    "PreviewStatsResponse",
    "ProblemResponse",
    "SampleRowResponse",
]
