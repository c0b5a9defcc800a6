"""
emissions_ingest/api/routers/ai.py

Assisted column-mapping endpoint.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from emissions_ingest.mappers.header_mapper import HeaderMapper
from emissions_ingest.schemas.ai import MapColumnsRequest, MapColumnsResponse
from emissions_ingest.services.mapping_service import get_header_mapper

router = APIRouter(prefix="/ai", tags=["mapping"])


@router.post("/map-columns", response_model=MapColumnsResponse)
def map_columns(
    payload: MapColumnsRequest,
    mapper: HeaderMapper = Depends(get_header_mapper),
) -> MapColumnsResponse:
    """
    Suggest a header mapping. Falls back to an all-null mapping when the
    assistant is unavailable.
    """

    suggestion = mapper.suggest(payload.headers)
    return MapColumnsResponse(mapping=dict(suggestion.mapping), notes=suggestion.notes)
