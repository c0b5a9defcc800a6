"""
emissions_ingest/api/routers package marker.
"""

from emissions_ingest.api.routers.ai import router as ai_router
from emissions_ingest.api.routers.ingest import router as ingest_router

__all__ = [
    "ai_router",
    "ingest_router",
]
