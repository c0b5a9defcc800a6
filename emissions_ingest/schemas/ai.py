"""
emissions_ingest/schemas/ai.py

Request/response schemas for assisted column mapping.
"""

from __future__ import annotations

from pydantic import Field, field_validator

from emissions_ingest.domain.canonical import CanonicalField
from emissions_ingest.schemas.base import CamelModel


class MapColumnsRequest(CamelModel):
    headers: list[str] = Field(..., min_length=1)

    @field_validator("headers")
    @classmethod
    def _require_named_header(cls, headers: list[str]) -> list[str]:
        if not any(header.strip() for header in headers):
            raise ValueError("headers must contain at least one non-empty name")
        return headers


class MapColumnsResponse(CamelModel):
    mapping: dict[str, CanonicalField | None]
    notes: str | None = None
