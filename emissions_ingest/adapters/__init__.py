"""
emissions_ingest/adapters package: schema signature matching.
"""

from __future__ import annotations

from collections.abc import Sequence

from emissions_ingest.adapters.base import SourceAdapter
from emissions_ingest.adapters.generic_operator import GenericOperatorAdapter
from emissions_ingest.adapters.trace_sector import TraceSectorAdapter

GENERIC_OPERATOR = GenericOperatorAdapter()
TRACE_SECTOR = TraceSectorAdapter()

# Priority order; the first adapter whose fingerprint matches wins.
ADAPTERS: tuple[SourceAdapter, ...] = (TRACE_SECTOR, GENERIC_OPERATOR)
FALLBACK_ADAPTER: SourceAdapter = GENERIC_OPERATOR


def detect_adapter(headers: Sequence[str]) -> SourceAdapter:
    """
    Classify an upload by its header row. Pure and order independent.
    """

    for adapter in ADAPTERS:
        if adapter.matches(headers):
            return adapter
    return FALLBACK_ADAPTER


def get_adapter(key: str) -> SourceAdapter:
    for adapter in ADAPTERS:
        if adapter.key == key:
            return adapter
    raise KeyError(f"Unknown adapter: {key}")


__all__ = [
    "ADAPTERS",
    "FALLBACK_ADAPTER",
    "GENERIC_OPERATOR",
    "TRACE_SECTOR",
    "GenericOperatorAdapter",
    "SourceAdapter",
    "TraceSectorAdapter",
    "detect_adapter",
    "get_adapter",
]
