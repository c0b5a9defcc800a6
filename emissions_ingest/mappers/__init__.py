"""
emissions_ingest/mappers package marker.
"""

from emissions_ingest.mappers.header_mapper import HeaderMapper, normalize_header

__all__ = [
    "HeaderMapper",
    "normalize_header",
]
