"""
emissions_ingest/validators package marker.
"""

from emissions_ingest.validators.mapping_validator import MappingValidator, missing_fields
from emissions_ingest.validators.row_validator import RowValidator

__all__ = [
    "MappingValidator",
    "RowValidator",
    "missing_fields",
]
