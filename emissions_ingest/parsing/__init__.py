"""
emissions_ingest/parsing package marker.
"""

from emissions_ingest.parsing.csv_reader import ParsedUpload, RawRow, parse_csv, read_upload_bytes

__all__ = [
    "ParsedUpload",
    "RawRow",
    "parse_csv",
    "read_upload_bytes",
]
