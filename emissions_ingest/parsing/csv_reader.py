"""
emissions_ingest/parsing/csv_reader.py

Bounded, fully-validated CSV parsing for uploads.

The whole file is parsed before any row is handed to the validator, so a
malformed line near the end of the file fails the request before preview
statistics are reported or any commit write happens.
"""

from __future__ import annotations

import csv
import hashlib
import io
from dataclasses import dataclass
from typing import BinaryIO

from emissions_ingest.errors import ParseError, UploadTooLargeError

_READ_CHUNK_BYTES = 1024 * 1024


@dataclass(frozen=True)
class RawRow:
    """
    One data row as read from the file.

    `index` is the 0-based position among data rows (header excluded).
    """

    index: int
    cells: tuple[str, ...]

    def is_empty(self) -> bool:
        return all(cell.strip() == "" for cell in self.cells)


@dataclass(frozen=True)
class ParsedUpload:
    headers: tuple[str, ...]
    rows: tuple[RawRow, ...]
    checksum_sha256: str
    file_name: str | None = None

    @property
    def header_index(self) -> dict[str, int]:
        return {header: position for position, header in enumerate(self.headers) if header}


def read_upload_bytes(stream: BinaryIO, *, max_bytes: int) -> bytes:
    """
    Read an upload stream, refusing anything larger than `max_bytes`.
    """

    stream.seek(0)
    buffer = bytearray()
    while True:
        chunk = stream.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise UploadTooLargeError(limit_bytes=max_bytes)
    return bytes(buffer)


def parse_csv(content: bytes, *, file_name: str | None = None) -> ParsedUpload:
    """
    Parse CSV bytes into trimmed headers and raw rows.

    Raises ParseError when the content is not UTF-8, has malformed quoting,
    lacks a header row, repeats a header, or has no data rows.
    """

    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ParseError("CSV must be UTF-8 encoded.") from exc

    reader = csv.reader(io.StringIO(text, newline=""), strict=True)
    try:
        header_cells = next(reader, None)
        if header_cells is None or all(cell.strip() == "" for cell in header_cells):
            raise ParseError("CSV header row is missing.")

        headers = tuple(cell.strip() for cell in header_cells)
        _ensure_unique_headers(headers)

        rows: list[RawRow] = []
        for position, cells in enumerate(reader):
            rows.append(RawRow(index=position, cells=tuple(cells)))
    except csv.Error as exc:
        raise ParseError(f"Invalid CSV format on line {reader.line_num}: {exc}") from exc

    if not any(not row.is_empty() for row in rows):
        raise ParseError("CSV contains no data rows.")

    return ParsedUpload(
        headers=headers,
        rows=tuple(rows),
        checksum_sha256=hashlib.sha256(content).hexdigest(),
        file_name=file_name,
    )


def _ensure_unique_headers(headers: tuple[str, ...]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for header in headers:
        if not header:
            continue
        if header in seen and header not in duplicates:
            duplicates.append(header)
        seen.add(header)
    if duplicates:
        raise ParseError(f"CSV header row repeats column name(s): {', '.join(duplicates)}.")
