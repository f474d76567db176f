# Overview: CSV upload staging and row extraction for bulk imports.

"""
CSV Row Extraction

An upload is copied to a temp file under UPLOAD_FOLDER (staged_upload) and
read back once, lazily, as header-keyed records (extract_rows).

HEADER RESOLUTION:
1. Each header cell is lowercased and trimmed, then looked up in the
   schema's synonym table ("productname" and "name" both mean name).
2. A header that resolves to nothing is assigned the schema field at the
   same column position, provided no named header already claimed it.
   This is a best-effort heuristic for files without a real header row; it
   cannot tell a header row from a data row. Disable with
   CSV_POSITIONAL_HEADER_FALLBACK=false.
3. Anything else keeps its normalized header and is ignored downstream.

CLEANUP: the staged temp file is removed when the staged_upload block
exits, whatever the exit path.
"""

from __future__ import annotations

import contextlib
import csv
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import BinaryIO, Iterator


ALLOWED_CSV_MIME_TYPES = {"text/csv", "application/vnd.ms-excel", "application/csv"}
DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024


class CsvStreamError(Exception):
    """The upload could not be read as CSV at all. Aborts the whole import."""


class UploadRejectedError(ValueError):
    """The upload failed a boundary check (missing, wrong type, too large)."""


@dataclass(frozen=True)
class HeaderSchema:
    """Ordered canonical fields plus normalized-header synonyms."""
    fields: tuple[str, ...]
    synonyms: dict[str, str] = field(default_factory=dict)

    def lookup(self, normalized_header: str) -> str | None:
        return self.synonyms.get(normalized_header)


@dataclass
class ExtractedRow:
    # 1-based physical line number of the record's last line (header is line 1)
    row_number: int
    data: dict[str, str]


def normalize_header(cell: str) -> str:
    return (cell or "").replace("﻿", "").strip().lower()


def resolve_headers(
    headers: list[str],
    schema: HeaderSchema,
    *,
    positional_fallback: bool = True,
) -> list[str]:
    """Map raw header cells to canonical field names, one entry per column."""
    normalized = [normalize_header(h) for h in headers]
    named = [schema.lookup(h) for h in normalized]
    claimed = {name for name in named if name}

    columns: list[str] = []
    for index, (header, canonical) in enumerate(zip(normalized, named)):
        if canonical:
            columns.append(canonical)
            continue
        if positional_fallback and index < len(schema.fields):
            guessed = schema.fields[index]
            if guessed not in claimed:
                claimed.add(guessed)
                columns.append(guessed)
                continue
        columns.append(header)
    return columns


def check_upload(file_storage, *, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> None:
    """
    Boundary checks run before any parsing.

    Raises UploadRejectedError when the file is missing, not CSV, empty of
    a name, or larger than max_bytes.
    """
    if file_storage is None or not file_storage.filename:
        raise UploadRejectedError("No file uploaded or file is not a valid CSV.")

    mimetype = (file_storage.mimetype or "").lower()
    is_csv_name = file_storage.filename.lower().endswith(".csv")
    if mimetype not in ALLOWED_CSV_MIME_TYPES and not (mimetype == "text/plain" and is_csv_name):
        raise UploadRejectedError("Only CSV files are allowed!")

    stream = file_storage.stream
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    if size > max_bytes:
        raise UploadRejectedError(
            f"File upload error: File too large (limit {max_bytes // (1024 * 1024)} MB)."
        )


@contextlib.contextmanager
def staged_upload(stream: BinaryIO, upload_dir: str) -> Iterator[str]:
    """
    Copy an uploaded byte stream to a temp file and yield its path.

    The temp file is deleted when the block exits, normally or not.
    """
    os.makedirs(upload_dir, exist_ok=True)
    fd, path = tempfile.mkstemp(prefix="upload-", suffix=".csv", dir=upload_dir)
    try:
        try:
            with os.fdopen(fd, "wb") as out:
                shutil.copyfileobj(stream, out)
        except OSError as exc:
            raise CsvStreamError(f"Could not store uploaded file: {exc}") from exc
        yield path
    finally:
        with contextlib.suppress(FileNotFoundError):
            os.remove(path)


def extract_rows(
    path: str,
    schema: HeaderSchema,
    *,
    positional_fallback: bool = True,
) -> Iterator[ExtractedRow]:
    """
    Lazily read a staged CSV file as header-keyed records.

    Cell values are trimmed; blank cells are left out of the record and
    fully blank lines are skipped. Single pass, not restartable.

    Raises CsvStreamError on empty files, undecodable bytes, malformed
    quoting, or I/O failure.
    """
    try:
        with open(path, newline="", encoding="utf-8-sig") as handle:
            reader = csv.reader(handle, strict=True)
            headers = next(reader, None)
            if headers is None:
                raise CsvStreamError("CSV file is empty.")
            columns = resolve_headers(headers, schema, positional_fallback=positional_fallback)

            for cells in reader:
                if not any(cell.strip() for cell in cells):
                    continue
                data: dict[str, str] = {}
                for column, cell in zip(columns, cells):
                    value = cell.strip()
                    if value:
                        data[column] = value
                yield ExtractedRow(row_number=reader.line_num, data=data)
    except UnicodeDecodeError as exc:
        raise CsvStreamError("File is not valid UTF-8 text.") from exc
    except csv.Error as exc:
        raise CsvStreamError(f"Malformed CSV: {exc}") from exc
    except OSError as exc:
        raise CsvStreamError(f"Error reading CSV file: {exc}") from exc
