"""Deterministic CSV export of the accumulated record store."""
from __future__ import annotations

import csv
import io
import unicodedata
from datetime import date
from pathlib import Path
from typing import Iterable, Optional, Sequence

from .error_codes import ErrorCode
from .records import Record

EXPORT_HEADERS: tuple[str, ...] = ("Name", "Address", "Website", "Email", "State")


class EmptyExportError(Exception):
    """Raised when an export is requested for an empty record store."""

    error_code = ErrorCode.EMPTY_EXPORT

    def __init__(self, message: str = "No data to export") -> None:
        super().__init__(message)


def collation_key(name: str) -> tuple[str, str, str]:
    """Sort key approximating locale-aware name ordering.

    Accents and case are ignored first, then accents decide, then lowercase
    sorts before uppercase.
    """

    decomposed = unicodedata.normalize("NFKD", name)
    base = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return base.casefold(), name.casefold(), name.swapcase()


def sort_records(records: Iterable[Record]) -> list[Record]:
    """Return ``records`` ordered by name; equal names keep their input order."""

    return sorted(records, key=lambda record: collation_key(record.name))


def record_row(record: Record) -> list[str]:
    return [record.name, record.address, record.website, record.contact or "", record.region]


def render_csv(records: Sequence[Record]) -> str:
    """Render the header plus one fully quoted row per record.

    Rows are separated by ``\\n`` and the text has no trailing newline.
    """

    if not records:
        raise EmptyExportError()

    buffer = io.StringIO()
    buffer.write(",".join(EXPORT_HEADERS))
    buffer.write("\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, doublequote=True, lineterminator="\n")
    for record in sort_records(records):
        writer.writerow(record_row(record))
    return buffer.getvalue().rstrip("\n")


def export_csv(records: Sequence[Record]) -> bytes:
    """Return the UTF-8 encoded CSV export of ``records``.

    Raises ``EmptyExportError`` when ``records`` is empty. ``records`` is never
    modified.
    """

    return render_csv(records).encode("utf-8")


def export_filename(today: Optional[date] = None) -> str:
    day = today or date.today()
    return f"scraped_data_{day.isoformat()}.csv"


def write_csv_export(records: Sequence[Record], dest_dir: Path, today: Optional[date] = None) -> Path:
    """Write the export into ``dest_dir`` and return the file path."""

    payload = export_csv(records)
    dest_dir = Path(dest_dir)
    dest_dir.mkdir(parents=True, exist_ok=True)
    path = dest_dir / export_filename(today)
    path.write_bytes(payload)
    return path


__all__ = [
    "EXPORT_HEADERS",
    "EmptyExportError",
    "collation_key",
    "export_csv",
    "export_filename",
    "render_csv",
    "sort_records",
    "write_csv_export",
]
