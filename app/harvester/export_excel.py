"""Excel workbook export of harvested records, one sheet per region."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd

from . import config
from .aggregator import rebuild_tally
from .exporter import EXPORT_HEADERS, EmptyExportError, record_row, sort_records
from .records import Record

# Excel rejects sheet names longer than 31 characters or containing these.
_SHEET_NAME_MAX = 31
_SHEET_NAME_FORBIDDEN = set('[]:*?/\\')


def _sheet_name(region: str) -> str:
    cleaned = "".join("_" if ch in _SHEET_NAME_FORBIDDEN else ch for ch in region).strip("'")
    return (cleaned or "Unknown")[:_SHEET_NAME_MAX]


def records_frame(records: Sequence[Record]) -> pd.DataFrame:
    """Return the sorted records as a frame with export column names."""

    rows = [record_row(record) for record in sort_records(records)]
    return pd.DataFrame(rows, columns=list(EXPORT_HEADERS))


def export_records_to_excel(
    records: Sequence[Record],
    dest_path: Optional[str] = None,
) -> str:
    """Write an "All" sheet, one sheet per region and a region summary."""

    if not records:
        raise EmptyExportError()

    df = records_frame(records)
    tally = rebuild_tally(records)
    summary = (
        pd.DataFrame(sorted(tally.items()), columns=["State", "count"])
        .sort_values("count", ascending=False, kind="stable")
        .reset_index(drop=True)
    )

    if not dest_path:
        os.makedirs(config.EXPORTS_DIR, exist_ok=True)
        basename = Path(config.EXPORTS_DIR) / f"scraped_data_{pd.Timestamp.now():%Y-%m-%d}.xlsx"
        dest_path = str(basename)

    with pd.ExcelWriter(dest_path, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name="All")
        used_names = {"All", "Summary_State"}
        for region in sorted(tally):
            name = _sheet_name(region)
            if name in used_names:
                continue
            used_names.add(name)
            df[df["State"] == region].to_excel(writer, index=False, sheet_name=name)
        summary.to_excel(writer, index=False, sheet_name="Summary_State")

    return dest_path


__all__ = ["export_records_to_excel", "records_frame"]
