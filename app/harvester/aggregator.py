"""Merge freshly fetched records into the accumulated store and region tally."""
from __future__ import annotations

from typing import Iterable, Sequence

from .records import Record
from .regions import UNKNOWN_REGION

RegionTally = dict[str, int]


def merge(
    existing_records: Sequence[Record],
    existing_tally: RegionTally,
    new_records: Iterable[Record],
) -> tuple[list[Record], RegionTally]:
    """Append ``new_records`` and count them by region.

    Neither input is modified; new containers are returned. Arrival order is
    preserved and duplicates are kept.
    """

    records = list(existing_records)
    tally = dict(existing_tally)
    for record in new_records:
        region = record.region or UNKNOWN_REGION
        tally[region] = tally.get(region, 0) + 1
        records.append(record)
    return records, tally


def rebuild_tally(records: Iterable[Record]) -> RegionTally:
    """Derive a tally from scratch by replaying ``merge`` over ``records``."""

    _, tally = merge([], {}, records)
    return tally


__all__ = ["RegionTally", "merge", "rebuild_tally"]
