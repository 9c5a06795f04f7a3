"""Region derivation from free-form postal addresses."""
from __future__ import annotations

import re

UNKNOWN_REGION = "Unknown"

_STATE_ZIP = re.compile(r"([A-Z]{2})\s+\d{5}(-\d{4})?")

# Fifty states plus the District of Columbia.
REGION_NAMES: dict[str, str] = {
    "Alabama": "AL", "Alaska": "AK", "Arizona": "AZ", "Arkansas": "AR",
    "California": "CA", "Colorado": "CO", "Connecticut": "CT", "Delaware": "DE",
    "Florida": "FL", "Georgia": "GA", "Hawaii": "HI", "Idaho": "ID",
    "Illinois": "IL", "Indiana": "IN", "Iowa": "IA", "Kansas": "KS",
    "Kentucky": "KY", "Louisiana": "LA", "Maine": "ME", "Maryland": "MD",
    "Massachusetts": "MA", "Michigan": "MI", "Minnesota": "MN", "Mississippi": "MS",
    "Missouri": "MO", "Montana": "MT", "Nebraska": "NE", "Nevada": "NV",
    "New Hampshire": "NH", "New Jersey": "NJ", "New Mexico": "NM", "New York": "NY",
    "North Carolina": "NC", "North Dakota": "ND", "Ohio": "OH", "Oklahoma": "OK",
    "Oregon": "OR", "Pennsylvania": "PA", "Rhode Island": "RI", "South Carolina": "SC",
    "South Dakota": "SD", "Tennessee": "TN", "Texas": "TX", "Utah": "UT",
    "Vermont": "VT", "Virginia": "VA", "Washington": "WA", "West Virginia": "WV",
    "Wisconsin": "WI", "Wyoming": "WY", "District of Columbia": "DC",
}

# Longer names first so "West Virginia" is not read as "Virginia".
_NAMES_LONGEST_FIRST = sorted(REGION_NAMES.items(), key=lambda item: -len(item[0]))


def derive_region(address: str | None) -> str:
    """Return the region code for ``address``.

    A two-letter code directly followed by a ZIP code wins. Otherwise the first
    longest full region name found in the address is mapped to its code. Anything else
    is ``UNKNOWN_REGION``.
    """

    if not address:
        return UNKNOWN_REGION

    match = _STATE_ZIP.search(address)
    if match:
        return match.group(1)

    for name, code in _NAMES_LONGEST_FIRST:
        if name in address:
            return code

    return UNKNOWN_REGION


__all__ = ["derive_region", "REGION_NAMES", "UNKNOWN_REGION"]
