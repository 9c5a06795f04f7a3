"""Record types shared by the page sources, aggregator and exporters."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Optional

from .regions import UNKNOWN_REGION, derive_region


@dataclass(frozen=True)
class RawRecord:
    """One listing as a page source sees it, before enrichment."""

    name: str
    address: str = ""
    website: str = ""
    contact: Optional[str] = None


@dataclass(frozen=True)
class Record:
    name: str
    address: str
    website: str
    contact: Optional[str]
    region: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_raw(cls, raw: RawRecord, contact: Optional[str] = None) -> "Record":
        """Finalise ``raw``; the region is fixed here and never recomputed."""

        return cls(
            name=raw.name.strip(),
            address=(raw.address or "").strip(),
            website=(raw.website or "").strip(),
            contact=contact if contact is not None else raw.contact,
            region=derive_region(raw.address),
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Record":
        """Rebuild a record from its snapshot payload.

        Raises ``ValueError`` when the payload is not a usable record.
        """

        if not isinstance(payload, dict):
            raise ValueError(f"record payload must be an object, got {type(payload).__name__}")
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("record payload is missing a name")

        address = payload.get("address") or ""
        website = payload.get("website") or ""
        contact = payload.get("contact")
        # Older snapshots stored the contact under "email".
        if contact is None:
            contact = payload.get("email")
        region = payload.get("region") or payload.get("state")
        if not isinstance(address, str) or not isinstance(website, str):
            raise ValueError(f"record payload for {name!r} has non-text fields")
        if contact is not None and not isinstance(contact, str):
            raise ValueError(f"record payload for {name!r} has a non-text contact")
        if not isinstance(region, str) or not region:
            region = derive_region(address) if address else UNKNOWN_REGION

        return cls(name=name, address=address, website=website, contact=contact or None, region=region)


__all__ = ["RawRecord", "Record"]
