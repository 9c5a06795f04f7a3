"""Website-to-contact enrichment through the Hunter domain-search API."""
from __future__ import annotations

from typing import Any, Optional
from urllib.parse import urlparse

import requests

from . import config
from .logging_utils import _harvest_event


def extract_domain(url: str | None) -> Optional[str]:
    """Return the host of ``url`` without a leading ``www.``."""

    if not url:
        return None
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    try:
        host = urlparse(candidate).hostname
    except ValueError:
        return None
    if not host:
        return None
    return host[4:] if host.startswith("www.") else host


class HunterContactLookup:
    """Looks up the first published email address for a domain.

    Every failure, including a missing key, yields ``None`` so a record is
    simply stored without a contact.
    """

    def __init__(
        self,
        api_key: str,
        *,
        session: Optional[Any] = None,
        timeout: int = config.ENRICHMENT_TIMEOUT_S,
        api_url: str = config.HUNTER_API_URL,
    ) -> None:
        self._api_key = api_key
        self._session = session or requests.Session()
        self._timeout = timeout
        self._api_url = api_url

    def lookup(self, website: str | None) -> Optional[str]:
        domain = extract_domain(website)
        if not domain or not self._api_key:
            return None

        try:
            response = self._session.get(
                self._api_url,
                params={"domain": domain, "api_key": self._api_key, "limit": 1},
                timeout=self._timeout,
            )
            response.raise_for_status()
            payload = response.json()
        except (requests.RequestException, ValueError) as exc:
            _harvest_event("error", phase="enrichment", domain=domain, error=str(exc))
            return None

        emails = ((payload or {}).get("data") or {}).get("emails") or []
        for entry in emails:
            value = entry.get("value") if isinstance(entry, dict) else None
            if value:
                _harvest_event("state", phase="enrichment", domain=domain, found=True)
                return str(value)

        _harvest_event("state", phase="enrichment", domain=domain, found=False)
        return None


__all__ = ["HunterContactLookup", "extract_domain"]
