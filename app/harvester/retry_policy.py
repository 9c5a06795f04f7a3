from __future__ import annotations

from typing import Optional

from .error_codes import ErrorCode
from .logging_utils import _harvest_event

RETRYABLE_ERROR_CODES = {
    ErrorCode.NETWORK,
    ErrorCode.TIMEOUT,
    ErrorCode.HTTP_5XX,
    ErrorCode.HTTP_429,
}

NON_RETRYABLE_ERROR_CODES = {
    ErrorCode.HTTP_404,
    ErrorCode.HTTP_4XX,
    # Selectors no longer match the page layout; restarting will not help.
    ErrorCode.PARSE,
    ErrorCode.INTERNAL,
}


def is_retryable_fetch_failure(
    error_code: Optional[str],
    *,
    http_status: Optional[int] = None,
    page_index: Optional[int] = None,
) -> bool:
    """Decide whether restarting after a failed page fetch is worthwhile.

    The controller never retries on its own; this only labels the failure so
    the status surface can hint whether a fresh ``start()`` should succeed.
    """

    code = (error_code or "").strip()
    if code in NON_RETRYABLE_ERROR_CODES:
        kind, retryable = "non_retryable", False
    elif code in RETRYABLE_ERROR_CODES:
        kind, retryable = "retryable", True
    elif http_status is not None and http_status >= 500:
        kind, retryable = "retryable", True
    else:
        kind, retryable = ("unknown" if code else "missing_error_code"), False

    _harvest_event(
        "state",
        phase="fetch_failure",
        kind=kind,
        error_code=code or None,
        http_status=http_status,
        page=page_index,
        retryable=retryable,
    )
    return retryable


__all__ = ["is_retryable_fetch_failure", "RETRYABLE_ERROR_CODES", "NON_RETRYABLE_ERROR_CODES"]
