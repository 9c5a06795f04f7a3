from __future__ import annotations

"""Error code taxonomy for harvester failures.

These codes appear in structured logs and in the controller status payload so
an operator can tell why a run halted. Keep them stable for reporting.
"""


class ErrorCode:
    NETWORK = "network_error"
    TIMEOUT = "timeout"
    HTTP_4XX = "http_4xx"
    HTTP_404 = "http_404_not_found"
    HTTP_429 = "http_429_rate_limited"
    HTTP_5XX = "http_5xx"
    PARSE = "parse_error"
    SNAPSHOT_CORRUPT = "snapshot_corrupt"
    EMPTY_EXPORT = "empty_export"
    INTERNAL = "internal_error"


def classify_http_status(status: int | None) -> str:
    """Map an HTTP status code onto an ``ErrorCode`` value."""

    if status is None:
        return ErrorCode.INTERNAL
    if status == 404:
        return ErrorCode.HTTP_404
    if status == 429:
        return ErrorCode.HTTP_429
    if 400 <= status < 500:
        return ErrorCode.HTTP_4XX
    if status >= 500:
        return ErrorCode.HTTP_5XX
    return ErrorCode.INTERNAL


__all__ = ["ErrorCode", "classify_http_status"]
