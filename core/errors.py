"""Error taxonomy shared by the aggregation engine and the API layer.

Every error carries a machine-readable ``code`` and a human message so the
routing layer can render a structured error envelope without inspecting
exception types.
"""

from __future__ import annotations


class LensError(Exception):
    """Base exception for all Ninja Lens errors."""

    code = "LENS_ERROR"
    status_code = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidInputError(LensError):
    """Caller supplied a malformed identifier. Never retried."""

    code = "INVALID_INPUT"
    status_code = 400


class InvalidAddressError(InvalidInputError):
    code = "INVALID_ADDRESS"


class UpstreamError(LensError):
    """A remote query failed."""

    code = "UPSTREAM_ERROR"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        is_transient: bool = False,
        upstream_status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.is_transient = is_transient
        self.upstream_status = upstream_status


class TransientUpstreamError(UpstreamError):
    """Timeout, network error, throttling or 5xx (retry-able)."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, is_transient=True, upstream_status=upstream_status)


class PermanentUpstreamError(UpstreamError):
    """Rejected request or unreadable response (not retry-able)."""

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message, is_transient=False, upstream_status=upstream_status)


def classify_http_error(status_code: int, message: str) -> UpstreamError:
    """Classify an upstream HTTP status as transient or permanent.

    Args:
        status_code: HTTP status code returned by the upstream
        message: Error message

    Returns:
        Appropriate UpstreamError subclass
    """
    if status_code in {408, 425, 429}:
        return TransientUpstreamError(message, status_code)

    if 500 <= status_code < 600:
        return TransientUpstreamError(message, status_code)

    return PermanentUpstreamError(message, status_code)
