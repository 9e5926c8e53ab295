"""Error types shared by the upstream clients and metrics services."""

from typing import Optional


class MetricsError(Exception):
    """Base class for every error the metrics backend raises on purpose.

    Carries the originating upstream context when there is one so the
    route layer can log it. Never put credentials in ``message``.
    """

    http_status = 500

    def __init__(self, message: str, status_code: Optional[int] = None,
                 endpoint: Optional[str] = None, method: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.endpoint = endpoint
        self.method = method

    def context(self) -> dict:
        """Diagnostic fields for log lines."""
        return {
            "statusCode": self.status_code,
            "endpoint": self.endpoint,
            "method": self.method,
        }


class ValidationError(MetricsError):
    """A required filter is missing or a query parameter is malformed."""

    http_status = 400


class NotFoundError(MetricsError):
    """Unknown team, sprint, member or upstream resource."""

    http_status = 404


class UnknownError(MetricsError):
    """Catch-all for unexpected failures surfaced to callers."""

    http_status = 500


class UpstreamError(MetricsError):
    """An upstream API call failed."""

    http_status = 500


class AuthError(UpstreamError):
    """Missing or rejected upstream credentials (401/403)."""

    http_status = 401


class RateLimitedError(UpstreamError):
    """Upstream rejected the call with 429."""

    http_status = 429


class UpstreamServerError(UpstreamError):
    """Upstream returned a 5xx response."""

    http_status = 500


class UnknownUpstreamError(UpstreamError):
    """Unexpected status code or a transport failure."""

    http_status = 500


def error_for_status(status_code: Optional[int], endpoint: str,
                     method: str = "GET", upstream: str = "Upstream") -> MetricsError:
    """Translate an upstream HTTP status into the matching error kind."""
    if status_code in (401, 403):
        return AuthError(
            f"{upstream} rejected the configured credentials ({status_code})",
            status_code, endpoint, method
        )
    if status_code == 404:
        return NotFoundError(
            f"{upstream} resource not found: {endpoint}",
            status_code, endpoint, method
        )
    if status_code == 429:
        return RateLimitedError(
            f"{upstream} rate limit exceeded for {endpoint}",
            status_code, endpoint, method
        )
    if status_code is not None and 500 <= status_code <= 599:
        return UpstreamServerError(
            f"{upstream} API error: {method} {endpoint} returned {status_code}",
            status_code, endpoint, method
        )
    return UnknownUpstreamError(
        f"{upstream} API request failed: {method} {endpoint}"
        + (f" returned {status_code}" if status_code is not None else ""),
        status_code, endpoint, method
    )
