"""Error kinds raised by the game library service.

Every error carries the HTTP status it maps to, so the API layer can render
any of them with a single exception handler.
"""

from typing import Optional


class LibraryServiceError(Exception):
    """Base error for the game library service."""

    status_code: int = 500
    default_message: str = "An internal server error occurred."

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class InvalidInputError(LibraryServiceError):
    """The caller supplied a malformed identifier."""

    status_code = 400
    default_message = "Invalid input."


class ConfigurationError(LibraryServiceError):
    """A required server-side setting (usually an API key) is missing."""

    status_code = 500
    default_message = "Server configuration error."


class NotFoundError(LibraryServiceError):
    """No profile upstream, or no cached data for the identifier."""

    status_code = 404
    default_message = "Not found."


class UpstreamError(LibraryServiceError):
    """An upstream API call failed."""

    status_code = 502
    default_message = "Upstream service error."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        upstream_status: Optional[int] = None
    ):
        super().__init__(message, status_code)
        self.upstream_status = upstream_status


class UpstreamAuthError(UpstreamError):
    """Upstream rejected our credentials (401/403)."""

    default_message = "Upstream request was not authorized. Check API key or permissions."


class UpstreamShapeError(UpstreamError):
    """Upstream answered with a structure we do not understand."""

    default_message = "Unexpected response structure from upstream API."


class UpstreamNetworkError(UpstreamError):
    """Upstream could not be reached or timed out."""

    status_code = 504
    default_message = "Network error connecting to upstream service."


class UpstreamDependencyError(UpstreamError):
    """An upstream failure surfaced through the orchestrator."""

    status_code = 502


class InternalError(LibraryServiceError):
    """Unexpected failure inside the service."""

    status_code = 500


class CacheStoreError(InternalError):
    """The cache table could not be read or written."""

    default_message = "Cache store failure."
