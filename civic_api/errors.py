"""Error taxonomy shared by the store, the external collaborators and the routes.

`str(exc)` carries the detail that goes to the logs; `public_message` is the
only text returned to API callers.
"""

from typing import Optional


class CivicError(Exception):
    """Base class for errors the API knows how to report."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str = "", public_message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        if public_message is not None:
            self.public_message = public_message


class ValidationError(CivicError):
    """Missing or malformed caller input."""

    status_code = 400
    public_message = "Invalid complaint data"


class NotFound(CivicError):
    """Referenced complaint does not exist."""

    status_code = 404
    public_message = "Complaint not found"


class UpstreamUnavailable(CivicError):
    """Geocoding, storage or summary provider failed or timed out."""

    status_code = 502
    public_message = "Upstream service unavailable"


class StorageError(UpstreamUnavailable):
    """Raised when image storage operations fail."""

    public_message = "Image upload failed"


__all__ = [
    "CivicError",
    "ValidationError",
    "NotFound",
    "UpstreamUnavailable",
    "StorageError",
]
