from typing import Optional


class ComposeServiceError(Exception):
    """Base class for every error raised by the compose pipeline."""


class ValidationError(ComposeServiceError):
    """Bad request shape. Surfaced as HTTP 400, never reaches the composer."""


class DecodeError(ComposeServiceError):
    """A single image payload could not be turned into a raster."""


class RemoteError(ComposeServiceError):
    """The remote generation call produced no usable image.

    `reason` is a short machine-friendly tag (missing_key, transport, status,
    parse, no_image, no_text, timeout). `description` keeps any free text the
    model returned so the local composite can still show it.
    """

    def __init__(self, reason: str, message: str = "", *, description: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message or reason)
        self.reason = reason
        self.description = description
        self.status_code = status_code


class CompositeError(ComposeServiceError):
    """Unexpected failure while rendering the local composite."""


class ServiceError(ComposeServiceError):
    """Anything that escapes the fallback chain. Surfaced as HTTP 500."""
