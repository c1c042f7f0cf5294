"""Custom exception hierarchy for the fetch pipeline."""

from enum import Enum

import httpx


class ClientError(Exception):
    """Base exception for all client errors."""


class ConfigurationError(ClientError):
    """Raised when configuration is missing or invalid."""


class RequestValidationError(ClientError):
    """Raised when request options or path parameters are malformed."""


class URLPathError(RequestValidationError):
    """Raised when a base URL or path pattern cannot produce a valid URL."""


class TransportError(ClientError):
    """Raised when the transport reports a failed request.

    Attributes:
        message: Error message (the redirect target for see-other failures)
        status_code: HTTP status code (None for network-level failures)
        location: Redirect target, when the server sent one
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        location: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.location = location

    def is_unauthorized(self) -> bool:
        return self.status_code == 401

    def is_failed_and_see_other(self) -> bool:
        return self.status_code == 303


class UnauthorizedError(TransportError):
    """Raised when a request lacks valid authorization."""

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message, status_code=401)


class SeeOtherError(TransportError):
    """Raised when the server answers 303 See Other."""

    def __init__(self, location: str) -> None:
        super().__init__(location, status_code=303, location=location)


class TransportTimeoutError(TransportError):
    """Raised when the transport times out."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None)


class TransportConnectionError(TransportError):
    """Raised when the transport cannot reach the server."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=None)


class AdmissionDenied(ClientError):
    """Raised when the admission middleware rejects a request."""

    def __init__(self, kind: str, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message


class ErrorKind(Enum):
    UNAUTHORIZED = "unauthorized"
    REDIRECT_SEE_OTHER = "redirect_see_other"
    OTHER = "other"


def as_transport_error(exc: Exception) -> Exception:
    """Translate raw httpx failures into the client hierarchy.

    Client errors and unrelated exceptions are returned unchanged.
    """
    if isinstance(exc, ClientError):
        return exc
    if isinstance(exc, httpx.HTTPStatusError):
        response = exc.response
        if response.status_code == 401:
            return UnauthorizedError(response.text or "Unauthorized")
        if response.status_code == 303:
            return SeeOtherError(response.headers.get("location", ""))
        return TransportError(response.text or str(exc), status_code=response.status_code)
    if isinstance(exc, httpx.TimeoutException):
        return TransportTimeoutError(str(exc) or "Upstream timeout")
    if isinstance(exc, httpx.RequestError):
        return TransportConnectionError(str(exc))
    return exc


def classify_error(exc: Exception) -> ErrorKind:
    """Map a failure to exactly one ErrorKind."""
    exc = as_transport_error(exc)
    if isinstance(exc, TransportError):
        if exc.is_failed_and_see_other():
            return ErrorKind.REDIRECT_SEE_OTHER
        if exc.is_unauthorized():
            return ErrorKind.UNAUTHORIZED
    return ErrorKind.OTHER
