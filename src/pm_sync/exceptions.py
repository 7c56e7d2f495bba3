"""Exception types raised by the API façade and form validation."""

from typing import Any


class PMSyncError(Exception):
    """Base class for all client errors."""


class TransportError(PMSyncError):
    """Raised when a request fails before any HTTP response is received."""

    def __init__(self, message: str, method: str = "", url: str = "") -> None:
        super().__init__(message)
        self.message = message
        self.method = method
        self.url = url


class ApiError(PMSyncError):
    """Raised for HTTP 4xx/5xx responses from the backend."""

    def __init__(
        self,
        status_code: int,
        body: Any = None,
        method: str = "",
        url: str = "",
    ) -> None:
        self.status_code = status_code
        self.body = body
        self.method = method
        self.url = url
        self.message = extract_body_message(body) or f"Request failed with status {status_code}"
        super().__init__(self.message)


class UnauthorizedError(ApiError):
    """HTTP 401. The stored token has already been cleared when this is raised."""


class NotFoundError(ApiError):
    """HTTP 404."""


class ServerError(ApiError):
    """HTTP 5xx."""


class EnvelopeError(PMSyncError):
    """Raised when a response payload cannot be coerced into the expected shape."""

    def __init__(self, expected: str, received: Any) -> None:
        self.expected = expected
        self.received_type = type(received).__name__
        super().__init__(f"Expected {expected}, received {self.received_type}")


class FormValidationError(PMSyncError):
    """Client-side validation failure. Never reaches the network."""

    def __init__(self, errors: dict[str, str]) -> None:
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


def api_error_for_status(
    status_code: int,
    body: Any = None,
    method: str = "",
    url: str = "",
) -> ApiError:
    """Build the most specific ApiError subclass for a status code."""
    if status_code == 401:
        cls: type[ApiError] = UnauthorizedError
    elif status_code == 404:
        cls = NotFoundError
    elif status_code >= 500:
        cls = ServerError
    else:
        cls = ApiError
    return cls(status_code, body=body, method=method, url=url)


def extract_body_message(body: Any) -> str | None:
    """Pull a user-facing message out of a structured error body.

    Looks at ``message`` then ``error``; both may be nested one level under
    ``data`` by some endpoints.
    """
    if not isinstance(body, dict):
        return None
    for candidate in (body, body.get("data")):
        if not isinstance(candidate, dict):
            continue
        for key in ("message", "error"):
            value = candidate.get(key)
            if isinstance(value, str) and value:
                return value
    return None


def error_message(exc: BaseException, fallback: str) -> str:
    """Convert any failure into the string shown inline by a controller.

    Args:
        exc: The caught exception
        fallback: Generic message used when the response body carries none

    Returns:
        Message from the response body when present, otherwise the fallback
    """
    if isinstance(exc, ApiError):
        return extract_body_message(exc.body) or fallback
    if isinstance(exc, FormValidationError):
        return str(exc)
    return fallback
