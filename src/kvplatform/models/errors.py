from enum import Enum
from typing import Any, Optional

from httpx import Headers, Response, TransportError


class BaseUrlMissingError(Exception):
    def __init__(
        self,
        message="Base URL is not set. Pass base_url or set the KVPLATFORM_URL environment variable.",
    ):
        self.message = message
        super().__init__(self.message)


class TokenMissingError(Exception):
    def __init__(
        self,
        message="API token is not set. Pass token or set the KVPLATFORM_TOKEN environment variable.",
    ):
        self.message = message
        super().__init__(self.message)


class ErrorReason(str, Enum):
    TERMINAL = "terminal"
    RETRYABLE = "retryable"
    EXHAUSTED = "exhausted"


class ApiError(Exception):
    """Raised when the API responds with an error or cannot be reached.

    Attributes:
        status_code: HTTP status code, ``None`` for network failures.
        message: Message taken from the ``error.message`` field of the response
            body, or a generic description.
        error_type: The ``error.type`` field of the response body, if any.
        attempt: The attempt (1-based) at which the error was surfaced.
        reason: Why the error was raised, see :class:`ErrorReason`.
    """

    reason: ErrorReason = ErrorReason.TERMINAL

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        error_type: Optional[str] = None,
        attempt: int = 1,
        http_method: Optional[str] = None,
        url: Optional[str] = None,
        response_body: Any = None,
        headers: Optional[Headers] = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.attempt = attempt
        self.http_method = http_method
        self.url = url
        self.response_body = response_body
        self.headers = headers
        super().__init__(self._format())

    def _format(self) -> str:
        status = self.status_code if self.status_code is not None else "network error"
        return (
            f"{self.message} ({status}, {self.http_method} {self.url}, "
            f"attempt {self.attempt})"
        )

    @classmethod
    def from_response(cls, response: Response, attempt: int = 1) -> "ApiError":
        """Build the error from an HTTP response whose body was already read."""
        try:
            body: Any = response.json()
        except ValueError:
            body = response.text

        message = None
        error_type = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
            error_type = body["error"].get("type")

        return cls(
            message or f"Unexpected error: {response.reason_phrase or 'Unknown'}",
            status_code=response.status_code,
            error_type=error_type,
            attempt=attempt,
            http_method=response.request.method,
            url=str(response.request.url),
            response_body=body,
            headers=response.headers,
        )

    @classmethod
    def from_transport_error(
        cls, error: TransportError, attempt: int = 1
    ) -> "ApiError":
        try:
            request = error.request
            http_method, url = request.method, str(request.url)
        except RuntimeError:
            http_method, url = None, None

        return cls(
            f"Request failed: {type(error).__name__}: {error}",
            attempt=attempt,
            http_method=http_method,
            url=url,
        )


class TerminalRequestError(ApiError):
    """The request itself is invalid and retrying would not change the outcome."""

    reason = ErrorReason.TERMINAL


class RetryableRequestError(ApiError):
    """A transient failure: status >= 500, a retry-eligible status or a network error."""

    reason = ErrorReason.RETRYABLE


class RetriesExhaustedError(ApiError):
    """Raised once the retry ceiling is reached.

    Carries the payload of the last :class:`RetryableRequestError`, available
    as ``last_error``.
    """

    reason = ErrorReason.EXHAUSTED

    def __init__(self, last_error: RetryableRequestError) -> None:
        self.last_error = last_error
        super().__init__(
            last_error.message,
            status_code=last_error.status_code,
            error_type=last_error.error_type,
            attempt=last_error.attempt,
            http_method=last_error.http_method,
            url=last_error.url,
            response_body=last_error.response_body,
            headers=last_error.headers,
        )

    def _format(self) -> str:
        return f"Retries exhausted: {super()._format()}"
