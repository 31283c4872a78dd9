"""Errors raised by the Microsoft Graph client."""

from typing import Any

import requests

THROTTLING_STATUS_CODES = frozenset({429, 503, 504})


class AuthenticationError(Exception):
    """Raised when an access token cannot be obtained."""

    pass


class GraphServiceError(Exception):
    """A non-success response from Microsoft Graph."""

    def __init__(self, status_code: int | None, code: str | None, message: str):
        self.status_code = status_code
        self.code = code
        self.message = message
        super().__init__(f"{status_code} {code or 'error'}: {message}")

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404

    @classmethod
    def from_response(cls, response: requests.Response) -> "GraphServiceError":
        """Build the error from a Graph error body, falling back to the raw text."""
        code: str | None = None
        message = response.reason or "Request failed"
        try:
            body: Any = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            code = body["error"].get("code")
            message = body["error"].get("message") or message
        elif response.text:
            message = response.text[:500]

        if response.status_code in THROTTLING_STATUS_CODES:
            return GraphThrottledError(
                response.status_code,
                code,
                message,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
            )
        return cls(response.status_code, code, message)


class GraphThrottledError(GraphServiceError):
    """Graph asked the client to back off (429, 503, 504)."""

    def __init__(
        self,
        status_code: int | None,
        code: str | None,
        message: str,
        retry_after: float | None = None,
    ):
        self.retry_after = retry_after
        super().__init__(status_code, code, message)


def parse_retry_after(value: str | None) -> float | None:
    """Seconds from a ``Retry-After`` header; Graph sends delta-seconds only."""
    if not value:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def retry_after_hint(error: Exception) -> float | None:
    """Server-requested wait carried by a throttling error, if any."""
    if isinstance(error, GraphThrottledError):
        return error.retry_after
    return None


class SchemaRegistrationError(GraphServiceError):
    """The schema registration operation finished with status ``failed``."""

    pass


class OperationTimeoutError(GraphServiceError):
    """A long-running operation was still pending after the allowed status checks."""

    def __init__(self, operation_id: str, attempts: int):
        self.operation_id = operation_id
        self.attempts = attempts
        super().__init__(
            None,
            "operationTimeout",
            f"Operation {operation_id} still pending after {attempts} status checks",
        )
