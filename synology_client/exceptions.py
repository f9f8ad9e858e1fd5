"""
Defines custom exceptions for the library to allow for more specific error handling.
"""


class SynologyClientError(Exception):
    """Base exception for all library-specific errors."""


class ValidationError(SynologyClientError, ValueError):
    """Raised when a caller-supplied argument is missing, blank or malformed."""


class ConfigurationError(SynologyClientError):
    """Raised for issues related to configuration loading or validation."""


class TransportError(SynologyClientError):
    """
    Raised on connection failures, timeouts and non-2xx HTTP statuses.

    Attributes:
        status: The HTTP status code, if a response was received.
        timed_out: True when the request exceeded the configured timeout.
    """

    def __init__(
        self, message: str, status: int | None = None, timed_out: bool = False
    ):
        super().__init__(message)
        self.status = status
        self.timed_out = timed_out


class ProtocolError(SynologyClientError):
    """Raised when a response body does not match the expected envelope shape."""


class ApiError(SynologyClientError):
    """
    Raised when the remote API answers with ``success: false``.

    Attributes:
        api: Name of the API that reported the failure.
        code: The numeric error code sent by the NAS.
        message: Human-readable description resolved from the error catalog.
        sub_errors: Per-item errors attached to batch operations, if any.
    """

    def __init__(
        self,
        api: str,
        code: int,
        message: str,
        sub_errors: list[dict] | None = None,
    ):
        super().__init__(f"{message} (api: {api}, code: {code})")
        self.api = api
        self.code = code
        self.message = message
        self.sub_errors = sub_errors or []


class CancellationError(SynologyClientError):
    """Raised when a call is cancelled through its cancellation event."""
