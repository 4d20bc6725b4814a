"""Exception taxonomy for the Shrimpy API client."""

from __future__ import annotations


class ShrimpyError(Exception):
    """Base class for every error raised by the client."""


class ConfigurationError(ShrimpyError):
    """Raised when base URL or credentials are missing or unusable."""


class InvalidSecretEncoding(ConfigurationError):
    """Raised when the API secret is not valid base64."""


class TransportError(ShrimpyError):
    """Network, connection, timeout or cancellation failure."""

    def __init__(self, message: str, cancelled: bool = False) -> None:
        super().__init__(message)
        self.cancelled = cancelled


class UnexpectedStatus(ShrimpyError):
    """Remote responded with a status code other than the expected one."""

    def __init__(self, code: int, body: bytes, expected: int = 200) -> None:
        self.code = code
        self.body = body
        self.expected = expected
        super().__init__(f"unexpected response code {code} (expected {expected}): {self.text}")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class MalformedResponse(ShrimpyError):
    """Response body does not match the expected shape."""

    def __init__(self, message: str, body: bytes = b"") -> None:
        super().__init__(message)
        self.body = body


class OperationRejected(ShrimpyError):
    """Remote understood the request and declined it (``success: false``)."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        super().__init__(message or f"unable to {operation}")
        self.operation = operation
