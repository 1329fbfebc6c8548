"""Structured error types for riakpool."""

from __future__ import annotations


class RiakError(Exception):
    """Base error for all riakpool errors."""


class TransportError(RiakError):
    """Raised when the pool could not complete a request at the network level."""

    def __init__(self, method: str, path: str, detail: str) -> None:
        self.method = method
        self.path = path
        self.detail = detail
        super().__init__(f"{method} {path} failed: {detail}")


class ProtocolError(RiakError):
    """Raised when a sibling response is not a well-formed multipart body."""


class DecodeError(RiakError):
    """Raised when a response body or sibling part is not valid JSON."""

    def __init__(self, bk: str, body: str) -> None:
        self.bk = bk
        self.body = body
        super().__init__(f"JSON parse error for {bk}")


class ConfigurationError(RiakError):
    """Raised for invalid client setup or request options."""


class ResolutionError(RiakError):
    """Raised when the sibling resolver declines to pick a value."""

    def __init__(self) -> None:
        super().__init__("Unable to resolve sibling values")


class IntegrityError(RiakError):
    """Raised when a stored value has the wrong shape for the operation."""


class ServerError(RiakError):
    """Raised when the read half of a modify returns an unusable status."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"Server Error ({status}), please try again later.")


class UnexpectedStatus(RiakError):
    """Raised when a write returns a status that does not mean success."""

    def __init__(self, status: int, operation: str = "write") -> None:
        self.status = status
        self.operation = operation
        super().__init__(f"Unexpected status {status} from {operation}")
