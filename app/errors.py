"""Error taxonomy shared by the API, the services and the client."""

from __future__ import annotations


class HelpdeskError(RuntimeError):
    """Base error carrying the HTTP status used when it reaches the API boundary."""

    status_code: int = 500
    default_message: str = "Server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(HelpdeskError):
    """Raised when required input is missing or malformed."""

    status_code = 400
    default_message = "Invalid request"


class NotFoundError(HelpdeskError):
    """Raised when an operation targets an unknown record."""

    status_code = 404
    default_message = "Not found"


class ConflictError(HelpdeskError):
    """Raised when a unique constraint would be violated."""

    status_code = 400
    default_message = "Conflict"


class TransportError(HelpdeskError):
    """Raised when the network or storage layer is unavailable."""

    status_code = 500
    default_message = "Server error"


class ServiceUnavailableError(TransportError):
    status_code = 503
    default_message = "Service is not configured"
