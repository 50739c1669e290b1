"""Error types raised by remote order API clients.

Every client failure is one of five kinds. The engine only inspects the
``kind`` and ``retryable`` attributes, never HTTP status codes or GraphQL
error payloads; translating those is the client's job.
"""

from dataclasses import dataclass


@dataclass
class OrderAPIError(Exception):
    """Error from a remote order API call.

    Attributes:
        message: Human-readable error message
        retry_after: Seconds the remote asked us to wait, if it said so
        details: Raw error details (already redacted)
    """

    message: str
    retry_after: float | None = None
    details: dict | None = None

    kind = "Fatal"
    retryable = False

    def __str__(self) -> str:
        """Return formatted error message."""
        return f"{self.kind}: {self.message}"


class RateLimited(OrderAPIError):
    """Remote rejected the call because a call-volume quota was exceeded."""

    kind = "RateLimited"
    retryable = True


class Transient(OrderAPIError):
    """Network failure, timeout or 5xx. May succeed on retry."""

    kind = "Transient"
    retryable = True


class Unauthorized(OrderAPIError):
    """Access token missing, invalid, or lacking scope."""

    kind = "Unauthorized"


class ValidationFailed(OrderAPIError):
    """Remote refused the mutation for this order (e.g. order cancelled)."""

    kind = "ValidationFailed"


class Fatal(OrderAPIError):
    """Unexpected or malformed response. Will not succeed on retry."""

    kind = "Fatal"
