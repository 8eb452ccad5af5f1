"""Transport-specific error hierarchy.

All transport errors inherit from TransportError so the generation loop
surfaces them unchanged.
"""

from __future__ import annotations

from strand.exceptions import TransportError


class TransportConfigError(TransportError):
    """Missing or invalid transport configuration (e.g., no API key)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class TransportAuthError(TransportError):
    """Authentication failed (401/403)."""

    def __init__(self, message: str) -> None:
        super().__init__(message)


class TransportRateLimitError(TransportError):
    """Rate limited by the API (429).

    Attributes:
        retry_after: Seconds to wait before retrying (from Retry-After header),
            or None if not provided.
    """

    def __init__(self, message: str = "Rate limited", retry_after: float | None = None) -> None:
        self.retry_after = retry_after
        if retry_after is not None:
            message = f"{message} (retry after {retry_after}s)"
        super().__init__(message)


class TransportHTTPError(TransportError):
    """Any other non-success HTTP status.

    Attributes:
        status_code: The HTTP status code.
        body: Response body text, for diagnostics.
    """

    def __init__(self, status_code: int, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"HTTP {status_code} - {body}")


class TransportResponseError(TransportError):
    """Unexpected payload from the backend."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
