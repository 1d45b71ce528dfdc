"""Custom exception hierarchy for orderrelay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for all orderrelay errors."""


class RelayConfigError(RelayError):
    """Invalid or missing configuration."""


class RelayValidationError(RelayError):
    """Inbound request failed validation (missing identities, bad body shape).

    Carries the HTTP status the boundary should answer with.  No state is
    mutated when this is raised.
    """

    def __init__(self, message: str, *, status_code: int = 400) -> None:
        self.status_code = status_code
        super().__init__(message)


class RelayParseError(RelayError):
    """Push-channel message could not be decoded.

    Raised by the message parser and caught by the WebSocket handler, which
    logs it and keeps the channel open.
    """


class RelayDeliveryError(RelayError):
    """A push to a single connection failed (closed mid-send, timeout, I/O)."""

    def __init__(self, message: str, *, merchant_id: str = "") -> None:
        self.merchant_id = merchant_id
        super().__init__(message)
