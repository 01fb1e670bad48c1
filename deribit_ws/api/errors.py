"""
Exception hierarchy for the Deribit WebSocket client.

Every failure surfaced by the client derives from DeribitAPIError so callers
can catch one type. The subclasses follow the failure taxonomy of the
connection engine:

- DeribitConnectionError: dial exhausted, not connected, stale stream
- DeribitAuthError: private call without an access token, failed auth
- DeribitProtocolError: malformed envelope or notification payload
- DeribitTimeoutError: no response within the call deadline
- DeribitRPCError: the server answered with a JSON-RPC error object
"""

from typing import Any, Optional


class DeribitAPIError(Exception):
    """Base exception for Deribit API errors."""

    def __init__(self, message: str, code: Optional[int] = None, data: Optional[Any] = None):
        self.message = message
        self.code = code
        self.data = data
        super().__init__(message)


class DeribitConnectionError(DeribitAPIError):
    """Connection error."""
    pass


class DeribitAuthError(DeribitAPIError):
    """Authentication required or failed."""
    pass


class DeribitProtocolError(DeribitAPIError):
    """Malformed JSON-RPC envelope."""
    pass


class NotificationDecodeError(DeribitProtocolError):
    """Notification payload does not match the shape expected for its channel."""

    def __init__(self, channel: str, message: str):
        self.channel = channel
        super().__init__(f"{channel}: {message}")


class DeribitTimeoutError(DeribitAPIError):
    """No response arrived before the call deadline."""
    pass


class DeribitRPCError(DeribitAPIError):
    """Error object reported by the server in a JSON-RPC response."""

    @classmethod
    def from_error_object(cls, method: str, error: Any) -> "DeribitRPCError":
        """Build from the ``error`` member of a response envelope."""
        if isinstance(error, dict):
            message = str(error.get("message", "Unknown error"))
            return cls(
                f"{method}: {message}",
                code=error.get("code"),
                data=error.get("data"),
            )
        return cls(f"{method}: {error}")
