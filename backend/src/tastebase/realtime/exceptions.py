"""Error taxonomy for realtime event handling.

Everything derived from ``RealtimeError`` except ``AuthenticationError`` is
local to one event: the sender gets an ``error`` event carrying ``message``
and the connection stays open.
"""


class RealtimeError(Exception):
    """Base error with a message that is safe to show the end user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class PayloadValidationError(RealtimeError):
    """Malformed payload or a value outside its allowed range."""


class NotFoundError(RealtimeError):
    """Recipe or comment no longer exists."""


class AccessDeniedError(RealtimeError):
    """Caller lacks the right to perform the operation."""


class AuthenticationError(RealtimeError):
    """Missing, invalid or expired credential. Fatal for the connection."""
