"""
Error taxonomy for calendar fetching, aggregation and sign-in.
"""


class CalendarError(RuntimeError):
    """Base error for the calendar engine."""


class ConfigurationError(ValueError):
    """Raised when column or display configuration is invalid."""


class CalendarFetchError(CalendarError):
    """A read from one calendar source failed."""

    def __init__(self, message: str, calendar_id: str = "", status_code: int | None = None):
        self.message = message
        self.calendar_id = calendar_id
        self.status_code = status_code
        super().__init__(message)


class TransportFailure(CalendarFetchError):
    """Network error, timeout or 5xx. Degrades the source to no events."""


class AccessDenied(CalendarFetchError):
    """403 from the calendar API."""


class NotFound(CalendarFetchError):
    """404: the calendar id is unknown."""


class RateLimited(CalendarFetchError):
    """429 from the calendar API. No automatic retry."""


class AuthenticationFailure(CalendarFetchError):
    """401: the bearer token was rejected. Forces a session reset."""


class SessionInvalidated(CalendarError):
    """Raised by an aggregation pass in which any column failed authentication."""

    def __init__(self, message: str = "Authentication expired. Please sign in again."):
        self.message = message
        super().__init__(message)


class ProtocolError(CalendarError):
    """Malformed or forged authorization callback."""


class AuthorizationError(ProtocolError):
    """The authorization provider reported an error in the callback."""
