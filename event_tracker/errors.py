"""Exception hierarchy shared by the recording pipeline and the HTTP layer."""
from typing import Any


class EventTrackerError(Exception):
    """
    Base error carrying everything needed to build the response envelope.

    Attributes:
        error: Detail of what went wrong (rendered in the ``error`` field)
        message: Contextual, human-readable summary (``message`` field)
        data: Optional payload echoed back to the caller
    """

    status_code: int = 500

    def __init__(self, error: str, message: str = "", data: Any = None):
        super().__init__(error)
        self.error = error
        self.message = message
        self.data = data


class EventValidationError(EventTrackerError):
    """A required field is missing or a value could not be parsed."""

    status_code = 400


class SignatureError(EventTrackerError):
    """An inbound webhook failed authenticity verification."""

    status_code = 400


class PersistenceError(EventTrackerError):
    """Writing an event to storage failed."""

    status_code = 500

    def __init__(self, error: str, message: str = "failed to write to database", data: Any = None):
        super().__init__(error, message, data)


class NotificationError(EventTrackerError):
    """Delivering a chat message failed."""

    status_code = 500


class SlackAPIError(NotificationError):
    """The Slack Web API returned an error or could not be reached."""
