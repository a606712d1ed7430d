class TrackerError(Exception):
    """Base class for errors the tracker anticipates and handles."""

    message = "Unexpected error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.message)
        self.message = message or self.message


class ValidationError(TrackerError):
    message = "Please enter both company and role."


class AuthRequiredError(TrackerError):
    message = "You must be logged in to add or edit internships."


class AuthError(TrackerError):
    message = "Authentication failed"


class StoreError(TrackerError):
    message = "Record store request failed"
