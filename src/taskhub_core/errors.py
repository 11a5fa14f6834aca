"""Typed errors raised by the core and mapped to HTTP statuses at the boundary."""


class TaskHubError(Exception):
    """Base error carrying a user-visible message and an HTTP status."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(TaskHubError):
    """Raised when a resource id does not resolve."""

    status_code = 404


class UnauthorizedError(TaskHubError):
    """Raised when the access policy denies an action."""

    status_code = 401


class ValidationError(TaskHubError):
    """Raised when a payload fails an integrity check."""

    status_code = 400


class DuplicateEmailError(ValidationError):
    """Raised when an email address is already taken by another user."""

    def __init__(self, email: str):
        super().__init__(f"User with email {email} already exists")
        self.email = email


class FatalError(TaskHubError):
    """Raised for unexpected persistence or runtime failures."""

    status_code = 500
