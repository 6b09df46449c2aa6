from abc import ABC


class UserError(ABC, Exception):
    """Base class for user-related errors.

    All errors that inherit from UserError will have their messages
    displayed to the user. These errors should not contain any
    sensitive information.
    """


class NotFoundError(UserError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str = "Resource not found") -> None:
        super().__init__(message)


class AuthRejectedError(UserError):
    """Raised when a presented collaboration token does not match the stored one."""

    def __init__(self, message: str = "Invalid authentication token") -> None:
        super().__init__(message)


class ConflictError(UserError):
    """Raised when a record keeps changing under a conditional write."""


class ValidationError(UserError):
    """Raised when user input fails validation."""


class UpstreamError(Exception):
    """Raised when the backing store or the channel service is unreachable or failing.

    Not a UserError: the cause is logged and the client only sees a generic message.
    """
