"""
Error types shared by every layer of the console.

Two families:
- ValidationError: raised locally, before anything is sent to the API
- ApiError: everything that comes back from the HTTP boundary

The list views turn any ConsoleError into a notification, so none of these
ever terminate the interactive session.
"""

from __future__ import annotations


class ConsoleError(Exception):
    """
    Base class for all errors the console knows how to present to the user.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ConsoleError):
    """
    Client-side form validation failed.

    `errors` maps field name -> message of the first failing rule.
    """

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("Please check all required fields")
        self.errors = dict(errors)


class AuthError(ConsoleError):
    """
    Login or registration was refused. The message is the server's reason.
    """


class ApiError(ConsoleError):
    """
    `detail` is the server's own error text when the response carried one;
    list views show it verbatim and fall back to a generic message otherwise.
    """

    def __init__(self, message: str, status: int | None = None, detail: str | None = None) -> None:
        super().__init__(message)
        self.status = status
        self.detail = detail


class NetworkError(ApiError):
    """Transport failure (connection refused, DNS, timeout, bad JSON...)."""


class AuthRequired(ApiError):
    """The server answered 401 Unauthorized."""


class ServerRejection(ApiError):
    """The server answered with a non-2xx status or a `success: false` body."""


class NotFound(ServerRejection):
    pass


class Conflict(ServerRejection):
    pass


class ServerValidationError(ServerRejection):
    """400/422: the server refused the payload (e.g. duplicate email)."""
