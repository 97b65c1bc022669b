"""
Error taxonomy shared by the record store, the services and the HTTP layer.
"""

from __future__ import annotations


class MegumiError(Exception):
    """Base error carrying a caller-safe message and an HTTP status."""

    status_code: int = 500
    default_message: str = "Unexpected error."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class MissingField(MegumiError):
    status_code = 400
    default_message = "Required field missing."


class InvalidField(MegumiError):
    status_code = 400
    default_message = "Invalid field value."


class InvalidId(MegumiError):
    status_code = 400
    default_message = "Invalid identifier."


class DuplicateEmail(MegumiError):
    status_code = 409
    default_message = "User already exists."


class InvalidCredentials(MegumiError):
    status_code = 401
    default_message = "Invalid credentials."


class NotFound(MegumiError):
    status_code = 404
    default_message = "Not found."


class StorageFailure(MegumiError):
    """Raised when the active backend fails after resolution."""

    status_code = 500
    default_message = "Storage failure."
