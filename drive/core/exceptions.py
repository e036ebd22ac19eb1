# drive/core/exceptions.py


class DriveError(Exception):
    """Base error. Carries the HTTP status and a short user-facing message."""

    status_code = 500
    default_message = "Something went wrong."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(DriveError):
    status_code = 400
    default_message = "Invalid request."


class DuplicateEmailError(ValidationError):
    default_message = "Email already exists."


class AuthError(DriveError):
    status_code = 401
    default_message = "Invalid credentials."


class Forbidden(DriveError):
    status_code = 403
    default_message = "Unauthorized"


class NotFound(DriveError):
    status_code = 404
    default_message = "Not found"


class StorageError(DriveError):
    """Raised when the blob store fails to write or delete an object."""

    status_code = 500
    default_message = "Storage operation failed."


class NotAuthenticated(Exception):
    """No user in the session; the app answers with a redirect to /login."""
