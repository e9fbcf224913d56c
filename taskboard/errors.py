"""
Exception taxonomy.

    TaskboardError
      ├── ConfigError            invalid or unreadable configuration
      ├── ValidationError        client-side form check failed, nothing sent
      ├── NetworkError           transport failure (connection, timeout)
      └── ApiError               server answered with an error
            ├── ServerValidationError   400 / 409 / 422
            ├── AuthenticationError     401, credential rejected
            ├── AuthorizationError      403, role mismatch
            └── NotFoundError           404
"""

from typing import Any, Optional


class TaskboardError(Exception):
    """Base class for every error this package raises."""
    pass


class ConfigError(TaskboardError):
    """Raised when configuration is invalid or incomplete."""
    pass


class ValidationError(TaskboardError):
    """Raised when a form draft fails client-side validation."""
    pass


class NetworkError(TaskboardError):
    """Raised when the API cannot be reached."""
    pass


class ApiError(TaskboardError):
    """Raised when the API reports a failure."""

    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class ServerValidationError(ApiError):
    pass


class AuthenticationError(ApiError):
    pass


class AuthorizationError(ApiError):
    pass


class NotFoundError(ApiError):
    pass


_STATUS_ERRORS = {
    400: ServerValidationError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: NotFoundError,
    409: ServerValidationError,
    422: ServerValidationError,
}


def error_for_status(status_code: int, message: str, payload: Any = None) -> ApiError:
    """Build the ApiError subclass matching an HTTP status code."""
    cls = _STATUS_ERRORS.get(status_code, ApiError)
    return cls(message, status_code=status_code, payload=payload)
