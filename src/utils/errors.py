"""Custom exceptions for the TinyDates service."""

from typing import Any, Dict, Optional


class TinyDatesError(Exception):
    """Base exception for all TinyDates errors."""

    def __init__(self, message: str, status_code: int = 500, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the error with a message and optional details.

        Args:
            message (str): Error message describing what went wrong.
            status_code (int): HTTP status code associated with the error (default 500).
            details (Optional[Dict[str, Any]]): Additional context or debug information.
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ConfigurationError(TinyDatesError):
    """Raised when there's an issue with the application configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, 500, details)


class ValidationError(TinyDatesError):
    """Raised when caller-supplied data fails validation."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the validation error.

        Args:
            message (str): Error message.
            details (Optional[Dict[str, Any]]): Additional details.
        """
        super().__init__(message, 400, details)


class RangeIncompleteError(ValidationError):
    """Raised when only one bound of an age range is supplied."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("min age or max age not supplied", details)


class RangeMalformedError(ValidationError):
    """Raised when an age bound is not an integer."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("min age and max age can only be integers", details)


class RangeInvertedError(ValidationError):
    """Raised when the min age is greater than the max age."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("min age must not be greater than max age", details)


class FilterConflictError(ValidationError):
    """Raised when an age range and popularity ordering are requested together."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("age range and popularity ordering cannot be combined", details)


class SelfSwipeError(ValidationError):
    """Raised when a profile swipes on itself."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("swiper and swipee cannot be the same profile", details)


class AuthenticationError(TinyDatesError):
    """Raised when authentication fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the authentication error.

        Args:
            message (str): Error message.
            details (Optional[Dict[str, Any]]): Additional details.
        """
        super().__init__(message, 401, details)


class UnauthorizedError(AuthenticationError):
    """Raised when a session token is absent, unknown or bound to another profile."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("unauthorized access", details)


class InvalidCredentialError(AuthenticationError):
    """Raised when a login email or secret does not match a stored profile."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("invalid email or password", details)


class NotFoundError(TinyDatesError):
    """Raised when a requested resource is not found."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the not found error.

        Args:
            message (str): Error message.
            details (Optional[Dict[str, Any]]): Additional details.
        """
        super().__init__(message, 404, details)


class BackendUnavailableError(TinyDatesError):
    """Raised when a backing service (database, session store) fails."""

    def __init__(
        self, message: str, service: str, details: Optional[Dict[str, Any]] = None, status_code: int = 503
    ) -> None:
        """
        Initialize the backend error.

        Args:
            message (str): Error message.
            service (str): Name of the backing service.
            details (Optional[Dict[str, Any]]): Additional details.
            status_code (int): HTTP status code (default 503).
        """
        error_details = details or {}
        error_details["service"] = service
        self.service = service
        super().__init__(message, status_code, error_details)


class DatabaseError(BackendUnavailableError):
    """Raised when there's an issue with the database operations."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "database", details)


class SessionStoreError(BackendUnavailableError):
    """Raised when the session store cannot be written to."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, "session_store", details)


class OperationTimeoutError(BackendUnavailableError):
    """Raised when a backing call is cancelled because it exceeded its time bound."""

    def __init__(self, message: str, service: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, service, details, status_code=504)


class CreateFailedError(TinyDatesError):
    """Raised when a profile could not be created."""

    def __init__(self, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__("error creating new profile", 500, details)
