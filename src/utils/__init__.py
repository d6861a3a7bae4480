"""Utils package for the TinyDates service."""

from src.utils.cache import (
    InMemorySessionAuthority,
    RedisSessionAuthority,
    SessionAuthority,
    build_session_authority,
)
from src.utils.database import database_errors, get_session_factory, init_database
from src.utils.errors import (
    AuthenticationError,
    BackendUnavailableError,
    ConfigurationError,
    CreateFailedError,
    DatabaseError,
    FilterConflictError,
    InvalidCredentialError,
    NotFoundError,
    OperationTimeoutError,
    RangeIncompleteError,
    RangeInvertedError,
    RangeMalformedError,
    SelfSwipeError,
    SessionStoreError,
    TinyDatesError,
    UnauthorizedError,
    ValidationError,
)
from src.utils.generators import RandomGenerator
from src.utils.geo import calculate_distance
from src.utils.logging import configure_logging, get_logger, log_error

__all__ = [
    "AuthenticationError",
    "BackendUnavailableError",
    "ConfigurationError",
    "CreateFailedError",
    "DatabaseError",
    "FilterConflictError",
    "InMemorySessionAuthority",
    "InvalidCredentialError",
    "NotFoundError",
    "OperationTimeoutError",
    "RandomGenerator",
    "RangeIncompleteError",
    "RangeInvertedError",
    "RangeMalformedError",
    "RedisSessionAuthority",
    "SelfSwipeError",
    "SessionAuthority",
    "SessionStoreError",
    "TinyDatesError",
    "UnauthorizedError",
    "ValidationError",
    "build_session_authority",
    "calculate_distance",
    "configure_logging",
    "database_errors",
    "get_logger",
    "get_session_factory",
    "init_database",
    "log_error",
]
