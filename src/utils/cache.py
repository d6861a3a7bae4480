"""Session token storage for the TinyDates service."""

import threading
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

import redis
import sentry_sdk

from src.config import settings
from src.utils.errors import OperationTimeoutError, SessionStoreError
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Cache keys
SESSION_CACHE_KEY = "session:{token}"


class RedisClient:
    """
    Singleton class for Redis client.

    Manages the Redis connection pool and provides a unified access point
    for session operations.
    """

    _instance: Optional[redis.Redis] = None
    _failed: bool = False

    @classmethod
    def get_client(cls) -> Optional[redis.Redis]:
        """
        Get or create a Redis client instance.

        Initializes a Redis connection pool if one doesn't exist. If configuration
        is missing or the pool cannot be built, it marks the client as failed and
        returns None.

        Returns:
            Optional[redis.Redis]: Redis client instance or None if unavailable.
        """
        if cls._failed:
            return None

        if cls._instance is None:
            try:
                if settings.REDIS_URL:
                    pool = redis.ConnectionPool.from_url(
                        settings.REDIS_URL,
                        max_connections=10,
                        socket_timeout=settings.REDIS_SOCKET_TIMEOUT,
                        socket_connect_timeout=settings.REDIS_SOCKET_TIMEOUT,
                        decode_responses=True,
                    )
                    cls._instance = redis.Redis(connection_pool=pool)
                    logger.info("Redis client initialized")
                else:
                    logger.warning(
                        "No Redis configuration found, Redis sessions are unavailable",
                        details={"message": "REDIS_URL is not configured"},
                    )
                    cls._failed = True
                    return None
            except Exception as e:
                logger.warning("Failed to initialize Redis client", error=str(e))
                cls._failed = True
                return None
        return cls._instance


class SessionAuthority(Protocol):
    """
    Set of currently valid session tokens, each bound to the profile that logged in.

    Implementations must be safe to call from concurrent operations without
    external locking.
    """

    def start_session(self, token: str, profile_id: int) -> None:
        """Register a token for a profile. Registering an existing token is not an error."""
        ...

    def authorized(self, token: str, profile_id: Optional[int] = None) -> bool:
        """Check whether a token is valid, and bound to `profile_id` when one is given. Never raises."""
        ...

    def end_session(self, token: str) -> None:
        """Remove a token. Removing an unknown token is not an error."""
        ...


class RedisSessionAuthority:
    """Session authority backed by one Redis key per token."""

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: Optional[int] = None) -> None:
        """
        Initialize the Redis session authority.

        Args:
            client (Optional[redis.Redis]): Redis client; defaults to the shared `RedisClient`.
            ttl_seconds (Optional[int]): Session lifetime; None keeps sessions until logout.
        """
        self._client = client
        self._ttl_seconds = ttl_seconds

    def _get_client(self) -> redis.Redis:
        client = self._client or RedisClient.get_client()
        if client is None:
            raise SessionStoreError("Session store is not configured")
        return client

    def start_session(self, token: str, profile_id: int) -> None:
        """
        Store a session token.

        Args:
            token (str): Session token.
            profile_id (int): Profile the token was issued to.

        Raises:
            OperationTimeoutError: If Redis did not answer in time.
            SessionStoreError: If Redis is unavailable or the write fails.
        """
        with sentry_sdk.start_span(op="session.start", name="session") as span:
            client = self._get_client()
            try:
                client.set(SESSION_CACHE_KEY.format(token=token), str(profile_id), ex=self._ttl_seconds)
                span.set_data("status", "success")
            except redis.TimeoutError as e:
                span.set_status("deadline_exceeded")
                logger.warning("Session store timed out", operation="start_session", error=str(e))
                raise OperationTimeoutError("Session store timed out", "session_store") from e
            except redis.RedisError as e:
                span.set_status("internal_error")
                logger.error("Failed to start session", error=str(e))
                raise SessionStoreError("Failed to start session", details={"error": str(e)}) from e

    def authorized(self, token: str, profile_id: Optional[int] = None) -> bool:
        """
        Check a session token.

        Any failure to reach Redis is logged and treated as "not authorized".

        Args:
            token (str): Session token.
            profile_id (Optional[int]): Profile the token must be bound to.

        Returns:
            bool: True if the token is valid (for `profile_id`, when given).
        """
        with sentry_sdk.start_span(op="session.authorized", name="session") as span:
            if not token:
                return False
            try:
                stored = self._get_client().get(SESSION_CACHE_KEY.format(token=token))
            except Exception as e:
                logger.warning("Failed to check session, denying access", error=str(e))
                span.set_status("internal_error")
                return False

            if stored is None:
                span.set_data("status", "miss")
                return False
            span.set_data("status", "hit")
            return profile_id is None or str(stored) == str(profile_id)

    def end_session(self, token: str) -> None:
        """
        Remove a session token.

        Raises:
            OperationTimeoutError: If Redis did not answer in time.
            SessionStoreError: If Redis is unavailable or the delete fails.
        """
        with sentry_sdk.start_span(op="session.end", name="session") as span:
            client = self._get_client()
            try:
                client.delete(SESSION_CACHE_KEY.format(token=token))
                span.set_data("status", "success")
            except redis.TimeoutError as e:
                span.set_status("deadline_exceeded")
                logger.warning("Session store timed out", operation="end_session", error=str(e))
                raise OperationTimeoutError("Session store timed out", "session_store") from e
            except redis.RedisError as e:
                span.set_status("internal_error")
                logger.error("Failed to end session", error=str(e))
                raise SessionStoreError("Failed to end session", details={"error": str(e)}) from e


class InMemorySessionAuthority:
    """Process-local session authority, observably identical to the Redis one."""

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic) -> None:
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, Tuple[int, Optional[float]]] = {}
        self._lock = threading.Lock()

    def start_session(self, token: str, profile_id: int) -> None:
        expires_at = self._clock() + self._ttl_seconds if self._ttl_seconds else None
        with self._lock:
            self._sessions[token] = (profile_id, expires_at)

    def authorized(self, token: str, profile_id: Optional[int] = None) -> bool:
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return False
            owner, expires_at = session
            if expires_at is not None and self._clock() >= expires_at:
                del self._sessions[token]
                return False
        return profile_id is None or owner == profile_id

    def end_session(self, token: str) -> None:
        with self._lock:
            self._sessions.pop(token, None)


def build_session_authority() -> SessionAuthority:
    """
    Build the session authority selected by configuration.

    Returns:
        SessionAuthority: Redis-backed when `REDIS_URL` is set, in-memory otherwise.
    """
    if settings.REDIS_URL:
        logger.info("Using Redis session store")
        return RedisSessionAuthority(ttl_seconds=settings.SESSION_TTL_SECONDS)
    logger.warning("REDIS_URL not configured, using in-memory session store")
    return InMemorySessionAuthority(ttl_seconds=settings.SESSION_TTL_SECONDS)
