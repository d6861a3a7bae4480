"""Database connection utilities for the TinyDates service."""

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import Boolean, DateTime, Engine, ForeignKey, Index, Integer, String, create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from src.config import settings
from src.utils.errors import DatabaseError, OperationTimeoutError, TinyDatesError
from src.utils.logging import get_logger

logger = get_logger(__name__)

# PostgreSQL SQLSTATE raised when statement_timeout cancels a query
QUERY_CANCELED_PGCODE = "57014"
# Raised by SQLite when the busy timeout expires waiting for another writer
SQLITE_LOCKED_MESSAGE = "database is locked"


def utcnow() -> datetime:
    """Get current UTC time (naive)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""

    pass


class ProfileDB(Base):
    """Profile database model."""

    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True)
    password: Mapped[str] = mapped_column(String(255))
    name: Mapped[str] = mapped_column(String(100))
    gender: Mapped[str] = mapped_column(String(20))
    age: Mapped[int] = mapped_column(Integer, index=True)
    location: Mapped[int] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class SwipeDB(Base):
    """Swipe decision database model. Append-only."""

    __tablename__ = "swipes"
    __table_args__ = (
        Index("ix_swipes_swiper_swipee", "swiper_id", "swipee_id"),
        Index("ix_swipes_swipee_decision", "swipee_id", "decision"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    swiper_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"))
    swipee_id: Mapped[int] = mapped_column(Integer, ForeignKey("profiles.id"))
    decision: Mapped[bool] = mapped_column(Boolean)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


# Connection execution option that opens the transaction with BEGIN IMMEDIATE on SQLite
SQLITE_WRITE_LOCK = "tinydates_sqlite_write_lock"


def _install_sqlite_begin(engine: Engine) -> None:
    """Emit BEGIN explicitly on SQLite connections.

    pysqlite defers BEGIN until the first write, so a read-then-write
    transaction could interleave with another writer. Connections carrying the
    `SQLITE_WRITE_LOCK` execution option begin with BEGIN IMMEDIATE and
    serialise against every other writer on the database file. All other
    transactions use a deferred BEGIN and read without waiting on writers.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection: Any, connection_record: Any) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn: Any) -> None:
        if conn.get_execution_options().get(SQLITE_WRITE_LOCK):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def _install_shared_connection_lock(engine: Engine) -> None:
    """Hand the single in-memory connection to one thread at a time.

    The lock is held from pool checkout to checkin, so a transaction opened by
    one thread never sees statements from another.
    """
    lock = threading.RLock()

    @event.listens_for(engine, "checkout")
    def _acquire(dbapi_connection: Any, connection_record: Any, connection_proxy: Any) -> None:
        lock.acquire()

    @event.listens_for(engine, "checkin")
    def _release(dbapi_connection: Any, connection_record: Any) -> None:
        lock.release()


def create_database_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    PostgreSQL connections get a server-side statement timeout; SQLite
    connections begin transactions explicitly, and in-memory SQLite shares one
    connection that threads take turns on.

    Args:
        database_url (str): SQLAlchemy database URL.
        echo (bool): Whether to log emitted SQL.

    Returns:
        Engine: The configured engine.
    """
    # SQLAlchemy 1.4+ requires postgresql:// instead of postgres://
    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    kwargs: Dict[str, Any] = {"echo": echo}
    if database_url.startswith("sqlite"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs["pool_timeout"] = settings.DB_POOL_TIMEOUT
            kwargs["connect_args"] = {"timeout": settings.DB_POOL_TIMEOUT}
    else:
        kwargs["pool_recycle"] = 300
        kwargs["pool_pre_ping"] = True
        kwargs["pool_timeout"] = settings.DB_POOL_TIMEOUT
        if database_url.startswith("postgresql"):
            kwargs["connect_args"] = {"options": f"-c statement_timeout={settings.DB_STATEMENT_TIMEOUT_MS}"}

    engine = create_engine(database_url, **kwargs)
    if engine.dialect.name == "sqlite":
        _install_sqlite_begin(engine)
        if kwargs.get("poolclass") is StaticPool:
            _install_shared_connection_lock(engine)
    return engine


def _redact_url(database_url: str) -> str:
    safe_url = database_url
    if "@" in safe_url:
        try:
            part1, part2 = safe_url.rsplit("@", 1)
            if ":" in part1:
                scheme_user, _ = part1.rsplit(":", 1)
                safe_url = f"{scheme_user}:***@{part2}"
        except ValueError:
            safe_url = "REDACTED_MALFORMED_URL"
    return safe_url


class Database:
    """Singleton database connection manager."""

    _engine: Optional[Engine] = None
    _session_factory: Optional[sessionmaker[Session]] = None

    @classmethod
    def get_engine(cls) -> Engine:
        """Get or create the database engine."""
        if cls._engine is None:
            database_url = settings.DATABASE_URL

            if not database_url:
                raise DatabaseError("DATABASE_URL is not configured")

            try:
                cls._engine = create_database_engine(database_url, echo=settings.DEBUG)
                logger.info("Database engine created", dialect=cls._engine.dialect.name)
            except Exception as e:
                safe_url = _redact_url(database_url)
                logger.error("Failed to create database engine", error=str(e), url=safe_url)
                raise DatabaseError("Failed to connect to database", details={"error": str(e), "url": safe_url}) from e
        return cls._engine

    @classmethod
    def get_session_factory(cls) -> sessionmaker[Session]:
        """Get or create the session factory."""
        if cls._session_factory is None:
            cls._session_factory = sessionmaker(bind=cls.get_engine(), expire_on_commit=False)
        return cls._session_factory

    @classmethod
    def create_tables(cls) -> None:
        """Create all database tables."""
        engine = cls.get_engine()
        Base.metadata.create_all(engine)
        logger.info("Database tables created")

    @classmethod
    def reset(cls) -> None:
        """Dispose of the engine and forget the session factory."""
        if cls._engine is not None:
            cls._engine.dispose()
        cls._engine = None
        cls._session_factory = None


def get_session_factory() -> sessionmaker[Session]:
    """Get the shared session factory."""
    return Database.get_session_factory()


def init_database() -> None:
    """Initialize the database and create tables."""
    Database.create_tables()


@contextmanager
def database_errors(operation: str, **context: Any) -> Iterator[None]:
    """
    Translate SQLAlchemy failures raised inside the block into TinyDates errors.

    TinyDates errors pass through untouched. Pool checkout timeouts, SQLite busy
    timeouts and statements cancelled by the server's statement timeout become
    `OperationTimeoutError`; every other SQLAlchemy error becomes `DatabaseError`.

    Args:
        operation (str): Name of the repository operation, used in logs and details.
        **context: Extra key-value pairs to log with a failure.

    Raises:
        OperationTimeoutError: If the operation exceeded its time bound.
        DatabaseError: If the database call failed for any other reason.
    """
    try:
        yield
    except TinyDatesError:
        raise
    except PoolTimeoutError as e:
        logger.warning("Database operation timed out", operation=operation, error=str(e), **context)
        raise OperationTimeoutError(
            f"Database operation timed out: {operation}", "database", details={"error": str(e)}
        ) from e
    except SQLAlchemyError as e:
        orig = getattr(e, "orig", None)
        if getattr(orig, "pgcode", None) == QUERY_CANCELED_PGCODE or SQLITE_LOCKED_MESSAGE in str(orig):
            logger.warning("Database statement timed out", operation=operation, error=str(e), **context)
            raise OperationTimeoutError(
                f"Database operation timed out: {operation}", "database", details={"error": str(e)}
            ) from e
        logger.error(f"Failed to execute {operation}", error=str(e), **context)
        raise DatabaseError(f"Database operation failed: {operation}", details={"error": str(e)}) from e
