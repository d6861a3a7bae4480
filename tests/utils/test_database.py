import sqlite3
import threading
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from sqlalchemy import func, insert, inspect, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from src.utils import database as database_module
from src.utils.database import SQLITE_WRITE_LOCK, Base, Database, ProfileDB, create_database_engine, database_errors
from src.utils.errors import DatabaseError, NotFoundError, OperationTimeoutError

PROFILE_ROW = {
    "email": "user1@mail.com",
    "password": "secret1",
    "name": "user1",
    "gender": "other",
    "age": 30,
    "location": 0,
}


@pytest.fixture
def reset_database():
    Database.reset()
    yield
    Database.reset()


def test_create_tables(reset_database):
    with patch.object(database_module, "settings") as mock_settings:
        mock_settings.DATABASE_URL = "sqlite://"
        mock_settings.DEBUG = False

        Database.create_tables()

        tables = inspect(Database.get_engine()).get_table_names()
        assert "profiles" in tables
        assert "swipes" in tables


def test_get_engine_is_cached(reset_database):
    with patch.object(database_module, "settings") as mock_settings:
        mock_settings.DATABASE_URL = "sqlite://"
        mock_settings.DEBUG = False

        assert Database.get_engine() is Database.get_engine()
        assert Database.get_session_factory() is Database.get_session_factory()


def test_get_engine_without_url(reset_database):
    with patch.object(database_module, "settings") as mock_settings:
        mock_settings.DATABASE_URL = ""

        with pytest.raises(DatabaseError):
            Database.get_engine()


def test_get_engine_failure_redacts_url(reset_database):
    with (
        patch.object(database_module, "settings") as mock_settings,
        patch.object(database_module, "create_database_engine", side_effect=Exception("boom")),
    ):
        mock_settings.DATABASE_URL = "postgresql://user:hunter2@db:5432/tinydates"

        with pytest.raises(DatabaseError) as exc_info:
            Database.get_engine()

        assert "hunter2" not in exc_info.value.details["url"]


def test_sqlite_reads_do_not_wait_for_writer(tmp_path):
    engine = create_database_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(engine)
    try:
        with engine.connect().execution_options(**{SQLITE_WRITE_LOCK: True}) as writer, writer.begin():
            writer.execute(insert(ProfileDB).values(**PROFILE_ROW))
            # BEGIN IMMEDIATE holds the write lock; a plain transaction can still read
            with engine.connect() as reader, reader.begin():
                assert reader.scalar(select(func.count()).select_from(ProfileDB)) == 0
    finally:
        engine.dispose()


def test_sqlite_busy_writer_times_out(tmp_path):
    with patch.object(database_module, "settings") as mock_settings:
        mock_settings.DB_POOL_TIMEOUT = 0.1
        engine = create_database_engine(f"sqlite:///{tmp_path / 'test.db'}")
    try:
        with engine.connect().execution_options(**{SQLITE_WRITE_LOCK: True}) as writer, writer.begin():
            with pytest.raises(OperationTimeoutError) as exc_info:
                with database_errors("record_swipe"):
                    with engine.connect().execution_options(**{SQLITE_WRITE_LOCK: True}) as other, other.begin():
                        pass

        assert exc_info.value.status_code == 504
    finally:
        engine.dispose()


def test_in_memory_engine_hands_connection_to_one_thread_at_a_time():
    engine = create_database_engine("sqlite://")
    Base.metadata.create_all(engine)
    checked_out = threading.Event()
    release = threading.Event()
    order = []

    def hold_transaction():
        with engine.connect() as conn, conn.begin():
            checked_out.set()
            release.wait(5)
            order.append("first committed")

    def write():
        with engine.connect() as conn, conn.begin():
            order.append("second began")
            conn.execute(insert(ProfileDB).values(**PROFILE_ROW))

    holder = threading.Thread(target=hold_transaction)
    writer = threading.Thread(target=write)
    try:
        holder.start()
        assert checked_out.wait(5)
        writer.start()
        writer.join(0.2)
        # The writer is still waiting for the shared connection
        assert writer.is_alive()
        release.set()
        holder.join(5)
        writer.join(5)

        assert order == ["first committed", "second began"]
    finally:
        release.set()
        engine.dispose()


def test_database_errors_passes_tinydates_errors():
    with pytest.raises(NotFoundError):
        with database_errors("lookup"):
            raise NotFoundError("missing")


def test_database_errors_wraps_sqlalchemy_errors():
    with pytest.raises(DatabaseError) as exc_info:
        with database_errors("lookup"):
            raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    assert exc_info.value.status_code == 503
    assert exc_info.value.details["service"] == "database"


def test_database_errors_maps_pool_timeout():
    with pytest.raises(OperationTimeoutError):
        with database_errors("lookup"):
            raise PoolTimeoutError("QueuePool limit reached")


def test_database_errors_maps_cancelled_statement():
    cancelled = SimpleNamespace(pgcode="57014")

    with pytest.raises(OperationTimeoutError) as exc_info:
        with database_errors("lookup"):
            raise OperationalError("SELECT pg_sleep(10)", {}, cancelled)  # type: ignore[arg-type]

    assert exc_info.value.status_code == 504


def test_database_errors_maps_sqlite_busy_timeout():
    locked = sqlite3.OperationalError("database is locked")

    with pytest.raises(OperationTimeoutError):
        with database_errors("record_swipe"):
            raise OperationalError("BEGIN IMMEDIATE", {}, locked)
