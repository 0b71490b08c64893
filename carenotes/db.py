import datetime
import logging
import threading
import uuid
from contextlib import contextmanager, nullcontext

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .errors import StorageError
from .models import Base

logger = logging.getLogger(__name__)


# --- Helpers ---

def get_current_time():
    # Fixed-width UTC timestamps sort lexically in chronological order.
    return datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="microseconds")


def generate_id():
    return str(uuid.uuid4())


def _is_memory_url(url):
    return url in ("sqlite://", "sqlite:///:memory:") or ":memory:" in url


class Database:
    """
    Owns the SQLAlchemy engine and hands out session scopes.

    SQLite is used as a single-writer embedded engine. The pysqlite driver's
    implicit transaction handling is switched off and an explicit BEGIN is
    emitted instead, so that reads made inside transaction() (closure
    propagation, cascade collection) belong to the same transaction as the
    writes that follow them. Write transactions start with BEGIN IMMEDIATE
    and wait up to busy_timeout seconds for the write lock.

    An in-memory database lives on a single shared connection, so every
    scope on it, read or write, holds a lock for its whole duration.
    """

    def __init__(self, url, echo=False, busy_timeout=30):
        self.url = url
        self._lock = None

        if url.startswith("sqlite"):
            connect_args = {"check_same_thread": False, "timeout": busy_timeout}
            if _is_memory_url(url):
                self._lock = threading.RLock()
                self.engine = create_engine(
                    url,
                    echo=echo,
                    poolclass=StaticPool,
                    connect_args=connect_args,
                )
            else:
                self.engine = create_engine(url, echo=echo, connect_args=connect_args)
            self._configure_sqlite(wal=not _is_memory_url(url))
            write_engine = self.engine.execution_options(sqlite_begin="IMMEDIATE")
        else:
            self.engine = create_engine(url, echo=echo)
            write_engine = self.engine

        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._write_session_factory = sessionmaker(bind=write_engine, expire_on_commit=False)

    def _configure_sqlite(self, wal):
        @event.listens_for(self.engine, "connect")
        def set_sqlite_pragma(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            if wal:
                cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(self.engine, "begin")
        def do_begin(conn):
            mode = conn.get_execution_options().get("sqlite_begin")
            conn.exec_driver_sql(f"BEGIN {mode}" if mode else "BEGIN")

    def create_all(self):
        with self._guard():
            Base.metadata.create_all(self.engine)

    def drop_all(self):
        with self._guard():
            Base.metadata.drop_all(self.engine)

    def dispose(self):
        self.engine.dispose()

    def _guard(self):
        return self._lock if self._lock is not None else nullcontext()

    @contextmanager
    def transaction(self):
        """
        Unit of work: commits when the block exits normally, rolls back on
        any exception. Storage failures are re-raised as StorageError.
        """
        with self._guard():
            session = self._write_session_factory()
            try:
                with session.begin():
                    yield session
            except SQLAlchemyError as e:
                logger.warning("Transaction rolled back: %s", e)
                raise StorageError(str(e)) from e
            finally:
                session.close()

    @contextmanager
    def session(self):
        """Read scope for single queries; no multi-statement guarantees."""
        with self._guard():
            session = self._session_factory()
            try:
                yield session
            except SQLAlchemyError as e:
                raise StorageError(str(e)) from e
            finally:
                session.close()
