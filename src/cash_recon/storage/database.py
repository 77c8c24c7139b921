"""
SQLAlchemy engine and session management.

All ledger writes go through ``Database.session_scope()``, which commits on
success and rolls back on any error.
"""

from contextlib import contextmanager, nullcontext
from typing import Iterator
import logging
import threading

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig
from .tables import Base

logger = logging.getLogger(__name__)


def _is_memory_sqlite(url: str) -> bool:
    return url.startswith("sqlite") and (url.rstrip("/").endswith(":") or ":memory:" in url)


class Database:
    """
    Engine plus session factory for the reconciliation tables.

    An in-memory SQLite database lives on a single shared connection, so its
    sessions are serialised: only one session is open at a time, whatever
    date or store it works on.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        engine_kwargs = {}
        self._connection_lock = None
        if _is_memory_sqlite(url):
            # One shared connection, otherwise each session sees an empty database
            engine_kwargs = {
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            }
            self._connection_lock = threading.RLock()
        self.engine: Engine = create_engine(url, echo=echo, future=True, **engine_kwargs)
        self.session_factory = sessionmaker(
            bind=self.engine, autoflush=False, expire_on_commit=False, future=True
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "Database":
        return cls(config.url, echo=config.echo)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)
        logger.debug(f"Created tables on {self.engine.url!r}")

    def drop_tables(self) -> None:
        Base.metadata.drop_all(self.engine)

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits when the block exits normally, rolls back and re-raises on
        any exception. On an in-memory database the scope also holds the
        connection lock.
        """
        with self._connection_lock or nullcontext():
            session = self.session_factory()
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise
            finally:
                session.close()

    def dispose(self) -> None:
        self.engine.dispose()
