"""
Database handle for the importer.

A ``Store`` owns one engine and its session factory and is passed
explicitly to every component that touches the database.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Iterator

from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..logging import logger
from .base import Base
from .models import DEPENDENCY_ORDER


def _enable_sqlite_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    # SQLite ships with FK enforcement off for every new connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def create_store_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Build an engine for ``database_url``.

    SQLite URLs get FK enforcement switched on per connection; in-memory
    SQLite databases share a single connection so every session sees the
    same data.
    """
    kwargs: dict[str, Any] = {"future": True, "echo": echo}
    is_sqlite = database_url.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in database_url or database_url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    engine = create_engine(database_url, **kwargs)
    if is_sqlite:
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Store:
    """Explicit handle to the relational store."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
            class_=Session,
        )

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> Store:
        return cls(create_store_engine(database_url, echo=echo))

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """
        Provide a transactional session.

        Commits when the block exits cleanly; rolls back and re-raises on
        any error so a batch is written entirely or not at all.

        Usage:
            with store.session_scope() as session:
                session.execute(stmt)
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except Exception as exc:
            session.rollback()
            logger.warning("db_session_rollback", error=str(exc))
            raise
        finally:
            session.close()

    @contextmanager
    def autocommit_connection(self) -> Iterator[Connection]:
        """Connection where every statement commits on its own."""
        with self.engine.connect() as connection:
            yield connection.execution_options(isolation_level="AUTOCOMMIT")

    def ensure_schema(self) -> None:
        """Create any missing importer tables. Existing tables are left as-is."""
        Base.metadata.create_all(self.engine, checkfirst=True)
        logger.info("schema_ready", tables=[model.__tablename__ for model in DEPENDENCY_ORDER])

    def row_counts(self) -> dict[str, int]:
        """Current row count of every importer table, in dependency order."""
        counts: dict[str, int] = {}
        with self.session_scope() as session:
            for model in DEPENDENCY_ORDER:
                counts[model.__tablename__] = int(
                    session.execute(select(func.count()).select_from(model)).scalar_one()
                )
        return counts

    def dispose(self) -> None:
        self.engine.dispose()
