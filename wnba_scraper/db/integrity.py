"""Scoped suspension of foreign-key enforcement for bulk clears."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..logging import logger

# (disable, restore) statements per dialect. PostgreSQL needs a role allowed
# to change session_replication_role; SQLite ignores the pragma inside an
# open transaction, so callers use an autocommit connection.
_TOGGLE_STATEMENTS: dict[str, tuple[str, str]] = {
    "postgresql": (
        "SET session_replication_role = replica",
        "SET session_replication_role = DEFAULT",
    ),
    "sqlite": (
        "PRAGMA foreign_keys = OFF",
        "PRAGMA foreign_keys = ON",
    ),
    "mysql": (
        "SET FOREIGN_KEY_CHECKS = 0",
        "SET FOREIGN_KEY_CHECKS = 1",
    ),
}


@contextmanager
def integrity_checks_suspended(connection: Connection) -> Iterator[bool]:
    """Disable foreign-key enforcement on ``connection`` for the block.

    Yields True when enforcement was actually suspended. Enforcement is
    restored on every exit path, including errors raised inside the block.
    When the store refuses the toggle, yields False and leaves enforcement
    untouched.
    """
    dialect = connection.dialect.name
    statements = _TOGGLE_STATEMENTS.get(dialect)
    if statements is None:
        logger.warning("integrity_toggle_unsupported", dialect=dialect)
        yield False
        return

    disable_sql, restore_sql = statements
    try:
        connection.execute(text(disable_sql))
    except SQLAlchemyError as exc:
        logger.warning("integrity_suspend_failed", dialect=dialect, error=str(exc))
        yield False
        return

    logger.info("integrity_checks_suspended", dialect=dialect)
    try:
        yield True
    finally:
        connection.execute(text(restore_sql))
        logger.info("integrity_checks_restored", dialect=dialect)
