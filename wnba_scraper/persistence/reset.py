"""Dependency-ordered bulk clear of the importer tables.

Used by force runs. Tables are cleared children first (``RESET_ORDER``) on
an autocommit connection with foreign-key enforcement suspended, so a table
that refuses to clear never blocks the others. Problems are reported as
``ResetWarning`` values instead of aborting the reset.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from sqlalchemy import Table, delete, func, select, text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from ..db.base import Base
from ..db.integrity import integrity_checks_suspended
from ..db.models import RESET_ORDER
from ..db.session import Store
from ..logging import logger


@dataclass(frozen=True)
class ResetWarning:
    """Non-fatal reset problem. ``table`` is None for store-wide issues."""

    table: str | None
    message: str
    cleared: bool


@dataclass(frozen=True)
class TableReset:
    table: str
    rows_before: int | None
    cleared: bool
    # truncate | delete | empty | failed
    method: str

    @property
    def was_empty(self) -> bool:
        return self.method == "empty"


@dataclass
class ResetReport:
    tables: list[TableReset] = field(default_factory=list)
    warnings: list[ResetWarning] = field(default_factory=list)
    integrity_suspended: bool = False

    @property
    def rows_cleared(self) -> int:
        return sum(entry.rows_before or 0 for entry in self.tables if entry.cleared)

    @property
    def failed_tables(self) -> list[str]:
        return [entry.table for entry in self.tables if not entry.cleared]


class Resetter:
    """Clears every importer table in reverse dependency order."""

    def __init__(self, store: Store, tables: tuple[str, ...] = RESET_ORDER) -> None:
        self.store = store
        self.tables = tables

    def reset(self) -> ResetReport:
        report = ResetReport()
        logger.info("reset_start", tables=list(self.tables))

        with self.store.autocommit_connection() as connection:
            with integrity_checks_suspended(connection) as suspended:
                report.integrity_suspended = suspended
                if not suspended:
                    report.warnings.append(
                        ResetWarning(
                            table=None,
                            message="foreign key enforcement could not be suspended; clearing in reverse dependency order",
                            cleared=False,
                        )
                    )
                for name in self.tables:
                    report.tables.append(self._clear_table(connection, name, report))

        logger.info(
            "reset_complete",
            rows_cleared=report.rows_cleared,
            warnings=len(report.warnings),
            failed_tables=report.failed_tables,
        )
        return report

    def _clear_table(self, connection: Connection, name: str, report: ResetReport) -> TableReset:
        table = Base.metadata.tables[name]
        try:
            rows = self._count(connection, table)
        except SQLAlchemyError as exc:
            logger.warning("reset_count_failed", table=name, error=str(exc))
            report.warnings.append(ResetWarning(name, f"could not count rows: {exc}", cleared=False))
            return TableReset(name, None, cleared=False, method="failed")

        if rows == 0:
            logger.info("reset_table_empty", table=name)
            return TableReset(name, 0, cleared=True, method="empty")

        try:
            self._truncate(connection, table)
        except SQLAlchemyError as truncate_exc:
            logger.warning("reset_truncate_rejected", table=name, error=str(truncate_exc))
        else:
            logger.info("reset_table_cleared", table=name, rows=rows, method="truncate")
            return TableReset(name, rows, cleared=True, method="truncate")

        try:
            connection.execute(delete(table))
        except SQLAlchemyError as delete_exc:
            logger.warning("reset_delete_failed", table=name, error=str(delete_exc))
            report.warnings.append(
                ResetWarning(name, f"truncate and delete both failed: {delete_exc}", cleared=False)
            )
            return TableReset(name, rows, cleared=False, method="failed")

        logger.info("reset_table_cleared", table=name, rows=rows, method="delete")
        report.warnings.append(
            ResetWarning(name, "truncate rejected; cleared with DELETE", cleared=True)
        )
        return TableReset(name, rows, cleared=True, method="delete")

    def _count(self, connection: Connection, table: Table) -> int:
        return int(connection.execute(select(func.count()).select_from(table)).scalar_one())

    def _truncate(self, connection: Connection, table: Table) -> None:
        # SQLite has no TRUNCATE; an unqualified DELETE takes its truncate path
        if connection.dialect.name == "sqlite":
            connection.execute(delete(table))
            return
        quoted = connection.dialect.identifier_preparer.format_table(table)
        if connection.dialect.name == "postgresql":
            # PostgreSQL refuses to truncate a table named by any foreign key
            # unless the referencing tables are truncated with it. They were
            # cleared earlier in RESET_ORDER, so CASCADE removes nothing more.
            connection.execute(text(f"TRUNCATE TABLE {quoted} CASCADE"))
            return
        connection.execute(text(f"TRUNCATE TABLE {quoted}"))
