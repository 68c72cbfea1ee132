"""Dialect-aware upsert helpers shared by the category persisters.

Every write goes through ``INSERT ... ON CONFLICT DO UPDATE`` keyed by the
table's natural key. PostgreSQL is the production store; SQLite backs the
test suite. Both dialects expose the same ``on_conflict_do_update`` API.
"""

from __future__ import annotations

from collections.abc import Hashable, Iterable, Iterator, Sequence
from typing import Any, TypeVar

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from ..errors import PersistError
from ..models import Category
from ..utils.datetime_utils import now_utc

T = TypeVar("T")

_INSERT_BY_DIALECT = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}

# SQLite caps bound parameters per statement (32766 since 3.32)
_SQLITE_MAX_PARAMS = 32000
# Keeps IN (...) lists well under every backend's parameter limit
LOOKUP_CHUNK_SIZE = 500


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


def dialect_insert(session: Session, model: type) -> Any:
    """Return the dialect's ``insert()`` construct for ``model``."""
    dialect = session.get_bind().dialect.name
    insert = _INSERT_BY_DIALECT.get(dialect)
    if insert is None:
        raise NotImplementedError(f"upserts are not supported on the {dialect} dialect")
    return insert(model)


def upsert_rows(
    session: Session,
    model: type,
    rows: list[dict[str, Any]],
    *,
    index_elements: Sequence[str],
    batch_size: int,
) -> None:
    """Insert ``rows`` or update them in place by their natural key.

    Every non-key column of the incoming row overwrites the stored value and
    ``updated_at`` is bumped.
    """
    if not rows:
        return

    columns = list(rows[0].keys())
    update_columns = [column for column in columns if column not in index_elements]
    size = batch_size
    if session.get_bind().dialect.name == "sqlite":
        size = max(1, min(batch_size, _SQLITE_MAX_PARAMS // max(1, len(columns))))

    for chunk in chunked(rows, size):
        stmt = dialect_insert(session, model).values(list(chunk))
        set_ = {column: stmt.excluded[column] for column in update_columns}
        set_["updated_at"] = now_utc()
        stmt = stmt.on_conflict_do_update(index_elements=list(index_elements), set_=set_)
        session.execute(stmt)
    session.flush()


def ensure_unique(
    category: Category,
    keyed: Iterable[tuple[Hashable, str]],
) -> None:
    """Reject a batch that repeats a natural key.

    ``keyed`` yields ``(natural_key, identifier)`` pairs; the identifier is
    what the error reports.
    """
    seen: set[Hashable] = set()
    for key, identifier in keyed:
        if key in seen:
            raise PersistError(category, identifier, "duplicate natural key in batch")
        seen.add(key)


def lookup_ids(session: Session, model: Any, external_ids: Iterable[str]) -> dict[str, int]:
    """Map provider ids to surrogate ids for rows that already exist."""
    wanted = sorted(set(external_ids))
    found: dict[str, int] = {}
    for chunk in chunked(wanted, LOOKUP_CHUNK_SIZE):
        rows = session.execute(
            select(model.external_id, model.id).where(model.external_id.in_(chunk))
        ).all()
        found.update({external_id: row_id for external_id, row_id in rows})
    return found


def existing_pairs(
    session: Session,
    parent_column: Any,
    child_column: Any,
    parent_ids: Iterable[int],
) -> set[tuple[int, Any]]:
    """Composite natural keys already stored for the given parent rows."""
    wanted = sorted(set(parent_ids))
    found: set[tuple[int, Any]] = set()
    for chunk in chunked(wanted, LOOKUP_CHUNK_SIZE):
        rows = session.execute(
            select(parent_column, child_column).where(parent_column.in_(chunk))
        ).all()
        found.update((parent, child) for parent, child in rows)
    return found
