"""Persistence layer: writes validated provider records to the store."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..db.session import Store
from ..errors import PersistError
from ..logging import logger
from ..models import RECORD_TYPES, Category, ProviderRecord
from .boxscores import upsert_player_boxscores
from .games import upsert_games
from .plays import upsert_plays
from .reset import Resetter, ResetReport, ResetWarning, TableReset
from .teams import upsert_teams

__all__ = [
    "PersistResult",
    "Persister",
    "ResetReport",
    "ResetWarning",
    "Resetter",
    "TableReset",
]

_UpsertFn = Callable[..., tuple[int, int]]

_UPSERTS: dict[Category, _UpsertFn] = {
    Category.TEAMS: upsert_teams,
    Category.SCHEDULE: upsert_games,
    Category.PLAY_BY_PLAY: upsert_plays,
    Category.BOX_SCORE: upsert_player_boxscores,
}


@dataclass(frozen=True)
class PersistResult:
    """Outcome of persisting one category batch."""

    category: Category
    received: int
    inserted: int
    updated: int


class Persister:
    """Writes one category batch per transaction.

    A batch is committed entirely or not at all. Reference and uniqueness
    problems surface as ``PersistError``; nothing else is swallowed.
    """

    def __init__(self, store: Store, batch_size: int = 1000) -> None:
        self.store = store
        self.batch_size = batch_size

    def persist(self, category: Category, records: Sequence[ProviderRecord]) -> PersistResult:
        expected = RECORD_TYPES[category]
        for record in records:
            if not isinstance(record, expected):
                raise PersistError(
                    category,
                    None,
                    f"expected {expected.__name__}, got {type(record).__name__}",
                )

        if not records:
            logger.info("category_persist_skipped", category=category.value, reason="no_records")
            return PersistResult(category=category, received=0, inserted=0, updated=0)

        upsert = _UPSERTS[category]
        try:
            with self.store.session_scope() as session:
                inserted, updated = upsert(session, records, batch_size=self.batch_size)
        except IntegrityError as exc:
            raise PersistError(category, None, f"constraint violation: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            raise PersistError(category, None, f"database error: {exc}") from exc

        result = PersistResult(
            category=category,
            received=len(records),
            inserted=inserted,
            updated=updated,
        )
        logger.info(
            "category_persisted",
            category=category.value,
            received=result.received,
            inserted=result.inserted,
            updated=result.updated,
        )
        return result
