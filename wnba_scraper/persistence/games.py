"""Game persistence helpers."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..db.models import GameStatus, WnbaGame, WnbaGameTeam, WnbaTeam
from ..errors import PersistError
from ..logging import logger
from ..models import Category, GameRecord
from ..utils.date_utils import normalize_season_type, season_from_date
from .upsert import LOOKUP_CHUNK_SIZE, chunked, ensure_unique, lookup_ids, upsert_rows

# ESPN status names arrive as STATUS_FINAL, STATUS_IN_PROGRESS, ...
_STATUS_ALIASES: dict[str, str] = {
    "final": GameStatus.final.value,
    "completed": GameStatus.final.value,
    "full_time": GameStatus.final.value,
    "live": GameStatus.live.value,
    "in_progress": GameStatus.live.value,
    "halftime": GameStatus.live.value,
    "end_period": GameStatus.live.value,
    "scheduled": GameStatus.scheduled.value,
    "pregame": GameStatus.scheduled.value,
    "postponed": GameStatus.postponed.value,
    "delayed": GameStatus.postponed.value,
    "suspended": GameStatus.postponed.value,
    "canceled": GameStatus.canceled.value,
    "cancelled": GameStatus.canceled.value,
}


def _normalize_status(status: str | None) -> str:
    if not status:
        return GameStatus.scheduled.value
    status_normalized = status.strip().lower().replace(" ", "_")
    if status_normalized.startswith("status_"):
        status_normalized = status_normalized[len("status_") :]
    return _STATUS_ALIASES.get(status_normalized, GameStatus.scheduled.value)


# One-way progression order for the happy path.
# Higher index = further along in lifecycle. Transitions may only move forward.
_STATUS_ORDER: dict[str, int] = {
    GameStatus.scheduled.value: 0,
    GameStatus.live.value: 1,
    GameStatus.final.value: 2,
}


def resolve_status_transition(current_status: str | None, incoming_status: str | None) -> str:
    """Resolve a safe status transition without regressing games.

    Rules:
    - final is terminal
    - lifecycle statuses only move forward
    - Non-lifecycle statuses (postponed, canceled) are accepted as-is
    """
    incoming = _normalize_status(incoming_status)
    if current_status is None:
        return incoming
    current = _normalize_status(current_status)

    if current == GameStatus.final.value:
        return current

    current_order = _STATUS_ORDER.get(current)
    incoming_order = _STATUS_ORDER.get(incoming)
    if current_order is not None and incoming_order is not None:
        if incoming_order < current_order:
            return current  # Don't regress
        return incoming

    return incoming


def _winner_flags(status: str, home_score: int | None, away_score: int | None) -> tuple[bool | None, bool | None]:
    if status != GameStatus.final.value or home_score is None or away_score is None:
        return None, None
    if home_score == away_score:
        return None, None
    return home_score > away_score, away_score > home_score


def _existing_games(session: Session, external_ids: Sequence[str]) -> dict[str, tuple[int, str]]:
    found: dict[str, tuple[int, str]] = {}
    for chunk in chunked(sorted(set(external_ids)), LOOKUP_CHUNK_SIZE):
        rows = session.execute(
            select(WnbaGame.external_id, WnbaGame.id, WnbaGame.status).where(
                WnbaGame.external_id.in_(chunk)
            )
        ).all()
        found.update({external_id: (game_id, status) for external_id, game_id, status in rows})
    return found


def upsert_games(
    session: Session,
    records: Sequence[GameRecord],
    *,
    batch_size: int,
) -> tuple[int, int]:
    """Upsert games and keep each game's two team associations in step.

    Both team references must already exist; nothing is written otherwise.

    Returns:
        (inserted, updated) counts for the batch.
    """
    ensure_unique(Category.SCHEDULE, ((record.external_id, record.external_id) for record in records))

    team_ids = lookup_ids(
        session,
        WnbaTeam,
        [record.home_team_external_id for record in records]
        + [record.away_team_external_id for record in records],
    )
    for record in records:
        for role, team_external_id in (
            ("home", record.home_team_external_id),
            ("away", record.away_team_external_id),
        ):
            if team_external_id not in team_ids:
                raise PersistError(
                    Category.SCHEDULE,
                    record.external_id,
                    f"unknown {role} team {team_external_id}",
                )

    existing = _existing_games(session, [record.external_id for record in records])

    rows: list[dict[str, Any]] = []
    for record in records:
        current = existing.get(record.external_id)
        status = resolve_status_transition(current[1] if current else None, record.status)
        rows.append(
            {
                "external_id": record.external_id,
                "season": record.season or season_from_date(record.game_date.date()),
                "season_type": normalize_season_type(record.season_type),
                "game_date": record.game_date,
                "home_team_id": team_ids[record.home_team_external_id],
                "away_team_id": team_ids[record.away_team_external_id],
                "home_score": record.home_score,
                "away_score": record.away_score,
                "venue": record.venue,
                "status": status,
            }
        )
    upsert_rows(session, WnbaGame, rows, index_elements=["external_id"], batch_size=batch_size)

    _sync_game_teams(session, rows, batch_size=batch_size)

    updated = len(existing)
    return len(rows) - updated, updated


def _sync_game_teams(session: Session, game_rows: list[dict[str, Any]], *, batch_size: int) -> None:
    """Maintain exactly one home and one away association per game."""
    game_ids = lookup_ids(session, WnbaGame, (row["external_id"] for row in game_rows))

    association_rows: list[dict[str, Any]] = []
    wanted: dict[int, set[int]] = {}
    for row in game_rows:
        game_id = game_ids[row["external_id"]]
        home_won, away_won = _winner_flags(row["status"], row["home_score"], row["away_score"])
        wanted[game_id] = {row["home_team_id"], row["away_team_id"]}
        association_rows.append(
            {
                "game_id": game_id,
                "team_id": row["home_team_id"],
                "is_home": True,
                "score": row["home_score"],
                "is_winner": home_won,
            }
        )
        association_rows.append(
            {
                "game_id": game_id,
                "team_id": row["away_team_id"],
                "is_home": False,
                "score": row["away_score"],
                "is_winner": away_won,
            }
        )

    stale_ids: list[int] = []
    for chunk in chunked(sorted(wanted), LOOKUP_CHUNK_SIZE):
        current = session.execute(
            select(WnbaGameTeam.id, WnbaGameTeam.game_id, WnbaGameTeam.team_id).where(
                WnbaGameTeam.game_id.in_(chunk)
            )
        ).all()
        stale_ids.extend(
            association_id
            for association_id, game_id, team_id in current
            if team_id not in wanted[game_id]
        )
    for chunk in chunked(stale_ids, LOOKUP_CHUNK_SIZE):
        session.execute(delete(WnbaGameTeam).where(WnbaGameTeam.id.in_(chunk)))
    if stale_ids:
        logger.info("game_team_associations_removed", count=len(stale_ids))

    upsert_rows(
        session,
        WnbaGameTeam,
        association_rows,
        index_elements=["game_id", "team_id"],
        batch_size=batch_size,
    )
