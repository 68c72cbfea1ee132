"""Player box score persistence.

Players are upserted first, inside the same transaction, so every stat row
can reference its player.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.models import WnbaGame, WnbaPlayer, WnbaPlayerGame, WnbaTeam
from ..errors import PersistError
from ..logging import logger
from ..models import Category, PlayerGameStatRecord
from .upsert import (
    LOOKUP_CHUNK_SIZE,
    chunked,
    ensure_unique,
    existing_pairs,
    lookup_ids,
    upsert_rows,
)

_STAT_FIELDS = (
    "starter",
    "did_not_play",
    "minutes",
    "points",
    "rebounds",
    "offensive_rebounds",
    "defensive_rebounds",
    "assists",
    "steals",
    "blocks",
    "turnovers",
    "fouls",
    "plus_minus",
    "field_goals_made",
    "field_goals_attempted",
    "three_point_field_goals_made",
    "three_point_field_goals_attempted",
    "free_throws_made",
    "free_throws_attempted",
)


def _stat_identifier(record: PlayerGameStatRecord) -> str:
    return f"{record.game_external_id}/{record.player_external_id}"


def _game_lookup(session: Session, external_ids: Sequence[str]) -> dict[str, tuple[int, datetime]]:
    found: dict[str, tuple[int, datetime]] = {}
    for chunk in chunked(sorted(set(external_ids)), LOOKUP_CHUNK_SIZE):
        rows = session.execute(
            select(WnbaGame.external_id, WnbaGame.id, WnbaGame.game_date).where(
                WnbaGame.external_id.in_(chunk)
            )
        ).all()
        found.update({external_id: (game_id, game_date) for external_id, game_id, game_date in rows})
    return found


def _latest_player_lines(
    records: Sequence[PlayerGameStatRecord],
    games: dict[str, tuple[int, datetime]],
) -> dict[str, PlayerGameStatRecord]:
    """Pick each player's line from their latest-dated game in the batch."""
    latest: dict[str, PlayerGameStatRecord] = {}
    for record in records:
        current = latest.get(record.player_external_id)
        # Later rows win ties so the last file in season order decides
        if current is None or games[record.game_external_id][1] >= games[current.game_external_id][1]:
            latest[record.player_external_id] = record
    return latest


def upsert_players(
    session: Session,
    records: Sequence[PlayerGameStatRecord],
    games: dict[str, tuple[int, datetime]],
    team_ids: dict[str, int],
    *,
    batch_size: int,
) -> dict[str, int]:
    """Upsert the master player rows seen in a box score batch.

    Returns the player external id to surrogate id map.
    """
    latest = _latest_player_lines(records, games)
    rows = [
        {
            "external_id": player_external_id,
            "name": record.player_name,
            "position": record.position,
            "jersey": record.jersey,
            "team_id": team_ids[record.team_external_id],
        }
        for player_external_id, record in latest.items()
    ]
    upsert_rows(session, WnbaPlayer, rows, index_elements=["external_id"], batch_size=batch_size)
    logger.info("players_upserted", count=len(rows))
    return lookup_ids(session, WnbaPlayer, latest.keys())


def upsert_player_boxscores(
    session: Session,
    records: Sequence[PlayerGameStatRecord],
    *,
    batch_size: int,
) -> tuple[int, int]:
    """Upsert player box score lines keyed by (game, player).

    Returns:
        (inserted, updated) counts of stat rows.
    """
    ensure_unique(
        Category.BOX_SCORE,
        (
            ((record.game_external_id, record.player_external_id), _stat_identifier(record))
            for record in records
        ),
    )

    games = _game_lookup(session, [record.game_external_id for record in records])
    team_ids = lookup_ids(session, WnbaTeam, (record.team_external_id for record in records))
    for record in records:
        if record.game_external_id not in games:
            raise PersistError(
                Category.BOX_SCORE,
                _stat_identifier(record),
                f"unknown game {record.game_external_id}",
            )
        if record.team_external_id not in team_ids:
            raise PersistError(
                Category.BOX_SCORE,
                _stat_identifier(record),
                f"unknown team {record.team_external_id}",
            )

    player_ids = upsert_players(session, records, games, team_ids, batch_size=batch_size)

    game_ids = [game_id for game_id, _ in games.values()]
    existing = existing_pairs(session, WnbaPlayerGame.game_id, WnbaPlayerGame.player_id, game_ids)

    rows: list[dict[str, Any]] = []
    updated = 0
    for record in records:
        game_id = games[record.game_external_id][0]
        player_id = player_ids[record.player_external_id]
        if (game_id, player_id) in existing:
            updated += 1
        row: dict[str, Any] = {
            "game_id": game_id,
            "player_id": player_id,
            "team_id": team_ids[record.team_external_id],
        }
        row.update({name: getattr(record, name) for name in _STAT_FIELDS})
        rows.append(row)

    upsert_rows(
        session,
        WnbaPlayerGame,
        rows,
        index_elements=["game_id", "player_id"],
        batch_size=batch_size,
    )
    return len(rows) - updated, updated
