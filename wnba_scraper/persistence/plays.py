"""Play-by-play persistence utilities."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from ..db.models import WnbaGame, WnbaPlay, WnbaTeam
from ..errors import PersistError
from ..models import Category, PlayRecord
from .upsert import ensure_unique, existing_pairs, lookup_ids, upsert_rows


def _play_identifier(record: PlayRecord) -> str:
    return f"{record.game_external_id}#{record.sequence_number}"


def upsert_plays(
    session: Session,
    records: Sequence[PlayRecord],
    *,
    batch_size: int,
) -> tuple[int, int]:
    """Upsert play-by-play events keyed by (game, sequence number).

    Every play must reference a stored game. Team references are optional
    (period boundaries and official timeouts carry none) but must resolve
    when present.

    Returns:
        (inserted, updated) counts for the batch.
    """
    ensure_unique(
        Category.PLAY_BY_PLAY,
        (
            ((record.game_external_id, record.sequence_number), _play_identifier(record))
            for record in records
        ),
    )

    game_ids = lookup_ids(session, WnbaGame, (record.game_external_id for record in records))
    team_ids = lookup_ids(
        session,
        WnbaTeam,
        (record.team_external_id for record in records if record.team_external_id),
    )
    for record in records:
        if record.game_external_id not in game_ids:
            raise PersistError(
                Category.PLAY_BY_PLAY,
                _play_identifier(record),
                f"unknown game {record.game_external_id}",
            )
        if record.team_external_id and record.team_external_id not in team_ids:
            raise PersistError(
                Category.PLAY_BY_PLAY,
                _play_identifier(record),
                f"unknown team {record.team_external_id}",
            )

    existing = existing_pairs(
        session, WnbaPlay.game_id, WnbaPlay.sequence_number, game_ids.values()
    )

    rows = []
    updated = 0
    for record in records:
        game_id = game_ids[record.game_external_id]
        if (game_id, record.sequence_number) in existing:
            updated += 1
        rows.append(
            {
                "game_id": game_id,
                "sequence_number": record.sequence_number,
                "external_id": record.external_id,
                "team_id": team_ids.get(record.team_external_id) if record.team_external_id else None,
                "athlete_external_id": record.athlete_external_id,
                "period": record.period,
                "game_clock": record.game_clock,
                "play_type": record.play_type,
                "description": record.description,
                "home_score": record.home_score,
                "away_score": record.away_score,
                "scoring_play": record.scoring_play,
                "score_value": record.score_value,
            }
        )
    upsert_rows(
        session,
        WnbaPlay,
        rows,
        index_elements=["game_id", "sequence_number"],
        batch_size=batch_size,
    )
    return len(rows) - updated, updated
