"""Team persistence helpers."""

from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy.orm import Session

from ..db.models import WnbaTeam
from ..models import Category, TeamRecord
from .upsert import ensure_unique, lookup_ids, upsert_rows


def upsert_teams(
    session: Session,
    records: Sequence[TeamRecord],
    *,
    batch_size: int,
) -> tuple[int, int]:
    """Upsert teams by external id.

    Returns:
        (inserted, updated) counts for the batch.
    """
    ensure_unique(Category.TEAMS, ((record.external_id, record.external_id) for record in records))

    existing = lookup_ids(session, WnbaTeam, (record.external_id for record in records))
    rows = [
        {
            "external_id": record.external_id,
            "name": record.name,
            "abbreviation": record.abbreviation,
            "location": record.location,
            "short_name": record.short_name,
            "conference": record.conference,
            "division": record.division,
        }
        for record in records
    ]
    upsert_rows(session, WnbaTeam, rows, index_elements=["external_id"], batch_size=batch_size)

    updated = len(existing)
    return len(rows) - updated, updated
