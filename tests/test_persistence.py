"""Tests for the persistence package (Persister and category upserts)."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from wnba_scraper.db.models import (
    GameStatus,
    WnbaGame,
    WnbaGameTeam,
    WnbaPlay,
    WnbaPlayer,
    WnbaPlayerGame,
    WnbaTeam,
)
from wnba_scraper.errors import PersistError
from wnba_scraper.models import Category, GameRecord, PlayerGameStatRecord, PlayRecord, TeamRecord
from wnba_scraper.persistence import Persister
from wnba_scraper.persistence.games import _normalize_status, resolve_status_transition


def team(external_id: str, name: str | None = None) -> TeamRecord:
    return TeamRecord(external_id=external_id, name=name or f"Team {external_id}")


def game(
    external_id: str,
    home: str = "16",
    away: str = "17",
    *,
    date: str = "2024-05-14T23:00Z",
    status: str | None = "STATUS_FINAL",
    home_score: int | None = 90,
    away_score: int | None = 80,
) -> GameRecord:
    return GameRecord(
        external_id=external_id,
        game_date=date,
        home_team_external_id=home,
        away_team_external_id=away,
        season=2024,
        season_type="2",
        status=status,
        home_score=home_score,
        away_score=away_score,
    )


def play(game_id: str, sequence: int, team_id: str | None = "16") -> PlayRecord:
    return PlayRecord(
        game_external_id=game_id,
        sequence_number=sequence,
        team_external_id=team_id,
        description=f"play {sequence}",
    )


def stat_line(game_id: str, player_id: str, team_id: str = "16", points: int = 10) -> PlayerGameStatRecord:
    return PlayerGameStatRecord(
        game_external_id=game_id,
        player_external_id=player_id,
        player_name=f"Player {player_id}",
        team_external_id=team_id,
        points=points,
    )


def _count(store, model) -> int:
    return store.row_counts()[model.__tablename__]


@pytest.fixture
def persister(store):
    return Persister(store, batch_size=2)


@pytest.fixture
def seeded(persister):
    """Teams 16/17/18 and one final game 401 (16 vs 17)."""
    persister.persist(Category.TEAMS, [team("16"), team("17"), team("18")])
    persister.persist(Category.SCHEDULE, [game("401")])
    return persister


class TestNormalizeStatus:
    """Tests for _normalize_status."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("STATUS_FINAL", "final"),
            ("STATUS_IN_PROGRESS", "live"),
            ("STATUS_HALFTIME", "live"),
            ("STATUS_SCHEDULED", "scheduled"),
            ("STATUS_POSTPONED", "postponed"),
            ("STATUS_CANCELED", "canceled"),
            ("Final", "final"),
            (None, "scheduled"),
            ("something new", "scheduled"),
        ],
    )
    def test_maps_provider_statuses(self, raw, expected):
        assert _normalize_status(raw) == expected


class TestResolveStatusTransition:
    """Tests for resolve_status_transition."""

    def test_new_game_takes_incoming(self):
        assert resolve_status_transition(None, "STATUS_POSTPONED") == GameStatus.postponed.value

    def test_final_never_regresses(self):
        assert resolve_status_transition("final", "STATUS_SCHEDULED") == "final"
        assert resolve_status_transition("final", "STATUS_POSTPONED") == "final"

    def test_live_does_not_go_back_to_scheduled(self):
        assert resolve_status_transition("live", "scheduled") == "live"

    def test_forward_progression(self):
        assert resolve_status_transition("scheduled", "STATUS_FINAL") == "final"

    def test_postponed_game_can_be_rescheduled(self):
        assert resolve_status_transition("postponed", "scheduled") == "scheduled"


class TestTeams:
    """Tests for team persistence."""

    def test_inserts_then_updates(self, persister, store):
        """A rerun updates in place instead of inserting."""
        first = persister.persist(Category.TEAMS, [team("16", "Aces"), team("17", "Storm")])
        second = persister.persist(Category.TEAMS, [team("16", "Las Vegas Aces"), team("17", "Storm")])

        assert (first.received, first.inserted, first.updated) == (2, 2, 0)
        assert (second.received, second.inserted, second.updated) == (2, 0, 2)
        with store.session_scope() as session:
            names = session.execute(select(WnbaTeam.name).order_by(WnbaTeam.external_id)).scalars().all()
        assert names == ["Las Vegas Aces", "Storm"]

    def test_duplicate_key_in_batch(self, persister, store):
        """Repeated natural keys fail the whole batch."""
        with pytest.raises(PersistError, match="duplicate natural key") as exc_info:
            persister.persist(Category.TEAMS, [team("16"), team("17"), team("16")])
        assert exc_info.value.identifier == "16"
        assert _count(store, WnbaTeam) == 0

    def test_empty_batch(self, persister):
        result = persister.persist(Category.TEAMS, [])
        assert (result.received, result.inserted, result.updated) == (0, 0, 0)

    def test_wrong_record_type(self, persister):
        with pytest.raises(PersistError, match="expected TeamRecord"):
            persister.persist(Category.TEAMS, [game("401")])


class TestGames:
    """Tests for schedule persistence."""

    def test_unknown_team_writes_nothing(self, persister, store):
        """Games never land when a team reference is missing."""
        persister.persist(Category.TEAMS, [team("16"), team("17")])

        with pytest.raises(PersistError, match="unknown away team 99") as exc_info:
            persister.persist(Category.SCHEDULE, [game("401"), game("402", "16", "99")])

        assert exc_info.value.identifier == "402"
        assert _count(store, WnbaGame) == 0
        assert _count(store, WnbaGameTeam) == 0

    def test_creates_two_team_associations(self, seeded, store):
        with store.session_scope() as session:
            rows = session.execute(
                select(WnbaGameTeam.is_home, WnbaGameTeam.score, WnbaGameTeam.is_winner, WnbaTeam.external_id)
                .join(WnbaTeam, WnbaTeam.id == WnbaGameTeam.team_id)
                .order_by(WnbaGameTeam.is_home.desc())
            ).all()
        assert [tuple(row) for row in rows] == [(True, 90, True, "16"), (False, 80, False, "17")]

    def test_status_does_not_regress(self, seeded, store):
        """A stale schedule file cannot un-finish a game."""
        result = seeded.persist(Category.SCHEDULE, [game("401", status="STATUS_SCHEDULED", home_score=None, away_score=None)])

        assert (result.inserted, result.updated) == (0, 1)
        with store.session_scope() as session:
            stored = session.execute(select(WnbaGame)).scalar_one()
            assert stored.status == GameStatus.final.value
            assert stored.is_final

    def test_season_type_is_normalized(self, seeded, store):
        with store.session_scope() as session:
            assert session.execute(select(WnbaGame.season_type)).scalar_one() == "regular"

    def test_changed_opponent_replaces_association(self, seeded, store):
        """Associations for a team no longer on the game are removed."""
        seeded.persist(Category.SCHEDULE, [game("401", "16", "18")])

        with store.session_scope() as session:
            teams = session.execute(
                select(WnbaTeam.external_id)
                .join(WnbaGameTeam, WnbaGameTeam.team_id == WnbaTeam.id)
                .order_by(WnbaTeam.external_id)
            ).scalars().all()
        assert teams == ["16", "18"]

    def test_failure_after_games_written_rolls_back(self, persister, store):
        """The category batch is one transaction."""
        persister.persist(Category.TEAMS, [team("16"), team("17")])

        with patch(
            "wnba_scraper.persistence.games._sync_game_teams",
            side_effect=PersistError(Category.SCHEDULE, None, "boom"),
        ):
            with pytest.raises(PersistError, match="boom"):
                persister.persist(Category.SCHEDULE, [game("401"), game("402"), game("403")])

        assert _count(store, WnbaGame) == 0

    def test_integrity_error_is_mapped(self, persister):
        """Store constraint violations surface as PersistError."""
        error = IntegrityError("INSERT ...", {}, Exception("UNIQUE constraint failed"))
        with patch("wnba_scraper.persistence.teams.upsert_rows", side_effect=error):
            with pytest.raises(PersistError, match="constraint violation"):
                persister.persist(Category.TEAMS, [team("16")])


class TestPlays:
    """Tests for play-by-play persistence."""

    def test_teamless_plays_are_stored(self, seeded, store):
        result = seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1, None), play("401", 2), play("401", 3, "17")])

        assert result.inserted == 3
        with store.session_scope() as session:
            team_ids = session.execute(
                select(WnbaPlay.team_id).order_by(WnbaPlay.sequence_number)
            ).scalars().all()
        assert team_ids[0] is None
        assert None not in team_ids[1:]

    def test_rerun_updates(self, seeded, store):
        seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1), play("401", 2)])
        result = seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1), play("401", 2), play("401", 3)])

        assert (result.inserted, result.updated) == (1, 2)
        assert _count(store, WnbaPlay) == 3

    def test_unknown_game(self, seeded, store):
        with pytest.raises(PersistError, match="unknown game 999") as exc_info:
            seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1), play("999", 1)])
        assert exc_info.value.identifier == "999#1"
        assert _count(store, WnbaPlay) == 0

    def test_unknown_team(self, seeded):
        with pytest.raises(PersistError, match="unknown team 55"):
            seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1, "55")])

    def test_duplicate_sequence(self, seeded):
        with pytest.raises(PersistError, match="duplicate natural key"):
            seeded.persist(Category.PLAY_BY_PLAY, [play("401", 1), play("401", 1)])


class TestBoxScores:
    """Tests for box score persistence."""

    def test_players_are_created_with_stats(self, seeded, store):
        result = seeded.persist(
            Category.BOX_SCORE,
            [stat_line("401", "2001", "16", 22), stat_line("401", "3001", "17", 18)],
        )

        assert (result.received, result.inserted, result.updated) == (2, 2, 0)
        counts = store.row_counts()
        assert counts["wnba_players"] == 2
        assert counts["wnba_player_games"] == 2

    def test_rerun_is_idempotent(self, seeded, store):
        lines = [stat_line("401", "2001"), stat_line("401", "2002")]
        seeded.persist(Category.BOX_SCORE, lines)
        before = store.row_counts()

        result = seeded.persist(Category.BOX_SCORE, lines)

        assert (result.inserted, result.updated) == (0, 2)
        assert store.row_counts() == before

    def test_current_team_is_from_latest_game(self, seeded, store):
        """A traded player ends up on the team of their most recent game."""
        seeded.persist(Category.SCHEDULE, [game("402", "18", "17", date="2024-07-01T23:00Z")])

        seeded.persist(
            Category.BOX_SCORE,
            [stat_line("402", "2001", "18"), stat_line("401", "2001", "16")],
        )

        with store.session_scope() as session:
            current = session.execute(
                select(WnbaTeam.external_id).join(WnbaPlayer, WnbaPlayer.team_id == WnbaTeam.id)
            ).scalar_one()
        assert current == "18"

    def test_unknown_game_writes_no_players(self, seeded, store):
        with pytest.raises(PersistError, match="unknown game 777"):
            seeded.persist(Category.BOX_SCORE, [stat_line("401", "2001"), stat_line("777", "2002")])
        assert _count(store, WnbaPlayer) == 0
        assert _count(store, WnbaPlayerGame) == 0

    def test_duplicate_player_line(self, seeded):
        with pytest.raises(PersistError, match="duplicate natural key") as exc_info:
            seeded.persist(Category.BOX_SCORE, [stat_line("401", "2001"), stat_line("401", "2001")])
        assert exc_info.value.identifier == "401/2001"
