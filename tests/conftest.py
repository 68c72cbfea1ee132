"""Shared pytest fixtures and configuration."""

from __future__ import annotations

import csv
import io
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable

import httpx
import pytest

# Set required environment variables before any imports
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "development")

from wnba_scraper.config import ProviderConfig
from wnba_scraper.db.session import Store
from wnba_scraper.models import Category
from wnba_scraper.provider import ProviderFetcher

TEST_BASE_URL = "https://data.test/wnba"


def csv_text(rows: list[dict[str, Any]]) -> str:
    """Render rows as a CSV document with a header taken from the first row."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(rows[0].keys()), lineterminator="\n")
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue()


@dataclass
class SampleLeague:
    """Generated provider files for one season plus the counts they imply."""

    files: dict[Category, str]
    team_ids: list[str]
    game_ids: list[str]
    player_ids: list[str]
    plays: int
    player_game_pairs: set[tuple[str, str]] = field(default_factory=set)


def build_league(
    n_teams: int = 12,
    n_games: int = 144,
    players_per_team: int = 2,
    plays_per_game: int = 3,
    season: int = 2024,
) -> SampleLeague:
    team_ids = [str(index + 1) for index in range(n_teams)]
    roster = {
        team_id: [str(1000 + int(team_id) * 10 + slot) for slot in range(players_per_team)]
        for team_id in team_ids
    }
    opening_night = datetime(season, 5, 14, 23, 0)

    team_rows: list[dict[str, Any]] = []
    schedule_rows: list[dict[str, Any]] = []
    play_rows: list[dict[str, Any]] = []
    box_rows: list[dict[str, Any]] = []
    game_ids: list[str] = []
    pairs: set[tuple[str, str]] = set()

    for number in range(n_games):
        home = number % n_teams
        away = (home + 1 + (number // n_teams) % (n_teams - 1)) % n_teams
        home_id, away_id = team_ids[home], team_ids[away]
        game_id = str(401600000 + number)
        game_ids.append(game_id)
        tip_off = opening_night + timedelta(days=number // 6)
        home_score, away_score = 80 + number % 7, 71 + number % 5

        schedule_rows.append(
            {
                "game_id": game_id,
                "date": tip_off.strftime("%Y-%m-%dT%H:%MZ"),
                "season": season,
                "season_type": 2,
                "home_id": home_id,
                "away_id": away_id,
                "status_type_name": "STATUS_FINAL",
                "home_score": home_score,
                "away_score": away_score,
                "venue_full_name": f"Arena {home_id}",
            }
        )

        for team_id, score in ((home_id, home_score), (away_id, away_score)):
            team_rows.append(
                {
                    "game_id": game_id,
                    "team_id": team_id,
                    "team_display_name": f"Team {team_id}",
                    "team_abbreviation": f"T{int(team_id):02d}",
                    "team_location": f"City {team_id}",
                    "team_name": f"Name {team_id}",
                    "team_score": score,
                }
            )
            for player_id in roster[team_id]:
                pairs.add((player_id, game_id))
                box_rows.append(
                    {
                        "game_id": game_id,
                        "athlete_id": player_id,
                        "athlete_display_name": f"Player {player_id}",
                        "team_id": team_id,
                        "athlete_position_abbreviation": "G",
                        "athlete_jersey": str(int(player_id) % 100),
                        "starter": "TRUE",
                        "did_not_play": "FALSE",
                        "minutes": "31",
                        "points": 12,
                        "rebounds": 5,
                        "assists": 4,
                        "steals": 1,
                        "blocks": 0,
                        "turnovers": 2,
                        "fouls": 3,
                        "plus_minus": "+4",
                        "field_goals_made": 5,
                        "field_goals_attempted": 11,
                        "three_point_field_goals_made": 1,
                        "three_point_field_goals_attempted": 3,
                        "free_throws_made": 1,
                        "free_throws_attempted": 2,
                    }
                )

        for sequence in range(1, plays_per_game + 1):
            # First event of each game is a team-less period start
            team_id = "" if sequence == 1 else (home_id if sequence % 2 else away_id)
            play_rows.append(
                {
                    "game_id": game_id,
                    "sequence_number": sequence,
                    "id": f"{game_id}{sequence:03d}",
                    "team_id": team_id,
                    "athlete_id_1": roster[team_id][0] if team_id else "NA",
                    "period_number": 1,
                    "clock_display_value": "10:00",
                    "type_text": "Start Period" if sequence == 1 else "Jump Shot",
                    "text": f"Play {sequence}",
                    "home_score": 0,
                    "away_score": 0,
                    "scoring_play": "FALSE",
                    "score_value": 0,
                }
            )

    files = {
        Category.TEAMS: csv_text(team_rows),
        Category.SCHEDULE: csv_text(schedule_rows),
        Category.PLAY_BY_PLAY: csv_text(play_rows),
        Category.BOX_SCORE: csv_text(box_rows),
    }
    return SampleLeague(
        files=files,
        team_ids=team_ids,
        game_ids=game_ids,
        player_ids=[player for players in roster.values() for player in players],
        plays=len(play_rows),
        player_game_pairs=pairs,
    )


class FakeProvider:
    """In-process provider served through ``httpx.MockTransport``."""

    def __init__(self) -> None:
        self.routes: dict[str, httpx.Response | Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: list[str] = []

    def serve(self, url: str, body: str, content_type: str = "text/csv", status_code: int = 200) -> None:
        self.routes[url] = httpx.Response(
            status_code,
            content=body.encode("utf-8"),
            headers={"content-type": content_type},
        )

    def serve_callable(self, url: str, handler: Callable[[httpx.Request], httpx.Response]) -> None:
        self.routes[url] = handler

    def serve_league(self, league: SampleLeague, config: ProviderConfig, season: int = 2024) -> None:
        for category, body in league.files.items():
            self.serve(config.url_for(category, season), body)

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.requests.append(url)
        route = self.routes.get(url)
        if route is None:
            return httpx.Response(404, content=b"not found")
        if callable(route):
            return route(request)
        return route

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def store():
    """In-memory SQLite store with FK enforcement on and all tables created."""
    store = Store.from_url("sqlite://")
    store.ensure_schema()
    yield store
    store.dispose()


@pytest.fixture
def provider_config() -> ProviderConfig:
    return ProviderConfig(
        base_url=TEST_BASE_URL,
        seasons=[2024],
        max_concurrency=2,
        retry_wait_seconds=0,
    )


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def fetcher(provider_config, fake_provider):
    client = httpx.Client(transport=fake_provider.transport)
    fetcher = ProviderFetcher(provider_config, client=client)
    yield fetcher
    client.close()


@pytest.fixture
def league() -> SampleLeague:
    return build_league()


@pytest.fixture
def small_league() -> SampleLeague:
    return build_league(n_teams=4, n_games=6, players_per_team=2, plays_per_game=3)
