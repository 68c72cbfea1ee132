"""Core WNBA models: teams, players, games, game teams, plays, player game stats.

Foreign keys carry no ON DELETE CASCADE: bulk clears must walk the tables in
reverse dependency order (see ``RESET_ORDER``).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class GameStatus(str, Enum):
    """Canonical game status lifecycle.

    Happy path: scheduled → live → final
    """

    scheduled = "scheduled"
    live = "live"
    final = "final"
    postponed = "postponed"
    canceled = "canceled"


class WnbaTeam(Base):
    """Teams keyed by provider id."""

    __tablename__ = "wnba_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    abbreviation: Mapped[str | None] = mapped_column(String(20), nullable=True)
    location: Mapped[str | None] = mapped_column(String(100), nullable=True)
    short_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    conference: Mapped[str | None] = mapped_column(String(100), nullable=True)
    division: Mapped[str | None] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    players: Mapped[list["WnbaPlayer"]] = relationship("WnbaPlayer", back_populates="team")


class WnbaPlayer(Base):
    """Master player records linked to box scores."""

    __tablename__ = "wnba_players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    position: Mapped[str | None] = mapped_column(String(10), nullable=True)
    jersey: Mapped[str | None] = mapped_column(String(10), nullable=True)
    # Current team is a lookup, not ownership
    team_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("wnba_teams.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    team: Mapped[WnbaTeam | None] = relationship("WnbaTeam", back_populates="players")

    __table_args__ = (Index("idx_wnba_players_name", "name"),)


class WnbaGame(Base):
    """Scheduled and completed games."""

    __tablename__ = "wnba_games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    external_id: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    season: Mapped[int] = mapped_column(Integer, nullable=False)
    season_type: Mapped[str] = mapped_column(String(50), nullable=False)
    game_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    home_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_teams.id"), nullable=False, index=True
    )
    away_team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_teams.id"), nullable=False, index=True
    )
    home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    venue: Mapped[str | None] = mapped_column(String(200), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=GameStatus.scheduled.value, nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    home_team: Mapped[WnbaTeam] = relationship("WnbaTeam", foreign_keys=[home_team_id])
    away_team: Mapped[WnbaTeam] = relationship("WnbaTeam", foreign_keys=[away_team_id])
    game_teams: Mapped[list["WnbaGameTeam"]] = relationship("WnbaGameTeam", back_populates="game")
    plays: Mapped[list["WnbaPlay"]] = relationship(
        "WnbaPlay", back_populates="game", order_by="WnbaPlay.sequence_number"
    )

    __table_args__ = (
        Index("idx_wnba_games_season_date", "season", "game_date"),
        Index("idx_wnba_games_teams", "home_team_id", "away_team_id"),
    )

    @property
    def is_final(self) -> bool:
        """Check if game is in a final state."""
        return self.status == GameStatus.final.value


class WnbaGameTeam(Base):
    """Per-team game context (role, score, result)."""

    __tablename__ = "wnba_game_teams"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_games.id"), nullable=False, index=True
    )
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_teams.id"), nullable=False, index=True
    )
    is_home: Mapped[bool] = mapped_column(Boolean, nullable=False)
    score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_winner: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    game: Mapped[WnbaGame] = relationship("WnbaGame", back_populates="game_teams")
    team: Mapped[WnbaTeam] = relationship("WnbaTeam")

    __table_args__ = (
        UniqueConstraint("game_id", "team_id", name="uq_wnba_game_team"),
    )


class WnbaPlay(Base):
    """Play-by-play events ordered by provider sequence number."""

    __tablename__ = "wnba_plays"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_games.id"), nullable=False, index=True
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    external_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    # Period boundaries and official timeouts carry no team
    team_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("wnba_teams.id"), nullable=True, index=True
    )
    athlete_external_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    period: Mapped[int | None] = mapped_column(Integer, nullable=True)
    game_clock: Mapped[str | None] = mapped_column(String(20), nullable=True)
    play_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    home_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    away_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    scoring_play: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    score_value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    game: Mapped[WnbaGame] = relationship("WnbaGame", back_populates="plays")
    team: Mapped[WnbaTeam | None] = relationship("WnbaTeam")

    __table_args__ = (
        UniqueConstraint("game_id", "sequence_number", name="uq_wnba_play_sequence"),
    )


class WnbaPlayerGame(Base):
    """Box score line for one player in one game."""

    __tablename__ = "wnba_player_games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    game_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_games.id"), nullable=False, index=True
    )
    player_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_players.id"), nullable=False, index=True
    )
    team_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("wnba_teams.id"), nullable=False, index=True
    )
    starter: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    did_not_play: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    minutes: Mapped[float | None] = mapped_column(Float, nullable=True)
    points: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rebounds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    offensive_rebounds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    defensive_rebounds: Mapped[int | None] = mapped_column(Integer, nullable=True)
    assists: Mapped[int | None] = mapped_column(Integer, nullable=True)
    steals: Mapped[int | None] = mapped_column(Integer, nullable=True)
    blocks: Mapped[int | None] = mapped_column(Integer, nullable=True)
    turnovers: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fouls: Mapped[int | None] = mapped_column(Integer, nullable=True)
    plus_minus: Mapped[int | None] = mapped_column(Integer, nullable=True)
    field_goals_made: Mapped[int | None] = mapped_column(Integer, nullable=True)
    field_goals_attempted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    three_point_field_goals_made: Mapped[int | None] = mapped_column(Integer, nullable=True)
    three_point_field_goals_attempted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    free_throws_made: Mapped[int | None] = mapped_column(Integer, nullable=True)
    free_throws_attempted: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    game: Mapped[WnbaGame] = relationship("WnbaGame")
    player: Mapped[WnbaPlayer] = relationship("WnbaPlayer")
    team: Mapped[WnbaTeam] = relationship("WnbaTeam")

    __table_args__ = (
        UniqueConstraint("game_id", "player_id", name="uq_wnba_player_game"),
    )


# Creation order; a bulk clear walks it backwards
DEPENDENCY_ORDER: tuple[type[Base], ...] = (
    WnbaTeam,
    WnbaPlayer,
    WnbaGame,
    WnbaGameTeam,
    WnbaPlay,
    WnbaPlayerGame,
)

RESET_ORDER: tuple[str, ...] = (
    WnbaPlayerGame.__tablename__,
    WnbaPlay.__tablename__,
    WnbaGameTeam.__tablename__,
    WnbaGame.__tablename__,
    WnbaPlayer.__tablename__,
    WnbaTeam.__tablename__,
)
