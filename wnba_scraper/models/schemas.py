"""Pydantic records produced by the payload parser."""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Union

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from ..utils.datetime_utils import parse_provider_datetime
from ..utils.parsing import MISSING_VALUES, clean_str, parse_bool_strict, parse_float_strict, parse_int_strict


class Category(str, Enum):
    """Data categories, declared in the order a run ingests them."""

    TEAMS = "teams"
    SCHEDULE = "schedule"
    PLAY_BY_PLAY = "play_by_play"
    BOX_SCORE = "box_score"


CATEGORY_ORDER: tuple[Category, ...] = (
    Category.TEAMS,
    Category.SCHEDULE,
    Category.PLAY_BY_PLAY,
    Category.BOX_SCORE,
)

_EXTERNAL_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")
_INTEGRAL_FLOAT_PATTERN = re.compile(r"^(\d+)\.0+$")


def _normalize_external_id(value: Any) -> Any:
    """Coerce provider ids to canonical strings ("123.0" -> "123")."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValueError("external id must not be a boolean")
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(f"malformed external id: {value!r}")
        value = int(value)
    text = str(value).strip()
    if text in MISSING_VALUES:
        return None
    match = _INTEGRAL_FLOAT_PATTERN.match(text)
    if match:
        text = match.group(1)
    if not _EXTERNAL_ID_PATTERN.match(text):
        raise ValueError(f"malformed external id: {text!r}")
    return text


def _required(value: Any) -> Any:
    if value is None:
        raise ValueError("value is required")
    return value


ExternalId = Annotated[str, BeforeValidator(_required), BeforeValidator(_normalize_external_id)]
OptionalExternalId = Annotated[Union[str, None], BeforeValidator(_normalize_external_id)]
OptionalStr = Annotated[Union[str, None], BeforeValidator(clean_str)]
RequiredStr = Annotated[str, BeforeValidator(_required), BeforeValidator(clean_str)]
OptionalInt = Annotated[Union[int, None], BeforeValidator(parse_int_strict)]
OptionalFloat = Annotated[Union[float, None], BeforeValidator(parse_float_strict)]
OptionalBool = Annotated[Union[bool, None], BeforeValidator(parse_bool_strict)]
ProviderDatetime = Annotated[datetime, BeforeValidator(_required), BeforeValidator(parse_provider_datetime)]
SequenceNumber = Annotated[int, BeforeValidator(_required), BeforeValidator(parse_int_strict)]


class _ProviderRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)


class TeamRecord(_ProviderRecord):
    external_id: ExternalId = Field(validation_alias=AliasChoices("external_id", "team_id", "id"))
    name: RequiredStr = Field(
        validation_alias=AliasChoices("name", "team_display_name", "display_name", "displayName")
    )
    abbreviation: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("abbreviation", "team_abbreviation")
    )
    location: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("location", "team_location")
    )
    short_name: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("short_name", "team_short_display_name", "team_name")
    )
    conference: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("conference", "team_conference", "conference_name")
    )
    division: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("division", "team_division")
    )


class GameRecord(_ProviderRecord):
    external_id: ExternalId = Field(validation_alias=AliasChoices("external_id", "game_id", "id"))
    game_date: ProviderDatetime = Field(
        validation_alias=AliasChoices("game_date", "date", "start_date", "game_date_time")
    )
    home_team_external_id: ExternalId = Field(
        validation_alias=AliasChoices("home_team_external_id", "home_id", "home_team_id")
    )
    away_team_external_id: ExternalId = Field(
        validation_alias=AliasChoices("away_team_external_id", "away_id", "away_team_id")
    )
    season: OptionalInt = None
    season_type: OptionalStr = None
    status: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("status", "status_type_name", "status_type_description")
    )
    home_score: OptionalInt = None
    away_score: OptionalInt = None
    venue: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("venue", "venue_full_name")
    )

    @model_validator(mode="after")
    def ensure_distinct_teams(self) -> GameRecord:
        if self.home_team_external_id == self.away_team_external_id:
            raise ValueError("home and away team must differ")
        return self


class PlayRecord(_ProviderRecord):
    """Single play-by-play event, kept in provider sequence order."""

    game_external_id: ExternalId = Field(
        validation_alias=AliasChoices("game_external_id", "game_id")
    )
    sequence_number: SequenceNumber = Field(
        validation_alias=AliasChoices("sequence_number", "sequenceNumber", "sequence")
    )
    external_id: OptionalExternalId = Field(
        default=None, validation_alias=AliasChoices("external_id", "id", "play_id")
    )
    team_external_id: OptionalExternalId = Field(
        default=None, validation_alias=AliasChoices("team_external_id", "team_id")
    )
    athlete_external_id: OptionalExternalId = Field(
        default=None, validation_alias=AliasChoices("athlete_external_id", "athlete_id_1")
    )
    period: OptionalInt = Field(
        default=None, validation_alias=AliasChoices("period", "period_number", "qtr")
    )
    game_clock: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("game_clock", "clock_display_value", "time")
    )
    play_type: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("play_type", "type_text")
    )
    description: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("description", "text")
    )
    home_score: OptionalInt = None
    away_score: OptionalInt = None
    scoring_play: OptionalBool = None
    score_value: OptionalInt = None


class PlayerGameStatRecord(_ProviderRecord):
    game_external_id: ExternalId = Field(
        validation_alias=AliasChoices("game_external_id", "game_id")
    )
    player_external_id: ExternalId = Field(
        validation_alias=AliasChoices("player_external_id", "athlete_id", "player_id")
    )
    player_name: RequiredStr = Field(
        validation_alias=AliasChoices("player_name", "athlete_display_name")
    )
    team_external_id: ExternalId = Field(
        validation_alias=AliasChoices("team_external_id", "team_id")
    )
    position: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("position", "athlete_position_abbreviation")
    )
    jersey: OptionalStr = Field(
        default=None, validation_alias=AliasChoices("jersey", "athlete_jersey")
    )
    starter: OptionalBool = None
    did_not_play: OptionalBool = None
    minutes: OptionalFloat = None
    points: OptionalInt = None
    rebounds: OptionalInt = None
    offensive_rebounds: OptionalInt = None
    defensive_rebounds: OptionalInt = None
    assists: OptionalInt = None
    steals: OptionalInt = None
    blocks: OptionalInt = None
    turnovers: OptionalInt = None
    fouls: OptionalInt = None
    plus_minus: OptionalInt = None
    field_goals_made: OptionalInt = None
    field_goals_attempted: OptionalInt = None
    three_point_field_goals_made: OptionalInt = None
    three_point_field_goals_attempted: OptionalInt = None
    free_throws_made: OptionalInt = None
    free_throws_attempted: OptionalInt = None


ProviderRecord = Union[TeamRecord, GameRecord, PlayRecord, PlayerGameStatRecord]

RECORD_TYPES: dict[Category, type[_ProviderRecord]] = {
    Category.TEAMS: TeamRecord,
    Category.SCHEDULE: GameRecord,
    Category.PLAY_BY_PLAY: PlayRecord,
    Category.BOX_SCORE: PlayerGameStatRecord,
}
