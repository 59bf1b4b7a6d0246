"""Pydantic models describing Highlightly football payloads."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _id_to_str(value: object) -> object:
    if isinstance(value, int):
        return str(value)
    return _blank_to_none(value)


def _percentage(value: object) -> object:
    """``"55%"`` -> ``55.0``."""

    value = _blank_to_none(value)
    if isinstance(value, str):
        try:
            return float(value.rstrip("%").strip())
        except ValueError:
            return None
    return value


class HighlightlyBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Pagination(HighlightlyBaseModel):
    has_next: bool = Field(default=False, alias="hasNext")
    total_count: int | None = Field(default=None, alias="totalCount")


class Page(HighlightlyBaseModel):
    data: list[dict[str, object]] = Field(default_factory=list)
    pagination: Pagination | None = None


class Ref(HighlightlyBaseModel):
    id: str
    name: str | None = None
    logo: str | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class Named(HighlightlyBaseModel):
    name: str | None = None
    code: str | None = None


class Season(HighlightlyBaseModel):
    year: int | None = None


class LeaguePayload(HighlightlyBaseModel):
    id: str
    name: str
    logo: str | None = None
    country: Named | None = None
    current_season: Season | None = Field(default=None, alias="currentSeason")

    _normalize_id = field_validator("id", mode="before")(_id_to_str)


class TeamPayload(HighlightlyBaseModel):
    id: str
    name: str
    short_name: str | None = Field(
        default=None, validation_alias=AliasChoices("shortName", "code")
    )
    logo: str | None = Field(default=None, validation_alias=AliasChoices("logo", "logoUrl"))
    country: Named | None = None
    founded: int | None = None
    league_id: str | None = Field(default=None, alias="leagueId")

    _normalize_ids = field_validator("id", "league_id", mode="before")(_id_to_str)


class PlayerStatistics(HighlightlyBaseModel):
    appearances: int | None = None
    goals: int | None = None
    assists: int | None = None
    yellow_cards: int | None = Field(default=None, alias="yellowCards")
    red_cards: int | None = Field(default=None, alias="redCards")
    clean_sheets: int | None = Field(default=None, alias="cleanSheets")
    goals_conceded: int | None = Field(default=None, alias="goalsConceded")


class PlayerPayload(HighlightlyBaseModel):
    id: str
    name: str
    position: str | None = None
    nationality: str | None = None
    jersey_number: int | None = Field(
        default=None, validation_alias=AliasChoices("jerseyNumber", "jersey_number")
    )
    photo: str | None = None
    team: Ref | None = None
    statistics: PlayerStatistics | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)
    _normalize_text = field_validator("position", "nationality", "photo", mode="before")(
        _blank_to_none
    )

    @property
    def is_goalkeeper(self) -> bool:
        return self.position is not None and self.position.casefold() in {"goalkeeper", "gk"}


class Score(HighlightlyBaseModel):
    home: int | None = None
    away: int | None = None


class Possession(HighlightlyBaseModel):
    home: float | None = None
    away: float | None = None

    _normalize = field_validator("home", "away", mode="before")(_percentage)


class MatchStatistics(HighlightlyBaseModel):
    possession: Possession | None = None


class MatchPayload(HighlightlyBaseModel):
    id: str
    home_team: Ref = Field(validation_alias=AliasChoices("homeTeam", "home_team"))
    away_team: Ref = Field(validation_alias=AliasChoices("awayTeam", "away_team"))
    league: Ref | None = None
    date: str
    status: str | None = None
    score: Score | None = None
    minute: int | None = None
    round: int | None = None
    venue: Named | None = None
    statistics: MatchStatistics | None = None

    _normalize_id = field_validator("id", mode="before")(_id_to_str)

    @field_validator("round", mode="before")
    @classmethod
    def _round_number(cls, value: object) -> object:
        """Rounds arrive as ``12`` or ``"Regular Season - 12"``."""

        if isinstance(value, str):
            tail = value.rsplit(" ", 1)[-1]
            return int(tail) if tail.isdigit() else None
        return value

    @property
    def kickoff_at(self) -> datetime:
        parsed = datetime.fromisoformat(self.date.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)


class StandingPayload(HighlightlyBaseModel):
    team: Ref
    league_id: str | None = Field(default=None, alias="leagueId")
    season: int | None = None
    position: int | None = None
    played: int | None = Field(default=None, validation_alias=AliasChoices("gamesPlayed", "played"))
    wins: int | None = None
    draws: int | None = None
    loses: int | None = Field(default=None, validation_alias=AliasChoices("loses", "losses"))
    scored_goals: int | None = Field(default=None, alias="scoredGoals")
    received_goals: int | None = Field(default=None, alias="receivedGoals")
    points: int | None = None
    form: str | None = None

    _normalize_ids = field_validator("league_id", mode="before")(_id_to_str)
    _normalize_form = field_validator("form", mode="before")(_blank_to_none)


class EventPayload(HighlightlyBaseModel):
    match_id: str = Field(alias="matchId")
    type: str
    minute: int | None = Field(default=None, validation_alias=AliasChoices("minute", "time"))
    additional_time: int | None = Field(
        default=None, validation_alias=AliasChoices("additionalTime", "additional_time")
    )
    team: Ref | None = None
    player: Named | None = None
    assist: Named | None = Field(
        default=None, validation_alias=AliasChoices("assist", "assistingPlayer", "assist_player")
    )
    description: str | None = None

    _normalize_ids = field_validator("match_id", mode="before")(_id_to_str)
    _normalize_text = field_validator("description", mode="before")(_blank_to_none)
