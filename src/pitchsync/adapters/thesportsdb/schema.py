"""Pydantic models describing TheSportsDB v1 payloads.

TheSportsDB sends most numbers as strings and uses empty strings, ``"0"`` dates
and ``null`` interchangeably for "unknown".
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def _to_int(value: object) -> object:
    value = _blank_to_none(value)
    if isinstance(value, str):
        try:
            return int(float(value))
        except ValueError:
            return None
    return value


class TheSportsDBBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class LeaguePayload(TheSportsDBBaseModel):
    id: str = Field(alias="idLeague")
    name: str = Field(alias="strLeague")
    sport: str | None = Field(default=None, alias="strSport")
    country: str | None = Field(default=None, alias="strCountry")
    current_season: str | None = Field(default=None, alias="strCurrentSeason")
    badge: str | None = Field(default=None, validation_alias=AliasChoices("strBadge", "strLogo"))

    _normalize_text = field_validator("country", "current_season", "badge", mode="before")(
        _blank_to_none
    )


class TeamPayload(TheSportsDBBaseModel):
    id: str = Field(alias="idTeam")
    name: str = Field(alias="strTeam")
    short_name: str | None = Field(default=None, alias="strTeamShort")
    league_id: str | None = Field(default=None, alias="idLeague")
    country: str | None = Field(default=None, alias="strCountry")
    founded_year: int | None = Field(default=None, alias="intFormedYear")
    stadium: str | None = Field(
        default=None, validation_alias=AliasChoices("strStadium", "strVenue")
    )
    stadium_capacity: int | None = Field(
        default=None, validation_alias=AliasChoices("intStadiumCapacity", "intCapacity")
    )
    website: str | None = Field(default=None, alias="strWebsite")
    manager: str | None = Field(default=None, alias="strManager")
    logo: str | None = Field(default=None, alias="strLogo")
    badge: str | None = Field(default=None, alias="strBadge")
    description: str | None = Field(default=None, alias="strDescriptionEN")

    _normalize_text = field_validator(
        "short_name",
        "league_id",
        "country",
        "stadium",
        "website",
        "manager",
        "logo",
        "badge",
        "description",
        mode="before",
    )(_blank_to_none)
    _normalize_numbers = field_validator("founded_year", "stadium_capacity", mode="before")(
        _to_int
    )


class PlayerPayload(TheSportsDBBaseModel):
    id: str = Field(alias="idPlayer")
    name: str = Field(alias="strPlayer")
    team_id: str | None = Field(default=None, alias="idTeam")
    position: str | None = Field(default=None, alias="strPosition")
    nationality: str | None = Field(default=None, alias="strNationality")
    number: int | None = Field(default=None, alias="strNumber")
    birth_date: str | None = Field(default=None, alias="dateBorn")
    photo: str | None = Field(default=None, validation_alias=AliasChoices("strThumb", "strCutout"))

    _normalize_text = field_validator(
        "team_id", "position", "nationality", "birth_date", "photo", mode="before"
    )(_blank_to_none)
    _normalize_number = field_validator("number", mode="before")(_to_int)

    @field_validator("birth_date", mode="after")
    @classmethod
    def _drop_placeholder_date(cls, value: str | None) -> str | None:
        if value is None or value.startswith("0000"):
            return None
        return value


class EventPayload(TheSportsDBBaseModel):
    id: str = Field(alias="idEvent")
    league_id: str | None = Field(default=None, alias="idLeague")
    season: str | None = Field(default=None, alias="strSeason")
    home_team_id: str | None = Field(default=None, alias="idHomeTeam")
    away_team_id: str | None = Field(default=None, alias="idAwayTeam")
    timestamp: str | None = Field(default=None, alias="strTimestamp")
    date: str | None = Field(default=None, alias="dateEvent")
    time: str | None = Field(default=None, alias="strTime")
    round: int | None = Field(default=None, alias="intRound")
    venue: str | None = Field(default=None, alias="strVenue")
    status: str | None = Field(default=None, alias="strStatus")
    home_score: int | None = Field(default=None, alias="intHomeScore")
    away_score: int | None = Field(default=None, alias="intAwayScore")
    spectators: int | None = Field(default=None, alias="intSpectators")

    _normalize_text = field_validator(
        "league_id",
        "season",
        "home_team_id",
        "away_team_id",
        "timestamp",
        "date",
        "time",
        "venue",
        "status",
        mode="before",
    )(_blank_to_none)
    _normalize_numbers = field_validator(
        "round", "home_score", "away_score", "spectators", mode="before"
    )(_to_int)

    @property
    def kickoff_at(self) -> datetime | None:
        """Kickoff in UTC; TheSportsDB timestamps carry no offset but are UTC."""

        if self.timestamp is not None:
            raw = self.timestamp
        elif self.date is not None:
            raw = f"{self.date}T{self.time or '00:00:00'}"
        else:
            return None
        parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=UTC)
        return parsed.astimezone(UTC)


class TableRowPayload(TheSportsDBBaseModel):
    team_id: str = Field(alias="idTeam")
    league_id: str | None = Field(default=None, alias="idLeague")
    season: str | None = Field(default=None, alias="strSeason")
    rank: int | None = Field(default=None, alias="intRank")
    played: int | None = Field(default=None, alias="intPlayed")
    won: int | None = Field(default=None, alias="intWin")
    drawn: int | None = Field(default=None, alias="intDraw")
    lost: int | None = Field(default=None, alias="intLoss")
    goals_for: int | None = Field(default=None, alias="intGoalsFor")
    goals_against: int | None = Field(default=None, alias="intGoalsAgainst")
    goal_difference: int | None = Field(default=None, alias="intGoalDifference")
    points: int | None = Field(default=None, alias="intPoints")
    form: str | None = Field(default=None, alias="strForm")

    _normalize_text = field_validator("league_id", "season", "form", mode="before")(
        _blank_to_none
    )
    _normalize_numbers = field_validator(
        "rank",
        "played",
        "won",
        "drawn",
        "lost",
        "goals_for",
        "goals_against",
        "goal_difference",
        "points",
        mode="before",
    )(_to_int)


class TimelinePayload(TheSportsDBBaseModel):
    id: str = Field(alias="idTimeline")
    event_id: str = Field(alias="idEvent")
    kind: str = Field(alias="strTimeline")
    detail: str | None = Field(default=None, alias="strTimelineDetail")
    team_id: str | None = Field(default=None, alias="idTeam")
    player: str | None = Field(default=None, alias="strPlayer")
    assist: str | None = Field(default=None, alias="strAssist")
    minute: int | None = Field(default=None, alias="intTime")

    _normalize_text = field_validator("detail", "team_id", "player", "assist", mode="before")(
        _blank_to_none
    )
    _normalize_number = field_validator("minute", mode="before")(_to_int)
