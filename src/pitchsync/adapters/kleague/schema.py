"""Pydantic models describing the K League official API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_CODE = "200"


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class KLeagueBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Envelope(KLeagueBaseModel):
    result_code: str = Field(alias="resultCode")
    result_msg: str | None = Field(default=None, alias="resultMsg")
    data: object = None

    @field_validator("result_code", mode="before")
    @classmethod
    def _stringify(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value

    @property
    def ok(self) -> bool:
        return self.result_code == SUCCESS_CODE


class TeamRank(KLeagueBaseModel):
    year: int
    league_id: int = Field(alias="leagueId")
    team_id: str = Field(alias="teamId")
    team_name: str = Field(alias="teamName")
    rank: int
    points: int = Field(alias="gainPoint")
    won: int = Field(alias="winCnt")
    drawn: int = Field(alias="tieCnt")
    lost: int = Field(alias="lossCnt")
    goal_difference: int = Field(alias="gapCnt")
    goals_for: int = Field(alias="goalCnt")
    goals_against: int = Field(alias="loseGoalCnt")
    yellow_cards: int | None = Field(default=None, alias="yellowCardCnt")
    red_cards: int | None = Field(default=None, alias="redCardCnt")


class ClubRankData(KLeagueBaseModel):
    league1: list[TeamRank] = Field(default_factory=list)
    league2: list[TeamRank] = Field(default_factory=list)

    def by_league(self) -> dict[int, list[TeamRank]]:
        return {1: self.league1, 2: self.league2}


class PlayerRecord(KLeagueBaseModel):
    year: int
    league_id: int = Field(alias="leagueId")
    team_id: str = Field(alias="teamId")
    team_name: str | None = Field(default=None, alias="teamName")
    back_no: str | None = Field(default=None, alias="backNo")
    player_name: str = Field(alias="playerName")
    goal_cnt: int | None = Field(default=None, alias="goalCnt")
    assist_cnt: int | None = Field(default=None, alias="assistCnt")
    clean_cnt: int | None = Field(default=None, alias="cleanCnt")
    rank: int | None = None

    @field_validator("back_no", mode="before")
    @classmethod
    def _normalize_back_no(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return _blank_to_none(value)


class PlayerRanking(KLeagueBaseModel):
    league1: list[PlayerRecord] = Field(default_factory=list)
    league2: list[PlayerRecord] = Field(default_factory=list)


class PlayerRecordData(KLeagueBaseModel):
    goal: PlayerRanking = Field(default_factory=PlayerRanking)
    assist: PlayerRanking = Field(default_factory=PlayerRanking)
    clean: PlayerRanking = Field(default_factory=PlayerRanking)


class Match(KLeagueBaseModel):
    year: int
    league_id: int = Field(alias="leagueId")
    round_id: int | None = Field(default=None, alias="roundId")
    game_id: int = Field(alias="gameId")
    game_date: str = Field(alias="gameDate")
    game_time: str | None = Field(default=None, alias="gameTime")
    end_yn: str | None = Field(default=None, alias="endYn")
    game_status: str | None = Field(default=None, alias="gameStatus")
    home_team: str = Field(alias="homeTeam")
    home_team_name: str | None = Field(default=None, alias="homeTeamName")
    away_team: str = Field(alias="awayTeam")
    away_team_name: str | None = Field(default=None, alias="awayTeamName")
    venue: str | None = Field(default=None, alias="fieldNameFull")
    home_goal: int | None = Field(default=None, alias="homeGoal")
    away_goal: int | None = Field(default=None, alias="awayGoal")

    _normalize_text = field_validator("game_time", "end_yn", "game_status", "venue", mode="before")(
        _blank_to_none
    )


class RecentMatchData(KLeagueBaseModel):
    all: list[Match] = Field(default_factory=list)
