"""Translate K League payloads into provider records."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime, time
from logging import getLogger
from typing import TYPE_CHECKING
from zoneinfo import ZoneInfo

from pitchsync.domain.model import EntityType, FixtureStatus, Provider, ProviderRecord

from .schema import ClubRankData, Match, PlayerRecordData, RecentMatchData

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import PlayerRecord, TeamRank

log = getLogger(__name__)

KICKOFF_TIMEZONE = ZoneInfo("Asia/Seoul")
COUNTRY = "South Korea"
LEAGUE_NAMES = {1: "K League 1", 2: "K League 2"}


def _record(
    entity_type: EntityType,
    native_id: str,
    attributes: dict[str, object],
    retrieved_at: datetime,
    references: dict[str, str] | None = None,
    derived: frozenset[str] = frozenset(),
) -> ProviderRecord:
    return ProviderRecord(
        provider=Provider.KLEAGUE,
        native_id=native_id,
        entity_type=entity_type,
        attributes={key: value for key, value in attributes.items() if value is not None},
        references=references or {},
        retrieved_at=retrieved_at,
        derived_fields=derived,
    )


def _ranks(data: ClubRankData, league_ids: Iterable[int]) -> list[TeamRank]:
    wanted = set(league_ids)
    return [
        rank
        for league_id, ranks in data.by_league().items()
        if league_id in wanted
        for rank in ranks
    ]


def parse_leagues(
    payload: object, *, league_ids: Iterable[int], retrieved_at: datetime
) -> list[ProviderRecord]:
    """Leagues are implied by the ranking tables; the API has no league endpoint."""

    data = ClubRankData.model_validate(payload)
    seasons: dict[int, int] = {}
    for rank in _ranks(data, league_ids):
        seasons.setdefault(rank.league_id, rank.year)
    return [
        _record(
            EntityType.LEAGUE,
            str(league_id),
            {
                "name": LEAGUE_NAMES.get(league_id, f"K League {league_id}"),
                "country": COUNTRY,
                "season_year": season,
            },
            retrieved_at,
        )
        for league_id, season in sorted(seasons.items())
    ]


def parse_teams(
    payload: object, *, league_ids: Iterable[int], retrieved_at: datetime
) -> list[ProviderRecord]:
    data = ClubRankData.model_validate(payload)
    return [
        _record(
            EntityType.TEAM,
            rank.team_id,
            {"name": rank.team_name, "country": COUNTRY},
            retrieved_at,
            {"league": str(rank.league_id)},
        )
        for rank in _ranks(data, league_ids)
    ]


def parse_standings(
    payload: object, *, league_ids: Iterable[int], retrieved_at: datetime
) -> list[ProviderRecord]:
    data = ClubRankData.model_validate(payload)
    return [
        _record(
            EntityType.STANDING,
            f"{rank.league_id}-{rank.team_id}-{rank.year}",
            {
                "season_year": rank.year,
                "rank": rank.rank,
                "played": rank.won + rank.drawn + rank.lost,
                "won": rank.won,
                "drawn": rank.drawn,
                "lost": rank.lost,
                "goals_for": rank.goals_for,
                "goals_against": rank.goals_against,
                "goal_difference": rank.goal_difference,
                "points": rank.points,
            },
            retrieved_at,
            {"league": str(rank.league_id), "team": rank.team_id},
        )
        for rank in _ranks(data, league_ids)
    ]


def player_native_id(record: PlayerRecord) -> str:
    return f"{record.team_id}-{record.back_no or record.player_name}"


def parse_players(
    payload: object, *, league_ids: Iterable[int], retrieved_at: datetime
) -> list[ProviderRecord]:
    """Fold the goal, assist and clean-sheet rankings into one record per player."""

    data = PlayerRecordData.model_validate(payload)
    wanted = set(league_ids)
    players: dict[str, dict[str, object]] = defaultdict(dict)
    teams: dict[str, str] = {}

    rankings = (
        ("goals", "goal_cnt", data.goal),
        ("assists", "assist_cnt", data.assist),
        ("clean_sheets", "clean_cnt", data.clean),
    )
    for field_name, attribute, ranking in rankings:
        for league_id, entries in ((1, ranking.league1), (2, ranking.league2)):
            if league_id not in wanted:
                continue
            for entry in entries:
                native_id = player_native_id(entry)
                attributes = players[native_id]
                attributes["name"] = entry.player_name
                if entry.back_no is not None and entry.back_no.isdigit():
                    attributes["jersey_number"] = int(entry.back_no)
                value = getattr(entry, attribute)
                if value is not None:
                    attributes[field_name] = value
                teams[native_id] = entry.team_id

    return [
        _record(
            EntityType.PLAYER,
            native_id,
            attributes,
            retrieved_at,
            {"team": teams[native_id]},
        )
        for native_id, attributes in players.items()
    ]


def parse_kickoff(game_date: str, game_time: str | None) -> datetime:
    """``"2025.09.21"`` and ``"16:30"`` in Seoul time, returned in UTC.

    Without a time the result is Seoul midnight of that day: good enough to
    place the fixture on its date, not a kickoff time.
    """

    day = datetime.strptime(game_date, "%Y.%m.%d").date()
    clock = time.fromisoformat(game_time) if game_time else time(0, 0)
    return datetime.combine(day, clock, tzinfo=KICKOFF_TIMEZONE).astimezone(UTC)


def fixture_status(match: Match) -> FixtureStatus:
    if match.game_status == "FE" or match.end_yn == "Y":
        return FixtureStatus.FINISHED
    if match.game_status == "PL":
        return FixtureStatus.LIVE
    return FixtureStatus.SCHEDULED


def parse_fixtures(
    payload: object, *, league_ids: Iterable[int], retrieved_at: datetime
) -> list[ProviderRecord]:
    """One record per match; a match whose date cannot be read is skipped."""

    data = RecentMatchData.model_validate(payload)
    wanted = set(league_ids)
    records: list[ProviderRecord] = []
    for match in data.all:
        if match.league_id not in wanted:
            continue
        try:
            kickoff_at = parse_kickoff(match.game_date, match.game_time)
        except ValueError as exc:
            log.warning(
                f"Skipping K League match {match.game_id}: unreadable kickoff "
                f"{match.game_date!r} {match.game_time!r} ({exc})"
            )
            continue
        status = fixture_status(match)
        attributes: dict[str, object] = {
            "kickoff_at": kickoff_at,
            "season_year": match.year,
            "round": match.round_id,
            "venue": match.venue,
            "status": str(status),
        }
        if status is not FixtureStatus.SCHEDULED:
            attributes["home_score"] = match.home_goal
            attributes["away_score"] = match.away_goal
        records.append(
            _record(
                EntityType.FIXTURE,
                str(match.game_id),
                attributes,
                retrieved_at,
                {
                    "league": str(match.league_id),
                    "home_team": match.home_team,
                    "away_team": match.away_team,
                },
                frozenset() if match.game_time else frozenset({"kickoff_at"}),
            )
        )
    return records
