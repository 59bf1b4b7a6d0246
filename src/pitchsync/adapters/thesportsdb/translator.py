"""Translate TheSportsDB payloads into provider records."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from pitchsync.domain.model import (
    EntityType,
    FixtureStatus,
    LiveEventType,
    Provider,
    ProviderRecord,
)

from .schema import (
    EventPayload,
    LeaguePayload,
    PlayerPayload,
    TableRowPayload,
    TeamPayload,
    TimelinePayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

log = getLogger(__name__)

_STATUS: Mapping[str, FixtureStatus] = {
    "ns": FixtureStatus.SCHEDULED,
    "not started": FixtureStatus.SCHEDULED,
    "tbd": FixtureStatus.SCHEDULED,
    "1h": FixtureStatus.LIVE,
    "2h": FixtureStatus.LIVE,
    "ht": FixtureStatus.LIVE,
    "et": FixtureStatus.LIVE,
    "p": FixtureStatus.LIVE,
    "live": FixtureStatus.LIVE,
    "ft": FixtureStatus.FINISHED,
    "aet": FixtureStatus.FINISHED,
    "pen": FixtureStatus.FINISHED,
    "match finished": FixtureStatus.FINISHED,
    "postponed": FixtureStatus.POSTPONED,
    "pst": FixtureStatus.POSTPONED,
    "cancelled": FixtureStatus.CANCELLED,
    "canc": FixtureStatus.CANCELLED,
    "abd": FixtureStatus.CANCELLED,
}


def _record(
    entity_type: EntityType,
    native_id: str,
    attributes: Mapping[str, object],
    retrieved_at: datetime,
    references: Mapping[str, str | None] | None = None,
) -> ProviderRecord:
    return ProviderRecord(
        provider=Provider.THESPORTSDB,
        native_id=native_id,
        entity_type=entity_type,
        attributes={key: value for key, value in attributes.items() if value is not None},
        references={role: ref for role, ref in (references or {}).items() if ref is not None},
        retrieved_at=retrieved_at,
    )


def _season_year(season: str | None) -> int | None:
    """``"2025"`` and ``"2024-2025"`` both name the year the season ends in."""

    if season is None:
        return None
    tail = season.rsplit("-", 1)[-1]
    return int(tail) if tail.isdigit() else None


def fixture_status(raw: str | None) -> FixtureStatus | None:
    if raw is None:
        return None
    status = _STATUS.get(raw.strip().casefold())
    if status is None:
        log.debug(f"Unmapped TheSportsDB event status {raw!r}")
    return status


def event_type(kind: str, detail: str | None) -> LiveEventType:
    kind_key = kind.casefold()
    detail_key = (detail or "").casefold()
    if kind_key == "goal":
        if "own" in detail_key:
            return LiveEventType.OWN_GOAL
        if "penalty" in detail_key:
            return LiveEventType.PENALTY
        return LiveEventType.GOAL
    if kind_key == "card":
        return LiveEventType.RED_CARD if "red" in detail_key else LiveEventType.YELLOW_CARD
    if kind_key in {"subst", "substitution"}:
        return LiveEventType.SUBSTITUTION
    return LiveEventType.OTHER


def parse_league(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    league = LeaguePayload.model_validate(payload)
    return _record(
        EntityType.LEAGUE,
        league.id,
        {
            "name": league.name,
            "country": league.country,
            "logo_url": league.badge,
            "season_year": _season_year(league.current_season),
        },
        retrieved_at,
    )


def parse_team(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    team = TeamPayload.model_validate(payload)
    return _record(
        EntityType.TEAM,
        team.id,
        {
            "name": team.name,
            "short_name": team.short_name,
            "country": team.country,
            "founded_year": team.founded_year,
            "stadium": team.stadium,
            "stadium_capacity": team.stadium_capacity,
            "website": team.website,
            "manager": team.manager,
            "logo_url": team.logo,
            "badge_url": team.badge,
            "description": team.description,
        },
        retrieved_at,
        {"league": team.league_id},
    )


def parse_player(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    player = PlayerPayload.model_validate(payload)
    return _record(
        EntityType.PLAYER,
        player.id,
        {
            "name": player.name,
            "position": player.position,
            "nationality": player.nationality,
            "jersey_number": player.number,
            "birth_date": player.birth_date,
            "photo_url": player.photo,
        },
        retrieved_at,
        {"team": player.team_id},
    )


def parse_fixture(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    event = EventPayload.model_validate(payload)
    status = fixture_status(event.status)
    attributes: dict[str, object | None] = {
        "kickoff_at": event.kickoff_at,
        "season_year": _season_year(event.season),
        "round": event.round,
        "venue": event.venue,
        "status": str(status) if status is not None else None,
        "spectators": event.spectators,
    }
    if status is not FixtureStatus.SCHEDULED:
        attributes["home_score"] = event.home_score
        attributes["away_score"] = event.away_score
    return _record(
        EntityType.FIXTURE,
        event.id,
        attributes,
        retrieved_at,
        {
            "league": event.league_id,
            "home_team": event.home_team_id,
            "away_team": event.away_team_id,
        },
    )


def parse_standing(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    row = TableRowPayload.model_validate(payload)
    season_year = _season_year(row.season)
    return _record(
        EntityType.STANDING,
        f"{row.league_id}-{row.team_id}-{row.season}",
        {
            "season_year": season_year,
            "rank": row.rank,
            "played": row.played,
            "won": row.won,
            "drawn": row.drawn,
            "lost": row.lost,
            "goals_for": row.goals_for,
            "goals_against": row.goals_against,
            "goal_difference": row.goal_difference,
            "points": row.points,
            "form": row.form,
        },
        retrieved_at,
        {"league": row.league_id, "team": row.team_id},
    )


def parse_live_event(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    entry = TimelinePayload.model_validate(payload)
    return _record(
        EntityType.LIVE_EVENT,
        entry.id,
        {
            "event_type": str(event_type(entry.kind, entry.detail)),
            "minute": entry.minute,
            "player_name": entry.player,
            "assist_name": entry.assist,
            "detail": entry.detail,
        },
        retrieved_at,
        {"fixture": entry.event_id, "team": entry.team_id},
    )
