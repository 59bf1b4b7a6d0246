"""Translate Highlightly payloads into provider records."""

from __future__ import annotations

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
    MatchPayload,
    PlayerPayload,
    StandingPayload,
    TeamPayload,
)

if TYPE_CHECKING:
    from collections.abc import Mapping
    from datetime import datetime

_STATUS: Mapping[str, FixtureStatus] = {
    "scheduled": FixtureStatus.SCHEDULED,
    "not started": FixtureStatus.SCHEDULED,
    "live": FixtureStatus.LIVE,
    "in_progress": FixtureStatus.LIVE,
    "playing": FixtureStatus.LIVE,
    "first half": FixtureStatus.LIVE,
    "second half": FixtureStatus.LIVE,
    "half time": FixtureStatus.LIVE,
    "extra time": FixtureStatus.LIVE,
    "penalties": FixtureStatus.LIVE,
    "finished": FixtureStatus.FINISHED,
    "finished after extra time": FixtureStatus.FINISHED,
    "finished after penalties": FixtureStatus.FINISHED,
    "postponed": FixtureStatus.POSTPONED,
    "cancelled": FixtureStatus.CANCELLED,
    "abandoned": FixtureStatus.CANCELLED,
}

_EVENT_TYPES: Mapping[str, LiveEventType] = {
    "goal": LiveEventType.GOAL,
    "own_goal": LiveEventType.OWN_GOAL,
    "penalty": LiveEventType.PENALTY,
    "yellow_card": LiveEventType.YELLOW_CARD,
    "red_card": LiveEventType.RED_CARD,
    "substitution": LiveEventType.SUBSTITUTION,
}


def _record(
    entity_type: EntityType,
    native_id: str,
    attributes: Mapping[str, object],
    retrieved_at: datetime,
    references: Mapping[str, str | None] | None = None,
    derived: frozenset[str] = frozenset(),
) -> ProviderRecord:
    return ProviderRecord(
        provider=Provider.HIGHLIGHTLY,
        native_id=native_id,
        entity_type=entity_type,
        attributes={key: value for key, value in attributes.items() if value is not None},
        references={role: ref for role, ref in (references or {}).items() if ref is not None},
        retrieved_at=retrieved_at,
        derived_fields=derived,
    )


def fixture_status(raw: str | None) -> FixtureStatus | None:
    if raw is None:
        return None
    return _STATUS.get(raw.strip().casefold())


def event_type(raw: str) -> LiveEventType:
    key = raw.strip().casefold().replace(" ", "_").replace("-", "_")
    return _EVENT_TYPES.get(key, LiveEventType.OTHER)


def parse_league(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    league = LeaguePayload.model_validate(payload)
    return _record(
        EntityType.LEAGUE,
        league.id,
        {
            "name": league.name,
            "country": league.country.name if league.country else None,
            "logo_url": league.logo,
            "season_year": league.current_season.year if league.current_season else None,
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
            "country": team.country.name if team.country else None,
            "founded_year": team.founded,
            "logo_url": team.logo,
        },
        retrieved_at,
        {"league": team.league_id},
    )


def parse_player(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    """Player with season statistics.

    When a goalkeeper's statistics carry no clean-sheet count but report zero
    goals conceded, every appearance was a clean sheet. That value is inferred,
    so it is flagged as derived and loses to any reported count.
    """

    player = PlayerPayload.model_validate(payload)
    stats = player.statistics
    attributes: dict[str, object | None] = {
        "name": player.name,
        "position": player.position,
        "nationality": player.nationality,
        "jersey_number": player.jersey_number,
        "photo_url": player.photo,
    }
    derived: frozenset[str] = frozenset()
    if stats is not None:
        attributes |= {
            "appearances": stats.appearances,
            "goals": stats.goals,
            "assists": stats.assists,
            "yellow_cards": stats.yellow_cards,
            "red_cards": stats.red_cards,
            "clean_sheets": stats.clean_sheets,
        }
        if (
            stats.clean_sheets is None
            and player.is_goalkeeper
            and stats.goals_conceded == 0
            and stats.appearances is not None
        ):
            attributes["clean_sheets"] = stats.appearances
            derived = frozenset({"clean_sheets"})
    return _record(
        EntityType.PLAYER,
        player.id,
        attributes,
        retrieved_at,
        {"team": player.team.id if player.team else None},
        derived,
    )


def parse_fixture(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    match = MatchPayload.model_validate(payload)
    status = fixture_status(match.status)
    possession = match.statistics.possession if match.statistics else None
    attributes: dict[str, object | None] = {
        "kickoff_at": match.kickoff_at,
        "round": match.round,
        "venue": match.venue.name if match.venue else None,
        "status": str(status) if status is not None else None,
        "possession_home": possession.home if possession else None,
        "possession_away": possession.away if possession else None,
    }
    if status is FixtureStatus.LIVE:
        attributes["minute"] = match.minute
    if status is not FixtureStatus.SCHEDULED and match.score is not None:
        attributes["home_score"] = match.score.home
        attributes["away_score"] = match.score.away
    return _record(
        EntityType.FIXTURE,
        match.id,
        attributes,
        retrieved_at,
        {
            "league": match.league.id if match.league else None,
            "home_team": match.home_team.id,
            "away_team": match.away_team.id,
        },
    )


def parse_standing(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    row = StandingPayload.model_validate(payload)
    goal_difference = (
        row.scored_goals - row.received_goals
        if row.scored_goals is not None and row.received_goals is not None
        else None
    )
    return _record(
        EntityType.STANDING,
        f"{row.league_id}-{row.team.id}-{row.season}",
        {
            "season_year": row.season,
            "rank": row.position,
            "played": row.played,
            "won": row.wins,
            "drawn": row.draws,
            "lost": row.loses,
            "goals_for": row.scored_goals,
            "goals_against": row.received_goals,
            "goal_difference": goal_difference,
            "points": row.points,
            "form": row.form,
        },
        retrieved_at,
        {"league": row.league_id, "team": row.team.id},
    )


def live_event_native_id(event: EventPayload) -> str:
    """Highlightly events carry no id of their own."""

    player = event.player.name if event.player and event.player.name else "-"
    return f"{event.match_id}-{event.type}-{event.minute}-{player}"


def parse_live_event(payload: object, *, retrieved_at: datetime) -> ProviderRecord:
    event = EventPayload.model_validate(payload)
    return _record(
        EntityType.LIVE_EVENT,
        live_event_native_id(event),
        {
            "event_type": str(event_type(event.type)),
            "minute": event.minute,
            "extra_minute": event.additional_time,
            "player_name": event.player.name if event.player else None,
            "assist_name": event.assist.name if event.assist else None,
            "detail": event.description,
        },
        retrieved_at,
        {"fixture": event.match_id, "team": event.team.id if event.team else None},
    )
