from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest

from pitchsync.adapters.thesportsdb import TheSportsDBSource
from pitchsync.adapters.thesportsdb.translator import (
    event_type,
    fixture_status,
    parse_fixture,
    parse_league,
    parse_live_event,
    parse_player,
    parse_standing,
    parse_team,
)
from pitchsync.config.http_resilience import ResilienceConfig
from pitchsync.config.thesportsdb import TheSportsDBConfig
from pitchsync.domain.errors import FatalRequestError
from pitchsync.domain.model import EntityType, FixtureStatus, LiveEventType, Provider
from pitchsync.domain.ports import FetchContext
from tests.support.http import Recorder, mock_client_factory
from tests.support.records import RETRIEVED_AT, make_record

TEAM = {
    "idTeam": "138108",
    "strTeam": "Seoul E-Land",
    "strTeamShort": "",
    "idLeague": "4822",
    "strCountry": "South Korea",
    "intFormedYear": "2014",
    "strStadium": "Mokdong Stadium",
    "intStadiumCapacity": "15,000",
    "strBadge": "https://img.test/badge.png",
    "strDescriptionEN": None,
}

EVENT = {
    "idEvent": "2070001",
    "idLeague": "4689",
    "strSeason": "2025",
    "idHomeTeam": "138101",
    "idAwayTeam": "138102",
    "strTimestamp": "2025-09-21T07:30:00",
    "intRound": "30",
    "strVenue": "Munsu Football Stadium",
    "strStatus": "Match Finished",
    "intHomeScore": "2",
    "intAwayScore": "1",
    "intSpectators": "",
}


def test_parse_league_reads_current_season() -> None:
    record = parse_league(
        {
            "idLeague": "4689",
            "strLeague": "South Korean K League 1",
            "strCountry": "South Korea",
            "strCurrentSeason": "2025",
            "strBadge": "https://img.test/k1.png",
        },
        retrieved_at=RETRIEVED_AT,
    )

    assert record.provider is Provider.THESPORTSDB
    assert record.attributes["season_year"] == 2025
    assert record.attributes["logo_url"] == "https://img.test/k1.png"


def test_parse_team_drops_blank_and_unparseable_values() -> None:
    record = parse_team(TEAM, retrieved_at=RETRIEVED_AT)

    assert record.attributes["founded_year"] == 2014
    assert record.attributes["stadium"] == "Mokdong Stadium"
    assert "short_name" not in record.attributes
    assert "stadium_capacity" not in record.attributes
    assert "description" not in record.attributes
    assert record.references == {"league": "4822"}


def test_parse_player_drops_placeholder_birth_date() -> None:
    record = parse_player(
        {
            "idPlayer": "34160001",
            "strPlayer": "Moon Jeong-in",
            "idTeam": "138108",
            "strPosition": "Goalkeeper",
            "strNumber": "1",
            "dateBorn": "0000-00-00",
        },
        retrieved_at=RETRIEVED_AT,
    )

    assert record.attributes["jersey_number"] == 1
    assert "birth_date" not in record.attributes
    assert record.references == {"team": "138108"}


def test_parse_fixture_reads_utc_timestamp_and_scores() -> None:
    record = parse_fixture(EVENT, retrieved_at=RETRIEVED_AT)

    assert record.attributes["kickoff_at"] == datetime(2025, 9, 21, 7, 30, tzinfo=UTC)
    assert record.attributes["status"] == FixtureStatus.FINISHED
    assert record.attributes["home_score"] == 2
    assert record.attributes["round"] == 30
    assert "spectators" not in record.attributes
    assert record.references == {"league": "4689", "home_team": "138101", "away_team": "138102"}


def test_parse_fixture_hides_scores_before_kickoff() -> None:
    record = parse_fixture(
        EVENT | {"strStatus": "Not Started", "intHomeScore": None, "intAwayScore": None},
        retrieved_at=RETRIEVED_AT,
    )

    assert record.attributes["status"] == FixtureStatus.SCHEDULED
    assert "home_score" not in record.attributes


def test_fixture_status_ignores_unknown_values() -> None:
    assert fixture_status("HT") is FixtureStatus.LIVE
    assert fixture_status("Suspended?") is None
    assert fixture_status(None) is None


def test_parse_standing_keys_by_league_team_and_season() -> None:
    record = parse_standing(
        {
            "idTeam": "138101",
            "idLeague": "4689",
            "strSeason": "2025",
            "intRank": "1",
            "intPlayed": "19",
            "intPoints": "40",
            "strForm": "WWDLW",
        },
        retrieved_at=RETRIEVED_AT,
    )

    assert record.native_id == "4689-138101-2025"
    assert record.attributes["season_year"] == 2025
    assert record.attributes["form"] == "WWDLW"


def test_timeline_event_types() -> None:
    assert event_type("Goal", "Own Goal") is LiveEventType.OWN_GOAL
    assert event_type("Goal", "Penalty") is LiveEventType.PENALTY
    assert event_type("Card", "Red Card") is LiveEventType.RED_CARD
    assert event_type("Card", None) is LiveEventType.YELLOW_CARD
    assert event_type("subst", None) is LiveEventType.SUBSTITUTION
    assert event_type("VAR", None) is LiveEventType.OTHER


def test_parse_live_event() -> None:
    record = parse_live_event(
        {
            "idTimeline": "9001",
            "idEvent": "2070001",
            "strTimeline": "Goal",
            "strTimelineDetail": "Normal Goal",
            "idTeam": "138101",
            "strPlayer": "Joo Min-kyu",
            "intTime": "23",
        },
        retrieved_at=RETRIEVED_AT,
    )

    assert record.attributes["event_type"] == LiveEventType.GOAL
    assert record.attributes["minute"] == 23
    assert record.references == {"fixture": "2070001", "team": "138101"}


def _source(recorder: Recorder) -> TheSportsDBSource:
    config = TheSportsDBConfig(
        resilience=ResilienceConfig(
            name="thesportsdb", base_url="https://thesportsdb.test/api/v1/json/123"
        ),
        league_ids=("4689",),
    )
    return TheSportsDBSource(config, client_factory=mock_client_factory(recorder))


def _fetch(
    source: TheSportsDBSource, entity_type: EntityType, context: FetchContext | None = None
) -> list[object]:
    async def run() -> list[object]:
        async with source:
            batch = await source.fetch(entity_type, context or FetchContext(season=2025))
        return batch.payloads

    return asyncio.run(run())


def test_source_filters_leagues_to_configured_ids() -> None:
    recorder = Recorder(
        {
            "search_all_leagues.php": {
                "countries": [
                    {"idLeague": "4689", "strLeague": "South Korean K League 1"},
                    {"idLeague": "4822", "strLeague": "South Korean K League 2"},
                ]
            }
        }
    )

    payloads = _fetch(_source(recorder), EntityType.LEAGUE)

    assert payloads == [{"idLeague": "4689", "strLeague": "South Korean K League 1"}]
    assert recorder.requests[0].url.params["c"] == "South Korea"


def test_source_fetches_players_for_adapted_teams() -> None:
    recorder = Recorder(
        {"lookup_all_players.php": {"player": [{"idPlayer": "1", "strPlayer": "Moon Jeong-in"}]}}
    )
    team = make_record(Provider.THESPORTSDB, EntityType.TEAM, "138108", name="Seoul E-Land")
    context = FetchContext(season=2025, records={EntityType.TEAM: [team]})
    source = _source(recorder)

    payloads = _fetch(source, EntityType.PLAYER, context)
    (record,) = source.normalize(EntityType.PLAYER, payloads, retrieved_at=RETRIEVED_AT)

    assert recorder.requests[0].url.params["id"] == "138108"
    assert record.references == {"team": "138108"}


def test_source_treats_null_rows_as_empty() -> None:
    recorder = Recorder({"lookuptable.php": {"table": None}})

    assert _fetch(_source(recorder), EntityType.STANDING) == []
    assert recorder.requests[0].url.params["s"] == "2025"


def test_source_only_requests_timelines_for_live_fixtures() -> None:
    recorder = Recorder({"lookuptimeline.php": {"timeline": []}})
    live = make_record(
        Provider.THESPORTSDB, EntityType.FIXTURE, "1", status=str(FixtureStatus.LIVE)
    )
    done = make_record(
        Provider.THESPORTSDB, EntityType.FIXTURE, "2", status=str(FixtureStatus.FINISHED)
    )
    context = FetchContext(season=2025, records={EntityType.FIXTURE: [live, done]})

    _fetch(_source(recorder), EntityType.LIVE_EVENT, context)

    assert [request.url.params["id"] for request in recorder.requests] == ["1"]


def test_source_rejects_unexpected_shapes() -> None:
    recorder = Recorder({"eventsseason.php": {"events": "none"}})

    with pytest.raises(FatalRequestError):
        _fetch(_source(recorder), EntityType.FIXTURE)
