from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import httpx
import pytest
from pydantic import ValidationError

from pitchsync.adapters.kleague import KLeagueSource
from pitchsync.adapters.kleague.translator import (
    parse_fixtures,
    parse_kickoff,
    parse_leagues,
    parse_players,
    parse_standings,
    parse_teams,
)
from pitchsync.config.http_resilience import ResilienceConfig
from pitchsync.config.kleague import KLeagueConfig
from pitchsync.domain.errors import FatalRequestError
from pitchsync.domain.model import EntityType, FixtureStatus, Provider
from pitchsync.domain.ports import FetchContext, FetchedBatch
from tests.support.http import Recorder, mock_client_factory
from tests.support.records import RETRIEVED_AT

CLUB_RANK = {
    "league1": [
        {
            "year": 2025,
            "leagueId": 1,
            "teamId": "K01",
            "teamName": "Ulsan HD FC",
            "rank": 1,
            "gainPoint": 40,
            "winCnt": 12,
            "tieCnt": 4,
            "lossCnt": 3,
            "gapCnt": 15,
            "goalCnt": 33,
            "loseGoalCnt": 18,
        }
    ],
    "league2": [
        {
            "year": 2025,
            "leagueId": 2,
            "teamId": "K31",
            "teamName": "Seoul E-Land FC",
            "rank": 3,
            "gainPoint": 30,
            "winCnt": 8,
            "tieCnt": 6,
            "lossCnt": 5,
            "gapCnt": 6,
            "goalCnt": 25,
            "loseGoalCnt": 19,
        }
    ],
}

PLAYER_RECORDS = {
    "goal": {
        "league1": [
            {
                "year": 2025,
                "leagueId": 1,
                "teamId": "K01",
                "backNo": 10,
                "playerName": "Joo Min-kyu",
                "goalCnt": 11,
            }
        ]
    },
    "assist": {
        "league1": [
            {
                "year": 2025,
                "leagueId": 1,
                "teamId": "K01",
                "backNo": "10",
                "playerName": "Joo Min-kyu",
                "assistCnt": 4,
            }
        ]
    },
    "clean": {
        "league2": [
            {
                "year": 2025,
                "leagueId": 2,
                "teamId": "K31",
                "backNo": " ",
                "playerName": "Moon Jeong-in",
                "cleanCnt": 7,
            }
        ]
    },
}

RECENT_MATCHES = {
    "all": [
        {
            "year": 2025,
            "leagueId": 1,
            "roundId": 30,
            "gameId": 301,
            "gameDate": "2025.09.21",
            "gameTime": "16:30",
            "endYn": "Y",
            "homeTeam": "K01",
            "awayTeam": "K09",
            "fieldNameFull": "Munsu Football Stadium",
            "homeGoal": 2,
            "awayGoal": 1,
        },
        {
            "year": 2025,
            "leagueId": 1,
            "roundId": 31,
            "gameId": 311,
            "gameDate": "2025.09.27",
            "gameTime": "",
            "endYn": "N",
            "homeTeam": "K09",
            "awayTeam": "K01",
            "homeGoal": 0,
            "awayGoal": 0,
        },
        {
            "year": 2025,
            "leagueId": 2,
            "gameId": 999,
            "gameDate": "2025.09.21",
            "homeTeam": "K31",
            "awayTeam": "K32",
        },
    ]
}


def test_parse_leagues_and_teams_from_club_ranking() -> None:
    leagues = parse_leagues(CLUB_RANK, league_ids=(1, 2), retrieved_at=RETRIEVED_AT)
    teams = parse_teams(CLUB_RANK, league_ids=(1,), retrieved_at=RETRIEVED_AT)

    assert [league.native_id for league in leagues] == ["1", "2"]
    assert leagues[0].attributes == {
        "name": "K League 1",
        "country": "South Korea",
        "season_year": 2025,
    }
    assert len(teams) == 1
    assert teams[0].native_id == "K01"
    assert teams[0].name == "Ulsan HD FC"
    assert teams[0].references == {"league": "1"}


def test_parse_standings_derives_played() -> None:
    (standing,) = parse_standings(CLUB_RANK, league_ids=(2,), retrieved_at=RETRIEVED_AT)

    assert standing.native_id == "2-K31-2025"
    assert standing.attributes["played"] == 19
    assert standing.attributes["goal_difference"] == 6
    assert standing.references == {"league": "2", "team": "K31"}


def test_parse_players_folds_rankings() -> None:
    players = {
        record.native_id: record
        for record in parse_players(PLAYER_RECORDS, league_ids=(1, 2), retrieved_at=RETRIEVED_AT)
    }

    scorer = players["K01-10"]
    assert scorer.attributes["goals"] == 11
    assert scorer.attributes["assists"] == 4
    assert scorer.attributes["jersey_number"] == 10
    keeper = players["K31-Moon Jeong-in"]
    assert keeper.attributes == {"name": "Moon Jeong-in", "clean_sheets": 7}
    assert keeper.references == {"team": "K31"}


def test_parse_kickoff_converts_seoul_time_to_utc() -> None:
    assert parse_kickoff("2025.09.21", "16:30") == datetime(2025, 9, 21, 7, 30, tzinfo=UTC)
    assert parse_kickoff("2025.09.21", None) == datetime(2025, 9, 20, 15, 0, tzinfo=UTC)


def test_parse_fixtures_hides_scores_until_kickoff() -> None:
    fixtures = parse_fixtures(RECENT_MATCHES, league_ids=(1,), retrieved_at=RETRIEVED_AT)

    finished, scheduled = fixtures
    assert finished.attributes["status"] == FixtureStatus.FINISHED
    assert finished.attributes["home_score"] == 2
    assert finished.attributes["venue"] == "Munsu Football Stadium"
    assert finished.references == {"league": "1", "home_team": "K01", "away_team": "K09"}
    assert scheduled.attributes["status"] == FixtureStatus.SCHEDULED
    assert "home_score" not in scheduled.attributes
    assert "venue" not in scheduled.attributes
    assert finished.derived_fields == frozenset()
    assert scheduled.derived_fields == {"kickoff_at"}


def test_parse_fixtures_skips_match_with_unreadable_date(caplog: pytest.LogCaptureFixture) -> None:
    payload = {
        "all": [
            {**RECENT_MATCHES["all"][0], "gameId": 302, "gameDate": "2025-09-21"},
            RECENT_MATCHES["all"][0],
        ]
    }

    with caplog.at_level("WARNING"):
        fixtures = parse_fixtures(payload, league_ids=(1,), retrieved_at=RETRIEVED_AT)

    assert [fixture.native_id for fixture in fixtures] == ["301"]
    assert "Skipping K League match 302" in caplog.text


def test_parsers_reject_malformed_payloads() -> None:
    with pytest.raises(ValidationError):
        parse_teams({"league1": [{"teamId": "K01"}]}, league_ids=(1,), retrieved_at=RETRIEVED_AT)


def _source(handler: Recorder) -> KLeagueSource:
    config = KLeagueConfig(
        resilience=ResilienceConfig(name="kleague", base_url="https://kleague.test/api")
    )
    return KLeagueSource(config, client_factory=mock_client_factory(handler))


def _fetch(source: KLeagueSource, entity_type: EntityType) -> list[object]:
    async def run() -> list[object]:
        async with source:
            batch = await source.fetch(entity_type, FetchContext(season=2025))
        return batch.payloads

    return asyncio.run(run())


def test_source_posts_and_unwraps_envelope() -> None:
    recorder = Recorder(
        {"/clubRank.do": {"resultCode": "200", "resultMsg": "success", "data": CLUB_RANK}}
    )
    source = _source(recorder)

    payloads = _fetch(source, EntityType.TEAM)
    records = source.normalize(EntityType.TEAM, payloads, retrieved_at=RETRIEVED_AT)

    assert payloads == [CLUB_RANK]
    assert recorder.requests[0].method == "POST"
    assert recorder.paths() == ["/api/clubRank.do"]
    assert {record.native_id for record in records} == {"K01", "K31"}
    assert all(record.provider is Provider.KLEAGUE for record in records)


def test_source_batch_carries_the_response_date() -> None:
    body = {"resultCode": "200", "resultMsg": "success", "data": CLUB_RANK}
    recorder = Recorder(
        {
            "/clubRank.do": httpx.Response(
                200, headers={"Date": "Sun, 21 Sep 2025 06:55:00 GMT"}, json=body
            )
        }
    )
    source = _source(recorder)

    async def run() -> FetchedBatch:
        async with source:
            return await source.fetch(EntityType.STANDING, FetchContext(season=2025))

    batch = asyncio.run(run())

    assert batch.payloads == [CLUB_RANK]
    assert batch.snapshot_at == datetime(2025, 9, 21, 6, 55, tzinfo=UTC)


def test_source_rejects_error_envelopes() -> None:
    recorder = Recorder(
        {"/recentMatchResult.do": {"resultCode": "500", "resultMsg": "error", "data": None}}
    )

    with pytest.raises(FatalRequestError, match="500"):
        _fetch(_source(recorder), EntityType.FIXTURE)


def test_source_has_no_live_events() -> None:
    recorder = Recorder({})
    source = _source(recorder)

    assert EntityType.LIVE_EVENT not in source.entity_types
    assert _fetch(source, EntityType.LIVE_EVENT) == []
    assert recorder.requests == []


def test_source_maps_transport_status() -> None:
    recorder = Recorder({"/playerRecord.do": httpx.Response(400)})

    with pytest.raises(FatalRequestError):
        _fetch(_source(recorder), EntityType.PLAYER)
