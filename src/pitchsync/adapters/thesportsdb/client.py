"""TheSportsDB v1 source."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from pitchsync.adapters.fetcher import RateLimitedFetcher
from pitchsync.domain.errors import FatalRequestError
from pitchsync.domain.model import EntityType, FixtureStatus, Provider
from pitchsync.domain.ports.fetching import FetchedBatch

from . import translator

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from datetime import datetime
    from types import TracebackType

    from pitchsync.adapters.fetcher import ClientFactory
    from pitchsync.config.thesportsdb import TheSportsDBConfig
    from pitchsync.domain.model import ProviderRecord
    from pitchsync.domain.ports.fetching import FetchContext, ProviderSource

log = getLogger(__name__)

_PARSERS: Mapping[EntityType, Callable[..., ProviderRecord]] = {
    EntityType.LEAGUE: translator.parse_league,
    EntityType.TEAM: translator.parse_team,
    EntityType.PLAYER: translator.parse_player,
    EntityType.FIXTURE: translator.parse_fixture,
    EntityType.STANDING: translator.parse_standing,
    EntityType.LIVE_EVENT: translator.parse_live_event,
}


class TheSportsDBSource:
    """Club metadata, images, season fixtures, tables and match timelines."""

    provider = Provider.THESPORTSDB
    entity_types = frozenset(_PARSERS)

    def __init__(
        self,
        config: TheSportsDBConfig,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self._fetcher = RateLimitedFetcher(
            config.resilience, provider=self.provider, client_factory=client_factory
        )

    async def __aenter__(self) -> Self:
        await self._fetcher.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self._fetcher.__aexit__(exc_type, exc, tb)

    async def fetch(self, entity_type: EntityType, context: FetchContext) -> FetchedBatch:
        with self._fetcher.tracking_snapshots() as snapshot:
            payloads = await self._fetch_payloads(entity_type, context)
        return FetchedBatch(payloads, snapshot_at=snapshot.oldest)

    async def _fetch_payloads(
        self, entity_type: EntityType, context: FetchContext
    ) -> list[object]:
        season = str(context.season)
        match entity_type:
            case EntityType.LEAGUE:
                return await self._fetch_leagues()
            case EntityType.TEAM:
                return await self._per_id(
                    "lookup_all_teams.php", "teams", self.config.league_ids, "id"
                )
            case EntityType.PLAYER:
                team_ids = [
                    record.native_id
                    for record in context.records_from(self.provider, EntityType.TEAM)
                ]
                if not team_ids:
                    log.debug("No TheSportsDB teams adapted in this run; skipping players")
                return await self._fetch_players(team_ids)
            case EntityType.FIXTURE:
                return await self._per_id(
                    "eventsseason.php", "events", self.config.league_ids, "id", s=season
                )
            case EntityType.STANDING:
                return await self._per_id(
                    "lookuptable.php", "table", self.config.league_ids, "l", s=season
                )
            case EntityType.LIVE_EVENT:
                return await self._per_id(
                    "lookuptimeline.php", "timeline", self._live_fixture_ids(context), "id"
                )
            case _:
                return []

    def normalize(
        self,
        entity_type: EntityType,
        payloads: Sequence[object],
        *,
        retrieved_at: datetime,
    ) -> list[ProviderRecord]:
        parser = _PARSERS.get(entity_type)
        if parser is None:
            return []
        return [parser(payload, retrieved_at=retrieved_at) for payload in payloads]

    async def _fetch_leagues(self) -> list[object]:
        payload = await self._fetcher.fetch(
            "search_all_leagues.php", {"c": self.config.country, "s": "Soccer"}
        )
        rows = _rows(payload, "countries", "search_all_leagues.php") or _rows(
            payload, "leagues", "search_all_leagues.php"
        )
        wanted = set(self.config.league_ids)
        return [row for row in rows if isinstance(row, dict) and row.get("idLeague") in wanted]

    async def _fetch_players(self, team_ids: Sequence[str]) -> list[object]:
        players: list[object] = []
        for team_id in team_ids:
            payload = await self._fetcher.fetch("lookup_all_players.php", {"id": team_id})
            for row in _rows(payload, "player", "lookup_all_players.php"):
                if isinstance(row, dict):
                    row.setdefault("idTeam", team_id)
                players.append(row)
        return players

    async def _per_id(
        self,
        endpoint: str,
        key: str,
        ids: Sequence[str],
        id_param: str,
        **params: str,
    ) -> list[object]:
        rows: list[object] = []
        for identifier in ids:
            payload = await self._fetcher.fetch(endpoint, {id_param: identifier, **params})
            rows.extend(_rows(payload, key, endpoint))
        return rows

    def _live_fixture_ids(self, context: FetchContext) -> list[str]:
        return [
            record.native_id
            for record in context.records_from(self.provider, EntityType.FIXTURE)
            if record.attributes.get("status") == FixtureStatus.LIVE
        ]


def _rows(payload: object, key: str, endpoint: str) -> list[object]:
    """Pull the row list out of ``{key: [...]}``; TheSportsDB sends ``null`` for none."""

    if not isinstance(payload, dict):
        raise FatalRequestError(
            f"TheSportsDB {endpoint} returned {type(payload).__name__}, expected an object",
            provider=Provider.THESPORTSDB,
            endpoint=endpoint,
        )
    rows = payload.get(key)
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise FatalRequestError(
            f"TheSportsDB {endpoint} field {key!r} is not a list",
            provider=Provider.THESPORTSDB,
            endpoint=endpoint,
        )
    return rows


if TYPE_CHECKING:
    from pitchsync.config.thesportsdb import get_thesportsdb_config

    _source_check: ProviderSource = TheSportsDBSource(get_thesportsdb_config())
