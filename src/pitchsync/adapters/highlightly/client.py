"""Highlightly live-data source."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from pydantic import ValidationError

from pitchsync.adapters.fetcher import RateLimitedFetcher
from pitchsync.domain.errors import FatalRequestError
from pitchsync.domain.model import EntityType, FixtureStatus, Provider
from pitchsync.domain.ports.fetching import FetchedBatch

from . import translator
from .schema import Page

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from datetime import datetime
    from types import TracebackType

    from pitchsync.adapters.fetcher import ClientFactory
    from pitchsync.config.highlightly import HighlightlyConfig
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

# Per-league listings: endpoint and whether it takes a season.
_LEAGUE_ENDPOINTS: Mapping[EntityType, tuple[str, bool]] = {
    EntityType.TEAM: ("/teams", False),
    EntityType.PLAYER: ("/players", True),
    EntityType.FIXTURE: ("/matches", True),
    EntityType.STANDING: ("/standings", True),
}


def _page(payload: object, endpoint: str) -> Page:
    if isinstance(payload, list):
        return Page.model_validate({"data": payload})
    try:
        return Page.model_validate(payload)
    except ValidationError as exc:
        raise FatalRequestError(
            f"Highlightly {endpoint} returned an unexpected page",
            provider=Provider.HIGHLIGHTLY,
            endpoint=endpoint,
        ) from exc


def _has_next(payload: object) -> bool:
    if not isinstance(payload, dict):
        return False
    pagination = payload.get("pagination")
    return isinstance(pagination, dict) and bool(pagination.get("hasNext"))


class HighlightlySource:
    """Low-latency scores, match statistics and in-play events."""

    provider = Provider.HIGHLIGHTLY
    entity_types = frozenset(_PARSERS)

    def __init__(
        self,
        config: HighlightlyConfig,
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
        if entity_type is EntityType.LEAGUE:
            return await self._fetch_leagues()
        if entity_type is EntityType.LIVE_EVENT:
            return await self._fetch_live_events(context)
        endpoint, seasonal = _LEAGUE_ENDPOINTS[entity_type]
        rows: list[object] = []
        for league_id in self._league_ids(context):
            params: dict[str, str | int] = {"leagueId": league_id}
            if seasonal:
                params["season"] = context.season
            for row in await self._collect(endpoint, params):
                row.setdefault("leagueId", league_id)
                if seasonal:
                    row.setdefault("season", context.season)
                rows.append(row)
        return rows

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

    async def _collect(
        self, endpoint: str, params: dict[str, str | int]
    ) -> list[dict[str, object]]:
        params["limit"] = self.config.page_size
        rows: list[dict[str, object]] = []
        async for payload in self._fetcher.fetch_pages(endpoint, params, has_next=_has_next):
            rows.extend(_page(payload, endpoint).data)
        return rows

    async def _fetch_leagues(self) -> list[object]:
        rows = await self._collect("/leagues", {"countryCode": self.config.country_code})
        if not self.config.league_ids:
            return list(rows)
        wanted = set(self.config.league_ids)
        return [row for row in rows if str(row.get("id")) in wanted]

    async def _fetch_live_events(self, context: FetchContext) -> list[object]:
        rows: list[object] = []
        for match_id in self._live_fixture_ids(context):
            endpoint = f"/matches/{match_id}/events"
            payload = await self._fetcher.fetch(endpoint)
            for row in _page(payload, endpoint).data:
                row.setdefault("matchId", match_id)
                rows.append(row)
        return rows

    def _league_ids(self, context: FetchContext) -> tuple[str, ...]:
        if self.config.league_ids:
            return self.config.league_ids
        return tuple(
            record.native_id
            for record in context.records_from(self.provider, EntityType.LEAGUE)
        )

    def _live_fixture_ids(self, context: FetchContext) -> list[str]:
        return [
            record.native_id
            for record in context.records_from(self.provider, EntityType.FIXTURE)
            if record.attributes.get("status") == FixtureStatus.LIVE
        ]


if TYPE_CHECKING:
    from pitchsync.config.highlightly import get_highlightly_config

    _source_check: ProviderSource = HighlightlySource(get_highlightly_config())
