"""K League official API source."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Self

from pydantic import ValidationError

from pitchsync.adapters.fetcher import RateLimitedFetcher
from pitchsync.domain.errors import FatalRequestError
from pitchsync.domain.model import EntityType, Provider
from pitchsync.domain.ports.fetching import FetchedBatch

from . import translator
from .schema import Envelope

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from datetime import datetime
    from types import TracebackType

    from pitchsync.adapters.fetcher import ClientFactory
    from pitchsync.config.kleague import KLeagueConfig
    from pitchsync.domain.model import ProviderRecord
    from pitchsync.domain.ports.fetching import FetchContext, ProviderSource

log = getLogger(__name__)

CLUB_RANK_ENDPOINT = "/clubRank.do"
PLAYER_RECORD_ENDPOINT = "/playerRecord.do"
RECENT_MATCH_ENDPOINT = "/recentMatchResult.do"

_ENDPOINTS: dict[EntityType, str] = {
    EntityType.LEAGUE: CLUB_RANK_ENDPOINT,
    EntityType.TEAM: CLUB_RANK_ENDPOINT,
    EntityType.STANDING: CLUB_RANK_ENDPOINT,
    EntityType.PLAYER: PLAYER_RECORD_ENDPOINT,
    EntityType.FIXTURE: RECENT_MATCH_ENDPOINT,
}

type _Parser = Callable[..., list[ProviderRecord]]

_PARSERS: dict[EntityType, _Parser] = {
    EntityType.LEAGUE: translator.parse_leagues,
    EntityType.TEAM: translator.parse_teams,
    EntityType.STANDING: translator.parse_standings,
    EntityType.PLAYER: translator.parse_players,
    EntityType.FIXTURE: translator.parse_fixtures,
}


class KLeagueSource:
    """Official K League data: rankings, player records and recent results.

    Every endpoint answers for both divisions at once, so one request covers
    each entity type. The API exposes no live-event feed.
    """

    provider = Provider.KLEAGUE
    entity_types = frozenset(_ENDPOINTS)

    def __init__(
        self,
        config: KLeagueConfig,
        *,
        client_factory: ClientFactory | None = None,
    ) -> None:
        self.config = config
        self._fetcher = RateLimitedFetcher(
            config.resilience,
            provider=self.provider,
            method="POST",
            client_factory=client_factory,
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
        endpoint = _ENDPOINTS.get(entity_type)
        if endpoint is None:
            return []
        payload = await self._fetcher.fetch(endpoint)
        try:
            envelope = Envelope.model_validate(payload)
        except ValidationError as exc:
            raise FatalRequestError(
                f"K League {endpoint} returned an unexpected envelope",
                provider=self.provider,
                endpoint=endpoint,
            ) from exc
        if not envelope.ok:
            raise FatalRequestError(
                f"K League {endpoint} answered {envelope.result_code}: {envelope.result_msg}",
                provider=self.provider,
                endpoint=endpoint,
            )
        log.debug(f"K League {endpoint} for season {context.season}: {envelope.result_msg}")
        return [envelope.data] if envelope.data is not None else []

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
        records: list[ProviderRecord] = []
        for payload in payloads:
            records.extend(
                parser(payload, league_ids=self.config.league_ids, retrieved_at=retrieved_at)
            )
        return records


if TYPE_CHECKING:
    from pitchsync.config.kleague import get_kleague_config

    _source_check: ProviderSource = KLeagueSource(get_kleague_config())
