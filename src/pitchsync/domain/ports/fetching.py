"""Ports for fetching provider data."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from types import TracebackType

    from pitchsync.domain.model import EntityType, Provider, ProviderRecord


@dataclass(slots=True)
class FetchContext:
    """What a provider may know when fetching one entity type.

    ``records`` holds the records adapted in earlier stages of the same run, so
    a source can derive follow-up requests (players per team, events per live
    fixture) from its own earlier output.
    """

    season: int
    records: dict[EntityType, Sequence[ProviderRecord]] = field(default_factory=dict)

    def records_from(
        self, provider: Provider, entity_type: EntityType
    ) -> tuple[ProviderRecord, ...]:
        return tuple(
            record for record in self.records.get(entity_type, ()) if record.provider == provider
        )


@dataclass(frozen=True, slots=True)
class FetchedBatch:
    """Raw payloads of one fetch and the time the provider produced them.

    ``snapshot_at`` is the oldest server-side timestamp seen while fetching
    (cached responses keep the time they were first served). It is ``None``
    when the provider reported none.
    """

    payloads: list[object]
    snapshot_at: datetime | None = None


@runtime_checkable
class ProviderSource(Protocol):
    """One provider: raw fetching plus pure translation into provider records."""

    @property
    def provider(self) -> Provider: ...

    @property
    def entity_types(self) -> frozenset[EntityType]: ...

    async def __aenter__(self) -> Self: ...

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None: ...

    async def fetch(self, entity_type: EntityType, context: FetchContext) -> FetchedBatch: ...

    def normalize(
        self,
        entity_type: EntityType,
        payloads: Sequence[object],
        *,
        retrieved_at: datetime,
    ) -> list[ProviderRecord]: ...


__all__ = ["FetchContext", "FetchedBatch", "ProviderSource"]
