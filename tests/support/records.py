"""Builders for provider records and canned provider sources."""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Self

from pitchsync.domain.errors import TransientNetworkError
from pitchsync.domain.model import EntityType, Provider, ProviderRecord
from pitchsync.domain.ports import FetchedBatch

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from types import TracebackType

    from pitchsync.domain.ports import FetchContext

RETRIEVED_AT = datetime(2025, 9, 21, 7, 0, tzinfo=UTC)


def make_record(
    provider: Provider,
    entity_type: EntityType,
    native_id: str,
    *,
    retrieved_at: datetime = RETRIEVED_AT,
    references: Mapping[str, str] | None = None,
    derived: Iterable[str] = (),
    **attributes: object,
) -> ProviderRecord:
    return ProviderRecord(
        provider=provider,
        native_id=native_id,
        entity_type=entity_type,
        attributes=attributes,
        references=dict(references or {}),
        retrieved_at=retrieved_at,
        derived_fields=frozenset(derived),
    )


def league(provider: Provider, native_id: str, name: str, **attributes: object) -> ProviderRecord:
    return make_record(provider, EntityType.LEAGUE, native_id, name=name, **attributes)


def team(
    provider: Provider,
    native_id: str,
    name: str,
    *,
    league_id: str | None = None,
    **attributes: object,
) -> ProviderRecord:
    references = {"league": league_id} if league_id is not None else None
    return make_record(
        provider, EntityType.TEAM, native_id, references=references, name=name, **attributes
    )


class FakeSource:
    """Provider source serving prepared records, optionally failing some entity types.

    Records come back stamped with the ``retrieved_at`` the pipeline hands to
    ``normalize``, the way real adapters stamp theirs.
    """

    def __init__(
        self,
        provider: Provider,
        records: Mapping[EntityType, Sequence[ProviderRecord]],
        *,
        failing: Iterable[EntityType] = (),
        before_fetch: Callable[[EntityType], None] | None = None,
        snapshot_at: Mapping[EntityType, datetime] | None = None,
    ) -> None:
        self.provider = provider
        self.entity_types = frozenset(records) | frozenset(failing)
        self._records = records
        self._failing = frozenset(failing)
        self._before_fetch = before_fetch
        self._snapshot_at = dict(snapshot_at or {})
        self.fetched: list[EntityType] = []
        self.entered = False
        self.exited = False

    async def __aenter__(self) -> Self:
        self.entered = True
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.exited = True

    async def fetch(self, entity_type: EntityType, context: FetchContext) -> FetchedBatch:
        del context
        self.fetched.append(entity_type)
        if self._before_fetch is not None:
            self._before_fetch(entity_type)
        if entity_type in self._failing:
            raise TransientNetworkError(
                f"{self.provider} unreachable", provider=self.provider, endpoint="/fake"
            )
        return FetchedBatch(
            list(self._records.get(entity_type, ())),
            snapshot_at=self._snapshot_at.get(entity_type),
        )

    def normalize(
        self,
        entity_type: EntityType,
        payloads: Sequence[object],
        *,
        retrieved_at: datetime,
    ) -> list[ProviderRecord]:
        del entity_type
        return [
            replace(payload, retrieved_at=retrieved_at)
            for payload in payloads
            if isinstance(payload, ProviderRecord)
        ]
