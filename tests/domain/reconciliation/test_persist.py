from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

import pytest

from pitchsync.config import DEFAULT_FIELD_PRIORITY
from pitchsync.domain.errors import DependencyViolationError
from pitchsync.domain.model import (
    AliasEntry,
    AliasKey,
    AliasReassignment,
    EntityType,
    MatchKind,
    Provider,
)
from pitchsync.domain.reconciliation import AliasTable, MergeEngine, UpsertWriter
from tests.support.records import RETRIEVED_AT, league, team

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

    from pitchsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork
    from pitchsync.domain.model import MergeResult, ProviderRecord

    type UowFactory = Callable[[], SqlAlchemyUnitOfWork]

K, T = Provider.KLEAGUE, Provider.THESPORTSDB
LEAGUE_ID = UUID(int=1)
ULSAN_ID = UUID(int=10)


def merged(
    canonical_id: UUID,
    records: Sequence[ProviderRecord],
    *,
    references: Mapping[str, UUID] | None = None,
    aliases: AliasTable | None = None,
) -> MergeResult:
    table = aliases or AliasTable()
    for record in records:
        table.create(record.key, canonical_id, MatchKind.EXACT)
    result = MergeEngine(policy=DEFAULT_FIELD_PRIORITY, clock=lambda: RETRIEVED_AT).merge(
        canonical_id,
        records,
        references={record.provider: dict(references or {}) for record in records},
    )
    result.alias_entries = table.entries_for(canonical_id)
    return result


def commit_league(factory: UowFactory) -> None:
    report = UpsertWriter(factory).commit([merged(LEAGUE_ID, [league(K, "1", "K League 1")])])
    assert report.committed == [LEAGUE_ID]


def stored(factory: UowFactory, entity_type: EntityType, canonical_id: UUID) -> dict[str, object]:
    with factory() as uow:
        return uow.repositories.records.get(entity_type, canonical_id) or {}


def test_commit_writes_entity_aliases_provenance_and_conflicts(
    sqlite_unit_of_work: UowFactory,
) -> None:
    commit_league(sqlite_unit_of_work)
    result = merged(
        ULSAN_ID,
        [team(K, "K01", "Ulsan HD FC"), team(T, "138107", "Ulsan Hyundai", stadium="Munsu")],
        references={"league": LEAGUE_ID},
    )

    report = UpsertWriter(sqlite_unit_of_work).commit([result])

    assert report.committed == [ULSAN_ID]
    assert report.aliases_written == 2
    assert report.conflicts_logged == 1
    row = stored(sqlite_unit_of_work, EntityType.TEAM, ULSAN_ID)
    assert row["name"] == "Ulsan HD FC"
    assert row["stadium"] == "Munsu"
    assert row["league_id"] == LEAGUE_ID
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.provenance.for_entity(EntityType.TEAM, ULSAN_ID) == {
            "name": "kleague",
            "stadium": "thesportsdb",
        }
        assert len(uow.repositories.aliases.list_all()) == 3


def test_recommitting_the_same_results_changes_nothing(sqlite_unit_of_work: UowFactory) -> None:
    commit_league(sqlite_unit_of_work)
    writer = UpsertWriter(sqlite_unit_of_work)
    records = [team(K, "K01", "Ulsan HD FC"), team(T, "138107", "Ulsan Hyundai")]

    first = writer.commit([merged(ULSAN_ID, records)])
    second = writer.commit([merged(ULSAN_ID, records)])

    assert first.aliases_written == 2
    assert first.conflicts_logged == 1
    assert second.committed == [ULSAN_ID]
    assert second.aliases_written == 0
    assert second.conflicts_logged == 0
    with sqlite_unit_of_work() as uow:
        assert uow.repositories.records.count(EntityType.TEAM) == 1
        assert uow.repositories.conflicts.count() == 1


def test_missing_provider_does_not_erase_stored_fields(sqlite_unit_of_work: UowFactory) -> None:
    writer = UpsertWriter(sqlite_unit_of_work)
    both = [team(K, "K01", "Ulsan HD FC"), team(T, "138107", "Ulsan HD", stadium="Munsu")]
    writer.commit([merged(ULSAN_ID, both)])

    writer.commit([merged(ULSAN_ID, [team(K, "K01", "Ulsan HD FC")])])

    row = stored(sqlite_unit_of_work, EntityType.TEAM, ULSAN_ID)
    assert row["stadium"] == "Munsu"
    assert row["name"] == "Ulsan HD FC"


def test_referenced_type_with_nothing_committed_aborts(sqlite_unit_of_work: UowFactory) -> None:
    result = merged(ULSAN_ID, [team(K, "K01", "Ulsan HD")], references={"league": LEAGUE_ID})

    with pytest.raises(DependencyViolationError) as excinfo:
        UpsertWriter(sqlite_unit_of_work).commit([result])

    assert excinfo.value.missing is EntityType.LEAGUE


def test_record_with_uncommitted_reference_is_skipped(sqlite_unit_of_work: UowFactory) -> None:
    commit_league(sqlite_unit_of_work)
    orphan_id, unknown_league = UUID(int=11), UUID(int=99)
    results = [
        merged(orphan_id, [team(K, "K02", "Daegu FC")], references={"league": unknown_league}),
        merged(ULSAN_ID, [team(K, "K01", "Ulsan HD")], references={"league": LEAGUE_ID}),
    ]

    report = UpsertWriter(sqlite_unit_of_work).commit(results)

    assert report.committed == [ULSAN_ID]
    (failure,) = report.dependency_failures
    assert failure.canonical_id == orphan_id
    assert failure.role == "league"
    assert failure.referenced_id == unknown_league
    assert stored(sqlite_unit_of_work, EntityType.TEAM, orphan_id) == {}


def test_alias_conflict_fails_only_that_record(sqlite_unit_of_work: UowFactory) -> None:
    key = AliasKey(K, EntityType.TEAM, "K01")
    with sqlite_unit_of_work() as uow:
        uow.repositories.aliases.add(
            AliasEntry(key=key, canonical_id=UUID(int=500), match_kind=MatchKind.NEW)
        )
        uow.commit()
    results = [
        merged(ULSAN_ID, [team(K, "K01", "Ulsan HD")]),
        merged(UUID(int=12), [team(K, "K03", "Pohang Steelers")]),
    ]

    report = UpsertWriter(sqlite_unit_of_work).commit(results)

    assert report.committed == [UUID(int=12)]
    (failure,) = report.failures
    assert failure.canonical_id == ULSAN_ID
    assert failure.aliases == (str(key),)
    assert stored(sqlite_unit_of_work, EntityType.TEAM, ULSAN_ID) == {}


def test_reassignments_are_persisted(sqlite_unit_of_work: UowFactory) -> None:
    key = AliasKey(T, EntityType.TEAM, "140154")
    writer = UpsertWriter(sqlite_unit_of_work)
    writer.commit([merged(UUID(int=20), [team(T, "140154", "Seoul E-Land")])])

    report = writer.commit(
        [],
        reassignments=[
            AliasReassignment(
                key=key, previous_id=UUID(int=20), canonical_id=UUID(int=21), reason="manual"
            )
        ],
    )

    assert report.reassignments_written == 1
    with sqlite_unit_of_work() as uow:
        (entry,) = uow.repositories.aliases.list_all()
        assert entry.canonical_id == UUID(int=21)
        assert len(uow.repositories.aliases.reassignments()) == 1
