from __future__ import annotations

from uuid import uuid4

import pytest

from pitchsync.domain.errors import AliasConflictError
from pitchsync.domain.model import AliasEntry, AliasKey, EntityType, MatchKind, Provider
from pitchsync.domain.reconciliation import AliasTable

KEY = AliasKey(Provider.THESPORTSDB, EntityType.TEAM, "138107")


def test_create_is_idempotent_for_the_same_canonical_id() -> None:
    table = AliasTable()
    canonical_id = uuid4()

    first = table.create(KEY, canonical_id, MatchKind.NEW)
    second = table.create(KEY, canonical_id, MatchKind.EXACT)

    assert first is second
    assert len(table) == 1
    assert KEY in table


def test_create_refuses_to_rebind_an_alias() -> None:
    table = AliasTable([AliasEntry(key=KEY, canonical_id=uuid4(), match_kind=MatchKind.NEW)])

    with pytest.raises(AliasConflictError):
        table.create(KEY, uuid4(), MatchKind.EXACT)


def test_reassign_moves_alias_and_queues_audit_entry() -> None:
    table = AliasTable()
    previous, target = uuid4(), uuid4()
    table.create(KEY, previous, MatchKind.FUZZY)

    reassignment = table.reassign(KEY, target, reason="fuzzy match was a different club")

    entry = table.get(KEY)
    assert entry is not None
    assert entry.canonical_id == target
    assert entry.match_kind is MatchKind.FUZZY
    assert reassignment.previous_id == previous
    assert table.entries_for(previous) == ()
    assert table.providers_for(target) == {Provider.THESPORTSDB}
    assert table.drain_reassignments() == [reassignment]
    assert table.drain_reassignments() == []


def test_reassign_unknown_alias_raises() -> None:
    with pytest.raises(KeyError):
        AliasTable().reassign(KEY, uuid4(), reason="typo")


def test_entries_for_lists_every_provider_alias() -> None:
    canonical_id = uuid4()
    kleague_key = AliasKey(Provider.KLEAGUE, EntityType.TEAM, "K01")
    table = AliasTable()
    table.create(kleague_key, canonical_id, MatchKind.NEW)
    table.create(KEY, canonical_id, MatchKind.EXACT)

    keys = [entry.key for entry in table.entries_for(canonical_id)]

    assert keys == [kleague_key, KEY]


def test_seed_binds_every_key_to_the_seeded_id() -> None:
    table = AliasTable()
    seeded = uuid4()
    keys = (
        AliasKey(Provider.KLEAGUE, EntityType.LEAGUE, "1"),
        AliasKey(Provider.THESPORTSDB, EntityType.LEAGUE, "4689"),
    )

    assert table.seed(seeded, keys) == seeded
    assert [entry.match_kind for entry in table.entries_for(seeded)] == [MatchKind.SEEDED] * 2


def test_seed_keeps_an_id_already_stored() -> None:
    stored = uuid4()
    kleague = AliasKey(Provider.KLEAGUE, EntityType.LEAGUE, "1")
    thesportsdb = AliasKey(Provider.THESPORTSDB, EntityType.LEAGUE, "4689")
    table = AliasTable([AliasEntry(key=kleague, canonical_id=stored, match_kind=MatchKind.NEW)])

    assert table.seed(uuid4(), (kleague, thesportsdb)) == stored
    entry = table.get(thesportsdb)
    assert entry is not None
    assert entry.canonical_id == stored
    assert entry.match_kind is MatchKind.SEEDED


def test_seed_leaves_contradicting_aliases_alone(caplog: pytest.LogCaptureFixture) -> None:
    kleague = AliasKey(Provider.KLEAGUE, EntityType.LEAGUE, "1")
    thesportsdb = AliasKey(Provider.THESPORTSDB, EntityType.LEAGUE, "4689")
    first, second = uuid4(), uuid4()
    table = AliasTable(
        [
            AliasEntry(key=kleague, canonical_id=first, match_kind=MatchKind.NEW),
            AliasEntry(key=thesportsdb, canonical_id=second, match_kind=MatchKind.NEW),
        ]
    )

    assert table.seed(uuid4(), (kleague, thesportsdb)) is None
    assert table.entries_for(first)[0].key == kleague
    assert "stored aliases disagree" in caplog.text


def test_seed_never_gives_an_entity_a_second_id_from_one_provider() -> None:
    stored = uuid4()
    kleague = AliasKey(Provider.KLEAGUE, EntityType.LEAGUE, "1")
    other = AliasKey(Provider.THESPORTSDB, EntityType.LEAGUE, "9999")
    table = AliasTable(
        [
            AliasEntry(key=kleague, canonical_id=stored, match_kind=MatchKind.NEW),
            AliasEntry(key=other, canonical_id=stored, match_kind=MatchKind.EXACT),
        ]
    )

    table.seed(uuid4(), (kleague, AliasKey(Provider.THESPORTSDB, EntityType.LEAGUE, "4689")))

    assert {entry.key for entry in table.entries_for(stored)} == {kleague, other}
