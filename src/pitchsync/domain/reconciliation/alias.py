"""In-memory alias table with per-key locking.

The table is loaded from the store at the start of a run and is the only place a
canonical id gets bound to a provider id. Reassignments queue here until the
upsert writer persists them.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from pitchsync.domain.errors import AliasConflictError
from pitchsync.domain.model import AliasEntry, AliasReassignment, MatchKind

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from uuid import UUID

    from pitchsync.domain.model import AliasKey, Provider

log = getLogger(__name__)


class AliasTable:
    def __init__(self, entries: Iterable[AliasEntry] = ()) -> None:
        self._entries: dict[AliasKey, AliasEntry] = {}
        self._by_canonical: dict[UUID, set[AliasKey]] = defaultdict(set)
        self._reassignments: list[AliasReassignment] = []
        self._key_locks: dict[AliasKey, threading.Lock] = {}
        self._guard = threading.Lock()
        for entry in entries:
            self._store(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    @contextmanager
    def locked(self, key: AliasKey) -> Iterator[None]:
        """Serialise every read-then-create sequence on ``key``."""

        with self._guard:
            lock = self._key_locks.setdefault(key, threading.Lock())
        with lock:
            yield

    def get(self, key: AliasKey) -> AliasEntry | None:
        with self._guard:
            return self._entries.get(key)

    def create(self, key: AliasKey, canonical_id: UUID, match_kind: MatchKind) -> AliasEntry:
        """Bind ``key`` to ``canonical_id``; refuses to move an existing alias."""

        with self._guard:
            existing = self._entries.get(key)
            if existing is not None:
                if existing.canonical_id == canonical_id:
                    return existing
                raise AliasConflictError(
                    f"{key} is bound to {existing.canonical_id}; "
                    f"use reassign() to move it to {canonical_id}"
                )
            entry = AliasEntry(key=key, canonical_id=canonical_id, match_kind=match_kind)
            self._store(entry)
            return entry

    def seed(self, canonical_id: UUID, keys: Iterable[AliasKey]) -> UUID | None:
        """Bind pre-declared ``keys`` to one canonical id and return that id.

        An id already stored for any of the keys wins over ``canonical_id``, so
        seeding a database that predates the seed keeps its ids. Keys whose
        stored aliases point at different canonical ids are left alone and
        ``None`` is returned.
        """

        keys = tuple(keys)
        with self._guard:
            stored = {self._entries[key].canonical_id for key in keys if key in self._entries}
            if len(stored) > 1:
                log.warning(
                    "Not seeding %s: stored aliases disagree (%s)",
                    ", ".join(map(str, keys)),
                    ", ".join(sorted(map(str, stored))),
                )
                return None
            target = stored.pop() if stored else canonical_id
            taken = {key.provider: key for key in self._by_canonical.get(target, ())}
            for key in keys:
                if key in self._entries:
                    continue
                if key.provider in taken:
                    log.warning(
                        "Not seeding %s: %s already holds %s", key, target, taken[key.provider]
                    )
                    continue
                self._store(AliasEntry(key=key, canonical_id=target, match_kind=MatchKind.SEEDED))
                taken[key.provider] = key
        return target

    def reassign(self, key: AliasKey, canonical_id: UUID, *, reason: str) -> AliasReassignment:
        """Deliberately move an alias, e.g. after a fuzzy match proved wrong."""

        with self._guard:
            existing = self._entries.get(key)
            if existing is None:
                raise KeyError(f"No alias recorded for {key}")
            reassignment = AliasReassignment(
                key=key,
                previous_id=existing.canonical_id,
                canonical_id=canonical_id,
                reason=reason,
            )
            self._by_canonical[existing.canonical_id].discard(key)
            self._store(
                AliasEntry(key=key, canonical_id=canonical_id, match_kind=existing.match_kind)
            )
            self._reassignments.append(reassignment)
        log.warning(
            "Reassigned alias %s from %s to %s: %s",
            key,
            reassignment.previous_id,
            canonical_id,
            reason,
        )
        return reassignment

    def entries_for(self, canonical_id: UUID) -> tuple[AliasEntry, ...]:
        with self._guard:
            keys = sorted(self._by_canonical.get(canonical_id, ()), key=str)
            return tuple(self._entries[key] for key in keys)

    def providers_for(self, canonical_id: UUID) -> frozenset[Provider]:
        return frozenset(entry.key.provider for entry in self.entries_for(canonical_id))

    def drain_reassignments(self) -> list[AliasReassignment]:
        with self._guard:
            reassignments, self._reassignments = self._reassignments, []
            return reassignments

    def _store(self, entry: AliasEntry) -> None:
        self._entries[entry.key] = entry
        self._by_canonical[entry.canonical_id].add(entry.key)
