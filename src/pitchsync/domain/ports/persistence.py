"""Repository ports for the canonical store."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from uuid import UUID

    from pitchsync.domain.model import (
        AliasEntry,
        AliasReassignment,
        EntityType,
        FieldProvenance,
        MergeConflict,
    )


class AliasRepository(Protocol):
    def list_all(self) -> list[AliasEntry]: ...

    def add(self, entry: AliasEntry) -> bool:
        """Store ``entry``; return False when the identical alias already exists."""
        ...

    def reassign(self, reassignment: AliasReassignment) -> None: ...


class CanonicalRecordRepository(Protocol):
    def upsert(
        self,
        entity_type: EntityType,
        canonical_id: UUID,
        attributes: Mapping[str, object],
        references: Mapping[str, UUID],
    ) -> None:
        """Insert or update only the given fields; other stored fields are untouched."""
        ...

    def get(self, entity_type: EntityType, canonical_id: UUID) -> dict[str, object] | None: ...

    def existing_ids(self, entity_type: EntityType, canonical_ids: Iterable[UUID]) -> set[UUID]: ...

    def count(self, entity_type: EntityType) -> int: ...


class ProvenanceRepository(Protocol):
    def record(
        self, entity_type: EntityType, canonical_id: UUID, provenance: FieldProvenance
    ) -> None: ...


class ConflictRepository(Protocol):
    def record(self, conflict: MergeConflict) -> bool:
        """Append ``conflict`` to the audit log; return False if it was already logged."""
        ...


__all__ = [
    "AliasRepository",
    "CanonicalRecordRepository",
    "ConflictRepository",
    "ProvenanceRepository",
]
