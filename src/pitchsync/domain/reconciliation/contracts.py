"""Shared reconciliation result types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from pitchsync.domain.model import AliasEntry, MatchKind, ProviderRecord


class ResolutionStatus(StrEnum):
    """Outcome of identity resolution for one provider record."""

    RESOLVED = "resolved"
    NEW = "new"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True, slots=True, kw_only=True)
class Resolution:
    record: ProviderRecord
    status: ResolutionStatus
    reason: str
    canonical_id: UUID | None = None
    match_kind: MatchKind | None = None
    alias: AliasEntry | None = None
    references: Mapping[str, UUID] = field(default_factory=lambda: MappingProxyType({}))
    # Reference roles whose target has no alias; the record is kept without them.
    dangling_references: tuple[str, ...] = ()
    candidates: tuple[UUID, ...] = ()

    @property
    def is_resolved(self) -> bool:
        return self.canonical_id is not None


@dataclass(frozen=True, slots=True, kw_only=True)
class UnresolvedRecord:
    """Report entry for a record set aside instead of guessed."""

    provider: str
    native_id: str
    entity_type: str
    name: str | None
    reason: str
    candidates: tuple[UUID, ...] = ()

    @classmethod
    def from_resolution(cls, resolution: Resolution) -> UnresolvedRecord:
        record = resolution.record
        return cls(
            provider=str(record.provider),
            native_id=record.native_id,
            entity_type=str(record.entity_type),
            name=record.name,
            reason=resolution.reason,
            candidates=resolution.candidates,
        )
