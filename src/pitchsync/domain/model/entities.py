"""Canonical entities and the outcome of merging provider records into them."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from .enums import Confidence

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from .enums import EntityType, MatchKind, Provider, SelectionReason
    from .records import AliasEntry


@dataclass(slots=True, kw_only=True)
class CanonicalEntity:
    entity_type: EntityType
    canonical_id: UUID
    attributes: dict[str, object] = field(default_factory=dict)
    references: dict[str, UUID] = field(default_factory=dict)
    aliases: dict[Provider, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True, kw_only=True)
class FieldProvenance:
    field: str
    provider: Provider
    reason: SelectionReason
    confidence: Confidence
    retrieved_at: datetime


def _jsonable(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


@dataclass(frozen=True, slots=True, kw_only=True)
class MergeConflict:
    """Providers disagreed on a field; the chosen value still stands."""

    entity_type: EntityType
    canonical_id: UUID
    field: str
    chosen_provider: Provider
    values: Mapping[Provider, object]

    @property
    def chosen_value(self) -> object:
        return self.values[self.chosen_provider]

    def fingerprint(self) -> str:
        """Stable digest of the disagreement, used to keep the audit log free of duplicates."""

        payload = {
            "field": self.field,
            "chosen": str(self.chosen_provider),
            "values": {str(k): _jsonable(v) for k, v in sorted(self.values.items())},
        }
        encoded = json.dumps(payload, sort_keys=True, default=str).encode("utf-8")
        return hashlib.sha256(encoded).hexdigest()

    def describe(self) -> str:
        rendered = ", ".join(f"{provider}={value!r}" for provider, value in self.values.items())
        return f"{self.entity_type} {self.canonical_id} {self.field}: {rendered}"


@dataclass(slots=True, kw_only=True)
class MergeResult:
    entity: CanonicalEntity
    provenance: dict[str, FieldProvenance] = field(default_factory=dict)
    conflicts: list[MergeConflict] = field(default_factory=list)
    match_kinds: dict[Provider, MatchKind] = field(default_factory=dict)
    confidence: Confidence = Confidence.AUTHORITATIVE
    alias_entries: tuple[AliasEntry, ...] = ()

    @property
    def canonical_id(self) -> UUID:
        return self.entity.canonical_id

    @property
    def entity_type(self) -> EntityType:
        return self.entity.entity_type
