"""Provider-side records and the alias entries that bind them to canonical ids."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from types import MappingProxyType
from typing import TYPE_CHECKING

from .schema import schema_for

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from .enums import EntityType, MatchKind, Provider


@dataclass(frozen=True, slots=True)
class AliasKey:
    provider: Provider
    entity_type: EntityType
    native_id: str

    def __str__(self) -> str:
        return f"{self.provider}:{self.entity_type}:{self.native_id}"


@dataclass(frozen=True, slots=True, kw_only=True)
class ProviderRecord:
    """One entity as one provider sees it, before any merging.

    ``attributes`` only contains fields the provider actually supplied; an
    absent key means unknown. ``references`` maps a reference role (``"home_team"``)
    to the provider-native id of the referenced entity.
    """

    provider: Provider
    native_id: str
    entity_type: EntityType
    attributes: Mapping[str, object]
    retrieved_at: datetime
    references: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    derived_fields: frozenset[str] = frozenset()

    def __post_init__(self) -> None:
        if not self.native_id:
            raise ValueError(f"{self.provider} {self.entity_type} record without a native id")
        schema = schema_for(self.entity_type)
        for name, value in self.attributes.items():
            if name not in schema.fields:
                raise ValueError(f"Unknown {self.entity_type} field: {name}")
            if value is None:
                raise ValueError(f"Field {name} must be omitted rather than set to None")
        for role in self.references:
            if role not in schema.references:
                raise ValueError(f"Unknown {self.entity_type} reference: {role}")
        unknown_derived = self.derived_fields - self.attributes.keys()
        if unknown_derived:
            raise ValueError(f"Derived fields not supplied: {sorted(unknown_derived)}")
        if self.retrieved_at.tzinfo is None:
            object.__setattr__(self, "retrieved_at", self.retrieved_at.replace(tzinfo=UTC))

    @property
    def key(self) -> AliasKey:
        return AliasKey(self.provider, self.entity_type, self.native_id)

    @property
    def name(self) -> str | None:
        value = self.attributes.get("name")
        return value if isinstance(value, str) else None

    def reference_key(self, role: str) -> AliasKey | None:
        native_id = self.references.get(role)
        if native_id is None:
            return None
        referenced_type = schema_for(self.entity_type).references[role]
        return AliasKey(self.provider, referenced_type, native_id)


@dataclass(frozen=True, slots=True, kw_only=True)
class AliasEntry:
    key: AliasKey
    canonical_id: UUID
    match_kind: MatchKind
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))


@dataclass(frozen=True, slots=True, kw_only=True)
class AliasReassignment:
    """Audit entry for moving an alias to a different canonical id."""

    key: AliasKey
    previous_id: UUID
    canonical_id: UUID
    reason: str
    reassigned_at: datetime = field(default_factory=lambda: datetime.now(UTC))
