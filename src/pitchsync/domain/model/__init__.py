"""Domain model for canonical football data."""

from __future__ import annotations

from .entities import CanonicalEntity, FieldProvenance, MergeConflict, MergeResult
from .enums import (
    ENTITY_TYPE_ORDER,
    Confidence,
    EntityType,
    FieldKind,
    IdentityStrategy,
    MatchKind,
    Provider,
    SelectionReason,
)
from .records import AliasEntry, AliasKey, AliasReassignment, ProviderRecord
from .schema import (
    ENTITY_SCHEMAS,
    SCHEMA_VERSION,
    EntitySchema,
    FieldSpec,
    FixtureStatus,
    LiveEventType,
    schema_for,
)

__all__ = [
    "ENTITY_SCHEMAS",
    "ENTITY_TYPE_ORDER",
    "SCHEMA_VERSION",
    "AliasEntry",
    "AliasKey",
    "AliasReassignment",
    "CanonicalEntity",
    "Confidence",
    "EntitySchema",
    "EntityType",
    "FieldKind",
    "FieldProvenance",
    "FieldSpec",
    "FixtureStatus",
    "IdentityStrategy",
    "LiveEventType",
    "MatchKind",
    "MergeConflict",
    "MergeResult",
    "Provider",
    "ProviderRecord",
    "SelectionReason",
    "schema_for",
]
