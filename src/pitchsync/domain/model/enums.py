"""Enumerations shared across the domain model."""

from __future__ import annotations

from enum import StrEnum


class Provider(StrEnum):
    KLEAGUE = "kleague"
    THESPORTSDB = "thesportsdb"
    HIGHLIGHTLY = "highlightly"


class EntityType(StrEnum):
    """Entity types in the order a run processes them.

    Later types reference earlier ones by canonical id, so iteration order of
    this enum is the dependency order.
    """

    LEAGUE = "league"
    TEAM = "team"
    PLAYER = "player"
    FIXTURE = "fixture"
    STANDING = "standing"
    LIVE_EVENT = "live_event"


ENTITY_TYPE_ORDER: tuple[EntityType, ...] = tuple(EntityType)


class FieldKind(StrEnum):
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    TIMESTAMP = "timestamp"


class IdentityStrategy(StrEnum):
    NAME = "name"
    COMPOSITE = "composite"


class MatchKind(StrEnum):
    DIRECT = "direct"
    EXACT = "exact"
    FUZZY = "fuzzy"
    NEW = "new"
    SEEDED = "seeded"


class Confidence(StrEnum):
    AUTHORITATIVE = "authoritative"
    REDUCED = "reduced"
    FUZZY = "fuzzy"
    DERIVED = "derived"


class SelectionReason(StrEnum):
    ONLY_SOURCE = "only_source"
    PRIORITY = "priority"
    FRESHNESS_OVERRIDE = "freshness_override"
