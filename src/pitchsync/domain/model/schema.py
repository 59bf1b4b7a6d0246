"""Static description of the canonical entity types.

Every adapter, the merge engine and the store agree on these field names.
Bump ``SCHEMA_VERSION`` whenever a field or reference is added or renamed and
ship a migration alongside it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from types import MappingProxyType
from typing import TYPE_CHECKING

from .enums import EntityType, FieldKind, IdentityStrategy

if TYPE_CHECKING:
    from collections.abc import Mapping

SCHEMA_VERSION = 1


@dataclass(frozen=True, slots=True)
class FieldSpec:
    kind: FieldKind
    time_sensitive: bool = False
    tolerance: float = 0.0


@dataclass(frozen=True, slots=True, kw_only=True)
class EntitySchema:
    entity_type: EntityType
    fields: Mapping[str, FieldSpec]
    references: Mapping[str, EntityType] = field(default_factory=lambda: MappingProxyType({}))
    identity: IdentityStrategy = IdentityStrategy.NAME
    # Composite identity parts; each is a reference role or a field name.
    identity_parts: tuple[str, ...] = ()
    # Reference role that narrows name matching (players are matched per team).
    scope_reference: str | None = None
    fuzzy: bool = True

    @property
    def time_sensitive_fields(self) -> frozenset[str]:
        return frozenset(name for name, spec in self.fields.items() if spec.time_sensitive)

    @property
    def identity_references(self) -> frozenset[str]:
        roles = {part for part in self.identity_parts if part in self.references}
        if self.scope_reference is not None:
            roles.add(self.scope_reference)
        return frozenset(roles)

    def field_spec(self, name: str) -> FieldSpec:
        return self.fields[name]


def _fields(**specs: FieldSpec) -> Mapping[str, FieldSpec]:
    return MappingProxyType(dict(specs))


_TEXT = FieldSpec(FieldKind.TEXT)
_INT = FieldSpec(FieldKind.INTEGER)


LEAGUE_SCHEMA = EntitySchema(
    entity_type=EntityType.LEAGUE,
    fields=_fields(
        name=_TEXT,
        country=_TEXT,
        logo_url=_TEXT,
        season_year=_INT,
    ),
)

TEAM_SCHEMA = EntitySchema(
    entity_type=EntityType.TEAM,
    fields=_fields(
        name=_TEXT,
        short_name=_TEXT,
        country=_TEXT,
        founded_year=_INT,
        stadium=_TEXT,
        stadium_capacity=_INT,
        website=_TEXT,
        manager=_TEXT,
        logo_url=_TEXT,
        badge_url=_TEXT,
        description=_TEXT,
    ),
    references=MappingProxyType({"league": EntityType.LEAGUE}),
)

PLAYER_SCHEMA = EntitySchema(
    entity_type=EntityType.PLAYER,
    fields=_fields(
        name=_TEXT,
        position=_TEXT,
        nationality=_TEXT,
        jersey_number=_INT,
        birth_date=_TEXT,
        photo_url=_TEXT,
        appearances=_INT,
        goals=_INT,
        assists=_INT,
        clean_sheets=_INT,
        yellow_cards=_INT,
        red_cards=_INT,
    ),
    references=MappingProxyType({"team": EntityType.TEAM}),
    scope_reference="team",
)

FIXTURE_SCHEMA = EntitySchema(
    entity_type=EntityType.FIXTURE,
    fields=_fields(
        kickoff_at=FieldSpec(FieldKind.TIMESTAMP, tolerance=60.0),
        season_year=_INT,
        round=_INT,
        venue=_TEXT,
        status=FieldSpec(FieldKind.TEXT, time_sensitive=True),
        minute=FieldSpec(FieldKind.INTEGER, time_sensitive=True, tolerance=2.0),
        home_score=FieldSpec(FieldKind.INTEGER, time_sensitive=True),
        away_score=FieldSpec(FieldKind.INTEGER, time_sensitive=True),
        possession_home=FieldSpec(FieldKind.NUMBER, tolerance=1.0),
        possession_away=FieldSpec(FieldKind.NUMBER, tolerance=1.0),
        spectators=_INT,
    ),
    references=MappingProxyType(
        {
            "league": EntityType.LEAGUE,
            "home_team": EntityType.TEAM,
            "away_team": EntityType.TEAM,
        }
    ),
    identity=IdentityStrategy.COMPOSITE,
    identity_parts=("home_team", "away_team", "kickoff_at"),
    fuzzy=False,
)

STANDING_SCHEMA = EntitySchema(
    entity_type=EntityType.STANDING,
    fields=_fields(
        season_year=_INT,
        rank=_INT,
        played=_INT,
        won=_INT,
        drawn=_INT,
        lost=_INT,
        goals_for=_INT,
        goals_against=_INT,
        goal_difference=_INT,
        points=_INT,
        form=_TEXT,
    ),
    references=MappingProxyType({"league": EntityType.LEAGUE, "team": EntityType.TEAM}),
    identity=IdentityStrategy.COMPOSITE,
    identity_parts=("league", "team", "season_year"),
    fuzzy=False,
)

LIVE_EVENT_SCHEMA = EntitySchema(
    entity_type=EntityType.LIVE_EVENT,
    fields=_fields(
        event_type=_TEXT,
        minute=_INT,
        extra_minute=_INT,
        player_name=_TEXT,
        assist_name=_TEXT,
        detail=_TEXT,
    ),
    references=MappingProxyType({"fixture": EntityType.FIXTURE, "team": EntityType.TEAM}),
    identity=IdentityStrategy.COMPOSITE,
    identity_parts=("fixture", "event_type", "minute", "player_name"),
    fuzzy=False,
)

ENTITY_SCHEMAS: Mapping[EntityType, EntitySchema] = MappingProxyType(
    {
        schema.entity_type: schema
        for schema in (
            LEAGUE_SCHEMA,
            TEAM_SCHEMA,
            PLAYER_SCHEMA,
            FIXTURE_SCHEMA,
            STANDING_SCHEMA,
            LIVE_EVENT_SCHEMA,
        )
    }
)


def schema_for(entity_type: EntityType) -> EntitySchema:
    return ENTITY_SCHEMAS[entity_type]


class FixtureStatus(StrEnum):
    SCHEDULED = "scheduled"
    LIVE = "live"
    FINISHED = "finished"
    POSTPONED = "postponed"
    CANCELLED = "cancelled"


class LiveEventType(StrEnum):
    """Event kinds every adapter maps onto; part of the live-event identity."""

    GOAL = "goal"
    OWN_GOAL = "own_goal"
    PENALTY = "penalty"
    YELLOW_CARD = "yellow_card"
    RED_CARD = "red_card"
    SUBSTITUTION = "substitution"
    OTHER = "other"
