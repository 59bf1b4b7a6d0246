"""SQLAlchemy table metadata for the canonical store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Final

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
)

from pitchsync.domain.model import ENTITY_SCHEMAS, EntityType

if TYPE_CHECKING:
    from collections.abc import Mapping

UUIDColumnType = Uuid[uuid.UUID]


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


metadata = MetaData(
    naming_convention={
        "ix": "ix_%(column_0_label)s",
        "uq": "uq_%(table_name)s_%(column_0_label)s",
        "ck": "ck_%(table_name)s_%(constraint_name)s",
        "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
        "pk": "pk_%(table_name)s",
    }
)


def _canonical_columns() -> tuple[Column[object], ...]:
    return (
        Column("canonical_id", UUIDColumnType, primary_key=True),
        Column("created_at", UTCDateTime(), nullable=False),
        Column("updated_at", UTCDateTime(), nullable=False),
    )


def _reference(name: str, target: str) -> Column[uuid.UUID]:
    return Column(
        name, UUIDColumnType, ForeignKey(f"{target}.canonical_id"), nullable=True, index=True
    )


league_table = Table(
    "league",
    metadata,
    *_canonical_columns(),
    Column("name", String, nullable=True),
    Column("country", String, nullable=True),
    Column("logo_url", String, nullable=True),
    Column("season_year", Integer, nullable=True),
)

team_table = Table(
    "team",
    metadata,
    *_canonical_columns(),
    _reference("league_id", "league"),
    Column("name", String, nullable=True),
    Column("short_name", String, nullable=True),
    Column("country", String, nullable=True),
    Column("founded_year", Integer, nullable=True),
    Column("stadium", String, nullable=True),
    Column("stadium_capacity", Integer, nullable=True),
    Column("website", String, nullable=True),
    Column("manager", String, nullable=True),
    Column("logo_url", String, nullable=True),
    Column("badge_url", String, nullable=True),
    Column("description", Text, nullable=True),
)

player_table = Table(
    "player",
    metadata,
    *_canonical_columns(),
    _reference("team_id", "team"),
    Column("name", String, nullable=True),
    Column("position", String, nullable=True),
    Column("nationality", String, nullable=True),
    Column("jersey_number", Integer, nullable=True),
    Column("birth_date", String, nullable=True),
    Column("photo_url", String, nullable=True),
    Column("appearances", Integer, nullable=True),
    Column("goals", Integer, nullable=True),
    Column("assists", Integer, nullable=True),
    Column("clean_sheets", Integer, nullable=True),
    Column("yellow_cards", Integer, nullable=True),
    Column("red_cards", Integer, nullable=True),
)

fixture_table = Table(
    "fixture",
    metadata,
    *_canonical_columns(),
    _reference("league_id", "league"),
    _reference("home_team_id", "team"),
    _reference("away_team_id", "team"),
    Column("kickoff_at", UTCDateTime(), nullable=True),
    Column("season_year", Integer, nullable=True),
    Column("round", Integer, nullable=True),
    Column("venue", String, nullable=True),
    Column("status", String, nullable=True),
    Column("minute", Integer, nullable=True),
    Column("home_score", Integer, nullable=True),
    Column("away_score", Integer, nullable=True),
    Column("possession_home", Float, nullable=True),
    Column("possession_away", Float, nullable=True),
    Column("spectators", Integer, nullable=True),
)

standing_table = Table(
    "standing",
    metadata,
    *_canonical_columns(),
    _reference("league_id", "league"),
    _reference("team_id", "team"),
    Column("season_year", Integer, nullable=True),
    Column("rank", Integer, nullable=True),
    Column("played", Integer, nullable=True),
    Column("won", Integer, nullable=True),
    Column("drawn", Integer, nullable=True),
    Column("lost", Integer, nullable=True),
    Column("goals_for", Integer, nullable=True),
    Column("goals_against", Integer, nullable=True),
    Column("goal_difference", Integer, nullable=True),
    Column("points", Integer, nullable=True),
    Column("form", String, nullable=True),
)

live_event_table = Table(
    "live_event",
    metadata,
    *_canonical_columns(),
    _reference("fixture_id", "fixture"),
    _reference("team_id", "team"),
    Column("event_type", String, nullable=True),
    Column("minute", Integer, nullable=True),
    Column("extra_minute", Integer, nullable=True),
    Column("player_name", String, nullable=True),
    Column("assist_name", String, nullable=True),
    Column("detail", String, nullable=True),
)

alias_table = Table(
    "alias",
    metadata,
    Column("provider", String(32), primary_key=True),
    Column("entity_type", String(32), primary_key=True),
    Column("native_id", String, primary_key=True),
    Column("canonical_id", UUIDColumnType, nullable=False, index=True),
    Column("match_kind", String(16), nullable=False),
    Column("created_at", UTCDateTime(), nullable=False),
)

field_provenance_table = Table(
    "field_provenance",
    metadata,
    Column("entity_type", String(32), primary_key=True),
    Column("canonical_id", UUIDColumnType, primary_key=True),
    Column("field", String(64), primary_key=True),
    Column("provider", String(32), nullable=False),
    Column("reason", String(32), nullable=False),
    Column("confidence", String(32), nullable=False),
    Column("retrieved_at", UTCDateTime(), nullable=False),
)

merge_conflict_table = Table(
    "merge_conflict",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("entity_type", String(32), nullable=False),
    Column("canonical_id", UUIDColumnType, nullable=False, index=True),
    Column("field", String(64), nullable=False),
    Column("chosen_provider", String(32), nullable=False),
    Column("values_json", Text, nullable=False),
    Column("fingerprint", String(64), nullable=False),
    Column("recorded_at", UTCDateTime(), nullable=False),
    UniqueConstraint("entity_type", "canonical_id", "field", "fingerprint"),
)

alias_reassignment_table = Table(
    "alias_reassignment",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("provider", String(32), nullable=False),
    Column("entity_type", String(32), nullable=False),
    Column("native_id", String, nullable=False),
    Column("previous_id", UUIDColumnType, nullable=False),
    Column("canonical_id", UUIDColumnType, nullable=False),
    Column("reason", Text, nullable=False),
    Column("reassigned_at", UTCDateTime(), nullable=False),
)

ENTITY_TABLES: Final[Mapping[EntityType, Table]] = {
    EntityType.LEAGUE: league_table,
    EntityType.TEAM: team_table,
    EntityType.PLAYER: player_table,
    EntityType.FIXTURE: fixture_table,
    EntityType.STANDING: standing_table,
    EntityType.LIVE_EVENT: live_event_table,
}

_BOOKKEEPING_COLUMNS: Final = frozenset({"canonical_id", "created_at", "updated_at"})


def reference_column(role: str) -> str:
    return f"{role}_id"


def schema_mismatches() -> list[str]:
    """List entity-schema fields and references with no matching column."""

    problems: list[str] = []
    for entity_type, schema in ENTITY_SCHEMAS.items():
        table = ENTITY_TABLES.get(entity_type)
        if table is None:
            problems.append(f"no table for {entity_type}")
            continue
        expected = set(schema.fields) | {reference_column(role) for role in schema.references}
        columns = set(table.c.keys()) - _BOOKKEEPING_COLUMNS
        problems.extend(f"{table.name}.{name} missing" for name in sorted(expected - columns))
        problems.extend(f"{table.name}.{name} unmapped" for name in sorted(columns - expected))
    return problems

