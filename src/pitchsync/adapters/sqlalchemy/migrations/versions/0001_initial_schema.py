"""initial schema

Revision ID: 0001
Revises:
Create Date: 2025-09-22 00:00:00

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

from pitchsync.adapters.sqlalchemy.mappings import UTCDateTime

revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _canonical() -> list[sa.Column[object]]:
    return [
        sa.Column("canonical_id", sa.Uuid(), primary_key=True),
        sa.Column("created_at", UTCDateTime(), nullable=False),
        sa.Column("updated_at", UTCDateTime(), nullable=False),
    ]


def _ref(name: str, target: str) -> sa.Column[object]:
    return sa.Column(name, sa.Uuid(), sa.ForeignKey(f"{target}.canonical_id"), nullable=True)


def _create(name: str, *columns: sa.Column[object]) -> None:
    op.create_table(name, *columns)
    for column in columns:
        if column.foreign_keys:
            op.create_index(f"ix_{name}_{column.name}", name, [column.name])


def upgrade() -> None:
    _create(
        "league",
        *_canonical(),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("season_year", sa.Integer(), nullable=True),
    )
    _create(
        "team",
        *_canonical(),
        _ref("league_id", "league"),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("short_name", sa.String(), nullable=True),
        sa.Column("country", sa.String(), nullable=True),
        sa.Column("founded_year", sa.Integer(), nullable=True),
        sa.Column("stadium", sa.String(), nullable=True),
        sa.Column("stadium_capacity", sa.Integer(), nullable=True),
        sa.Column("website", sa.String(), nullable=True),
        sa.Column("manager", sa.String(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("badge_url", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
    )
    _create(
        "player",
        *_canonical(),
        _ref("team_id", "team"),
        sa.Column("name", sa.String(), nullable=True),
        sa.Column("position", sa.String(), nullable=True),
        sa.Column("nationality", sa.String(), nullable=True),
        sa.Column("jersey_number", sa.Integer(), nullable=True),
        sa.Column("birth_date", sa.String(), nullable=True),
        sa.Column("photo_url", sa.String(), nullable=True),
        sa.Column("appearances", sa.Integer(), nullable=True),
        sa.Column("goals", sa.Integer(), nullable=True),
        sa.Column("assists", sa.Integer(), nullable=True),
        sa.Column("clean_sheets", sa.Integer(), nullable=True),
        sa.Column("yellow_cards", sa.Integer(), nullable=True),
        sa.Column("red_cards", sa.Integer(), nullable=True),
    )
    _create(
        "fixture",
        *_canonical(),
        _ref("league_id", "league"),
        _ref("home_team_id", "team"),
        _ref("away_team_id", "team"),
        sa.Column("kickoff_at", UTCDateTime(), nullable=True),
        sa.Column("season_year", sa.Integer(), nullable=True),
        sa.Column("round", sa.Integer(), nullable=True),
        sa.Column("venue", sa.String(), nullable=True),
        sa.Column("status", sa.String(), nullable=True),
        sa.Column("minute", sa.Integer(), nullable=True),
        sa.Column("home_score", sa.Integer(), nullable=True),
        sa.Column("away_score", sa.Integer(), nullable=True),
        sa.Column("possession_home", sa.Float(), nullable=True),
        sa.Column("possession_away", sa.Float(), nullable=True),
        sa.Column("spectators", sa.Integer(), nullable=True),
    )
    _create(
        "standing",
        *_canonical(),
        _ref("league_id", "league"),
        _ref("team_id", "team"),
        sa.Column("season_year", sa.Integer(), nullable=True),
        sa.Column("rank", sa.Integer(), nullable=True),
        sa.Column("played", sa.Integer(), nullable=True),
        sa.Column("won", sa.Integer(), nullable=True),
        sa.Column("drawn", sa.Integer(), nullable=True),
        sa.Column("lost", sa.Integer(), nullable=True),
        sa.Column("goals_for", sa.Integer(), nullable=True),
        sa.Column("goals_against", sa.Integer(), nullable=True),
        sa.Column("goal_difference", sa.Integer(), nullable=True),
        sa.Column("points", sa.Integer(), nullable=True),
        sa.Column("form", sa.String(), nullable=True),
    )
    _create(
        "live_event",
        *_canonical(),
        _ref("fixture_id", "fixture"),
        _ref("team_id", "team"),
        sa.Column("event_type", sa.String(), nullable=True),
        sa.Column("minute", sa.Integer(), nullable=True),
        sa.Column("extra_minute", sa.Integer(), nullable=True),
        sa.Column("player_name", sa.String(), nullable=True),
        sa.Column("assist_name", sa.String(), nullable=True),
        sa.Column("detail", sa.String(), nullable=True),
    )

    op.create_table(
        "alias",
        sa.Column("provider", sa.String(32), primary_key=True),
        sa.Column("entity_type", sa.String(32), primary_key=True),
        sa.Column("native_id", sa.String(), primary_key=True),
        sa.Column("canonical_id", sa.Uuid(), nullable=False),
        sa.Column("match_kind", sa.String(16), nullable=False),
        sa.Column("created_at", UTCDateTime(), nullable=False),
    )
    op.create_index("ix_alias_canonical_id", "alias", ["canonical_id"])
    op.create_table(
        "field_provenance",
        sa.Column("entity_type", sa.String(32), primary_key=True),
        sa.Column("canonical_id", sa.Uuid(), primary_key=True),
        sa.Column("field", sa.String(64), primary_key=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("confidence", sa.String(32), nullable=False),
        sa.Column("retrieved_at", UTCDateTime(), nullable=False),
    )
    op.create_table(
        "merge_conflict",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("canonical_id", sa.Uuid(), nullable=False),
        sa.Column("field", sa.String(64), nullable=False),
        sa.Column("chosen_provider", sa.String(32), nullable=False),
        sa.Column("values_json", sa.Text(), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=False),
        sa.Column("recorded_at", UTCDateTime(), nullable=False),
        sa.UniqueConstraint(
            "entity_type",
            "canonical_id",
            "field",
            "fingerprint",
            name="uq_merge_conflict_entity_type",
        ),
    )
    op.create_index("ix_merge_conflict_canonical_id", "merge_conflict", ["canonical_id"])
    op.create_table(
        "alias_reassignment",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("entity_type", sa.String(32), nullable=False),
        sa.Column("native_id", sa.String(), nullable=False),
        sa.Column("previous_id", sa.Uuid(), nullable=False),
        sa.Column("canonical_id", sa.Uuid(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("reassigned_at", UTCDateTime(), nullable=False),
    )


def downgrade() -> None:
    for table in (
        "alias_reassignment",
        "merge_conflict",
        "field_provenance",
        "alias",
        "live_event",
        "standing",
        "fixture",
        "player",
        "team",
        "league",
    ):
        op.drop_table(table)
