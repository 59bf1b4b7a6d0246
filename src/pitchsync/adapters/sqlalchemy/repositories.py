"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func, or_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from pitchsync.adapters.sqlalchemy.mappings import (
    ENTITY_TABLES,
    alias_reassignment_table,
    alias_table,
    field_provenance_table,
    merge_conflict_table,
    reference_column,
)
from pitchsync.domain.errors import AliasConflictError, PersistenceError
from pitchsync.domain.model import (
    AliasEntry,
    AliasKey,
    EntityType,
    MatchKind,
    Provider,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping
    from uuid import UUID

    from sqlalchemy import Table
    from sqlalchemy.engine import Result
    from sqlalchemy.orm import Session
    from sqlalchemy.sql import Executable

    from pitchsync.domain.model import AliasReassignment, FieldProvenance, MergeConflict

_INSERTS: dict[str, Callable[[Table], Any]] = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class _SessionRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _insert(self, table: Table) -> Any:
        dialect = self.session.get_bind().dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise PersistenceError(f"Upserts are not supported on {dialect}")
        return insert(table)

    def _execute(self, statement: Executable) -> Result[Any]:
        try:
            return self.session.execute(statement)
        except SQLAlchemyError as exc:
            raise PersistenceError(str(exc).splitlines()[0]) from exc


class SqlAlchemyCanonicalRecordRepository(_SessionRepository):
    """Canonical rows, one table per entity type, written with partial upserts."""

    def upsert(
        self,
        entity_type: EntityType,
        canonical_id: UUID,
        attributes: Mapping[str, object],
        references: Mapping[str, UUID],
    ) -> None:
        table = ENTITY_TABLES[entity_type]
        values: dict[str, object] = dict(attributes)
        values.update({reference_column(role): ref for role, ref in references.items()})
        unknown = sorted(set(values) - set(table.c.keys()))
        if unknown:
            raise PersistenceError(
                f"{table.name} has no column for {', '.join(unknown)}",
                entity_type=entity_type,
                canonical_id=canonical_id,
            )

        now = datetime.now(UTC)
        stmt = self._insert(table).values(
            canonical_id=canonical_id, created_at=now, updated_at=now, **values
        )
        if values:
            changed = [table.c[name].is_distinct_from(stmt.excluded[name]) for name in values]
            set_ = {name: stmt.excluded[name] for name in values}
            set_["updated_at"] = stmt.excluded.updated_at
            stmt = stmt.on_conflict_do_update(
                index_elements=[table.c.canonical_id], set_=set_, where=or_(*changed)
            )
        else:
            stmt = stmt.on_conflict_do_nothing(index_elements=[table.c.canonical_id])
        self._execute(stmt)

    def get(self, entity_type: EntityType, canonical_id: UUID) -> dict[str, object] | None:
        table = ENTITY_TABLES[entity_type]
        row = self._execute(select(table).where(table.c.canonical_id == canonical_id)).first()
        if row is None:
            return None
        return {key: value for key, value in row._asdict().items() if value is not None}

    def existing_ids(self, entity_type: EntityType, canonical_ids: Iterable[UUID]) -> set[UUID]:
        ids = list(canonical_ids)
        if not ids:
            return set()
        table = ENTITY_TABLES[entity_type]
        stmt = select(table.c.canonical_id).where(table.c.canonical_id.in_(ids))
        return set(self._execute(stmt).scalars())

    def count(self, entity_type: EntityType) -> int:
        table = ENTITY_TABLES[entity_type]
        return int(self._execute(select(func.count()).select_from(table)).scalar_one())


class SqlAlchemyAliasRepository(_SessionRepository):
    def list_all(self) -> list[AliasEntry]:
        rows = self._execute(select(alias_table)).mappings()
        return [
            AliasEntry(
                key=AliasKey(
                    Provider(row["provider"]), EntityType(row["entity_type"]), row["native_id"]
                ),
                canonical_id=row["canonical_id"],
                match_kind=MatchKind(row["match_kind"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]

    def add(self, entry: AliasEntry) -> bool:
        existing = self._execute(
            select(alias_table.c.canonical_id).where(*self._key_clause(entry.key))
        ).scalar_one_or_none()
        if existing is not None:
            if existing != entry.canonical_id:
                raise AliasConflictError(
                    f"{entry.key} is stored for {existing}, refusing to bind it to "
                    f"{entry.canonical_id}"
                )
            return False
        self._execute(
            alias_table.insert().values(
                provider=str(entry.key.provider),
                entity_type=str(entry.key.entity_type),
                native_id=entry.key.native_id,
                canonical_id=entry.canonical_id,
                match_kind=str(entry.match_kind),
                created_at=entry.created_at,
            )
        )
        return True

    def reassign(self, reassignment: AliasReassignment) -> None:
        key = reassignment.key
        self._execute(
            update(alias_table)
            .where(*self._key_clause(key))
            .values(canonical_id=reassignment.canonical_id)
        )
        self._execute(
            alias_reassignment_table.insert().values(
                provider=str(key.provider),
                entity_type=str(key.entity_type),
                native_id=key.native_id,
                previous_id=reassignment.previous_id,
                canonical_id=reassignment.canonical_id,
                reason=reassignment.reason,
                reassigned_at=reassignment.reassigned_at,
            )
        )

    def reassignments(self) -> list[dict[str, object]]:
        rows = self._execute(
            select(alias_reassignment_table).order_by(alias_reassignment_table.c.id)
        ).mappings()
        return [dict(row) for row in rows]

    @staticmethod
    def _key_clause(key: AliasKey) -> tuple[Any, ...]:
        return (
            alias_table.c.provider == str(key.provider),
            alias_table.c.entity_type == str(key.entity_type),
            alias_table.c.native_id == key.native_id,
        )


class SqlAlchemyProvenanceRepository(_SessionRepository):
    def record(
        self, entity_type: EntityType, canonical_id: UUID, provenance: FieldProvenance
    ) -> None:
        table = field_provenance_table
        values = {
            "provider": str(provenance.provider),
            "reason": str(provenance.reason),
            "confidence": str(provenance.confidence),
            "retrieved_at": provenance.retrieved_at,
        }
        stmt = self._insert(table).values(
            entity_type=str(entity_type),
            canonical_id=canonical_id,
            field=provenance.field,
            **values,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.entity_type, table.c.canonical_id, table.c.field],
            set_={name: stmt.excluded[name] for name in values},
            where=or_(*(table.c[name].is_distinct_from(stmt.excluded[name]) for name in values)),
        )
        self._execute(stmt)

    def for_entity(self, entity_type: EntityType, canonical_id: UUID) -> dict[str, str]:
        table = field_provenance_table
        stmt = select(table.c.field, table.c.provider).where(
            table.c.entity_type == str(entity_type), table.c.canonical_id == canonical_id
        )
        return {row.field: row.provider for row in self._execute(stmt)}


def _json_value(value: object) -> object:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


class SqlAlchemyConflictRepository(_SessionRepository):
    def record(self, conflict: MergeConflict) -> bool:
        table = merge_conflict_table
        values_json = json.dumps(
            {str(provider): _json_value(value) for provider, value in conflict.values.items()},
            sort_keys=True,
        )
        stmt = (
            self._insert(table)
            .values(
                entity_type=str(conflict.entity_type),
                canonical_id=conflict.canonical_id,
                field=conflict.field,
                chosen_provider=str(conflict.chosen_provider),
                values_json=values_json,
                fingerprint=conflict.fingerprint(),
                recorded_at=datetime.now(UTC),
            )
            .on_conflict_do_nothing(
                index_elements=[
                    table.c.entity_type,
                    table.c.canonical_id,
                    table.c.field,
                    table.c.fingerprint,
                ]
            )
        )
        return self._execute(stmt).rowcount == 1

    def count(self) -> int:
        return int(
            self._execute(select(func.count()).select_from(merge_conflict_table)).scalar_one()
        )
