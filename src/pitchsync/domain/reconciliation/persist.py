"""Idempotent commit of merge results to the canonical store."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from pitchsync.domain.errors import (
    AliasConflictError,
    DependencyViolationError,
    PersistenceError,
)
from pitchsync.domain.model import schema_for

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from uuid import UUID

    from pitchsync.domain.model import AliasReassignment, EntityType, MergeResult
    from pitchsync.domain.ports.unit_of_work import (
        ReconciliationRepositories,
        ReconciliationUnitOfWork,
    )

log = getLogger(__name__)

type UnitOfWorkFactory = Callable[[], ReconciliationUnitOfWork]


@dataclass(frozen=True, slots=True, kw_only=True)
class CommitFailure:
    entity_type: EntityType
    canonical_id: UUID
    message: str
    aliases: tuple[str, ...] = ()


@dataclass(frozen=True, slots=True, kw_only=True)
class DependencyFailure:
    entity_type: EntityType
    canonical_id: UUID
    role: str
    referenced_id: UUID


@dataclass(slots=True)
class CommitReport:
    committed: list[UUID] = field(default_factory=list)
    failures: list[CommitFailure] = field(default_factory=list)
    dependency_failures: list[DependencyFailure] = field(default_factory=list)
    deferred: int = 0
    aliases_written: int = 0
    conflicts_logged: int = 0
    reassignments_written: int = 0


class UpsertWriter:
    """Write canonical records one transaction per record.

    Only the attributes present in a merge result are written, so a provider
    missing from this run never erases what an earlier run stored. Records
    whose references are not committed yet wait until the rest of the batch
    has been written; anything still missing afterwards is reported as a
    dependency failure.
    """

    def __init__(self, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._unit_of_work_factory = unit_of_work_factory

    def commit(
        self,
        results: Sequence[MergeResult],
        *,
        reassignments: Iterable[AliasReassignment] = (),
    ) -> CommitReport:
        report = CommitReport()
        if results:
            self._check_dependencies(results)

        pending = list(results)
        pending_ids = {result.canonical_id for result in pending}
        while pending:
            deferred: list[MergeResult] = []
            progressed = False
            for result in pending:
                missing = self._missing_references(result)
                if missing and all(ref_id in pending_ids for _, ref_id in missing):
                    deferred.append(result)
                    continue
                if missing:
                    pending_ids.discard(result.canonical_id)
                    self._report_missing(report, result, missing)
                    continue
                pending_ids.discard(result.canonical_id)
                progressed = True
                self._write(report, result)
            if deferred and not progressed:
                for result in deferred:
                    self._report_missing(report, result, self._missing_references(result))
                break
            report.deferred += len(deferred)
            pending = deferred

        for reassignment in reassignments:
            self._write_reassignment(report, reassignment)
        return report

    def _check_dependencies(self, results: Sequence[MergeResult]) -> None:
        entity_type = results[0].entity_type
        schema = schema_for(entity_type)
        referenced_types = {
            schema.references[role] for result in results for role in result.entity.references
        }
        with self._unit_of_work_factory() as uow:
            for referenced_type in sorted(referenced_types):
                if uow.repositories.records.count(referenced_type) == 0:
                    raise DependencyViolationError(entity_type, referenced_type)

    def _missing_references(self, result: MergeResult) -> list[tuple[str, UUID]]:
        schema = schema_for(result.entity_type)
        missing: list[tuple[str, UUID]] = []
        with self._unit_of_work_factory() as uow:
            for role, referenced_id in sorted(result.entity.references.items()):
                existing = uow.repositories.records.existing_ids(
                    schema.references[role], (referenced_id,)
                )
                if referenced_id not in existing:
                    missing.append((role, referenced_id))
        return missing

    def _write(self, report: CommitReport, result: MergeResult) -> None:
        entity = result.entity
        with self._unit_of_work_factory() as uow:
            try:
                aliases, conflicts = _persist(uow.repositories, result)
                uow.commit()
            except (AliasConflictError, PersistenceError) as exc:
                uow.rollback()
                message = str(exc).splitlines()[0] if str(exc) else type(exc).__name__
                log.error(
                    "Failed to commit %s %s: %s", entity.entity_type, entity.canonical_id, message
                )
                report.failures.append(
                    CommitFailure(
                        entity_type=entity.entity_type,
                        canonical_id=entity.canonical_id,
                        message=message,
                        aliases=tuple(str(entry.key) for entry in result.alias_entries),
                    )
                )
                return
        report.committed.append(entity.canonical_id)
        report.aliases_written += aliases
        report.conflicts_logged += conflicts

    def _write_reassignment(self, report: CommitReport, reassignment: AliasReassignment) -> None:
        with self._unit_of_work_factory() as uow:
            try:
                uow.repositories.aliases.reassign(reassignment)
                uow.commit()
            except PersistenceError as exc:
                uow.rollback()
                log.error("Failed to persist alias reassignment for %s: %s", reassignment.key, exc)
                return
        report.reassignments_written += 1

    @staticmethod
    def _report_missing(
        report: CommitReport, result: MergeResult, missing: Sequence[tuple[str, UUID]]
    ) -> None:
        for role, referenced_id in missing:
            log.warning(
                "Skipping %s %s: referenced %s %s is not committed",
                result.entity_type,
                result.canonical_id,
                role,
                referenced_id,
            )
            report.dependency_failures.append(
                DependencyFailure(
                    entity_type=result.entity_type,
                    canonical_id=result.canonical_id,
                    role=role,
                    referenced_id=referenced_id,
                )
            )


def _persist(repositories: ReconciliationRepositories, result: MergeResult) -> tuple[int, int]:
    entity = result.entity
    repositories.records.upsert(
        entity.entity_type, entity.canonical_id, entity.attributes, entity.references
    )

    for provenance in result.provenance.values():
        repositories.provenance.record(entity.entity_type, entity.canonical_id, provenance)

    aliases = sum(1 for entry in result.alias_entries if repositories.aliases.add(entry))
    conflicts = sum(1 for conflict in result.conflicts if repositories.conflicts.record(conflict))
    return aliases, conflicts
