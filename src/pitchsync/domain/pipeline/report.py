"""Structured outcome of a pipeline run."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from pitchsync.domain.model import Confidence, MatchKind

from .state import RunState

if TYPE_CHECKING:
    from datetime import datetime

    from pitchsync.domain.model import EntityType, MergeConflict, Provider
    from pitchsync.domain.reconciliation import (
        CommitFailure,
        DependencyFailure,
        UnresolvedRecord,
    )


@dataclass(slots=True)
class StageReport:
    """Everything that happened to one entity type during a run."""

    entity_type: EntityType
    fetched: dict[Provider, int] = field(default_factory=dict)
    adapted: int = 0
    resolved: Counter[MatchKind] = field(default_factory=Counter)
    unresolved: list[UnresolvedRecord] = field(default_factory=list)
    dangling_references: list[str] = field(default_factory=list)
    merged: int = 0
    conflicts: list[MergeConflict] = field(default_factory=list)
    committed: int = 0
    commit_failures: list[CommitFailure] = field(default_factory=list)
    dependency_failures: list[DependencyFailure] = field(default_factory=list)
    degraded_providers: dict[Provider, str] = field(default_factory=dict)
    errors: list[str] = field(default_factory=list)
    aborted: bool = False

    @property
    def confidence(self) -> Confidence:
        return Confidence.REDUCED if self.degraded_providers else Confidence.AUTHORITATIVE

    @property
    def resolved_total(self) -> int:
        return sum(self.resolved.values())

    @property
    def has_errors(self) -> bool:
        return bool(
            self.aborted
            or self.errors
            or self.degraded_providers
            or self.unresolved
            or self.commit_failures
            or self.dependency_failures
        )


@dataclass(slots=True)
class RunReport:
    state: RunState = RunState.PENDING
    stages: dict[EntityType, StageReport] = field(default_factory=dict)
    started_at: datetime | None = None
    finished_at: datetime | None = None
    cancelled: bool = False

    def stage(self, entity_type: EntityType) -> StageReport:
        report = self.stages.get(entity_type)
        if report is None:
            report = StageReport(entity_type=entity_type)
            self.stages[entity_type] = report
        return report

    @property
    def resolved(self) -> int:
        return sum(stage.resolved_total for stage in self.stages.values())

    @property
    def fuzzy_resolved(self) -> int:
        return sum(stage.resolved[MatchKind.FUZZY] for stage in self.stages.values())

    @property
    def unresolved(self) -> int:
        return sum(len(stage.unresolved) for stage in self.stages.values())

    @property
    def conflicts(self) -> int:
        return sum(len(stage.conflicts) for stage in self.stages.values())

    @property
    def commit_failures(self) -> int:
        return sum(len(stage.commit_failures) for stage in self.stages.values())

    @property
    def has_errors(self) -> bool:
        return self.cancelled or any(stage.has_errors for stage in self.stages.values())

    def summary(self) -> str:
        degraded = sorted(
            {
                f"{stage.entity_type}/{provider}"
                for stage in self.stages.values()
                for provider in stage.degraded_providers
            }
        )
        aborted = [str(stage.entity_type) for stage in self.stages.values() if stage.aborted]
        parts = [
            f"state={self.state}",
            f"resolved={self.resolved}",
            f"fuzzy={self.fuzzy_resolved}",
            f"unresolved={self.unresolved}",
            f"conflicts={self.conflicts}",
            f"commit_failures={self.commit_failures}",
        ]
        if degraded:
            parts.append(f"degraded={','.join(degraded)}")
        if aborted:
            parts.append(f"aborted={','.join(aborted)}")
        if self.cancelled:
            parts.append("cancelled")
        return " ".join(parts)
