"""Stage-by-stage orchestration of one reconciliation run.

Entity types are processed in dependency order. For each type the run moves
through fetching, adapting, resolving, merging and committing before the next
type starts, so a fixture always sees the teams committed before it. Provider
failures degrade the affected stage instead of aborting the run.
"""

from __future__ import annotations

import asyncio
import threading
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from contextlib import AsyncExitStack
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING
from uuid import uuid4

from pitchsync.domain.errors import (
    DependencyViolationError,
    ProviderError,
    RunCancelledError,
    StageTimeoutError,
)
from pitchsync.domain.model import ENTITY_TYPE_ORDER
from pitchsync.domain.ports import FetchContext
from pitchsync.domain.reconciliation import (
    AliasTable,
    IdentityResolver,
    MergeEngine,
    UnresolvedRecord,
    UpsertWriter,
)

from .report import RunReport
from .state import RunState

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Sequence
    from concurrent.futures import Executor
    from uuid import UUID

    from pitchsync.config import FieldPriority, PipelineConfig, SeedAliases
    from pitchsync.domain.model import (
        Confidence,
        EntityType,
        MatchKind,
        MergeResult,
        Provider,
        ProviderRecord,
    )
    from pitchsync.domain.ports import ProviderSource
    from pitchsync.domain.reconciliation import Resolution
    from pitchsync.domain.reconciliation.persist import UnitOfWorkFactory

    from .report import StageReport

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


@dataclass(frozen=True, slots=True)
class _Fetched:
    provider: Provider
    payloads: list[object]
    retrieved_at: datetime


@dataclass(slots=True)
class _Group:
    canonical_id: UUID
    records: list[ProviderRecord]
    references: dict[Provider, dict[str, UUID]]
    match_kinds: dict[Provider, MatchKind]


class PipelineOrchestrator:
    """Run every configured provider through the reconciliation stages."""

    def __init__(
        self,
        *,
        sources: Sequence[ProviderSource],
        unit_of_work_factory: UnitOfWorkFactory,
        config: PipelineConfig,
        field_priority: FieldPriority,
        seed_aliases: SeedAliases | None = None,
        entity_types: Sequence[EntityType] = ENTITY_TYPE_ORDER,
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._sources = tuple(sources)
        self._unit_of_work_factory = unit_of_work_factory
        self._config = config
        self._field_priority = field_priority
        self._seed_aliases = seed_aliases
        wanted = set(entity_types)
        self._entity_types = [et for et in ENTITY_TYPE_ORDER if et in wanted]
        self._clock = clock
        self._id_factory = id_factory
        self._cancel_requested = threading.Event()
        self.state = RunState.PENDING

    def cancel(self) -> None:
        """Stop the run at the next stage boundary; work already committed stays."""

        log.warning("Cancellation requested")
        self._cancel_requested.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_requested.is_set()

    def run(self) -> RunReport:
        return asyncio.run(self.run_async())

    async def run_async(self) -> RunReport:
        report = RunReport(started_at=self._clock())
        aliases = self._load_aliases()
        resolver = IdentityResolver(
            aliases,
            fuzzy_threshold=self._config.fuzzy_threshold,
            id_factory=self._id_factory,
        )
        self._apply_seeds(resolver)
        merger = MergeEngine(
            policy=self._field_priority,
            freshness_window=timedelta(seconds=self._config.freshness_window_seconds),
            stale_after=timedelta(seconds=self._config.stale_after_seconds),
            clock=self._clock,
        )
        writer = UpsertWriter(self._unit_of_work_factory)
        context = FetchContext(season=self._config.season, records={})
        log.info(
            "Run started: season=%s, providers=%s, entity_types=%s",
            self._config.season,
            ",".join(source.provider for source in self._sources),
            ",".join(self._entity_types),
        )

        try:
            async with AsyncExitStack() as stack:
                for source in self._sources:
                    await stack.enter_async_context(source)
                with ThreadPoolExecutor(max_workers=self._config.max_workers) as executor:
                    for entity_type in self._entity_types:
                        self._checkpoint()
                        stage = report.stage(entity_type)
                        try:
                            await self._run_stage(
                                stage,
                                context,
                                resolver=resolver,
                                merger=merger,
                                writer=writer,
                                aliases=aliases,
                                executor=executor,
                            )
                        except (StageTimeoutError, DependencyViolationError) as exc:
                            log.error("Aborting %s stage: %s", entity_type, exc)
                            stage.errors.append(str(exc))
                            stage.aborted = True
        except RunCancelledError:
            log.warning("Run cancelled before %s", self.state)
            report.cancelled = True

        self._transition(RunState.REPORTING)
        report.finished_at = self._clock()
        final = RunState.COMPLETED_WITH_ERRORS if report.has_errors else RunState.COMPLETED
        self._transition(final)
        report.state = final
        return report

    async def _run_stage(
        self,
        stage: StageReport,
        context: FetchContext,
        *,
        resolver: IdentityResolver,
        merger: MergeEngine,
        writer: UpsertWriter,
        aliases: AliasTable,
        executor: Executor,
    ) -> None:
        entity_type = stage.entity_type
        sources = [source for source in self._sources if entity_type in source.entity_types]
        if not sources:
            log.info(f"No provider serves {entity_type}; skipping")
            return

        self._transition(RunState.FETCHING, entity_type)
        fetched = await self._fetch(stage, sources, context)

        self._checkpoint()
        self._transition(RunState.ADAPTING, entity_type)
        records = self._adapt(stage, sources, fetched)
        # Later stages derive follow-up requests from these.
        context.records[entity_type] = tuple(records)
        stage.adapted = len(records)
        if not records:
            log.info(f"No {entity_type} records adapted")
            return

        self._checkpoint()
        self._transition(RunState.RESOLVING, entity_type)
        resolutions = await self._within_timeout(
            stage,
            RunState.RESOLVING,
            asyncio.to_thread(
                resolver.resolve_all,
                records,
                provider_order=self._field_priority.default_order(entity_type),
                executor=executor,
            ),
        )
        groups = self._group(stage, resolutions)

        self._checkpoint()
        self._transition(RunState.MERGING, entity_type)
        confidence = stage.confidence
        results = await self._within_timeout(
            stage,
            RunState.MERGING,
            asyncio.to_thread(self._merge_all, groups, merger, aliases, confidence, executor),
        )
        stage.merged = len(results)
        for result in results:
            stage.conflicts.extend(result.conflicts)

        self._checkpoint()
        self._transition(RunState.COMMITTING, entity_type)
        # The store is driven from the loop thread; sqlite connections stay on one thread.
        commit = writer.commit(results, reassignments=aliases.drain_reassignments())
        stage.committed = len(commit.committed)
        stage.commit_failures.extend(commit.failures)
        stage.dependency_failures.extend(commit.dependency_failures)
        log.info(
            f"{entity_type}: adapted={stage.adapted}, resolved={stage.resolved_total}, "
            f"unresolved={len(stage.unresolved)}, committed={stage.committed}, "
            f"conflicts={len(stage.conflicts)}, failures={len(stage.commit_failures)}"
        )

    async def _fetch(
        self,
        stage: StageReport,
        sources: Sequence[ProviderSource],
        context: FetchContext,
    ) -> list[_Fetched]:
        outcomes = await asyncio.gather(
            *(self._fetch_one(stage, source, context) for source in sources)
        )
        return [outcome for outcome in outcomes if outcome is not None]

    async def _fetch_one(
        self,
        stage: StageReport,
        source: ProviderSource,
        context: FetchContext,
    ) -> _Fetched | None:
        timeout = self._config.stage_timeout_seconds
        try:
            batch = await asyncio.wait_for(
                source.fetch(stage.entity_type, context), timeout=timeout
            )
        except ProviderError as exc:
            self._degrade(stage, source.provider, f"fetch failed: {exc}")
            return None
        except TimeoutError:
            self._degrade(stage, source.provider, f"fetch exceeded {timeout:.0f}s")
            return None
        stage.fetched[source.provider] = len(batch.payloads)
        # Cached or delayed responses carry the time the provider produced them.
        retrieved_at = self._clock()
        if batch.snapshot_at is not None and batch.snapshot_at < retrieved_at:
            retrieved_at = batch.snapshot_at
        return _Fetched(source.provider, batch.payloads, retrieved_at)

    def _adapt(
        self,
        stage: StageReport,
        sources: Sequence[ProviderSource],
        fetched: Sequence[_Fetched],
    ) -> list[ProviderRecord]:
        by_provider = {source.provider: source for source in sources}
        records: list[ProviderRecord] = []
        for batch in fetched:
            source = by_provider[batch.provider]
            try:
                adapted = source.normalize(
                    stage.entity_type, batch.payloads, retrieved_at=batch.retrieved_at
                )
            except (ValueError, TypeError, KeyError) as exc:
                # pydantic's ValidationError is a ValueError
                self._degrade(stage, batch.provider, f"adapting failed: {exc}")
                continue
            records.extend(adapted)
        return records

    def _group(self, stage: StageReport, resolutions: Sequence[Resolution]) -> list[_Group]:
        groups: dict[UUID, _Group] = {}
        for resolution in resolutions:
            record = resolution.record
            if resolution.dangling_references:
                stage.dangling_references.extend(
                    f"{record.key}:{role}" for role in resolution.dangling_references
                )
            if resolution.canonical_id is None:
                stage.unresolved.append(UnresolvedRecord.from_resolution(resolution))
                continue
            if resolution.match_kind is not None:
                stage.resolved[resolution.match_kind] += 1
            group = groups.get(resolution.canonical_id)
            if group is None:
                group = _Group(resolution.canonical_id, [], defaultdict(dict), {})
                groups[resolution.canonical_id] = group
            group.records.append(record)
            group.references[record.provider].update(resolution.references)
            if resolution.match_kind is not None:
                group.match_kinds[record.provider] = resolution.match_kind
        return list(groups.values())

    def _merge_all(
        self,
        groups: Sequence[_Group],
        merger: MergeEngine,
        aliases: AliasTable,
        confidence: Confidence,
        executor: Executor,
    ) -> list[MergeResult]:
        def merge_one(group: _Group) -> MergeResult:
            result = merger.merge(
                group.canonical_id,
                group.records,
                references=group.references,
                match_kinds=group.match_kinds,
                confidence=confidence,
            )
            result.alias_entries = aliases.entries_for(group.canonical_id)
            return result

        return list(executor.map(merge_one, groups))

    async def _within_timeout[T](
        self, stage: StageReport, state: RunState, work: Awaitable[T]
    ) -> T:
        timeout = self._config.stage_timeout_seconds
        try:
            return await asyncio.wait_for(work, timeout=timeout)
        except TimeoutError as exc:
            raise StageTimeoutError(stage.entity_type, str(state), timeout) from exc

    def _degrade(self, stage: StageReport, provider: Provider, reason: str) -> None:
        log.warning(f"{provider} degraded for {stage.entity_type}: {reason}")
        stage.degraded_providers[provider] = reason

    def _load_aliases(self) -> AliasTable:
        with self._unit_of_work_factory() as uow:
            entries = uow.repositories.aliases.list_all()
        log.debug("Loaded %d aliases", len(entries))
        return AliasTable(entries)

    def _apply_seeds(self, resolver: IdentityResolver) -> None:
        if self._seed_aliases is None:
            return
        applied = 0
        for seed in self._seed_aliases.entities:
            landed = resolver.seed(seed.entity_type, seed.canonical_id, seed.keys(), seed.names)
            if landed is not None:
                applied += 1
        log.debug(
            "Applied %d of %d seeded identities (v%d)",
            applied,
            len(self._seed_aliases.entities),
            self._seed_aliases.version,
        )

    def _checkpoint(self) -> None:
        if self._cancel_requested.is_set():
            raise RunCancelledError("Run cancelled between stages")

    def _transition(self, state: RunState, entity_type: EntityType | None = None) -> None:
        self.state = state
        if entity_type is None:
            log.debug("Run state -> %s", state)
        else:
            log.debug("Run state -> %s (%s)", state, entity_type)
