"""Application orchestration entry points."""

from __future__ import annotations

from dataclasses import replace
from logging import getLogger
from typing import TYPE_CHECKING

from pitchsync.adapters.highlightly import HighlightlySource
from pitchsync.adapters.kleague import KLeagueSource
from pitchsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork, startup
from pitchsync.adapters.thesportsdb import TheSportsDBSource
from pitchsync.config import (
    MissingConfigurationError,
    get_field_priority,
    get_highlightly_config,
    get_kleague_config,
    get_pipeline_config,
    get_seed_aliases,
    get_thesportsdb_config,
)
from pitchsync.domain.model import ENTITY_TYPE_ORDER, Provider
from pitchsync.domain.pipeline import PipelineOrchestrator

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence

    from pitchsync.domain.model import EntityType
    from pitchsync.domain.pipeline import RunReport
    from pitchsync.domain.ports import ProviderSource
    from pitchsync.domain.reconciliation.persist import UnitOfWorkFactory

type SourceBuilder = Callable[[], ProviderSource]


log = getLogger(__name__)


def _kleague() -> ProviderSource:
    return KLeagueSource(get_kleague_config())


def _thesportsdb() -> ProviderSource:
    return TheSportsDBSource(get_thesportsdb_config())


def _highlightly() -> ProviderSource:
    return HighlightlySource(get_highlightly_config())


SOURCE_BUILDERS: Mapping[Provider, SourceBuilder] = {
    Provider.KLEAGUE: _kleague,
    Provider.THESPORTSDB: _thesportsdb,
    Provider.HIGHLIGHTLY: _highlightly,
}


def build_sources(providers: Iterable[Provider] | None = None) -> list[ProviderSource]:
    """Instantiate provider sources.

    Explicitly requested providers must be fully configured. Without a
    selection every provider is tried and the ones lacking credentials are
    skipped with a warning.
    """

    if providers is not None:
        return [SOURCE_BUILDERS[provider]() for provider in dict.fromkeys(providers)]

    sources: list[ProviderSource] = []
    for provider, builder in SOURCE_BUILDERS.items():
        try:
            sources.append(builder())
        except MissingConfigurationError as exc:
            log.warning(f"Skipping {provider}: {exc}")
    return sources


def build_orchestrator(
    *,
    season: int | None = None,
    providers: Iterable[Provider] | None = None,
    entity_types: Sequence[EntityType] | None = None,
    max_workers: int | None = None,
    sources: Sequence[ProviderSource] | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> PipelineOrchestrator:
    """Wire configuration, provider sources and the canonical store together."""

    startup()
    config = get_pipeline_config(season=season)
    if max_workers is not None:
        config = replace(config, max_workers=max_workers)
    effective_sources = list(sources) if sources is not None else build_sources(providers)
    if not effective_sources:
        raise MissingConfigurationError("No provider is configured")

    return PipelineOrchestrator(
        sources=effective_sources,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyUnitOfWork,
        config=config,
        field_priority=get_field_priority(),
        seed_aliases=get_seed_aliases(),
        entity_types=entity_types or ENTITY_TYPE_ORDER,
    )


def run_pipeline(orchestrator: PipelineOrchestrator) -> RunReport:
    """Run one reconciliation pass and log its outcome."""

    log.info("Starting reconciliation run")
    report = orchestrator.run()
    log.info(f"Finished reconciliation run: {report.summary()}")
    for stage in report.stages.values():
        for unresolved in stage.unresolved:
            log.warning(
                "Unresolved %s %s:%s (%r): %s",
                unresolved.entity_type,
                unresolved.provider,
                unresolved.native_id,
                unresolved.name,
                unresolved.reason,
            )
    return report
