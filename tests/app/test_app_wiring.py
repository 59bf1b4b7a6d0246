from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pitchsync import app
from pitchsync.adapters.kleague import KLeagueSource
from pitchsync.config import MissingConfigurationError, PipelineConfig
from pitchsync.domain.model import EntityType, Provider
from pitchsync.domain.pipeline import RunState
from tests.support.records import FakeSource, league

if TYPE_CHECKING:
    from collections.abc import Callable

    from pitchsync.adapters.sqlalchemy.unit_of_work import SqlAlchemyUnitOfWork


@pytest.fixture(autouse=True)
def no_provider_keys(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("THESPORTSDB_API_KEY", raising=False)
    monkeypatch.delenv("HIGHLIGHTLY_API_KEY", raising=False)
    monkeypatch.setattr(app, "startup", lambda: None)


def test_build_sources_skips_providers_without_credentials() -> None:
    sources = app.build_sources()

    assert [source.provider for source in sources] == [Provider.KLEAGUE]
    assert isinstance(sources[0], KLeagueSource)


def test_build_sources_requires_credentials_for_requested_provider() -> None:
    with pytest.raises(MissingConfigurationError, match="HIGHLIGHTLY_API_KEY"):
        app.build_sources([Provider.HIGHLIGHTLY])


def test_build_sources_keeps_requested_order_once(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("THESPORTSDB_API_KEY", "123")
    monkeypatch.setenv("HIGHLIGHTLY_API_KEY", "secret")

    sources = app.build_sources([Provider.HIGHLIGHTLY, Provider.THESPORTSDB, Provider.HIGHLIGHTLY])

    assert [source.provider for source in sources] == [Provider.HIGHLIGHTLY, Provider.THESPORTSDB]


def test_build_orchestrator_applies_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_orchestrator(**kwargs: object) -> object:
        captured.update(kwargs)
        return object()

    monkeypatch.setenv("PITCHSYNC_SEASON", "2023")
    monkeypatch.setattr(app, "PipelineOrchestrator", fake_orchestrator)

    app.build_orchestrator(
        max_workers=3,
        entity_types=[EntityType.TEAM],
        sources=[FakeSource(Provider.KLEAGUE, {})],
    )

    config = captured["config"]
    assert isinstance(config, PipelineConfig)
    assert config.season == 2023
    assert config.max_workers == 3
    assert captured["entity_types"] == [EntityType.TEAM]


def test_build_orchestrator_without_sources_fails() -> None:
    with pytest.raises(MissingConfigurationError, match="No provider"):
        app.build_orchestrator(sources=[])


def test_run_pipeline_logs_summary(
    sqlite_unit_of_work: Callable[[], SqlAlchemyUnitOfWork],
    caplog: pytest.LogCaptureFixture,
) -> None:
    source = FakeSource(
        Provider.KLEAGUE, {EntityType.LEAGUE: [league(Provider.KLEAGUE, "1", "K League 1")]}
    )
    orchestrator = app.build_orchestrator(
        season=2025, sources=[source], unit_of_work_factory=sqlite_unit_of_work
    )

    with caplog.at_level("INFO", logger="pitchsync.app"):
        report = app.run_pipeline(orchestrator)

    assert report.state is RunState.COMPLETED
    assert any("Finished reconciliation run" in message for message in caplog.messages)
