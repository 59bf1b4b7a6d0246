from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from pitchsync import main as main_module
from pitchsync.adapters.sqlalchemy.unit_of_work import StartupError
from pitchsync.config import MissingConfigurationError
from pitchsync.domain.model import EntityType, Provider
from pitchsync.domain.pipeline import RunReport, RunState

if TYPE_CHECKING:
    from pitchsync.domain.pipeline import PipelineOrchestrator


class FakeOrchestrator:
    cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


@pytest.fixture
def captured(monkeypatch: pytest.MonkeyPatch) -> dict[str, object]:
    captured: dict[str, object] = {"state": RunState.COMPLETED}

    def fake_build(**kwargs: object) -> FakeOrchestrator:
        captured.update(kwargs)
        return FakeOrchestrator()

    def fake_run(orchestrator: PipelineOrchestrator) -> RunReport:
        del orchestrator
        state = captured["state"]
        if isinstance(state, Exception):
            raise state
        assert isinstance(state, RunState)
        return RunReport(state=state)

    monkeypatch.setattr(main_module, "load_dotenv", lambda: None)
    monkeypatch.setattr(main_module, "configure_logging", lambda **_: None)
    monkeypatch.setattr(main_module, "_install_sigint_handler", lambda _: None)
    monkeypatch.setattr(main_module, "build_orchestrator", fake_build)
    monkeypatch.setattr(main_module, "run_pipeline", fake_run)
    return captured


def run_main(argv: list[str]) -> int | str | None:
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(argv)
    return excinfo.value.code


def test_main_cli_defaults(captured: dict[str, object], capsys: pytest.CaptureFixture[str]) -> None:
    assert run_main([]) == 0

    assert captured["season"] is None
    assert captured["providers"] is None
    assert captured["entity_types"] is None
    assert captured["max_workers"] is None
    assert capsys.readouterr().out.startswith("state=completed")


def test_main_cli_with_flags(captured: dict[str, object]) -> None:
    code = run_main(
        [
            "--season",
            "2024",
            "--provider",
            "kleague",
            "--provider",
            "highlightly",
            "--entity-type",
            "team",
            "--entity-type",
            "fixture",
            "--workers",
            "8",
        ]
    )

    assert code == 0
    assert captured["season"] == 2024
    assert captured["providers"] == [Provider.KLEAGUE, Provider.HIGHLIGHTLY]
    assert captured["entity_types"] == [EntityType.TEAM, EntityType.FIXTURE]
    assert captured["max_workers"] == 8


@pytest.mark.parametrize(
    "argv",
    [
        ["--entity-type", "referee"],
        ["--provider", "espn"],
        ["--workers", "0"],
        ["--season", "-1"],
    ],
)
def test_main_cli_rejects_bad_arguments(captured: dict[str, object], argv: list[str]) -> None:
    assert run_main(argv) == 2
    assert "season" not in captured


def test_main_cli_configuration_error_exits_2(
    monkeypatch: pytest.MonkeyPatch,
    captured: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    del captured

    def failing_build(**_: object) -> FakeOrchestrator:
        raise MissingConfigurationError("Missing configuration for: THESPORTSDB_API_KEY")

    monkeypatch.setattr(main_module, "build_orchestrator", failing_build)

    assert run_main(["--provider", "thesportsdb"]) == 2
    assert "THESPORTSDB_API_KEY" in capsys.readouterr().err


def test_main_cli_store_startup_failure_exits_2(
    monkeypatch: pytest.MonkeyPatch,
    captured: dict[str, object],
    capsys: pytest.CaptureFixture[str],
) -> None:
    del captured

    def failing_build(**_: object) -> FakeOrchestrator:
        raise StartupError("Tables do not match the entity schema: team.nickname")

    monkeypatch.setattr(main_module, "build_orchestrator", failing_build)

    assert run_main([]) == 2
    assert "Error: Tables do not match" in capsys.readouterr().err


def test_main_cli_run_with_errors_exits_1(captured: dict[str, object]) -> None:
    captured["state"] = RunState.COMPLETED_WITH_ERRORS

    assert run_main([]) == 1


def test_main_cli_unexpected_failure_exits_1(
    captured: dict[str, object], capsys: pytest.CaptureFixture[str]
) -> None:
    captured["state"] = RuntimeError("database is locked")

    assert run_main([]) == 1
    assert "database is locked" in capsys.readouterr().err
