"""Run-level defaults for the reconciliation pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from .env import env_float, env_int
from .errors import ConfigurationError

DEFAULT_MAX_WORKERS = 4
DEFAULT_STAGE_TIMEOUT_SECONDS = 300.0
DEFAULT_FRESHNESS_WINDOW_SECONDS = 30.0
DEFAULT_STALE_AFTER_SECONDS = 60.0
DEFAULT_FUZZY_THRESHOLD = 0.5


@dataclass(frozen=True, slots=True)
class PipelineConfig:
    season: int
    max_workers: int = DEFAULT_MAX_WORKERS
    stage_timeout_seconds: float = DEFAULT_STAGE_TIMEOUT_SECONDS
    freshness_window_seconds: float = DEFAULT_FRESHNESS_WINDOW_SECONDS
    stale_after_seconds: float = DEFAULT_STALE_AFTER_SECONDS
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD

    def __post_init__(self) -> None:
        if self.max_workers < 1:
            raise ConfigurationError("max_workers must be at least 1")
        if self.stage_timeout_seconds <= 0:
            raise ConfigurationError("stage_timeout_seconds must be positive")
        if not 0.0 <= self.fuzzy_threshold < 1.0:
            raise ConfigurationError("fuzzy_threshold must be within [0, 1)")


def get_pipeline_config(*, season: int | None = None) -> PipelineConfig:
    return PipelineConfig(
        season=season or env_int("PITCHSYNC_SEASON", datetime.now(UTC).year),
        max_workers=env_int("PITCHSYNC_MAX_WORKERS", DEFAULT_MAX_WORKERS),
        stage_timeout_seconds=env_float("PITCHSYNC_STAGE_TIMEOUT", DEFAULT_STAGE_TIMEOUT_SECONDS),
        freshness_window_seconds=env_float(
            "PITCHSYNC_FRESHNESS_WINDOW", DEFAULT_FRESHNESS_WINDOW_SECONDS
        ),
        stale_after_seconds=env_float("PITCHSYNC_STALE_AFTER", DEFAULT_STALE_AFTER_SECONDS),
        fuzzy_threshold=env_float("PITCHSYNC_FUZZY_THRESHOLD", DEFAULT_FUZZY_THRESHOLD),
    )
