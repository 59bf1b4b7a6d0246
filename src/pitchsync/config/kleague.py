"""K League official API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_env_var
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_KLEAGUE_BASE_URL = "https://www.kleague.com/api"


@dataclass(frozen=True, slots=True)
class KLeagueConfig:
    resilience: ResilienceConfig
    league_ids: tuple[int, ...] = (1, 2)


def get_kleague_config() -> KLeagueConfig:
    base_url = optional_env_var("KLEAGUE_BASE_URL", DEFAULT_KLEAGUE_BASE_URL)
    resilience = ResilienceConfig(
        name="kleague",
        base_url=base_url,
        timeout_seconds=15.0,
        ratelimit=RateLimit(max_calls=30, per_seconds=60.0),
        retry=RetryPolicy(),
        default_headers={
            "Accept": "application/json",
            "Referer": "https://www.kleague.com/",
        },
    )
    return KLeagueConfig(resilience=resilience)
