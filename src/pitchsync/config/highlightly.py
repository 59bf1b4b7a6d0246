"""Highlightly live-data API configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_list, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_HIGHLIGHTLY_BASE_URL = "https://sports.highlightly.net/football"
HIGHLIGHTLY_HOST = "sports.highlightly.net"
DEFAULT_HIGHLIGHTLY_COUNTRY_CODE = "KR"


@dataclass(frozen=True, slots=True)
class HighlightlyConfig:
    resilience: ResilienceConfig
    country_code: str = DEFAULT_HIGHLIGHTLY_COUNTRY_CODE
    league_ids: tuple[str, ...] = ()
    page_size: int = 100


def get_highlightly_config() -> HighlightlyConfig:
    values = require_env_vars(("HIGHLIGHTLY_API_KEY",))

    resilience = ResilienceConfig(
        name="highlightly",
        base_url=DEFAULT_HIGHLIGHTLY_BASE_URL,
        timeout_seconds=10.0,
        ratelimit=RateLimit(max_calls=100, per_seconds=60.0),
        retry=RetryPolicy(),
        default_headers={
            "x-rapidapi-key": values["HIGHLIGHTLY_API_KEY"],
            "x-rapidapi-host": HIGHLIGHTLY_HOST,
        },
    )
    return HighlightlyConfig(
        resilience=resilience,
        league_ids=env_list("HIGHLIGHTLY_LEAGUE_IDS"),
    )
