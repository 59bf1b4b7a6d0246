"""TheSportsDB configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_list, optional_env_var, require_env_vars
from .errors import ConfigurationError
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy

DEFAULT_THESPORTSDB_BASE_URL = "https://www.thesportsdb.com/api/v1/json"
DEFAULT_THESPORTSDB_COUNTRY = "South Korea"
# K League 1 and K League 2
DEFAULT_THESPORTSDB_LEAGUE_IDS = ("4689", "4822")
# Match data changes by the minute; only catalogue payloads are cached.
_UNCACHED_KEYS = frozenset({"events", "timeline", "table"})
CATALOGUE_TTL_SECONDS = 300.0


@dataclass(frozen=True, slots=True)
class TheSportsDBConfig:
    resilience: ResilienceConfig
    country: str = DEFAULT_THESPORTSDB_COUNTRY
    league_ids: tuple[str, ...] = DEFAULT_THESPORTSDB_LEAGUE_IDS


def should_cache_catalogue(payload: object) -> bool:
    if not isinstance(payload, dict):
        return False
    return _UNCACHED_KEYS.isdisjoint(payload)


def _catalogue_cache() -> CacheConfig | None:
    """Honour ``THESPORTSDB_CACHE``: ``memory`` (default), ``sqlite`` or ``off``.

    The sqlite backend keeps catalogue responses in the data directory between runs.
    """

    mode = optional_env_var("THESPORTSDB_CACHE", "memory")
    if mode == "off":
        return None
    if mode == "memory":
        return CacheConfig(
            backend="memory",
            default_ttl_seconds=CATALOGUE_TTL_SECONDS,
            should_cache=should_cache_catalogue,
        )
    if mode == "sqlite":
        return CacheConfig(
            backend="sqlite",
            default_ttl_seconds=CATALOGUE_TTL_SECONDS,
            should_cache=should_cache_catalogue,
        )
    raise ConfigurationError(f"THESPORTSDB_CACHE must be memory, sqlite or off, got {mode!r}")


def get_thesportsdb_config() -> TheSportsDBConfig:
    values = require_env_vars(("THESPORTSDB_API_KEY",))
    api_key = values["THESPORTSDB_API_KEY"]

    resilience = ResilienceConfig(
        name="thesportsdb",
        base_url=f"{DEFAULT_THESPORTSDB_BASE_URL}/{api_key}",
        ratelimit=RateLimit(max_calls=30, per_seconds=60.0),
        retry=RetryPolicy(),
        cache=_catalogue_cache(),
    )
    league_ids = env_list("THESPORTSDB_LEAGUE_IDS", DEFAULT_THESPORTSDB_LEAGUE_IDS)
    return TheSportsDBConfig(resilience=resilience, league_ids=league_ids)
