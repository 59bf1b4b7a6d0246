"""Application configuration helpers."""

from __future__ import annotations

from .env import require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .field_priority import (
    DEFAULT_FIELD_PRIORITY,
    EntityPriority,
    FieldPriority,
    get_field_priority,
    validate_field_priority,
)
from .highlightly import HighlightlyConfig, get_highlightly_config
from .http_resilience import CacheConfig, RateLimit, ResilienceConfig, RetryPolicy
from .kleague import KLeagueConfig, get_kleague_config
from .logging import configure_logging
from .pipeline import PipelineConfig, get_pipeline_config
from .seed_aliases import (
    DEFAULT_SEED_ALIASES,
    SeedAliases,
    SeedEntity,
    get_seed_aliases,
    validate_seed_aliases,
)
from .storage import DatabaseConfig, StorageConfig, get_database_config, get_storage_config
from .thesportsdb import TheSportsDBConfig, get_thesportsdb_config

__all__ = [
    "DEFAULT_FIELD_PRIORITY",
    "DEFAULT_SEED_ALIASES",
    "CacheConfig",
    "ConfigurationError",
    "DatabaseConfig",
    "EntityPriority",
    "FieldPriority",
    "HighlightlyConfig",
    "KLeagueConfig",
    "MissingConfigurationError",
    "PipelineConfig",
    "RateLimit",
    "ResilienceConfig",
    "RetryPolicy",
    "SeedAliases",
    "SeedEntity",
    "StorageConfig",
    "TheSportsDBConfig",
    "configure_logging",
    "get_database_config",
    "get_field_priority",
    "get_highlightly_config",
    "get_kleague_config",
    "get_pipeline_config",
    "get_seed_aliases",
    "get_storage_config",
    "get_thesportsdb_config",
    "require_env_vars",
    "validate_seed_aliases",
]
