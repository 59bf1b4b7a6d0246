"""Static provider priority per entity field.

The table is versioned together with the entity schema and validated once at
startup; nothing consults field names dynamically while a run is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING

from pitchsync.domain.model import ENTITY_SCHEMAS, SCHEMA_VERSION, EntityType, Provider

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

FIELD_PRIORITY_VERSION = 1

type ProviderOrder = tuple[Provider, ...]

_K, _T, _H = Provider.KLEAGUE, Provider.THESPORTSDB, Provider.HIGHLIGHTLY

# K League is authoritative for basic information and statistics.
_OFFICIAL_FIRST: ProviderOrder = (_K, _T, _H)
# TheSportsDB carries the richest images and club metadata.
_METADATA_FIRST: ProviderOrder = (_T, _K, _H)
# Highlightly is the low-latency live feed.
_LIVE_FIRST: ProviderOrder = (_H, _K, _T)


@dataclass(frozen=True, slots=True)
class EntityPriority:
    default: ProviderOrder
    fields: Mapping[str, ProviderOrder] = field(default_factory=lambda: MappingProxyType({}))

    def order_for(self, field_name: str) -> ProviderOrder:
        return self.fields.get(field_name, self.default)


@dataclass(frozen=True, slots=True)
class FieldPriority:
    entities: Mapping[EntityType, EntityPriority]
    version: int = FIELD_PRIORITY_VERSION
    schema_version: int = SCHEMA_VERSION

    def order_for(self, entity_type: EntityType, field_name: str) -> ProviderOrder:
        return self.entities[entity_type].order_for(field_name)

    def default_order(self, entity_type: EntityType) -> ProviderOrder:
        return self.entities[entity_type].default


def _overrides(order: ProviderOrder, *names: str) -> dict[str, ProviderOrder]:
    return dict.fromkeys(names, order)


DEFAULT_FIELD_PRIORITY = FieldPriority(
    entities=MappingProxyType(
        {
            EntityType.LEAGUE: EntityPriority(
                default=_OFFICIAL_FIRST,
                fields=MappingProxyType(_overrides(_METADATA_FIRST, "logo_url")),
            ),
            EntityType.TEAM: EntityPriority(
                default=_OFFICIAL_FIRST,
                fields=MappingProxyType(
                    _overrides(
                        _METADATA_FIRST,
                        "logo_url",
                        "badge_url",
                        "stadium",
                        "stadium_capacity",
                        "founded_year",
                        "website",
                        "manager",
                        "description",
                        "country",
                    )
                ),
            ),
            EntityType.PLAYER: EntityPriority(
                default=_OFFICIAL_FIRST,
                fields=MappingProxyType(
                    _overrides(
                        _METADATA_FIRST, "photo_url", "birth_date", "nationality", "position"
                    )
                ),
            ),
            EntityType.FIXTURE: EntityPriority(
                default=_OFFICIAL_FIRST,
                fields=MappingProxyType(
                    _overrides(
                        _LIVE_FIRST,
                        "status",
                        "minute",
                        "home_score",
                        "away_score",
                        "possession_home",
                        "possession_away",
                    )
                    | _overrides(_METADATA_FIRST, "spectators")
                ),
            ),
            EntityType.STANDING: EntityPriority(
                default=_OFFICIAL_FIRST,
                fields=MappingProxyType(_overrides(_METADATA_FIRST, "form")),
            ),
            EntityType.LIVE_EVENT: EntityPriority(default=_LIVE_FIRST),
        }
    )
)


def validate_field_priority(priority: FieldPriority) -> FieldPriority:
    """Check ``priority`` against the entity schema, raising on any mismatch."""

    if priority.schema_version != SCHEMA_VERSION:
        raise ConfigurationError(
            f"Field priority targets schema v{priority.schema_version}, "
            f"running schema is v{SCHEMA_VERSION}"
        )

    missing_types = set(ENTITY_SCHEMAS) - set(priority.entities)
    if missing_types:
        names = ", ".join(sorted(missing_types))
        raise ConfigurationError(f"Field priority has no entry for: {names}")

    for entity_type, entity_priority in priority.entities.items():
        schema = ENTITY_SCHEMAS.get(entity_type)
        if schema is None:
            raise ConfigurationError(f"Field priority names unknown entity type {entity_type!r}")
        _validate_order(f"{entity_type} default", entity_priority.default)
        for field_name, order in entity_priority.fields.items():
            if field_name not in schema.fields:
                raise ConfigurationError(
                    f"Field priority names unknown field {entity_type}.{field_name}"
                )
            _validate_order(f"{entity_type}.{field_name}", order)
    return priority


def _validate_order(label: str, order: ProviderOrder) -> None:
    if not order:
        raise ConfigurationError(f"Empty provider order for {label}")
    for provider in order:
        if not isinstance(provider, Provider):
            raise ConfigurationError(f"Unknown provider {provider!r} in {label}")
    if len(set(order)) != len(order):
        raise ConfigurationError(f"Duplicate provider in {label}")


def get_field_priority() -> FieldPriority:
    return validate_field_priority(DEFAULT_FIELD_PRIORITY)
