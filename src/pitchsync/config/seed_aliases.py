"""Known cross-provider identities, loaded before the first record is resolved.

League ids never share a name across providers ("K League 1" against
"South Korean K League 1"), and several clubs go by older or sponsor names on
one feed. Seeds bind those ids up front and give the resolver the name
variants to match against.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import TYPE_CHECKING
from uuid import NAMESPACE_DNS, UUID, uuid5

from pitchsync.domain.model import AliasKey, EntityType, IdentityStrategy, Provider, schema_for
from pitchsync.domain.reconciliation.normalize import exact_name_key, stripped_name_key

from .errors import ConfigurationError

if TYPE_CHECKING:
    from collections.abc import Mapping

SEED_ALIASES_VERSION = 1

# Seeded canonical ids are stable across databases.
SEED_NAMESPACE = uuid5(NAMESPACE_DNS, "seeds.pitchsync")

_K, _T, _H = Provider.KLEAGUE, Provider.THESPORTSDB, Provider.HIGHLIGHTLY


@dataclass(frozen=True, slots=True)
class SeedEntity:
    slug: str
    entity_type: EntityType
    native_ids: Mapping[Provider, str]
    names: tuple[str, ...] = ()

    @property
    def canonical_id(self) -> UUID:
        return uuid5(SEED_NAMESPACE, f"{self.entity_type}:{self.slug}")

    def keys(self) -> tuple[AliasKey, ...]:
        return tuple(
            AliasKey(provider, self.entity_type, native_id)
            for provider, native_id in sorted(self.native_ids.items())
        )


@dataclass(frozen=True, slots=True)
class SeedAliases:
    entities: tuple[SeedEntity, ...] = ()
    version: int = SEED_ALIASES_VERSION


def _league(slug: str, kleague: str, thesportsdb: str, highlightly: str) -> SeedEntity:
    return SeedEntity(
        slug,
        EntityType.LEAGUE,
        MappingProxyType({_K: kleague, _T: thesportsdb, _H: highlightly}),
    )


def _team(slug: str, kleague: str, *names: str) -> SeedEntity:
    return SeedEntity(slug, EntityType.TEAM, MappingProxyType({_K: kleague}), names)


DEFAULT_SEED_ALIASES = SeedAliases(
    entities=(
        _league("k-league-1", "1", "4689", "249276"),
        _league("k-league-2", "2", "4822", "250127"),
        _team(
            "ulsan-hd",
            "K01",
            "Ulsan HD FC",
            "Ulsan HD",
            "Ulsan Hyundai FC",
            "Ulsan Hyundai",
            "울산",
        ),
        _team("suwon-bluewings", "K02", "Suwon Samsung Bluewings", "Suwon Bluewings", "수원"),
        _team("pohang-steelers", "K03", "Pohang Steelers", "포항"),
        _team("jeju", "K04", "Jeju SK FC", "Jeju United FC", "Jeju United", "Jeju SK", "제주"),
        _team("jeonbuk", "K05", "Jeonbuk Hyundai Motors", "Jeonbuk Motors", "Jeonbuk", "전북"),
        _team("busan-ipark", "K06", "Busan IPark", "Busan I Park", "부산"),
        _team("jeonnam-dragons", "K07", "Jeonnam Dragons", "전남"),
        _team("seongnam", "K08", "Seongnam FC", "성남"),
        _team("fc-seoul", "K09", "FC Seoul", "서울"),
        _team("daejeon", "K10", "Daejeon Hana Citizen", "Daejeon Citizen", "대전"),
        _team("daegu", "K17", "Daegu FC", "대구"),
        _team("incheon-united", "K18", "Incheon United", "인천"),
        _team("gangwon", "K21", "Gangwon FC", "강원"),
        _team("gwangju", "K22", "Gwangju FC", "광주"),
        _team("bucheon", "K26", "Bucheon FC 1995", "Bucheon FC", "부천"),
        _team("anyang", "K27", "FC Anyang", "안양"),
        _team("suwon-fc", "K29", "Suwon FC", "Suwon City FC", "수원FC"),
        _team("seoul-e-land", "K31", "Seoul E-Land FC", "Seoul E-Land", "Seoul ELand", "서울E"),
        _team(
            "chungnam-asan",
            "K34",
            "Chungnam Asan FC",
            "Chungnam Asan",
            "Asan Mugunghwa",
            "충남아산",
        ),
        _team(
            "gimcheon-sangmu",
            "K35",
            "Gimcheon Sangmu FC",
            "Gimcheon Sangmu",
            "Sangju Sangmu",
            "김천",
        ),
        _team("gimpo", "K36", "Gimpo FC", "Gimpo Citizen", "김포"),
    )
)


def validate_seed_aliases(seeds: SeedAliases) -> SeedAliases:
    """Reject seeds that would bind one id twice or make name matching ambiguous."""

    slugs: set[tuple[EntityType, str]] = set()
    claimed: dict[AliasKey, str] = {}
    name_owners: dict[tuple[EntityType, str], str] = {}
    for seed in seeds.entities:
        schema = schema_for(seed.entity_type)
        if schema.identity is IdentityStrategy.COMPOSITE or schema.scope_reference is not None:
            raise ConfigurationError(f"{seed.entity_type} entities cannot be seeded ({seed.slug})")
        if not seed.slug:
            raise ConfigurationError(f"Seeded {seed.entity_type} without a slug")
        if (seed.entity_type, seed.slug) in slugs:
            raise ConfigurationError(f"Duplicate seed {seed.entity_type}:{seed.slug}")
        slugs.add((seed.entity_type, seed.slug))
        if not seed.native_ids and not seed.names:
            raise ConfigurationError(f"Seed {seed.slug} has neither provider ids nor names")

        for key in seed.keys():
            if not isinstance(key.provider, Provider) or not key.native_id:
                raise ConfigurationError(f"Seed {seed.slug} has an invalid id {key}")
            owner = claimed.setdefault(key, seed.slug)
            if owner != seed.slug:
                raise ConfigurationError(f"{key} is seeded for both {owner} and {seed.slug}")

        # Stripped forms must be unique as well.
        own_keys = {exact_name_key(name) for name in seed.names}
        own_keys |= {stripped_name_key(name) for name in seed.names}
        for name_key in own_keys:
            owner = name_owners.setdefault((seed.entity_type, name_key), seed.slug)
            if owner != seed.slug:
                raise ConfigurationError(
                    f"Seeded {seed.entity_type} name {name_key!r} is shared by "
                    f"{owner} and {seed.slug}"
                )
    return seeds


def get_seed_aliases() -> SeedAliases:
    return validate_seed_aliases(DEFAULT_SEED_ALIASES)
