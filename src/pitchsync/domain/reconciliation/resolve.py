"""Identity resolution: bind provider records to canonical ids.

For each record, in order, the first rule that applies wins:

1. the record's ``(provider, native id)`` already has an alias, stored or seeded
2. another provider's record in this run, or a seed, carries the same name (full
   name first, then with club suffixes stripped) or the same composite key
3. the names contain one another closely enough (fuzzy, lower confidence)
4. nothing matches, so a new canonical id is minted

Ties between distinct canonical ids are never guessed; the record is reported
as unresolved. A canonical entity holds at most one id per provider, so a
provider's records never match each other.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from pitchsync.domain.errors import AmbiguousResolutionError, MissingReferenceError
from pitchsync.domain.model import IdentityStrategy, MatchKind, schema_for

from .contracts import Resolution, ResolutionStatus
from .normalize import (
    compact_name_key,
    composite_key,
    containment_similarity,
    exact_name_key,
    stripped_name_key,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Mapping, Sequence
    from concurrent.futures import Executor

    from pitchsync.domain.model import (
        AliasKey,
        AliasReassignment,
        EntitySchema,
        EntityType,
        Provider,
        ProviderRecord,
    )

    from .alias import AliasTable
    from .normalize import CompositeKey

log = getLogger(__name__)


@dataclass(slots=True)
class _Candidate:
    """Run-local view of one canonical entity, built from the records resolved to it."""

    canonical_id: UUID
    scope: UUID | None = None
    providers: set[Provider] = field(default_factory=set)
    exact_keys: set[str] = field(default_factory=set)
    stripped_keys: set[str] = field(default_factory=set)
    compact_keys: set[str] = field(default_factory=set)
    composite_keys: set[CompositeKey] = field(default_factory=set)


@dataclass(frozen=True, slots=True)
class _Match:
    canonical_id: UUID
    kind: MatchKind
    reason: str


class IdentityResolver:
    def __init__(
        self,
        aliases: AliasTable,
        *,
        fuzzy_threshold: float = 0.5,
        id_factory: Callable[[], UUID] = uuid4,
    ) -> None:
        self._aliases = aliases
        self._fuzzy_threshold = fuzzy_threshold
        self._id_factory = id_factory
        self._candidates: dict[EntityType, dict[UUID, _Candidate]] = defaultdict(dict)
        self._index_lock = threading.Lock()
        # Seeded ids no record has resolved to yet.
        self._unconfirmed: set[UUID] = set()

    def resolve(self, record: ProviderRecord) -> Resolution:
        """Return the canonical binding for ``record``, creating an alias if needed.

        Raises ``AmbiguousResolutionError`` when several canonical ids match
        equally well and ``MissingReferenceError`` when a reference needed to
        identify the record has no alias.
        """

        schema = schema_for(record.entity_type)
        references, dangling = self._resolve_references(record, schema)

        with self._aliases.locked(record.key):
            entry = self._aliases.get(record.key)
            if entry is not None:
                with self._index_lock:
                    self._remember(record, schema, entry.canonical_id, references)
                return Resolution(
                    record=record,
                    status=ResolutionStatus.RESOLVED,
                    reason="alias_hit",
                    canonical_id=entry.canonical_id,
                    match_kind=MatchKind.DIRECT,
                    alias=entry,
                    references=MappingProxyType(references),
                    dangling_references=dangling,
                )

            with self._index_lock:
                match = self._match(record, schema, references)
                if match is None:
                    match = _Match(self._id_factory(), MatchKind.NEW, "minted")
                entry = self._aliases.create(record.key, match.canonical_id, match.kind)
                self._remember(record, schema, match.canonical_id, references)

        if match.kind is MatchKind.FUZZY:
            log.info(
                "Fuzzy match %s (%r) -> %s; provisional until confirmed",
                record.key,
                record.name,
                match.canonical_id,
            )
        return Resolution(
            record=record,
            status=(
                ResolutionStatus.NEW if match.kind is MatchKind.NEW else ResolutionStatus.RESOLVED
            ),
            reason=match.reason,
            canonical_id=match.canonical_id,
            match_kind=match.kind,
            alias=entry,
            references=MappingProxyType(references),
            dangling_references=dangling,
        )

    def resolve_all(
        self,
        records: Iterable[ProviderRecord],
        *,
        provider_order: Sequence[Provider] = (),
        executor: Executor | None = None,
    ) -> list[Resolution]:
        """Resolve a batch of one entity type.

        Records that already have an alias are looked up first (concurrently
        when ``executor`` is given) so every provider's known entities are
        visible as match candidates. The remaining records are matched one at a
        time in ``provider_order``, which keeps minting deterministic.
        """

        rank = {provider: index for index, provider in enumerate(provider_order)}
        ordered = sorted(
            records, key=lambda record: (rank.get(record.provider, len(rank)), record.native_id)
        )
        known = [record for record in ordered if record.key in self._aliases]
        unknown = [record for record in ordered if record.key not in self._aliases]

        if executor is not None and known:
            resolutions = list(executor.map(self._resolve_safely, known))
        else:
            resolutions = [self._resolve_safely(record) for record in known]
        resolutions.extend(self._resolve_safely(record) for record in unknown)
        return resolutions

    def reassign(self, key: AliasKey, canonical_id: UUID, *, reason: str) -> AliasReassignment:
        return self._aliases.reassign(key, canonical_id, reason=reason)

    def seed(
        self,
        entity_type: EntityType,
        canonical_id: UUID,
        keys: Iterable[AliasKey] = (),
        names: Iterable[str] = (),
    ) -> UUID | None:
        """Bind known provider ids and names to one entity before any record arrives.

        Returns the canonical id the seed landed on (a stored id wins over
        ``canonical_id``) or ``None`` when stored aliases contradict the seed.
        Until a record resolves to a freshly seeded id, references to it are
        treated as dangling, since nothing has been stored under that id yet.
        """

        schema = schema_for(entity_type)
        if schema.identity is IdentityStrategy.COMPOSITE or schema.scope_reference is not None:
            raise ValueError(f"{entity_type} entities are not matched by name alone")
        keys = tuple(keys)
        known = any(key in self._aliases for key in keys)
        target = self._aliases.seed(canonical_id, keys)
        if target is None:
            return None
        providers = self._aliases.providers_for(target)
        with self._index_lock:
            if not known and target not in self._candidates[entity_type]:
                self._unconfirmed.add(target)
            candidates = self._candidates[entity_type]
            candidate = candidates.get(target)
            if candidate is None:
                candidate = _Candidate(canonical_id=target)
                candidates[target] = candidate
            candidate.providers.update(providers)
            for name in names:
                self._add_name(candidate, name)
        return target

    def _resolve_safely(self, record: ProviderRecord) -> Resolution:
        try:
            return self.resolve(record)
        except AmbiguousResolutionError as exc:
            log.warning("Leaving %s unresolved: %s", record.key, exc.detail)
            return Resolution(
                record=record,
                status=ResolutionStatus.UNRESOLVED,
                reason="ambiguous_match",
                candidates=exc.candidates,
            )
        except MissingReferenceError as exc:
            log.warning("Leaving %s unresolved: %s", record.key, exc)
            return Resolution(
                record=record,
                status=ResolutionStatus.UNRESOLVED,
                reason=f"missing_reference:{exc.role}",
            )

    def _resolve_references(
        self, record: ProviderRecord, schema: EntitySchema
    ) -> tuple[dict[str, UUID], tuple[str, ...]]:
        resolved: dict[str, UUID] = {}
        dangling: list[str] = []
        for role in record.references:
            referenced = record.reference_key(role)
            if referenced is None:
                continue
            entry = self._aliases.get(referenced)
            if entry is not None:
                with self._index_lock:
                    if entry.canonical_id in self._unconfirmed:
                        entry = None
            if entry is None:
                if role in schema.identity_references:
                    raise MissingReferenceError(record.key, role, referenced)
                dangling.append(role)
                continue
            resolved[role] = entry.canonical_id
        return resolved, tuple(dangling)

    def _match(
        self,
        record: ProviderRecord,
        schema: EntitySchema,
        references: Mapping[str, UUID],
    ) -> _Match | None:
        scope = references.get(schema.scope_reference) if schema.scope_reference else None
        pool = [
            candidate
            for candidate in self._candidates[record.entity_type].values()
            if record.provider not in candidate.providers and candidate.scope == scope
        ]
        if not pool:
            return None

        if schema.identity is IdentityStrategy.COMPOSITE:
            key = composite_key(record, schema, references)
            if key is None:
                return None
            hits = {c.canonical_id for c in pool if key in c.composite_keys}
            return self._unique(record, hits, MatchKind.EXACT, "composite_key_match")

        name = record.name
        if name is None:
            return None

        exact = exact_name_key(name)
        match = self._unique(
            record,
            {c.canonical_id for c in pool if exact in c.exact_keys},
            MatchKind.EXACT,
            "exact_match",
        )
        if match is not None:
            return match

        stripped = stripped_name_key(name)
        match = self._unique(
            record,
            {c.canonical_id for c in pool if stripped in c.stripped_keys},
            MatchKind.EXACT,
            "suffix_stripped_match",
        )
        if match is not None or not schema.fuzzy:
            return match

        return self._fuzzy(record, name, pool)

    def _fuzzy(
        self, record: ProviderRecord, name: str, pool: Sequence[_Candidate]
    ) -> _Match | None:
        compact = compact_name_key(name)
        scores: dict[UUID, float] = {}
        for candidate in pool:
            score = max(
                (containment_similarity(compact, other) for other in candidate.compact_keys),
                default=0.0,
            )
            if score > self._fuzzy_threshold:
                scores[candidate.canonical_id] = score
        if not scores:
            return None
        best = max(scores.values())
        leaders = {canonical_id for canonical_id, score in scores.items() if score == best}
        return self._unique(record, leaders, MatchKind.FUZZY, f"fuzzy_match:{best:.2f}")

    @staticmethod
    def _unique(
        record: ProviderRecord, hits: set[UUID], kind: MatchKind, reason: str
    ) -> _Match | None:
        if not hits:
            return None
        if len(hits) > 1:
            candidates = tuple(sorted(hits, key=str))
            raise AmbiguousResolutionError(
                record.key,
                candidates,
                detail=f"{reason} ties {len(candidates)} canonical ids",
            )
        return _Match(next(iter(hits)), kind, reason)

    def _remember(
        self,
        record: ProviderRecord,
        schema: EntitySchema,
        canonical_id: UUID,
        references: Mapping[str, UUID],
    ) -> None:
        self._unconfirmed.discard(canonical_id)
        candidates = self._candidates[record.entity_type]
        candidate = candidates.get(canonical_id)
        if candidate is None:
            scope = references.get(schema.scope_reference) if schema.scope_reference else None
            candidate = _Candidate(canonical_id=canonical_id, scope=scope)
            candidates[canonical_id] = candidate
        candidate.providers.add(record.provider)
        if schema.identity is IdentityStrategy.COMPOSITE:
            key = composite_key(record, schema, references)
            if key is not None:
                candidate.composite_keys.add(key)
            return
        if record.name is not None:
            self._add_name(candidate, record.name)

    @staticmethod
    def _add_name(candidate: _Candidate, name: str) -> None:
        candidate.exact_keys.add(exact_name_key(name))
        candidate.stripped_keys.add(stripped_name_key(name))
        candidate.compact_keys.add(compact_name_key(name))
