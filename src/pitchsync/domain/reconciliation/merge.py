"""Field-level merging of provider records into one canonical entity."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from logging import getLogger
from typing import TYPE_CHECKING

from pitchsync.domain.model import (
    CanonicalEntity,
    Confidence,
    FieldKind,
    FieldProvenance,
    MatchKind,
    MergeConflict,
    MergeResult,
    SelectionReason,
    schema_for,
)

from .normalize import normalize_text

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence
    from uuid import UUID

    from pitchsync.config.field_priority import FieldPriority, ProviderOrder
    from pitchsync.domain.model import EntityType, FieldSpec, Provider, ProviderRecord

log = getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def values_disagree(spec: FieldSpec, left: object, right: object) -> bool:
    """Return whether two values differ materially for a field of kind ``spec``."""

    if spec.kind in {FieldKind.INTEGER, FieldKind.NUMBER}:
        if isinstance(left, int | float) and isinstance(right, int | float):
            return abs(float(left) - float(right)) > spec.tolerance
    elif spec.kind is FieldKind.TIMESTAMP:
        if isinstance(left, datetime) and isinstance(right, datetime):
            return abs((left - right).total_seconds()) > spec.tolerance
    elif isinstance(left, str) and isinstance(right, str):
        return normalize_text(left) != normalize_text(right)
    return left != right


@dataclass(frozen=True, slots=True)
class _Supplied:
    provider: Provider
    value: object
    retrieved_at: datetime
    derived: bool


@dataclass(slots=True, kw_only=True)
class MergeEngine:
    """Pick one value per field following the static field priority.

    Time-sensitive fields may instead take a fresher value from a lower-ranked
    provider: the value must be at least ``stale_after`` newer than the leading
    provider's and no older than ``freshness_window`` at merge time.
    """

    policy: FieldPriority
    freshness_window: timedelta = timedelta(seconds=30)
    stale_after: timedelta = timedelta(seconds=60)
    clock: Callable[[], datetime] = field(default=_utcnow)

    def merge(
        self,
        canonical_id: UUID,
        records: Sequence[ProviderRecord],
        *,
        policy: FieldPriority | None = None,
        references: Mapping[Provider, Mapping[str, UUID]] | None = None,
        match_kinds: Mapping[Provider, MatchKind] | None = None,
        confidence: Confidence = Confidence.AUTHORITATIVE,
    ) -> MergeResult:
        if not records:
            raise ValueError(f"Nothing to merge for {canonical_id}")
        entity_type = records[0].entity_type
        if any(record.entity_type is not entity_type for record in records):
            raise ValueError(f"Mixed entity types merged into {canonical_id}")

        active_policy = policy or self.policy
        schema = schema_for(entity_type)
        latest = _latest_per_provider(records)
        kinds = dict(match_kinds or {})
        now = self.clock()

        entity = CanonicalEntity(
            entity_type=entity_type,
            canonical_id=canonical_id,
            aliases={provider: record.native_id for provider, record in latest.items()},
        )
        result = MergeResult(entity=entity, match_kinds=kinds, confidence=confidence)

        for field_name, spec in schema.fields.items():
            supplied = [
                _Supplied(
                    provider=provider,
                    value=record.attributes[field_name],
                    retrieved_at=record.retrieved_at,
                    derived=field_name in record.derived_fields,
                )
                for provider, record in latest.items()
                if field_name in record.attributes
            ]
            if not supplied:
                continue
            order = active_policy.order_for(entity_type, field_name)
            chosen, reason = self._choose(
                supplied, order, time_sensitive=spec.time_sensitive, now=now
            )
            entity.attributes[field_name] = chosen.value
            result.provenance[field_name] = FieldProvenance(
                field=field_name,
                provider=chosen.provider,
                reason=reason,
                confidence=_field_confidence(chosen, kinds, confidence),
                retrieved_at=chosen.retrieved_at,
            )
            if reason is SelectionReason.FRESHNESS_OVERRIDE:
                log.debug(
                    "%s %s.%s: fresher %s value overrides static priority",
                    entity_type,
                    canonical_id,
                    field_name,
                    chosen.provider,
                )
            # An inferred value that lost to a reported one is not a disagreement.
            disagreeing = [
                item
                for item in supplied
                if item.provider != chosen.provider
                and (chosen.derived or not item.derived)
                and values_disagree(spec, item.value, chosen.value)
            ]
            if disagreeing:
                result.conflicts.append(
                    _conflict(entity_type, canonical_id, field_name, chosen, [chosen, *disagreeing])
                )

        self._merge_references(result, references or {}, active_policy.default_order(entity_type))
        for conflict in result.conflicts:
            log.info("Merge conflict %s", conflict.describe())
        return result

    def _choose(
        self,
        supplied: Sequence[_Supplied],
        order: ProviderOrder,
        *,
        time_sensitive: bool,
        now: datetime,
    ) -> tuple[_Supplied, SelectionReason]:
        # Provider-reported values always beat derived ones.
        reported = [item for item in supplied if not item.derived]
        pool = reported or list(supplied)
        rank = {provider: index for index, provider in enumerate(order)}
        ranked = sorted(pool, key=lambda item: (rank.get(item.provider, len(rank)), item.provider))
        leader = ranked[0]
        reason = SelectionReason.ONLY_SOURCE if len(supplied) == 1 else SelectionReason.PRIORITY

        if time_sensitive and len(ranked) > 1:
            fresher = [
                item
                for item in ranked[1:]
                if item.retrieved_at - leader.retrieved_at >= self.stale_after
                and now - item.retrieved_at <= self.freshness_window
            ]
            if fresher:
                freshest = max(fresher, key=lambda item: item.retrieved_at)
                return freshest, SelectionReason.FRESHNESS_OVERRIDE
        return leader, reason

    @staticmethod
    def _merge_references(
        result: MergeResult,
        references: Mapping[Provider, Mapping[str, UUID]],
        order: ProviderOrder,
    ) -> None:
        rank = {provider: index for index, provider in enumerate(order)}
        providers = sorted(
            references, key=lambda provider: (rank.get(provider, len(rank)), provider)
        )
        entity = result.entity
        for provider in providers:
            for role, referenced_id in references[provider].items():
                current = entity.references.get(role)
                if current is None:
                    entity.references[role] = referenced_id
                    continue
                if current != referenced_id:
                    chosen = next(p for p in providers if references[p].get(role) == current)
                    result.conflicts.append(
                        MergeConflict(
                            entity_type=entity.entity_type,
                            canonical_id=entity.canonical_id,
                            field=role,
                            chosen_provider=chosen,
                            values={chosen: current, provider: referenced_id},
                        )
                    )


def _latest_per_provider(records: Sequence[ProviderRecord]) -> dict[Provider, ProviderRecord]:
    latest: dict[Provider, ProviderRecord] = {}
    for record in records:
        current = latest.get(record.provider)
        if current is None or record.retrieved_at > current.retrieved_at:
            latest[record.provider] = record
    return latest


def _field_confidence(
    chosen: _Supplied,
    match_kinds: Mapping[Provider, MatchKind],
    confidence: Confidence,
) -> Confidence:
    if chosen.derived:
        return Confidence.DERIVED
    if match_kinds.get(chosen.provider) is MatchKind.FUZZY:
        return Confidence.FUZZY
    return confidence


def _conflict(
    entity_type: EntityType,
    canonical_id: UUID,
    field_name: str,
    chosen: _Supplied,
    items: Sequence[_Supplied],
) -> MergeConflict:
    return MergeConflict(
        entity_type=entity_type,
        canonical_id=canonical_id,
        field=field_name,
        chosen_provider=chosen.provider,
        values={item.provider: item.value for item in items},
    )
