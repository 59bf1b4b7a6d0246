"""Error taxonomy for the reconciliation pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

    from .model import AliasKey, EntityType


class PitchsyncError(RuntimeError):
    """Base class for pipeline errors."""


class ProviderError(PitchsyncError):
    """A provider call failed after the fetcher gave up on it."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        endpoint: str,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.provider = provider
        self.endpoint = endpoint
        self.status_code = status_code


class TransientNetworkError(ProviderError):
    """Timeouts, connection failures and 5xx responses that outlasted the retry budget."""


class RateLimitExceeded(ProviderError):
    """HTTP 429 persisted after every retry."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        endpoint: str,
        retry_after: float | None = None,
    ) -> None:
        super().__init__(message, provider=provider, endpoint=endpoint, status_code=429)
        self.retry_after = retry_after


class FatalRequestError(ProviderError):
    """Non-retryable request failure (4xx other than 429, or an unusable payload)."""


class AmbiguousResolutionError(PitchsyncError):
    def __init__(self, key: AliasKey, candidates: tuple[UUID, ...], *, detail: str) -> None:
        super().__init__(f"Ambiguous match for {key}: {detail}")
        self.key = key
        self.candidates = candidates
        self.detail = detail


class MissingReferenceError(PitchsyncError):
    """A reference needed to identify a record points at an entity with no alias."""

    def __init__(self, key: AliasKey, role: str, referenced: AliasKey) -> None:
        super().__init__(f"{key} references unknown {role} {referenced}")
        self.key = key
        self.role = role
        self.referenced = referenced


class AliasConflictError(PitchsyncError):
    """An alias is already bound to another canonical id and may only move via reassignment."""


class DependencyViolationError(PitchsyncError):
    """Referenced entity type has nothing committed, so the stage cannot proceed."""

    def __init__(self, entity_type: EntityType, missing: EntityType) -> None:
        super().__init__(
            f"Cannot commit {entity_type} records: no {missing} entities have been committed"
        )
        self.entity_type = entity_type
        self.missing = missing


class PersistenceError(PitchsyncError):
    """Writing one canonical record failed; the rest of the batch carries on."""

    def __init__(
        self,
        message: str,
        *,
        entity_type: EntityType | None = None,
        canonical_id: UUID | None = None,
    ) -> None:
        super().__init__(message)
        self.entity_type = entity_type
        self.canonical_id = canonical_id


class StageTimeoutError(PitchsyncError):
    def __init__(self, entity_type: EntityType, stage: str, seconds: float) -> None:
        super().__init__(f"{entity_type} {stage} exceeded {seconds:.0f}s")
        self.entity_type = entity_type
        self.stage = stage
        self.seconds = seconds


class RunCancelledError(PitchsyncError):
    """Raised between stages once cancellation has been requested."""


