"""Run state machine."""

from __future__ import annotations

from enum import StrEnum


class RunState(StrEnum):
    PENDING = "pending"
    FETCHING = "fetching"
    ADAPTING = "adapting"
    RESOLVING = "resolving"
    MERGING = "merging"
    COMMITTING = "committing"
    REPORTING = "reporting"
    COMPLETED = "completed"
    COMPLETED_WITH_ERRORS = "completed_with_errors"

    @property
    def is_terminal(self) -> bool:
        return self in {RunState.COMPLETED, RunState.COMPLETED_WITH_ERRORS}


# Per-entity-type stages, in the order each entity type passes through them.
STAGE_SEQUENCE: tuple[RunState, ...] = (
    RunState.FETCHING,
    RunState.ADAPTING,
    RunState.RESOLVING,
    RunState.MERGING,
    RunState.COMMITTING,
)
