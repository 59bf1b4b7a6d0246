"""Reconciliation core: identity resolution, merging and idempotent commits."""

from __future__ import annotations

from .alias import AliasTable
from .contracts import Resolution, ResolutionStatus, UnresolvedRecord
from .merge import MergeEngine, values_disagree
from .persist import CommitFailure, CommitReport, DependencyFailure, UpsertWriter
from .resolve import IdentityResolver

__all__ = [
    "AliasTable",
    "CommitFailure",
    "CommitReport",
    "DependencyFailure",
    "IdentityResolver",
    "MergeEngine",
    "Resolution",
    "ResolutionStatus",
    "UnresolvedRecord",
    "UpsertWriter",
    "values_disagree",
]
