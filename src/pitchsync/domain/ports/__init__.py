"""Ports connecting the domain to providers and the canonical store."""

from __future__ import annotations

from .fetching import FetchContext, FetchedBatch, ProviderSource
from .persistence import (
    AliasRepository,
    CanonicalRecordRepository,
    ConflictRepository,
    ProvenanceRepository,
)
from .unit_of_work import (
    ReconciliationRepositories,
    ReconciliationUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "AliasRepository",
    "CanonicalRecordRepository",
    "ConflictRepository",
    "FetchContext",
    "FetchedBatch",
    "ProvenanceRepository",
    "ProviderSource",
    "ReconciliationRepositories",
    "ReconciliationUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
]
