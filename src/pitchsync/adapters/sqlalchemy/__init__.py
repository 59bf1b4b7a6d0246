"""SQLAlchemy adapter package for pitchsync."""

from __future__ import annotations

from .mappings import ENTITY_TABLES, metadata
from .repositories import (
    SqlAlchemyAliasRepository,
    SqlAlchemyCanonicalRecordRepository,
    SqlAlchemyConflictRepository,
    SqlAlchemyProvenanceRepository,
)
from .unit_of_work import SqlAlchemyUnitOfWork, shutdown, startup

__all__ = [
    "ENTITY_TABLES",
    "SqlAlchemyAliasRepository",
    "SqlAlchemyCanonicalRecordRepository",
    "SqlAlchemyConflictRepository",
    "SqlAlchemyProvenanceRepository",
    "SqlAlchemyUnitOfWork",
    "metadata",
    "shutdown",
    "startup",
]
