"""SQLAlchemy adapter package for checkfuse."""

from __future__ import annotations

from .mappings import mapper_registry, start_mappers
from .repositories import (
    SqlAlchemyDocumentCache,
    SqlAlchemyFusionRecordRepository,
    SqlAlchemyFusionSessionRepository,
)
from .unit_of_work import SqlAlchemyFusionUnitOfWork, StartupError, is_started, shutdown, startup

__all__ = [
    "SqlAlchemyDocumentCache",
    "SqlAlchemyFusionRecordRepository",
    "SqlAlchemyFusionSessionRepository",
    "SqlAlchemyFusionUnitOfWork",
    "StartupError",
    "is_started",
    "mapper_registry",
    "shutdown",
    "start_mappers",
    "startup",
]
