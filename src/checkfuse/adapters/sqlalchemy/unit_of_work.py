"""SQLAlchemy-backed unit of work for fusion sessions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Literal

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from checkfuse.adapters.sqlalchemy.mappings import start_mappers
from checkfuse.adapters.sqlalchemy.migrations import upgrade_head
from checkfuse.adapters.sqlalchemy.repositories import (
    SqlAlchemyDocumentCache,
    SqlAlchemyFusionRecordRepository,
    SqlAlchemyFusionSessionRepository,
)
from checkfuse.config import get_database_config
from checkfuse.domain.ports.unit_of_work import FusionRepositories

if TYPE_CHECKING:
    from types import TracebackType

    from sqlalchemy.engine import Engine

log = getLogger(__name__)


class StartupError(RuntimeError):
    """Raised when a SQLAlchemy unit of work is used before initialisation."""


class _EngineHolder:
    """Process-wide engine and session factory shared by every unit of work."""

    def __init__(self) -> None:
        self.engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None

    def install(self, engine: Engine) -> None:
        self.engine = engine
        self._session_factory = sessionmaker(bind=engine, expire_on_commit=False)

    def clear(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._session_factory = None

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            raise StartupError(
                "SQLAlchemy adapter not initialised. Call checkfuse.adapters.sqlalchemy."
                "unit_of_work.startup() before requesting a unit of work."
            )
        return self._session_factory


_HOLDER = _EngineHolder()


def startup(
    *,
    engine: Engine | None = None,
    database_uri: str | None = None,
    force: bool = False,
) -> None:
    """Create (or adopt) the engine, migrate the schema to head and map the session entity.

    A second call raises ``StartupError`` unless ``force`` is set; tests use
    ``force=True`` to swap in a fresh in-memory database.
    """

    if _HOLDER.engine is not None and not force:
        raise StartupError(
            "SQLAlchemy adapter already initialised. Pass force=True to reconfigure."
        )

    resolved_engine = engine or create_engine(
        database_uri or get_database_config().uri, future=True
    )
    start_mappers()
    upgrade_head(engine=resolved_engine)
    _HOLDER.install(resolved_engine)
    log.debug("Fusion store ready at %s", resolved_engine.url)


def is_started() -> bool:
    return _HOLDER.engine is not None


def shutdown() -> None:
    """Dispose the managed engine; the next unit of work needs ``startup()`` again."""

    _HOLDER.clear()


class SqlAlchemyFusionUnitOfWork:
    """One database transaction over cached documents, sessions and records."""

    def __init__(self) -> None:
        self._session_factory = _HOLDER.session_factory
        self._session: Session | None = None
        self._repositories: FusionRepositories | None = None

    def __enter__(self) -> SqlAlchemyFusionUnitOfWork:
        if self._session is not None:
            raise StartupError("Unit of work session already initialised")
        session = self._session_factory()
        self._session = session
        self._repositories = FusionRepositories(
            documents=SqlAlchemyDocumentCache(session),
            sessions=SqlAlchemyFusionSessionRepository(session),
            records=SqlAlchemyFusionRecordRepository(session),
        )
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> Literal[False]:
        if exc_type is not None:
            self.rollback()
        self.session.close()
        self._session = None
        self._repositories = None
        return False

    def commit(self) -> None:
        self.session.commit()

    def rollback(self) -> None:
        self.session.rollback()

    @property
    def repositories(self) -> FusionRepositories:
        if self._repositories is None:
            raise StartupError("Unit of work session not initialised")
        return self._repositories

    @property
    def session(self) -> Session:
        if self._session is None:
            raise StartupError("Unit of work session not initialised")
        return self._session


if TYPE_CHECKING:
    from checkfuse.domain.ports.unit_of_work import FusionUnitOfWork

    _uow_check: FusionUnitOfWork = SqlAlchemyFusionUnitOfWork()
