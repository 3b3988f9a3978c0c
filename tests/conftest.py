from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine  # noqa: TC002
from sqlalchemy.orm import Session, sessionmaker

from checkfuse.adapters.sqlalchemy import start_mappers
from checkfuse.adapters.sqlalchemy.migrations import upgrade_head
from checkfuse.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyFusionUnitOfWork,
    shutdown,
    startup,
)
from checkfuse.domain.parsing import parse
from checkfuse.domain.reconciliation import ReconciliationEngine
from tests.helpers.checklists import DOC1_TEXT, DOC2_TEXT, make_document

os.environ.setdefault("DATABASE_URI", "sqlite+pysqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from checkfuse.domain.model import Document


@pytest.fixture
def doc1() -> Document:
    return make_document("doc1.txt", "d1_a", "d1_b", "d1_c")


@pytest.fixture
def doc2() -> Document:
    return make_document("doc2.txt", "d2_a", "d2_b", "d2_c")


@pytest.fixture
def engine(doc1: Document, doc2: Document) -> ReconciliationEngine:
    return ReconciliationEngine(doc1, doc2)


@pytest.fixture
def parsed_doc1() -> Document:
    return parse(DOC1_TEXT, "supplier_audit.txt")


@pytest.fixture
def parsed_doc2() -> Document:
    return parse(DOC2_TEXT, "retail_audit.txt")


@pytest.fixture
def sqlite_engine() -> Iterator[Engine]:
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    start_mappers()
    upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def sqlite_session(sqlite_engine: Engine) -> Iterator[Session]:
    session_factory = sessionmaker(bind=sqlite_engine, future=True)
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def sqlite_unit_of_work(
    sqlite_engine: Engine,
) -> Iterator[Callable[[], SqlAlchemyFusionUnitOfWork]]:
    startup(engine=sqlite_engine, force=True)

    def factory() -> SqlAlchemyFusionUnitOfWork:
        return SqlAlchemyFusionUnitOfWork()

    try:
        yield factory
    finally:
        shutdown()
