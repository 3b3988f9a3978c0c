"""Application orchestration entry points."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Callable
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Any

from checkfuse.adapters.fusion_service import FusionServiceClient, FusionServiceError
from checkfuse.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyFusionUnitOfWork,
    is_started,
    startup,
)
from checkfuse.config import get_fusion_service_config, get_storage_config
from checkfuse.domain.export import assemble
from checkfuse.domain.model import FusionSession, SessionStatus
from checkfuse.domain.parsing import parse
from checkfuse.domain.ports.unit_of_work import FusionUnitOfWork
from checkfuse.domain.reconciliation import (
    ItemAlreadyUsedError,
    ReconciliationEngine,
    ReconciliationState,
)

if TYPE_CHECKING:
    from pathlib import Path
    from uuid import UUID

    from checkfuse.domain.export import FinalChecklist
    from checkfuse.domain.model import CachedDocument, Document, FusionRecord
    from checkfuse.domain.parsing import ParserOptions
    from checkfuse.domain.ports import FusionAnalyzer
    from checkfuse.domain.reconciliation import IngestReport

UnitOfWorkFactory = Callable[[], FusionUnitOfWork]


log = getLogger(__name__)


class SessionNotFoundError(LookupError):
    """Raised when a review session or one of its cached documents is missing."""


@dataclass(frozen=True, slots=True)
class LoadedDocument:
    document: Document
    content_hash: str
    cached: bool


@dataclass(slots=True)
class Review:
    """A fusion session together with the engine holding its records."""

    session: FusionSession
    engine: ReconciliationEngine


class UnitOfWorkRecordSink:
    """Persists every engine change of one session in its own unit of work."""

    def __init__(self, session_id: UUID, unit_of_work_factory: UnitOfWorkFactory) -> None:
        self._session_id = session_id
        self._unit_of_work_factory = unit_of_work_factory

    def persist_record(self, record: FusionRecord) -> None:
        with self._unit_of_work_factory() as uow:
            uow.repositories.records.save(self._session_id, record)
            uow.commit()

    def remove_record(self, fusion_id: str) -> None:
        with self._unit_of_work_factory() as uow:
            uow.repositories.records.delete(self._session_id, fusion_id)
            uow.commit()


def content_hash(raw: bytes) -> str:
    return hashlib.sha256(raw).hexdigest()


def _resolve_unit_of_work(factory: UnitOfWorkFactory | None) -> UnitOfWorkFactory:
    if factory is not None:
        return factory
    if not is_started():
        startup()
    return SqlAlchemyFusionUnitOfWork


def _save_session(session: FusionSession, unit_of_work_factory: UnitOfWorkFactory) -> None:
    with unit_of_work_factory() as uow:
        uow.repositories.sessions.update(session)
        uow.commit()


def load_document(
    path: Path,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    options: ParserOptions | None = None,
    use_cache: bool = True,
) -> LoadedDocument:
    """Parse ``path``, reusing a cached parse of identical file content."""

    raw = path.read_bytes()
    digest = content_hash(raw)
    if not use_cache:
        document = parse(raw.decode("utf-8", errors="replace"), path.name, options=options)
        return LoadedDocument(document=document, content_hash=digest, cached=False)

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    with effective_uow() as uow:
        cached = uow.repositories.documents.load_cached_document(digest)
        if cached is not None:
            log.info("Using cached parse of %s (%s)", path.name, digest[:12])
            return LoadedDocument(document=cached, content_hash=digest, cached=True)

        document = parse(raw.decode("utf-8", errors="replace"), path.name, options=options)
        uow.repositories.documents.save_document(digest, document)
        uow.commit()
    return LoadedDocument(document=document, content_hash=digest, cached=False)


def open_session(
    doc1: LoadedDocument,
    doc2: LoadedDocument,
    *,
    name: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Review:
    """Resume the open session for this document pair or start a new one."""

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    with effective_uow() as uow:
        session = uow.repositories.sessions.find_open_for_pair(
            doc1.content_hash, doc2.content_hash
        )
        if session is None:
            session = FusionSession(
                doc1_hash=doc1.content_hash,
                doc2_hash=doc2.content_hash,
                name=name or f"{doc1.document.filename} + {doc2.document.filename}",
            )
            uow.repositories.sessions.add(session)
            uow.commit()
            log.info("Created fusion session %s (%s)", session.id, session.name)
            records: list[FusionRecord] = []
        else:
            log.info("Resuming fusion session %s (%s)", session.id, session.status)
            records = uow.repositories.records.list_for_session(session.id)

    first, second = doc1.document, doc2.document
    if session.doc1_hash != doc1.content_hash:
        first, second = second, first
    return _build_review(session, first, second, records, effective_uow)


def resume_review(
    session_id: UUID,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> Review:
    """Rebuild the engine of a stored session from its cached documents."""

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    with effective_uow() as uow:
        session = uow.repositories.sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Unknown fusion session: {session_id}")
        documents = uow.repositories.documents
        doc1 = documents.load_cached_document(session.doc1_hash)
        doc2 = documents.load_cached_document(session.doc2_hash)
        if doc1 is None or doc2 is None:
            raise SessionNotFoundError(
                f"Parsed documents of session {session_id} are no longer cached"
            )
        records = uow.repositories.records.list_for_session(session.id)
    return _build_review(session, doc1, doc2, records, effective_uow)


def list_sessions(
    limit: int = 20,
    *,
    open_only: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[FusionSession]:
    """Most recently created sessions first; ``open_only`` skips completed and archived ones."""

    with _resolve_unit_of_work(unit_of_work_factory)() as uow:
        return uow.repositories.sessions.list_recent(limit, open_only=open_only)


def list_documents(
    limit: int = 20,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[CachedDocument]:
    with _resolve_unit_of_work(unit_of_work_factory)() as uow:
        return uow.repositories.documents.list_recent(limit)


def _build_review(
    session: FusionSession,
    doc1: Document,
    doc2: Document,
    records: list[FusionRecord],
    unit_of_work_factory: UnitOfWorkFactory,
) -> Review:
    engine = ReconciliationEngine(
        doc1,
        doc2,
        state=ReconciliationState.from_records(records),
        record_sink=UnitOfWorkRecordSink(session.id, unit_of_work_factory),
    )
    return Review(session=session, engine=engine)


def run_analysis(
    review: Review,
    *,
    analyzer: FusionAnalyzer | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> IngestReport:
    """Ask the fusion service for candidates and ingest them as pending records.

    A failing service call leaves the engine untouched and puts the session
    back into the status it had before the call.
    """

    effective_uow = _resolve_unit_of_work(unit_of_work_factory)
    effective_analyzer = analyzer or FusionServiceClient(config=get_fusion_service_config())
    session = review.session
    previous_status = session.status

    session.mark(SessionStatus.ANALYZING)
    _save_session(session, effective_uow)
    try:
        result = effective_analyzer(review.engine.doc1, review.engine.doc2, session_id=session.id)
    except FusionServiceError:
        log.exception("Fusion analysis failed for session %s", session.id)
        session.status = previous_status
        _save_session(session, effective_uow)
        raise

    report = review.engine.ingest(result.candidates)
    report.extend(result.rejections)

    summary = review.engine.summary()
    session.total_suggestions = summary.total
    session.avg_confidence = summary.average_confidence
    session.mark(SessionStatus.READY)
    _save_session(session, effective_uow)
    log.info(
        "Analysis finished for session %s: %s ingested, %s rejected, %s pairs analyzed",
        session.id,
        len(report.ingested),
        len(report.rejections),
        result.total_pairs_analyzed,
    )
    return report


def accept_auto_candidates(review: Review) -> list[str]:
    """Accept every pending record flagged for auto-apply, skipping item conflicts."""

    accepted: list[str] = []
    for record in review.engine.auto_apply_candidates():
        try:
            review.engine.accept(record.fusion_id)
        except ItemAlreadyUsedError as exc:
            log.warning("Skipped auto-apply of %s: %s", record.fusion_id, exc)
            continue
        accepted.append(record.fusion_id)
    log.info("Auto-applied %s of the high-confidence fusion(s)", len(accepted))
    return accepted


def touch_review(
    review: Review,
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> None:
    """Move a ready (or freshly created) session into review after a user action."""

    if review.session.status in (SessionStatus.CREATED, SessionStatus.READY):
        review.session.mark(SessionStatus.IN_REVIEW)
        _save_session(review.session, _resolve_unit_of_work(unit_of_work_factory))


def export_review(
    review: Review,
    *,
    complete: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> FinalChecklist:
    """Assemble the final checklist; optionally close the session."""

    engine = review.engine
    checklist = assemble(engine.state, list(engine.doc1.items()), list(engine.doc2.items()))
    if complete:
        review.session.mark(SessionStatus.COMPLETED)
        _save_session(review.session, _resolve_unit_of_work(unit_of_work_factory))
        log.info("Completed fusion session %s", review.session.id)
    return checklist


def _document_outline(document: Document) -> dict[str, Any]:
    """Section headings of a source document in rendering order."""

    return {
        "filename": document.filename,
        "sections": [
            {
                "id": section.id,
                "title": section.title,
                "subsections": [subsection.name for subsection in section.subsections],
            }
            for section in document.sorted_sections()
        ],
    }


def write_export(
    checklist: FinalChecklist,
    review: Review,
    *,
    destination: Path | None = None,
) -> Path:
    """Write the checklist payload as JSON, by default into the export directory."""

    if destination is None:
        destination = get_storage_config().export_path(review.session.id)
    payload = {
        "session": {
            "id": str(review.session.id),
            "name": review.session.name,
            "status": review.session.status,
            "doc1": review.engine.doc1.filename,
            "doc2": review.engine.doc2.filename,
        },
        "documents": {
            "doc1": _document_outline(review.engine.doc1),
            "doc2": _document_outline(review.engine.doc2),
        },
        **checklist.to_payload(),
    }
    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    log.info("Wrote export of session %s to %s", review.session.id, destination)
    return destination
