from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import find_dotenv, load_dotenv

from checkfuse.app import (
    Review,
    accept_auto_candidates,
    export_review,
    list_documents,
    list_sessions,
    load_document,
    open_session,
    resume_review,
    run_analysis,
    touch_review,
    write_export,
)
from checkfuse.config import configure_logging
from checkfuse.domain.model import MergedItem

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)


def _add_merged_item_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--section", type=str, required=True, help="Section of the merged item")
    parser.add_argument("--text", type=str, required=True, help="Question text of the merged item")
    parser.add_argument("--subsection", type=str, help="Optional subsection of the merged item")


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--doc1",
        nargs="+",
        required=True,
        metavar="ITEM_ID",
        help="Item ids selected from the first document",
    )
    parser.add_argument(
        "--doc2",
        nargs="+",
        required=True,
        metavar="ITEM_ID",
        help="Item ids selected from the second document",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Merge two certification checklists")
    subparsers = parser.add_subparsers(dest="command", required=True)

    parse_cmd = subparsers.add_parser("parse", help="Parse a checklist text file")
    parse_cmd.add_argument("path", type=Path, help="Extracted text of the checklist")
    parse_cmd.add_argument(
        "--no-cache",
        action="store_true",
        help="Parse without reading or writing the document cache",
    )

    analyze = subparsers.add_parser("analyze", help="Request fusion candidates for two checklists")
    analyze.add_argument("doc1", type=Path, help="Extracted text of the first checklist")
    analyze.add_argument("doc2", type=Path, help="Extracted text of the second checklist")
    analyze.add_argument("--name", type=str, help="Name of a newly created session")
    analyze.add_argument(
        "--auto-accept",
        action="store_true",
        help="Accept every candidate flagged for auto-apply after ingestion",
    )

    review = subparsers.add_parser("review", help="Review the fusions of a session")
    review.add_argument("session_id", type=str, help="Fusion session id")
    review_sub = review.add_subparsers(dest="review_command", required=True)

    review_sub.add_parser("status", help="Show session statistics and pending fusions")
    review_sub.add_parser("auto", help="Accept every auto-apply candidate")

    accept = review_sub.add_parser("accept", help="Accept a pending fusion")
    accept.add_argument("fusion_id", type=str)

    reject = review_sub.add_parser("reject", help="Reject a pending fusion")
    reject.add_argument("fusion_id", type=str)
    reject.add_argument("--reason", type=str, help="Why the fusion was rejected")

    undo = review_sub.add_parser("undo", help="Revert a decision")
    undo.add_argument("fusion_id", type=str)

    edit = review_sub.add_parser("edit", help="Replace the merged item of a fusion")
    edit.add_argument("fusion_id", type=str)
    _add_merged_item_arguments(edit)
    edit.add_argument("--notes", type=str, help="Free-form notes about the edit")

    manual = review_sub.add_parser("manual", help="Fuse selected items by hand")
    _add_selection_arguments(manual)
    _add_merged_item_arguments(manual)

    separate = review_sub.add_parser("separate", help="Keep selected items separate")
    _add_selection_arguments(separate)
    separate.add_argument("--reason", type=str, help="Why the items stay distinct")

    sessions = subparsers.add_parser("sessions", help="List recent fusion sessions")
    sessions.add_argument("--limit", type=int, default=20, help="Number of sessions to show")
    sessions.add_argument(
        "--open",
        dest="open_only",
        action="store_true",
        help="Only show sessions that are neither completed nor archived",
    )

    documents = subparsers.add_parser("documents", help="List recently cached documents")
    documents.add_argument("--limit", type=int, default=20, help="Number of documents to show")

    export = subparsers.add_parser("export", help="Assemble the final checklist of a session")
    export.add_argument("session_id", type=str, help="Fusion session id")
    export.add_argument("--output", type=Path, help="Destination JSON file")
    export.add_argument(
        "--complete",
        action="store_true",
        help="Mark the session as completed after exporting",
    )

    return parser.parse_args(list(argv))


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _merged_item(args: argparse.Namespace) -> MergedItem:
    return MergedItem(section=args.section, text=args.text, subsection=args.subsection)


def _log_status(review: Review) -> None:
    summary = review.engine.summary()
    log.info(
        "Session %s (%s): total=%s, pending=%s, accepted=%s, edited=%s, rejected=%s, "
        "manual=%s, kept_separate=%s, avg_confidence=%s",
        review.session.id,
        review.session.status,
        summary.total,
        summary.pending,
        summary.accepted,
        summary.edited,
        summary.rejected,
        summary.manual,
        summary.kept_separate,
        summary.average_confidence,
    )
    for record in review.engine.pending():
        log.info(
            "Pending %s: doc1=%s doc2=%s score=%s",
            record.fusion_id,
            ",".join(record.doc1_item_ids),
            ",".join(record.doc2_item_ids),
            record.confidence_score,
        )


def _run_review(args: argparse.Namespace) -> None:
    review = resume_review(_parse_uuid(args.session_id))
    engine = review.engine
    match args.review_command:
        case "status":
            _log_status(review)
            return
        case "auto":
            accept_auto_candidates(review)
        case "accept":
            engine.accept(args.fusion_id)
        case "reject":
            engine.reject(args.fusion_id, reason=args.reason)
        case "undo":
            engine.undo(args.fusion_id)
        case "edit":
            engine.edit(args.fusion_id, _merged_item(args), notes=args.notes)
        case "manual":
            outcome = engine.create_manual(args.doc1, args.doc2, _merged_item(args))
            if outcome.record is not None:
                log.info("Manual fusion id: %s", outcome.record.fusion_id)
        case "separate":
            outcome = engine.keep_separate(args.doc1, args.doc2, reason=args.reason)
            if outcome.record is not None:
                log.info("Keep-separate decision id: %s", outcome.record.fusion_id)
        case _:
            raise ValueError(f"Unsupported review command: {args.review_command}")
    touch_review(review)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point, also installed as the ``checkfuse`` console script."""
    load_dotenv(find_dotenv(usecwd=True))
    signal(SIGINT, sigint_handler)
    configure_logging()
    parsed_args: argparse.Namespace
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        if parsed_args.command == "parse":
            loaded = load_document(parsed_args.path, use_cache=not parsed_args.no_cache)
            document = loaded.document
            log.info(
                "Parsed %s: %s section(s), %s item(s), hash %s",
                document.filename,
                len(document.sections),
                document.item_count,
                loaded.content_hash,
            )
        elif parsed_args.command == "analyze":
            doc1 = load_document(parsed_args.doc1)
            doc2 = load_document(parsed_args.doc2)
            review = open_session(doc1, doc2, name=parsed_args.name)
            report = run_analysis(review)
            if parsed_args.auto_accept:
                accept_auto_candidates(review)
            log.info(
                "Session %s ready: %s candidate(s) ingested, %s rejected",
                review.session.id,
                len(report.ingested),
                len(report.rejections),
            )
        elif parsed_args.command == "sessions":
            for session in list_sessions(parsed_args.limit, open_only=parsed_args.open_only):
                log.info(
                    "%s  %s  %s  created=%s  suggestions=%s",
                    session.id,
                    session.status,
                    session.name,
                    session.created_at,
                    session.total_suggestions,
                )
        elif parsed_args.command == "documents":
            for cached in list_documents(parsed_args.limit):
                log.info(
                    "%s  %s  items=%s  cached=%s",
                    cached.content_hash[:12],
                    cached.filename,
                    cached.item_count,
                    cached.created_at,
                )
        elif parsed_args.command == "review":
            _run_review(parsed_args)
        elif parsed_args.command == "export":
            review = resume_review(_parse_uuid(parsed_args.session_id))
            checklist = export_review(review, complete=parsed_args.complete)
            destination = write_export(checklist, review, destination=parsed_args.output)
            summary = checklist.summary
            log.info(
                "Exported %s: fused=%s, rejected_originals=%s, unfused=%s",
                destination,
                summary.fused,
                summary.rejected_originals,
                summary.unfused,
            )
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301

    except Exception:
        log.exception("Fatal error during %s", parsed_args.command)
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    main()
