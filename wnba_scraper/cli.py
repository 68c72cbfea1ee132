"""Command line entry point: ``wnba-import [--force]``.

Ensures the tables exist, runs the ingestion pipeline once and prints
progress lines, the reset report (force runs) and a final row-count summary.
Exits 0 on success and 1 when any stage fails.
"""

from __future__ import annotations

import argparse
import signal
import sys
import threading
import traceback
from collections.abc import Sequence
from types import FrameType
from typing import TextIO

from sqlalchemy.exc import SQLAlchemyError

from .config import Settings, get_settings
from .db.models import DEPENDENCY_ORDER
from .db.session import Store
from .logging import configure_logging, logger
from .persistence import Persister
from .persistence.reset import Resetter, ResetReport
from .provider import PayloadParser, ProviderFetcher
from .services.pipeline import IngestionPipeline, PipelineState, RunSummary

_STAGE_MESSAGES: dict[PipelineState, str] = {
    PipelineState.RESETTING: "Clearing existing WNBA data...",
    PipelineState.FETCHING_TEAMS: "Importing teams...",
    PipelineState.FETCHING_SCHEDULE: "Importing schedule...",
    PipelineState.FETCHING_PLAY_BY_PLAY: "Importing play-by-play...",
    PipelineState.FETCHING_BOX_SCORE: "Importing box scores...",
    PipelineState.SUMMARIZING: "Summarizing...",
}

_TABLE_LABELS: dict[str, str] = {
    "wnba_teams": "Teams",
    "wnba_players": "Players",
    "wnba_games": "Games",
    "wnba_game_teams": "Game teams",
    "wnba_plays": "Plays",
    "wnba_player_games": "Player game stats",
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wnba-import",
        description="Import WNBA teams, schedule, play-by-play and box scores",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Clear all existing WNBA data before importing",
    )
    return parser


def build_pipeline(
    settings: Settings,
    store: Store,
    fetcher: ProviderFetcher,
    *,
    cancel_event: threading.Event | None = None,
    out: TextIO | None = None,
) -> IngestionPipeline:
    stream = out or sys.stdout

    def report_transition(previous: PipelineState, current: PipelineState) -> None:
        message = _STAGE_MESSAGES.get(current)
        if message:
            print(message, file=stream, flush=True)

    return IngestionPipeline(
        fetcher=fetcher,
        parser=PayloadParser(),
        persister=Persister(store, batch_size=settings.pipeline_config.persist_batch_size),
        resetter=Resetter(store),
        store=store,
        cancel_event=cancel_event,
        on_transition=report_transition,
    )


def print_reset_report(report: ResetReport, out: TextIO) -> None:
    for entry in report.tables:
        if entry.was_empty:
            print(f"  {entry.table}: already empty", file=out)
        elif entry.cleared:
            print(f"  {entry.table}: cleared {entry.rows_before} rows ({entry.method})", file=out)
        else:
            print(f"  {entry.table}: NOT cleared", file=out)
    for warning in report.warnings:
        target = warning.table or "store"
        print(f"  warning [{target}]: {warning.message}", file=out)


def print_summary(summary: RunSummary, out: TextIO) -> None:
    print("Import complete.", file=out)
    for result in summary.category_results:
        print(
            f"  {result.category.value}: {result.received} received, "
            f"{result.inserted} inserted, {result.updated} updated",
            file=out,
        )
    print("Row counts:", file=out)
    width = max(len(label) for label in _TABLE_LABELS.values())
    for model in DEPENDENCY_ORDER:
        table = model.__tablename__
        label = _TABLE_LABELS.get(table, table)
        print(f"  {label:<{width}}  {summary.counts.get(table, 0)}", file=out)


def print_failure(summary: RunSummary, err: TextIO) -> None:
    stage = summary.failed_stage.value if summary.failed_stage else "unknown"
    print(f"Import failed during {stage}: {summary.error}", file=err)
    if summary.error is not None:
        traceback.print_exception(
            type(summary.error), summary.error, summary.error.__traceback__, file=err
        )


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level, settings.environment)

    out, err = sys.stdout, sys.stderr
    cancel_event = threading.Event()

    def request_cancel(signum: int, frame: FrameType | None) -> None:
        logger.warning("cancel_requested", signal=signum)
        cancel_event.set()

    try:
        previous_handler = signal.signal(signal.SIGTERM, request_cancel)
    except ValueError:
        # Only the main thread may install signal handlers
        previous_handler = None

    store = Store.from_url(settings.database_url)
    try:
        if settings.pipeline_config.ensure_schema:
            print("Ensuring WNBA tables exist...", file=out, flush=True)
            store.ensure_schema()

        with ProviderFetcher(settings.provider_config) as fetcher:
            pipeline = build_pipeline(settings, store, fetcher, cancel_event=cancel_event, out=out)
            summary = pipeline.run(force=args.force)
    except SQLAlchemyError as exc:
        logger.exception("import_store_error", error=str(exc))
        print(f"Import failed: {exc}", file=err)
        traceback.print_exc(file=err)
        return 1
    finally:
        if previous_handler is not None:
            signal.signal(signal.SIGTERM, previous_handler)
        store.dispose()

    if summary.reset_report is not None:
        print("Reset:", file=out)
        print_reset_report(summary.reset_report, out)

    if not summary.succeeded:
        print_failure(summary, err)
        return 1

    print_summary(summary, out)
    return 0


if __name__ == "__main__":
    sys.exit(main())
