"""Ingestion pipeline orchestrator.

A run is an explicit state machine:

    IDLE -> [RESETTING] -> FETCHING_TEAMS -> FETCHING_SCHEDULE
         -> FETCHING_PLAY_BY_PLAY -> FETCHING_BOX_SCORE -> SUMMARIZING -> DONE

Each FETCHING_* stage runs fetch -> parse -> persist for its category to
completion before the next one starts. The first ``IngestionError`` moves
the run to FAILED and the remaining categories are skipped. Store failures
during reset or summary are raised as ``StoreError`` and end the same way.
Runs are not resumable: a pipeline object executes exactly once.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

from ..db.session import Store
from ..errors import IngestionError, RunCancelled, StoreError
from ..logging import logger
from ..models import CATEGORY_ORDER, Category
from ..persistence import PersistResult, Persister
from ..persistence.reset import Resetter, ResetReport
from ..provider import PayloadParser, ProviderFetcher
from ..utils.datetime_utils import now_utc


class PipelineState(str, Enum):
    IDLE = "idle"
    RESETTING = "resetting"
    FETCHING_TEAMS = "fetching_teams"
    FETCHING_SCHEDULE = "fetching_schedule"
    FETCHING_PLAY_BY_PLAY = "fetching_play_by_play"
    FETCHING_BOX_SCORE = "fetching_box_score"
    SUMMARIZING = "summarizing"
    DONE = "done"
    FAILED = "failed"


FETCH_STATES: dict[Category, PipelineState] = {
    Category.TEAMS: PipelineState.FETCHING_TEAMS,
    Category.SCHEDULE: PipelineState.FETCHING_SCHEDULE,
    Category.PLAY_BY_PLAY: PipelineState.FETCHING_PLAY_BY_PLAY,
    Category.BOX_SCORE: PipelineState.FETCHING_BOX_SCORE,
}

TransitionCallback = Callable[[PipelineState, PipelineState], None]


@dataclass
class RunSummary:
    """Everything an operator needs to know about one run."""

    state: PipelineState = PipelineState.IDLE
    counts: dict[str, int] = field(default_factory=dict)
    category_results: list[PersistResult] = field(default_factory=list)
    reset_report: ResetReport | None = None
    history: list[PipelineState] = field(default_factory=list)
    failed_stage: PipelineState | None = None
    error: IngestionError | None = None
    started_at: datetime | None = None
    finished_at: datetime | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == PipelineState.DONE


class IngestionPipeline:
    """Runs the categories in dependency order against one store."""

    def __init__(
        self,
        fetcher: ProviderFetcher,
        parser: PayloadParser,
        persister: Persister,
        resetter: Resetter,
        store: Store,
        *,
        cancel_event: threading.Event | None = None,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.parser = parser
        self.persister = persister
        self.resetter = resetter
        self.store = store
        self.cancel_event = cancel_event or threading.Event()
        self.on_transition = on_transition
        self._state = PipelineState.IDLE
        self._history: list[PipelineState] = [PipelineState.IDLE]

    @property
    def state(self) -> PipelineState:
        return self._state

    def run(self, force: bool = False) -> RunSummary:
        """Execute one full ingestion run.

        With ``force`` every importer table is cleared before the first fetch.
        Fetch, parse, persist, store and cancellation errors end the run in
        FAILED; the error is returned on the summary rather than raised.
        """
        if self._state != PipelineState.IDLE:
            raise RuntimeError("pipeline has already run; build a new one for another run")

        summary = RunSummary(history=self._history, started_at=now_utc())
        logger.info("pipeline_start", force=force)

        try:
            if force:
                self._enter(PipelineState.RESETTING)
                summary.reset_report = self._reset()

            for category in CATEGORY_ORDER:
                self._enter(FETCH_STATES[category])
                summary.category_results.append(self._ingest(category))

            self._enter(PipelineState.SUMMARIZING)
            summary.counts = self._row_counts()
            self._transition(PipelineState.DONE)
        except IngestionError as exc:
            summary.failed_stage = self._state
            summary.error = exc
            logger.exception(
                "pipeline_failed",
                stage=self._state.value,
                error_type=type(exc).__name__,
                error=str(exc),
            )
            self._transition(PipelineState.FAILED)

        summary.state = self._state
        summary.finished_at = now_utc()
        logger.info(
            "pipeline_finished",
            state=summary.state.value,
            counts=summary.counts,
            duration_seconds=round((summary.finished_at - summary.started_at).total_seconds(), 3),
        )
        return summary

    def _reset(self) -> ResetReport:
        try:
            return self.resetter.reset()
        except SQLAlchemyError as exc:
            raise StoreError("reset", str(exc)) from exc

    def _row_counts(self) -> dict[str, int]:
        try:
            return self.store.row_counts()
        except SQLAlchemyError as exc:
            raise StoreError("row count", str(exc)) from exc

    def _ingest(self, category: Category) -> PersistResult:
        payload = self.fetcher.fetch(category)
        records = self.parser.parse(category, payload)
        return self.persister.persist(category, records)

    def _enter(self, state: PipelineState) -> None:
        """Stage boundary: honour cancellation, then transition."""
        if self.cancel_event.is_set():
            raise RunCancelled(state.value)
        self._transition(state)

    def _transition(self, state: PipelineState) -> None:
        previous = self._state
        self._state = state
        self._history.append(state)
        logger.info("pipeline_transition", previous=previous.value, current=state.value)
        if self.on_transition is not None:
            self.on_transition(previous, state)
