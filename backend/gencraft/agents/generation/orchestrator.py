"""Pipeline Orchestrator — one GenCraft run at a time.

Runs the generation graph for a submitted idea, keeps a live PipelineRun
record (per-stage status, outputs, notifications) and decides per stage
whether a fallback halts the run or is passed downstream.
"""

from __future__ import annotations

import functools
import inspect
import logging
import time
from datetime import datetime
from typing import Any, Callable, Optional

from .graph import PipelineStep, create_generation_graph, pipeline_steps
from .schema import (
    FailureKind,
    PipelineEvent,
    PipelineRun,
    PipelineVariant,
    StageResult,
    StageState,
    StageStatus,
)
from .state import GenerationState, initial_state

logger = logging.getLogger(__name__)

EventCallback = Callable[[PipelineEvent], Any]


class PipelineBusyError(Exception):
    """Raised when an idea is submitted while another run is in flight."""


def _set_status(run: PipelineRun, key: str, status: StageStatus,
                result: Optional[StageResult] = None) -> None:
    state = run.stages.setdefault(key, StageState())
    state.status = status
    if result is not None:
        state.failure = result.failure
        state.detail = result.detail


def _representative_code(step: PipelineStep, result: StageResult) -> str:
    if result.failure == FailureKind.EMPTY_RESULT:
        return ""
    if result.ok or step.forward_fallback:
        return result.output.as_source_text()
    return ""


class GenCraftOrchestrator:
    """Sequential generation pipeline with a single in-flight run."""

    def __init__(
        self,
        variant: PipelineVariant = PipelineVariant.FLOWCHART_FIRST,
        include_review: bool = False,
    ):
        self.variant = PipelineVariant(variant)
        self.include_review = include_review
        self._busy = False
        self._run: Optional[PipelineRun] = None

    # ── State exposed to callers ─────────────────────────────────────

    @property
    def is_busy(self) -> bool:
        """True while any stage of the current run is active."""
        return self._busy

    @property
    def current_run(self) -> Optional[PipelineRun]:
        """The in-flight run, or the last finished one."""
        return self._run

    # ── Notifications ────────────────────────────────────────────────

    async def _emit(self, run: PipelineRun, on_event: Optional[EventCallback],
                    event: PipelineEvent) -> None:
        run.events.append(event)
        log = logger.warning if event.level == "destructive" else logger.info
        log("[PIPELINE] %s — %s", event.title, event.description or event.status.value)

        if on_event is None:
            return
        try:
            outcome = on_event(event)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception:
            # Listener errors are logged, never propagated
            logger.exception("[PIPELINE] on_event callback failed for %r", event.title)

    # ── Step execution (called from graph nodes) ─────────────────────

    async def _execute_step(self, run: PipelineRun, on_event: Optional[EventCallback],
                            step: PipelineStep, state: GenerationState) -> dict:
        _set_status(run, step.key, StageStatus.RUNNING)
        result = await step.stage.run(step.build_fields(state))

        setattr(run, step.key, result.output)
        update: dict = {step.key: result.output}

        if step.key == "code":
            update["representative_code"] = _representative_code(step, result)

        halt = result.failure in step.halts_on
        if step.empty_note and not update.get("representative_code"):
            halt = True

        if result.ok and not halt:
            _set_status(run, step.key, StageStatus.SUCCEEDED, result)
            await self._emit(run, on_event, PipelineEvent(
                stage=step.key,
                status=StageStatus.SUCCEEDED,
                title=f"{step.title} Generated!",
            ))
        elif halt and step.empty_note:
            _set_status(run, step.key, StageStatus.FAILED_FALLBACK, result)
            title, description = step.empty_note
            await self._emit(run, on_event, PipelineEvent(
                stage=step.key,
                status=StageStatus.FAILED_FALLBACK,
                title=title,
                description=description,
            ))
        else:
            _set_status(run, step.key, StageStatus.FAILED_FALLBACK, result)
            await self._emit(run, on_event, PipelineEvent(
                stage=step.key,
                status=StageStatus.FAILED_FALLBACK,
                title=f"{step.title} Generation Failed",
                description=step.failure_description,
                level="destructive",
            ))

        if halt:
            run.halted_at = step.key
            update["halted"] = True
            logger.warning("[PIPELINE] Stage %r failed (%s) — halting run %s",
                           step.key, result.failure.value if result.failure else "no output", run.run_id)

        return update

    @staticmethod
    def _finalise(run: PipelineRun) -> None:
        for state in run.stages.values():
            if state.status == StageStatus.PENDING:
                state.status = StageStatus.SKIPPED
            elif state.status == StageStatus.RUNNING:
                state.status = StageStatus.FAILED_FALLBACK
                state.detail = state.detail or "run aborted"
        run.finished_at = datetime.utcnow()

    # ── Public entry point ───────────────────────────────────────────

    async def submit(
        self,
        idea: str,
        on_event: Optional[EventCallback] = None,
        *,
        variant: Optional[PipelineVariant] = None,
        include_review: Optional[bool] = None,
    ) -> PipelineRun:
        """Run the whole pipeline for `idea` and return the finished record.

        Raises
        ------
        ValueError
            If the idea is empty.
        PipelineBusyError
            If another run is still in flight.
        """
        if self._busy:
            raise PipelineBusyError("A generation run is already in progress.")

        idea = (idea or "").strip()
        if not idea:
            raise ValueError("Please enter your project idea.")

        variant = PipelineVariant(variant) if variant is not None else self.variant
        include_review = self.include_review if include_review is None else include_review

        self._busy = True
        try:
            steps = pipeline_steps(variant, include_review)
            run = PipelineRun(
                idea=idea,
                variant=variant,
                stages={step.key: StageState() for step in steps},
            )
            self._run = run

            execute = functools.partial(self._execute_step, run, on_event)
            graph = create_generation_graph(steps, execute).compile()

            logger.info("[PIPELINE] Run %s STARTED — variant=%s, stages=%d",
                        run.run_id, variant.value, len(steps))
            t0 = time.perf_counter()

            try:
                await graph.ainvoke(initial_state(idea))
            finally:
                self._finalise(run)

            run.completed = run.halted_at is None
            logger.info("[PIPELINE] Run %s FINISHED — completed=%s, halted_at=%s (%.0fms)",
                        run.run_id, run.completed, run.halted_at,
                        (time.perf_counter() - t0) * 1000)
            return run
        finally:
            self._busy = False
