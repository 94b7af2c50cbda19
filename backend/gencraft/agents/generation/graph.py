"""Generation pipeline graph.

Variant A (flowchart_first):
START -> plan -> flowchart -> code -> image -> insights [-> review] -> END

Variant B (advice_first):
START -> plan -> advice -> code -> image -> insights [-> review] -> END

Stages run strictly one after another. After every stage a conditional
edge sends the run to END once a stage has failed in a way that halts it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, FrozenSet, List, Optional, Tuple

from langgraph.graph import END, START, StateGraph

from .schema import FailureKind, PipelineVariant
from .stage import GenerationStage
from .stages import (
    ADVICE_STAGE,
    CODE_ADVICE_STAGE,
    CODE_STAGE,
    FLOWCHART_STAGE,
    IMAGE_STAGE,
    INSIGHTS_STAGE,
    PLAN_STAGE,
    REVIEW_STAGE,
)
from .state import GenerationState
from .timing import log_timing

ANY_FAILURE: FrozenSet[FailureKind] = frozenset(FailureKind)
EMPTY_ONLY: FrozenSet[FailureKind] = frozenset({FailureKind.EMPTY_RESULT})

CODE_EMPTY_NOTE = ("Code Generation Note", "No files were generated, skipping image and insights.")


@dataclass(frozen=True)
class PipelineStep:
    """One stage placed in a pipeline, with its wiring and notifications.

    `halts_on` lists the failure kinds that end the run. When
    `forward_fallback` is False a failed code stage hands "" downstream
    instead of its placeholder files. `empty_note` replaces the failure
    event when the stage halts on an empty result.
    """

    key: str
    stage: GenerationStage
    build_fields: Callable[[GenerationState], Dict[str, str]]
    title: str
    failure_description: str
    halts_on: FrozenSet[FailureKind] = frozenset()
    forward_fallback: bool = True
    empty_note: Optional[Tuple[str, str]] = None

    @property
    def node_name(self) -> str:
        # langgraph rejects node names that collide with state keys
        return f"{self.key}_stage"


# ── Field builders ───────────────────────────────────────────────────────

def _json(value) -> str:
    return value.model_dump_json() if value is not None else ""


def _idea_fields(state: GenerationState) -> Dict[str, str]:
    return {"project_idea": state["idea"]}


def _plan_fields(state: GenerationState) -> Dict[str, str]:
    return {"project_idea": state["idea"], "project_plan": _json(state["plan"])}


def _code_fields(state: GenerationState) -> Dict[str, str]:
    return {**_plan_fields(state), "flowchart": state["flowchart"] or ""}


def _code_advice_fields(state: GenerationState) -> Dict[str, str]:
    return {**_plan_fields(state), "strategic_advice": _json(state["advice"])}


def _image_fields(state: GenerationState) -> Dict[str, str]:
    return {"project_idea": state["idea"], "generated_code": state["representative_code"]}


def _insights_fields(state: GenerationState) -> Dict[str, str]:
    return {**_plan_fields(state), "generated_code": state["representative_code"]}


def _review_fields(state: GenerationState) -> Dict[str, str]:
    return {**_insights_fields(state), "project_insights": _json(state["insights"])}


# ── Step catalogue ───────────────────────────────────────────────────────

def _plan_step() -> PipelineStep:
    # Every plan fallback ends the run
    return PipelineStep("plan", PLAN_STAGE, _idea_fields,
                        "Project Plan", "Could not generate project plan. Please try again.",
                        halts_on=ANY_FAILURE)


def _image_step() -> PipelineStep:
    return PipelineStep("image", IMAGE_STAGE, _image_fields,
                        "Conceptual App Image", "Could not generate a conceptual image. Please try again.")


def _insights_step() -> PipelineStep:
    return PipelineStep("insights", INSIGHTS_STAGE, _insights_fields,
                        "Project Insights", "Could not generate project insights.")


def _review_step() -> PipelineStep:
    return PipelineStep("review", REVIEW_STAGE, _review_fields,
                        "Strategic Review", "Could not generate strategic review.")


def pipeline_steps(variant: PipelineVariant, include_review: bool = False) -> List[PipelineStep]:
    """Ordered steps for a pipeline variant."""
    if variant == PipelineVariant.ADVICE_FIRST:
        steps = [
            _plan_step(),
            PipelineStep("advice", ADVICE_STAGE, _plan_fields,
                         "Strategic Advice", "Could not generate strategic advice. Please try again.",
                         halts_on=ANY_FAILURE),
            PipelineStep("code", CODE_ADVICE_STAGE, _code_advice_fields,
                         "React Code & Styles", "Could not generate React code. Please try again.",
                         forward_fallback=False),
            _image_step(),
            _insights_step(),
        ]
    else:
        # Flowchart and code placeholders flow downstream; only zero files halts
        steps = [
            _plan_step(),
            PipelineStep("flowchart", FLOWCHART_STAGE, _idea_fields,
                         "Flowchart", "Could not generate flowchart. Please try again.",
                         halts_on=EMPTY_ONLY),
            PipelineStep("code", CODE_STAGE, _code_fields,
                         "React Code & Styles", "Could not generate React code. Please try again.",
                         halts_on=EMPTY_ONLY, empty_note=CODE_EMPTY_NOTE),
            _image_step(),
            _insights_step(),
        ]

    if include_review:
        steps.append(_review_step())
    return steps


# ── Graph construction ───────────────────────────────────────────────────

StepExecutor = Callable[[PipelineStep, GenerationState], Awaitable[dict]]


def _make_node(step: PipelineStep, execute: StepExecutor):
    async def node(state: GenerationState) -> dict:
        return await execute(step, state)

    node.__name__ = step.node_name
    return node


def _route_after(state: GenerationState) -> str:
    return "halt" if state["halted"] else "continue"


def create_generation_graph(steps: List[PipelineStep], execute: StepExecutor) -> StateGraph:
    """Create the sequential generation graph for `steps`.

    `execute` runs one step against the current state and returns the
    state update.
    """
    log_timing("graph", f"Creating generation graph ({len(steps)} stages)")

    graph = StateGraph(GenerationState)

    for step in steps:
        graph.add_node(step.node_name, _make_node(step, execute))

    graph.add_edge(START, steps[0].node_name)

    for current, following in zip(steps, steps[1:]):
        graph.add_conditional_edges(
            current.node_name,
            _route_after,
            {"continue": following.node_name, "halt": END},
        )

    graph.add_edge(steps[-1].node_name, END)

    return graph
