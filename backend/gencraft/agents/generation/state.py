from typing import Optional, TypedDict

from .schema import (
    GeneratedFileSet,
    ProjectInsights,
    ProjectPlan,
    StrategicAdvice,
)


class GenerationState(TypedDict):
    idea: str

    # Stage outputs (populated in pipeline order)
    plan: Optional[ProjectPlan]
    flowchart: Optional[str]
    advice: Optional[StrategicAdvice]
    code: Optional[GeneratedFileSet]
    image: Optional[str]
    insights: Optional[ProjectInsights]
    review: Optional[StrategicAdvice]

    # Concatenated files handed to image/insights/review; "" when unusable
    representative_code: str

    # Set by a failed required stage; routes the graph to END
    halted: bool


def initial_state(idea: str) -> GenerationState:
    return {
        "idea": idea,
        "plan": None,
        "flowchart": None,
        "advice": None,
        "code": None,
        "image": None,
        "insights": None,
        "review": None,
        "representative_code": "",
        "halted": False,
    }
