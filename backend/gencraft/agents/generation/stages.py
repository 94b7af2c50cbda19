"""Concrete GenCraft stages and their fallback values.

Error fallbacks and invalid fallbacks carry different text so the failure
mode stays distinguishable in the UI.
"""

from __future__ import annotations

from typing import Dict

from ...schemas.safety_schema import ADVISORY_SAFETY, FLOWCHART_SAFETY
from .schema import (
    GeneratedFile,
    GeneratedFileSet,
    ProjectInsights,
    ProjectPlan,
    StrategicAdvice,
)
from .stage import GenerationStage

# ── Fallback constants ───────────────────────────────────────────────────

FLOWCHART_ERROR_SVG = (
    '<svg viewBox="0 0 600 400" xmlns="http://www.w3.org/2000/svg">'
    '<rect width="100%" height="100%" fill="hsl(var(--muted))" />'
    '<text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" '
    'fill="hsl(var(--muted-foreground))" font-family="sans-serif" font-size="16px">'
    "Flowchart Generation Error (AI failed to produce valid SVG)</text></svg>"
)
FLOWCHART_INVALID_SVG = (
    '<svg viewBox="0 0 600 400" xmlns="http://www.w3.org/2000/svg">'
    '<rect width="100%" height="100%" fill="hsl(var(--muted))" />'
    '<text x="50%" y="50%" dominant-baseline="middle" text-anchor="middle" '
    'fill="hsl(var(--muted-foreground))" font-family="sans-serif" font-size="16px">'
    "Flowchart Not Available (AI output was invalid or empty)</text></svg>"
)

IMAGE_INVALID_URL = "https://placehold.co/600x400.png?text=UI+Mockup+Failed"
IMAGE_ERROR_URL = "https://placehold.co/600x400.png?text=UI+Mockup+Error"

ERROR_FILE_NAME = "src/app/error.tsx"

MILESTONE_DEFAULT = "Milestone details unavailable."
MILESTONE_ERROR = "Milestone unavailable (generation error)."

INSIGHTS_DEFAULTS = {
    "estimated_complexity": "Unavailable",
    "suggested_keywords": ["general", "web app"],
    "fun_fact_or_tip": "Always test your code thoroughly!",
}

ADVICE_DEFAULTS = {
    "key_consideration": "Strategic advice generation returned no specific consideration.",
    "next_step_suggestion": "Review project goals and refine requirements.",
    "potential_challenge": "Ensuring market fit and user adoption.",
    "long_term_thought": "Consider potential for feature expansion and scalability.",
}


def _error_page(message: str) -> GeneratedFile:
    return GeneratedFile(
        file_name=ERROR_FILE_NAME,
        file_content=f"export default function ErrorPage() {{ return <p>{message}</p>; }}",
    )


# ── Content checks ───────────────────────────────────────────────────────

def is_svg_document(value: str) -> bool:
    return value.strip().lower().startswith("<svg")


def is_data_uri(value: str) -> bool:
    return value.strip().startswith("data:")


# ── Stages ───────────────────────────────────────────────────────────────

PLAN_STAGE = GenerationStage(
    name="plan",
    template_id="project_plan",
    output_shape=ProjectPlan,
    field_defaults={
        "milestone1": lambda: MILESTONE_DEFAULT,
        "milestone2": lambda: MILESTONE_DEFAULT,
        "milestone3": lambda: MILESTONE_DEFAULT,
    },
    invalid_fallback=lambda: ProjectPlan(
        milestone1=MILESTONE_DEFAULT,
        milestone2=MILESTONE_DEFAULT,
        milestone3=MILESTONE_DEFAULT,
    ),
    error_fallback=lambda exc: ProjectPlan(
        milestone1=MILESTONE_ERROR,
        milestone2=MILESTONE_ERROR,
        milestone3=MILESTONE_ERROR,
    ),
)

FLOWCHART_STAGE = GenerationStage(
    name="flowchart",
    template_id="flowchart",
    output_shape=str,
    safety_settings=FLOWCHART_SAFETY,
    content_check=is_svg_document,
    invalid_fallback=lambda: FLOWCHART_INVALID_SVG,
    error_fallback=lambda exc: FLOWCHART_ERROR_SVG,
)


def _code_stage(name: str, template_id: str) -> GenerationStage:
    return GenerationStage(
        name=name,
        template_id=template_id,
        output_shape=GeneratedFileSet,
        field_defaults={
            "files": lambda: [_error_page("AI did not generate any files.")],
        },
        critical_fields=("files",),
        invalid_fallback=lambda: GeneratedFileSet(
            files=[_error_page("Code generation failed to produce output.")],
            global_styles="/* Error generating styles */",
        ),
        error_fallback=lambda exc: GeneratedFileSet(
            files=[_error_page(f"An error occurred during code generation: {exc}")],
            global_styles=f"/* Error during style generation: {exc} */",
        ),
    )


CODE_STAGE = _code_stage("code", "react_code")
CODE_ADVICE_STAGE = _code_stage("code_advice", "react_code_advice")

IMAGE_STAGE = GenerationStage(
    name="image",
    template_id="ui_image",
    output_shape=str,
    kind="image",
    content_check=is_data_uri,
    invalid_fallback=lambda: IMAGE_INVALID_URL,
    error_fallback=lambda exc: IMAGE_ERROR_URL,
)

INSIGHTS_STAGE = GenerationStage(
    name="insights",
    template_id="project_insights",
    output_shape=ProjectInsights,
    safety_settings=ADVISORY_SAFETY,
    field_defaults={
        name: (lambda value=value: list(value) if isinstance(value, list) else value)
        for name, value in INSIGHTS_DEFAULTS.items()
    },
    invalid_fallback=lambda: ProjectInsights(**INSIGHTS_DEFAULTS),
    error_fallback=lambda exc: ProjectInsights(
        estimated_complexity="Error",
        suggested_keywords=[],
        fun_fact_or_tip="Could not generate insights due to an error.",
    ),
)


def _advice_stage(name: str, template_id: str) -> GenerationStage:
    return GenerationStage(
        name=name,
        template_id=template_id,
        output_shape=StrategicAdvice,
        safety_settings=ADVISORY_SAFETY,
        field_defaults={
            key: (lambda value=value: value) for key, value in ADVICE_DEFAULTS.items()
        },
        invalid_fallback=lambda: StrategicAdvice(**ADVICE_DEFAULTS),
        error_fallback=lambda exc: StrategicAdvice(
            key_consideration="Error generating key consideration.",
            next_step_suggestion="Error generating next step suggestion.",
            potential_challenge="Error generating potential challenge.",
            long_term_thought="Error generating long term thought.",
        ),
    )


ADVICE_STAGE = _advice_stage("advice", "strategic_advice")
REVIEW_STAGE = _advice_stage("review", "strategic_review")


STAGES: Dict[str, GenerationStage] = {
    stage.name: stage
    for stage in (
        PLAN_STAGE,
        FLOWCHART_STAGE,
        CODE_STAGE,
        CODE_ADVICE_STAGE,
        IMAGE_STAGE,
        INSIGHTS_STAGE,
        ADVICE_STAGE,
        REVIEW_STAGE,
    )
}


def get_stage(name: str) -> GenerationStage:
    """Look up a stage by name. Raises KeyError for unknown names."""
    return STAGES[name]
