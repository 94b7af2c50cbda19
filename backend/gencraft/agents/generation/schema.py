"""Pydantic schemas for the generation pipeline — stage outputs and run records."""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

# ── Stage outputs ────────────────────────────────────────────────────────


class ProjectPlan(BaseModel):
    """Three-milestone project plan."""

    milestone1: str = Field(..., description="The first milestone of the project.")
    milestone2: str = Field(..., description="The second milestone of the project.")
    milestone3: str = Field(..., description="The third milestone of the project.")


_DRIVE_RE = re.compile(r"^[a-zA-Z]:[\\/]")


class GeneratedFile(BaseModel):
    """One generated source file."""

    file_name: str = Field(
        ...,
        description="Relative path and filename for the file (e.g. 'src/app/page.tsx' or 'src/components/my-card.tsx').",
    )
    file_content: str = Field(..., description="The complete code content for this file.")

    @field_validator("file_name")
    @classmethod
    def _relative_path(cls, value: str) -> str:
        name = value.strip()
        if not name:
            raise ValueError("file_name must not be empty")
        if name.startswith(("/", "\\")) or _DRIVE_RE.match(name):
            raise ValueError(f"file_name must be a relative path: {value!r}")
        if ".." in re.split(r"[\\/]", name):
            raise ValueError(f"file_name must not escape the project root: {value!r}")
        return name


class GeneratedFileSet(BaseModel):
    """React starter files plus optional global styles."""

    files: List[GeneratedFile] = Field(
        ..., description="Generated React files, each with a filename and its content."
    )
    global_styles: Optional[str] = Field(
        default=None,
        description="Optional global CSS styles or Tailwind CSS utility class recommendations.",
    )

    def as_source_text(self) -> str:
        """Concatenate all files into one representative code string."""
        return "\n\n// --- End File ---\n\n".join(
            f"// --- File: {f.file_name} ---\n{f.file_content}" for f in self.files
        )


class ProjectInsights(BaseModel):
    """Complexity label, keywords and a tip."""

    estimated_complexity: str = Field(
        ..., description="An estimated complexity (e.g., Simple, Medium, Complex)."
    )
    suggested_keywords: List[str] = Field(
        ..., description="A few keywords relevant to the project or potential tech stack."
    )
    fun_fact_or_tip: str = Field(
        ..., description="A fun fact or a development tip related to the project idea."
    )


class StrategicAdvice(BaseModel):
    """High-level strategic advice for the project."""

    key_consideration: str = Field(
        ..., description="A key aspect or critical factor to consider for this project's success."
    )
    next_step_suggestion: str = Field(
        ..., description="A logical and actionable next step to move this project forward."
    )
    potential_challenge: str = Field(
        ..., description="A potential challenge, risk, or hurdle to be mindful of."
    )
    long_term_thought: str = Field(
        ...,
        description="A thought on the project's long-term potential, scalability, or future evolution.",
    )


# ── Stage results ────────────────────────────────────────────────────────


class FailureKind(str, Enum):
    """Why a stage fell back to a placeholder."""

    EXTERNAL_CALL = "external_call"
    SHAPE_VALIDATION = "shape_validation"
    EMPTY_RESULT = "empty_result"


class StageResult(BaseModel):
    """Outcome of one stage run. `output` is always schema-valid."""

    stage: str
    output: Any
    failure: Optional[FailureKind] = None
    defaulted_fields: List[str] = Field(default_factory=list)
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.failure is None


# ── Pipeline run record ──────────────────────────────────────────────────


class PipelineVariant(str, Enum):
    FLOWCHART_FIRST = "flowchart_first"
    ADVICE_FIRST = "advice_first"


class StageStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED_FALLBACK = "failed_fallback"
    SKIPPED = "skipped"


class StageState(BaseModel):
    """Live status of one stage within a run."""

    status: StageStatus = StageStatus.PENDING
    failure: Optional[FailureKind] = None
    detail: str = ""


class PipelineEvent(BaseModel):
    """A user-facing notification emitted after a stage transition."""

    stage: str
    status: StageStatus
    title: str
    description: Optional[str] = None
    level: Literal["default", "destructive"] = "default"
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class PipelineRun(BaseModel):
    """Everything produced by one submission of a project idea."""

    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    idea: str
    variant: PipelineVariant
    stages: Dict[str, StageState] = Field(default_factory=dict)

    plan: Optional[ProjectPlan] = None
    flowchart: Optional[str] = None
    advice: Optional[StrategicAdvice] = None
    code: Optional[GeneratedFileSet] = None
    image: Optional[str] = None
    insights: Optional[ProjectInsights] = None
    review: Optional[StrategicAdvice] = None

    events: List[PipelineEvent] = Field(default_factory=list)
    halted_at: Optional[str] = None
    completed: bool = False
    started_at: datetime = Field(default_factory=datetime.utcnow)
    finished_at: Optional[datetime] = None
