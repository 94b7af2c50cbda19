# Generation pipeline package
from .orchestrator import GenCraftOrchestrator, PipelineBusyError
from .prompts import PromptTemplateError, build_prompt
from .schema import (
    FailureKind,
    GeneratedFile,
    GeneratedFileSet,
    PipelineEvent,
    PipelineRun,
    PipelineVariant,
    ProjectInsights,
    ProjectPlan,
    StageResult,
    StageStatus,
    StrategicAdvice,
)
from .stage import GenerationStage
from .stages import STAGES, get_stage
from .validation import ValidationFailure, validate

__all__ = [
    "GenCraftOrchestrator",
    "PipelineBusyError",
    "PromptTemplateError",
    "build_prompt",
    "FailureKind",
    "GeneratedFile",
    "GeneratedFileSet",
    "PipelineEvent",
    "PipelineRun",
    "PipelineVariant",
    "ProjectInsights",
    "ProjectPlan",
    "StageResult",
    "StageStatus",
    "StrategicAdvice",
    "GenerationStage",
    "STAGES",
    "get_stage",
    "ValidationFailure",
    "validate",
]
