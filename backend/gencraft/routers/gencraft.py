"""
GenCraft Router with Timing Instrumentation

Handles the /gencraft endpoints: full pipeline runs, run status and
single-stage runs.
"""

import logging
import time
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, status

from ..agents.generation import (
    GenCraftOrchestrator,
    PipelineBusyError,
    PipelineRun,
    PipelineVariant,
    StageResult,
    get_stage,
)
from ..config import get_settings
from ..schemas.gencraft_schema import CraftRequest, PipelineStatusResponse, StageRequest

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/gencraft",
    tags=["GenCraft"],
    responses={
        500: {"description": "Internal server error during generation"}
    },
)


@lru_cache(maxsize=1)
def get_orchestrator() -> GenCraftOrchestrator:
    """Process-wide orchestrator (one in-flight run per process)."""
    settings = get_settings()
    return GenCraftOrchestrator(
        variant=PipelineVariant(settings.pipeline_variant),
        include_review=settings.include_review,
    )


@router.post(
    "/craft",
    response_model=PipelineRun,
    status_code=status.HTTP_200_OK,
    summary="Craft a Project",
    response_description="Plan, flowchart/advice, code, image and insights with per-stage status",
)
async def craft_project(
    request: CraftRequest,
    orchestrator: GenCraftOrchestrator = Depends(get_orchestrator),
) -> PipelineRun:
    """Run the full generation pipeline for a project idea."""
    start_time = time.perf_counter()
    logger.info("[TIMING] craft_endpoint: START")

    try:
        run = await orchestrator.submit(
            request.idea,
            variant=request.variant,
            include_review=request.include_review,
        )
    except PipelineBusyError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except Exception as exc:
        total_duration = (time.perf_counter() - start_time) * 1000
        logger.error("[TIMING] craft_endpoint: ERROR after %.0fms — %s", total_duration, str(exc)[:100])
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Generation failed: {exc}",
        ) from exc

    total_duration = (time.perf_counter() - start_time) * 1000
    logger.info("[TIMING] craft_endpoint: END — duration=%.0fms", total_duration)
    return run


@router.get(
    "/status",
    response_model=PipelineStatusResponse,
    summary="Pipeline Status",
    response_description="Whether a run is active, and the current or last run",
)
async def pipeline_status(
    orchestrator: GenCraftOrchestrator = Depends(get_orchestrator),
) -> PipelineStatusResponse:
    return PipelineStatusResponse(busy=orchestrator.is_busy, run=orchestrator.current_run)


@router.post(
    "/stages/{stage_name}",
    response_model=StageResult,
    summary="Run a Single Stage",
    response_description="Stage output (always schema-valid) and failure kind, if any",
)
async def run_stage(stage_name: str, request: StageRequest) -> StageResult:
    """Run one generation stage on its own with explicit template fields."""
    try:
        stage = get_stage(stage_name)
    except KeyError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown stage: {stage_name}",
        )
    return await stage.run(request.fields)


@router.get(
    "/health",
    summary="Health Check",
    description="Check if the generation service is running",
    response_description="Health status",
)
async def health_check():
    """Simple health check endpoint."""
    return {
        "status": "healthy",
        "service": "gencraft",
        "gemini_configured": get_settings().has_api_key,
    }
