from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..agents.generation.schema import PipelineRun, PipelineVariant


class CraftRequest(BaseModel):
    """Request body for the /gencraft/craft endpoint."""

    idea: str = Field(
        ...,
        min_length=1,
        max_length=2000,
        description="The project idea in natural language.",
        alias="project_idea",  # Accept both "idea" and "project_idea" from JSON
        examples=[
            "A simple to-do list application with user authentication",
            "Create a weather dashboard",
        ],
    )
    variant: Optional[PipelineVariant] = Field(
        default=None,
        description="Pipeline ordering; defaults to GENCRAFT_PIPELINE_VARIANT",
    )
    include_review: Optional[bool] = Field(
        default=None,
        description="Append a final strategic review stage; defaults to GENCRAFT_INCLUDE_REVIEW",
    )

    @field_validator("idea")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your project idea.")
        return value

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "idea": "A simple to-do list application with user authentication",
                "variant": "flowchart_first",
            }
        },
    )


class StageRequest(BaseModel):
    """Request body for running a single stage."""

    fields: Dict[str, str] = Field(
        default_factory=dict,
        description="Template fields, e.g. {'project_idea': '...'}",
    )


class PipelineStatusResponse(BaseModel):
    """Busy flag plus the current (or last) run record."""

    busy: bool
    run: Optional[PipelineRun] = None
