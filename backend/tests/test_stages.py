"""Generation stage tests — success paths and every fallback path.

The Gemini client is patched where the stage module imports it, so no
network calls are made.
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock, patch

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from gencraft.agents.generation.schema import (
    FailureKind,
    GeneratedFileSet,
    ProjectInsights,
    ProjectPlan,
    StrategicAdvice,
)
from gencraft.agents.generation.stages import (
    ADVICE_STAGE,
    CODE_ADVICE_STAGE,
    CODE_STAGE,
    ERROR_FILE_NAME,
    FLOWCHART_ERROR_SVG,
    FLOWCHART_INVALID_SVG,
    FLOWCHART_STAGE,
    IMAGE_ERROR_URL,
    IMAGE_INVALID_URL,
    IMAGE_STAGE,
    INSIGHTS_STAGE,
    MILESTONE_DEFAULT,
    MILESTONE_ERROR,
    PLAN_STAGE,
    REVIEW_STAGE,
    STAGES,
    get_stage,
)
from gencraft.services.gemini_client import GenerationError

STRUCTURED = "gencraft.agents.generation.stage.generate_structured"
IMAGE = "gencraft.agents.generation.stage.generate_image"

PLAN_FIELDS = {"project_idea": "A habit tracker"}
CODE_FIELDS = {
    "project_idea": "A habit tracker",
    "project_plan": '{"milestone1":"a","milestone2":"b","milestone3":"c"}',
    "flowchart": "<svg></svg>",
}
INSIGHTS_FIELDS = {
    "project_idea": "A habit tracker",
    "project_plan": "{}",
    "generated_code": "export default function Page() {}",
}


def run_stage(stage, fields):
    return asyncio.run(stage.run(fields))


# ============================================================
# Plan
# ============================================================


class TestPlanStage:
    def test_success(self):
        mock = AsyncMock(return_value={"milestone1": "Set up", "milestone2": "Build", "milestone3": "Ship"})
        with patch(STRUCTURED, new=mock):
            result = run_stage(PLAN_STAGE, PLAN_FIELDS)

        assert result.ok
        assert result.failure is None
        assert result.output == ProjectPlan(milestone1="Set up", milestone2="Build", milestone3="Ship")

        # Single attempt, with a response schema and the idea in the prompt
        mock.assert_awaited_once()
        prompt, schema = mock.await_args.args
        assert "A habit tracker" in prompt
        assert schema["type"] == "OBJECT"

    def test_external_failure_uses_error_fallback(self):
        with patch(STRUCTURED, new=AsyncMock(side_effect=GenerationError("HTTP 500"))):
            result = run_stage(PLAN_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.EXTERNAL_CALL
        assert result.output.milestone1 == MILESTONE_ERROR
        assert "HTTP 500" in result.detail

    def test_no_output_uses_invalid_fallback(self):
        with patch(STRUCTURED, new=AsyncMock(return_value=None)):
            result = run_stage(PLAN_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert result.output.milestone3 == MILESTONE_DEFAULT

    def test_blank_milestone_defaulted(self):
        mock = AsyncMock(return_value={"milestone1": "Set up", "milestone2": "", "milestone3": "Ship"})
        with patch(STRUCTURED, new=mock):
            result = run_stage(PLAN_STAGE, PLAN_FIELDS)

        assert result.ok
        assert result.defaulted_fields == ["milestone2"]
        assert result.output.milestone2 == MILESTONE_DEFAULT

    def test_wrong_field_type_is_invalid(self):
        mock = AsyncMock(return_value={"milestone1": 1, "milestone2": "b", "milestone3": "c"})
        with patch(STRUCTURED, new=mock):
            result = run_stage(PLAN_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION


# ============================================================
# Flowchart
# ============================================================


class TestFlowchartStage:
    def test_svg_passed_through_unchanged(self):
        mock = AsyncMock(return_value="<svg></svg>")
        with patch(STRUCTURED, new=mock):
            result = run_stage(FLOWCHART_STAGE, PLAN_FIELDS)

        assert result.ok
        assert result.output == "<svg></svg>"
        # Plain-text stage: no response schema, flowchart safety settings
        assert mock.await_args.args[1] is None
        assert mock.await_args.kwargs["safety_settings"] == FLOWCHART_STAGE.safety_settings

    def test_surrounding_whitespace_trimmed(self):
        with patch(STRUCTURED, new=AsyncMock(return_value="  \n<svg></svg>\n ")):
            result = run_stage(FLOWCHART_STAGE, PLAN_FIELDS)

        assert result.ok
        assert result.output == "<svg></svg>"

    def test_empty_output_uses_invalid_svg(self):
        with patch(STRUCTURED, new=AsyncMock(return_value=None)):
            result = run_stage(FLOWCHART_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert result.output == FLOWCHART_INVALID_SVG

    def test_non_svg_output_is_invalid(self):
        with patch(STRUCTURED, new=AsyncMock(return_value="Here is your flowchart!")):
            result = run_stage(FLOWCHART_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert result.output == FLOWCHART_INVALID_SVG

    def test_call_failure_uses_error_svg(self):
        with patch(STRUCTURED, new=AsyncMock(side_effect=GenerationError("timed out"))):
            result = run_stage(FLOWCHART_STAGE, PLAN_FIELDS)

        assert result.failure == FailureKind.EXTERNAL_CALL
        assert result.output == FLOWCHART_ERROR_SVG
        assert FLOWCHART_ERROR_SVG != FLOWCHART_INVALID_SVG
        assert result.output.startswith("<svg")


# ============================================================
# Code
# ============================================================


class TestCodeStage:
    def test_success(self):
        payload = {
            "files": [
                {"file_name": "src/app/page.tsx", "file_content": "export default function Page() {}"},
                {"file_name": "src/components/card.tsx", "file_content": "export function Card() {}"},
            ],
            "global_styles": ".card { padding: 1rem; }",
        }
        with patch(STRUCTURED, new=AsyncMock(return_value=payload)):
            result = run_stage(CODE_STAGE, CODE_FIELDS)

        assert result.ok
        assert isinstance(result.output, GeneratedFileSet)
        assert [f.file_name for f in result.output.files] == ["src/app/page.tsx", "src/components/card.tsx"]
        text = result.output.as_source_text()
        assert text.startswith("// --- File: src/app/page.tsx ---\n")
        assert "\n\n// --- End File ---\n\n// --- File: src/components/card.tsx ---\n" in text

    def test_failure_does_not_propagate(self):
        with patch(STRUCTURED, new=AsyncMock(side_effect=RuntimeError("quota exceeded"))):
            result = run_stage(CODE_STAGE, CODE_FIELDS)

        assert result.failure == FailureKind.EXTERNAL_CALL
        assert len(result.output.files) == 1
        assert result.output.files[0].file_name == ERROR_FILE_NAME
        assert "quota exceeded" in result.output.files[0].file_content
        assert "quota exceeded" in result.output.global_styles

    def test_zero_files_is_empty_result(self):
        with patch(STRUCTURED, new=AsyncMock(return_value={"files": []})):
            result = run_stage(CODE_STAGE, CODE_FIELDS)

        assert result.failure == FailureKind.EMPTY_RESULT
        assert not result.ok
        assert result.defaulted_fields == ["files"]
        assert result.output.files[0].file_name == ERROR_FILE_NAME
        assert "AI did not generate any files." in result.output.files[0].file_content

    def test_unsafe_file_name_is_invalid(self):
        payload = {"files": [{"file_name": "../outside.tsx", "file_content": "x"}]}
        with patch(STRUCTURED, new=AsyncMock(return_value=payload)):
            result = run_stage(CODE_STAGE, CODE_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert "failed to produce output" in result.output.files[0].file_content

    def test_advice_variant_uses_advice_template(self):
        fields = {
            "project_idea": "A habit tracker",
            "project_plan": "{}",
            "strategic_advice": '{"key_consideration":"Retention"}',
        }
        mock = AsyncMock(return_value={"files": [{"file_name": "src/app/page.tsx", "file_content": "x"}]})
        with patch(STRUCTURED, new=mock):
            result = run_stage(CODE_ADVICE_STAGE, fields)

        assert result.ok
        assert "Retention" in mock.await_args.args[0]

    def test_missing_field_falls_back(self):
        """A prompt that cannot be built is reported like any failed call."""
        mock = AsyncMock()
        with patch(STRUCTURED, new=mock):
            result = run_stage(CODE_STAGE, PLAN_FIELDS)

        mock.assert_not_awaited()
        assert result.failure == FailureKind.EXTERNAL_CALL
        assert "missing fields" in result.detail


# ============================================================
# Image
# ============================================================


class TestImageStage:
    FIELDS = {"project_idea": "A habit tracker", "generated_code": "export default function Page() {}"}

    def test_success(self):
        url = "data:image/png;base64,iVBORw0KGgo="
        with patch(IMAGE, new=AsyncMock(return_value={"url": url})):
            result = run_stage(IMAGE_STAGE, self.FIELDS)

        assert result.ok
        assert result.output == url

    def test_no_image_uses_placeholder(self):
        with patch(IMAGE, new=AsyncMock(return_value={"url": None})):
            result = run_stage(IMAGE_STAGE, self.FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert result.output == IMAGE_INVALID_URL

    def test_non_data_uri_is_invalid(self):
        with patch(IMAGE, new=AsyncMock(return_value={"url": "https://example.com/a.png"})):
            result = run_stage(IMAGE_STAGE, self.FIELDS)

        assert result.output == IMAGE_INVALID_URL

    def test_call_failure_uses_error_placeholder(self):
        with patch(IMAGE, new=AsyncMock(side_effect=GenerationError("blocked"))):
            result = run_stage(IMAGE_STAGE, self.FIELDS)

        assert result.failure == FailureKind.EXTERNAL_CALL
        assert result.output == IMAGE_ERROR_URL


# ============================================================
# Insights, advice, review
# ============================================================


class TestInsightsStage:
    def test_empty_keywords_defaulted(self):
        payload = {"estimated_complexity": "Medium", "suggested_keywords": [], "fun_fact_or_tip": "Use hooks."}
        with patch(STRUCTURED, new=AsyncMock(return_value=payload)):
            result = run_stage(INSIGHTS_STAGE, INSIGHTS_FIELDS)

        assert result.ok
        assert result.output.suggested_keywords == ["general", "web app"]
        assert result.output.estimated_complexity == "Medium"
        assert result.defaulted_fields == ["suggested_keywords"]

    def test_non_object_output_is_invalid(self):
        with patch(STRUCTURED, new=AsyncMock(return_value=["not", "an", "object"])):
            result = run_stage(INSIGHTS_STAGE, INSIGHTS_FIELDS)

        assert result.failure == FailureKind.SHAPE_VALIDATION
        assert result.output == ProjectInsights(
            estimated_complexity="Unavailable",
            suggested_keywords=["general", "web app"],
            fun_fact_or_tip="Always test your code thoroughly!",
        )

    def test_error_fallback(self):
        with patch(STRUCTURED, new=AsyncMock(side_effect=GenerationError("boom"))):
            result = run_stage(INSIGHTS_STAGE, INSIGHTS_FIELDS)

        assert result.output.estimated_complexity == "Error"
        assert result.output.suggested_keywords == []


class TestAdviceStages:
    def test_advice_success(self):
        payload = {
            "key_consideration": "Retention",
            "next_step_suggestion": "Interview users",
            "potential_challenge": "Competition",
            "long_term_thought": "Social features",
        }
        with patch(STRUCTURED, new=AsyncMock(return_value=payload)):
            result = run_stage(ADVICE_STAGE, {"project_idea": "x", "project_plan": "{}"})

        assert result.ok
        assert result.output == StrategicAdvice(**payload)

    def test_review_error_fallback(self):
        fields = {**INSIGHTS_FIELDS, "project_insights": "{}"}
        with patch(STRUCTURED, new=AsyncMock(side_effect=GenerationError("boom"))):
            result = run_stage(REVIEW_STAGE, fields)

        assert result.failure == FailureKind.EXTERNAL_CALL
        assert result.output.key_consideration == "Error generating key consideration."


class TestStageRegistry:
    def test_all_stages_registered(self):
        assert set(STAGES) == {
            "plan", "flowchart", "code", "code_advice", "image", "insights", "advice", "review",
        }

    def test_unknown_stage(self):
        with pytest.raises(KeyError):
            get_stage("deploy")
