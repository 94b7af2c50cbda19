"""Prompt template tests — substitution, truncation boundary, purity, errors."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from gencraft.agents.generation.prompts import (
    TEMPLATES,
    TRUNCATION_MARKER,
    PromptTemplateError,
    build_prompt,
    get_template,
    truncate,
)


class TestBuildPrompt:
    def test_substitutes_idea(self):
        prompt = build_prompt("project_plan", {"project_idea": "A weather dashboard"})
        assert "Project Idea: A weather dashboard" in prompt
        assert "{{" not in prompt

    def test_identical_inputs_give_identical_output(self):
        fields = {
            "project_idea": "Recipe sharing app",
            "project_plan": '{"milestone1":"a","milestone2":"b","milestone3":"c"}',
            "generated_code": "export default function Page() { return <main />; }",
        }
        first = build_prompt("project_insights", fields)
        second = build_prompt("project_insights", dict(fields))
        assert first == second
        assert first.encode() == second.encode()

    def test_values_inserted_verbatim(self):
        """No escaping: braces, quotes and placeholder-looking text pass through."""
        idea = 'Use "quotes" and {braces} and {{project_plan}}'
        prompt = build_prompt("project_plan", {"project_idea": idea})
        assert idea in prompt

    def test_extra_fields_ignored(self):
        prompt = build_prompt("flowchart", {"project_idea": "Todo app", "unused": "x"})
        assert "Todo app" in prompt
        assert "unused" not in prompt

    def test_missing_field_raises(self):
        with pytest.raises(PromptTemplateError, match="project_plan"):
            build_prompt("react_code", {"project_idea": "Todo", "flowchart": "<svg/>"})

    def test_unknown_template_raises(self):
        with pytest.raises(PromptTemplateError, match="Unknown prompt template"):
            build_prompt("no_such_template", {})

    def test_flowchart_template_keeps_css_braces(self):
        prompt = build_prompt("flowchart", {"project_idea": "Chat app"})
        assert ".node-rect { fill: hsl(var(--card));" in prompt
        assert "Project Idea: Chat app" in prompt


class TestTruncation:
    def test_exact_limit_not_truncated(self):
        limit = get_template("project_insights").max_field_length
        code = "x" * limit
        prompt = build_prompt(
            "project_insights",
            {"project_idea": "idea", "project_plan": "{}", "generated_code": code},
        )
        assert code in prompt
        assert code + TRUNCATION_MARKER not in prompt

    def test_one_over_limit_truncated(self):
        limit = get_template("project_insights").max_field_length
        code = "y" * (limit + 1)
        prompt = build_prompt(
            "project_insights",
            {"project_idea": "idea", "project_plan": "{}", "generated_code": code},
        )
        assert ("y" * limit) + TRUNCATION_MARKER in prompt
        assert "y" * (limit + 1) not in prompt

    def test_truncate_helper(self):
        assert truncate("abc", 3) == "abc"
        assert truncate("abcd", 3) == "abc" + TRUNCATION_MARKER
        assert truncate("", 3) == ""

    def test_template_limits(self):
        assert TEMPLATES["project_insights"].max_field_length == 500
        assert TEMPLATES["ui_image"].max_field_length == 1000
        assert TEMPLATES["strategic_review"].max_field_length == 1000
        assert TEMPLATES["react_code"].max_field_length == 2000

    def test_image_template_uses_1000_char_snippet(self):
        code = "z" * 1500
        prompt = build_prompt("ui_image", {"project_idea": "Notes", "generated_code": code})
        assert ("z" * 1000) + TRUNCATION_MARKER in prompt
        assert "z" * 1001 not in prompt


class TestTemplateFields:
    def test_declared_fields(self):
        assert get_template("project_plan").fields == ("project_idea",)
        assert get_template("react_code").fields == ("project_idea", "project_plan", "flowchart")
        assert set(get_template("strategic_review").fields) == {
            "project_idea", "project_plan", "generated_code", "project_insights",
        }
