"""Prompt templates for the GenCraft generation stages.

Placeholders use ``{{name}}`` and are replaced verbatim — no escaping.
Each template carries a maximum field length; longer values are cut and
suffixed with ``TRUNCATION_MARKER``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Mapping, Tuple

TRUNCATION_MARKER = "\n..."

_PLACEHOLDER_RE = re.compile(r"\{\{\s*([a-zA-Z_][a-zA-Z0-9_]*)\s*\}\}")


class PromptTemplateError(Exception):
    """Unknown template id, or a placeholder with no matching field."""


@dataclass(frozen=True)
class PromptTemplate:
    template_id: str
    text: str
    max_field_length: int

    @property
    def fields(self) -> Tuple[str, ...]:
        seen: Dict[str, None] = {}
        for match in _PLACEHOLDER_RE.finditer(self.text):
            seen.setdefault(match.group(1), None)
        return tuple(seen)


def truncate(value: str, max_length: int) -> str:
    """Cut `value` to `max_length` chars plus marker; shorter values unchanged."""
    if len(value) <= max_length:
        return value
    return value[:max_length] + TRUNCATION_MARKER


# ── Templates ────────────────────────────────────────────────────────────

PROJECT_PLAN_TEMPLATE = """You are a project manager who is good at creating project plans with milestones.

Given the project idea, create a project plan with 3 milestones.

Project Idea: {{project_idea}}"""


FLOWCHART_TEMPLATE = """You are an expert in creating flowchart diagrams for software projects.

Based on the following project idea, generate a flowchart diagram as a self-contained SVG string that visualizes the project workflow.
Project Idea: {{project_idea}}

The SVG should be well-formed and valid.
It should use standard SVG elements like <rect>, <text>, <line>, and <path>.
Nodes should typically be rectangles with text inside. Use appropriate font sizes and padding for readability.
Edges should be lines or paths, preferably with arrowheads indicating direction.
The SVG must include an appropriate viewBox, for example: '0 0 600 400'.
Ensure all text is clearly visible against node backgrounds.
Do not include any JavaScript, <script> tags, or other interactive elements within the SVG. Focus solely on static visual representation.
Do not include any explanation, preamble, or any text outside the <svg>...</svg> tags. Only output the SVG string.

When styling, use fill and stroke attributes with HSL CSS variables for colors (e.g., fill="hsl(var(--card))", stroke="hsl(var(--primary))") so the flowchart adapts to the application's theme.
The style block should look like this:
<style>
  .node-rect { fill: hsl(var(--card)); stroke: hsl(var(--primary)); stroke-width: 2; rx: 5; }
  .node-text { fill: hsl(var(--card-foreground)); font-family: sans-serif; font-size: 14px; text-anchor: middle; dominant-baseline: middle; }
  .edge-line { stroke: hsl(var(--foreground)); stroke-width: 2; }
  .arrowhead-fill { fill: hsl(var(--foreground)); }
</style>
And arrowheads should use a class for their fill, like <path d="..." class="arrowhead-fill" />

Here is an example of a simple, valid SVG flowchart using *literal colors* for your reference of structure (use the HSL variables described above in the actual output):
<svg viewBox="0 0 600 400" xmlns="http://www.w3.org/2000/svg">
  <style>
    .node-rect { fill: #FFFFFF; stroke: #007bff; stroke-width: 2; rx: 5; }
    .node-text { fill: #333333; font-family: sans-serif; font-size: 14px; text-anchor: middle; dominant-baseline: middle; }
    .edge-line { stroke: #333333; stroke-width: 2; }
    .arrowhead-fill { fill: #333333; }
  </style>
  <defs>
    <marker id="arrowhead" markerWidth="10" markerHeight="7" refX="9" refY="3.5" orient="auto" markerUnits="strokeWidth">
      <path d="M0,0 L10,3.5 L0,7 Z" class="arrowhead-fill" />
    </marker>
  </defs>
  <g>
    <rect x="50" y="50" width="120" height="60" class="node-rect" />
    <text x="110" y="80" class="node-text">Start</text>
    <rect x="240" y="150" width="120" height="60" class="node-rect" />
    <text x="300" y="180" class="node-text">Process Data</text>
    <rect x="430" y="250" width="120" height="60" class="node-rect" />
    <text x="490" y="280" class="node-text">End</text>
    <line x1="110" y1="110" x2="300" y2="150" class="edge-line" marker-end="url(#arrowhead)" />
    <line x1="300" y1="210" x2="490" y2="250" class="edge-line" marker-end="url(#arrowhead)" />
  </g>
</svg>"""


_REACT_CODE_TASK = """Your task is to:
1.  Generate multiple React component files (.tsx). These should include a main page component (e.g., `src/app/page.tsx`) and any necessary sub-components. Each file should be complete, runnable, and adhere to modern React best practices.
    *   For each file, provide a relative `file_name` (e.g., `src/components/feature-card.tsx`) and its `file_content`.
    *   Ensure components are functional, use TypeScript, and import types correctly.
    *   Utilize ShadCN UI components (e.g., <Button>, <Card>) where appropriate for UI elements.
    *   Use `lucide-react` for icons if needed.
    *   Use `https://placehold.co/<width>x<height>.png` for placeholder images and include `data-ai-hint` attributes with 1-2 keywords.
2.  Generate global CSS styles or Tailwind CSS utility class recommendations suitable for the project as a single string in the `global_styles` field. If no specific global styles are needed beyond default Tailwind, provide an empty string or a comment like "/* Tailwind CSS utilities will be primarily used. */".
3.  The output MUST be a JSON object adhering to the specified output schema. Do NOT include any explanations, comments outside the code, or markdown formatting around the JSON.
4.  Ensure every component returns a single root JSX element.

Output ONLY the JSON object.

Example of the expected output structure:
{
  "files": [
    {
      "file_name": "src/app/page.tsx",
      "file_content": "import React from 'react';\\nimport { MyWidget } from '@/components/my-widget';\\n\\nexport default function HomePage() {\\n  return (\\n    <main>\\n      <h1>Welcome</h1>\\n      <MyWidget />\\n    </main>\\n  );\\n}"
    }
  ],
  "global_styles": "body { font-family: sans-serif; }"
}"""


REACT_CODE_TEMPLATE = """You are a senior full-stack developer specializing in Next.js (App Router) and React, tasked with generating a complete set of starter files for a web application.

Project Idea: {{project_idea}}
Project Plan: {{project_plan}}
Flowchart (SVG):
{{flowchart}}

""" + _REACT_CODE_TASK


REACT_CODE_ADVICE_TEMPLATE = """You are a senior full-stack developer specializing in Next.js (App Router) and React, tasked with generating a complete set of starter files for a web application.

Project Idea: {{project_idea}}
Project Plan: {{project_plan}}
Strategic Advice (JSON):
{{strategic_advice}}

Let the strategic advice shape which features the starter files prioritise.

""" + _REACT_CODE_TASK


UI_IMAGE_TEMPLATE = """You are a UI/UX designer. Your task is to create a conceptual visual representation of a web application's user interface.
Project Idea: "{{project_idea}}"
Generated React Code Snippet:
```jsx
{{generated_code}}
```

Based on the project idea and the provided code snippet, generate a single, clean, visually appealing mockup or a conceptual, screenshot-like image of what a simple UI for this application might look like.
The style should be modern, minimalist, and suitable for a web application.
If the code suggests specific UI elements (buttons, forms, lists, cards), try to incorporate abstract representations of them.
Do NOT include any actual code text or code syntax highlighting in the image itself. Focus purely on the visual layout and user interface elements.
Ensure the image is safe for all audiences."""


PROJECT_INSIGHTS_TEMPLATE = """You are an AI assistant that provides helpful insights about a software project.
Based on the project idea, plan, and a code snippet, generate the following:
1.  estimated_complexity: A simple classification like "Simple", "Medium", or "Complex".
2.  suggested_keywords: 2-3 keywords that are relevant to the project's domain or potential technologies.
3.  fun_fact_or_tip: A brief, interesting fact or a helpful development tip related to the project idea.

Project Idea: {{project_idea}}
Project Plan: {{project_plan}}
Generated Code Snippet:
```
{{generated_code}}
```

Provide the output in the structured format defined."""


STRATEGIC_ADVICE_TEMPLATE = """You are an experienced CTO and project strategist. Review the project's initial idea and generated plan and offer concise, high-level strategic advice before any code is written.

Project Idea: {{project_idea}}

Project Plan (JSON):
{{project_plan}}

Based on the above, provide:
1.  key_consideration: A critical factor or key aspect for the project's success.
2.  next_step_suggestion: A logical next step to advance the project.
3.  potential_challenge: A significant potential challenge or risk.
4.  long_term_thought: A forward-looking thought on the project's long-term potential or evolution.

Output ONLY the JSON object adhering to the schema."""


STRATEGIC_REVIEW_TEMPLATE = """You are an experienced CTO and project strategist. You are tasked with providing "deep think" strategic advice based on a project's initial idea, generated plan, code snippets, and preliminary insights.
Review all the provided information and offer concise, high-level strategic advice.

Project Idea: {{project_idea}}

Project Plan (JSON):
{{project_plan}}

Generated Code Snippet:
```
{{generated_code}}
```

Project Insights (JSON):
{{project_insights}}

Based on all the above, provide:
1.  key_consideration: A critical factor or key aspect for the project's success.
2.  next_step_suggestion: A logical next step to advance the project.
3.  potential_challenge: A significant potential challenge or risk.
4.  long_term_thought: A forward-looking thought on the project's long-term potential or evolution.

Output ONLY the JSON object adhering to the schema."""


TEMPLATES: Dict[str, PromptTemplate] = {
    t.template_id: t
    for t in (
        PromptTemplate("project_plan", PROJECT_PLAN_TEMPLATE, 2000),
        PromptTemplate("flowchart", FLOWCHART_TEMPLATE, 2000),
        PromptTemplate("react_code", REACT_CODE_TEMPLATE, 2000),
        PromptTemplate("react_code_advice", REACT_CODE_ADVICE_TEMPLATE, 2000),
        PromptTemplate("ui_image", UI_IMAGE_TEMPLATE, 1000),
        PromptTemplate("project_insights", PROJECT_INSIGHTS_TEMPLATE, 500),
        PromptTemplate("strategic_advice", STRATEGIC_ADVICE_TEMPLATE, 1000),
        PromptTemplate("strategic_review", STRATEGIC_REVIEW_TEMPLATE, 1000),
    )
}


def get_template(template_id: str) -> PromptTemplate:
    try:
        return TEMPLATES[template_id]
    except KeyError:
        raise PromptTemplateError(f"Unknown prompt template: {template_id}") from None


def build_prompt(template_id: str, fields: Mapping[str, str]) -> str:
    """Render template `template_id` with `fields`.

    Every placeholder must have a field; extra fields are ignored. Values
    longer than the template's limit are truncated. Pure function.
    """
    template = get_template(template_id)

    missing = [name for name in template.fields if name not in fields]
    if missing:
        raise PromptTemplateError(
            f"Template {template_id!r} is missing fields: {', '.join(missing)}"
        )

    def _substitute(match: "re.Match[str]") -> str:
        value = fields[match.group(1)]
        return truncate(str(value), template.max_field_length)

    return _PLACEHOLDER_RE.sub(_substitute, template.text)
