"""Generation Stage — prompt, one external call, shape check, fallback.

One parameterised type covers every stage. `run()` never raises: every
path ends in a StageResult whose `output` matches the stage's shape.

Strategy:
  1. Build the prompt from the stage template and input fields
  2. Call the generation client exactly once (no retry)
  3. On exception → error fallback   (FailureKind.EXTERNAL_CALL)
  4. Fill empty object fields with per-field defaults
  5. Validate shape + content check
       invalid → invalid fallback    (FailureKind.SHAPE_VALIDATION)
  6. Critical field had to be defaulted → FailureKind.EMPTY_RESULT
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Literal, Mapping, Optional, Tuple

from pydantic import BaseModel

from ...schemas.safety_schema import SafetySettings
from ...services.gemini_client import generate_image, generate_structured
from .prompts import build_prompt
from .schema import FailureKind, StageResult
from .timing import async_timer
from .validation import Shape, ValidationFailure, response_schema, validate

logger = logging.getLogger(__name__)

StageKind = Literal["structured", "image"]


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (str, list, dict)) and len(value) == 0:
        return True
    return False


@dataclass(frozen=True)
class GenerationStage:
    """A single generation step, configured rather than subclassed."""

    name: str
    template_id: str
    output_shape: Shape
    invalid_fallback: Callable[[], Any]
    error_fallback: Callable[[Exception], Any]
    kind: StageKind = "structured"
    safety_settings: SafetySettings = ()
    content_check: Optional[Callable[[str], bool]] = None
    field_defaults: Mapping[str, Callable[[], Any]] = field(default_factory=dict)
    critical_fields: Tuple[str, ...] = ()

    @property
    def label(self) -> str:
        return self.name.upper()

    # ── Helpers ──────────────────────────────────────────────────────

    def _is_object_shape(self) -> bool:
        return isinstance(self.output_shape, type) and issubclass(self.output_shape, BaseModel)

    def _fill_defaults(self, payload: Dict[str, Any]) -> Tuple[Dict[str, Any], List[str]]:
        filled = dict(payload)
        defaulted: List[str] = []
        for name, factory in self.field_defaults.items():
            if _is_empty(filled.get(name)):
                filled[name] = factory()
                defaulted.append(name)
        return filled, defaulted

    def _check_content(self, value: str) -> bool:
        if not value.strip():
            return False
        if self.content_check is not None and not self.content_check(value):
            return False
        return True

    async def _call(self, prompt: str) -> Any:
        if self.kind == "image":
            media = await generate_image(prompt, safety_settings=self.safety_settings)
            return (media or {}).get("url")

        schema = response_schema(self.output_shape) if self._is_object_shape() else None
        return await generate_structured(prompt, schema, safety_settings=self.safety_settings)

    def _invalid(self, detail: str) -> StageResult:
        logger.warning("⚠️  [%s] Output invalid — using fallback: %s", self.label, detail)
        return StageResult(
            stage=self.name,
            output=self.invalid_fallback(),
            failure=FailureKind.SHAPE_VALIDATION,
            detail=detail,
        )

    # ── Public entry point ───────────────────────────────────────────

    async def run(self, fields: Mapping[str, str]) -> StageResult:
        """Run the stage once. Always returns a schema-valid output."""
        async with async_timer(self.name):
            try:
                prompt = build_prompt(self.template_id, fields)
                logger.info("[%s] Prompt built (%d chars)", self.label, len(prompt))
                raw = await self._call(prompt)
            except Exception as exc:
                logger.error("❌ [%s] Generation call failed: %s", self.label, exc)
                return StageResult(
                    stage=self.name,
                    output=self.error_fallback(exc),
                    failure=FailureKind.EXTERNAL_CALL,
                    detail=str(exc) or exc.__class__.__name__,
                )

            return self._accept(raw)

    def _accept(self, raw: Any) -> StageResult:
        defaulted: List[str] = []

        if self._is_object_shape():
            if not isinstance(raw, Mapping):
                return self._invalid(f"expected an object, got {type(raw).__name__}")
            raw, defaulted = self._fill_defaults(raw)

        checked = validate(raw, self.output_shape)
        if isinstance(checked, ValidationFailure):
            return self._invalid(str(checked))

        if isinstance(checked, str):
            if not self._check_content(checked):
                return self._invalid("output was empty or failed the content check")
            checked = checked.strip()

        critical = [name for name in defaulted if name in self.critical_fields]
        if critical:
            detail = f"no usable {', '.join(critical)} in output"
            logger.warning("⚠️  [%s] Empty result — %s", self.label, detail)
            return StageResult(
                stage=self.name,
                output=checked,
                failure=FailureKind.EMPTY_RESULT,
                defaulted_fields=defaulted,
                detail=detail,
            )

        if defaulted:
            logger.warning("⚠️  [%s] Defaults substituted for: %s", self.label, ", ".join(defaulted))
        else:
            logger.info("✅ [%s] Generation successful", self.label)

        return StageResult(stage=self.name, output=checked, defaulted_fields=defaulted)
