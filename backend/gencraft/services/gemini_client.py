"""Centralized Gemini client — the single external generation boundary.

All stages MUST use `generate_structured()` or `generate_image()` from this
module. This ensures:
  - Endpoint, model, temperature, timeout and token limits come from settings.
  - Structured output is requested via responseMimeType + responseSchema.
  - Exactly one attempt per call (no retry); failures raise GenerationError.
  - Consistent logging across all stages.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Any, Dict, Iterable, List, Optional

import httpx

from ..config import get_settings
from ..schemas.safety_schema import SafetySetting
from .http_client import get_client, get_timeout

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"^```[a-zA-Z0-9_-]*\s*\n?(.*?)\n?```$", re.DOTALL)


class GenerationError(Exception):
    """Raised when the generation API rejects, times out, or returns garbage."""


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------
def strip_markdown_fences(raw: str) -> str:
    """Remove a single surrounding ```lang ... ``` fence, if present."""
    text = raw.strip().lstrip("\ufeff")
    match = _FENCE_RE.match(text)
    if match:
        return match.group(1).strip()
    return text


def build_payload(
    *,
    prompt: str,
    safety_settings: Iterable[SafetySetting] = (),
    response_schema: Optional[Dict[str, Any]] = None,
    response_modalities: Optional[List[str]] = None,
) -> Dict[str, Any]:
    """Build a generateContent request body."""
    settings = get_settings()

    generation_config: Dict[str, Any] = {
        "temperature": settings.temperature,
        "maxOutputTokens": settings.max_output_tokens,
    }
    if response_schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = response_schema
    if response_modalities:
        generation_config["responseModalities"] = list(response_modalities)

    payload: Dict[str, Any] = {
        "contents": [{"role": "user", "parts": [{"text": prompt}]}],
        "generationConfig": generation_config,
    }

    safety = [s.to_request() for s in safety_settings]
    if safety:
        payload["safetySettings"] = safety

    return payload


def _candidate_parts(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Return the content parts of the first candidate.

    Raises GenerationError when the prompt itself was blocked.
    """
    feedback = data.get("promptFeedback") or {}
    block_reason = feedback.get("blockReason")
    if block_reason:
        raise GenerationError(f"Prompt blocked by safety filter: {block_reason}")

    candidates = data.get("candidates") or []
    if not candidates:
        return []

    candidate = candidates[0]
    finish_reason = candidate.get("finishReason")
    if finish_reason == "SAFETY":
        raise GenerationError("Response blocked by safety filter")

    content = candidate.get("content") or {}
    return content.get("parts") or []


def extract_text(data: Dict[str, Any]) -> str:
    """Concatenate text parts of the first candidate."""
    parts = _candidate_parts(data)
    return "".join(p.get("text", "") for p in parts if isinstance(p, dict)).strip()


def extract_image_url(data: Dict[str, Any]) -> Optional[str]:
    """Return the first inline image part as a data URI, or None."""
    for part in _candidate_parts(data):
        inline = part.get("inlineData") or part.get("inline_data")
        if not inline:
            continue
        mime_type = inline.get("mimeType") or inline.get("mime_type") or "image/png"
        encoded = inline.get("data")
        if encoded and mime_type.startswith("image/"):
            return f"data:{mime_type};base64,{encoded}"
    return None


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------
async def _post_generate(model: str, payload: Dict[str, Any]) -> Dict[str, Any]:
    """POST a generateContent request and return the decoded response body."""
    settings = get_settings()
    if not settings.has_api_key:
        logger.error("[GEMINI] API key missing (GEMINI_API_KEY)")
        raise GenerationError("GEMINI_API_KEY environment variable not set")

    url = f"{settings.gemini_api_url}/models/{model}:generateContent"
    headers = {
        "x-goog-api-key": settings.gemini_api_key,
        "Content-Type": "application/json",
    }

    t0 = time.time()
    logger.info("[GEMINI] Calling %s", model)
    try:
        client = await get_client()
        response = await client.post(url, headers=headers, json=payload, timeout=get_timeout())
    except httpx.TimeoutException as exc:
        logger.error("[GEMINI] Timeout after %.1fs", time.time() - t0)
        raise GenerationError("Generation request timed out") from exc
    except httpx.HTTPError as exc:
        logger.error("[GEMINI] Transport error: %s", exc)
        raise GenerationError(f"Generation request failed: {exc}") from exc

    duration = time.time() - t0
    logger.info("[GEMINI] HTTP %s (%.1fs)", response.status_code, duration)

    if response.status_code != 200:
        error_body = response.text[:400]
        logger.error("[GEMINI] Error response: %s", error_body)
        raise GenerationError(f"Generation API returned HTTP {response.status_code}")

    try:
        data = response.json()
    except ValueError as exc:
        raise GenerationError("Generation API returned a non-JSON body") from exc

    usage = data.get("usageMetadata")
    if usage:
        logger.debug(
            "[GEMINI] Tokens used: prompt=%s, output=%s, total=%s",
            usage.get("promptTokenCount", "?"),
            usage.get("candidatesTokenCount", "?"),
            usage.get("totalTokenCount", "?"),
        )
    return data


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
async def generate_structured(
    prompt: str,
    response_schema: Optional[Dict[str, Any]] = None,
    *,
    safety_settings: Iterable[SafetySetting] = (),
) -> Any:
    """Generate output for `prompt`.

    With a `response_schema`, JSON output is requested and the decoded value
    is returned. Without one, plain text is returned (fences stripped).
    Returns None when the model produced no content.

    Raises
    ------
    GenerationError
        On transport failure, non-200 status, safety block, or undecodable JSON.
    """
    settings = get_settings()
    payload = build_payload(
        prompt=prompt,
        safety_settings=safety_settings,
        response_schema=response_schema,
    )
    data = await _post_generate(settings.gemini_model, payload)

    raw = extract_text(data)
    logger.info("[GEMINI] Raw output length: %d chars", len(raw))
    if not raw:
        return None

    if response_schema is None:
        return strip_markdown_fences(raw)

    try:
        return json.loads(strip_markdown_fences(raw))
    except json.JSONDecodeError as exc:
        logger.warning("[GEMINI] Raw (first 300 chars): %s", raw[:300])
        raise GenerationError(f"Model returned invalid JSON: {exc}") from exc


async def generate_image(
    prompt: str,
    *,
    safety_settings: Iterable[SafetySetting] = (),
) -> Dict[str, Optional[str]]:
    """Generate an image for `prompt` and return {"url": data_uri_or_None}.

    Raises
    ------
    GenerationError
        On transport failure, non-200 status, or safety block.
    """
    settings = get_settings()
    payload = build_payload(
        prompt=prompt,
        safety_settings=safety_settings,
        response_modalities=["TEXT", "IMAGE"],
    )
    data = await _post_generate(settings.gemini_image_model, payload)
    url = extract_image_url(data)
    if url is None:
        logger.warning("[GEMINI] Image response contained no inline image part")
    return {"url": url}
