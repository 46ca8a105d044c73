"""
Payload extraction for upstream generateContent responses.

Generated text is not guaranteed to be clean JSON even in JSON mode: models
wrap it in markdown fences or surround it with prose. Extraction is a two
stage fallback: parse the fence-stripped text directly, then parse the span
from the first ``{`` to the last ``}``.

All functions here are pure; calling them twice on the same body yields equal
results.
"""

import base64
import binascii
import logging
import re
from typing import Any, Dict, Optional, Tuple

import json_utils as json
from exceptions import ExtractionError, ExtractionErrorKind
from models import ExtractedPayload

logger = logging.getLogger(__name__)

_FENCE_PATTERN = re.compile(r"```json\n?|```\n?")
_OBJECT_PATTERN = re.compile(r"\{[\s\S]*\}")

PREVIEW_CHARS = 500


def _first_parts(body: Any) -> list:
    """Parts of the first candidate, or an empty list when the shape is off."""
    if not isinstance(body, dict):
        return []
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return []
    candidate = candidates[0]
    if not isinstance(candidate, dict):
        return []
    content = candidate.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    return parts if isinstance(parts, list) else []


def extract_generated_text(body: Any) -> str:
    """
    Return ``candidates[0].content.parts[0].text``.

    Raises:
        ExtractionError: NO_CANDIDATE when the text is absent or empty
    """
    parts = _first_parts(body)
    text = None
    if parts and isinstance(parts[0], dict):
        text = parts[0].get("text")

    if not isinstance(text, str) or not text:
        keys = sorted(body.keys()) if isinstance(body, dict) else type(body).__name__
        logger.error("No generated text in upstream response (keys: %s)", keys)
        raise ExtractionError(
            ExtractionErrorKind.NO_CANDIDATE,
            "API returned empty response",
            details={"body_keys": keys},
        )
    return text


def strip_code_fences(text: str) -> str:
    """Remove ```json and ``` markers anywhere in the text."""
    return _FENCE_PATTERN.sub("", text).strip()


def parse_embedded_json(text: str) -> Any:
    """
    Parse JSON from model text, tolerating fences and surrounding prose.

    Raises:
        ExtractionError: INVALID_JSON when neither the cleaned text nor its
            greedy ``{...}`` span parses
    """
    cleaned = strip_code_fences(text)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    match = _OBJECT_PATTERN.search(cleaned)
    if match:
        try:
            return json.loads(match.group(0))
        except json.JSONDecodeError:
            pass

    logger.error("Failed to parse JSON. Raw response: %s", cleaned[:PREVIEW_CHARS])
    raise ExtractionError(
        ExtractionErrorKind.INVALID_JSON,
        "Invalid JSON in API response",
        details={"preview": cleaned[:PREVIEW_CHARS]},
    )


def extract_payload(body: Any, require_json: bool = True) -> ExtractedPayload:
    """
    Turn a successful upstream body into an ExtractedPayload.

    Args:
        body: Parsed upstream JSON (already checked for transport/API errors)
        require_json: Parse the generated text as JSON. Free-text request
            shapes (explanations) pass False and get the raw text only.

    Returns:
        ExtractedPayload with the raw text and, when requested, the parsed JSON
    """
    text = extract_generated_text(body)
    if not require_json:
        return ExtractedPayload(raw_generated_text=text)
    return ExtractedPayload(raw_generated_text=text, parsed_json=parse_embedded_json(text))


def extract_inline_audio(body: Any) -> Tuple[bytes, Optional[str]]:
    """
    Return decoded bytes and mime type of the first ``inlineData`` part.

    Raises:
        ExtractionError: NO_CANDIDATE without candidate parts, NO_INLINE_DATA
            when no part carries decodable inline data
    """
    parts = _first_parts(body)
    if not parts:
        raise ExtractionError(ExtractionErrorKind.NO_CANDIDATE, "API returned empty response")

    for part in parts:
        inline: Optional[Dict[str, Any]] = part.get("inlineData") if isinstance(part, dict) else None
        if not isinstance(inline, dict) or not inline.get("data"):
            continue
        try:
            audio = base64.b64decode(inline["data"], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ExtractionError(
                ExtractionErrorKind.NO_INLINE_DATA,
                f"Inline data is not valid base64: {exc}",
            ) from exc
        return audio, inline.get("mimeType")

    raise ExtractionError(ExtractionErrorKind.NO_INLINE_DATA, "Response contains no inline audio data")
