"""
Shared utilities for the sync and async Lumina clients.

Contains the response-reading and upstream-checking rules used by both
LuminaClient and AsyncLuminaClient. No HTTP calls are made from this module.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Optional

import json_utils as json
from exceptions import UpstreamError, UpstreamErrorKind
from models import ProxyResponse

logger = logging.getLogger(__name__)

ERROR_PREVIEW_CHARS = 300


def new_invocation_id() -> str:
    """Short id tagging every log line of one invocation."""
    return uuid.uuid4().hex[:8]


def health_url_for(proxy_url: str) -> str:
    """``http://host/api/gemini`` -> ``http://host/api/health``"""
    return proxy_url.rstrip("/").rsplit("/", 1)[0] + "/health"


# ---------------------------------------------------------------------------
# Response reading
# ---------------------------------------------------------------------------

def parse_json_safe(text: Optional[str]) -> Any:
    """Parse JSON or return None; never raises."""
    if not text or not text.strip():
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Retry-After in whole seconds; HTTP-date and garbage values yield None."""
    if value is None:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


def build_proxy_response(
    status: int,
    raw_text: Optional[str],
    retry_after_header: Optional[str] = None,
    status_text: Optional[str] = None,
) -> ProxyResponse:
    return ProxyResponse(
        http_status=status,
        raw_text=raw_text or "",
        retry_after_seconds=parse_retry_after(retry_after_header),
        status_text=status_text or "",
    )


def decode_body(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------

def backoff_delay(retries_so_far: int, base_delay_seconds: float) -> float:
    """Delay before the next attempt: base * 2**retries_so_far (1s, 2s, 4s with base 1s)."""
    return base_delay_seconds * (2 ** retries_so_far)


def should_retry(proxy_response: ProxyResponse, retries_so_far: int, max_retries: int, retry_status: int = 503) -> bool:
    return proxy_response.http_status == retry_status and retries_so_far < max_retries


# ---------------------------------------------------------------------------
# Upstream checks
# ---------------------------------------------------------------------------

def error_message_from(parsed: Any, proxy_response: ProxyResponse) -> str:
    """Best available error message: error.message, message, raw text, then the status."""
    if isinstance(parsed, dict):
        error = parsed.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if isinstance(parsed.get("message"), str) and parsed["message"]:
            return parsed["message"]
    text = proxy_response.raw_text.strip()
    if text:
        return text[:ERROR_PREVIEW_CHARS]
    return proxy_response.status_text or f"HTTP {proxy_response.http_status}"


def assert_ok(proxy_response: ProxyResponse, parsed: Any = None) -> None:
    """
    Raise UpstreamError(HTTP_ERROR) for a non-2xx response.

    Args:
        proxy_response: Response read from the proxy
        parsed: Already parsed body, if the caller has it
    """
    if proxy_response.ok:
        return
    if parsed is None:
        parsed = parse_json_safe(proxy_response.raw_text)
    raise UpstreamError(
        UpstreamErrorKind.HTTP_ERROR,
        error_message_from(parsed, proxy_response),
        status_code=proxy_response.http_status,
        retry_after=proxy_response.retry_after_seconds,
        details={"body": parsed} if parsed is not None else {},
    )


def check_upstream(proxy_response: ProxyResponse) -> Dict[str, Any]:
    """
    Classify the final proxy response and return the upstream body.

    Order: empty body, non-2xx status, API-level ``error`` field. A 2xx body
    that is not a JSON object is returned wrapped so extraction reports it as
    having no candidate.

    Raises:
        UpstreamError: EMPTY_BODY, HTTP_ERROR or API_ERROR
    """
    if proxy_response.is_empty:
        raise UpstreamError(
            UpstreamErrorKind.EMPTY_BODY,
            f"Empty response from proxy (HTTP {proxy_response.http_status})",
            status_code=proxy_response.http_status,
            retry_after=proxy_response.retry_after_seconds,
        )

    parsed = parse_json_safe(proxy_response.raw_text)
    assert_ok(proxy_response, parsed)

    if not isinstance(parsed, dict):
        logger.warning("Proxy returned a non-JSON success body (%d chars)", len(proxy_response.raw_text))
        return {"raw_text": proxy_response.raw_text[:ERROR_PREVIEW_CHARS]}

    if parsed.get("error") is not None:
        raise UpstreamError(
            UpstreamErrorKind.API_ERROR,
            error_message_from(parsed, proxy_response),
            status_code=proxy_response.http_status,
            details={"error": parsed["error"]},
        )
    return parsed
