"""
Model proxy route.

``POST /api/gemini`` receives ``{model, payload}``, appends the server-held
API key and forwards the payload to ``{base}/models/{model}:generateContent``.
Upstream status, body and Retry-After are passed through unchanged, except
that an empty upstream body is replaced by a JSON error so callers never get
an unparseable success response.
"""

import re

import httpx
from fastapi import Request
from fastapi.responses import JSONResponse, Response

from client._common import parse_json_safe

from . import app_state
from .app_state import app, config, logger

_MODEL_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
EMPTY_UPSTREAM_MESSAGE = "Empty response from Gemini API"


def _upstream_url(model: str) -> str:
    return f"{config.PROXY.upstream_base_url}/models/{model}:generateContent"


@app.api_route("/api/gemini", methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"], include_in_schema=False)
async def gemini_method_not_allowed():
    return JSONResponse(status_code=405, content={"error": "Method Not Allowed"}, headers={"Allow": "POST"})


@app.post("/api/gemini")
async def gemini_proxy(request: Request):
    """
    Forward one generateContent call.

    Returns:
        The upstream status and JSON body; 500 without a configured key or on
        transport failure; 400 when ``model`` or ``payload`` is missing.
    """
    if not config.has_api_key():
        return JSONResponse(status_code=500, content={"error": "Server API key not configured (GEMINI_API_KEY)."})

    body = parse_json_safe((await request.body()).decode("utf-8", errors="replace"))
    model = body.get("model") if isinstance(body, dict) else None
    payload = body.get("payload") if isinstance(body, dict) else None
    if not model or payload is None:
        return JSONResponse(status_code=400, content={"error": "Request must include `model` and `payload`."})
    if not isinstance(model, str) or not _MODEL_NAME_PATTERN.match(model):
        return JSONResponse(status_code=400, content={"error": "Invalid `model` name."})

    try:
        upstream = await app_state.get_upstream_client().post(
            _upstream_url(model),
            params={"key": config.GEMINI_API_KEY},
            json=payload,
            headers={"Content-Type": "application/json"},
        )
    except httpx.HTTPError as e:
        logger.error("Proxy error for model %s: %s", model, type(e).__name__)
        return JSONResponse(status_code=500, content={"error": "Proxy failed", "details": str(e) or type(e).__name__})

    headers = {}
    retry_after = upstream.headers.get("Retry-After")
    if retry_after:
        headers["Retry-After"] = retry_after

    text = upstream.text
    if not text or not text.strip():
        logger.warning("Upstream returned an empty body for %s (HTTP %d)", model, upstream.status_code)
        return JSONResponse(
            status_code=upstream.status_code,
            content={
                "error": {
                    "message": EMPTY_UPSTREAM_MESSAGE,
                    "status": upstream.status_code,
                    "statusText": upstream.reason_phrase,
                }
            },
            headers=headers,
        )

    if upstream.status_code >= 400:
        logger.info("Upstream answered HTTP %d for %s", upstream.status_code, model)
    return Response(content=text, status_code=upstream.status_code, media_type="application/json", headers=headers)
