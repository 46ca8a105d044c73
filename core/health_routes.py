"""
Liveness endpoint for deployment smoke tests.
"""

import os
from datetime import datetime, timezone

from fastapi import Request
from fastapi.responses import HTMLResponse

import json_utils as json

from .app_state import SERVICE_NAME, app, uptime_seconds


@app.get("/api/health")
async def health_check(request: Request):
    """Liveness only; does not call upstream. Browsers get a small HTML page."""
    payload = {
        "status": "ok",
        "service": SERVICE_NAME,
        "uptime": uptime_seconds(),
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "commit": os.getenv("GIT_COMMIT_SHA") or None,
    }

    if "text/html" in request.headers.get("accept", ""):
        return HTMLResponse(
            "<!doctype html><html><head><meta charset=\"utf-8\"><title>Lumina - Health</title></head>"
            f"<body><h1>Health: OK</h1><pre>{json.dumps(payload, indent=2)}</pre></body></html>"
        )
    return payload
