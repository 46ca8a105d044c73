"""
Lumina Proxy - shared application state
=======================================

FastAPI application, logging setup and the shared upstream HTTP client used
by the route modules. The proxy is the only component that holds the upstream
API key; clients POST ``{model, payload}`` to it.
"""

import logging
import time
from typing import Optional

import httpx
from fastapi import FastAPI

from config import config
from logging_utils import configure_logging

# Setup logging
configure_logging(config.LOG_LEVEL)

logger = logging.getLogger(__name__)

SERVICE_NAME = "lumina-proxy"
STARTED_AT = time.monotonic()

app = FastAPI(
    title="Lumina Proxy",
    description="Same-origin proxy forwarding model requests with a server-held API key",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

upstream_client: Optional[httpx.AsyncClient] = None


def get_upstream_client() -> httpx.AsyncClient:
    """Shared upstream client, created lazily so tests without startup events still work."""
    global upstream_client
    if upstream_client is None or upstream_client.is_closed:
        upstream_client = httpx.AsyncClient(timeout=httpx.Timeout(config.PROXY.upstream_timeout_seconds))
    return upstream_client


def uptime_seconds() -> int:
    return int(time.monotonic() - STARTED_AT)


@app.on_event("startup")
async def startup_event():
    """Create the upstream client and report configuration problems early"""
    get_upstream_client()
    if not config.has_api_key():
        logger.warning("GEMINI_API_KEY is not set; /api/gemini will answer 500 until it is configured")
    logger.info("Lumina proxy forwarding to %s", config.PROXY.upstream_base_url)


@app.on_event("shutdown")
async def shutdown_event():
    """Close the upstream client"""
    global upstream_client
    if upstream_client is not None and not upstream_client.is_closed:
        await upstream_client.aclose()
    upstream_client = None
    logger.info("Shutdown complete")
