"""
Entrypoint for the Lumina proxy server.
This file wires the FastAPI application together by importing the core package,
which initializes shared state and registers all routes.
"""

from __future__ import annotations

import argparse

import core  # noqa: F401  # Ensure route modules are imported for side effects
from core.app_state import app, config, logger  # noqa: F401


if __name__ == "__main__":
    import uvicorn

    parser = argparse.ArgumentParser(description="Lumina proxy server")
    parser.add_argument("--host", default=config.APP_HOST, help=f"Bind address (default: {config.APP_HOST})")
    parser.add_argument("--port", type=int, default=config.APP_PORT, help=f"Bind port (default: {config.APP_PORT})")
    parser.add_argument(
        "--reload",
        action="store_true",
        default=config.APP_RELOAD,
        help="Restart on code changes (development only)",
    )
    args = parser.parse_args()

    if not config.has_api_key():
        logger.warning("GEMINI_API_KEY is not set; model requests will fail with HTTP 500")

    logger.info("Starting Lumina proxy on %s:%d", args.host, args.port)
    uvicorn.run(
        "main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=config.LOG_LEVEL.lower(),
    )
