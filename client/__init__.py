"""
Lumina Client SDK
=================

Python client library for the Lumina study pipeline. Both clients talk to the
same-origin proxy (see ``core.proxy_routes``); the upstream API key never
leaves the server.

Quick Start:
    from client import LuminaClient
    from models import VideoSource

    # Sync usage
    client = LuminaClient()
    result = client.analyze_source(VideoSource(video_id="dQw4w9WgXcQ"), question_count=5)
    print(result.summary)

    # Async usage
    from client import AsyncLuminaClient

    async with AsyncLuminaClient() as client:
        guide = await client.generate_study_guide(result)
        print(guide.title)
"""

from exceptions import (
    DomainValidationError,
    DomainValidationErrorKind,
    ExtractionError,
    ExtractionErrorKind,
    LuminaError,
    NetworkError,
    UpstreamError,
    UpstreamErrorKind,
)

from .sync_client import LuminaClient
from .async_client import AsyncLuminaClient

__all__ = [
    "LuminaClient",
    "AsyncLuminaClient",
    "LuminaError",
    "NetworkError",
    "UpstreamError",
    "UpstreamErrorKind",
    "ExtractionError",
    "ExtractionErrorKind",
    "DomainValidationError",
    "DomainValidationErrorKind",
]

__version__ = "1.0.0"
