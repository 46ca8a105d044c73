"""Shared pytest fixtures for Lumina tests."""

import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import json_utils as json


# ============================================================================
# Upstream body builders
# ============================================================================

def upstream_text_body(text):
    """generateContent success body carrying one text part."""
    return {"candidates": [{"content": {"parts": [{"text": text}], "role": "model"}}]}


def upstream_audio_body(data_b64, mime_type="audio/L16;codec=pcm;rate=24000"):
    return {"candidates": [{"content": {"parts": [{"inlineData": {"mimeType": mime_type, "data": data_b64}}]}}]}


def make_aiohttp_response(status=200, body=b"", headers=None, reason="OK"):
    """Mock aiohttp response usable as an async context manager."""
    if isinstance(body, (dict, list)):
        body = json.dumps_bytes(body)
    elif isinstance(body, str):
        body = body.encode("utf-8")
    response = MagicMock()
    response.status = status
    response.reason = reason
    response.headers = headers or {}
    response.read = AsyncMock(return_value=body)
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


def make_requests_response(status=200, body=b"", headers=None, reason="OK"):
    """Mock requests.Response."""
    if isinstance(body, (dict, list)):
        body = json.dumps_bytes(body)
    elif isinstance(body, str):
        body = body.encode("utf-8")
    response = MagicMock()
    response.status_code = status
    response.reason = reason
    response.headers = headers or {}
    response.content = body
    return response


# ============================================================================
# Time Fixtures
# ============================================================================

@pytest.fixture
def fixed_now():
    """A fixed, timezone-aware instant for reproducible schedules."""
    return datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================================
# Payload Fixtures
# ============================================================================

@pytest.fixture
def quiz_payload():
    """A well-formed quiz analysis payload."""
    return {
        "summary": "Photosynthesis converts light into chemical energy.",
        "key_concepts": ["chlorophyll", "light reactions", "Calvin cycle", "glucose", "stomata"],
        "analogy": "A leaf is a solar-powered kitchen.",
        "quiz": [
            {
                "question": "Where do the light reactions happen?",
                "options": ["Thylakoid", "Stroma", "Nucleus", "Cell wall"],
                "answer": "Thylakoid",
            },
            {
                "question": "What does the Calvin cycle produce?",
                "options": ["Oxygen", "Glucose precursors", "Water", "ATP only"],
                "answer": "Glucose precursors",
            },
        ],
    }


@pytest.fixture
def analysis_result(quiz_payload):
    from domain_validator import validate_analysis_result
    return validate_analysis_result(quiz_payload)


@pytest.fixture
def document_payload():
    return {
        "summary": "An essay on the causes of the French Revolution.",
        "key_topics": ["debt", "estates", "enlightenment"],
        "main_themes": ["inequality", "reform"],
        "questions": [
            {"id": "q1", "question": "How did debt shape 1789?", "difficulty": "intermediate",
             "topic": "debt", "context": "The crown was bankrupt."},
            {"id": "q2", "question": "Why did the estates clash?", "difficulty": "intermediate",
             "topic": "estates", "context": "Voting by order."},
            {"id": "q3", "question": "Link ideas to action.", "difficulty": "advanced",
             "topic": "enlightenment", "context": "Rousseau."},
            {"id": "q4", "question": "Compare reform paths.", "difficulty": "advanced",
             "topic": "reform", "context": "Turgot."},
            {"id": "q5", "question": "Was revolution inevitable?", "difficulty": "expert",
             "topic": "inequality", "context": "Whole essay."},
        ],
    }


@pytest.fixture
def persona():
    from personas import PRESET_PERSONAS
    return PRESET_PERSONAS["educational_tutor"]


@pytest.fixture
def content_request():
    from models import ContentRequest
    return ContentRequest(
        content_type="explanation",
        topic="Recursion",
        target_audience="first-year students",
        requirements=["Use one analogy", "Keep it under 200 words"],
    )


# ============================================================================
# Factory Fixtures
# ============================================================================

@pytest.fixture
def text_body():
    return upstream_text_body


@pytest.fixture
def audio_body():
    return upstream_audio_body


@pytest.fixture
def aiohttp_response():
    return make_aiohttp_response


@pytest.fixture
def requests_response():
    return make_requests_response
