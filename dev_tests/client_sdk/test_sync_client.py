"""
Tests for client/sync_client.py - Synchronous Lumina Client

Mirrors the async client tests with requests.post and time.sleep patched.
"""

import base64
from unittest.mock import patch

import pytest
import requests

from audio_utils import read_wav_header
from client import LuminaClient
from exceptions import (
    DomainValidationError,
    DomainValidationErrorKind,
    ExtractionError,
    ExtractionErrorKind,
    NetworkError,
    UpstreamError,
    UpstreamErrorKind,
)
from models import ImageSource, VideoSource
from request_builders import build_quiz_request

import json_utils as json

PROXY_URL = "http://test-proxy:8000/api/gemini"
OVERLOADED = {"error": {"code": 503, "message": "The model is overloaded.", "status": "UNAVAILABLE"}}


@pytest.fixture
def client():
    return LuminaClient(proxy_url=PROXY_URL, max_retries=3, base_delay_seconds=1.0)


@pytest.fixture
def quiz_request():
    return build_quiz_request(VideoSource(video_id="abc123XYZ"), question_count=2)


@pytest.fixture
def mock_post():
    with patch("client.sync_client.requests.post") as mock:
        yield mock


@pytest.fixture
def mock_sleep():
    with patch("client.sync_client.time.sleep") as mock:
        yield mock


# ==============================================================================
# Initialization Tests
# ==============================================================================

class TestSyncClientInitialization:

    def test_defaults_come_from_config(self):
        client = LuminaClient(proxy_url=PROXY_URL)
        assert client.max_retries == 3
        assert client.base_delay_seconds == 1.0
        assert client.retry_status == 503

    def test_explicit_timeout_is_kept(self):
        assert LuminaClient(proxy_url=PROXY_URL, timeout=(3.0, 30.0)).timeout == (3.0, 30.0)


# ==============================================================================
# Retry Policy Tests
# ==============================================================================

class TestRetryPolicy:

    def test_persistent_503_gives_up_after_four_attempts(
        self, client, quiz_request, mock_post, mock_sleep, requests_response
    ):
        """
        Given: The proxy answers 503 on every attempt
        When: invoke() is called
        Then: 4 posts, sleeps of 1s, 2s and 4s, then HTTP_ERROR with status 503
        """
        mock_post.side_effect = [requests_response(503, OVERLOADED) for _ in range(4)]

        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)

        assert mock_post.call_count == 4
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0, 4.0]
        assert exc_info.value.kind == UpstreamErrorKind.HTTP_ERROR
        assert exc_info.value.status_code == 503

    def test_recovers_after_two_503s(
        self, client, quiz_request, quiz_payload, text_body, mock_post, mock_sleep, requests_response
    ):
        mock_post.side_effect = [
            requests_response(503, OVERLOADED),
            requests_response(503, OVERLOADED),
            requests_response(200, text_body(json.dumps(quiz_payload))),
        ]

        payload = client.invoke(quiz_request)

        assert mock_post.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1.0, 2.0]
        assert payload.parsed_json["quiz"][0]["answer"] == "Thylakoid"

    def test_base_delay_scales_backoff(self, quiz_request, mock_post, mock_sleep, requests_response):
        client = LuminaClient(proxy_url=PROXY_URL, max_retries=2, base_delay_seconds=0.5)
        mock_post.side_effect = [requests_response(503, OVERLOADED) for _ in range(3)]

        with pytest.raises(UpstreamError):
            client.invoke(quiz_request)

        assert [c.args[0] for c in mock_sleep.call_args_list] == [0.5, 1.0]

    def test_429_is_final(self, client, quiz_request, mock_post, mock_sleep, requests_response):
        mock_post.return_value = requests_response(429, {"error": {"message": "quota"}}, headers={"Retry-After": "12"})

        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)

        mock_sleep.assert_not_called()
        assert exc_info.value.retry_after == 12
        assert exc_info.value.message == "quota"

    def test_posts_json_body_with_timeout(self, client, quiz_request, quiz_payload, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body(json.dumps(quiz_payload)))

        client.invoke(quiz_request)

        args, kwargs = mock_post.call_args
        assert args[0] == PROXY_URL
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["timeout"] is client.timeout
        assert json.loads(kwargs["data"]) == {"model": quiz_request.target_model, "payload": quiz_request.to_payload()}


# ==============================================================================
# Upstream / Extraction Errors
# ==============================================================================

class TestErrorClassification:

    def test_empty_body(self, client, quiz_request, mock_post, requests_response):
        mock_post.return_value = requests_response(200, b"")
        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == UpstreamErrorKind.EMPTY_BODY

    def test_empty_503_body_after_retries_is_empty_body(self, client, quiz_request, mock_post, mock_sleep, requests_response):
        mock_post.side_effect = [requests_response(503, b"") for _ in range(4)]
        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == UpstreamErrorKind.EMPTY_BODY
        assert exc_info.value.status_code == 503

    def test_whitespace_body_is_empty(self, client, quiz_request, mock_post, requests_response):
        mock_post.return_value = requests_response(500, "   ", reason="Internal Server Error")
        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == UpstreamErrorKind.EMPTY_BODY
        assert exc_info.value.status_code == 500

    def test_api_error(self, client, quiz_request, mock_post, requests_response):
        mock_post.return_value = requests_response(200, {"error": "quota exhausted"})
        with pytest.raises(UpstreamError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == UpstreamErrorKind.API_ERROR
        assert exc_info.value.message == "quota exhausted"

    def test_missing_candidates(self, client, quiz_request, mock_post, requests_response):
        mock_post.return_value = requests_response(200, {"candidates": []})
        with pytest.raises(ExtractionError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == ExtractionErrorKind.NO_CANDIDATE

    def test_invalid_json(self, client, quiz_request, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body("Sure! {not json}"))
        with pytest.raises(ExtractionError) as exc_info:
            client.invoke(quiz_request)
        assert exc_info.value.kind == ExtractionErrorKind.INVALID_JSON

    @pytest.mark.parametrize("error", [
        requests.exceptions.ConnectionError("refused"),
        requests.exceptions.Timeout("slow"),
        requests.exceptions.RequestException("other"),
    ])
    def test_transport_errors(self, client, quiz_request, mock_post, mock_sleep, error):
        mock_post.side_effect = error
        with pytest.raises(NetworkError):
            client.invoke(quiz_request)
        assert mock_post.call_count == 1
        mock_sleep.assert_not_called()


# ==============================================================================
# Feature Method Tests
# ==============================================================================

class TestFeatureMethods:

    def test_analyze_image_source(self, client, quiz_payload, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body("Here you go:\n" + json.dumps(quiz_payload)))
        result = client.analyze_source(ImageSource(data=b"\xff\xd8"), question_count=2)
        assert result.key_concepts[0] == "chlorophyll"
        sent = json.loads(mock_post.call_args.kwargs["data"])
        assert "inlineData" in sent["payload"]["contents"][0]["parts"][1]

    def test_analyze_source_rejects_empty_quiz(self, client, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body('{"summary": "s", "quiz": []}'))
        with pytest.raises(DomainValidationError) as exc_info:
            client.analyze_source(VideoSource(video_id="abc123XYZ"))
        assert exc_info.value.kind == DomainValidationErrorKind.INVALID_QUIZ_SHAPE

    def test_explain_answer(self, client, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body("Because thylakoids hold chlorophyll."))
        assert client.explain("Thylakoid", "summary", explain_answer=True) == "Because thylakoids hold chlorophyll."

    def test_synthesize_speech_uses_mime_rate(self, client, audio_body, mock_post, requests_response):
        pcm = b"\x01\x00" * 10
        mock_post.return_value = requests_response(
            200, audio_body(base64.b64encode(pcm).decode(), mime_type="audio/L16;rate=16000")
        )
        wav = client.synthesize_speech("Hi")
        assert read_wav_header(wav) == (16000, len(pcm))

    def test_synthesize_speech_without_audio(self, client, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body("I cannot speak"))
        with pytest.raises(ExtractionError) as exc_info:
            client.synthesize_speech("Hi")
        assert exc_info.value.kind == ExtractionErrorKind.NO_INLINE_DATA

    def test_generate_flashcards(self, client, analysis_result, text_body, mock_post, requests_response):
        body = {"flashcards": [{"term": "ATP", "definition": "Energy currency"}]}
        mock_post.return_value = requests_response(200, text_body(json.dumps(body)))
        flashcards = client.generate_flashcards(analysis_result)
        assert len(flashcards) == 1
        assert flashcards.flashcards[0].term == "ATP"

    def test_generate_study_guide(self, client, analysis_result, text_body, mock_post, requests_response):
        body = {"title": "Guide", "sections": [{"heading": "H", "content": "C"}], "keyTakeaways": ["k"]}
        mock_post.return_value = requests_response(200, text_body(json.dumps(body)))
        guide = client.generate_study_guide(analysis_result)
        assert guide.key_takeaways == ["k"]

    def test_evaluate_response_clamps_score(self, client, text_body, mock_post, requests_response):
        from models import DocumentQuestion, UserFeedback

        question = DocumentQuestion(id="q1", question="Why?", difficulty="intermediate")
        feedback = UserFeedback(question_id="q1", user_response="Because", clarity=3, difficulty=3)
        mock_post.return_value = requests_response(
            200, text_body('{"evaluation": "Good", "score": 140, "suggestions": ["a", "b", "c", "d"]}')
        )
        evaluation = client.evaluate_response(question, "Because", "context", feedback)
        assert evaluation.score == 100
        assert evaluation.suggestions == ["a", "b", "c"]

    def test_generate_persona_content(self, client, persona, content_request, text_body, mock_post, requests_response):
        mock_post.return_value = requests_response(200, text_body('{"content": "Recursion is a function calling itself."}'))
        generated = client.generate_persona_content(persona, content_request)
        assert generated.persona == "TutorBot"
        assert generated.content_type == "explanation"
        assert generated.token_estimate > 0


# ==============================================================================
# Health Check
# ==============================================================================

class TestHealthCheck:

    def test_health_url_is_derived_from_proxy_url(self, client, requests_response):
        with patch("client.sync_client.requests.get") as mock_get:
            mock_get.return_value = requests_response(200, {"status": "ok"})
            assert client.health_check() == {"status": "ok"}
        assert mock_get.call_args.args[0] == "http://test-proxy:8000/api/health"

    def test_unhealthy_proxy(self, client, requests_response):
        with patch("client.sync_client.requests.get") as mock_get:
            mock_get.return_value = requests_response(502, "bad")
            with pytest.raises(NetworkError):
                client.health_check()
