"""
Tests for models.py - request, response and domain models.
"""

import base64

import pytest
from pydantic import TypeAdapter, ValidationError

from models import (
    AnalysisResult,
    ExtractedPayload,
    GenerationOptions,
    ImageSource,
    ModelRequest,
    PerformanceAnalysis,
    ProxyResponse,
    QuizItem,
    QuizSource,
    ReviewState,
    TextPart,
    VideoSource,
    compute_accuracy,
    estimate_tokens,
)


class TestComputeAccuracy:

    @pytest.mark.parametrize("correct, total, expected", [
        (0, 0, 0),
        (0, 5, 0),
        (5, 5, 100),
        (2, 3, 67),
        (1, 3, 33),
        (1, 8, 13),   # 12.5 rounds half up
        (7, 8, 88),   # 87.5 rounds half up
    ])
    def test_rounds_half_up(self, correct, total, expected):
        assert compute_accuracy(correct, total) == expected


class TestModelRequest:

    def test_requires_prompt_parts(self):
        with pytest.raises(ValidationError):
            ModelRequest(target_model="m", prompt_parts=[])

    def test_proxy_body_shape(self):
        request = ModelRequest(
            target_model="gemini-2.0-flash",
            prompt_parts=[TextPart(text="hi")],
            system_instruction="be brief",
            generation_options=GenerationOptions(response_is_json=True, temperature=0.5),
        )
        assert request.to_proxy_body() == {
            "model": "gemini-2.0-flash",
            "payload": {
                "contents": [{"parts": [{"text": "hi"}]}],
                "systemInstruction": {"parts": [{"text": "be brief"}]},
                "generationConfig": {"responseMimeType": "application/json", "temperature": 0.5},
            },
        }

    def test_is_frozen(self):
        request = ModelRequest(target_model="m", prompt_parts=[TextPart(text="x")])
        with pytest.raises(ValidationError):
            request.target_model = "other"


class TestSources:

    def test_from_data_url_keeps_mime_type(self):
        encoded = base64.b64encode(b"png-bytes").decode()
        source = ImageSource.from_data_url(f"data:image/png;base64,{encoded}")
        assert source.mime_type == "image/png"
        assert source.data == b"png-bytes"

    def test_bare_base64_defaults_to_jpeg(self):
        source = ImageSource.from_data_url(base64.b64encode(b"raw").decode())
        assert source.mime_type == "image/jpeg"
        assert source.data == b"raw"

    def test_discriminated_union(self):
        adapter = TypeAdapter(QuizSource)
        assert isinstance(adapter.validate_python({"kind": "video", "video_id": "abc"}), VideoSource)
        assert isinstance(adapter.validate_python({"kind": "image", "data": b"x"}), ImageSource)


class TestProxyResponse:

    def test_ok_and_empty(self):
        assert ProxyResponse(http_status=204).ok
        assert ProxyResponse(http_status=200, raw_text="  \n").is_empty
        assert not ProxyResponse(http_status=503, raw_text="{}").ok


class TestExtractedPayload:

    def test_text_required_without_json(self):
        with pytest.raises(ValidationError):
            ExtractedPayload(raw_generated_text="")

    def test_json_without_text_is_allowed(self):
        assert ExtractedPayload(raw_generated_text="", parsed_json={"a": 1}).parsed_json == {"a": 1}


class TestQuizModels:

    def test_quiz_item_requires_four_options(self):
        with pytest.raises(ValidationError):
            QuizItem(question="q", options=["a", "b"], answer="a")

    def test_quiz_item_answer_must_be_option(self):
        with pytest.raises(ValidationError):
            QuizItem(question="q", options=["a", "b", "c", "d"], answer="e")

    def test_count_correct(self):
        result = AnalysisResult(quiz=[
            QuizItem(question="1", options=["a", "b", "c", "d"], answer="a"),
            QuizItem(question="2", options=["a", "b", "c", "d"], answer="b"),
            QuizItem(question="3", options=["a", "b", "c", "d"], answer="c"),
        ])
        assert result.count_correct({0: "a", 1: "c", 2: "c", 7: "a"}) == 2


class TestPerformanceAnalysis:

    def test_rejects_inconsistent_accuracy(self):
        with pytest.raises(ValidationError):
            PerformanceAnalysis(total_questions=4, correct_answers=1, accuracy=50)

    def test_rejects_more_correct_than_total(self):
        with pytest.raises(ValidationError):
            PerformanceAnalysis(total_questions=1, correct_answers=2, accuracy=200)


class TestReviewState:

    def test_bounds(self, fixed_now):
        with pytest.raises(ValidationError):
            ReviewState(next_review_at=fixed_now, interval_days=0.5, difficulty_factor=0.5)
        with pytest.raises(ValidationError):
            ReviewState(next_review_at=fixed_now, interval_days=1, difficulty_factor=3.0)


def test_estimate_tokens():
    assert estimate_tokens("") == 0
    assert estimate_tokens("abcd") == 1
    assert estimate_tokens("abcde") == 2
