"""
Synchronous Lumina Client
=========================

Blocking client for the Lumina study pipeline. Suitable for scripts, CLI
tools and notebooks; behaves exactly like AsyncLuminaClient but waits
between 503 retries with time.sleep.

For async applications, use AsyncLuminaClient instead.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import requests
from requests import exceptions as requests_exceptions

import json_utils as json
from audio_utils import pcm16_to_wav, parse_sample_rate
from config import config
from domain_validator import (
    validate_analysis_result,
    validate_document_analysis,
    validate_flashcards,
    validate_generated_content,
    validate_performance,
    validate_response_evaluation,
    validate_study_guide,
    validate_variants,
)
from exceptions import NetworkError
from logging_utils import Phase, PhaseLogger
from models import (
    AnalysisResult,
    ContentRequest,
    DifficultyLevel,
    DocumentAnalysis,
    DocumentQuestion,
    ExtractedPayload,
    FlashcardSet,
    GeneratedContent,
    ModelRequest,
    PerformanceAnalysis,
    ProxyResponse,
    QuizSource,
    ResponseEvaluation,
    StudyGuide,
    SystemPersona,
    UserFeedback,
)
from payload_extractor import extract_inline_audio, extract_payload
from request_builders import (
    DEFAULT_QUESTION_COUNT,
    build_document_analysis_request,
    build_explanation_request,
    build_flashcards_request,
    build_performance_request,
    build_persona_content_request,
    build_quiz_request,
    build_response_evaluation_request,
    build_speech_request,
    build_study_guide_request,
    build_variants_request,
)

from ._common import (
    backoff_delay,
    build_proxy_response,
    check_upstream,
    decode_body,
    health_url_for,
    new_invocation_id,
    should_retry,
)

logger = logging.getLogger(__name__)

Timeout = Union[None, float, Tuple[float, float]]


def read_proxy_response(response: requests.Response) -> ProxyResponse:
    """Read the whole body as text; an empty body is returned as "" without raising."""
    raw = response.content
    return build_proxy_response(
        response.status_code,
        decode_body(raw) if raw else "",
        response.headers.get("Retry-After"),
        response.reason,
    )


class LuminaClient:
    """
    Synchronous client for the Lumina study pipeline.

    Usage:
        client = LuminaClient()
        result = client.analyze_source(ImageSource.from_data_url(data_url), question_count=5)
        for item in result.quiz:
            print(item.question, item.options)
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout: Timeout = None,
        max_retries: Optional[int] = None,
        base_delay_seconds: Optional[float] = None,
        verbose: bool = False,
    ):
        """
        Initialize the Lumina client.

        Args:
            proxy_url: Proxy endpoint (default: config.PROXY.url / LUMINA_PROXY_URL)
            timeout: requests timeout (seconds or (connect, read)); unbounded
                unless given or LUMINA_REQUEST_TIMEOUT is set
            max_retries: Retries after the first attempt on HTTP 503 (default 3)
            base_delay_seconds: Backoff base delay (default 1.0)
            verbose: Emit per-phase debug lines
        """
        self.proxy_url = (proxy_url or config.PROXY.url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.PROXY.client_timeout_seconds
        self.max_retries = config.RETRY.max_retries if max_retries is None else max(0, max_retries)
        self.base_delay_seconds = (
            config.RETRY.base_delay_seconds if base_delay_seconds is None else max(0.0, base_delay_seconds)
        )
        self.retry_status = config.RETRY.retry_status
        self.verbose = verbose

    def _phase_logger(self) -> PhaseLogger:
        return PhaseLogger(new_invocation_id(), verbose=self.verbose, logger=logger)

    def _request(self, body: Dict[str, Any]) -> ProxyResponse:
        """POST one body to the proxy and read the response, mapping transport errors."""
        try:
            response = requests.post(
                self.proxy_url,
                data=json.dumps_bytes(body),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except requests_exceptions.ConnectionError as e:
            raise NetworkError(
                f"Cannot connect to proxy at {self.proxy_url}. Ensure the server is running."
            ) from e
        except requests_exceptions.Timeout as e:
            raise NetworkError(f"Request to {self.proxy_url} timed out after {self.timeout}s") from e
        except requests_exceptions.RequestException as e:
            raise NetworkError(f"Request failed: {e}") from e
        return read_proxy_response(response)

    # =========================================================================
    # Invocation
    # =========================================================================

    def invoke_raw(self, request: ModelRequest, phase_logger: Optional[PhaseLogger] = None) -> Dict[str, Any]:
        """
        Send a request through the proxy and return the checked upstream body.

        Raises:
            NetworkError: proxy unreachable or transport failure
            UpstreamError: empty body, HTTP error or API-level error
        """
        plog = phase_logger or self._phase_logger()
        body = request.to_proxy_body()

        with plog.phase(Phase.INVOKE, sub_label=request.target_model):
            for attempt in range(self.max_retries + 1):
                proxy_response = self._request(body)
                if not should_retry(proxy_response, attempt, self.max_retries, self.retry_status):
                    plog.log_attempt(attempt + 1, proxy_response.http_status)
                    break
                delay = backoff_delay(attempt, self.base_delay_seconds)
                plog.log_attempt(attempt + 1, proxy_response.http_status, retry_delay=delay)
                time.sleep(delay)

            return check_upstream(proxy_response)

    def invoke(
        self,
        request: ModelRequest,
        require_json: Optional[bool] = None,
        phase_logger: Optional[PhaseLogger] = None,
    ) -> ExtractedPayload:
        plog = phase_logger or self._phase_logger()
        upstream = self.invoke_raw(request, phase_logger=plog)
        with plog.phase(Phase.EXTRACT):
            return extract_payload(upstream, request.expects_json if require_json is None else require_json)

    def _run(self, build: Callable[[], ModelRequest], validate: Callable[[Any], Any]) -> Any:
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build()
        payload = self.invoke(request, phase_logger=plog)
        with plog.phase(Phase.VALIDATE):
            result = validate(payload.parsed_json)
        plog.log_timing_summary()
        return result

    # =========================================================================
    # Health
    # =========================================================================

    def health_check(self) -> Dict[str, Any]:
        """Check proxy liveness via GET /api/health."""
        try:
            response = requests.get(health_url_for(self.proxy_url), timeout=self.timeout)
        except requests_exceptions.RequestException as e:
            raise NetworkError(f"Health check failed: {e}") from e
        if response.status_code != 200:
            raise NetworkError(
                f"Health check failed: {response.status_code}",
                details={"status": response.status_code},
            )
        return json.loads(response.content)

    # =========================================================================
    # Quiz analysis
    # =========================================================================

    def analyze_source(
        self,
        source: QuizSource,
        question_count: int = DEFAULT_QUESTION_COUNT,
        difficulty: Optional[DifficultyLevel] = None,
    ) -> AnalysisResult:
        return self._run(
            lambda: build_quiz_request(source, question_count, difficulty),
            validate_analysis_result,
        )

    def explain(self, term: str, summary: str, explain_answer: bool = False) -> str:
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build_explanation_request(term, summary, explain_answer)
        payload = self.invoke(request, require_json=False, phase_logger=plog)
        return payload.raw_generated_text.strip()

    def synthesize_speech(self, text: str, voice: Optional[str] = None) -> bytes:
        """Speak ``text`` and return a playable WAVE file."""
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build_speech_request(text, voice)
        upstream = self.invoke_raw(request, phase_logger=plog)
        with plog.phase(Phase.EXTRACT):
            audio, mime_type = extract_inline_audio(upstream)
        if mime_type and "wav" in mime_type.lower():
            return audio
        return pcm16_to_wav(audio, parse_sample_rate(mime_type, config.AUDIO.sample_rate))

    # =========================================================================
    # Study material
    # =========================================================================

    def generate_flashcards(self, result: AnalysisResult) -> FlashcardSet:
        return self._run(lambda: build_flashcards_request(result), validate_flashcards)

    def generate_study_guide(self, result: AnalysisResult) -> StudyGuide:
        return self._run(lambda: build_study_guide_request(result), validate_study_guide)

    def analyze_performance(self, result: AnalysisResult, selections: Dict[int, str]) -> PerformanceAnalysis:
        correct = result.count_correct(selections)
        total = len(result.quiz)
        return self._run(
            lambda: build_performance_request(result, correct, total),
            lambda payload: validate_performance(payload, correct, total),
        )

    # =========================================================================
    # Documents
    # =========================================================================

    def analyze_document(
        self,
        document_text: str,
        document_title: str,
        generated_at: Optional[datetime] = None,
    ) -> DocumentAnalysis:
        return self._run(
            lambda: build_document_analysis_request(document_text, document_title),
            lambda payload: validate_document_analysis(payload, document_title, len(document_text), generated_at),
        )

    def evaluate_response(
        self,
        question: DocumentQuestion,
        user_response: str,
        document_context: str,
        feedback: UserFeedback,
    ) -> ResponseEvaluation:
        return self._run(
            lambda: build_response_evaluation_request(question, user_response, document_context, feedback),
            validate_response_evaluation,
        )

    # =========================================================================
    # Persona-driven content
    # =========================================================================

    def generate_persona_content(self, persona: SystemPersona, request: ContentRequest) -> GeneratedContent:
        return self._run(
            lambda: build_persona_content_request(persona, request),
            lambda payload: validate_generated_content(payload, persona, request.content_type),
        )

    def generate_variants(
        self,
        persona: SystemPersona,
        request: ContentRequest,
        variant_count: int = 3,
    ) -> List[GeneratedContent]:
        return self._run(
            lambda: build_variants_request(persona, request, variant_count),
            lambda payload: validate_variants(payload, persona, request.content_type, variant_count),
        )
