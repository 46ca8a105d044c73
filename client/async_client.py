"""
Asynchronous Lumina Client
==========================

Async client for the Lumina study pipeline. Every call goes through the
same-origin proxy, which holds the upstream API key:

    build request -> POST {model, payload} to the proxy (503 retried with
    exponential backoff) -> extract the generated payload -> validate it into
    a typed domain object.

Retry sleeps use asyncio.sleep, so concurrent invocations never block each
other. For synchronous usage, use LuminaClient instead.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import aiohttp

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


async def read_proxy_response(response: aiohttp.ClientResponse) -> ProxyResponse:
    """Read the whole body as text; an empty body is returned as "" without raising."""
    raw = await response.read()
    return build_proxy_response(
        response.status,
        decode_body(raw) if raw else "",
        response.headers.get("Retry-After"),
        response.reason,
    )


class AsyncLuminaClient:
    """
    Asynchronous client for the Lumina study pipeline.

    Usage:
        async with AsyncLuminaClient() as client:
            result = await client.analyze_source(VideoSource(video_id="dQw4w9WgXcQ"))
            print(result.summary)

    Or without context manager:
        client = AsyncLuminaClient()
        await client.connect()
        try:
            result = await client.analyze_source(source)
        finally:
            await client.close()
    """

    def __init__(
        self,
        proxy_url: Optional[str] = None,
        timeout: Optional[aiohttp.ClientTimeout] = None,
        max_retries: Optional[int] = None,
        base_delay_seconds: Optional[float] = None,
        verbose: bool = False,
    ):
        """
        Initialize the async Lumina client.

        Args:
            proxy_url: Proxy endpoint (default: config.PROXY.url / LUMINA_PROXY_URL)
            timeout: aiohttp timeout; unbounded unless LUMINA_REQUEST_TIMEOUT is set
            max_retries: Retries after the first attempt on HTTP 503 (default 3)
            base_delay_seconds: Backoff base delay (default 1.0)
            verbose: Emit per-phase debug lines
        """
        self.proxy_url = (proxy_url or config.PROXY.url).rstrip("/")
        self.timeout = timeout or aiohttp.ClientTimeout(total=config.PROXY.client_timeout_seconds)
        self.max_retries = config.RETRY.max_retries if max_retries is None else max(0, max_retries)
        self.base_delay_seconds = (
            config.RETRY.base_delay_seconds if base_delay_seconds is None else max(0.0, base_delay_seconds)
        )
        self.retry_status = config.RETRY.retry_status
        self.verbose = verbose
        self._session: Optional[aiohttp.ClientSession] = None
        self._owns_session = True

    async def connect(self) -> None:
        """Initialize the HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self.timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and self._owns_session and not self._session.closed:
            await self._session.close()
            self._session = None

    async def __aenter__(self) -> "AsyncLuminaClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def session(self) -> aiohttp.ClientSession:
        """Get the active session, raising if not connected."""
        if self._session is None or self._session.closed:
            raise RuntimeError(
                "Client not connected. Use 'async with AsyncLuminaClient()' or call connect()"
            )
        return self._session

    def _phase_logger(self) -> PhaseLogger:
        return PhaseLogger(new_invocation_id(), verbose=self.verbose, logger=logger)

    async def _request(self, body: Dict[str, Any]) -> ProxyResponse:
        """POST one body to the proxy and read the response, mapping transport errors."""
        try:
            async with self.session.post(
                self.proxy_url,
                data=json.dumps_bytes(body),
                headers={"Content-Type": "application/json"},
            ) as response:
                return await read_proxy_response(response)
        except aiohttp.ClientConnectorError as e:
            raise NetworkError(
                f"Cannot connect to proxy at {self.proxy_url}. Ensure the server is running."
            ) from e
        except asyncio.TimeoutError as e:
            raise NetworkError(f"Request to {self.proxy_url} timed out") from e
        except aiohttp.ClientError as e:
            raise NetworkError(f"Request failed: {e}") from e

    # =========================================================================
    # Invocation
    # =========================================================================

    async def invoke_raw(self, request: ModelRequest, phase_logger: Optional[PhaseLogger] = None) -> Dict[str, Any]:
        """
        Send a request through the proxy and return the checked upstream body.

        Only HTTP 503 is retried, at most ``max_retries`` times, sleeping
        ``base * 2**n`` seconds before retry n. Every other outcome is final.

        Raises:
            NetworkError: proxy unreachable or transport failure
            UpstreamError: empty body, HTTP error or API-level error
        """
        plog = phase_logger or self._phase_logger()
        body = request.to_proxy_body()

        with plog.phase(Phase.INVOKE, sub_label=request.target_model):
            for attempt in range(self.max_retries + 1):
                proxy_response = await self._request(body)
                if not should_retry(proxy_response, attempt, self.max_retries, self.retry_status):
                    plog.log_attempt(attempt + 1, proxy_response.http_status)
                    break
                delay = backoff_delay(attempt, self.base_delay_seconds)
                plog.log_attempt(attempt + 1, proxy_response.http_status, retry_delay=delay)
                await asyncio.sleep(delay)

            return check_upstream(proxy_response)

    async def invoke(
        self,
        request: ModelRequest,
        require_json: Optional[bool] = None,
        phase_logger: Optional[PhaseLogger] = None,
    ) -> ExtractedPayload:
        """
        Invoke the model and extract its payload.

        Args:
            request: Built model request
            require_json: Parse the generated text as JSON (default: the
                request's JSON mode)
            phase_logger: Logger of an enclosing operation, to keep one id

        Raises:
            NetworkError, UpstreamError, ExtractionError
        """
        plog = phase_logger or self._phase_logger()
        upstream = await self.invoke_raw(request, phase_logger=plog)
        with plog.phase(Phase.EXTRACT):
            return extract_payload(upstream, request.expects_json if require_json is None else require_json)

    async def _run(self, build, validate) -> Any:
        """Build, invoke, extract and validate under one invocation id."""
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build()
        payload = await self.invoke(request, phase_logger=plog)
        with plog.phase(Phase.VALIDATE):
            result = validate(payload.parsed_json)
        plog.log_timing_summary()
        return result

    # =========================================================================
    # Health
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """Check proxy liveness via GET /api/health."""
        url = health_url_for(self.proxy_url)
        try:
            async with self.session.get(url) as response:
                raw = await response.read()
                if response.status != 200:
                    raise NetworkError(f"Health check failed: {response.status}", details={"status": response.status})
                return json.loads(raw)
        except aiohttp.ClientError as e:
            raise NetworkError(f"Health check failed: {e}") from e

    # =========================================================================
    # Quiz analysis
    # =========================================================================

    async def analyze_source(
        self,
        source: QuizSource,
        question_count: int = DEFAULT_QUESTION_COUNT,
        difficulty: Optional[DifficultyLevel] = None,
    ) -> AnalysisResult:
        """
        Generate summary, key concepts, analogy and quiz from an image or video.

        Raises:
            DomainValidationError: INVALID_QUIZ_SHAPE when no quiz came back
        """
        return await self._run(
            lambda: build_quiz_request(source, question_count, difficulty),
            validate_analysis_result,
        )

    async def explain(self, term: str, summary: str, explain_answer: bool = False) -> str:
        """Short free-text explanation of a concept (or of why an answer is correct)."""
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build_explanation_request(term, summary, explain_answer)
        payload = await self.invoke(request, require_json=False, phase_logger=plog)
        return payload.raw_generated_text.strip()

    async def synthesize_speech(self, text: str, voice: Optional[str] = None) -> bytes:
        """Speak ``text`` and return a playable WAVE file."""
        plog = self._phase_logger()
        with plog.phase(Phase.BUILD):
            request = build_speech_request(text, voice)
        upstream = await self.invoke_raw(request, phase_logger=plog)
        with plog.phase(Phase.EXTRACT):
            audio, mime_type = extract_inline_audio(upstream)
        if mime_type and "wav" in mime_type.lower():
            return audio
        return pcm16_to_wav(audio, parse_sample_rate(mime_type, config.AUDIO.sample_rate))

    # =========================================================================
    # Study material
    # =========================================================================

    async def generate_flashcards(self, result: AnalysisResult) -> FlashcardSet:
        return await self._run(lambda: build_flashcards_request(result), validate_flashcards)

    async def generate_study_guide(self, result: AnalysisResult) -> StudyGuide:
        return await self._run(lambda: build_study_guide_request(result), validate_study_guide)

    async def analyze_performance(self, result: AnalysisResult, selections: Dict[int, str]) -> PerformanceAnalysis:
        """Score the quiz locally, then ask the model for qualitative feedback."""
        correct = result.count_correct(selections)
        total = len(result.quiz)
        return await self._run(
            lambda: build_performance_request(result, correct, total),
            lambda payload: validate_performance(payload, correct, total),
        )

    # =========================================================================
    # Documents
    # =========================================================================

    async def analyze_document(
        self,
        document_text: str,
        document_title: str,
        generated_at: Optional[datetime] = None,
    ) -> DocumentAnalysis:
        """
        Summarize a document and generate up to five progressive questions.

        Raises:
            DomainValidationError: INVALID_DOCUMENT_SHAPE when questions are missing
        """
        return await self._run(
            lambda: build_document_analysis_request(document_text, document_title),
            lambda payload: validate_document_analysis(payload, document_title, len(document_text), generated_at),
        )

    async def evaluate_response(
        self,
        question: DocumentQuestion,
        user_response: str,
        document_context: str,
        feedback: UserFeedback,
    ) -> ResponseEvaluation:
        return await self._run(
            lambda: build_response_evaluation_request(question, user_response, document_context, feedback),
            validate_response_evaluation,
        )

    # =========================================================================
    # Persona-driven content
    # =========================================================================

    async def generate_persona_content(self, persona: SystemPersona, request: ContentRequest) -> GeneratedContent:
        return await self._run(
            lambda: build_persona_content_request(persona, request),
            lambda payload: validate_generated_content(payload, persona, request.content_type),
        )

    async def generate_variants(
        self,
        persona: SystemPersona,
        request: ContentRequest,
        variant_count: int = 3,
    ) -> List[GeneratedContent]:
        return await self._run(
            lambda: build_variants_request(persona, request, variant_count),
            lambda payload: validate_variants(payload, persona, request.content_type, variant_count),
        )
