"""
Data Models for the Lumina study pipeline
=========================================

Pydantic models for model requests, proxy responses and the typed domain
objects handed to the UI. Every model is frozen: once the pipeline builds a
result nobody downstream can mutate it.
"""

import base64
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


QUIZ_OPTION_COUNT = 4
MAX_DOCUMENT_QUESTIONS = 5
CHARS_PER_TOKEN = 4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_accuracy(correct_answers: int, total_questions: int) -> int:
    """Percentage of correct answers rounded half up; 0 when there are no questions."""
    if total_questions <= 0:
        return 0
    # Integer arithmetic keeps x.5 rounding up (Python's round() is banker's rounding)
    return (200 * correct_answers + total_questions) // (2 * total_questions)


# =============================================================================
# Model requests
# =============================================================================

class DifficultyLevel(str, Enum):
    """Relative difficulty requested for a regenerated quiz"""
    EASIER = "easier"
    SAME = "same"
    HARDER = "harder"


class TextPart(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str

    def to_wire(self) -> Dict[str, Any]:
        return {"text": self.text}


class InlineMediaPart(BaseModel):
    """Binary prompt part (an image) sent base64 encoded."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    mime_type: str = "image/jpeg"

    def to_wire(self) -> Dict[str, Any]:
        return {
            "inlineData": {
                "mimeType": self.mime_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            }
        }


PromptPart = Union[TextPart, InlineMediaPart]


class GenerationOptions(BaseModel):
    """Generation parameters; unset values are left to the upstream defaults."""

    model_config = ConfigDict(frozen=True)

    temperature: Optional[float] = Field(default=None, ge=0.0, le=2.0)
    max_output_tokens: Optional[int] = Field(default=None, gt=0)
    response_is_json: bool = False
    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    top_k: Optional[int] = Field(default=None, gt=0)
    response_modalities: Optional[List[str]] = None
    voice_name: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        wire: Dict[str, Any] = {}
        if self.response_is_json:
            wire["responseMimeType"] = "application/json"
        if self.temperature is not None:
            wire["temperature"] = self.temperature
        if self.max_output_tokens is not None:
            wire["maxOutputTokens"] = self.max_output_tokens
        if self.top_p is not None:
            wire["topP"] = self.top_p
        if self.top_k is not None:
            wire["topK"] = self.top_k
        if self.response_modalities:
            wire["responseModalities"] = list(self.response_modalities)
        if self.voice_name:
            wire["speechConfig"] = {
                "voiceConfig": {"prebuiltVoiceConfig": {"voiceName": self.voice_name}}
            }
        return wire


class ModelRequest(BaseModel):
    """A single model invocation, serialized into the proxy body {model, payload}."""

    model_config = ConfigDict(frozen=True)

    target_model: str = Field(..., min_length=1)
    prompt_parts: List[PromptPart] = Field(..., min_length=1)
    system_instruction: Optional[str] = None
    generation_options: GenerationOptions = Field(default_factory=GenerationOptions)

    @property
    def expects_json(self) -> bool:
        return self.generation_options.response_is_json

    def to_payload(self) -> Dict[str, Any]:
        """Upstream generateContent payload."""
        payload: Dict[str, Any] = {
            "contents": [{"parts": [part.to_wire() for part in self.prompt_parts]}],
        }
        if self.system_instruction:
            payload["systemInstruction"] = {"parts": [{"text": self.system_instruction}]}
        generation_config = self.generation_options.to_wire()
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    def to_proxy_body(self) -> Dict[str, Any]:
        return {"model": self.target_model, "payload": self.to_payload()}


class ImageSource(BaseModel):
    """Quiz source: an uploaded image."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["image"] = "image"
    data: bytes
    mime_type: str = "image/jpeg"

    @classmethod
    def from_base64(cls, encoded: str, mime_type: str = "image/jpeg") -> "ImageSource":
        return cls(data=base64.b64decode(encoded), mime_type=mime_type)

    @classmethod
    def from_data_url(cls, data_url: str) -> "ImageSource":
        """
        Build from a browser data URL (``data:image/png;base64,....``).

        A bare base64 string without the ``data:`` header is accepted too and
        treated as JPEG.
        """
        if "," not in data_url:
            return cls.from_base64(data_url)
        header, encoded = data_url.split(",", 1)
        mime_type = "image/jpeg"
        if header.startswith("data:"):
            declared = header[len("data:"):].split(";", 1)[0].strip()
            if declared:
                mime_type = declared
        return cls.from_base64(encoded, mime_type=mime_type)


class VideoSource(BaseModel):
    """Quiz source: a YouTube video referenced by id."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["video"] = "video"
    video_id: str = Field(..., min_length=1)


QuizSource = Annotated[Union[ImageSource, VideoSource], Field(discriminator="kind")]


# =============================================================================
# Proxy responses and extracted payloads
# =============================================================================

class ProxyResponse(BaseModel):
    """Raw proxy answer; the body is kept as text and never assumed to be JSON."""

    model_config = ConfigDict(frozen=True)

    http_status: int
    raw_text: str = ""
    retry_after_seconds: Optional[int] = None
    status_text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.http_status < 300

    @property
    def is_empty(self) -> bool:
        return not self.raw_text.strip()


class ExtractedPayload(BaseModel):
    model_config = ConfigDict(frozen=True)

    raw_generated_text: str
    parsed_json: Optional[Any] = None

    @model_validator(mode="after")
    def _require_text_without_json(self):
        if self.parsed_json is None and not self.raw_generated_text:
            raise ValueError("raw_generated_text must be non-empty when no JSON was parsed")
        return self


# =============================================================================
# Domain objects
# =============================================================================

class QuizItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    question: str
    options: List[str] = Field(..., min_length=QUIZ_OPTION_COUNT, max_length=QUIZ_OPTION_COUNT)
    answer: str

    @model_validator(mode="after")
    def _answer_is_an_option(self):
        if self.answer not in self.options:
            raise ValueError(f"answer {self.answer!r} is not one of the options")
        return self


class AnalysisResult(BaseModel):
    """Summary, key concepts, analogy and quiz generated from an image or video."""

    model_config = ConfigDict(frozen=True)

    summary: str = ""
    key_concepts: List[str] = Field(default_factory=list)
    analogy: str = ""
    quiz: List[QuizItem] = Field(..., min_length=1)

    def count_correct(self, selections: Dict[int, str]) -> int:
        """Number of selected options matching the answer of their question."""
        correct = 0
        for index, selected in selections.items():
            if 0 <= index < len(self.quiz) and selected == self.quiz[index].answer:
                correct += 1
        return correct


DocumentDifficulty = Literal["intermediate", "advanced", "expert"]


class DocumentQuestion(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    difficulty: DocumentDifficulty
    topic: str = ""
    context: str = ""


class DocumentAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str
    length: int = Field(..., ge=0)
    summary: str = ""
    key_topics: List[str] = Field(default_factory=list)
    main_themes: List[str] = Field(default_factory=list)
    questions: List[DocumentQuestion] = Field(default_factory=list, max_length=MAX_DOCUMENT_QUESTIONS)
    generated_at: datetime = Field(default_factory=_utcnow)


class Flashcard(BaseModel):
    model_config = ConfigDict(frozen=True)

    term: str
    definition: str
    example: Optional[str] = None


class FlashcardSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    flashcards: List[Flashcard] = Field(default_factory=list)

    def __len__(self) -> int:
        return len(self.flashcards)


class StudyGuideSection(BaseModel):
    model_config = ConfigDict(frozen=True)

    heading: str
    content: str


class StudyGuide(BaseModel):
    model_config = ConfigDict(frozen=True)

    title: str = ""
    sections: List[StudyGuideSection] = Field(default_factory=list)
    key_takeaways: List[str] = Field(default_factory=list)


class PerformanceAnalysis(BaseModel):
    """Quiz performance; counts are always local, only the feedback comes from the model."""

    model_config = ConfigDict(frozen=True)

    total_questions: int = Field(..., ge=0)
    correct_answers: int = Field(..., ge=0)
    accuracy: int = Field(..., ge=0, le=100)
    strengths: List[str] = Field(default_factory=list)
    growth_areas: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _consistent_counts(self):
        if self.correct_answers > self.total_questions:
            raise ValueError("correct_answers cannot exceed total_questions")
        if self.accuracy != compute_accuracy(self.correct_answers, self.total_questions):
            raise ValueError("accuracy does not match correct_answers/total_questions")
        return self


class ReviewState(BaseModel):
    """Spaced repetition state of one quiz question."""

    model_config = ConfigDict(frozen=True)

    next_review_at: datetime
    interval_days: float = Field(..., ge=1.0)
    difficulty_factor: float = Field(..., ge=0.1, le=2.5)


class UserFeedback(BaseModel):
    model_config = ConfigDict(frozen=True)

    question_id: str
    user_response: str
    clarity: int = Field(..., ge=1, le=5, description="1 = unclear, 5 = very clear")
    difficulty: int = Field(..., ge=1, le=5, description="1 = too easy, 5 = too hard")
    is_correct: Optional[bool] = None
    notes: Optional[str] = None


class ResponseEvaluation(BaseModel):
    model_config = ConfigDict(frozen=True)

    evaluation: str = ""
    score: int = Field(default=0, ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list, max_length=3)


# =============================================================================
# Persona-driven content
# =============================================================================

PersonaTone = Literal["professional", "casual", "educational", "creative", "technical"]
ContentType = Literal[
    "code-snippet",
    "marketing-copy",
    "technical-doc",
    "creative-writing",
    "explanation",
    "custom",
]


class SystemPersona(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    role: str
    expertise: List[str] = Field(default_factory=list)
    tone: PersonaTone
    style: str = ""
    values: List[str] = Field(default_factory=list)
    constraints: List[str] = Field(default_factory=list)
    examples: Optional[List[str]] = None


class ContentRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    content_type: ContentType
    topic: str = Field(..., min_length=1)
    target_audience: str
    requirements: List[str] = Field(default_factory=list)
    constraints: Optional[List[str]] = None
    output_format: Optional[str] = None
    custom_context: Optional[str] = None


class GeneratedContent(BaseModel):
    model_config = ConfigDict(frozen=True)

    content: str = Field(..., min_length=1)
    content_type: str
    persona: str
    generated_at: datetime = Field(default_factory=_utcnow)
    token_estimate: int = Field(default=0, ge=0)

    @field_validator("content")
    @classmethod
    def _strip_content(cls, value: str) -> str:
        return value.strip()


def estimate_tokens(text: str) -> int:
    """Rough token estimate (about four characters per token)."""
    return math.ceil(len(text) / CHARS_PER_TOKEN)
