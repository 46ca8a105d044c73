"""
Validation and repair of extracted JSON into typed domain objects.

One function per target shape. Each is tolerant of missing optional fields
(arrays default to [], scalars to "" or 0) and strict on the structural ones
(a quiz without questions, a document analysis without a question list).
Failures raise DomainValidationError and are terminal for the request.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from exceptions import DomainValidationError, DomainValidationErrorKind
from models import (
    MAX_DOCUMENT_QUESTIONS,
    QUIZ_OPTION_COUNT,
    AnalysisResult,
    DocumentAnalysis,
    DocumentQuestion,
    Flashcard,
    FlashcardSet,
    GeneratedContent,
    PerformanceAnalysis,
    QuizItem,
    ResponseEvaluation,
    StudyGuide,
    StudyGuideSection,
    SystemPersona,
    compute_accuracy,
    estimate_tokens,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PLACEHOLDER_OPTIONS = ("A", "B", "C", "D")
# Positional difficulty ladder requested by the document analysis prompt
DOCUMENT_DIFFICULTY_LADDER = ("intermediate", "intermediate", "advanced", "advanced", "expert")
VALID_DOCUMENT_DIFFICULTIES = frozenset(DOCUMENT_DIFFICULTY_LADDER)
MAX_SUGGESTIONS = 3


# =============================================================================
# Field helpers
# =============================================================================

def _as_text(value: Any, default: str = "") -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool) or value is None:
        return default
    if isinstance(value, (int, float)):
        return str(value)
    return default


def _as_text_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = [_as_text(item) for item in value]
    return [item for item in items if item]


def _as_object_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def _as_int(value: Any, default: int = 0) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return int(round(value))
    if isinstance(value, str):
        try:
            return int(round(float(value.strip())))
        except ValueError:
            return default
    return default


def _first_present(payload: Dict[str, Any], *keys: str) -> Any:
    """Value of the first key present; models mix snake_case and camelCase."""
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _require_object(payload: Any, shape: str) -> Dict[str, Any]:
    if not isinstance(payload, dict):
        raise DomainValidationError(
            DomainValidationErrorKind.INVALID_PAYLOAD_SHAPE,
            f"Expected a JSON object for {shape}, got {type(payload).__name__}",
        )
    return payload


def _build(model_cls: Type[M], shape: str, **fields: Any) -> M:
    try:
        return model_cls(**fields)
    except ValidationError as exc:
        raise DomainValidationError(
            DomainValidationErrorKind.INVALID_PAYLOAD_SHAPE,
            f"Invalid {shape}: {exc.error_count()} validation error(s)",
            details={"errors": exc.errors(include_url=False)},
        ) from exc


# =============================================================================
# Quiz analysis
# =============================================================================

def repair_quiz_options(raw_options: Any) -> List[str]:
    """
    Force exactly four options.

    Extra options are dropped; missing slots take the placeholder letter of
    their position, so ["a", "b"] becomes ["a", "b", "C", "D"].
    """
    if not isinstance(raw_options, list):
        return list(PLACEHOLDER_OPTIONS)
    options = [_as_text(option) for option in raw_options[:QUIZ_OPTION_COUNT]]
    options = [option or PLACEHOLDER_OPTIONS[index] for index, option in enumerate(options)]
    options.extend(PLACEHOLDER_OPTIONS[len(options):])
    return options


def resolve_quiz_answer(raw_answer: Any, options: List[str]) -> str:
    """The answer if it is exactly one of the options, otherwise the first option."""
    answer = _as_text(raw_answer)
    if answer in options:
        return answer
    if answer:
        logger.warning("Quiz answer %r matches no option; defaulting to the first option", answer[:80])
    return options[0]


def repair_quiz_item(raw_item: Dict[str, Any]) -> QuizItem:
    options = repair_quiz_options(raw_item.get("options"))
    return QuizItem(
        question=_as_text(raw_item.get("question")),
        options=options,
        answer=resolve_quiz_answer(raw_item.get("answer"), options),
    )


def validate_analysis_result(payload: Any) -> AnalysisResult:
    """
    Validate summary/key_concepts/analogy/quiz output of the quiz request.

    Raises:
        DomainValidationError: INVALID_QUIZ_SHAPE if ``quiz`` is missing, not a
            list, or has no usable items
    """
    data = _require_object(payload, "quiz analysis")

    raw_quiz = data.get("quiz")
    if not isinstance(raw_quiz, list) or not raw_quiz:
        raise DomainValidationError(
            DomainValidationErrorKind.INVALID_QUIZ_SHAPE,
            "Invalid quiz structure in response",
        )

    items = _as_object_list(raw_quiz)
    if not items:
        raise DomainValidationError(
            DomainValidationErrorKind.INVALID_QUIZ_SHAPE,
            "Quiz contains no question objects",
        )
    if len(items) != len(raw_quiz):
        logger.warning("Dropped %d malformed quiz entries", len(raw_quiz) - len(items))

    return _build(
        AnalysisResult,
        "quiz analysis",
        summary=_as_text(data.get("summary")),
        key_concepts=_as_text_list(_first_present(data, "key_concepts", "keyConcepts")),
        analogy=_as_text(data.get("analogy")),
        quiz=[repair_quiz_item(item) for item in items],
    )


# =============================================================================
# Document analysis
# =============================================================================

def _normalise_difficulty(value: Any, position: int) -> str:
    difficulty = _as_text(value).strip().lower()
    if difficulty in VALID_DOCUMENT_DIFFICULTIES:
        return difficulty
    return DOCUMENT_DIFFICULTY_LADDER[min(position, len(DOCUMENT_DIFFICULTY_LADDER) - 1)]


def validate_document_analysis(
    payload: Any,
    title: str,
    length: int,
    generated_at: Optional[datetime] = None,
) -> DocumentAnalysis:
    """
    Validate the document analysis output, keeping at most five questions.

    Raises:
        DomainValidationError: INVALID_DOCUMENT_SHAPE if ``questions`` is
            missing or not a list
    """
    data = _require_object(payload, "document analysis")

    raw_questions = data.get("questions")
    if not isinstance(raw_questions, list):
        raise DomainValidationError(
            DomainValidationErrorKind.INVALID_DOCUMENT_SHAPE,
            "Invalid question structure in response",
        )

    questions = []
    for position, raw in enumerate(_as_object_list(raw_questions)[:MAX_DOCUMENT_QUESTIONS]):
        questions.append(
            DocumentQuestion(
                id=_as_text(raw.get("id")) or f"q{position + 1}",
                question=_as_text(raw.get("question")),
                difficulty=_normalise_difficulty(raw.get("difficulty"), position),
                topic=_as_text(raw.get("topic")),
                context=_as_text(raw.get("context")),
            )
        )

    fields: Dict[str, Any] = dict(
        title=title,
        length=max(0, length),
        summary=_as_text(data.get("summary")),
        key_topics=_as_text_list(_first_present(data, "key_topics", "keyTopics")),
        main_themes=_as_text_list(_first_present(data, "main_themes", "mainThemes")),
        questions=questions,
    )
    if generated_at is not None:
        fields["generated_at"] = generated_at
    return _build(DocumentAnalysis, "document analysis", **fields)


def validate_response_evaluation(payload: Any) -> ResponseEvaluation:
    data = _require_object(payload, "response evaluation")
    score = min(100, max(0, _as_int(data.get("score"))))
    return _build(
        ResponseEvaluation,
        "response evaluation",
        evaluation=_as_text(data.get("evaluation")),
        score=score,
        suggestions=_as_text_list(data.get("suggestions"))[:MAX_SUGGESTIONS],
    )


# =============================================================================
# Flashcards, study guide, performance
# =============================================================================

def validate_flashcards(payload: Any) -> FlashcardSet:
    """Accepts ``{"flashcards": [...]}`` or a bare list of cards."""
    if isinstance(payload, list):
        raw_cards = _as_object_list(payload)
    else:
        raw_cards = _as_object_list(_require_object(payload, "flashcards").get("flashcards"))

    cards = [
        Flashcard(
            term=_as_text(raw.get("term")),
            definition=_as_text(raw.get("definition")),
            example=_as_text(raw.get("example")) or None,
        )
        for raw in raw_cards
    ]
    return FlashcardSet(flashcards=cards)


def validate_study_guide(payload: Any) -> StudyGuide:
    data = _require_object(payload, "study guide")
    sections = [
        StudyGuideSection(
            heading=_as_text(raw.get("heading")),
            content=_as_text(raw.get("content")),
        )
        for raw in _as_object_list(data.get("sections"))
    ]
    return StudyGuide(
        title=_as_text(data.get("title")),
        sections=sections,
        key_takeaways=_as_text_list(_first_present(data, "keyTakeaways", "key_takeaways")),
    )


def validate_performance(payload: Any, correct_answers: int, total_questions: int) -> PerformanceAnalysis:
    """
    Combine locally counted results with the model's feedback.

    Accuracy is recomputed from the counts; any accuracy or score the model
    reports is ignored.
    """
    data = _require_object(payload, "performance analysis")
    total = max(0, total_questions)
    correct = min(max(0, correct_answers), total)
    return _build(
        PerformanceAnalysis,
        "performance analysis",
        total_questions=total,
        correct_answers=correct,
        accuracy=compute_accuracy(correct, total),
        strengths=_as_text_list(data.get("strengths")),
        growth_areas=_as_text_list(_first_present(data, "growthAreas", "growth_areas")),
        recommendations=_as_text_list(data.get("recommendations")),
    )


# =============================================================================
# Persona-driven content
# =============================================================================

def validate_generated_content(payload: Any, persona: SystemPersona, content_type: str) -> GeneratedContent:
    data = _require_object(payload, "persona content")
    content = _as_text(data.get("content")).strip()
    if not content:
        raise DomainValidationError(
            DomainValidationErrorKind.EMPTY_CONTENT,
            "Generated content is empty",
        )
    return GeneratedContent(
        content=content,
        content_type=content_type,
        persona=persona.name,
        token_estimate=estimate_tokens(content),
    )


def validate_variants(
    payload: Any,
    persona: SystemPersona,
    content_type: str,
    variant_count: int,
) -> List[GeneratedContent]:
    """Accepts variants as plain strings or as ``{"content": ...}`` objects; keeps at most variant_count."""
    data = _require_object(payload, "content variants")
    raw_variants = data.get("variants")
    texts: List[str] = []
    if isinstance(raw_variants, list):
        for raw in raw_variants:
            text = _as_text(raw.get("content")) if isinstance(raw, dict) else _as_text(raw)
            if text.strip():
                texts.append(text.strip())

    if not texts:
        raise DomainValidationError(
            DomainValidationErrorKind.EMPTY_CONTENT,
            "No content variants were generated",
        )

    return [
        GeneratedContent(
            content=text,
            content_type=content_type,
            persona=persona.name,
            token_estimate=estimate_tokens(text),
        )
        for text in texts[:max(1, variant_count)]
    ]
