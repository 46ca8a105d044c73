"""
Model request builders.

One builder per use case, each returning a ModelRequest. Every structured
prompt states its target JSON schema in the prompt text itself, so the
extraction and validation stages need no builder-specific knowledge.
"""

import re
from typing import List, Optional
from urllib.parse import parse_qs, urlparse

from config import config
from models import (
    AnalysisResult,
    ContentRequest,
    DifficultyLevel,
    DocumentQuestion,
    GenerationOptions,
    ImageSource,
    InlineMediaPart,
    ModelRequest,
    QuizSource,
    SystemPersona,
    TextPart,
    UserFeedback,
    VideoSource,
    compute_accuracy,
)

DEFAULT_QUESTION_COUNT = 10

QUIZ_SCHEMA = (
    '{"summary": "2-3 sentences", "key_concepts": ["c1", "c2", "c3", "c4", "c5"], '
    '"analogy": "one sentence", '
    '"quiz": [{"question": "q1", "options": ["a", "b", "c", "d"], "answer": "correct option"}]}'
)

DOCUMENT_SYSTEM_PROMPT = """You are an expert educational curriculum designer and critical thinking instructor.
Your task is to analyze a document and generate exactly 5 unique, complex, thought-provoking questions.

Requirements:
1. Questions should progressively increase in complexity (2 intermediate, 2 advanced, 1 expert level)
2. Each question must target a different key concept or theme from the document
3. Questions should require synthesis, analysis, or application of knowledge (not simple recall)
4. Provide the specific context/excerpt from the document each question is based on
5. Return ONLY valid JSON, no other text

Use this exact JSON format:
{
  "summary": "2-3 sentence comprehensive summary of the document",
  "key_topics": ["topic1", "topic2", "topic3", "topic4", "topic5"],
  "main_themes": ["theme1", "theme2", "theme3"],
  "questions": [
    {
      "id": "q1",
      "question": "the actual question text",
      "difficulty": "intermediate" | "advanced" | "expert",
      "topic": "the topic this question covers",
      "context": "exact excerpt or concept from document this is based on"
    }
  ]
}"""

_YOUTUBE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{6,}$")
_YOUTUBE_HOSTS = ("youtube.com", "www.youtube.com", "m.youtube.com", "music.youtube.com")


def difficulty_descriptor(difficulty: Optional[DifficultyLevel]) -> str:
    if difficulty == DifficultyLevel.EASIER:
        return "easier"
    if difficulty == DifficultyLevel.HARDER:
        return "harder"
    return "medium"


def extract_youtube_video_id(url: str) -> Optional[str]:
    """
    Pull the video id out of a YouTube URL.

    Handles ``youtube.com/watch?v=ID``, ``youtu.be/ID`` and
    ``youtube.com/embed/ID``. Returns None for anything else.
    """
    candidate = (url or "").strip()
    if not candidate:
        return None
    if "://" not in candidate:
        candidate = "https://" + candidate

    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    path_segments = [segment for segment in parsed.path.split("/") if segment]

    video_id = None
    if host == "youtu.be" and path_segments:
        video_id = path_segments[0]
    elif host in _YOUTUBE_HOSTS:
        if parsed.path == "/watch":
            video_id = (parse_qs(parsed.query).get("v") or [None])[0]
        elif len(path_segments) >= 2 and path_segments[0] in ("embed", "shorts", "v"):
            video_id = path_segments[1]

    if video_id and _YOUTUBE_ID_PATTERN.match(video_id):
        return video_id
    return None


def _json_options(temperature: Optional[float] = None, max_output_tokens: Optional[int] = None, **extra) -> GenerationOptions:
    return GenerationOptions(
        response_is_json=True,
        temperature=temperature,
        max_output_tokens=max_output_tokens,
        **extra,
    )


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


# =============================================================================
# Quiz analysis and explanations
# =============================================================================

def build_quiz_request(
    source: QuizSource,
    question_count: int = DEFAULT_QUESTION_COUNT,
    difficulty: Optional[DifficultyLevel] = None,
) -> ModelRequest:
    """
    Build the summary/concepts/analogy/quiz request for an image or a video.

    Both modalities share one prompt template; an image adds an inline media
    part after the instruction, a video is referenced by its id in the text.
    """
    if question_count < 1:
        raise ValueError("question_count must be at least 1")
    level = difficulty_descriptor(difficulty)

    if isinstance(source, ImageSource):
        instruction = (
            f"Create exactly {question_count} {level} difficulty multiple choice questions from this image. "
            f"Return ONLY this JSON format, no other text:\n{QUIZ_SCHEMA}"
        )
        parts = [TextPart(text=instruction), InlineMediaPart(data=source.data, mime_type=source.mime_type)]
    elif isinstance(source, VideoSource):
        instruction = (
            f"Analyze YouTube video ID: {source.video_id}. "
            f"Create exactly {question_count} {level} difficulty questions. "
            f"Return ONLY this JSON format, no other text:\n{QUIZ_SCHEMA}"
        )
        parts = [TextPart(text=instruction)]
    else:
        raise TypeError(f"Unsupported quiz source: {type(source).__name__}")

    return ModelRequest(
        target_model=config.MODELS.text_model,
        prompt_parts=parts,
        generation_options=_json_options(temperature=0.7, max_output_tokens=4096),
    )


def build_explanation_request(term: str, summary: str, explain_answer: bool = False) -> ModelRequest:
    if explain_answer:
        prompt = (
            f'Explain why "{term}" is the correct answer in the context of: {summary}. '
            "Keep it brief (2-3 sentences)."
        )
    else:
        prompt = f'Explain the concept "{term}" simply and briefly (max 2 sentences) in the context of: {summary}'
    return ModelRequest(target_model=config.MODELS.text_model, prompt_parts=[TextPart(text=prompt)])


def build_speech_request(text: str, voice: Optional[str] = None) -> ModelRequest:
    return ModelRequest(
        target_model=config.MODELS.tts_model,
        prompt_parts=[TextPart(text=text)],
        generation_options=GenerationOptions(
            response_modalities=["AUDIO"],
            voice_name=voice or config.AUDIO.voice_name,
        ),
    )


# =============================================================================
# Structured study material
# =============================================================================

def build_flashcards_request(result: AnalysisResult) -> ModelRequest:
    prompt = f"""Based on this learning material:
Summary: {result.summary}
Key Concepts: {', '.join(result.key_concepts)}

Generate flashcards for studying. Return ONLY valid JSON (no markdown):
{{
  "flashcards": [
    {{"term": "term1", "definition": "def1", "example": "ex1"}},
    {{"term": "term2", "definition": "def2", "example": "ex2"}}
  ]
}}

Create 8-12 flashcards covering the key concepts. Each must have term, definition, and example."""
    return ModelRequest(
        target_model=config.MODELS.text_model,
        prompt_parts=[TextPart(text=prompt)],
        generation_options=_json_options(),
    )


def build_study_guide_request(result: AnalysisResult) -> ModelRequest:
    sample_questions = " | ".join(item.question for item in result.quiz[:3])
    prompt = f"""Create a comprehensive study guide based on:
Summary: {result.summary}
Key Concepts: {', '.join(result.key_concepts)}
Quiz Questions: {sample_questions}

Return ONLY valid JSON (no markdown):
{{
  "title": "Study Guide Title",
  "sections": [
    {{"heading": "Section 1", "content": "detailed content..."}},
    {{"heading": "Section 2", "content": "detailed content..."}}
  ],
  "keyTakeaways": ["takeaway1", "takeaway2", "takeaway3"]
}}

Create 4-5 sections with practical, detailed content suitable for deep learning."""
    return ModelRequest(
        target_model=config.MODELS.text_model,
        prompt_parts=[TextPart(text=prompt)],
        generation_options=_json_options(),
    )


def build_performance_request(result: AnalysisResult, correct_answers: int, total_questions: int) -> ModelRequest:
    accuracy = compute_accuracy(correct_answers, total_questions)
    prompt = f"""Analyze student performance:
- Score: {correct_answers}/{total_questions} ({accuracy}%)
- Topic: {result.summary[:100]}
- Concepts covered: {', '.join(result.key_concepts)}

Return ONLY valid JSON (no markdown):
{{
  "strengths": ["strength1", "strength2"],
  "growthAreas": ["area1", "area2"],
  "recommendations": ["recommendation1", "recommendation2"]
}}

Provide personalized feedback based on their performance."""
    return ModelRequest(
        target_model=config.MODELS.text_model,
        prompt_parts=[TextPart(text=prompt)],
        generation_options=_json_options(),
    )


# =============================================================================
# Document analysis
# =============================================================================

def build_document_analysis_request(document_text: str, document_title: str) -> ModelRequest:
    """
    Build the five-question document analysis request.

    Text beyond ``config.DOCUMENT_MAX_CHARS`` is cut and the prompt says so.
    """
    max_chars = config.DOCUMENT_MAX_CHARS
    truncated = document_text[:max_chars]
    note = f"[NOTE: Document was truncated to {max_chars} characters]" if len(document_text) > max_chars else ""

    prompt = f"""Analyze the following document and generate exactly 5 unique, complex questions.
{note}

DOCUMENT TITLE: {document_title}

DOCUMENT TEXT:
{truncated}"""

    return ModelRequest(
        target_model=config.MODELS.document_model,
        prompt_parts=[TextPart(text=prompt)],
        system_instruction=DOCUMENT_SYSTEM_PROMPT,
        generation_options=_json_options(temperature=0.8, max_output_tokens=3000, top_p=0.95, top_k=40),
    )


def build_response_evaluation_request(
    question: DocumentQuestion,
    user_response: str,
    document_context: str,
    feedback: UserFeedback,
) -> ModelRequest:
    prompt = f"""You are an expert educator evaluating a student's response to a complex question.

QUESTION: {question.question}
DIFFICULTY: {question.difficulty}
EXPECTED CONTEXT: {question.context}

STUDENT'S RESPONSE: {user_response}

FEEDBACK FROM STUDENT:
- Clarity of question: {feedback.clarity}/5
- Perceived difficulty: {feedback.difficulty}/5
- Student notes: {feedback.notes or 'None provided'}

DOCUMENT CONTEXT:
{document_context}

Evaluate the response in a single turn and provide:
1. A brief evaluation (2-3 sentences)
2. A score from 0-100
3. Up to 3 specific suggestions for improvement

Return ONLY this JSON format:
{{
  "evaluation": "your evaluation text",
  "score": 85,
  "suggestions": ["suggestion1", "suggestion2", "suggestion3"]
}}"""
    return ModelRequest(
        target_model=config.MODELS.document_model,
        prompt_parts=[TextPart(text=prompt)],
        generation_options=_json_options(temperature=0.7, max_output_tokens=500),
    )


# =============================================================================
# Persona-driven content
# =============================================================================

def build_persona_system_prompt(persona: SystemPersona) -> str:
    sections = [
        f"You are {persona.name}, {persona.role}.",
        f"EXPERTISE: {', '.join(persona.expertise)}",
        f"TONE: Communicate in a {persona.tone} tone.",
        f"STYLE: {persona.style}",
        f"CORE VALUES: {', '.join(persona.values)}",
        f"CONSTRAINTS:\n{_bullets(persona.constraints)}",
    ]
    if persona.examples:
        sections.append(f"STYLE EXAMPLES:\n{_bullets(persona.examples)}")
    sections.append(
        "You must maintain consistency with this persona in ALL responses. "
        "Generate high-quality, polished content on the first attempt to minimize revisions."
    )
    return "\n\n".join(sections)


def build_persona_content_request(persona: SystemPersona, request: ContentRequest) -> ModelRequest:
    kind = "production-ready code" if request.content_type == "code-snippet" else "high-quality content"
    sections = [
        f"Generate {kind} for the following request:",
        f"CONTENT TYPE: {request.content_type}\nTOPIC: {request.topic}\nTARGET AUDIENCE: {request.target_audience}",
        f"REQUIREMENTS:\n{_bullets(request.requirements)}",
    ]
    if request.constraints:
        sections.append(f"ADDITIONAL CONSTRAINTS:\n{_bullets(request.constraints)}")
    if request.output_format:
        sections.append(f"OUTPUT FORMAT:\n{request.output_format}")
    if request.custom_context:
        sections.append(f"ADDITIONAL CONTEXT:\n{request.custom_context}")
    sections.append(
        "Generate the complete, final output now. Do not ask for clarification or provide alternatives. "
        "Provide only the content itself, ready for immediate use.\n\n"
        'Return ONLY valid JSON (no markdown): {"content": "the complete generated content"}'
    )

    return ModelRequest(
        target_model=config.MODELS.document_model,
        prompt_parts=[TextPart(text="\n\n".join(sections))],
        system_instruction=build_persona_system_prompt(persona),
        generation_options=_json_options(temperature=0.8, max_output_tokens=4000, top_p=0.95, top_k=40),
    )


def build_variants_request(persona: SystemPersona, request: ContentRequest, variant_count: int) -> ModelRequest:
    if variant_count < 1:
        raise ValueError("variant_count must be at least 1")
    prompt = f"""Generate {variant_count} DISTINCT VARIANTS of {request.content_type} content for the following request.
Each variant should offer a different approach or angle while maintaining the core message and persona.

TOPIC: {request.topic}
TARGET AUDIENCE: {request.target_audience}

REQUIREMENTS:
{_bullets(request.requirements)}

Each variant should be complete and standalone.
Return ONLY valid JSON (no markdown):
{{"variants": ["first variant", "second variant"]}}"""
    return ModelRequest(
        target_model=config.MODELS.document_model,
        prompt_parts=[TextPart(text=prompt)],
        system_instruction=build_persona_system_prompt(persona),
        generation_options=_json_options(temperature=0.9, max_output_tokens=4000, top_p=0.95, top_k=40),
    )
