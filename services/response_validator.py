"""
Repair and validate free-form model output into PracticeQuestion records.

Models wrap JSON in ``` fences or prepend commentary; both are stripped
before parsing. Parse failures and empty results raise (the pipeline falls
back); individually invalid elements are dropped.
"""

import json
import re
import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from models.practice_models import PracticeQuestion, QuestionType
from utils.exceptions import ResponseNotJsonError, ResponseEmptyError

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("question", "type", "correctAnswer")

FENCED_JSON_PATTERN = re.compile(r"```json\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
FENCED_PATTERN = re.compile(r"```[a-zA-Z]*\s*(.*?)\s*```", re.DOTALL)

PREVIEW_CHARS = 200

# Spellings models use for the three question types
TYPE_ALIASES = {
    "true-false": QuestionType.TRUE_FALSE,
    "true_false": QuestionType.TRUE_FALSE,
    "truefalse": QuestionType.TRUE_FALSE,
    "true/false": QuestionType.TRUE_FALSE,
    "open": QuestionType.OPEN,
    "open-ended": QuestionType.OPEN,
    "open_ended": QuestionType.OPEN,
    "multiple-choice": QuestionType.MULTIPLE_CHOICE,
    "multiple_choice": QuestionType.MULTIPLE_CHOICE,
    "mcq": QuestionType.MULTIPLE_CHOICE,
}


def strip_code_fences(text: str) -> str:
    """Remove ```json ... ``` or bare ``` ... ``` wrappers"""
    text = text.strip()
    if "```" not in text:
        return text
    match = FENCED_JSON_PATTERN.search(text) or FENCED_PATTERN.search(text)
    if match:
        return match.group(1).strip()
    # Unterminated fence: drop the markers and keep the rest
    return re.sub(r"```(?:json)?", "", text, flags=re.IGNORECASE).strip()


def _holds_questions(value: Any) -> bool:
    return isinstance(value, list) and any(isinstance(item, dict) for item in value)


def decode_embedded_array(text: str) -> Any:
    """
    Decode the JSON array embedded in surrounding commentary.

    Tries every "[" in turn and returns the first candidate that decodes to
    a list of objects, so "[1]" or "[]" in prose is skipped. Text after the
    closing bracket is ignored. When no candidate holds objects, a decode
    error wins over an array without objects.

    Raises:
        json.JSONDecodeError: No candidate decodes (first error is re-raised)
        RecursionError: Nesting too deep for the decoder
    """
    decoder = json.JSONDecoder()
    start = text.find("[")
    if start < 0:
        # Let the decoder report the position for non-array text
        return json.loads(text)

    first_error: Optional[json.JSONDecodeError] = None
    first_array: Optional[list] = None
    while start >= 0:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError as e:
            if first_error is None:
                first_error = e
        else:
            if _holds_questions(value):
                return value
            if first_array is None:
                first_array = value
        start = text.find("[", start + 1)

    if first_error is not None:
        raise first_error
    return first_array


def _normalize_type(value: Any) -> Optional[QuestionType]:
    if not isinstance(value, str):
        return None
    return TYPE_ALIASES.get(value.strip().lower())


def _normalize_answer(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return "True" if value else "False"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _optional_text(value: Any) -> Optional[str]:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def coerce_question(item: Any, question_id: str) -> Optional[PracticeQuestion]:
    """Build one PracticeQuestion from a raw array element, or None if invalid"""
    if not isinstance(item, dict):
        return None
    if any(not item.get(field) and item.get(field) is not False for field in REQUIRED_FIELDS):
        return None

    text = _optional_text(item.get("question"))
    kind = _normalize_type(item.get("type"))
    answer = _normalize_answer(item.get("correctAnswer"))
    if text is None or kind is None or answer is None:
        return None

    record: Dict[str, Any] = {
        "id": question_id,
        "question": text,
        "type": kind,
        "correctAnswer": answer,
        "explanation": _optional_text(item.get("explanation")),
        "topic": _optional_text(item.get("topic")),
    }
    if kind == QuestionType.MULTIPLE_CHOICE:
        options = item.get("options")
        if not isinstance(options, list):
            return None
        record["options"] = [str(option).strip() for option in options]

    try:
        return PracticeQuestion(**record)
    except PydanticValidationError as e:
        logger.debug(f"Dropping invalid question element: {e.errors()}")
        return None


def parse_practice_questions(raw: str) -> List[PracticeQuestion]:
    """
    Parse a model response into validated practice questions.

    Args:
        raw: Raw text returned by the generation service

    Returns:
        Validated questions with positional ids q1, q2, ...

    Raises:
        ResponseNotJsonError: Text is not (or does not contain) a JSON array
        ResponseEmptyError: No element survived validation
    """
    if raw is None or not str(raw).strip():
        raise ResponseNotJsonError("Empty response from AI", context={"stage": "empty"})

    candidate = strip_code_fences(str(raw))

    try:
        data = decode_embedded_array(candidate)
    except json.JSONDecodeError as e:
        logger.warning(f"JSON parse error at line {e.lineno} column {e.colno}: {e.msg}")
        logger.warning(f"Content that failed to parse: {candidate[:PREVIEW_CHARS]}")
        raise ResponseNotJsonError(
            f"Failed to parse AI response as JSON: {e.msg}",
            context={
                "stage": "parse",
                "position": e.pos,
                "line": e.lineno,
                "column": e.colno,
                "preview": candidate[:PREVIEW_CHARS],
            },
        )
    except (RecursionError, ValueError) as e:
        logger.warning(f"JSON decoder gave up on AI response: {type(e).__name__}")
        raise ResponseNotJsonError(
            "Failed to parse AI response as JSON: nesting or value too large",
            context={"stage": "parse", "preview": candidate[:PREVIEW_CHARS]},
        )

    if not isinstance(data, list):
        raise ResponseNotJsonError(
            "AI response is not an array of questions",
            context={"stage": "shape", "found": type(data).__name__},
        )

    questions: List[PracticeQuestion] = []
    for item in data:
        question = coerce_question(item, question_id=f"q{len(questions) + 1}")
        if question is not None:
            questions.append(question)

    dropped = len(data) - len(questions)
    if dropped:
        logger.warning(f"Dropped {dropped} invalid question element(s) from AI response")

    if not questions:
        raise ResponseEmptyError(
            "No valid questions found in AI response",
            context={"stage": "validate", "elements": len(data)},
        )

    logger.info(f"Successfully parsed {len(questions)} questions from AI response")
    return questions


def questions_to_response_json(questions: List[PracticeQuestion]) -> str:
    """Encode questions in the generation-response shape (ids omitted)"""
    payload = []
    for question in questions:
        record = question.to_record()
        record.pop("id", None)
        payload.append(record)
    return json.dumps(payload, ensure_ascii=False)
