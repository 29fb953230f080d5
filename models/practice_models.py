"""
Pydantic models for AI practice generation and results.
Field names serialize in camelCase so stored rows and model responses share
one shape (question, type, correctAnswer, ...).
"""

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel
from typing import List, Optional, Dict, Any
from datetime import datetime, timezone
from enum import Enum


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Enums for type safety and validation
class QuestionType(str, Enum):
    TRUE_FALSE = "true-false"
    OPEN = "open"
    MULTIPLE_CHOICE = "multiple-choice"


class PracticeType(str, Enum):
    TRUE_FALSE = "true-false"
    OPEN_QUESTIONS = "open-questions"
    MIXED = "mixed"


class SessionStatus(str, Enum):
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class QuestionSource(str, Enum):
    GENERATED = "generated"
    FALLBACK = "fallback"


class PromptTier(str, Enum):
    CONTENT = "content"
    METADATA = "metadata"
    NAME_ONLY = "name-only"


class GenerationFailure(str, Enum):
    NO_API_KEY = "no-api-key"
    QUOTA_EXCEEDED = "quota-exceeded"
    TRANSPORT_OR_SERVICE_ERROR = "transport-or-service-error"
    RESPONSE_NOT_JSON = "response-not-json"
    RESPONSE_EMPTY = "response-empty-after-validation"


MULTIPLE_CHOICE_OPTION_COUNT = 4

# Question kinds cycled through for each practice type
PRACTICE_TYPE_QUESTION_KINDS: Dict[PracticeType, List[QuestionType]] = {
    PracticeType.TRUE_FALSE: [QuestionType.TRUE_FALSE],
    PracticeType.OPEN_QUESTIONS: [QuestionType.OPEN],
    PracticeType.MIXED: [
        QuestionType.TRUE_FALSE,
        QuestionType.OPEN,
        QuestionType.MULTIPLE_CHOICE,
    ],
}


class CamelModel(BaseModel):
    """Base model accepting both camelCase and snake_case input"""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_record(self) -> Dict[str, Any]:
        """Serialize for storage / JSON responses (camelCase, no nulls)"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Course documents
class CourseDocument(CamelModel):
    """Uploaded course file as returned by the document store"""
    id: str
    name: str
    mime_type: Optional[str] = None
    size_bytes: Optional[int] = None
    url: Optional[str] = None


class ExtractedContent(CamelModel):
    """Best-effort plain text pulled from one document"""
    document_id: str
    text: str = ""
    char_count: int = 0
    extracted: bool = False


class CorpusReport(CamelModel):
    """Concatenated course text plus a per-document tally"""
    text: str = ""
    substantial: bool = False
    documents_total: int = 0
    documents_extracted: int = 0
    documents_failed: int = 0
    contents: List[ExtractedContent] = []


# Questions and sessions
class PracticeQuestion(CamelModel):
    """A single practice question, generated or synthesized offline"""
    model_config = ConfigDict(frozen=True)

    id: str
    text: str = Field(..., min_length=1, alias="question")
    kind: QuestionType = Field(..., alias="type")
    options: Optional[List[str]] = None
    correct_answer: str = Field(..., min_length=1)
    explanation: Optional[str] = None
    topic: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _drop_options_for_non_choice(cls, data: Any) -> Any:
        if isinstance(data, dict):
            kind = data.get("type", data.get("kind"))
            if kind not in (QuestionType.MULTIPLE_CHOICE, QuestionType.MULTIPLE_CHOICE.value):
                data = {k: v for k, v in data.items() if k != "options"}
        return data

    @model_validator(mode="after")
    def _check_choice_options(self) -> "PracticeQuestion":
        if self.kind == QuestionType.MULTIPLE_CHOICE:
            if not self.options or len(self.options) != MULTIPLE_CHOICE_OPTION_COUNT:
                raise ValueError(
                    f"multiple-choice questions need exactly {MULTIPLE_CHOICE_OPTION_COUNT} options"
                )
        return self


class PracticeSession(CamelModel):
    """Practice session persisted when generation succeeds (either path)"""
    id: Optional[str] = None
    course_id: str
    course_name: str
    practice_type: PracticeType
    question_count: int
    questions: List[PracticeQuestion]
    owner_id: str
    status: SessionStatus = SessionStatus.IN_PROGRESS
    source: QuestionSource = QuestionSource.GENERATED
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


class PracticeAnswer(CamelModel):
    """Graded answer; score is present for open questions only"""
    question_id: str
    user_answer: str = ""
    is_correct: bool = False
    score: Optional[int] = Field(None, ge=0, le=100)


class PracticeResult(CamelModel):
    """Stored once per completed session"""
    id: Optional[str] = None
    session_id: str
    course_id: str
    course_name: str = "Course"
    owner_id: str
    score_percent: int = Field(..., ge=0, le=100)
    total_questions: int
    correct_count: int
    incorrect_count: int
    answers: List[PracticeAnswer] = []
    weak_topics: List[str] = []
    completed_at: datetime = Field(default_factory=utc_now)


class CourseWeakTopicStats(CamelModel):
    """Derived on demand from a user's results for one course"""
    course_id: str
    user_id: str
    total_sessions: int = 0
    average_score_percent: int = 0
    most_recent_completed_at: Optional[datetime] = None
    top_weak_topics: List[str] = []


class OpenAnswerEvaluation(CamelModel):
    score: int = Field(..., ge=0, le=100)
    feedback: str


# Generation service payloads
class GenerationMessage(CamelModel):
    role: str
    content: str


class GenerationRequest(CamelModel):
    """Chat-completion request built by the prompt builder"""
    model: str
    messages: List[GenerationMessage]
    temperature: float = 0.7
    max_tokens: int = 3000
    tier: PromptTier


class GenerationOutcome(CamelModel):
    """Ok(raw_text) or Err(failure) from the generation client"""
    ok: bool
    raw_text: Optional[str] = None
    failure: Optional[GenerationFailure] = None
    message: Optional[str] = None

    @classmethod
    def success(cls, raw_text: str) -> "GenerationOutcome":
        return cls(ok=True, raw_text=raw_text)

    @classmethod
    def failed(cls, failure: GenerationFailure, message: str = "") -> "GenerationOutcome":
        return cls(ok=False, failure=failure, message=message)


class PracticeGenerationReport(CamelModel):
    """Pipeline output: the persisted session plus internal diagnostics"""
    session: PracticeSession
    tier: PromptTier
    used_fallback: bool = False
    failure: Optional[GenerationFailure] = None

    @property
    def question_count(self) -> int:
        return len(self.session.questions)


# API request models
class PracticeGenerationRequest(CamelModel):
    """Request to generate a practice session for a course"""
    user_id: str
    course_name: str
    practice_type: PracticeType = PracticeType.MIXED
    num_questions: int = Field(10, ge=1, le=50)


class PracticeSubmissionRequest(CamelModel):
    """Answers for a session, positionally matched to its questions"""
    user_id: str
    answers: List[str]
