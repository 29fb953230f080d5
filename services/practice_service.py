"""
Practice generation service.
Orchestrates corpus assembly, prompt building, generation, validation and
the offline fallback, then persists the session. Also grades submissions
and serves history / weak-topic stats.
"""

import os
import time
import logging
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from clients.openai_client import GenerationClient
from models.practice_models import (
    CourseWeakTopicStats, GenerationFailure, GenerationRequest, PracticeGenerationReport,
    PracticeQuestion, PracticeResult, PracticeSession, PracticeType, QuestionSource,
    SessionStatus,
)
from prompts.practice_prompts import PromptBuilder
from services.corpus_assembly import CorpusAssembler
from services.fallback_questions import FallbackQuestionGenerator
from services.response_validator import parse_practice_questions
from services.result_aggregator import ResultAggregator
from utils.exceptions import (
    NotFoundError, ResponseEmptyError, ResponseNotJsonError, StorageError, ValidationError,
)
from utils.model_config import ExtractionSettings, GenerationSettings
from utils.practice_storage import (
    DocumentStore, GenerationLogger, PracticeStore,
    SupabaseDocumentStore, SupabasePracticeStore,
)

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent
GENERATION_LOGS_FILE = BASE_DIR / "practice_generation_logs.json"

MAX_QUESTIONS = 50


class PracticeService:
    """Main service for practice generation and grading"""

    def __init__(
        self,
        document_store: DocumentStore,
        practice_store: PracticeStore,
        settings: Optional[GenerationSettings] = None,
        assembler: Optional[CorpusAssembler] = None,
        client: Optional[GenerationClient] = None,
        generation_logger: Optional[GenerationLogger] = None,
    ):
        self.settings = settings or GenerationSettings()
        self.document_store = document_store
        self.practice_store = practice_store
        self.assembler = assembler or CorpusAssembler()
        self.prompt_builder = PromptBuilder(self.settings)
        self.client = client or GenerationClient(self.settings)
        self.fallback = FallbackQuestionGenerator()
        self.aggregator = ResultAggregator()
        self.logger = generation_logger or GenerationLogger()

    @classmethod
    def from_env(cls) -> "PracticeService":
        """Supabase stores, env-configured model and extraction bounds"""
        log_path = os.getenv("PRACTICE_GENERATION_LOG", str(GENERATION_LOGS_FILE))
        return cls(
            document_store=SupabaseDocumentStore(),
            practice_store=SupabasePracticeStore(),
            settings=GenerationSettings.from_env(),
            assembler=CorpusAssembler(settings=ExtractionSettings.from_env()),
            generation_logger=GenerationLogger(log_path or None),
        )

    def generate_practice_session(
        self,
        course_id: str,
        course_name: str,
        owner_id: str,
        practice_type: PracticeType = PracticeType.MIXED,
        num_questions: int = 10,
    ) -> PracticeGenerationReport:
        """
        Generate and persist a practice session for a course.

        Every extraction, generation and validation failure ends in the
        offline generator; only storage failures propagate.

        Returns:
            PracticeGenerationReport with the stored session (id set)

        Raises:
            ValidationError: num_questions outside 1..50
            StorageError: Documents could not be listed or the session
                could not be saved
        """
        if not 1 <= num_questions <= MAX_QUESTIONS:
            raise ValidationError(
                f"num_questions must be between 1 and {MAX_QUESTIONS}",
                context={"num_questions": num_questions},
            )

        start_time = time.time()
        documents = self.document_store.list_by_course(course_id)
        logger.info(f"Generating {num_questions} {practice_type.value} questions for {course_name} ({len(documents)} file(s))")

        corpus = self.assembler.assemble(documents)
        request = self.prompt_builder.build(
            course_name=course_name,
            corpus=corpus,
            documents=documents,
            practice_type=practice_type,
            num_questions=num_questions,
        )
        logger.info(f"Using {request.tier.value} prompt tier")

        questions, failure = self._generate_questions(request, num_questions)
        used_fallback = questions is None
        if questions is None:
            logger.warning(f"Falling back to offline questions ({failure.value})")
            questions = self.fallback.generate(course_name, practice_type, num_questions, documents=documents)

        session = PracticeSession(
            course_id=course_id,
            course_name=course_name,
            practice_type=practice_type,
            question_count=len(questions),
            questions=questions,
            owner_id=owner_id,
            status=SessionStatus.IN_PROGRESS,
            source=QuestionSource.FALLBACK if used_fallback else QuestionSource.GENERATED,
        )

        try:
            session_id = self.practice_store.create_session(session)
        except StorageError as e:
            self._log_attempt(course_id, request, "error", failure, len(questions), start_time, error=e.message)
            raise

        session = session.model_copy(update={"id": session_id})
        self._log_attempt(course_id, request, "success", failure, len(questions), start_time)

        return PracticeGenerationReport(
            session=session,
            tier=request.tier,
            used_fallback=used_fallback,
            failure=failure,
        )

    def _generate_questions(
        self,
        request: GenerationRequest,
        num_questions: int,
    ) -> Tuple[Optional[List[PracticeQuestion]], Optional[GenerationFailure]]:
        outcome = self.client.generate(request)
        if not outcome.ok:
            return None, outcome.failure

        try:
            questions = parse_practice_questions(outcome.raw_text)
        except ResponseNotJsonError as e:
            logger.warning(f"Generated response rejected: {e.message} {e.context}")
            return None, GenerationFailure.RESPONSE_NOT_JSON
        except ResponseEmptyError as e:
            logger.warning(f"Generated response rejected: {e.message}")
            return None, GenerationFailure.RESPONSE_EMPTY

        if len(questions) > num_questions:
            logger.info(f"Model returned {len(questions)} questions, keeping the first {num_questions}")
            questions = questions[:num_questions]
        elif len(questions) < num_questions:
            logger.warning(f"Model returned {len(questions)} of {num_questions} requested questions")
        return questions, None

    def _log_attempt(
        self,
        course_id: str,
        request: GenerationRequest,
        status: str,
        failure: Optional[GenerationFailure],
        question_count: int,
        start_time: float,
        error: Optional[str] = None,
    ) -> None:
        entry = {
            "type": "practice_session",
            "course_id": course_id,
            "tier": request.tier.value,
            "model": request.model,
            "status": status,
            "failure": failure.value if failure else None,
            "question_count": question_count,
            "generation_time": round(time.time() - start_time, 2),
        }
        if error:
            entry["error"] = error
        self.logger.log_generation(entry)

    def get_practice_session(self, session_id: str) -> PracticeSession:
        session = self.practice_store.get_session(session_id)
        if session is None:
            raise NotFoundError(f"Practice session {session_id} not found", context={"session_id": session_id})
        return session

    def submit_practice_answers(
        self,
        session_id: str,
        owner_id: str,
        answers: Sequence[Optional[str]],
    ) -> PracticeResult:
        """
        Grade answers, save the result once and mark the session completed.

        Raises:
            NotFoundError: Unknown session
            ValidationError: Wrong owner, wrong answer count, or the session
                already has a result
            StorageError: The result could not be saved
        """
        session = self.get_practice_session(session_id)

        if session.owner_id != owner_id:
            raise ValidationError(
                "Session belongs to another user",
                error_code="SESSION_OWNER_MISMATCH",
                context={"session_id": session_id},
            )
        if session.status == SessionStatus.COMPLETED:
            raise ValidationError(
                "Practice session already completed",
                error_code="SESSION_ALREADY_COMPLETED",
                context={"session_id": session_id},
            )

        result = self.aggregator.build_result(session, answers)
        result_id = self.practice_store.save_result(result)
        result = result.model_copy(update={"id": result_id})

        try:
            self.practice_store.mark_completed(session_id)
        except StorageError as e:
            logger.warning(f"Could not mark session {session_id} completed: {e.message}")

        logger.info(f"Saved result {result_id} for session {session_id}: {result.score_percent}%")
        return result

    def get_practice_history(self, course_id: str, user_id: str) -> List[PracticeResult]:
        """All results of a user for a course, newest first"""
        return self.practice_store.list_results(course_id, user_id)

    def get_course_stats(self, course_id: str, user_id: str) -> CourseWeakTopicStats:
        results = self.practice_store.list_results(course_id, user_id)
        return self.aggregator.course_stats(course_id, user_id, results)
