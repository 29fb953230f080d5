"""
Grading of submitted practice answers and weak-topic statistics.
"""

import math
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence

from models.practice_models import (
    CourseWeakTopicStats, OpenAnswerEvaluation, PracticeAnswer, PracticeQuestion,
    PracticeResult, PracticeSession, QuestionType, utc_now,
)
from utils.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Open answers at or above this score count as correct. Tunable heuristic.
OPEN_ANSWER_PASS_THRESHOLD = 70
OPEN_ANSWER_PARTIAL_THRESHOLD = 50

# Only words longer than this count toward open-answer overlap
MIN_MATCH_WORD_LENGTH = 3

TOP_WEAK_TOPICS = 3

FEEDBACK_EMPTY = "No answer provided"
FEEDBACK_GOOD = "Good answer! You covered the main points."
FEEDBACK_PARTIAL = "Partial answer. Try to include more key concepts."
FEEDBACK_WEAK = "Your answer needs more detail. Review the material and try again."


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def percent(part: int, whole: int) -> int:
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100)


def evaluate_open_answer(user_answer: Optional[str], correct_answer: str) -> OpenAnswerEvaluation:
    """
    Word-overlap score of an open answer against the sample answer.

    Every user word longer than 3 characters that also appears in the
    sample answer counts as a match (case-insensitive); the score is
    matches over the number of sample-answer words, scaled to 0-100.
    """
    if not user_answer or not user_answer.strip():
        return OpenAnswerEvaluation(score=0, feedback=FEEDBACK_EMPTY)

    user_words = user_answer.lower().split()
    correct_words = correct_answer.lower().split()
    vocabulary = set(correct_words)

    matches = sum(1 for word in user_words if len(word) > MIN_MATCH_WORD_LENGTH and word in vocabulary)
    score = min(100, percent(matches, max(len(correct_words), 1)))

    if score >= OPEN_ANSWER_PASS_THRESHOLD:
        feedback = FEEDBACK_GOOD
    elif score >= OPEN_ANSWER_PARTIAL_THRESHOLD:
        feedback = FEEDBACK_PARTIAL
    else:
        feedback = FEEDBACK_WEAK
    return OpenAnswerEvaluation(score=score, feedback=feedback)


def grade_answer(question: PracticeQuestion, user_answer: Optional[str]) -> PracticeAnswer:
    """Grade one answer; only open questions carry a score"""
    answer = user_answer or ""
    if question.kind == QuestionType.OPEN:
        evaluation = evaluate_open_answer(answer, question.correct_answer)
        return PracticeAnswer(
            question_id=question.id,
            user_answer=answer,
            is_correct=evaluation.score >= OPEN_ANSWER_PASS_THRESHOLD,
            score=evaluation.score,
        )

    is_correct = answer.strip().lower() == question.correct_answer.strip().lower()
    return PracticeAnswer(question_id=question.id, user_answer=answer, is_correct=is_correct)


def collect_weak_topics(questions: Sequence[PracticeQuestion], answers: Sequence[PracticeAnswer]) -> List[str]:
    """Topics of incorrectly answered questions, deduplicated in question order"""
    weak_topics: List[str] = []
    for question, answer in zip(questions, answers):
        topic = (question.topic or "").strip()
        if not answer.is_correct and topic and topic not in weak_topics:
            weak_topics.append(topic)
    return weak_topics


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def rank_weak_topics(results: Sequence[PracticeResult], limit: int = TOP_WEAK_TOPICS) -> List[str]:
    """
    Most frequent weak topics across results.
    Ties go to the topic seen most recently, then to first-seen order.
    """
    counts: Dict[str, int] = {}
    last_seen: Dict[str, datetime] = {}
    for result in results:
        completed_at = _as_utc(result.completed_at)
        for topic in result.weak_topics:
            counts[topic] = counts.get(topic, 0) + 1
            if topic not in last_seen or completed_at > last_seen[topic]:
                last_seen[topic] = completed_at

    order = {topic: i for i, topic in enumerate(counts)}
    ranked = sorted(
        counts,
        key=lambda topic: (-counts[topic], -last_seen[topic].timestamp(), order[topic]),
    )
    return ranked[:limit]


class ResultAggregator:
    """Turns submitted answers into results and results into course stats"""

    def build_result(
        self,
        session: PracticeSession,
        user_answers: Sequence[Optional[str]],
        completed_at: Optional[datetime] = None,
    ) -> PracticeResult:
        """
        Grade a submission against the session's questions.

        Args:
            session: Stored session (questions carry topics)
            user_answers: One answer per question, positionally matched

        Raises:
            ValidationError: Answer count does not match question count
        """
        questions = session.questions
        if len(user_answers) != len(questions):
            raise ValidationError(
                f"Expected {len(questions)} answers, got {len(user_answers)}",
                error_code="ANSWER_COUNT_MISMATCH",
                context={"expected": len(questions), "received": len(user_answers)},
            )

        answers = [grade_answer(q, a) for q, a in zip(questions, user_answers)]
        correct_count = sum(1 for a in answers if a.is_correct)
        weak_topics = collect_weak_topics(questions, answers)

        logger.info(
            f"Graded session {session.id}: {correct_count}/{len(questions)} correct, "
            f"weak topics: {weak_topics}"
        )

        return PracticeResult(
            session_id=session.id or "",
            course_id=session.course_id,
            course_name=session.course_name or "Course",
            owner_id=session.owner_id,
            score_percent=percent(correct_count, len(questions)),
            total_questions=len(questions),
            correct_count=correct_count,
            incorrect_count=len(questions) - correct_count,
            answers=answers,
            weak_topics=weak_topics,
            completed_at=completed_at or utc_now(),
        )

    def course_stats(
        self,
        course_id: str,
        user_id: str,
        results: Sequence[PracticeResult],
    ) -> CourseWeakTopicStats:
        """Recompute course stats purely from the user's stored results"""
        if not results:
            return CourseWeakTopicStats(course_id=course_id, user_id=user_id)

        average = round_half_up(sum(r.score_percent for r in results) / len(results))
        most_recent = max(_as_utc(r.completed_at) for r in results)

        return CourseWeakTopicStats(
            course_id=course_id,
            user_id=user_id,
            total_sessions=len(results),
            average_score_percent=average,
            most_recent_completed_at=most_recent,
            top_weak_topics=rank_weak_topics(results),
        )
