"""
Tests for grading, weak topics and course stats.
"""

from datetime import datetime, timedelta, timezone

import pytest

from models.practice_models import (
    PracticeQuestion, PracticeResult, PracticeSession, PracticeType, QuestionType,
)
from services.result_aggregator import (
    FEEDBACK_EMPTY, FEEDBACK_GOOD, FEEDBACK_PARTIAL, FEEDBACK_WEAK,
    ResultAggregator, evaluate_open_answer, grade_answer, rank_weak_topics,
)
from utils.exceptions import ValidationError

SAMPLE_ANSWER = "binary search trees keep keys sorted"
T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _question(qid, kind, answer, topic=None, options=None):
    return PracticeQuestion(id=qid, question=f"Question {qid}", type=kind, correct_answer=answer, topic=topic, options=options)


def _session(questions):
    return PracticeSession(
        id="session-1", course_id="course-1", course_name="Data Structures",
        practice_type=PracticeType.MIXED, question_count=len(questions),
        questions=questions, owner_id="user-1",
    )


def _result(weak_topics, score=50, completed_at=T0):
    return PracticeResult(
        session_id="s", course_id="course-1", owner_id="user-1", score_percent=score,
        total_questions=2, correct_count=1, incorrect_count=1,
        weak_topics=weak_topics, completed_at=completed_at,
    )


QUESTIONS = [
    _question("q1", QuestionType.TRUE_FALSE, "True", topic="Trees"),
    _question("q2", QuestionType.MULTIPLE_CHOICE, "Hash table", topic="Hashing",
              options=["Hash table", "Linked list", "Binary heap", "Array scan"]),
    _question("q3", QuestionType.OPEN, SAMPLE_ANSWER, topic="Trees"),
    _question("q4", QuestionType.TRUE_FALSE, "False"),
]


# ── Open answers ──────────────────────────────────────────────────────────────

@pytest.mark.parametrize("answer,score,feedback", [
    ("", 0, FEEDBACK_EMPTY),
    ("   ", 0, FEEDBACK_EMPTY),
    (SAMPLE_ANSWER, 100, FEEDBACK_GOOD),
    ("Binary SEARCH trees keep", 67, FEEDBACK_PARTIAL),
    ("binary search", 33, FEEDBACK_WEAK),
    ("the keys are in a tree", 17, FEEDBACK_WEAK),
])
def test_evaluate_open_answer(answer, score, feedback):
    evaluation = evaluate_open_answer(answer, SAMPLE_ANSWER)
    assert (evaluation.score, evaluation.feedback) == (score, feedback)


def test_repeated_words_cannot_exceed_full_marks():
    assert evaluate_open_answer("sorted " * 20, SAMPLE_ANSWER).score == 100


def test_short_words_never_match():
    assert evaluate_open_answer("a is an", "a is an").score == 0


# ── Single answers ────────────────────────────────────────────────────────────

def test_closed_answers_ignore_case_and_padding():
    assert grade_answer(QUESTIONS[0], " true ").is_correct
    assert not grade_answer(QUESTIONS[0], "False").is_correct
    assert grade_answer(QUESTIONS[1], "Hash table").is_correct
    assert grade_answer(QUESTIONS[1], "Hash table").score is None


def test_open_answer_carries_score():
    answer = grade_answer(QUESTIONS[2], SAMPLE_ANSWER)
    assert answer.is_correct
    assert answer.score == 100

    empty = grade_answer(QUESTIONS[2], None)
    assert empty.user_answer == ""
    assert empty.score == 0
    assert not empty.is_correct


# ── Session results ───────────────────────────────────────────────────────────

def test_build_result_counts_and_weak_topics():
    result = ResultAggregator().build_result(
        _session(QUESTIONS), ["False", "Linked list", "binary search", "True"], completed_at=T0,
    )

    assert result.correct_count == 0
    assert result.incorrect_count == 4
    assert result.score_percent == 0
    assert result.weak_topics == ["Trees", "Hashing"]
    assert [a.question_id for a in result.answers] == ["q1", "q2", "q3", "q4"]
    assert result.completed_at == T0


def test_weak_topics_only_from_incorrect_answers():
    result = ResultAggregator().build_result(_session(QUESTIONS), ["True", "Linked list", SAMPLE_ANSWER, "False"])

    assert result.correct_count == 3
    assert result.score_percent == 75
    assert result.weak_topics == ["Hashing"]
    incorrect_topics = {q.topic for q, a in zip(QUESTIONS, result.answers) if not a.is_correct}
    assert set(result.weak_topics) <= incorrect_topics


def test_answer_count_must_match():
    with pytest.raises(ValidationError) as exc_info:
        ResultAggregator().build_result(_session(QUESTIONS), ["True"])
    assert exc_info.value.error_code == "ANSWER_COUNT_MISMATCH"


# ── Course stats ──────────────────────────────────────────────────────────────

def test_most_frequent_weak_topic_ranks_first():
    results = [_result(["Algorithms", "Trees"]), _result(["Algorithms"], completed_at=T0 + timedelta(days=1))]
    assert rank_weak_topics(results)[0] == "Algorithms"


def test_ties_go_to_most_recent_topic():
    results = [
        _result(["Trees"], completed_at=T0),
        _result(["Graphs"], completed_at=T0 + timedelta(days=2)),
        _result(["Heaps"], completed_at=T0 + timedelta(days=1)),
    ]
    assert rank_weak_topics(results) == ["Graphs", "Heaps", "Trees"]


def test_top_three_only():
    results = [_result(["A", "B", "C", "D"]), _result(["D", "C"])]
    assert rank_weak_topics(results) == ["C", "D", "A"]


def test_course_stats_average_and_recency():
    results = [
        _result(["Trees"], score=50, completed_at=T0),
        _result([], score=75, completed_at=T0 + timedelta(hours=3)),
    ]

    stats = ResultAggregator().course_stats("course-1", "user-1", results)

    assert stats.total_sessions == 2
    assert stats.average_score_percent == 63
    assert stats.most_recent_completed_at == T0 + timedelta(hours=3)
    assert stats.top_weak_topics == ["Trees"]


def test_course_stats_without_results():
    stats = ResultAggregator().course_stats("course-1", "user-1", [])

    assert stats.total_sessions == 0
    assert stats.average_score_percent == 0
    assert stats.most_recent_completed_at is None
    assert stats.top_weak_topics == []
