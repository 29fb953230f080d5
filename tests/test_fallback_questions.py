"""
Tests for offline question synthesis.
"""

import pytest

from models.practice_models import CourseDocument, PracticeType, QuestionType
from services.fallback_questions import DEFAULT_TOPICS, FallbackQuestionGenerator, infer_topics


def _docs(*names):
    return [CourseDocument(id=str(i), name=name, url=f"https://f.example.com/{i}") for i, name in enumerate(names)]


def test_topics_follow_vocabulary_in_first_match_order():
    assert infer_topics(["Intro to Algorithms.pdf", "Week 3 - Networking.pdf", "algo-review.txt"]) == [
        "Algorithms", "Networking",
    ]


def test_one_name_can_map_to_several_topics():
    assert infer_topics(["database design.pdf"]) == ["Data Structures", "Databases"]


def test_default_topics_when_nothing_matches():
    assert infer_topics(["syllabus.pdf", "week1.txt"]) == DEFAULT_TOPICS
    assert infer_topics([]) == DEFAULT_TOPICS


@pytest.mark.parametrize("count", [1, 4, 10, 50])
@pytest.mark.parametrize("practice_type", list(PracticeType))
def test_exact_count_with_topics(practice_type, count):
    questions = FallbackQuestionGenerator().generate("", practice_type, count)

    assert len(questions) == count
    assert all(q.topic for q in questions)
    assert [q.id for q in questions] == [f"q{i}" for i in range(1, count + 1)]


def test_mixed_cycles_kinds_and_topics():
    questions = FallbackQuestionGenerator().generate(
        "CS 201", PracticeType.MIXED, 5, documents=_docs("calculus.pdf", "programming.pdf"),
    )

    assert [q.kind for q in questions] == [
        QuestionType.TRUE_FALSE, QuestionType.OPEN, QuestionType.MULTIPLE_CHOICE,
        QuestionType.TRUE_FALSE, QuestionType.OPEN,
    ]
    assert [q.topic for q in questions] == ["Calculus", "Programming", "Calculus", "Programming", "Calculus"]


def test_single_kind_practice_types():
    generator = FallbackQuestionGenerator()

    assert {q.kind for q in generator.generate("CS", PracticeType.TRUE_FALSE, 6)} == {QuestionType.TRUE_FALSE}
    assert {q.kind for q in generator.generate("CS", PracticeType.OPEN_QUESTIONS, 6)} == {QuestionType.OPEN}


def test_question_shapes_match_generated_ones():
    questions = FallbackQuestionGenerator().generate("Discrete Math", PracticeType.MIXED, 3, topics=["Graphs"])
    true_false, open_question, choice = questions

    assert true_false.correct_answer == "True"
    assert true_false.options is None
    assert open_question.correct_answer.startswith("Graphs is an important concept in Discrete Math")
    assert len(choice.options) == 4
    assert choice.correct_answer == choice.options[0]


def test_explicit_topics_override_document_names():
    questions = FallbackQuestionGenerator().generate(
        "CS", PracticeType.TRUE_FALSE, 2, documents=_docs("algorithms.pdf"), topics=["Recursion", " "],
    )
    assert [q.topic for q in questions] == ["Recursion", "Recursion"]


def test_generation_is_deterministic():
    generator = FallbackQuestionGenerator()
    docs = _docs("network basics.pdf")

    assert generator.generate("Networks", PracticeType.MIXED, 9, docs) == generator.generate(
        "Networks", PracticeType.MIXED, 9, docs,
    )
