"""
Offline practice question synthesis.

Used whenever extraction or generation cannot produce questions. Output has
the same shape as validated model output (ids q1.., a topic on every
question) so storage, grading and stats treat both paths identically.
"""

import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from models.practice_models import (
    CourseDocument, PracticeQuestion, PracticeType, QuestionType,
    PRACTICE_TYPE_QUESTION_KINDS,
)

logger = logging.getLogger(__name__)

# (keywords matched against lowercased file names, topic)
TOPIC_KEYWORDS: List[Tuple[Tuple[str, ...], str]] = [
    (("algorithm", "algo"), "Algorithms"),
    (("data", "structure"), "Data Structures"),
    (("calculus", "math"), "Calculus"),
    (("linear", "algebra"), "Linear Algebra"),
    (("database", "db"), "Databases"),
    (("network",), "Networking"),
    (("programming", "code"), "Programming"),
]

DEFAULT_TOPICS = ["Introduction", "Core Concepts", "Advanced Topics", "Applications"]


def infer_topics(file_names: Iterable[str]) -> List[str]:
    """
    Map file names onto the fixed topic vocabulary.

    Args:
        file_names: Document names in display order

    Returns:
        Matched topics, deduplicated in first-match order, or DEFAULT_TOPICS
        when nothing matches.
    """
    topics: List[str] = []
    for file_name in file_names:
        name = (file_name or "").lower()
        for keywords, topic in TOPIC_KEYWORDS:
            if topic not in topics and any(keyword in name for keyword in keywords):
                topics.append(topic)
    return topics or list(DEFAULT_TOPICS)


def infer_topics_from_documents(documents: Optional[Sequence[CourseDocument]]) -> List[str]:
    return infer_topics(doc.name for doc in (documents or []))


def _true_false_question(question_id: str, course_name: str, topic: str) -> PracticeQuestion:
    return PracticeQuestion(
        id=question_id,
        question=(
            f"Based on the course materials in {course_name}, is the following statement "
            f"true or false: The concept of {topic} is fundamental to understanding {course_name}."
        ),
        type=QuestionType.TRUE_FALSE,
        correct_answer="True",
        explanation=f"This question tests your understanding of {topic} in {course_name}.",
        topic=topic,
    )


def _open_question(question_id: str, course_name: str, topic: str) -> PracticeQuestion:
    return PracticeQuestion(
        id=question_id,
        question=f"Explain the importance of {topic} in {course_name} based on the course materials.",
        type=QuestionType.OPEN,
        correct_answer=(
            f"{topic} is an important concept in {course_name} that helps students understand "
            f"the fundamental principles covered in the course materials."
        ),
        explanation=f"This open-ended question allows you to demonstrate your understanding of {topic}.",
        topic=topic,
    )


def _multiple_choice_question(question_id: str, course_name: str, topic: str) -> PracticeQuestion:
    options = [
        f"Understanding the basic principles of {topic}",
        f"Advanced applications of {topic}",
        f"Historical development of {topic}",
        f"Practical implementation of {topic}",
    ]
    return PracticeQuestion(
        id=question_id,
        question=f"What is the primary focus of {topic} in {course_name}?",
        type=QuestionType.MULTIPLE_CHOICE,
        options=options,
        correct_answer=options[0],
        explanation=(
            f"The correct answer focuses on understanding the basic principles, "
            f"which is fundamental to {course_name}."
        ),
        topic=topic,
    )


QUESTION_TEMPLATES = {
    QuestionType.TRUE_FALSE: _true_false_question,
    QuestionType.OPEN: _open_question,
    QuestionType.MULTIPLE_CHOICE: _multiple_choice_question,
}


class FallbackQuestionGenerator:
    """Deterministic, topic-aware question synthesis with no I/O"""

    def generate(
        self,
        course_name: str,
        practice_type: PracticeType,
        count: int,
        documents: Optional[Sequence[CourseDocument]] = None,
        topics: Optional[List[str]] = None,
    ) -> List[PracticeQuestion]:
        """
        Build exactly `count` questions.

        Question kinds cycle through the practice type's mixture and topics
        cycle through `topics` (or topics inferred from document names),
        both round-robin by position.
        """
        kinds = PRACTICE_TYPE_QUESTION_KINDS[practice_type]
        topics = [t for t in (topics or []) if t and t.strip()] or infer_topics_from_documents(documents)
        course_name = course_name.strip() or "this course"

        questions = []
        for i in range(max(count, 0)):
            kind = kinds[i % len(kinds)]
            topic = topics[i % len(topics)]
            questions.append(QUESTION_TEMPLATES[kind](f"q{i + 1}", course_name, topic))

        logger.info(
            f"Generated {len(questions)} offline {practice_type.value} questions "
            f"for {course_name} across {len(topics)} topic(s)"
        )
        return questions
