"""
End-to-end pipeline tests over in-memory stores.
Document downloads and the generation service are faked.
"""

import json
from datetime import timedelta

import pytest

from conftest import FakeGenerationClient, LECTURE_SENTENCES, question_payload
from clients.openai_client import GenerationClient
from models.practice_models import (
    CourseDocument, GenerationFailure, GenerationOutcome, PracticeType, PromptTier,
    QuestionSource, QuestionType, SessionStatus,
)
from utils.exceptions import NotFoundError, StorageError, ValidationError
from utils.model_config import GenerationSettings
from utils.practice_storage import GenerationLogger, InMemoryPracticeStore


class FailingSessionStore(InMemoryPracticeStore):
    def create_session(self, session):
        raise StorageError("Failed to save practice session")


class FailingCompletionStore(InMemoryPracticeStore):
    def mark_completed(self, session_id):
        raise StorageError("Failed to update practice session")


def _generate(service, practice_type=PracticeType.MIXED, num_questions=5):
    return service.generate_practice_session(
        course_id="course-1",
        course_name="Algorithms I",
        owner_id="user-1",
        practice_type=practice_type,
        num_questions=num_questions,
    )


# ── Generation ────────────────────────────────────────────────────────────────

def test_quota_failure_on_content_tier_falls_back(make_service, pdf_document, lecture_pdf, quota_client, practice_store):
    service = make_service(documents=[pdf_document], bodies={pdf_document.url: lecture_pdf}, client=quota_client)

    report = _generate(service, PracticeType.MIXED, 5)

    assert report.tier == PromptTier.CONTENT
    assert report.used_fallback
    assert report.failure == GenerationFailure.QUOTA_EXCEEDED
    assert report.question_count == 5
    assert {q.topic for q in report.session.questions} == {"Algorithms"}

    stored = practice_store.get_session(report.session.id)
    assert stored.status == SessionStatus.IN_PROGRESS
    assert stored.source == QuestionSource.FALLBACK
    assert stored.question_count == 5

    prompt = quota_client.requests[0].messages[1].content
    assert "--- Content from algorithms_lecture.pdf ---" in prompt
    assert LECTURE_SENTENCES[0] in prompt


def test_no_documents_and_no_key_uses_name_only_tier(make_service, practice_store):
    client = GenerationClient(GenerationSettings(api_key=None))
    service = make_service(documents=[], client=client)

    report = _generate(service, PracticeType.TRUE_FALSE, 10)

    assert report.tier == PromptTier.NAME_ONLY
    assert report.failure == GenerationFailure.NO_API_KEY
    assert report.question_count == 10
    assert {q.kind for q in report.session.questions} == {QuestionType.TRUE_FALSE}
    assert practice_store.get_session(report.session.id) is not None


def test_unreadable_pdf_uses_metadata_tier(make_service, pdf_document, quota_client):
    service = make_service(documents=[pdf_document], bodies={pdf_document.url: b"%PDF-1.7 binary"}, client=quota_client)

    report = _generate(service)

    assert report.tier == PromptTier.METADATA
    assert pdf_document.url in quota_client.requests[0].messages[1].content


def test_generated_questions_are_stored(make_service, practice_store):
    client = FakeGenerationClient(GenerationOutcome.success("```json\n" + question_payload(4) + "\n```"))
    service = make_service(client=client)

    report = _generate(service, PracticeType.TRUE_FALSE, 4)

    assert not report.used_fallback
    assert report.failure is None
    assert [q.id for q in report.session.questions] == ["q1", "q2", "q3", "q4"]
    assert practice_store.get_session(report.session.id).source == QuestionSource.GENERATED


def test_extra_generated_questions_are_trimmed(make_service):
    client = FakeGenerationClient(GenerationOutcome.success(question_payload(8)))

    report = _generate(make_service(client=client), PracticeType.TRUE_FALSE, 5)

    assert report.question_count == 5


@pytest.mark.parametrize("raw,failure", [
    ('[{"question": "Trees are graphs", "type": "true-false", "correctAnswer": ', GenerationFailure.RESPONSE_NOT_JSON),
    ('[{"question": "no answer", "type": "open"}]', GenerationFailure.RESPONSE_EMPTY),
    ("[" * 100000, GenerationFailure.RESPONSE_NOT_JSON),
])
def test_bad_responses_fall_back(make_service, raw, failure):
    client = FakeGenerationClient(GenerationOutcome.success(raw))

    report = _generate(make_service(client=client), PracticeType.MIXED, 6)

    assert report.used_fallback
    assert report.failure == failure
    assert report.question_count == 6


def test_session_storage_failure_propagates(make_service, quota_client):
    service = make_service(client=quota_client, store=FailingSessionStore())

    with pytest.raises(StorageError):
        _generate(service)


@pytest.mark.parametrize("num_questions", [0, 51])
def test_question_count_bounds(make_service, quota_client, num_questions):
    with pytest.raises(ValidationError):
        _generate(make_service(client=quota_client), num_questions=num_questions)


def test_generation_attempts_are_logged(make_service, quota_client, tmp_path):
    log_path = tmp_path / "generation_logs.json"
    service = make_service(client=quota_client, generation_logger=GenerationLogger(log_path))

    _generate(service)

    items = json.loads(log_path.read_text())["items"]
    assert len(items) == 1
    assert items[0]["status"] == "success"
    assert items[0]["failure"] == "quota-exceeded"
    assert items[0]["tier"] == "name-only"
    assert "timestamp" in items[0]


# ── Submission ────────────────────────────────────────────────────────────────

def _correct_answers(session):
    return [q.correct_answer for q in session.questions]


def test_submit_saves_result_and_completes_session(make_service, quota_client, practice_store):
    service = make_service(client=quota_client)
    session = _generate(service, PracticeType.TRUE_FALSE, 3).session

    result = service.submit_practice_answers(session.id, "user-1", _correct_answers(session))

    assert result.id is not None
    assert result.score_percent == 100
    assert result.weak_topics == []
    assert practice_store.get_session(session.id).status == SessionStatus.COMPLETED
    assert practice_store.get_session(session.id).completed_at is not None


def test_resubmission_is_rejected(make_service, quota_client):
    service = make_service(client=quota_client)
    session = _generate(service).session
    service.submit_practice_answers(session.id, "user-1", _correct_answers(session))

    with pytest.raises(ValidationError) as exc_info:
        service.submit_practice_answers(session.id, "user-1", _correct_answers(session))
    assert exc_info.value.error_code == "SESSION_ALREADY_COMPLETED"


def test_submission_by_other_user_is_rejected(make_service, quota_client):
    service = make_service(client=quota_client)
    session = _generate(service).session

    with pytest.raises(ValidationError) as exc_info:
        service.submit_practice_answers(session.id, "intruder", _correct_answers(session))
    assert exc_info.value.error_code == "SESSION_OWNER_MISMATCH"


def test_unknown_session(make_service):
    with pytest.raises(NotFoundError):
        make_service().submit_practice_answers("missing", "user-1", [])


def test_completion_failure_keeps_saved_result(make_service, quota_client):
    store = FailingCompletionStore()
    service = make_service(client=quota_client, store=store)
    session = _generate(service).session

    result = service.submit_practice_answers(session.id, "user-1", [""] * len(session.questions))

    assert store.list_results("course-1", "user-1")[0].id == result.id


def test_repeat_submission_after_completion_failure_is_rejected(make_service, quota_client):
    store = FailingCompletionStore()
    service = make_service(client=quota_client, store=store)
    session = _generate(service).session
    service.submit_practice_answers(session.id, "user-1", [""] * len(session.questions))

    with pytest.raises(ValidationError) as exc_info:
        service.submit_practice_answers(session.id, "user-1", _correct_answers(session))

    assert exc_info.value.error_code == "SESSION_ALREADY_COMPLETED"
    assert len(store.list_results("course-1", "user-1")) == 1
    assert service.get_course_stats("course-1", "user-1").total_sessions == 1


# ── History and stats ─────────────────────────────────────────────────────────

def test_stats_rank_repeated_weak_topics_first(make_service, quota_client, practice_store):
    documents = [CourseDocument(id="d1", name="algorithms.pdf", url="https://f.example.com/a.pdf"),
                 CourseDocument(id="d2", name="trees and data structures.pdf", url="https://f.example.com/b.pdf")]
    service = make_service(documents=documents, client=quota_client)

    first = _generate(service, PracticeType.TRUE_FALSE, 2).session
    service.submit_practice_answers(first.id, "user-1", ["False", "False"])
    second = _generate(service, PracticeType.TRUE_FALSE, 2).session
    service.submit_practice_answers(second.id, "user-1", ["False", "True"])

    stats = service.get_course_stats("course-1", "user-1")
    history = service.get_practice_history("course-1", "user-1")

    assert stats.total_sessions == 2
    assert stats.top_weak_topics[0] == "Algorithms"
    assert stats.average_score_percent == 25
    assert len(history) == 2
    assert history[0].completed_at >= history[1].completed_at
    assert history[0].completed_at - history[1].completed_at < timedelta(minutes=1)
