"""
FastAPI routes for AI practice sessions.
Thin layer over PracticeService; domain errors are rendered by the
PracticeError handler in main.py.
"""

from fastapi import APIRouter, Depends, Query
from typing import Optional
import logging

from models.practice_models import PracticeGenerationRequest, PracticeSubmissionRequest
from services.practice_service import PracticeService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["practice"])

_practice_service: Optional[PracticeService] = None


def get_practice_service() -> PracticeService:
    """Lazily build the env-configured service (Supabase + model settings)"""
    global _practice_service
    if _practice_service is None:
        _practice_service = PracticeService.from_env()
    return _practice_service


@router.post("/courses/{course_id}/practice", status_code=201)
def generate_practice(
    course_id: str,
    request: PracticeGenerationRequest,
    service: PracticeService = Depends(get_practice_service),
):
    """
    Generate a practice session from the course's uploaded files.

    Always succeeds with questions unless the session cannot be stored;
    whether the questions came from the model or the offline generator is
    reported as usedFallback only.
    """
    report = service.generate_practice_session(
        course_id=course_id,
        course_name=request.course_name,
        owner_id=request.user_id,
        practice_type=request.practice_type,
        num_questions=request.num_questions,
    )
    return {
        "success": True,
        "sessionId": report.session.id,
        "questionCount": report.question_count,
        "questions": [q.to_record() for q in report.session.questions],
        "usedFallback": report.used_fallback,
    }


@router.get("/practice/sessions/{session_id}")
def get_practice_session(
    session_id: str,
    service: PracticeService = Depends(get_practice_service),
):
    return service.get_practice_session(session_id).to_record()


@router.post("/practice/sessions/{session_id}/submit", status_code=201)
def submit_practice(
    session_id: str,
    request: PracticeSubmissionRequest,
    service: PracticeService = Depends(get_practice_service),
):
    """Grade answers (positionally matched to the session's questions)"""
    result = service.submit_practice_answers(
        session_id=session_id,
        owner_id=request.user_id,
        answers=request.answers,
    )
    return result.to_record()


@router.get("/courses/{course_id}/practice/history")
def get_practice_history(
    course_id: str,
    user_id: str = Query(...),
    service: PracticeService = Depends(get_practice_service),
):
    results = service.get_practice_history(course_id, user_id)
    return {"results": [r.to_record() for r in results], "count": len(results)}


@router.get("/courses/{course_id}/practice/stats")
def get_practice_stats(
    course_id: str,
    user_id: str = Query(...),
    service: PracticeService = Depends(get_practice_service),
):
    stats = service.get_course_stats(course_id, user_id)
    return stats.model_dump(mode="json", by_alias=True)
