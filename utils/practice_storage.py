"""
Storage for course documents, practice sessions and results.
Supabase-backed stores for production, dictionary-backed stores for tests
and local runs. Local JSON is used for generation logs.
"""

import json
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from clients.supabase_client import (
    get_course_file,
    list_course_files,
    insert_practice_session,
    get_practice_session,
    mark_practice_session_completed,
    insert_practice_result,
    get_practice_result_by_session,
    list_practice_results,
)
from models.practice_models import (
    CourseDocument, PracticeResult, PracticeSession, SessionStatus, utc_now,
)
from utils.exceptions import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

# Postgres error code for the unique constraint on practice_results.session_id
UNIQUE_VIOLATION = "23505"


def generate_uuid() -> str:
    """Generate unique ID for sessions/results"""
    return str(uuid.uuid4())


def _newest_first(results: List[PracticeResult]) -> List[PracticeResult]:
    return sorted(results, key=lambda r: r.completed_at.timestamp(), reverse=True)


def result_already_saved(session_id: str) -> ValidationError:
    return ValidationError(
        "Practice session already completed",
        error_code="SESSION_ALREADY_COMPLETED",
        context={"session_id": session_id},
    )


# Store interfaces
class DocumentStore(ABC):
    """Read access to a course's uploaded files"""

    @abstractmethod
    def get(self, document_id: str) -> Optional[CourseDocument]:
        pass

    @abstractmethod
    def list_by_course(self, course_id: str) -> List[CourseDocument]:
        pass


class PracticeStore(ABC):
    """Persistence for practice sessions and results"""

    @abstractmethod
    def create_session(self, session: PracticeSession) -> str:
        pass

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[PracticeSession]:
        pass

    @abstractmethod
    def mark_completed(self, session_id: str) -> None:
        pass

    @abstractmethod
    def save_result(self, result: PracticeResult) -> str:
        """Save the one result of a session; a second one raises SESSION_ALREADY_COMPLETED"""
        pass

    @abstractmethod
    def list_results(self, course_id: str, user_id: str) -> List[PracticeResult]:
        """All results of a user for a course, newest first"""
        pass


# In-memory stores
class InMemoryDocumentStore(DocumentStore):

    def __init__(self, documents: Optional[Dict[str, List[CourseDocument]]] = None):
        self._by_course: Dict[str, List[CourseDocument]] = {
            course_id: list(docs) for course_id, docs in (documents or {}).items()
        }

    def get(self, document_id: str) -> Optional[CourseDocument]:
        for docs in self._by_course.values():
            for doc in docs:
                if doc.id == document_id:
                    return doc
        return None

    def list_by_course(self, course_id: str) -> List[CourseDocument]:
        return list(self._by_course.get(course_id, []))


class InMemoryPracticeStore(PracticeStore):

    def __init__(self):
        self._sessions: Dict[str, PracticeSession] = {}
        self._results: Dict[str, PracticeResult] = {}
        self._lock = threading.Lock()

    def create_session(self, session: PracticeSession) -> str:
        session_id = generate_uuid()
        with self._lock:
            self._sessions[session_id] = session.model_copy(update={"id": session_id})
        return session_id

    def get_session(self, session_id: str) -> Optional[PracticeSession]:
        return self._sessions.get(session_id)

    def mark_completed(self, session_id: str) -> None:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError(f"Practice session {session_id} not found")
            self._sessions[session_id] = session.model_copy(
                update={"status": SessionStatus.COMPLETED, "completed_at": utc_now()}
            )

    def save_result(self, result: PracticeResult) -> str:
        result_id = generate_uuid()
        with self._lock:
            if any(r.session_id == result.session_id for r in self._results.values()):
                raise result_already_saved(result.session_id)
            self._results[result_id] = result.model_copy(update={"id": result_id})
        return result_id

    def list_results(self, course_id: str, user_id: str) -> List[PracticeResult]:
        matching = [
            r for r in self._results.values()
            if r.course_id == course_id and r.owner_id == user_id
        ]
        return _newest_first(matching)


# Supabase stores
def _document_from_row(row: Dict[str, Any]) -> Optional[CourseDocument]:
    if not row.get("url") or not row.get("name"):
        logger.warning(f"Skipping course file {row.get('id')} - missing url or name")
        return None
    return CourseDocument(
        id=str(row["id"]),
        name=row["name"],
        mime_type=row.get("mime_type") or None,
        size_bytes=row.get("size_bytes"),
        url=row["url"],
    )


def session_to_row(session: PracticeSession) -> Dict[str, Any]:
    return {
        "course_id": session.course_id,
        "course_name": session.course_name,
        "practice_type": session.practice_type.value,
        "question_count": session.question_count,
        "questions": [q.to_record() for q in session.questions],
        "user_id": session.owner_id,
        "status": session.status.value,
        "source": session.source.value,
        "created_at": session.created_at.isoformat(),
    }


def session_from_row(row: Dict[str, Any]) -> PracticeSession:
    return PracticeSession(
        id=str(row["id"]),
        course_id=str(row["course_id"]),
        course_name=row.get("course_name") or "Course",
        practice_type=row["practice_type"],
        question_count=row.get("question_count") or len(row.get("questions") or []),
        questions=row.get("questions") or [],
        owner_id=str(row["user_id"]),
        status=row.get("status") or SessionStatus.IN_PROGRESS,
        source=row.get("source") or "generated",
        created_at=row.get("created_at") or utc_now(),
        completed_at=row.get("completed_at"),
    )


def result_to_row(result: PracticeResult) -> Dict[str, Any]:
    return {
        "session_id": result.session_id,
        "course_id": result.course_id,
        "course_name": result.course_name,
        "user_id": result.owner_id,
        "score_percent": result.score_percent,
        "total_questions": result.total_questions,
        "correct_count": result.correct_count,
        "incorrect_count": result.incorrect_count,
        "answers": [a.to_record() for a in result.answers],
        "weak_topics": result.weak_topics,
        "completed_at": result.completed_at.isoformat(),
    }


def result_from_row(row: Dict[str, Any]) -> PracticeResult:
    return PracticeResult(
        id=str(row["id"]),
        session_id=str(row["session_id"]),
        course_id=str(row["course_id"]),
        course_name=row.get("course_name") or "Course",
        owner_id=str(row["user_id"]),
        score_percent=row.get("score_percent") or 0,
        total_questions=row.get("total_questions") or 0,
        correct_count=row.get("correct_count") or 0,
        incorrect_count=row.get("incorrect_count") or 0,
        answers=row.get("answers") or [],
        weak_topics=row.get("weak_topics") or [],
        completed_at=row.get("completed_at") or utc_now(),
    )


class SupabaseDocumentStore(DocumentStore):
    """Course files from the course_files table"""

    def get(self, document_id: str) -> Optional[CourseDocument]:
        try:
            row = get_course_file(document_id)
        except Exception as e:
            logger.error(f"Error getting course file {document_id}: {e}")
            raise StorageError(f"Failed to load course file {document_id}", context={"document_id": document_id}) from e
        if not row:
            return None
        try:
            return _document_from_row(row)
        except (PydanticValidationError, KeyError) as e:
            raise StorageError("Stored course file is malformed", context={"document_id": document_id}) from e

    def list_by_course(self, course_id: str) -> List[CourseDocument]:
        try:
            rows = list_course_files(course_id)
        except Exception as e:
            logger.error(f"Error listing files for course {course_id}: {e}")
            raise StorageError(f"Failed to list course files for {course_id}", context={"course_id": course_id}) from e

        documents = []
        for row in rows:
            try:
                document = _document_from_row(row)
            except (PydanticValidationError, KeyError) as e:
                logger.warning(f"Skipping invalid course file row {row.get('id')}: {e}")
                continue
            if document is not None:
                documents.append(document)
        return documents


class SupabasePracticeStore(PracticeStore):
    """Sessions and results in the practice_sessions / practice_results tables"""

    def create_session(self, session: PracticeSession) -> str:
        try:
            session_id = insert_practice_session(session_to_row(session))
        except Exception as e:
            logger.error(f"Error saving practice session for course {session.course_id}: {e}")
            raise StorageError("Failed to save practice session", context={"course_id": session.course_id}) from e
        logger.info(f"Practice session saved with ID: {session_id}")
        return session_id

    def get_session(self, session_id: str) -> Optional[PracticeSession]:
        try:
            row = get_practice_session(session_id)
        except Exception as e:
            logger.error(f"Error getting practice session {session_id}: {e}")
            raise StorageError("Failed to load practice session", context={"session_id": session_id}) from e
        if row is None:
            return None
        try:
            return session_from_row(row)
        except (PydanticValidationError, KeyError) as e:
            raise StorageError("Stored practice session is malformed", context={"session_id": session_id}) from e

    def mark_completed(self, session_id: str) -> None:
        try:
            mark_practice_session_completed(session_id)
        except Exception as e:
            logger.error(f"Error completing practice session {session_id}: {e}")
            raise StorageError("Failed to update practice session", context={"session_id": session_id}) from e

    def save_result(self, result: PracticeResult) -> str:
        try:
            if get_practice_result_by_session(result.session_id):
                raise result_already_saved(result.session_id)
            result_id = insert_practice_result(result_to_row(result))
        except ValidationError:
            raise
        except Exception as e:
            if getattr(e, "code", None) == UNIQUE_VIOLATION:
                raise result_already_saved(result.session_id) from e
            logger.error(f"Error saving practice result for session {result.session_id}: {e}")
            raise StorageError("Failed to save practice result", context={"session_id": result.session_id}) from e
        logger.info(f"Practice results saved with ID: {result_id}")
        return result_id

    def list_results(self, course_id: str, user_id: str) -> List[PracticeResult]:
        try:
            rows = list_practice_results(course_id, user_id)
        except Exception as e:
            logger.error(f"Error getting practice results for course {course_id}: {e}")
            raise StorageError("Failed to load practice results", context={"course_id": course_id}) from e

        results = []
        for row in rows:
            try:
                results.append(result_from_row(row))
            except (PydanticValidationError, KeyError) as e:
                logger.warning(f"Skipping malformed practice result {row.get('id')}: {e}")
        return _newest_first(results)


# Generation log
def read_json_file(filepath: Path) -> Optional[Dict[str, Any]]:
    """Read JSON file, return None if not found or invalid"""
    try:
        if not filepath.exists():
            return None
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {filepath}: {e}")
        return None
    except Exception as e:
        logger.error(f"Error reading {filepath}: {e}")
        return None


def write_json_file(filepath: Path, data: Dict[str, Any]) -> bool:
    """Write data to JSON file atomically"""
    try:
        filepath.parent.mkdir(parents=True, exist_ok=True)
        temp_file = filepath.with_suffix('.tmp')
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, default=str)
        temp_file.replace(filepath)
        return True
    except Exception as e:
        logger.error(f"Error writing {filepath}: {e}")
        return False


class GenerationLogger:
    """Log practice generation attempts for debugging"""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else None
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.path is not None

    def log_generation(self, log_entry: Dict[str, Any]) -> bool:
        """Append one attempt record; returns False (never raises) on failure"""
        if self.path is None:
            return False
        entry = dict(log_entry)
        entry["timestamp"] = utc_now().isoformat()
        with self._lock:
            data = read_json_file(self.path) or {"items": []}
            if not isinstance(data.get("items"), list):
                data["items"] = []
            data["items"].append(entry)
            return write_json_file(self.path, data)
