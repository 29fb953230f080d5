import os
from typing import Dict, Any, List, Optional
from dotenv import load_dotenv
from supabase import create_client, Client
from datetime import datetime, timezone
import logging

load_dotenv()

COURSE_FILES_TABLE = "course_files"
PRACTICE_SESSIONS_TABLE = "practice_sessions"
PRACTICE_RESULTS_TABLE = "practice_results"

_supabase_client: Optional[Client] = None

def get_supabase() -> Client:
    global _supabase_client
    if _supabase_client is None:
        url = os.getenv("SUPABASE_URL")
        key = os.getenv("SUPABASE_KEY")
        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_KEY must be set")
        _supabase_client = create_client(url, key)
    return _supabase_client


# ============================================================================
# Course files
# ============================================================================

def get_course_file(file_id: str) -> Optional[Dict[str, Any]]:
    """Get a single course file row by id, or None."""
    response = get_supabase().table(COURSE_FILES_TABLE) \
        .select("*").eq("id", file_id).limit(1).execute()
    return response.data[0] if response.data else None


def list_course_files(course_id: str) -> List[Dict[str, Any]]:
    """Get all file rows of a course, in upload order."""
    response = get_supabase().table(COURSE_FILES_TABLE) \
        .select("id, course_id, name, url, mime_type, size_bytes, created_at") \
        .eq("course_id", course_id) \
        .order("created_at").execute()
    return response.data or []


# ============================================================================
# Practice sessions
# ============================================================================

def insert_practice_session(data: Dict[str, Any]) -> str:
    """
    Insert a practice session row and return its id.
    Args:
        data: Row fields (course_id, user_id, questions, status, ...)
    Returns:
        The id of the inserted row as a string.
    Raises:
        Exception if insertion fails or id is not returned.
    """
    response = get_supabase().table(PRACTICE_SESSIONS_TABLE).insert(data).execute()
    if not response.data or "id" not in response.data[0]:
        raise Exception(f"Supabase insert failed or id not returned: {response}")
    return str(response.data[0]["id"])


def get_practice_session(session_id: str) -> Optional[Dict[str, Any]]:
    response = get_supabase().table(PRACTICE_SESSIONS_TABLE) \
        .select("*").eq("id", session_id).limit(1).execute()
    return response.data[0] if response.data else None


def mark_practice_session_completed(session_id: str) -> None:
    """Set status=completed and stamp completed_at."""
    response = get_supabase().table(PRACTICE_SESSIONS_TABLE).update({
        "status": "completed",
        "completed_at": datetime.now(timezone.utc).isoformat(),
    }).eq("id", session_id).execute()
    if not response.data:
        raise Exception(f"Failed to mark practice session {session_id} completed: {response}")
    logging.info(f"Marked practice session {session_id} as completed")


# ============================================================================
# Practice results
# ============================================================================

def insert_practice_result(data: Dict[str, Any]) -> str:
    """Insert a practice result row and return its id."""
    response = get_supabase().table(PRACTICE_RESULTS_TABLE).insert(data).execute()
    if not response.data or "id" not in response.data[0]:
        raise Exception(f"Supabase insert failed or id not returned: {response}")
    return str(response.data[0]["id"])


def list_practice_results(course_id: str, user_id: str) -> List[Dict[str, Any]]:
    """Get all results of a user for a course, newest first."""
    response = get_supabase().table(PRACTICE_RESULTS_TABLE) \
        .select("*").eq("course_id", course_id).eq("user_id", user_id) \
        .order("completed_at", desc=True).execute()
    return response.data or []


def get_practice_result_by_session(session_id: str) -> Optional[Dict[str, Any]]:
    """Get the result row saved for a session, or None."""
    response = get_supabase().table(PRACTICE_RESULTS_TABLE) \
        .select("id").eq("session_id", session_id).limit(1).execute()
    return response.data[0] if response.data else None
