"""
Shared fixtures for the practice pipeline tests.

Run with:
    python3 -m pytest tests -v
"""

import json
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
import requests

from models.practice_models import (
    CourseDocument, GenerationFailure, GenerationOutcome, GenerationRequest,
)
from services.corpus_assembly import CorpusAssembler
from services.document_extraction import DocumentTextExtractor
from services.practice_service import PracticeService
from utils.model_config import ExtractionSettings, GenerationSettings
from utils.practice_storage import GenerationLogger, InMemoryDocumentStore, InMemoryPracticeStore


LECTURE_SENTENCES = [
    "Binary search halves the search interval on every comparison",
    "Merge sort splits the input and merges sorted halves in linear time",
    "Dynamic programming stores answers to overlapping subproblems",
    "Greedy algorithms commit to the locally best choice at each step",
]


def build_pdf(lines: List[str]) -> bytes:
    """Minimal uncompressed PDF whose content stream shows `lines`"""
    shown = " ".join(f"({line}) Tj T*" for line in lines)
    content = f"BT /F1 12 Tf 72 712 Td {shown} ET"
    pdf = (
        "%PDF-1.4\n"
        "1 0 obj\n<< /Type /Catalog /Pages 2 0 R >>\nendobj\n"
        f"4 0 obj\n<< /Length {len(content)} >>\nstream\n{content}\nendstream\nendobj\n"
        "trailer\n<< /Root 1 0 R >>\n%%EOF\n"
    )
    return pdf.encode("latin-1")


def http_response(content: bytes, content_type: Optional[str] = None, status_error: Optional[Exception] = None):
    response = MagicMock()
    response.content = content
    response.headers = {"Content-Type": content_type} if content_type else {}
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    else:
        response.raise_for_status.return_value = None
    return response


class FakeHttp:
    """requests.Session stand-in serving canned bodies by URL"""

    def __init__(self, bodies: Optional[Dict[str, bytes]] = None):
        self.bodies = dict(bodies or {})
        self.requested: List[str] = []

    def get(self, url, timeout=None):
        self.requested.append(url)
        if url not in self.bodies:
            raise requests.ConnectionError(f"no route to {url}")
        return http_response(self.bodies[url])


class FakeGenerationClient:
    """Records requests and replays a fixed outcome"""

    def __init__(self, outcome: GenerationOutcome):
        self.outcome = outcome
        self.requests: List[GenerationRequest] = []

    def generate(self, request: GenerationRequest) -> GenerationOutcome:
        self.requests.append(request)
        return self.outcome


def question_payload(count: int = 3) -> str:
    items = []
    for i in range(count):
        items.append({
            "question": f"Does binary search need sorted input? ({i + 1})",
            "type": "true-false",
            "correctAnswer": "True",
            "explanation": "Binary search relies on ordering.",
            "topic": "Searching",
        })
    return json.dumps(items)


@pytest.fixture
def lecture_pdf() -> bytes:
    return build_pdf(LECTURE_SENTENCES)


@pytest.fixture
def pdf_document() -> CourseDocument:
    return CourseDocument(
        id="doc-1",
        name="algorithms_lecture.pdf",
        mime_type="application/pdf",
        url="https://files.example.com/course-1/algorithms_lecture.pdf",
    )


@pytest.fixture
def practice_store() -> InMemoryPracticeStore:
    return InMemoryPracticeStore()


@pytest.fixture
def make_service(practice_store):
    """Build a PracticeService over in-memory stores and a fake HTTP layer"""

    def _make(
        documents: Optional[List[CourseDocument]] = None,
        bodies: Optional[Dict[str, bytes]] = None,
        client=None,
        store=None,
        generation_logger: Optional[GenerationLogger] = None,
    ) -> PracticeService:
        document_store = InMemoryDocumentStore({"course-1": documents or []})
        settings = ExtractionSettings(max_workers=2)
        extractor = DocumentTextExtractor(settings=settings, session=FakeHttp(bodies))
        return PracticeService(
            document_store=document_store,
            practice_store=store or practice_store,
            settings=GenerationSettings(api_key=None),
            assembler=CorpusAssembler(extractor=extractor, settings=settings),
            client=client,
            generation_logger=generation_logger,
        )

    return _make


@pytest.fixture
def quota_client() -> FakeGenerationClient:
    return FakeGenerationClient(
        GenerationOutcome.failed(GenerationFailure.QUOTA_EXCEEDED, "You exceeded your current quota")
    )
