"""
Text extraction for uploaded course documents.

Plain-text files are downloaded and returned verbatim (first 10,000 chars),
PDFs go through the literal-string heuristic in pdf_utils, everything else
(Word, images, archives, ...) is reported as not extracted. Failures never
raise: one bad document must not abort a whole course corpus.
"""

import logging
import re
from typing import Optional
from urllib.parse import urlparse

import requests

from models.practice_models import CourseDocument, ExtractedContent
from pdf_utils.pdf_literal_extraction import extract_pdf_literals, MIN_SUBSTANTIAL_CHARS
from utils.model_config import ExtractionSettings

logger = logging.getLogger(__name__)

TEXT_MAX_CHARS = 10000
PDF_MAX_CHARS = 50000

TEXT_SUFFIXES = (".txt", ".md", ".markdown")
PDF_SUFFIXES = (".pdf",)

KIND_TEXT = "text"
KIND_PDF = "pdf"
KIND_UNSUPPORTED = "unsupported"

CHARSET_PATTERN = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.IGNORECASE)


def _path_of(url: Optional[str]) -> str:
    if not url:
        return ""
    return urlparse(url).path.lower()


def declared_charset(response: requests.Response) -> Optional[str]:
    """Charset named in the Content-Type header, if the server sent one"""
    content_type = response.headers.get("Content-Type") or ""
    match = CHARSET_PATTERN.search(content_type)
    return match.group(1) if match else None


def detect_document_kind(document: CourseDocument) -> str:
    """Classify a document as text, pdf or unsupported from MIME type / suffix"""
    mime = (document.mime_type or "").lower()
    path = _path_of(document.url)
    name = (document.name or "").lower()

    if "pdf" in mime or path.endswith(PDF_SUFFIXES) or (not mime and name.endswith(PDF_SUFFIXES)):
        return KIND_PDF
    if mime.startswith("text/") or path.endswith(TEXT_SUFFIXES) or (not mime and name.endswith(TEXT_SUFFIXES)):
        return KIND_TEXT
    return KIND_UNSUPPORTED


def is_pdf_document(document: CourseDocument) -> bool:
    return detect_document_kind(document) == KIND_PDF


def not_extracted(document: CourseDocument) -> ExtractedContent:
    return ExtractedContent(document_id=document.id, text="", char_count=0, extracted=False)


def build_extracted_content(document: CourseDocument, text: str) -> ExtractedContent:
    """Apply the minimum-substance threshold; short text is never usable content"""
    if len(text.strip()) < MIN_SUBSTANTIAL_CHARS:
        return not_extracted(document)
    return ExtractedContent(
        document_id=document.id,
        text=text,
        char_count=len(text),
        extracted=True,
    )


class DocumentTextExtractor:
    """Download one document and produce best-effort plain text"""

    def __init__(
        self,
        settings: Optional[ExtractionSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.http = session or requests.Session()

    def extract(self, document: CourseDocument) -> ExtractedContent:
        """
        Extract text from a single course document.

        Args:
            document: Document with a fetchable URL and optional MIME type

        Returns:
            ExtractedContent; extracted=False on unsupported type, network
            or decode failure, or insufficient text.
        """
        if not document.url:
            logger.warning(f"Skipping {document.name} - no URL")
            return not_extracted(document)

        kind = detect_document_kind(document)
        if kind == KIND_UNSUPPORTED:
            logger.info(f"Skipping {document.name} - unsupported type ({document.mime_type or 'unknown'})")
            return not_extracted(document)

        try:
            if kind == KIND_PDF:
                return self._extract_pdf(document)
            return self._extract_text(document)
        except requests.RequestException as e:
            logger.warning(f"Download failed for {document.name}: {e}")
            return not_extracted(document)
        except Exception as e:
            logger.error(f"Error extracting text from {document.name}: {e}")
            return not_extracted(document)

    def _fetch(self, url: str) -> requests.Response:
        response = self.http.get(url, timeout=self.settings.fetch_timeout_seconds)
        response.raise_for_status()
        return response

    def _extract_text(self, document: CourseDocument) -> ExtractedContent:
        response = self._fetch(document.url)
        try:
            text = response.content.decode(declared_charset(response) or "utf-8")
        except (UnicodeDecodeError, LookupError) as e:
            logger.warning(f"Could not decode {document.name}: {e}")
            return not_extracted(document)

        content = build_extracted_content(document, text[:TEXT_MAX_CHARS])
        if content.extracted:
            logger.info(f"Extracted {content.char_count} characters from {document.name}")
        else:
            logger.info(f"Insufficient text in {document.name}")
        return content

    def _extract_pdf(self, document: CourseDocument) -> ExtractedContent:
        response = self._fetch(document.url)
        data = response.content
        logger.info(f"Downloaded PDF {document.name}: {len(data)} bytes")

        result = extract_pdf_literals(data)
        if not result["substantial"]:
            logger.info(
                f"Could not extract substantial text from {document.name} "
                f"(got {result['char_count']} chars); PDF may be scanned, compressed or encrypted"
            )
            return not_extracted(document)

        content = build_extracted_content(document, result["text"][:PDF_MAX_CHARS])
        logger.info(f"Extracted {content.char_count} characters from PDF {document.name}")
        return content
