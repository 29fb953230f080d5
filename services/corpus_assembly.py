"""
Course corpus assembly.
Extracts every course document (bounded thread pool, failures isolated) and
concatenates the successful ones in original document order, each block
prefixed with its source name.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from models.practice_models import CourseDocument, CorpusReport, ExtractedContent
from services.document_extraction import DocumentTextExtractor, not_extracted
from utils.model_config import ExtractionSettings

logger = logging.getLogger(__name__)

CORPUS_MAX_CHARS = 50000

# Corpus must be longer than this to ground questions in content
SUBSTANTIAL_CORPUS_CHARS = 100


def provenance_block(document: CourseDocument, text: str) -> str:
    return f"\n\n--- Content from {document.name} ---\n{text}"


class CorpusAssembler:
    """Build one bounded corpus from all of a course's documents"""

    def __init__(
        self,
        extractor: Optional[DocumentTextExtractor] = None,
        settings: Optional[ExtractionSettings] = None,
    ):
        self.settings = settings or ExtractionSettings()
        self.extractor = extractor or DocumentTextExtractor(settings=self.settings)

    def _extract_one(self, document: CourseDocument) -> ExtractedContent:
        try:
            return self.extractor.extract(document)
        except Exception as e:
            # extractor is not expected to raise
            logger.error(f"Extraction task failed for {document.name}: {e}")
            return not_extracted(document)

    def extract_all(self, documents: List[CourseDocument]) -> List[ExtractedContent]:
        """Extract concurrently; results come back in input order"""
        if not documents:
            return []
        workers = min(self.settings.max_workers, len(documents))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(self._extract_one, doc) for doc in documents]
            return [future.result() for future in futures]

    def assemble(self, documents: List[CourseDocument]) -> CorpusReport:
        """
        Extract and concatenate course text.

        Args:
            documents: All documents of one course, in display order

        Returns:
            CorpusReport with the (head-truncated) corpus text, the
            substantiality flag and the per-document tally.
        """
        logger.info(f"Extracting text from {len(documents)} file(s)...")
        contents = self.extract_all(documents)

        blocks = []
        for document, content in zip(documents, contents):
            if content.extracted:
                blocks.append(provenance_block(document, content.text))
            else:
                logger.info(f"No usable text from {document.name}")

        text = "\n".join(blocks)[:CORPUS_MAX_CHARS]
        extracted_count = sum(1 for c in contents if c.extracted)
        substantial = len(text.strip()) > SUBSTANTIAL_CORPUS_CHARS

        logger.info(
            f"Total extracted: {len(text)} characters from {extracted_count} "
            f"of {len(documents)} file(s)"
        )

        return CorpusReport(
            text=text,
            substantial=substantial,
            documents_total=len(documents),
            documents_extracted=extracted_count,
            documents_failed=len(documents) - extracted_count,
            contents=contents,
        )
