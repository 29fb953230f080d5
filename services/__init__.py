from services.document_extraction import DocumentTextExtractor
from services.corpus_assembly import CorpusAssembler
from services.response_validator import parse_practice_questions
from services.fallback_questions import FallbackQuestionGenerator
from services.result_aggregator import ResultAggregator

__all__ = [
    'DocumentTextExtractor',
    'CorpusAssembler',
    'parse_practice_questions',
    'FallbackQuestionGenerator',
    'ResultAggregator'
]
