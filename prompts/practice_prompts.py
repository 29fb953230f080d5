"""
Prompt templates for practice question generation.

Three tiers, chosen by how much real course content is available:
- content:   extracted corpus is substantial, questions must be grounded in it
- metadata:  extraction failed but PDFs exist, infer from names/URLs
- name-only: nothing usable, infer from course and file names
"""

from typing import Dict, List, Optional

from models.practice_models import (
    CorpusReport, CourseDocument, GenerationMessage, GenerationRequest,
    PracticeType, PromptTier, QuestionType, PRACTICE_TYPE_QUESTION_KINDS,
)
from services.document_extraction import is_pdf_document
from utils.model_config import GenerationSettings

SYSTEM_PROMPT = (
    "You are an educational AI assistant that generates high-quality practice "
    "questions for students based on course materials."
)

QUESTION_KIND_LABELS = {
    QuestionType.TRUE_FALSE: "True/False questions",
    QuestionType.OPEN: "Open-ended questions",
    QuestionType.MULTIPLE_CHOICE: "Multiple-choice questions",
}

PRACTICE_TYPE_DESCRIPTIONS = {
    PracticeType.TRUE_FALSE: "true/false questions",
    PracticeType.OPEN_QUESTIONS: "open-ended questions",
    PracticeType.MIXED: "a mix of true/false, multiple choice, and open-ended questions",
}

OUTPUT_SCHEMA_INSTRUCTIONS = """For each question, provide:
- A clear, well-formulated question
- The correct answer
- For multiple-choice: exactly 4 options with only one correct answer; "correctAnswer" must repeat the text of the correct option
- For true/false: the correct answer, either "True" or "False"
- For open-ended: a sample correct answer covering the key points
- A brief explanation (optional)
- The topic/subject area the question covers

OUTPUT FORMAT (JSON array - no markdown formatting):
[
  {
    "question": "Question text here",
    "type": "true-false" | "multiple-choice" | "open",
    "options": ["Option A", "Option B", "Option C", "Option D"],
    "correctAnswer": "Correct answer here",
    "explanation": "Brief explanation",
    "topic": "Topic name"
  }
]

Only include "options" for multiple-choice questions.
Important: Return ONLY the JSON array, no markdown code blocks or additional text."""


def get_question_counts(practice_type: PracticeType, num_questions: int) -> Dict[QuestionType, int]:
    """
    Split the requested count across question kinds, round-robin.
    Args:
        practice_type: Requested practice type
        num_questions: Total number of questions to generate
    Returns:
        Ordered mapping of question kind -> count (sums to num_questions)
    """
    kinds = PRACTICE_TYPE_QUESTION_KINDS[practice_type]
    counts = {kind: 0 for kind in kinds}
    for i in range(num_questions):
        counts[kinds[i % len(kinds)]] += 1
    return counts


def get_question_distribution_text(counts: Dict[QuestionType, int]) -> str:
    lines = []
    for kind, count in counts.items():
        if count > 0:
            lines.append(f"- {QUESTION_KIND_LABELS[kind]}: {count}")
    return "\n".join(lines)


def describe_document_type(document: CourseDocument) -> str:
    """Human label for a document, from MIME type then file name"""
    mime = (document.mime_type or "").lower()
    name = document.name.lower()
    if "pdf" in mime:
        return "PDF document"
    if "image" in mime:
        return "Image"
    if "word" in mime or "document" in mime:
        return "Word document"
    if name.endswith(".pdf"):
        return "PDF document"
    if name.endswith((".doc", ".docx")):
        return "Word document"
    return "Course material"


def select_prompt_tier(corpus: Optional[CorpusReport], documents: List[CourseDocument]) -> PromptTier:
    """Content beats metadata beats name-only; branch on substance, not file count"""
    if corpus is not None and corpus.substantial:
        return PromptTier.CONTENT
    if any(is_pdf_document(doc) and doc.url for doc in documents):
        return PromptTier.METADATA
    return PromptTier.NAME_ONLY


def _file_list(documents: List[CourseDocument]) -> str:
    if not documents:
        return "The course has no uploaded files yet."
    lines = "\n".join(f"- {doc.name} ({doc.mime_type or 'file'})" for doc in documents)
    return f"The course has {len(documents)} file(s) with course materials:\n{lines}"


def _content_section(corpus_text: str) -> str:
    return f"""Here is the ACTUAL CONTENT extracted from the course files:

{corpus_text}

IMPORTANT: Generate practice questions based EXACTLY on this content. The questions must test understanding of the specific topics, concepts, facts, and information that appear in the content above. Do NOT generate generic questions - use the actual information from the files."""


def _metadata_section(course_name: str, documents: List[CourseDocument]) -> str:
    pdfs = [doc for doc in documents if is_pdf_document(doc) and doc.url]
    pdf_lines = "\n".join(f"- {doc.name} ({describe_document_type(doc)}): {doc.url}" for doc in pdfs)
    return f"""The course "{course_name}" has {len(pdfs)} PDF file(s) with course materials, available at these URLs:
{pdf_lines}

NOTE: Automatic text extraction failed for these files, so their content is not included here.

CRITICAL INSTRUCTIONS:
1. These PDF files contain the actual course material for "{course_name}"
2. Infer the most likely content of each file from its name and the course title
3. The questions must be specific to "{course_name}" and test real understanding
4. Avoid generic filler questions - make them detailed and specific, as if you had read the files"""


def _name_only_section(course_name: str) -> str:
    return f"""Based on the course name "{course_name}" and the file names above, generate practice questions that would help students test their understanding of the course material. Use the file names to infer what topics are covered (e.g., a file named "algorithms.pdf" suggests questions about algorithms).

Note: No file content is available. Base the questions on typical content for a course named "{course_name}"."""


def build_practice_prompt(
    course_name: str,
    practice_type: PracticeType,
    num_questions: int,
    documents: List[CourseDocument],
    tier: PromptTier,
    corpus_text: str = "",
) -> str:
    """Build the user prompt for one practice generation request"""
    counts = get_question_counts(practice_type, num_questions)

    if tier == PromptTier.CONTENT:
        tier_section = _content_section(corpus_text)
    elif tier == PromptTier.METADATA:
        tier_section = _metadata_section(course_name, documents)
    else:
        tier_section = _name_only_section(course_name)

    return f"""Generate exactly {num_questions} {PRACTICE_TYPE_DESCRIPTIONS[practice_type]} for a course called "{course_name}".

QUESTION DISTRIBUTION:
{get_question_distribution_text(counts)}

{_file_list(documents)}

{tier_section}

{OUTPUT_SCHEMA_INSTRUCTIONS}

Make sure the questions are relevant to "{course_name}" and cover different topics within the course. Return exactly {num_questions} questions."""


class PromptBuilder:
    """Turns course name, corpus and file list into a generation request"""

    def __init__(self, settings: Optional[GenerationSettings] = None):
        self.settings = settings or GenerationSettings()

    def build(
        self,
        course_name: str,
        corpus: Optional[CorpusReport],
        documents: List[CourseDocument],
        practice_type: PracticeType,
        num_questions: int,
    ) -> GenerationRequest:
        tier = select_prompt_tier(corpus, documents)
        prompt = build_practice_prompt(
            course_name=course_name,
            practice_type=practice_type,
            num_questions=num_questions,
            documents=documents,
            tier=tier,
            corpus_text=corpus.text if (corpus is not None and tier == PromptTier.CONTENT) else "",
        )
        return GenerationRequest(
            model=self.settings.model,
            messages=[
                GenerationMessage(role="system", content=SYSTEM_PROMPT),
                GenerationMessage(role="user", content=prompt),
            ],
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
            tier=tier,
        )
