"""
Best-effort PDF text recovery without a PDF parser.

PDF content streams show text through parenthesized literal strings,
e.g. ``BT /F1 12 Tf (Hello world) Tj ET``. This module scans the raw file for
those literals and keeps the ones that look like prose.

Passes (results merged in file order, each span counted once):
1. Blind scan of the whole file for ``(...)`` literals
2. Scan restricted to ``BT ... ET`` text objects
3. If fewer than COMPRESSED_STREAM_THRESHOLD literals were found, scan the
   first STREAM_SCAN_CHARS of every ``stream ... endstream`` body

Known limitation: compressed (FlateDecode), scanned/image-only and encrypted
PDFs yield little or nothing and are reported as failures. Returning no text
for a thin but genuine PDF is preferred over returning noise.
"""

import re
import logging
from typing import Dict, Any, List, Tuple

logger = logging.getLogger(__name__)

# Literals shorter than this are dropped
MIN_LITERAL_LENGTH = 3

# Fewer literals than this suggests compressed content streams
COMPRESSED_STREAM_THRESHOLD = 10

# Only the head of each stream body is scanned
STREAM_SCAN_CHARS = 5000

# Recovered text under this length is not content
MIN_SUBSTANTIAL_CHARS = 100

# Literal string, honouring backslash escapes; never crosses a line break
LITERAL_STRING_PATTERN = re.compile(r"\(((?:\\[^\r\n]|[^\\)\r\n])*)\)")
TEXT_OBJECT_PATTERN = re.compile(r"\bBT\b(.*?)\bET\b", re.DOTALL)
STREAM_PATTERN = re.compile(r"\bstream\b(.*?)\bendstream\b", re.DOTALL)

ESCAPE_PATTERN = re.compile(r"\\([0-7]{1,3}|.)", re.DOTALL)
NOISE_ONLY_PATTERN = re.compile(r"^[\s\d\W]+$")
CONTROL_CHARS_PATTERN = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f\u200b\ufeff]")
WHITESPACE_PATTERN = re.compile(r"\s+")

# Escapes that stand for layout whitespace
WHITESPACE_ESCAPES = {"n", "r", "t", "f", "b"}


def decode_pdf_bytes(data: bytes) -> str:
    """Decode as UTF-8, falling back to latin-1 (never fails)"""
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        return data.decode("latin-1")


def unescape_literal(raw: str) -> str:
    """Resolve PDF backslash escapes, including octal byte escapes (\\101 -> A)"""

    def _replace(match: "re.Match[str]") -> str:
        token = match.group(1)
        if token[0] in "01234567":
            return chr(int(token, 8) & 0xFF)
        if token in WHITESPACE_ESCAPES:
            return " "
        return token

    return ESCAPE_PATTERN.sub(_replace, raw)


def is_substantial_literal(text: str) -> bool:
    """Drop short strings and strings made only of digits/punctuation/space"""
    if len(text) < MIN_LITERAL_LENGTH:
        return False
    return NOISE_ONLY_PATTERN.match(text) is None


def _scan_literals(source: str, offset: int, found: Dict[int, str]) -> None:
    """Record substantial literals in ``source`` keyed by absolute start offset"""
    for match in LITERAL_STRING_PATTERN.finditer(source):
        start = offset + match.start()
        if start in found:
            continue
        text = unescape_literal(match.group(1))
        if is_substantial_literal(text):
            found[start] = text


def clean_recovered_text(strings: List[str]) -> str:
    """Join, strip control characters, collapse whitespace and trim"""
    text = " ".join(s for s in strings if s.strip())
    text = CONTROL_CHARS_PATTERN.sub(" ", text)
    text = WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def extract_pdf_literals(data: bytes) -> Dict[str, Any]:
    """
    Run all scan passes over raw PDF bytes.

    Args:
        data: Raw file bytes

    Returns:
        Dict with:
            - text: Cleaned text ("" when under MIN_SUBSTANTIAL_CHARS)
            - literal_count: Number of literals recovered
            - stream_scan: Whether the stream pass ran
            - char_count: Length of the cleaned text before thresholding
            - substantial: Whether the text passed MIN_SUBSTANTIAL_CHARS
    """
    source = decode_pdf_bytes(data)
    found: Dict[int, str] = {}

    # Pass 1: blind scan
    _scan_literals(source, 0, found)

    # Pass 2: text objects only
    for block in TEXT_OBJECT_PATTERN.finditer(source):
        _scan_literals(block.group(1), block.start(1), found)

    # Pass 3: stream heads, when little was found (likely compressed)
    stream_scan = len(found) < COMPRESSED_STREAM_THRESHOLD
    if stream_scan:
        for stream in STREAM_PATTERN.finditer(source):
            body = stream.group(1)[:STREAM_SCAN_CHARS]
            _scan_literals(body, stream.start(1), found)

    ordered: List[Tuple[int, str]] = sorted(found.items())
    text = clean_recovered_text([s for _, s in ordered])
    substantial = len(text) >= MIN_SUBSTANTIAL_CHARS

    if substantial:
        logger.info(f"Recovered {len(text)} characters from {len(ordered)} PDF literals")
    else:
        logger.info(
            f"Only {len(text)} characters recovered from PDF literals - "
            "likely compressed, scanned or encrypted"
        )

    return {
        "text": text if substantial else "",
        "literal_count": len(ordered),
        "stream_scan": stream_scan,
        "char_count": len(text),
        "substantial": substantial,
    }


def extract_text_from_pdf_bytes(data: bytes) -> str:
    """Cleaned text recovered from raw PDF bytes, or "" when insufficient"""
    return extract_pdf_literals(data)["text"]
