"""
Flexible snippet matching directly against an HTML string.

The pattern built from a phrase tolerates any whitespace between words and an
optional <br> line-break tag, so text that soft-wraps or was split by the
HTML builder still matches without parsing the document.
"""

import logging
import re
from dataclasses import dataclass
from typing import Optional

from cv_optimizer.utils.html_markup import MarkupMap
from cv_optimizer.utils.text_normalizer import normalize

logger = logging.getLogger(__name__)

LINE_BREAK_TAG = r"<br\s*/?>"
WORD_SEPARATOR = r"(?:\s*(?:" + LINE_BREAK_TAG + r")?\s*|\s+)"


@dataclass(frozen=True)
class Span:
    """A match inside a document: document[start:end] == text."""
    start: int
    end: int
    text: str


def build_pattern(phrase: str) -> Optional[re.Pattern]:
    """Compile a case-insensitive pattern for phrase, or None if it has no words."""
    words = [w for w in normalize(phrase or "").split(" ") if w]
    if not words:
        return None
    try:
        return re.compile(
            WORD_SEPARATOR.join(re.escape(word) for word in words),
            re.IGNORECASE,
        )
    except (re.error, RecursionError, OverflowError) as e:
        logger.warning(f"[MATCH] Could not compile pattern for {phrase[:60]!r}: {e}")
        return None


def find(document: str, pattern: Optional[re.Pattern]) -> Optional[Span]:
    """First match of pattern in the visible text of document."""
    if pattern is None or not document:
        return None
    markup = None
    for match in pattern.finditer(document):
        if markup is None:
            markup = MarkupMap(document)
        if markup.is_visible_span(match.start(), match.end()):
            return Span(start=match.start(), end=match.end(), text=match.group(0))
    return None


def find_phrase(document: str, phrase: str) -> Optional[Span]:
    return find(document, build_pattern(phrase))
