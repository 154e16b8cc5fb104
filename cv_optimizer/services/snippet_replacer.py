"""
Snippet replacement over an HTML document.

Each strategy is a plain function (document, snippet, replacement) -> new
document or None. replace() walks them in order and keeps the first result;
if none applies the document comes back unchanged. Only the first occurrence
in visible text is replaced (never inside a tag or the document head), so
running the same replacement twice is a no-op once the original snippet is
gone.
"""

import logging
import re
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from cv_optimizer.services import flexible_matcher, plain_text_locator
from cv_optimizer.utils.html_markup import MarkupMap
from cv_optimizer.utils.text_normalizer import fold, normalize

logger = logging.getLogger(__name__)

Strategy = Callable[[str, str, str], Optional[str]]


def _splice(document: str, start: int, end: int, replacement: str) -> str:
    return document[:start] + replacement + document[end:]


def replace_flexible(document: str, snippet: str, replacement: str) -> Optional[str]:
    """Whitespace/<br>-tolerant match straight on the markup."""
    span = flexible_matcher.find_phrase(document, snippet)
    if span is None:
        return None
    return _splice(document, span.start, span.end, replacement)


def replace_plain_text(document: str, snippet: str, replacement: str) -> Optional[str]:
    """Match on the visible text, splice at the back-mapped offsets."""
    span = plain_text_locator.locate(document, snippet)
    if span is None:
        return None
    return _splice(document, span.start, span.end, replacement)


def build_loose_pattern(snippet: str) -> Optional[re.Pattern]:
    normalized = normalize(snippet)
    if not normalized:
        return None
    try:
        return re.compile(
            r"\s+".join(re.escape(part) for part in normalized.split(" ")),
            re.IGNORECASE,
        )
    except re.error:
        return None


def replace_loose(document: str, snippet: str, replacement: str) -> Optional[str]:
    """Normalized phrase with spaces relaxed to \\s+, first hit that starts and ends in visible text."""
    pattern = build_loose_pattern(snippet)
    if pattern is None:
        return None
    markup = MarkupMap(document)
    for match in pattern.finditer(document):
        if markup.is_visible_span(match.start(), match.end()):
            return _splice(document, match.start(), match.end(), replacement)
    return None


def replace_literal(document: str, snippet: str, replacement: str) -> Optional[str]:
    """Verbatim first occurrence of the raw snippet outside markup."""
    if not snippet:
        return None
    markup = MarkupMap(document)
    start = document.find(snippet)
    while start != -1:
        if markup.is_visible_span(start, start + len(snippet)):
            return _splice(document, start, start + len(snippet), replacement)
        start = document.find(snippet, start + 1)
    return None


STRATEGIES: List[Tuple[str, Strategy]] = [
    ("flexible", replace_flexible),
    ("plain_text", replace_plain_text),
    ("loose", replace_loose),
    ("literal", replace_literal),
]


@dataclass(frozen=True)
class ReplacementOutcome:
    document: str
    strategy: Optional[str]

    @property
    def matched(self) -> bool:
        return self.strategy is not None


def replace_with_outcome(document: str, snippet: str, replacement: str) -> ReplacementOutcome:
    if document is None:
        raise ValueError("document is required")
    replacement = replacement or ""

    for name, strategy in STRATEGIES:
        updated = strategy(document, snippet or "", replacement)
        if updated is not None:
            logger.info(f"[REPLACE] {name} matched {(snippet or '')[:60]!r}")
            return ReplacementOutcome(document=updated, strategy=name)

    logger.info(f"[REPLACE] No match for {(snippet or '')[:60]!r}")
    return ReplacementOutcome(document=document, strategy=None)


def replace(document: str, snippet: str, replacement: str) -> str:
    """Replace the first located occurrence of snippet, or return document unchanged."""
    return replace_with_outcome(document, snippet, replacement).document


def can_locate(document: str, snippet: str) -> bool:
    """Read-only check used to tell the user which suggestions can be applied."""
    if not document or not normalize(snippet or ""):
        return False
    if flexible_matcher.find_phrase(document, snippet) is not None:
        return True
    if plain_text_locator.locate(document, snippet) is not None:
        return True
    visible = fold(plain_text_locator.project(document).text)
    return fold(normalize(snippet)) in visible
