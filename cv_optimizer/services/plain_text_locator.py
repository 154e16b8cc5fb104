"""
Plain-text locator: search in the rendered view, edit in the source view.

Matching straight against HTML breaks as soon as a tag lands inside a word
run (an inline <b>, a <span> from the converter, a <br> mid-sentence). Here
the document is first projected to the text a reader would see, with two
parallel arrays recording which slice of the source produced each projected
character. The match is done on the projection and mapped back through those
arrays to offsets in the original HTML.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from cv_optimizer.services.flexible_matcher import Span
from cv_optimizer.utils.html_markup import COMMENT_RE, HIDDEN_ELEMENT_RE, LINE_BREAK_RE, TAG_RE
from cv_optimizer.utils.text_normalizer import HTML_ENTITIES, fold, map_typographic, normalize

logger = logging.getLogger(__name__)


@dataclass
class PlainTextProjection:
    """
    Visible text of a document plus its position map.

    index[i] is the offset in the source of the unit that produced text[i];
    index_end[i] is the offset just past that unit. A unit is one character,
    one decoded entity, or one <br> tag (which projects to a single space).
    """
    text: str
    index: List[int]
    index_end: List[int]

    def __len__(self) -> int:
        return len(self.text)


def _source_units(document: str) -> List[Tuple[str, int, int]]:
    """Walk the document once and emit (visible_char, start, end) units."""
    units: List[Tuple[str, int, int]] = []
    i = 0
    n = len(document)
    while i < n:
        ch = document[i]

        if ch == "<":
            skipped = COMMENT_RE.match(document, i) or HIDDEN_ELEMENT_RE.match(document, i)
            if skipped:
                i = skipped.end()
                continue
            line_break = LINE_BREAK_RE.match(document, i)
            if line_break:
                units.append((" ", i, line_break.end()))
                i = line_break.end()
                continue
            tag = TAG_RE.match(document, i)
            if tag:
                i = tag.end()
                continue

        elif ch == "&":
            entity_end = None
            for entity, char in HTML_ENTITIES:
                if document.startswith(entity, i):
                    entity_end = i + len(entity)
                    units.append((char, i, entity_end))
                    break
            if entity_end is not None:
                i = entity_end
                continue

        units.append((ch, i, i + 1))
        i += 1
    return units


def project(document: str) -> PlainTextProjection:
    """Strip markup, decode entities, collapse whitespace; keep the position map."""
    chars: List[str] = []
    index: List[int] = []
    index_end: List[int] = []

    for ch, start, end in _source_units(document):
        ch = map_typographic(ch)
        if ch.isspace():
            # leading whitespace is dropped, runs collapse onto their first unit
            if not chars or chars[-1] == " ":
                continue
            ch = " "
        chars.append(ch)
        index.append(start)
        index_end.append(end)

    if chars and chars[-1] == " ":
        chars.pop()
        index.pop()
        index_end.pop()

    return PlainTextProjection(text="".join(chars), index=index, index_end=index_end)


def search_words(phrase: str) -> List[str]:
    """Folded, normalized words of phrase."""
    return [w for w in fold(normalize(phrase or "")).split(" ") if w]


def _match_words_at(text: str, pos: int, words: List[str]) -> Optional[int]:
    last = len(words) - 1
    for word_idx, word in enumerate(words):
        if not text.startswith(word, pos):
            return None
        pos += len(word)
        if word_idx < last:
            # a single space in the projection confirms the word boundary
            if pos >= len(text) or text[pos] != " ":
                return None
            pos += 1
    return pos


def scan(text: str, words: List[str]) -> Optional[Tuple[int, int]]:
    """
    Word-by-word scan of an already folded projection.

    Returns the half-open [start, end) range of the first place where all
    words occur in order separated by single spaces. The final word does not
    need a trailing boundary.
    """
    if not words:
        return None
    first = words[0]
    start = text.find(first)
    while start != -1:
        end = _match_words_at(text, start, words)
        if end is not None:
            return start, end
        start = text.find(first, start + 1)
    return None


def locate(document: str, phrase: str) -> Optional[Span]:
    """
    Find phrase in the visible text of document.

    Returns offsets into document (not into the projection), or None when the
    phrase has no words, is not found, or maps outside the document.
    """
    if document is None:
        raise ValueError("document is required")

    words = search_words(phrase)
    if not words:
        return None

    projection = project(document)
    found = scan(fold(projection.text), words)
    if found is None:
        return None

    plain_start, plain_end = found
    if plain_start >= len(projection) or plain_end > len(projection) or plain_end <= plain_start:
        return None

    start = projection.index[plain_start]
    # end of the last matched unit, so markup following the match is kept
    end = projection.index_end[plain_end - 1]
    if not (0 <= start < end <= len(document)):
        logger.warning(f"[MATCH] Back-mapped span {start}:{end} out of range for {len(document)} chars")
        return None

    return Span(start=start, end=end, text=document[start:end])
