"""
Locate suggestion snippets on the original PDF pages.

Produces page-local bounding boxes (top-left origin, same space as boxes
captured in the viewer) so accepted suggestions can be mapped to overlay
edits without the user clicking each one.
"""

import logging
import string
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from cv_optimizer.schemas.optimizer import AppliedEdit, BoundingBox, EditMode, Suggestion
from cv_optimizer.utils.text_normalizer import fold, normalize

logger = logging.getLogger(__name__)

_EDGE_PUNCTUATION = string.punctuation + "•●◦▪·"


@dataclass
class PdfLocation:
    page_index: int
    bbox: BoundingBox
    matched_text: str


def _token(word: str) -> str:
    return fold(normalize(word)).strip(_EDGE_PUNCTUATION)


def _union(rects: Sequence[Tuple[float, float, float, float]]) -> BoundingBox:
    x0 = min(r[0] for r in rects)
    y0 = min(r[1] for r in rects)
    x1 = max(r[2] for r in rects)
    y1 = max(r[3] for r in rects)
    return BoundingBox(x=x0, y=y0, width=x1 - x0, height=y1 - y0)


def _match_word_sequence(page_words: list, wanted: List[str]) -> Optional[Tuple[int, int]]:
    tokens = [_token(w[4]) for w in page_words]
    n = len(wanted)
    for start in range(len(tokens) - n + 1):
        if tokens[start:start + n] == wanted:
            return start, start + n
    return None


def locate_on_page(page: fitz.Page, snippet: str) -> Optional[Tuple[BoundingBox, str]]:
    wanted = [t for t in (_token(w) for w in normalize(snippet).split(" ")) if t]
    if not wanted:
        return None

    # word order from PyMuPDF follows block/line reading order
    words = [w for w in page.get_text("words") if _token(w[4])]
    span = _match_word_sequence(words, wanted)
    if span is not None:
        matched = words[span[0]:span[1]]
        return _union([w[:4] for w in matched]), " ".join(w[4] for w in matched)

    hits = page.search_for(normalize(snippet))
    if hits:
        rect = hits[0]
        return BoundingBox(x=rect.x0, y=rect.y0, width=rect.width, height=rect.height), normalize(snippet)
    return None


def locate_in_pdf(doc: fitz.Document, snippet: str) -> Optional[PdfLocation]:
    """First page/box where snippet appears, or None."""
    for page_index in range(len(doc)):
        found = locate_on_page(doc[page_index], snippet)
        if found is not None:
            bbox, text = found
            return PdfLocation(page_index=page_index, bbox=bbox, matched_text=text)
    return None


def auto_map_suggestions(
    pdf_bytes: bytes,
    suggestions: Sequence[Suggestion],
) -> Tuple[List[AppliedEdit], List[str]]:
    """Build an AppliedEdit for every suggestion whose snippet is found on the PDF."""
    edits: List[AppliedEdit] = []
    unmatched: List[str] = []
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        for s in suggestions:
            location = locate_in_pdf(doc, s.original_snippet)
            if location is None:
                logger.info(f"[OVERLAY] Could not locate suggestion {s.id} on the PDF")
                unmatched.append(s.id)
                continue
            edits.append(AppliedEdit(
                suggestion_id=s.id,
                page_index=location.page_index,
                bbox=location.bbox,
                mode=EditMode.REPLACE,
                original_text=location.matched_text,
                new_text=s.applied_text or s.proposed_text,
            ))
    finally:
        doc.close()
    return edits, unmatched
