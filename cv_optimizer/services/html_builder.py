"""
Rebuilds an editable HTML document from a résumé PDF's text layer, and
decorates it with suggestion markers for the review view.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import List, Sequence

from cv_optimizer.schemas.optimizer import Suggestion, SuggestionStatus
from cv_optimizer.services import flexible_matcher
from cv_optimizer.utils.html_markup import MarkupMap
from cv_optimizer.utils.pdf_extractor import extract_text_from_pdf
from cv_optimizer.utils.text_normalizer import escape_html

logger = logging.getLogger(__name__)

LETTER_WIDTH_PT = 612
LETTER_HEIGHT_PT = 792
DEFAULT_FONTS = ["Arial", "Helvetica", "sans-serif"]

_PARAGRAPH_BREAK_RE = re.compile(r"\n{2,}")

CV_CSS = """
    * {
      margin: 0;
      padding: 0;
      box-sizing: border-box;
    }
    body {
      font-family: Arial, Helvetica, sans-serif;
      line-height: 1.5;
      color: #000;
      background: #fff;
    }
    .cv-document {
      max-width: 8.5in;
      margin: 0 auto;
      padding: 0.75in;
      background: #fff;
      min-height: 11in;
    }
    .cv-paragraph {
      margin-bottom: 0.75em;
      text-align: left;
    }
    .cv-paragraph:first-child {
      font-size: 1.25em;
      font-weight: bold;
      margin-bottom: 0.5em;
    }
    .suggestion-marker {
      background-color: rgba(255, 235, 59, 0.4);
      cursor: pointer;
      border-radius: 2px;
    }
    .suggestion-applied {
      background-color: rgba(76, 175, 80, 0.3);
      border-radius: 2px;
    }
    @media print {
      .cv-document {
        padding: 0;
        margin: 0;
      }
    }
"""


@dataclass
class HtmlConversion:
    html: str
    css: str
    extracted_text: str
    page_count: int
    width: float = LETTER_WIDTH_PT
    height: float = LETTER_HEIGHT_PT
    fonts: List[str] = field(default_factory=lambda: list(DEFAULT_FONTS))


def split_paragraphs(text: str) -> List[str]:
    return [p.strip() for p in _PARAGRAPH_BREAK_RE.split(text or "") if p.strip()]


def generate_html(paragraphs: Sequence[str], css: str = CV_CSS) -> str:
    """Escaped paragraphs, single newlines kept as <br>, in a Letter-sized page."""
    body = "\n      ".join(
        f'<p class="cv-paragraph">{escape_html(p).replace(chr(10), "<br>")}</p>'
        for p in paragraphs
    )
    return f"""<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>CV Document</title>
  <style>{css}</style>
</head>
<body>
  <div class="cv-document">
      {body}
  </div>
</body>
</html>"""


def convert_pdf_to_html(pdf_bytes: bytes) -> HtmlConversion:
    extracted = extract_text_from_pdf(pdf_bytes)
    paragraphs = split_paragraphs(extracted.text)
    logger.info(f"Built HTML from {len(paragraphs)} paragraphs across {extracted.page_count} pages")
    return HtmlConversion(
        html=generate_html(paragraphs),
        css=CV_CSS,
        extracted_text=extracted.text,
        page_count=extracted.page_count or 1,
    )


def inject_suggestion_markers(html: str, suggestions: Sequence[Suggestion]) -> str:
    """Wrap every occurrence of a pending snippet in a suggestion-marker <mark>."""
    result = html
    for s in suggestions:
        if s.status != SuggestionStatus.PENDING:
            continue
        pattern = flexible_matcher.build_pattern(s.original_snippet)
        if pattern is None:
            continue
        marker_id = escape_html(s.id)
        markup = MarkupMap(result)

        def wrap(match, marker_id=marker_id, markup=markup):
            if not markup.is_visible_span(match.start(), match.end()):
                return match.group(0)
            return f'<mark class="suggestion-marker" data-suggestion-id="{marker_id}">{match.group(0)}</mark>'

        result = pattern.sub(wrap, result)
    return result


def mark_applied_suggestions(html: str, suggestions: Sequence[Suggestion]) -> str:
    result = html
    for s in suggestions:
        if s.status not in (SuggestionStatus.ACCEPTED, SuggestionStatus.MAPPED) or not s.applied_in_html:
            continue
        pattern = flexible_matcher.build_pattern(s.applied_text or s.proposed_text)
        if pattern is None:
            continue
        match = flexible_matcher.find(result, pattern)
        if match is None:
            continue
        result = result[:match.start] + f'<mark class="suggestion-applied">{match.text}</mark>' + result[match.end:]
    return result


def render_preview(html: str, suggestions: Sequence[Suggestion]) -> str:
    return mark_applied_suggestions(inject_suggestion_markers(html, suggestions), suggestions)
