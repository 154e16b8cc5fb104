"""
Where the markup is in an HTML string.

Tags, comments and elements whose content is never shown (head, title,
script, style) are hidden ranges. A match is only usable for an edit when it
starts and ends in visible text; markup inside the match (a <br> between two
words) is fine.
"""

import re
from bisect import bisect_right
from typing import List, Tuple

LINE_BREAK_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
TAG_RE = re.compile(r"<[^>]+>")
COMMENT_RE = re.compile(r"<!--.*?-->", re.DOTALL)
HIDDEN_ELEMENT_RE = re.compile(r"<(head|title|script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)


def hidden_ranges(document: str) -> List[Tuple[int, int]]:
    """Sorted, non-overlapping [start, end) ranges of markup and hidden content."""
    ranges: List[Tuple[int, int]] = []
    pos = document.find("<")
    while pos != -1:
        found = (
            COMMENT_RE.match(document, pos)
            or HIDDEN_ELEMENT_RE.match(document, pos)
            or TAG_RE.match(document, pos)
        )
        if found:
            ranges.append((pos, found.end()))
            pos = document.find("<", found.end())
        else:
            pos = document.find("<", pos + 1)
    return ranges


class MarkupMap:
    """Answers "is this offset inside markup" for one document."""

    def __init__(self, document: str):
        self.ranges = hidden_ranges(document)
        self._starts = [start for start, _ in self.ranges]

    def inside(self, offset: int) -> bool:
        # strictly inside: a match may begin or end right at a tag boundary
        idx = bisect_right(self._starts, offset) - 1
        if idx < 0:
            return False
        start, end = self.ranges[idx]
        return start < offset < end

    def is_visible_span(self, start: int, end: int) -> bool:
        return not self.inside(start) and not self.inside(end)
