"""
Text canonicalization shared by every matcher.

normalize() never lowercases so the result can still be used for exact-case
replacement; comparisons go through fold() on top of it.
"""

import re
from typing import Tuple

_WHITESPACE_RE = re.compile(r"\s+")

# Order matters: &amp; first, same as the escaping done by the HTML builder
HTML_ENTITIES: Tuple[Tuple[str, str], ...] = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#039;", "'"),
)

_TYPOGRAPHIC = str.maketrans({
    "‘": "'",
    "’": "'",
    "“": '"',
    "”": '"',
    "–": "-",
    "—": "-",
})


def collapse_whitespace(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text)


def map_typographic(text: str) -> str:
    """Smart quotes and en/em dashes to their ASCII look-alikes (1:1 per char)."""
    return text.translate(_TYPOGRAPHIC)


def decode_entities(text: str) -> str:
    for entity, char in HTML_ENTITIES:
        text = text.replace(entity, char)
    return text


def escape_html(text: str) -> str:
    """Inverse of decode_entities."""
    return (
        text.replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#039;")
    )


def normalize(text: str) -> str:
    """
    Canonical form used for comparison.

    Collapses whitespace, maps typographic quotes/dashes to ASCII, decodes the
    five standard HTML entities and trims. Total: any str in, str out.
    """
    if not text:
        return ""
    text = collapse_whitespace(text)
    text = map_typographic(text)
    text = decode_entities(text)
    return text.strip()


def fold_char(char: str) -> str:
    # Characters whose lowercase form is longer (e.g. U+0130) are left as-is
    # so folded text keeps the same length as its source.
    lowered = char.lower()
    return lowered if len(lowered) == 1 else char


def fold(text: str) -> str:
    """Length-preserving case fold."""
    return "".join(fold_char(c) for c in text)
