"""
Geometric overlay editor: paints a replacement into a fixed box on a PDF page.

The original text is never re-encoded. For each edit:
1. Convert the UI box (top-left origin) to PDF user space (bottom-left)
2. Cover the box with an opaque background-colored rectangle
3. Pick a font size that fits the box width (shrink short phrases, wrap long ones)
4. Draw the new text vertically centered in the box, dropping lines that fall
   below it

The drawing surface only needs two primitives (filled rectangle, text at a
baseline) plus a width measurement per font/size.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Protocol, Tuple

import fitz  # PyMuPDF

from cv_optimizer.core.config import settings
from cv_optimizer.schemas.optimizer import BoundingBox, EditMode

logger = logging.getLogger(__name__)

Color = Tuple[float, float, float]

COVER_COLOR: Color = (1.0, 1.0, 1.0)  # page background
TEXT_COLOR: Color = (0.0, 0.0, 0.0)


# ─── Surfaces and metrics ───────────────────────────────────────────────────

class FontMetrics(Protocol):
    def width_of(self, text: str, size: float) -> float:
        ...


class PageSurface(Protocol):
    """Drawing target in PDF user space (origin bottom-left, y up)."""
    width: float
    height: float

    def draw_rectangle(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        ...

    def draw_text(self, text: str, x: float, y: float, size: float, color: Color) -> None:
        ...


class FitzFontMetrics:
    """Width measurements for one built-in font, scoped to a single export."""

    def __init__(self, fontname: str = "helv"):
        self.fontname = fontname
        self._font = fitz.Font(fontname)

    def width_of(self, text: str, size: float) -> float:
        return self._font.text_length(text, fontsize=size)


class FitzPageSurface:
    """
    PyMuPDF page as a PageSurface.

    MuPDF addresses pages from the top-left corner, so coordinates coming in
    PDF user space are mirrored against the page height here.
    """

    def __init__(self, page: fitz.Page, fontname: str = "helv"):
        self.page = page
        self.fontname = fontname
        self.width = page.rect.width
        self.height = page.rect.height

    def draw_rectangle(self, x: float, y: float, width: float, height: float, color: Color) -> None:
        top = self.height - (y + height)
        rect = fitz.Rect(x, top, x + width, top + height)
        self.page.draw_rect(rect, color=None, fill=color, width=0, overlay=True)

    def draw_text(self, text: str, x: float, y: float, size: float, color: Color) -> None:
        self.page.insert_text(
            fitz.Point(x, self.height - y),
            text,
            fontsize=size,
            fontname=self.fontname,
            color=color,
        )


# ─── Layout ─────────────────────────────────────────────────────────────────

class CoordinateSpace(Enum):
    SCREEN = "screen"  # top-left origin, as captured by the viewer
    PDF = "pdf"        # bottom-left origin


@dataclass(frozen=True)
class LayoutSettings:
    """Tuning constants for overlay text. None of them are load-bearing."""
    cover_padding: float = 1.0
    height_factor: float = 0.85
    max_font_size: float = 12.0
    min_font_size: float = 6.0
    wrap_min_font_size: float = 8.0
    shrink_step: float = 0.5
    wrap_word_threshold: int = 3
    line_height_factor: float = 1.15
    descender_factor: float = 0.2
    cover_color: Color = COVER_COLOR
    text_color: Color = TEXT_COLOR

    @classmethod
    def from_settings(cls) -> "LayoutSettings":
        return cls(
            height_factor=settings.EDIT_HEIGHT_FACTOR,
            max_font_size=settings.EDIT_MAX_FONT_SIZE,
            shrink_step=settings.EDIT_SHRINK_STEP,
            wrap_word_threshold=settings.EDIT_WRAP_WORD_THRESHOLD,
        )


DEFAULT_LAYOUT = LayoutSettings()


@dataclass
class TextLine:
    text: str
    x: float
    y: float  # baseline, PDF user space


@dataclass
class EditPlan:
    """Everything apply_edit would draw, in PDF user space."""
    cover: Optional[Tuple[float, float, float, float]]  # x, y, width, height
    font_size: float
    lines: List[TextLine] = field(default_factory=list)
    wrapped: bool = False
    dropped_lines: int = 0


def to_pdf_y(bbox: BoundingBox, page_height: float) -> float:
    """Bottom edge of a top-left-origin box, in bottom-left-origin page space."""
    return page_height - bbox.y - bbox.height


def choose_font_size(
    text: str,
    max_width: float,
    box_height: float,
    metrics: FontMetrics,
    layout: LayoutSettings = DEFAULT_LAYOUT,
) -> float:
    """
    Start from min(height_factor * height, max size).

    Text over wrap_word_threshold words keeps that size (floored at
    wrap_min_font_size) and will wrap. Shorter text shrinks in shrink_step
    increments until it fits on one line; if it never fits, min_font_size.
    """
    candidate = min(box_height * layout.height_factor, layout.max_font_size)

    if len(text.split()) > layout.wrap_word_threshold:
        return max(candidate, layout.wrap_min_font_size)

    size = candidate
    while size > layout.min_font_size:
        if metrics.width_of(text, size) <= max_width:
            return size
        size -= layout.shrink_step
    return layout.min_font_size


def wrap_text(text: str, max_width: float, metrics: FontMetrics, size: float) -> List[str]:
    """Greedy word wrap. A single word wider than max_width gets its own line."""
    lines: List[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if metrics.width_of(candidate, size) <= max_width:
            current = candidate
        else:
            if current:
                lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def plan_edit(
    bbox: BoundingBox,
    replacement_text: str,
    metrics: FontMetrics,
    page_height: float,
    space: CoordinateSpace = CoordinateSpace.SCREEN,
    mode: EditMode = EditMode.REPLACE,
    layout: LayoutSettings = DEFAULT_LAYOUT,
) -> Optional[EditPlan]:
    """Compute the cover rectangle and text lines. None for degenerate boxes."""
    if bbox.width <= 0 or bbox.height <= 0:
        return None

    pdf_y = to_pdf_y(bbox, page_height) if space == CoordinateSpace.SCREEN else bbox.y

    cover = None
    if mode != EditMode.INSERT:
        pad = layout.cover_padding
        cover = (bbox.x - pad, pdf_y - pad, bbox.width + 2 * pad, bbox.height + 2 * pad)

    text = (replacement_text or "").strip()
    if mode == EditMode.DELETE or not text:
        return EditPlan(cover=cover, font_size=0.0)

    font_size = choose_font_size(text, bbox.width, bbox.height, metrics, layout)
    plan = EditPlan(cover=cover, font_size=font_size)

    if metrics.width_of(text, font_size) <= bbox.width:
        baseline = pdf_y + (bbox.height - font_size) / 2 + font_size * layout.descender_factor
        plan.lines.append(TextLine(text=text, x=bbox.x, y=baseline))
        return plan

    plan.wrapped = True
    line_height = font_size * layout.line_height_factor
    for idx, line in enumerate(wrap_text(text, bbox.width, metrics, font_size)):
        line_y = pdf_y + bbox.height - font_size - idx * line_height
        if line_y > pdf_y - font_size:
            plan.lines.append(TextLine(text=line, x=bbox.x, y=line_y))
        else:
            plan.dropped_lines += 1
    return plan


def apply_edit(
    surface: PageSurface,
    bbox: BoundingBox,
    replacement_text: str,
    metrics: FontMetrics,
    space: CoordinateSpace = CoordinateSpace.SCREEN,
    mode: EditMode = EditMode.REPLACE,
    layout: LayoutSettings = DEFAULT_LAYOUT,
) -> bool:
    """
    Paint one edit onto surface. Returns whether anything was drawn.

    Bad geometry draws nothing and empty text only covers; a missing surface
    is the one error, since nothing else in the batch could be drawn either.
    """
    if surface is None:
        raise ValueError("page surface is required")

    plan = plan_edit(bbox, replacement_text, metrics, surface.height, space, mode, layout)
    if plan is None:
        logger.warning(f"[OVERLAY] Degenerate box {bbox.width}x{bbox.height}, nothing drawn")
        return False

    if plan.cover is not None:
        surface.draw_rectangle(*plan.cover, color=layout.cover_color)
    for line in plan.lines:
        surface.draw_text(line.text, line.x, line.y, plan.font_size, layout.text_color)

    if plan.dropped_lines:
        logger.info(
            f"[OVERLAY] Dropped {plan.dropped_lines} overflowing line(s) "
            f"for {replacement_text[:40]!r} at size {plan.font_size}"
        )
    return plan.cover is not None or bool(plan.lines)
