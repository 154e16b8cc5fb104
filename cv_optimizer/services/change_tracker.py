"""
Change tracker: applies a batch of accepted suggestions and records the audit trail.

Two paths over the same locate-then-replace idea:
- DOM path: thread the HTML through successive snippet replacements, in order.
- Overlay path: group AppliedEdits by page and paint each into its box.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

import fitz  # PyMuPDF

from cv_optimizer.schemas.optimizer import (
    AppliedChangeEntry,
    AppliedEdit,
    ChangeLog,
    ChangeSet,
    ProposedChangeEntry,
    Suggestion,
    SuggestionStatus,
    TextReplacement,
)
from cv_optimizer.services import snippet_replacer
from cv_optimizer.services.geometric_editor import (
    DEFAULT_LAYOUT,
    FitzFontMetrics,
    FitzPageSurface,
    LayoutSettings,
    apply_edit,
)

logger = logging.getLogger(__name__)

PREVIEW_CHARS = 200


@dataclass
class DocumentApplyResult:
    document: str
    applied_count: int
    unmatched: List[str] = field(default_factory=list)
    strategies: Dict[str, str] = field(default_factory=dict)  # replacement key → strategy name


@dataclass
class PageApplyResult:
    pdf_bytes: bytes
    applied_count: int
    skipped: List[str] = field(default_factory=list)


def _replacement_key(replacement: TextReplacement, position: int) -> str:
    return replacement.suggestion_id or f"replacement-{position + 1}"


# ─── DOM path ───────────────────────────────────────────────────────────────

def apply_all_to_document(
    document: str,
    replacements: Sequence[TextReplacement],
) -> DocumentApplyResult:
    """
    Apply replacements in input order; later ones see earlier results.

    Works on a local copy and returns the new document only at the end, so
    callers publish all-or-nothing.
    """
    if document is None:
        raise ValueError("document is required")

    current = document
    result = DocumentApplyResult(document=document, applied_count=0)
    for position, replacement in enumerate(replacements):
        key = _replacement_key(replacement, position)
        outcome = snippet_replacer.replace_with_outcome(
            current, replacement.original_text, replacement.new_text
        )
        if outcome.matched:
            current = outcome.document
            result.applied_count += 1
            result.strategies[key] = outcome.strategy
        else:
            result.unmatched.append(key)

    result.document = current
    logger.info(
        f"[REPLACE] Applied {result.applied_count}/{len(replacements)} replacements, "
        f"{len(result.unmatched)} unmatched"
    )
    return result


# ─── Overlay path ───────────────────────────────────────────────────────────

def apply_all_to_pages(
    pdf_bytes: bytes,
    edits: Sequence[AppliedEdit],
    layout: LayoutSettings = DEFAULT_LAYOUT,
    fontname: str = "helv",
) -> PageApplyResult:
    """
    Paint every edit onto its page of the PDF and return the new bytes.

    Edits pointing past the last page, and edits that draw nothing, are
    skipped and reported; the rest of the batch still goes through.
    """
    doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    try:
        page_count = len(doc)
        metrics = FitzFontMetrics(fontname)
        by_page: Dict[int, List[AppliedEdit]] = defaultdict(list)
        skipped: List[str] = []

        for edit in edits:
            if edit.page_index < 0 or edit.page_index >= page_count:
                logger.warning(
                    f"[OVERLAY] Skipping edit {edit.suggestion_id}: page {edit.page_index} "
                    f"out of range (document has {page_count} pages)"
                )
                skipped.append(edit.suggestion_id)
                continue
            by_page[edit.page_index].append(edit)

        applied = 0
        for page_index in sorted(by_page):
            surface = FitzPageSurface(doc[page_index], fontname=fontname)
            for edit in by_page[page_index]:
                if apply_edit(surface, edit.bbox, edit.new_text, metrics, mode=edit.mode, layout=layout):
                    applied += 1
                else:
                    skipped.append(edit.suggestion_id)

        stamp_metadata(doc, applied)
        output = doc.tobytes(garbage=3, deflate=True)
    finally:
        doc.close()

    logger.info(f"[OVERLAY] Applied {applied} edits, skipped {len(skipped)}")
    return PageApplyResult(pdf_bytes=output, applied_count=applied, skipped=skipped)


def stamp_metadata(doc: fitz.Document, applied_count: int) -> None:
    metadata = {
        k: v for k, v in (doc.metadata or {}).items()
        if k in ("author", "producer", "keywords", "creationDate", "modDate") and v
    }
    metadata.update({
        "title": f"Optimized Resume - {datetime.now(timezone.utc).strftime('%Y-%m-%d')}",
        "subject": f"Applied {applied_count} optimizations",
        "creator": "CV Optimizer",
    })
    doc.set_metadata(metadata)


# ─── Session bookkeeping ────────────────────────────────────────────────────

def upsert_applied_edit(edits: Iterable[AppliedEdit], edit: AppliedEdit) -> List[AppliedEdit]:
    """Return edits with edit replacing any previous edit for the same suggestion."""
    kept = [e for e in edits if e.suggestion_id != edit.suggestion_id]
    kept.append(edit)
    return kept


def remove_applied_edit(edits: Iterable[AppliedEdit], suggestion_id: str) -> List[AppliedEdit]:
    return [e for e in edits if e.suggestion_id != suggestion_id]


def build_change_set(
    edits: Sequence[AppliedEdit],
    job_description: str = "",
    timestamp: Optional[str] = None,
) -> ChangeSet:
    return ChangeSet(
        applied_edits=list(edits),
        timestamp=timestamp or datetime.now(timezone.utc).isoformat(),
        job_description_preview=(job_description or "")[:PREVIEW_CHARS],
    )


def build_change_log(suggestions: Sequence[Suggestion], timestamp: Optional[str] = None) -> ChangeLog:
    """Audit record of what was applied, rejected and left pending."""
    log = ChangeLog(timestamp=timestamp or datetime.now(timezone.utc).isoformat())
    for s in suggestions:
        if s.status in (SuggestionStatus.ACCEPTED, SuggestionStatus.MAPPED):
            log.applied_changes.append(AppliedChangeEntry(
                section=s.section,
                original=s.original_snippet,
                replacement=s.applied_text or s.proposed_text,
                reason=s.reason,
            ))
        elif s.status == SuggestionStatus.REJECTED:
            log.rejected_changes.append(ProposedChangeEntry(
                section=s.section,
                original=s.original_snippet,
                suggested=s.proposed_text,
                reason=s.reason,
            ))
        else:
            log.pending_changes.append(ProposedChangeEntry(
                section=s.section,
                original=s.original_snippet,
                suggested=s.proposed_text,
                reason=s.reason,
            ))
    return log
