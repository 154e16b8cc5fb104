"""
Review-session state transitions.

A session holds the working HTML, the suggestion list and the edits mapped
onto the original PDF. Transitions work on a SessionState loaded from the
database row and are written back in one go by the caller.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from cv_optimizer.db.models import OptimizationSession
from cv_optimizer.schemas.optimizer import AppliedEdit, Suggestion, SuggestionStatus
from cv_optimizer.services import change_tracker, snippet_replacer

logger = logging.getLogger(__name__)


class SuggestionNotFound(KeyError):
    pass


@dataclass
class SessionState:
    html: str
    suggestions: List[Suggestion] = field(default_factory=list)
    applied_edits: List[AppliedEdit] = field(default_factory=list)

    def get(self, suggestion_id: str) -> Suggestion:
        for s in self.suggestions:
            if s.id == suggestion_id:
                return s
        raise SuggestionNotFound(suggestion_id)

    def _put(self, updated: Suggestion) -> None:
        self.suggestions = [updated if s.id == updated.id else s for s in self.suggestions]


# ─── Persistence helpers ────────────────────────────────────────────────────

def dump_suggestions(suggestions: List[Suggestion]) -> str:
    return json.dumps([s.model_dump(mode="json", by_alias=True) for s in suggestions])


def dump_edits(edits: List[AppliedEdit]) -> str:
    return json.dumps([e.model_dump(mode="json", by_alias=True) for e in edits])


def load_state(row: OptimizationSession) -> SessionState:
    return SessionState(
        html=row.html or "",
        suggestions=[Suggestion.model_validate(s) for s in json.loads(row.suggestions_json or "[]")],
        applied_edits=[AppliedEdit.model_validate(e) for e in json.loads(row.applied_edits_json or "[]")],
    )


def store_state(row: OptimizationSession, state: SessionState) -> None:
    row.html = state.html
    row.suggestions_json = dump_suggestions(state.suggestions)
    row.applied_edits_json = dump_edits(state.applied_edits)


# ─── Transitions ────────────────────────────────────────────────────────────

def accept_suggestion(state: SessionState, suggestion_id: str, custom_text: Optional[str] = None) -> bool:
    """
    Mark a suggestion accepted and apply it to the working HTML.

    Returns whether the HTML changed. An unmatched suggestion is still
    accepted; it can be placed on the PDF by mapping an edit instead.
    """
    suggestion = state.get(suggestion_id)
    new_text = custom_text if custom_text is not None else suggestion.proposed_text

    # re-accepting swaps the previously applied text for the new one
    if suggestion.applied_in_html and suggestion.applied_text is not None:
        snippet = suggestion.applied_text
    else:
        snippet = suggestion.original_snippet

    outcome = snippet_replacer.replace_with_outcome(state.html, snippet, new_text)
    if outcome.matched:
        state.html = outcome.document
        logger.info(f"[REPLACE] Accepted {suggestion_id} via {outcome.strategy}")
    else:
        logger.info(f"[REPLACE] Accepted {suggestion_id} but snippet not found in HTML")

    status = SuggestionStatus.MAPPED if suggestion.status == SuggestionStatus.MAPPED else SuggestionStatus.ACCEPTED
    state._put(suggestion.model_copy(update={
        "status": status,
        "applied_text": new_text,
        "applied_in_html": outcome.matched,
    }))

    # keep a mapped overlay edit in step with the accepted text
    state.applied_edits = [
        e.model_copy(update={"new_text": new_text}) if e.suggestion_id == suggestion_id else e
        for e in state.applied_edits
    ]
    return outcome.matched


def reject_suggestion(state: SessionState, suggestion_id: str) -> None:
    """Mark rejected, dropping any mapped edit and reverting the HTML if the text was written there."""
    suggestion = state.get(suggestion_id)
    if suggestion.applied_in_html and suggestion.applied_text is not None:
        outcome = snippet_replacer.replace_with_outcome(state.html, suggestion.applied_text, suggestion.original_snippet)
        if outcome.matched:
            state.html = outcome.document
    state.applied_edits = change_tracker.remove_applied_edit(state.applied_edits, suggestion_id)

    state._put(suggestion.model_copy(update={
        "status": SuggestionStatus.REJECTED,
        "applied_text": None,
        "applied_in_html": False,
    }))


def map_edit(state: SessionState, edit: AppliedEdit) -> AppliedEdit:
    """Attach an overlay edit to a suggestion; the previous edit for it is replaced."""
    suggestion = state.get(edit.suggestion_id)
    if not edit.original_text:
        edit = edit.model_copy(update={"original_text": suggestion.original_snippet})
    if not edit.new_text:
        edit = edit.model_copy(update={"new_text": suggestion.applied_text or suggestion.proposed_text})

    state.applied_edits = change_tracker.upsert_applied_edit(state.applied_edits, edit)
    state._put(suggestion.model_copy(update={"status": SuggestionStatus.MAPPED}))
    return edit


def unmap_edit(state: SessionState, suggestion_id: str) -> bool:
    suggestion = state.get(suggestion_id)
    before = len(state.applied_edits)
    state.applied_edits = change_tracker.remove_applied_edit(state.applied_edits, suggestion_id)
    if suggestion.status == SuggestionStatus.MAPPED:
        state._put(suggestion.model_copy(update={"status": SuggestionStatus.ACCEPTED}))
    return len(state.applied_edits) != before


# ─── Counts ─────────────────────────────────────────────────────────────────

def count_found(html: str, suggestions: List[Suggestion]) -> int:
    """Pending suggestions whose snippet can still be located in html."""
    return sum(
        1 for s in suggestions
        if s.status == SuggestionStatus.PENDING and snippet_replacer.can_locate(html, s.original_snippet)
    )


def status_counts(suggestions: List[Suggestion]) -> Dict[str, int]:
    counts = {status.value: 0 for status in SuggestionStatus}
    for s in suggestions:
        counts[s.status.value] += 1
    return counts
