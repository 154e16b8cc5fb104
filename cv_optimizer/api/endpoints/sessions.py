# File: cv_optimizer/api/endpoints/sessions.py
"""
Review sessions: accept/reject suggestions, map them onto PDF boxes,
download the change log and export the optimized résumé.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session

from cv_optimizer.api.deps import get_browser_pool
from cv_optimizer.api.endpoints.edits import overlay_headers
from cv_optimizer.core.errors import UpstreamCollaboratorError
from cv_optimizer.db import models
from cv_optimizer.db.database import get_db
from cv_optimizer.schemas.optimizer import (
    AcceptSuggestionRequest,
    AppliedEdit,
    AutoMapResponse,
    ChangeLog,
    SessionResponse,
    SuggestionStatus,
)
from cv_optimizer.services import change_tracker, html_builder, optimization_session, pdf_locator
from cv_optimizer.services.geometric_editor import LayoutSettings
from cv_optimizer.services.html_renderer import BrowserPool, render_html_to_pdf
from cv_optimizer.services.optimization_session import SessionState, SuggestionNotFound

router = APIRouter()
logger = logging.getLogger(__name__)


def _get_session(db: Session, session_id: str) -> models.OptimizationSession:
    row = db.query(models.OptimizationSession).filter(models.OptimizationSession.id == session_id).first()
    if not row:
        raise HTTPException(status_code=404, detail="Session not found")
    return row


def _session_response(row: models.OptimizationSession, state: SessionState) -> SessionResponse:
    counts = optimization_session.status_counts(state.suggestions)
    return SessionResponse(
        session_id=row.id,
        page_count=row.page_count or 0,
        html=state.html,
        suggestions=state.suggestions,
        applied_edits=state.applied_edits,
        found_count=optimization_session.count_found(state.html, state.suggestions),
        pending_count=counts[SuggestionStatus.PENDING.value],
        accepted_count=counts[SuggestionStatus.ACCEPTED.value] + counts[SuggestionStatus.MAPPED.value],
    )


def _save(db: Session, row: models.OptimizationSession, state: SessionState) -> None:
    optimization_session.store_state(row, state)
    db.commit()
    db.refresh(row)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, db: Session = Depends(get_db)) -> Any:
    row = _get_session(db, session_id)
    return _session_response(row, optimization_session.load_state(row))


@router.get("/{session_id}/preview", response_class=HTMLResponse)
async def preview_session(session_id: str, db: Session = Depends(get_db)) -> Any:
    """Working HTML with pending and applied suggestions highlighted."""
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    return HTMLResponse(html_builder.render_preview(state.html, state.suggestions))


@router.post("/{session_id}/suggestions/{suggestion_id}/accept", response_model=SessionResponse)
async def accept_suggestion(
    session_id: str,
    suggestion_id: str,
    request: Optional[AcceptSuggestionRequest] = None,
    db: Session = Depends(get_db),
) -> Any:
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    custom_text = request.custom_text if request else None
    try:
        optimization_session.accept_suggestion(state, suggestion_id, custom_text)
    except SuggestionNotFound:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    _save(db, row, state)
    return _session_response(row, state)


@router.post("/{session_id}/suggestions/{suggestion_id}/reject", response_model=SessionResponse)
async def reject_suggestion(session_id: str, suggestion_id: str, db: Session = Depends(get_db)) -> Any:
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    try:
        optimization_session.reject_suggestion(state, suggestion_id)
    except SuggestionNotFound:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    _save(db, row, state)
    return _session_response(row, state)


@router.put("/{session_id}/edits", response_model=SessionResponse)
async def map_edit(session_id: str, edit: AppliedEdit, db: Session = Depends(get_db)) -> Any:
    """Attach a box drawn on the PDF to a suggestion, replacing any earlier one."""
    row = _get_session(db, session_id)
    if edit.bbox.width <= 0 or edit.bbox.height <= 0:
        raise HTTPException(status_code=400, detail="Bounding box must have positive width and height")
    if row.page_count and not (0 <= edit.page_index < row.page_count):
        raise HTTPException(status_code=400, detail=f"Page {edit.page_index} out of range")

    state = optimization_session.load_state(row)
    try:
        optimization_session.map_edit(state, edit)
    except SuggestionNotFound:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    _save(db, row, state)
    return _session_response(row, state)


@router.delete("/{session_id}/edits/{suggestion_id}", response_model=SessionResponse)
async def unmap_edit(session_id: str, suggestion_id: str, db: Session = Depends(get_db)) -> Any:
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    try:
        optimization_session.unmap_edit(state, suggestion_id)
    except SuggestionNotFound:
        raise HTTPException(status_code=404, detail="Suggestion not found")
    _save(db, row, state)
    return _session_response(row, state)


@router.post("/{session_id}/auto-map", response_model=AutoMapResponse)
async def auto_map(session_id: str, db: Session = Depends(get_db)) -> Any:
    """Locate accepted suggestions on the original PDF and map them as overlay edits."""
    row = _get_session(db, session_id)
    if not row.pdf_data:
        raise HTTPException(status_code=400, detail="Original PDF not stored for this session")

    state = optimization_session.load_state(row)
    accepted = [s for s in state.suggestions if s.status == SuggestionStatus.ACCEPTED]
    try:
        edits, unmatched = pdf_locator.auto_map_suggestions(row.pdf_data, accepted)
    except Exception as e:
        logger.error(f"[OVERLAY] Auto-map failed for session {session_id}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to read original PDF: {e}")

    for edit in edits:
        optimization_session.map_edit(state, edit)
    _save(db, row, state)
    return AutoMapResponse(mapped=edits, unmatched=unmatched)


@router.get("/{session_id}/change-log", response_model=ChangeLog)
async def get_change_log(session_id: str, db: Session = Depends(get_db)) -> Any:
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    return change_tracker.build_change_log(state.suggestions)


@router.post("/{session_id}/export")
async def export_session(
    session_id: str,
    mode: str = Query("overlay", pattern="^(overlay|html)$"),
    db: Session = Depends(get_db),
    pool: BrowserPool = Depends(get_browser_pool),
) -> Response:
    """
    Produce the optimized PDF.

    overlay: paint mapped edits onto the original upload.
    html: render the working HTML, for résumés whose text could not be mapped.
    """
    row = _get_session(db, session_id)
    state = optimization_session.load_state(row)
    headers = {"Content-Disposition": 'attachment; filename="optimized-resume.pdf"'}

    if mode == "overlay":
        if not row.pdf_data:
            raise HTTPException(status_code=400, detail="Original PDF not stored for this session")
        change_set = change_tracker.build_change_set(state.applied_edits, row.job_description or "")
        try:
            result = change_tracker.apply_all_to_pages(
                row.pdf_data, change_set.applied_edits, layout=LayoutSettings.from_settings()
            )
        except Exception as e:
            logger.error(f"[EXPORT] Overlay export failed for session {session_id}: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to apply edits: {e}")
        headers = overlay_headers(result)
        logger.info(f"[EXPORT] Session {session_id}: overlay with {result.applied_count} edits")
        return Response(content=result.pdf_bytes, media_type="application/pdf", headers=headers)

    try:
        pdf_bytes = await render_html_to_pdf(pool, state.html, None)
    except UpstreamCollaboratorError as e:
        raise HTTPException(status_code=500, detail=e.message)
    logger.info(f"[EXPORT] Session {session_id}: rendered HTML ({len(pdf_bytes)} bytes)")
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)
