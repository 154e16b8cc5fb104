# File: cv_optimizer/api/endpoints/edits.py
"""
Stateless edit application: overlay edits onto an uploaded PDF, apply
replacements to an HTML document, or report where snippets can be found.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from pydantic import ValidationError

from cv_optimizer.api.deps import read_pdf_upload
from cv_optimizer.core.config import settings
from cv_optimizer.schemas.optimizer import (
    ApplySuggestionsRequest,
    ApplySuggestionsResponse,
    ChangeSet,
    LocateRequest,
    LocateResponse,
    SnippetLocation,
)
from cv_optimizer.services import change_tracker, flexible_matcher, plain_text_locator
from cv_optimizer.services.geometric_editor import LayoutSettings

router = APIRouter()
logger = logging.getLogger(__name__)


def overlay_headers(result: change_tracker.PageApplyResult) -> dict:
    return {
        "Content-Disposition": 'attachment; filename="optimized-resume.pdf"',
        "X-Applied-Count": str(result.applied_count),
        "X-Skipped-Edits": ",".join(result.skipped),
    }


@router.post("/apply-edits")
async def apply_edits(
    resume_pdf: UploadFile = File(..., alias="resumePdf"),
    change_set: str = Form(..., alias="changeSet"),
) -> Response:
    """Paint a ChangeSet's edits onto the uploaded PDF and return the result."""
    pdf_bytes = await read_pdf_upload(resume_pdf, settings.MAX_EXPORT_UPLOAD_SIZE)
    try:
        parsed = ChangeSet.model_validate(json.loads(change_set))
    except (json.JSONDecodeError, ValidationError) as e:
        logger.warning(f"[OVERLAY] Invalid changeSet: {e}")
        raise HTTPException(status_code=400, detail="Invalid changeSet JSON")

    try:
        result = change_tracker.apply_all_to_pages(
            pdf_bytes, parsed.applied_edits, layout=LayoutSettings.from_settings()
        )
    except Exception as e:
        logger.error(f"[OVERLAY] Apply edits error: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to apply edits: {e}")

    return Response(content=result.pdf_bytes, media_type="application/pdf", headers=overlay_headers(result))


@router.post("/apply-suggestions", response_model=ApplySuggestionsResponse)
async def apply_suggestions(request: ApplySuggestionsRequest) -> Any:
    result = change_tracker.apply_all_to_document(request.html, request.replacements)
    return ApplySuggestionsResponse(
        html=result.document,
        applied_count=result.applied_count,
        unmatched=result.unmatched,
    )


@router.post("/locate", response_model=LocateResponse)
async def locate_snippets(request: LocateRequest) -> Any:
    """Where each snippet sits in the HTML, without changing it."""
    locations = []
    for snippet in request.snippets:
        span = flexible_matcher.find_phrase(request.html, snippet)
        if span is None:
            span = plain_text_locator.locate(request.html, snippet)
        if span is None:
            locations.append(SnippetLocation(snippet=snippet, found=False))
            continue
        locations.append(SnippetLocation(
            snippet=snippet,
            found=True,
            start=span.start,
            end=span.end,
            matched_text=span.text,
        ))

    found = sum(1 for loc in locations if loc.found)
    logger.info(f"[MATCH] Located {found}/{len(locations)} snippets")
    return LocateResponse(locations=locations, found_count=found)
