# File: cv_optimizer/api/endpoints/optimize.py
"""
Résumé analysis and document conversion: optimize, pdf-to-html, html-to-pdf.
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from cv_optimizer.api.deps import (
    get_browser_pool,
    get_ocr_client,
    get_suggestion_generator,
    read_pdf_upload,
)
from cv_optimizer.core.config import settings
from cv_optimizer.core.errors import InsufficientTextError, UpstreamCollaboratorError
from cv_optimizer.db import models
from cv_optimizer.db.database import get_db
from cv_optimizer.llm.suggestion_generator import SuggestionGenerator
from cv_optimizer.schemas.optimizer import (
    HtmlConversionResponse,
    HtmlMetadata,
    HtmlToPdfRequest,
    OptimizeResponse,
)
from cv_optimizer.services import html_builder, optimization_session
from cv_optimizer.services.html_renderer import BrowserPool, render_html_to_pdf
from cv_optimizer.services.ocr_client import OcrSpaceClient
from cv_optimizer.services.text_extraction import extract_resume_text

router = APIRouter()
logger = logging.getLogger(__name__)

RESPONSE_TEXT_CHARS = 5000

PDF_DOWNLOAD_HEADERS = {"Content-Disposition": 'attachment; filename="optimized-resume.pdf"'}


@router.post("/optimize", response_model=OptimizeResponse)
async def optimize_resume(
    resume_pdf: UploadFile = File(..., alias="resumePdf"),
    job_description: str = Form(..., alias="jobDescription"),
    generator: SuggestionGenerator = Depends(get_suggestion_generator),
    ocr_client: OcrSpaceClient = Depends(get_ocr_client),
    db: Session = Depends(get_db),
) -> Any:
    """
    Analyze a résumé against a job description.

    Extracts text (OCR when the text layer is thin), asks the model for
    suggestions and opens a review session holding the rebuilt HTML.
    """
    if not job_description.strip():
        raise HTTPException(status_code=400, detail="Missing resumePdf or jobDescription")
    pdf_bytes = await read_pdf_upload(resume_pdf, settings.MAX_UPLOAD_SIZE)

    try:
        resume = await extract_resume_text(pdf_bytes, ocr_client=ocr_client)
        suggestions = await generator.generate(resume.text, job_description)
    except InsufficientTextError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except UpstreamCollaboratorError as e:
        logger.error(f"Optimize failed at {e.stage}: {e.message}")
        raise HTTPException(status_code=500, detail=e.message)

    html = html_builder.generate_html(html_builder.split_paragraphs(resume.text))
    row = models.OptimizationSession(
        job_description=job_description,
        extracted_text=resume.text,
        page_count=resume.page_count,
        pdf_data=pdf_bytes,
        original_html=html,
        html=html,
        suggestions_json=optimization_session.dump_suggestions(suggestions),
        applied_edits_json="[]",
    )
    db.add(row)
    db.commit()
    db.refresh(row)

    logger.info(f"Created session {row.id} with {len(suggestions)} suggestions (ocr={resume.used_ocr})")
    return OptimizeResponse(
        session_id=row.id,
        suggestions=suggestions,
        extracted_text=resume.text[:RESPONSE_TEXT_CHARS],
        page_count=resume.page_count,
    )


@router.post("/pdf-to-html", response_model=HtmlConversionResponse)
async def pdf_to_html(resume_pdf: UploadFile = File(..., alias="resumePdf")) -> Any:
    pdf_bytes = await read_pdf_upload(resume_pdf, settings.MAX_UPLOAD_SIZE)
    try:
        result = html_builder.convert_pdf_to_html(pdf_bytes)
    except Exception as e:
        logger.error(f"PDF to HTML conversion error: {e}")
        raise HTTPException(status_code=500, detail="Failed to convert PDF to HTML")

    return HtmlConversionResponse(
        html=result.html,
        css=result.css,
        extracted_text=result.extracted_text,
        page_count=result.page_count,
        metadata=HtmlMetadata(width=result.width, height=result.height, fonts=result.fonts),
    )


@router.post("/html-to-pdf")
async def html_to_pdf(
    request: HtmlToPdfRequest,
    pool: BrowserPool = Depends(get_browser_pool),
) -> Response:
    if not request.html:
        raise HTTPException(status_code=400, detail="No HTML content provided")

    try:
        pdf_bytes = await render_html_to_pdf(pool, request.html, request.css, request.options)
    except UpstreamCollaboratorError as e:
        raise HTTPException(status_code=500, detail=e.message)

    return Response(content=pdf_bytes, media_type="application/pdf", headers=PDF_DOWNLOAD_HEADERS)
