# File: cv_optimizer/api/deps.py
import logging

from fastapi import HTTPException, Request, UploadFile

from cv_optimizer.llm.suggestion_generator import SuggestionGenerator
from cv_optimizer.services.html_renderer import BrowserPool
from cv_optimizer.services.ocr_client import OcrSpaceClient

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = ("application/pdf", "application/x-pdf")


async def read_pdf_upload(file: UploadFile, max_size: int) -> bytes:
    """Read an uploaded PDF, rejecting other file types and oversized files."""
    filename = (file.filename or "").lower()
    if file.content_type not in PDF_CONTENT_TYPES and not filename.endswith(".pdf"):
        raise HTTPException(status_code=400, detail="File must be a PDF")

    content = await file.read()
    if len(content) > max_size:
        raise HTTPException(
            status_code=400,
            detail=f"PDF file exceeds {max_size // (1024 * 1024)}MB limit",
        )
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded PDF is empty")
    logger.info(f"Read {len(content)} bytes from uploaded file {file.filename}")
    return content


def get_browser_pool(request: Request) -> BrowserPool:
    pool = getattr(request.app.state, "browser_pool", None)
    if pool is None:
        pool = BrowserPool()
        request.app.state.browser_pool = pool
    return pool


def get_suggestion_generator() -> SuggestionGenerator:
    return SuggestionGenerator()


def get_ocr_client() -> OcrSpaceClient:
    return OcrSpaceClient()
