"""
Résumé text extraction: pdfplumber first, OCR when the text layer is thin.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from cv_optimizer.core.config import settings
from cv_optimizer.core.errors import InsufficientTextError
from cv_optimizer.services.ocr_client import OcrSpaceClient
from cv_optimizer.utils.pdf_extractor import extract_text_from_pdf

logger = logging.getLogger(__name__)


@dataclass
class ResumeText:
    text: str
    page_count: int
    used_ocr: bool = False


async def extract_resume_text(
    pdf_bytes: bytes,
    ocr_client: Optional[OcrSpaceClient] = None,
    min_text_length: Optional[int] = None,
    min_text_floor: Optional[int] = None,
) -> ResumeText:
    """
    Text and page count of an uploaded résumé.

    Raises InsufficientTextError when even OCR leaves fewer than
    min_text_floor characters; nothing downstream can match against that.
    """
    min_text_length = settings.MIN_TEXT_LENGTH if min_text_length is None else min_text_length
    min_text_floor = settings.MIN_TEXT_FLOOR if min_text_floor is None else min_text_floor

    text = ""
    page_count = 0
    try:
        extracted = extract_text_from_pdf(pdf_bytes)
        text, page_count = extracted.text, extracted.page_count
    except Exception as e:
        # unreadable text layer, OCR may still recover it
        logger.error(f"Error extracting text from PDF: {e}")

    used_ocr = False
    if len(text.strip()) < min_text_length:
        logger.info("[OCR] Text extraction insufficient, attempting OCR...")
        ocr_text = await (ocr_client or OcrSpaceClient()).extract_text(pdf_bytes)
        if ocr_text:
            text = ocr_text
            used_ocr = True

    if len(text.strip()) < min_text_floor:
        raise InsufficientTextError(
            "Could not extract sufficient text from PDF. Please ensure the PDF "
            "contains selectable text or try a different file."
        )

    return ResumeText(text=text, page_count=page_count, used_ocr=used_ocr)
