# File: cv_optimizer/utils/pdf_extractor.py
import io
import logging
from dataclasses import dataclass
from typing import List

import pdfplumber

logger = logging.getLogger(__name__)


@dataclass
class ExtractedPdf:
    text: str
    page_count: int
    pages: List[str]


def extract_text_from_pdf(pdf_content: bytes) -> ExtractedPdf:
    """Extract text content from a PDF file, page by page."""
    pages: List[str] = []
    with pdfplumber.open(io.BytesIO(pdf_content)) as pdf:
        for page in pdf.pages:
            pages.append(page.extract_text() or "")

    full_text = "\n\n".join(p for p in pages if p)
    logger.info(f"Successfully extracted {len(full_text)} characters from {len(pages)} pages using pdfplumber")
    return ExtractedPdf(text=full_text, page_count=len(pages), pages=pages)
