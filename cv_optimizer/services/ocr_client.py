"""
OCR.space client, used when a PDF has little or no selectable text.
"""

import logging
from typing import Optional

import httpx

from cv_optimizer.core.config import settings
from cv_optimizer.core.errors import OcrError

logger = logging.getLogger(__name__)


class OcrSpaceClient:
    def __init__(self, api_key: Optional[str] = None, url: Optional[str] = None, timeout: float = 60.0):
        self.api_key = api_key if api_key is not None else settings.OCR_SPACE_API_KEY
        self.url = url or settings.OCR_SPACE_URL
        self.timeout = timeout

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def _send_request(self, pdf_bytes: bytes) -> dict:
        async with httpx.AsyncClient() as client:
            response = await client.post(
                self.url,
                data={
                    "apikey": self.api_key,
                    "language": "eng",
                    "isOverlayRequired": "false",
                    "filetype": "PDF",
                    "detectOrientation": "true",
                    "scale": "true",
                    "OCREngine": "2",
                },
                files={"file": ("resume.pdf", pdf_bytes, "application/pdf")},
                timeout=self.timeout,
            )
        if response.status_code != 200:
            raise OcrError(f"OCR API returned {response.status_code}")
        return response.json()

    async def extract_text(self, pdf_bytes: bytes) -> Optional[str]:
        """Plain text of all parsed pages, or None when OCR is unavailable or fails."""
        if not self.configured:
            logger.warning("[OCR] OCR_SPACE_API_KEY not configured, skipping OCR")
            return None

        try:
            data = await self._send_request(pdf_bytes)
            if data.get("IsErroredOnProcessing"):
                messages = data.get("ErrorMessage") or ["OCR processing failed"]
                raise OcrError(messages[0] if isinstance(messages, list) else str(messages))
        except (httpx.HTTPError, OcrError, ValueError) as e:
            logger.error(f"[OCR] OCR error: {e}")
            return None

        text = "\n".join(r.get("ParsedText") or "" for r in data.get("ParsedResults") or [])
        logger.info(f"[OCR] Recovered {len(text)} characters")
        return text or None
