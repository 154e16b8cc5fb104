"""
HTML -> PDF rendering through a shared headless Chromium.

One browser is launched lazily and reused; concurrent renders are bounded
by a semaphore and each render gets its own isolated browser context.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from cv_optimizer.core.config import settings
from cv_optimizer.core.errors import RenderingError
from cv_optimizer.schemas.optimizer import HtmlToPdfOptions

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
]

# CSS pixels at 96 dpi
VIEWPORTS = {
    "A4": {"width": 794, "height": 1123},
    "LETTER": {"width": 816, "height": 1056},
}


class BrowserPool:
    def __init__(self, size: Optional[int] = None):
        self.size = max(1, size or settings.BROWSER_POOL_SIZE)
        self._semaphore = asyncio.Semaphore(self.size)
        self._lock = asyncio.Lock()
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None

    @property
    def started(self) -> bool:
        return self._browser is not None and self._browser.is_connected()

    async def start(self) -> Browser:
        async with self._lock:
            if self.started:
                return self._browser
            if self._browser is not None:
                logger.warning("[RENDER] Browser disconnected, relaunching")
                await self._shutdown()
            logger.info(f"[RENDER] Launching Chromium (pool size {self.size})")
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(headless=True, args=CHROMIUM_ARGS)
            return self._browser

    async def _shutdown(self):
        if self._browser is not None:
            try:
                await self._browser.close()
            except PlaywrightError as e:
                logger.warning(f"[RENDER] Error closing browser: {e}")
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def close(self):
        async with self._lock:
            await self._shutdown()
            logger.info("[RENDER] Browser pool closed")

    @asynccontextmanager
    async def page(self, viewport: Optional[dict] = None) -> AsyncIterator[Page]:
        async with self._semaphore:
            browser = await self.start()
            context = await browser.new_context(viewport=viewport)
            try:
                yield await context.new_page()
            finally:
                await context.close()


def inject_css(html: str, css: Optional[str]) -> str:
    """Place a <style> block before </head>, or prepend one when there is no head."""
    if not css:
        return html
    style = f"<style>{css}</style>"
    idx = html.lower().find("</head>")
    if idx == -1:
        return style + html
    return html[:idx] + style + html[idx:]


async def render_html_to_pdf(
    pool: BrowserPool,
    html: str,
    css: Optional[str] = None,
    options: Optional[HtmlToPdfOptions] = None,
) -> bytes:
    options = options or HtmlToPdfOptions()
    fmt = options.format or "A4"
    viewport = VIEWPORTS.get(fmt.upper(), VIEWPORTS["A4"])
    document = inject_css(html, css)

    try:
        async with pool.page(viewport=viewport) as page:
            await page.set_content(document, wait_until="networkidle", timeout=settings.RENDER_TIMEOUT_MS)
            pdf_bytes = await page.pdf(
                format=fmt,
                margin=options.margin.model_dump(),
                print_background=options.print_background,
                scale=options.scale,
            )
    except PlaywrightError as e:
        logger.error(f"[RENDER] HTML to PDF conversion failed: {e}")
        raise RenderingError(f"Failed to convert HTML to PDF: {e}") from e

    logger.info(f"[RENDER] Rendered {len(pdf_bytes)} bytes ({fmt})")
    return pdf_bytes
