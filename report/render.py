# report/render.py
import logging
from typing import Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Playwright, async_playwright

logger = logging.getLogger(__name__)

RENDER_WIDTH = 800
RENDER_TIMEOUT_MS = 10_000
PDF_FORMAT = "A4"
PDF_MARGIN = {"top": "15mm", "bottom": "15mm", "left": "14mm", "right": "14mm"}

# portrait page heights in mm, for the formats page.pdf() accepts
PAGE_HEIGHTS_MM = {
    "Letter": 279.4,
    "Legal": 355.6,
    "Tabloid": 431.8,
    "Ledger": 279.4,
    "A0": 1189.0,
    "A1": 841.0,
    "A2": 594.0,
    "A3": 420.0,
    "A4": 297.0,
    "A5": 210.0,
    "A6": 148.0,
}
# room left on a capture page for its caption and spacing
CAPTION_RESERVE_MM = 25.0


def capture_max_height_mm(pdf_format: str = PDF_FORMAT) -> float:
    """Tallest capture image that still fits on one page with its caption."""
    heights = {name.lower(): mm for name, mm in PAGE_HEIGHTS_MM.items()}
    height = heights.get((pdf_format or "").lower())
    if height is None:
        logger.warning("unknown page format %r, sizing captures for %s", pdf_format, PDF_FORMAT)
        height = PAGE_HEIGHTS_MM[PDF_FORMAT]
    margins = sum(float(PDF_MARGIN[side].rstrip("m")) for side in ("top", "bottom"))
    return round(height - margins - CAPTION_RESERVE_MM, 1)


# Fragment goes into a fixed-width root so output does not depend on any viewport.
CAPTURE_DOCUMENT = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<style>
  html, body { margin: 0; padding: 0; background: #ffffff; }
  #capture-root { width: %WIDTH%px; background: #ffffff; overflow: hidden; }
</style>
</head>
<body><div id="capture-root">%FRAGMENT%</div></body>
</html>
"""


class RenderError(Exception):
    """One capture could not be turned into an image."""


class CaptureRenderer(Protocol):
    async def render(self, html: str) -> bytes: ...


class PdfPrinter(Protocol):
    async def print_pdf(self, html: str) -> bytes: ...


class BrowserRenderer:
    """Headless Chromium used for both capture rasterizing and PDF printing.

    Use as ``async with BrowserRenderer() as r``. Each call gets a fresh page
    so a broken fragment cannot leak state into the next one. Scripts inside
    captured markup are never executed.
    """

    def __init__(
        self,
        width: int = RENDER_WIDTH,
        timeout_ms: int = RENDER_TIMEOUT_MS,
        pdf_format: str = PDF_FORMAT,
    ):
        self.width = width
        self.timeout_ms = timeout_ms
        self.pdf_format = pdf_format
        self._pw: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    async def __aenter__(self):
        self._pw = await async_playwright().start()
        try:
            self._browser = await self._pw.chromium.launch(headless=True)
            self._context = await self._browser.new_context(
                viewport={"width": self.width, "height": 600},
                device_scale_factor=1,
                java_script_enabled=False,
            )
        except Exception:
            await self._pw.stop()
            raise
        return self

    async def __aexit__(self, *exc):
        try:
            if self._context is not None:
                await self._context.close()
            if self._browser is not None:
                await self._browser.close()
        finally:
            if self._pw is not None:
                await self._pw.stop()
            self._pw = self._browser = self._context = None

    def _require_context(self) -> BrowserContext:
        if self._context is None:
            raise RuntimeError("BrowserRenderer used outside 'async with'")
        return self._context

    async def render(self, html: str) -> bytes:
        page = await self._require_context().new_page()
        try:
            doc = CAPTURE_DOCUMENT.replace("%WIDTH%", str(self.width)).replace("%FRAGMENT%", html)
            await page.set_content(doc, wait_until="load", timeout=self.timeout_ms)
            root = page.locator("#capture-root")
            box = await root.bounding_box()
            if not box or box["height"] <= 0:
                raise RenderError("capture has no visible content")
            return await root.screenshot(type="png", timeout=self.timeout_ms)
        except RenderError:
            raise
        except Exception as e:
            raise RenderError(str(e).splitlines()[0] if str(e) else type(e).__name__) from e
        finally:
            await page.close()

    async def print_pdf(self, html: str) -> bytes:
        page = await self._require_context().new_page()
        try:
            await page.set_content(html, wait_until="load", timeout=self.timeout_ms)
            await page.emulate_media(media="print")
            return await page.pdf(
                format=self.pdf_format,
                print_background=True,
                margin=PDF_MARGIN,
            )
        finally:
            await page.close()
