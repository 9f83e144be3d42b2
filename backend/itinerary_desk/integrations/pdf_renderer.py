from __future__ import annotations

import logging

from itinerary_desk.core.errors import TransportError

logger = logging.getLogger(__name__)

PAGE_MARGIN = {"top": "12mm", "bottom": "12mm", "left": "12mm", "right": "12mm"}


class PlaywrightPdfRenderer:
    """Print an HTML document to A4 PDF with headless Chromium."""

    def __init__(self, *, timeout_ms: int = 30_000) -> None:
        self._timeout_ms = timeout_ms

    def render(self, html_content: str) -> bytes:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    page = browser.new_page()
                    page.set_content(
                        html_content,
                        wait_until="networkidle",
                        timeout=self._timeout_ms,
                    )
                    return page.pdf(
                        format="A4",
                        print_background=True,
                        margin=PAGE_MARGIN,
                    )
                finally:
                    browser.close()
        except PlaywrightError as exc:
            logger.warning("PDF rendering failed: %s", type(exc).__name__)
            raise TransportError("Could not generate the PDF. Please try again.") from exc
