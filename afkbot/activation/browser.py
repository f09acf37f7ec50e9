"""Camoufox browser automation: launch, page primitives, teardown."""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from camoufox.async_api import AsyncCamoufox
from playwright.async_api import BrowserContext, Error as PlaywrightError, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..config import BROWSER_HEADLESS, BROWSER_TIMEOUT
from ..errors import PageDetachedError, PageStateError

logger = logging.getLogger(__name__)

_DETACHED_MARKERS = ("detached", "closed", "target crashed")


def is_detached_error(exc: BaseException) -> bool:
    """Whether a browser error means the page handle is no longer usable."""
    message = str(exc).lower()
    return any(marker in message for marker in _DETACHED_MARKERS)


class ControlSession:
    """Owns one Camoufox browser, its context and the active page.

    Every page primitive translates Playwright failures into
    PageStateError (timeouts, missing elements) or PageDetachedError
    (page closed or detached).
    """

    def __init__(self, headless: Optional[bool] = None, timeout_ms: int = BROWSER_TIMEOUT):
        self._headless = BROWSER_HEADLESS if headless is None else headless
        self._timeout_ms = timeout_ms
        self._camoufox = None
        self._browser = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None

    @property
    def is_running(self) -> bool:
        return self._page is not None

    @property
    def is_closed(self) -> bool:
        return self._page is None or self._page.is_closed()

    @property
    def url(self) -> str:
        return self._page.url if self._page else ""

    async def start(self) -> None:
        if self.is_running:
            return

        logger.info(f"Launching Camoufox (headless={self._headless})...")
        self._camoufox = AsyncCamoufox(headless=self._headless, humanize=True)
        self._browser = await self._camoufox.__aenter__()
        self._context = await self._browser.new_context(viewport={"width": 1366, "height": 768})
        await self._new_page()

    async def _new_page(self) -> None:
        self._page = await self._context.new_page()
        self._page.set_default_timeout(self._timeout_ms)
        self._page.set_default_navigation_timeout(self._timeout_ms)

    async def recover(self) -> None:
        """Replace a closed/detached page with a fresh one in the same context."""
        if self._browser is None or not self._browser.is_connected():
            raise PageDetachedError("Browser is not connected")
        logger.info("Opening a fresh page after detach...")
        try:
            if self._page and not self._page.is_closed():
                await self._page.close()
        except PlaywrightError as e:
            logger.warning(f"Error closing stale page: {e}")
        try:
            await self._new_page()
        except PlaywrightError as e:
            raise PageDetachedError(f"Could not open a new page: {e}") from e

    def _require_page(self) -> Page:
        if self.is_closed:
            raise PageDetachedError("Page is closed")
        return self._page

    def _translate(self, exc: Exception, action: str) -> Exception:
        if isinstance(exc, (PlaywrightTimeoutError, asyncio.TimeoutError)):
            return PageStateError(f"Timed out while {action}")
        if is_detached_error(exc):
            return PageDetachedError(f"Page detached while {action}: {exc}")
        return PageStateError(f"Failed while {action}: {exc}")

    # ── Page primitives ─────────────────────────────────────────────────────

    async def goto(self, url: str, wait_until: str = "domcontentloaded", timeout: Optional[float] = None) -> None:
        page = self._require_page()
        timeout_ms = timeout * 1000 if timeout is not None else self._timeout_ms
        try:
            await page.goto(url, wait_until=wait_until, timeout=timeout_ms)
        except PlaywrightTimeoutError as e:
            logger.warning(f"Navigation timeout, trying with longer wait: {e}")
            try:
                await page.goto(url, wait_until="commit", timeout=timeout_ms * 2)
            except PlaywrightError as retry_error:
                raise self._translate(retry_error, f"navigating to {url}") from retry_error
        except PlaywrightError as e:
            raise self._translate(e, f"navigating to {url}") from e

    async def wait_for(self, selector: str, timeout: float) -> None:
        page = self._require_page()
        try:
            await page.wait_for_selector(selector, timeout=timeout * 1000)
        except PlaywrightError as e:
            raise self._translate(e, f"waiting for {selector}") from e

    async def read_text(self, selector: str, timeout: float = 10.0) -> Optional[str]:
        """Read an element's text, or None if it is absent.

        Raced against an explicit timeout: text_content has no timeout of its own
        once the element handle has been resolved.
        """
        page = self._require_page()
        try:
            element = await page.query_selector(selector)
            if element is None:
                return None
            return await asyncio.wait_for(element.text_content(), timeout)
        except (PlaywrightError, asyncio.TimeoutError) as e:
            raise self._translate(e, f"reading {selector}") from e

    async def read_all_text(self, selector: str) -> list[str]:
        page = self._require_page()
        try:
            return [text.strip() for text in await page.locator(selector).all_text_contents()]
        except PlaywrightError as e:
            raise self._translate(e, f"reading {selector}") from e

    async def is_visible(self, selector: str) -> bool:
        page = self._require_page()
        try:
            return await page.locator(selector).first.is_visible()
        except PlaywrightError as e:
            raise self._translate(e, f"checking {selector}") from e

    async def click(self, selector: str, index: int = 0, timeout: Optional[float] = None) -> None:
        page = self._require_page()
        kwargs = {"timeout": timeout * 1000} if timeout is not None else {}
        try:
            await page.locator(selector).nth(index).click(**kwargs)
        except PlaywrightError as e:
            raise self._translate(e, f"clicking {selector}") from e

    async def type(self, selector: str, text: str) -> None:
        page = self._require_page()
        try:
            await page.locator(selector).first.press_sequentially(text)
        except PlaywrightError as e:
            raise self._translate(e, f"typing into {selector}") from e

    async def submit(self, selector: str) -> None:
        """Click a form submit control and wait for the resulting navigation to settle."""
        page = self._require_page()
        try:
            async with page.expect_navigation(wait_until="networkidle", timeout=self._timeout_ms):
                await page.click(selector)
        except PlaywrightError as e:
            raise self._translate(e, f"submitting via {selector}") from e

    async def cookies(self) -> list[dict]:
        try:
            return await self._context.cookies()
        except PlaywrightError as e:
            raise self._translate(e, "reading cookies") from e

    async def add_cookies(self, cookies: list[dict]) -> None:
        try:
            await self._context.add_cookies(cookies)
        except PlaywrightError as e:
            raise self._translate(e, "applying cookies") from e

    # ── Teardown ────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Close the context and browser. Safe to call more than once."""
        try:
            if self._context:
                await self._context.close()
        except Exception as e:
            logger.warning(f"Error closing context: {e}")
        finally:
            self._context = None
            self._page = None

        try:
            if self._camoufox:
                await self._camoufox.__aexit__(None, None, None)
                logger.info("Browser closed")
        except Exception as e:
            logger.warning(f"Error closing camoufox: {e}")
        finally:
            self._camoufox = None
            self._browser = None
