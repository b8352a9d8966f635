"""Playwright browser lifecycle for page-driven scrape scripts."""

from __future__ import annotations

import inspect
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from playwright.async_api import Browser, async_playwright

logger = logging.getLogger(__name__)


@asynccontextmanager
async def launch_browser(headful: bool = False, browser_name: str = "chromium") -> AsyncIterator[Browser]:
    playwright = await async_playwright().start()
    try:
        launcher = getattr(playwright, browser_name)
        logger.info("Launching %s (%s)", browser_name, "headful" if headful else "headless")
        browser = await launcher.launch(headless=not headful)
        try:
            yield browser
        finally:
            logger.info("Closing %s", browser_name)
            await browser.close()
    finally:
        await playwright.stop()


def bind_page_handler(browser: Browser, script: Callable[..., Any]) -> Callable[[Any], Any]:
    """Adapt ``script(page, item)`` into a handler that only takes the item.

    Every item gets its own tab, closed whether or not the script succeeds.
    """

    async def handle(item: Any) -> Any:
        logger.debug("Opening new browser tab")
        page = await browser.new_page()
        try:
            result = script(page, item)
            if inspect.isawaitable(result):
                result = await result
            return result
        finally:
            logger.debug("Closing browser tab")
            await page.close()

    return handle


__all__ = ["bind_page_handler", "launch_browser"]
