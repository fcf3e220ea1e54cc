"""Browser lifecycle management with Playwright.

This module provides BrowserManager, which owns one Chromium instance and the
single page used for a whole run. The portal's layout depends on the window
size, so the page always gets the same fixed viewport.
"""

from typing import Any

import structlog
from playwright.async_api import Browser, Page, Playwright, async_playwright

logger = structlog.get_logger(__name__)

VIEWPORT = {"width": 1200, "height": 720}


class BrowserManager:
    """Owns the Playwright Chromium instance and its single page.

    Usage:
        async with BrowserManager(headless=True) as page:
            ... use page ...
        # or
        manager = BrowserManager(headless=True)
        page = await manager.launch()
        ...
        await manager.close()
    """

    def __init__(
        self,
        headless: bool = True,
        viewport: dict[str, int] | None = None,
        timeout_ms: int = 30000,
    ) -> None:
        self.headless = headless
        self.viewport = viewport or dict(VIEWPORT)
        self.timeout_ms = timeout_ms
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    @property
    def page(self) -> Page | None:
        return self._page

    async def launch(self) -> Page:
        """Start Playwright, launch Chromium and open the working page.

        Raises:
            RuntimeError: If the browser fails to launch.
        """
        if self._page is not None:
            logger.info("browser_already_launched")
            return self._page

        try:
            logger.info("launching_browser", headless=self.headless)
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox"],
            )
            self._page = await self._browser.new_page(viewport=self.viewport)
            self._page.set_default_timeout(self.timeout_ms)
            logger.info("browser_launched", viewport=self.viewport)
            return self._page

        except Exception as e:
            logger.error("browser_launch_failed", error=str(e), exc_info=True)
            await self.close()
            raise RuntimeError(f"Failed to launch browser: {e}") from e

    async def close(self) -> None:
        """Close page, browser and Playwright.

        Errors are logged, never raised, so closing always runs to the end.
        """
        if self._page is not None:
            try:
                await self._page.close()
            except Exception as e:
                logger.warning("error_closing_page", error=str(e))
            finally:
                self._page = None

        if self._browser is not None:
            logger.info("closing_browser")
            try:
                await self._browser.close()
            except Exception as e:
                logger.warning("error_closing_browser", error=str(e))
            finally:
                self._browser = None

        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as e:
                logger.warning("error_stopping_playwright", error=str(e))
            finally:
                self._playwright = None

    async def __aenter__(self) -> Page:
        return await self.launch()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
