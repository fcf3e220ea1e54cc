"""Helpers for the portal's frameset layout."""

import structlog
from playwright.async_api import Frame, Page

from src.browser.retry import TransientUIError

logger = structlog.get_logger(__name__)


async def resolve_frame(page: Page, selector: str) -> Frame:
    """Wait for a ``<frame>`` element and return its content frame.

    Raises:
        TransientUIError: If the element has no attached content frame.
    """
    frame_element = await page.wait_for_selector(selector)
    frame = await frame_element.content_frame() if frame_element else None
    if frame is None:
        raise TransientUIError(f"Frame not available: {selector}")

    logger.debug("frame_resolved", selector=selector)
    return frame
