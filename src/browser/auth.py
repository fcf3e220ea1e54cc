"""Authentication for HDFC NetBanking.

This module handles login and logout. Both run inside frames of the portal's
frameset and are retried a bounded number of times with a fixed delay.

Login flow: Portal root → Customer ID → Continue → Password (+ secure access)
→ Login → Dashboard
"""

from typing import Any

import structlog
from playwright.async_api import Page

from src.browser.frames import resolve_frame
from src.browser.retry import MAX_ATTEMPTS, RETRY_DELAY_SECONDS, retry_async
from src.config import BankConfig

logger = structlog.get_logger(__name__)

LOGOUT_MAX_ATTEMPTS = 5


class LoginError(Exception):
    """Raised when login fails after all retries. Fatal for the whole run."""

    pass


class LogoutError(Exception):
    """Raised internally when logout keeps failing."""

    pass


class AuthManager:
    """Logs in to and out of NetBanking on a given page.

    Attributes:
        config: Credentials and login options.
        selectors: The ``login`` and ``logout`` selector groups.
        url: Portal root URL.
    """

    def __init__(
        self,
        config: BankConfig,
        selectors: dict[str, Any],
        url: str,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
        logout_max_attempts: int = LOGOUT_MAX_ATTEMPTS,
    ) -> None:
        self.config = config
        self.selectors = selectors["login"]
        self.logout_selectors = selectors["logout"]
        self.url = url
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._logout_max_attempts = logout_max_attempts

    async def login(self, page: Page) -> None:
        """Perform the full login flow with retry logic.

        Raises:
            LoginError: If login fails after all retries.
        """
        await retry_async(
            lambda: self._login_once(page),
            action="login",
            error_cls=LoginError,
            max_attempts=self._max_attempts,
            delay=self._retry_delay,
        )
        logger.info("login_successful", url=page.url)

    async def logout(self, page: Page) -> bool:
        """Log out, giving up after a bounded number of attempts.

        Returns:
            True if logout completed, False if every attempt failed.
        """
        try:
            await retry_async(
                lambda: self._logout_once(page),
                action="logout",
                error_cls=LogoutError,
                max_attempts=self._logout_max_attempts,
                delay=self._retry_delay,
            )
        except LogoutError as e:
            logger.warning("logout_abandoned", error=str(e))
            return False

        logger.info("logout_successful")
        return True

    async def _login_once(self, page: Page) -> None:
        await page.goto(self.url, wait_until="networkidle")
        logger.debug("navigated_to_login_page", url=page.url)

        frame = await resolve_frame(page, self.selectors["frame"])

        # Step 1: Customer ID
        await frame.type(self.selectors["customer_id_input"], self.config.customer_id)
        await frame.click(self.selectors["continue_button"])

        # Step 2: Password, revealed on the same frame
        await frame.wait_for_selector(self.selectors["password_input"])
        await frame.type(
            self.selectors["password_input"],
            self.config.password.get_secret_value(),
        )

        if self.config.secure_access:
            await frame.click(self.selectors["secure_access_checkbox"])

        # Step 3: Submit; the whole frameset is replaced by the dashboard
        async with page.expect_navigation(wait_until="networkidle"):
            await frame.click(self.selectors["login_button"])

    async def _logout_once(self, page: Page) -> None:
        frame = await resolve_frame(page, self.logout_selectors["frame"])
        async with page.expect_navigation(wait_until="networkidle"):
            await frame.click(self.logout_selectors["logout_button"])
