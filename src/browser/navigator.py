"""Navigation from the account summary to a statement and back.

Accounts are told apart only by position: the n-th "view statement" button on
the summary page belongs to the n-th configured account.
"""

from typing import Any

import structlog
from playwright.async_api import ElementHandle, Page

from src.browser.frames import resolve_frame
from src.browser.retry import (
    MAX_ATTEMPTS,
    RETRY_DELAY_SECONDS,
    TransientUIError,
    retry_async,
)

logger = structlog.get_logger(__name__)


class StatementError(Exception):
    """Raised when the statement form cannot be reached for an account."""

    pass


class NavigationError(Exception):
    """Raised internally when returning to the summary keeps failing."""

    pass


class StatementNavigator:
    """Drives the summary page frames to reach statement forms.

    Attributes:
        selectors: The ``statement`` selector group.
    """

    def __init__(
        self,
        selectors: dict[str, Any],
        *,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY_SECONDS,
    ) -> None:
        self.selectors = selectors["statement"]
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay

    async def open_statement_form(
        self, page: Page, account_index: int, account: str | None = None
    ) -> ElementHandle:
        """Open the statement of the account at ``account_index``.

        Args:
            page: Logged-in page showing the frameset.
            account_index: Position of the account's "view statement" button.
            account: Account label, used for logging only.

        Returns:
            Handle of the loaded statement form.

        Raises:
            StatementError: If all attempts fail.
        """
        form = await retry_async(
            lambda: self._open_once(page, account_index),
            action="open_statement",
            error_cls=StatementError,
            max_attempts=self._max_attempts,
            delay=self._retry_delay,
            account=account,
            account_index=account_index,
        )
        logger.info("statement_opened", account=account, account_index=account_index)
        return form

    async def return_to_summary(self, page: Page) -> bool:
        """Go back to the account summary, best-effort.

        Returns:
            True on success, False if every attempt failed.
        """
        try:
            await retry_async(
                lambda: self._return_once(page),
                action="return_to_summary",
                error_cls=NavigationError,
                max_attempts=self._max_attempts,
                delay=self._retry_delay,
            )
        except NavigationError as e:
            logger.warning("return_to_summary_abandoned", error=str(e))
            return False

        return True

    async def _open_once(self, page: Page, account_index: int) -> ElementHandle:
        main_frame = await resolve_frame(page, self.selectors["main_part_frame"])

        # Expand the savings accounts section
        await main_frame.click(self.selectors["savings_table_header"])

        buttons = await main_frame.query_selector_all(
            self.selectors["view_statement_button"]
        )
        if account_index >= len(buttons):
            raise TransientUIError(
                f"No statement button at index {account_index} "
                f"({len(buttons)} found)"
            )
        await buttons[account_index].click()

        form = await main_frame.wait_for_selector(self.selectors["statement_form"])
        if form is None:
            raise TransientUIError("Statement form did not appear")
        return form

    async def _return_once(self, page: Page) -> None:
        menu_frame = await resolve_frame(page, self.selectors["left_menu_frame"])
        summary_link = await menu_frame.query_selector(
            self.selectors["account_summary_link"]
        )
        if summary_link is None:
            raise TransientUIError("Account summary link not found")
        await summary_link.click()
