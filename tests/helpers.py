"""Playwright fakes and record builders shared by the tests."""

from datetime import date
from decimal import Decimal
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

from src.models import TransactionRecord

SELECTORS_PATH = Path(__file__).resolve().parent.parent / "src" / "selectors.yaml"


class FakeNavigation:
    """Stands in for the context manager returned by page.expect_navigation."""

    def __init__(self, page: "FakePage") -> None:
        self.page = page

    async def __aenter__(self) -> "FakeNavigation":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.page.navigations += 1
        return False


class FakePage:
    """Minimal Playwright page exposing named frames.

    Args:
        frames: Mapping of frame selector to the frame object returned by
            ``content_frame()``. Unknown selectors time out.
    """

    def __init__(self, frames: dict | None = None) -> None:
        self.frames = frames or {}
        self.url = "https://netbanking.example/netbanking/"
        self.goto = AsyncMock()
        self.navigations = 0
        self.waited: list[str] = []

    async def wait_for_selector(self, selector, **kwargs):
        self.waited.append(selector)
        if selector not in self.frames:
            raise TimeoutError(f"Timeout waiting for {selector}")
        element = MagicMock()
        element.content_frame = AsyncMock(return_value=self.frames[selector])
        return element

    def expect_navigation(self, **kwargs) -> FakeNavigation:
        return FakeNavigation(self)


def fake_element(text: str = "", children: dict | None = None) -> MagicMock:
    """Element handle with inner_text and selector lookups over ``children``."""
    children = children or {}
    element = MagicMock()
    element.inner_text = AsyncMock(return_value=text)

    async def query_selector_all(selector):
        return list(children.get(selector, []))

    async def query_selector(selector):
        found = children.get(selector, [])
        return found[0] if found else None

    element.query_selector_all = AsyncMock(side_effect=query_selector_all)
    element.query_selector = AsyncMock(side_effect=query_selector)
    element.click = AsyncMock()
    return element


def make_transaction(
    ref: str,
    description: str | None = None,
    withdrawal: str = "0",
    deposit: str = "100.00",
    closing_balance: str = "1000.00",
) -> TransactionRecord:
    return TransactionRecord(
        id=ref,
        description=description if description is not None else f"UPI-{ref}",
        date=date(2024, 3, 1),
        value_date=date(2024, 3, 1),
        withdrawal=Decimal(withdrawal),
        deposit=Decimal(deposit),
        closing_balance=Decimal(closing_balance),
    )


