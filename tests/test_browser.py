"""Tests for browser-side flows: retries, login/logout and navigation.

Playwright pages and frames are replaced by lightweight fakes so the
frame-walking logic can be exercised without a browser.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from src.browser import context as context_module
from src.browser.auth import AuthManager, LoginError
from src.browser.context import VIEWPORT, BrowserManager
from src.browser.navigator import StatementError, StatementNavigator
from src.browser.retry import TransientUIError, retry_async
from tests.helpers import FakePage, fake_element

PORTAL_URL = "https://netbanking.example/netbanking/"


class FlakyError(Exception):
    pass


class GaveUp(Exception):
    pass


# Retry loop


@pytest.mark.asyncio
async def test_retry_returns_first_success():
    operation = AsyncMock(side_effect=[FlakyError("first"), "done"])

    result = await retry_async(operation, action="test", error_cls=GaveUp, delay=0)

    assert result == "done"
    assert operation.await_count == 2


@pytest.mark.asyncio
async def test_retry_raises_error_cls_when_exhausted():
    operation = AsyncMock(side_effect=TransientUIError("missing"))

    with pytest.raises(GaveUp, match="after 3 attempts") as exc_info:
        await retry_async(operation, action="test", error_cls=GaveUp, delay=0)

    assert operation.await_count == 3
    assert isinstance(exc_info.value.__cause__, TransientUIError)


@pytest.mark.asyncio
async def test_retry_sleeps_between_attempts_only(monkeypatch):
    sleep = AsyncMock()
    monkeypatch.setattr("src.browser.retry.asyncio.sleep", sleep)
    operation = AsyncMock(side_effect=FlakyError("nope"))

    with pytest.raises(GaveUp):
        await retry_async(
            operation, action="test", error_cls=GaveUp, max_attempts=3, delay=1.0
        )

    assert sleep.await_count == 2
    sleep.assert_awaited_with(1.0)


# Login / logout


def _auth(bank_config, selectors, **kwargs):
    kwargs.setdefault("retry_delay", 0)
    return AuthManager(bank_config, selectors, PORTAL_URL, **kwargs)


@pytest.mark.asyncio
async def test_login_fills_credentials_in_frame(bank_config, selectors):
    frame = AsyncMock()
    page = FakePage({"frame": frame})

    await _auth(bank_config, selectors).login(page)

    page.goto.assert_awaited_once_with(PORTAL_URL, wait_until="networkidle")
    frame.type.assert_any_await('input[name="fldLoginUserId"]', "12345678")
    frame.type.assert_any_await('input[name="fldPassword"]', "hunter2")
    frame.wait_for_selector.assert_awaited_once_with('input[name="fldPassword"]')
    clicked = [call.args[0] for call in frame.click.await_args_list]
    assert clicked == ["a.login-btn", "a.login-btn"]
    assert page.navigations == 1


@pytest.mark.asyncio
async def test_login_ticks_secure_access_when_enabled(bank_config, selectors):
    config = bank_config.model_copy(update={"secure_access": True})
    frame = AsyncMock()
    page = FakePage({"frame": frame})

    await _auth(config, selectors).login(page)

    frame.click.assert_any_await('input[name="chkrsastu"]')


@pytest.mark.asyncio
async def test_login_retries_after_transient_failure(bank_config, selectors):
    frame = AsyncMock()
    frame.type.side_effect = [TimeoutError("slow"), None, None]
    page = FakePage({"frame": frame})

    await _auth(bank_config, selectors).login(page)

    assert page.goto.await_count == 2
    assert page.navigations == 1


@pytest.mark.asyncio
async def test_login_gives_up_after_three_attempts(bank_config, selectors):
    page = FakePage({})

    with pytest.raises(LoginError):
        await _auth(bank_config, selectors).login(page)

    assert page.goto.await_count == 3
    assert page.navigations == 0


@pytest.mark.asyncio
async def test_logout_clicks_in_menu_frame(bank_config, selectors):
    frame = AsyncMock()
    page = FakePage({'frame[name="common_menu1"]': frame})

    assert await _auth(bank_config, selectors).logout(page) is True

    frame.click.assert_awaited_once_with('img[alt="Log Out"]')
    assert page.navigations == 1


@pytest.mark.asyncio
async def test_logout_is_bounded(bank_config, selectors):
    page = FakePage({})

    result = await _auth(bank_config, selectors, logout_max_attempts=4).logout(page)

    assert result is False
    assert page.waited.count('frame[name="common_menu1"]') == 4


# Statement navigation


def _main_frame(button_count):
    frame = AsyncMock()
    buttons = [fake_element() for _ in range(button_count)]
    frame.query_selector_all.return_value = buttons
    frame.wait_for_selector.return_value = "statement-form"
    return frame, buttons


@pytest.mark.asyncio
async def test_open_statement_clicks_button_at_index(selectors):
    frame, buttons = _main_frame(3)
    page = FakePage({'frame[name="main_part"]': frame})
    navigator = StatementNavigator(selectors, retry_delay=0)

    form = await navigator.open_statement_form(page, 1, "Salary")

    assert form == "statement-form"
    frame.click.assert_awaited_once_with("td.PSMSubHeader")
    frame.query_selector_all.assert_awaited_once_with("a.viewbtngrey")
    buttons[1].click.assert_awaited_once()
    buttons[0].click.assert_not_awaited()
    frame.wait_for_selector.assert_awaited_once_with('form[name="frmTxn"]')


@pytest.mark.asyncio
async def test_open_statement_missing_button_exhausts_retries(selectors):
    frame, _ = _main_frame(1)
    page = FakePage({'frame[name="main_part"]': frame})
    navigator = StatementNavigator(selectors, retry_delay=0)

    with pytest.raises(StatementError, match="index 2"):
        await navigator.open_statement_form(page, 2)

    assert frame.query_selector_all.await_count == 3


@pytest.mark.asyncio
async def test_open_statement_recovers_when_frame_appears(selectors):
    frame, buttons = _main_frame(1)
    page = FakePage({})
    calls = 0
    original = page.wait_for_selector

    async def appear_on_second_try(selector, **kwargs):
        nonlocal calls
        calls += 1
        if calls == 2:
            page.frames['frame[name="main_part"]'] = frame
        return await original(selector, **kwargs)

    page.wait_for_selector = appear_on_second_try
    navigator = StatementNavigator(selectors, retry_delay=0)

    assert await navigator.open_statement_form(page, 0) == "statement-form"
    buttons[0].click.assert_awaited_once()


@pytest.mark.asyncio
async def test_return_to_summary_clicks_menu_link(selectors):
    link = fake_element()
    menu = fake_element(children={"li.menu-summary.active a": [link]})
    page = FakePage({'frame[name="left_menu"]': menu})

    assert await StatementNavigator(selectors, retry_delay=0).return_to_summary(page)

    link.click.assert_awaited_once()


@pytest.mark.asyncio
async def test_return_to_summary_is_best_effort(selectors):
    menu = fake_element()
    page = FakePage({'frame[name="left_menu"]': menu})

    result = await StatementNavigator(selectors, retry_delay=0).return_to_summary(page)

    assert result is False
    assert menu.query_selector.await_count == 3


# Browser lifecycle


def _fake_playwright(monkeypatch):
    page = MagicMock()
    page.close = AsyncMock()
    browser = MagicMock()
    browser.new_page = AsyncMock(return_value=page)
    browser.close = AsyncMock()
    playwright = MagicMock()
    playwright.chromium.launch = AsyncMock(return_value=browser)
    playwright.stop = AsyncMock()
    starter = MagicMock()
    starter.start = AsyncMock(return_value=playwright)
    monkeypatch.setattr(context_module, "async_playwright", lambda: starter)
    return playwright, browser, page


@pytest.mark.asyncio
async def test_browser_launch_and_close(monkeypatch):
    playwright, browser, page = _fake_playwright(monkeypatch)
    manager = BrowserManager(headless=False, timeout_ms=5000)

    assert await manager.launch() is page

    playwright.chromium.launch.assert_awaited_once_with(
        headless=False, args=["--no-sandbox"]
    )
    browser.new_page.assert_awaited_once_with(viewport=VIEWPORT)
    page.set_default_timeout.assert_called_once_with(5000)

    await manager.close()

    page.close.assert_awaited_once()
    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()
    assert manager.page is None


@pytest.mark.asyncio
async def test_browser_close_survives_errors(monkeypatch):
    playwright, browser, page = _fake_playwright(monkeypatch)
    page.close.side_effect = RuntimeError("already closed")

    async with BrowserManager():
        pass

    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()


@pytest.mark.asyncio
async def test_browser_launch_failure_cleans_up(monkeypatch):
    playwright, browser, _ = _fake_playwright(monkeypatch)
    browser.new_page.side_effect = Exception("crash")

    with pytest.raises(RuntimeError, match="Failed to launch browser"):
        await BrowserManager().launch()

    browser.close.assert_awaited_once()
    playwright.stop.assert_awaited_once()
