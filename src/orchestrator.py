"""Runs one notification pass over every configured account.

One browser session is shared by all accounts, which are processed strictly
in configured order since statement buttons are matched by position. A failure
on one account is logged and the run moves on; only a login failure or a
failure to persist state stops the whole run.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

import structlog
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import Page

from src.browser.auth import AuthManager
from src.browser.context import BrowserManager
from src.browser.navigator import StatementError, StatementNavigator
from src.browser.parser import StatementParser
from src.config import BankConfig, Settings
from src.diff import compute_pending
from src.models import ParseDataError
from src.notifier import NotifyError, WebhookNotifier
from src.state import PersistenceError, StateStore

logger = structlog.get_logger(__name__)

STATUS_OK = "ok"
STATUS_FAILED = "failed"


@dataclass
class RunContext:
    """Everything a run needs, built once at startup."""

    settings: Settings
    bank: BankConfig
    selectors: dict[str, Any]
    state: StateStore
    notifier: WebhookNotifier


@dataclass
class AccountOutcome:
    account: str
    status: str
    pending: int = 0
    balance: Decimal | None = None
    error: str | None = None


@dataclass
class RunReport:
    outcomes: list[AccountOutcome] = field(default_factory=list)
    state: dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> list[str]:
        return [o.account for o in self.outcomes if o.status == STATUS_FAILED]


class Orchestrator:
    """Sequences login, per-account statement processing and logout.

    Attributes:
        context: Shared run context.
        browser: Browser lifecycle owner.
        auth: Login/logout handler.
        navigator: Statement navigation.
        parser: Statement extraction.
    """

    def __init__(
        self,
        context: RunContext,
        browser: BrowserManager | None = None,
        auth: AuthManager | None = None,
        navigator: StatementNavigator | None = None,
        parser: StatementParser | None = None,
    ) -> None:
        settings = context.settings
        self.context = context
        self.browser = browser or BrowserManager(
            headless=context.bank.headless,
            timeout_ms=settings.browser_timeout_ms,
        )
        self.auth = auth or AuthManager(
            context.bank, context.selectors, settings.netbanking_url
        )
        self.navigator = navigator or StatementNavigator(context.selectors)
        self.parser = parser or StatementParser(
            date_format=settings.statement_date_format,
            selectors=context.selectors["statement"],
        )

    async def run(self) -> RunReport:
        """Process every configured account in order.

        Returns:
            RunReport with one outcome per processed account and the
            resulting state.

        Raises:
            LoginError: If login fails; no account is processed.
            PersistenceError: If a marker could not be saved.
        """
        report = RunReport()
        page = await self.browser.launch()
        logged_in = False
        try:
            await self.auth.login(page)
            logged_in = True

            for index, account in enumerate(self.context.bank.accounts):
                outcome = await self.process_account(page, index, account)
                report.outcomes.append(outcome)
        finally:
            if logged_in:
                await self.auth.logout(page)
            await self.browser.close()
            report.state = self.context.state.snapshot()

        logger.info(
            "run_complete",
            accounts=len(report.outcomes),
            failed=report.failed,
        )
        return report

    async def process_account(self, page: Page, index: int, account: str) -> AccountOutcome:
        """Fetch, diff, notify and persist for one account.

        Raises:
            PersistenceError: If the new marker could not be written.
        """
        log = logger.bind(account=account, account_index=index)
        log.info("account_processing_started")

        phase = "open_statement"
        try:
            form = await self.navigator.open_statement_form(page, index, account)

            phase = "parse"
            statement = await self.parser.parse(form)
        except (StatementError, ParseDataError, PlaywrightError) as e:
            log.error("account_statement_failed", phase=phase, error=str(e))
            # Leave the page in a known state for the next account
            await self.navigator.return_to_summary(page)
            return AccountOutcome(account, STATUS_FAILED, error=str(e))

        await self.navigator.return_to_summary(page)

        previous_marker = self.context.state.get(account)
        pending, marker = compute_pending(statement.transactions, previous_marker)
        log.info(
            "statement_diffed",
            balance=str(statement.balance),
            transactions=len(statement.transactions),
            pending=len(pending),
        )

        if not pending:
            log.info("nothing_to_notify")

        for position, transaction in enumerate(pending, start=1):
            log.info("notifying", progress=f"{position}/{len(pending)}")
            try:
                await self.context.notifier.notify(transaction, account)
            except NotifyError as e:
                # Marker stays put so the remaining transactions are retried
                log.error(
                    "account_notify_failed",
                    phase="notify",
                    delivered=position - 1,
                    error=str(e),
                )
                return AccountOutcome(
                    account,
                    STATUS_FAILED,
                    pending=len(pending),
                    balance=statement.balance,
                    error=str(e),
                )

        if marker is not None:
            try:
                self.context.state.update(account, marker)
            except PersistenceError as e:
                log.error("account_persist_failed", phase="persist", error=str(e))
                raise

        log.info("account_processing_complete", notified=len(pending))
        return AccountOutcome(
            account, STATUS_OK, pending=len(pending), balance=statement.balance
        )
