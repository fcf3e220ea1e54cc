"""Transaction notifications through a Telegram relay webhook.

Each new transaction becomes one Markdown message POSTed as
``{"text": ..., "secret": ...}`` to the relay. Failures raise NotifyError so
the caller can hold back the marker and retry on the next run.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx
import structlog

from src.models import TransactionRecord

logger = structlog.get_logger(__name__)


class NotifyError(Exception):
    """Raised when a notification could not be delivered."""

    pass


def format_inr(amount: Decimal) -> str:
    """Format an amount with Indian digit grouping, e.g. ``12,34,567.5``."""
    sign = "-" if amount < 0 else ""
    whole, _, fraction = f"{abs(amount):.2f}".partition(".")
    fraction = fraction.rstrip("0")

    head, tail = whole[:-3], whole[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    groups.append(tail)

    grouped = ",".join(groups)
    return f"{sign}{grouped}.{fraction}" if fraction else f"{sign}{grouped}"


def format_currency(amount: Decimal) -> str:
    return f"₹ `{format_inr(amount)}`"


def format_message(
    transaction: TransactionRecord,
    account: str,
    now: datetime | None = None,
) -> str:
    """Build the Markdown message for one transaction.

    Args:
        transaction: The transaction to announce.
        account: Account label shown in the header.
        now: Notification time; defaults to the current local time.

    Returns:
        Message text in Telegram Markdown.
    """
    now = now or datetime.now()
    if transaction.is_debit:
        header = "🔴 DEBIT"
        amount = f"- {format_currency(transaction.withdrawal)}"
    else:
        header = "🟢 CREDIT"
        amount = f"+ {format_currency(transaction.deposit)}"

    return (
        f"*💰{header} @ {account}*\n"
        "\n"
        f"*Amount*: {amount}\n"
        f"*Description*: `{transaction.description}`\n"
        "\n"
        f"*Time*: `{now.strftime('%H:%M')}`\n"
        f"*Date*: `{transaction.date.strftime('%a %b %d %Y')}`\n"
        f"*ID*: `{transaction.id}`\n"
        "\n"
        f"*Closing balance*: {format_currency(transaction.closing_balance)}"
    )


class WebhookNotifier:
    """Sends transaction messages to the relay webhook.

    Without an injected client the notifier must be entered with
    ``async with``, which opens and later closes its own client.

    Usage:
        async with WebhookNotifier(url, secret) as notifier:
            await notifier.notify(transaction, "Savings")
    """

    def __init__(
        self,
        url: str,
        secret: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = url
        self._secret = secret
        self._client = client
        self._owns_client = client is None
        self._timeout = timeout

    async def __aenter__(self) -> "WebhookNotifier":
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def notify(self, transaction: TransactionRecord, account: str) -> None:
        """Deliver one transaction notification.

        Raises:
            NotifyError: On transport failure or a non-2xx response.
            RuntimeError: If no client was injected and the notifier is not
                open (used outside ``async with``).
        """
        if self._client is None:
            raise RuntimeError(
                "WebhookNotifier has no open client; use it as an async context manager"
            )

        payload = {
            "text": format_message(transaction, account),
            "secret": self._secret,
        }
        try:
            resp = await self._client.post(self.url, json=payload)
            resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(
                "notification_failed",
                account=account,
                transaction_id=transaction.id,
                error=str(e),
            )
            raise NotifyError(
                f"Failed to notify transaction {transaction.id} for {account}: {e}"
            ) from e

        logger.debug(
            "notification_sent",
            account=account,
            transaction_id=transaction.id,
            status_code=resp.status_code,
        )
