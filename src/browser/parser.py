"""Statement extraction from the loaded statement form.

The form contains several ``<table>`` elements at fixed positions: the
closing balance lives in one, the transaction grid in another. Extraction is
split into an async part that reads cell texts from the page and a pure part,
``build_statement``, that turns those texts into typed records.
"""

from collections.abc import Sequence
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any

import structlog
from playwright.async_api import ElementHandle
from playwright.async_api import Error as PlaywrightError

from src.models import ParseDataError, Statement, TransactionRecord

logger = structlog.get_logger(__name__)

# Width of the currency label in front of the balance, e.g. "INR "
BALANCE_PREFIX_WIDTH = 4

ROW_CELLS = 7


def parse_amount(text: str, *, allow_blank: bool = False) -> Decimal:
    """Parse an amount such as ``"1,23,456.78"``.

    Args:
        text: Raw cell text.
        allow_blank: Treat an empty cell as zero.

    Raises:
        ParseDataError: If the text is blank (unless allowed) or not a number.
    """
    cleaned = text.strip().replace(",", "")
    if not cleaned:
        if allow_blank:
            return Decimal("0")
        raise ParseDataError("Empty amount")

    try:
        value = Decimal(cleaned)
    except InvalidOperation as e:
        raise ParseDataError(f"Invalid amount: {text!r}") from e

    if not value.is_finite():
        raise ParseDataError(f"Invalid amount: {text!r}")
    return value


def parse_balance(text: str) -> Decimal:
    """Parse the bolded balance text, dropping its currency label."""
    return parse_amount(text.strip()[BALANCE_PREFIX_WIDTH:])


def parse_date(text: str, date_format: str) -> date:
    try:
        return datetime.strptime(text.strip(), date_format).date()
    except ValueError as e:
        raise ParseDataError(f"Invalid date: {text!r}") from e


class StatementParser:
    """Turns a statement form into a Statement.

    Attributes:
        selectors: The ``statement`` selector group (table positions and tag
            names inside the form).
        date_format: strptime format of the date columns.
    """

    def __init__(
        self,
        selectors: dict[str, Any],
        date_format: str = "%d/%m/%y",
    ) -> None:
        self.selectors = selectors
        self.date_format = date_format

    async def parse(self, form: ElementHandle) -> Statement:
        """Extract balance and transactions from the statement form.

        Raises:
            ParseDataError: If the expected tables or cells are missing,
                hold malformed data, or detach while being read.
        """
        logger.info("parsing_statement")

        try:
            balance_text, row_texts = await self._read_form(form)
        except PlaywrightError as e:
            raise ParseDataError(f"Statement form could not be read: {e}") from e

        statement = self.build_statement(balance_text, row_texts)
        logger.info(
            "statement_parsed",
            balance=str(statement.balance),
            transactions=len(statement.transactions),
        )
        return statement

    async def _read_form(self, form: ElementHandle) -> tuple[str, list[list[str]]]:
        balance_index = self.selectors["balance_table_index"]
        transactions_index = self.selectors["transactions_table_index"]

        tables = await form.query_selector_all("table")
        if len(tables) <= max(balance_index, transactions_index):
            raise ParseDataError(
                f"Statement form has {len(tables)} tables, "
                f"expected at least {max(balance_index, transactions_index) + 1}"
            )

        balance_node = await tables[balance_index].query_selector(
            self.selectors["balance_node"]
        )
        if balance_node is None:
            raise ParseDataError("Balance element not found")
        balance_text = await balance_node.inner_text()

        rows = await tables[transactions_index].query_selector_all(self.selectors["row"])
        row_texts = []
        # First row is the header
        for row in rows[1:]:
            cells = await row.query_selector_all(self.selectors["cell"])
            row_texts.append([await cell.inner_text() for cell in cells])

        return balance_text, row_texts

    def build_statement(
        self, balance_text: str, rows: Sequence[Sequence[str]]
    ) -> Statement:
        """Build a Statement from raw texts.

        Args:
            balance_text: Text of the bolded balance node.
            rows: Cell texts of each transaction row (header excluded),
                newest-first.

        Raises:
            ParseDataError: On any malformed cell or short row.
        """
        balance = parse_balance(balance_text)
        transactions = tuple(
            self.parse_row(cells, row_index) for row_index, cells in enumerate(rows)
        )
        return Statement(balance=balance, transactions=transactions)

    def parse_row(self, cells: Sequence[str], row_index: int = 0) -> TransactionRecord:
        if len(cells) < ROW_CELLS:
            raise ParseDataError(
                f"Row {row_index} has {len(cells)} cells, expected {ROW_CELLS}"
            )

        texts = [cell.strip() for cell in cells[:ROW_CELLS]]
        date_text, description, ref_id, value_date_text = texts[:4]
        withdrawal_text, deposit_text, closing_text = texts[4:]

        try:
            return TransactionRecord(
                id=ref_id,
                description=description,
                date=parse_date(date_text, self.date_format),
                value_date=(
                    parse_date(value_date_text, self.date_format)
                    if value_date_text
                    else None
                ),
                withdrawal=parse_amount(withdrawal_text, allow_blank=True),
                deposit=parse_amount(deposit_text, allow_blank=True),
                closing_balance=parse_amount(closing_text),
            )
        except ParseDataError as e:
            logger.warning("statement_row_invalid", row_index=row_index, error=str(e))
            raise ParseDataError(f"Row {row_index}: {e}") from e
