"""Statement data model.

Transactions are immutable once parsed. The debit/credit invariant (exactly
one of withdrawal and deposit is non-zero) is enforced on construction so a
corrupt row never reaches the diff or notification path.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal


class ParseDataError(Exception):
    """Raised when statement markup holds malformed or inconsistent data."""

    pass


@dataclass(frozen=True)
class TransactionRecord:
    """A single statement row.

    Attributes:
        id: Bank reference number (unique within one statement only).
        description: Narration as shown on the statement.
        date: Transaction date.
        value_date: Value date, if the statement shows one.
        withdrawal: Debited amount (zero for credits).
        deposit: Credited amount (zero for debits).
        closing_balance: Account balance after this transaction.
    """

    id: str
    description: str
    date: date
    value_date: date | None
    withdrawal: Decimal
    deposit: Decimal
    closing_balance: Decimal

    def __post_init__(self) -> None:
        if bool(self.withdrawal) == bool(self.deposit):
            raise ParseDataError(
                f"Transaction {self.id!r} must be either a debit or a credit "
                f"(withdrawal={self.withdrawal}, deposit={self.deposit})"
            )

    @property
    def is_debit(self) -> bool:
        return self.withdrawal != 0

    @property
    def is_credit(self) -> bool:
        return self.deposit != 0

    @property
    def amount(self) -> Decimal:
        """Signed amount: negative for debits, positive for credits."""
        return self.deposit - self.withdrawal


@dataclass(frozen=True)
class Statement:
    """Closing balance and transactions, newest-first."""

    balance: Decimal
    transactions: tuple[TransactionRecord, ...]

    @property
    def latest(self) -> TransactionRecord | None:
        return self.transactions[0] if self.transactions else None
