"""Incremental diffing of statements against the last notified transaction.

Each account keeps a single marker: the fingerprint of the newest transaction
seen on the previous run. A fresh statement (newest-first) is scanned from the
top until the marker is met; everything above it is new.
"""

import hashlib
from collections.abc import Sequence
from typing import NamedTuple

import structlog

from src.models import TransactionRecord

logger = structlog.get_logger(__name__)


class DiffResult(NamedTuple):
    """Transactions to notify (oldest-first) and the marker to persist."""

    pending: list[TransactionRecord]
    marker: str | None


def fingerprint(transaction: TransactionRecord) -> str:
    """Digest of a transaction's description and reference number.

    MD5 is used for a short stable token, not for security. Two different
    transactions with identical description and reference collide.
    """
    payload = f"{transaction.description}{transaction.id}".encode("utf-8")
    return hashlib.md5(payload).hexdigest()


def compute_pending(
    transactions: Sequence[TransactionRecord],
    previous_marker: str | None,
) -> DiffResult:
    """Work out which transactions have not been notified yet.

    Args:
        transactions: Freshly fetched transactions, newest-first.
        previous_marker: Fingerprint stored on the previous run, or None on
            the first run for this account.

    Returns:
        DiffResult with pending transactions in chronological (oldest-first)
        order and the new marker. An unknown or missing marker makes the whole
        list pending. An empty list leaves the marker unchanged.
    """
    if not transactions:
        logger.info("statement_empty", marker_unchanged=True)
        return DiffResult([], previous_marker)

    pending: list[TransactionRecord] = []
    marker_found = False
    for transaction in transactions:
        if previous_marker is not None and fingerprint(transaction) == previous_marker:
            marker_found = True
            break
        pending.append(transaction)

    if previous_marker is not None and not marker_found:
        logger.warning(
            "marker_not_found_in_statement",
            transactions=len(transactions),
        )

    pending.reverse()
    return DiffResult(pending, fingerprint(transactions[0]))
