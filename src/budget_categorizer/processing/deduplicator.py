"""Duplicate detection for statement imports."""

from collections.abc import Iterable
from dataclasses import dataclass, field

from budget_categorizer.models.transaction import Transaction, fingerprint
from budget_categorizer.utils.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ImportResult:
    """Result of importing a batch of transactions.

    Attributes:
        imported_count: New transactions added.
        duplicate_count: Incoming transactions already known.
        auto_categorized_count: New transactions that received a category.
        duplicates: The skipped incoming transactions.
    """

    imported_count: int
    duplicate_count: int
    auto_categorized_count: int = 0
    duplicates: tuple[Transaction, ...] = field(default=(), repr=False)


class Deduplicator:
    """Separates new transactions from ones seen in earlier imports.

    A transaction is a duplicate when its fingerprint matches one already
    known. Repeats inside the same incoming batch are kept: a statement that
    lists the same posting twice describes two real postings.

    Note: This class keeps no state between calls.
    """

    def split(
        self,
        known: Iterable[Transaction],
        incoming: Iterable[Transaction],
    ) -> tuple[list[Transaction], list[Transaction]]:
        """Split incoming transactions into new ones and duplicates.

        Args:
            known: Transactions already held.
            incoming: Freshly ingested transactions.

        Returns:
            Tuple of (new transactions, duplicates), each in incoming order.
        """
        known_fingerprints = {fingerprint(txn) for txn in known}
        new: list[Transaction] = []
        duplicates: list[Transaction] = []

        for txn in incoming:
            if fingerprint(txn) in known_fingerprints:
                duplicates.append(txn)
            else:
                new.append(txn)

        if duplicates:
            logger.info(f"Skipped {len(duplicates)} transactions already imported")
            for dup in duplicates[:10]:
                logger.debug(f"Duplicate: {dup.date} {dup.amount} {dup.text[:30]!r}")

        return new, duplicates


def find_new_transactions(
    known: Iterable[Transaction],
    incoming: Iterable[Transaction],
) -> list[Transaction]:
    """Convenience function returning only the not-yet-known transactions.

    Args:
        known: Transactions already held.
        incoming: Freshly ingested transactions.

    Returns:
        Incoming transactions whose fingerprint is not already known.
    """
    new, _duplicates = Deduplicator().split(known, incoming)
    return new
