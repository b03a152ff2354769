"""Transaction data models and the fingerprint identity."""

import hashlib
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Optional

from budget_categorizer.utils.date_utils import date_to_iso, parse_iso_date
from budget_categorizer.utils.decimal_utils import parse_amount, quantize_amount

# Number of hex characters kept from the SHA-256 digest
FINGERPRINT_LENGTH = 16

_WHITESPACE = re.compile(r"\s+")


def _clean(value: str) -> str:
    """Strip and collapse internal whitespace, preserving case."""
    return _WHITESPACE.sub(" ", value.strip())


@dataclass(frozen=True)
class Transaction:
    """Bank statement line as delivered by ingestion.

    Instances are immutable. Only the identity fields feed the fingerprint;
    ``sub_category_hint`` and ``raw_data`` are carried along for display.

    Attributes:
        date: Booking date.
        amount: Signed amount (negative for money out).
        text: Free-text description from the statement.
        from_account: Source account label.
        to_account: Destination account label.
        transaction_type: Bank-provided type label (e.g. "Varekjøp").
        sub_category_hint: Category label suggested by the bank, if any.
        raw_data: Original record preserved for audit trail.
    """

    date: date
    amount: Decimal
    text: str
    from_account: str = ""
    to_account: str = ""
    transaction_type: str = ""
    sub_category_hint: Optional[str] = field(default=None, compare=False)
    raw_data: Optional[dict[str, Any]] = field(default=None, compare=False, hash=False, repr=False)

    @property
    def fingerprint(self) -> str:
        """Stable identity of this transaction. See :func:`fingerprint`."""
        return fingerprint(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Transaction":
        """Create a Transaction from a normalized record.

        Args:
            data: Mapping with ``date``, ``amount``, ``text`` and optionally
                ``from_account``, ``to_account``, ``type`` and ``sub_category``.

        Returns:
            A new Transaction.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If the date or amount cannot be parsed.
        """
        raw_date = data["date"]
        txn_date = raw_date if isinstance(raw_date, date) else parse_iso_date(str(raw_date))

        hint = data.get("sub_category")
        return cls(
            date=txn_date,
            amount=parse_amount(data["amount"]),
            text=str(data["text"]),
            from_account=str(data.get("from_account") or ""),
            to_account=str(data.get("to_account") or ""),
            transaction_type=str(data.get("type") or ""),
            sub_category_hint=str(hint) if hint else None,
            raw_data=dict(data),
        )

    def __repr__(self) -> str:
        return (
            f"Transaction(date={self.date}, "
            f"text={self.text[:30]!r}, "
            f"amount={self.amount})"
        )


def fingerprint(txn: Transaction) -> str:
    """Compute the content-based identity of a transaction.

    The fingerprint is derived from date, amount, type, text, source account
    and destination account, so re-parsing the same statement line always
    yields the same value. It is the only identity used for duplicate
    detection, locks and matching across imports.

    Note:
        Two postings with identical fields share a fingerprint. They are
        indistinguishable, so a lock on one applies to both.

    Args:
        txn: Transaction to identify.

    Returns:
        A 16-character hex string.
    """
    parts = [
        date_to_iso(txn.date),
        str(quantize_amount(txn.amount)),
        _clean(txn.transaction_type),
        _clean(txn.text),
        _clean(txn.from_account),
        _clean(txn.to_account),
    ]
    data = "|".join(parts)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


@dataclass(frozen=True)
class CategorizedTransaction:
    """Derived view of a transaction after a classification pass.

    Never edited by hand; the classification engine rebuilds every
    instance on each pass.
    """

    transaction: Transaction
    fingerprint: str
    category_id: Optional[str] = None
    is_locked: bool = False

    @property
    def text(self) -> str:
        return self.transaction.text

    @property
    def amount(self) -> Decimal:
        return self.transaction.amount

    @property
    def date(self) -> date:
        return self.transaction.date

    @property
    def is_categorized(self) -> bool:
        return self.category_id is not None
