"""Decimal amount helpers."""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENTS = Decimal("0.01")


def quantize_amount(amount: Decimal) -> Decimal:
    """Round an amount to cents, folding negative zero into zero.

    Args:
        amount: Amount to normalize.

    Returns:
        Amount with exactly two decimal places.
    """
    normalized = amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    if normalized == 0:
        return Decimal("0.00")
    return normalized


def parse_amount(raw_amount: object) -> Decimal:
    """Parse an already-normalized amount value into a Decimal.

    Accepts Decimal, int, float (via its string form) and strings with a
    dot or a single comma as decimal separator. Spaces (including
    thousands separators written as spaces) are ignored.

    Args:
        raw_amount: Value to parse.

    Returns:
        Parsed Decimal.

    Raises:
        ValueError: If the value is empty, not numeric, or not finite.
    """
    if isinstance(raw_amount, Decimal):
        value = raw_amount
    else:
        text = str(raw_amount).replace(" ", "").replace("\u00a0", "")
        if not text:
            raise ValueError("Empty amount")
        if "," in text and "." not in text:
            text = text.replace(",", ".")
        try:
            value = Decimal(text)
        except InvalidOperation:
            raise ValueError(f"Invalid amount: {raw_amount!r}") from None

    if not value.is_finite():
        raise ValueError(f"Amount must be finite: {raw_amount!r}")
    return value
