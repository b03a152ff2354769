"""Exceptions raised by the categorization workflows.

All of these are local and recoverable: the caller aborts the action and
surfaces the message. The classification pass itself never raises.
"""


class CategorizationError(Exception):
    """Base class for rejected categorization actions."""

    pass


class LockedTransactionError(CategorizationError):
    """Raised when auto-categorizing a transaction that is locked."""

    def __init__(self, fingerprint: str):
        """Initialize LockedTransactionError.

        Args:
            fingerprint: Fingerprint of the locked transaction.
        """
        self.fingerprint = fingerprint
        super().__init__(
            f"Transaction {fingerprint} is locked and cannot be auto-categorized; "
            "unlock it first"
        )


class TransactionNotFoundError(CategorizationError):
    """Raised when a workflow references an unknown transaction."""

    def __init__(self, fingerprint: str):
        """Initialize TransactionNotFoundError.

        Args:
            fingerprint: The fingerprint that could not be resolved.
        """
        self.fingerprint = fingerprint
        super().__init__(f"Transaction {fingerprint} not found")


class InvalidCategoryAssignment(CategorizationError):
    """Raised when the target category cannot hold transactions."""

    def __init__(self, category_id: str, reason: str):
        """Initialize InvalidCategoryAssignment.

        Args:
            category_id: The rejected category ID.
            reason: Why the category is not assignable.
        """
        self.category_id = category_id
        self.reason = reason
        super().__init__(f"Cannot assign transactions to category '{category_id}': {reason}")


class MissingCategoryForRule(CategorizationError):
    """Raised when deriving a rule from a transaction without a category."""

    def __init__(self, fingerprint: str):
        """Initialize MissingCategoryForRule.

        Args:
            fingerprint: Fingerprint of the uncategorized transaction.
        """
        self.fingerprint = fingerprint
        super().__init__(
            f"Transaction {fingerprint} has no category; cannot create a rule from it"
        )


class EmptyRuleTextError(CategorizationError):
    """Raised when a rule would be keyed on blank statement text."""

    def __init__(self, text: str):
        """Initialize EmptyRuleTextError.

        Args:
            text: The statement text as given, before normalization.
        """
        self.text = text
        super().__init__(f"Rule text must not be empty (got {text!r})")
