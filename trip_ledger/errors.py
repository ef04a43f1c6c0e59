"""
Error kinds raised by the ledger core.

Every error is recoverable by the caller. Split and conversion errors carry
enough detail for the UI to prompt a correction; ledger errors point at a
caller or sync bug and are logged before they are raised.
"""

from typing import Any


class TripLedgerError(Exception):
    """Base exception for all ledger core errors."""
    pass


class CurrencyMismatchError(TripLedgerError):
    """Two Money values in different currencies were combined."""

    def __init__(self, left: Any, right: Any):
        self.left = left
        self.right = right
        super().__init__(
            f"Cannot combine {left} with {right}: currencies differ"
        )


class SplitMismatchError(TripLedgerError):
    """
    Custom split amounts do not add up to the expense total.

    `difference` is total minus the sum of the custom amounts, so a positive
    difference means the shares fall short of the total.
    """

    def __init__(self, difference: Any):
        self.difference = difference
        super().__init__(
            f"Split amounts do not match the total (difference: {difference})"
        )


class EmptyParticipantSetError(TripLedgerError):
    """A split was requested with no participants."""

    def __init__(self, message: str = "At least one participant is required"):
        super().__init__(message)


class DuplicateParticipantError(TripLedgerError):
    """The same participant was listed twice in one split."""

    def __init__(self, participant: str):
        self.participant = participant
        super().__init__(f"Participant listed more than once: {participant}")


class PayerConventionError(TripLedgerError):
    """The payer's presence in the split contradicts `payer_participates`."""

    def __init__(self, payer: str, payer_participates: bool):
        self.payer = payer
        self.payer_participates = payer_participates
        if payer_participates:
            message = f"Payer {payer} is marked as sharing the cost but is not a participant"
        else:
            message = f"Payer {payer} is marked as not sharing the cost but is listed as a participant"
        super().__init__(message)


class DuplicateIdError(TripLedgerError):
    """An expense with this id is already in the ledger."""

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense already exists: {expense_id}")


class NotFoundError(TripLedgerError):
    """The requested entity does not exist."""

    def __init__(self, entity_id: str, entity_type: str = "expense"):
        self.entity_id = entity_id
        self.entity_type = entity_type
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")


class UnsupportedCurrencyError(TripLedgerError):
    """No conversion rate is configured for the currency pair."""

    def __init__(self, source: Any, target: Any):
        self.source = source
        self.target = target
        super().__init__(f"No conversion rate configured for {source} -> {target}")
