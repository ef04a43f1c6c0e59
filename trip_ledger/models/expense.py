"""
Expense Models

An ExpenseRecord is one shared cost: who paid, how much, and how the total
is split among participants. Records are frozen; an edit replaces the whole
record so the split-sum invariant holds at every observable state.

ExpenseDraft is what a caller fills in before a record exists. It carries
the split instructions (equal or custom) and an explicit flag saying whether
the payer also owes a share.
"""

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)

from trip_ledger.models.money import Money


# Shares may miss the total by at most this much (currency units)
SPLIT_TOLERANCE = Decimal("0.01")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_expense_id() -> str:
    return str(uuid4())


class SplitMode(str, Enum):
    """How an expense total is divided among participants."""
    EQUAL = "equal"
    CUSTOM = "custom"


class UserProfile(BaseModel):
    """
    Display metadata for a participant.

    Owned by the user directory, never by the ledger. The ledger only ever
    stores participant ids.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(..., min_length=1)
    display_name: str = Field(..., min_length=1, max_length=100)
    avatar_ref: Optional[str] = None

    @property
    def initial(self) -> str:
        return self.display_name[0].upper()


class SplitEntry(BaseModel):
    """One participant's share of an expense."""
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    participant: str = Field(..., min_length=1)
    share: Money


class ExpenseRecord(BaseModel):
    """
    A shared expense.

    Invariants:
    - splits is non-empty and lists each participant once
    - every share is in the same currency as total_amount
    - shares add up to total_amount within SPLIT_TOLERANCE
    - payer may or may not appear in splits
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(default_factory=_new_expense_id, min_length=1)
    label: str = Field(..., min_length=1, max_length=200)
    total_amount: Money
    payer: str = Field(..., min_length=1)
    splits: tuple[SplitEntry, ...] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=_utcnow)

    @field_validator("created_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        """Naive timestamps are taken to be UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v

    @model_validator(mode="after")
    def validate_splits(self) -> "ExpenseRecord":
        currency = self.total_amount.currency
        seen = set()

        for entry in self.splits:
            if entry.share.currency != currency:
                raise ValueError(
                    f"Share for {entry.participant} is in {entry.share.currency.value}, "
                    f"expense is in {currency.value}"
                )
            if entry.participant in seen:
                raise ValueError(f"Participant listed more than once: {entry.participant}")
            seen.add(entry.participant)

        if not self.split_total().is_close_to(self.total_amount, SPLIT_TOLERANCE):
            raise ValueError(
                f"Shares add up to {self.split_total()} but the total is {self.total_amount}"
            )

        return self

    @property
    def participants(self) -> list[str]:
        """Participant ids in split order."""
        return [entry.participant for entry in self.splits]

    def split_total(self) -> Money:
        return Money.sum((entry.share for entry in self.splits), self.total_amount.currency)

    def share_for(self, participant: str) -> Optional[Money]:
        """The participant's share, or None if they are not in the split."""
        for entry in self.splits:
            if entry.participant == participant:
                return entry.share
        return None

    def involves(self, participant: str) -> bool:
        """True if the participant paid for or shares this expense."""
        return participant == self.payer or self.share_for(participant) is not None


class ValidationIssue(BaseModel):
    """A single problem found in an expense draft."""

    field: str = Field(
        ...,
        description="Draft field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'split_mismatch', 'payer_convention')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning)$",
        description="Issue severity"
    )


class DraftValidationResult(BaseModel):
    """
    Everything wrong with a draft, collected in one pass.

    split_difference is total minus the sum of custom amounts, so the UI
    can show exactly how far off the split is.
    """

    is_valid: bool
    issues: list[ValidationIssue] = Field(default_factory=list)
    split_difference: Optional[Money] = None
    preview: list[SplitEntry] = Field(
        default_factory=list,
        description="Shares the draft would produce, when it is valid"
    )

    @property
    def has_errors(self) -> bool:
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        return sum(1 for issue in self.issues if issue.severity == "error")


class ExpenseDraft(BaseModel):
    """
    Caller input for creating or editing an expense.

    payer_participates has no default: the caller must say whether the
    payer also owes a share. When True the payer must be listed in
    participants, when False they must not be.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    label: str
    total_amount: Money
    payer: str
    participants: list[str] = Field(default_factory=list)
    payer_participates: bool
    mode: SplitMode = SplitMode.EQUAL
    custom_amounts: Optional[dict[str, Money]] = None
    created_at: Optional[datetime] = None
