"""
Read models handed to the presentation layer.

These combine ledger data with display metadata from the user directory.
A participant the directory cannot resolve is shown by id, never with an
empty name.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from trip_ledger.models.expense import ExpenseRecord
from trip_ledger.models.money import Money
from trip_ledger.models.settlement import SettlementEntry, SettlementReport


class ParticipantView(BaseModel):
    """How a participant is shown: name, initial and avatar."""
    model_config = ConfigDict(frozen=True)

    id: str
    display_name: str
    initial: str
    avatar_ref: Optional[str] = None
    resolved: bool = Field(
        default=True,
        description="False when the directory did not know this participant"
    )


class SplitLine(BaseModel):
    """One row of an expense's split breakdown."""
    model_config = ConfigDict(frozen=True)

    participant: ParticipantView
    share: Money
    is_payer: bool

    @property
    def status(self) -> str:
        return "paid" if self.is_payer else "owed"


class ExpenseDetail(BaseModel):
    """A single expense with everyone involved resolved for display."""
    model_config = ConfigDict(frozen=True)

    record: ExpenseRecord
    payer: ParticipantView
    splits: tuple[SplitLine, ...]


class ExpenseListItem(BaseModel):
    """A row in the expense list, converted to the display currency."""
    model_config = ConfigDict(frozen=True)

    expense_id: str
    label: str
    created_at: datetime
    payer: ParticipantView
    original_amount: Money
    display_amount: Money
    split_with: tuple[ParticipantView, ...] = Field(
        default=(),
        description="Participants other than the payer"
    )


class CounterpartyBalance(BaseModel):
    """A settlement entry with the counterparty resolved for display."""
    model_config = ConfigDict(frozen=True)

    counterparty: ParticipantView
    entry: SettlementEntry

    @property
    def owes_you(self) -> bool:
        return self.entry.net_balance.is_positive


class SettlementSummary(BaseModel):
    """Everything the settlement screen shows for one viewing user."""
    model_config = ConfigDict(frozen=True)

    report: SettlementReport
    balances: tuple[CounterpartyBalance, ...]
    alternate_total: Optional[Money] = Field(
        default=None,
        description="report.total_net converted to the alternate currency"
    )
