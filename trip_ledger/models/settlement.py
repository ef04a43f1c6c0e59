"""
Settlement Models

Settlement entries are derived from the ledger on demand and never
persisted. The ledger stays the single source of truth.

Sign convention for net balances, from the viewing user's side:
- positive: the counterparty owes the viewing user
- negative: the viewing user owes the counterparty
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from trip_ledger.models.money import Currency, Money


class Direction(str, Enum):
    """Which way a contributing expense moves money."""
    OWED_TO_ME = "owed_to_me"  # viewing user paid, counterparty shares
    I_OWE = "i_owe"            # counterparty paid, viewing user shares


class ContributingItem(BaseModel):
    """One expense's contribution to a counterparty balance."""
    model_config = ConfigDict(frozen=True)

    expense_id: str
    label: str
    amount: Money = Field(
        ...,
        description="The share converted to the settlement currency"
    )
    original_amount: Money = Field(
        ...,
        description="The same share in the currency it was recorded in"
    )
    direction: Direction


class SettlementEntry(BaseModel):
    """Net balance between the viewing user and one counterparty."""
    model_config = ConfigDict(frozen=True)

    counterparty: str
    net_balance: Money
    contributing_items: tuple[ContributingItem, ...] = ()

    @property
    def counterparty_owes(self) -> bool:
        return self.net_balance.is_positive


class SettlementReport(BaseModel):
    """All settlement entries for one viewing user in one currency."""
    model_config = ConfigDict(frozen=True)

    viewing_user: str
    currency: Currency
    entries: tuple[SettlementEntry, ...] = ()
    total_net: Money

    @property
    def is_debt(self) -> bool:
        """True when the viewing user owes more than they are owed."""
        return self.total_net.is_negative

    def entry_for(self, counterparty: str) -> Optional[SettlementEntry]:
        for entry in self.entries:
            if entry.counterparty == counterparty:
                return entry
        return None
