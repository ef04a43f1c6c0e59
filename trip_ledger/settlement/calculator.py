"""
Settlement Calculator

Works out, for one viewing user, the signed net balance with every other
user they share an expense with.

ALGORITHM (one pass over a single ledger snapshot):
1. Take every record the viewing user paid for or shares.
2. Viewing user paid: each other participant's share is added to that
   participant's balance (they owe the viewing user).
3. Someone else paid and the viewing user shares: the viewing user's share
   is subtracted from the payer's balance (the viewing user owes them).
4. Shares are converted into the settlement currency one at a time as they
   are aggregated. Records keep their original currency.
5. Counterparties whose balance nets to exactly zero are dropped.
6. Entries are ordered by absolute balance, largest first, then by
   counterparty id.
"""

from typing import Optional, Union

from trip_ledger.activity.logger import ActivityLogger
from trip_ledger.currency.converter import CurrencyConverter
from trip_ledger.ledger.ledger import Ledger, LedgerSnapshot
from trip_ledger.models.money import Currency, Money
from trip_ledger.models.settlement import (
    ContributingItem,
    Direction,
    SettlementEntry,
    SettlementReport,
)


LedgerSource = Union[Ledger, LedgerSnapshot]


class _RunningBalance:
    """Mutable accumulator for one counterparty during a single pass."""

    def __init__(self, currency: Currency):
        self.balance = Money.zero(currency)
        self.items: list[ContributingItem] = []


class SettlementCalculator:
    """
    Computes settlement entries from a ledger.

    Stateless apart from its converter: calling calculate twice on an
    unchanged ledger gives identical results.
    """

    def __init__(
        self,
        converter: CurrencyConverter,
        activity_logger: Optional[ActivityLogger] = None,
    ):
        self._converter = converter
        self._activity = activity_logger or ActivityLogger()

    def calculate(
        self,
        ledger: LedgerSource,
        viewing_user: str,
        settlement_currency: Union[Currency, str],
    ) -> list[SettlementEntry]:
        """
        Net balances between viewing_user and each counterparty.

        Raises:
            UnsupportedCurrencyError: a record's currency cannot be
                converted into settlement_currency
        """
        currency = Currency(settlement_currency)
        snapshot = ledger.snapshot()
        balances: dict[str, _RunningBalance] = {}

        for record in snapshot.query_by_participant(viewing_user):
            if record.payer == viewing_user:
                for split in record.splits:
                    if split.participant == viewing_user:
                        continue
                    self._apply(
                        balances,
                        counterparty=split.participant,
                        record_id=record.id,
                        label=record.label,
                        share=split.share,
                        direction=Direction.OWED_TO_ME,
                        currency=currency,
                    )
            else:
                share = record.share_for(viewing_user)
                if share is None:
                    continue
                self._apply(
                    balances,
                    counterparty=record.payer,
                    record_id=record.id,
                    label=record.label,
                    share=share,
                    direction=Direction.I_OWE,
                    currency=currency,
                )

        entries = [
            SettlementEntry(
                counterparty=counterparty,
                net_balance=running.balance,
                contributing_items=tuple(running.items),
            )
            for counterparty, running in balances.items()
            if not running.balance.is_zero
        ]
        entries.sort(key=lambda e: (-abs(e.net_balance.amount), e.counterparty))
        return entries

    def report(
        self,
        ledger: LedgerSource,
        viewing_user: str,
        settlement_currency: Union[Currency, str],
    ) -> SettlementReport:
        """Settlement entries plus the viewing user's overall net position."""
        currency = Currency(settlement_currency)
        entries = self.calculate(ledger, viewing_user, currency)
        total_net = Money.sum((e.net_balance for e in entries), currency)

        self._activity.settlement_computed(
            viewing_user=viewing_user,
            currency=currency.value,
            counterparties=len(entries),
            total_net=str(total_net),
        )

        return SettlementReport(
            viewing_user=viewing_user,
            currency=currency,
            entries=tuple(entries),
            total_net=total_net,
        )

    def _apply(
        self,
        balances: dict[str, _RunningBalance],
        counterparty: str,
        record_id: str,
        label: str,
        share: Money,
        direction: Direction,
        currency: Currency,
    ) -> None:
        converted = self._converter.convert(share, currency)
        running = balances.setdefault(counterparty, _RunningBalance(currency))

        if direction == Direction.OWED_TO_ME:
            running.balance = running.balance.add(converted)
        else:
            running.balance = running.balance.subtract(converted)

        running.items.append(
            ContributingItem(
                expense_id=record_id,
                label=label,
                amount=converted,
                original_amount=share,
                direction=direction,
            )
        )
