"""Shared fixtures for the trip ledger tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest

from trip_ledger.activity.logger import ActivityLogger
from trip_ledger.currency.converter import CurrencyConverter
from trip_ledger.models.expense import ExpenseRecord, SplitEntry, UserProfile
from trip_ledger.models.money import Currency, Money


BASE_TIME = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def activity():
    """ActivityLogger backed by a mock so tests can assert on events."""
    return ActivityLogger(logger=MagicMock())


@pytest.fixture
def converter():
    """Fixed 32 TWD per USD."""
    return CurrencyConverter({(Currency.USD, Currency.TWD): Decimal("32")})


@pytest.fixture
def make_record():
    """
    Build an ExpenseRecord from a payer and a {participant: amount} map.

    The total is the sum of the shares unless given.
    """
    def _make(
        expense_id,
        payer,
        shares,
        currency="USD",
        label="Dinner",
        total=None,
        days=0,
    ):
        splits = [
            SplitEntry(participant=p, share=Money.of(amount, currency))
            for p, amount in shares.items()
        ]
        if total is None:
            total_amount = Money.sum((s.share for s in splits), currency)
        else:
            total_amount = Money.of(total, currency)
        return ExpenseRecord(
            id=expense_id,
            label=label,
            total_amount=total_amount,
            payer=payer,
            splits=splits,
            created_at=BASE_TIME + timedelta(days=days),
        )

    return _make


@pytest.fixture
def profiles():
    return [
        UserProfile(id="alice", display_name="Alice", avatar_ref="avatars/alice.png"),
        UserProfile(id="bob", display_name="Bob"),
        UserProfile(id="carol", display_name="carol"),
    ]
