"""
Split Builder

Turns a total and a participant list into per-participant shares.

EQUAL mode divides the total in minor units and hands the remainder out one
cent at a time, so the shares always add back to the exact total. CUSTOM
mode takes caller-supplied amounts and refuses them if they miss the total
by more than epsilon, naming the exact difference so the caller can fix it.

The builder is pure: no storage, no logging, no clock except when a draft
leaves created_at empty.
"""

from decimal import Decimal
from typing import Mapping, Optional, Sequence

from trip_ledger.errors import (
    CurrencyMismatchError,
    DuplicateParticipantError,
    EmptyParticipantSetError,
    PayerConventionError,
    SplitMismatchError,
)
from trip_ledger.models.expense import (
    SPLIT_TOLERANCE,
    ExpenseDraft,
    ExpenseRecord,
    SplitEntry,
    SplitMode,
)
from trip_ledger.models.money import Money


class SplitBuilder:
    """Builds validated split entries and expense records."""

    def __init__(self, epsilon: Decimal = SPLIT_TOLERANCE):
        if epsilon < 0:
            raise ValueError("epsilon cannot be negative")
        if epsilon > SPLIT_TOLERANCE:
            raise ValueError(
                f"epsilon cannot exceed the record tolerance of {SPLIT_TOLERANCE}"
            )
        self._epsilon = epsilon

    @property
    def epsilon(self) -> Decimal:
        return self._epsilon

    def build(
        self,
        total_amount: Money,
        participants: Sequence[str],
        mode: SplitMode = SplitMode.EQUAL,
        custom_amounts: Optional[Mapping[str, Money]] = None,
    ) -> list[SplitEntry]:
        """
        Compute split entries for a total.

        Args:
            total_amount: The expense total
            participants: Participant ids in display order. Include the
                payer here if the payer also owes a share.
            mode: EQUAL or CUSTOM
            custom_amounts: participant -> share, required for CUSTOM

        Returns:
            One SplitEntry per participant, in participant order

        Raises:
            EmptyParticipantSetError: participants is empty
            DuplicateParticipantError: a participant is listed twice
            SplitMismatchError: custom amounts miss the total by more than epsilon
            CurrencyMismatchError: a custom amount is in another currency
        """
        self._check_participants(participants)

        if SplitMode(mode) == SplitMode.EQUAL:
            return self._build_equal(total_amount, participants)
        return self._build_custom(total_amount, participants, custom_amounts)

    def build_record(self, draft: ExpenseDraft, expense_id: Optional[str] = None) -> ExpenseRecord:
        """
        Build a complete ExpenseRecord from a draft.

        Enforces the payer convention declared on the draft before
        computing shares.
        """
        self._check_payer_convention(draft)

        splits = self.build(
            draft.total_amount,
            draft.participants,
            draft.mode,
            draft.custom_amounts,
        )

        fields = {
            "label": draft.label,
            "total_amount": draft.total_amount,
            "payer": draft.payer,
            "splits": splits,
        }
        if expense_id is not None:
            fields["id"] = expense_id
        if draft.created_at is not None:
            fields["created_at"] = draft.created_at

        return ExpenseRecord(**fields)

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _check_participants(self, participants: Sequence[str]) -> None:
        if not participants:
            raise EmptyParticipantSetError()

        seen = set()
        for participant in participants:
            if participant in seen:
                raise DuplicateParticipantError(participant)
            seen.add(participant)

    def _check_payer_convention(self, draft: ExpenseDraft) -> None:
        payer_listed = draft.payer in draft.participants
        if payer_listed != draft.payer_participates:
            raise PayerConventionError(draft.payer, draft.payer_participates)

    def _build_equal(self, total_amount: Money, participants: Sequence[str]) -> list[SplitEntry]:
        shares = total_amount.divide(len(participants))
        return [
            SplitEntry(participant=participant, share=share)
            for participant, share in zip(participants, shares)
        ]

    def _build_custom(
        self,
        total_amount: Money,
        participants: Sequence[str],
        custom_amounts: Optional[Mapping[str, Money]],
    ) -> list[SplitEntry]:
        if custom_amounts is None:
            raise ValueError("custom_amounts is required for a custom split")

        unknown = set(custom_amounts) - set(participants)
        if unknown:
            raise ValueError(
                f"Custom amounts given for non-participants: {sorted(unknown)}"
            )

        missing = [p for p in participants if p not in custom_amounts]
        if missing:
            raise ValueError(f"No custom amount for participants: {missing}")

        for participant in participants:
            share = custom_amounts[participant]
            if share.currency != total_amount.currency:
                raise CurrencyMismatchError(total_amount, share)

        allocated = Money.sum(
            (custom_amounts[p] for p in participants),
            total_amount.currency,
        )
        difference = total_amount.subtract(allocated)

        if abs(difference.amount) > self._epsilon:
            raise SplitMismatchError(difference)

        return [
            SplitEntry(participant=participant, share=custom_amounts[participant])
            for participant in participants
        ]
