"""
Expense Draft Validation

Checks a draft before it becomes a record and reports every problem at
once, so the edit form can show all of them together (including the exact
amount a custom split is off by).

The SplitBuilder enforces the same rules by raising on the first failure.
This validator never raises for a bad draft and never fixes one: it only
reports.
"""

from decimal import Decimal
from typing import Optional

from pydantic import ValidationError

from trip_ledger.errors import NotFoundError
from trip_ledger.models.expense import (
    SPLIT_TOLERANCE,
    DraftValidationResult,
    ExpenseDraft,
    SplitMode,
    ValidationIssue,
)
from trip_ledger.models.money import Money
from trip_ledger.services.storage import UserDirectoryInterface
from trip_ledger.splits.builder import SplitBuilder


class ExpenseDraftValidator:
    """
    Validates expense drafts.

    With a user directory, participants the directory does not know are
    flagged as warnings.
    """

    def __init__(
        self,
        directory: Optional[UserDirectoryInterface] = None,
        epsilon: Decimal = SPLIT_TOLERANCE,
    ):
        self._directory = directory
        self._builder = SplitBuilder(epsilon)

    def validate(self, draft: ExpenseDraft) -> DraftValidationResult:
        issues: list[ValidationIssue] = []

        issues.extend(self._check_basics(draft))
        issues.extend(self._check_participants(draft))

        split_difference = None
        if draft.mode == SplitMode.CUSTOM:
            custom_issues, split_difference = self._check_custom_split(draft)
            issues.extend(custom_issues)
        elif draft.custom_amounts:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="ignored",
                message="Custom amounts are ignored for an equal split",
                severity="warning",
            ))

        if self._directory is not None:
            issues.extend(self._check_directory(draft))

        preview = []
        if not any(issue.severity == "error" for issue in issues):
            try:
                record = self._builder.build_record(draft)
                preview = list(record.splits)
            except ValidationError as e:
                issues.extend(self._field_issues(e))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return DraftValidationResult(
            is_valid=is_valid,
            issues=issues,
            split_difference=split_difference,
            preview=preview,
        )

    def _field_issues(self, error: ValidationError) -> list[ValidationIssue]:
        """Field limits enforced by the record models, one issue per failure."""
        issues = []
        for detail in error.errors():
            loc = detail.get("loc") or ()
            field = str(loc[0]) if loc else "draft"
            if field == "participant":
                field = "participants"
            issues.append(ValidationIssue(
                field=field,
                issue_type="invalid_value",
                message=detail.get("msg", str(error)),
                severity="error",
            ))
        return issues

    def _check_basics(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.label:
            issues.append(ValidationIssue(
                field="label",
                issue_type="missing",
                message="Expense name is required",
                severity="error",
            ))

        if not draft.total_amount.is_positive:
            issues.append(ValidationIssue(
                field="total_amount",
                issue_type="invalid_value",
                message="Total amount must be greater than zero",
                severity="error",
            ))

        if not draft.payer:
            issues.append(ValidationIssue(
                field="payer",
                issue_type="missing",
                message="Who paid is required",
                severity="error",
            ))

        return issues

    def _check_participants(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []

        if not draft.participants:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="missing",
                message="Select at least one person to split with",
                severity="error",
            ))
            return issues

        duplicates = sorted({p for p in draft.participants if draft.participants.count(p) > 1})
        if duplicates:
            issues.append(ValidationIssue(
                field="participants",
                issue_type="duplicate",
                message=f"Listed more than once: {', '.join(duplicates)}",
                severity="error",
            ))

        payer_listed = draft.payer in draft.participants
        if draft.payer and payer_listed != draft.payer_participates:
            if draft.payer_participates:
                message = "The payer is sharing the cost but is not in the split"
            else:
                message = "The payer is not sharing the cost but is in the split"
            issues.append(ValidationIssue(
                field="payer_participates",
                issue_type="payer_convention",
                message=message,
                severity="error",
            ))

        return issues

    def _check_custom_split(
        self,
        draft: ExpenseDraft,
    ) -> tuple[list[ValidationIssue], Optional[Money]]:
        issues = []
        amounts = draft.custom_amounts

        if not amounts:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="missing",
                message="Enter an amount for each person",
                severity="error",
            ))
            return issues, None

        missing = [p for p in draft.participants if p not in amounts]
        if missing:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="missing",
                message=f"No amount entered for: {', '.join(missing)}",
                severity="error",
            ))

        unknown = sorted(set(amounts) - set(draft.participants))
        if unknown:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="not_a_participant",
                message=f"Amounts entered for people not in the split: {', '.join(unknown)}",
                severity="error",
            ))

        currency = draft.total_amount.currency
        foreign = sorted(p for p, share in amounts.items() if share.currency != currency)
        if foreign:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="currency_mismatch",
                message=f"Amounts must be in {currency.value}: {', '.join(foreign)}",
                severity="error",
            ))
            return issues, None

        allocated = Money.sum(
            (amounts[p] for p in draft.participants if p in amounts),
            currency,
        )
        difference = draft.total_amount.subtract(allocated)

        if abs(difference.amount) > self._builder.epsilon:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="split_mismatch",
                message=(
                    f"Split adds up to {allocated}, total is {draft.total_amount} "
                    f"(difference: {difference})"
                ),
                severity="error",
            ))
        elif not difference.is_zero:
            issues.append(ValidationIssue(
                field="custom_amounts",
                issue_type="rounding",
                message=f"Split is off by {difference}, within tolerance",
                severity="warning",
            ))

        return issues, difference

    def _check_directory(self, draft: ExpenseDraft) -> list[ValidationIssue]:
        issues = []
        people = list(dict.fromkeys([draft.payer, *draft.participants]))

        for participant in people:
            if not participant:
                continue
            try:
                self._directory.lookup(participant)
            except NotFoundError:
                issues.append(ValidationIssue(
                    field="participants",
                    issue_type="unknown_participant",
                    message=f"{participant} is not in the user directory",
                    severity="warning",
                ))

        return issues
