"""
Activity Logger

Structured logging for ledger and expense-book activity.

Every mutation of the ledger is logged, and so is every rejected mutation
(duplicate id, missing id) before the error is raised to the caller.
Storage failures are logged and re-raised, never swallowed.

Events are written to the local structured log only; nothing here is
persisted as an audit trail.
"""

import logging
from typing import Optional

import structlog

from trip_ledger.models.expense import ExpenseRecord


def configure_logging(level: str = "INFO", json_logs: bool = True) -> None:
    """
    Configure structlog on top of the standard library logger.

    Call once at application start. JSON output suits log shipping;
    json_logs=False gives a readable console format for development.
    """
    logging.basicConfig(format="%(message)s", level=level.upper())

    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


class ActivityLogger:
    """
    Logs expense and settlement activity.

    A thin layer over a structlog logger so callers log events by name
    rather than assembling key/value pairs at every call site.
    """

    def __init__(self, logger: Optional[structlog.stdlib.BoundLogger] = None):
        self._logger = logger or structlog.get_logger("trip_ledger")

    def expense_added(self, record: ExpenseRecord) -> None:
        self._logger.info(
            "expense_added",
            expense_id=record.id,
            label=record.label,
            amount=str(record.total_amount),
            payer=record.payer,
            participants=record.participants,
        )

    def expense_replaced(self, previous: ExpenseRecord, record: ExpenseRecord) -> None:
        self._logger.info(
            "expense_replaced",
            expense_id=previous.id,
            new_expense_id=record.id,
            previous_amount=str(previous.total_amount),
            amount=str(record.total_amount),
        )

    def expense_removed(self, record: ExpenseRecord) -> None:
        self._logger.info(
            "expense_removed",
            expense_id=record.id,
            label=record.label,
        )

    def ledger_conflict(self, operation: str, expense_id: str, error: Exception) -> None:
        """A ledger call referenced a missing id or reused an existing one."""
        self._logger.warning(
            "ledger_conflict",
            operation=operation,
            expense_id=expense_id,
            error_type=type(error).__name__,
            error=str(error),
        )

    def storage_failed(self, operation: str, expense_id: str, error: Exception) -> None:
        self._logger.error(
            "storage_failed",
            operation=operation,
            expense_id=expense_id,
            error_type=type(error).__name__,
            error=str(error),
        )

    def participant_unresolved(self, participant_id: str) -> None:
        self._logger.info("participant_unresolved", participant_id=participant_id)

    def settlement_computed(
        self,
        viewing_user: str,
        currency: str,
        counterparties: int,
        total_net: str,
    ) -> None:
        self._logger.debug(
            "settlement_computed",
            viewing_user=viewing_user,
            currency=currency,
            counterparties=counterparties,
            total_net=total_net,
        )
