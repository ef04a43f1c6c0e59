"""Tests for activity logging."""

from unittest.mock import MagicMock

import structlog

from trip_ledger.activity.logger import ActivityLogger, configure_logging
from trip_ledger.errors import DuplicateIdError


class TestActivityLogger:
    """Tests for structured activity events."""

    def test_expense_added_fields(self, make_record):
        """Test the fields logged for a new expense."""
        logger = MagicMock()
        record = make_record("e1", "alice", {"alice": "5.00", "bob": "5.00"})

        ActivityLogger(logger).expense_added(record)

        logger.info.assert_called_once_with(
            "expense_added",
            expense_id="e1",
            label="Dinner",
            amount="$10.00",
            payer="alice",
            participants=["alice", "bob"],
        )

    def test_ledger_conflict_is_warning(self):
        """Test that rejected mutations log the error type."""
        logger = MagicMock()

        ActivityLogger(logger).ledger_conflict("insert", "e1", DuplicateIdError("e1"))

        kwargs = logger.warning.call_args.kwargs
        assert kwargs["error_type"] == "DuplicateIdError"
        assert kwargs["operation"] == "insert"

    def test_configure_logging_console(self):
        """Test that console rendering can be configured."""
        configure_logging(level="debug", json_logs=False)
        try:
            assert structlog.is_configured()
        finally:
            structlog.reset_defaults()
