"""
Tests for the audit logger.
"""

import pytest

from household_ledger.audit import AuditLogger, configure_logging, create_correlation_id
from household_ledger.models.audit import AuditEventBuilder


class ExplodingLogger:
    def log(self, *args, **kwargs):
        raise RuntimeError("sink closed")


class TestAuditLogger:
    """Tests for writing audit events."""

    @pytest.mark.asyncio
    async def test_log_returns_true(self):
        """Test a written event."""
        audit = AuditLogger()
        event = AuditEventBuilder.import_completed(
            profile="edson",
            imported=2,
            duplicates=1,
            invalid=0,
            correlation_id=create_correlation_id(),
        )
        assert await audit.log(event) is True

    @pytest.mark.asyncio
    async def test_logging_failure_never_raises(self, capsys):
        """Test a broken sink is reported on stderr."""
        audit = AuditLogger()
        audit._logger = ExplodingLogger()

        written = await audit.log(AuditEventBuilder.snapshot_not_found("edson", "x/y.json"))

        assert written is False
        assert "sink closed" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_helpers_do_not_raise(self):
        """Test the convenience helpers build and log their events."""
        audit = AuditLogger()
        await audit.log_validation_failed("tais", [{"field": "amount"}])
        await audit.log_error("RuntimeError", "boom", {"operation": "restore"})
        await audit.log_external_service_error("remote_storage", "backup", "timeout", "tais")

    def test_correlation_ids_are_unique(self):
        """Test every request gets its own id."""
        assert create_correlation_id() != create_correlation_id()

    def test_configure_console_logging(self):
        """Test reconfiguring for a terminal."""
        configure_logging("debug", "console")
        configure_logging("INFO", "json")
