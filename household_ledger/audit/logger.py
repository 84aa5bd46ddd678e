"""
Audit Logger

DESIGN DECISION: Every ledger mutation and every remote round trip is
logged. This provides:
1. Complete traceability per profile
2. Debugging capability when a backup or restore misbehaves
3. One correlation id tying the events of a single request together

The audit logger:
- Is async so call sites read the same whether or not a sink is slow
- Never raises: a logging problem must not fail a ledger operation
- Writes structured lines only; audit events are not persisted
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from household_ledger.config import AppSettings
from household_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


_LEVELS = {
    AuditSeverity.DEBUG: logging.DEBUG,
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


def configure_logging(level: str = "INFO", log_format: str = "json") -> None:
    """
    Configure structlog on top of the standard library logger.

    Safe to call more than once; the last call wins.
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
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


# Configure structlog for local logging from the environment
_app_settings = AppSettings()
configure_logging(_app_settings.log_level, _app_settings.log_format)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log. Severity picks the log level.
    """

    def __init__(self, logger_name: str = "household_ledger.audit"):
        self._logger = structlog.get_logger(logger_name)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns True if the event was written.
        """
        log_dict = event.to_log_dict()
        level = _LEVELS.get(event.severity, logging.INFO)

        try:
            self._logger.log(level, "audit_event", **log_dict)
        except Exception as e:
            # Report the failure on stderr but don't raise
            print(f"audit logging failed: {e}", file=sys.stderr)
            return False

        return True

    async def log_validation_failed(
        self,
        profile: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a rejected create/update/import payload."""
        event = AuditEventBuilder.validation_failed(
            profile=profile,
            issues=issues,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_external_service_error(
        self,
        service: str,
        operation: str,
        error_message: str,
        profile: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a remote storage failure."""
        event = AuditEventBuilder.external_service_error(
            service=service,
            operation=operation,
            error_message=error_message,
            profile=profile,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g., one import or restore).
    Pass it through all subsequent operations.
    """
    return uuid4()
