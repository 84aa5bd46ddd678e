"""
Audit Models for Household Ledger

Every mutation of the ledger and every round trip to remote storage is
recorded as an audit event. This provides:
1. Traceability of who changed what, in which profile
2. Debugging information when a backup or restore goes wrong
3. Aggregate outcomes for batch operations (imports, restores)

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from household_ledger.models.transaction import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger mutations
    TRANSACTION_CREATED = "transaction_created"
    INSTALLMENTS_EXPANDED = "installments_expanded"
    EXPANSION_FAILED = "expansion_failed"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    SERIES_DELETED = "series_deleted"

    # Validation
    VALIDATION_FAILED = "validation_failed"

    # Import
    IMPORT_COMPLETED = "import_completed"

    # Remote snapshots
    BACKUP_COMPLETED = "backup_completed"
    RESTORE_COMPLETED = "restore_completed"
    SNAPSHOT_NOT_FOUND = "snapshot_not_found"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - which profile and record is this about?
    profile: Optional[str] = None
    entity_id: Optional[str] = Field(
        default=None,
        description="Id of the transaction (or series head) this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one restore run)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "profile": self.profile,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_created(profile, transaction_id, amount)
        event = AuditEventBuilder.restore_completed(profile, written, skipped, orphaned)
    """

    @staticmethod
    def transaction_created(
        profile: str,
        transaction_id: str,
        amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            profile=profile,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction created: {amount}",
            details={"amount": amount},
        )

    @staticmethod
    def installments_expanded(
        profile: str,
        parent_id: str,
        installments: int,
        installment_amount: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSTALLMENTS_EXPANDED,
            profile=profile,
            entity_id=parent_id,
            correlation_id=correlation_id,
            description=f"Purchase split into {installments} installments of {installment_amount}",
            details={
                "installments": installments,
                "installment_amount": installment_amount,
            },
        )

    @staticmethod
    def expansion_failed(
        profile: str,
        requested: int,
        created: int,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPANSION_FAILED,
            severity=AuditSeverity.ERROR,
            profile=profile,
            correlation_id=correlation_id,
            description=f"Installment expansion failed: {created} of {requested} created",
            details={"requested": requested, "created": created},
            error_message=error_message,
        )

    @staticmethod
    def transaction_updated(
        profile: str,
        transaction_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            profile=profile,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction updated: {', '.join(fields) or 'no changes'}",
            details={"fields": fields},
        )

    @staticmethod
    def transaction_deleted(
        profile: str,
        transaction_id: str,
        cascaded: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        event_type = (
            AuditEventType.SERIES_DELETED
            if cascaded
            else AuditEventType.TRANSACTION_DELETED
        )
        return AuditEvent(
            event_type=event_type,
            profile=profile,
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=(
                f"Installment series deleted ({cascaded + 1} records)"
                if cascaded
                else "Transaction deleted"
            ),
            details={"cascaded": cascaded},
        )

    @staticmethod
    def validation_failed(
        profile: str,
        issues: list[dict],
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            profile=profile,
            correlation_id=correlation_id,
            description=f"Validation failed with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def import_completed(
        profile: str,
        imported: int,
        duplicates: int,
        invalid: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            severity=AuditSeverity.WARNING if invalid else AuditSeverity.INFO,
            profile=profile,
            correlation_id=correlation_id,
            description=(
                f"Import finished: {imported} imported, "
                f"{duplicates} duplicates, {invalid} invalid"
            ),
            details={
                "imported": imported,
                "duplicates": duplicates,
                "invalid": invalid,
            },
        )

    @staticmethod
    def backup_completed(
        profile: str,
        path: str,
        count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_COMPLETED,
            profile=profile,
            correlation_id=correlation_id,
            description=f"Backup written: {count} transactions to {path}",
            details={"path": path, "count": count},
        )

    @staticmethod
    def restore_completed(
        profile: str,
        written: int,
        skipped: int,
        orphaned: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESTORE_COMPLETED,
            severity=AuditSeverity.WARNING if skipped or orphaned else AuditSeverity.INFO,
            profile=profile,
            correlation_id=correlation_id,
            description=f"Restore finished: {written} written, {skipped} skipped",
            details={
                "written": written,
                "skipped": skipped,
                "orphaned": orphaned,
            },
        )

    @staticmethod
    def snapshot_not_found(
        profile: str,
        path: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            profile=profile,
            correlation_id=correlation_id,
            description=f"No snapshot found at {path}",
            details={"path": path},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        operation: str,
        error_message: str,
        profile: Optional[str] = None,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            profile=profile,
            description=f"External service error: {service} ({operation})",
            error_message=error_message,
            details={
                "service": service,
                "operation": operation,
            },
            correlation_id=correlation_id,
        )
