"""
Result Models

Everything the ledger hands back to a caller that is not a transaction:
validation findings, summaries, batch reports and the structured outcome
wrapper used by the service layer.

DESIGN DECISION: A failure that reaches a caller is always an
OperationOutcome with a kind and a human message. Callers never see a
stack trace, and can tell "no backup yet" from "storage unreachable" from
"storage too slow" by the kind alone.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_serializer

from household_ledger.models.transaction import LedgerModel, utc_now


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(LedgerModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    row: Optional[int] = Field(
        default=None,
        description="0-based position in an import batch"
    )


class ValidationResult(LedgerModel):
    """
    Result of the two-stage validation of one candidate record.

    Stage 1: Schema validation (types, enums, required fields)
    Stage 2: Semantic validation (duplicates, suspicious values)
    """

    validated_at: datetime = Field(default_factory=utc_now)

    schema_valid: bool
    semantic_valid: bool
    is_duplicate: bool = False

    issues: list[ValidationIssue] = Field(default_factory=list)

    # The parsed draft when the schema stage passed
    draft: Optional[Any] = Field(default=None, exclude=True)

    @property
    def is_valid(self) -> bool:
        return self.schema_valid and self.semantic_valid

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")


# =============================================================================
# QUERY MODELS
# =============================================================================

class LedgerSummary(LedgerModel):
    """
    Month-scoped totals for one profile.

    NOTE: transaction_count is all-time, unlike every other field here.
    """

    total_income: Decimal = Decimal("0.00")
    total_expenses: Decimal = Decimal("0.00")
    balance: Decimal = Decimal("0.00")
    transaction_count: int = 0
    future_expenses: Decimal = Decimal("0.00")

    @field_serializer(
        'total_income', 'total_expenses', 'balance', 'future_expenses',
        when_used='json',
    )
    def serialize_money(self, v: Decimal) -> float:
        return float(v)


class BreakdownEntry(LedgerModel):
    """Total for one key of a breakdown (a category, a payment method...)."""

    key: str
    total: Decimal

    @field_serializer('total', when_used='json')
    def serialize_total(self, v: Decimal) -> float:
        return float(v)


# =============================================================================
# BATCH REPORTS
# =============================================================================

class ImportReport(LedgerModel):
    """Outcome of importing a batch of candidate records."""

    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    issues: list[ValidationIssue] = Field(default_factory=list)
    transactions: list[Any] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.imported + self.duplicates + self.invalid


class BackupReport(LedgerModel):
    """Outcome of writing a profile snapshot to remote storage."""

    profile: str
    path: str
    count: int
    completed_at: datetime = Field(default_factory=utc_now)


class RestoreReport(LedgerModel):
    """
    Outcome of replacing a profile's records with a snapshot.

    ``written`` counts parents and children actually inserted; ``skipped``
    counts rows that failed to parse or collided with an existing id;
    ``orphaned`` counts children whose parent was not in the snapshot
    (they are written anyway, with their original parent reference).
    """

    profile: str
    written: int = 0
    skipped: int = 0
    orphaned: int = 0
    completed_at: datetime = Field(default_factory=utc_now)


class AccountInfo(LedgerModel):
    """Identity of the remote storage account."""

    name: str
    email: str = ""


# =============================================================================
# OPERATION OUTCOMES
# =============================================================================

class FailureKind(str, Enum):
    """Why an operation did not succeed."""
    NOT_FOUND = "not_found"
    VALIDATION_FAILURE = "validation_failure"
    BACKEND_UNAVAILABLE = "backend_unavailable"
    TIMEOUT = "timeout"
    CONFLICT = "conflict"
    INTERNAL_ERROR = "internal_error"


class OperationOutcome(LedgerModel):
    """
    What every service operation returns.

    On success ``data`` carries the payload (a transaction, a list, a
    report). On failure ``kind`` says what went wrong and ``message`` says
    it in words a user can act on.
    """

    success: bool
    kind: Optional[FailureKind] = None
    message: str = ""
    data: Any = None
    details: list[dict] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: Any = None, message: str = "") -> "OperationOutcome":
        return cls(success=True, data=data, message=message)

    @classmethod
    def failure(
        cls,
        kind: FailureKind,
        message: str,
        details: Optional[list[dict]] = None,
    ) -> "OperationOutcome":
        return cls(success=False, kind=kind, message=message, details=details or [])
