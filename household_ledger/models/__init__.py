"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the system must conform to these schemas.
"""

from household_ledger.models.transaction import (
    DRAFT_CLASSES,
    MAX_INSTALLMENTS,
    TRANSACTION_CLASSES,
    CardOperator,
    ExpenseCategory,
    ExpenseDraft,
    ExpenseTransaction,
    IncomeCategory,
    IncomeDraft,
    IncomeTransaction,
    LedgerModel,
    PaymentMethod,
    Profile,
    Transaction,
    TransactionDraft,
    TransactionType,
    TransactionUpdate,
    build_transaction,
    parse_draft,
    parse_timestamp,
    parse_transaction,
    round_currency,
    utc_now,
)
from household_ledger.models.results import (
    AccountInfo,
    BackupReport,
    BreakdownEntry,
    FailureKind,
    ImportReport,
    LedgerSummary,
    OperationOutcome,
    RestoreReport,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "DRAFT_CLASSES",
    "MAX_INSTALLMENTS",
    "TRANSACTION_CLASSES",
    "CardOperator",
    "ExpenseCategory",
    "ExpenseDraft",
    "ExpenseTransaction",
    "IncomeCategory",
    "IncomeDraft",
    "IncomeTransaction",
    "LedgerModel",
    "PaymentMethod",
    "Profile",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    "TransactionUpdate",
    "build_transaction",
    "parse_draft",
    "parse_timestamp",
    "parse_transaction",
    "round_currency",
    "utc_now",
    # Result models
    "AccountInfo",
    "BackupReport",
    "BreakdownEntry",
    "FailureKind",
    "ImportReport",
    "LedgerSummary",
    "OperationOutcome",
    "RestoreReport",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
