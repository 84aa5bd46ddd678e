"""
Tests for Household Ledger models

Test strategy:
1. Unit tests for individual components (models, validators, queries)
2. Integration tests for flows (with in-memory or fake storage)
3. No real API calls in tests (Google Sheets is faked)
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from pydantic import ValidationError

from household_ledger.models.transaction import (
    CardOperator,
    ExpenseCategory,
    ExpenseDraft,
    IncomeDraft,
    PaymentMethod,
    Profile,
    TransactionUpdate,
    build_transaction,
    parse_draft,
    parse_timestamp,
)
from household_ledger.models.results import (
    FailureKind,
    LedgerSummary,
    OperationOutcome,
    ValidationIssue,
    ValidationResult,
)
from household_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

from conftest import expense, income


class TestTransactionModels:
    """Tests for the income/expense tagged union."""

    def test_parse_expense_from_camel_case(self):
        """Test a client payload becomes an ExpenseDraft."""
        draft = parse_draft(expense(cardOperator="nubank", paymentMethod="credit_card"))
        assert isinstance(draft, ExpenseDraft)
        assert draft.payment_method == PaymentMethod.CREDIT_CARD
        assert draft.card_operator == CardOperator.NUBANK
        assert draft.category == ExpenseCategory.FOOD

    def test_parse_accepts_snake_case(self):
        """Test Python field names are accepted too."""
        draft = parse_draft({
            "type": "income",
            "amount": "10",
            "description": "Gift",
            "category": "other_income",
            "payment_method": "cash",
        })
        assert isinstance(draft, IncomeDraft)

    def test_amount_rounded_half_up(self):
        """Test amounts are normalized to cents."""
        assert parse_draft(expense(amount="10.005")).amount == Decimal("10.01")
        assert parse_draft(expense(amount="10.004")).amount == Decimal("10.00")

    def test_rejects_zero_and_negative_amount(self):
        """Test that non-positive amounts are rejected."""
        with pytest.raises(ValidationError):
            parse_draft(expense(amount="0"))
        with pytest.raises(ValidationError):
            parse_draft(expense(amount="-5"))

    def test_rejects_amount_rounding_to_zero(self):
        """Test that 0.004 is not a valid amount."""
        with pytest.raises(ValidationError):
            parse_draft(expense(amount="0.004"))

    def test_rejects_cross_set_category(self):
        """Test an income cannot carry an expense category."""
        with pytest.raises(ValidationError):
            parse_draft(income(category="food"))

    def test_rejects_unknown_type(self):
        """Test type must be income or expense."""
        with pytest.raises(ValidationError):
            parse_draft(expense(type="transfer"))

    def test_description_is_stripped_and_required(self):
        """Test whitespace handling on description."""
        assert parse_draft(expense(description="  Rent  ")).description == "Rent"
        with pytest.raises(ValidationError):
            parse_draft(expense(description="   "))

    def test_installment_bounds(self):
        """Test installments are limited to 1..48."""
        assert parse_draft(expense(installments=48)).installments == 48
        with pytest.raises(ValidationError):
            parse_draft(expense(installments=49))
        with pytest.raises(ValidationError):
            parse_draft(expense(installments=0))

    def test_current_installment_cannot_exceed_installments(self):
        """Test position within a series is bounded by its size."""
        with pytest.raises(ValidationError):
            parse_draft(expense(installments=3, currentInstallment=4))

    def test_blank_card_operator_is_none(self):
        """Test empty strings from spreadsheets mean 'not set'."""
        assert parse_draft(expense(cardOperator="")).card_operator is None

    def test_date_only_is_midnight_utc(self):
        """Test a plain date is accepted as a due date."""
        draft = parse_draft(expense(dueDate="2024-01-31"))
        assert draft.due_date == datetime(2024, 1, 31, tzinfo=timezone.utc)

    def test_naive_timestamp_is_utc(self):
        """Test naive timestamps are taken as UTC."""
        draft = parse_draft(expense(createdAt="2024-03-01T10:30:00"))
        assert draft.created_at == datetime(2024, 3, 1, 10, 30, tzinfo=timezone.utc)

    def test_aware_timestamp_converted_to_utc(self):
        """Test offsets are normalized."""
        draft = parse_draft(expense(createdAt="2024-03-01T10:30:00-03:00"))
        assert draft.created_at == datetime(2024, 3, 1, 13, 30, tzinfo=timezone.utc)

    def test_rejects_unparseable_date(self):
        """Test garbage dates are a validation error, not silently dropped."""
        with pytest.raises(ValidationError):
            parse_draft(expense(dueDate="next tuesday"))

    def test_effective_date_prefers_due_date(self):
        """Test effective date falls back to created_at."""
        draft = parse_draft(expense(createdAt="2024-01-01", dueDate="2024-02-01"))
        assert draft.effective_date.month == 2
        draft = parse_draft(expense(createdAt="2024-01-01"))
        assert draft.effective_date.month == 1

    def test_build_transaction_keeps_draft_created_at(self):
        """Test a supplied creation date wins over the store clock."""
        draft = parse_draft(expense(createdAt="2023-12-24T08:00:00Z"))
        record = build_transaction(
            draft,
            "abc",
            Profile.TAIS,
            created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        assert record.id == "abc"
        assert record.profile == Profile.TAIS
        assert record.created_at.year == 2023

    def test_to_record_is_camel_case_json(self):
        """Test the snapshot/export representation."""
        record = build_transaction(parse_draft(expense(amount="12.5")), "abc", Profile.EDSON)
        data = record.to_record()
        assert data["amount"] == 12.5
        assert data["paymentMethod"] == "pix"
        assert data["currentInstallment"] == 1
        assert data["profile"] == "edson"
        assert "cardOperator" not in data
        assert "parentTransactionId" not in data
        assert parse_timestamp(data["createdAt"]) == record.created_at


class TestTransactionUpdate:
    """Tests for update patches."""

    def test_changes_only_include_set_fields(self):
        """Test unset fields are not part of the patch."""
        patch = TransactionUpdate.model_validate({"amount": "20"})
        assert patch.changes() == {"amount": Decimal("20")}

    def test_identity_fields_dropped(self):
        """Test id and series linkage cannot be patched."""
        patch = TransactionUpdate.model_validate({
            "id": "other",
            "profile": "tais",
            "installments": 12,
            "parentTransactionId": "x",
            "description": "New",
        })
        assert patch.changes() == {"description": "New"}

    def test_rejects_non_positive_amount(self):
        """Test that patches cannot zero an amount."""
        with pytest.raises(ValidationError):
            TransactionUpdate.model_validate({"amount": "0"})


class TestProfile:
    """Tests for profile partitions."""

    def test_folder_names(self):
        """Test remote folder names."""
        assert Profile.EDSON.folder_name == "Edson"
        assert Profile.TAIS.folder_name == "Tais"

    def test_labels(self):
        """Test display labels."""
        assert Profile.TAIS.label == "Taís"


class TestResultModels:
    """Tests for results and outcomes."""

    def test_validation_result_properties(self):
        """Test ValidationResult helpers."""
        result = ValidationResult(
            schema_valid=True,
            semantic_valid=True,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="suspicious_value",
                    message="High",
                    severity="warning",
                ),
            ],
        )
        assert result.is_valid
        assert not result.has_errors
        assert result.error_count == 0

    def test_issue_severity_is_restricted(self):
        """Test severity must be error, warning or info."""
        with pytest.raises(ValidationError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")

    def test_summary_serializes_money_as_float(self):
        """Test summary JSON uses numbers, not strings."""
        summary = LedgerSummary(
            total_income=Decimal("300.00"),
            total_expenses=Decimal("50.00"),
            balance=Decimal("250.00"),
            transaction_count=4,
            future_expenses=Decimal("30.00"),
        )
        data = summary.to_record()
        assert data == {
            "totalIncome": 300.0,
            "totalExpenses": 50.0,
            "balance": 250.0,
            "transactionCount": 4,
            "futureExpenses": 30.0,
        }

    def test_outcome_constructors(self):
        """Test ok/failure helpers."""
        ok = OperationOutcome.ok({"a": 1}, "done")
        assert ok.success and ok.kind is None and ok.data == {"a": 1}

        failed = OperationOutcome.failure(FailureKind.TIMEOUT, "slow")
        assert not failed.success
        assert failed.kind == FailureKind.TIMEOUT
        assert failed.details == []


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            description="Transaction created",
        )
        assert event.event_id is not None
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.backup_completed(
            profile="edson",
            path="FinanceApp/Edson/transactions.json",
            count=3,
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "backup_completed"
        assert log_dict["details"]["count"] == 3
        assert log_dict["correlation_id"] is None

    def test_delete_event_distinguishes_series(self):
        """Test cascaded deletes are audited as series deletions."""
        single = AuditEventBuilder.transaction_deleted("edson", "a", cascaded=0)
        series = AuditEventBuilder.transaction_deleted("edson", "a", cascaded=2)
        assert single.event_type == AuditEventType.TRANSACTION_DELETED
        assert series.event_type == AuditEventType.SERIES_DELETED
        assert "3 records" in series.description

    def test_restore_with_skipped_rows_is_a_warning(self):
        """Test a lossy restore is flagged."""
        clean = AuditEventBuilder.restore_completed("edson", 5, 0, 0)
        lossy = AuditEventBuilder.restore_completed("edson", 5, 1, 0)
        assert clean.severity == AuditSeverity.INFO
        assert lossy.severity == AuditSeverity.WARNING

    def test_external_service_error(self):
        """Test remote failures are errors."""
        event = AuditEventBuilder.external_service_error(
            service="remote_storage",
            operation="backup",
            error_message="boom",
        )
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "boom"
