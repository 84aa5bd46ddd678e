"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type checking (pydantic, through the income/expense tagged union)
- Required field presence
- Category belongs to the transaction type
- This catches malformed requests and broken spreadsheet rows

STAGE 2 - SEMANTIC VALIDATION:
- Duplicate detection (fingerprints, within the batch and against storage)
- Absurd amount detection
- Card operator on a non-card payment
- This catches data that is well-formed but probably wrong

Stage 2 only runs when stage 1 passes: there is nothing to reason about
in a row that is not a transaction.

IMPORTANT: Validation NEVER silently fixes issues.
It reports them; the caller decides to skip, store or reject.
"""

from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from household_ledger.config import AppSettings, get_settings
from household_ledger.models.results import ValidationIssue, ValidationResult
from household_ledger.models.transaction import PaymentMethod, TransactionDraft, parse_draft
from household_ledger.validation.fingerprint import DuplicateDetector


_TYPE_TAGS = ("income", "expense")


def issues_from_error(error: ValidationError, row: Optional[int] = None) -> list[ValidationIssue]:
    """
    Convert a pydantic error into field-level issues.

    The union tag pydantic puts in front of the location is dropped, so
    an invalid expense amount is reported on "amount".
    """
    issues = []
    for err in error.errors():
        loc = [str(part) for part in err.get("loc", ())]
        if loc and loc[0] in _TYPE_TAGS:
            loc = loc[1:]
        issues.append(ValidationIssue(
            field=".".join(loc) or "type",
            issue_type=err.get("type", "invalid_value"),
            message=err.get("msg", "Invalid value"),
            severity="error",
            row=row,
        ))
    return issues


class TransactionValidator:
    """
    Validates candidate transactions through a two-stage pipeline.

    Stage 1: Schema validation (no context needed)
    Stage 2: Semantic validation (optionally with a duplicate detector)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        candidate: Any,
        row: Optional[int],
    ) -> tuple[Optional[TransactionDraft], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (draft or None, list_of_issues)
        """
        if not isinstance(candidate, dict):
            return None, [ValidationIssue(
                field="record",
                issue_type="invalid_type",
                message=f"Expected an object, got {type(candidate).__name__}",
                severity="error",
                row=row,
            )]

        try:
            return parse_draft(candidate), []
        except ValidationError as e:
            return None, issues_from_error(e, row)

    def _validate_semantic(
        self,
        draft: TransactionDraft,
        row: Optional[int],
    ) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Absurd amounts
        - Card operator without a card payment

        Returns: list_of_issues
        """
        issues = []

        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if draft.amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({draft.amount:,.2f}) seems unusually high",
                severity="warning",
                row=row,
            ))

        if draft.card_operator is not None and not draft.payment_method.is_card:
            issues.append(ValidationIssue(
                field="cardOperator",
                issue_type="inconsistent",
                message=(
                    f"Card operator given for a {draft.payment_method.value} payment"
                ),
                severity="warning",
                row=row,
            ))

        if draft.installments > 1 and draft.payment_method != PaymentMethod.CREDIT_CARD:
            issues.append(ValidationIssue(
                field="installments",
                issue_type="ignored",
                message="Only credit card purchases are split into installments",
                severity="info",
                row=row,
            ))

        return issues

    def validate(
        self,
        candidate: Any,
        detector: Optional[DuplicateDetector] = None,
        row: Optional[int] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            candidate: Raw mapping (camelCase or snake_case keys)
            detector: Duplicate detector of the current batch. A candidate
                that passes both stages is registered with it.
            row: Position in a batch, copied onto every issue

        Returns:
            ValidationResult with all issues found (and the parsed draft
            when stage 1 passed)
        """
        draft, issues = self._validate_schema(candidate, row)
        if draft is None:
            return ValidationResult(
                schema_valid=False,
                semantic_valid=False,
                issues=issues,
            )

        issues.extend(self._validate_semantic(draft, row))
        semantic_valid = not any(issue.severity == "error" for issue in issues)

        is_duplicate = False
        if detector is not None and semantic_valid:
            is_duplicate = detector.check(draft)
            if is_duplicate:
                issues.append(ValidationIssue(
                    field="record",
                    issue_type="duplicate",
                    message=f"Duplicate of an existing transaction: {draft.description}",
                    severity="warning",
                    row=row,
                ))

        return ValidationResult(
            schema_valid=True,
            semantic_valid=semantic_valid,
            is_duplicate=is_duplicate,
            issues=issues,
            draft=draft,
        )
