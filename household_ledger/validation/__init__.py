"""Validation package: two-stage validator and duplicate fingerprints."""

from household_ledger.validation.fingerprint import (
    DuplicateDetector,
    fingerprint,
    is_duplicate,
    mark_duplicates,
)
from household_ledger.validation.validator import TransactionValidator, issues_from_error

__all__ = [
    "DuplicateDetector",
    "TransactionValidator",
    "fingerprint",
    "is_duplicate",
    "issues_from_error",
    "mark_duplicates",
]
