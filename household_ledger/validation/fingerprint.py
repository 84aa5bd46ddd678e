"""
Fingerprints and Duplicate Detection

A fingerprint is the identity of a transaction as a person would judge it:
same type, amount, description, category, payment details, installment
position and day. Ids and creation timestamps play no part, so the same
purchase exported from one ledger and imported into another is recognized.

Matching is exact. "Coffee" and "coffee " are the same (case and outer
whitespace are ignored); "Coffee" and "Cofee" are not.
"""

from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Iterable, Mapping, Union

from household_ledger.models.transaction import (
    DRAFT_CLASSES,
    TRANSACTION_CLASSES,
    round_currency,
)
from household_ledger.queries.periods import effective_date


SEPARATOR = "|"

# (snake_case, camelCase) key pairs read from raw mappings
_FIELDS = {
    "type": ("type", "type"),
    "amount": ("amount", "amount"),
    "description": ("description", "description"),
    "category": ("category", "category"),
    "payment_method": ("payment_method", "paymentMethod"),
    "card_operator": ("card_operator", "cardOperator"),
    "installments": ("installments", "installments"),
    "current_installment": ("current_installment", "currentInstallment"),
}


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _amount(value: Any) -> str:
    if value is None or value == "":
        return ""
    try:
        return f"{round_currency(Decimal(str(value))):.2f}"
    except (InvalidOperation, ValueError):
        return _text(value)


def _count(value: Any) -> str:
    """Installment counters default to 1."""
    if value is None or value == "":
        return "1"
    try:
        return str(int(value))
    except (TypeError, ValueError):
        return _text(value)


def _get(record: Any, field: str) -> Any:
    if isinstance(record, Mapping):
        snake, camel = _FIELDS[field]
        return record.get(camel, record.get(snake))
    return getattr(record, field, None)


def fingerprint(record: Union[Mapping[str, Any], Any]) -> str:
    """
    Stable identity string of a transaction.

    Accepts stored models, drafts, or raw mappings with camelCase or
    snake_case keys.
    """
    if not isinstance(record, (Mapping,) + TRANSACTION_CLASSES + DRAFT_CLASSES):
        raise TypeError(f"Cannot fingerprint {type(record).__name__}")

    when = effective_date(record)
    parts = [
        _text(_get(record, "type")),
        _amount(_get(record, "amount")),
        _text(_get(record, "description")).strip().lower(),
        _text(_get(record, "category")),
        _text(_get(record, "payment_method")),
        _text(_get(record, "card_operator")),
        _count(_get(record, "installments")),
        _count(_get(record, "current_installment")),
        when.strftime("%Y-%m-%d") if when is not None else "",
    ]
    return SEPARATOR.join(parts)


def is_duplicate(candidate: Any, existing: Iterable[Any]) -> bool:
    """Whether any record in ``existing`` has the candidate's fingerprint."""
    target = fingerprint(candidate)
    return any(fingerprint(record) == target for record in existing)


class DuplicateDetector:
    """
    Duplicate check for one import batch.

    Seeded with the records already stored. Every candidate that passes
    the check is remembered, so a later identical row in the same batch
    is a duplicate too (the first occurrence wins).
    """

    def __init__(self, existing: Iterable[Any] = ()):
        self._seen: set[str] = {fingerprint(record) for record in existing}

    def check(self, candidate: Any) -> bool:
        """
        True if the candidate is a duplicate.

        A non-duplicate is recorded as seen.
        """
        key = fingerprint(candidate)
        if key in self._seen:
            return True
        self._seen.add(key)
        return False

    def __len__(self) -> int:
        return len(self._seen)


def mark_duplicates(candidates: Iterable[Any], existing: Iterable[Any] = ()) -> list[bool]:
    """Duplicate flag per candidate, in order."""
    detector = DuplicateDetector(existing)
    return [detector.check(candidate) for candidate in candidates]
