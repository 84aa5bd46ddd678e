"""
History Filter

Narrows a profile's transactions the way the history screen does: by
period, type, payment method and card operator. Unset criteria match
everything.
"""

from datetime import datetime
from typing import Iterable, Optional

from pydantic import field_validator

from household_ledger.models.transaction import (
    CardOperator,
    LedgerModel,
    PaymentMethod,
    Transaction,
    TransactionType,
)
from household_ledger.queries.periods import PeriodFilter, in_period


class TransactionFilter(LedgerModel):
    """Criteria for listing transactions. All of them must match."""

    period: PeriodFilter = PeriodFilter.ALL
    type: Optional[TransactionType] = None
    payment_method: Optional[PaymentMethod] = None
    card_operator: Optional[CardOperator] = None

    @field_validator('type', 'payment_method', 'card_operator', mode='before')
    @classmethod
    def all_to_none(cls, v):
        """The UI sends "all" (or nothing) for an unset criterion."""
        if isinstance(v, str) and v.strip().lower() in ("", "all"):
            return None
        return v

    @field_validator('period', mode='before')
    @classmethod
    def blank_period(cls, v):
        if v is None or (isinstance(v, str) and not v.strip()):
            return PeriodFilter.ALL
        return v

    def matches(self, record: Transaction, now: datetime) -> bool:
        if self.type is not None and record.type != self.type.value:
            return False
        if self.payment_method is not None and record.payment_method != self.payment_method:
            return False
        if self.card_operator is not None and record.card_operator != self.card_operator:
            return False
        return in_period(record.effective_date, self.period, now)


def filter_transactions(
    records: Iterable[Transaction],
    filters: Optional[TransactionFilter],
    now: datetime,
) -> list[Transaction]:
    """Records matching ``filters``, order preserved."""
    if filters is None:
        return list(records)
    return [r for r in records if filters.matches(r, now)]
