"""
Summary Aggregator

Folds a profile's transactions into month-scoped totals.

DESIGN DECISION: Totals are computed on every call from the store. There
is no cached running balance to drift out of sync with edits, deletes and
restores.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Callable, Optional, Union

from household_ledger.models.results import BreakdownEntry, LedgerSummary
from household_ledger.models.transaction import (
    Profile,
    TransactionType,
    utc_now,
)
from household_ledger.queries.periods import (
    PeriodFilter,
    in_period,
    is_current_month,
    is_future_month,
)
from household_ledger.services.storage.interface import TransactionStoreInterface


class BreakdownDimension(str, Enum):
    """Field a breakdown groups by."""
    CATEGORY = "category"
    PAYMENT_METHOD = "payment_method"
    CARD_OPERATOR = "card_operator"


class SummaryAggregator:
    """
    Computes summaries and breakdowns for one profile at a time.

    GUARANTEES:
    - Current-month totals never include future-dated records
    - Future expenses never include current or past records
    - transaction_count counts every record of the profile, any date
    """

    def __init__(
        self,
        store: TransactionStoreInterface,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._store = store
        self._clock = clock or utc_now

    async def summarize(
        self,
        profile: Profile,
        now: Optional[datetime] = None,
    ) -> LedgerSummary:
        now = now or self._clock()
        records = await self._store.list_transactions(profile)

        total_income = Decimal("0.00")
        total_expenses = Decimal("0.00")
        future_expenses = Decimal("0.00")

        for record in records:
            when = record.effective_date
            if is_current_month(when, now):
                if record.type == TransactionType.INCOME.value:
                    total_income += record.amount
                else:
                    total_expenses += record.amount
            elif is_future_month(when, now) and record.type == TransactionType.EXPENSE.value:
                future_expenses += record.amount

        return LedgerSummary(
            total_income=total_income,
            total_expenses=total_expenses,
            balance=total_income - total_expenses,
            transaction_count=len(records),
            future_expenses=future_expenses,
        )

    async def breakdown(
        self,
        profile: Profile,
        dimension: Union[BreakdownDimension, str],
        transaction_type: Union[TransactionType, str],
        period: Union[PeriodFilter, str] = PeriodFilter.ALL,
        now: Optional[datetime] = None,
    ) -> list[BreakdownEntry]:
        """
        Totals per category, payment method or card operator.

        Only records of ``transaction_type`` within ``period`` count.
        Keys with a zero total are left out; the largest total comes first.
        Records without a card operator are ignored by that dimension.
        """
        dimension = BreakdownDimension(dimension)
        transaction_type = TransactionType(transaction_type)
        now = now or self._clock()

        totals: dict[str, Decimal] = {}
        for record in await self._store.list_transactions(profile):
            if record.type != transaction_type.value:
                continue
            if not in_period(record.effective_date, period, now):
                continue
            key = getattr(record, dimension.value)
            if key is None:
                continue
            key = key.value
            totals[key] = totals.get(key, Decimal("0.00")) + record.amount

        entries = [
            BreakdownEntry(key=key, total=total)
            for key, total in totals.items()
            if total > 0
        ]
        entries.sort(key=lambda e: (-e.total, e.key))
        return entries
