"""Ledger queries: period classification, summaries and history filtering."""

from household_ledger.queries.history import TransactionFilter, filter_transactions
from household_ledger.queries.periods import (
    PeriodClass,
    PeriodFilter,
    bucket,
    classify,
    effective_date,
    in_period,
    is_current_month,
    is_future_month,
    month_index,
)
from household_ledger.queries.summary import BreakdownDimension, SummaryAggregator

__all__ = [
    "BreakdownDimension",
    "PeriodClass",
    "PeriodFilter",
    "SummaryAggregator",
    "TransactionFilter",
    "bucket",
    "classify",
    "effective_date",
    "filter_transactions",
    "in_period",
    "is_current_month",
    "is_future_month",
    "month_index",
]
