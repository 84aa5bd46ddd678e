"""
Period Classification

Pure functions that place a transaction's effective date relative to a
reference "now". Everything here works on calendar months in UTC, through
a single month index (year * 12 + month - 1), so December -> January needs
no special case.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Mapping, Optional, Union

from household_ledger.models.transaction import (
    DRAFT_CLASSES,
    TRANSACTION_CLASSES,
    parse_timestamp,
    to_utc,
)


class PeriodClass(str, Enum):
    """Coarse classification used by the summary."""
    PAST_OR_CURRENT = "past_or_current"
    FUTURE = "future"


class PeriodFilter(str, Enum):
    """History filter periods, as offered to the user."""
    ALL = "all"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    LAST_3_MONTHS = "last_3_months"
    THIS_YEAR = "this_year"
    NEXT_MONTH = "next_month"


def month_index(value: datetime) -> int:
    value = to_utc(value)
    return value.year * 12 + value.month - 1


def effective_date(record: Union[Mapping[str, Any], Any]) -> Optional[datetime]:
    """
    Due date if present, else creation date.

    Accepts stored models, drafts and raw mappings (camelCase or
    snake_case keys). Returns None if neither date parses.
    """
    if isinstance(record, TRANSACTION_CLASSES + DRAFT_CLASSES):
        return record.effective_date

    for key in ("dueDate", "due_date", "createdAt", "created_at"):
        parsed = parse_timestamp(record.get(key))
        if parsed is not None:
            return parsed
    return None


def is_current_month(value: datetime, now: datetime) -> bool:
    return month_index(value) == month_index(now)


def is_future_month(value: datetime, now: datetime) -> bool:
    """Strictly after the month of ``now``."""
    return month_index(value) > month_index(now)


def classify(value: datetime, now: datetime) -> PeriodClass:
    if is_future_month(value, now):
        return PeriodClass.FUTURE
    return PeriodClass.PAST_OR_CURRENT


def bucket(value: Optional[datetime], now: datetime) -> PeriodFilter:
    """
    The most specific history period a date falls in.

    Precedence: this_month, next_month, last_month, last_3_months,
    this_year, all.
    """
    if value is None:
        return PeriodFilter.ALL

    offset = month_index(value) - month_index(now)
    if offset == 0:
        return PeriodFilter.THIS_MONTH
    if offset == 1:
        return PeriodFilter.NEXT_MONTH
    if offset == -1:
        return PeriodFilter.LAST_MONTH
    if -3 <= offset < -1:
        return PeriodFilter.LAST_3_MONTHS
    if to_utc(value).year == to_utc(now).year:
        return PeriodFilter.THIS_YEAR
    return PeriodFilter.ALL


def in_period(
    value: Optional[datetime],
    period: Union[PeriodFilter, str],
    now: datetime,
) -> bool:
    """
    Whether a date passes a history filter.

    Periods overlap: a date in this month is also in last_3_months (which
    runs from the start of the month three months back to the end of this
    month) and in this_year.
    """
    period = PeriodFilter(period)
    if period == PeriodFilter.ALL:
        return True
    if value is None:
        return False

    offset = month_index(value) - month_index(now)

    if period == PeriodFilter.THIS_MONTH:
        return offset == 0
    if period == PeriodFilter.LAST_MONTH:
        return offset == -1
    if period == PeriodFilter.LAST_3_MONTHS:
        return -3 <= offset <= 0
    if period == PeriodFilter.NEXT_MONTH:
        return offset == 1
    # THIS_YEAR
    return to_utc(value).year == to_utc(now).year
