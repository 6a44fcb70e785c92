"""Frequency resolution: does an item apply in a month, and for how much.

Monthly, yearly, weekly and bi-weekly items are smoothed: they apply in
every active month at their monthly-equivalent value, so a yearly bonus
shows up as a twelfth each month.  Custom and one-time items land their
full amount in the months they occur.
"""

from __future__ import annotations

from datetime import date
from typing import Any, FrozenSet, Optional

from .logging_setup import get_logger
from .models import SMOOTHED_FREQUENCIES, FinancialItem, Frequency, MonthLike, month_end, month_start
from .parsing import parse_custom_months

logger = get_logger("household_finance.frequency")

MONTHLY_MULTIPLIERS = {
    Frequency.MONTHLY: 1.0,
    Frequency.YEARLY: 1 / 12,
    Frequency.WEEKLY: 52 / 12,
    Frequency.BI_WEEKLY: 26 / 12,
    Frequency.CUSTOM: 1.0,
    Frequency.ONE_TIME: 1.0,
}


def is_active_for_month(item: FinancialItem, month: MonthLike, *, ignore_end_date: bool = False) -> bool:
    """Kill switch plus the ``[start_date, end_date]`` window.

    A missing start date means the item has always been running.
    """
    if not item.is_active:
        return False
    first = month_start(month)
    if item.start_date is not None and item.start_date > month_end(first):
        return False
    if not ignore_end_date and item.end_date is not None and item.end_date < first:
        return False
    return True


def _decode_months(months: Any, record_id: str = '?') -> Optional[FrozenSet[int]]:
    if months is None or isinstance(months, frozenset):
        return months
    # Raw storage text or a plain list
    return parse_custom_months(months, record_id)


def _occurs_in_month(item: FinancialItem, frequency: Frequency, first: date) -> bool:
    if frequency in SMOOTHED_FREQUENCIES:
        return True
    if frequency == Frequency.CUSTOM:
        months = _decode_months(item.custom_months, item.id)
        return bool(months) and first.month in months
    if frequency == Frequency.ONE_TIME:
        start = item.start_date
        return start is not None and start.year == first.year and start.month == first.month
    return False


def resolves_this_month(item: FinancialItem, month: MonthLike, *, ignore_end_date: bool = False) -> bool:
    frequency = item.normalized_frequency
    if frequency is None:
        logger.warning("Item %s has unknown frequency %r; treating as never applying", item.id, item.frequency)
        return False
    if not is_active_for_month(item, month, ignore_end_date=ignore_end_date):
        return False
    return _occurs_in_month(item, frequency, month_start(month))


def monthly_equivalent(amount: float, frequency: Frequency | str) -> float:
    """Convert a stated amount to what it contributes in one applicable month."""
    parsed = Frequency.parse(frequency)
    if parsed is None:
        return 0.0
    return amount * MONTHLY_MULTIPLIERS[parsed]


def scheduled_amount(item: FinancialItem, month: MonthLike, *, ignore_end_date: bool = False) -> float:
    if not resolves_this_month(item, month, ignore_end_date=ignore_end_date):
        return 0.0
    return monthly_equivalent(item.amount, item.frequency)


def average_monthly_amount(amount: float, frequency: Frequency | str, custom_months: Optional[FrozenSet[int]] = None) -> float:
    """Typical monthly figure for display, spreading custom schedules over the year.

    One-time amounts have no steady-state monthly figure and yield 0.
    """
    parsed = Frequency.parse(frequency)
    if parsed == Frequency.CUSTOM:
        return amount * len(_decode_months(custom_months) or ()) / 12
    if parsed == Frequency.ONE_TIME:
        return 0.0
    return monthly_equivalent(amount, frequency)
