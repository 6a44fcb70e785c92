"""Override layer: recorded history and future milestones take precedence over the base amount.

For a given item and month the amount comes from, in order:

1. a monthly ``pastIncomeHistory`` entry for that period (historical months),
2. a yearly history entry for that year, divided by 12 (historical months),
3. the most recent milestone at or before the period (future months, only
   when ``account_for_future_change`` is set),
4. the frequency resolver applied to the base amount.

Overrides are used verbatim; they are never run through frequency
smoothing.  The employee CPF carried alongside follows the same source.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Optional, Tuple

from .config import DEFAULT_AGE
from .cpf import CpfRateTable, compute_cpf, default_rate_table
from .frequency import is_active_for_month, monthly_equivalent, resolves_this_month
from .models import FinancialItem, FutureMilestone, MonthLike, PastIncomeEntry, month_start, period_key


class MonthClass(str, Enum):
    HISTORICAL = 'historical'
    CURRENT = 'current'
    FUTURE = 'future'


class OverrideSource(str, Enum):
    NONE = 'none'
    HISTORICAL = 'historical'
    MILESTONE = 'milestone'


@dataclass(frozen=True)
class ResolvedAmount:
    amount: float
    used_override: OverrideSource = OverrideSource.NONE
    applies: bool = False
    employee_cpf: float = 0.0

    @property
    def net(self) -> float:
        return self.amount - self.employee_cpf


NOT_APPLICABLE = ResolvedAmount(amount=0.0)


def classify_month(month: MonthLike, now: date) -> MonthClass:
    first = month_start(month)
    current = month_start(now)
    if first < current:
        return MonthClass.HISTORICAL
    if first > current:
        return MonthClass.FUTURE
    return MonthClass.CURRENT


def historical_amount(history: Iterable[PastIncomeEntry], month: MonthLike) -> Optional[float]:
    """First monthly entry for the period, else first yearly entry for the year / 12."""
    history = tuple(history)
    period = period_key(month)
    year = period[:4]
    for entry in history:
        if entry.granularity == 'monthly' and entry.period == period:
            return entry.amount
    for entry in history:
        if entry.granularity == 'yearly' and entry.period == year:
            return entry.amount / 12
    return None


def applicable_milestone(milestones: Iterable[FutureMilestone], month: MonthLike) -> Optional[FutureMilestone]:
    """Milestone with the greatest ``target_month`` not after the period."""
    period = period_key(month)
    candidates = [m for m in milestones if m.target_month <= period]
    if not candidates:
        return None
    return max(candidates, key=lambda m: m.target_month)


def milestones_extend_item(item: FinancialItem) -> bool:
    """Milestones describe a continuation, so they lift the end date."""
    return item.account_for_future_change and bool(item.future_milestones)


def _proportional_cpf(item: FinancialItem, amount: float, age: float, table: CpfRateTable) -> float:
    stored = item.employee_cpf_contribution
    if stored is None:
        return compute_cpf(max(amount, 0.0), age, table=table).employee_contribution
    if item.amount <= 0:
        return 0.0
    return amount * (stored / item.amount)


def _override_cpf(item: FinancialItem, amount: float, source: OverrideSource, age: float, table: CpfRateTable) -> float:
    if not (item.is_income and item.subject_to_cpf):
        return 0.0
    if source == OverrideSource.MILESTONE and amount > table.ordinary_wage_ceiling:
        return compute_cpf(amount, age, table=table).employee_contribution
    return _proportional_cpf(item, amount, age, table)


def _base_cpf(item: FinancialItem, amount: float, age: float, table: CpfRateTable) -> float:
    if not (item.is_income and item.subject_to_cpf):
        return 0.0
    if item.employee_cpf_contribution is not None:
        return item.employee_cpf_contribution
    return compute_cpf(max(amount, 0.0), age, table=table).employee_contribution


def _find_override(item: FinancialItem, month: MonthLike, now: date) -> Tuple[Optional[float], OverrideSource]:
    month_class = classify_month(month, now)
    if month_class == MonthClass.HISTORICAL and item.past_income_history:
        amount = historical_amount(item.past_income_history, month)
        if amount is not None:
            return amount, OverrideSource.HISTORICAL
    if month_class == MonthClass.FUTURE and item.account_for_future_change:
        milestone = applicable_milestone(item.future_milestones, month)
        if milestone is not None:
            return milestone.amount, OverrideSource.MILESTONE
    return None, OverrideSource.NONE


def resolve_amount(
    item: FinancialItem,
    month: MonthLike,
    *,
    now: date,
    age: float = DEFAULT_AGE,
    cpf_table: Optional[CpfRateTable] = None,
) -> ResolvedAmount:
    """Amount an item contributes to ``month``, with the override that produced it."""
    if not item.is_active:
        return NOT_APPLICABLE
    table = cpf_table or default_rate_table()
    open_ended = milestones_extend_item(item)

    override, source = _find_override(item, month, now)
    if source == OverrideSource.HISTORICAL:
        return ResolvedAmount(
            amount=override,
            used_override=source,
            applies=True,
            employee_cpf=_override_cpf(item, override, source, age, table),
        )
    if source == OverrideSource.MILESTONE and is_active_for_month(item, month, ignore_end_date=True):
        return ResolvedAmount(
            amount=override,
            used_override=source,
            applies=True,
            employee_cpf=_override_cpf(item, override, source, age, table),
        )

    if not resolves_this_month(item, month, ignore_end_date=open_ended):
        return NOT_APPLICABLE
    amount = monthly_equivalent(item.amount, item.frequency)
    return ResolvedAmount(
        amount=amount,
        used_override=OverrideSource.NONE,
        applies=True,
        employee_cpf=_base_cpf(item, amount, age, table),
    )
