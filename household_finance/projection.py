"""Month-by-month balance projection.

``project`` walks the horizon one calendar month at a time, resolving every
income and expense through the override layer, and keeps a running
balance.  Frame 0 is the anchor (today's holdings, no flows).  One-off and
custom-month events are collected per frame for chart annotation; they are
summed exactly like recurring items.  Investments compound in a separate
series that never feeds back into ``cumulative_balance``.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .config import DEFAULT_AGE, DEFAULT_HORIZON_MONTHS, MAX_HORIZON_MONTHS
from .cpf import CpfConfigError, CpfRateTable, compute_bonus_cpf, default_rate_table
from .frequency import is_active_for_month, monthly_equivalent, resolves_this_month
from .logging_setup import get_logger
from .models import (
    FinancialItem,
    Frequency,
    Investment,
    MonthLike,
    MonthlyBalanceFrame,
    SpecialItem,
    add_months,
    month_end,
    month_start,
    period_key,
)
from .overrides import OverrideSource, resolve_amount

logger = get_logger("household_finance.projection")

CUMULATIVE = 'cumulative'
NON_CUMULATIVE = 'non-cumulative'
VIEW_MODES = (CUMULATIVE, NON_CUMULATIVE)

MONTH_ABBREVIATIONS = ('Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun', 'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec')

TIME_RANGES: Dict[str, str] = {
    '12': '12 Months',
    '24': '24 Months',
    '36': '3 Years',
    '60': '5 Years',
    '120': '10 Years',
}


def month_label(month: MonthLike) -> str:
    """Display label such as ``"Jan 2025"``, independent of the process locale."""
    first = month_start(month)
    return f"{MONTH_ABBREVIATIONS[first.month - 1]} {first.year}"


def time_range_to_months(value: object) -> int:
    """Convert a time-range selector value to a month count, defaulting to 12."""
    try:
        months = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_HORIZON_MONTHS
    if months <= 0:
        return DEFAULT_HORIZON_MONTHS
    return min(months, MAX_HORIZON_MONTHS)


def _round(value: float) -> float:
    # + 0.0 folds -0.0 into 0.0
    return round(value, 2) + 0.0


def _special_type(item: FinancialItem) -> Optional[str]:
    frequency = item.normalized_frequency
    if frequency == Frequency.ONE_TIME:
        return 'one-off-income' if item.is_income else 'one-off-expense'
    if frequency == Frequency.CUSTOM and not item.is_income:
        return 'custom-expense'
    return None


def bonus_for_month(
    item: FinancialItem,
    month: MonthLike,
    *,
    age: float = DEFAULT_AGE,
    cpf_table: Optional[CpfRateTable] = None,
) -> Optional[SpecialItem]:
    """Net bonus paid by an income in ``month``, if its bonus schedule has one."""
    if not (item.is_income and item.account_for_bonus and item.bonus_groups):
        return None
    if not is_active_for_month(item, month):
        return None
    month_number = month_start(month).month
    group = next((g for g in item.bonus_groups if g.month == month_number), None)
    if group is None:
        return None
    gross = max(item.amount, 0.0) * group.multiplier
    if gross <= 0:
        return None
    net = gross
    if item.subject_to_cpf:
        net = compute_bonus_cpf(max(item.amount, 0.0), gross, age, table=cpf_table).net_bonus
    return SpecialItem(type='bonus', amount=_round(net), name=f"{item.name} Bonus ({group.multiplier:g}x)")


class _InvestmentTracker:
    """Running balances for the investment series.

    Each investment compounds from its start month on.  A second balance
    compounds the same capital without contributions, for comparison.
    """

    def __init__(self, investments: Sequence[Investment]):
        self.investments = [inv for inv in investments if inv.is_active]
        self.balances = [inv.current_capital for inv in self.investments]
        self.growth_only = list(self.balances)

    @property
    def total(self) -> float:
        return sum(self.balances)

    @property
    def total_without_contributions(self) -> float:
        return sum(self.growth_only)

    def advance(self, month: date) -> None:
        for index, investment in enumerate(self.investments):
            if investment.start_date is not None and investment.start_date > month_end(month):
                continue
            rate = 1 + investment.projected_yield / 100 / 12
            balance = self.balances[index] * rate
            self.growth_only[index] *= rate
            schedule = investment.contribution_schedule()
            try:
                if resolves_this_month(schedule, month):
                    balance += monthly_equivalent(schedule.amount, schedule.frequency)
            except (TypeError, ValueError, AttributeError):
                logger.warning("Investment %s: skipping contribution for %s", investment.id, period_key(month))
            self.balances[index] = balance


def project(
    incomes: Sequence[FinancialItem],
    expenses: Sequence[FinancialItem],
    investments: Optional[Sequence[Investment]] = None,
    months: int = DEFAULT_HORIZON_MONTHS,
    starting_balance: float = 0.0,
    *,
    now: date,
    age: float = DEFAULT_AGE,
    include_investments: bool = True,
    cpf_table: Optional[CpfRateTable] = None,
) -> List[MonthlyBalanceFrame]:
    """Project the balance over ``months`` months after ``now``.

    Returns ``months + 1`` frames; frame 0 anchors the chart at
    ``starting_balance`` for the current month.
    """
    if age is None or age < 0:
        raise ValueError(f"Age must be non-negative, got {age}")
    months = max(0, int(months))
    table = cpf_table or default_rate_table()
    tracker = _InvestmentTracker(investments) if (investments and include_investments) else None

    anchor = month_start(now)
    cumulative = float(starting_balance)
    frames = [_anchor_frame(anchor, cumulative, tracker)]

    for offset in range(1, months + 1):
        month = add_months(anchor, offset)
        specials: List[SpecialItem] = []

        gross_income = 0.0
        cpf_deduction = 0.0
        bonus_total = 0.0
        for income in incomes:
            try:
                resolved = resolve_amount(income, month, now=now, age=age, cpf_table=table)
                bonus = bonus_for_month(income, month, age=age, cpf_table=table)
            except CpfConfigError:
                raise
            except (TypeError, ValueError, AttributeError, KeyError, ZeroDivisionError):
                logger.warning("Income %s: could not resolve %s; contributing 0", income.id, period_key(month))
                continue
            if resolved.applies:
                gross_income += resolved.amount
                cpf_deduction += resolved.employee_cpf
                special = _special_type(income) if resolved.used_override == OverrideSource.NONE else None
                if special and resolved.amount > 0:
                    specials.append(SpecialItem(type=special, amount=_round(resolved.net), name=income.name))
            if bonus is not None:
                bonus_total += bonus.amount
                specials.append(bonus)

        expense_total = 0.0
        for expense in expenses:
            try:
                resolved = resolve_amount(expense, month, now=now, age=age, cpf_table=table)
            except CpfConfigError:
                raise
            except (TypeError, ValueError, AttributeError, KeyError, ZeroDivisionError):
                logger.warning("Expense %s: could not resolve %s; contributing 0", expense.id, period_key(month))
                continue
            if not resolved.applies:
                continue
            expense_total += resolved.amount
            special = _special_type(expense) if resolved.used_override == OverrideSource.NONE else None
            if special and resolved.amount > 0:
                specials.append(SpecialItem(type=special, amount=_round(resolved.amount), name=expense.name))

        income_total = gross_income - cpf_deduction + bonus_total
        monthly_balance = income_total - expense_total
        cumulative += monthly_balance

        investment_value = None
        with_investments = None
        growth_only = None
        if tracker is not None:
            tracker.advance(month)
            investment_value = _round(tracker.total)
            with_investments = _round(cumulative + tracker.total)
            growth_only = _round(tracker.total_without_contributions)

        frames.append(MonthlyBalanceFrame(
            month=month_label(month),
            period=period_key(month),
            income=_round(income_total),
            expense=_round(expense_total),
            monthly_balance=_round(monthly_balance),
            cumulative_balance=_round(cumulative),
            gross_income=_round(gross_income),
            cpf_deduction=_round(cpf_deduction),
            bonus=_round(bonus_total),
            special_items=tuple(specials),
            investment_value=investment_value,
            balance_with_investments=with_investments,
            investment_value_without_contributions=growth_only,
        ))

    return frames


def _anchor_frame(anchor: date, balance: float, tracker: Optional[_InvestmentTracker]) -> MonthlyBalanceFrame:
    investment_value = None
    with_investments = None
    growth_only = None
    if tracker is not None:
        investment_value = _round(tracker.total)
        with_investments = _round(balance + tracker.total)
        growth_only = _round(tracker.total_without_contributions)
    return MonthlyBalanceFrame(
        month=month_label(anchor),
        period=period_key(anchor),
        income=0.0,
        expense=0.0,
        monthly_balance=0.0,
        cumulative_balance=_round(balance),
        investment_value=investment_value,
        balance_with_investments=with_investments,
        investment_value_without_contributions=growth_only,
    )


FRAME_COLUMNS = [
    'Month', 'Period', 'Income', 'Gross Income', 'CPF Deduction', 'Bonus', 'Expense',
    'Monthly Balance', 'Cumulative Balance', 'Investment Value', 'Balance With Investments',
    'Investment Value Without Contributions', 'Special Items',
]


def frames_to_dataframe(frames: Sequence[MonthlyBalanceFrame]) -> pd.DataFrame:
    """Tabulate frames, one row per month, for tables and charts."""
    if not frames:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    rows = []
    for frame in frames:
        rows.append({
            'Month': frame.month,
            'Period': frame.period,
            'Income': frame.income,
            'Gross Income': frame.gross_income,
            'CPF Deduction': frame.cpf_deduction,
            'Bonus': frame.bonus,
            'Expense': frame.expense,
            'Monthly Balance': frame.monthly_balance,
            'Cumulative Balance': frame.cumulative_balance,
            'Investment Value': frame.investment_value,
            'Balance With Investments': frame.balance_with_investments,
            'Investment Value Without Contributions': frame.investment_value_without_contributions,
            'Special Items': [asdict(item) for item in frame.special_items],
        })
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def chart_data(frames: Sequence[MonthlyBalanceFrame], mode: str = CUMULATIVE) -> pd.DataFrame:
    """Columns a chart plots for a view mode, derived from already projected frames.

    ``cumulative`` keeps the running balance (and the investment series when
    present); ``non-cumulative`` keeps the raw monthly flows.
    """
    if mode not in VIEW_MODES:
        raise ValueError(f"Unknown view mode '{mode}'. Expected one of {VIEW_MODES}")
    table = frames_to_dataframe(frames)
    if mode == CUMULATIVE:
        columns = ['Month', 'Cumulative Balance']
        if table['Balance With Investments'].notna().any():
            columns.append('Balance With Investments')
    else:
        columns = ['Month', 'Income', 'Expense', 'Monthly Balance']
    return table[columns + ['Special Items']].set_index('Month')
