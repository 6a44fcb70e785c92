"""Single-month figures for the dashboard summary cards, and the investment overview."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Sequence

from .config import DEFAULT_AGE
from .cpf import CpfConfigError, CpfRateTable, default_rate_table
from .frequency import average_monthly_amount
from .logging_setup import get_logger
from .models import FinancialItem, Investment, MonthLike, add_months, period_key
from .overrides import NOT_APPLICABLE, ResolvedAmount, resolve_amount

logger = get_logger("household_finance.summary")


@dataclass(frozen=True)
class MonthSummary:
    gross_income: float
    cpf_deduction: float
    net_income: float
    expenses: float

    @property
    def savings(self) -> float:
        return round(self.net_income - self.expenses, 2)


@dataclass(frozen=True)
class MonthComparison:
    current: MonthSummary
    previous: MonthSummary
    income_change: float
    income_change_percent: float
    expense_change: float
    expense_change_percent: float
    savings_change: float
    savings_change_percent: float


def _resolve_or_skip(item: FinancialItem, month: MonthLike, now: date, age: float, table: CpfRateTable) -> ResolvedAmount:
    try:
        return resolve_amount(item, month, now=now, age=age, cpf_table=table)
    except CpfConfigError:
        raise
    except (TypeError, ValueError, AttributeError, KeyError, ZeroDivisionError):
        logger.warning("Item %s: could not resolve %s; counting 0", item.id, period_key(month))
        return NOT_APPLICABLE


def month_summary(
    incomes: Sequence[FinancialItem],
    expenses: Sequence[FinancialItem],
    month: MonthLike,
    *,
    now: date,
    age: float = DEFAULT_AGE,
    cpf_table: Optional[CpfRateTable] = None,
) -> MonthSummary:
    if age is None or age < 0:
        raise ValueError(f"Age must be non-negative, got {age}")
    table = cpf_table or default_rate_table()
    gross = 0.0
    cpf = 0.0
    for income in incomes:
        resolved = _resolve_or_skip(income, month, now, age, table)
        gross += resolved.amount
        cpf += resolved.employee_cpf
    spent = sum(_resolve_or_skip(expense, month, now, age, table).amount for expense in expenses)
    return MonthSummary(
        gross_income=round(gross, 2),
        cpf_deduction=round(cpf, 2),
        net_income=round(gross - cpf, 2),
        expenses=round(spent, 2),
    )


def _percent_change(change: float, base: float) -> float:
    if base == 0:
        return 0.0
    return round(change / base * 100, 2)


def compare_months(
    incomes: Sequence[FinancialItem],
    expenses: Sequence[FinancialItem],
    month: MonthLike,
    *,
    now: date,
    age: float = DEFAULT_AGE,
    cpf_table: Optional[CpfRateTable] = None,
) -> MonthComparison:
    """Summaries for ``month`` and the month before, with changes between them."""
    current = month_summary(incomes, expenses, month, now=now, age=age, cpf_table=cpf_table)
    previous = month_summary(incomes, expenses, add_months(month, -1), now=now, age=age, cpf_table=cpf_table)

    income_change = round(current.net_income - previous.net_income, 2)
    expense_change = round(current.expenses - previous.expenses, 2)
    savings_change = round(current.savings - previous.savings, 2)
    return MonthComparison(
        current=current,
        previous=previous,
        income_change=income_change,
        income_change_percent=_percent_change(income_change, previous.net_income if previous.net_income > 0 else 0),
        expense_change=expense_change,
        expense_change_percent=_percent_change(expense_change, previous.expenses if previous.expenses > 0 else 0),
        savings_change=savings_change,
        savings_change_percent=_percent_change(savings_change, abs(previous.savings)),
    )


@dataclass(frozen=True)
class InvestmentSummary:
    id: str
    name: str
    current_capital: float
    projected_yield: float
    monthly_contribution: float


def investment_summaries(investments: Sequence[Investment]) -> List[InvestmentSummary]:
    """Capital, yield and typical monthly contribution of each active investment.

    Custom schedules are spread over the year, so 500 paid in two months
    shows as 83.33 a month.
    """
    return [
        InvestmentSummary(
            id=investment.id,
            name=investment.name,
            current_capital=round(investment.current_capital, 2),
            projected_yield=investment.projected_yield,
            monthly_contribution=round(average_monthly_amount(
                investment.contribution_amount,
                investment.contribution_frequency,
                investment.custom_months,
            ), 2),
        )
        for investment in investments
        if investment.is_active
    ]
