"""Value objects shared by the schedule engine.

Everything here is immutable.  The engine never mutates an item; callers
hand in a fresh snapshot on every calculation.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import FrozenSet, Optional, Tuple, Union

MonthLike = Union[date, datetime, str]


class Frequency(str, Enum):
    MONTHLY = 'monthly'
    YEARLY = 'yearly'
    WEEKLY = 'weekly'
    BI_WEEKLY = 'bi-weekly'
    CUSTOM = 'custom'
    ONE_TIME = 'one-time'

    @classmethod
    def parse(cls, value: object) -> Optional['Frequency']:
        """Normalize a stored frequency string, returning ``None`` when unknown."""
        if isinstance(value, Frequency):
            return value
        if not isinstance(value, str):
            return None
        text = value.strip().lower().replace('_', '-').replace(' ', '-')
        text = _FREQUENCY_ALIASES.get(text, text)
        try:
            return cls(text)
        except ValueError:
            return None


_FREQUENCY_ALIASES = {
    'biweekly': 'bi-weekly',
    'onetime': 'one-time',
    'once': 'one-time',
    'annual': 'yearly',
    'annually': 'yearly',
}

# Frequencies whose stated amount is spread evenly over every active month.
SMOOTHED_FREQUENCIES = frozenset({
    Frequency.MONTHLY,
    Frequency.YEARLY,
    Frequency.WEEKLY,
    Frequency.BI_WEEKLY,
})


class ItemKind(str, Enum):
    INCOME = 'income'
    EXPENSE = 'expense'
    INVESTMENT = 'investment'


@dataclass(frozen=True)
class PastIncomeEntry:
    period: str  # "2024" (yearly) or "2024-03" (monthly)
    granularity: str  # "monthly" | "yearly"
    amount: float


@dataclass(frozen=True)
class FutureMilestone:
    target_month: str  # "YYYY-MM"
    amount: float
    reason: Optional[str] = None


@dataclass(frozen=True)
class BonusGroup:
    month: int
    multiplier: float


@dataclass(frozen=True)
class FinancialItem:
    id: str
    amount: float
    frequency: str
    kind: ItemKind = ItemKind.EXPENSE
    name: str = ''
    category: Optional[str] = None
    custom_months: Optional[FrozenSet[int]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True
    # Income only
    subject_to_cpf: bool = False
    employee_cpf_contribution: Optional[float] = None
    past_income_history: Tuple[PastIncomeEntry, ...] = ()
    future_milestones: Tuple[FutureMilestone, ...] = ()
    account_for_future_change: bool = False
    account_for_bonus: bool = False
    bonus_groups: Tuple[BonusGroup, ...] = ()

    @property
    def normalized_frequency(self) -> Optional[Frequency]:
        return Frequency.parse(self.frequency)

    @property
    def is_income(self) -> bool:
        return self.kind == ItemKind.INCOME


@dataclass(frozen=True)
class Investment:
    id: str
    current_capital: float
    projected_yield: float  # annual percentage
    contribution_amount: float = 0.0
    contribution_frequency: str = 'monthly'
    name: str = ''
    custom_months: Optional[FrozenSet[int]] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    is_active: bool = True

    @property
    def kind(self) -> ItemKind:
        return ItemKind.INVESTMENT

    def contribution_schedule(self) -> FinancialItem:
        """View the contribution plan as an item the frequency resolver understands."""
        return FinancialItem(
            id=self.id,
            name=self.name,
            amount=self.contribution_amount,
            frequency=self.contribution_frequency,
            kind=ItemKind.INVESTMENT,
            custom_months=self.custom_months,
            start_date=self.start_date,
            end_date=self.end_date,
            is_active=self.is_active,
        )


@dataclass(frozen=True)
class CpfLoanDeduction:
    """Property loan instalment paid from the Ordinary Account."""

    monthly_amount: float
    remaining_months: int


SPECIAL_ITEM_TYPES = ('one-off-income', 'one-off-expense', 'custom-expense', 'bonus')


@dataclass(frozen=True)
class SpecialItem:
    type: str
    amount: float
    name: str


@dataclass(frozen=True)
class MonthlyBalanceFrame:
    month: str
    period: str
    income: float
    expense: float
    monthly_balance: float
    cumulative_balance: float
    gross_income: float = 0.0
    cpf_deduction: float = 0.0
    bonus: float = 0.0
    special_items: Tuple[SpecialItem, ...] = field(default_factory=tuple)
    investment_value: Optional[float] = None
    balance_with_investments: Optional[float] = None
    investment_value_without_contributions: Optional[float] = None


def month_start(value: MonthLike) -> date:
    """Return the first day of the month containing ``value``.

    Accepts ``date``/``datetime`` objects (including ``pandas.Timestamp``)
    and ``"YYYY-MM"`` or ``"YYYY-MM-DD"`` strings.
    """
    if isinstance(value, datetime):
        return date(value.year, value.month, 1)
    if isinstance(value, date):
        return value.replace(day=1)
    if isinstance(value, str):
        parts = value.strip().split('-')
        if len(parts) < 2:
            raise ValueError(f"Unrecognised month value '{value}'")
        return date(int(parts[0]), int(parts[1]), 1)
    if hasattr(value, 'year') and hasattr(value, 'month'):
        # pandas.Period and similar
        return date(int(value.year), int(value.month), 1)
    raise TypeError(f"Cannot interpret {type(value).__name__} as a month")


def month_end(value: MonthLike) -> date:
    start = month_start(value)
    last_day = calendar.monthrange(start.year, start.month)[1]
    return start.replace(day=last_day)


def add_months(value: MonthLike, offset: int) -> date:
    start = month_start(value)
    index = start.year * 12 + (start.month - 1) + offset
    return date(index // 12, index % 12 + 1, 1)


def period_key(value: MonthLike) -> str:
    """``"YYYY-MM"`` key used by history and milestone entries."""
    start = month_start(value)
    return f"{start.year:04d}-{start.month:02d}"

