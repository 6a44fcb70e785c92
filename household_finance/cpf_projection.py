"""Month-by-month CPF account balances for the household's earners.

Each member contributes CPF on the capped monthly wage from the first
projected month on, split into the Ordinary (OA), Special (SA) and
MediSave (MA) accounts by the allocation band for their age that month.
Bonus months add CPF on the Additional Wage.  Property loan instalments
paid from CPF come out of the OA, shared evenly between members, until
the loan is repaid.  Frame 0 is the starting point with nothing credited.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from .config import DEFAULT_AGE, DEFAULT_HORIZON_MONTHS
from .cpf import CpfRateTable, allocate_contribution, compute_bonus_cpf, contribution_rates, default_rate_table
from .frequency import monthly_equivalent
from .models import BonusGroup, CpfLoanDeduction, FinancialItem, add_months, month_start, period_key
from .projection import month_label


@dataclass(frozen=True)
class CpfMember:
    id: str
    monthly_gross_income: float
    name: str = ''
    date_of_birth: Optional[date] = None
    current_age: Optional[float] = None
    bonus_groups: Tuple[BonusGroup, ...] = ()


@dataclass(frozen=True)
class MemberCpfMonth:
    member_id: str
    age: float
    total: float
    ordinary_account: float
    special_account: float
    medisave_account: float
    loan_deduction: float
    cumulative_total: float
    cumulative_ordinary: float
    cumulative_special: float
    cumulative_medisave: float
    cumulative_loan_deduction: float


@dataclass(frozen=True)
class CpfProjectionFrame:
    month: str
    period: str
    members: Tuple[MemberCpfMonth, ...] = ()

    def _sum(self, attr: str) -> float:
        return _round(sum(getattr(member, attr) for member in self.members))

    @property
    def household_total(self) -> float:
        return self._sum('cumulative_total')

    @property
    def household_ordinary(self) -> float:
        return self._sum('cumulative_ordinary')

    @property
    def household_special(self) -> float:
        return self._sum('cumulative_special')

    @property
    def household_medisave(self) -> float:
        return self._sum('cumulative_medisave')

    @property
    def household_loan_deduction(self) -> float:
        return self._sum('cumulative_loan_deduction')

    @property
    def household_monthly_total(self) -> float:
        return self._sum('total')


def _round(value: float) -> float:
    return round(value, 2) + 0.0


def members_from_incomes(
    incomes: Iterable[FinancialItem],
    *,
    current_age: Optional[float] = None,
    dates_of_birth: Optional[Mapping[str, date]] = None,
) -> List[CpfMember]:
    """One member per active CPF-subject income, at its monthly-equivalent wage."""
    dates_of_birth = dates_of_birth or {}
    members = []
    for income in incomes:
        if not (income.is_income and income.is_active and income.subject_to_cpf):
            continue
        members.append(CpfMember(
            id=income.id,
            name=income.name,
            monthly_gross_income=max(monthly_equivalent(income.amount, income.frequency), 0.0),
            date_of_birth=dates_of_birth.get(income.id),
            current_age=current_age,
            bonus_groups=income.bonus_groups if income.account_for_bonus else (),
        ))
    return members


def age_at_month(member: CpfMember, now: date, offset: int) -> float:
    """Age ``offset`` months after ``now``.

    Uses the date of birth when known, otherwise the current age plus
    whole elapsed years.
    """
    if member.date_of_birth is not None:
        target = add_months(now, offset)
        dob = member.date_of_birth
        age = target.year - dob.year
        if (target.month, now.day) < (dob.month, dob.day):
            age -= 1
        return age
    base = member.current_age if member.current_age is not None else DEFAULT_AGE
    return base + offset // 12


def _loan_share(deductions: Sequence[CpfLoanDeduction], offset: int, member_count: int) -> float:
    return sum(
        deduction.monthly_amount / member_count
        for deduction in deductions
        if offset <= deduction.remaining_months
    )


def project_cpf(
    members: Sequence[CpfMember],
    months: int = DEFAULT_HORIZON_MONTHS,
    *,
    now: date,
    loan_deductions: Sequence[CpfLoanDeduction] = (),
    cpf_table: Optional[CpfRateTable] = None,
) -> List[CpfProjectionFrame]:
    """Project CPF account balances over ``months`` months after ``now``.

    Returns ``months + 1`` frames.  Raises ``ValueError`` when a member's
    age is negative and ``CpfConfigError`` when no band covers it.
    """
    months = max(0, int(months))
    table = cpf_table or default_rate_table()
    anchor = month_start(now)
    running: Dict[str, List[float]] = {member.id: [0.0] * 5 for member in members}

    frames = []
    for offset in range(months + 1):
        month = add_months(anchor, offset)
        rows = []
        for member in members:
            age = age_at_month(member, now, offset)
            # total, OA, SA, MA, loan deduction
            flows = [0.0] * 5
            if offset > 0:
                income = max(member.monthly_gross_income, 0.0)
                rates = contribution_rates(age, table)
                contribution = round(min(income, table.ordinary_wage_ceiling) * (rates.employer + rates.employee), 2)
                split = allocate_contribution(contribution, age, table=table)
                flows = [
                    contribution,
                    split.ordinary_account,
                    split.special_account,
                    split.medisave_account,
                    0.0,
                ]

                group = next((g for g in member.bonus_groups if g.month == month.month), None)
                if group is not None and group.multiplier > 0:
                    bonus = compute_bonus_cpf(income, income * group.multiplier, age, table=table)
                    flows[0] += bonus.total_contribution
                    flows[1] += bonus.allocation.ordinary_account
                    flows[2] += bonus.allocation.special_account
                    flows[3] += bonus.allocation.medisave_account

                loan = _loan_share(loan_deductions, offset, len(members))
                flows[0] -= loan
                flows[1] -= loan
                flows[4] = loan

            totals = running[member.id]
            for index, value in enumerate(flows):
                totals[index] += value
            rows.append(MemberCpfMonth(
                member_id=member.id,
                age=age,
                total=_round(flows[0]),
                ordinary_account=_round(flows[1]),
                special_account=_round(flows[2]),
                medisave_account=_round(flows[3]),
                loan_deduction=_round(flows[4]),
                cumulative_total=_round(totals[0]),
                cumulative_ordinary=_round(totals[1]),
                cumulative_special=_round(totals[2]),
                cumulative_medisave=_round(totals[3]),
                cumulative_loan_deduction=_round(totals[4]),
            ))
        frames.append(CpfProjectionFrame(month=month_label(month), period=period_key(month), members=tuple(rows)))
    return frames


CPF_COLUMNS = ['Month', 'Period', 'Total', 'OA', 'SA', 'MA', 'Loan Deduction', 'Monthly Total']


def cpf_frames_to_dataframe(frames: Sequence[CpfProjectionFrame]) -> pd.DataFrame:
    """Household totals per month."""
    rows = [
        {
            'Month': frame.month,
            'Period': frame.period,
            'Total': frame.household_total,
            'OA': frame.household_ordinary,
            'SA': frame.household_special,
            'MA': frame.household_medisave,
            'Loan Deduction': frame.household_loan_deduction,
            'Monthly Total': frame.household_monthly_total,
        }
        for frame in frames
    ]
    return pd.DataFrame(rows, columns=CPF_COLUMNS)
