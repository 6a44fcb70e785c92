"""CPF contribution calculations.

Contribution rates are age banded and the Ordinary Wage (OW) ceiling caps
the portion of a monthly wage that attracts CPF.  Bonuses are Additional
Wages and share the Annual Wage (AW) ceiling with twelve months of OW.
The rate table is configuration (``settings/cpf.json``); every calculation
accepts an explicit :class:`CpfRateTable` so callers and tests can swap it.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Mapping, Optional, Sequence, Tuple

from .models import FinancialItem
from .settings import load_config

ALLOCATION_TOLERANCE = 0.01
RECONCILE_TOLERANCE = 0.01


class CpfConfigError(ValueError):
    """Raised when the CPF rate table is unusable."""


@dataclass(frozen=True)
class ContributionBand:
    max_age: Optional[int]  # None means no upper bound
    employer: float
    employee: float
    label: str = ''


@dataclass(frozen=True)
class AllocationBand:
    max_age: Optional[int]
    oa: float
    sa: float
    ma: float
    label: str = ''


@dataclass(frozen=True)
class CpfRateTable:
    ordinary_wage_ceiling: float
    annual_wage_ceiling: float
    contribution_bands: Tuple[ContributionBand, ...]
    allocation_bands: Tuple[AllocationBand, ...]

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> 'CpfRateTable':
        try:
            table = cls(
                ordinary_wage_ceiling=float(config['ordinary_wage_ceiling']),
                annual_wage_ceiling=float(config['annual_wage_ceiling']),
                contribution_bands=tuple(
                    ContributionBand(
                        max_age=band.get('max_age'),
                        employer=float(band['employer']),
                        employee=float(band['employee']),
                        label=band.get('label', ''),
                    )
                    for band in config['contribution_bands']
                ),
                allocation_bands=tuple(
                    AllocationBand(
                        max_age=band.get('max_age'),
                        oa=float(band['oa']),
                        sa=float(band['sa']),
                        ma=float(band['ma']),
                        label=band.get('label', ''),
                    )
                    for band in config['allocation_bands']
                ),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CpfConfigError(f"Invalid CPF configuration: {exc}") from exc
        table.validate()
        return table

    def validate(self) -> None:
        if self.ordinary_wage_ceiling <= 0:
            raise CpfConfigError("Ordinary wage ceiling must be positive")
        if self.annual_wage_ceiling <= 0:
            raise CpfConfigError("Annual wage ceiling must be positive")
        _validate_bands(self.contribution_bands, 'contribution')
        _validate_bands(self.allocation_bands, 'allocation')
        for band in self.contribution_bands:
            for rate in (band.employer, band.employee):
                if not 0 <= rate <= 1:
                    raise CpfConfigError(f"Contribution rate {rate} out of range in band '{band.label}'")
        for band in self.allocation_bands:
            if abs(band.oa + band.sa + band.ma - 1) > ALLOCATION_TOLERANCE:
                raise CpfConfigError(f"Allocation band '{band.label}' does not sum to 1")


def _validate_bands(bands: Sequence[Any], kind: str) -> None:
    if not bands:
        raise CpfConfigError(f"No {kind} bands configured")
    bounded = [band.max_age for band in bands[:-1]]
    if any(age is None for age in bounded):
        raise CpfConfigError(f"Only the last {kind} band may be open-ended")
    if bounded != sorted(bounded) or len(set(bounded)) != len(bounded):
        raise CpfConfigError(f"{kind.capitalize()} bands must be sorted by increasing max_age")
    last = bands[-1].max_age
    if last is not None and bounded and last <= bounded[-1]:
        raise CpfConfigError(f"{kind.capitalize()} bands must be sorted by increasing max_age")


@lru_cache(maxsize=1)
def default_rate_table() -> CpfRateTable:
    """The shipped rate table from ``settings/cpf.json``."""
    return CpfRateTable.from_config(load_config('cpf'))


@dataclass(frozen=True)
class CpfResult:
    gross_amount: float
    cpf_applicable_amount: float
    employee_contribution: float
    employer_contribution: float
    total_contribution: float
    net_take_home: float


@dataclass(frozen=True)
class CpfAllocation:
    ordinary_account: float
    special_account: float
    medisave_account: float


@dataclass(frozen=True)
class BonusCpfResult:
    bonus_amount: float
    annual_base_cpf: float
    remaining_annual_ceiling: float
    bonus_cpf_applicable_amount: float
    employee_contribution: float
    employer_contribution: float
    total_contribution: float
    allocation: CpfAllocation

    @property
    def net_bonus(self) -> float:
        return round(self.bonus_amount - self.employee_contribution, 2)


@dataclass(frozen=True)
class CpfReconciliation:
    stored: Optional[float]
    computed: float
    matches: bool


def _band_for_age(bands, age: float):
    for band in bands:
        if band.max_age is None or age <= band.max_age:
            return band
    # Table whose last band is bounded and the age is beyond it
    raise CpfConfigError(f"No CPF band covers age {age}")


def _check_age(age: float) -> None:
    if age is None or age < 0:
        raise ValueError(f"Age must be non-negative, got {age}")


def contribution_rates(age: float, table: Optional[CpfRateTable] = None) -> ContributionBand:
    _check_age(age)
    return _band_for_age((table or default_rate_table()).contribution_bands, age)


def allocation_rates(age: float, table: Optional[CpfRateTable] = None) -> AllocationBand:
    _check_age(age)
    return _band_for_age((table or default_rate_table()).allocation_bands, age)


def compute_cpf(gross_monthly_wage: float, age: float = 30, *, table: Optional[CpfRateTable] = None) -> CpfResult:
    """Split a monthly wage into employee/employer CPF and net take-home.

    Only the part of the wage up to the OW ceiling attracts CPF, so any wage
    at or above the ceiling contributes the same capped amount.
    """
    if gross_monthly_wage is None or gross_monthly_wage < 0:
        raise ValueError(f"Wage must be non-negative, got {gross_monthly_wage}")
    table = table or default_rate_table()
    rates = contribution_rates(age, table)

    applicable = min(gross_monthly_wage, table.ordinary_wage_ceiling)
    employee = applicable * rates.employee
    employer = applicable * rates.employer

    return CpfResult(
        gross_amount=gross_monthly_wage,
        cpf_applicable_amount=applicable,
        employee_contribution=round(employee, 2),
        employer_contribution=round(employer, 2),
        total_contribution=round(employee + employer, 2),
        net_take_home=round(gross_monthly_wage - employee, 2),
    )


def allocate_contribution(total_contribution: float, age: float, *, table: Optional[CpfRateTable] = None) -> CpfAllocation:
    """Distribute a total contribution across the OA/SA/MA accounts.

    MediSave takes the remainder, so the three accounts always add up to
    the rounded total.
    """
    rates = allocation_rates(age, table)
    total = round(total_contribution, 2)
    ordinary = round(total * rates.oa, 2)
    special = round(total * rates.sa, 2)
    return CpfAllocation(
        ordinary_account=ordinary,
        special_account=special,
        medisave_account=round(total - ordinary - special, 2),
    )


def compute_bonus_cpf(
    monthly_wage: float,
    bonus_amount: float,
    age: float = 30,
    *,
    table: Optional[CpfRateTable] = None,
) -> BonusCpfResult:
    """CPF on an Additional Wage, limited by what the AW ceiling has left after a year of OW."""
    if monthly_wage is None or monthly_wage < 0:
        raise ValueError(f"Wage must be non-negative, got {monthly_wage}")
    if bonus_amount is None or bonus_amount < 0:
        raise ValueError(f"Bonus must be non-negative, got {bonus_amount}")
    table = table or default_rate_table()
    rates = contribution_rates(age, table)

    annual_base = min(monthly_wage, table.ordinary_wage_ceiling) * 12
    remaining = max(0.0, table.annual_wage_ceiling - annual_base)
    applicable = min(bonus_amount, remaining)

    employee = applicable * rates.employee
    employer = applicable * rates.employer
    total = employee + employer

    return BonusCpfResult(
        bonus_amount=bonus_amount,
        annual_base_cpf=annual_base,
        remaining_annual_ceiling=remaining,
        bonus_cpf_applicable_amount=applicable,
        employee_contribution=round(employee, 2),
        employer_contribution=round(employer, 2),
        total_contribution=round(total, 2),
        allocation=allocate_contribution(total, age, table=table),
    )


def reconcile_stored_cpf(item: FinancialItem, age: float = 30, *, table: Optional[CpfRateTable] = None) -> CpfReconciliation:
    """Compare an income's stored employee CPF with what the table gives today.

    The stored figure stays authoritative for projections; a mismatch only
    means it predates a rate change and the edit form should offer the new
    default.
    """
    computed = compute_cpf(max(item.amount, 0.0), age, table=table).employee_contribution
    stored = item.employee_cpf_contribution
    matches = stored is not None and abs(stored - computed) <= RECONCILE_TOLERANCE
    return CpfReconciliation(stored=stored, computed=computed, matches=matches)
