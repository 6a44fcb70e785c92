from datetime import date

import pytest

from household_finance.cpf import (
    CpfConfigError,
    CpfRateTable,
    allocate_contribution,
    compute_bonus_cpf,
    compute_cpf,
    contribution_rates,
    default_rate_table,
    reconcile_stored_cpf,
)
from household_finance.models import FinancialItem, ItemKind


def _config(**overrides):
    config = {
        'ordinary_wage_ceiling': 6000,
        'annual_wage_ceiling': 90000,
        'contribution_bands': [
            {'max_age': 50, 'employer': 0.10, 'employee': 0.10},
            {'max_age': None, 'employer': 0.05, 'employee': 0.05},
        ],
        'allocation_bands': [
            {'max_age': None, 'oa': 0.5, 'sa': 0.25, 'ma': 0.25},
        ],
    }
    config.update(overrides)
    return config


def test_shipped_table_uses_8000_ceiling():
    table = default_rate_table()
    assert table.ordinary_wage_ceiling == 8000
    assert table.annual_wage_ceiling == 102000


def test_contribution_below_ceiling():
    result = compute_cpf(5000, 30)
    assert result.cpf_applicable_amount == 5000
    assert result.employee_contribution == 1000.0
    assert result.employer_contribution == 850.0
    assert result.total_contribution == 1850.0
    assert result.net_take_home == 4000.0


def test_wage_above_ceiling_contributes_capped_amount():
    above = compute_cpf(10000, 30)
    at = compute_cpf(8000, 30)
    assert above.employee_contribution == at.employee_contribution == 1600.0
    assert above.net_take_home == 8400.0


def test_rates_are_age_banded():
    assert contribution_rates(55).employee == 0.20
    assert contribution_rates(58).employee == 0.17
    assert contribution_rates(75).employee == 0.05
    assert compute_cpf(5000, 62).employee_contribution == 575.0


def test_out_of_domain_inputs_are_rejected():
    with pytest.raises(ValueError):
        compute_cpf(-1, 30)
    with pytest.raises(ValueError):
        compute_cpf(1000, -5)


def test_injected_table_overrides_shipped_rates():
    table = CpfRateTable.from_config(_config())
    assert compute_cpf(9000, 30, table=table).employee_contribution == 600.0
    assert compute_cpf(9000, 60, table=table).employee_contribution == 300.0


@pytest.mark.parametrize('overrides', [
    {'ordinary_wage_ceiling': 0},
    {'contribution_bands': []},
    {'contribution_bands': [{'max_age': None, 'employer': 0.1, 'employee': 1.5}]},
    {'contribution_bands': [
        {'max_age': 60, 'employer': 0.1, 'employee': 0.1},
        {'max_age': 50, 'employer': 0.1, 'employee': 0.1},
        {'max_age': None, 'employer': 0.1, 'employee': 0.1},
    ]},
    {'contribution_bands': [
        {'max_age': None, 'employer': 0.1, 'employee': 0.1},
        {'max_age': 50, 'employer': 0.1, 'employee': 0.1},
    ]},
    {'allocation_bands': [{'max_age': None, 'oa': 0.5, 'sa': 0.1, 'ma': 0.1}]},
    {'allocation_bands': None},
])
def test_misconfigured_tables_raise(overrides):
    with pytest.raises(CpfConfigError):
        CpfRateTable.from_config(_config(**overrides))


def test_missing_config_key_raises_config_error():
    config = _config()
    del config['annual_wage_ceiling']
    with pytest.raises(CpfConfigError):
        CpfRateTable.from_config(config)


def test_bounded_last_band_rejects_older_ages():
    table = CpfRateTable.from_config(_config(contribution_bands=[
        {'max_age': 60, 'employer': 0.1, 'employee': 0.1},
    ]))
    with pytest.raises(CpfConfigError):
        compute_cpf(1000, 70, table=table)


def test_bonus_cpf_respects_annual_wage_ceiling():
    result = compute_bonus_cpf(8000, 16000, 30)
    assert result.annual_base_cpf == 96000
    assert result.remaining_annual_ceiling == 6000
    assert result.bonus_cpf_applicable_amount == 6000
    assert result.employee_contribution == 1200.0
    assert result.net_bonus == 14800.0


def test_bonus_cpf_for_lower_wage_covers_whole_bonus():
    result = compute_bonus_cpf(4000, 6000, 30)
    assert result.bonus_cpf_applicable_amount == 6000
    assert result.employee_contribution == 1200.0
    allocation = result.allocation
    total = allocation.ordinary_account + allocation.special_account + allocation.medisave_account
    assert result.total_contribution == 2220.0
    assert total == pytest.approx(result.total_contribution)


def test_allocation_split_by_age():
    allocation = allocate_contribution(1000, 30)
    assert allocation.ordinary_account == 621.7
    assert allocation.special_account == 162.2
    assert allocation.medisave_account == 216.1


@pytest.mark.parametrize('total, age', [(2220.0, 30), (1234.56, 40), (999.99, 52), (3041.0, 62), (17.0, 75)])
def test_allocation_accounts_add_up_to_total(total, age):
    allocation = allocate_contribution(total, age)
    split = allocation.ordinary_account + allocation.special_account + allocation.medisave_account
    assert round(split, 2) == total


def test_reconcile_stored_cpf():
    stale = FinancialItem(
        id='salary', amount=5000.0, frequency='monthly', kind=ItemKind.INCOME,
        start_date=date(2024, 1, 1), subject_to_cpf=True, employee_cpf_contribution=900.0,
    )
    current = FinancialItem(
        id='salary', amount=5000.0, frequency='monthly', kind=ItemKind.INCOME,
        start_date=date(2024, 1, 1), subject_to_cpf=True, employee_cpf_contribution=1000.0,
    )

    stale_check = reconcile_stored_cpf(stale, 30)
    assert stale_check.computed == 1000.0
    assert not stale_check.matches
    assert reconcile_stored_cpf(current, 30).matches
