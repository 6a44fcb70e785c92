from datetime import date

import pytest

from household_finance.cpf import compute_cpf
from household_finance.models import FinancialItem, FutureMilestone, ItemKind, PastIncomeEntry
from household_finance.overrides import (
    MonthClass,
    OverrideSource,
    applicable_milestone,
    classify_month,
    historical_amount,
    resolve_amount,
)


def _income(**overrides):
    fields = {
        'id': 'salary',
        'name': 'Salary',
        'amount': 4000.0,
        'frequency': 'monthly',
        'kind': ItemKind.INCOME,
        'start_date': date(2020, 1, 1),
    }
    fields.update(overrides)
    return FinancialItem(**fields)


def test_classify_month_compares_first_days():
    now = date(2025, 1, 15)
    assert classify_month(date(2024, 12, 31), now) == MonthClass.HISTORICAL
    assert classify_month(date(2025, 1, 1), now) == MonthClass.CURRENT
    assert classify_month(date(2025, 1, 31), now) == MonthClass.CURRENT
    assert classify_month(date(2025, 2, 1), now) == MonthClass.FUTURE


def test_monthly_history_entry_wins_over_base_amount():
    income = _income(past_income_history=(PastIncomeEntry('2024-03', 'monthly', 5000.0),))
    resolved = resolve_amount(income, date(2024, 3, 1), now=date(2025, 1, 15))

    assert resolved.amount == 5000.0
    assert resolved.used_override == OverrideSource.HISTORICAL
    assert resolved.applies


def test_yearly_history_entry_is_divided_by_twelve():
    income = _income(past_income_history=(PastIncomeEntry('2023', 'yearly', 60000.0),))
    resolved = resolve_amount(income, date(2023, 7, 1), now=date(2025, 1, 15))

    assert resolved.amount == pytest.approx(5000.0)
    assert resolved.used_override == OverrideSource.HISTORICAL


def test_monthly_history_takes_precedence_over_yearly_and_first_match_wins():
    history = (
        PastIncomeEntry('2023', 'yearly', 60000.0),
        PastIncomeEntry('2023-07', 'monthly', 4500.0),
        PastIncomeEntry('2023-07', 'monthly', 9999.0),
    )
    assert historical_amount(history, date(2023, 7, 1)) == 4500.0
    assert historical_amount(history, date(2023, 8, 1)) == pytest.approx(5000.0)
    assert historical_amount(history, date(2022, 8, 1)) is None


def test_history_is_ignored_for_current_and_future_months():
    income = _income(past_income_history=(PastIncomeEntry('2025-01', 'monthly', 9000.0),))
    resolved = resolve_amount(income, date(2025, 1, 1), now=date(2025, 1, 15))
    assert resolved.amount == 4000.0
    assert resolved.used_override == OverrideSource.NONE


def test_most_recent_milestone_applies():
    income = _income(
        account_for_future_change=True,
        future_milestones=(
            FutureMilestone('2025-01', 7000.0),
            FutureMilestone('2024-06', 6000.0),
        ),
    )
    now = date(2024, 1, 15)

    september = resolve_amount(income, date(2024, 9, 1), now=now)
    march = resolve_amount(income, date(2025, 3, 1), now=now)
    before = resolve_amount(income, date(2024, 4, 1), now=now)

    assert september.amount == 6000.0
    assert september.used_override == OverrideSource.MILESTONE
    assert march.amount == 7000.0
    assert before.amount == 4000.0
    assert before.used_override == OverrideSource.NONE


def test_applicable_milestone_picks_greatest_target_month():
    milestones = (FutureMilestone('2024-06', 1.0), FutureMilestone('2024-09', 2.0), FutureMilestone('2025-01', 3.0))
    assert applicable_milestone(milestones, date(2024, 12, 1)).amount == 2.0
    assert applicable_milestone(milestones, date(2024, 1, 1)) is None


def test_milestones_require_account_for_future_change():
    income = _income(future_milestones=(FutureMilestone('2024-06', 6000.0),))
    resolved = resolve_amount(income, date(2024, 9, 1), now=date(2024, 1, 15))
    assert resolved.amount == 4000.0


def test_milestone_amount_is_not_smoothed():
    income = _income(
        amount=48000.0,
        frequency='yearly',
        account_for_future_change=True,
        future_milestones=(FutureMilestone('2024-06', 6000.0),),
    )
    now = date(2024, 1, 15)
    assert resolve_amount(income, date(2024, 3, 1), now=now).amount == pytest.approx(4000.0)
    assert resolve_amount(income, date(2024, 7, 1), now=now).amount == 6000.0


def test_milestones_lift_the_end_date():
    income = _income(
        end_date=date(2024, 3, 31),
        account_for_future_change=True,
        future_milestones=(FutureMilestone('2024-10', 6000.0),),
    )
    now = date(2024, 1, 15)

    assert resolve_amount(income, date(2024, 8, 1), now=now).amount == 4000.0
    assert resolve_amount(income, date(2024, 11, 1), now=now).amount == 6000.0


def test_end_date_still_applies_without_milestones():
    income = _income(end_date=date(2024, 3, 31))
    resolved = resolve_amount(income, date(2024, 8, 1), now=date(2024, 1, 15))
    assert not resolved.applies
    assert resolved.amount == 0.0


def test_inactive_item_ignores_overrides():
    income = _income(is_active=False, past_income_history=(PastIncomeEntry('2024-03', 'monthly', 5000.0),))
    assert resolve_amount(income, date(2024, 3, 1), now=date(2025, 1, 15)).amount == 0.0


def test_historical_override_rescales_stored_cpf():
    income = _income(
        amount=5000.0,
        subject_to_cpf=True,
        employee_cpf_contribution=1000.0,
        past_income_history=(PastIncomeEntry('2024-03', 'monthly', 6000.0),),
    )
    resolved = resolve_amount(income, date(2024, 3, 1), now=date(2025, 1, 15))

    assert resolved.employee_cpf == pytest.approx(1200.0)
    assert resolved.net == pytest.approx(4800.0)


def test_milestone_above_ceiling_uses_cpf_calculator():
    income = _income(
        amount=5000.0,
        subject_to_cpf=True,
        employee_cpf_contribution=900.0,
        account_for_future_change=True,
        future_milestones=(FutureMilestone('2025-06', 10000.0),),
    )
    resolved = resolve_amount(income, date(2025, 7, 1), now=date(2025, 1, 15), age=30)

    assert resolved.employee_cpf == compute_cpf(10000.0, 30).employee_contribution
    assert resolved.employee_cpf == pytest.approx(1600.0)


def test_milestone_below_ceiling_scales_proportionally():
    income = _income(
        amount=5000.0,
        subject_to_cpf=True,
        employee_cpf_contribution=900.0,
        account_for_future_change=True,
        future_milestones=(FutureMilestone('2025-06', 6000.0),),
    )
    resolved = resolve_amount(income, date(2025, 7, 1), now=date(2025, 1, 15))
    assert resolved.employee_cpf == pytest.approx(1080.0)


def test_base_amount_uses_stored_cpf_snapshot():
    income = _income(amount=5000.0, subject_to_cpf=True, employee_cpf_contribution=950.0)
    resolved = resolve_amount(income, date(2025, 1, 1), now=date(2025, 1, 15))
    assert resolved.employee_cpf == 950.0


def test_base_amount_without_stored_cpf_uses_computed_default():
    income = _income(amount=5000.0, subject_to_cpf=True)
    resolved = resolve_amount(income, date(2025, 1, 1), now=date(2025, 1, 15), age=30)
    assert resolved.employee_cpf == pytest.approx(1000.0)


def test_override_with_zero_base_amount_has_no_cpf():
    income = _income(
        amount=0.0,
        subject_to_cpf=True,
        employee_cpf_contribution=0.0,
        past_income_history=(PastIncomeEntry('2024-03', 'monthly', 3000.0),),
    )
    resolved = resolve_amount(income, date(2024, 3, 1), now=date(2025, 1, 15))
    assert resolved.amount == 3000.0
    assert resolved.employee_cpf == 0.0


def test_expenses_carry_no_cpf():
    expense = _income(kind=ItemKind.EXPENSE, subject_to_cpf=True)
    assert resolve_amount(expense, date(2025, 1, 1), now=date(2025, 1, 15)).employee_cpf == 0.0


def test_custom_months_stored_as_text_resolve_without_raising():
    expense = FinancialItem(
        id='insurance', name='Insurance', amount=600.0, frequency='custom', custom_months='[3]',
    )
    now = date(2025, 1, 15)

    march = resolve_amount(expense, date(2025, 3, 1), now=now)
    assert march.applies
    assert march.amount == 600.0
    assert not resolve_amount(expense, date(2025, 4, 1), now=now).applies
