from datetime import date

import pytest

from household_finance.models import FinancialItem, Investment, ItemKind, PastIncomeEntry
from household_finance.summary import compare_months, investment_summaries, month_summary

NOW = date(2025, 3, 10)


def _salary(**overrides):
    fields = {
        'id': 'salary',
        'name': 'Salary',
        'amount': 5000.0,
        'frequency': 'monthly',
        'kind': ItemKind.INCOME,
        'start_date': date(2024, 1, 1),
        'subject_to_cpf': True,
        'employee_cpf_contribution': 1000.0,
    }
    fields.update(overrides)
    return FinancialItem(**fields)


def _expense(**overrides):
    fields = {
        'id': 'groceries',
        'name': 'Groceries',
        'amount': 800.0,
        'frequency': 'monthly',
        'kind': ItemKind.EXPENSE,
    }
    fields.update(overrides)
    return FinancialItem(**fields)


def test_month_summary_nets_cpf():
    summary = month_summary([_salary()], [_expense()], NOW, now=NOW)

    assert summary.gross_income == 5000
    assert summary.cpf_deduction == 1000
    assert summary.net_income == 4000
    assert summary.expenses == 800
    assert summary.savings == 3200


def test_compare_months_uses_history_for_previous_month():
    salary = _salary(past_income_history=(PastIncomeEntry('2025-02', 'monthly', 4000.0),))
    expenses = [
        _expense(),
        _expense(id='tax', name='Tax', amount=1200.0, frequency='one-time', start_date=date(2025, 3, 1)),
    ]
    comparison = compare_months([salary], expenses, NOW, now=NOW)

    assert comparison.previous.gross_income == 4000
    assert comparison.previous.cpf_deduction == 800
    assert comparison.previous.net_income == 3200
    assert comparison.current.net_income == 4000
    assert comparison.income_change == 800
    assert comparison.income_change_percent == 25.0
    assert comparison.expense_change == 1200
    assert comparison.expense_change_percent == 150.0
    assert comparison.savings_change == -400
    assert comparison.savings_change_percent == -16.67


def test_percent_changes_are_zero_without_a_base():
    comparison = compare_months([_salary(start_date=date(2025, 3, 1))], [], NOW, now=NOW)

    assert comparison.previous.net_income == 0
    assert comparison.income_change == 4000
    assert comparison.income_change_percent == 0.0
    assert comparison.savings_change_percent == 0.0


def test_unresolvable_item_counts_zero_and_siblings_survive(caplog):
    broken = _expense(id='broken', amount=None)
    insurance = _expense(id='insurance', amount=300.0, frequency='custom', custom_months='[3]')

    summary = month_summary([_salary()], [_expense(), broken, insurance], NOW, now=NOW)

    assert summary.expenses == 1100
    assert summary.net_income == 4000
    assert 'broken' in caplog.text


def test_month_summary_rejects_negative_age():
    with pytest.raises(ValueError):
        month_summary([_salary()], [], NOW, now=NOW, age=-5)


def test_investment_summaries_spread_custom_contributions():
    summaries = investment_summaries([
        Investment(id='srs', name='SRS', current_capital=15000.0, projected_yield=4.0,
                   contribution_amount=500.0, contribution_frequency='custom', custom_months=frozenset({6, 12})),
        Investment(id='etf', name='ETF', current_capital=2000.0, projected_yield=7.5,
                   contribution_amount=1200.0, contribution_frequency='yearly'),
        Investment(id='closed', current_capital=100.0, projected_yield=1.0, is_active=False),
    ])

    assert [summary.id for summary in summaries] == ['srs', 'etf']
    assert summaries[0].monthly_contribution == 83.33
    assert summaries[1].monthly_contribution == 100.0
    assert summaries[1].projected_yield == 7.5
