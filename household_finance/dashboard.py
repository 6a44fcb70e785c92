"""Streamlit app for the household finance dashboard.

The app is a thin shell: it loads the exported item snapshot, asks the
engine for the month-over-month summary and the balance projection, and
renders them.  All money logic lives in the engine modules.

To run the dashboard from the command line::

    streamlit run household_finance/dashboard.py
"""

from __future__ import annotations

import os
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import pandas as pd
import streamlit as st

if __package__:
    from . import config
    from .cpf_projection import cpf_frames_to_dataframe, members_from_incomes, project_cpf
    from .logging_setup import configure_logging, get_logger
    from .parsing import snapshot_items
    from .projection import CUMULATIVE, NON_CUMULATIVE, TIME_RANGES, frames_to_dataframe, project, time_range_to_months
    from .snapshot_storage import load_snapshot, starting_balance
    from .summary import MonthComparison, compare_months, investment_summaries
    from .visualization import create_balance_chart, create_cpf_chart, create_investment_chart
else:
    # ``streamlit run household_finance/dashboard.py`` executes this file as a script
    PARENT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    if PARENT_DIR not in sys.path:
        sys.path.insert(0, PARENT_DIR)
    from household_finance import config  # type: ignore
    from household_finance.cpf_projection import (  # type: ignore
        cpf_frames_to_dataframe, members_from_incomes, project_cpf,
    )
    from household_finance.logging_setup import configure_logging, get_logger  # type: ignore
    from household_finance.parsing import snapshot_items  # type: ignore
    from household_finance.projection import (  # type: ignore
        CUMULATIVE, NON_CUMULATIVE, TIME_RANGES, frames_to_dataframe, project, time_range_to_months,
    )
    from household_finance.snapshot_storage import load_snapshot, starting_balance  # type: ignore
    from household_finance.summary import MonthComparison, compare_months, investment_summaries  # type: ignore
    from household_finance.visualization import (  # type: ignore
        create_balance_chart, create_cpf_chart, create_investment_chart,
    )

logger = get_logger("household_finance.dashboard")

VIEW_MODE_LABELS = {CUMULATIVE: 'Cumulative', NON_CUMULATIVE: 'Monthly'}
DEFAULT_STATE = {
    'time_range': '12',
    'view_mode': CUMULATIVE,
    'include_investments': True,
    'age': config.DEFAULT_AGE,
}


def _ensure_view_state() -> None:
    for key, value in DEFAULT_STATE.items():
        if key not in st.session_state:
            st.session_state[key] = value


def load_items(path: Optional[Path] = None) -> Tuple[Dict[str, list], float]:
    """Parsed items and the starting balance from the exported snapshot."""
    snapshot = load_snapshot(path)
    return snapshot_items(snapshot), starting_balance(snapshot)


def _format_change(change: float, percent: float) -> str:
    return f"{change:+,.2f} ({percent:+.1f}%)"


def summary_metrics(comparison: MonthComparison) -> Dict[str, Dict[str, Any]]:
    """Label/value/delta triples for the summary cards."""
    current = comparison.current
    return {
        'Net income': {
            'value': current.net_income,
            'delta': _format_change(comparison.income_change, comparison.income_change_percent),
            'help': f"Gross {current.gross_income:,.2f} less CPF {current.cpf_deduction:,.2f}",
        },
        'Expenses': {
            'value': current.expenses,
            'delta': _format_change(comparison.expense_change, comparison.expense_change_percent),
            'help': None,
        },
        'Savings': {
            'value': current.savings,
            'delta': _format_change(comparison.savings_change, comparison.savings_change_percent),
            'help': None,
        },
    }


def investment_table(investments) -> pd.DataFrame:
    """Rows for the investment overview table."""
    return pd.DataFrame(
        [
            {
                'Name': summary.name or summary.id,
                'Capital': summary.current_capital,
                'Yield %': summary.projected_yield,
                'Monthly contribution': summary.monthly_contribution,
            }
            for summary in investment_summaries(investments)
        ],
        columns=['Name', 'Capital', 'Yield %', 'Monthly contribution'],
    )


def render_summary(comparison: MonthComparison) -> None:
    columns = st.columns(3)
    for column, (label, metric) in zip(columns, summary_metrics(comparison).items()):
        column.metric(label, f"${metric['value']:,.2f}", metric['delta'], help=metric['help'])


def main(now: Optional[date] = None) -> None:
    """Entry point for the Streamlit app."""
    configure_logging()
    st.set_page_config(page_title="Household Finance", layout="wide", initial_sidebar_state="expanded")
    st.title("Household Finance")
    _ensure_view_state()
    now = now or config.today()

    items, opening_balance = load_items()
    if not any(items.values()):
        st.info(f"No items found. Export a snapshot to {config.SNAPSHOT_PATH} to begin.")
        st.stop()

    st.sidebar.header("Projection")
    st.sidebar.selectbox(
        "Time range", options=list(TIME_RANGES), format_func=TIME_RANGES.get, key='time_range',
    )
    st.sidebar.radio(
        "View", options=list(VIEW_MODE_LABELS), format_func=VIEW_MODE_LABELS.get, key='view_mode',
    )
    st.sidebar.checkbox("Include investments", key='include_investments')
    st.sidebar.number_input("Age for CPF rates", min_value=0, max_value=120, step=1, key='age')

    comparison = compare_months(
        items['incomes'], items['expenses'], now, now=now, age=st.session_state['age'],
    )
    st.subheader(now.strftime('%B %Y'))
    render_summary(comparison)

    frames = project(
        items['incomes'],
        items['expenses'],
        items['investments'],
        months=time_range_to_months(st.session_state['time_range']),
        starting_balance=opening_balance,
        now=now,
        age=st.session_state['age'],
        include_investments=st.session_state['include_investments'],
    )
    logger.info("Projected %d months from %s", len(frames) - 1, now.isoformat())
    st.plotly_chart(create_balance_chart(frames, st.session_state['view_mode']), use_container_width=True)

    with st.expander("Monthly breakdown"):
        st.dataframe(frames_to_dataframe(frames).drop(columns=['Special Items']), use_container_width=True)

    if items['investments'] and st.session_state['include_investments']:
        st.subheader("Investments")
        st.dataframe(investment_table(items['investments']), use_container_width=True)
        st.plotly_chart(create_investment_chart(frames), use_container_width=True)

    members = members_from_incomes(items['incomes'], current_age=st.session_state['age'])
    if members:
        st.subheader("CPF accounts")
        cpf_frames = project_cpf(
            members,
            months=time_range_to_months(st.session_state['time_range']),
            now=now,
            loan_deductions=items['cpf_loan_deductions'],
        )
        st.plotly_chart(create_cpf_chart(cpf_frames_to_dataframe(cpf_frames)), use_container_width=True)


if __name__ == "__main__":
    main()
