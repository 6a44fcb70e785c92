"""Plotly visualisation helpers for the balance, investment and CPF projections.

Both view modes are drawn from the same list of frames returned by
:func:`household_finance.projection.project`; switching modes never re-runs
the projection.  Special items (one-off events, custom-month expenses and
bonuses) are drawn as triangle markers next to the balance line.

All functions return a ``plotly.graph_objects.Figure`` that Streamlit can
render via ``st.plotly_chart``.
"""

from __future__ import annotations

from typing import Dict, List, Sequence, Tuple

import numpy as np
import pandas as pd
import plotly.graph_objects as go

from .models import SPECIAL_ITEM_TYPES, MonthlyBalanceFrame
from .projection import CUMULATIVE, chart_data

MARKER_COLORS: Dict[str, str] = {
    "one-off-income": "#10b981",
    "bonus": "#10b981",
    "one-off-expense": "#ef4444",
    "custom-expense": "#f59e0b",
}
SPECIAL_ITEM_LABELS: Dict[str, str] = {
    "one-off-income": "One-off",
    "one-off-expense": "One-off",
    "custom-expense": "Custom",
    "bonus": "Bonus",
}
LEGEND_NAMES: Dict[str, str] = {
    "one-off-income": "One-off income",
    "one-off-expense": "One-off expense",
    "custom-expense": "Custom expense",
    "bonus": "Bonus",
}
LINE_COLORS: Dict[str, str] = {
    "Cumulative Balance": "#3b82f6",
    "Balance With Investments": "#8b5cf6",
    "Income": "#16a34a",
    "Expense": "#dc2626",
    "Monthly Balance": "#1d4ed8",
}
RISING_TYPES = {"one-off-income", "bonus"}

# Gap between stacked markers, as a share of the plotted range
_MARKER_OFFSET = 0.04


def format_currency(amount: float) -> str:
    """Format an amount for hover text (e.g. ``"$1,234"``)."""
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(amount):,.0f}"


def axis_range(values: Sequence[float], padding_ratio: float = 0.1, step: float = 1000.0) -> Tuple[float, float]:
    """Y-axis bounds padded by 10% of the largest magnitude, snapped to ``step``."""
    data = np.asarray([v for v in values if v is not None], dtype=float)
    if data.size == 0:
        return (0.0, step)
    low, high = float(data.min()), float(data.max())
    padding = max(abs(low), abs(high)) * padding_ratio
    lower = float(np.floor((low - padding) / step) * step)
    upper = float(np.ceil((high + padding) / step) * step)
    if lower == upper:
        upper = lower + step
    return (lower, upper)


def _marker_points(frames: Sequence[MonthlyBalanceFrame], span: float) -> List[dict]:
    points = []
    offset = span * _MARKER_OFFSET
    for frame in frames:
        up = 0
        down = 0
        for item in frame.special_items:
            rising = item.type in RISING_TYPES
            if rising:
                up += 1
                y = frame.cumulative_balance + offset * up
            else:
                down += 1
                y = frame.cumulative_balance - offset * down
            label = SPECIAL_ITEM_LABELS.get(item.type, "")
            points.append({
                "month": frame.month,
                "y": y,
                "type": item.type,
                "text": f"{label}: {format_currency(item.amount)} - {item.name}",
            })
    return points


def create_balance_chart(frames: Sequence[MonthlyBalanceFrame], mode: str = CUMULATIVE, title: str | None = None) -> go.Figure:
    """Render projected frames as a line chart.

    Parameters
    ----------
    frames : sequence of MonthlyBalanceFrame
        Output of ``project``.
    mode : str
        ``"cumulative"`` plots the running balance with special-item
        markers; ``"non-cumulative"`` plots monthly income, expense and net.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Line chart with one trace per plotted series.
    """
    if not frames:
        fig = go.Figure()
        fig.update_layout(title="No data to display")
        return fig

    data = chart_data(frames, mode)
    fig = go.Figure()
    plotted: List[float] = []
    for column in data.columns:
        if column == "Special Items":
            continue
        values = data[column].tolist()
        plotted.extend(values)
        fig.add_trace(go.Scatter(
            x=data.index.tolist(),
            y=values,
            mode="lines+markers",
            name=column,
            line={"color": LINE_COLORS.get(column)},
        ))

    low, high = axis_range(plotted)
    if mode == CUMULATIVE:
        markers = _marker_points(frames, high - low)
        for item_type in SPECIAL_ITEM_TYPES:
            color = MARKER_COLORS[item_type]
            points = [p for p in markers if p["type"] == item_type]
            if not points:
                continue
            fig.add_trace(go.Scatter(
                x=[p["month"] for p in points],
                y=[p["y"] for p in points],
                mode="markers",
                name=LEGEND_NAMES[item_type],
                marker={
                    "symbol": "triangle-up" if item_type in RISING_TYPES else "triangle-down",
                    "size": 12,
                    "color": color,
                },
                text=[p["text"] for p in points],
                hoverinfo="text",
            ))

    fig.update_layout(
        title=title or ("Monthly Balance Projection" if mode == CUMULATIVE else "Monthly Income vs Expenses"),
        xaxis_title="Month",
        yaxis_title="Balance" if mode == CUMULATIVE else "Amount",
        yaxis={"range": [low, high]},
        hovermode="closest",
    )
    return fig


def create_investment_chart(frames: Sequence[MonthlyBalanceFrame], title: str | None = None) -> go.Figure:
    """Investment value with and without the scheduled contributions."""
    points = [frame for frame in frames if frame.investment_value is not None]
    fig = go.Figure()
    if not points:
        fig.update_layout(title="No investments to display")
        return fig

    months = [frame.month for frame in points]
    fig.add_trace(go.Scatter(
        x=months,
        y=[frame.investment_value for frame in points],
        mode="lines",
        name="With Contributions",
        line={"color": LINE_COLORS["Balance With Investments"]},
    ))
    fig.add_trace(go.Scatter(
        x=months,
        y=[frame.investment_value_without_contributions for frame in points],
        mode="lines",
        name="Without Contributions",
        line={"color": "#94a3b8", "dash": "dash"},
    ))
    fig.update_layout(
        title=title or "Investment Growth",
        xaxis_title="Month",
        yaxis_title="Value",
        hovermode="x unified",
    )
    return fig


CPF_ACCOUNT_COLORS: Dict[str, str] = {
    "OA": "#0ea5e9",
    "SA": "#f97316",
    "MA": "#22c55e",
}


def create_cpf_chart(table: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Stacked OA/SA/MA balances from ``cpf_frames_to_dataframe`` output."""
    fig = go.Figure()
    if table.empty:
        fig.update_layout(title="No CPF contributions to display")
        return fig

    for account, color in CPF_ACCOUNT_COLORS.items():
        fig.add_trace(go.Scatter(
            x=table["Month"].tolist(),
            y=table[account].tolist(),
            mode="lines",
            name=account,
            stackgroup="cpf",
            line={"color": color},
        ))
    fig.update_layout(
        title=title or "CPF Account Projection",
        xaxis_title="Month",
        yaxis_title="Balance",
        hovermode="x unified",
    )
    return fig
