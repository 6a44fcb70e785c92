"""Configuration management for the household finance dashboard.

This module centralizes paths, defaults, and environment variable
overrides.  The engine itself takes every value as an argument; these
constants are the defaults the dashboard passes in.
"""

from __future__ import annotations

import os
from datetime import date
from pathlib import Path

# Base project root - assumes this file is in household_finance/
_PROJECT_ROOT = Path(__file__).parent.parent.resolve()

# Data directories
DATA_DIR = Path(os.getenv("HOUSEHOLD_FINANCE_DATA_DIR", _PROJECT_ROOT / "data"))

# Snapshot of incomes/expenses/investments exported by the storage layer
SNAPSHOT_PATH = Path(
    os.getenv("HOUSEHOLD_FINANCE_SNAPSHOT_PATH", DATA_DIR / "snapshot.json")
).resolve()

# Age used for CPF rates when a record does not say otherwise
DEFAULT_AGE = int(os.getenv("HOUSEHOLD_FINANCE_DEFAULT_AGE", "30"))

# Projection horizon in months
DEFAULT_HORIZON_MONTHS = int(os.getenv("HOUSEHOLD_FINANCE_HORIZON_MONTHS", "12"))
MAX_HORIZON_MONTHS = 240


def today() -> date:
    """The dashboard's clock.  Engine functions receive ``now`` explicitly."""
    return date.today()
