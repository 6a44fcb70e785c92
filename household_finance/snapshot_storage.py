"""Read-only loader for the item snapshot the dashboard projects from.

The storage layer exports incomes, expenses, investments, bank holdings
and property assets to a single JSON file.  A missing or unreadable file yields an empty
snapshot rather than an error.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict

from .config import SNAPSHOT_PATH
from .logging_setup import get_logger
from .parsing import parse_amount

logger = get_logger("household_finance.snapshot_storage")

SECTIONS = ('incomes', 'expenses', 'investments', 'holdings', 'properties')


def empty_snapshot() -> Dict[str, list]:
    return {section: [] for section in SECTIONS}


def load_snapshot(path: Path | None = None) -> Dict[str, list]:
    target = path or SNAPSHOT_PATH
    if not target.exists():
        return empty_snapshot()
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Could not read snapshot %s: %s", target, exc)
        return empty_snapshot()
    if not isinstance(data, dict):
        return empty_snapshot()
    snapshot = empty_snapshot()
    for section in SECTIONS:
        value = data.get(section) or []
        snapshot[section] = value if isinstance(value, list) else []
    return snapshot


def starting_balance(snapshot: Dict[str, Any]) -> float:
    """Sum of current bank holdings; the projection's anchor balance."""
    return sum(
        parse_amount(holding.get('holdingAmount'))
        for holding in snapshot.get('holdings') or []
        if isinstance(holding, dict)
    )
