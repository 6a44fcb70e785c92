"""Turn stored income/expense/investment rows into typed value objects.

The storage layer keeps ``customMonths``, ``pastIncomeHistory``,
``futureMilestones`` and ``bonusGroups`` as JSON text.  This module is the
only place that text is decoded.  Nothing here raises on bad data: a
corrupt field degrades to its empty value and a warning is logged, so a
single damaged record never takes the rest of the batch down with it.
"""

from __future__ import annotations

import json
import math
from datetime import date, datetime
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple

from .logging_setup import get_logger
from .models import (
    BonusGroup,
    CpfLoanDeduction,
    FinancialItem,
    FutureMilestone,
    Investment,
    ItemKind,
    PastIncomeEntry,
)

logger = get_logger("household_finance.parsing")

HISTORY_GRANULARITIES = {'monthly', 'yearly'}


def _decode_json(raw: Any, field_name: str, record_id: str) -> Any:
    if raw is None or raw == '':
        return None
    if not isinstance(raw, str):
        return raw  # already decoded by the caller
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Record %s: could not decode %s", record_id, field_name)
        return None


def parse_amount(value: Any, default: float = 0.0) -> float:
    if value is None or value == '':
        return default
    if isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if result != result or result in (float('inf'), float('-inf')):
        return default
    return result


def parse_optional_amount(value: Any) -> Optional[float]:
    if value is None or value == '':
        return None
    parsed = parse_amount(value, default=float('nan'))
    return None if parsed != parsed else parsed


def parse_date(value: Any) -> Optional[date]:
    """Parse a local calendar date (``YYYY-MM-DD``), ignoring any time part."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()[:10]
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def parse_custom_months(raw: Any, record_id: str = '?') -> Optional[FrozenSet[int]]:
    """Decode a month list, keeping unique integers 1-12.

    Returns ``None`` when the value is missing or corrupt.
    """
    decoded = _decode_json(raw, 'customMonths', record_id)
    if decoded is None:
        return None
    if not isinstance(decoded, (list, tuple, set, frozenset)):
        logger.warning("Record %s: customMonths is not a list", record_id)
        return None
    months = set()
    for value in decoded:
        if isinstance(value, bool):
            continue
        try:
            month = int(value)
        except (TypeError, ValueError):
            continue
        if 1 <= month <= 12 and month == value:
            months.add(month)
    return frozenset(months)


def parse_past_income_history(raw: Any, record_id: str = '?') -> Tuple[PastIncomeEntry, ...]:
    decoded = _decode_json(raw, 'pastIncomeHistory', record_id)
    if not isinstance(decoded, list):
        return ()
    entries = []
    for entry in decoded:
        if not isinstance(entry, Mapping):
            continue
        granularity = str(entry.get('granularity', '')).strip().lower()
        period = entry.get('period')
        amount = parse_optional_amount(entry.get('amount'))
        if granularity not in HISTORY_GRANULARITIES or not isinstance(period, str) or amount is None:
            continue
        entries.append(PastIncomeEntry(period=period.strip(), granularity=granularity, amount=amount))
    return tuple(entries)


def parse_future_milestones(raw: Any, record_id: str = '?') -> Tuple[FutureMilestone, ...]:
    decoded = _decode_json(raw, 'futureMilestones', record_id)
    if not isinstance(decoded, list):
        return ()
    milestones = []
    for entry in decoded:
        if not isinstance(entry, Mapping):
            continue
        target = entry.get('targetMonth')
        amount = parse_optional_amount(entry.get('amount'))
        if not isinstance(target, str) or amount is None:
            continue
        milestones.append(FutureMilestone(target_month=target.strip(), amount=amount, reason=entry.get('reason')))
    return tuple(milestones)


def parse_bonus_groups(raw: Any, record_id: str = '?') -> Tuple[BonusGroup, ...]:
    decoded = _decode_json(raw, 'bonusGroups', record_id)
    if not isinstance(decoded, list):
        return ()
    groups = []
    for entry in decoded:
        if not isinstance(entry, Mapping):
            continue
        try:
            month = int(entry.get('month'))
        except (TypeError, ValueError):
            continue
        multiplier = parse_optional_amount(entry.get('amount'))
        if 1 <= month <= 12 and multiplier is not None:
            groups.append(BonusGroup(month=month, multiplier=multiplier))
    return tuple(groups)


def _flag(value: Any, default: bool) -> bool:
    """Storage booleans are nullable; ``None`` takes the default."""
    if value is None:
        return default
    return bool(value)


def item_from_record(record: Mapping[str, Any], kind: ItemKind | str) -> FinancialItem:
    """Build a :class:`FinancialItem` from a stored income or expense row."""
    kind = ItemKind(kind)
    record_id = str(record.get('id', ''))
    is_income = kind == ItemKind.INCOME
    category_key = 'incomeCategory' if is_income else 'expenseCategory'

    return FinancialItem(
        id=record_id,
        name=str(record.get('name') or ''),
        amount=parse_amount(record.get('amount')),
        frequency=str(record.get('frequency') or ''),
        kind=kind,
        category=record.get(category_key) or record.get('category'),
        custom_months=parse_custom_months(record.get('customMonths'), record_id),
        start_date=parse_date(record.get('startDate')),
        end_date=parse_date(record.get('endDate')),
        is_active=_flag(record.get('isActive'), True),
        subject_to_cpf=is_income and _flag(record.get('subjectToCpf'), False),
        employee_cpf_contribution=parse_optional_amount(record.get('employeeCpfContribution')) if is_income else None,
        past_income_history=parse_past_income_history(record.get('pastIncomeHistory'), record_id) if is_income else (),
        future_milestones=parse_future_milestones(record.get('futureMilestones'), record_id) if is_income else (),
        account_for_future_change=is_income and _flag(record.get('accountForFutureChange'), False),
        account_for_bonus=is_income and _flag(record.get('accountForBonus'), False),
        bonus_groups=parse_bonus_groups(record.get('bonusGroups'), record_id) if is_income else (),
    )


def investment_from_record(record: Mapping[str, Any]) -> Investment:
    record_id = str(record.get('id', ''))
    return Investment(
        id=record_id,
        name=str(record.get('name') or ''),
        current_capital=parse_amount(record.get('currentCapital')),
        projected_yield=parse_amount(record.get('projectedYield')),
        contribution_amount=parse_amount(record.get('contributionAmount')),
        contribution_frequency=str(record.get('contributionFrequency') or 'monthly'),
        custom_months=parse_custom_months(record.get('customMonths'), record_id),
        start_date=parse_date(record.get('startDate')),
        end_date=parse_date(record.get('endDate')),
        is_active=_flag(record.get('isActive'), True),
    )


def items_from_records(records: Iterable[Mapping[str, Any]], kind: ItemKind | str) -> List[FinancialItem]:
    return [item_from_record(record, kind) for record in records or [] if isinstance(record, Mapping)]


def investments_from_records(records: Iterable[Mapping[str, Any]]) -> List[Investment]:
    return [investment_from_record(record) for record in records or [] if isinstance(record, Mapping)]


def snapshot_items(snapshot: Dict[str, Any]) -> Dict[str, list]:
    """Parse every section of a storage snapshot."""
    return {
        'incomes': items_from_records(snapshot.get('incomes') or [], ItemKind.INCOME),
        'expenses': items_from_records(snapshot.get('expenses') or [], ItemKind.EXPENSE),
        'investments': investments_from_records(snapshot.get('investments') or []),
        'cpf_loan_deductions': cpf_loan_deductions_from_records(snapshot.get('properties') or []),
    }


def cpf_loan_deductions_from_records(records: Iterable[Mapping[str, Any]]) -> List[CpfLoanDeduction]:
    """Loan instalments of active properties flagged ``paidByCpf``.

    The remaining term is the outstanding loan over the instalment, rounded
    up; properties with no instalment or nothing outstanding are dropped.
    """
    deductions = []
    for record in records or []:
        if not isinstance(record, Mapping):
            continue
        if not _flag(record.get('paidByCpf'), False) or not _flag(record.get('isActive'), True):
            continue
        monthly = parse_amount(record.get('monthlyLoanPayment'))
        outstanding = parse_amount(record.get('outstandingLoan'))
        if monthly <= 0 or outstanding <= 0:
            continue
        deductions.append(CpfLoanDeduction(monthly_amount=monthly, remaining_months=math.ceil(outstanding / monthly)))
    return deductions
