from __future__ import annotations

import re
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, Iterable, Optional, Tuple

import structlog

import storage
from assistant.schemas import FinancialSnapshot
from models import utcnow

logger = structlog.get_logger(__name__)

RELATIVE_PERIODS = ("today", "week", "month", "all")
MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def is_month_key(value: str) -> bool:
    return bool(value and MONTH_KEY_RE.match(value))


def month_key(d: datetime) -> str:
    return d.strftime("%Y-%m")


def month_bounds(key: str) -> Tuple[datetime, datetime]:
    """[first day of month, first day of next month) for a YYYY-MM key."""
    year, month = (int(p) for p in key.split("-"))
    start = datetime(year, month, 1)
    end = datetime(year + 1, 1, 1) if month == 12 else datetime(year, month + 1, 1)
    return start, end


def previous_month(key: str) -> str:
    year, month = (int(p) for p in key.split("-"))
    if month == 1:
        return f"{year - 1}-12"
    return f"{year}-{month - 1:02d}"


def period_bounds(
    period: str, now: Optional[datetime] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Resolve an expense period to a [start, end) window.

    today / week / month run up to the end of today (week starts on Sunday);
    "all" is unbounded; a YYYY-MM key covers that calendar month.
    """
    now = now or utcnow()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    end_of_today = today + timedelta(days=1)

    if period == "all":
        return None, None
    if period == "today":
        return today, end_of_today
    if period == "week":
        # weekday(): Monday=0 ... Sunday=6
        days_since_sunday = (today.weekday() + 1) % 7
        return today - timedelta(days=days_since_sunday), end_of_today
    if period == "month":
        return today.replace(day=1), end_of_today
    if is_month_key(period):
        return month_bounds(period)
    raise ValueError(f"Unknown period: {period!r}")


def normalize_category(category: str) -> str:
    category = (category or "").strip()
    if not category:
        return "Other"
    return category[0].upper() + category[1:].lower()


def summarize_expenses(expenses: Iterable) -> Tuple[float, Dict[str, float]]:
    """
    Fold expense rows (anything with .amount and .category) into the total
    spent and a per-category sum. Category names are compared
    case-insensitively.
    """
    by_category: Dict[str, float] = defaultdict(float)
    total = 0.0
    for e in expenses:
        amount = float(e.amount or 0.0)
        total += amount
        by_category[normalize_category(e.category)] += amount
    return round(total, 2), {k: round(v, 2) for k, v in by_category.items()}


def build_financial_snapshot(
    user_id: int, period: str, now: Optional[datetime] = None
) -> FinancialSnapshot:
    """
    Snapshot of a user's spending for period, paired with the budget of the
    period's month (the current month for relative periods).
    """
    now = now or utcnow()
    start, end = period_bounds(period, now)
    budget_month = period if is_month_key(period) else month_key(now)

    expenses = storage.get_expenses(user_id, start, end)
    budget = storage.get_budget(user_id, budget_month)
    total, by_category = summarize_expenses(expenses)

    snapshot = FinancialSnapshot(
        month=int(budget_month[5:7]),
        budget=budget.total_amount if budget else 0.0,
        total_expenses=total,
        expense_details=list(by_category.items()),
    )
    logger.debug(
        "financial_snapshot",
        user_id=user_id,
        period=period,
        total_expenses=snapshot.total_expenses,
        budget=snapshot.budget,
    )
    return snapshot
