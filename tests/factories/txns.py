from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional, Union
import itertools

from finance_coach.models import Transaction

DateLike = Union[date, datetime, str]

_ids = itertools.count(1)


def _quantize_amount(value: Any) -> float:
    dec = Decimal(str(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    return float(dec)


def _normalize_date(d: Optional[DateLike]) -> date:
    if d is None:
        return date(2025, 9, 15)
    if isinstance(d, datetime):
        return d.date()
    if isinstance(d, date):
        return d
    return date.fromisoformat(str(d).strip())


def create_txn(
    *,
    date_: Optional[DateLike] = None,
    amount: float = -12.34,
    merchant: str = "Test Merchant",
    category: str = "Shopping",
    description: Optional[str] = None,
    id: Optional[str] = None,
) -> Transaction:
    return Transaction(
        id=id or f"t{next(_ids)}",
        date=_normalize_date(date_),
        amount=_quantize_amount(amount),
        merchant=merchant,
        category=category,
        description=description,
    )


def recurring(
    merchant: str,
    amount: float,
    *,
    start: DateLike,
    count: int,
    every_days: int = 30,
    category: str = "Subscriptions",
    description: Optional[str] = None,
) -> List[Transaction]:
    """``count`` charges ``every_days`` apart starting at ``start``."""
    first = _normalize_date(start)
    return [
        create_txn(
            date_=first + timedelta(days=i * every_days),
            amount=amount,
            merchant=merchant,
            category=category,
            description=description,
        )
        for i in range(count)
    ]


def month_with_savings(
    month: str,
    *,
    income: float,
    expenses: float,
    spend_category: str = "Groceries",
) -> List[Transaction]:
    """A salary deposit and a single expense so the month nets ``income - expenses``."""
    y, m = map(int, month.split("-"))
    rows = [create_txn(date_=date(y, m, 1), amount=income, merchant="Employer", category="Income")]
    if expenses:
        rows.append(
            create_txn(date_=date(y, m, 10), amount=-abs(expenses), merchant="Whole Foods", category=spend_category)
        )
    return rows
