from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

from finance_coach.models import Transaction
from finance_coach.utils.dates import latest_month, parse_month
from finance_coach.utils.txns import filter_by_date_range, sort_by_date

log = logging.getLogger(__name__)


def category_rollups(txns: Sequence[Transaction]) -> List[Dict[str, Any]]:
    """Expense totals per category, largest first."""
    cats: Dict[str, Dict[str, Any]] = {}
    for t in txns:
        if t.amount >= 0:
            continue
        row = cats.setdefault(t.category or "Unknown", {"amount": 0.0, "count": 0})
        row["amount"] += abs(t.amount)
        row["count"] += 1
    out = [{"name": k, "amount": round(v["amount"], 2), "count": v["count"]} for k, v in cats.items()]
    out.sort(key=lambda r: r["amount"], reverse=True)
    return out


def month_rollup(month: Optional[str], transactions: Sequence[Transaction]) -> Dict[str, Any]:
    """Items, category rollups and KPIs for ``month`` (latest month with data when None)."""
    if month is None:
        month = latest_month(t.date for t in transactions)
        if month is None:
            return {
                "month": None,
                "items": [],
                "rollups": {"categories": []},
                "kpis": {"income": 0.0, "expenses": 0.0, "net": 0.0, "txCount": 0},
            }

    rows = sort_by_date(filter_by_date_range(transactions, parse_month(month)))
    income = sum(t.amount for t in rows if t.amount > 0)
    spend = sum(abs(t.amount) for t in rows if t.amount < 0)
    log.debug("rollups.month month=%s rows=%s", month, len(rows))
    return {
        "month": month,
        "items": [t.to_dict() for t in rows],
        "rollups": {"categories": category_rollups(rows)},
        "kpis": {
            "income": round(income, 2),
            "expenses": round(spend, 2),
            "net": round(income - spend, 2),
            "txCount": len(rows),
        },
    }
