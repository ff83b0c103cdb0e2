"""Filtering and grouping helpers over ``Transaction`` sequences.

Groupings return plain dicts, which keep first-seen insertion order; the
insight rules rely on that order for deterministic tie handling.
"""

from __future__ import annotations

import datetime as dt
import re
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from finance_coach.core.category_mappings import (
    COFFEE_CATEGORY,
    COFFEE_KEYWORDS,
    MERCHANT_REDACTION_MAP,
    UNKNOWN_MERCHANT_LABEL,
)
from finance_coach.models import Transaction
from finance_coach.utils.dates import DateRange, is_weekend, month_key


def filter_by_date_range(txns: Iterable[Transaction], rng: DateRange) -> List[Transaction]:
    return [t for t in txns if rng.start <= t.date < rng.end]


def filter_by_category(txns: Iterable[Transaction], category: str) -> List[Transaction]:
    return [t for t in txns if t.category == category]


def filter_by_merchant_keywords(
    txns: Iterable[Transaction], keywords: Sequence[str]
) -> List[Transaction]:
    return [t for t in txns if contains_keywords(t.merchant, keywords)]


def filter_by_amount_range(
    txns: Iterable[Transaction], lo: float, hi: float
) -> List[Transaction]:
    """Inclusive range on the absolute amount."""
    return [t for t in txns if lo <= abs(t.amount) <= hi]


def income(txns: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in txns if t.amount > 0]


def expenses(txns: Iterable[Transaction]) -> List[Transaction]:
    return [t for t in txns if t.amount < 0]


def expense_amounts(txns: Iterable[Transaction]) -> List[float]:
    return [abs(t.amount) for t in expenses(txns)]


def magnitudes(txns: Iterable[Transaction]) -> List[float]:
    return [abs(t.amount) for t in txns]


def _group(txns: Iterable[Transaction], key) -> Dict[str, List[Transaction]]:
    out: Dict[str, List[Transaction]] = defaultdict(list)
    for t in txns:
        out[key(t)].append(t)
    return dict(out)


def group_by_merchant(txns: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    return _group(txns, lambda t: t.merchant)


def group_by_category(txns: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    return _group(txns, lambda t: t.category)


def group_by_month(txns: Iterable[Transaction]) -> Dict[str, List[Transaction]]:
    return _group(txns, lambda t: month_key(t.date))


def split_weekday_weekend(
    txns: Iterable[Transaction],
) -> Tuple[List[Transaction], List[Transaction]]:
    weekday: List[Transaction] = []
    weekend: List[Transaction] = []
    for t in txns:
        (weekend if is_weekend(t.date) else weekday).append(t)
    return weekday, weekend


def contains_keywords(text: Optional[str], keywords: Sequence[str]) -> bool:
    if not text:
        return False
    lower = text.lower()
    return any(k.lower() in lower for k in keywords)


def contains_words(text: Optional[str], keywords: Sequence[str]) -> bool:
    """Whole-word variant of ``contains_keywords`` ("fee" matches "ATM Fee", not "Coffee")."""
    if not text:
        return False
    return any(re.search(rf"\b{re.escape(k)}\b", text, re.IGNORECASE) for k in keywords)


def is_coffee_transaction(t: Transaction) -> bool:
    return t.category == COFFEE_CATEGORY or contains_keywords(t.merchant, COFFEE_KEYWORDS)


def redact_merchant(merchant: str) -> str:
    return MERCHANT_REDACTION_MAP.get(merchant.lower(), UNKNOWN_MERCHANT_LABEL)


def amounts_match(a: float, b: float) -> bool:
    """Recurrence match: within 2% of the larger magnitude or $1.00, whichever is looser."""
    x, y = abs(a), abs(b)
    larger = max(x, y)
    diff = larger - min(x, y)
    if diff <= 1.0:
        return True
    return diff / larger <= 0.02


def amounts_within(a: float, b: float, tolerance: float = 1.0) -> bool:
    return abs(abs(a) - abs(b)) <= tolerance


def is_same_day(a: dt.date, b: dt.date) -> bool:
    return a == b


def sort_by_date(txns: Iterable[Transaction]) -> List[Transaction]:
    # stable: equal dates keep caller order
    return sorted(txns, key=lambda t: t.date)
