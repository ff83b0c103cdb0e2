"""Recurring-charge ("subscription") detection.

Expense transactions are grouped by merchant and matching amount, then each
group's inter-arrival intervals are tested against known billing periods.
Qualifying groups are scored on interval consistency, amount stability,
billing-day stability, history length and recency.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from finance_coach.core.category_mappings import TRIAL_KEYWORDS
from finance_coach.errors import InvalidRequest
from finance_coach.models import (
    GraySubscription,
    Subscription,
    SubscriptionFeatures,
    Transaction,
    TransactionGroup,
)
from finance_coach.utils.dates import add_days
from finance_coach.utils.stats import (
    clamp,
    mean,
    mean_absolute_deviation,
    median,
    round_to,
    round_whole,
    standard_deviation,
)
from finance_coach.utils.txns import amounts_match, sort_by_date

log = logging.getLogger(__name__)

DEFAULT_MIN_CONFIDENCE = 0.6

# (type, low, high) inclusive day bounds, checked in order
PERIODICITY_BANDS: Tuple[Tuple[str, float, float], ...] = (
    ("weekly", 6, 8),
    ("bi-weekly", 13, 15),
    ("monthly", 28, 32),
    ("quarterly", 85, 95),
    ("annual", 360, 370),
)

MIN_QUALIFYING_CHARGES = 3
_TRIAL_RE = re.compile("|".join(re.escape(k) for k in TRIAL_KEYWORDS), re.IGNORECASE)
_SECONDS_PER_DAY = 86400


@dataclass
class SubscriptionReport:
    items: List[Subscription] = field(default_factory=list)
    min_confidence: float = DEFAULT_MIN_CONFIDENCE

    @property
    def total_detected(self) -> int:
        return len(self.items)

    def to_dict(self) -> dict:
        return {
            "items": [s.to_dict() for s in self.items],
            "minConfidence": self.min_confidence,
            "totalDetected": self.total_detected,
        }


def validate_min_confidence(value: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        raise InvalidRequest("minConfidence must be a number", code="invalid_min_confidence")
    if math.isnan(v) or v < 0 or v > 1:
        raise InvalidRequest("minConfidence must be between 0 and 1", code="invalid_min_confidence")
    return v


def group_transactions(txns: Iterable[Transaction]) -> List[TransactionGroup]:
    """First-fit grouping: join the first existing group with the same merchant and a matching amount."""
    groups: List[TransactionGroup] = []
    for t in txns:
        for g in groups:
            if g.merchant == t.merchant and amounts_match(g.amount, t.amount):
                g.transactions.append(t)
                break
        else:
            groups.append(TransactionGroup(merchant=t.merchant, amount=t.amount, transactions=[t]))
    return groups


def interval_days(rows: List[Transaction]) -> List[int]:
    """Whole-day gaps between consecutive charges (rows must be date-sorted)."""
    out: List[int] = []
    for prev, cur in zip(rows, rows[1:]):
        seconds = (cur.date - prev.date).total_seconds()
        out.append(int(math.ceil(seconds / _SECONDS_PER_DAY)))
    return out


def classify_interval(median_interval: float) -> Optional[str]:
    for name, lo, hi in PERIODICITY_BANDS:
        if lo <= median_interval <= hi:
            return name
    return None


def recency_boost(days_since_last: int) -> float:
    if days_since_last <= 40:
        return 1.0
    if days_since_last <= 90:
        return 0.5
    return 0.0


def _is_gray(rows: List[Transaction], days_since_last: int, confidence: float) -> bool:
    # Clauses (a) and (c) look at groups of 1 or 2 charges, which never get
    # this far under the MIN_QUALIFYING_CHARGES gate. They are kept so the
    # low-history intent survives if the gate is ever relaxed.
    n = len(rows)
    first_seen_recently = n == 1 and days_since_last <= 30
    has_trial_keywords = any(t.description and _TRIAL_RE.search(t.description) for t in rows)
    short_but_confident = n <= 2 and confidence >= 0.6
    return bool(first_seen_recently or has_trial_keywords or short_but_confident)


def score_group(
    group: TransactionGroup, today: dt.date, min_confidence: float = 0.0
) -> Optional[Subscription]:
    """Score one merchant/amount group.

    Returns None when the group does not look periodic or its unrounded
    confidence is below ``min_confidence``.
    """
    rows = sort_by_date(group.transactions)
    deltas = interval_days(rows)
    median_interval = median(deltas)
    mad_interval = mean_absolute_deviation(deltas)

    sub_type = classify_interval(median_interval)
    n = len(rows)
    if n < MIN_QUALIFYING_CHARGES or sub_type is None:
        return None

    periodicity_strength = clamp(1 - (mad_interval / median_interval), 0, 1)

    amounts = [abs(t.amount) for t in rows]
    amount_mean = mean(amounts)
    amount_cv = standard_deviation(amounts) / amount_mean if amount_mean > 0 else 0.0
    amount_stability = clamp(1 - amount_cv, 0, 1)

    dom_std = standard_deviation([float(t.date.day) for t in rows])
    dom_stability = clamp(1 - (dom_std / 15), 0, 1)

    last_charge = rows[-1].date
    days_since_last = (today - last_charge).days
    boost = recency_boost(days_since_last)

    confidence = clamp(
        0.45 * periodicity_strength
        + 0.25 * amount_stability
        + 0.15 * dom_stability
        + 0.10 * min(1.0, n / 4)
        + 0.05 * boost,
        0,
        1,
    )
    if confidence < min_confidence:
        return None

    return Subscription(
        merchant=group.merchant,
        periodicity_days=round_whole(median_interval),
        subscription_type=sub_type,
        monthly_estimate=round_to(abs(group.amount), 2),
        last_charge=last_charge.isoformat(),
        next_expected=add_days(last_charge, median_interval).isoformat(),
        is_gray=_is_gray(rows, days_since_last, confidence),
        confidence=round_to(confidence, 2),
        features=SubscriptionFeatures(
            n=n,
            periodicity_strength=round_to(periodicity_strength, 2),
            amount_stability=round_to(amount_stability, 2),
            dom_stability=round_to(dom_stability, 2),
            recency_boost=round_to(boost, 2),
        ),
    )


def detect_subscriptions(
    transactions: Iterable[Transaction],
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
    today: Optional[dt.date] = None,
) -> SubscriptionReport:
    """Detect recurring expense charges.

    ``min_confidence`` must lie in [0, 1]. ``today`` anchors the recency
    features and defaults to the current date.
    """
    threshold = validate_min_confidence(min_confidence)
    ref = today or dt.date.today()

    expense_rows = [t for t in transactions if t.amount < 0]
    if not expense_rows:
        return SubscriptionReport(items=[], min_confidence=threshold)

    groups = group_transactions(expense_rows)
    items: List[Subscription] = []
    for g in groups:
        if len(g.transactions) < 2:
            continue
        sub = score_group(g, ref, min_confidence=threshold)
        if sub is not None:
            items.append(sub)

    items.sort(key=lambda s: s.confidence, reverse=True)
    log.debug(
        "subscriptions.detect groups=%s detected=%s threshold=%s",
        len(groups),
        len(items),
        threshold,
    )
    return SubscriptionReport(items=items, min_confidence=threshold)


def gray_subscriptions(report: SubscriptionReport) -> List[GraySubscription]:
    return [
        GraySubscription(merchant=s.merchant, monthly_estimate=s.monthly_estimate)
        for s in report.items
        if s.is_gray
    ]
