# finance_coach/services/insights.py
"""Monthly spending insights.

Each rule is an independent function ``InsightsContext -> Optional[Insight]``
registered in ``RULES``. ``generate_insights`` runs the core rules (and the
bonus rules when ``extras == "all"``), scores every produced insight and
returns the top ``limit``.

Rules measure spend over expense rows only (``amount < 0``) and work in
absolute value; income never counts as spend.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Literal, Optional, Sequence, Tuple

from finance_coach import metrics
from finance_coach.core.category_mappings import (
    DISCRETIONARY_CATEGORIES,
    DISCRETIONARY_SET,
    FEE_KEYWORDS,
    RIDESHARE_CATEGORY,
    SUBSCRIPTIONS_CATEGORY,
)
from finance_coach.errors import InvalidRequest
from finance_coach.models import Impact, Insight, Transaction
from finance_coach.utils.dates import (
    DateRange,
    days_in_month,
    parse_month,
    previous_month_range,
)
from finance_coach.utils.stats import clamp, iqr, mean, median, round_whole, total
from finance_coach.utils.txns import (
    amounts_within,
    contains_words,
    expenses,
    filter_by_category,
    filter_by_date_range,
    group_by_category,
    group_by_merchant,
    is_coffee_transaction,
    is_same_day,
    magnitudes,
    redact_merchant,
    split_weekday_weekend,
)

log = logging.getLogger(__name__)

Extras = Literal["core", "all"]
MIN_LIMIT, MAX_LIMIT = 1, 20

HOME_COFFEE_PRICE = 3.0
WEEKDAY_DAYS = 22
WEEKEND_DAYS = 8
SAVINGS_PER_RIDE = 10
DISCRETIONARY_SHARE_TRIGGER = 0.35
DISCRETIONARY_CUT_RATE = 0.12
PACE_MIN_DAY = 5
NO_SPEND_MIN_DAYS = 6
DRIP_MAX_AMOUNT = 10
DRIP_MIN_COUNT = 8


@dataclass
class InsightsContext:
    month: str
    month_range: DateRange
    prev_range: DateRange
    current_transactions: List[Transaction]
    prev_transactions: List[Transaction]
    total_expenses: float
    discretionary_expenses: float
    days_in_month: int
    day_of_month: int

    @property
    def current_expenses(self) -> List[Transaction]:
        return expenses(self.current_transactions)

    @property
    def prev_expenses(self) -> List[Transaction]:
        return expenses(self.prev_transactions)


@dataclass
class InsightsResult:
    insights: List[Insight] = field(default_factory=list)
    generated: int = 0
    core: int = 0
    bonus: int = 0

    @property
    def returned(self) -> int:
        return len(self.insights)


def _elapsed_days(rng: DateRange, month: str, today: dt.date) -> int:
    if today < rng.start:
        return 0
    if today >= rng.end:
        return days_in_month(month)
    return today.day


def build_context(
    month: str,
    transactions: Sequence[Transaction],
    today: Optional[dt.date] = None,
) -> InsightsContext:
    """Slice ``transactions`` into the month and its predecessor and precompute totals.

    ``day_of_month`` is today's day while the month is in progress, the full
    length for past months and 0 for future months.
    """
    rng = parse_month(month)
    prev_rng = previous_month_range(month)
    current = filter_by_date_range(transactions, rng)
    prev = filter_by_date_range(transactions, prev_rng)
    spend = expenses(current)
    return InsightsContext(
        month=month,
        month_range=rng,
        prev_range=prev_rng,
        current_transactions=current,
        prev_transactions=prev,
        total_expenses=total(magnitudes(spend)),
        discretionary_expenses=total(
            magnitudes([t for t in spend if t.category in DISCRETIONARY_SET])
        ),
        days_in_month=days_in_month(month),
        day_of_month=_elapsed_days(rng, month, today or dt.date.today()),
    )


def _impact(monthly: float) -> Impact:
    return Impact(monthly=round_whole(monthly), annual=round_whole(monthly * 12))


def _spend(txns: Sequence[Transaction]) -> float:
    return total(magnitudes(txns))


# ---------------------------------------------------------------------------
# Core rules
# ---------------------------------------------------------------------------


def coffee_savings(ctx: InsightsContext) -> Optional[Insight]:
    coffee = [t for t in ctx.current_expenses if is_coffee_transaction(t)]
    if not coffee:
        return None
    cups = len(coffee)
    avg_price = mean(magnitudes(coffee))
    monthly = max(0.0, (avg_price - HOME_COFFEE_PRICE) * cups)

    confidence = 0.4
    if cups >= 6:
        confidence = 0.8
    elif cups >= 3:
        confidence = 0.6

    return Insight(
        id="coffee-savings",
        title="Brew-at-home saves on coffee",
        detail=(
            f"You spent ${round_whole(avg_price * cups)} on {cups} coffee purchases this month. "
            f"Brewing at home could save ${round_whole(monthly)} monthly."
        ),
        impact=_impact(monthly),
        confidence=confidence,
        tags=["coffee", "habits"],
        evidence={"cups": cups, "avgStorePrice": avg_price, "homePrice": HOME_COFFEE_PRICE},
    )


def merchant_shift(ctx: InsightsContext) -> Optional[Insight]:
    current = group_by_merchant(ctx.current_expenses)
    prev = group_by_merchant(ctx.prev_expenses)

    best_increase = 0.0
    best_merchant = ""
    best_prev = 0.0
    for merchant, rows in current.items():
        cur_spend = _spend(rows)
        prev_spend = _spend(prev.get(merchant, []))
        increase = cur_spend - prev_spend
        if increase > best_increase:
            best_increase, best_merchant, best_prev = increase, merchant, prev_spend

    if best_increase <= 0:
        return None

    label = redact_merchant(best_merchant)
    since = (
        f" (from ${round_whole(best_prev)} last month)" if best_prev > 0 else " (new this month)"
    )
    return Insight(
        id="merchant-shift",
        title=f"Spending spike at {label}",
        detail=f"Your spending at {label} increased by ${round_whole(best_increase)} this month{since}.",
        impact=_impact(best_increase),
        confidence=clamp(best_increase / 100, 0, 1),
        tags=["spending", "merchants"],
        evidence={"merchant": best_merchant, "increase": best_increase, "prevSpend": best_prev},
    )


def weekend_rideshare(ctx: InsightsContext) -> Optional[Insight]:
    rides = filter_by_category(ctx.current_expenses, RIDESHARE_CATEGORY)
    if not rides:
        return None

    weekday, weekend = split_weekday_weekend(rides)
    weekday_avg = _spend(weekday) / WEEKDAY_DAYS
    weekend_avg = _spend(weekend) / WEEKEND_DAYS
    if weekend_avg == 0 or weekend_avg < 1.3 * weekday_avg:
        return None

    rides_per_weekend_day = min(len(weekend) / WEEKEND_DAYS, 2)
    monthly = min(rides_per_weekend_day * 2, 4) * SAVINGS_PER_RIDE

    if weekday_avg > 0:
        pct = round_whole((weekend_avg / weekday_avg) * 100)
        comparison = f"Weekend rideshare spending is {pct}% higher than weekdays."
    else:
        comparison = "All of your rideshare spending happens on weekends."

    return Insight(
        id="weekend-rideshare",
        title="Weekend rideshare costs add up",
        detail=(
            f"{comparison} Consider public transit for some weekend trips "
            f"to save ${round_whole(monthly)} monthly."
        ),
        impact=_impact(monthly),
        confidence=clamp(len(rides) / 10, 0.3, 0.9),
        tags=["rideshare", "transportation"],
        evidence={
            "weekdayAvg": weekday_avg,
            "weekendAvg": weekend_avg,
            "ridesPerWeekendDay": rides_per_weekend_day,
        },
    )


def _is_category_spike(amounts: List[float], current_total: float, prev_total: float) -> Tuple[bool, str]:
    if len(amounts) >= 4:
        _, q3, spread = iqr(amounts)
        return current_total > q3 + 1.5 * spread, "iqr"
    return current_total - prev_total > 0, "mom"


def category_spike(ctx: InsightsContext) -> Optional[Insight]:
    current = group_by_category(ctx.current_expenses)
    prev = group_by_category(ctx.prev_expenses)

    top_total = 0.0
    top_category = ""
    top_change = 0.0
    top_method = ""
    for category, rows in current.items():
        amounts = magnitudes(rows)
        cur_total = total(amounts)
        prev_total = _spend(prev.get(category, []))
        flagged, method = _is_category_spike(amounts, cur_total, prev_total)
        if flagged and cur_total > top_total:
            top_total, top_category = cur_total, category
            top_change, top_method = cur_total - prev_total, method

    if top_total == 0:
        return None

    increase = max(0.0, top_change)
    if increase > 0:
        detail = f"Your {top_category.lower()} spending increased by ${round_whole(increase)} this month."
    else:
        detail = f"Your {top_category.lower()} spending reached ${round_whole(top_total)} this month."
    return Insight(
        id="category-spike",
        title=f"Spike in {top_category} this month",
        detail=detail + " Consider if this reflects a one-time expense or a new spending pattern.",
        impact=_impact(increase),
        confidence=0.8,
        tags=["spending", "categories"],
        evidence={"category": top_category, "spike": top_change, "method": top_method},
    )


def pace_projection(ctx: InsightsContext) -> Optional[Insight]:
    if ctx.day_of_month < PACE_MIN_DAY:
        return None

    top_category = ""
    top_spend = 0.0
    for category, rows in group_by_category(ctx.current_expenses).items():
        spend = _spend(rows)
        if spend > top_spend:
            top_spend, top_category = spend, category
    if top_spend == 0:
        return None

    projected = (top_spend / ctx.day_of_month) * ctx.days_in_month
    prev_spend = _spend(filter_by_category(ctx.prev_expenses, top_category))
    difference = abs(projected - prev_spend)
    versus = f" (vs ${round_whole(prev_spend)} last month)" if prev_spend > 0 else ""

    return Insight(
        id="pace-projection",
        title=f"{top_category} spending pace",
        detail=(
            f"At your current pace, you'll spend ${round_whole(projected)} on "
            f"{top_category.lower()} this month{versus}."
        ),
        impact=_impact(difference),
        confidence=clamp(ctx.day_of_month / 15, 0.3, 0.9),
        tags=["projection", "spending"],
        evidence={"category": top_category, "projected": projected, "prevSpend": prev_spend},
    )


def discretionary_cuts(ctx: InsightsContext) -> Optional[Insight]:
    if ctx.total_expenses == 0:
        return None
    share = ctx.discretionary_expenses / ctx.total_expenses
    if share <= DISCRETIONARY_SHARE_TRIGGER:
        return None

    suggested = ctx.discretionary_expenses * DISCRETIONARY_CUT_RATE
    actions: Dict[str, float] = {}
    for category in DISCRETIONARY_CATEGORIES:
        spend = _spend(filter_by_category(ctx.current_expenses, category))
        if spend > 0:
            actions[category] = min(spend * 0.15, suggested / 3)

    return Insight(
        id="discretionary-cuts",
        title="High discretionary spending detected",
        detail=(
            f"{round_whole(share * 100)}% of your spending is discretionary. "
            f"Consider reducing by ${round_whole(suggested)} monthly to improve savings."
        ),
        impact=_impact(suggested),
        confidence=clamp(share, 0.4, 0.9),
        tags=["budgeting", "savings"],
        evidence={"discretionaryShare": share, "actionList": actions},
    )


# ---------------------------------------------------------------------------
# Bonus rules (extras == "all")
# ---------------------------------------------------------------------------


def no_spend_streak(ctx: InsightsContext) -> Optional[Insight]:
    rows = [t for t in ctx.current_expenses if t.category in DISCRETIONARY_SET]
    spend_days = {t.date for t in rows}
    no_spend_days = ctx.days_in_month - len(spend_days)
    if no_spend_days < NO_SPEND_MIN_DAYS:
        return None

    typical = median(magnitudes(rows))
    monthly = typical * 4  # one extra no-spend day per week

    return Insight(
        id="no-spend-streak",
        title="Great no-spend day streak",
        detail=(
            f"You had {no_spend_days} no-spend days this month. Adding one more no-spend day "
            f"per week could save ${round_whole(monthly)} monthly."
        ),
        impact=_impact(monthly),
        confidence=clamp(no_spend_days / 10, 0.4, 0.8),
        tags=["habits", "savings"],
        evidence={"noSpendDays": no_spend_days, "medianDailySpend": typical},
    )


def fee_detector(ctx: InsightsContext) -> Optional[Insight]:
    fees = [
        t
        for t in ctx.current_expenses
        if contains_words(t.merchant, FEE_KEYWORDS) or contains_words(t.description, FEE_KEYWORDS)
    ]
    if not fees:
        return None
    paid = _spend(fees)
    return Insight(
        id="fee-detector",
        title="Bank fees detected",
        detail=f"You paid ${round_whole(paid)} in fees this month. Review your account to avoid unnecessary charges.",
        impact=_impact(paid),
        confidence=clamp(len(fees) / 5, 0.5, 0.9),
        tags=["fees", "banking"],
        evidence={"feeCount": len(fees), "totalFees": paid},
    )


def find_duplicate_groups(txns: Sequence[Transaction]) -> List[List[Transaction]]:
    """Same day, same merchant, amounts within $1. Each transaction joins at most one group."""
    seen: set[str] = set()
    groups: List[List[Transaction]] = []
    for t1 in txns:
        if t1.id in seen:
            continue
        matches = [
            t2
            for t2 in txns
            if t2.id != t1.id
            and t2.id not in seen
            and is_same_day(t1.date, t2.date)
            and t1.merchant == t2.merchant
            and amounts_within(t1.amount, t2.amount, 1.0)
        ]
        if matches:
            groups.append([t1, *matches])
            seen.add(t1.id)
            seen.update(t.id for t in matches)
    return groups


def duplicate_charges(ctx: InsightsContext) -> Optional[Insight]:
    groups = find_duplicate_groups(ctx.current_expenses)
    if not groups:
        return None
    suspected = sum(_spend(g) for g in groups)
    return Insight(
        id="duplicate-charges",
        title="Possible duplicate charges",
        detail=(
            f"Found {len(groups)} potential duplicate charges totaling ${round_whole(suspected)}. "
            "Review these transactions for accuracy."
        ),
        impact=_impact(suspected),
        confidence=clamp(len(groups) / 3, 0.5, 0.8),
        tags=["duplicates", "review"],
        evidence={
            "duplicateGroups": len(groups),
            "totalSuspected": suspected,
            "transactionIds": [[t.id for t in g] for g in groups],
        },
    )


def rising_subscriptions(ctx: InsightsContext) -> Optional[Insight]:
    current = filter_by_category(ctx.current_expenses, SUBSCRIPTIONS_CATEGORY)
    if not current:
        return None
    cur_total = _spend(current)
    prev_total = _spend(filter_by_category(ctx.prev_expenses, SUBSCRIPTIONS_CATEGORY))
    increase = cur_total - prev_total
    if increase <= 0:
        return None
    return Insight(
        id="new-subscriptions",
        title="New or increased subscriptions",
        detail=(
            f"Your subscription spending increased by ${round_whole(increase)} this month. "
            "Review if all services are still needed."
        ),
        impact=_impact(increase),
        confidence=clamp(increase / 50, 0.4, 0.8),
        tags=["subscriptions", "review"],
        evidence={"currentTotal": cur_total, "prevTotal": prev_total, "increase": increase},
    )


def cash_drips(ctx: InsightsContext) -> Optional[Insight]:
    drips = [
        t
        for t in ctx.current_expenses
        if abs(t.amount) < DRIP_MAX_AMOUNT and t.category in DISCRETIONARY_SET
    ]
    if len(drips) < DRIP_MIN_COUNT:
        return None
    typical = median(magnitudes(drips))
    skip = min(3, len(drips) // 4)
    monthly = skip * typical
    return Insight(
        id="cash-drips",
        title="Small purchases add up",
        detail=(
            f"You made {len(drips)} small purchases under ${DRIP_MAX_AMOUNT}. Skipping {skip} per week "
            f"could save ${round_whole(monthly)} monthly."
        ),
        impact=_impact(monthly),
        confidence=clamp(len(drips) / 15, 0.4, 0.7),
        tags=["small-purchases", "habits"],
        evidence={"dripCount": len(drips), "medianDrip": typical, "suggestedReduction": skip},
    )


# ---------------------------------------------------------------------------
# Registry, ranking, entrypoint
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class InsightRule:
    name: str
    tier: Literal["core", "bonus"]
    fn: Callable[[InsightsContext], Optional[Insight]]


RULES: Tuple[InsightRule, ...] = (
    InsightRule("coffee-savings", "core", coffee_savings),
    InsightRule("merchant-shift", "core", merchant_shift),
    InsightRule("weekend-rideshare", "core", weekend_rideshare),
    InsightRule("category-spike", "core", category_spike),
    InsightRule("pace-projection", "core", pace_projection),
    InsightRule("discretionary-cuts", "core", discretionary_cuts),
    InsightRule("no-spend-streak", "bonus", no_spend_streak),
    InsightRule("fee-detector", "bonus", fee_detector),
    InsightRule("duplicate-charges", "bonus", duplicate_charges),
    InsightRule("new-subscriptions", "bonus", rising_subscriptions),
    InsightRule("cash-drips", "bonus", cash_drips),
)


def score_insight(insight: Insight, total_expenses: float) -> float:
    denom = total_expenses * 0.25
    normalized = min(insight.impact.monthly / denom, 1.0) if denom > 0 else 0.0
    return normalized * 0.6 + insight.confidence * 0.4


def rank_and_select(insights: List[Insight], total_expenses: float, limit: int) -> List[Insight]:
    # sorted() is stable, so ties keep generation order
    ranked = sorted(insights, key=lambda i: score_insight(i, total_expenses), reverse=True)
    return ranked[:limit]


def validate_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or not (MIN_LIMIT <= limit <= MAX_LIMIT):
        raise InvalidRequest(f"limit must be an integer between {MIN_LIMIT} and {MAX_LIMIT}", code="invalid_limit")
    return limit


def validate_extras(extras: str) -> str:
    if extras not in ("core", "all"):
        raise InvalidRequest("extras must be 'core' or 'all'", code="invalid_extras")
    return extras


def _run(rules: Sequence[InsightRule], ctx: InsightsContext) -> List[Insight]:
    out: List[Insight] = []
    for rule in rules:
        insight = rule.fn(ctx)
        if insight is None:
            continue
        insight.confidence = clamp(insight.confidence, 0, 1)
        metrics.insights_generated.labels(rule=rule.name).inc()
        out.append(insight)
    return out


def generate_insights(ctx: InsightsContext, limit: int = 6, extras: Extras = "core") -> InsightsResult:
    validate_limit(limit)
    validate_extras(extras)

    core = _run([r for r in RULES if r.tier == "core"], ctx)
    bonus = _run([r for r in RULES if r.tier == "bonus"], ctx) if extras == "all" else []
    generated = core + bonus

    selected = rank_and_select(generated, ctx.total_expenses, limit)
    log.debug(
        "insights.generate month=%s generated=%s returned=%s",
        ctx.month,
        len(generated),
        len(selected),
    )
    return InsightsResult(
        insights=selected,
        generated=len(generated),
        core=len(core),
        bonus=len(bonus),
    )
