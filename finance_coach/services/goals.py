"""Savings-goal feasibility.

Turns a goal (amount + horizon) into a monthly target, forecasts next month's
savings from recent monthly aggregates, and when the forecast falls short
builds a cut plan over the discretionary categories of the latest month.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from finance_coach.core.category_mappings import DISCRETIONARY_CATEGORIES
from finance_coach.errors import InvalidRequest, NoDataError
from finance_coach.models import (
    CancelSuggestion,
    CutPlanItem,
    ForecastResult,
    GraySubscription,
    MonthlyData,
    Transaction,
)
from finance_coach.services.cut_plan import category_spend_history, optimize_cut_plan
from finance_coach.services.forecast import METHODS_TRIED, forecast_savings
from finance_coach.utils.dates import months_between, parse_iso_date
from finance_coach.utils.stats import round_whole
from finance_coach.utils.txns import group_by_month

log = logging.getLogger(__name__)

MAX_GOAL_MONTHS = 120
MAX_HISTORY_MONTHS = 6
MIN_HISTORY_MONTHS = 3


@dataclass
class GoalsRequest:
    target_amount: float
    months: Optional[int] = None
    by: Optional[str] = None
    extras: Optional[str] = None


@dataclass
class GoalsResult:
    on_track: bool
    monthly_target: int
    forecast: ForecastResult
    shortfall: int
    plan: List[CutPlanItem] = field(default_factory=list)
    cancel_subscriptions: List[CancelSuggestion] = field(default_factory=list)
    months_analyzed: int = 0
    methods_tried: List[str] = field(default_factory=lambda: list(METHODS_TRIED))
    debug: Optional[Dict[str, Any]] = None

    @property
    def chosen(self) -> str:
        return self.forecast.method

    def to_dict(self) -> Dict[str, Any]:
        meta: Dict[str, Any] = {
            "monthsAnalyzed": self.months_analyzed,
            "methodTried": list(self.methods_tried),
            "chosen": self.chosen,
        }
        if self.debug is not None:
            meta["debug"] = self.debug
        return {
            "onTrack": self.on_track,
            "monthlyTarget": self.monthly_target,
            "forecast": {
                "method": self.forecast.method,
                "savings": self.forecast.savings,
                "interval": {
                    "low": self.forecast.interval.low,
                    "high": self.forecast.interval.high,
                },
                "probabilityOnTrack": self.forecast.probability_on_track,
            },
            "shortfall": self.shortfall,
            "plan": [
                {
                    "category": p.category,
                    "proposedCut": p.proposed_cut,
                    "rationale": p.rationale,
                    "microActions": list(p.micro_actions),
                }
                for p in self.plan
            ],
            "alternatives": {
                "cancelSubscriptions": [
                    {"label": c.label, "save": c.save} for c in self.cancel_subscriptions
                ]
            },
            "meta": meta,
        }


def validate_goals_request(request: GoalsRequest) -> None:
    target = request.target_amount
    if (
        isinstance(target, bool)
        or not isinstance(target, (int, float))
        or not math.isfinite(target)
        or not target > 0
    ):
        raise InvalidRequest("targetAmount must be a positive finite number", code="invalid_target_amount")
    if (request.months is None) == (request.by is None):
        raise InvalidRequest("provide exactly one of months or by", code="invalid_timeline")
    if request.months is not None:
        m = request.months
        if isinstance(m, bool) or not isinstance(m, int) or not (1 <= m <= MAX_GOAL_MONTHS):
            raise InvalidRequest(
                f"months must be an integer between 1 and {MAX_GOAL_MONTHS}", code="invalid_months"
            )
    if request.extras not in (None, "debug"):
        raise InvalidRequest("extras must be 'debug' when given", code="invalid_extras")


def months_to_goal(request: GoalsRequest, today: dt.date) -> int:
    if request.months is not None:
        months = request.months
    else:
        months = months_between(today, parse_iso_date(request.by))
    if months <= 0:
        raise InvalidRequest("goal date must be in the future", code="timeline_in_past")
    return months


def month_spend_by_category(txns: Sequence[Transaction]) -> Dict[str, int]:
    """Absolute spend per category, rounded to whole units."""
    spends: Dict[str, float] = {}
    for t in txns:
        spends[t.category] = spends.get(t.category, 0.0) + abs(t.amount)
    return {c: round_whole(v) for c, v in spends.items()}


def monthly_aggregate(txns: Sequence[Transaction], index: int) -> MonthlyData:
    inc = sum(t.amount for t in txns if t.amount > 0)
    exp = sum(abs(t.amount) for t in txns if t.amount < 0)
    return MonthlyData(
        month=index,
        income=round_whole(inc),
        expenses=round_whole(exp),
        savings=round_whole(inc - exp),
    )


def process_goals_request(
    request: GoalsRequest,
    transactions: Sequence[Transaction],
    gray_subscriptions: Sequence[GraySubscription] = (),
    today: Optional[dt.date] = None,
) -> GoalsResult:
    validate_goals_request(request)
    months = months_to_goal(request, today or dt.date.today())
    monthly_target = round_whole(request.target_amount / months)

    by_month = group_by_month(transactions)
    month_keys = sorted(by_month)
    available = len(month_keys)
    window = min(MAX_HISTORY_MONTHS, max(MIN_HISTORY_MONTHS, available))
    analyzed = month_keys[-window:] if month_keys else []
    monthly_data = [monthly_aggregate(by_month[k], i) for i, k in enumerate(analyzed)]
    if not monthly_data:
        raise NoDataError("no transaction history to forecast from", code="no_transactions")

    latest = month_spend_by_category(by_month[month_keys[-1]])
    discretionary_spends = {c: latest[c] for c in DISCRETIONARY_CATEGORIES if latest.get(c)}
    history = category_spend_history(
        [month_spend_by_category(by_month[k]) for k in month_keys],
        DISCRETIONARY_CATEGORIES,
    )

    forecast = forecast_savings(monthly_data, monthly_target)
    on_track = forecast.savings >= monthly_target
    shortfall = max(0, monthly_target - forecast.savings)

    plan: List[CutPlanItem] = []
    cancel: List[CancelSuggestion] = []
    if not on_track and shortfall > 0:
        cut_plan = optimize_cut_plan(history, discretionary_spends, shortfall, gray_subscriptions)
        plan, cancel = cut_plan.plan, cut_plan.alternatives

    debug = None
    if request.extras == "debug":
        debug = {
            "monthlyData": [vars(m).copy() for m in monthly_data],
            "categorySpendHistory": history,
            "discretionarySpends": discretionary_spends,
            "monthsToGoal": months,
            "availableMonths": available,
        }

    log.info(
        "goals.process months=%s analyzed=%s method=%s on_track=%s plan_items=%s",
        months,
        len(monthly_data),
        forecast.method,
        on_track,
        len(plan),
    )
    return GoalsResult(
        on_track=on_track,
        monthly_target=monthly_target,
        forecast=forecast,
        shortfall=shortfall,
        plan=plan,
        cancel_subscriptions=cancel,
        months_analyzed=len(monthly_data),
        debug=debug,
    )
