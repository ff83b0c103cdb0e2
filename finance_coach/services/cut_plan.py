from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Sequence

from finance_coach.core.category_mappings import (
    DEFAULT_ESSENTIALNESS,
    ESSENTIALNESS,
    micro_actions_for,
    rationale_for,
)
from finance_coach.models import CancelSuggestion, CutPlanItem, GraySubscription
from finance_coach.utils.stats import coefficient_of_variation, round_whole

MAX_CUT_SHARE = 0.35
PAIN_EPSILON = 0.05


@dataclass
class CategoryScore:
    category: str
    monthly_spend: float
    volatility: float
    essentialness: float
    pain: float
    max_cut: float

    @property
    def savings_per_pain(self) -> float:
        return self.max_cut / (self.pain + PAIN_EPSILON)


@dataclass
class CutPlan:
    shortfall: int
    plan: List[CutPlanItem] = field(default_factory=list)
    alternatives: List[CancelSuggestion] = field(default_factory=list)


def volatility(monthly_spends: Sequence[float]) -> float:
    """Coefficient of variation (population) of a category's monthly spend."""
    return coefficient_of_variation(monthly_spends)


def pain_score(essentialness: float, vol: float) -> float:
    volatility_factor = 1 - min(1.0, 1 / (1 + vol))
    return 0.5 * essentialness + 0.5 * volatility_factor


def score_categories(
    history: Mapping[str, Sequence[float]],
    current_spends: Mapping[str, float],
) -> List[CategoryScore]:
    scores: List[CategoryScore] = []
    for category, spend in current_spends.items():
        vol = volatility(history.get(category, ()))
        ess = ESSENTIALNESS.get(category, DEFAULT_ESSENTIALNESS)
        scores.append(
            CategoryScore(
                category=category,
                monthly_spend=spend,
                volatility=vol,
                essentialness=ess,
                pain=pain_score(ess, vol),
                max_cut=MAX_CUT_SHARE * spend,
            )
        )
    # stable: equal ratios keep the caller's category order
    scores.sort(key=lambda s: s.savings_per_pain, reverse=True)
    return scores


def optimize_cut_plan(
    history: Mapping[str, Sequence[float]],
    current_spends: Mapping[str, float],
    shortfall: float,
    gray_subscriptions: Sequence[GraySubscription] = (),
) -> CutPlan:
    """Greedy cut plan covering ``shortfall`` from the cheapest-to-cut categories.

    Each category gives at most 35% of its current spend. Cuts are whole units
    and their sum never exceeds the shortfall.
    """
    plan: List[CutPlanItem] = []
    remaining = float(shortfall)
    for score in score_categories(history, current_spends):
        if remaining <= 0:
            break
        cut = round_whole(min(remaining, score.max_cut))
        if cut > remaining:
            cut = int(math.floor(remaining))
        if cut <= 0:
            continue
        pct = round_whole(cut / score.monthly_spend * 100)
        plan.append(
            CutPlanItem(
                category=score.category,
                proposed_cut=cut,
                rationale=rationale_for(score.category, cut, pct),
                micro_actions=micro_actions_for(score.category),
            )
        )
        remaining -= cut

    return CutPlan(
        shortfall=round_whole(shortfall),
        plan=plan,
        alternatives=[
            CancelSuggestion(label=g.merchant, save=round_whole(g.monthly_estimate))
            for g in gray_subscriptions
        ],
    )


def total_proposed_savings(plan: Sequence[CutPlanItem]) -> int:
    return sum(item.proposed_cut for item in plan)


def plan_covers_shortfall(plan: Sequence[CutPlanItem], shortfall: float) -> bool:
    return total_proposed_savings(plan) >= shortfall


def category_spend_history(
    monthly_totals: Sequence[Mapping[str, float]], categories: Sequence[str]
) -> Dict[str, List[float]]:
    """Per-category series across months, 0 where a month has no spend."""
    return {c: [m.get(c, 0) for m in monthly_totals] for c in categories}
