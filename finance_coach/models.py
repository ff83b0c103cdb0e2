"""Plain data records passed between the store, the services and the routers."""

from __future__ import annotations

import datetime as dt
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

ForecastMethod = Literal["mean", "regression", "expSmooth"]


@dataclass(frozen=True)
class Transaction:
    id: str
    date: dt.date
    amount: float  # positive = income/credit, negative = expense/debit
    merchant: str
    category: str
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date.isoformat(),
            "amount": self.amount,
            "merchant": self.merchant,
            "category": self.category,
            "description": self.description,
        }


@dataclass
class TransactionGroup:
    merchant: str
    amount: float  # representative amount (first member)
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class SubscriptionFeatures:
    n: int
    periodicity_strength: float
    amount_stability: float
    dom_stability: float
    recency_boost: float


@dataclass
class Subscription:
    merchant: str
    periodicity_days: int
    subscription_type: str
    monthly_estimate: float
    last_charge: str
    next_expected: str
    is_gray: bool
    confidence: float
    features: SubscriptionFeatures

    def to_dict(self) -> Dict[str, Any]:
        f = self.features
        return {
            "merchant": self.merchant,
            "periodicityDays": self.periodicity_days,
            "subscriptionType": self.subscription_type,
            "monthlyEstimate": self.monthly_estimate,
            "lastCharge": self.last_charge,
            "nextExpected": self.next_expected,
            "isGray": self.is_gray,
            "confidence": self.confidence,
            "features": {
                "n": f.n,
                "periodicityStrength": f.periodicity_strength,
                "amountStability": f.amount_stability,
                "domStability": f.dom_stability,
                "recencyBoost": f.recency_boost,
            },
        }


@dataclass
class Impact:
    monthly: int
    annual: int


@dataclass
class Insight:
    id: str
    title: str
    detail: str
    impact: Impact
    confidence: float
    tags: List[str]
    evidence: Optional[Dict[str, Any]] = None

    def to_dict(self, include_evidence: bool = False) -> Dict[str, Any]:
        data = asdict(self)
        if not include_evidence:
            data.pop("evidence", None)
        return data


@dataclass
class MonthlyData:
    month: int  # 0-based index within the analyzed window
    income: int
    expenses: int
    savings: int


@dataclass
class ForecastInterval:
    low: int
    high: int


@dataclass
class ForecastResult:
    method: ForecastMethod
    savings: int
    interval: ForecastInterval
    probability_on_track: float


@dataclass
class CutPlanItem:
    category: str
    proposed_cut: int
    rationale: str
    micro_actions: List[str]


@dataclass
class CancelSuggestion:
    label: str
    save: int


@dataclass
class GraySubscription:
    """Minimal view of a gray charge consumed by the goals optimizer."""

    merchant: str
    monthly_estimate: float
