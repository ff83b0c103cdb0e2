import datetime as dt

from fastapi import APIRouter, Depends, Query

from finance_coach import metrics
from finance_coach.config import settings
from finance_coach.deps import get_store, get_today
from finance_coach.schemas import ErrorOut
from finance_coach.services.subscriptions import detect_subscriptions
from finance_coach.store import TransactionStore

router = APIRouter(prefix="/subscriptions", tags=["subscriptions"])


@router.get("", responses={400: {"model": ErrorOut}})
def list_subscriptions(
    min_confidence: float = Query(settings.SUBSCRIPTIONS_MIN_CONFIDENCE, alias="minConfidence"),
    store: TransactionStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    """Recurring charges at or above ``minConfidence``, most confident first."""
    metrics.engine_runs.labels(engine="subscriptions").inc()
    report = detect_subscriptions(store.all(), min_confidence=min_confidence, today=today)
    return report.to_dict()
