import datetime as dt

from fastapi import APIRouter, Depends

from finance_coach import metrics
from finance_coach.deps import get_store, get_today
from finance_coach.schemas import ErrorOut, GoalsIn
from finance_coach.services.goals import process_goals_request, validate_goals_request
from finance_coach.services.subscriptions import detect_subscriptions, gray_subscriptions
from finance_coach.store import TransactionStore

router = APIRouter(prefix="/goals", tags=["goals"])


@router.post("", responses={400: {"model": ErrorOut}})
def goals(
    body: GoalsIn,
    store: TransactionStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    metrics.engine_runs.labels(engine="goals").inc()
    req = body.to_request()
    validate_goals_request(req)

    txns = store.all()
    gray = gray_subscriptions(detect_subscriptions(txns, today=today))
    result = process_goals_request(req, txns, gray_subscriptions=gray, today=today)
    return result.to_dict()
