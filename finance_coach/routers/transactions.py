from fastapi import APIRouter, Depends, Query

from finance_coach import metrics
from finance_coach.deps import get_store
from finance_coach.schemas import ErrorOut
from finance_coach.services.rollups import month_rollup
from finance_coach.store import TransactionStore
from finance_coach.utils.dates import parse_month

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", responses={400: {"model": ErrorOut}})
def transactions(
    month: str = Query(..., description="YYYY-MM"),
    store: TransactionStore = Depends(get_store),
):
    """Month items with category rollups and KPIs."""
    metrics.engine_runs.labels(engine="rollups").inc()
    rng = parse_month(month)
    return month_rollup(month, store.between(rng.start, rng.end))
