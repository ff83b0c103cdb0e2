import datetime as dt

from fastapi import APIRouter, Depends, Query

from finance_coach import metrics
from finance_coach.config import settings
from finance_coach.deps import get_store, get_today
from finance_coach.schemas import ErrorOut
from finance_coach.services.insights import build_context, generate_insights
from finance_coach.store import TransactionStore
from finance_coach.utils.dates import parse_month, previous_month_range

router = APIRouter(prefix="/insights", tags=["insights"])


@router.get("", responses={400: {"model": ErrorOut}})
def insights(
    month: str = Query(..., description="YYYY-MM"),
    limit: int = Query(settings.INSIGHTS_DEFAULT_LIMIT),
    extras: str = Query("core", description="'core' or 'all'"),
    debug: bool = Query(False),
    store: TransactionStore = Depends(get_store),
    today: dt.date = Depends(get_today),
):
    metrics.engine_runs.labels(engine="insights").inc()
    # current and previous month are the only rows the rules read
    rng = parse_month(month)
    prev = previous_month_range(month)
    rows = store.between(prev.start, rng.end)

    ctx = build_context(month, rows, today=today)
    result = generate_insights(ctx, limit=limit, extras=extras)

    meta = {
        "txCount": len(ctx.current_transactions),
        "hasPrevMonth": bool(ctx.prev_transactions),
        "totalExpenses": round(ctx.total_expenses, 2),
        "discretionaryExpenses": round(ctx.discretionary_expenses, 2),
        "selection": {"generated": result.generated, "returned": result.returned},
    }
    if debug:
        meta["debug"] = {
            "core": result.core,
            "bonus": result.bonus,
            "dayOfMonth": ctx.day_of_month,
            "daysInMonth": ctx.days_in_month,
        }
    return {
        "month": month,
        "insights": [i.to_dict(include_evidence=debug) for i in result.insights],
        "meta": meta,
    }
