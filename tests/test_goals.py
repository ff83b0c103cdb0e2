import math
from datetime import date

import pytest

from finance_coach.errors import InvalidRequest, NoDataError
from finance_coach.models import GraySubscription
from finance_coach.services.goals import (
    GoalsRequest,
    monthly_aggregate,
    months_to_goal,
    process_goals_request,
)
from tests.factories.txns import create_txn, month_with_savings

TODAY = date(2025, 9, 28)
MONTHS = ["2025-03", "2025-04", "2025-05", "2025-06", "2025-07", "2025-08"]


def steady_history(savings=400):
    rows = []
    for m in MONTHS:
        rows += month_with_savings(m, income=3000, expenses=3000 - savings)
    return rows


def test_goal_6000_over_12_months_with_400_savings():
    res = process_goals_request(GoalsRequest(target_amount=6000, months=12), steady_history(), today=TODAY)
    assert res.monthly_target == 500
    assert res.forecast.savings == 400
    assert res.on_track is False
    assert res.shortfall == 100
    assert res.months_analyzed == 6


def test_by_date_uses_calendar_months():
    req = GoalsRequest(target_amount=6000, by="2026-09-15")
    assert months_to_goal(req, TODAY) == 12
    res = process_goals_request(req, steady_history(), today=TODAY)
    assert res.monthly_target == 500


def test_on_track_has_no_plan():
    res = process_goals_request(
        GoalsRequest(target_amount=1200, months=12), steady_history(), today=TODAY
    )
    assert res.on_track is True
    assert res.shortfall == 0
    assert res.plan == []
    assert res.cancel_subscriptions == []


def test_shortfall_builds_plan_from_latest_month():
    rows = steady_history(savings=300)
    rows += [
        create_txn(date_="2025-08-12", amount=-250, merchant="Chipotle", category="Restaurants"),
        create_txn(date_="2025-08-14", amount=-60, merchant="Starbucks", category="Coffee"),
        create_txn(date_="2025-07-14", amount=-40, merchant="Starbucks", category="Coffee"),
    ]
    gray = [GraySubscription(merchant="StreamPlus", monthly_estimate=7.99)]
    res = process_goals_request(
        GoalsRequest(target_amount=6000, months=12), rows, gray_subscriptions=gray, today=TODAY
    )
    assert res.shortfall > 0
    cats = [p.category for p in res.plan]
    assert set(cats) <= {"Restaurants", "Coffee"}
    assert sum(p.proposed_cut for p in res.plan) <= res.shortfall
    assert [(c.label, c.save) for c in res.cancel_subscriptions] == [("StreamPlus", 8)]


def test_window_is_three_to_six_months():
    rows = []
    for m in ["2024-12", "2025-01"] + MONTHS:
        rows += month_with_savings(m, income=2000, expenses=1500)
    res = process_goals_request(GoalsRequest(target_amount=100, months=1), rows, today=TODAY)
    assert res.months_analyzed == 6

    short = month_with_savings("2025-08", income=2000, expenses=1500)
    res = process_goals_request(GoalsRequest(target_amount=100, months=1), short, today=TODAY)
    assert res.months_analyzed == 1
    assert res.forecast.method == "mean"


def test_debug_payload():
    res = process_goals_request(
        GoalsRequest(target_amount=6000, months=12, extras="debug"), steady_history(), today=TODAY
    )
    assert res.debug["monthsToGoal"] == 12
    assert res.debug["availableMonths"] == 6
    assert len(res.debug["monthlyData"]) == 6
    body = res.to_dict()
    assert body["meta"]["debug"]["monthsToGoal"] == 12
    assert body["meta"]["methodTried"] == ["mean", "regression", "expSmooth"]
    assert body["meta"]["chosen"] == body["forecast"]["method"]


def test_to_dict_shape():
    body = process_goals_request(
        GoalsRequest(target_amount=6000, months=12), steady_history(), today=TODAY
    ).to_dict()
    assert set(body) == {
        "onTrack",
        "monthlyTarget",
        "forecast",
        "shortfall",
        "plan",
        "alternatives",
        "meta",
    }
    assert set(body["forecast"]) == {"method", "savings", "interval", "probabilityOnTrack"}
    assert "debug" not in body["meta"]


@pytest.mark.parametrize(
    "req, code",
    [
        (GoalsRequest(target_amount=0, months=12), "invalid_target_amount"),
        (GoalsRequest(target_amount=-5, months=12), "invalid_target_amount"),
        (GoalsRequest(target_amount=math.inf, months=12), "invalid_target_amount"),
        (GoalsRequest(target_amount=math.nan, months=12), "invalid_target_amount"),
        (GoalsRequest(target_amount=1000), "invalid_timeline"),
        (GoalsRequest(target_amount=1000, months=12, by="2026-01-01"), "invalid_timeline"),
        (GoalsRequest(target_amount=1000, months=0), "invalid_months"),
        (GoalsRequest(target_amount=1000, months=121), "invalid_months"),
        (GoalsRequest(target_amount=1000, by="next year"), "invalid_date"),
        (GoalsRequest(target_amount=1000, by="2025-09-30"), "timeline_in_past"),
        (GoalsRequest(target_amount=1000, by="2024-01-01"), "timeline_in_past"),
        (GoalsRequest(target_amount=1000, months=6, extras="verbose"), "invalid_extras"),
    ],
)
def test_validation(req, code):
    with pytest.raises(InvalidRequest) as ei:
        process_goals_request(req, steady_history(), today=TODAY)
    assert ei.value.code == code


def test_no_history():
    with pytest.raises(NoDataError) as ei:
        process_goals_request(GoalsRequest(target_amount=1000, months=12), [], today=TODAY)
    assert ei.value.code == "no_transactions"
    assert ei.value.to_dict()["error"] == "no_transactions"


def test_monthly_aggregate_rounds():
    rows = [
        create_txn(date_="2025-08-01", amount=1000.4, category="Income"),
        create_txn(date_="2025-08-02", amount=-200.6),
    ]
    agg = monthly_aggregate(rows, 0)
    assert (agg.income, agg.expenses, agg.savings) == (1000, 201, 800)
