from datetime import date, timedelta

import pytest

from finance_coach.errors import InvalidRequest
from finance_coach.services.subscriptions import (
    classify_interval,
    detect_subscriptions,
    gray_subscriptions,
    group_transactions,
    interval_days,
    recency_boost,
)
from tests.factories.random_txn import random_txns
from tests.factories.txns import create_txn, recurring

TODAY = date(2025, 9, 3)


def netflix():
    # Apr 1, May 1, May 31, Jun 30, Jul 30, Aug 29
    return recurring("Netflix", -15.99, start="2025-04-01", count=6, every_days=30)


def test_netflix_monthly_detected():
    report = detect_subscriptions(netflix(), today=TODAY)
    assert report.total_detected == 1
    sub = report.items[0]
    assert sub.merchant == "Netflix"
    assert sub.subscription_type == "monthly"
    assert sub.periodicity_days == 30
    assert sub.is_gray is False
    assert sub.confidence > 0.6
    assert sub.monthly_estimate == 15.99
    assert sub.last_charge == "2025-08-29"
    assert sub.next_expected == "2025-09-28"
    assert sub.features.n == 6
    assert sub.features.periodicity_strength == 1.0
    assert sub.features.amount_stability == 1.0
    assert sub.features.recency_boost == 1.0


def test_single_trial_charge_not_returned():
    trial = create_txn(
        date_=TODAY - timedelta(days=5),
        amount=-7.99,
        merchant="StreamPlus",
        category="Subscriptions",
        description="Free trial converted",
    )
    report = detect_subscriptions([trial], today=TODAY)
    assert report.items == []
    assert report.total_detected == 0


def test_two_charges_are_not_enough():
    rows = recurring("Hulu", -7.99, start="2025-07-01", count=2)
    assert detect_subscriptions(rows, min_confidence=0, today=TODAY).items == []


def test_non_banded_interval_dropped():
    rows = recurring("Gym", -40, start="2025-01-01", count=5, every_days=45)
    assert detect_subscriptions(rows, min_confidence=0, today=TODAY).items == []


def test_weekly_band():
    rows = recurring("Meal Kit", -60, start="2025-08-04", count=4, every_days=7)
    report = detect_subscriptions(rows, min_confidence=0, today=TODAY)
    assert [s.subscription_type for s in report.items] == ["weekly"]


def test_income_never_detected():
    salary = recurring("Employer", 3000, start="2025-03-01", count=6, category="Income")
    assert detect_subscriptions(salary, min_confidence=0, today=TODAY).items == []


def test_trial_keywords_flag_gray():
    rows = recurring(
        "Spotify", -10.99, start="2025-06-05", count=3, description="Promo renewal"
    )
    report = detect_subscriptions(rows, today=date(2025, 9, 28))
    assert len(report.items) == 1
    assert report.items[0].is_gray is True
    gray = gray_subscriptions(report)
    assert [(g.merchant, g.monthly_estimate) for g in gray] == [("Spotify", 10.99)]


@pytest.mark.parametrize("bad", [-0.1, 1.5, float("nan"), "high"])
def test_invalid_threshold_rejected(bad):
    with pytest.raises(InvalidRequest) as ei:
        detect_subscriptions(netflix(), min_confidence=bad, today=TODAY)
    assert ei.value.code == "invalid_min_confidence"


def test_empty_input_returns_empty_report():
    report = detect_subscriptions([], min_confidence=0.7, today=TODAY)
    assert report.to_dict() == {"items": [], "minConfidence": 0.7, "totalDetected": 0}


def test_threshold_monotonic_and_bounded():
    rows = random_txns(300, seed=11) + netflix() + recurring(
        "Spotify", -10.99, start="2025-03-10", count=7, every_days=31
    )
    seen = []
    for threshold in (0.0, 0.3, 0.6, 0.9):
        report = detect_subscriptions(rows, min_confidence=threshold, today=TODAY)
        keys = {(s.merchant, s.last_charge) for s in report.items}
        for s in report.items:
            assert 0 <= s.confidence <= 1
            assert s.confidence >= threshold
        seen.append(keys)
    for lower, higher in zip(seen, seen[1:]):
        assert higher <= lower


def test_items_sorted_by_confidence():
    rows = netflix() + recurring("Spotify", -10.99, start="2025-06-05", count=3, every_days=30)
    report = detect_subscriptions(rows, min_confidence=0, today=TODAY)
    confs = [s.confidence for s in report.items]
    assert confs == sorted(confs, reverse=True)


def test_first_fit_grouping_by_merchant_and_amount():
    rows = [
        create_txn(merchant="Amazon", amount=-14.99),
        create_txn(merchant="Amazon", amount=-139.00),
        create_txn(merchant="Amazon", amount=-15.20),
    ]
    groups = group_transactions(rows)
    assert [len(g.transactions) for g in groups] == [2, 1]
    assert groups[0].amount == -14.99


def test_interval_helpers():
    rows = recurring("X", -1, start="2025-01-01", count=3, every_days=14)
    assert interval_days(rows) == [14, 14]
    assert classify_interval(14) == "bi-weekly"
    assert classify_interval(45) is None
    assert recency_boost(40) == 1.0
    assert recency_boost(41) == 0.5
    assert recency_boost(91) == 0.0


def test_threshold_applies_before_rounding():
    # 28- and 32-day gaps, drifting billing day, stale: confidence ~0.765, shown as 0.77
    rows = [
        create_txn(date_="2025-01-01", merchant="Gym", amount=-9.99),
        create_txn(date_="2025-01-29", merchant="Gym", amount=-9.99),
        create_txn(date_="2025-03-02", merchant="Gym", amount=-9.99),
    ]
    shown = detect_subscriptions(rows, min_confidence=0.76, today=date(2025, 9, 28)).items
    assert [s.confidence for s in shown] == [0.77]
    assert detect_subscriptions(rows, min_confidence=0.77, today=date(2025, 9, 28)).items == []
