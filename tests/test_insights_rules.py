from datetime import date

from finance_coach.services.insights import (
    build_context,
    cash_drips,
    category_spike,
    coffee_savings,
    discretionary_cuts,
    duplicate_charges,
    fee_detector,
    find_duplicate_groups,
    merchant_shift,
    no_spend_streak,
    pace_projection,
    rising_subscriptions,
    weekend_rideshare,
)
from tests.factories.txns import create_txn

MONTH = "2025-09"
PAST = date(2025, 10, 15)


def ctx_for(rows, today=PAST, month=MONTH):
    return build_context(month, rows, today=today)


def test_build_context_day_of_month():
    rows = [create_txn(date_="2025-09-03", amount=-10)]
    assert ctx_for(rows, today=date(2025, 9, 12)).day_of_month == 12
    assert ctx_for(rows, today=PAST).day_of_month == 30
    assert ctx_for(rows, today=date(2025, 8, 20)).day_of_month == 0
    ctx = ctx_for(rows)
    assert ctx.days_in_month == 30
    assert ctx.total_expenses == 10


def test_build_context_slices_months():
    rows = [
        create_txn(date_="2025-08-15", amount=-5),
        create_txn(date_="2025-09-15", amount=-7, category="Restaurants"),
        create_txn(date_="2025-09-20", amount=2000, category="Income"),
        create_txn(date_="2025-10-01", amount=-9),
    ]
    ctx = ctx_for(rows)
    assert len(ctx.prev_transactions) == 1
    assert len(ctx.current_transactions) == 2
    assert ctx.total_expenses == 7
    assert ctx.discretionary_expenses == 7


def test_coffee_savings():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-5.50, merchant="Starbucks", category="Coffee")
        for d in (2, 4, 8, 10, 15, 22)
    ]
    ins = coffee_savings(ctx_for(rows))
    assert ins.id == "coffee-savings"
    assert ins.impact.monthly == 15
    assert ins.impact.annual == 180
    assert ins.confidence == 0.8


def test_coffee_confidence_tiers():
    one = [create_txn(date_="2025-09-02", amount=-5, merchant="Dunkin", category="Coffee")]
    assert coffee_savings(ctx_for(one)).confidence == 0.4
    three = one * 3
    assert coffee_savings(ctx_for(three)).confidence == 0.6
    assert coffee_savings(ctx_for([])) is None


def test_merchant_shift_redacts_name():
    rows = [
        create_txn(date_="2025-08-10", amount=-20, merchant="Chipotle", category="Restaurants"),
        create_txn(date_="2025-09-10", amount=-80, merchant="Chipotle", category="Restaurants"),
    ]
    ins = merchant_shift(ctx_for(rows))
    assert ins.title == "Spending spike at restaurant"
    assert "Chipotle" not in ins.detail
    assert ins.impact.monthly == 60
    assert ins.confidence == 0.6


def test_merchant_shift_none_without_increase():
    rows = [
        create_txn(date_="2025-08-10", amount=-80, merchant="Chipotle"),
        create_txn(date_="2025-09-10", amount=-20, merchant="Chipotle"),
    ]
    assert merchant_shift(ctx_for(rows)) is None


def test_weekend_rideshare():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-20, merchant="Uber", category="Rideshare")
        for d in (6, 7, 13, 14)  # Sat/Sun twice
    ] + [create_txn(date_="2025-09-10", amount=-15, merchant="Lyft", category="Rideshare")]
    ins = weekend_rideshare(ctx_for(rows))
    assert ins.id == "weekend-rideshare"
    assert ins.impact.monthly == 10
    assert ins.confidence == 0.5


def test_weekend_rideshare_quiet_when_weekdays_dominate():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-20, merchant="Uber", category="Rideshare")
        for d in (1, 2, 3, 4, 5, 8, 9, 10)
    ]
    assert weekend_rideshare(ctx_for(rows)) is None


def test_category_spike_month_over_month():
    rows = [
        create_txn(date_="2025-08-05", amount=-100, category="Entertainment"),
        create_txn(date_="2025-09-05", amount=-250, category="Entertainment"),
    ]
    ins = category_spike(ctx_for(rows))
    assert ins.title == "Spike in Entertainment this month"
    assert ins.impact.monthly == 150
    assert ins.evidence["method"] == "mom"


def test_category_spike_iqr_path():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-30, category="Groceries") for d in (1, 8, 15, 22)
    ]
    ins = category_spike(ctx_for(rows))
    assert ins.evidence["method"] == "iqr"
    assert ins.confidence == 0.8


def test_pace_projection():
    rows = [
        create_txn(date_="2025-08-12", amount=-200, category="Restaurants"),
        create_txn(date_="2025-09-03", amount=-100, category="Restaurants"),
    ]
    ins = pace_projection(ctx_for(rows, today=date(2025, 9, 10)))
    # 100 / 10 days * 30 = 300 projected vs 200 last month
    assert ins.impact.monthly == 100
    assert round(ins.confidence, 3) == 0.667


def test_pace_projection_needs_five_days():
    rows = [create_txn(date_="2025-09-02", amount=-100, category="Restaurants")]
    assert pace_projection(ctx_for(rows, today=date(2025, 9, 4))) is None


def test_discretionary_cuts():
    rows = [
        create_txn(date_="2025-09-03", amount=-300, category="Restaurants"),
        create_txn(date_="2025-09-04", amount=-200, category="Groceries"),
    ]
    ins = discretionary_cuts(ctx_for(rows))
    assert ins.detail.startswith("60% of your spending is discretionary")
    assert ins.impact.monthly == 36  # 12% of 300
    assert ins.confidence == 0.6
    assert ins.evidence["actionList"] == {"Restaurants": 12.0}


def test_discretionary_cuts_income_only_month():
    rows = [create_txn(date_="2025-09-01", amount=4000, merchant="Employer", category="Income")]
    assert discretionary_cuts(ctx_for(rows)) is None


def test_no_spend_streak():
    rows = [
        create_txn(date_="2025-09-02", amount=-20, category="Restaurants"),
        create_txn(date_="2025-09-09", amount=-10, category="Coffee"),
        create_txn(date_="2025-09-09", amount=-30, category="Entertainment"),
    ]
    ins = no_spend_streak(ctx_for(rows))
    assert ins.evidence["noSpendDays"] == 28
    assert ins.impact.monthly == 80  # median 20 * 4
    assert ins.confidence == 0.8


def test_fee_detector_matches_description():
    rows = [
        create_txn(date_="2025-09-02", amount=-35, merchant="Chase", category="Bank", description="Overdraft fee"),
        create_txn(date_="2025-09-03", amount=-3, merchant="ATM Fee", category="Bank"),
    ]
    ins = fee_detector(ctx_for(rows))
    assert ins.impact.monthly == 38
    assert ins.evidence["feeCount"] == 2
    assert ins.confidence == 0.5


def test_duplicate_chipotle_same_day():
    rows = [
        create_txn(date_="2025-09-12", amount=-45, merchant="Chipotle", category="Restaurants"),
        create_txn(date_="2025-09-12", amount=-45, merchant="Chipotle", category="Restaurants"),
    ]
    assert len(find_duplicate_groups(rows)) == 1
    ins = duplicate_charges(ctx_for(rows))
    assert ins.evidence["duplicateGroups"] == 1
    assert ins.impact.monthly == 90
    assert ins.confidence == 0.5


def test_duplicates_need_same_day():
    rows = [
        create_txn(date_="2025-09-12", amount=-45, merchant="Chipotle"),
        create_txn(date_="2025-09-13", amount=-45, merchant="Chipotle"),
    ]
    assert duplicate_charges(ctx_for(rows)) is None


def test_rising_subscriptions():
    rows = [
        create_txn(date_="2025-08-05", amount=-10, merchant="Netflix", category="Subscriptions"),
        create_txn(date_="2025-09-05", amount=-10, merchant="Netflix", category="Subscriptions"),
        create_txn(date_="2025-09-07", amount=-15, merchant="Hulu", category="Subscriptions"),
    ]
    ins = rising_subscriptions(ctx_for(rows))
    assert ins.id == "new-subscriptions"
    assert ins.impact.monthly == 15
    assert ins.confidence == 0.4


def test_cash_drips():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-4, merchant="Local Coffee", category="Coffee")
        for d in range(1, 9)
    ]
    ins = cash_drips(ctx_for(rows))
    assert ins.evidence["suggestedReduction"] == 2
    assert ins.impact.monthly == 8
    assert 0.4 <= ins.confidence <= 0.7


def test_cash_drips_needs_eight():
    rows = [
        create_txn(date_=f"2025-09-{d:02d}", amount=-4, category="Coffee") for d in range(1, 8)
    ]
    assert cash_drips(ctx_for(rows)) is None
