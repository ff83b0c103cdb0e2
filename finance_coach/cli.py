import sys, json, argparse, datetime as dt

from finance_coach.config import settings
from finance_coach.errors import FinanceCoachError
from finance_coach.logging import configure_plain_logging
from finance_coach.services.goals import GoalsRequest, process_goals_request
from finance_coach.services.insights import build_context, generate_insights
from finance_coach.services.rollups import month_rollup
from finance_coach.services.subscriptions import detect_subscriptions, gray_subscriptions
from finance_coach.store import load_csv
from finance_coach.utils.dates import parse_iso_date


def _load(args):
    if args.csv:
        return load_csv(args.csv)
    from finance_coach.db import SessionLocal, init_db
    from finance_coach.store import SqlTransactionStore

    init_db()
    return SqlTransactionStore(SessionLocal).all()


def _today(args) -> dt.date:
    return parse_iso_date(args.today) if args.today else dt.date.today()


def _emit(payload) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def cmd_subscriptions(args):
    report = detect_subscriptions(_load(args), min_confidence=args.min_confidence, today=_today(args))
    _emit(report.to_dict())


def cmd_insights(args):
    ctx = build_context(args.month, _load(args), today=_today(args))
    result = generate_insights(ctx, limit=args.limit, extras=args.extras)
    _emit(
        {
            "month": args.month,
            "insights": [i.to_dict(include_evidence=args.debug) for i in result.insights],
            "generated": result.generated,
        }
    )


def cmd_goals(args):
    txns = _load(args)
    today = _today(args)
    req = GoalsRequest(
        target_amount=args.target,
        months=args.months,
        by=args.by,
        extras="debug" if args.debug else None,
    )
    gray = gray_subscriptions(detect_subscriptions(txns, today=today))
    _emit(process_goals_request(req, txns, gray_subscriptions=gray, today=today).to_dict())


def cmd_rollup(args):
    _emit(month_rollup(args.month, _load(args)))


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="finance_coach.cli")
    p.add_argument("--csv", help="Read transactions from CSV instead of the database")
    p.add_argument("--today", help="Reference date YYYY-MM-DD (default: system date)")
    sub = p.add_subparsers(dest="cmd")

    s = sub.add_parser("subscriptions", help="Detect recurring charges")
    s.add_argument("--min-confidence", type=float, default=settings.SUBSCRIPTIONS_MIN_CONFIDENCE)
    s.set_defaults(fn=cmd_subscriptions)

    i = sub.add_parser("insights", help="Ranked insights for a month")
    i.add_argument("--month", required=True, help="YYYY-MM")
    i.add_argument("--limit", type=int, default=settings.INSIGHTS_DEFAULT_LIMIT)
    i.add_argument("--extras", choices=["core", "all"], default="core")
    i.add_argument("--debug", action="store_true", help="Include rule evidence")
    i.set_defaults(fn=cmd_insights)

    g = sub.add_parser("goals", help="Savings goal forecast and cut plan")
    g.add_argument("--target", type=float, required=True)
    when = g.add_mutually_exclusive_group(required=True)
    when.add_argument("--months", type=int)
    when.add_argument("--by", help="Target date YYYY-MM-DD")
    g.add_argument("--debug", action="store_true")
    g.set_defaults(fn=cmd_goals)

    r = sub.add_parser("rollup", help="Month items, category rollups and KPIs")
    r.add_argument("--month", help="YYYY-MM (default: latest month with data)")
    r.set_defaults(fn=cmd_rollup)
    return p


def main(argv=None) -> int:
    configure_plain_logging(settings.LOG_LEVEL)
    p = build_parser()
    args = p.parse_args(argv)
    if not getattr(args, "cmd", None):
        p.print_help()
        return 1
    try:
        args.fn(args)
    except FinanceCoachError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
