import datetime as dt

from fastapi import Request

from finance_coach.store import TransactionStore


def get_store(request: Request) -> TransactionStore:
    return request.app.state.store


def get_today() -> dt.date:
    """Reference date for recency and timeline math; overridden in tests."""
    return dt.date.today()
