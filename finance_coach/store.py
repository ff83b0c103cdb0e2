"""Transaction sources consumed by the HTTP layer and the CLI.

Both stores are read-only and return transactions sorted by date ascending.
"""

from __future__ import annotations

import csv
import datetime as dt
import logging
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from finance_coach.models import Transaction
from finance_coach.orm_models import Transaction as TransactionRow
from finance_coach.utils.txns import sort_by_date

log = logging.getLogger(__name__)


class TransactionStore(Protocol):
    def all(self) -> List[Transaction]: ...

    def between(self, start: dt.date, end: dt.date) -> List[Transaction]:
        """Transactions with ``start <= date < end``."""
        ...


class InMemoryTransactionStore:
    def __init__(self, transactions: Iterable[Transaction] = ()):
        self._rows = sort_by_date(transactions)

    def all(self) -> List[Transaction]:
        return list(self._rows)

    def between(self, start: dt.date, end: dt.date) -> List[Transaction]:
        return [t for t in self._rows if start <= t.date < end]


class SqlTransactionStore:
    """Reads the ``transactions`` table through a session factory."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def _query(self, stmt) -> List[Transaction]:
        db = self._session_factory()
        try:
            rows = db.execute(stmt.order_by(TransactionRow.date, TransactionRow.id)).scalars().all()
            return [r.to_record() for r in rows]
        finally:
            db.close()

    def all(self) -> List[Transaction]:
        return self._query(select(TransactionRow))

    def between(self, start: dt.date, end: dt.date) -> List[Transaction]:
        return self._query(
            select(TransactionRow).where(TransactionRow.date >= start, TransactionRow.date < end)
        )


def _parse_date(s: str | None) -> dt.date | None:
    if not s:
        return None
    s = s.strip()
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        pass
    for fmt in ("%m/%d/%Y", "%m/%d/%y", "%Y/%m/%d"):
        try:
            return dt.datetime.strptime(s[:10], fmt).date()
        except ValueError:
            continue
    return None


def load_csv(path: str | Path) -> List[Transaction]:
    """Read ``id,date,amount,merchant,category,description`` rows.

    Rows with an unparseable date or amount are skipped and counted in the log.
    A missing ``id`` column falls back to the row number.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"CSV file not found: {path}")

    out: List[Transaction] = []
    skipped = 0
    with path.open(newline="", encoding="utf-8") as fh:
        for i, r in enumerate(csv.DictReader(fh), start=1):
            date_obj = _parse_date(r.get("date") or r.get("Date"))
            amt_raw = (r.get("amount") or r.get("Amount") or "").replace(",", "").strip()
            try:
                amount = float(amt_raw)
            except ValueError:
                amount = None
            if date_obj is None or amount is None:
                skipped += 1
                continue
            description: Optional[str] = (r.get("description") or "").strip() or None
            out.append(
                Transaction(
                    id=(r.get("id") or "").strip() or str(i),
                    date=date_obj,
                    amount=amount,
                    merchant=(r.get("merchant") or "").strip(),
                    category=(r.get("category") or "").strip() or "Uncategorized",
                    description=description,
                )
            )
    log.info("csv.load path=%s rows=%s skipped=%s", path, len(out), skipped)
    return sort_by_date(out)
