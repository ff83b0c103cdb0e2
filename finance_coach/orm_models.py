from __future__ import annotations

import datetime as dt

from sqlalchemy import Date, Float, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .db import Base
from .models import Transaction as TransactionRecord


class Transaction(Base):
    __tablename__ = "transactions"
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    date: Mapped[dt.date] = mapped_column(Date, index=True)
    amount: Mapped[float] = mapped_column(Float)
    merchant: Mapped[str] = mapped_column(String(256), index=True)
    category: Mapped[str] = mapped_column(String(128), index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    def to_record(self) -> TransactionRecord:
        return TransactionRecord(
            id=self.id,
            date=self.date,
            amount=float(self.amount),
            merchant=self.merchant or "",
            category=self.category or "Uncategorized",
            description=self.description,
        )

    @classmethod
    def from_record(cls, t: TransactionRecord) -> "Transaction":
        return cls(
            id=t.id,
            date=t.date,
            amount=t.amount,
            merchant=t.merchant,
            category=t.category,
            description=t.description,
        )
