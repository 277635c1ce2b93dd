from __future__ import annotations

import enum

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, func

from forecast_engine.db.base import Base


class TransactionType(str, enum.Enum):
    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class Transaction(Base):
    """
    A single financial record. The forecasting core only ever reads these
    aggregated into daily totals.
    """

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    txn_date = Column(Date, nullable=False)
    amount = Column(Numeric(18, 2), nullable=False)
    category = Column(String(128), nullable=True)
    type = Column(String(16), nullable=False, default=TransactionType.EXPENSE.value)
    description = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_transactions_user_date", "user_id", "txn_date"),
    )
