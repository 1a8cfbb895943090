"""SQLAlchemy ORM models for the receipt splitter.

A saved split is stored as one ``transactions`` row. The per-user
breakdown is kept as a JSON document in ``users`` exactly as it is
returned by the API, while ``transaction_members`` holds one row per
entry of ``userIds``; "every transaction involving this user" is a
lookup on that table.

Rows are written once and never updated. Call the ``init_db`` helper
during startup to create the tables.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import Column, DateTime, ForeignKey, Integer, JSON, Numeric, String
from sqlalchemy.orm import relationship

from splitter.core.database import Base


class Transaction(Base):
    """A saved split."""

    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    # ISO-8601 string; monthly queries compare it lexicographically
    date = Column(String, nullable=False, index=True)
    merchant = Column(String, nullable=False, default="")
    users = Column(JSON, nullable=False, default=list)
    fees = Column(Numeric(12, 2), nullable=False, default=0)
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False, default=0)
    created_at = Column(DateTime, default=dt.datetime.utcnow, nullable=False, index=True)

    # Relationships
    members = relationship(
        "TransactionMember",
        back_populates="transaction",
        cascade="all, delete-orphan",
        order_by="TransactionMember.position",
        lazy="selectin",
    )

    @property
    def user_ids(self) -> list[str]:
        return [m.user_id for m in self.members]


class TransactionMember(Base):
    """One entry of a transaction's ``userIds``."""

    __tablename__ = "transaction_members"

    id = Column(Integer, primary_key=True, index=True)
    transaction_id = Column(Integer, ForeignKey("transactions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String, nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    transaction = relationship("Transaction", back_populates="members")
