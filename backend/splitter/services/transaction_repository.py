"""Persistence of transaction records.

Records are append-only: the repository can create and query them but
never updates or deletes. Every query returns
:class:`~splitter.models.schemas.TransactionRecord` values so callers
never see ORM rows.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from splitter.models.schemas import MonthlyTransaction, TransactionRecord
from splitter.models.tables import Transaction, TransactionMember

logger = logging.getLogger(__name__)


def month_bounds(year: int, month: int) -> Tuple[str, str]:
    """Return the ``[start, end)`` ISO date strings of a calendar month."""
    if not 1 <= month <= 12:
        raise ValueError("month must be between 1 and 12")
    start = f"{year:04d}-{month:02d}-01"
    if month == 12:
        end = f"{year + 1:04d}-01-01"
    else:
        end = f"{year:04d}-{month + 1:02d}-01"
    return start, end


def _involves(user_id: str):
    """Filter: the transaction lists ``user_id`` in its ``userIds``."""
    members = select(TransactionMember.transaction_id).where(TransactionMember.user_id == user_id)
    return Transaction.id.in_(members)


def to_record(row: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=str(row.id),
        name=row.name,
        date=row.date,
        merchant=row.merchant or "",
        users=row.users or [],
        user_ids=row.user_ids,
        fees=row.fees,
        subtotal=row.subtotal,
        total=row.total,
        created_at=row.created_at,
    )


class TransactionRepository:
    async def create(self, db: AsyncSession, record: TransactionRecord) -> TransactionRecord:
        """Persist a new transaction and return it with ``id`` and ``createdAt``."""
        row = Transaction(
            name=record.name,
            date=record.date,
            merchant=record.merchant,
            users=[u.model_dump(mode="json", by_alias=True, exclude_none=True) for u in record.users],
            fees=record.fees,
            subtotal=record.subtotal,
            total=record.total,
            members=[TransactionMember(user_id=uid, position=i) for i, uid in enumerate(record.user_ids)],
        )
        db.add(row)
        await db.commit()
        await db.refresh(row, attribute_names=["id", "created_at"])
        logger.info("[transactions] created id=%s name=%r users=%d", row.id, record.name, len(record.user_ids))
        return record.model_copy(update={"id": str(row.id), "created_at": row.created_at})

    async def get(self, db: AsyncSession, transaction_id: int) -> Optional[TransactionRecord]:
        row = await db.get(Transaction, transaction_id)
        return to_record(row) if row is not None else None

    async def list_all(self, db: AsyncSession) -> List[TransactionRecord]:
        """All transactions, newest first."""
        stmt = select(Transaction).order_by(Transaction.created_at.desc(), Transaction.id.desc())
        result = await db.execute(stmt)
        return [to_record(row) for row in result.scalars().all()]

    async def list_by_name(self, db: AsyncSession, name: str) -> List[TransactionRecord]:
        stmt = (
            select(Transaction)
            .where(Transaction.name == name)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        )
        result = await db.execute(stmt)
        return [to_record(row) for row in result.scalars().all()]

    async def list_for_user(
        self, db: AsyncSession, user_id: str, offset: int = 0, limit: Optional[int] = None
    ) -> List[TransactionRecord]:
        """Transactions whose ``userIds`` contain ``user_id``, newest first."""
        stmt = (
            select(Transaction)
            .where(_involves(user_id))
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .offset(max(offset, 0))
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await db.execute(stmt)
        return [to_record(row) for row in result.scalars().all()]

    async def list_monthly_for_user(
        self, db: AsyncSession, user_id: str, year: int, month: int
    ) -> List[MonthlyTransaction]:
        """Summaries of a user's transactions dated within one month, oldest first.

        ``id`` in the result is a running number starting at 1, not the
        stored id.
        """
        start, end = month_bounds(year, month)
        stmt = (
            select(Transaction)
            .where(
                _involves(user_id),
                Transaction.date >= start,
                Transaction.date < end,
            )
            .order_by(Transaction.date.asc(), Transaction.id.asc())
        )
        result = await db.execute(stmt)
        return [
            MonthlyTransaction(id=i, name=row.name, amount=row.total, date=row.date)
            for i, row in enumerate(result.scalars().all(), start=1)
        ]

    async def count_for_user(self, db: AsyncSession, user_id: str) -> int:
        stmt = select(func.count(func.distinct(TransactionMember.transaction_id))).where(
            TransactionMember.user_id == user_id
        )
        result = await db.execute(stmt)
        return int(result.scalar_one())


# Export a singleton instance for easy import
transaction_repository = TransactionRepository()
