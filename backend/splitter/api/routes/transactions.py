"""API routes for saved transactions."""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from splitter.api.dependencies import get_db_session, get_transaction_repository
from splitter.models.schemas import (
    MonthlyTransaction,
    TransactionCount,
    TransactionCreate,
    TransactionCreated,
    TransactionRecord,
)
from splitter.services.transaction_builder import normalize_transaction
from splitter.services.transaction_repository import TransactionRepository

router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.post("", response_model=TransactionCreated, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    payload: TransactionCreate,
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> TransactionCreated:
    """Save a transaction, deriving any totals the client left out."""
    saved = await repo.create(db, normalize_transaction(payload))
    return TransactionCreated(id=saved.id, message="Transaction created successfully.")


@router.get("", response_model=List[TransactionRecord], response_model_exclude_none=True)
async def list_transactions(
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> List[TransactionRecord]:
    return await repo.list_all(db)


@router.get("/user/{user_id}", response_model=List[TransactionRecord], response_model_exclude_none=True)
async def list_user_transactions(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> List[TransactionRecord]:
    return await repo.list_for_user(db, user_id)


@router.get("/name/{name}", response_model=List[TransactionRecord], response_model_exclude_none=True)
async def list_transactions_by_name(
    name: str,
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> List[TransactionRecord]:
    return await repo.list_by_name(db, name)


@router.get("/userRange/{user_id}", response_model=List[TransactionRecord], response_model_exclude_none=True)
async def list_user_transactions_range(
    user_id: str,
    start_index: int = Query(0, alias="startIndex", ge=0),
    end_index: int = Query(10, alias="endIndex"),
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> List[TransactionRecord]:
    """A page of a user's transactions, newest first: ``[startIndex, endIndex)``."""
    limit = end_index - start_index
    if limit <= 0:
        raise HTTPException(status_code=400, detail="endIndex must be greater than startIndex")
    return await repo.list_for_user(db, user_id, offset=start_index, limit=limit)


@router.get("/monthly/{user_id}", response_model=List[MonthlyTransaction])
async def list_monthly_transactions(
    user_id: str,
    year: int = Query(..., ge=1),
    month: int = Query(..., ge=1, le=12),
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> List[MonthlyTransaction]:
    return await repo.list_monthly_for_user(db, user_id, year, month)


@router.get("/count/{user_id}", response_model=TransactionCount)
async def count_user_transactions(
    user_id: str,
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> TransactionCount:
    return TransactionCount(total_count=await repo.count_for_user(db, user_id))
