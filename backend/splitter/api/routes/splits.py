"""API routes for computing and saving splits.

The client sends the scanned receipt, the participants and the item
assignment; the server does the arithmetic so every client gets the
same numbers.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from splitter.api.dependencies import get_db_session, get_transaction_repository
from splitter.models.schemas import SplitPreview, SplitRequest, TransactionCreated
from splitter.services.split_session import SplitSession
from splitter.services.transaction_repository import TransactionRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/splits", tags=["splits"])

DEFAULT_SPLIT_NAME = "Untitled split"


def _preview(request: SplitRequest) -> SplitPreview:
    session = SplitSession.from_participants(request.receipt, request.participants, request.assignments)
    transaction = session.build_transaction(request.name or DEFAULT_SPLIT_NAME, date=request.date)
    return SplitPreview(allocation=session.allocation(), transaction=transaction)


@router.post("/preview", response_model=SplitPreview, response_model_exclude_none=True)
async def preview_split(request: SplitRequest) -> SplitPreview:
    """Compute what everyone owes without saving anything."""
    return _preview(request)


@router.post("", response_model=TransactionCreated, status_code=status.HTTP_201_CREATED)
async def save_split(
    request: SplitRequest,
    db: AsyncSession = Depends(get_db_session),
    repo: TransactionRepository = Depends(get_transaction_repository),
) -> TransactionCreated:
    """Compute the split and store it as a transaction."""
    if not (request.name or "").strip():
        raise HTTPException(status_code=400, detail="A split needs a name before it can be saved")
    preview = _preview(request)
    saved = await repo.create(db, preview.transaction)
    logger.info("[splits] saved %s (%d participants)", saved.id, len(request.participants))
    return TransactionCreated(id=saved.id, message="Transaction created successfully.")
