"""Common dependencies for FastAPI routes.

Routes never build services themselves; they depend on the functions
below so that tests can swap in fakes through
``app.dependency_overrides``.
"""

from __future__ import annotations

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession

from splitter.core.database import get_db
from splitter.services.extraction_service import ExtractionService
from splitter.services.reconciler import ReceiptReconciler
from splitter.services.transaction_repository import TransactionRepository, transaction_repository


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Alias for `get_db` to be imported in routers."""
    async for session in get_db():
        yield session


def get_reconciler() -> ReceiptReconciler:
    """A fresh reconciler per request, backed by the OpenAI provider."""
    return ReceiptReconciler(ExtractionService())


def get_transaction_repository() -> TransactionRepository:
    return transaction_repository
