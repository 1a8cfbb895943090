"""API route for scanning receipt images."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from splitter.api.dependencies import get_reconciler
from splitter.core.observability import sentry_breadcrumb
from splitter.models.schemas import Receipt
from splitter.services.reconciler import ReceiptReconciler
from splitter.utils.image_processing import validate_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["receipts"])


@router.post("/scan-receipt", response_model=Receipt, response_model_exclude_none=True)
async def scan_receipt(
    receipt: UploadFile = File(...),
    reconciler: ReceiptReconciler = Depends(get_reconciler),
) -> Receipt:
    """Extract a receipt from an uploaded photo.

    The result may carry ``discrepancies`` and a ``warning`` when the
    numbers on the receipt could not be made to add up.
    """
    contents = await receipt.read()
    mime = validate_image_upload(contents, receipt.content_type)
    logger.info("[scan] %s upload of %d bytes (%s)", receipt.filename, len(contents), mime)
    sentry_breadcrumb("scan", "scan_receipt.start", data={"bytes": len(contents), "mime": mime})
    result = await reconciler.reconcile(contents)
    logger.info(
        "[scan] merchant=%r items=%d discrepancies=%d",
        result.merchant_name,
        len(result.items),
        len(result.discrepancies),
    )
    return result
