"""Health check endpoint for monitoring."""

from typing import Any, Dict

from fastapi import APIRouter

from splitter.core.config import settings

router = APIRouter(tags=["health"])


@router.api_route("/health", methods=["GET", "HEAD"])
async def health_check() -> Dict[str, Any]:
    """Health check endpoint (supports GET & HEAD)."""
    return {"status": "healthy", "environment": settings.ENVIRONMENT}
