"""Entry point for the FastAPI application.

This module constructs the FastAPI app, includes all routers and sets
up startup and shutdown events. When run with uvicorn it initialises
the database and loads configuration from ``splitter.core.config``::

    uvicorn splitter.api.main:app --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exception_handlers import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from splitter.api.error_handlers import (
    generic_exception_handler,
    splitter_exception_handler,
    validation_exception_handler,
)
from splitter.api.routes.health import router as health_router
from splitter.api.routes.receipts import router as receipts_router
from splitter.api.routes.splits import router as splits_router
from splitter.api.routes.transactions import router as transactions_router
from splitter.core.config import settings
from splitter.core.database import init_db
from splitter.core.exceptions import SplitterError
from splitter.core.observability import init_sentry

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle."""
    # Startup
    logger.info("Starting up...")
    # Centralised Sentry init (idempotent)
    if init_sentry("api"):
        logger.info("Sentry SDK initialized (api)")
    await init_db()
    yield
    # Shutdown
    logger.info("Shutting down...")


# Create FastAPI app
app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    lifespan=lifespan,
)

# In development allow every origin; otherwise only the configured ones
env_is_dev = (settings.ENVIRONMENT or "development").lower() == "development"
allow_origins = ["*"] if env_is_dev else list(settings.BACKEND_CORS_ORIGINS or [])

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register custom exception handlers
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(SplitterError, splitter_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)

# Include routers
app.include_router(health_router)
app.include_router(receipts_router)
app.include_router(transactions_router)
app.include_router(splits_router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {"message": f"Welcome to the {settings.PROJECT_NAME} API"}
