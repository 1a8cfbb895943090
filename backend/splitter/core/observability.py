"""Observability helpers (Sentry init & breadcrumbs).

Centralises Sentry initialisation so configuration does not drift.
Every helper is a no-op when no DSN is configured, which is the case
in development and in the test suite.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from splitter.core.config import settings

_initialised = False


def _before_send(event: Dict[str, Any], hint: Optional[Dict[str, Any]] = None):
    """Scrub request bodies (receipt images, emails) before sending to Sentry."""
    req = event.get("request") or {}
    headers = req.get("headers") or {}
    for k in list(headers.keys()):
        if k.lower() in ("authorization", "cookie", "set-cookie"):
            headers.pop(k, None)
    req.pop("data", None)
    if req:
        event["request"] = req
    return event


def init_sentry(service: str) -> bool:
    """Initialise Sentry once for a given process.

    Returns True if Sentry was initialised; False otherwise.
    """
    global _initialised
    if not settings.SENTRY_DSN:
        return False
    if _initialised:
        return True
    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        integrations=[FastApiIntegration(), SqlalchemyIntegration()],
        traces_sample_rate=float(settings.SENTRY_TRACES_SAMPLE_RATE or 0),
        environment=settings.ENVIRONMENT,
        release=settings.SENTRY_RELEASE,
        before_send=_before_send,
    )
    sentry_sdk.set_tag("service", service)
    _initialised = True
    return True


def sentry_breadcrumb(category: str, message: str, level: str = "info", data: Optional[Dict[str, Any]] = None) -> None:
    """Add a breadcrumb for important lifecycle steps."""
    if not settings.SENTRY_DSN:
        return
    sentry_sdk.add_breadcrumb(category=category, message=message, level=level, data=data or {})


def sentry_capture(exc: BaseException) -> None:
    """Report an unexpected exception when Sentry is configured."""
    if not settings.SENTRY_DSN:
        return
    sentry_sdk.capture_exception(exc)


__all__ = ["init_sentry", "sentry_breadcrumb", "sentry_capture"]
