"""Retry/correction loop around the extraction provider.

Vision models are unreliable at arithmetic: they drop items, misread a
digit, or invent a surcharge field. :class:`ReceiptReconciler` runs a
small state machine over a fixed attempt budget::

    EXTRACTING -> VALIDATING -> ACCEPTED
                              \\-> CORRECTING -> VALIDATING -> ACCEPTED
                                                      \\-> next attempt
    budget exhausted -> BEST_EFFORT (or FAILED if nothing ever parsed)

Each attempt extracts once; if the validated receipt has discrepancies
and attempts remain, the provider is asked to correct its answer and
the correction is validated too. The candidate with the fewest
discrepancies seen so far is kept, whichever step produced it. Provider
errors, timeouts and unparseable answers only cost an attempt.

Attempts are strictly sequential; each retry uses the previous
feedback. Cancellation is cooperative: the event passed to
:meth:`ReceiptReconciler.reconcile` is checked before every provider
call, never in the middle of one.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from splitter.core.config import settings
from splitter.core.exceptions import ExtractionFailure, PayloadParseError, ReconciliationCancelled
from splitter.core.observability import sentry_breadcrumb
from splitter.models.enums import AttemptOutcome, ReconcileState
from splitter.models.schemas import Receipt
from splitter.services.extraction_service import ExtractionProvider
from splitter.services.receipt_validator import ValidationResult, receipt_to_payload, validate_receipt
from splitter.utils.helpers import parse_payload

logger = logging.getLogger(__name__)

BEST_EFFORT_WARNING = "Receipt calculations may be inaccurate. Please verify the amounts manually."


class ReceiptReconciler:
    """Turn a receipt image into the best receipt the provider can give us."""

    def __init__(
        self,
        provider: ExtractionProvider,
        max_attempts: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> None:
        self.provider = provider
        self.max_attempts = max_attempts or settings.EXTRACTION_MAX_ATTEMPTS
        self.timeout = timeout or settings.EXTRACTION_TIMEOUT_SECONDS
        self.state: ReconcileState = ReconcileState.EXTRACTING
        self.transitions: List[ReconcileState] = []

    def _enter(self, state: ReconcileState) -> None:
        self.state = state
        self.transitions.append(state)
        logger.debug("[reconcile:state] %s", state.value)

    @staticmethod
    def _check_cancelled(cancel_event: Optional[asyncio.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("[reconcile] cancelled by caller")
            raise ReconciliationCancelled("receipt scan cancelled")

    async def _call(
        self, call: Callable[[], Awaitable[str]], label: str
    ) -> Tuple[AttemptOutcome, Optional[Dict[str, Any]], Optional[str]]:
        """Run one provider call under the timeout and parse its answer."""
        try:
            text = await asyncio.wait_for(call(), timeout=self.timeout)
        except asyncio.TimeoutError:
            logger.warning("[reconcile:%s] provider timed out after %.1fs", label, self.timeout)
            return AttemptOutcome.TIMEOUT, None, f"timed out after {self.timeout}s"
        except Exception as exc:
            logger.warning("[reconcile:%s] provider failed: %s", label, exc)
            return AttemptOutcome.PROVIDER_ERROR, None, str(exc)
        try:
            payload = parse_payload(text)
        except PayloadParseError as exc:
            logger.warning("[reconcile:%s] %s", label, exc)
            return AttemptOutcome.UNPARSEABLE, None, str(exc)
        return AttemptOutcome.PARSED, payload, None

    async def reconcile(self, image_bytes: bytes, cancel_event: Optional[asyncio.Event] = None) -> Receipt:
        """Extract, validate and correct until the receipt adds up.

        :returns: the first receipt without discrepancies, or the best
            candidate with ``warning`` set once the budget is spent
        :raises ExtractionFailure: no attempt produced a parseable payload
        :raises ReconciliationCancelled: ``cancel_event`` was set
        """
        self.transitions = []
        best: Optional[ValidationResult] = None
        errors: List[str] = []

        def consider(result: ValidationResult, source: str) -> None:
            nonlocal best
            if best is None or len(result.discrepancies) < len(best.discrepancies):
                best = result
                logger.info("[reconcile] new best from %s with %d discrepancies", source, len(result.discrepancies))

        for attempt in range(1, self.max_attempts + 1):
            self._check_cancelled(cancel_event)
            self._enter(ReconcileState.EXTRACTING)
            logger.info("[reconcile:attempt] %d/%d", attempt, self.max_attempts)
            outcome, payload, error = await self._call(
                lambda: self.provider.extract(image_bytes, retry=attempt > 1), f"attempt-{attempt}"
            )
            if outcome is not AttemptOutcome.PARSED:
                errors.append(f"attempt {attempt}: {outcome.value}: {error}")
                continue

            self._enter(ReconcileState.VALIDATING)
            result = validate_receipt(payload)
            consider(result, f"attempt {attempt}")
            if not result.has_discrepancies:
                self._enter(ReconcileState.ACCEPTED)
                sentry_breadcrumb("reconcile", "receipt.accepted", data={"attempt": attempt})
                return result.receipt

            if attempt >= self.max_attempts:
                break

            self._check_cancelled(cancel_event)
            self._enter(ReconcileState.CORRECTING)
            prior = receipt_to_payload(result.receipt)
            messages = list(result.discrepancies)
            outcome, corrected, error = await self._call(
                lambda: self.provider.correct(prior, messages), f"correct-{attempt}"
            )
            if outcome is not AttemptOutcome.PARSED:
                errors.append(f"correction {attempt}: {outcome.value}: {error}")
                continue

            self._enter(ReconcileState.VALIDATING)
            corrected_result = validate_receipt(corrected)
            consider(corrected_result, f"correction {attempt}")
            if not corrected_result.has_discrepancies:
                self._enter(ReconcileState.ACCEPTED)
                sentry_breadcrumb("reconcile", "receipt.accepted", data={"attempt": attempt, "corrected": True})
                return corrected_result.receipt

        if best is None:
            self._enter(ReconcileState.FAILED)
            sentry_breadcrumb("reconcile", "receipt.failed", level="warning", data={"errors": errors})
            raise ExtractionFailure(
                f"Failed to parse receipt after {self.max_attempts} attempts",
                attempts=self.max_attempts,
                errors=errors,
            )

        self._enter(ReconcileState.BEST_EFFORT)
        logger.warning(
            "[reconcile] returning best attempt with %d discrepancies", len(best.discrepancies)
        )
        sentry_breadcrumb(
            "reconcile", "receipt.best_effort", level="warning", data={"discrepancies": len(best.discrepancies)}
        )
        return best.receipt.model_copy(update={"warning": BEST_EFFORT_WARNING})
