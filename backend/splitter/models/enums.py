"""Enumeration types used throughout the receipt splitting service.

Enumerations make it easier to constrain the values that flow through
the reconciliation loop and the API, and improve readability when
logging state transitions.
"""

from enum import Enum


class ReconcileState(str, Enum):
    """States of the receipt reconciliation loop."""

    EXTRACTING = "extracting"
    VALIDATING = "validating"
    CORRECTING = "correcting"
    ACCEPTED = "accepted"
    BEST_EFFORT = "best_effort"
    FAILED = "failed"


class AttemptOutcome(str, Enum):
    """Result of a single provider call inside the reconciliation loop."""

    PARSED = "parsed"
    PROVIDER_ERROR = "provider_error"
    TIMEOUT = "timeout"
    UNPARSEABLE = "unparseable"
