"""Exception types raised by the splitting core.

Only a handful of situations are errors. Arithmetic mismatches on an
extracted receipt are reported as discrepancy messages on the receipt
itself and malformed amounts coerce to zero, so neither has an
exception here. The API layer maps these classes to HTTP responses in
``splitter.api.error_handlers``.
"""

from __future__ import annotations

from typing import List, Optional


class SplitterError(Exception):
    """Base class for all errors raised by the splitter package."""


class ExtractionFailure(SplitterError):
    """No extraction attempt produced a parseable receipt payload."""

    def __init__(self, message: str, attempts: int = 0, errors: Optional[List[str]] = None) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.errors = list(errors or [])


class PayloadParseError(SplitterError, ValueError):
    """Provider output did not contain a JSON object."""


class ReconciliationCancelled(SplitterError):
    """The caller asked the reconciliation loop to stop between attempts."""


class InvalidSplitInput(SplitterError, ValueError):
    """Participants or items handed to the allocation engine are malformed."""


class InvalidAssignment(InvalidSplitInput):
    """An assignment references an unknown item index or participant id."""


class ImageRejected(SplitterError, ValueError):
    """An uploaded receipt image failed type or size checks."""

    def __init__(self, error: str, message: str) -> None:
        super().__init__(message)
        self.error = error
        self.message = message


__all__ = [
    "SplitterError",
    "ExtractionFailure",
    "PayloadParseError",
    "ReconciliationCancelled",
    "InvalidSplitInput",
    "InvalidAssignment",
    "ImageRejected",
]
