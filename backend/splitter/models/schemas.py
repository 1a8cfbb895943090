"""Pydantic schemas for the domain and for request/response bodies.

Pydantic models are used for validating and serialising data that
crosses the boundary of the API. They provide type hints and
validation rules that ensure only well-formed data enters the
splitting logic. This module defines the domain schemas (``Receipt``,
``Participant``, ``AllocationResult``) as well as the transaction
record shape stored by ``splitter.services.transaction_repository``.

All models serialise with camelCase aliases (``merchantName``,
``splitAmount`` ...) because that is the shape the mobile client and
the document store use, and accept either the alias or the field name
on input. Money fields hold ``Decimal`` values and are written to JSON
as numbers rounded to cents.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from pydantic.alias_generators import to_camel

from splitter.utils.money import ZERO, round_money


def _money_to_json(value: Decimal) -> float:
    return float(round_money(value))


Money = Annotated[Decimal, PlainSerializer(_money_to_json, return_type=float, when_used="json")]
NonNegativeMoney = Annotated[
    Decimal,
    Field(ge=0),
    PlainSerializer(_money_to_json, return_type=float, when_used="json"),
]


class SplitterModel(BaseModel):
    """Base model with camelCase wire aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Domain schemas


class LineItem(SplitterModel):
    """One purchased product or service on a receipt."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    price: NonNegativeMoney = ZERO


class OtherFee(SplitterModel):
    """Named surcharge distinct from tax (tip, service charge ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    amount: NonNegativeMoney = ZERO


class Receipt(SplitterModel):
    """Canonical receipt produced by validation.

    ``discrepancies`` lists the arithmetic mismatches found while
    validating. ``warning`` is only set when reconciliation gave up
    and returned its best candidate.
    """

    merchant_name: str = ""
    items: List[LineItem] = Field(default_factory=list)
    subtotal: NonNegativeMoney = ZERO
    tax: NonNegativeMoney = ZERO
    other_fees: List[OtherFee] = Field(default_factory=list)
    other_fees_total: NonNegativeMoney = ZERO
    total: NonNegativeMoney = ZERO
    discrepancies: List[str] = Field(default_factory=list)
    warning: Optional[str] = None


class Participant(SplitterModel):
    """A person taking part in a split."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    id: str = Field(min_length=1, description="Unique participant id, usually the email address")
    name: str
    is_requester: bool = False

    @field_validator("id", "name", mode="before")
    def sanitize_fields(cls, v):
        from splitter.utils.helpers import sanitize_string
        return sanitize_string(v) if v is not None else v


class AllocationResult(SplitterModel):
    """Per-participant owed amounts for one split."""

    owed: Dict[str, Money]
    tax_per_person: Money
    fee_per_person: Money = ZERO
    active_participant_count: int
    total: Money


# ---------------------------------------------------------------------------
# Transaction record (persisted shape)


class TransactionItem(SplitterModel):
    name: str
    price: Money


class TransactionUser(SplitterModel):
    user_id: str
    name: str
    items: List[TransactionItem] = Field(default_factory=list)
    total: Money
    fees: Optional[Money] = None
    split_amount: Money


class TransactionRecord(SplitterModel):
    """A saved split. Records are never modified after creation."""

    id: Optional[str] = None
    name: str
    date: str
    merchant: str = ""
    users: List[TransactionUser]
    user_ids: List[str]
    fees: Money = ZERO
    subtotal: Money = ZERO
    total: Money = ZERO
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# API request/response schemas


def _normalise_date(value: str) -> str:
    from splitter.utils.helpers import parse_iso_datetime

    parsed = parse_iso_datetime(value.strip() if isinstance(value, str) else value)
    if parsed is None:
        raise ValueError("date must be an ISO-8601 date or datetime")
    return parsed.isoformat()


class TransactionUserCreate(SplitterModel):
    user_id: str = Field(min_length=1)
    name: str = ""
    items: List[TransactionItem]
    total: Optional[Money] = None
    fees: Optional[Money] = None
    split_amount: Optional[Money] = None

    @field_validator("name", mode="before")
    def sanitize_name(cls, v):
        from splitter.utils.helpers import sanitize_string
        return sanitize_string(v) if v is not None else v


class TransactionCreate(SplitterModel):
    """Body of ``POST /transactions``; derived fields may be omitted."""

    name: str = Field(min_length=1)
    date: str
    merchant: str = ""
    users: List[TransactionUserCreate]
    user_ids: Optional[List[str]] = None
    fees: Optional[Money] = None
    subtotal: Optional[Money] = None
    total: Optional[Money] = None

    @field_validator("name", "merchant", mode="before")
    def sanitize_fields(cls, v):
        from splitter.utils.helpers import sanitize_string
        return sanitize_string(v) if v is not None else v

    @field_validator("date")
    def normalise_date(cls, v):
        return _normalise_date(v)


class TransactionCreated(SplitterModel):
    id: str
    message: str


class MonthlyTransaction(SplitterModel):
    id: int
    name: str
    amount: Money
    date: str


class TransactionCount(SplitterModel):
    total_count: int


class SplitRequest(SplitterModel):
    """Body of the ``/splits`` endpoints.

    ``assignments`` maps an item index (JSON object keys are strings,
    pydantic converts them) to the ids of the participants sharing it.
    """

    receipt: Receipt
    participants: List[Participant] = Field(min_length=1)
    assignments: Dict[int, List[str]] = Field(default_factory=dict)
    name: Optional[str] = None
    date: Optional[str] = None

    @field_validator("date")
    def normalise_date(cls, v):
        return _normalise_date(v) if v is not None else v


class SplitPreview(SplitterModel):
    allocation: AllocationResult
    transaction: TransactionRecord
