"""Normalisation and arithmetic checks for extracted receipt payloads.

Vision models return receipts in whatever shape they like: prices as
strings with currency symbols, ad-hoc top level fields such as
``healthcareSurcharge``, fees as a mapping instead of a list, missing
subtotals. :func:`validate_receipt` turns any JSON value into a
well-typed :class:`~splitter.models.schemas.Receipt` and reports the
arithmetic mismatches it finds instead of raising:

* the item prices must add up to the subtotal, and
* subtotal + tax + other fees must add up to the total,

both within :data:`~splitter.utils.money.MONEY_TOLERANCE`. Every extracted
amount is rounded to cents before the sums are taken.

A canonical receipt dumped back to JSON validates to itself with no
new discrepancies, which is what lets the reconciler feed corrected
payloads through the same function.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Mapping

from splitter.models.schemas import LineItem, OtherFee, Receipt
from splitter.utils.helpers import title_case_field
from splitter.utils.money import (
    MONEY_TOLERANCE,
    ZERO,
    coerce_money,
    is_money_like,
    money_close,
    money_fmt,
    money_sum,
    round_money,
)

logger = logging.getLogger(__name__)

# Keys that are never treated as surcharges. The last three are the
# canonical receipt's own derived fields.
RESERVED_FIELDS = frozenset({
    "merchantName",
    "items",
    "subtotal",
    "tax",
    "total",
    "date",
    "time",
    "dateTime",
    "otherFees",
    "otherFeesTotal",
    "discrepancies",
    "warning",
})


@dataclass
class ValidationResult:
    """Outcome of validating one payload."""

    receipt: Receipt
    discrepancies: List[str] = field(default_factory=list)
    calculated_items_total: Decimal = ZERO
    calculated_total: Decimal = ZERO

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.discrepancies)


def _cents(value: Any, field: str) -> Decimal:
    return round_money(coerce_money(value, field=field))


def _parse_items(raw_items: Any) -> List[LineItem]:
    if not isinstance(raw_items, list):
        if raw_items is not None:
            logger.info("[validator] items is %s, not a list; using no items", type(raw_items).__name__)
        return []
    items: List[LineItem] = []
    for entry in raw_items:
        if not isinstance(entry, Mapping):
            logger.info("[validator] dropping non-object item %r", entry)
            continue
        name = entry.get("name")
        items.append(
            LineItem(
                name=str(name).strip() if name is not None else "",
                price=_cents(entry.get("price"), "item price"),
            )
        )
    return items


def _parse_other_fees(raw_fees: Any) -> List[OtherFee]:
    """Accept ``otherFees`` as a list of ``{name, amount}`` or a mapping."""
    fees: List[OtherFee] = []
    if isinstance(raw_fees, Mapping):
        for key, value in raw_fees.items():
            fees.append(OtherFee(name=title_case_field(str(key)), amount=_cents(value, "fee")))
    elif isinstance(raw_fees, list):
        for entry in raw_fees:
            if not isinstance(entry, Mapping):
                logger.info("[validator] dropping non-object fee %r", entry)
                continue
            name = entry.get("name")
            fees.append(
                OtherFee(
                    name=str(name).strip() if name is not None else "Fee",
                    amount=_cents(entry.get("amount"), "fee"),
                )
            )
    elif raw_fees is not None:
        logger.info("[validator] otherFees is %s; ignoring", type(raw_fees).__name__)
    return fees


def _absorb_stray_fees(payload: Mapping[str, Any]) -> List[OtherFee]:
    """Collect unknown numeric top level fields as named fees."""
    absorbed: List[OtherFee] = []
    for key, value in payload.items():
        if key in RESERVED_FIELDS or not is_money_like(value):
            continue
        amount = _cents(value, key)
        if amount > ZERO:
            absorbed.append(OtherFee(name=title_case_field(key), amount=amount))
    return absorbed


def validate_receipt(raw: Any, tolerance: Decimal = MONEY_TOLERANCE) -> ValidationResult:
    """Validate a raw extracted payload into a canonical receipt.

    Missing fields degrade to safe defaults (empty merchant, no items,
    zero amounts) so this never raises on bad data. The returned
    receipt carries the discrepancy messages as well.
    """
    payload: Dict[str, Any] = dict(raw) if isinstance(raw, Mapping) else {}
    if not isinstance(raw, Mapping):
        logger.warning("[validator] payload is %s, not an object; using empty receipt", type(raw).__name__)

    merchant = payload.get("merchantName")
    if merchant is None or isinstance(merchant, (dict, list)):
        if merchant is None:
            logger.info("[validator] missing merchantName")
        merchant = ""

    items = _parse_items(payload.get("items"))
    other_fees = _parse_other_fees(payload.get("otherFees")) + _absorb_stray_fees(payload)

    tax = _cents(payload.get("tax"), "tax")
    total = _cents(payload.get("total"), "total")
    if "total" not in payload:
        logger.info("[validator] missing total; defaulting to 0")

    items_total = money_sum(item.price for item in items)
    other_fees_total = money_sum(fee.amount for fee in other_fees)

    subtotal = _cents(payload.get("subtotal"), "subtotal")
    if subtotal == ZERO:
        subtotal = items_total
        logger.debug("[validator] subtotal missing; using items total %s", money_fmt(items_total))

    discrepancies: List[str] = []
    if not money_close(items_total, subtotal, tolerance):
        discrepancies.append(
            f"Calculated items total ({money_fmt(items_total)}) doesn't match subtotal ({money_fmt(subtotal)})"
        )

    expected_total = subtotal + tax + other_fees_total
    if not money_close(expected_total, total, tolerance):
        discrepancies.append(
            f"Calculated total ({money_fmt(expected_total)}) doesn't match receipt total ({money_fmt(total)})"
        )

    for message in discrepancies:
        logger.warning("[validator] %s", message)

    receipt = Receipt(
        merchant_name=str(merchant).strip(),
        items=items,
        subtotal=subtotal,
        tax=tax,
        other_fees=other_fees,
        other_fees_total=other_fees_total,
        total=total,
        discrepancies=discrepancies,
    )
    return ValidationResult(
        receipt=receipt,
        discrepancies=discrepancies,
        calculated_items_total=items_total,
        calculated_total=expected_total,
    )


def receipt_to_payload(receipt: Receipt) -> Dict[str, Any]:
    """Dump a receipt in the wire shape the validator accepts.

    Used to show the provider its previous answer during correction.
    """
    return receipt.model_dump(mode="json", by_alias=True, exclude={"discrepancies", "warning"})
