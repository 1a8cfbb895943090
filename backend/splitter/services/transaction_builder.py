"""Build persisted transaction records.

Two paths produce a :class:`~splitter.models.schemas.TransactionRecord`:

* :func:`build_transaction` turns an allocation computed by
  :mod:`splitter.services.allocation` into a record, and
* :func:`normalize_transaction` fills in the derived fields of a record
  posted directly to ``POST /transactions``.

Both use the same meaning for the record level ``fees``: tax plus every
other fee on the receipt.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from splitter.models.schemas import (
    AllocationResult,
    LineItem,
    Participant,
    Receipt,
    TransactionCreate,
    TransactionItem,
    TransactionRecord,
    TransactionUser,
)
from splitter.services.allocation import Assignments, normalize_assignments
from splitter.utils.money import ZERO, money_sum, round_money

logger = logging.getLogger(__name__)


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def build_transaction(
    receipt: Receipt,
    participants: Sequence[Participant],
    items: Sequence[LineItem],
    assignments: Assignments,
    allocation: AllocationResult,
    name: str,
    date: Optional[str] = None,
) -> TransactionRecord:
    """Convert an allocation into the record shape that gets stored.

    Every participant gets an entry listing their share of each item
    assigned to them. The part of what they owe that is not covered by
    items (their tax and fee share) is recorded as ``fees`` when it is
    positive. Only participants who owe something are listed in
    ``userIds``.
    """
    shares = normalize_assignments(assignments, items, participants)
    users: List[TransactionUser] = []
    for participant in participants:
        own_items: List[TransactionItem] = []
        for index, item in enumerate(items):
            members = shares.get(index) or set()
            if participant.id in members:
                own_items.append(TransactionItem(name=item.name, price=item.price / len(members)))
        items_total = money_sum(i.price for i in own_items)
        owed = allocation.owed.get(participant.id, ZERO)
        fee_share = round_money(owed - items_total)
        users.append(
            TransactionUser(
                user_id=participant.id,
                name=participant.name,
                items=[TransactionItem(name=i.name, price=round_money(i.price)) for i in own_items],
                total=round_money(items_total),
                fees=fee_share if fee_share > ZERO else None,
                split_amount=round_money(owed),
            )
        )

    fees = receipt.tax + receipt.other_fees_total
    record = TransactionRecord(
        name=name,
        date=date or utc_now_iso(),
        merchant=receipt.merchant_name,
        users=users,
        user_ids=[p.id for p in participants if round_money(allocation.owed.get(p.id, ZERO)) > ZERO],
        fees=round_money(fees),
        subtotal=round_money(receipt.total - fees),
        total=round_money(receipt.total),
    )
    logger.info("[transaction] built %r for %d participant(s)", name, len(users))
    return record


def normalize_transaction(payload: TransactionCreate) -> TransactionRecord:
    """Fill in the derived fields of a posted transaction.

    A user's ``total`` defaults to the sum of their items and their
    ``splitAmount`` to that total. ``userIds`` defaults to every user,
    ``subtotal`` to the sum of user totals and ``total`` to subtotal
    plus fees. Values supplied by the client are kept as they are.
    """
    users: List[TransactionUser] = []
    for entry in payload.users:
        total = entry.total if entry.total is not None else money_sum(i.price for i in entry.items)
        users.append(
            TransactionUser(
                user_id=entry.user_id,
                name=entry.name,
                items=entry.items,
                total=total,
                fees=entry.fees,
                split_amount=entry.split_amount if entry.split_amount is not None else total,
            )
        )

    fees = payload.fees if payload.fees is not None else ZERO
    subtotal = payload.subtotal if payload.subtotal is not None else money_sum(u.total for u in users)
    total = payload.total if payload.total is not None else subtotal + fees
    user_ids = payload.user_ids if payload.user_ids is not None else _unique(u.user_id for u in users)

    return TransactionRecord(
        name=payload.name,
        date=payload.date,
        merchant=payload.merchant,
        users=users,
        user_ids=user_ids,
        fees=fees,
        subtotal=subtotal,
        total=total,
    )


def _unique(values: Iterable[str]) -> List[str]:
    seen: Dict[str, None] = {}
    for value in values:
        seen.setdefault(value, None)
    return list(seen)
