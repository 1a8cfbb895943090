"""Bill allocation engine.

Given a receipt, the participants of a split and which participants
share each item, compute what every participant owes. Tax and other
fees are split equally between the *active* participants: everyone
sharing at least one item, plus the requester, who always pays a share
even without items. Item prices are split equally between the
participants assigned to the item. Unassigned items are billed to
nobody.

When every item is assigned, the owed amounts add up to items + tax +
other fees (the receipt total), not just items + tax.

All arithmetic is ``Decimal`` and nothing is rounded here; rounding to
cents happens when the result is serialised or turned into a record.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set

from splitter.core.exceptions import InvalidAssignment, InvalidSplitInput
from splitter.models.schemas import AllocationResult, LineItem, Participant, Receipt
from splitter.utils.money import ZERO, money_sum

logger = logging.getLogger(__name__)

Assignments = Mapping[int, Iterable[str]]


def get_requester(participants: Sequence[Participant]) -> Participant:
    """Return the single requester, checking that ids are unique.

    :raises InvalidSplitInput: duplicate ids, or not exactly one requester
    """
    seen: Set[str] = set()
    for participant in participants:
        if participant.id in seen:
            raise InvalidSplitInput(f"Duplicate participant id: {participant.id}")
        seen.add(participant.id)
    requesters = [p for p in participants if p.is_requester]
    if len(requesters) != 1:
        raise InvalidSplitInput(f"Expected exactly one requester, got {len(requesters)}")
    return requesters[0]


def normalize_assignments(
    assignments: Assignments, items: Sequence[LineItem], participants: Sequence[Participant]
) -> Dict[int, Set[str]]:
    """Validate ``assignments`` and return it as ``index -> set of ids``.

    :raises InvalidAssignment: an index outside ``items`` or an id that
        is not one of ``participants``
    """
    known = {p.id for p in participants}
    normalized: Dict[int, Set[str]] = {}
    for index, ids in assignments.items():
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(items):
            raise InvalidAssignment(f"Item index {index!r} is out of range (0-{len(items) - 1})")
        members = set(ids)
        unknown = sorted(members - known)
        if unknown:
            raise InvalidAssignment(f"Unknown participant id(s) for item {index}: {', '.join(unknown)}")
        normalized[index] = members
    return normalized


def allocate(
    receipt: Receipt,
    participants: Sequence[Participant],
    assignments: Assignments,
    items: Optional[Sequence[LineItem]] = None,
) -> AllocationResult:
    """Compute the owed amount of every participant.

    ``items`` defaults to ``receipt.items``; a split session passes its
    own list when the receipt had no items and a placeholder stands in.
    """
    items = list(receipt.items if items is None else items)
    requester = get_requester(participants)
    shares = normalize_assignments(assignments, items, participants)

    active: Set[str] = {requester.id}
    for members in shares.values():
        active.update(members)
    count = max(len(active), 1)

    tax_per_person = receipt.tax / count
    fee_per_person = receipt.other_fees_total / count

    owed: Dict[str, Decimal] = {}
    for participant in participants:
        owed[participant.id] = tax_per_person + fee_per_person if participant.id in active else ZERO

    for index, members in sorted(shares.items()):
        if not members:
            continue
        share = items[index].price / len(members)
        for participant_id in members:
            owed[participant_id] += share

    unassigned: List[int] = [i for i in range(len(items)) if not shares.get(i)]
    if unassigned:
        logger.debug("[allocation] %d item(s) unassigned: %s", len(unassigned), unassigned)

    return AllocationResult(
        owed=owed,
        tax_per_person=tax_per_person,
        fee_per_person=fee_per_person,
        active_participant_count=len(active),
        total=money_sum(owed.values()),
    )
