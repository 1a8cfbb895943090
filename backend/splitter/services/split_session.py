"""Interactive state of one split.

A :class:`SplitSession` holds everything needed while a requester
assigns receipt items to people: the receipt, the participants (the
requester first, then the invited friends) and the item assignment,
which is the only mutable part. The allocation is recomputed from that
state whenever it is asked for.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from splitter.core.exceptions import InvalidAssignment
from splitter.models.schemas import AllocationResult, LineItem, Participant, Receipt, TransactionRecord
from splitter.services.allocation import allocate, get_requester
from splitter.services.transaction_builder import build_transaction
from splitter.utils.money import ZERO

logger = logging.getLogger(__name__)

PLACEHOLDER_ITEM_NAME = "Total Amount"
UNASSIGNED_LABEL = "Unassigned"

Friend = Union[str, Participant, Mapping[str, str]]


def _as_friend(friend: Friend) -> Participant:
    """Accept an email, a ``{"email", "name"}`` mapping or a Participant."""
    if isinstance(friend, Participant):
        return friend.model_copy(update={"is_requester": False})
    if isinstance(friend, str):
        return Participant(id=friend, name=friend, is_requester=False)
    email = friend.get("email") or friend.get("id")
    if not email:
        raise InvalidAssignment("Friend entries need an email address")
    return Participant(id=email, name=friend.get("name") or email, is_requester=False)


def placeholder_price(receipt: Receipt) -> Decimal:
    """Price of the stand-in item for a receipt without items.

    Tax and other fees are shared by the allocation on top of item
    prices, so the placeholder only carries the rest of the total.
    """
    return max(receipt.total - receipt.tax - receipt.other_fees_total, ZERO)


class SplitSession:
    """Item assignment for one receipt and a fixed set of participants."""

    def __init__(self, receipt: Receipt, requester: Participant, friends: Iterable[Friend] = ()) -> None:
        self.receipt = receipt
        self.requester = requester.model_copy(update={"is_requester": True})
        self.participants: List[Participant] = [self.requester] + [_as_friend(f) for f in friends]
        # Fails on duplicate ids before any assignment is made
        get_requester(self.participants)
        if receipt.items:
            self.items: List[LineItem] = list(receipt.items)
        else:
            self.items = [LineItem(name=PLACEHOLDER_ITEM_NAME, price=placeholder_price(receipt))]
        self._assignments: Dict[int, Set[str]] = {i: set() for i in range(len(self.items))}
        self._by_id: Dict[str, Participant] = {p.id: p for p in self.participants}

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.items):
            raise InvalidAssignment(f"Item index {index} is out of range (0-{len(self.items) - 1})")

    def _check_ids(self, ids: Iterable[str]) -> Set[str]:
        members = set(ids)
        unknown = sorted(members - self._by_id.keys())
        if unknown:
            raise InvalidAssignment(f"Unknown participant id(s): {', '.join(unknown)}")
        return members

    @property
    def assignments(self) -> Dict[int, Set[str]]:
        """Copy of the current assignment, ``item index -> participant ids``."""
        return {index: set(ids) for index, ids in self._assignments.items()}

    def toggle(self, index: int, participant_id: str) -> bool:
        """Add or remove one participant from an item.

        Returns True when the participant is assigned afterwards.
        """
        self._check_index(index)
        self._check_ids([participant_id])
        members = self._assignments[index]
        if participant_id in members:
            members.discard(participant_id)
            return False
        members.add(participant_id)
        return True

    def assign(self, index: int, participant_ids: Iterable[str]) -> None:
        """Replace the assignees of an item."""
        self._check_index(index)
        self._assignments[index] = self._check_ids(participant_ids)

    def clear(self, index: int) -> None:
        self._check_index(index)
        self._assignments[index] = set()

    def unassigned_items(self) -> List[int]:
        return [index for index, ids in self._assignments.items() if not ids]

    def assignee_names(self, index: int) -> str:
        """Comma separated names of an item's assignees, in participant order."""
        self._check_index(index)
        members = self._assignments[index]
        names = [p.name for p in self.participants if p.id in members]
        return ", ".join(names) if names else UNASSIGNED_LABEL

    def allocation(self) -> AllocationResult:
        return allocate(self.receipt, self.participants, self._assignments, items=self.items)

    def build_transaction(self, name: str, date: Optional[str] = None) -> TransactionRecord:
        """Allocate the current assignment and turn it into a record."""
        unassigned = self.unassigned_items()
        if unassigned:
            logger.info("[split] saving %r with %d unassigned item(s)", name, len(unassigned))
        return build_transaction(
            self.receipt,
            self.participants,
            self.items,
            self._assignments,
            self.allocation(),
            name,
            date=date,
        )

    @classmethod
    def from_participants(
        cls, receipt: Receipt, participants: Sequence[Participant], assignments: Optional[Mapping[int, Iterable[str]]] = None
    ) -> "SplitSession":
        """Rebuild a session from a participant list (one requester) and an assignment."""
        requester = get_requester(participants)
        session = cls(receipt, requester, [p for p in participants if p.id != requester.id])
        for index, ids in (assignments or {}).items():
            session.assign(index, ids)
        return session
