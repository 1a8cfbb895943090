from __future__ import annotations

from decimal import Decimal

import pytest

from splitter.core.exceptions import InvalidAssignment, InvalidSplitInput
from splitter.models.schemas import LineItem, Participant, Receipt
from splitter.services.allocation import allocate
from splitter.utils.money import MONEY_TOLERANCE, money_close


def _receipt(items, tax="0", fees="0", total=None) -> Receipt:
    line_items = [LineItem(name=name, price=Decimal(price)) for name, price in items]
    subtotal = sum((i.price for i in line_items), Decimal("0"))
    return Receipt(
        items=line_items,
        subtotal=subtotal,
        tax=Decimal(tax),
        other_fees_total=Decimal(fees),
        total=Decimal(total) if total is not None else subtotal + Decimal(tax) + Decimal(fees),
    )


def test_shared_item_splits_evenly_with_tax(alice, bob):
    receipt = _receipt([("Pizza", "10.00")], tax="2.00")
    result = allocate(receipt, [alice, bob], {0: {alice.id, bob.id}})
    assert result.tax_per_person == Decimal("1.00")
    assert result.owed == {alice.id: Decimal("6.00"), bob.id: Decimal("6.00")}
    assert result.total == Decimal("12.00")
    assert result.active_participant_count == 2


def test_requester_pays_tax_share_without_items(alice, bob, carol):
    receipt = _receipt([("Steak", "9.00")], tax="3.00")
    result = allocate(receipt, [alice, bob, carol], {0: [carol.id]})
    assert result.active_participant_count == 2
    assert result.tax_per_person == Decimal("1.50")
    assert result.owed[alice.id] == Decimal("1.50")
    assert result.owed[carol.id] == Decimal("10.50")
    assert result.owed[bob.id] == Decimal("0")


def test_other_fees_are_split_like_tax(alice, bob):
    receipt = _receipt([("Wine", "30.00")], tax="3.00", fees="6.00")
    result = allocate(receipt, [alice, bob], {0: [alice.id, bob.id]})
    assert result.fee_per_person == Decimal("3.00")
    assert result.owed[alice.id] == Decimal("19.50")
    assert result.total == Decimal("39.00")


def test_unassigned_items_are_billed_to_nobody(alice, bob):
    receipt = _receipt([("Soup", "6.00"), ("Salad", "8.00")], tax="1.00")
    result = allocate(receipt, [alice, bob], {0: [bob.id], 1: []})
    assert result.owed[alice.id] == Decimal("0.50")
    assert result.owed[bob.id] == Decimal("6.50")
    assert result.total == Decimal("7.00")


def test_conservation_when_everything_is_assigned(alice, bob, carol, diner_receipt):
    participants = [alice, bob, carol]
    assignments = {0: [alice.id], 1: [alice.id, bob.id, carol.id], 2: [bob.id, carol.id]}
    result = allocate(diner_receipt, participants, assignments)
    expected = diner_receipt.subtotal + diner_receipt.tax + diner_receipt.other_fees_total
    assert money_close(result.total, expected, MONEY_TOLERANCE)
    assert money_close(sum(result.owed.values()), diner_receipt.total, MONEY_TOLERANCE)


def test_fully_assigned_split_owes_tax_and_other_fees(alice, bob):
    receipt = _receipt([("Steak", "40.00"), ("Wine", "20.00")], tax="6.00", fees="9.00")
    result = allocate(receipt, [alice, bob], {0: [alice.id], 1: [alice.id, bob.id]})
    items_and_tax = Decimal("66.00")
    assert result.total == items_and_tax + Decimal("9.00")
    assert result.total == receipt.total
    assert result.owed[bob.id] == Decimal("10.00") + Decimal("3.00") + Decimal("4.50")


def test_three_way_split_reconstructs_price(alice, bob, carol):
    receipt = _receipt([("Cake", "10.00")])
    result = allocate(receipt, [alice, bob, carol], {0: [alice.id, bob.id, carol.id]})
    shares = list(result.owed.values())
    assert len(set(shares)) == 1
    assert money_close(sum(shares), Decimal("10.00"))


def test_requester_floor_holds_for_any_assignment(alice, bob, carol, diner_receipt):
    for assignments in ({}, {0: [bob.id]}, {1: [carol.id], 2: [bob.id, carol.id]}):
        result = allocate(diner_receipt, [alice, bob, carol], assignments)
        assert result.owed[alice.id] > 0


def test_explicit_item_list_overrides_receipt_items(alice, bob):
    receipt = Receipt(total=Decimal("40.00"))
    placeholder = [LineItem(name="Total Amount", price=Decimal("40.00"))]
    result = allocate(receipt, [alice, bob], {0: [alice.id, bob.id]}, items=placeholder)
    assert result.owed == {alice.id: Decimal("20.00"), bob.id: Decimal("20.00")}


def test_unknown_participant_id_is_rejected(alice, bob):
    receipt = _receipt([("Tea", "3.00")])
    with pytest.raises(InvalidAssignment, match="mallory"):
        allocate(receipt, [alice, bob], {0: [alice.id, "mallory@example.com"]})


@pytest.mark.parametrize("index", [-1, 1, 7])
def test_out_of_range_item_index_is_rejected(alice, index):
    receipt = _receipt([("Tea", "3.00")])
    with pytest.raises(InvalidAssignment):
        allocate(receipt, [alice], {index: [alice.id]})


def test_exactly_one_requester_is_required(alice, bob):
    receipt = _receipt([("Tea", "3.00")])
    with pytest.raises(InvalidSplitInput):
        allocate(receipt, [bob], {})
    second_requester = Participant(id="zed@example.com", name="Zed", is_requester=True)
    with pytest.raises(InvalidSplitInput):
        allocate(receipt, [alice, second_requester], {})


def test_duplicate_participant_ids_are_rejected(alice, bob):
    receipt = _receipt([("Tea", "3.00")])
    duplicate = Participant(id=bob.id, name="Bobby")
    with pytest.raises(InvalidSplitInput, match="Duplicate"):
        allocate(receipt, [alice, bob, duplicate], {})
