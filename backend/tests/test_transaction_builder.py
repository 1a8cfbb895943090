from __future__ import annotations

from decimal import Decimal

from splitter.models.schemas import LineItem, Receipt, TransactionCreate
from splitter.services.allocation import allocate
from splitter.services.transaction_builder import build_transaction, normalize_transaction


def test_record_from_allocation(alice, bob, carol, diner_receipt):
    participants = [alice, bob, carol]
    assignments = {0: [alice.id], 1: [alice.id, bob.id], 2: [bob.id]}
    allocation = allocate(diner_receipt, participants, assignments)
    record = build_transaction(
        diner_receipt, participants, diner_receipt.items, assignments, allocation, "Diner night", "2024-05-01T19:00:00"
    )

    assert record.merchant == "Corner Diner"
    assert record.fees == Decimal("4.80")
    assert record.subtotal == Decimal("22.00")
    assert record.total == Decimal("26.80")
    assert record.user_ids == [alice.id, bob.id]

    alice_entry, bob_entry, carol_entry = record.users
    assert [(i.name, i.price) for i in alice_entry.items] == [("Burger", Decimal("12.00")), ("Fries", Decimal("2.25"))]
    assert alice_entry.total == Decimal("14.25")
    # tax 0.90 + fees 1.50
    assert alice_entry.fees == Decimal("2.40")
    assert alice_entry.split_amount == Decimal("16.65")
    assert bob_entry.split_amount == Decimal("10.15")
    assert carol_entry.items == []
    assert carol_entry.fees is None
    assert carol_entry.split_amount == Decimal("0")


def test_record_amounts_are_rounded_to_cents(alice, bob, carol):
    receipt = Receipt(items=[LineItem(name="Cake", price=Decimal("10.00"))], subtotal=Decimal("10"), total=Decimal("10"))
    participants = [alice, bob, carol]
    assignments = {0: [alice.id, bob.id, carol.id]}
    record = build_transaction(receipt, participants, receipt.items, assignments, allocate(receipt, participants, assignments), "Cake")
    assert [u.split_amount for u in record.users] == [Decimal("3.33")] * 3
    assert all(u.fees is None for u in record.users)
    body = record.model_dump(mode="json", by_alias=True, exclude_none=True)
    assert body["users"][0]["splitAmount"] == 3.33
    assert "fees" not in body["users"][0]
    assert body["date"]


def test_posted_transaction_gets_derived_fields():
    payload = TransactionCreate.model_validate(
        {
            "name": "Groceries",
            "date": "2024-02-10",
            "users": [
                {"userId": "a@example.com", "name": "A", "items": [{"name": "Milk", "price": 2.5}, {"name": "Eggs", "price": 3}]},
                {"userId": "b@example.com", "name": "B", "items": [{"name": "Bread", "price": 4}], "splitAmount": 4.5},
            ],
            "fees": 1,
        }
    )
    record = normalize_transaction(payload)
    assert record.date == "2024-02-10T00:00:00"
    assert [u.total for u in record.users] == [Decimal("5.5"), Decimal("4")]
    assert [u.split_amount for u in record.users] == [Decimal("5.5"), Decimal("4.5")]
    assert record.user_ids == ["a@example.com", "b@example.com"]
    assert record.subtotal == Decimal("9.5")
    assert record.total == Decimal("10.5")


def test_posted_values_are_kept_when_present():
    payload = TransactionCreate.model_validate(
        {
            "name": "Rent",
            "date": "2024-02-01T00:00:00Z",
            "users": [{"userId": "a@example.com", "items": [], "total": 500}],
            "userIds": ["a@example.com", "landlord@example.com"],
            "subtotal": 1000,
            "total": 1000,
        }
    )
    record = normalize_transaction(payload)
    assert record.user_ids == ["a@example.com", "landlord@example.com"]
    assert record.total == Decimal("1000")
    assert record.users[0].total == Decimal("500")
    assert record.fees == Decimal("0")
