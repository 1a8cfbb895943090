from __future__ import annotations

from decimal import Decimal

import pytest

from splitter.services.receipt_validator import receipt_to_payload, validate_receipt


COFFEE_AND_BAGEL = [{"name": "Coffee", "price": 3.50}, {"name": "Bagel", "price": 2.25}]


def test_missing_subtotal_is_computed_and_consistent_receipt_has_no_discrepancies():
    result = validate_receipt({"merchantName": "Cafe", "items": COFFEE_AND_BAGEL, "tax": 0.50, "total": 6.25})
    assert result.receipt.subtotal == Decimal("5.75")
    assert result.discrepancies == []
    assert not result.has_discrepancies
    assert result.calculated_total == Decimal("6.25")


def test_total_mismatch_produces_one_discrepancy():
    result = validate_receipt({"items": COFFEE_AND_BAGEL, "total": 7.00})
    assert result.receipt.subtotal == Decimal("5.75")
    assert result.discrepancies == ["Calculated total (5.75) doesn't match receipt total (7.00)"]
    assert result.receipt.discrepancies == result.discrepancies


def test_subtotal_mismatch_is_reported_with_both_values():
    result = validate_receipt({"items": COFFEE_AND_BAGEL, "subtotal": 6.75, "total": 6.75})
    assert result.discrepancies == ["Calculated items total (5.75) doesn't match subtotal (6.75)"]


def test_differences_within_two_cents_are_tolerated():
    result = validate_receipt({"items": COFFEE_AND_BAGEL, "subtotal": 5.76, "total": 5.74})
    assert result.discrepancies == []


def test_stray_numeric_field_is_absorbed_as_fee():
    result = validate_receipt({"items": [{"name": "Pasta", "price": 20}], "tip": 5, "total": 25})
    receipt = result.receipt
    assert [(f.name, f.amount) for f in receipt.other_fees] == [("Tip", Decimal("5"))]
    assert receipt.other_fees_total == Decimal("5")
    assert "tip" not in receipt.model_dump(by_alias=True)
    assert result.discrepancies == []


def test_camel_case_surcharge_and_money_strings_are_absorbed():
    result = validate_receipt(
        {
            "items": [{"name": "Checkup", "price": "$100.00"}],
            "healthcareSurcharge": "$4.00",
            "phone": "555-1234",
            "table": "Table 4",
            "zero_fee": 0,
            "total": 104,
        }
    )
    assert [(f.name, f.amount) for f in result.receipt.other_fees] == [("Healthcare Surcharge", Decimal("4.00"))]
    assert result.discrepancies == []


def test_other_fees_mapping_is_converted_pairwise():
    result = validate_receipt(
        {
            "items": [{"name": "Pizza", "price": 18}],
            "otherFees": {"serviceCharge": 2, "delivery_fee": "3.50"},
            "total": 23.50,
        }
    )
    assert [(f.name, f.amount) for f in result.receipt.other_fees] == [
        ("Service Charge", Decimal("2")),
        ("Delivery Fee", Decimal("3.50")),
    ]
    assert result.receipt.other_fees_total == Decimal("5.50")
    assert result.discrepancies == []


def test_other_fees_list_entries_are_coerced():
    result = validate_receipt(
        {
            "items": [{"name": "Pizza", "price": 18}],
            "otherFees": [{"name": "Tip", "amount": "4,00"}, "junk"],
            "total": 22,
        }
    )
    assert [(f.name, f.amount) for f in result.receipt.other_fees] == [("Tip", Decimal("4.00"))]


@pytest.mark.parametrize("raw", [None, [], "receipt", 42])
def test_non_object_payload_becomes_empty_receipt(raw):
    result = validate_receipt(raw)
    receipt = result.receipt
    assert receipt.merchant_name == ""
    assert receipt.items == []
    assert receipt.total == Decimal("0")
    assert result.discrepancies == []


def test_malformed_prices_coerce_to_zero_and_bad_items_are_dropped():
    result = validate_receipt(
        {"items": [{"name": " Soup ", "price": "market price"}, "Bread", {"name": "Tea", "price": "2,50"}], "total": 2.5}
    )
    assert [(i.name, i.price) for i in result.receipt.items] == [("Soup", Decimal("0")), ("Tea", Decimal("2.50"))]
    assert result.discrepancies == []


def test_reserved_fields_are_never_fees():
    result = validate_receipt(
        {"items": [], "date": "2024", "time": 1230, "dateTime": 5, "subtotal": 0, "tax": 0, "total": 0}
    )
    assert result.receipt.other_fees == []


def test_validation_is_idempotent():
    first = validate_receipt(
        {
            "merchantName": "Diner",
            "items": [{"name": "Burger", "price": "12.00"}, {"name": "Fries", "price": 4.5}],
            "tax": 1.35,
            "serviceCharge": 2,
            "total": 20,
        }
    )
    second = validate_receipt(receipt_to_payload(first.receipt))
    assert second.receipt == first.receipt.model_copy(update={"discrepancies": second.discrepancies})
    assert second.discrepancies == first.discrepancies
    assert [(f.name, f.amount) for f in second.receipt.other_fees] == [("Service Charge", Decimal("2"))]


def test_receipt_serialises_money_as_rounded_numbers():
    result = validate_receipt({"items": [{"name": "Coffee", "price": 3.505}], "total": 3.51})
    body = result.receipt.model_dump(mode="json", by_alias=True)
    assert body["items"][0]["price"] == 3.51
    assert body["otherFeesTotal"] == 0.0
    assert "merchantName" in body


def test_sub_cent_prices_are_rounded_so_revalidation_is_stable():
    first = validate_receipt({"items": [{"name": f"Mint {n}", "price": 0.005} for n in range(10)], "total": 0.10})
    assert {i.price for i in first.receipt.items} == {Decimal("0.01")}
    assert first.receipt.subtotal == Decimal("0.10")
    assert first.discrepancies == []

    second = validate_receipt(receipt_to_payload(first.receipt))
    assert second.discrepancies == []
    assert second.receipt == first.receipt


def test_sub_cent_mismatch_is_reported_the_same_way_twice():
    first = validate_receipt({"items": [{"name": "Mint", "price": 0.005}] * 10, "total": 0.05})
    second = validate_receipt(receipt_to_payload(first.receipt))
    assert first.discrepancies == ["Calculated total (0.10) doesn't match receipt total (0.05)"]
    assert second.discrepancies == first.discrepancies
