from decimal import Decimal

import pytest

from splitter.utils.money import (
    MONEY_TOLERANCE,
    coerce_money,
    is_money_like,
    money_close,
    money_fmt,
    round_money,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (3.5, Decimal("3.5")),
        (2, Decimal("2")),
        ("$4.99", Decimal("4.99")),
        ("4,99", Decimal("4.99")),
        ("1,234.50", Decimal("1234.50")),
        ("1.234,50", Decimal("1234.50")),
        ("12.50 USD", Decimal("12.50")),
        (".75", Decimal("0.75")),
    ],
)
def test_coerce_money_parses_numbers_and_strings(value, expected):
    assert coerce_money(value) == expected


@pytest.mark.parametrize("value", [None, True, "", "free", -3, "abc", {"a": 1}, float("nan")])
def test_coerce_money_degrades_to_zero(value):
    assert coerce_money(value) == Decimal("0")


def test_is_money_like_rejects_phone_numbers_and_words():
    assert is_money_like(5)
    assert is_money_like("$5.00")
    assert is_money_like("1,234.50 EUR")
    assert not is_money_like("555-1234")
    assert not is_money_like("Table 4")
    assert not is_money_like(True)


def test_round_money_is_half_up():
    assert round_money(Decimal("2.345")) == Decimal("2.35")
    assert round_money(Decimal("2.344")) == Decimal("2.34")
    assert money_fmt(Decimal("5")) == "5.00"


def test_money_close_uses_shared_tolerance():
    assert MONEY_TOLERANCE == Decimal("0.02")
    assert money_close(Decimal("10.00"), Decimal("10.02"))
    assert not money_close(Decimal("10.00"), Decimal("10.03"))
