from __future__ import annotations

import sys
from decimal import Decimal
from pathlib import Path

import pytest

# Add backend folder to sys.path so `import splitter...` works in tests when running from backend root
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from splitter.models.schemas import LineItem, Participant, Receipt  # noqa: E402


@pytest.fixture
def alice() -> Participant:
    return Participant(id="alice@example.com", name="Alice", is_requester=True)


@pytest.fixture
def bob() -> Participant:
    return Participant(id="bob@example.com", name="Bob")


@pytest.fixture
def carol() -> Participant:
    return Participant(id="carol@example.com", name="Carol")


@pytest.fixture
def diner_receipt() -> Receipt:
    """Three items, tax and a tip that add up exactly."""
    return Receipt(
        merchant_name="Corner Diner",
        items=[
            LineItem(name="Burger", price=Decimal("12.00")),
            LineItem(name="Fries", price=Decimal("4.50")),
            LineItem(name="Shake", price=Decimal("5.50")),
        ],
        subtotal=Decimal("22.00"),
        tax=Decimal("1.80"),
        other_fees_total=Decimal("3.00"),
        total=Decimal("26.80"),
    )
