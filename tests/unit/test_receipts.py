"""Unit tests for receipt building and plaintext rendering."""

import uuid
from datetime import datetime, timezone

import pytest
from services.laundry_service.models import Customer, Order
from services.laundry_service.services import breakdown as bd
from services.laundry_service.services.receipts import WIDTH, build_receipt, format_plaintext

from tests.factories import basket


def _order(amount_paid=None, **handling_extra):
    laundry = basket(1, subtotal=150, iron_weight_kg=1.5)
    laundry["services"].update(
        wash_pricing={"name": "Basic Wash", "base_price": 65},
        iron_pricing={"name": "Iron", "base_price": 50},
    )
    doc = bd.compute_summary(
        {
            "items": [
                {
                    "product_id": "p1",
                    "product_name": "Ariel Powder Detergent Family Size Pack",
                    "quantity": 2,
                    "unit_price": 25,
                }
            ],
            "baskets": [laundry],
            "fees": [{"type": "delivery_fee", "amount": 70}],
        }
    )
    handling = {"payment_method": "cash", **handling_extra}
    if amount_paid is not None:
        handling["amount_paid"] = amount_paid
    return Order(
        id=uuid.UUID("abcdef12-0000-0000-0000-000000000000"),
        total_amount=doc["summary"]["total"],
        breakdown=doc,
        handling=handling,
        created_at=datetime(2026, 3, 14, 9, 30, tzinfo=timezone.utc),
    )


def _customer():
    return Customer(first_name="Maria", last_name="Santos", phone_number="09170000000")


@pytest.mark.unit
def test_build_receipt_computes_change():
    receipt = build_receipt(_order(amount_paid=300), _customer())

    assert receipt["total"] == 270
    assert receipt["change"] == 30
    assert receipt["customer_name"] == "Maria Santos"
    assert receipt["order_id"] == "abcdef12-0000-0000-0000-000000000000"
    assert receipt["timestamp"].startswith("2026-03-14T09:30")


@pytest.mark.unit
def test_change_never_negative_and_absent_without_payment():
    assert build_receipt(_order(amount_paid=100), _customer())["change"] == 0
    assert build_receipt(_order(), _customer())["change"] is None


@pytest.mark.unit
def test_plaintext_fits_printer_width():
    text = format_plaintext(build_receipt(_order(amount_paid=300), _customer()))
    lines = text.splitlines()

    assert all(len(line) <= WIDTH for line in lines)
    assert "KATFLIX LAUNDRY" in lines[1]
    assert any(line.startswith("Order ID:") and line.endswith("ABCDEF12") for line in lines)
    assert any(line.startswith("TOTAL:") and line.endswith("₱270.00") for line in lines)
    assert any(line.startswith("Change:") and line.endswith("₱30.00") for line in lines)
    assert any("Iron (1.5kg)" in line and line.endswith("₱75.00") for line in lines)
    assert any(line.startswith("Delivery Fee:") for line in lines)


@pytest.mark.unit
def test_plaintext_omits_empty_sections():
    order = _order()
    order.breakdown = {**order.breakdown, "items": []}
    text = format_plaintext(build_receipt(order, _customer()))

    assert "PRODUCTS" not in text
    assert "LAUNDRY SERVICES" in text
    assert "Change:" not in text
