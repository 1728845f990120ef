"""Integration tests for the inventory ledger endpoints."""

import uuid

import pytest

from tests.factories import ProductFactory


async def _product(db, **overrides):
    product = ProductFactory.create(**overrides)
    db.add(product)
    await db.commit()
    return product


@pytest.mark.asyncio
@pytest.mark.integration
async def test_restock_then_damage(client, db_session, cashier, as_user):
    """POST /inventory/transactions: each entry moves the projection and snapshots it."""
    product = await _product(db_session, quantity=4)

    with as_user(cashier):
        restock = await client.post(
            "/inventory/transactions",
            json={
                "product_id": str(product.id),
                "quantity_change": 20,
                "transaction_type": "restock",
                "notes": "Supplier delivery",
            },
        )
        damage = await client.post(
            "/inventory/transactions",
            json={
                "product_id": str(product.id),
                "quantity_change": -3,
                "transaction_type": "damage",
            },
        )

    assert restock.status_code == 201, restock.text
    assert restock.json()["quantity"] == 24
    txn = restock.json()["transaction"]
    assert txn["quantity_before"] == 4
    assert txn["quantity_after"] == 24
    assert txn["staff_id"] == str(cashier.id)
    assert damage.json()["quantity"] == 21

    await db_session.refresh(product)
    assert product.quantity == 21


@pytest.mark.asyncio
@pytest.mark.integration
async def test_transaction_below_zero_is_refused(client, db_session, cashier, as_user):
    product = await _product(db_session, quantity=2)

    with as_user(cashier):
        response = await client.post(
            "/inventory/transactions",
            json={"product_id": str(product.id), "quantity_change": -5},
        )

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "Cannot reduce quantity below 0. Current: 2, Change: -5",
    }


@pytest.mark.asyncio
@pytest.mark.integration
async def test_zero_change_is_a_validation_error(client, db_session, cashier, as_user):
    product = await _product(db_session)
    with as_user(cashier):
        response = await client.post(
            "/inventory/transactions",
            json={"product_id": str(product.id), "quantity_change": 0},
        )
    assert response.status_code == 400
    assert "non-zero" in response.json()["error"]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_transaction_for_unknown_product(client, cashier, as_user):
    with as_user(cashier):
        response = await client.post(
            "/inventory/transactions",
            json={"product_id": str(uuid.uuid4()), "quantity_change": 1},
        )
    assert response.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_attendant_cannot_write_inventory(client, db_session, attendant, as_user):
    product = await _product(db_session)
    with as_user(attendant):
        response = await client.post(
            "/inventory/transactions",
            json={"product_id": str(product.id), "quantity_change": 1},
        )
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_list_transactions_newest_first(client, db_session, cashier, as_user):
    product = await _product(db_session, quantity=0)

    with as_user(cashier):
        for change in (5, -1, 2):
            await client.post(
                "/inventory/transactions",
                json={"product_id": str(product.id), "quantity_change": change},
            )
        response = await client.get(
            "/inventory/transactions", params={"product_id": str(product.id), "limit": 2}
        )
        missing = await client.get(
            "/inventory/transactions", params={"product_id": str(uuid.uuid4())}
        )

    assert response.status_code == 200
    data = response.json()
    assert data["transaction_count"] == 2
    assert [t["quantity_after"] for t in data["transactions"]] == [6, 4]
    assert missing.status_code == 404
