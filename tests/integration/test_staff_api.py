"""Integration tests for staff account management."""

import uuid
from types import SimpleNamespace

import pytest
from services.laundry_service.models import StaffRoleName
from services.laundry_service.permissions import has_capability

from tests.factories import StaffFactory


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_creates_staff_with_roles(client, admin, as_user):
    with as_user(admin):
        created = await client.post(
            "/staff",
            json={
                "auth_id": "auth-new-rider",
                "first_name": "Pedro",
                "last_name": "Cruz",
                "roles": ["rider", "attendant", "rider"],
            },
        )
        duplicate = await client.post(
            "/staff",
            json={
                "auth_id": "auth-new-rider",
                "first_name": "Pedro",
                "last_name": "Cruz",
                "roles": ["rider"],
            },
        )
        no_roles = await client.post(
            "/staff",
            json={"auth_id": "auth-x", "first_name": "A", "last_name": "B", "roles": []},
        )

    assert created.status_code == 201, created.text
    assert created.json()["roles"] == ["attendant", "rider"]
    assert created.json()["is_active"] is True
    assert duplicate.status_code == 400
    assert duplicate.json()["error"] == "Account auth-new-rider is already a staff member"
    assert no_roles.status_code == 400


@pytest.mark.asyncio
@pytest.mark.integration
async def test_new_staff_can_use_granted_capabilities(client, admin, as_user):
    with as_user(admin):
        created = await client.post(
            "/staff",
            json={
                "auth_id": "auth-rider-2",
                "first_name": "Rina",
                "last_name": "Lopez",
                "roles": ["rider"],
            },
        )
    assert created.status_code == 201, created.text

    with as_user(SimpleNamespace(auth_id="auth-rider-2")):
        queue = await client.get("/orders/deliveries")
        products = await client.post("/products", json={"item_name": "X", "unit_price": 1})

    assert queue.status_code == 200
    assert products.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_update_roles_and_deactivate(client, db_session, admin, as_user):
    staff = StaffFactory.create(roles=("attendant",))
    db_session.add(staff)
    await db_session.commit()

    with as_user(admin):
        promoted = await client.patch(
            f"/staff/{staff.id}",
            json={"roles": ["cashier", "attendant"], "phone_number": "09171234567"},
        )
        removed = await client.delete(f"/staff/{staff.id}")
        active = await client.get("/staff")
        everyone = await client.get("/staff", params={"include_inactive": True})

    assert promoted.status_code == 200, promoted.text
    assert promoted.json()["roles"] == ["attendant", "cashier"]
    assert promoted.json()["phone_number"] == "09171234567"
    assert removed.json()["is_active"] is False
    assert str(staff.id) not in [s["id"] for s in active.json()]
    assert str(staff.id) in [s["id"] for s in everyone.json()]

    await db_session.refresh(staff)
    assert staff.role_names == {StaffRoleName.CASHIER, StaffRoleName.ATTENDANT}
    assert has_capability(staff.role_names, "orders", "create")


@pytest.mark.asyncio
@pytest.mark.integration
async def test_admin_cannot_deactivate_self(client, admin, as_user):
    with as_user(admin):
        deleted = await client.delete(f"/staff/{admin.id}")
        patched = await client.patch(f"/staff/{admin.id}", json={"is_active": False})
        missing = await client.delete(f"/staff/{uuid.uuid4()}")

    assert deleted.status_code == 400
    assert deleted.json()["error"] == "You cannot deactivate your own account"
    assert patched.status_code == 400
    assert missing.status_code == 404


@pytest.mark.asyncio
@pytest.mark.integration
async def test_cashier_cannot_manage_staff(client, cashier, as_user):
    with as_user(cashier):
        listed = await client.get("/staff")
        created = await client.post(
            "/staff",
            json={"auth_id": "a", "first_name": "A", "last_name": "B", "roles": ["admin"]},
        )

    assert listed.status_code == 403
    assert listed.json()["error"] == "Missing permission staff:read"
    assert created.status_code == 403
