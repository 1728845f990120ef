"""Unit tests for worker tasks, run against the test session."""

import pytest
from services.laundry_service import tasks
from services.laundry_service.models import OrderEvent, OrderSource, OutboxStatus
from services.laundry_service.services import order_ops
from sqlalchemy import select

from tests.conftest import FakePushClient
from tests.factories import CustomerFactory, ProductFactory, basket, breakdown, handling


@pytest.fixture
def task_db(db_session, monkeypatch):
    async def _get_db():
        yield db_session

    push = FakePushClient()
    monkeypatch.setattr(tasks, "get_async_db", _get_db)
    monkeypatch.setattr(tasks, "get_push_client", lambda: push)
    return push


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_outbox_sweeps_pending_events(db_session, task_db):
    customer = CustomerFactory.create(fcm_device_token="tok")
    db_session.add(customer)
    await db_session.commit()
    await order_ops.create_order(
        db_session,
        source=OrderSource.MOBILE,
        customer=customer,
        cashier=None,
        breakdown=breakdown(baskets=[basket(1)]),
        handling=handling(),
    )

    assert await tasks.dispatch_outbox() == 1
    assert await tasks.dispatch_outbox() == 0

    statuses = (await db_session.execute(select(OrderEvent.status))).scalars().all()
    assert statuses == [OutboxStatus.DISPATCHED]
    assert [m["title"] for m in task_db.sent] == ["Order Received"]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_report_low_stock(db_session, task_db, caplog):
    db_session.add_all(
        [
            ProductFactory.create(item_name="Bleach", quantity=1, reorder_level=5),
            ProductFactory.create(item_name="Softener", quantity=9, reorder_level=5),
        ]
    )
    await db_session.commit()

    low = await tasks.report_low_stock()

    assert [p["item_name"] for p in low] == ["Bleach"]
    assert "Low stock: Bleach has 1 left" in caplog.text
