"""Unit tests for the outbox dispatcher: loyalty, notifications and retries."""

import uuid

import pytest
from libs.common.config import get_settings
from services.laundry_service.models import (
    Notification,
    NotificationStatus,
    Order,
    OrderEvent,
    OrderEventType,
    OrderSource,
    OutboxStatus,
    ServiceAction,
    ServiceType,
)
from services.laundry_service.services import dispatcher, order_ops
from sqlalchemy import select

from tests.conftest import FakePushClient
from tests.factories import CustomerFactory, StaffFactory, basket, breakdown, handling


class ExplodingPushClient:
    async def send(self, **kwargs):
        raise RuntimeError("gateway exploded")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _setup(db, *, loyalty_points=0, device_token="device-abc"):
    staff = StaffFactory.create()
    customer = CustomerFactory.create(
        loyalty_points=loyalty_points, fcm_device_token=device_token
    )
    db.add_all([staff, customer])
    await db.commit()
    return staff, customer


async def _place(db, customer, source=OrderSource.POS):
    return await order_ops.create_order(
        db,
        source=source,
        customer=customer,
        cashier=None,
        breakdown=breakdown(baskets=[basket(1, dry="off")]),
        handling=handling(),
    )


async def _events(db, order_id):
    result = await db.execute(
        select(OrderEvent)
        .where(OrderEvent.order_id == order_id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _notifications(db, customer_id):
    result = await db.execute(
        select(Notification).where(Notification.customer_id == customer_id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# dispatch_pending
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_marks_events_and_is_idempotent(db_session):
    push = FakePushClient()
    _, customer = await _setup(db_session)
    order = await _place(db_session, customer)

    assert await dispatcher.dispatch_pending(db_session, push) == 1
    assert await dispatcher.dispatch_pending(db_session, push) == 0

    (event,) = await _events(db_session, order.id)
    assert event.status == OutboxStatus.DISPATCHED
    assert event.attempts == 1
    assert event.dispatched_at is not None
    assert [m["title"] for m in push.sent] == ["Order Received"]
    assert push.sent[0]["token"] == "device-abc"
    assert push.sent[0]["data"]["order_id"] == str(order.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_completion_awards_loyalty_once(db_session):
    push = FakePushClient()
    staff, customer = await _setup(db_session, loyalty_points=2)
    order = await _place(db_session, customer)
    await order_ops.advance_service(
        db_session,
        order.id,
        basket_number=1,
        service_type=ServiceType.WASH,
        action=ServiceAction.COMPLETE,
        staff=staff,
    )

    await dispatcher.dispatch_pending(db_session, push)
    await dispatcher.dispatch_pending(db_session, push)

    await db_session.refresh(customer)
    assert customer.loyalty_points == 2 + get_settings().LOYALTY_AWARD_POINTS

    titles = [m["title"] for m in push.sent]
    assert titles.count("Order Completed") == 1
    assert "Basket #1 Update" in titles
    notifications = await _notifications(db_session, customer.id)
    assert {n.status for n in notifications} == {NotificationStatus.SENT}
    assert len(notifications) == len(push.sent)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejection_penalty_floors_at_zero(db_session):
    push = FakePushClient()
    staff, customer = await _setup(db_session, loyalty_points=0)
    order = await _place(db_session, customer, source=OrderSource.MOBILE)
    await order_ops.reject_order(db_session, order.id, staff, reason="Too far")

    await dispatcher.dispatch_pending(db_session, push, order_id=order.id)

    await db_session.refresh(customer)
    assert customer.loyalty_points == 0
    assert "Order Rejected" in [m["title"] for m in push.sent]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_customer_without_device_gets_history_only(db_session):
    push = FakePushClient()
    _, customer = await _setup(db_session, device_token=None)
    await _place(db_session, customer)

    await dispatcher.dispatch_pending(db_session, push)

    assert push.sent == []
    (notification,) = await _notifications(db_session, customer.id)
    assert notification.status == NotificationStatus.NO_DEVICE
    assert notification.is_read is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_failed_push_still_dispatches_event(db_session):
    push = FakePushClient(ok=False)
    _, customer = await _setup(db_session)
    order = await _place(db_session, customer)

    assert await dispatcher.dispatch_pending(db_session, push) == 1

    (notification,) = await _notifications(db_session, customer.id)
    assert notification.status == NotificationStatus.FAILED
    (event,) = await _events(db_session, order.id)
    assert event.status == OutboxStatus.DISPATCHED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_dispatch_error_is_retried_then_given_up(db_session, monkeypatch):
    monkeypatch.setattr(get_settings(), "OUTBOX_MAX_ATTEMPTS", 2)
    _, customer = await _setup(db_session)
    order = await _place(db_session, customer)
    # The failed attempt rolls back and expires every loaded instance
    order_id, customer_id = order.id, customer.id

    assert await dispatcher.dispatch_pending(db_session, ExplodingPushClient()) == 0
    (event,) = await _events(db_session, order_id)
    assert event.status == OutboxStatus.PENDING
    assert event.attempts == 1
    assert "gateway exploded" in event.last_error

    await dispatcher.dispatch_pending(db_session, ExplodingPushClient())
    (event,) = await _events(db_session, order_id)
    assert event.status == OutboxStatus.FAILED
    assert event.attempts == 2

    # Given-up events are not picked up again
    assert await dispatcher.dispatch_pending(db_session, FakePushClient()) == 0
    assert await _notifications(db_session, customer_id) == []


# ---------------------------------------------------------------------------
# build_message
# ---------------------------------------------------------------------------


def _order():
    return Order(id=uuid.UUID("12345678-1234-5678-1234-567812345678"))


@pytest.mark.unit
def test_service_message_names_basket():
    event = OrderEvent(
        event_type=OrderEventType.SERVICE_STARTED,
        payload={"basket_number": 2, "service_type": "wash"},
    )
    message = dispatcher.build_message(event, _order())
    assert message.title == "Basket #2 Update"
    assert message.body == "Wash started"
    assert message.basket_number == 2


@pytest.mark.unit
def test_ready_for_pickup_message():
    event = OrderEvent(
        event_type=OrderEventType.ORDER_STATUS_CHANGED,
        payload={"from": "processing", "to": "for_pick-up"},
    )
    message = dispatcher.build_message(event, _order())
    assert message.title == "Ready for Pick-up"
    assert "12345678" in message.body


@pytest.mark.unit
def test_plain_status_change_sends_nothing():
    event = OrderEvent(
        event_type=OrderEventType.ORDER_STATUS_CHANGED,
        payload={"from": "pending", "to": "processing"},
    )
    assert dispatcher.build_message(event, _order()) is None


@pytest.mark.unit
def test_rejection_message_carries_reason():
    event = OrderEvent(
        event_type=OrderEventType.ORDER_REJECTED, payload={"reason": "Closed today"}
    )
    assert dispatcher.build_message(event, _order()).body.endswith("Closed today")
