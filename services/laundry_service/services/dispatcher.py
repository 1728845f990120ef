"""Outbox dispatcher: turns recorded order events into side effects.

Each event is handled in its own transaction: loyalty change, notification
history row and the event's ``dispatched`` flag commit together, so a retry
never applies loyalty twice. Push delivery is best-effort; a failed push is
recorded on the notification row and does not hold the event back.
"""

import uuid
from dataclasses import dataclass
from typing import Optional

from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.logging import get_logger
from libs.common.push import PushClient
from services.laundry_service.models import (
    Customer,
    Notification,
    NotificationStatus,
    Order,
    OrderEvent,
    OrderEventType,
    OrderStatus,
    OutboxStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class Message:
    title: str
    body: str
    basket_number: Optional[int] = None


# ---------------------------------------------------------------------------
# Loyalty
# ---------------------------------------------------------------------------


async def _lock_customer(db: AsyncSession, customer_id: uuid.UUID) -> Customer:
    result = await db.execute(
        select(Customer)
        .where(Customer.id == customer_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def apply_loyalty_delta(
    db: AsyncSession, customer_id: uuid.UUID, delta: int
) -> tuple[int, int]:
    """Add ``delta`` points, flooring the balance at zero. Returns (before, after)."""
    customer = await _lock_customer(db, customer_id)
    before = customer.loyalty_points
    customer.loyalty_points = max(0, before + delta)
    logger.info(
        "Loyalty %+d for customer %s (%d→%d)",
        delta,
        customer_id,
        before,
        customer.loyalty_points,
    )
    return before, customer.loyalty_points


def _loyalty_delta(event_type: OrderEventType) -> int:
    settings = get_settings()
    if event_type == OrderEventType.ORDER_COMPLETED:
        return settings.LOYALTY_AWARD_POINTS
    if event_type in (OrderEventType.ORDER_REJECTED, OrderEventType.ORDER_CANCELLED):
        return -settings.LOYALTY_PENALTY_POINTS
    return 0


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def build_message(event: OrderEvent, order: Order) -> Optional[Message]:
    """Customer-facing text for an event, or None when nothing is sent."""
    payload = event.payload or {}
    short_id = str(order.id)[:8]

    if event.event_type in (
        OrderEventType.SERVICE_STARTED,
        OrderEventType.SERVICE_COMPLETED,
        OrderEventType.SERVICE_SKIPPED,
    ):
        verb = {
            OrderEventType.SERVICE_STARTED: "started",
            OrderEventType.SERVICE_COMPLETED: "completed",
            OrderEventType.SERVICE_SKIPPED: "skipped",
        }[event.event_type]
        number = payload.get("basket_number")
        service = str(payload.get("service_type", "service")).capitalize()
        return Message(f"Basket #{number} Update", f"{service} {verb}", number)

    if event.event_type == OrderEventType.HANDLING_STARTED:
        if payload.get("stage") == "pickup":
            return Message("Pickup Started", "Our rider is on the way to collect your laundry")
        return Message("Out for Delivery", "Your laundry is on its way")

    if event.event_type == OrderEventType.HANDLING_COMPLETED:
        if payload.get("stage") == "pickup":
            return Message("Laundry Picked Up", "We have your laundry and will start soon")
        return Message("Delivered", "Your laundry has been delivered")

    if event.event_type == OrderEventType.ORDER_STATUS_CHANGED:
        if payload.get("to") == OrderStatus.FOR_PICKUP.value:
            return Message("Ready for Pick-up", f"Order {short_id} is ready at the counter")
        return None

    if event.event_type == OrderEventType.ORDER_CREATED:
        return Message("Order Received", f"We received order {short_id}")

    if event.event_type == OrderEventType.ORDER_APPROVED:
        return Message("Order Confirmed", f"Order {short_id} has been confirmed")

    if event.event_type == OrderEventType.ORDER_COMPLETED:
        points = get_settings().LOYALTY_AWARD_POINTS
        return Message(
            "Order Completed",
            f"Thank you! Order {short_id} is complete and you earned {points} loyalty point(s)",
        )

    if event.event_type == OrderEventType.ORDER_REJECTED:
        reason = payload.get("reason") or "no reason given"
        return Message("Order Rejected", f"Order {short_id} was rejected: {reason}")

    if event.event_type == OrderEventType.ORDER_CANCELLED:
        return Message("Order Cancelled", f"Order {short_id} has been cancelled")

    return None


async def notify_customer(
    db: AsyncSession,
    push: PushClient,
    *,
    customer: Customer,
    order: Optional[Order],
    notification_type: str,
    message: Message,
    data: Optional[dict] = None,
) -> Notification:
    """Push a message to the customer's device and keep a history row."""
    data = dict(data or {})
    if order is not None:
        data.setdefault("order_id", str(order.id))

    if not customer.fcm_device_token:
        status = NotificationStatus.NO_DEVICE
    else:
        sent = await push.send(
            token=customer.fcm_device_token,
            title=message.title,
            body=message.body,
            data=data,
        )
        status = NotificationStatus.SENT if sent else NotificationStatus.FAILED

    notification = Notification(
        customer_id=customer.id,
        order_id=order.id if order is not None else None,
        basket_number=message.basket_number,
        type=notification_type,
        title=message.title,
        body=message.body,
        data=data,
        status=status,
    )
    db.add(notification)
    return notification


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


async def _claim(db: AsyncSession, event_id: uuid.UUID) -> Optional[OrderEvent]:
    result = await db.execute(
        select(OrderEvent)
        .where(OrderEvent.id == event_id, OrderEvent.status == OutboxStatus.PENDING)
        .with_for_update(skip_locked=True)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def dispatch_event(db: AsyncSession, event: OrderEvent, push: PushClient) -> None:
    """Apply one event's side effects. The caller commits."""
    order = await db.get(Order, event.order_id)
    customer = await db.get(Customer, order.customer_id)

    delta = _loyalty_delta(event.event_type)
    if delta:
        await apply_loyalty_delta(db, customer.id, delta)

    message = build_message(event, order)
    if message is not None:
        await notify_customer(
            db,
            push,
            customer=customer,
            order=order,
            notification_type=event.event_type.value,
            message=message,
            data={"event_id": str(event.id), "status": order.status.value},
        )

    event.status = OutboxStatus.DISPATCHED
    event.dispatched_at = utc_now()
    event.attempts += 1


async def _record_failure(
    db: AsyncSession, event_id: uuid.UUID, error: Exception
) -> None:
    max_attempts = get_settings().OUTBOX_MAX_ATTEMPTS
    event = await db.get(OrderEvent, event_id, populate_existing=True)
    if event is None:
        return
    event.attempts += 1
    event.last_error = str(error)[:1000]
    if event.attempts >= max_attempts:
        event.status = OutboxStatus.FAILED
        logger.error(
            "Giving up on event %s (%s) after %d attempts: %s",
            event.id,
            event.event_type.value,
            event.attempts,
            error,
        )
    await db.commit()


async def dispatch_pending(
    db: AsyncSession,
    push: PushClient,
    *,
    order_id: Optional[uuid.UUID] = None,
    limit: Optional[int] = None,
) -> int:
    """Dispatch pending events oldest first. Returns how many were dispatched."""
    settings = get_settings()
    query = (
        select(OrderEvent.id)
        .where(
            OrderEvent.status == OutboxStatus.PENDING,
            OrderEvent.attempts < settings.OUTBOX_MAX_ATTEMPTS,
        )
        .order_by(OrderEvent.created_at.asc())
        .limit(limit or settings.OUTBOX_BATCH_SIZE)
    )
    if order_id is not None:
        query = query.where(OrderEvent.order_id == order_id)
    event_ids = list((await db.execute(query)).scalars().all())

    dispatched = 0
    for event_id in event_ids:
        event = await _claim(db, event_id)
        if event is None:
            await db.rollback()
            continue
        try:
            await dispatch_event(db, event, push)
            await db.commit()
            dispatched += 1
        except Exception as exc:  # noqa: BLE001
            await db.rollback()
            logger.warning("Dispatch of event %s failed: %s", event_id, exc)
            await _record_failure(db, event_id, exc)
    return dispatched


async def dispatch_after_commit(
    db: AsyncSession, push: PushClient, order_id: uuid.UUID
) -> None:
    """Best-effort inline dispatch after a request committed its transition.

    Anything left over is picked up by the worker cron.
    """
    try:
        await dispatch_pending(db, push, order_id=order_id)
    except Exception:  # noqa: BLE001
        await db.rollback()
        logger.exception("Inline dispatch for order %s failed", order_id)
