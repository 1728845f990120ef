"""Shared helpers for laundry routers."""

import uuid

from libs.common.push import PushClient
from services.laundry_service.models import Order
from services.laundry_service.schemas import OrderResponse
from services.laundry_service.services.dispatcher import dispatch_after_commit
from sqlalchemy.ext.asyncio import AsyncSession


def order_response(order: Order) -> OrderResponse:
    # Serialise before dispatch: a rollback inside the dispatcher expires the order
    return OrderResponse.model_validate(order)


async def dispatch_events(db: AsyncSession, push: PushClient, order_id: uuid.UUID) -> None:
    """Send the order's pending notifications and loyalty changes now."""
    await dispatch_after_commit(db, push, order_id)
