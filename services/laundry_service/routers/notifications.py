"""Customer notification inbox."""

import uuid

from fastapi import APIRouter, Depends, Query
from libs.common.errors import NotFound
from libs.db.session import get_async_db
from services.laundry_service.dependencies import get_current_customer
from services.laundry_service.models import Customer, Notification
from services.laundry_service.schemas import (
    NotificationListResponse,
    NotificationResponse,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Notification).where(Notification.customer_id == customer.id)
    if unread_only:
        query = query.where(Notification.is_read.is_(False))
    result = await db.execute(query.order_by(Notification.created_at.desc()).limit(limit))

    unread = await db.scalar(
        select(func.count(Notification.id)).where(
            Notification.customer_id == customer.id,
            Notification.is_read.is_(False),
        )
    )
    return NotificationListResponse(
        notifications=[NotificationResponse.model_validate(n) for n in result.scalars()],
        unread_count=unread or 0,
    )


@router.patch("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: uuid.UUID,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    notification = await db.get(Notification, notification_id)
    # Another customer's notification is reported as missing
    if notification is None or notification.customer_id != customer.id:
        raise NotFound("Notification not found")

    notification.is_read = True
    await db.commit()
    await db.refresh(notification)
    return notification
