"""Reporting endpoints for the admin dashboard."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from libs.db.session import get_async_db
from services.laundry_service.dependencies import require_capability
from services.laundry_service.models import Staff
from services.laundry_service.services import analytics
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/orders")
async def get_order_analytics(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    staff: Staff = Depends(require_capability("analytics", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """Order count, average value and fulfillment mix. Both dates inclusive."""
    return {"success": True, **await analytics.order_stats(db, start_date, end_date)}


@router.get("/revenue")
async def get_revenue_analytics(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    staff: Staff = Depends(require_capability("analytics", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    return {"success": True, **await analytics.revenue_stats(db, start_date, end_date)}


@router.get("/products")
async def get_product_analytics(
    staff: Staff = Depends(require_capability("analytics", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    return {"success": True, **await analytics.product_stats(db)}


@router.get("/customers")
async def get_customer_analytics(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    staff: Staff = Depends(require_capability("analytics", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    return {"success": True, **await analytics.customer_stats(db, start_date, end_date)}
