"""Customer registry endpoints."""

from fastapi import APIRouter, Depends, Query, status
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.laundry_service.dependencies import (
    get_current_customer,
    require_capability,
)
from services.laundry_service.models import Customer, Staff
from services.laundry_service.schemas import (
    CustomerCreate,
    CustomerResponse,
    DeviceRegistrationRequest,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/customers", tags=["customers"])
logger = get_logger(__name__)


@router.post("", response_model=CustomerResponse, status_code=status.HTTP_201_CREATED)
async def create_customer(
    customer_in: CustomerCreate,
    staff: Staff = Depends(require_capability("customers", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Register a walk-in customer at the counter."""
    customer = Customer(**customer_in.model_dump())
    db.add(customer)
    await db.commit()
    await db.refresh(customer)
    logger.info("Customer %s registered by staff %s", customer.id, staff.id)
    return customer


@router.get("/search", response_model=list[CustomerResponse])
async def search_customers(
    phone: str = Query(..., min_length=3),
    limit: int = Query(20, ge=1, le=100),
    staff: Staff = Depends(require_capability("customers", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    result = await db.execute(
        select(Customer)
        .where(Customer.phone_number.ilike(f"%{phone.strip()}%"))
        .order_by(Customer.last_name, Customer.first_name)
        .limit(limit)
    )
    return result.scalars().all()


@router.get("/me", response_model=CustomerResponse)
async def get_my_profile(customer: Customer = Depends(get_current_customer)):
    return customer


@router.post("/me/device", response_model=CustomerResponse)
async def register_device(
    payload: DeviceRegistrationRequest,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
):
    """Store the push token used for order notifications."""
    customer.fcm_device_token = payload.fcm_device_token
    await db.commit()
    await db.refresh(customer)
    return customer
