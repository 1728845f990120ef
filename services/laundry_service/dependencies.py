"""FastAPI dependencies resolving the acting staff member or customer."""

from typing import Callable

from fastapi import Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import Forbidden
from libs.common.push import PushClient, get_push_client
from libs.db.session import get_async_db
from services.laundry_service.models import Customer, Staff
from services.laundry_service.permissions import has_capability
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_current_staff(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> Staff:
    result = await db.execute(select(Staff).where(Staff.auth_id == current_user.user_id))
    staff = result.scalar_one_or_none()
    if staff is None or not staff.is_active:
        raise Forbidden("Staff account required")
    return staff


async def get_current_customer(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
) -> Customer:
    result = await db.execute(
        select(Customer).where(Customer.auth_id == current_user.user_id)
    )
    customer = result.scalar_one_or_none()
    if customer is None:
        raise Forbidden("Customer account required")
    return customer


def require_capability(resource: str, action: str) -> Callable:
    """Dependency factory: the acting staff member must hold ``resource:action``."""

    async def _check(staff: Staff = Depends(get_current_staff)) -> Staff:
        if not has_capability(staff.role_names, resource, action):
            raise Forbidden(f"Missing permission {resource}:{action}")
        return staff

    return _check


def get_push() -> PushClient:
    return get_push_client()
