"""Staff account management."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.common.errors import NotFound, ValidationError
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.laundry_service.dependencies import require_capability
from services.laundry_service.models import Staff, StaffRole
from services.laundry_service.schemas import StaffCreate, StaffResponse, StaffUpdate
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/staff", tags=["staff"])
logger = get_logger(__name__)


async def _get_staff(db: AsyncSession, staff_id: uuid.UUID) -> Staff:
    staff = await db.get(Staff, staff_id)
    if staff is None:
        raise NotFound(f"Staff member {staff_id} not found")
    return staff


@router.get("", response_model=list[StaffResponse])
async def list_staff(
    include_inactive: bool = Query(False),
    actor: Staff = Depends(require_capability("staff", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Staff).order_by(Staff.last_name, Staff.first_name)
    if not include_inactive:
        query = query.where(Staff.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


@router.post("", response_model=StaffResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    staff_in: StaffCreate,
    actor: Staff = Depends(require_capability("staff", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Link an identity-provider account to a staff profile with roles."""
    existing = await db.execute(select(Staff.id).where(Staff.auth_id == staff_in.auth_id))
    if existing.scalar_one_or_none() is not None:
        raise ValidationError(f"Account {staff_in.auth_id} is already a staff member")

    staff = Staff(**staff_in.model_dump(exclude={"roles"}))
    staff.roles = [StaffRole(role=role) for role in staff_in.roles]
    db.add(staff)
    await db.commit()
    await db.refresh(staff)

    logger.info(
        "Staff %s created by %s with roles %s",
        staff.id,
        actor.id,
        ",".join(r.value for r in staff_in.roles),
    )
    return staff


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: uuid.UUID,
    staff_in: StaffUpdate,
    actor: Staff = Depends(require_capability("staff", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Update profile fields, activation and the role set."""
    staff = await _get_staff(db, staff_id)
    changes = staff_in.model_dump(exclude_unset=True, exclude={"roles"})
    if staff.id == actor.id and changes.get("is_active") is False:
        raise ValidationError("You cannot deactivate your own account")

    for field, value in changes.items():
        setattr(staff, field, value)

    if staff_in.roles is not None:
        current = {r.role: r for r in staff.roles}
        staff.roles = [current.get(role) or StaffRole(role=role) for role in staff_in.roles]

    await db.commit()
    await db.refresh(staff)
    logger.info("Staff %s updated by %s", staff.id, actor.id)
    return staff


@router.delete("/{staff_id}", response_model=StaffResponse)
async def deactivate_staff(
    staff_id: uuid.UUID,
    actor: Staff = Depends(require_capability("staff", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Deactivate a staff account. Rows stay for order and ledger history."""
    staff = await _get_staff(db, staff_id)
    if staff.id == actor.id:
        raise ValidationError("You cannot deactivate your own account")

    staff.is_active = False
    await db.commit()
    await db.refresh(staff)
    logger.info("Staff %s deactivated by %s", staff.id, actor.id)
    return staff
