"""Staff account and rider queue schemas."""

import uuid
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator
from services.laundry_service.models.enums import (
    HandlingStage,
    OrderStatus,
    StaffRoleName,
    UnitStatus,
)


def _dedupe_roles(roles: list[StaffRoleName]) -> list[StaffRoleName]:
    if not roles:
        raise ValueError("At least one role is required")
    return sorted(set(roles), key=lambda r: r.value)


RoleList = Annotated[list[StaffRoleName], AfterValidator(_dedupe_roles)]


class StaffCreate(BaseModel):
    auth_id: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email_address: Optional[str] = None
    phone_number: Optional[str] = Field(None, max_length=30)
    roles: RoleList


class StaffUpdate(BaseModel):
    """Partial update. Email is fixed once the account is linked."""

    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=30)
    is_active: Optional[bool] = None
    roles: Optional[RoleList] = None


class StaffResponse(BaseModel):
    id: uuid.UUID
    auth_id: str
    first_name: str
    last_name: str
    email_address: Optional[str] = None
    phone_number: Optional[str] = None
    is_active: bool
    roles: list[StaffRoleName]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("roles", mode="before")
    @classmethod
    def _role_names(cls, value):
        return sorted(
            (getattr(r, "role", r) for r in value or []),
            key=lambda r: StaffRoleName(r).value,
        )


class DeliveryQueueEntry(BaseModel):
    order_id: uuid.UUID
    status: OrderStatus
    stage: HandlingStage
    stage_status: UnitStatus
    address: Optional[str] = None
    customer_name: str
    customer_phone: Optional[str] = None
    basket_count: int
    total_amount: float
    created_at: datetime


class DeliveryQueueResponse(BaseModel):
    success: bool = True
    count: int
    deliveries: list[DeliveryQueueEntry]
