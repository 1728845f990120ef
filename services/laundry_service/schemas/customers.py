"""Customer and notification schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.laundry_service.models.enums import NotificationStatus


class CustomerCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: str = Field(..., min_length=1, max_length=30)
    email_address: Optional[str] = None
    address: Optional[str] = None


class CustomerResponse(BaseModel):
    id: uuid.UUID
    first_name: str
    last_name: str
    phone_number: Optional[str] = None
    email_address: Optional[str] = None
    address: Optional[str] = None
    loyalty_points: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeviceRegistrationRequest(BaseModel):
    fcm_device_token: str = Field(..., min_length=1)


class NotificationResponse(BaseModel):
    id: uuid.UUID
    order_id: Optional[uuid.UUID] = None
    basket_number: Optional[int] = None
    type: str
    title: str
    body: str
    data: Optional[dict[str, Any]] = None
    status: NotificationStatus
    is_read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationListResponse(BaseModel):
    success: bool = True
    notifications: list[NotificationResponse]
    unread_count: int
