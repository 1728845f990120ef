"""Order request/response schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from services.laundry_service.models.enums import (
    BasketStatus,
    HandlingAction,
    HandlingStage,
    LoyaltyTier,
    OrderSource,
    OrderStatus,
    ServiceAction,
    ServiceType,
    UnitStatus,
)

# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


class CustomerData(BaseModel):
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    phone_number: str = Field(..., min_length=1)
    email_address: Optional[str] = None
    address: Optional[str] = None


class PosOrderCreateRequest(BaseModel):
    """Counter order. Either an existing customer or details for a new one."""

    customer_id: Optional[uuid.UUID] = None
    customer_data: Optional[CustomerData] = None
    breakdown: dict[str, Any]
    handling: dict[str, Any]
    order_note: Optional[str] = None
    loyalty_tier: Optional[LoyaltyTier] = None

    @model_validator(mode="after")
    def _customer_required(self):
        if self.customer_id is None and self.customer_data is None:
            raise ValueError("customer_id or customer_data is required")
        return self


class MobileOrderCreateRequest(BaseModel):
    breakdown: dict[str, Any]
    handling: dict[str, Any]
    order_note: Optional[str] = None
    loyalty_tier: Optional[LoyaltyTier] = None


class ApproveOrderRequest(BaseModel):
    gcash_verified: bool = False
    notes: Optional[str] = None


class RejectOrderRequest(BaseModel):
    cashier_id: Optional[uuid.UUID] = None
    reason: str = Field(..., min_length=1)
    notes: Optional[str] = None


class CancelOrderRequest(BaseModel):
    reason: Optional[str] = None


class ModifyOrderRequest(BaseModel):
    """Either a full ``breakdown`` or any of the simple fields."""

    breakdown: Optional[dict[str, Any]] = None
    customer_phone: Optional[str] = None
    pickup_address: Optional[str] = None
    delivery_address: Optional[str] = None
    items: Optional[list[dict[str, Any]]] = None


class ServiceUpdateRequest(BaseModel):
    service_type: ServiceType
    action: ServiceAction
    notes: Optional[str] = Field(None, max_length=500)


class HandlingUpdateRequest(BaseModel):
    staff_id: Optional[uuid.UUID] = Field(None, alias="staffId")
    action: HandlingAction
    stage: HandlingStage = Field(..., alias="handlingType")

    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class ServiceStatusResponse(BaseModel):
    service_type: ServiceType
    status: UnitStatus
    started_at: Optional[datetime] = None
    started_by: Optional[uuid.UUID] = None
    completed_at: Optional[datetime] = None
    completed_by: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class BasketResponse(BaseModel):
    basket_number: int
    weight_kg: float
    services: dict[str, Any]
    notes: Optional[str] = None
    price: float
    status: BasketStatus
    service_statuses: list[ServiceStatusResponse] = []

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(BaseModel):
    id: uuid.UUID
    source: OrderSource
    customer_id: uuid.UUID
    cashier_id: Optional[uuid.UUID] = None
    status: OrderStatus
    total_amount: float
    order_note: Optional[str] = None
    breakdown: dict[str, Any]
    handling: dict[str, Any]
    cancellation: Optional[dict[str, Any]] = None
    created_at: datetime
    approved_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    baskets: list[BasketResponse] = []

    model_config = ConfigDict(from_attributes=True)


class OrderEnvelope(BaseModel):
    success: bool = True
    order: OrderResponse
    warnings: list[str] = []


class OrderListResponse(BaseModel):
    success: bool = True
    orders: list[OrderResponse]
    total: int


class OrderCreateResponse(BaseModel):
    success: bool = True
    order_id: uuid.UUID
    receipt: dict[str, Any]
    order: OrderResponse


class ServiceUpdateResponse(BaseModel):
    success: bool = True
    order_id: uuid.UUID
    basket_number: int
    service_type: ServiceType
    status: UnitStatus
    order_status: OrderStatus
    order: OrderResponse


class HandlingUpdateResponse(BaseModel):
    success: bool = True
    order_id: uuid.UUID
    stage: HandlingStage
    status: UnitStatus
    order_status: OrderStatus
    order: OrderResponse
