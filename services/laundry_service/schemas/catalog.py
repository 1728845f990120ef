"""Product and laundry-service catalog schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.laundry_service.models.enums import ServiceTier, ServiceType


class ProductCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=200)
    unit_price: float = Field(..., ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    reorder_level: int = Field(5, ge=0)
    image_url: Optional[str] = None
    initial_quantity: int = Field(0, ge=0)


class ProductUpdate(BaseModel):
    """Quantity is deliberately absent: stock moves only through the ledger."""

    item_name: Optional[str] = Field(None, min_length=1, max_length=200)
    unit_price: Optional[float] = Field(None, ge=0)
    unit_cost: Optional[float] = Field(None, ge=0)
    reorder_level: Optional[int] = Field(None, ge=0)
    image_url: Optional[str] = None
    is_active: Optional[bool] = None


class ProductResponse(BaseModel):
    id: uuid.UUID
    item_name: str
    unit_price: float
    unit_cost: Optional[float] = None
    quantity: int
    reorder_level: int
    is_active: bool
    is_low_stock: bool
    image_url: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LaundryServiceCreate(BaseModel):
    service_type: ServiceType
    tier: Optional[ServiceTier] = None
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    base_price: float = Field(..., ge=0)
    rate_per_kg: Optional[float] = Field(None, ge=0)
    base_duration_minutes: Optional[int] = Field(None, ge=0)


class LaundryServiceResponse(BaseModel):
    id: uuid.UUID
    service_type: ServiceType
    tier: Optional[ServiceTier] = None
    name: str
    description: Optional[str] = None
    base_price: float
    rate_per_kg: Optional[float] = None
    base_duration_minutes: Optional[int] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)
