"""Inventory ledger schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.laundry_service.models.enums import AdjustmentDirection, TransactionType


class TransactionCreateRequest(BaseModel):
    product_id: uuid.UUID
    quantity_change: int
    transaction_type: TransactionType = TransactionType.ADJUSTMENT
    order_id: Optional[uuid.UUID] = None
    notes: Optional[str] = None

    @field_validator("quantity_change")
    @classmethod
    def _non_zero(cls, v: int) -> int:
        if v == 0:
            raise ValueError("quantity_change must be non-zero")
        return v


class AdjustQuantityRequest(BaseModel):
    adjustment_type: AdjustmentDirection
    amount: int = Field(..., gt=0)
    notes: Optional[str] = None


class TransactionResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    order_id: Optional[uuid.UUID] = None
    staff_id: Optional[uuid.UUID] = None
    quantity_change: int
    quantity_before: int
    quantity_after: int
    transaction_type: TransactionType
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionCreateResponse(BaseModel):
    success: bool = True
    transaction: TransactionResponse
    quantity: int


class TransactionListResponse(BaseModel):
    success: bool = True
    product_id: uuid.UUID
    transaction_count: int
    transactions: list[TransactionResponse]
