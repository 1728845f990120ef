"""Inventory ledger endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.common.errors import ProductNotFound
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.laundry_service.dependencies import require_capability
from services.laundry_service.models import Product, Staff
from services.laundry_service.schemas import (
    TransactionCreateRequest,
    TransactionCreateResponse,
    TransactionListResponse,
    TransactionResponse,
)
from services.laundry_service.services import inventory_ledger
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/inventory", tags=["inventory"])
logger = get_logger(__name__)


@router.post(
    "/transactions",
    response_model=TransactionCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transaction(
    payload: TransactionCreateRequest,
    staff: Staff = Depends(require_capability("inventory", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Record a manual stock movement (restock, damage, return, adjustment)."""
    txn = await inventory_ledger.record(
        db,
        product_id=payload.product_id,
        quantity_change=payload.quantity_change,
        transaction_type=payload.transaction_type,
        order_id=payload.order_id,
        staff_id=staff.id,
        notes=payload.notes,
    )
    await db.commit()

    logger.info(
        "Staff %s recorded %s %+d on product %s",
        staff.id,
        payload.transaction_type.value,
        payload.quantity_change,
        payload.product_id,
    )
    return TransactionCreateResponse(
        transaction=TransactionResponse.model_validate(txn),
        quantity=txn.quantity_after,
    )


@router.get("/transactions", response_model=TransactionListResponse)
async def list_transactions(
    product_id: uuid.UUID = Query(...),
    limit: int = Query(50, ge=1, le=500),
    staff: Staff = Depends(require_capability("inventory", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """Ledger history for one product, newest first."""
    product = await db.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    transactions = await inventory_ledger.list_transactions(db, product_id, limit=limit)
    return TransactionListResponse(
        product_id=product_id,
        transaction_count=len(transactions),
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
    )
