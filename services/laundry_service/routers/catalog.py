"""Product and laundry service catalog endpoints."""

import uuid

from fastapi import APIRouter, Depends, Query, status
from libs.common.errors import ProductNotFound
from libs.common.logging import get_logger
from libs.db.session import get_async_db
from services.laundry_service.dependencies import require_capability
from services.laundry_service.models import (
    AdjustmentDirection,
    LaundryService,
    Product,
    Staff,
    TransactionType,
)
from services.laundry_service.schemas import (
    AdjustQuantityRequest,
    LaundryServiceCreate,
    LaundryServiceResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    TransactionCreateResponse,
    TransactionResponse,
)
from services.laundry_service.services import inventory_ledger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["catalog"])
logger = get_logger(__name__)


# ============================================================================
# PRODUCTS
# ============================================================================


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    include_inactive: bool = False,
    low_stock: bool = False,
    staff: Staff = Depends(require_capability("products", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(Product)
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    if low_stock:
        query = query.where(Product.quantity < Product.reorder_level)

    result = await db.execute(query.order_by(Product.item_name))
    return result.scalars().all()


@router.post(
    "/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED
)
async def create_product(
    product_in: ProductCreate,
    staff: Staff = Depends(require_capability("products", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Create a product. Opening stock goes through the ledger as a restock."""
    data = product_in.model_dump(exclude={"initial_quantity"})
    product = Product(**data, quantity=0)
    db.add(product)
    await db.flush()

    if product_in.initial_quantity:
        await inventory_ledger.record(
            db,
            product_id=product.id,
            quantity_change=product_in.initial_quantity,
            transaction_type=TransactionType.RESTOCK,
            staff_id=staff.id,
            notes="Opening stock",
        )

    await db.commit()
    await db.refresh(product)
    logger.info("Product %s created by staff %s", product.id, staff.id)
    return product


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: uuid.UUID,
    product_in: ProductUpdate,
    staff: Staff = Depends(require_capability("products", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    product = await db.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    for field, value in product_in.model_dump(exclude_unset=True).items():
        setattr(product, field, value)

    await db.commit()
    await db.refresh(product)
    return product


@router.post(
    "/products/{product_id}/adjust-quantity",
    response_model=TransactionCreateResponse,
)
async def adjust_product_quantity(
    product_id: uuid.UUID,
    payload: AdjustQuantityRequest,
    staff: Staff = Depends(require_capability("inventory", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    """Add or subtract stock by hand. Subtracting below zero is refused."""
    txn = await inventory_ledger.adjust(
        db,
        product_id=product_id,
        amount=payload.amount,
        direction=payload.adjustment_type,
        staff_id=staff.id,
        notes=payload.notes,
    )
    await db.commit()

    verb = "added" if payload.adjustment_type == AdjustmentDirection.ADD else "removed"
    logger.info("Staff %s %s %d of product %s", staff.id, verb, payload.amount, product_id)
    return TransactionCreateResponse(
        transaction=TransactionResponse.model_validate(txn),
        quantity=txn.quantity_after,
    )


# ============================================================================
# LAUNDRY SERVICES
# ============================================================================


@router.get("/services", response_model=list[LaundryServiceResponse])
async def list_services(
    include_inactive: bool = Query(False),
    staff: Staff = Depends(require_capability("catalog", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    query = select(LaundryService)
    if not include_inactive:
        query = query.where(LaundryService.is_active.is_(True))
    result = await db.execute(
        query.order_by(LaundryService.service_type, LaundryService.tier)
    )
    return result.scalars().all()


@router.post(
    "/services",
    response_model=LaundryServiceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_service(
    service_in: LaundryServiceCreate,
    staff: Staff = Depends(require_capability("catalog", "write")),
    db: AsyncSession = Depends(get_async_db),
):
    service = LaundryService(**service_in.model_dump())
    db.add(service)
    await db.commit()
    await db.refresh(service)
    return service
