"""Inventory ledger: the only writer of ``products.quantity``.

Every change locks the product row, appends an immutable
``ProductTransaction`` with before/after snapshots and updates the
projection in the same database transaction. Functions here flush but never
commit; the calling operation owns the transaction.
"""

import uuid
from dataclasses import dataclass, field
from typing import Mapping, Optional, Union

from libs.common.errors import (
    InsufficientStock,
    NegativeStock,
    ProductNotFound,
    ValidationError,
)
from libs.common.logging import get_logger
from services.laundry_service.models import (
    AdjustmentDirection,
    Product,
    ProductTransaction,
    TransactionType,
)
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ProductRef = Union[uuid.UUID, str]


@dataclass
class RestoreResult:
    restored: list[ProductTransaction] = field(default_factory=list)
    failed_product_ids: list[str] = field(default_factory=list)

    @property
    def warnings(self) -> list[str]:
        if not self.failed_product_ids:
            return []
        return [
            f"{len(self.failed_product_ids)} inventory restorations failed for "
            f"products {self.failed_product_ids}"
        ]


def parse_product_id(product_id: ProductRef) -> uuid.UUID:
    if isinstance(product_id, uuid.UUID):
        return product_id
    try:
        return uuid.UUID(str(product_id))
    except ValueError:
        raise ValidationError(f"Invalid product_id: {product_id}")


# ---------------------------------------------------------------------------
# Internals
# ---------------------------------------------------------------------------


async def _lock_product(db: AsyncSession, product_id: ProductRef) -> Product:
    result = await db.execute(
        select(Product)
        .where(Product.id == parse_product_id(product_id))
        .with_for_update()
    )
    product = result.scalar_one_or_none()
    if not product:
        raise ProductNotFound(product_id)
    return product


async def _append(
    db: AsyncSession,
    product: Product,
    *,
    quantity_change: int,
    transaction_type: TransactionType,
    order_id: Optional[uuid.UUID] = None,
    staff_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> ProductTransaction:
    if quantity_change == 0:
        raise ValidationError("quantity_change must be non-zero")

    quantity_before = product.quantity
    quantity_after = quantity_before + quantity_change
    if quantity_after < 0:
        raise NegativeStock(
            f"Cannot reduce quantity below 0. Current: {quantity_before}, "
            f"Change: {quantity_change}"
        )

    txn = ProductTransaction(
        product_id=product.id,
        order_id=order_id,
        staff_id=staff_id,
        quantity_change=quantity_change,
        quantity_before=quantity_before,
        quantity_after=quantity_after,
        transaction_type=transaction_type,
        notes=notes,
    )
    db.add(txn)
    product.quantity = quantity_after
    await db.flush()

    logger.info(
        "Ledger %s %+d on product %s (%d→%d)",
        transaction_type.value,
        quantity_change,
        product.id,
        quantity_before,
        quantity_after,
    )
    return txn


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------


async def check_availability(
    db: AsyncSession, requested: Mapping[str, int]
) -> dict[str, Product]:
    """Lock every requested product and verify stock covers the request.

    Raises before anything is written, so a failed order leaves no trace.
    Inactive products cannot take new quantity.
    """
    products = {}
    # Sorted lock order keeps two concurrent orders from deadlocking
    for product_id in sorted(requested):
        product = await _lock_product(db, product_id)
        quantity = requested[product_id]
        if quantity > 0 and not product.is_active:
            raise ProductNotFound(product_id)
        if product.quantity < quantity:
            raise InsufficientStock(product.item_name, product.quantity, quantity)
        products[product_id] = product
    return products


# ---------------------------------------------------------------------------
# Deduct / restore
# ---------------------------------------------------------------------------


async def deduct(
    db: AsyncSession,
    *,
    product_id: ProductRef,
    quantity: int,
    order_id: Optional[uuid.UUID] = None,
    staff_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> ProductTransaction:
    if quantity <= 0:
        raise ValidationError("quantity must be positive")
    product = await _lock_product(db, product_id)
    if product.quantity < quantity:
        raise InsufficientStock(product.item_name, product.quantity, quantity)
    return await _append(
        db,
        product,
        quantity_change=-quantity,
        transaction_type=TransactionType.ORDER,
        order_id=order_id,
        staff_id=staff_id,
        notes=notes,
    )


async def restore(
    db: AsyncSession,
    items: Mapping[str, int],
    *,
    order_id: Optional[uuid.UUID] = None,
    staff_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> RestoreResult:
    """Return consumed stock, one savepoint per product.

    A product that fails to restore is logged and reported, never raised,
    so the surrounding rejection or cancellation still goes through.
    """
    result = RestoreResult()
    for product_id, quantity in items.items():
        if quantity <= 0:
            continue
        try:
            async with db.begin_nested():
                product = await _lock_product(db, product_id)
                txn = await _append(
                    db,
                    product,
                    quantity_change=quantity,
                    transaction_type=TransactionType.RETURN,
                    order_id=order_id,
                    staff_id=staff_id,
                    notes=notes,
                )
            result.restored.append(txn)
        except (ProductNotFound, ValidationError, SQLAlchemyError) as exc:
            logger.warning(
                "Failed to restore %d of product %s for order %s: %s",
                quantity,
                product_id,
                order_id,
                exc,
            )
            result.failed_product_ids.append(str(product_id))
    return result


# ---------------------------------------------------------------------------
# Manual movements
# ---------------------------------------------------------------------------


async def adjust(
    db: AsyncSession,
    *,
    product_id: ProductRef,
    amount: int,
    direction: AdjustmentDirection,
    staff_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> ProductTransaction:
    """Add or subtract stock by hand. Subtracting below zero fails."""
    if amount <= 0:
        raise ValidationError("Adjustment amount must be greater than 0")
    product = await _lock_product(db, product_id)
    if direction == AdjustmentDirection.ADD:
        change, txn_type = amount, TransactionType.RESTOCK
    else:
        change, txn_type = -amount, TransactionType.ADJUSTMENT
    return await _append(
        db,
        product,
        quantity_change=change,
        transaction_type=txn_type,
        staff_id=staff_id,
        notes=notes,
    )


async def record(
    db: AsyncSession,
    *,
    product_id: ProductRef,
    quantity_change: int,
    transaction_type: TransactionType,
    order_id: Optional[uuid.UUID] = None,
    staff_id: Optional[uuid.UUID] = None,
    notes: Optional[str] = None,
) -> ProductTransaction:
    """Generic ledger entry; rejects changes that would go negative."""
    product = await _lock_product(db, product_id)
    return await _append(
        db,
        product,
        quantity_change=quantity_change,
        transaction_type=transaction_type,
        order_id=order_id,
        staff_id=staff_id,
        notes=notes,
    )


async def list_transactions(
    db: AsyncSession, product_id: ProductRef, limit: int = 50
) -> list[ProductTransaction]:
    result = await db.execute(
        select(ProductTransaction)
        .where(ProductTransaction.product_id == parse_product_id(product_id))
        .order_by(ProductTransaction.created_at.desc())
        .limit(limit)
    )
    return list(result.scalars().all())
