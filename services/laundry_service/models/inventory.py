"""Immutable inventory ledger entries."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.laundry_service.models.enums import TransactionType, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class ProductTransaction(Base):
    """One signed stock movement. Rows are never updated; reversals append."""

    __tablename__ = "product_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("products.id"), index=True, nullable=False
    )
    order_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="SET NULL"), index=True, nullable=True
    )
    staff_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    quantity_change: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_before: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity_after: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="product_transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity_change <> 0", name="ck_product_txn_non_zero"),
        CheckConstraint("quantity_after >= 0", name="ck_product_txn_after_non_negative"),
        Index("ix_product_transactions_product_created", "product_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProductTransaction {self.product_id} {self.quantity_change:+d} "
            f"{self.transaction_type.value}>"
        )
