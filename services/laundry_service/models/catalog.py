"""Catalog models: retail products and laundry service pricing."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.laundry_service.models.enums import ServiceTier, ServiceType, enum_values
from sqlalchemy import Boolean, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Product(Base):
    """Retail product sold at the counter (detergent, fabric softener, bags)."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    item_name: Mapped[str] = mapped_column(String(200), nullable=False)
    unit_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    unit_cost: Mapped[Optional[float]] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )
    # Projection of product_transactions; only the inventory ledger writes it
    quantity: Mapped[int] = mapped_column(
        Integer, default=0, server_default="0", nullable=False
    )
    reorder_level: Mapped[int] = mapped_column(
        Integer, default=5, server_default="5", nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_product_quantity_non_negative"),
    )

    @property
    def is_low_stock(self) -> bool:
        return self.quantity < self.reorder_level

    def __repr__(self) -> str:
        return f"<Product {self.item_name} qty={self.quantity}>"


class LaundryService(Base):
    """Priced laundry service. ``tier`` is null for tierless services (spin, iron)."""

    __tablename__ = "services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    service_type: Mapped[ServiceType] = mapped_column(
        SAEnum(
            ServiceType,
            name="service_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    tier: Mapped[Optional[ServiceTier]] = mapped_column(
        SAEnum(
            ServiceTier,
            name="service_tier_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    base_price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=False
    )
    rate_per_kg: Mapped[Optional[float]] = mapped_column(
        Numeric(12, 2, asdecimal=False), nullable=True
    )
    base_duration_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    @property
    def pricing_key(self) -> str:
        tier = self.tier.value if self.tier else ""
        return f"{self.service_type.value}:{tier}"

    def __repr__(self) -> str:
        return f"<LaundryService {self.pricing_key} {self.base_price}>"
