"""Order aggregate models: order, baskets and per-basket service rows."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base, JSONType
from services.laundry_service.models.enums import (
    BasketStatus,
    OrderSource,
    OrderStatus,
    ServiceType,
    UnitStatus,
    enum_values,
)
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import (
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ORDER
# ============================================================================


class Order(Base):
    """Laundry order.

    ``breakdown`` holds line items, baskets, fees, summary, payment and the
    audit log. ``handling`` holds the pickup/delivery phases plus payment
    details captured at the counter. Both are JSON documents: always assign
    a new object when changing them so the ORM sees the mutation.
    """

    __tablename__ = "orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    source: Mapped[OrderSource] = mapped_column(
        SAEnum(
            OrderSource,
            name="order_source_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("customers.id"), index=True, nullable=False
    )
    cashier_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("staff.id"), nullable=True
    )
    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="order_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=OrderStatus.PENDING,
        nullable=False,
    )
    total_amount: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), default=0, nullable=False
    )
    order_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    breakdown: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    handling: Mapped[dict] = mapped_column(JSONType, default=dict, nullable=False)
    cancellation: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    customer = relationship("Customer", lazy="selectin")
    cashier = relationship("Staff", lazy="selectin")
    baskets: Mapped[list["Basket"]] = relationship(
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="Basket.basket_number",
    )

    __table_args__ = (
        Index("ix_orders_status_created", "status", "created_at"),
    )

    @property
    def service_rows(self) -> list["BasketServiceStatus"]:
        return [row for basket in self.baskets for row in basket.service_statuses]

    def basket(self, basket_number: int) -> Optional["Basket"]:
        for basket in self.baskets:
            if basket.basket_number == basket_number:
                return basket
        return None

    def __repr__(self) -> str:
        return f"<Order {self.id} {self.source.value} {self.status.value}>"


# ============================================================================
# BASKETS
# ============================================================================


class Basket(Base):
    """One physical load within an order."""

    __tablename__ = "order_baskets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    basket_number: Mapped[int] = mapped_column(Integer, nullable=False)
    weight_kg: Mapped[float] = mapped_column(
        Numeric(8, 2, asdecimal=False), default=0, nullable=False
    )
    # Service elections as submitted (tiers, cycles, iron weight, add-ons)
    services: Mapped[dict] = mapped_column(
        "service_options", JSONType, default=dict, nullable=False
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    price: Mapped[float] = mapped_column(
        Numeric(12, 2, asdecimal=False), default=0, nullable=False
    )
    status: Mapped[BasketStatus] = mapped_column(
        SAEnum(
            BasketStatus,
            name="basket_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=BasketStatus.PROCESSING,
        nullable=False,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    order: Mapped["Order"] = relationship(back_populates="baskets")
    service_statuses: Mapped[list["BasketServiceStatus"]] = relationship(
        back_populates="basket",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="BasketServiceStatus.sequence",
    )

    __table_args__ = (
        UniqueConstraint("order_id", "basket_number", name="uq_order_basket_number"),
    )

    def service(self, service_type: ServiceType) -> Optional["BasketServiceStatus"]:
        for row in self.service_statuses:
            if row.service_type == service_type:
                return row
        return None

    def __repr__(self) -> str:
        return f"<Basket order={self.order_id} #{self.basket_number}>"


class BasketServiceStatus(Base):
    """Progress of one service on one basket."""

    __tablename__ = "basket_service_status"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False
    )
    basket_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("order_baskets.id", ondelete="CASCADE"), nullable=False
    )
    basket_number: Mapped[int] = mapped_column(Integer, nullable=False)
    service_type: Mapped[ServiceType] = mapped_column(
        SAEnum(
            ServiceType,
            name="service_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    sequence: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    status: Mapped[UnitStatus] = mapped_column(
        SAEnum(
            UnitStatus,
            name="unit_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=UnitStatus.PENDING,
        nullable=False,
    )
    started_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    started_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    basket: Mapped["Basket"] = relationship(back_populates="service_statuses")

    __table_args__ = (
        UniqueConstraint(
            "order_id",
            "basket_number",
            "service_type",
            name="uq_basket_service_status",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<BasketServiceStatus #{self.basket_number} "
            f"{self.service_type.value}={self.status.value}>"
        )
