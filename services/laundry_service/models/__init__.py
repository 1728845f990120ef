"""Laundry Service models package.

Re-exports all models and enums so that:
  - ``from services.laundry_service.models import Order`` works
  - Alembic env.py sees every table through a single import
  - SQLAlchemy's mapper registry resolves string relationships on import

When adding a new model, add both its import and its __all__ entry.
"""

from services.laundry_service.models.catalog import (  # noqa: F401
    LaundryService,
    Product,
)
from services.laundry_service.models.core import Customer, Staff, StaffRole  # noqa: F401
from services.laundry_service.models.enums import (  # noqa: F401
    ACTIVE_ORDER_STATUSES,
    DONE_UNIT_STATUSES,
    TERMINAL_ORDER_STATUSES,
    AdjustmentDirection,
    BasketStatus,
    HandlingAction,
    HandlingStage,
    LoyaltyTier,
    NotificationStatus,
    OrderEventType,
    OrderSource,
    OrderStatus,
    OutboxStatus,
    PaymentMethod,
    ServiceAction,
    ServiceTier,
    ServiceType,
    StaffRoleName,
    TransactionType,
    UnitStatus,
    normalize_order_source,
    normalize_order_status,
)
from services.laundry_service.models.events import Notification, OrderEvent  # noqa: F401
from services.laundry_service.models.inventory import ProductTransaction  # noqa: F401
from services.laundry_service.models.orders import (  # noqa: F401
    Basket,
    BasketServiceStatus,
    Order,
)

__all__ = [
    # Enums
    "ACTIVE_ORDER_STATUSES",
    "DONE_UNIT_STATUSES",
    "TERMINAL_ORDER_STATUSES",
    "AdjustmentDirection",
    "BasketStatus",
    "HandlingAction",
    "HandlingStage",
    "LoyaltyTier",
    "NotificationStatus",
    "OrderEventType",
    "OrderSource",
    "OrderStatus",
    "OutboxStatus",
    "PaymentMethod",
    "ServiceAction",
    "ServiceTier",
    "ServiceType",
    "StaffRoleName",
    "TransactionType",
    "UnitStatus",
    "normalize_order_source",
    "normalize_order_status",
    # People
    "Customer",
    "Staff",
    "StaffRole",
    # Catalog
    "LaundryService",
    "Product",
    # Orders
    "Order",
    "Basket",
    "BasketServiceStatus",
    # Inventory
    "ProductTransaction",
    # Events
    "OrderEvent",
    "Notification",
]
