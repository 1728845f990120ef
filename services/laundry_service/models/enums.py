"""Enums for the Laundry Service models."""

import enum
from typing import Optional


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class OrderSource(str, enum.Enum):
    POS = "pos"
    MOBILE = "mobile"
    APP = "app"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    FOR_PICKUP = "for_pick-up"
    DELIVERING = "delivering"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BasketStatus(str, enum.Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"


class ServiceType(str, enum.Enum):
    WASH = "wash"
    DRY = "dry"
    SPIN = "spin"
    IRON = "iron"
    FOLD = "fold"


class ServiceTier(str, enum.Enum):
    BASIC = "basic"
    PREMIUM = "premium"


class UnitStatus(str, enum.Enum):
    """Status of one service row or one handling phase."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    SKIPPED = "skipped"


class ServiceAction(str, enum.Enum):
    START = "start"
    COMPLETE = "complete"
    SKIP = "skip"


class HandlingStage(str, enum.Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class HandlingAction(str, enum.Enum):
    START = "start"
    COMPLETE = "complete"


class StaffRoleName(str, enum.Enum):
    ADMIN = "admin"
    CASHIER = "cashier"
    ATTENDANT = "attendant"
    RIDER = "rider"


class TransactionType(str, enum.Enum):
    ORDER = "order"
    ADJUSTMENT = "adjustment"
    RETURN = "return"
    RESTOCK = "restock"
    DAMAGE = "damage"


class AdjustmentDirection(str, enum.Enum):
    ADD = "add"
    SUBTRACT = "subtract"


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    GCASH = "gcash"


class LoyaltyTier(str, enum.Enum):
    TIER1 = "tier1"
    TIER2 = "tier2"


class OrderEventType(str, enum.Enum):
    ORDER_CREATED = "order_created"
    ORDER_APPROVED = "order_approved"
    SERVICE_STARTED = "service_started"
    SERVICE_COMPLETED = "service_completed"
    SERVICE_SKIPPED = "service_skipped"
    HANDLING_STARTED = "handling_started"
    HANDLING_COMPLETED = "handling_completed"
    ORDER_STATUS_CHANGED = "order_status_changed"
    ORDER_COMPLETED = "order_completed"
    ORDER_REJECTED = "order_rejected"
    ORDER_CANCELLED = "order_cancelled"


class OutboxStatus(str, enum.Enum):
    PENDING = "pending"
    DISPATCHED = "dispatched"
    FAILED = "failed"


class NotificationStatus(str, enum.Enum):
    SENT = "sent"
    FAILED = "failed"
    NO_DEVICE = "no_device"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED})
ACTIVE_ORDER_STATUSES = (
    OrderStatus.PENDING,
    OrderStatus.PROCESSING,
    OrderStatus.FOR_PICKUP,
    OrderStatus.DELIVERING,
)
DONE_UNIT_STATUSES = frozenset({UnitStatus.COMPLETED, UnitStatus.SKIPPED})

# Legacy spellings still sent by older clients
_ORDER_STATUS_ALIASES = {
    "for_delivery": OrderStatus.DELIVERING,
    "pick-up": OrderStatus.FOR_PICKUP,
    "for_pickup": OrderStatus.FOR_PICKUP,
}
_ORDER_SOURCE_ALIASES = {"store": OrderSource.POS}


def normalize_order_status(value: Optional[str]) -> OrderStatus:
    """Map a raw status string (including legacy aliases) to ``OrderStatus``."""
    if isinstance(value, OrderStatus):
        return value
    raw = (value or "").strip().lower()
    if raw in _ORDER_STATUS_ALIASES:
        return _ORDER_STATUS_ALIASES[raw]
    return OrderStatus(raw)


def normalize_order_source(value: Optional[str]) -> OrderSource:
    if isinstance(value, OrderSource):
        return value
    raw = (value or "").strip().lower()
    if raw in _ORDER_SOURCE_ALIASES:
        return _ORDER_SOURCE_ALIASES[raw]
    return OrderSource(raw)
