"""Laundry Service schemas package.

Re-exports all schemas so routers import from one place.
When adding a new schema, add its import and __all__ entry.
"""

from services.laundry_service.schemas.catalog import (  # noqa: F401
    LaundryServiceCreate,
    LaundryServiceResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from services.laundry_service.schemas.customers import (  # noqa: F401
    CustomerCreate,
    CustomerResponse,
    DeviceRegistrationRequest,
    NotificationListResponse,
    NotificationResponse,
)
from services.laundry_service.schemas.inventory import (  # noqa: F401
    AdjustQuantityRequest,
    TransactionCreateRequest,
    TransactionCreateResponse,
    TransactionListResponse,
    TransactionResponse,
)
from services.laundry_service.schemas.orders import (  # noqa: F401
    ApproveOrderRequest,
    BasketResponse,
    CancelOrderRequest,
    CustomerData,
    HandlingUpdateRequest,
    HandlingUpdateResponse,
    MobileOrderCreateRequest,
    ModifyOrderRequest,
    OrderCreateResponse,
    OrderEnvelope,
    OrderListResponse,
    OrderResponse,
    PosOrderCreateRequest,
    RejectOrderRequest,
    ServiceStatusResponse,
    ServiceUpdateRequest,
    ServiceUpdateResponse,
)
from services.laundry_service.schemas.staff import (  # noqa: F401
    DeliveryQueueEntry,
    DeliveryQueueResponse,
    StaffCreate,
    StaffResponse,
    StaffUpdate,
)

__all__ = [
    # Catalog
    "LaundryServiceCreate",
    "LaundryServiceResponse",
    "ProductCreate",
    "ProductResponse",
    "ProductUpdate",
    # Customers
    "CustomerCreate",
    "CustomerResponse",
    "DeviceRegistrationRequest",
    "NotificationListResponse",
    "NotificationResponse",
    # Inventory
    "AdjustQuantityRequest",
    "TransactionCreateRequest",
    "TransactionCreateResponse",
    "TransactionListResponse",
    "TransactionResponse",
    # Orders
    "ApproveOrderRequest",
    "BasketResponse",
    "CancelOrderRequest",
    "CustomerData",
    "HandlingUpdateRequest",
    "HandlingUpdateResponse",
    "MobileOrderCreateRequest",
    "ModifyOrderRequest",
    "OrderCreateResponse",
    "OrderEnvelope",
    "OrderListResponse",
    "OrderResponse",
    "PosOrderCreateRequest",
    "RejectOrderRequest",
    "ServiceStatusResponse",
    "ServiceUpdateRequest",
    "ServiceUpdateResponse",
    # Staff
    "DeliveryQueueEntry",
    "DeliveryQueueResponse",
    "StaffCreate",
    "StaffResponse",
    "StaffUpdate",
]
