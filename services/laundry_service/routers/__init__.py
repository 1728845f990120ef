"""Laundry service routers."""

from services.laundry_service.routers.analytics import router as analytics_router
from services.laundry_service.routers.catalog import router as catalog_router
from services.laundry_service.routers.customers import router as customers_router
from services.laundry_service.routers.inventory import router as inventory_router
from services.laundry_service.routers.notifications import router as notifications_router
from services.laundry_service.routers.orders import router as orders_router
from services.laundry_service.routers.staff import router as staff_router

__all__ = [
    "analytics_router",
    "catalog_router",
    "customers_router",
    "inventory_router",
    "notifications_router",
    "orders_router",
    "staff_router",
]
