"""FastAPI application for the Laundry Service."""

from fastapi import FastAPI
from libs.common.error_handler import add_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.rate_limit import limiter, rate_limit_exceeded_handler
from services.laundry_service.routers import (
    analytics_router,
    catalog_router,
    customers_router,
    inventory_router,
    notifications_router,
    orders_router,
    staff_router,
)
from slowapi.errors import RateLimitExceeded


def create_app() -> FastAPI:
    """Create and configure the Laundry Service FastAPI app."""
    app = FastAPI(
        title="Katflix Laundry Service",
        version="0.1.0",
        description="Point-of-sale, fulfillment tracking and inventory for a laundry shop.",
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    add_observability_middleware(app)
    add_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "laundry"}

    # Counter and floor staff
    app.include_router(orders_router)
    app.include_router(inventory_router)
    app.include_router(catalog_router)
    app.include_router(customers_router)
    app.include_router(analytics_router)
    app.include_router(staff_router)

    # Customer app
    app.include_router(notifications_router)

    return app


app = create_app()
