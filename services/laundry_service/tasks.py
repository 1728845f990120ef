"""Background tasks run by the laundry ARQ worker."""

from libs.common.logging import get_logger
from libs.common.push import get_push_client
from libs.db.session import get_async_db
from services.laundry_service.services import analytics
from services.laundry_service.services.dispatcher import dispatch_pending

logger = get_logger(__name__)


async def dispatch_outbox() -> int:
    """Deliver order events the request path did not get to.

    Covers pushes that failed inline and events left behind by a crash
    between commit and dispatch.
    """
    async for db in get_async_db():
        dispatched = await dispatch_pending(db, get_push_client())
        if dispatched:
            logger.info("Outbox sweep dispatched %d events", dispatched)
        return dispatched
    return 0


async def report_low_stock() -> list[dict]:
    """Log every active product that has fallen below its reorder level."""
    async for db in get_async_db():
        stats = await analytics.product_stats(db)
        for product in stats["lowStockProducts"]:
            logger.warning(
                "Low stock: %s has %d left (reorder level %d)",
                product["item_name"],
                product["quantity"],
                product["reorder_level"],
            )
        return stats["lowStockProducts"]
    return []
