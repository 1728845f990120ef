"""ARQ worker for laundry service background tasks.

Run with: arq services.laundry_service.worker.WorkerSettings
"""

from arq import cron
from libs.common.arq_config import get_redis_settings
from libs.common.logging import get_logger

logger = get_logger(__name__)


# ── Wrapper functions (ARQ requires top-level async callables) ──


async def task_dispatch_outbox(ctx: dict):
    """Send pending order notifications and loyalty changes."""
    from services.laundry_service.tasks import dispatch_outbox

    await dispatch_outbox()


async def task_report_low_stock(ctx: dict):
    """Log products below their reorder level."""
    from services.laundry_service.tasks import report_low_stock

    logger.info("Running: report_low_stock")
    await report_low_stock()


# ── Worker configuration ──


class WorkerSettings:
    """ARQ worker settings with cron job schedules."""

    redis_settings = get_redis_settings()

    functions = [
        task_dispatch_outbox,
        task_report_low_stock,
    ]

    cron_jobs = [
        # Sweep the outbox every minute
        cron(task_dispatch_outbox, run_at_startup=True),
        # Morning stock check (7 AM Manila / 11 PM UTC)
        cron(task_report_low_stock, hour=23, minute=0, run_at_startup=False),
    ]
