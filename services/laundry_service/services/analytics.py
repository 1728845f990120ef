"""Read-only reporting over orders, products and customers."""

from collections import defaultdict
from datetime import date
from typing import Any

from libs.common.datetime_utils import inclusive_day_range
from libs.common.errors import ValidationError
from services.laundry_service.models import Customer, Order, OrderStatus, Product, ServiceType
from services.laundry_service.services import breakdown as bd
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

TOP_PRODUCTS = 15


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("endDate must not be before startDate")


async def _orders_between(
    db: AsyncSession, start: date, end: date, *, include_cancelled: bool = True
) -> list[Order]:
    _check_range(start, end)
    lower, upper = inclusive_day_range(start, end)
    query = select(Order).where(Order.created_at >= lower, Order.created_at < upper)
    if not include_cancelled:
        query = query.where(Order.status != OrderStatus.CANCELLED)
    result = await db.execute(query.order_by(Order.created_at.asc()))
    return list(result.scalars().all())


async def order_stats(db: AsyncSession, start: date, end: date) -> dict[str, Any]:
    orders = await _orders_between(db, start, end)
    breakdown = {"pickupOnly": 0, "deliveryOnly": 0, "both": 0, "inStore": 0}
    total = 0.0
    for order in orders:
        total += float(order.total_amount or 0)
        handling = order.handling or {}
        has_pickup = not bd.is_in_store((handling.get("pickup") or {}).get("address"))
        has_delivery = not bd.is_in_store((handling.get("delivery") or {}).get("address"))
        if has_pickup and has_delivery:
            breakdown["both"] += 1
        elif has_pickup:
            breakdown["pickupOnly"] += 1
        elif has_delivery:
            breakdown["deliveryOnly"] += 1
        else:
            breakdown["inStore"] += 1

    return {
        "totalOrders": len(orders),
        "avgOrderValue": round(total / len(orders), 2) if orders else 0,
        "fulfillmentBreakdown": breakdown,
    }


def _basket_service_revenue(basket: dict) -> dict[str, float]:
    services = basket.get("services") or {}
    revenue: dict[str, float] = {}
    for service_type in bd.expected_services(services):
        pricing = services.get(f"{service_type.value}_pricing") or {}
        price = float(pricing.get("base_price") or 0)
        if service_type == ServiceType.IRON:
            price *= float(services.get("iron_weight_kg") or 0)
        name = pricing.get("name") or service_type.value
        revenue[name] = revenue.get(name, 0.0) + price
    return revenue


async def revenue_stats(db: AsyncSession, start: date, end: date) -> dict[str, Any]:
    """Daily, per-product and per-service revenue. Cancelled orders are excluded."""
    orders = await _orders_between(db, start, end, include_cancelled=False)
    daily: dict[str, float] = defaultdict(float)
    products: dict[str, float] = defaultdict(float)
    services: dict[str, float] = defaultdict(float)

    for order in orders:
        daily[order.created_at.date().isoformat()] += float(order.total_amount or 0)
        document = order.breakdown or {}
        for item in document.get("items") or []:
            name = item.get("product_name") or "Unknown"
            products[name] += float(item.get("subtotal") or 0)
        for basket in document.get("baskets") or []:
            for name, amount in _basket_service_revenue(basket).items():
                services[name] += amount

    return {
        "dailyRevenue": [
            {"date": day, "revenue": round(amount, 2)} for day, amount in sorted(daily.items())
        ],
        "productRevenue": [
            {"product": name, "revenue": round(amount, 2)}
            for name, amount in sorted(products.items(), key=lambda kv: kv[1], reverse=True)[
                :TOP_PRODUCTS
            ]
        ],
        "serviceRevenue": [
            {"service": name, "revenue": round(amount, 2)}
            for name, amount in sorted(services.items(), key=lambda kv: kv[1], reverse=True)
        ],
    }


async def product_stats(db: AsyncSession) -> dict[str, Any]:
    result = await db.execute(
        select(Product).where(Product.is_active.is_(True)).order_by(Product.item_name)
    )
    products = [
        {
            "id": str(p.id),
            "item_name": p.item_name,
            "quantity": p.quantity,
            "reorder_level": p.reorder_level,
            "unit_price": p.unit_price,
        }
        for p in result.scalars().all()
    ]
    low_stock = [p for p in products if p["quantity"] < p["reorder_level"]]
    return {
        "lowStockProducts": low_stock,
        "allProducts": products,
        "totalProducts": len(products),
        "lowStockCount": len(low_stock),
    }


async def customer_stats(db: AsyncSession, start: date, end: date) -> dict[str, Any]:
    """New customers in range, and older customers who ordered in range."""
    _check_range(start, end)
    lower, upper = inclusive_day_range(start, end)

    new_customers = await db.scalar(
        select(func.count(Customer.id)).where(
            Customer.created_at >= lower, Customer.created_at < upper
        )
    )
    returning = await db.scalar(
        select(func.count(func.distinct(Order.customer_id)))
        .join(Customer, Customer.id == Order.customer_id)
        .where(
            Order.created_at >= lower,
            Order.created_at < upper,
            Customer.created_at < lower,
        )
    )
    return {"newCustomers": new_customers or 0, "returningCustomers": returning or 0}
