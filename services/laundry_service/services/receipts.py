"""Receipt summary and 40-column plaintext rendering for thermal printers."""

from typing import Any, Optional

from libs.common.config import get_settings
from services.laundry_service.models import Customer, Order

WIDTH = 40
CURRENCY = "₱"


def build_receipt(order: Order, customer: Customer) -> dict[str, Any]:
    """Receipt summary returned by order creation and the receipt endpoint."""
    breakdown = order.breakdown or {}
    handling = order.handling or {}
    total = float(order.total_amount)

    change = None
    amount_paid = handling.get("amount_paid")
    if amount_paid is not None:
        change = round(max(float(amount_paid) - total, 0.0), 2)

    return {
        "order_id": str(order.id),
        "customer_name": customer.full_name,
        "items": breakdown.get("items") or [],
        "baskets": breakdown.get("baskets") or [],
        "summary": breakdown.get("summary") or {},
        "total": total,
        "payment_method": handling.get("payment_method"),
        "amount_paid": amount_paid,
        "change": change,
        "timestamp": order.created_at.isoformat() if order.created_at else None,
    }


def _money(amount: float) -> str:
    return f"{CURRENCY}{amount:.2f}"


def _line(label: str, value: Optional[Any] = None) -> str:
    if value is None:
        return label[:WIDTH]
    text = _money(value) if isinstance(value, (int, float)) else str(value)
    room = WIDTH - len(text) - 1
    label = label[: max(room, 1)]
    return f"{label}{' ' * (WIDTH - len(label) - len(text))}{text}"[:WIDTH]


def _rule(char: str = "-") -> str:
    return char * WIDTH


def _basket_lines(basket: dict) -> list[str]:
    services = basket.get("services") or {}
    lines = [f"Basket {basket.get('basket_number')} ({basket.get('weight_kg', 0)}kg)"[:WIDTH]]

    for key, label in (("wash", "Wash"), ("dry", "Dry")):
        value = services.get(key)
        if value and value != "off":
            pricing = services.get(f"{key}_pricing") or {}
            name = pricing.get("name") or value
            lines.append(_line(f"  {label} ({name})", float(pricing.get("base_price") or 0)))
    if services.get("spin") is True:
        pricing = services.get("spin_pricing") or {}
        lines.append(_line("  Spin", float(pricing.get("base_price") or 0)))
    minutes = services.get("additional_dry_time_minutes") or 0
    if minutes:
        pricing = services.get("additional_dry_time_pricing") or {}
        lines.append(_line(f"  Extra Dry ({minutes}m)", float(pricing.get("total_price") or 0)))
    iron_kg = float(services.get("iron_weight_kg") or 0)
    if iron_kg > 0:
        pricing = services.get("iron_pricing") or {}
        lines.append(_line(f"  Iron ({iron_kg:g}kg)", float(pricing.get("base_price") or 0) * iron_kg))
    if services.get("fold") and services.get("fold") != "off":
        lines.append(_line("  Fold"))
    bags = services.get("plastic_bags") or 0
    if bags:
        lines.append(_line(f"  Bags ({bags}pc)"))

    lines.append(_line("  Subtotal:", float(basket.get("subtotal") or 0)))
    return lines


def format_plaintext(receipt: dict[str, Any]) -> str:
    """Render a receipt summary as fixed-width text."""
    short_id = receipt["order_id"].split("-")[0].upper()
    business = get_settings().BUSINESS_NAME.upper()
    lines = [
        _rule("="),
        business.center(WIDTH).rstrip(),
        "ORDER RECEIPT".center(WIDTH).rstrip(),
        _rule("="),
        "",
        _line("Order ID:", short_id),
        _line("Customer:", receipt.get("customer_name") or "-"),
    ]
    if receipt.get("timestamp"):
        lines.append(_line("Date/Time:", receipt["timestamp"][:16].replace("T", " ")))
    lines.append("")

    baskets = receipt.get("baskets") or []
    if baskets:
        lines += [_rule(), "LAUNDRY SERVICES".center(WIDTH).rstrip(), _rule()]
        for basket in baskets:
            lines += _basket_lines(basket)
            lines.append("")

    items = receipt.get("items") or []
    if items:
        lines += [_rule(), "PRODUCTS".center(WIDTH).rstrip(), _rule()]
        for item in items:
            quantity = int(item.get("quantity") or 0)
            unit_price = float(item.get("unit_price") or 0)
            subtotal = float(item.get("subtotal") or quantity * unit_price)
            lines.append(str(item.get("product_name") or item.get("product_id"))[:WIDTH])
            lines.append(_line(f"  {quantity}x {_money(unit_price)}", subtotal))
        lines.append("")

    summary = receipt.get("summary") or {}
    lines.append(_rule())
    for key, label in (
        ("subtotal_products", "Products:"),
        ("subtotal_services", "Services:"),
        ("staff_service_fee", "Service Fee:"),
        ("delivery_fee", "Delivery Fee:"),
        ("loyalty_discount", "Loyalty Discount:"),
        ("vat_amount", "VAT (12% incl.):"),
    ):
        if summary.get(key):
            lines.append(_line(label, float(summary[key])))
    lines.append(_rule("="))
    lines.append(_line("TOTAL:", float(receipt.get("total") or 0)))
    if receipt.get("payment_method"):
        lines.append(_line("Payment:", str(receipt["payment_method"]).upper()))
    if receipt.get("amount_paid") is not None:
        lines.append(_line("Amount Paid:", float(receipt["amount_paid"])))
    if receipt.get("change") is not None:
        lines.append(_line("Change:", float(receipt["change"])))
    lines += [_rule("="), "Thank you!".center(WIDTH).rstrip(), ""]
    return "\n".join(lines)
