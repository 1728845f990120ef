"""Pure helpers over the order ``breakdown`` and ``handling`` documents.

Nothing here touches the database. Order operations call these to decide
which service rows a basket needs, to recompute the summary server-side and
to normalise the pickup/delivery phases before they are stored.
"""

import copy
from typing import Any, Iterable, Mapping, Optional

from libs.common.errors import ValidationError
from services.laundry_service.models.enums import (
    HandlingStage,
    LoyaltyTier,
    PaymentMethod,
    ServiceType,
    UnitStatus,
)

# Addresses that mean "the customer comes to the counter"
IN_STORE_SENTINELS = frozenset({"in-store", "store"})

# Execution order of services inside a basket
SERVICE_SEQUENCE = (
    ServiceType.WASH,
    ServiceType.DRY,
    ServiceType.SPIN,
    ServiceType.IRON,
    ServiceType.FOLD,
)

# Non-VAT fees that add to the total; VAT is inclusive and informational
ADDITIVE_FEE_TYPES = frozenset({"staff_service_fee", "delivery_fee"})
VAT_RATE = 0.12

ADDITIONAL_DRY_PRICE_PER_INCREMENT = 15.0
ADDITIONAL_DRY_MINUTES_PER_INCREMENT = 8

# Points spent and percentage taken off the gross for each redemption tier
LOYALTY_TIERS = {
    LoyaltyTier.TIER1: (10, 0.05),
    LoyaltyTier.TIER2: (20, 0.15),
}

OFF = "off"


def _money(value: Any) -> float:
    try:
        return round(float(value or 0), 2)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid amount: {value!r}")


# ---------------------------------------------------------------------------
# Services per basket
# ---------------------------------------------------------------------------


def _is_on(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() not in ("", OFF)
    return bool(value)


def expected_services(services: Optional[Mapping[str, Any]]) -> list[ServiceType]:
    """Return the services elected for a basket, in execution order.

    wash/dry are tiered ("basic", "premium" or "off"), spin is a flag,
    iron is driven by ``iron_weight_kg`` and fold is a flag or "off".
    """
    services = services or {}
    elected = []
    if _is_on(services.get("wash")):
        elected.append(ServiceType.WASH)
    if _is_on(services.get("dry")):
        elected.append(ServiceType.DRY)
    if services.get("spin") is True:
        elected.append(ServiceType.SPIN)
    try:
        iron_kg = float(services.get("iron_weight_kg") or 0)
    except (TypeError, ValueError):
        iron_kg = 0
    if iron_kg > 0:
        elected.append(ServiceType.IRON)
    if _is_on(services.get("fold")):
        elected.append(ServiceType.FOLD)
    return elected


def count_expected_services(baskets: Iterable[Mapping[str, Any]]) -> int:
    return sum(len(expected_services(b.get("services"))) for b in baskets)


def service_tier(services: Mapping[str, Any], service_type: ServiceType) -> Optional[str]:
    """Tier string used to look up catalog pricing ("basic", "premium" or None)."""
    if service_type in (ServiceType.WASH, ServiceType.DRY):
        value = services.get(service_type.value)
        return value if isinstance(value, str) else None
    return None


def enrich_basket_pricing(
    basket: Mapping[str, Any], pricing: Mapping[str, Mapping[str, Any]]
) -> dict:
    """Attach catalog pricing snapshots to a basket's services.

    ``pricing`` maps ``"service_type:tier"`` (tier empty for tierless
    services) to ``{name, tier, base_price, rate_per_kg}``.
    """
    enriched = copy.deepcopy(dict(basket))
    services = dict(enriched.get("services") or {})
    for service_type in expected_services(services):
        tier = service_tier(services, service_type) or ""
        services[f"{service_type.value}_pricing"] = dict(
            pricing.get(f"{service_type.value}:{tier}", {})
        )

    extra_minutes = int(services.get("additional_dry_time_minutes") or 0)
    if extra_minutes > 0:
        services["additional_dry_time_pricing"] = {
            "price_per_increment": ADDITIONAL_DRY_PRICE_PER_INCREMENT,
            "minutes_per_increment": ADDITIONAL_DRY_MINUTES_PER_INCREMENT,
            "total_minutes": extra_minutes,
            "total_price": round(
                extra_minutes
                / ADDITIONAL_DRY_MINUTES_PER_INCREMENT
                * ADDITIONAL_DRY_PRICE_PER_INCREMENT,
                2,
            ),
        }
    enriched["services"] = services
    return enriched


# ---------------------------------------------------------------------------
# Validation + totals
# ---------------------------------------------------------------------------


def _non_negative(value: Any, label: str) -> None:
    if _money(value) < 0:
        raise ValidationError(f"{label} must not be negative")


def validate_breakdown(breakdown: Mapping[str, Any]) -> None:
    if not isinstance(breakdown, Mapping):
        raise ValidationError("breakdown must be an object")

    items = breakdown.get("items") or []
    baskets = breakdown.get("baskets") or []
    if not items and not baskets:
        raise ValidationError("Order must contain at least one item or basket")

    for item in items:
        if not item.get("product_id"):
            raise ValidationError("Every item needs a product_id")
        quantity = item.get("quantity")
        if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
            raise ValidationError(
                f"Item quantity must be a positive integer (product {item.get('product_id')})"
            )
        _non_negative(item.get("unit_price"), "Item unit_price")

    seen = set()
    for basket in baskets:
        number = basket.get("basket_number")
        if not isinstance(number, int) or isinstance(number, bool) or number <= 0:
            raise ValidationError("basket_number must be a positive integer")
        if number in seen:
            raise ValidationError(f"Duplicate basket_number {number}")
        seen.add(number)
        _non_negative(basket.get("subtotal"), f"Basket {number} subtotal")
        _non_negative(basket.get("weight_kg"), f"Basket {number} weight_kg")

    for fee in breakdown.get("fees") or []:
        _non_negative(fee.get("amount"), f"Fee {fee.get('type')} amount")


def loyalty_redemption(tier: Optional[LoyaltyTier]) -> Optional[dict]:
    """Redemption record stored on the breakdown, or None without a tier."""
    if tier is None:
        return None
    points, rate = LOYALTY_TIERS[tier]
    return {"tier": tier.value, "points_used": points, "discount_rate": rate}


def loyalty_rate(breakdown: Optional[Mapping[str, Any]]) -> float:
    """Discount rate of a breakdown already stored on an order."""
    redemption = (breakdown or {}).get("loyalty") or {}
    return float(redemption.get("discount_rate") or 0)


def compute_summary(breakdown: Mapping[str, Any], discount_rate: float = 0.0) -> dict:
    """Return a copy of ``breakdown`` with item subtotals and summary recomputed.

    total = Σ item quantity × unit_price + Σ basket subtotal + additive fees
    − loyalty discount, floored at zero. The discount is ``discount_rate`` of
    that gross; any summary sent by a client is discarded. VAT is carved out
    of the total.
    """
    result = copy.deepcopy(dict(breakdown))
    items = result.get("items") or []
    baskets = result.get("baskets") or []
    fees = result.get("fees") or []

    subtotal_products = 0.0
    for item in items:
        line = _money(item.get("unit_price")) * int(item.get("quantity") or 0)
        item["subtotal"] = round(line, 2)
        subtotal_products += line

    subtotal_services = sum(_money(b.get("subtotal")) for b in baskets)

    fee_totals = {fee_type: 0.0 for fee_type in ADDITIVE_FEE_TYPES}
    for fee in fees:
        if fee.get("type") in ADDITIVE_FEE_TYPES:
            fee_totals[fee["type"]] += _money(fee.get("amount"))

    gross = subtotal_products + subtotal_services + sum(fee_totals.values())
    loyalty_discount = round(gross * discount_rate, 2)
    total = round(max(gross - loyalty_discount, 0.0), 2)
    vat_amount = round(total * VAT_RATE / (1 + VAT_RATE), 2)

    result["items"] = items
    result["baskets"] = baskets
    result["fees"] = fees
    result["summary"] = {
        "subtotal_products": round(subtotal_products, 2),
        "subtotal_services": round(subtotal_services, 2),
        "staff_service_fee": round(fee_totals["staff_service_fee"], 2),
        "delivery_fee": round(fee_totals["delivery_fee"], 2),
        "subtotal_before_vat": round(total - vat_amount, 2),
        "vat_amount": vat_amount,
        "loyalty_discount": loyalty_discount,
        "total": total,
    }
    return result


def consumed_items(breakdown: Optional[Mapping[str, Any]]) -> dict[str, int]:
    """Total quantity per product_id across a breakdown's line items."""
    totals: dict[str, int] = {}
    for item in (breakdown or {}).get("items") or []:
        product_id = str(item["product_id"])
        totals[product_id] = totals.get(product_id, 0) + int(item.get("quantity") or 0)
    return totals


def append_audit_entry(breakdown: Mapping[str, Any], entry: dict) -> dict:
    result = copy.deepcopy(dict(breakdown or {}))
    result["audit_log"] = list(result.get("audit_log") or []) + [entry]
    return result


# ---------------------------------------------------------------------------
# Handling
# ---------------------------------------------------------------------------


def is_in_store(address: Optional[str]) -> bool:
    if address is None:
        return True
    cleaned = str(address).strip().lower()
    return not cleaned or cleaned in IN_STORE_SENTINELS


def _phase(raw: Any) -> dict:
    phase = dict(raw) if isinstance(raw, Mapping) else {}
    address = phase.get("address")
    if is_in_store(address):
        phase["status"] = UnitStatus.SKIPPED.value
    else:
        status = phase.get("status") or UnitStatus.PENDING.value
        if status not in {s.value for s in UnitStatus}:
            raise ValidationError(f"Invalid handling status: {status}")
        phase["status"] = status
    phase.setdefault("address", address)
    for key in ("started_at", "completed_at", "started_by", "completed_by"):
        phase.setdefault(key, None)
    return phase


def normalize_handling(handling: Optional[Mapping[str, Any]]) -> dict:
    """Resolve in-store phases to ``skipped`` and default the rest to ``pending``.

    Keys other than pickup/delivery (payment method, amount paid, notes) are
    preserved as sent.
    """
    result = copy.deepcopy(dict(handling or {}))
    for stage in HandlingStage:
        result[stage.value] = _phase(result.get(stage.value))

    method = result.get("payment_method")
    if method is not None:
        method = str(method).strip().lower()
        if method not in {m.value for m in PaymentMethod}:
            raise ValidationError(f"Invalid payment method: {method}")
        result["payment_method"] = method
    return result


def handling_status(handling: Optional[Mapping[str, Any]], stage: HandlingStage) -> UnitStatus:
    phase = (handling or {}).get(stage.value) or {}
    return UnitStatus(phase.get("status") or UnitStatus.SKIPPED.value)


def open_handling_stage(handling: Optional[Mapping[str, Any]]) -> Optional[HandlingStage]:
    """The phase a rider still has to run: pickup first, then delivery."""
    for stage in (HandlingStage.PICKUP, HandlingStage.DELIVERY):
        if handling_status(handling, stage) in (UnitStatus.PENDING, UnitStatus.IN_PROGRESS):
            return stage
    return None
