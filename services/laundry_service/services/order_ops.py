"""Order aggregate operations.

Every mutation follows the same shape:

1. Load the order with ``SELECT ... FOR UPDATE`` (serialises events per order)
2. Validate against the transition engine before touching anything
3. Apply the change to the order, its baskets and service rows
4. Record outbox events in the same transaction
5. Commit, or roll back the whole call on failure

Push notifications and loyalty changes are not performed here; the
dispatcher consumes the recorded events after commit.
"""

import copy
import uuid
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    CustomerNotFound,
    DependencyFailure,
    InvalidStateTransition,
    LaundryError,
    NotFound,
    OrderNotFound,
    ValidationError,
)
from libs.common.logging import get_logger
from services.laundry_service.models import (
    ACTIVE_ORDER_STATUSES,
    Basket,
    BasketServiceStatus,
    BasketStatus,
    Customer,
    HandlingAction,
    HandlingStage,
    LaundryService,
    LoyaltyTier,
    Order,
    OrderEvent,
    OrderEventType,
    OrderSource,
    OrderStatus,
    ServiceAction,
    ServiceType,
    Staff,
    UnitStatus,
)
from services.laundry_service.services import breakdown as bd
from services.laundry_service.services import inventory_ledger, transitions
from services.laundry_service.services.transitions import EventIntent, TransitionResult
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)

APPROVABLE_SOURCES = frozenset({OrderSource.MOBILE, OrderSource.APP})


@dataclass
class OrderResult:
    """An order after a mutation plus any best-effort warnings."""

    order: Order
    warnings: list[str] = field(default_factory=list)
    transition: Optional[TransitionResult] = None


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _order_query(order_id: uuid.UUID):
    return (
        select(Order)
        .where(Order.id == order_id)
        .options(selectinload(Order.baskets).selectinload(Basket.service_statuses))
        .execution_options(populate_existing=True)
    )


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    result = await db.execute(_order_query(order_id))
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFound(order_id)
    return order


async def lock_order(db: AsyncSession, order_id: uuid.UUID) -> Order:
    """Load an order for mutation, holding its row lock until commit."""
    result = await db.execute(_order_query(order_id).with_for_update(of=Order))
    order = result.scalar_one_or_none()
    if not order:
        raise OrderNotFound(order_id)
    return order


async def get_staff(db: AsyncSession, staff_id: uuid.UUID) -> Staff:
    staff = await db.get(Staff, staff_id)
    if not staff or not staff.is_active:
        raise NotFound(f"Staff member {staff_id} not found")
    return staff


async def resolve_customer(
    db: AsyncSession,
    customer_id: Optional[uuid.UUID] = None,
    customer_data: Optional[dict] = None,
) -> Customer:
    """Return an existing customer or create one from ``customer_data``."""
    if customer_id:
        customer = await db.get(Customer, customer_id)
        if not customer:
            raise CustomerNotFound(customer_id)
        return customer

    if not customer_data:
        raise ValidationError("customer_id or customer_data is required")
    missing = [
        key
        for key in ("first_name", "last_name", "phone_number")
        if not (customer_data.get(key) or "").strip()
    ]
    if missing:
        raise ValidationError(f"customer_data is missing {', '.join(missing)}")

    customer = Customer(
        first_name=customer_data["first_name"].strip(),
        last_name=customer_data["last_name"].strip(),
        phone_number=customer_data["phone_number"].strip(),
        email_address=customer_data.get("email_address"),
        address=customer_data.get("address"),
    )
    db.add(customer)
    await db.flush()
    logger.info("Created walk-in customer %s", customer.id)
    return customer


async def _redeem_loyalty(
    db: AsyncSession, customer: Customer, tier: LoyaltyTier
) -> dict:
    """Spend a redemption tier's points from the locked customer row."""
    redemption = bd.loyalty_redemption(tier)
    result = await db.execute(
        select(Customer)
        .where(Customer.id == customer.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    locked = result.scalar_one()
    if locked.loyalty_points < redemption["points_used"]:
        raise ValidationError(
            f"Not enough loyalty points for {tier.value}: "
            f"needs {redemption['points_used']}, has {locked.loyalty_points}"
        )
    locked.loyalty_points -= redemption["points_used"]
    return redemption


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _actor(staff: Optional[Staff]) -> dict:
    if staff is None:
        return {"staff_id": None, "staff_name": "system"}
    return {"staff_id": str(staff.id), "staff_name": staff.full_name}


def _audit(order: Order, action: str, staff: Optional[Staff], **details: Any) -> None:
    entry = {"action": action, "timestamp": utc_now().isoformat(), **_actor(staff)}
    entry.update(details)
    order.breakdown = bd.append_audit_entry(order.breakdown, entry)


def _record_events(
    db: AsyncSession,
    order: Order,
    intents: Iterable[EventIntent],
    staff: Optional[Staff] = None,
) -> None:
    for intent in intents:
        payload = dict(intent.payload)
        payload.setdefault("actor_id", str(staff.id) if staff else None)
        db.add(
            OrderEvent(
                order_id=order.id,
                event_type=intent.event_type,
                payload=payload,
            )
        )


def _set_order_status(order: Order, status: OrderStatus) -> None:
    order.status = status
    now = utc_now()
    if status == OrderStatus.COMPLETED:
        order.completed_at = now
    elif status == OrderStatus.CANCELLED:
        order.cancelled_at = now


def _build_baskets(order_id: uuid.UUID, baskets: list[dict]) -> list[Basket]:
    built = []
    for raw in baskets:
        services = raw.get("services") or {}
        rows = [
            BasketServiceStatus(
                order_id=order_id,
                basket_number=raw["basket_number"],
                service_type=service_type,
                sequence=bd.SERVICE_SEQUENCE.index(service_type),
                status=UnitStatus.PENDING,
            )
            for service_type in bd.expected_services(services)
        ]
        built.append(
            Basket(
                order_id=order_id,
                basket_number=raw["basket_number"],
                weight_kg=float(raw.get("weight_kg") or 0),
                services=services,
                notes=raw.get("notes"),
                price=float(raw.get("subtotal") or 0),
                status=BasketStatus.COMPLETED if not rows else BasketStatus.PROCESSING,
                service_statuses=rows,
            )
        )
    return built


def _refresh_basket_status(basket: Basket) -> None:
    if transitions.all_done(row.status for row in basket.service_statuses):
        if basket.status != BasketStatus.COMPLETED:
            basket.status = BasketStatus.COMPLETED
            basket.completed_at = utc_now()
    else:
        basket.status = BasketStatus.PROCESSING


async def _price_items(db: AsyncSession, breakdown: dict) -> dict:
    """Lock line-item products, check stock and snapshot name/price from the catalog."""
    requested = bd.consumed_items(breakdown)
    products = await inventory_ledger.check_availability(db, requested)
    priced = copy.deepcopy(breakdown)
    for item in priced.get("items") or []:
        product = products[str(item["product_id"])]
        item["product_id"] = str(product.id)
        item["product_name"] = product.item_name
        item["unit_price"] = product.unit_price
    return priced


async def _commit(db: AsyncSession, what: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.exception("Failed to commit %s", what)
        raise DependencyFailure(f"Failed to save {what}") from exc


async def _rollback_on_error(db: AsyncSession, exc: Exception, what: str) -> None:
    await db.rollback()
    if isinstance(exc, LaundryError):
        raise exc
    logger.exception("Failed to %s", what)
    raise DependencyFailure(f"Failed to {what}") from exc


# ============================================================================
# CREATE / APPROVE
# ============================================================================


async def create_order(
    db: AsyncSession,
    *,
    source: OrderSource,
    customer: Customer,
    cashier: Optional[Staff],
    breakdown: dict,
    handling: Optional[dict],
    order_note: Optional[str] = None,
    loyalty_tier: Optional[LoyaltyTier] = None,
) -> Order:
    """Place an order: stock check, then order + baskets + service rows + ledger.

    Stock is validated for every line item before anything is written. A
    loyalty tier spends the customer's points in the same transaction and
    takes its percentage off the total. Any failure rolls back the whole
    placement.
    """
    bd.validate_breakdown(breakdown)
    normalized_handling = bd.normalize_handling(handling)

    try:
        priced = await _price_items(db, breakdown)
        priced.pop("loyalty", None)
        redemption = None
        if loyalty_tier is not None:
            redemption = await _redeem_loyalty(db, customer, loyalty_tier)
            priced["loyalty"] = redemption
        summary = bd.compute_summary(priced, bd.loyalty_rate(priced))
        summary["audit_log"] = []

        order = Order(
            id=uuid.uuid4(),
            source=source,
            customer_id=customer.id,
            cashier_id=cashier.id if cashier else None,
            status=OrderStatus.PENDING,
            total_amount=summary["summary"]["total"],
            order_note=order_note,
            breakdown=summary,
            handling=normalized_handling,
        )
        order.baskets = _build_baskets(order.id, summary.get("baskets") or [])
        if redemption:
            _audit(
                order,
                "created",
                cashier,
                source=source.value,
                loyalty_points_used=redemption["points_used"],
            )
        else:
            _audit(order, "created", cashier, source=source.value)
        db.add(order)
        await db.flush()

        for product_id, quantity in bd.consumed_items(summary).items():
            await inventory_ledger.deduct(
                db,
                product_id=product_id,
                quantity=quantity,
                order_id=order.id,
                staff_id=cashier.id if cashier else None,
                notes=f"Order {order.id}",
            )

        _record_events(
            db,
            order,
            [EventIntent(OrderEventType.ORDER_CREATED, {"source": source.value})],
            cashier,
        )
        await db.commit()
    except Exception as exc:  # noqa: BLE001
        await _rollback_on_error(db, exc, "create order")

    logger.info(
        "Created %s order %s for customer %s (total=%.2f, baskets=%d)",
        source.value,
        order.id,
        customer.id,
        order.total_amount,
        len(order.baskets),
    )
    return await get_order(db, order.id)


async def approve_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    staff: Staff,
    *,
    gcash_verified: bool = False,
    notes: Optional[str] = None,
) -> Order:
    """Accept a pending mobile/app order and assign the approving cashier."""
    order = await lock_order(db, order_id)
    if order.status != OrderStatus.PENDING or order.source not in APPROVABLE_SOURCES:
        raise InvalidStateTransition(
            f"Only pending mobile orders can be approved (status={order.status.value}, "
            f"source={order.source.value})",
            current=order.status.value,
        )
    if order.approved_at is not None:
        raise InvalidStateTransition("Order is already approved")

    now = utc_now()
    order.cashier_id = order.cashier_id or staff.id
    order.approved_at = now

    breakdown = copy.deepcopy(order.breakdown)
    payment = dict(breakdown.get("payment") or {})
    payment.update(payment_status="successful", gcash_verified=gcash_verified)
    breakdown["payment"] = payment
    order.breakdown = breakdown

    for basket in order.baskets:
        basket.approved_at = now
        basket.approved_by = staff.id

    _audit(order, "approved", staff, gcash_verified=gcash_verified, notes=notes)
    _record_events(db, order, [EventIntent(OrderEventType.ORDER_APPROVED)], staff)
    await _commit(db, "order approval")

    logger.info("Order %s approved by staff %s", order.id, staff.id)
    return order


# ============================================================================
# REJECT / CANCEL
# ============================================================================


def _skip_open_services(order: Order, note: str) -> int:
    skipped = 0
    for row in order.service_rows:
        if row.status in (UnitStatus.PENDING, UnitStatus.IN_PROGRESS):
            row.status = UnitStatus.SKIPPED
            row.notes = note
            skipped += 1
    return skipped


def _work_started(order: Order) -> bool:
    if any(row.status != UnitStatus.PENDING for row in order.service_rows):
        return True
    pickup = bd.handling_status(order.handling, HandlingStage.PICKUP)
    return pickup in (UnitStatus.IN_PROGRESS, UnitStatus.COMPLETED)


async def reject_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    staff: Staff,
    *,
    reason: str,
    notes: Optional[str] = None,
) -> OrderResult:
    """Reject a pending mobile/app order: cancel it and return its stock."""
    order = await lock_order(db, order_id)
    if order.status != OrderStatus.PENDING or order.source not in APPROVABLE_SOURCES:
        raise InvalidStateTransition(
            f"Only pending mobile orders can be rejected (status={order.status.value}, "
            f"source={order.source.value})",
            current=order.status.value,
            attempted=OrderStatus.CANCELLED.value,
        )

    now = utc_now()
    _set_order_status(order, OrderStatus.CANCELLED)
    order.cancellation = {
        "type": "rejected",
        "reason": reason,
        "notes": notes,
        "cancelled_at": now.isoformat(),
        **_actor(staff),
    }
    _skip_open_services(order, f"Order rejected by {staff.full_name}")
    _audit(order, "rejected", staff, reason=reason, notes=notes)

    restored = await inventory_ledger.restore(
        db,
        bd.consumed_items(order.breakdown),
        order_id=order.id,
        staff_id=staff.id,
        notes=f"Order {order.id} rejected",
    )
    _record_events(
        db,
        order,
        [EventIntent(OrderEventType.ORDER_REJECTED, {"reason": reason})],
        staff,
    )
    await _commit(db, "order rejection")

    logger.info(
        "Order %s rejected by staff %s (%d items restored, %d failed)",
        order.id,
        staff.id,
        len(restored.restored),
        len(restored.failed_product_ids),
    )
    return OrderResult(order, restored.warnings)


async def cancel_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    staff: Staff,
    *,
    reason: Optional[str] = None,
) -> OrderResult:
    """Cancel a non-terminal order.

    Open service rows are skipped. Stock is returned only when no work has
    started; once a basket was touched the products are considered used.
    """
    order = await lock_order(db, order_id)
    transitions.ensure_cancellable(order.status)

    started = _work_started(order)
    previous = order.status
    now = utc_now()
    _set_order_status(order, OrderStatus.CANCELLED)
    order.cancellation = {
        "type": "cancelled",
        "reason": reason,
        "cancelled_at": now.isoformat(),
        "previous_status": previous.value,
        **_actor(staff),
    }
    _skip_open_services(order, f"Order cancelled by {staff.full_name}")
    _audit(order, "cancelled", staff, reason=reason, previous_status=previous.value)

    warnings: list[str] = []
    if not started:
        restored = await inventory_ledger.restore(
            db,
            bd.consumed_items(order.breakdown),
            order_id=order.id,
            staff_id=staff.id,
            notes=f"Order {order.id} cancelled",
        )
        warnings = restored.warnings

    _record_events(
        db,
        order,
        [
            EventIntent(
                OrderEventType.ORDER_CANCELLED,
                {"reason": reason, "inventory_restored": not started},
            )
        ],
        staff,
    )
    await _commit(db, "order cancellation")

    logger.info(
        "Order %s cancelled by staff %s from %s (inventory_restored=%s)",
        order.id,
        staff.id,
        previous.value,
        not started,
    )
    return OrderResult(order, warnings)


# ============================================================================
# MODIFY
# ============================================================================


async def _catalog_pricing(db: AsyncSession) -> dict[str, dict]:
    result = await db.execute(
        select(LaundryService).where(LaundryService.is_active.is_(True))
    )
    return {
        service.pricing_key: {
            "service_type": service.service_type.value,
            "tier": service.tier.value if service.tier else None,
            "name": service.name,
            "base_price": service.base_price,
            "rate_per_kg": service.rate_per_kg,
        }
        for service in result.scalars().all()
    }


async def _rebalance_inventory(
    db: AsyncSession, order: Order, new_breakdown: dict, staff: Optional[Staff]
) -> dict:
    """Move stock by the difference between old and new line items.

    Increases are stock-checked before anything moves, and every new line
    is re-priced from the catalog.
    """
    old = bd.consumed_items(order.breakdown)
    new = bd.consumed_items(new_breakdown)
    increases = {pid: new[pid] - old.get(pid, 0) for pid in new if new[pid] > old.get(pid, 0)}
    decreases = {pid: old[pid] - new.get(pid, 0) for pid in old if old[pid] > new.get(pid, 0)}

    products = await inventory_ledger.check_availability(
        db, {pid: increases.get(pid, 0) for pid in new}
    )
    priced = copy.deepcopy(new_breakdown)
    for item in priced.get("items") or []:
        product = products[str(item["product_id"])]
        item["product_id"] = str(product.id)
        item["product_name"] = product.item_name
        item["unit_price"] = product.unit_price

    staff_id = staff.id if staff else None
    for product_id, quantity in increases.items():
        await inventory_ledger.deduct(
            db,
            product_id=product_id,
            quantity=quantity,
            order_id=order.id,
            staff_id=staff_id,
            notes=f"Order {order.id} modified",
        )
    if decreases:
        restored = await inventory_ledger.restore(
            db,
            decreases,
            order_id=order.id,
            staff_id=staff_id,
            notes=f"Order {order.id} modified",
        )
        if restored.failed_product_ids:
            raise DependencyFailure(restored.warnings[0])
    return priced


async def modify_order(
    db: AsyncSession,
    order_id: uuid.UUID,
    staff: Optional[Staff],
    *,
    breakdown: Optional[dict] = None,
    customer_phone: Optional[str] = None,
    pickup_address: Optional[str] = None,
    delivery_address: Optional[str] = None,
    items: Optional[list[dict]] = None,
) -> Order:
    """Edit a pending mobile order.

    With ``breakdown`` the whole document is replaced, pricing snapshots are
    re-taken from the service catalog and baskets/service rows regenerated.
    Otherwise only the simple fields that were passed are changed.
    """
    order = await lock_order(db, order_id)
    if order.source != OrderSource.MOBILE:
        raise ValidationError("Only mobile orders can be modified")
    if order.status != OrderStatus.PENDING:
        raise InvalidStateTransition(
            "Only pending orders can be modified", current=order.status.value
        )

    try:
        if breakdown is not None:
            await _replace_breakdown(db, order, breakdown, staff)
        else:
            await _apply_simple_edits(
                db,
                order,
                staff,
                customer_phone=customer_phone,
                pickup_address=pickup_address,
                delivery_address=delivery_address,
                items=items,
            )
        order.total_amount = order.breakdown["summary"]["total"]
        await db.commit()
    except Exception as exc:  # noqa: BLE001
        await _rollback_on_error(db, exc, "modify order")

    logger.info("Order %s modified (total=%.2f)", order.id, order.total_amount)
    return await get_order(db, order.id)


async def _replace_breakdown(
    db: AsyncSession, order: Order, breakdown: dict, staff: Optional[Staff]
) -> None:
    bd.validate_breakdown(breakdown)
    pricing = await _catalog_pricing(db)
    enriched = copy.deepcopy(breakdown)
    enriched["baskets"] = [
        bd.enrich_basket_pricing(basket, pricing)
        for basket in breakdown.get("baskets") or []
    ]
    enriched["audit_log"] = list((order.breakdown or {}).get("audit_log") or [])
    if "payment" not in enriched and "payment" in (order.breakdown or {}):
        enriched["payment"] = copy.deepcopy(order.breakdown["payment"])
    # Redemption is fixed at placement
    enriched.pop("loyalty", None)
    if (order.breakdown or {}).get("loyalty"):
        enriched["loyalty"] = copy.deepcopy(order.breakdown["loyalty"])

    priced = await _rebalance_inventory(db, order, enriched, staff)
    new_breakdown = bd.compute_summary(priced, bd.loyalty_rate(order.breakdown))

    # Old rows must be gone before the replacements reuse their basket numbers
    order.baskets.clear()
    await db.flush()
    order.baskets.extend(_build_baskets(order.id, new_breakdown.get("baskets") or []))

    order.breakdown = new_breakdown
    _audit(
        order,
        "modified",
        staff,
        mode="breakdown",
        service_rows=bd.count_expected_services(new_breakdown.get("baskets") or []),
    )


async def _apply_simple_edits(
    db: AsyncSession,
    order: Order,
    staff: Optional[Staff],
    *,
    customer_phone: Optional[str],
    pickup_address: Optional[str],
    delivery_address: Optional[str],
    items: Optional[list[dict]],
) -> None:
    changed = []
    if customer_phone is not None:
        customer = await db.get(Customer, order.customer_id)
        customer.phone_number = customer_phone
        changed.append("customer_phone")

    if pickup_address is not None or delivery_address is not None:
        handling = copy.deepcopy(order.handling or {})
        for stage, address in (
            (HandlingStage.PICKUP, pickup_address),
            (HandlingStage.DELIVERY, delivery_address),
        ):
            if address is None:
                continue
            phase = dict(handling.get(stage.value) or {})
            phase["address"] = address
            phase.pop("status", None)
            handling[stage.value] = phase
            changed.append(f"{stage.value}_address")
        order.handling = bd.normalize_handling(handling)

    if items:
        candidate = copy.deepcopy(order.breakdown)
        candidate["items"] = items
        bd.validate_breakdown(candidate)
        priced = await _rebalance_inventory(db, order, candidate, staff)
        order.breakdown = bd.compute_summary(priced, bd.loyalty_rate(order.breakdown))
        changed.append("items")
    else:
        order.breakdown = bd.compute_summary(order.breakdown, bd.loyalty_rate(order.breakdown))

    if not changed:
        raise ValidationError("Nothing to modify")
    _audit(order, "modified", staff, mode="fields", fields=changed)


# ============================================================================
# FULFILLMENT EVENTS
# ============================================================================


def _apply_transition(
    db: AsyncSession, order: Order, result: TransitionResult, staff: Optional[Staff]
) -> None:
    if transitions.is_first_activity(result.previous_order_status, result):
        if order.cashier_id is None and staff is not None:
            order.cashier_id = staff.id
    if result.order_status_changed:
        _set_order_status(order, result.order_status)
    _record_events(db, order, result.events, staff)


async def advance_service(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    basket_number: int,
    service_type: ServiceType,
    action: ServiceAction,
    staff: Optional[Staff],
    notes: Optional[str] = None,
) -> OrderResult:
    """Start, complete or skip one service on one basket and cascade."""
    order = await lock_order(db, order_id)
    transitions.ensure_active(order.status)

    basket = order.basket(basket_number)
    if basket is None:
        raise NotFound(f"Basket {basket_number} not found on order {order.id}")
    row = basket.service(service_type)
    if row is None:
        raise NotFound(
            f"Service {service_type.value} is not part of basket {basket_number}"
        )

    result = transitions.apply_service_event(
        order.status,
        basket_number=basket_number,
        service_type=service_type.value,
        current=row.status,
        action=action,
        other_services=[r.status for r in order.service_rows if r is not row],
        pickup=bd.handling_status(order.handling, HandlingStage.PICKUP),
        delivery=bd.handling_status(order.handling, HandlingStage.DELIVERY),
    )

    now = utc_now()
    staff_id = staff.id if staff else None
    row.status = result.unit_status
    if result.unit_status == UnitStatus.IN_PROGRESS:
        row.started_at, row.started_by = now, staff_id
    elif result.unit_status == UnitStatus.COMPLETED:
        row.completed_at, row.completed_by = now, staff_id
        if row.started_at is None:
            row.started_at, row.started_by = now, staff_id
    if notes is not None:
        row.notes = notes

    _refresh_basket_status(basket)
    _apply_transition(db, order, result, staff)
    await _commit(db, "service progress")

    logger.info(
        "Order %s basket %d %s -> %s (order %s -> %s)",
        order.id,
        basket_number,
        service_type.value,
        result.unit_status.value,
        result.previous_order_status.value,
        result.order_status.value,
    )
    return OrderResult(order, transition=result)


async def advance_handling(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    stage: HandlingStage,
    action: HandlingAction,
    staff: Optional[Staff],
) -> OrderResult:
    """Start or complete the pickup or delivery phase and cascade."""
    order = await lock_order(db, order_id)
    transitions.ensure_active(order.status)

    result = transitions.apply_handling_event(
        order.status,
        stage=stage,
        action=action,
        pickup=bd.handling_status(order.handling, HandlingStage.PICKUP),
        delivery=bd.handling_status(order.handling, HandlingStage.DELIVERY),
        services=[r.status for r in order.service_rows],
    )

    now = utc_now().isoformat()
    staff_id = str(staff.id) if staff else None
    handling = copy.deepcopy(order.handling or {})
    phase = dict(handling.get(stage.value) or {})
    phase["status"] = result.unit_status.value
    if result.unit_status == UnitStatus.IN_PROGRESS:
        phase["started_at"], phase["started_by"] = now, staff_id
    else:
        phase["completed_at"], phase["completed_by"] = now, staff_id
        if not phase.get("started_at"):
            phase["started_at"], phase["started_by"] = now, staff_id
    handling[stage.value] = phase
    order.handling = handling

    _apply_transition(db, order, result, staff)
    await _commit(db, "handling progress")

    logger.info(
        "Order %s %s -> %s (order %s -> %s)",
        order.id,
        stage.value,
        result.unit_status.value,
        result.previous_order_status.value,
        result.order_status.value,
    )
    return OrderResult(order, transition=result)


# ============================================================================
# QUERIES
# ============================================================================


async def list_active_orders(db: AsyncSession, limit: int = 200) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.status.in_(ACTIVE_ORDER_STATUSES))
        .options(selectinload(Order.baskets).selectinload(Basket.service_statuses))
        .order_by(Order.created_at.asc())
        .limit(limit)
    )
    return list(result.scalars().all())


async def list_handling_queue(
    db: AsyncSession, stage: Optional[HandlingStage] = None
) -> list[tuple[Order, HandlingStage]]:
    """Active orders with a pickup or delivery still to run, oldest first."""
    queue = []
    for order in await list_active_orders(db):
        open_stage = bd.open_handling_stage(order.handling)
        if open_stage is None or (stage is not None and open_stage != stage):
            continue
        queue.append((order, open_stage))
    return queue
