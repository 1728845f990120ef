"""Order placement and fulfillment endpoints."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import PlainTextResponse
from libs.common.errors import ValidationError
from libs.common.logging import get_logger
from libs.common.push import PushClient
from libs.common.rate_limit import customer_write_limit
from libs.db.session import get_async_db
from services.laundry_service.dependencies import (
    get_current_customer,
    get_push,
    require_capability,
)
from services.laundry_service.models import (
    Basket,
    Customer,
    HandlingStage,
    Order,
    OrderSource,
    Staff,
    normalize_order_status,
)
from services.laundry_service.routers._helpers import dispatch_events, order_response
from services.laundry_service.schemas import (
    ApproveOrderRequest,
    CancelOrderRequest,
    DeliveryQueueEntry,
    DeliveryQueueResponse,
    HandlingUpdateRequest,
    HandlingUpdateResponse,
    MobileOrderCreateRequest,
    ModifyOrderRequest,
    OrderCreateResponse,
    OrderEnvelope,
    OrderListResponse,
    PosOrderCreateRequest,
    RejectOrderRequest,
    ServiceUpdateRequest,
    ServiceUpdateResponse,
)
from services.laundry_service.services import order_ops, receipts
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

router = APIRouter(prefix="/orders", tags=["orders"])
logger = get_logger(__name__)


# ============================================================================
# CREATE
# ============================================================================


@router.post(
    "/pos/create",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_pos_order(
    payload: PosOrderCreateRequest,
    staff: Staff = Depends(require_capability("orders", "create")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    """Place a counter order and deduct its products from stock."""
    customer = await order_ops.resolve_customer(
        db,
        customer_id=payload.customer_id,
        customer_data=payload.customer_data.model_dump() if payload.customer_data else None,
    )
    order = await order_ops.create_order(
        db,
        source=OrderSource.POS,
        customer=customer,
        cashier=staff,
        breakdown=payload.breakdown,
        handling=payload.handling,
        order_note=payload.order_note,
        loyalty_tier=payload.loyalty_tier,
    )
    response = OrderCreateResponse(
        order_id=order.id,
        receipt=receipts.build_receipt(order, customer),
        order=order_response(order),
    )
    await dispatch_events(db, push, order.id)
    return response


@router.post(
    "/mobile/create",
    response_model=OrderCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
@customer_write_limit
async def create_mobile_order(
    request: Request,
    payload: MobileOrderCreateRequest,
    customer: Customer = Depends(get_current_customer),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    """Place an order from the customer app. It waits for cashier approval."""
    order = await order_ops.create_order(
        db,
        source=OrderSource.MOBILE,
        customer=customer,
        cashier=None,
        breakdown=payload.breakdown,
        handling=payload.handling,
        order_note=payload.order_note,
        loyalty_tier=payload.loyalty_tier,
    )
    response = OrderCreateResponse(
        order_id=order.id,
        receipt=receipts.build_receipt(order, customer),
        order=order_response(order),
    )
    await dispatch_events(db, push, order.id)
    return response


# ============================================================================
# QUERIES
# ============================================================================


@router.get("", response_model=OrderListResponse)
async def list_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    staff: Staff = Depends(require_capability("orders", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders, newest first. Accepts legacy status spellings."""
    query = select(Order)
    count_query = select(func.count(Order.id))
    if status_filter:
        try:
            wanted = normalize_order_status(status_filter)
        except ValueError:
            raise ValidationError(f"Unknown order status: {status_filter}")
        query = query.where(Order.status == wanted)
        count_query = count_query.where(Order.status == wanted)

    total = await db.scalar(count_query)
    result = await db.execute(
        query.options(selectinload(Order.baskets).selectinload(Basket.service_statuses))
        .order_by(Order.created_at.desc())
        .offset(offset)
        .limit(limit)
    )
    orders = result.scalars().all()
    return OrderListResponse(orders=[order_response(o) for o in orders], total=total or 0)


@router.get("/withServiceStatus", response_model=OrderListResponse)
async def list_orders_with_service_status(
    staff: Staff = Depends(require_capability("orders", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """Active orders with per-basket, per-service progress for the floor board."""
    orders = await order_ops.list_active_orders(db)
    return OrderListResponse(orders=[order_response(o) for o in orders], total=len(orders))


@router.get("/deliveries", response_model=DeliveryQueueResponse)
async def list_deliveries(
    stage: Optional[HandlingStage] = Query(None),
    staff: Staff = Depends(require_capability("deliveries", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """Rider queue: active orders with a pickup or delivery still to run."""
    queue = await order_ops.list_handling_queue(db, stage)
    customer_ids = {order.customer_id for order, _ in queue}
    customers = {}
    if customer_ids:
        result = await db.execute(select(Customer).where(Customer.id.in_(customer_ids)))
        customers = {c.id: c for c in result.scalars().all()}

    deliveries = []
    for order, open_stage in queue:
        customer = customers.get(order.customer_id)
        phase = (order.handling or {}).get(open_stage.value) or {}
        deliveries.append(
            DeliveryQueueEntry(
                order_id=order.id,
                status=order.status,
                stage=open_stage,
                stage_status=phase.get("status"),
                address=phase.get("address"),
                customer_name=customer.full_name if customer else "Unknown",
                customer_phone=customer.phone_number if customer else None,
                basket_count=len(order.baskets),
                total_amount=order.total_amount,
                created_at=order.created_at,
            )
        )
    return DeliveryQueueResponse(count=len(deliveries), deliveries=deliveries)


@router.get("/{order_id}", response_model=OrderEnvelope)
async def get_order(
    order_id: uuid.UUID,
    staff: Staff = Depends(require_capability("orders", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, order_id)
    return OrderEnvelope(order=order_response(order))


@router.get("/{order_id}/receipt", response_class=PlainTextResponse)
async def get_order_receipt(
    order_id: uuid.UUID,
    staff: Staff = Depends(require_capability("orders", "read")),
    db: AsyncSession = Depends(get_async_db),
):
    """Plaintext receipt sized for a 40-column thermal printer."""
    order = await order_ops.get_order(db, order_id)
    customer = await db.get(Customer, order.customer_id)
    return PlainTextResponse(receipts.format_plaintext(receipts.build_receipt(order, customer)))


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.post("/{order_id}/approve", response_model=OrderEnvelope)
async def approve_order(
    order_id: uuid.UUID,
    payload: ApproveOrderRequest,
    staff: Staff = Depends(require_capability("orders", "approve")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    order = await order_ops.approve_order(
        db, order_id, staff, gcash_verified=payload.gcash_verified, notes=payload.notes
    )
    response = OrderEnvelope(order=order_response(order))
    await dispatch_events(db, push, order_id)
    return response


@router.patch("/{order_id}/modify", response_model=OrderEnvelope)
async def modify_order(
    order_id: uuid.UUID,
    payload: ModifyOrderRequest,
    staff: Staff = Depends(require_capability("orders", "modify")),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit a pending mobile order (full breakdown or simple fields)."""
    order = await order_ops.modify_order(
        db,
        order_id,
        staff,
        breakdown=payload.breakdown,
        customer_phone=payload.customer_phone,
        pickup_address=payload.pickup_address,
        delivery_address=payload.delivery_address,
        items=payload.items,
    )
    return OrderEnvelope(order=order_response(order))


@router.post("/{order_id}/reject", response_model=OrderEnvelope)
async def reject_order(
    order_id: uuid.UUID,
    payload: RejectOrderRequest,
    staff: Staff = Depends(require_capability("orders", "reject")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    """Reject a pending mobile order, restoring stock and docking a loyalty point."""
    actor = staff
    if payload.cashier_id and payload.cashier_id != staff.id:
        actor = await order_ops.get_staff(db, payload.cashier_id)

    result = await order_ops.reject_order(
        db, order_id, actor, reason=payload.reason, notes=payload.notes
    )
    response = OrderEnvelope(order=order_response(result.order), warnings=result.warnings)
    await dispatch_events(db, push, order_id)
    return response


@router.post("/{order_id}/cancel", response_model=OrderEnvelope)
async def cancel_order(
    order_id: uuid.UUID,
    payload: Optional[CancelOrderRequest] = None,
    staff: Staff = Depends(require_capability("orders", "cancel")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    result = await order_ops.cancel_order(
        db, order_id, staff, reason=payload.reason if payload else None
    )
    response = OrderEnvelope(order=order_response(result.order), warnings=result.warnings)
    await dispatch_events(db, push, order_id)
    return response


# ============================================================================
# FULFILLMENT
# ============================================================================


@router.patch("/{order_id}/basket/{basket_number}/service", response_model=ServiceUpdateResponse)
async def update_basket_service(
    order_id: uuid.UUID,
    basket_number: int,
    payload: ServiceUpdateRequest,
    staff: Staff = Depends(require_capability("services", "advance")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    """Start, complete or skip one service on a basket."""
    result = await order_ops.advance_service(
        db,
        order_id,
        basket_number=basket_number,
        service_type=payload.service_type,
        action=payload.action,
        staff=staff,
        notes=payload.notes,
    )
    response = ServiceUpdateResponse(
        order_id=order_id,
        basket_number=basket_number,
        service_type=payload.service_type,
        status=result.transition.unit_status,
        order_status=result.transition.order_status,
        order=order_response(result.order),
    )
    await dispatch_events(db, push, order_id)
    return response


@router.patch("/{order_id}/handling-status", response_model=HandlingUpdateResponse)
async def update_handling_status(
    order_id: uuid.UUID,
    payload: HandlingUpdateRequest,
    staff: Staff = Depends(require_capability("handling", "advance")),
    db: AsyncSession = Depends(get_async_db),
    push: PushClient = Depends(get_push),
):
    """Start or complete the pickup or delivery phase."""
    actor = staff
    if payload.staff_id and payload.staff_id != staff.id:
        actor = await order_ops.get_staff(db, payload.staff_id)

    result = await order_ops.advance_handling(
        db, order_id, stage=payload.stage, action=payload.action, staff=actor
    )
    response = HandlingUpdateResponse(
        order_id=order_id,
        stage=payload.stage,
        status=result.transition.unit_status,
        order_status=result.transition.order_status,
        order=order_response(result.order),
    )
    await dispatch_events(db, push, order_id)
    return response
