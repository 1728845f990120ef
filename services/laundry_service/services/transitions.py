"""Fulfillment transition engine.

Pure functions over status values: given the current state of an order and
an event, decide the next unit status, the cascaded order status and the
events to emit. Persistence and side effects live in ``order_ops`` and
``dispatcher``.
"""

from dataclasses import dataclass, field
from typing import Iterable

from libs.common.errors import InvalidStateTransition
from services.laundry_service.models.enums import (
    DONE_UNIT_STATUSES,
    TERMINAL_ORDER_STATUSES,
    HandlingAction,
    HandlingStage,
    OrderEventType,
    OrderStatus,
    ServiceAction,
    UnitStatus,
)

# ---------------------------------------------------------------------------
# Transition tables
# ---------------------------------------------------------------------------

ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset(
        {
            OrderStatus.PROCESSING,
            OrderStatus.FOR_PICKUP,
            OrderStatus.DELIVERING,
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.PROCESSING: frozenset(
        {
            OrderStatus.FOR_PICKUP,
            OrderStatus.DELIVERING,
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        }
    ),
    OrderStatus.FOR_PICKUP: frozenset(
        {OrderStatus.DELIVERING, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    ),
    OrderStatus.DELIVERING: frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

SERVICE_TRANSITIONS: dict[tuple[UnitStatus, ServiceAction], UnitStatus] = {
    (UnitStatus.PENDING, ServiceAction.START): UnitStatus.IN_PROGRESS,
    (UnitStatus.PENDING, ServiceAction.COMPLETE): UnitStatus.COMPLETED,
    (UnitStatus.PENDING, ServiceAction.SKIP): UnitStatus.SKIPPED,
    (UnitStatus.IN_PROGRESS, ServiceAction.COMPLETE): UnitStatus.COMPLETED,
    (UnitStatus.IN_PROGRESS, ServiceAction.SKIP): UnitStatus.SKIPPED,
}

HANDLING_TRANSITIONS: dict[tuple[UnitStatus, HandlingAction], UnitStatus] = {
    (UnitStatus.PENDING, HandlingAction.START): UnitStatus.IN_PROGRESS,
    (UnitStatus.PENDING, HandlingAction.COMPLETE): UnitStatus.COMPLETED,
    (UnitStatus.IN_PROGRESS, HandlingAction.COMPLETE): UnitStatus.COMPLETED,
}

_SERVICE_EVENTS = {
    UnitStatus.IN_PROGRESS: OrderEventType.SERVICE_STARTED,
    UnitStatus.COMPLETED: OrderEventType.SERVICE_COMPLETED,
    UnitStatus.SKIPPED: OrderEventType.SERVICE_SKIPPED,
}

_HANDLING_EVENTS = {
    UnitStatus.IN_PROGRESS: OrderEventType.HANDLING_STARTED,
    UnitStatus.COMPLETED: OrderEventType.HANDLING_COMPLETED,
}


@dataclass(frozen=True)
class EventIntent:
    """A side effect to be recorded in the outbox."""

    event_type: OrderEventType
    payload: dict = field(default_factory=dict)


@dataclass
class TransitionResult:
    unit_status: UnitStatus
    previous_order_status: OrderStatus
    order_status: OrderStatus
    events: list[EventIntent] = field(default_factory=list)

    @property
    def order_status_changed(self) -> bool:
        return self.order_status != self.previous_order_status


# ---------------------------------------------------------------------------
# Order-level rules
# ---------------------------------------------------------------------------


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ORDER_TRANSITIONS.get(current, frozenset())


def ensure_transition(current: OrderStatus, target: OrderStatus) -> None:
    if not can_transition(current, target):
        raise InvalidStateTransition(
            f"Cannot move order from {current.value} to {target.value}",
            current=current.value,
            attempted=target.value,
        )


def ensure_active(status: OrderStatus) -> None:
    if status in TERMINAL_ORDER_STATUSES:
        raise InvalidStateTransition(
            f"Order is already {status.value}", current=status.value
        )


def all_done(statuses: Iterable[UnitStatus]) -> bool:
    """True when every unit is completed or skipped (vacuously true)."""
    return all(s in DONE_UNIT_STATUSES for s in statuses)


def compute_order_status(
    current: OrderStatus,
    *,
    pickup: UnitStatus,
    delivery: UnitStatus,
    services: Iterable[UnitStatus],
) -> OrderStatus:
    """Cascade the order status from pickup, delivery and service progress.

    The candidate is only adopted when the order graph allows moving there
    from ``current``; otherwise ``current`` is returned unchanged.
    """
    if current in TERMINAL_ORDER_STATUSES:
        return current

    services = list(services)
    work_done = all_done(services)
    pickup_done = pickup in DONE_UNIT_STATUSES

    if work_done and pickup_done:
        if delivery in DONE_UNIT_STATUSES:
            candidate = OrderStatus.COMPLETED
        elif delivery == UnitStatus.IN_PROGRESS:
            candidate = OrderStatus.DELIVERING
        else:
            candidate = OrderStatus.FOR_PICKUP
    elif any(s != UnitStatus.PENDING for s in services) or pickup in (
        UnitStatus.IN_PROGRESS,
        UnitStatus.COMPLETED,
    ):
        candidate = OrderStatus.PROCESSING
    else:
        return current

    if candidate == current or not can_transition(current, candidate):
        return current
    return candidate


def status_change_events(
    previous: OrderStatus, new: OrderStatus, **payload
) -> list[EventIntent]:
    if previous == new:
        return []
    events = [
        EventIntent(
            OrderEventType.ORDER_STATUS_CHANGED,
            {"from": previous.value, "to": new.value, **payload},
        )
    ]
    if new == OrderStatus.COMPLETED:
        events.append(EventIntent(OrderEventType.ORDER_COMPLETED, dict(payload)))
    return events


# ---------------------------------------------------------------------------
# Service events
# ---------------------------------------------------------------------------


def next_service_status(current: UnitStatus, action: ServiceAction) -> UnitStatus:
    try:
        return SERVICE_TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidStateTransition(
            f"Cannot {action.value} a service that is {current.value}",
            current=current.value,
            attempted=action.value,
        )


def apply_service_event(
    order_status: OrderStatus,
    *,
    basket_number: int,
    service_type: str,
    current: UnitStatus,
    action: ServiceAction,
    other_services: Iterable[UnitStatus],
    pickup: UnitStatus,
    delivery: UnitStatus,
) -> TransitionResult:
    """Advance one (basket, service) unit and cascade the order status.

    ``other_services`` is every other service unit of the order, across
    all baskets.
    """
    ensure_active(order_status)
    new_unit = next_service_status(current, action)
    new_order = compute_order_status(
        order_status,
        pickup=pickup,
        delivery=delivery,
        services=[new_unit, *other_services],
    )

    events = [
        EventIntent(
            _SERVICE_EVENTS[new_unit],
            {"basket_number": basket_number, "service_type": service_type},
        )
    ]
    events.extend(status_change_events(order_status, new_order))
    return TransitionResult(new_unit, order_status, new_order, events)


# ---------------------------------------------------------------------------
# Handling events
# ---------------------------------------------------------------------------


def next_handling_status(
    stage: HandlingStage, current: UnitStatus, action: HandlingAction
) -> UnitStatus:
    if current == UnitStatus.SKIPPED:
        raise InvalidStateTransition(
            f"{stage.value.capitalize()} is not required for this order",
            current=current.value,
            attempted=action.value,
        )
    try:
        return HANDLING_TRANSITIONS[(current, action)]
    except KeyError:
        raise InvalidStateTransition(
            f"Cannot {action.value} {stage.value} that is {current.value}",
            current=current.value,
            attempted=action.value,
        )


def apply_handling_event(
    order_status: OrderStatus,
    *,
    stage: HandlingStage,
    action: HandlingAction,
    pickup: UnitStatus,
    delivery: UnitStatus,
    services: Iterable[UnitStatus],
) -> TransitionResult:
    """Advance the pickup or delivery phase and cascade the order status."""
    ensure_active(order_status)
    services = list(services)
    current = pickup if stage == HandlingStage.PICKUP else delivery
    new_unit = next_handling_status(stage, current, action)

    if stage == HandlingStage.DELIVERY:
        if pickup not in DONE_UNIT_STATUSES:
            raise InvalidStateTransition(
                "Delivery cannot begin before pickup is done",
                current=pickup.value,
                attempted=action.value,
            )
        if not all_done(services):
            raise InvalidStateTransition(
                "Delivery cannot begin while services are still outstanding",
                attempted=action.value,
            )
        delivery = new_unit
    else:
        pickup = new_unit

    new_order = compute_order_status(
        order_status, pickup=pickup, delivery=delivery, services=services
    )
    events = [EventIntent(_HANDLING_EVENTS[new_unit], {"stage": stage.value})]
    events.extend(status_change_events(order_status, new_order))
    return TransitionResult(new_unit, order_status, new_order, events)


def is_first_activity(order_status: OrderStatus, result: TransitionResult) -> bool:
    """True when this event moved a pending order into work."""
    return order_status == OrderStatus.PENDING and result.order_status != OrderStatus.PENDING


def ensure_cancellable(order_status: OrderStatus) -> None:
    ensure_active(order_status)
    ensure_transition(order_status, OrderStatus.CANCELLED)
