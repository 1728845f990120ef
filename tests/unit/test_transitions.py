"""Unit tests for the fulfillment transition engine.

Pure functions only: no database, no HTTP.
"""

import pytest
from libs.common.errors import InvalidStateTransition
from services.laundry_service.models import (
    HandlingAction,
    HandlingStage,
    OrderEventType,
    OrderStatus,
    ServiceAction,
    UnitStatus,
)
from services.laundry_service.services import transitions

P = UnitStatus.PENDING
IP = UnitStatus.IN_PROGRESS
C = UnitStatus.COMPLETED
S = UnitStatus.SKIPPED


def _event_types(result):
    return [e.event_type for e in result.events]


# ---------------------------------------------------------------------------
# Order graph
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_terminal_statuses_have_no_exits():
    for terminal in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
        for target in OrderStatus:
            assert not transitions.can_transition(terminal, target)


@pytest.mark.unit
def test_order_graph_never_moves_backwards():
    assert not transitions.can_transition(OrderStatus.FOR_PICKUP, OrderStatus.PROCESSING)
    assert not transitions.can_transition(OrderStatus.DELIVERING, OrderStatus.FOR_PICKUP)
    assert transitions.can_transition(OrderStatus.PENDING, OrderStatus.COMPLETED)


@pytest.mark.unit
def test_ensure_cancellable_rejects_terminal_orders():
    transitions.ensure_cancellable(OrderStatus.DELIVERING)
    with pytest.raises(InvalidStateTransition):
        transitions.ensure_cancellable(OrderStatus.COMPLETED)
    with pytest.raises(InvalidStateTransition):
        transitions.ensure_cancellable(OrderStatus.CANCELLED)


@pytest.mark.unit
def test_all_done_is_vacuously_true():
    assert transitions.all_done([])
    assert transitions.all_done([C, S])
    assert not transitions.all_done([C, IP])


# ---------------------------------------------------------------------------
# Cascade
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_untouched_order_stays_pending():
    status = transitions.compute_order_status(
        OrderStatus.PENDING, pickup=S, delivery=S, services=[P, P]
    )
    assert status == OrderStatus.PENDING


@pytest.mark.unit
def test_any_started_service_means_processing():
    status = transitions.compute_order_status(
        OrderStatus.PENDING, pickup=S, delivery=S, services=[IP, P]
    )
    assert status == OrderStatus.PROCESSING


@pytest.mark.unit
def test_pickup_in_progress_means_processing():
    status = transitions.compute_order_status(
        OrderStatus.PENDING, pickup=IP, delivery=P, services=[P]
    )
    assert status == OrderStatus.PROCESSING


@pytest.mark.unit
@pytest.mark.parametrize(
    "delivery, expected",
    [
        (S, OrderStatus.COMPLETED),
        (C, OrderStatus.COMPLETED),
        (P, OrderStatus.FOR_PICKUP),
        (IP, OrderStatus.DELIVERING),
    ],
)
def test_work_done_cascades_by_delivery(delivery, expected):
    status = transitions.compute_order_status(
        OrderStatus.PROCESSING, pickup=S, delivery=delivery, services=[C, S]
    )
    assert status == expected


@pytest.mark.unit
def test_cascade_does_not_regress_status():
    status = transitions.compute_order_status(
        OrderStatus.FOR_PICKUP, pickup=S, delivery=P, services=[C, C]
    )
    assert status == OrderStatus.FOR_PICKUP


@pytest.mark.unit
def test_cascade_leaves_terminal_orders_alone():
    status = transitions.compute_order_status(
        OrderStatus.CANCELLED, pickup=S, delivery=S, services=[C]
    )
    assert status == OrderStatus.CANCELLED


# ---------------------------------------------------------------------------
# Service events
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_service_start_moves_order_to_processing():
    result = transitions.apply_service_event(
        OrderStatus.PENDING,
        basket_number=1,
        service_type="wash",
        current=P,
        action=ServiceAction.START,
        other_services=[P],
        pickup=S,
        delivery=S,
    )

    assert result.unit_status == IP
    assert result.order_status == OrderStatus.PROCESSING
    assert _event_types(result) == [
        OrderEventType.SERVICE_STARTED,
        OrderEventType.ORDER_STATUS_CHANGED,
    ]
    assert transitions.is_first_activity(OrderStatus.PENDING, result)


@pytest.mark.unit
def test_last_service_completion_completes_in_store_order():
    result = transitions.apply_service_event(
        OrderStatus.PROCESSING,
        basket_number=1,
        service_type="dry",
        current=IP,
        action=ServiceAction.COMPLETE,
        other_services=[C],
        pickup=S,
        delivery=S,
    )

    assert result.order_status == OrderStatus.COMPLETED
    assert _event_types(result) == [
        OrderEventType.SERVICE_COMPLETED,
        OrderEventType.ORDER_STATUS_CHANGED,
        OrderEventType.ORDER_COMPLETED,
    ]


@pytest.mark.unit
def test_completing_a_completed_service_is_rejected():
    with pytest.raises(InvalidStateTransition):
        transitions.apply_service_event(
            OrderStatus.COMPLETED,
            basket_number=1,
            service_type="wash",
            current=C,
            action=ServiceAction.COMPLETE,
            other_services=[],
            pickup=S,
            delivery=S,
        )
    with pytest.raises(InvalidStateTransition):
        transitions.next_service_status(C, ServiceAction.COMPLETE)


@pytest.mark.unit
def test_skipped_service_cannot_restart():
    with pytest.raises(InvalidStateTransition):
        transitions.next_service_status(S, ServiceAction.START)


@pytest.mark.unit
def test_mid_order_service_event_keeps_status():
    result = transitions.apply_service_event(
        OrderStatus.PROCESSING,
        basket_number=2,
        service_type="wash",
        current=P,
        action=ServiceAction.START,
        other_services=[C, P],
        pickup=S,
        delivery=S,
    )
    assert not result.order_status_changed
    assert _event_types(result) == [OrderEventType.SERVICE_STARTED]


# ---------------------------------------------------------------------------
# Handling events
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_skipped_handling_cannot_be_started():
    with pytest.raises(InvalidStateTransition):
        transitions.next_handling_status(HandlingStage.PICKUP, S, HandlingAction.START)


@pytest.mark.unit
def test_pickup_only_order_completes_when_delivery_in_store():
    result = transitions.apply_handling_event(
        OrderStatus.PENDING,
        stage=HandlingStage.PICKUP,
        action=HandlingAction.COMPLETE,
        pickup=P,
        delivery=S,
        services=[],
    )
    assert result.unit_status == C
    assert result.order_status == OrderStatus.COMPLETED


@pytest.mark.unit
def test_pickup_only_order_waits_for_delivery():
    result = transitions.apply_handling_event(
        OrderStatus.PENDING,
        stage=HandlingStage.PICKUP,
        action=HandlingAction.COMPLETE,
        pickup=P,
        delivery=P,
        services=[],
    )
    assert result.order_status == OrderStatus.FOR_PICKUP


@pytest.mark.unit
def test_delivery_requires_pickup_done():
    with pytest.raises(InvalidStateTransition):
        transitions.apply_handling_event(
            OrderStatus.PROCESSING,
            stage=HandlingStage.DELIVERY,
            action=HandlingAction.START,
            pickup=IP,
            delivery=P,
            services=[C],
        )


@pytest.mark.unit
def test_delivery_requires_services_done():
    with pytest.raises(InvalidStateTransition):
        transitions.apply_handling_event(
            OrderStatus.PROCESSING,
            stage=HandlingStage.DELIVERY,
            action=HandlingAction.START,
            pickup=S,
            delivery=P,
            services=[C, IP],
        )


@pytest.mark.unit
def test_delivery_start_then_complete():
    started = transitions.apply_handling_event(
        OrderStatus.FOR_PICKUP,
        stage=HandlingStage.DELIVERY,
        action=HandlingAction.START,
        pickup=S,
        delivery=P,
        services=[C],
    )
    assert started.order_status == OrderStatus.DELIVERING

    finished = transitions.apply_handling_event(
        OrderStatus.DELIVERING,
        stage=HandlingStage.DELIVERY,
        action=HandlingAction.COMPLETE,
        pickup=S,
        delivery=IP,
        services=[C],
    )
    assert finished.order_status == OrderStatus.COMPLETED
    assert OrderEventType.ORDER_COMPLETED in _event_types(finished)
