"""Unit tests for the vendor order state machine and aggregate status derivation.

Pure functions only; no database involved.
"""

import pytest
from services.store_service.models import (
    Order,
    OrderStatus,
    PaymentMethod,
    VendorOrder,
    VendorOrderStatus,
)
from services.store_service.services.fulfillment import (
    apply_aggregate_status,
    can_transition,
    derive_order_status,
)

S = VendorOrderStatus


def _order(statuses, *, method=PaymentMethod.PAYSTACK, status=OrderStatus.CONFIRMED):
    order = Order(
        order_status=status,
        payment_method=method,
        is_paid=method == PaymentMethod.PAYSTACK,
        is_delivered=False,
        vendor_orders=[],
    )
    for position, vo_status in enumerate(statuses):
        order.vendor_orders.append(
            VendorOrder(vendor_name=f"v{position}", position=position, status=vo_status)
        )
    return order


# ---------------------------------------------------------------------------
# can_transition
# ---------------------------------------------------------------------------


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,new",
    [
        (S.PENDING, S.CONFIRMED),
        (S.CONFIRMED, S.PREPARING),
        (S.PREPARING, S.READY),
        (S.READY, S.PICKED_UP),
        (S.PICKED_UP, S.DELIVERED),
        (S.PENDING, S.PREPARING),
        (S.CONFIRMED, S.DELIVERED),
        (S.PENDING, S.CANCELLED),
        (S.CONFIRMED, S.CANCELLED),
    ],
)
def test_allowed_transitions(current, new):
    assert can_transition(current, new)


@pytest.mark.unit
@pytest.mark.parametrize(
    "current,new",
    [
        (S.READY, S.PREPARING),
        (S.CONFIRMED, S.PENDING),
        (S.PREPARING, S.CANCELLED),
        (S.PICKED_UP, S.CANCELLED),
        (S.DELIVERED, S.CANCELLED),
        (S.DELIVERED, S.PICKED_UP),
        (S.CANCELLED, S.CONFIRMED),
    ],
)
def test_rejected_transitions(current, new):
    assert not can_transition(current, new)


# ---------------------------------------------------------------------------
# derive_order_status
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_all_delivered_completes_order():
    assert (
        derive_order_status(OrderStatus.PROCESSING, [S.DELIVERED, S.DELIVERED])
        == OrderStatus.COMPLETED
    )


@pytest.mark.unit
def test_any_cancelled_means_processing():
    assert (
        derive_order_status(OrderStatus.CONFIRMED, [S.CANCELLED, S.PENDING])
        == OrderStatus.PROCESSING
    )


@pytest.mark.unit
def test_all_in_progress_means_processing():
    assert (
        derive_order_status(OrderStatus.CONFIRMED, [S.CONFIRMED, S.READY])
        == OrderStatus.PROCESSING
    )


@pytest.mark.unit
def test_pending_sibling_leaves_status_unchanged():
    assert (
        derive_order_status(OrderStatus.CONFIRMED, [S.PREPARING, S.PENDING])
        == OrderStatus.CONFIRMED
    )


@pytest.mark.unit
def test_delivered_with_preparing_sibling_is_not_completed():
    assert (
        derive_order_status(OrderStatus.PROCESSING, [S.DELIVERED, S.PREPARING])
        == OrderStatus.PROCESSING
    )


# ---------------------------------------------------------------------------
# apply_aggregate_status
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_completion_stamps_delivery():
    order = _order([S.DELIVERED, S.DELIVERED])

    assert apply_aggregate_status(order) == OrderStatus.COMPLETED
    assert order.is_delivered is True
    assert order.delivered_at is not None


@pytest.mark.unit
def test_cash_on_delivery_is_paid_on_completion():
    order = _order([S.DELIVERED], method=PaymentMethod.CASH_ON_DELIVERY)
    order.is_paid = False

    apply_aggregate_status(order)

    assert order.is_paid is True
    assert order.paid_at == order.delivered_at


@pytest.mark.unit
def test_partial_delivery_does_not_stamp_delivery():
    order = _order([S.DELIVERED, S.READY], status=OrderStatus.PROCESSING)

    apply_aggregate_status(order)

    assert order.order_status == OrderStatus.PROCESSING
    assert order.is_delivered is False
    assert order.delivered_at is None
