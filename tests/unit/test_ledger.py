"""Unit tests for the vendor wallet ledger.

Balances are derived from orders, withdrawals and adjustments on every read;
these tests build that history through the real services.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from libs.common.errors import (
    BelowMinimumError,
    InsufficientBalanceError,
    InvalidTransitionError,
    ValidationError,
    WithdrawalNotFoundError,
)
from services.store_service.models import OrderStatus, VendorOrderStatus
from services.store_service.services.fulfillment import update_vendor_order_status
from services.wallet_service.models import WithdrawalStatus
from services.wallet_service.services.ledger import (
    Adjustment,
    Earning,
    Withdrawal,
    fold_balance,
    get_balance,
    list_entries,
    record_adjustment,
    request_withdrawal,
    update_withdrawal_status,
)
from tests.factories import (
    WithdrawalFactory,
    mark_paid,
    place_order,
    seed_vendor_with_product,
)

NOW = datetime(2026, 1, 4, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _earning(amount, settled=True):
    return Earning(
        order_id=uuid.uuid4(),
        order_number="KM-1",
        vendor_order_id=uuid.uuid4(),
        gross=Decimal(amount),
        commission=Decimal("0.00"),
        amount=Decimal(amount),
        settled=settled,
        occurred_at=NOW,
    )


def _withdrawal(amount, status):
    return Withdrawal(
        request_id=uuid.uuid4(), amount=Decimal(amount), status=status, occurred_at=NOW
    )


async def _vendor_with_order(db, status, *, paid=True, price="100.00"):
    """Vendor with one order of ``price`` whose sub-order is at ``status``."""
    vendor, product = await seed_vendor_with_product(db, price=price)
    order = await place_order(db, [(product, 1)])
    if paid:
        await mark_paid(db, order)
    if status != VendorOrderStatus.PENDING:
        await update_vendor_order_status(
            db, order_id=order.id, vendor=vendor, new_status=status
        )
    return vendor, order


async def _withdraw(db, vendor, amount, notifier=None):
    return await request_withdrawal(
        db,
        vendor_id=vendor.id,
        amount=Decimal(amount),
        method="bank:0123456789",
        notifier=notifier,
    )


# ---------------------------------------------------------------------------
# fold_balance
# ---------------------------------------------------------------------------


@pytest.mark.unit
def test_fold_balance_combines_sources():
    balance = fold_balance(
        [
            _earning("85.00"),
            _earning("40.00", settled=False),
            _withdrawal("30.00", WithdrawalStatus.COMPLETED),
            _withdrawal("10.00", WithdrawalStatus.PENDING),
            _withdrawal("99.00", WithdrawalStatus.REJECTED),
            Adjustment(
                adjustment_id=uuid.uuid4(),
                reason="Bonus",
                amount=Decimal("5.00"),
                occurred_at=NOW,
            ),
        ],
        Decimal("15"),
    )

    assert balance.total_earnings == Decimal("85.00")
    assert balance.pending == Decimal("40.00")
    assert balance.total_withdrawn == Decimal("30.00")
    assert balance.available == Decimal("60.00")
    assert balance.outstanding_withdrawals == Decimal("10.00")
    assert balance.withdrawable == Decimal("50.00")


@pytest.mark.unit
def test_available_is_floored_at_zero():
    balance = fold_balance(
        [
            _earning("10.00"),
            Adjustment(
                adjustment_id=uuid.uuid4(),
                reason="Chargeback",
                amount=Decimal("-25.00"),
                occurred_at=NOW,
            ),
        ],
        Decimal("15"),
    )

    assert balance.available == Decimal("0.00")
    assert balance.withdrawable == Decimal("0.00")


# ---------------------------------------------------------------------------
# get_balance / list_entries
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_delivered_earning_is_settled_net_of_commission(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    balance = await get_balance(db_session, vendor)

    assert balance.total_earnings == Decimal("85.00")
    assert balance.available == Decimal("85.00")
    assert balance.pending == Decimal("0.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_in_flight_earning_is_pending(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.READY)

    balance = await get_balance(db_session, vendor)

    assert balance.available == Decimal("0.00")
    assert balance.pending == Decimal("85.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unpaid_and_unstarted_orders_do_not_count(db_session):
    unpaid_vendor, _ = await _vendor_with_order(
        db_session, VendorOrderStatus.DELIVERED, paid=False
    )
    confirmed_vendor, _ = await _vendor_with_order(
        db_session, VendorOrderStatus.CONFIRMED
    )

    unpaid = await get_balance(db_session, unpaid_vendor)
    confirmed = await get_balance(db_session, confirmed_vendor)

    assert unpaid.total_earnings == unpaid.pending == Decimal("0.00")
    assert confirmed.total_earnings == confirmed.pending == Decimal("0.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refunded_order_is_excluded(db_session):
    vendor, order = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    order.order_status = OrderStatus.REFUNDED
    await db_session.commit()

    balance = await get_balance(db_session, vendor)

    assert balance.total_earnings == Decimal("0.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_commission_rate_read_at_balance_time(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    vendor.commission_rate = Decimal("10.00")
    await db_session.commit()

    balance = await get_balance(db_session, vendor)

    assert balance.total_earnings == Decimal("90.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_entries_listed_newest_first(db_session):
    vendor, order = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    await _withdraw(db_session, vendor, "20.00")

    entries = await list_entries(db_session, vendor)

    assert [type(e) for e in entries] == [Withdrawal, Earning]
    earning = entries[1]
    assert earning.order_id == order.id
    assert earning.gross == Decimal("100.00")
    assert earning.commission == Decimal("15.00")
    assert earning.amount == Decimal("85.00")


# ---------------------------------------------------------------------------
# request_withdrawal
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdrawal_within_balance(db_session, notifier):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    withdrawal = await _withdraw(db_session, vendor, "50.00", notifier)

    assert withdrawal.status == WithdrawalStatus.PENDING
    assert withdrawal.amount == Decimal("50.00")
    assert notifier.events("withdrawal_requested")[0]["recipient_id"] == vendor.auth_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdrawal_over_balance_rejected(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    with pytest.raises(InsufficientBalanceError):
        await _withdraw(db_session, vendor, "85.01")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_in_flight_earnings_are_not_withdrawable(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.PICKED_UP)

    with pytest.raises(InsufficientBalanceError):
        await _withdraw(db_session, vendor, "20.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_below_minimum_rejected(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    with pytest.raises(BelowMinimumError):
        await _withdraw(db_session, vendor, "5.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_outstanding_requests_are_reserved(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    await _withdraw(db_session, vendor, "60.00")

    # 85 available, 60 already requested
    with pytest.raises(InsufficientBalanceError):
        await _withdraw(db_session, vendor, "30.00")

    second = await _withdraw(db_session, vendor, "25.00")
    assert second.status == WithdrawalStatus.PENDING

    balance = await get_balance(db_session, vendor)
    assert balance.available == Decimal("85.00")
    assert balance.withdrawable == Decimal("0.00")


# ---------------------------------------------------------------------------
# update_withdrawal_status
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_completed_withdrawal_reduces_available(db_session, notifier):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    withdrawal = await _withdraw(db_session, vendor, "50.00")

    for status in (WithdrawalStatus.PROCESSING, WithdrawalStatus.COMPLETED):
        withdrawal = await update_withdrawal_status(
            db_session,
            withdrawal_id=withdrawal.id,
            new_status=status,
            processed_by="admin-1",
            notifier=notifier,
        )

    assert withdrawal.completed_at is not None
    assert withdrawal.processed_by == "admin-1"
    balance = await get_balance(db_session, vendor)
    assert balance.total_withdrawn == Decimal("50.00")
    assert balance.available == Decimal("35.00")
    assert len(notifier.events("withdrawal_status_changed")) == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_rejected_withdrawal_releases_reservation(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    withdrawal = await _withdraw(db_session, vendor, "80.00")

    withdrawal = await update_withdrawal_status(
        db_session,
        withdrawal_id=withdrawal.id,
        new_status=WithdrawalStatus.REJECTED,
        processed_by="admin-1",
        reason="Bank details invalid",
    )

    assert withdrawal.rejection_reason == "Bank details invalid"
    balance = await get_balance(db_session, vendor)
    assert balance.withdrawable == Decimal("85.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_withdrawal_cannot_skip_processing(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    withdrawal = await _withdraw(db_session, vendor, "20.00")

    with pytest.raises(InvalidTransitionError):
        await update_withdrawal_status(
            db_session,
            withdrawal_id=withdrawal.id,
            new_status=WithdrawalStatus.COMPLETED,
            processed_by="admin-1",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_finished_withdrawal_is_final(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)
    withdrawal = WithdrawalFactory.create(
        vendor_id=vendor.id, status=WithdrawalStatus.REJECTED
    )
    db_session.add(withdrawal)
    await db_session.commit()

    with pytest.raises(InvalidTransitionError):
        await update_withdrawal_status(
            db_session,
            withdrawal_id=withdrawal.id,
            new_status=WithdrawalStatus.PROCESSING,
            processed_by="admin-1",
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unknown_withdrawal(db_session):
    with pytest.raises(WithdrawalNotFoundError):
        await update_withdrawal_status(
            db_session,
            withdrawal_id=uuid.uuid4(),
            new_status=WithdrawalStatus.PROCESSING,
            processed_by="admin-1",
        )


# ---------------------------------------------------------------------------
# record_adjustment
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjustments_change_available(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    await record_adjustment(
        db_session,
        vendor_id=vendor.id,
        amount=Decimal("-15.00"),
        reason="Damaged packaging",
        created_by="admin-1",
    )
    balance = await get_balance(db_session, vendor)

    assert balance.total_adjustments == Decimal("-15.00")
    assert balance.available == Decimal("70.00")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_adjustment_needs_amount_and_reason(db_session):
    vendor, _ = await _vendor_with_order(db_session, VendorOrderStatus.DELIVERED)

    with pytest.raises(ValidationError):
        await record_adjustment(
            db_session,
            vendor_id=vendor.id,
            amount=Decimal("0"),
            reason="Nothing",
            created_by="admin-1",
        )
    with pytest.raises(ValidationError):
        await record_adjustment(
            db_session,
            vendor_id=vendor.id,
            amount=Decimal("5"),
            reason="  ",
            created_by="admin-1",
        )
