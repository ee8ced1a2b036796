"""Vendor wallet ledger.

Balances are never stored. They are a fold over ledger entries derived on
read from three sources:

- ``Earning``: a paid vendor order, net of commission. Settled once the vendor
  order is delivered, in flight while preparing/ready/picked up.
- ``Withdrawal``: a payout request. Only completed ones reduce the balance;
  pending/processing ones are reserved against new requests.
- ``Adjustment``: a signed operator correction.

Commission uses the vendor's current rate at read time.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional, Union

from libs.common.config import get_settings
from libs.common.currency import ZERO, money_sum, net_of_commission, percent_of, to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    BelowMinimumError,
    InsufficientBalanceError,
    InvalidTransitionError,
    ValidationError,
    VendorNotFoundError,
    WithdrawalNotFoundError,
)
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, RecipientKind, notify_safely
from services.store_service.models import (
    Order,
    OrderStatus,
    Vendor,
    VendorOrder,
    VendorOrderStatus,
)
from services.wallet_service.models import (
    LedgerEntryType,
    VendorWalletAdjustment,
    VendorWithdrawal,
    WithdrawalStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

SETTLED_STATUSES = frozenset({VendorOrderStatus.DELIVERED})
IN_FLIGHT_STATUSES = frozenset(
    {
        VendorOrderStatus.PREPARING,
        VendorOrderStatus.READY,
        VendorOrderStatus.PICKED_UP,
    }
)
OUTSTANDING_WITHDRAWALS = frozenset(
    {WithdrawalStatus.PENDING, WithdrawalStatus.PROCESSING}
)

WITHDRAWAL_TRANSITIONS = {
    WithdrawalStatus.PENDING: {WithdrawalStatus.PROCESSING, WithdrawalStatus.REJECTED},
    WithdrawalStatus.PROCESSING: {
        WithdrawalStatus.COMPLETED,
        WithdrawalStatus.REJECTED,
    },
}


# ---------------------------------------------------------------------------
# Ledger entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Earning:
    order_id: uuid.UUID
    order_number: str
    vendor_order_id: uuid.UUID
    gross: Decimal
    commission: Decimal
    amount: Decimal
    settled: bool
    occurred_at: datetime
    type: LedgerEntryType = LedgerEntryType.EARNING


@dataclass(frozen=True)
class Withdrawal:
    request_id: uuid.UUID
    amount: Decimal
    status: WithdrawalStatus
    occurred_at: datetime
    type: LedgerEntryType = LedgerEntryType.WITHDRAWAL


@dataclass(frozen=True)
class Adjustment:
    adjustment_id: uuid.UUID
    reason: str
    amount: Decimal
    occurred_at: datetime
    type: LedgerEntryType = LedgerEntryType.ADJUSTMENT


LedgerEntry = Union[Earning, Withdrawal, Adjustment]


@dataclass
class WalletBalance:
    available: Decimal
    pending: Decimal
    total_earnings: Decimal
    total_withdrawn: Decimal
    total_adjustments: Decimal
    outstanding_withdrawals: Decimal
    commission_rate: Decimal

    @property
    def withdrawable(self) -> Decimal:
        """What a new withdrawal may take: available minus requests still in progress."""
        return max(ZERO, self.available - self.outstanding_withdrawals)


def fold_balance(entries: Iterable[LedgerEntry], commission_rate: Decimal) -> WalletBalance:
    """Compute a balance from ledger entries. ``available`` is floored at zero."""
    settled, in_flight, withdrawn, outstanding, adjustments = [], [], [], [], []
    for entry in entries:
        if isinstance(entry, Earning):
            (settled if entry.settled else in_flight).append(entry.amount)
        elif isinstance(entry, Withdrawal):
            if entry.status == WithdrawalStatus.COMPLETED:
                withdrawn.append(entry.amount)
            elif entry.status in OUTSTANDING_WITHDRAWALS:
                outstanding.append(entry.amount)
        elif isinstance(entry, Adjustment):
            adjustments.append(entry.amount)

    total_earnings = money_sum(settled)
    total_withdrawn = money_sum(withdrawn)
    total_adjustments = money_sum(adjustments)
    return WalletBalance(
        available=max(ZERO, total_earnings - total_withdrawn + total_adjustments),
        pending=money_sum(in_flight),
        total_earnings=total_earnings,
        total_withdrawn=total_withdrawn,
        total_adjustments=total_adjustments,
        outstanding_withdrawals=money_sum(outstanding),
        commission_rate=to_money(commission_rate),
    )


# ---------------------------------------------------------------------------
# Reading the ledger
# ---------------------------------------------------------------------------


async def get_vendor(
    db: AsyncSession, vendor_id: uuid.UUID, *, for_update: bool = False
) -> Vendor:
    query = select(Vendor).where(Vendor.id == vendor_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    vendor = (await db.execute(query)).scalar_one_or_none()
    if vendor is None:
        raise VendorNotFoundError()
    return vendor


async def _earnings(db: AsyncSession, vendor: Vendor) -> list[Earning]:
    rows = await db.execute(
        select(
            VendorOrder.id,
            VendorOrder.subtotal,
            VendorOrder.status,
            VendorOrder.status_updated_at,
            VendorOrder.created_at,
            Order.id,
            Order.order_number,
        )
        .join(Order, VendorOrder.order_id == Order.id)
        .where(
            VendorOrder.vendor_id == vendor.id,
            Order.is_paid.is_(True),
            Order.order_status != OrderStatus.REFUNDED,
            VendorOrder.status.in_(list(SETTLED_STATUSES | IN_FLIGHT_STATUSES)),
        )
    )

    earnings = []
    for vo_id, subtotal, status, status_updated_at, created_at, order_id, number in rows:
        earnings.append(
            Earning(
                order_id=order_id,
                order_number=number,
                vendor_order_id=vo_id,
                gross=to_money(subtotal),
                commission=percent_of(subtotal, vendor.commission_rate),
                amount=net_of_commission(subtotal, vendor.commission_rate),
                settled=status in SETTLED_STATUSES,
                occurred_at=status_updated_at or created_at,
            )
        )
    return earnings


async def list_entries(db: AsyncSession, vendor: Vendor) -> list[LedgerEntry]:
    """All ledger entries for a vendor, newest first."""
    entries: list[LedgerEntry] = list(await _earnings(db, vendor))

    withdrawals = await db.execute(
        select(VendorWithdrawal).where(VendorWithdrawal.vendor_id == vendor.id)
    )
    for withdrawal in withdrawals.scalars():
        entries.append(
            Withdrawal(
                request_id=withdrawal.id,
                amount=to_money(withdrawal.amount),
                status=withdrawal.status,
                occurred_at=withdrawal.completed_at or withdrawal.requested_at,
            )
        )

    adjustments = await db.execute(
        select(VendorWalletAdjustment).where(
            VendorWalletAdjustment.vendor_id == vendor.id
        )
    )
    for adjustment in adjustments.scalars():
        entries.append(
            Adjustment(
                adjustment_id=adjustment.id,
                reason=adjustment.reason,
                amount=to_money(adjustment.amount),
                occurred_at=adjustment.created_at,
            )
        )

    entries.sort(key=lambda entry: _sort_key(entry.occurred_at), reverse=True)
    return entries


def _sort_key(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def get_balance(db: AsyncSession, vendor: Vendor) -> WalletBalance:
    entries = await list_entries(db, vendor)
    return fold_balance(entries, vendor.commission_rate)


# ---------------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------------


async def request_withdrawal(
    db: AsyncSession,
    *,
    vendor_id: uuid.UUID,
    amount: Decimal,
    method: str,
    note: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> VendorWithdrawal:
    """Create a pending withdrawal if the vendor can cover it.

    The vendor row is locked and the balance recomputed inside the same
    transaction that inserts the request, so concurrent requests for one
    vendor cannot jointly overdraw.
    """
    settings = get_settings()
    amount = to_money(amount)
    if amount < settings.WITHDRAWAL_MINIMUM:
        raise BelowMinimumError(
            f"Minimum withdrawal amount is {to_money(settings.WITHDRAWAL_MINIMUM)}"
        )

    vendor = await get_vendor(db, vendor_id, for_update=True)
    balance = await get_balance(db, vendor)
    if amount > balance.withdrawable:
        raise InsufficientBalanceError(
            f"Insufficient available balance ({balance.withdrawable} withdrawable)"
        )

    withdrawal = VendorWithdrawal(
        vendor_id=vendor.id,
        amount=amount,
        method=method,
        note=note,
        status=WithdrawalStatus.PENDING,
        requested_at=utc_now(),
    )
    db.add(withdrawal)
    await db.commit()

    logger.info(
        "Vendor %s requested withdrawal %s of %s (withdrawable was %s)",
        vendor.id,
        withdrawal.id,
        amount,
        balance.withdrawable,
    )
    await notify_safely(
        notifier,
        vendor.auth_id,
        RecipientKind.VENDOR,
        "withdrawal_requested",
        {"withdrawal_id": str(withdrawal.id), "amount": str(amount)},
    )
    return withdrawal


async def list_withdrawals(
    db: AsyncSession,
    *,
    vendor_id: Optional[uuid.UUID] = None,
    status: Optional[WithdrawalStatus] = None,
) -> list[VendorWithdrawal]:
    query = select(VendorWithdrawal)
    if vendor_id:
        query = query.where(VendorWithdrawal.vendor_id == vendor_id)
    if status:
        query = query.where(VendorWithdrawal.status == status)
    query = query.order_by(VendorWithdrawal.requested_at.desc())
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_withdrawal_status(
    db: AsyncSession,
    *,
    withdrawal_id: uuid.UUID,
    new_status: WithdrawalStatus,
    processed_by: str,
    reason: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> VendorWithdrawal:
    """Operator moves a withdrawal through pending -> processing -> completed, or rejects it."""
    result = await db.execute(
        select(VendorWithdrawal)
        .where(VendorWithdrawal.id == withdrawal_id)
        .with_for_update()
    )
    withdrawal = result.scalar_one_or_none()
    if withdrawal is None:
        raise WithdrawalNotFoundError()

    allowed = WITHDRAWAL_TRANSITIONS.get(withdrawal.status, set())
    if new_status not in allowed:
        raise InvalidTransitionError(
            f"Cannot move withdrawal from {withdrawal.status.value} to {new_status.value}"
        )

    previous = withdrawal.status
    withdrawal.status = new_status
    withdrawal.processed_by = processed_by
    if new_status == WithdrawalStatus.COMPLETED:
        withdrawal.completed_at = utc_now()
    if new_status == WithdrawalStatus.REJECTED:
        withdrawal.rejection_reason = reason
    await db.commit()

    logger.info(
        "Withdrawal %s: %s -> %s by %s",
        withdrawal.id,
        previous.value,
        new_status.value,
        processed_by,
    )
    vendor = await get_vendor(db, withdrawal.vendor_id)
    await notify_safely(
        notifier,
        vendor.auth_id,
        RecipientKind.VENDOR,
        "withdrawal_status_changed",
        {
            "withdrawal_id": str(withdrawal.id),
            "amount": str(withdrawal.amount),
            "status": new_status.value,
        },
    )
    return withdrawal


# ---------------------------------------------------------------------------
# Adjustments
# ---------------------------------------------------------------------------


async def record_adjustment(
    db: AsyncSession,
    *,
    vendor_id: uuid.UUID,
    amount: Decimal,
    reason: str,
    created_by: str,
) -> VendorWalletAdjustment:
    amount = to_money(amount)
    if amount == ZERO:
        raise ValidationError("Adjustment amount cannot be zero")
    if not reason or not reason.strip():
        raise ValidationError("Adjustment reason is required")

    vendor = await get_vendor(db, vendor_id)
    adjustment = VendorWalletAdjustment(
        vendor_id=vendor.id,
        amount=amount,
        reason=reason.strip(),
        created_by=created_by,
        created_at=utc_now(),
    )
    db.add(adjustment)
    await db.commit()
    logger.info(
        "Adjustment %s of %s recorded for vendor %s by %s: %s",
        adjustment.id,
        amount,
        vendor.id,
        created_by,
        adjustment.reason,
    )
    return adjustment
