"""marketplace_schema

Revision ID: 0001_marketplace
Revises:
Create Date: 2026-01-04 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '0001_marketplace'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

payment_method_enum = sa.Enum('paystack', 'cash_on_delivery', name='payment_method_enum')
order_status_enum = sa.Enum(
    'pending', 'confirmed', 'processing', 'ready', 'completed', 'cancelled', 'refunded',
    name='order_status_enum',
)
vendor_order_status_enum = sa.Enum(
    'pending', 'confirmed', 'preparing', 'ready', 'picked_up', 'delivered', 'cancelled',
    name='vendor_order_status_enum',
)
payment_status_enum = sa.Enum(
    'pending', 'completed', 'failed', 'refunded', name='payment_status_enum'
)
refund_status_enum = sa.Enum('none', 'partial', 'full', name='refund_status_enum')
withdrawal_status_enum = sa.Enum(
    'pending', 'processing', 'completed', 'rejected', name='withdrawal_status_enum'
)


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - catalog, cart, orders, payments and vendor wallet tables."""

    # Catalog
    op.create_table(
        'vendors',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('auth_id', sa.String(length=255), nullable=False),
        sa.Column('business_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('delivery_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('commission_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('delivery_fee >= 0', name='ck_vendor_delivery_fee_positive'),
        sa.CheckConstraint(
            'commission_rate >= 0 AND commission_rate <= 100',
            name='ck_vendor_commission_rate_range',
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vendors_auth_id', 'vendors', ['auth_id'], unique=True)

    op.create_table(
        'products',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_available', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('price >= 0', name='ck_product_price_positive'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_vendor_id', 'products', ['vendor_id'])

    # Cart
    op.create_table(
        'carts',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('customer_auth_id', sa.String(length=255), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_carts_customer_auth_id', 'carts', ['customer_auth_id'], unique=True)

    op.create_table(
        'cart_items',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('cart_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('selected_options', JSONB(), nullable=True),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        *_timestamps(),
        sa.CheckConstraint('quantity > 0', name='positive_quantity'),
        sa.ForeignKeyConstraint(['cart_id'], ['carts.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_cart_items_product_id', 'cart_items', ['product_id'])

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=20), nullable=False),
        sa.Column('customer_auth_id', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=True),
        sa.Column('shipping_address', JSONB(), nullable=False),
        sa.Column('payment_method', payment_method_enum, nullable=False),
        sa.Column('items_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('tax_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('shipping_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('total_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('is_paid', sa.Boolean(), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('payment_result', JSONB(), nullable=True),
        sa.Column('order_status', order_status_enum, server_default='pending', nullable=True),
        sa.Column('is_delivered', sa.Boolean(), nullable=False),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('special_instructions', sa.String(length=500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index('ix_orders_customer_auth_id', 'orders', ['customer_auth_id'])
    op.create_index('ix_orders_order_status', 'orders', ['order_status'])

    op.create_table(
        'vendor_orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_name', sa.String(length=100), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('subtotal', sa.Numeric(12, 2), nullable=False),
        sa.Column('delivery_fee', sa.Numeric(12, 2), nullable=False),
        sa.Column('status', vendor_order_status_enum, server_default='pending', nullable=True),
        sa.Column('status_updated_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vendor_orders_order_id', 'vendor_orders', ['order_id'])
    op.create_index('ix_vendor_orders_vendor_id', 'vendor_orders', ['vendor_id'])
    op.create_index('ix_vendor_orders_status', 'vendor_orders', ['status'])

    op.create_table(
        'order_items',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('product_id', UUID(as_uuid=True), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('selected_options', JSONB(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(
            ['vendor_order_id'], ['vendor_orders.id'], ondelete='CASCADE'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_vendor_order_id', 'order_items', ['vendor_order_id'])

    # Payments
    op.create_table(
        'payments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('reference', sa.String(length=64), nullable=False),
        sa.Column('customer_auth_id', sa.String(), nullable=False),
        sa.Column('payer_email', sa.String(), nullable=True),
        sa.Column(
            'method',
            ENUM(name='payment_method_enum', create_type=False),
            nullable=False,
        ),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('status', payment_status_enum, nullable=False),
        sa.Column('authorization_url', sa.String(), nullable=True),
        sa.Column('access_code', sa.String(length=128), nullable=True),
        sa.Column('payment_details', JSONB(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refund_amount', sa.Numeric(12, 2), nullable=True),
        sa.Column('refund_status', refund_status_enum, nullable=False),
        sa.Column('refund_reason', sa.Text(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            'refund_amount IS NULL OR refund_amount <= amount',
            name='ck_payment_refund_within_amount',
        ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_order_id', 'payments', ['order_id'], unique=True)
    op.create_index('ix_payments_reference', 'payments', ['reference'], unique=True)
    op.create_index('ix_payments_customer_auth_id', 'payments', ['customer_auth_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])

    # Vendor wallet
    op.create_table(
        'vendor_withdrawals',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('method', sa.String(length=100), nullable=False),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('status', withdrawal_status_enum, nullable=False),
        sa.Column('processed_by', sa.String(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('requested_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount > 0', name='ck_withdrawal_amount_positive'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_vendor_withdrawals_vendor_id', 'vendor_withdrawals', ['vendor_id'])
    op.create_index('ix_vendor_withdrawals_status', 'vendor_withdrawals', ['status'])

    op.create_table(
        'vendor_wallet_adjustments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('vendor_id', UUID(as_uuid=True), nullable=False),
        sa.Column('amount', sa.Numeric(12, 2), nullable=False),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('created_by', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('amount <> 0', name='ck_adjustment_amount_nonzero'),
        sa.ForeignKeyConstraint(['vendor_id'], ['vendors.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_vendor_wallet_adjustments_vendor_id',
        'vendor_wallet_adjustments',
        ['vendor_id'],
    )


def downgrade() -> None:
    """Downgrade schema - drop marketplace tables and enum types."""
    op.drop_table('vendor_wallet_adjustments')
    op.drop_table('vendor_withdrawals')
    op.drop_table('payments')
    op.drop_table('order_items')
    op.drop_table('vendor_orders')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('products')
    op.drop_table('vendors')

    bind = op.get_bind()
    for enum_type in (
        withdrawal_status_enum,
        refund_status_enum,
        payment_status_enum,
        vendor_order_status_enum,
        order_status_enum,
        payment_method_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
