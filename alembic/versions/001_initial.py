"""Initial schema - Wix mirror tables and webhook log

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

Creates:
1. contacts / customers - full and slim contact records
2. bookings, orders - linked to contacts and customers
3. loyalty, products
4. webhook_logs - audit trail of every delivery
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    """Create all tables."""

    # ===========================================
    # 1. CONTACTS / CUSTOMERS
    # ===========================================
    op.create_table(
        'contacts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('wix_contact_id', sa.String(255), nullable=True, unique=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.JSON, nullable=True),
        sa.Column('labels', sa.JSON, nullable=True),
        sa.Column('birth_date', sa.String(20), nullable=True),
        sa.Column('subscriber_status', sa.String(50), nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('wix_contact_id', sa.String(255), nullable=True, unique=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        *_timestamps(),
    )

    # ===========================================
    # 2. BOOKINGS / ORDERS
    # ===========================================
    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('wix_booking_id', sa.String(255), nullable=False, unique=True),
        sa.Column('contact_id', sa.String(36), sa.ForeignKey('contacts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('wix_contact_id', sa.String(255), nullable=True),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_phone', sa.String(50), nullable=True),
        sa.Column('service_name', sa.String(255), nullable=True),
        sa.Column('service_duration', sa.Integer, nullable=True),
        sa.Column('start_time', sa.DateTime, nullable=True),
        sa.Column('end_time', sa.DateTime, nullable=True),
        sa.Column('staff_member', sa.String(255), nullable=True),
        sa.Column('location', sa.String(255), nullable=True),
        sa.Column('number_of_participants', sa.Integer, nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('payment_status', sa.String(50), nullable=True),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('revision', sa.Integer, nullable=True),
        sa.Column('cancelled_date', sa.DateTime, nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_booking_start_time', 'bookings', ['start_time'])
    op.create_index('ix_booking_wix_contact', 'bookings', ['wix_contact_id'])

    op.create_table(
        'orders',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('wix_order_id', sa.String(255), nullable=False, unique=True),
        sa.Column('order_number', sa.String(50), nullable=True),
        sa.Column('contact_id', sa.String(36), sa.ForeignKey('contacts.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_id', sa.String(36), sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('wix_contact_id', sa.String(255), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('status', sa.String(50), nullable=True),
        sa.Column('payment_status', sa.String(50), nullable=True),
        sa.Column('previous_payment_status', sa.String(50), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(10), nullable=True),
        sa.Column('items', sa.JSON, nullable=True),
        sa.Column('billing_info', sa.JSON, nullable=True),
        sa.Column('shipping_info', sa.JSON, nullable=True),
        sa.Column('order_date', sa.DateTime, nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_order_customer_email', 'orders', ['customer_email'])

    # ===========================================
    # 3. LOYALTY / PRODUCTS
    # ===========================================
    op.create_table(
        'loyalty',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('contact_id', sa.String(255), nullable=False, unique=True),
        sa.Column('wix_loyalty_id', sa.String(255), nullable=True),
        sa.Column('contact_name', sa.String(255), nullable=True),
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('points_balance', sa.Integer, nullable=True),
        sa.Column('redeemed_points', sa.Integer, nullable=True),
        sa.Column('earned_points', sa.Integer, nullable=True),
        sa.Column('tier', sa.String(100), nullable=True),
        sa.Column('last_activity', sa.DateTime, nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'products',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('wix_product_id', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('currency', sa.String(10), nullable=True),
        sa.Column('stock_quantity', sa.Integer, nullable=True),
        sa.Column('in_stock', sa.Boolean, nullable=True),
        sa.Column('product_type', sa.String(50), nullable=True),
        sa.Column('sku', sa.String(100), nullable=True),
        sa.Column('payload', sa.JSON, nullable=True),
        *_timestamps(),
    )

    # ===========================================
    # 4. WEBHOOK LOGS
    # ===========================================
    op.create_table(
        'webhook_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('event_type', sa.String(255), nullable=True),
        sa.Column('webhook_status', sa.String(30), server_default='received'),
        sa.Column('wix_id', sa.String(255), nullable=True),
        sa.Column('endpoint', sa.String(100), nullable=True),
        sa.Column('error_message', sa.Text, nullable=True),
        sa.Column('data', sa.JSON, nullable=True),
        sa.Column('logged_at', sa.DateTime, server_default=sa.func.now()),
        sa.Column('retried_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_webhook_logs_status_logged', 'webhook_logs', ['webhook_status', 'logged_at'])


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_webhook_logs_status_logged', table_name='webhook_logs')
    op.drop_table('webhook_logs')
    op.drop_table('products')
    op.drop_table('loyalty')
    op.drop_index('ix_order_customer_email', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_booking_wix_contact', table_name='bookings')
    op.drop_index('ix_booking_start_time', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('customers')
    op.drop_table('contacts')
