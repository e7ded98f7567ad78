"""Create catalog, cart and order tables

Revision ID: c001_create_checkout
Revises:
Create Date: 2026-03-01

This migration creates the tables for checkout and the order lifecycle:
- tenants, events: stores and their events (read-only here)
- ticket_types, price_tiers, promotions, voucher_codes: the priced catalog
- carts, cart_items: per-store carts with a sliding expiry
- orders, order_items, pending_attendees, tickets, payments: the order lifecycle
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'c001_create_checkout'
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name, nullable=False):
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, server_default=sa.text('CURRENT_TIMESTAMP'))


def upgrade() -> None:
    op.create_table(
        'tenants',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('subdomain', sa.String(63), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        _timestamp('created_at'),
    )
    op.create_index('ix_tenants_subdomain', 'tenants', ['subdomain'], unique=True)

    op.create_table(
        'events',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('tenant_id', sa.String(), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('venue_name', sa.String(255), nullable=True),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='DRAFT'),
        _timestamp('created_at'),
    )
    op.create_index('ix_events_tenant_id', 'events', ['tenant_id'])

    # Catalog
    op.create_table(
        'ticket_types',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('base_price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('quantity_total', sa.Integer(), nullable=True),  # NULL = unlimited
        sa.Column('quantity_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('kind', sa.String(20), nullable=False, server_default='GENERAL'),
        sa.Column('sort_order', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        sa.CheckConstraint('quantity_sold >= 0', name='ck_ticket_types_quantity_sold_non_negative'),
        sa.CheckConstraint(
            'quantity_total IS NULL OR quantity_sold <= quantity_total',
            name='ck_ticket_types_quantity_sold_within_total',
        ),
    )
    op.create_index('ix_ticket_types_event_id', 'ticket_types', ['event_id'])

    op.create_table(
        'price_tiers',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('ticket_type_id', sa.String(), sa.ForeignKey('ticket_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('strategy', sa.String(20), nullable=False),
        sa.Column('price', sa.Integer(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('allocation_total', sa.Integer(), nullable=True),
        sa.Column('allocation_sold', sa.Integer(), nullable=False, server_default='0'),
        sa.CheckConstraint(
            'allocation_total IS NULL OR allocation_sold <= allocation_total',
            name='ck_price_tiers_allocation_sold_within_total',
        ),
    )
    op.create_index('ix_price_tiers_ticket_type_id', 'price_tiers', ['ticket_type_id'])

    op.create_table(
        'promotions',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.Integer(), nullable=False),  # basis points for PERCENT
        sa.Column('applies_to', sa.String(20), nullable=False),
        sa.Column('valid_from', sa.DateTime(timezone=True), nullable=True),
        sa.Column('valid_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('max_redemptions', sa.Integer(), nullable=True),
        sa.Column('max_per_user', sa.Integer(), nullable=True),
        sa.Column('redeemed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('requires_code', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        _timestamp('created_at'),
        sa.CheckConstraint('discount_value >= 0', name='ck_promotions_discount_value_non_negative'),
        sa.CheckConstraint(
            'max_redemptions IS NULL OR redeemed_count <= max_redemptions',
            name='ck_promotions_redeemed_within_max',
        ),
    )
    op.create_index('ix_promotions_event_id', 'promotions', ['event_id'])

    op.create_table(
        'promotion_ticket_types',
        sa.Column('promotion_id', sa.String(), sa.ForeignKey('promotions.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('ticket_type_id', sa.String(), sa.ForeignKey('ticket_types.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'voucher_codes',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('promotion_id', sa.String(), sa.ForeignKey('promotions.id', ondelete='CASCADE'), nullable=False),
        sa.Column('code', sa.String(50), nullable=False),  # stored upper-case
        sa.Column('max_redemptions', sa.Integer(), nullable=True),
        sa.Column('redeemed_count', sa.Integer(), nullable=False, server_default='0'),
        _timestamp('created_at'),
        sa.CheckConstraint(
            'max_redemptions IS NULL OR redeemed_count <= max_redemptions',
            name='ck_voucher_codes_redeemed_within_max',
        ),
    )
    op.create_index('ix_voucher_codes_code', 'voucher_codes', ['code'], unique=True)
    op.create_index('ix_voucher_codes_promotion_id', 'voucher_codes', ['promotion_id'])

    # Carts
    op.create_table(
        'carts',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),  # No FK - users live in the auth provider
        sa.Column('tenant_id', sa.String(), sa.ForeignKey('tenants.id', ondelete='CASCADE'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.UniqueConstraint('user_id', 'tenant_id', name='uq_carts_user_tenant'),
    )
    op.create_index('ix_carts_user_id', 'carts', ['user_id'])

    op.create_table(
        'cart_items',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('cart_id', sa.String(), sa.ForeignKey('carts.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_type_id', sa.String(), sa.ForeignKey('ticket_types.id', ondelete='CASCADE'), nullable=False),
        sa.Column('price_tier_id', sa.String(), sa.ForeignKey('price_tiers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        _timestamp('created_at'),
        sa.CheckConstraint('quantity > 0', name='ck_cart_items_quantity_positive'),
    )
    op.create_index('ix_cart_items_cart_id', 'cart_items', ['cart_id'])

    # Orders
    op.create_table(
        'orders',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_number', sa.String(50), nullable=False, unique=True),
        sa.Column('tenant_id', sa.String(), sa.ForeignKey('tenants.id'), nullable=False),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(30), nullable=False, server_default='PENDING'),

        # Amounts, whole currency units
        sa.Column('currency', sa.String(3), nullable=False, server_default='PHP'),
        sa.Column('subtotal', sa.Integer(), nullable=False),
        sa.Column('discount_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('service_fee', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total', sa.Integer(), nullable=False),
        sa.Column('promotion_id', sa.String(), sa.ForeignKey('promotions.id'), nullable=True),
        sa.Column('voucher_code_id', sa.String(), sa.ForeignKey('voucher_codes.id'), nullable=True),

        # Contact
        sa.Column('contact_email', sa.String(255), nullable=True),
        sa.Column('contact_phone', sa.String(50), nullable=True),

        # Hosted checkout
        sa.Column('payment_session_id', sa.String(255), nullable=True),
        sa.Column('payment_checkout_url', sa.String(1024), nullable=True),

        # Lifecycle
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
        _timestamp('updated_at'),
        sa.CheckConstraint('total >= 0', name='ck_orders_total_non_negative'),
        sa.CheckConstraint('discount_amount >= 0', name='ck_orders_discount_non_negative'),
    )
    op.create_index('ix_orders_tenant_id', 'orders', ['tenant_id'])
    op.create_index('ix_orders_event_id', 'orders', ['event_id'])
    op.create_index('ix_orders_user_id', 'orders', ['user_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_session_id', 'orders', ['payment_session_id'])
    op.create_index('ix_orders_expires_at', 'orders', ['expires_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('ticket_type_id', sa.String(), sa.ForeignKey('ticket_types.id'), nullable=False),
        sa.Column('price_tier_id', sa.String(), sa.ForeignKey('price_tiers.id'), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Integer(), nullable=False),
        sa.Column('total_price', sa.Integer(), nullable=False),
        sa.Column('ticket_type_name', sa.String(255), nullable=False),
        sa.Column('price_tier_name', sa.String(255), nullable=True),
        _timestamp('created_at'),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])

    op.create_table(
        'pending_attendees',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.UniqueConstraint('order_id', 'position', name='uq_pending_attendees_order_position'),
    )
    op.create_index('ix_pending_attendees_order_id', 'pending_attendees', ['order_id'])

    op.create_table(
        'tickets',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('ticket_code', sa.String(20), nullable=False),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id'), nullable=False),
        sa.Column('order_item_id', sa.String(), sa.ForeignKey('order_items.id'), nullable=False),
        sa.Column('event_id', sa.String(), sa.ForeignKey('events.id'), nullable=False),
        sa.Column('ticket_type_id', sa.String(), sa.ForeignKey('ticket_types.id'), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='ACTIVE'),
        sa.Column('holder_name', sa.String(255), nullable=True),
        sa.Column('holder_email', sa.String(255), nullable=True),
        sa.Column('holder_phone', sa.String(50), nullable=True),
        _timestamp('created_at'),
    )
    op.create_index('ix_tickets_ticket_code', 'tickets', ['ticket_code'], unique=True)
    op.create_index('ix_tickets_order_id', 'tickets', ['order_id'])
    op.create_index('ix_tickets_event_id', 'tickets', ['event_id'])
    op.create_index('ix_tickets_user_id', 'tickets', ['user_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('order_id', sa.String(), sa.ForeignKey('orders.id'), nullable=False, unique=True),
        sa.Column('provider_code', sa.String(50), nullable=False),
        sa.Column('provider_payment_id', sa.String(255), nullable=True, unique=True),
        sa.Column('provider_session_id', sa.String(255), nullable=True),
        sa.Column('amount', sa.Integer(), nullable=False),  # centavos
        sa.Column('currency', sa.String(3), nullable=False),
        sa.Column('status', sa.String(30), nullable=False),
        sa.Column('payment_method_type', sa.String(50), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        _timestamp('created_at'),
    )


def downgrade() -> None:
    op.drop_table('payments')
    op.drop_table('tickets')
    op.drop_table('pending_attendees')
    op.drop_table('order_items')
    op.drop_table('orders')
    op.drop_table('cart_items')
    op.drop_table('carts')
    op.drop_table('voucher_codes')
    op.drop_table('promotion_ticket_types')
    op.drop_table('promotions')
    op.drop_table('price_tiers')
    op.drop_table('ticket_types')
    op.drop_table('events')
    op.drop_table('tenants')
