"""Initial schema: accounts, catalog, pricing, orders, settings, auth tokens

Revision ID: 20261018_initial
Revises:
Create Date: 2026-10-18

Creates:
1. users (self-referential hierarchy via parent_id)
2. products with the approval workflow columns
3. admin_product_pricing and customer_pricing override tables
4. orders and order_items (money in integer cents)
5. system_settings singleton and pending_settings_changes
6. revoked_tokens, email_verification_tokens, password_reset_tokens
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
    ]


def upgrade():
    # ==========================================================================
    # 1. USERS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('email_verified', sa.Boolean(), nullable=False),
        sa.Column('must_change_password', sa.Boolean(), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('uid', sa.String(length=20), nullable=True),
        sa.Column('mobile_no', sa.String(length=32), nullable=True),
        sa.Column('business_name', sa.String(length=255), nullable=True),
        sa.Column('address1', sa.String(length=255), nullable=True),
        sa.Column('address2', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('district', sa.String(length=128), nullable=True),
        sa.Column('pin', sa.String(length=16), nullable=True),
        sa.Column('state', sa.String(length=128), nullable=True),
        sa.Column('country', sa.String(length=128), nullable=True),
        sa.Column('registration_no', sa.String(length=128), nullable=True),
        sa.Column('registration_copy_url', sa.Text(), nullable=True),
        sa.Column('avatar_url', sa.Text(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], name='fk_users_created_by_id_users'),
        sa.ForeignKeyConstraint(['parent_id'], ['users.id'], name='fk_users_parent_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('uid', name='uq_users_uid'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_parent_id', ['parent_id'], unique=False)
        batch_op.create_index('ix_users_role_parent', ['role', 'parent_id'], unique=False)

    # ==========================================================================
    # 2. PRODUCTS
    # ==========================================================================
    op.create_table('products',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('image_url', sa.Text(), nullable=True),
        sa.Column('stock', sa.Integer(), nullable=False),
        sa.Column('category', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('created_by_id', sa.Integer(), nullable=False),
        sa.Column('reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], name='fk_products_created_by_id_users'),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], name='fk_products_reviewed_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_products'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('products', schema=None) as batch_op:
        batch_op.create_index('ix_products_status_active', ['status', 'is_active'], unique=False)

    # ==========================================================================
    # 3. PRICE OVERRIDES
    # ==========================================================================
    op.create_table('admin_product_pricing',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('distributor_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('custom_price_cents', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], name='fk_admin_product_pricing_admin_id_users'),
        sa.ForeignKeyConstraint(['distributor_id'], ['users.id'], name='fk_admin_product_pricing_distributor_id_users'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_admin_product_pricing_product_id_products', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_admin_product_pricing'),
        sa.UniqueConstraint('admin_id', 'distributor_id', 'product_id', name='uq_admin_product_pricing_triple'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('admin_product_pricing', schema=None) as batch_op:
        batch_op.create_index('ix_admin_product_pricing_admin_id', ['admin_id'], unique=False)
        batch_op.create_index('ix_admin_product_pricing_distributor', ['distributor_id', 'is_active'], unique=False)

    op.create_table('customer_pricing',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('distributor_id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('custom_price_cents', sa.Integer(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['distributor_id'], ['users.id'], name='fk_customer_pricing_distributor_id_users'),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id'], name='fk_customer_pricing_customer_id_users'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_customer_pricing_product_id_products', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_customer_pricing'),
        sa.UniqueConstraint('distributor_id', 'customer_id', 'product_id', name='uq_customer_pricing_triple'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customer_pricing', schema=None) as batch_op:
        batch_op.create_index('ix_customer_pricing_distributor_id', ['distributor_id'], unique=False)
        batch_op.create_index('ix_customer_pricing_customer_id', ['customer_id'], unique=False)

    # ==========================================================================
    # 4. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_number', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('distributor_id', sa.Integer(), nullable=False),
        sa.Column('admin_id', sa.Integer(), nullable=False),
        sa.Column('total_amount_cents', sa.BigInteger(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('desired_delivery_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('current_delivery_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('marked_for_today', sa.Boolean(), nullable=False),
        sa.Column('sent_to_admin', sa.Boolean(), nullable=False),
        sa.Column('sent_to_admin_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('admin_received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('received_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('amount_paid_cents', sa.BigInteger(), nullable=False),
        sa.Column('payment_status', sa.String(length=16), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['customer_id'], ['users.id'], name='fk_orders_customer_id_users'),
        sa.ForeignKeyConstraint(['distributor_id'], ['users.id'], name='fk_orders_distributor_id_users'),
        sa.ForeignKeyConstraint(['admin_id'], ['users.id'], name='fk_orders_admin_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_orders'),
        sa.UniqueConstraint('order_number', name='uq_orders_order_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index('ix_orders_customer_id', ['customer_id'], unique=False)
        batch_op.create_index('ix_orders_distributor_id', ['distributor_id'], unique=False)
        batch_op.create_index('ix_orders_admin_id', ['admin_id'], unique=False)
        batch_op.create_index('ix_orders_distributor_received', ['distributor_id', 'received_at'], unique=False)
        batch_op.create_index('ix_orders_admin_sent', ['admin_id', 'sent_to_admin'], unique=False)

    op.create_table('order_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.BigInteger(), nullable=False),
        sa.CheckConstraint('quantity > 0', name='ck_order_items_quantity_positive'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], name='fk_order_items_order_id_orders', ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], name='fk_order_items_product_id_products'),
        sa.PrimaryKeyConstraint('id', name='pk_order_items'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_items', schema=None) as batch_op:
        batch_op.create_index('ix_order_items_order_id', ['order_id'], unique=False)

    # ==========================================================================
    # 5. SETTINGS
    # ==========================================================================
    op.create_table('system_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email_from_address', sa.String(length=255), nullable=True),
        sa.Column('smtp_status', sa.String(length=16), nullable=False),
        sa.Column('jwt_session_duration', sa.Integer(), nullable=False),
        sa.Column('password_min_length', sa.Integer(), nullable=False),
        sa.Column('password_require_uppercase', sa.Boolean(), nullable=False),
        sa.Column('password_require_lowercase', sa.Boolean(), nullable=False),
        sa.Column('password_require_numbers', sa.Boolean(), nullable=False),
        sa.Column('password_require_special_chars', sa.Boolean(), nullable=False),
        sa.Column('feature_toggles', sa.JSON(), nullable=False),
        sa.Column('notification_email_enabled', sa.Boolean(), nullable=False),
        sa.Column('notification_on_site_enabled', sa.Boolean(), nullable=False),
        sa.Column('field_requirements', sa.JSON(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id', name='pk_system_settings')
    )

    op.create_table('pending_settings_changes',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('requested_by_id', sa.Integer(), nullable=False),
        sa.Column('field_requirements', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('reviewed_by_id', sa.Integer(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['requested_by_id'], ['users.id'], name='fk_pending_settings_changes_requested_by_id_users'),
        sa.ForeignKeyConstraint(['reviewed_by_id'], ['users.id'], name='fk_pending_settings_changes_reviewed_by_id_users'),
        sa.PrimaryKeyConstraint('id', name='pk_pending_settings_changes'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('pending_settings_changes', schema=None) as batch_op:
        batch_op.create_index('ix_pending_settings_changes_requested_status', ['requested_by_id', 'status'], unique=False)

    # ==========================================================================
    # 6. AUTH TOKENS
    # ==========================================================================
    op.create_table('revoked_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_revoked_tokens'),
        sa.UniqueConstraint('token_hash', name='uq_revoked_tokens_token_hash'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('revoked_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_revoked_tokens_expires_at', ['expires_at'], unique=False)

    op.create_table('email_verification_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_email_verification_tokens'),
        sa.UniqueConstraint('token_hash', name='uq_email_verification_tokens_token_hash'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('email_verification_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_email_verification_tokens_email', ['email'], unique=False)
        batch_op.create_index('ix_email_verification_tokens_expires_at', ['expires_at'], unique=False)

    op.create_table('password_reset_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('code_hash', sa.String(length=64), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('used', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_password_reset_tokens'),
        sa.UniqueConstraint('email', name='uq_password_reset_tokens_email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('password_reset_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_password_reset_tokens_expires_at', ['expires_at'], unique=False)


def downgrade():
    for table in (
        'password_reset_tokens',
        'email_verification_tokens',
        'revoked_tokens',
        'pending_settings_changes',
        'system_settings',
        'order_items',
        'orders',
        'customer_pricing',
        'admin_product_pricing',
        'products',
        'users',
    ):
        op.drop_table(table)
