"""initial billing schema

Revision ID: b7c1d2e3f4a5
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the billing and inventory schema:
- products: catalog; `stock` guarded by a non-negative check constraint
- orders / order_items: tax invoices with price, cost and tax snapshots
- purchase_orders / purchase_order_items: supplier purchases and review queue
- supplier_mappings / watt_mappings: SKU linking aids
- company_config / sync_session: singleton configuration and cloud link rows
- users: staff accounts (bcrypt hashes)
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'b7c1d2e3f4a5'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # products
    # ============================================================================
    op.create_table(
        'products',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('category', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('stock', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('gst_rate', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('watts', sa.String(length=16), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('stock >= 0', name='ck_products_stock_non_negative'),
    )
    op.create_index('ix_products_category', 'products', ['category'])

    # ============================================================================
    # orders / order_items
    # ============================================================================
    op.create_table(
        'orders',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('serial_number', sa.String(length=64), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('customer_email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('customer_phone', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('customer_gstin', sa.String(length=32), nullable=True),
        sa.Column('notes', sa.Text(), nullable=False, server_default=''),
        sa.Column('is_inter_state', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('subtotal', sa.Numeric(14, 2), nullable=False),
        sa.Column('cgst', sa.Numeric(14, 2), nullable=False),
        sa.Column('sgst', sa.Numeric(14, 2), nullable=False),
        sa.Column('igst', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_tax', sa.Numeric(14, 2), nullable=False),
        sa.Column('total_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Issued'),
        sa.Column('created_by_user_id', sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('serial_number', name='uq_orders_serial_number'),
    )
    op.create_index('ix_orders_created_at', 'orders', ['created_at'])

    op.create_table(
        'order_items',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('order_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('cost_price', sa.Numeric(12, 2), nullable=False),
        sa.Column('gst_rate', sa.Numeric(5, 2), nullable=False),
        sa.Column('tax_amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_order_items_order_id', 'order_items', ['order_id'])
    op.create_index('ix_order_items_product_id', 'order_items', ['product_id'])

    # ============================================================================
    # purchase_orders / purchase_order_items
    # ============================================================================
    op.create_table(
        'purchase_orders',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('supplier_name', sa.String(length=255), nullable=False),
        sa.Column('country', sa.String(length=64), nullable=False, server_default='Unknown'),
        sa.Column('nature', sa.String(length=16), nullable=False, server_default='Stock'),
        sa.Column('invoice_ref', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('purchase_date', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='USD'),
        sa.Column('exchange_rate', sa.Numeric(14, 4), nullable=False, server_default='1'),
        sa.Column('extra_fee', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('extra_fee_remarks', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('deposit_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_foreign_amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('remaining_balance', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('investment_inr', sa.Numeric(16, 2), nullable=False, server_default='0'),
        sa.Column('total_quantity', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='Logged'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('created_by_user_id', sa.String(length=32), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_orders_status', 'purchase_orders', ['status'])
    op.create_index('ix_purchase_orders_created_at', 'purchase_orders', ['created_at'])

    op.create_table(
        'purchase_order_items',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('purchase_order_id', sa.String(length=32), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('supplier_sku', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('linked_sku', sa.String(length=64), nullable=True),
        sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('watts', sa.String(length=16), nullable=False, server_default=''),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost', sa.Numeric(14, 4), nullable=False),
        sa.Column('total_foreign', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['purchase_order_id'], ['purchase_orders.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_purchase_order_items_purchase_order_id', 'purchase_order_items', ['purchase_order_id'])

    # ============================================================================
    # mappings
    # ============================================================================
    op.create_table(
        'supplier_mappings',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('supplier_sku', sa.String(length=64), nullable=False),
        sa.Column('supplier_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('internal_sku', sa.String(length=64), nullable=False),
        sa.Column('internal_name', sa.String(length=255), nullable=False, server_default=''),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_supplier_mappings_supplier_sku', 'supplier_mappings', ['supplier_sku'])

    op.create_table(
        'watt_mappings',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('internal_sku', sa.String(length=64), nullable=False),
        sa.Column('watts', sa.String(length=16), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_watt_mappings_internal_sku', 'watt_mappings', ['internal_sku'])

    # ============================================================================
    # singletons: company_config, sync_session
    # ============================================================================
    op.create_table(
        'company_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('address', sa.Text(), nullable=False, server_default=''),
        sa.Column('gstin', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('phone', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('email', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('tagline', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('state_code', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('bank_name', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('bank_ifsc', sa.String(length=32), nullable=False, server_default=''),
        sa.Column('bank_account_no', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('bank_account_holder', sa.String(length=128), nullable=False, server_default=''),
        sa.Column('invoice_prefix', sa.String(length=16), nullable=False, server_default='TE'),
        sa.Column('invoice_sequence', sa.Integer(), nullable=False, server_default='1001'),
        sa.Column('low_stock_threshold', sa.Integer(), nullable=False, server_default='500'),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'sync_session',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('cloud_enabled', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('remote_file_id', sa.String(length=128), nullable=True),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='local'),
        sa.Column('last_error', sa.Text(), nullable=True),
        sa.Column('last_pushed_at', sa.DateTime(), nullable=True),
        sa.Column('last_pulled_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    # ============================================================================
    # users
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False, server_default='employee'),
        sa.Column('first_name', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(length=64), nullable=False, server_default=''),
        sa.Column('enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('phone', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )
    op.create_index('ix_users_username', 'users', ['username'])


def downgrade():
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
    op.drop_table('sync_session')
    op.drop_table('company_config')
    op.drop_index('ix_watt_mappings_internal_sku', table_name='watt_mappings')
    op.drop_table('watt_mappings')
    op.drop_index('ix_supplier_mappings_supplier_sku', table_name='supplier_mappings')
    op.drop_table('supplier_mappings')
    op.drop_index('ix_purchase_order_items_purchase_order_id', table_name='purchase_order_items')
    op.drop_table('purchase_order_items')
    op.drop_index('ix_purchase_orders_created_at', table_name='purchase_orders')
    op.drop_index('ix_purchase_orders_status', table_name='purchase_orders')
    op.drop_table('purchase_orders')
    op.drop_index('ix_order_items_product_id', table_name='order_items')
    op.drop_index('ix_order_items_order_id', table_name='order_items')
    op.drop_table('order_items')
    op.drop_index('ix_orders_created_at', table_name='orders')
    op.drop_table('orders')
    op.drop_index('ix_products_category', table_name='products')
    op.drop_table('products')
