"""Create POS import tables

Revision ID: 20261019_1000_create_pos_import_tables
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_1000_create_pos_import_tables'
down_revision = None
branch_labels = None
depends_on = None


def _scoped_key():
    return [
        sa.Column('restaurant_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(128), nullable=False),
    ]


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade():
    op.create_table(
        'pos_categories',
        *_scoped_key(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('external_ref', sa.String(128), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )

    op.create_table(
        'pos_products',
        *_scoped_key(),
        sa.Column('category_id', sa.String(128), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('selling_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('department_name', sa.String(255), nullable=True),
        sa.Column('vat_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('has_variants', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('variants_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_enabled_for_restaurant', sa.Boolean(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id'),
        sa.ForeignKeyConstraint(
            ['restaurant_id', 'category_id'],
            ['pos_categories.restaurant_id', 'pos_categories.id'],
        )
    )
    op.create_index('idx_pos_products_category', 'pos_products', ['restaurant_id', 'category_id'])

    op.create_table(
        'pos_customers',
        *_scoped_key(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('first_name', sa.String(255), nullable=True),
        sa.Column('last_name', sa.String(255), nullable=True),
        sa.Column('vat_number', sa.String(64), nullable=True),
        sa.Column('fiscal_code', sa.String(64), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone_number', sa.String(64), nullable=True),
        sa.Column('address', sa.String(255), nullable=True),
        sa.Column('zip_code', sa.String(32), nullable=True),
        sa.Column('city', sa.String(128), nullable=True),
        sa.Column('country', sa.String(64), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )

    op.create_table(
        'pos_receipts',
        *_scoped_key(),
        sa.Column('number', sa.String(64), nullable=True),
        sa.Column('receipt_date', sa.Date(), nullable=False),
        sa.Column('receipt_datetime', sa.DateTime(), nullable=True),
        sa.Column('total', sa.Numeric(12, 2), nullable=False),
        sa.Column('z_number', sa.String(64), nullable=True),
        sa.Column('lottery_code', sa.String(64), nullable=True),
        sa.Column('user_fo_id', sa.String(128), nullable=True),
        sa.Column('user_fo_name', sa.String(255), nullable=True),
        sa.Column('document_id', sa.String(128), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )
    op.create_index('idx_pos_receipts_date', 'pos_receipts', ['restaurant_id', 'receipt_date'])

    op.create_table(
        'pos_receipt_rows',
        *_scoped_key(),
        sa.Column('receipt_id', sa.String(128), nullable=False),
        sa.Column('row_number', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False, server_default='0'),
        sa.Column('price', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('vat', sa.Numeric(5, 2), nullable=True),
        sa.Column('total', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('product_id', sa.String(128), nullable=True),
        sa.Column('product_variant_id', sa.String(128), nullable=True),
        sa.Column('category_id', sa.String(128), nullable=True),
        sa.Column('department_id', sa.String(128), nullable=True),
        sa.Column('is_refund', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('note', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id'),
        sa.ForeignKeyConstraint(
            ['restaurant_id', 'receipt_id'],
            ['pos_receipts.restaurant_id', 'pos_receipts.id'],
        )
    )
    op.create_index('idx_pos_receipt_rows_receipt', 'pos_receipt_rows', ['restaurant_id', 'receipt_id'])
    op.create_index('idx_pos_receipt_rows_product', 'pos_receipt_rows', ['restaurant_id', 'product_id'])

    op.create_table(
        'pos_rooms',
        *_scoped_key(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('sales_point_id', sa.String(64), nullable=True),
        sa.Column('external_ref', sa.String(128), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )

    op.create_table(
        'pos_tables',
        *_scoped_key(),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('room_id', sa.String(128), nullable=True),
        sa.Column('sales_point_id', sa.String(64), nullable=True),
        sa.Column('seats', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('external_ref', sa.String(128), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )
    op.create_index('ix_pos_tables_room_id', 'pos_tables', ['room_id'])

    op.create_table(
        'pos_stock',
        *_scoped_key(),
        sa.Column('product_id', sa.String(128), nullable=False),
        sa.Column('sales_point_id', sa.String(64), nullable=True),
        sa.Column('variant_id', sa.String(128), nullable=True),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False, server_default='0'),
        sa.Column('unit', sa.String(32), nullable=True),
        sa.Column('warning_level', sa.Numeric(12, 3), nullable=True),
        sa.Column('manage_stock', sa.Boolean(), nullable=True),
        sa.Column('last_synced_at', sa.DateTime(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )
    op.create_index('ix_pos_stock_product_id', 'pos_stock', ['product_id'])

    op.create_table(
        'pos_sold_products',
        *_scoped_key(),
        sa.Column('product_id', sa.String(128), nullable=False),
        sa.Column('product_name', sa.String(255), nullable=True),
        sa.Column('period_from', sa.String(32), nullable=False),
        sa.Column('period_to', sa.String(32), nullable=False),
        sa.Column('quantity', sa.Numeric(12, 3), nullable=False, server_default='0'),
        sa.Column('profit', sa.Numeric(12, 2), nullable=False, server_default='0'),
        sa.Column('percent_total', sa.Numeric(7, 4), nullable=True),
        sa.Column('is_menu_entry', sa.Boolean(), nullable=False, server_default='false'),
        *_timestamps(),
        sa.PrimaryKeyConstraint('restaurant_id', 'id')
    )
    op.create_index('ix_pos_sold_products_product_id', 'pos_sold_products', ['product_id'])

    op.create_table(
        'pos_access_tokens',
        sa.Column('key_hash', sa.String(64), nullable=False),
        sa.Column('token', sa.Text(), nullable=False),
        sa.Column('expires_at', sa.Float(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('key_hash')
    )


def downgrade():
    op.drop_table('pos_access_tokens')
    op.drop_index('ix_pos_sold_products_product_id', table_name='pos_sold_products')
    op.drop_table('pos_sold_products')
    op.drop_index('ix_pos_stock_product_id', table_name='pos_stock')
    op.drop_table('pos_stock')
    op.drop_index('ix_pos_tables_room_id', table_name='pos_tables')
    op.drop_table('pos_tables')
    op.drop_table('pos_rooms')
    op.drop_index('idx_pos_receipt_rows_product', table_name='pos_receipt_rows')
    op.drop_index('idx_pos_receipt_rows_receipt', table_name='pos_receipt_rows')
    op.drop_table('pos_receipt_rows')
    op.drop_index('idx_pos_receipts_date', table_name='pos_receipts')
    op.drop_table('pos_receipts')
    op.drop_table('pos_customers')
    op.drop_index('idx_pos_products_category', table_name='pos_products')
    op.drop_table('pos_products')
    op.drop_table('pos_categories')
