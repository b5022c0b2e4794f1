"""Add POS webhook tables

Revision ID: 20261019_1400_add_pos_webhook_tables
Revises: 20261019_1000_create_pos_import_tables
Create Date: 2026-10-19 14:00:00.000000

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '20261019_1400_add_pos_webhook_tables'
down_revision = '20261019_1000_create_pos_import_tables'
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'pos_sales_point_mappings',
        sa.Column('sales_point_id', sa.String(64), nullable=False),
        sa.Column('restaurant_id', sa.String(64), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('sales_point_id')
    )
    op.create_index(
        'ix_pos_sales_point_mappings_restaurant_id',
        'pos_sales_point_mappings',
        ['restaurant_id'],
    )

    op.create_table(
        'pos_bill_states',
        sa.Column('restaurant_id', sa.String(64), nullable=False),
        sa.Column('id', sa.String(128), nullable=False),
        sa.Column('last_updated_at', sa.DateTime(), nullable=False),
        sa.Column('item_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('processed_row_ids', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('now()')),
        sa.PrimaryKeyConstraint('restaurant_id', 'id'),
        sa.ForeignKeyConstraint(
            ['restaurant_id', 'id'],
            ['pos_receipts.restaurant_id', 'pos_receipts.id'],
        )
    )
    op.create_index(
        'idx_pos_bill_states_processed', 'pos_bill_states', ['restaurant_id', 'last_updated_at']
    )


def downgrade():
    op.drop_index('idx_pos_bill_states_processed', table_name='pos_bill_states')
    op.drop_table('pos_bill_states')
    op.drop_index(
        'ix_pos_sales_point_mappings_restaurant_id', table_name='pos_sales_point_mappings'
    )
    op.drop_table('pos_sales_point_mappings')
