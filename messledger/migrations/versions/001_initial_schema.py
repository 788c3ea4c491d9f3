"""Initial ledger schema.

Revision ID: 001_initial_schema
Revises: None
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create members, inventory, charges, line items, payments and audit tables."""
    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('member_no', sa.String(50), nullable=False),
        sa.Column('rank', sa.String(50), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('role', sa.Enum('MEMBER', 'OPERATOR', name='memberrole'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('member_no'),
    )
    op.create_index('idx_member_role', 'members', ['role'])
    op.create_index('idx_member_no', 'members', ['member_no'])

    op.create_table(
        'inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('brand', sa.String(255), nullable=False),
        sa.Column('price_bottle', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('price_shot', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('available', sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_inventory_items_brand', 'inventory_items', ['brand'])

    op.create_table(
        'charges',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('charge_date', sa.Date(), nullable=False),
        sa.Column('category', sa.Enum('MESSING', 'BAR', name='chargecategory'), nullable=False),
        sa.Column('total_cost', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('is_bulk_entry', sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('total_cost >= 0', name='ck_charge_total_cost_non_negative'),
    )
    op.create_index('ix_charges_member_id', 'charges', ['member_id'])
    op.create_index('ix_charges_charge_date', 'charges', ['charge_date'])
    op.create_index('idx_charge_member_date', 'charges', ['member_id', 'charge_date'])
    op.create_index('idx_charge_category', 'charges', ['category'])

    op.create_table(
        'charge_line_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('charge_id', sa.Integer(), nullable=False),
        sa.Column('position', sa.Integer(), nullable=False),
        sa.Column('label', sa.String(255), nullable=False),
        sa.Column('unit_cost', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['charge_id'], ['charges.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity >= 1', name='ck_line_item_quantity_positive'),
    )
    op.create_index('ix_charge_line_items_charge_id', 'charge_line_items', ['charge_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('comment', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount > 0', name='ck_payment_amount_positive'),
    )
    op.create_index('ix_payments_member_id', 'payments', ['member_id'])
    op.create_index('ix_payments_payment_date', 'payments', ['payment_date'])
    op.create_index('idx_payment_member_date', 'payments', ['member_id', 'payment_date'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('entity_type', sa.String(length=32), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=32), nullable=False),
        sa.Column('actor_id', sa.Integer(), nullable=True),
        sa.Column('changes', sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(['actor_id'], ['members.id'], ),
        sa.PrimaryKeyConstraint('id'),
    )


def downgrade() -> None:
    """Drop all ledger tables."""
    op.drop_table('audit_logs')
    op.drop_index('idx_payment_member_date', table_name='payments')
    op.drop_index('ix_payments_payment_date', table_name='payments')
    op.drop_index('ix_payments_member_id', table_name='payments')
    op.drop_table('payments')
    op.drop_index('ix_charge_line_items_charge_id', table_name='charge_line_items')
    op.drop_table('charge_line_items')
    op.drop_index('idx_charge_category', table_name='charges')
    op.drop_index('idx_charge_member_date', table_name='charges')
    op.drop_index('ix_charges_charge_date', table_name='charges')
    op.drop_index('ix_charges_member_id', table_name='charges')
    op.drop_table('charges')
    op.drop_index('ix_inventory_items_brand', table_name='inventory_items')
    op.drop_table('inventory_items')
    op.drop_index('idx_member_no', table_name='members')
    op.drop_index('idx_member_role', table_name='members')
    op.drop_table('members')
