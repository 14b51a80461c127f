"""Initial schema for invoice import system

Revision ID: 001_invoice_schema
Revises:
Create Date: 2025-10-20

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_invoice_schema'
down_revision = None
branch_labels = None
depends_on = None


def _existing_tables() -> set:
    return set(sa.inspect(op.get_bind()).get_table_names())


def upgrade() -> None:
    existing = _existing_tables()

    if 'customers' not in existing:
        op.create_table(
            'customers',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('name', sa.Text(), nullable=False,
                      comment='Customer name as written in the spreadsheet'),
            sa.Column('address', sa.Text(), nullable=False, comment='Postal address'),
            sa.PrimaryKeyConstraint('id')
        )

    if 'products' not in existing:
        op.create_table(
            'products',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('name', sa.Text(), nullable=False,
                      comment='Product name as written in the spreadsheet'),
            sa.Column('price', sa.Numeric(precision=8, scale=2), nullable=False,
                      comment='Unit price (first value seen during import)'),
            sa.PrimaryKeyConstraint('id')
        )

    if 'invoices' not in existing:
        op.create_table(
            'invoices',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('invoice_date', sa.Date(), nullable=False,
                      comment='Invoice date converted from the spreadsheet serial'),
            sa.Column('customer_id', sa.Integer(), nullable=False),
            sa.Column('grand_total', sa.Numeric(precision=10, scale=2), nullable=False,
                      comment='Invoice grand total'),
            sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_invoices_customer_id', 'invoices', ['customer_id'])

    if 'invoice_items' not in existing:
        op.create_table(
            'invoice_items',
            sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
            sa.Column('invoice_id', sa.Integer(), nullable=False),
            sa.Column('product_id', sa.Integer(), nullable=False),
            sa.Column('quantity', sa.Numeric(precision=12, scale=3), nullable=False),
            sa.Column('total', sa.Numeric(precision=10, scale=2), nullable=False,
                      comment='Line total'),
            sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
            sa.ForeignKeyConstraint(['product_id'], ['products.id']),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('idx_invoice_items_invoice_id', 'invoice_items', ['invoice_id'])


def downgrade() -> None:
    existing = _existing_tables()

    # Children first so foreign keys never dangle
    if 'invoice_items' in existing:
        op.drop_index('idx_invoice_items_invoice_id', table_name='invoice_items')
        op.drop_table('invoice_items')

    if 'invoices' in existing:
        op.drop_index('idx_invoices_customer_id', table_name='invoices')
        op.drop_table('invoices')

    if 'products' in existing:
        op.drop_table('products')

    if 'customers' in existing:
        op.drop_table('customers')
