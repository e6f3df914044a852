"""0001 production core schema

Revision ID: 0001_production_core
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_production_core'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade():
    op.create_table(
        'company',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('timezone', sa.String(length=64), nullable=False, server_default='UTC'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'user',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255), nullable=False, unique=True),
        sa.Column('name', sa.String(length=128), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        'membership',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=False),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False, server_default='EDITOR'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('company_id', 'user_id', name='uq_membership_company_user'),
    )
    op.create_index('ix_membership_company_id', 'membership', ['company_id'])
    op.create_index('ix_membership_user_id', 'membership', ['user_id'])

    op.create_table(
        'recipe',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('yield_quantity', sa.Numeric(12, 3), nullable=False, server_default='1'),
        sa.Column('yield_unit', sa.String(length=32), nullable=False, server_default='each'),
        *_timestamps(),
    )
    op.create_index('ix_recipe_company_id', 'recipe', ['company_id'])

    op.create_table(
        'wholesale_customer',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index('ix_wholesale_customer_company_id', 'wholesale_customer', ['company_id'])

    op.create_table(
        'wholesale_order',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='pending'),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('is_recurring', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('recurring_interval', sa.String(length=16), nullable=True),
        sa.Column('recurring_interval_days', sa.Integer(), nullable=True),
        sa.Column('recurring_status', sa.String(length=16), nullable=True),
        sa.Column('recurring_end_date', sa.Date(), nullable=True),
        sa.Column('next_recurrence_date', sa.Date(), nullable=True),
        sa.Column('parent_order_id', sa.Integer(), sa.ForeignKey('wholesale_order.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_wholesale_order_company_id', 'wholesale_order', ['company_id'])
    op.create_index('ix_wholesale_order_customer_id', 'wholesale_order', ['customer_id'])
    op.create_index('ix_wholesale_order_status', 'wholesale_order', ['status'])
    op.create_index('ix_wholesale_order_delivery_date', 'wholesale_order', ['delivery_date'])
    op.create_index('ix_wholesale_order_next_recurrence_date', 'wholesale_order', ['next_recurrence_date'])
    op.create_index('ix_wholesale_order_parent_order_id', 'wholesale_order', ['parent_order_id'])
    op.create_index(
        'idx_wholesale_order_company_status_delivery',
        'wholesale_order',
        ['company_id', 'status', 'delivery_date'],
    )

    op.create_table(
        'wholesale_order_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('wholesale_order.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('price', sa.Numeric(12, 2), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_index('ix_wholesale_order_item_order_id', 'wholesale_order_item', ['order_id'])
    op.create_index('ix_wholesale_order_item_recipe_id', 'wholesale_order_item', ['recipe_id'])

    op.create_table(
        'production_plan',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('start_date <= end_date', name='ck_production_plan_window'),
    )
    op.create_index('ix_production_plan_company_id', 'production_plan', ['company_id'])
    op.create_index(
        'idx_production_plan_company_window',
        'production_plan',
        ['company_id', 'start_date', 'end_date'],
    )

    op.create_table(
        'production_item',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('plan_id', sa.Integer(), sa.ForeignKey('production_plan.id', ondelete='CASCADE'), nullable=False),
        sa.Column('recipe_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_by', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_production_item_plan_id', 'production_item', ['plan_id'])
    op.create_index('ix_production_item_recipe_id', 'production_item', ['recipe_id'])

    op.create_table(
        'production_allocation',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('item_id', sa.Integer(), sa.ForeignKey('production_item.id', ondelete='CASCADE'), nullable=False),
        sa.Column('destination', sa.String(length=128), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=True),
        sa.Column('quantity', sa.Float(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
    )
    op.create_index('ix_production_allocation_item_id', 'production_allocation', ['item_id'])
    op.create_index('ix_production_allocation_customer_id', 'production_allocation', ['customer_id'])

    op.create_table(
        'production_job_assignment',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column(
            'production_item_id',
            sa.Integer(),
            sa.ForeignKey('production_item.id', ondelete='CASCADE'),
            nullable=False,
        ),
        sa.Column('membership_id', sa.Integer(), sa.ForeignKey('membership.id', ondelete='CASCADE'), nullable=False),
        sa.Column('assigned_date', sa.Date(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint(
            'production_item_id', 'membership_id', 'assigned_date',
            name='uq_production_job_assignment_item_member_date',
        ),
    )
    op.create_index('ix_production_job_assignment_production_item_id', 'production_job_assignment', ['production_item_id'])
    op.create_index('ix_production_job_assignment_membership_id', 'production_job_assignment', ['membership_id'])
    op.create_index('ix_production_job_assignment_assigned_date', 'production_job_assignment', ['assigned_date'])

    op.create_table(
        'domain_event',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('event_name', sa.String(length=128), nullable=False),
        sa.Column('occurred_at', sa.DateTime(), nullable=True),
        sa.Column('company_id', sa.Integer(), sa.ForeignKey('company.id'), nullable=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('user.id'), nullable=True),
        sa.Column('entity_type', sa.String(length=64), nullable=True),
        sa.Column('entity_id', sa.Integer(), nullable=True),
        sa.Column('correlation_id', sa.String(length=128), nullable=True),
        sa.Column('source', sa.String(length=64), nullable=True),
        sa.Column('schema_version', sa.Integer(), nullable=True),
        sa.Column('properties', sa.JSON(), nullable=True),
        sa.Column('is_processed', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('delivery_attempts', sa.Integer(), nullable=True, server_default='0'),
    )
    for column in ('event_name', 'occurred_at', 'company_id', 'user_id', 'entity_type',
                   'entity_id', 'correlation_id', 'is_processed'):
        op.create_index(f'ix_domain_event_{column}', 'domain_event', [column])


def downgrade():
    op.drop_table('domain_event')
    op.drop_table('production_job_assignment')
    op.drop_table('production_allocation')
    op.drop_table('production_item')
    op.drop_table('production_plan')
    op.drop_table('wholesale_order_item')
    op.drop_table('wholesale_order')
    op.drop_table('wholesale_customer')
    op.drop_table('recipe')
    op.drop_table('membership')
    op.drop_table('user')
    op.drop_table('company')
