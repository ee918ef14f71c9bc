"""Create commission ledger tables

Revision ID: 20261019_commission_ledger
Revises:
Create Date: 2026-10-19

Tables:
- agencies, properties, leases: commission policy configuration
- lease_payment_records: billable payments with ledger back-links
- commission_records: one per commissioned payment (UNIQUE payment_record_id)
- landlord_payments: one per commission record (UNIQUE commission_record_id, payment_record_id)
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '20261019_commission_ledger'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def upgrade() -> None:
    # ==================== agencies ====================
    op.create_table(
        'agencies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('agency_platform_commission_type', sa.String(50), nullable=False,
                  server_default='PERCENTAGE', comment='PERCENTAGE, FIXED'),
        sa.Column('agency_platform_commission_rate', sa.Numeric(5, 2), nullable=True, server_default='15'),
        sa.Column('agency_platform_commission_fixed', sa.Numeric(14, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )

    # ==================== properties ====================
    op.create_table(
        'properties',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('landlord_id', sa.Uuid(), nullable=False),
        sa.Column('agent_id', sa.Uuid(), nullable=True),
        sa.Column('agency_id', sa.Uuid(), nullable=True),
        sa.Column('commission_type', sa.String(50), nullable=True,
                  comment='PERCENTAGE, FIXED_AMOUNT (NULL = no commission)'),
        sa.Column('commission_percentage', sa.Numeric(5, 2), nullable=True),
        sa.Column('commission_fixed_amount', sa.Numeric(14, 2), nullable=True),
        sa.Column('platform_fee_percentage', sa.Numeric(5, 2), nullable=True, server_default='20',
                  comment="Platform share of an individual agent's commission"),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_properties_landlord_id', 'properties', ['landlord_id'])
    op.create_index('ix_properties_agency', 'properties', ['agency_id'])

    # ==================== leases ====================
    op.create_table(
        'leases',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('property_id', sa.Uuid(), nullable=False),
        sa.Column('agent_id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=True),
        sa.Column('landlord_id', sa.Uuid(), nullable=False),
        sa.Column('agency_commission_enabled', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('agency_commission_type', sa.String(50), nullable=True, comment='PERCENTAGE, FIXED'),
        sa.Column('agency_commission_rate', sa.Numeric(5, 2), nullable=True),
        sa.Column('agency_commission_fixed', sa.Numeric(14, 2), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['property_id'], ['properties.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='SET NULL'),
    )
    op.create_index('ix_leases_property_id', 'leases', ['property_id'])
    op.create_index('ix_leases_agent_id', 'leases', ['agent_id'])
    op.create_index('ix_leases_agency', 'leases', ['agency_id'])

    # ==================== lease_payment_records ====================
    op.create_table(
        'lease_payment_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('lease_id', sa.Uuid(), nullable=False),
        sa.Column('agent_id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=True),
        sa.Column('type', sa.String(50), nullable=False, server_default='OTHER',
                  comment='RENT, SECURITY_DEPOSIT, FEE, OTHER'),
        sa.Column('label', sa.String(200), nullable=False),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('amount_due', sa.Numeric(14, 2), nullable=False),
        sa.Column('charges', sa.JSON(), nullable=False, comment='Extra charges: [{label, amount}]'),
        sa.Column('status', sa.String(50), nullable=False, server_default='PENDING',
                  comment='PENDING, SENT, PARTIALLY_PAID, PAID, CANCELLED'),
        sa.Column('amount_paid', sa.Numeric(14, 2), nullable=True),
        sa.Column('paid_date', sa.Date(), nullable=True),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('commission_record_id', sa.Uuid(), nullable=True),
        sa.Column('landlord_payment_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['lease_id'], ['leases.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_lease_payment_records_agent_id', 'lease_payment_records', ['agent_id'])
    op.create_index('ix_lease_payment_records_lease_status', 'lease_payment_records', ['lease_id', 'status'])
    op.create_index('ix_lease_payment_records_lease_due', 'lease_payment_records', ['lease_id', 'due_date'])
    op.create_index('ix_lease_payment_records_commission_record_id', 'lease_payment_records',
                    ['commission_record_id'])
    op.create_index('ix_lease_payment_records_landlord_payment_id', 'lease_payment_records',
                    ['landlord_payment_id'])

    # ==================== commission_records ====================
    op.create_table(
        'commission_records',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('payment_record_id', sa.Uuid(), nullable=False),
        sa.Column('lease_id', sa.Uuid(), nullable=False),
        sa.Column('property_id', sa.Uuid(), nullable=False),
        sa.Column('agent_id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=True),
        sa.Column('landlord_id', sa.Uuid(), nullable=False),
        sa.Column('payment_amount', sa.Numeric(14, 2), nullable=False, comment='Billed amount plus charges'),
        sa.Column('agent_gross_commission', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('agent_platform_fee', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('agent_net_commission', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('agency_commission_enabled', sa.Boolean(), nullable=True, server_default=sa.false()),
        sa.Column('agency_gross_commission', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('agency_platform_fee', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('agency_net_commission', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('platform_commission', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('landlord_net_amount', sa.Numeric(14, 2), nullable=True, server_default='0'),
        sa.Column('commission_settings', sa.JSON(), nullable=True,
                  comment='Policy values frozen at first computation'),
        sa.Column('status', sa.String(50), nullable=False, server_default='PENDING',
                  comment='PENDING, PAID, CANCELLED'),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['payment_record_id'], ['lease_payment_records.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('payment_record_id', name='uq_commission_records_payment'),
    )
    op.create_index('ix_commission_records_lease_id', 'commission_records', ['lease_id'])
    op.create_index('ix_commission_records_landlord_id', 'commission_records', ['landlord_id'])
    op.create_index('ix_commission_records_agent_status', 'commission_records', ['agent_id', 'status'])
    op.create_index('ix_commission_records_agency', 'commission_records', ['agency_id'])
    op.create_index('ix_commission_records_created', 'commission_records', ['created_at'])

    # ==================== landlord_payments ====================
    op.create_table(
        'landlord_payments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('commission_record_id', sa.Uuid(), nullable=False),
        sa.Column('payment_record_id', sa.Uuid(), nullable=False),
        sa.Column('lease_id', sa.Uuid(), nullable=False),
        sa.Column('landlord_id', sa.Uuid(), nullable=False),
        sa.Column('gross_amount', sa.Numeric(14, 2), nullable=False,
                  comment='Total payment amount (billed plus charges)'),
        sa.Column('net_amount', sa.Numeric(14, 2), nullable=False, comment='Landlord net amount after adjustments'),
        sa.Column('adjustments', sa.JSON(), nullable=False,
                  comment='[{label, amount, type: ADDITION|DEDUCTION}]'),
        sa.Column('status', sa.String(50), nullable=False, server_default='PENDING',
                  comment='PENDING, PROCESSED, PAID, CANCELLED'),
        sa.Column('payment_method', sa.String(50), nullable=True),
        sa.Column('payment_reference', sa.String(100), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['commission_record_id'], ['commission_records.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['payment_record_id'], ['lease_payment_records.id'], ondelete='RESTRICT'),
        sa.UniqueConstraint('commission_record_id', name='uq_landlord_payments_commission'),
        sa.UniqueConstraint('payment_record_id', name='uq_landlord_payments_payment'),
    )
    op.create_index('ix_landlord_payments_lease_id', 'landlord_payments', ['lease_id'])
    op.create_index('ix_landlord_payments_landlord_status', 'landlord_payments', ['landlord_id', 'status'])


def downgrade() -> None:
    op.drop_index('ix_landlord_payments_landlord_status', table_name='landlord_payments')
    op.drop_index('ix_landlord_payments_lease_id', table_name='landlord_payments')
    op.drop_table('landlord_payments')

    op.drop_index('ix_commission_records_created', table_name='commission_records')
    op.drop_index('ix_commission_records_agency', table_name='commission_records')
    op.drop_index('ix_commission_records_agent_status', table_name='commission_records')
    op.drop_index('ix_commission_records_landlord_id', table_name='commission_records')
    op.drop_index('ix_commission_records_lease_id', table_name='commission_records')
    op.drop_table('commission_records')

    op.drop_index('ix_lease_payment_records_landlord_payment_id', table_name='lease_payment_records')
    op.drop_index('ix_lease_payment_records_commission_record_id', table_name='lease_payment_records')
    op.drop_index('ix_lease_payment_records_lease_due', table_name='lease_payment_records')
    op.drop_index('ix_lease_payment_records_lease_status', table_name='lease_payment_records')
    op.drop_index('ix_lease_payment_records_agent_id', table_name='lease_payment_records')
    op.drop_table('lease_payment_records')

    op.drop_index('ix_leases_agency', table_name='leases')
    op.drop_index('ix_leases_agent_id', table_name='leases')
    op.drop_index('ix_leases_property_id', table_name='leases')
    op.drop_table('leases')

    op.drop_index('ix_properties_agency', table_name='properties')
    op.drop_index('ix_properties_landlord_id', table_name='properties')
    op.drop_table('properties')

    op.drop_table('agencies')
