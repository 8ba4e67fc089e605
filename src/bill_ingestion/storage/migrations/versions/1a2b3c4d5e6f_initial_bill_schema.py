"""Initial bill schema: buildings, meters, bill uploads, bills, usage readings

Revision ID: 1a2b3c4d5e6f
Revises:
Create Date: 2026-09-14 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '1a2b3c4d5e6f'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table('buildings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('org_id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=300), nullable=True),
        sa.Column('address', sa.String(length=500), nullable=True),
        sa.Column('city', sa.String(length=200), nullable=True),
        sa.Column('state', sa.String(length=50), nullable=True),
        sa.Column('postal_code', sa.String(length=20), nullable=True),
        sa.Column('registry_property_id', sa.String(length=50), nullable=True),
        sa.Column('registry_property_name', sa.String(length=300), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_buildings_org_id'), 'buildings', ['org_id'], unique=False)
    op.create_index(op.f('ix_buildings_registry_property_id'), 'buildings', ['registry_property_id'], unique=False)

    op.create_table('building_alternate_addresses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('building_id', sa.Uuid(), nullable=False),
        sa.Column('address', sa.String(length=500), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_building_alternate_addresses_building_id'), 'building_alternate_addresses', ['building_id'], unique=False)

    op.create_table('meters',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('building_id', sa.Uuid(), nullable=False),
        sa.Column('utility', sa.String(length=20), nullable=False),
        sa.Column('label', sa.String(length=100), nullable=True),
        sa.Column('provider', sa.String(length=200), nullable=True),
        sa.Column('registry_meter_id', sa.String(length=50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('building_id', 'utility', 'label', name='uq_meters_building_utility_label')
    )
    op.create_index(op.f('ix_meters_building_id'), 'meters', ['building_id'], unique=False)
    # One unlabeled default meter per building and utility
    op.create_index('uq_meters_default_per_building', 'meters', ['building_id', 'utility'], unique=True,
                    postgresql_where=sa.text('label IS NULL'))

    op.create_table('bill_uploads',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('file_hash', sa.String(length=64), nullable=False),
        sa.Column('filename', sa.String(length=512), nullable=False),
        sa.Column('vendor', sa.String(length=50), nullable=False),
        sa.Column('classification_method', sa.String(length=20), nullable=False),
        sa.Column('item_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('result_json', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bill_uploads_file_hash'), 'bill_uploads', ['file_hash'], unique=False)

    op.create_table('bills',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('building_id', sa.Uuid(), nullable=False),
        sa.Column('meter_id', sa.Uuid(), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('total_cost', sa.Float(), nullable=True),
        sa.Column('demand_cost', sa.Float(), nullable=True),
        sa.Column('utility_provider', sa.String(length=200), nullable=True),
        sa.Column('bill_upload_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('period_end >= period_start', name='ck_bills_period_order'),
        sa.ForeignKeyConstraint(['building_id'], ['buildings.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['meter_id'], ['meters.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('meter_id', 'period_start', 'period_end', name='uq_bills_natural_key')
    )
    op.create_index(op.f('ix_bills_building_id'), 'bills', ['building_id'], unique=False)
    op.create_index(op.f('ix_bills_meter_id'), 'bills', ['meter_id'], unique=False)
    op.create_index(op.f('ix_bills_bill_upload_id'), 'bills', ['bill_upload_id'], unique=False)

    op.create_table('usage_readings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('bill_id', sa.Uuid(), nullable=False),
        sa.Column('usage_kwh', sa.Float(), nullable=True),
        sa.Column('usage_mcf', sa.Float(), nullable=True),
        sa.Column('usage_mmbtu', sa.Float(), nullable=True),
        sa.Column('therms', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bill_id'], ['bills.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('bill_id')
    )


def downgrade() -> None:
    op.drop_table('usage_readings')
    op.drop_index(op.f('ix_bills_bill_upload_id'), table_name='bills')
    op.drop_index(op.f('ix_bills_meter_id'), table_name='bills')
    op.drop_index(op.f('ix_bills_building_id'), table_name='bills')
    op.drop_table('bills')
    op.drop_index(op.f('ix_bill_uploads_file_hash'), table_name='bill_uploads')
    op.drop_table('bill_uploads')
    op.drop_index('uq_meters_default_per_building', table_name='meters')
    op.drop_index(op.f('ix_meters_building_id'), table_name='meters')
    op.drop_table('meters')
    op.drop_index(op.f('ix_building_alternate_addresses_building_id'), table_name='building_alternate_addresses')
    op.drop_table('building_alternate_addresses')
    op.drop_index(op.f('ix_buildings_registry_property_id'), table_name='buildings')
    op.drop_index(op.f('ix_buildings_org_id'), table_name='buildings')
    op.drop_table('buildings')
