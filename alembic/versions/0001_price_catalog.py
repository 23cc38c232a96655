"""create_price_catalog_tables

Revision ID: 0001
Revises:
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ### reference data ###
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('code', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
    )
    op.create_index('ix_categories_code', 'categories', ['code'], unique=True)

    op.create_table(
        'rental_locations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
    )
    op.create_index('ix_rental_locations_name', 'rental_locations', ['name'], unique=True)

    op.create_table(
        'rate_types',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
    )
    op.create_index('ix_rate_types_name', 'rate_types', ['name'], unique=True)

    op.create_table(
        'season_definitions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
    )

    op.create_table(
        'seasons',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('season_definition_id', sa.Integer(), sa.ForeignKey('season_definitions.id'), nullable=False),
        sa.UniqueConstraint('season_definition_id', 'name', name='uq_season_definition_name'),
    )
    op.create_index('ix_seasons_season_definition_id', 'seasons', ['season_definition_id'])

    op.create_table(
        'price_definitions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.SmallInteger(), nullable=False),
        sa.Column('season_definition_id', sa.Integer(), sa.ForeignKey('season_definitions.id'), nullable=True),
        sa.Column('units_management_value_days_list', sa.String(length=255), nullable=True),
        sa.Column('units_management_value_hours_list', sa.String(length=255), nullable=True),
        sa.Column('units_management_value_minutes_list', sa.String(length=255), nullable=True),
    )

    op.create_table(
        'category_rental_location_rate_types',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('category_id', sa.Integer(), sa.ForeignKey('categories.id'), nullable=False),
        sa.Column('rental_location_id', sa.Integer(), sa.ForeignKey('rental_locations.id'), nullable=False),
        sa.Column('rate_type_id', sa.Integer(), sa.ForeignKey('rate_types.id'), nullable=False),
        sa.Column('price_definition_id', sa.Integer(), sa.ForeignKey('price_definitions.id'), nullable=False),
        sa.UniqueConstraint(
            'category_id', 'rental_location_id', 'rate_type_id',
            name='uq_category_rental_location_rate_type'
        ),
    )

    # ### prices ###
    op.create_table(
        'prices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('price_definition_id', sa.Integer(), sa.ForeignKey('price_definitions.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=True),
        sa.Column('time_measurement', sa.String(length=20), nullable=False),
        sa.Column('units', sa.Integer(), nullable=False),
        sa.Column('price', sa.Numeric(10, 2), nullable=False),
        sa.Column('included_km', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('extra_km_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            'price_definition_id', 'season_id', 'time_measurement', 'units',
            name='uq_price_natural_key'
        ),
    )
    op.create_index('idx_price_definition_season', 'prices', ['price_definition_id', 'season_id'])


def downgrade() -> None:
    op.drop_index('idx_price_definition_season', table_name='prices')
    op.drop_table('prices')
    op.drop_table('category_rental_location_rate_types')
    op.drop_table('price_definitions')
    op.drop_index('ix_seasons_season_definition_id', table_name='seasons')
    op.drop_table('seasons')
    op.drop_table('season_definitions')
    op.drop_index('ix_rate_types_name', table_name='rate_types')
    op.drop_table('rate_types')
    op.drop_index('ix_rental_locations_name', table_name='rental_locations')
    op.drop_table('rental_locations')
    op.drop_index('ix_categories_code', table_name='categories')
    op.drop_table('categories')
