"""Initial schema

This migration creates the complete database schema for the Portfolio Calculator.

Tables:
    - holdings: Investments per investor (fund entities act as investors)
    - ledger_entries: Dated units, ownership stakes and appraisals per holding
    - price_points: Dated prices per security

Revision ID: 001
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ==========================================================================
    # HOLDINGS
    # ==========================================================================
    op.create_table(
        'holdings',
        sa.Column('holding_id', sa.String(), primary_key=True),
        sa.Column('investor_id', sa.String(), nullable=False, index=True),
        sa.Column('holding_type', sa.Enum('EQUITY', 'REAL_ESTATE', 'FUND', name='holdingtype'), nullable=False),
        sa.Column('security_id', sa.String(), nullable=True, index=True),
        sa.Column('fund_id', sa.String(), nullable=True, index=True),
        sa.Column('location_tag', sa.String(), nullable=True),
    )

    # ==========================================================================
    # LEDGER ENTRIES
    # ==========================================================================
    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('holding_id', sa.String(), nullable=False),
        sa.Column('kind', sa.Enum('UNITS', 'OWNERSHIP', 'LAND', 'BUILDING', name='ledgerkind'), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=20, scale=8), nullable=False),
    )
    op.create_index(
        'ix_ledger_holding_kind_date',
        'ledger_entries',
        ['holding_id', 'kind', 'entry_date'],
    )

    # ==========================================================================
    # PRICE POINTS
    # ==========================================================================
    op.create_table(
        'price_points',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('security_id', sa.String(), nullable=False),
        sa.Column('price_date', sa.Date(), nullable=False),
        sa.Column('price_per_unit', sa.Numeric(precision=20, scale=8), nullable=False),
    )
    op.create_index(
        'ix_price_security_date',
        'price_points',
        ['security_id', 'price_date'],
    )


def downgrade() -> None:
    op.drop_index('ix_price_security_date', table_name='price_points')
    op.drop_table('price_points')
    op.drop_index('ix_ledger_holding_kind_date', table_name='ledger_entries')
    op.drop_table('ledger_entries')
    op.drop_table('holdings')

    # Drop enums
    op.execute('DROP TYPE IF EXISTS ledgerkind')
    op.execute('DROP TYPE IF EXISTS holdingtype')
