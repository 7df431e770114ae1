"""Initial migration - create season, family, workshop, payment and membership tables

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'seasons',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('start_year', sa.Integer(), nullable=False),
        sa.Column('end_year', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('membership_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('discount_percent', sa.Numeric(5, 2), nullable=False, server_default='0'),
        sa.Column('total_donations', sa.Numeric(10, 2), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('start_year', 'end_year', name='uq_seasons_years'),
    )
    op.create_index('ix_seasons_status', 'seasons', ['status'])

    op.create_table(
        'families',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'members',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id'), nullable=False),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('is_minor', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_members_family_id', 'members', ['family_id'])

    op.create_table(
        'workshops',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('allow_multiple', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('max_per_member', sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'workshop_prices',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('workshop_id', sa.Integer(), sa.ForeignKey('workshops.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('workshop_id', 'season_id', name='uq_workshop_prices_workshop_season'),
    )
    op.create_index('ix_workshop_prices_season_id', 'workshop_prices', ['season_id'])

    op.create_table(
        'registrations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('workshop_id', sa.Integer(), sa.ForeignKey('workshops.id'), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('registration_date', sa.Date(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_registrations_member_season', 'registrations', ['member_id', 'season_id'])
    op.create_index('ix_registrations_workshop_season', 'registrations', ['workshop_id', 'season_id'])

    op.create_table(
        'payments',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('payment_type', sa.String(20), nullable=False, server_default='cash'),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('payment_date', sa.Date(), nullable=False),
        sa.Column('cashing_date', sa.Date(), nullable=True),
        sa.Column('reference', sa.String(255), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_payments_family_season', 'payments', ['family_id', 'season_id'])
    op.create_index('ix_payments_status', 'payments', ['status'])

    op.create_table(
        'donations',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('donation_date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_donations_family_season', 'donations', ['family_id', 'season_id'])

    op.create_table(
        'memberships',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('member_id', sa.Integer(), sa.ForeignKey('members.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('family_order', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('membership_date', sa.Date(), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint('member_id', 'season_id', name='uq_memberships_member_season'),
    )
    op.create_index('ix_memberships_season_status', 'memberships', ['season_id', 'status'])

    op.create_table(
        'reconciliation_states',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('family_id', sa.Integer(), sa.ForeignKey('families.id'), nullable=False),
        sa.Column('season_id', sa.Integer(), sa.ForeignKey('seasons.id'), nullable=False),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('total_due', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('total_received', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('last_reconciled_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('family_id', 'season_id', name='uq_reconciliation_states_family_season'),
    )


def downgrade() -> None:
    op.drop_table('reconciliation_states')

    op.drop_index('ix_memberships_season_status', table_name='memberships')
    op.drop_table('memberships')

    op.drop_index('ix_donations_family_season', table_name='donations')
    op.drop_table('donations')

    op.drop_index('ix_payments_status', table_name='payments')
    op.drop_index('ix_payments_family_season', table_name='payments')
    op.drop_table('payments')

    op.drop_index('ix_registrations_workshop_season', table_name='registrations')
    op.drop_index('ix_registrations_member_season', table_name='registrations')
    op.drop_table('registrations')

    op.drop_index('ix_workshop_prices_season_id', table_name='workshop_prices')
    op.drop_table('workshop_prices')

    op.drop_table('workshops')

    op.drop_index('ix_members_family_id', table_name='members')
    op.drop_table('members')

    op.drop_table('families')

    op.drop_index('ix_seasons_status', table_name='seasons')
    op.drop_table('seasons')
