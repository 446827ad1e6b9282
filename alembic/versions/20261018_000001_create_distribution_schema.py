"""Create distribution schema.

Revision ID: 20261018_000001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '20261018_000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


MONEY = sa.DECIMAL(18, 8)
RATE = sa.DECIMAL(10, 4)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
    ]


def upgrade() -> None:
    """Create accounts, plans, investments, activation, ledger, run and team reward tables."""

    op.create_table(
        'accounts',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('username', sa.String(255), nullable=True),
        sa.Column('balance', MONEY, nullable=False, server_default='0'),
        sa.Column('total_earned', MONEY, nullable=False, server_default='0'),
        sa.Column('total_invested', MONEY, nullable=False, server_default='0', comment='Cumulative invested amount'),
        sa.Column('upline_id', sa.Integer(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('is_activated', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('activated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('activation_expires_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('balance >= 0', name=op.f('ck_accounts_check_account_balance_non_negative')),
        sa.CheckConstraint('total_earned >= 0', name=op.f('ck_accounts_check_account_total_earned_non_negative')),
        sa.CheckConstraint('total_invested >= 0', name=op.f('ck_accounts_check_account_total_invested_non_negative')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_accounts')),
    )
    op.create_index(op.f('ix_accounts_username'), 'accounts', ['username'])
    op.create_index(op.f('ix_accounts_upline_id'), 'accounts', ['upline_id'])
    op.create_index(op.f('ix_accounts_status'), 'accounts', ['status'])
    op.create_index(op.f('ix_accounts_is_activated'), 'accounts', ['is_activated'])

    op.create_table(
        'plans',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('daily_rate', RATE, nullable=True),
        sa.Column('fallback_daily_rate', RATE, nullable=True),
        *[sa.Column(f'level_{level}_rate', RATE, nullable=True) for level in range(1, 11)],
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        *_timestamps(),
        sa.CheckConstraint(
            'daily_rate IS NULL OR (daily_rate >= 0 AND daily_rate <= 100)',
            name=op.f('ck_plans_check_plan_daily_rate_range'),
        ),
        sa.CheckConstraint(
            'fallback_daily_rate IS NULL OR (fallback_daily_rate > 0 AND fallback_daily_rate <= 100)',
            name=op.f('ck_plans_check_plan_fallback_daily_rate_range'),
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_plans')),
    )

    op.create_table(
        'investments',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('plan_id', sa.Integer(), nullable=True),
        sa.Column('principal', MONEY, nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('last_profit_date', sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint('principal > 0', name=op.f('ck_investments_check_investment_principal_positive')),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name=op.f('fk_investments_account_id_accounts'), ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['plan_id'], ['plans.id'],
            name=op.f('fk_investments_plan_id_plans'), ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_investments')),
    )
    op.create_index(op.f('ix_investments_account_id'), 'investments', ['account_id'])
    op.create_index(op.f('ix_investments_plan_id'), 'investments', ['plan_id'])
    op.create_index(op.f('ix_investments_status'), 'investments', ['status'])
    op.create_index(op.f('ix_investments_last_profit_date'), 'investments', ['last_profit_date'])
    op.create_index('idx_investment_account_status', 'investments', ['account_id', 'status'])

    op.create_table(
        'cycle_activations',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('investment_id', sa.Integer(), nullable=False),
        sa.Column('cycle_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('amount', MONEY, nullable=True),
        sa.Column('ledger_entry_id', sa.Integer(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('run_id', sa.Integer(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['investment_id'], ['investments.id'],
            name=op.f('fk_cycle_activations_investment_id_investments'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_cycle_activations')),
        sa.UniqueConstraint('investment_id', 'cycle_date', name='uq_cycle_activation_investment_cycle'),
    )
    op.create_index(op.f('ix_cycle_activations_account_id'), 'cycle_activations', ['account_id'])
    op.create_index(op.f('ix_cycle_activations_investment_id'), 'cycle_activations', ['investment_id'])
    op.create_index(op.f('ix_cycle_activations_cycle_date'), 'cycle_activations', ['cycle_date'])
    op.create_index(op.f('ix_cycle_activations_status'), 'cycle_activations', ['status'])
    op.create_index(op.f('ix_cycle_activations_run_id'), 'cycle_activations', ['run_id'])

    op.create_table(
        'ledger_entries',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('beneficiary_id', sa.Integer(), nullable=False),
        sa.Column('source_account_id', sa.Integer(), nullable=False),
        sa.Column('source_ref_id', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('kind', sa.String(30), nullable=False),
        sa.Column('amount', MONEY, nullable=False),
        sa.Column('level', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cycle_date', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='credited'),
        sa.Column('applied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('run_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('amount > 0', name=op.f('ck_ledger_entries_check_ledger_amount_positive')),
        sa.CheckConstraint('level >= 0 AND level <= 10', name=op.f('ck_ledger_entries_check_ledger_level_range')),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_ledger_entries')),
    )
    op.create_index(op.f('ix_ledger_entries_beneficiary_id'), 'ledger_entries', ['beneficiary_id'])
    op.create_index(op.f('ix_ledger_entries_source_account_id'), 'ledger_entries', ['source_account_id'])
    op.create_index(op.f('ix_ledger_entries_run_id'), 'ledger_entries', ['run_id'])
    op.create_index('idx_ledger_cycle_kind', 'ledger_entries', ['cycle_date', 'kind'])
    # At most one non-cancelled entry per idempotency key
    op.create_index(
        'uq_ledger_entry_idempotency_key',
        'ledger_entries',
        ['beneficiary_id', 'source_account_id', 'kind', 'level', 'cycle_date', 'source_ref_id'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        'run_records',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('cycle_date', sa.Date(), nullable=False),
        sa.Column('trigger', sa.String(20), nullable=False, server_default='scheduler'),
        sa.Column('status', sa.String(20), nullable=False, server_default='running'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('ended_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('processed_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('skipped_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('error_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_profit', MONEY, nullable=False, server_default='0'),
        sa.Column('total_commission', MONEY, nullable=False, server_default='0'),
        sa.Column('total_distributed', MONEY, nullable=False, server_default='0'),
        sa.Column('errors', postgresql.JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column('previous_run_id', sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_run_records')),
    )
    op.create_index(op.f('ix_run_records_cycle_date'), 'run_records', ['cycle_date'])
    # Only one in-flight run per cycle
    op.create_index(
        'uq_run_record_running_cycle',
        'run_records',
        ['cycle_date'],
        unique=True,
        postgresql_where=sa.text("status = 'running'"),
    )

    op.create_table(
        'team_rewards',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('account_id', sa.Integer(), nullable=False),
        sa.Column('team_deposit', MONEY, nullable=False),
        sa.Column('time_period_days', sa.Integer(), nullable=False),
        sa.Column('reward_amount', MONEY, nullable=False),
        sa.Column('start_date', sa.DateTime(timezone=True), nullable=False, server_default=sa.text('now()')),
        sa.Column('end_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('ledger_entry_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('reward_amount > 0', name=op.f('ck_team_rewards_check_team_reward_amount_positive')),
        sa.ForeignKeyConstraint(
            ['account_id'], ['accounts.id'],
            name=op.f('fk_team_rewards_account_id_accounts'), ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name=op.f('pk_team_rewards')),
        sa.UniqueConstraint('account_id', 'team_deposit', name='uq_team_reward_account_tier'),
    )
    op.create_index(op.f('ix_team_rewards_account_id'), 'team_rewards', ['account_id'])
    op.create_index(op.f('ix_team_rewards_end_date'), 'team_rewards', ['end_date'])
    op.create_index(op.f('ix_team_rewards_status'), 'team_rewards', ['status'])


def downgrade() -> None:
    """Drop distribution schema."""
    op.drop_table('team_rewards')
    op.drop_table('run_records')
    op.drop_table('ledger_entries')
    op.drop_table('cycle_activations')
    op.drop_table('investments')
    op.drop_table('plans')
    op.drop_table('accounts')
