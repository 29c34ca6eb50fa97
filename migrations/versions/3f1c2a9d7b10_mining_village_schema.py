"""mining village schema

Revision ID: 3f1c2a9d7b10
Revises:
Create Date: 2025-10-02 11:04:12.418305

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f1c2a9d7b10'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_WHERE = sa.text("status IN ('mining', 'ready_to_claim')")


def upgrade():
    op.create_table(
        'wallet_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('referral_code', sa.String(length=16), nullable=False),
        sa.Column('registered_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('wallet_users', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_wallet_users_wallet_address'), ['wallet_address'], unique=True)
        batch_op.create_index(batch_op.f('ix_wallet_users_referral_code'), ['referral_code'], unique=True)

    op.create_table(
        'wallet_accounts',
        sa.Column('wallet_user_id', sa.Integer(), nullable=False),
        sa.Column('total_earned', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('bonus_balance', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['wallet_user_id'], ['wallet_users.id']),
        sa.PrimaryKeyConstraint('wallet_user_id'),
    )

    op.create_table(
        'ad_rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('rewarded_tokens', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('ad_rewards', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_ad_rewards_wallet_address'), ['wallet_address'], unique=False)

    op.create_table(
        'mining_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wallet_user_id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('status', sa.Enum('idle', 'mining', 'ready_to_claim', 'claimed', name='sessionstatus'),
                  nullable=False),
        sa.Column('multiplier', sa.Integer(), nullable=False),
        sa.Column('mining_start_time', sa.DateTime(), nullable=False),
        sa.Column('current_multiplier_start_time', sa.DateTime(), nullable=False),
        sa.Column('selected_hour_target', sa.Integer(), nullable=False),
        sa.Column('current_mining_points', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('settled_amount', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('referral_settled', sa.Boolean(), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=True),
        sa.Column('last_updated', sa.DateTime(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['wallet_user_id'], ['wallet_users.id']),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('mining_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_mining_sessions_wallet_address'), ['wallet_address'], unique=False)
        batch_op.create_index('uix_active_session_per_wallet', ['wallet_user_id'], unique=True,
                              sqlite_where=ACTIVE_WHERE, postgresql_where=ACTIVE_WHERE)

    op.create_table(
        'referral_links',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('referrer_address', sa.String(length=128), nullable=False),
        sa.Column('referred_address', sa.String(length=128), nullable=False),
        sa.Column('signup_bonus', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('referral_links', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_referral_links_referrer_address'), ['referrer_address'], unique=False)
        batch_op.create_index(batch_op.f('ix_referral_links_referred_address'), ['referred_address'], unique=True)

    op.create_table(
        'referral_mining_rewards',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('referrer_address', sa.String(length=128), nullable=False),
        sa.Column('referred_address', sa.String(length=128), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=36, scale=8), nullable=False),
        sa.Column('claimed_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['session_id'], ['mining_sessions.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('session_id'),
    )
    with op.batch_alter_table('referral_mining_rewards', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_referral_mining_rewards_referrer_address'), ['referrer_address'],
                              unique=False)
        batch_op.create_index(batch_op.f('ix_referral_mining_rewards_referred_address'), ['referred_address'],
                              unique=False)

    op.create_table(
        'notifications',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('wallet_address', sa.String(length=128), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('title', sa.String(length=120), nullable=False),
        sa.Column('message', sa.String(length=500), nullable=False),
        sa.Column('data', sa.JSON(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_notifications_wallet_address'), ['wallet_address'], unique=False)

    op.create_table(
        'app_config',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(length=64), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key'),
    )


def downgrade():
    op.drop_table('app_config')
    with op.batch_alter_table('notifications', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_notifications_wallet_address'))
    op.drop_table('notifications')
    op.drop_table('referral_mining_rewards')
    op.drop_table('referral_links')
    with op.batch_alter_table('mining_sessions', schema=None) as batch_op:
        batch_op.drop_index('uix_active_session_per_wallet')
        batch_op.drop_index(batch_op.f('ix_mining_sessions_wallet_address'))
    op.drop_table('mining_sessions')
    op.drop_table('ad_rewards')
    op.drop_table('wallet_accounts')
    op.drop_table('wallet_users')
