"""users, device sessions and revoked tokens

Revision ID: 4b1e7c9a2f60
Revises:
Create Date: 2025-01-06 09:00:00.000000
"""
import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = '4b1e7c9a2f60'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=254), nullable=False),
        sa.Column('password_hash', sa.String(length=254), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('is_verified', sa.Boolean(), nullable=False),
        sa.Column('verification_token_hash', sa.String(length=128), nullable=True),
        sa.Column('reset_token_hash', sa.String(length=128), nullable=True),
        sa.Column('reset_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('failed_attempts', sa.Integer(), nullable=False),
        sa.Column('locked_until', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_token_hash', sa.String(length=128), nullable=True),
        sa.Column('refresh_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refresh_device_id', sa.String(length=128), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_verification_token_hash', 'users', ['verification_token_hash'])
    op.create_index('ix_users_reset_token_hash', 'users', ['reset_token_hash'])
    op.create_index('ix_users_refresh_token_hash', 'users', ['refresh_token_hash'])

    op.create_table(
        'user_sessions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('device_id', sa.String(length=128), nullable=False),
        sa.Column('user_agent', sa.String(length=512), nullable=False),
        sa.Column('last_active_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('user_id', 'device_id', name='uq_user_sessions_user_id_device_id'),
    )
    op.create_index('ix_user_sessions_device_id', 'user_sessions', ['device_id'])

    op.create_table(
        'revoked_tokens',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('token_digest', sa.String(length=128), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index('ix_revoked_tokens_expires_at', 'revoked_tokens', ['expires_at'])


def downgrade():
    op.drop_index('ix_revoked_tokens_expires_at', table_name='revoked_tokens')
    op.drop_table('revoked_tokens')
    op.drop_index('ix_user_sessions_device_id', table_name='user_sessions')
    op.drop_table('user_sessions')
    op.drop_index('ix_users_refresh_token_hash', table_name='users')
    op.drop_index('ix_users_reset_token_hash', table_name='users')
    op.drop_index('ix_users_verification_token_hash', table_name='users')
    op.drop_table('users')
