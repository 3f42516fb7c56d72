"""initial code balance schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

Creates the dealer code-balance schema from scratch:
- identities / session_tokens: database identity provider
- accounts: dealer/retailer profiles with balance and creator edge
- codes: one row per activation code, token derived from id
- code_transfers: append-only transfer sub-ledgers
- id_sequences: pre-insert id allocation for codes
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # identities: login credentials (bcrypt hashes only)
    # ============================================================================
    op.create_table(
        'identities',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_identities_email', 'identities', ['email'], unique=True)

    # ============================================================================
    # session_tokens: hashed bearer tokens
    # ============================================================================
    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('identity_id', sa.String(length=32), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(['identity_id'], ['identities.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_session_tokens_identity_id', 'session_tokens', ['identity_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])
    op.create_index('ix_session_tokens_identity_active', 'session_tokens', ['identity_id', 'is_revoked'])

    # ============================================================================
    # accounts: profiles; created_by_id is a lookup edge, not a foreign key
    # ============================================================================
    op.create_table(
        'accounts',
        sa.Column('id', sa.String(length=32), nullable=False),
        sa.Column('role', sa.String(length=16), nullable=False),
        sa.Column('created_by_id', sa.String(length=32), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('mobile_number', sa.String(length=32), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('shop_name', sa.String(length=120), nullable=False),
        sa.Column('dealer_code', sa.String(length=64), nullable=False),
        sa.Column('locker_id', sa.String(length=64), nullable=True),
        sa.Column('balance', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('balance >= 0', name='ck_accounts_balance_non_negative'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )
    op.create_index('ix_accounts_role', 'accounts', ['role'])
    op.create_index('ix_accounts_created_by_id', 'accounts', ['created_by_id'])
    op.create_index('ix_accounts_mobile_number', 'accounts', ['mobile_number'], unique=True)
    op.create_index('ix_accounts_created_by_role', 'accounts', ['created_by_id', 'role'])

    # ============================================================================
    # codes: ids come from id_sequences, never autoincrement
    # ============================================================================
    op.create_table(
        'codes',
        sa.Column('id', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('token', sa.String(length=16), nullable=False),
        sa.Column('owner_id', sa.String(length=32), nullable=False),
        sa.Column('issued_by_id', sa.String(length=32), nullable=False),
        sa.Column('issued_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_codes_token', 'codes', ['token'], unique=True)
    op.create_index('ix_codes_issued_by_id', 'codes', ['issued_by_id'])
    op.create_index('ix_codes_owner_status', 'codes', ['owner_id', 'status'])

    # ============================================================================
    # code_transfers: append-only sub-ledgers
    # ============================================================================
    op.create_table(
        'code_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('account_id', sa.String(length=32), nullable=False),
        sa.Column('from_account_id', sa.String(length=32), nullable=False),
        sa.Column('to_account_id', sa.String(length=32), nullable=False),
        sa.Column('from_name', sa.String(length=120), nullable=False),
        sa.Column('to_name', sa.String(length=120), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('direction', sa.String(length=16), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.CheckConstraint('quantity > 0', name='ck_code_transfers_quantity_positive'),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_code_transfers_from_account_id', 'code_transfers', ['from_account_id'])
    op.create_index('ix_code_transfers_to_account_id', 'code_transfers', ['to_account_id'])
    op.create_index('ix_code_transfers_occurred_at', 'code_transfers', ['occurred_at'])
    op.create_index('ix_code_transfers_account_occurred', 'code_transfers', ['account_id', 'occurred_at'])

    # ============================================================================
    # id_sequences: named counters
    # ============================================================================
    op.create_table(
        'id_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=32), nullable=False),
        sa.Column('next_value', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_id_sequences_name'),
        sqlite_autoincrement=True
    )


def downgrade():
    """Drop all tables (destructive operation)."""
    op.drop_table('id_sequences')
    op.drop_table('code_transfers')
    op.drop_table('codes')
    op.drop_table('accounts')
    op.drop_table('session_tokens')
    op.drop_table('identities')
