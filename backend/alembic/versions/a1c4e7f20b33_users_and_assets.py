"""users and assets

Revision ID: a1c4e7f20b33
Revises:
Create Date: 2026-10-12 09:30:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'a1c4e7f20b33'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('wallet_address', sa.String(length=42), nullable=False),
        sa.Column('nonce', sa.String(length=64), nullable=False),
        sa.Column('profile_name', sa.String(length=64), nullable=False),
        sa.Column('avatar_url', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index(op.f('ix_users_wallet_address'), 'users', ['wallet_address'], unique=True)

    op.create_table(
        'assets',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('metadata_uri', sa.String(), nullable=True),
        sa.Column('creator_address', sa.String(length=42), nullable=True),
        sa.Column('license', sa.String(length=32), nullable=True),
        sa.Column('token_id', sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column('ip_id', sa.String(length=42), nullable=True),
        sa.Column('license_terms_id', sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column('transaction_hash', sa.String(length=66), nullable=True),
        sa.Column('current_owner', sa.String(length=42), nullable=True),
        sa.Column('is_listed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('listing_id', sa.String(length=66), nullable=True),
        sa.Column('price', sa.Numeric(precision=78, scale=0), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('token_id', name='uq_assets_token_id'),
        sa.UniqueConstraint('ip_id', name='uq_assets_ip_id'),
        sa.UniqueConstraint('listing_id', name='uq_assets_listing_id'),
    )
    op.create_index(op.f('ix_assets_metadata_uri'), 'assets', ['metadata_uri'])
    op.create_index(op.f('ix_assets_creator_address'), 'assets', ['creator_address'])
    op.create_index(op.f('ix_assets_current_owner'), 'assets', ['current_owner'])


def downgrade() -> None:
    op.drop_index(op.f('ix_assets_current_owner'), table_name='assets')
    op.drop_index(op.f('ix_assets_creator_address'), table_name='assets')
    op.drop_index(op.f('ix_assets_metadata_uri'), table_name='assets')
    op.drop_table('assets')
    op.drop_index(op.f('ix_users_wallet_address'), table_name='users')
    op.drop_table('users')
