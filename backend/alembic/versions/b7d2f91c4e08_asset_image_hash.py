"""asset image hash

Revision ID: b7d2f91c4e08
Revises: a1c4e7f20b33
Create Date: 2026-10-19 10:15:00.000000

"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = 'b7d2f91c4e08'
down_revision: Union[str, None] = 'a1c4e7f20b33'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table('assets') as batch:
        batch.add_column(sa.Column('image_hash', sa.String(length=128), nullable=True))
        batch.create_unique_constraint('uq_assets_image_hash', ['image_hash'])


def downgrade() -> None:
    with op.batch_alter_table('assets') as batch:
        batch.drop_constraint('uq_assets_image_hash', type_='unique')
        batch.drop_column('image_hash')
