"""create_fitbit_token_tables

Revision ID: 4c1e8a92d7b3
Revises:
Create Date: 2026-10-16 09:12:41.208113

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '4c1e8a92d7b3'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'fitbit_tokens',
        sa.Column('key', sa.String(length=128), nullable=False),
        sa.Column('external_id', sa.String(length=128), nullable=True),
        sa.Column('owner_id', sa.String(length=128), nullable=True),
        sa.Column('access_token', sa.Text(), nullable=True),
        sa.Column('refresh_token', sa.Text(), nullable=True),
        sa.Column('expires_at', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('key'),
    )
    op.create_index('ix_fitbit_tokens_external_id', 'fitbit_tokens', ['external_id'])

    # Owner set of current-schema records; also the owner -> record index
    op.create_table(
        'fitbit_token_owners',
        sa.Column('record_key', sa.String(length=128), nullable=False),
        sa.Column('owner_id', sa.String(length=128), nullable=False),
        sa.ForeignKeyConstraint(['record_key'], ['fitbit_tokens.key'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('record_key', 'owner_id'),
    )
    op.create_index('ix_token_owner_lookup', 'fitbit_token_owners', ['owner_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_token_owner_lookup', table_name='fitbit_token_owners')
    op.drop_table('fitbit_token_owners')
    op.drop_index('ix_fitbit_tokens_external_id', table_name='fitbit_tokens')
    op.drop_table('fitbit_tokens')
