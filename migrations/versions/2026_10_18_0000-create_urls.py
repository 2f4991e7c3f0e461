"""Create urls table

Revision ID: 001_create_urls
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_create_urls'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the urls table:
    - code: base62 short code, unique
    - original: the shortened URL
    - clicks: redirect counter
    - created_at: creation timestamp
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    # The application creates missing tables on startup as well
    if 'urls' in existing_tables:
        return

    op.create_table(
        'urls',
        sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
        sa.Column('code', sa.String(length=20), nullable=True),
        sa.Column('original', sa.Text(), nullable=False),
        sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_index('ix_urls_code', 'urls', ['code'], unique=True)
    op.create_index('ix_urls_original', 'urls', ['original'])
    op.create_index('ix_urls_created_at', 'urls', ['created_at'])


def downgrade() -> None:
    op.drop_index('ix_urls_created_at', table_name='urls')
    op.drop_index('ix_urls_original', table_name='urls')
    op.drop_index('ix_urls_code', table_name='urls')
    op.drop_table('urls')
