"""create_tariffs

Revision ID: 001
Revises:
Create Date: 2025-06-07 21:36:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Crea la tabla tariffs: una fila por (tariff_id, date)."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if not inspector.has_table('tariffs'):
        op.create_table('tariffs',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('tariff_id', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('raw_data', sa.JSON().with_variant(postgresql.JSONB(), 'postgresql'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('tariff_id', 'date', name='uq_tariffs_tariff_id_date')
        )
        op.create_index(op.f('ix_tariffs_date'), 'tariffs', ['date'], unique=False)


def downgrade() -> None:
    """Elimina la tabla tariffs (pierde todos los datos)."""
    bind = op.get_bind()
    inspector = sa.inspect(bind)

    if inspector.has_table('tariffs'):
        indexes = [idx['name'] for idx in inspector.get_indexes('tariffs')]
        if 'ix_tariffs_date' in indexes:
            op.drop_index(op.f('ix_tariffs_date'), table_name='tariffs')
        op.drop_table('tariffs')
