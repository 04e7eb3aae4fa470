"""participations: flyer details, printing cost, tour link

Revision ID: 003
Revises: 002
Create Date: 2025-01-01 00:00:02.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FLYER_COLUMNS = (
    sa.Column("tour_link", sa.String(length=300), nullable=True),
    sa.Column("has_flyer", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    sa.Column("needs_flyer_creation", sa.Boolean(), nullable=False, server_default=sa.text("false")),
    sa.Column("flyer_format", sa.String(length=10), nullable=True),
    sa.Column("flyer_title", sa.String(length=200), nullable=True),
    sa.Column("flyer_company", sa.String(length=200), nullable=True),
    sa.Column("flyer_email", sa.String(length=255), nullable=True),
    sa.Column("flyer_phone", sa.String(length=30), nullable=True),
    sa.Column("flyer_address_street", sa.String(length=300), nullable=True),
    sa.Column("flyer_address_postal_code", sa.String(length=10), nullable=True),
    sa.Column("flyer_address_city", sa.String(length=150), nullable=True),
    sa.Column("printing_cost", sa.Float(), nullable=True),
)


def upgrade() -> None:
    for column in FLYER_COLUMNS:
        op.add_column("participations", column)


def downgrade() -> None:
    for column in reversed(FLYER_COLUMNS):
        op.drop_column("participations", column.name)
