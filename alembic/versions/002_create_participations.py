"""participations + iris_selections (base columns)

Revision ID: 002
Revises: 001
Create Date: 2025-01-01 00:00:01.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "participations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("city_name", sa.String(length=150), nullable=False),
        sa.Column("tour_start_date", sa.Date(), nullable=False),
        sa.Column("tour_end_date", sa.Date(), nullable=False),
        sa.Column("tour_index", sa.Integer(), nullable=False),
        sa.Column("total_housing_units", sa.Integer(), nullable=False),
        sa.Column("distribution_cost", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_participations_id"), "participations", ["id"], unique=False)
    op.create_index(op.f("ix_participations_user_id"), "participations", ["user_id"], unique=False)
    op.create_index(op.f("ix_participations_city_name"), "participations", ["city_name"], unique=False)
    op.create_index(op.f("ix_participations_tour_start_date"), "participations", ["tour_start_date"], unique=False)

    op.create_table(
        "iris_selections",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("participation_id", sa.Integer(), nullable=False),
        sa.Column("iris_code", sa.String(length=20), nullable=False),
        sa.Column("iris_name", sa.String(length=200), nullable=False),
        sa.Column("housing_units", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=True),
        sa.ForeignKeyConstraint(["participation_id"], ["participations.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_iris_selections_id"), "iris_selections", ["id"], unique=False)
    op.create_index(op.f("ix_iris_selections_participation_id"), "iris_selections", ["participation_id"], unique=False)
    op.create_index(op.f("ix_iris_selections_iris_code"), "iris_selections", ["iris_code"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_iris_selections_iris_code"), table_name="iris_selections")
    op.drop_index(op.f("ix_iris_selections_participation_id"), table_name="iris_selections")
    op.drop_index(op.f("ix_iris_selections_id"), table_name="iris_selections")
    op.drop_table("iris_selections")
    op.drop_index(op.f("ix_participations_tour_start_date"), table_name="participations")
    op.drop_index(op.f("ix_participations_city_name"), table_name="participations")
    op.drop_index(op.f("ix_participations_user_id"), table_name="participations")
    op.drop_index(op.f("ix_participations_id"), table_name="participations")
    op.drop_table("participations")
