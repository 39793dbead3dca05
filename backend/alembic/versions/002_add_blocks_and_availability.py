"""Add block assignments and court availability windows

Revision ID: 002_blocks_availability
Revises: 001_initial
Create Date: 2026-03-09 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "002_blocks_availability"
down_revision = "001_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "blockassignment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("division_id", sa.Integer(), nullable=False),
        sa.Column("phase_id", sa.Integer(), nullable=True),
        sa.Column("court_group_id", sa.Integer(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.Time(), nullable=True),
        sa.Column("valid_to", sa.Time(), nullable=True),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["division_id"], ["division.id"]),
        sa.ForeignKeyConstraint(["phase_id"], ["phase.id"]),
        sa.ForeignKeyConstraint(["court_group_id"], ["courtgroup.id"]),
    )
    op.create_index(op.f("ix_blockassignment_event_id"), "blockassignment", ["event_id"], unique=False)
    op.create_index(op.f("ix_blockassignment_division_id"), "blockassignment", ["division_id"], unique=False)

    # court_id NULL = event-wide default for the day
    op.create_table(
        "courtavailability",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("day_number", sa.Integer(), nullable=False),
        sa.Column("available_from", sa.Time(), nullable=False),
        sa.Column("available_to", sa.Time(), nullable=False),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
        sa.UniqueConstraint("event_id", "court_id", "day_number", name="uq_court_availability_day"),
    )
    op.create_index(op.f("ix_courtavailability_event_id"), "courtavailability", ["event_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_courtavailability_event_id"), table_name="courtavailability")
    op.drop_table("courtavailability")
    op.drop_index(op.f("ix_blockassignment_division_id"), table_name="blockassignment")
    op.drop_index(op.f("ix_blockassignment_event_id"), table_name="blockassignment")
    op.drop_table("blockassignment")
