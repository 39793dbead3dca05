"""Initial schema: events, courts, court groups, divisions, phases, units, encounters

Revision ID: 001_initial
Revises:
Create Date: 2026-03-02 00:00:00.000000

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "event",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("location", sa.String(), nullable=True),
        sa.Column("timezone", sa.String(), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "court",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("location_description", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.UniqueConstraint("event_id", "label", name="uq_event_court_label"),
    )
    op.create_index(op.f("ix_court_event_id"), "court", ["event_id"], unique=False)

    op.create_table(
        "courtgroup",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("code", sa.String(), nullable=True),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
    )
    op.create_index(op.f("ix_courtgroup_event_id"), "courtgroup", ["event_id"], unique=False)

    op.create_table(
        "courtgroupcourt",
        sa.Column("court_group_id", sa.Integer(), nullable=False),
        sa.Column("court_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("court_group_id", "court_id"),
        sa.ForeignKeyConstraint(["court_group_id"], ["courtgroup.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
    )

    op.create_table(
        "division",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("estimated_match_minutes", sa.Integer(), nullable=True),
        sa.Column("min_rest_minutes", sa.Integer(), nullable=True),
        sa.Column("sort_order", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
    )
    op.create_index(op.f("ix_division_event_id"), "division", ["event_id"], unique=False)

    op.create_table(
        "phase",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("division_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("phase_type", sa.String(), nullable=False),
        sa.Column("phase_order", sa.Integer(), nullable=False),
        sa.Column("estimated_match_minutes", sa.Integer(), nullable=True),
        sa.Column("start_time", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["division_id"], ["division.id"]),
        sa.UniqueConstraint("division_id", "phase_order", name="uq_division_phase_order"),
    )
    op.create_index(op.f("ix_phase_division_id"), "phase", ["division_id"], unique=False)

    op.create_table(
        "unit",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("division_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["division_id"], ["division.id"]),
    )
    op.create_index(op.f("ix_unit_event_id"), "unit", ["event_id"], unique=False)
    op.create_index(op.f("ix_unit_division_id"), "unit", ["division_id"], unique=False)

    op.create_table(
        "unitmember",
        sa.Column("unit_id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("unit_id", "user_id"),
        sa.ForeignKeyConstraint(["unit_id"], ["unit.id"]),
    )

    op.create_table(
        "encounter",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_id", sa.Integer(), nullable=False),
        sa.Column("division_id", sa.Integer(), nullable=False),
        sa.Column("phase_id", sa.Integer(), nullable=True),
        sa.Column("unit1_id", sa.Integer(), nullable=True),
        sa.Column("unit2_id", sa.Integer(), nullable=True),
        sa.Column("round_type", sa.String(), nullable=False),
        sa.Column("round_number", sa.Integer(), nullable=False),
        sa.Column("round_name", sa.String(), nullable=True),
        sa.Column("encounter_number", sa.Integer(), nullable=False),
        sa.Column("label", sa.String(), nullable=True),
        sa.Column("court_id", sa.Integer(), nullable=True),
        sa.Column("estimated_start_time", sa.DateTime(), nullable=True),
        sa.Column("estimated_end_time", sa.DateTime(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["event_id"], ["event.id"]),
        sa.ForeignKeyConstraint(["division_id"], ["division.id"]),
        sa.ForeignKeyConstraint(["phase_id"], ["phase.id"]),
        sa.ForeignKeyConstraint(["unit1_id"], ["unit.id"]),
        sa.ForeignKeyConstraint(["unit2_id"], ["unit.id"]),
        sa.ForeignKeyConstraint(["court_id"], ["court.id"]),
    )
    op.create_index(op.f("ix_encounter_event_id"), "encounter", ["event_id"], unique=False)
    op.create_index(op.f("ix_encounter_division_id"), "encounter", ["division_id"], unique=False)
    op.create_index(op.f("ix_encounter_phase_id"), "encounter", ["phase_id"], unique=False)
    op.create_index(op.f("ix_encounter_court_id"), "encounter", ["court_id"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_encounter_court_id"), table_name="encounter")
    op.drop_index(op.f("ix_encounter_phase_id"), table_name="encounter")
    op.drop_index(op.f("ix_encounter_division_id"), table_name="encounter")
    op.drop_index(op.f("ix_encounter_event_id"), table_name="encounter")
    op.drop_table("encounter")
    op.drop_table("unitmember")
    op.drop_index(op.f("ix_unit_division_id"), table_name="unit")
    op.drop_index(op.f("ix_unit_event_id"), table_name="unit")
    op.drop_table("unit")
    op.drop_index(op.f("ix_phase_division_id"), table_name="phase")
    op.drop_table("phase")
    op.drop_index(op.f("ix_division_event_id"), table_name="division")
    op.drop_table("division")
    op.drop_table("courtgroupcourt")
    op.drop_index(op.f("ix_courtgroup_event_id"), table_name="courtgroup")
    op.drop_table("courtgroup")
    op.drop_index(op.f("ix_court_event_id"), table_name="court")
    op.drop_table("court")
    op.drop_table("event")
