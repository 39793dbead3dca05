"""add encounter source edges and block handoff

Revision ID: 003_dependency_edges
Revises: 002_blocks_availability
Create Date: 2026-04-14 10:21:37.418026

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '003_dependency_edges'
down_revision = '002_blocks_availability'
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table('encounter') as batch_op:
        batch_op.add_column(sa.Column('source_encounter_1_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('source_encounter_2_id', sa.Integer(), nullable=True))
        batch_op.create_foreign_key('fk_encounter_source_1', 'encounter', ['source_encounter_1_id'], ['id'])
        batch_op.create_foreign_key('fk_encounter_source_2', 'encounter', ['source_encounter_2_id'], ['id'])

    with op.batch_alter_table('blockassignment') as batch_op:
        batch_op.add_column(sa.Column('depends_on_block_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('dependency_buffer_minutes', sa.Integer(), nullable=False, server_default='0'))
        batch_op.create_foreign_key('fk_block_depends_on', 'blockassignment', ['depends_on_block_id'], ['id'])


def downgrade() -> None:
    with op.batch_alter_table('blockassignment') as batch_op:
        batch_op.drop_constraint('fk_block_depends_on', type_='foreignkey')
        batch_op.drop_column('dependency_buffer_minutes')
        batch_op.drop_column('depends_on_block_id')

    with op.batch_alter_table('encounter') as batch_op:
        batch_op.drop_constraint('fk_encounter_source_2', type_='foreignkey')
        batch_op.drop_constraint('fk_encounter_source_1', type_='foreignkey')
        batch_op.drop_column('source_encounter_2_id')
        batch_op.drop_column('source_encounter_1_id')
