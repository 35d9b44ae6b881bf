"""Initial family tree schema: users, persons, relationships, GEDCOM import sessions

Revision ID: 3f9c2a7d1b40
Revises:
Create Date: 2026-10-17 09:12:31.418203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3f9c2a7d1b40'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('view_all_records', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
    )

    op.create_table(
        'persons',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('first_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(length=255), nullable=False, server_default=''),
        sa.Column('gender', sa.String(length=20), nullable=False, server_default='unspecified'),
        sa.Column('birth_date', sa.String(length=10), nullable=True),
        sa.Column('birth_place', sa.String(length=255), nullable=True),
        sa.Column('death_date', sa.String(length=10), nullable=True),
        sa.Column('death_place', sa.String(length=255), nullable=True),
        sa.Column('photo_url', sa.String(length=1024), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint("gender IN ('male', 'female', 'other', 'unspecified')", name='ck_persons_gender'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_persons_user_id', 'persons', ['user_id'])

    op.create_table(
        'relationships',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('person1_id', sa.Integer(), nullable=False),
        sa.Column('person2_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('parent_role', sa.String(length=10), nullable=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('person1_id <> person2_id', name='ck_relationship_not_self'),
        sa.CheckConstraint("type IN ('parentOf', 'spouse')", name='ck_relationship_type'),
        sa.ForeignKeyConstraint(['person1_id'], ['persons.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['person2_id'], ['persons.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('person1_id', 'person2_id', 'type', 'parent_role', name='uq_relationship'),
    )
    op.create_index('ix_relationships_person1_id', 'relationships', ['person1_id'])
    op.create_index('ix_relationships_person2_id', 'relationships', ['person2_id'])
    op.create_index('ix_relationships_user_id', 'relationships', ['user_id'])

    op.create_table(
        'gedcom_import_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('upload_id', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('gedcom_version', sa.String(length=10), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='previewed'),
        sa.Column('individuals', sa.JSON(), nullable=False),
        sa.Column('families', sa.JSON(), nullable=False),
        sa.Column('duplicates', sa.JSON(), nullable=False),
        sa.Column('resolution_decisions', sa.JSON(), nullable=False),
        sa.Column('summary', sa.JSON(), nullable=False),
        sa.Column('errors', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('upload_id', 'user_id', name='uq_import_session_upload'),
    )
    op.create_index('ix_gedcom_import_sessions_user_id', 'gedcom_import_sessions', ['user_id'])


def downgrade():
    op.drop_index('ix_gedcom_import_sessions_user_id', table_name='gedcom_import_sessions')
    op.drop_table('gedcom_import_sessions')
    op.drop_index('ix_relationships_user_id', table_name='relationships')
    op.drop_index('ix_relationships_person2_id', table_name='relationships')
    op.drop_index('ix_relationships_person1_id', table_name='relationships')
    op.drop_table('relationships')
    op.drop_index('ix_persons_user_id', table_name='persons')
    op.drop_table('persons')
    op.drop_table('users')
